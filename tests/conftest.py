"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
import logging
import socket
import sys
import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for azure_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))


@dataclass
class OIDCEndpoint:
    """Local stand-in for the GitHub Actions identity token endpoint."""

    url: str
    status: int = 200
    body: str = json.dumps({"value": "mock-oidc-token"})
    requests: list[dict[str, str]] = field(default_factory=list)
    # Seconds to wait before each body byte; 0 sends the body at once
    byte_delay: float = 0.0


@pytest.fixture
def oidc_endpoint(monkeypatch: pytest.MonkeyPatch) -> Iterator[OIDCEndpoint]:
    """Serve configurable responses on 127.0.0.1 and record incoming requests."""
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")
    endpoint = OIDCEndpoint(url="")

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:  # noqa: N802
            endpoint.requests.append(
                {
                    "path": self.path,
                    "authorization": self.headers.get("Authorization", ""),
                    "accept": self.headers.get("Accept", ""),
                }
            )
            payload = endpoint.body.encode("utf-8")
            self.send_response(endpoint.status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            if not endpoint.byte_delay:
                self.wfile.write(payload)
                return
            try:
                for byte in payload:
                    time.sleep(endpoint.byte_delay)
                    self.wfile.write(bytes([byte]))
                    self.wfile.flush()
            except (BrokenPipeError, ConnectionResetError):
                pass

        def log_message(self, format: str, *args: object) -> None:
            pass

    server = HTTPServer(("127.0.0.1", 0), Handler)
    endpoint.url = f"http://127.0.0.1:{server.server_port}/token"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield endpoint
    finally:
        server.shutdown()
        server.server_close()


@dataclass
class SilentEndpoint:
    """TCP listener that accepts connections and never sends a byte."""

    url: str
    connections: list[socket.socket] = field(default_factory=list)


@pytest.fixture
def silent_endpoint(monkeypatch: pytest.MonkeyPatch) -> Iterator[SilentEndpoint]:
    """Accept and hold connections on 127.0.0.1 without ever answering."""
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")
    listener = socket.create_server(("127.0.0.1", 0))
    listener.settimeout(0.1)
    endpoint = SilentEndpoint(url=f"https://127.0.0.1:{listener.getsockname()[1]}")
    stop = threading.Event()

    def accept_loop() -> None:
        while not stop.is_set():
            try:
                conn, _ = listener.accept()
            except TimeoutError:
                continue
            except OSError:
                return
            endpoint.connections.append(conn)

    thread = threading.Thread(target=accept_loop, daemon=True)
    thread.start()
    try:
        yield endpoint
    finally:
        stop.set()
        thread.join(timeout=1)
        for conn in endpoint.connections:
            conn.close()
        listener.close()

@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Drop handlers installed by setup_logging so each test starts clean."""
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, "_azure_oidc", False):
            root_logger.removeHandler(handler)
