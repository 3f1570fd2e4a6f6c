"""Filesystem handoff artifacts read by the container entrypoint.

Two plaintext files pass results to the wrapping process:
- the token expiry (RFC3339), world-readable, always written on success;
- the raw access token, owner-only, written only when explicitly requested.

Writes and removals are best effort: failures are logged as warnings and
never change the exit code.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

EXPIRY_FILE_MODE = 0o644
TOKEN_FILE_MODE = 0o600


def write_private_file(path: Path, content: str, mode: int) -> None:
    """Write ``content`` to ``path`` with exactly ``mode`` permissions.

    The file is created with the final mode so its content is never readable
    with broader permissions, and an existing file is re-chmodded.
    """
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    try:
        os.fchmod(fd, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            fd = -1
            handle.write(content)
    finally:
        if fd != -1:
            os.close(fd)


def write_expiry_file(path: Path, expires_on: str) -> bool:
    """Write the RFC3339 expiry. Returns False (and warns) on failure."""
    try:
        write_private_file(path, expires_on, EXPIRY_FILE_MODE)
    except OSError as e:
        logger.warning("Failed to write token expiry", extra={"path": str(path), "error": str(e)})
        return False
    return True


def write_token_file(path: Path, token: str) -> bool:
    """Write the raw access token owner-only. Returns False (and warns) on failure."""
    try:
        write_private_file(path, token, TOKEN_FILE_MODE)
    except OSError as e:
        logger.warning("Failed to write azure token", extra={"path": str(path), "error": str(e)})
        return False
    return True


def read_artifact(path: Path) -> str | None:
    """Return the artifact content, or None if it does not exist."""
    try:
        return path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None


def remove_artifacts(*paths: Path) -> None:
    """Best-effort removal of handoff files."""
    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove artifact", extra={"path": str(path), "error": str(e)})
