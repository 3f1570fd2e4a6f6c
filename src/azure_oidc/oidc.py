"""GitHub Actions OIDC token requester.

Performs a single authenticated GET against the identity token endpoint
exposed to the job via ACTIONS_ID_TOKEN_REQUEST_URL. The returned JWT is
opaque: it is never decoded or validated here, only forwarded to Azure AD.

No retries are performed. A failed request fails the run.
"""

from __future__ import annotations

import logging
import ssl
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, urlsplit

import requests
from pydantic import BaseModel, ValidationError
from requests.adapters import HTTPAdapter

from .config import DEFAULT_REQUEST_TIMEOUT_SECONDS
from .errors import (
    ConstructionError,
    DecodeError,
    EmptyTokenError,
    ProviderError,
    TransportError,
)

logger = logging.getLogger(__name__)

AUDIENCE_QUERY_PARAM = "audience"
ALLOWED_URL_SCHEMES = ("http", "https")
# urllib3 blocks until a full chunk arrives, so read byte-wise to check the deadline
BODY_CHUNK_SIZE = 1


class IdentityTokenResponse(BaseModel):
    """Body returned by the GitHub OIDC endpoint: ``{"value": "<jwt>"}``."""

    value: str


class TLS12HTTPAdapter(HTTPAdapter):
    """HTTPAdapter that refuses anything older than TLS 1.2."""

    def _ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        return context

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        kwargs["ssl_context"] = self._ssl_context()
        super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, proxy: str, **proxy_kwargs: Any) -> Any:
        proxy_kwargs["ssl_context"] = self._ssl_context()
        return super().proxy_manager_for(proxy, **proxy_kwargs)


def create_session() -> requests.Session:
    """Create a requests session enforcing TLS >= 1.2 on https URLs."""
    session = requests.Session()
    session.mount("https://", TLS12HTTPAdapter())
    return session


def build_token_url(request_url: str, audience: str) -> str:
    """Append the URL-escaped audience query parameter to the request URL.

    Uses ``?`` when the URL carries no query component and ``&`` otherwise.
    A URL already ending with its separator is not given a second one.

    Raises:
        ConstructionError: If the URL is not an absolute http(s) URL.
    """
    try:
        parts = urlsplit(request_url)
    except ValueError as e:
        raise ConstructionError(f"creating request: invalid URL {request_url!r}: {e}") from e

    if parts.scheme not in ALLOWED_URL_SCHEMES or not parts.netloc:
        raise ConstructionError(
            f"creating request: URL must be an absolute http(s) URL: {request_url!r}"
        )
    if parts.fragment:
        raise ConstructionError(f"creating request: URL must not contain a fragment: {request_url!r}")

    if "?" not in request_url:
        separator = "?"
    elif request_url.endswith(("?", "&")):
        separator = ""
    else:
        separator = "&"

    return f"{request_url}{separator}{AUDIENCE_QUERY_PARAM}={quote(audience, safe='')}"


def build_headers(request_token: str) -> dict[str, str]:
    """Headers expected by the GitHub OIDC endpoint (lowercase ``bearer`` scheme)."""
    return {
        "Authorization": f"bearer {request_token}",
        "Accept": "application/json",
    }


def parse_token_response(body: str) -> str:
    """Decode the endpoint's JSON body and return the non-empty token.

    Raises:
        DecodeError: Body is not a JSON object with a string ``value``.
        EmptyTokenError: ``value`` is present but empty.
    """
    try:
        response = IdentityTokenResponse.model_validate_json(body)
    except ValidationError as e:
        raise DecodeError(f"parsing response: {e}") from e

    if not response.value:
        raise EmptyTokenError("empty token received from GitHub OIDC API")

    return response.value


def read_body(response: requests.Response, deadline: float, timeout: float) -> str:
    """Read a streamed response body, giving up once ``deadline`` has passed.

    ``deadline`` is a ``time.monotonic()`` value. Per-read socket timeouts
    alone do not bound a server that trickles its body.

    Raises:
        TransportError: The deadline passed or the connection failed mid-body.
    """
    chunks: list[bytes] = []
    try:
        if time.monotonic() > deadline:
            raise TransportError(f"making request: no complete response within {timeout}s")
        for chunk in response.iter_content(chunk_size=BODY_CHUNK_SIZE):
            if time.monotonic() > deadline:
                raise TransportError(f"making request: no complete response within {timeout}s")
            chunks.append(chunk)
    except requests.exceptions.RequestException as e:
        raise TransportError(f"making request: {e}") from e

    return b"".join(chunks).decode(response.encoding or "utf-8", errors="replace")


def fetch_identity_token(
    request_url: str,
    request_token: str,
    audience: str,
    *,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
) -> str:
    """Request a GitHub Actions OIDC token for the given audience.

    Args:
        request_url: Value of ACTIONS_ID_TOKEN_REQUEST_URL.
        request_token: Value of ACTIONS_ID_TOKEN_REQUEST_TOKEN.
        audience: Intended consumer of the token.
        session: Optional session to reuse. One enforcing TLS >= 1.2 is
                 created (and closed) when omitted.
        timeout: Overall deadline in seconds, covering connect, headers and body.

    Returns:
        The identity token (JWT) as an opaque string.

    Raises:
        ConstructionError, TransportError, ProviderError, DecodeError,
        EmptyTokenError: See module errors.
    """
    url = build_token_url(request_url, audience)
    deadline = time.monotonic() + timeout

    owns_session = session is None
    http = session if session is not None else create_session()
    try:
        try:
            response = http.get(
                url, headers=build_headers(request_token), timeout=timeout, stream=True
            )
        except (
            requests.exceptions.InvalidURL,
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
        ) as e:
            raise ConstructionError(f"creating request: {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"making request: {e}") from e

        try:
            body = read_body(response, deadline, timeout)
        finally:
            response.close()

        if response.status_code != requests.codes.ok:
            logger.error(
                "GitHub OIDC token request rejected",
                extra={"status_code": response.status_code},
            )
            raise ProviderError(response.status_code, body)

        return parse_token_response(body)
    finally:
        if owns_session:
            http.close()


@dataclass(frozen=True)
class IdentityTokenRequest:
    """Parameters for fetching the GitHub OIDC token. Immutable."""

    request_url: str
    request_token: str = field(repr=False)
    audience: str

    @property
    def url(self) -> str:
        return build_token_url(self.request_url, self.audience)

    def fetch(
        self,
        *,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ) -> str:
        return fetch_identity_token(
            self.request_url,
            self.request_token,
            self.audience,
            session=session,
            timeout=timeout,
        )
