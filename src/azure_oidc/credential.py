"""Federated credential adapter.

Wraps a GitHub OIDC token in a client assertion supplier and hands it to
azure-identity's ClientAssertionCredential, which performs the JWT-bearer
exchange against Azure AD. The exchange itself (including token caching and
refresh) belongs to azure-identity; this module only supplies tenant, client
and assertion inputs and translates failures into the package's errors.

KNOWN LIMITATION:
The supplier is a constant closure over one token fetched at startup. If
azure-identity asks for an assertion after that token's validity window has
elapsed, Azure AD answers with an assertion-expired error. One token is
fetched per run and the run is assumed to finish within its lifetime.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from azure.core.credentials import AccessToken
from azure.core.exceptions import (
    AzureError,
    ServiceRequestTimeoutError,
    ServiceResponseTimeoutError,
)
from azure.identity import ClientAssertionCredential

from .config import DEFAULT_EXCHANGE_TIMEOUT_SECONDS
from .errors import (
    CredentialConfigError,
    EmptyTokenError,
    ExchangeError,
    ExchangeTimeoutError,
)
from .security import redact

logger = logging.getLogger(__name__)

AssertionSupplier = Callable[[], str]

# Characters azure-identity accepts in a tenant ID
VALID_TENANT_ID_PATTERN = r"^[A-Za-z0-9.-]+$"

RFC3339_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@dataclass(frozen=True)
class ExchangeResult:
    """Outcome of the Azure AD token exchange."""

    access_token: str = field(repr=False)
    expires_on: datetime

    @property
    def expires_on_rfc3339(self) -> str:
        return self.expires_on.astimezone(UTC).strftime(RFC3339_FORMAT)

    @classmethod
    def from_access_token(cls, token: AccessToken) -> ExchangeResult:
        return cls(
            access_token=token.token,
            expires_on=datetime.fromtimestamp(token.expires_on, UTC),
        )


def static_assertion(token: str) -> AssertionSupplier:
    """Return a supplier that always yields the given identity token.

    The supplier may be invoked any number of times. It never re-fetches and
    never substitutes an empty value: an empty captured token raises.
    """

    def supply() -> str:
        if not token:
            raise EmptyTokenError("client assertion is empty")
        return token

    return supply


def build_credential(
    tenant_id: str,
    client_id: str,
    assertion_supplier: AssertionSupplier,
    *,
    authority: str | None = None,
    disable_instance_discovery: bool = False,
    timeout: float = DEFAULT_EXCHANGE_TIMEOUT_SECONDS,
) -> ClientAssertionCredential:
    """Create a ClientAssertionCredential backed by the assertion supplier.

    Args:
        tenant_id: Azure AD tenant (directory) ID.
        client_id: Client ID of the application holding the federated credential.
        assertion_supplier: Zero-argument callable returning the assertion.
        authority: Optional authority host (sovereign clouds).
        disable_instance_discovery: Skip MSAL authority validation, for
                 private clouds whose authority Azure AD does not know.
        timeout: Overall deadline for the exchange, in seconds. The token
                 request is attempted once and never retried.

    Raises:
        CredentialConfigError: If the IDs are empty or rejected by azure-identity.
    """
    if not tenant_id or not client_id:
        raise CredentialConfigError("tenant ID and client ID must not be empty")

    if not re.match(VALID_TENANT_ID_PATTERN, tenant_id):
        raise CredentialConfigError(
            f"Invalid tenant ID {tenant_id!r}: only alphanumerics, '-' and '.' are allowed"
        )

    # One attempt, bounded overall by the retry policy deadline
    kwargs: dict[str, object] = {
        "connection_timeout": timeout,
        "read_timeout": timeout,
        "retry_total": 0,
        "timeout": timeout,
    }
    if authority:
        kwargs["authority"] = authority
    if disable_instance_discovery:
        kwargs["disable_instance_discovery"] = True

    try:
        credential = ClientAssertionCredential(tenant_id, client_id, assertion_supplier, **kwargs)
    except ValueError as e:
        raise CredentialConfigError(f"Failed to create ClientAssertionCredential: {e}") from e

    logger.info(
        "Created client assertion credential",
        extra={"tenant_id": redact(tenant_id), "client_id": redact(client_id)},
    )
    return credential


def exchange_token(
    credential: ClientAssertionCredential,
    scopes: Sequence[str],
    *,
    timeout: float = DEFAULT_EXCHANGE_TIMEOUT_SECONDS,
) -> ExchangeResult:
    """Request an access token for ``scopes`` from the credential.

    Provider error detail is surfaced untouched in the raised error message.

    Raises:
        ExchangeTimeoutError: The exchange did not finish within ``timeout``.
        ExchangeError: Azure AD rejected the assertion or the call failed.
        EmptyTokenError: Azure AD reported success without a token.
    """
    try:
        token = credential.get_token(*scopes)
    except (ServiceRequestTimeoutError, ServiceResponseTimeoutError) as e:
        raise ExchangeTimeoutError(
            f"Failed to get Azure token: exchange did not complete within {timeout}s: {e}"
        ) from e
    except AzureError as e:
        raise ExchangeError(f"Failed to get Azure token: {e}") from e

    if not token.token:
        raise EmptyTokenError("empty access token received from Azure AD")

    return ExchangeResult.from_access_token(token)
