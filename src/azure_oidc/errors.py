"""Error taxonomy for the OIDC to Azure AD token exchange.

Every error is fatal for the run. The CLI catches ``AzureOIDCError`` at the
top level, reports it on stderr and exits with a non-zero code.
"""

from __future__ import annotations


class AzureOIDCError(Exception):
    """Base class for all errors raised by this package."""

    pass


class ConfigurationError(AzureOIDCError):
    """Raised when CLI arguments or environment variables are missing or invalid.

    Always raised before any network call is attempted.
    """

    pass


class IdentityTokenError(AzureOIDCError):
    """Base class for failures while requesting the GitHub OIDC token."""

    pass


class ConstructionError(IdentityTokenError):
    """The identity token request could not be built (malformed URL)."""

    pass


class TransportError(IdentityTokenError):
    """Network or timeout failure talking to the identity token endpoint."""

    pass


class ProviderError(IdentityTokenError):
    """The identity token endpoint answered with a non-200 status.

    The raw response body is kept verbatim for operator diagnosis.
    """

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"GitHub OIDC API returned status {status_code}: {body}")


class DecodeError(IdentityTokenError):
    """The identity token response was not the expected JSON document."""

    pass


class EmptyTokenError(AzureOIDCError):
    """A provider reported success but returned no usable token."""

    pass


class CredentialConfigError(AzureOIDCError):
    """The federated credential could not be constructed from tenant/client IDs."""

    pass


class ExchangeError(AzureOIDCError):
    """Azure AD rejected the assertion or the exchange failed.

    The message carries the provider's error detail untouched.
    """

    pass


class ExchangeTimeoutError(ExchangeError):
    """The exchange did not complete within its deadline."""

    pass
