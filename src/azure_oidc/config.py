"""Configuration management with validation.

All inputs (CLI flags and ambient GitHub Actions environment) are collected
once into an immutable ``Config`` at startup and passed explicitly to the
requester and the credential adapter.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigurationError

# GitHub Actions environment variables (set when the job has id-token: write)
REQUEST_URL_ENV_VAR = "ACTIONS_ID_TOKEN_REQUEST_URL"
REQUEST_TOKEN_ENV_VAR = "ACTIONS_ID_TOKEN_REQUEST_TOKEN"

DEFAULT_AUDIENCE = "api://AzureADTokenExchange"

# Azure Resource Manager scope requested during the exchange
AZURE_RESOURCE_MANAGER_SCOPE = "499b84ac-1321-427f-aa17-267ca6975798/.default"

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30
DEFAULT_EXCHANGE_TIMEOUT_SECONDS = 30

# Handoff artifacts read by the entrypoint
DEFAULT_EXPIRY_FILE = "/tmp/token_expiry"
DEFAULT_TOKEN_FILE = "/tmp/azure_token"

VALID_LOG_FORMATS = ("json", "text")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    """Run configuration for a single token exchange.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError listing every problem at once.
    """

    # Required fields
    tenant_id: str
    client_id: str
    request_url: str
    request_token: str = field(repr=False)

    # Exchange
    audience: str = DEFAULT_AUDIENCE
    scope: str = AZURE_RESOURCE_MANAGER_SCOPE
    authority_host: str | None = None

    # Output
    output_token: bool = False
    expiry_file: Path = field(default_factory=lambda: Path(DEFAULT_EXPIRY_FILE))
    token_file: Path = field(default_factory=lambda: Path(DEFAULT_TOKEN_FILE))

    # Timing
    request_timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT_SECONDS
    exchange_timeout_seconds: int = DEFAULT_EXCHANGE_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.tenant_id or not self.client_id:
            errors.append("Both --tenant-id and --client-id are required")

        missing_env = [
            name
            for name, value in (
                (REQUEST_URL_ENV_VAR, self.request_url),
                (REQUEST_TOKEN_ENV_VAR, self.request_token),
            )
            if not value
        ]
        if missing_env:
            errors.append(
                "GitHub Actions OIDC environment variables not found: "
                + ", ".join(missing_env)
                + ". This tool must be run within a GitHub Actions workflow "
                "with 'id-token: write' permission."
            )

        if not self.audience:
            errors.append("--audience must not be empty")

        if not self.scope:
            errors.append("scope must not be empty")

        if self.request_timeout_seconds < 1:
            errors.append("request timeout must be at least 1 second")

        if self.exchange_timeout_seconds < 1:
            errors.append("exchange timeout must be at least 1 second")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @classmethod
    def from_env(
        cls,
        *,
        tenant_id: str,
        client_id: str,
        audience: str = DEFAULT_AUDIENCE,
        output_token: bool = False,
    ) -> Config:
        """Build configuration from CLI values and environment variables.

        Environment Variables:
            ACTIONS_ID_TOKEN_REQUEST_URL: GitHub OIDC provider URL (required)
            ACTIONS_ID_TOKEN_REQUEST_TOKEN: Bearer token for the provider (required)
            AZURE_AUTHORITY_HOST: Azure AD authority host (default: public cloud)
            AZURE_OIDC_EXPIRY_FILE: Expiry handoff file (default: /tmp/token_expiry)
            AZURE_OIDC_TOKEN_FILE: Token handoff file (default: /tmp/azure_token)
        """
        return cls(
            tenant_id=tenant_id,
            client_id=client_id,
            request_url=os.environ.get(REQUEST_URL_ENV_VAR, ""),
            request_token=os.environ.get(REQUEST_TOKEN_ENV_VAR, ""),
            audience=audience,
            authority_host=os.environ.get("AZURE_AUTHORITY_HOST") or None,
            output_token=output_token,
            expiry_file=Path(os.environ.get("AZURE_OIDC_EXPIRY_FILE", DEFAULT_EXPIRY_FILE)),
            token_file=Path(os.environ.get("AZURE_OIDC_TOKEN_FILE", DEFAULT_TOKEN_FILE)),
        )


def get_log_format() -> str:
    """Return the configured log format, falling back to JSON."""
    value = os.environ.get("LOG_FORMAT", "json").lower()
    return value if value in VALID_LOG_FORMATS else "json"


def get_log_level() -> str:
    value = os.environ.get("LOG_LEVEL", "INFO").upper()
    return value if value in VALID_LOG_LEVELS else "INFO"
