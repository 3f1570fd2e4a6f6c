"""Secretless hygiene helpers.

Federated identity removes the need for a stored client secret: Azure AD
trusts the GitHub OIDC token through a federated credential configured on the
application. Long-lived credential variables in the job environment defeat
that model, so they are reported (but not rejected, since other steps of the
same job may legitimately use them).
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

# Environment variables that indicate a stored long-lived credential
LONG_LIVED_CREDENTIAL_ENV_VARS: tuple[str, ...] = (
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PATH",
    "AZURE_CLIENT_CERTIFICATE_PASSWORD",
    "AZURE_USERNAME",
    "AZURE_PASSWORD",
)

REDACT_VISIBLE_CHARS = 8


def redact(value: str) -> str:
    """Shorten an identifier for logs, keeping its first characters."""
    if len(value) > REDACT_VISIBLE_CHARS:
        return value[:REDACT_VISIBLE_CHARS] + "..."
    return value


def find_stored_secrets() -> list[str]:
    """Return the long-lived credential variables present in the environment."""
    return [name for name in LONG_LIVED_CREDENTIAL_ENV_VARS if os.environ.get(name)]


def warn_on_stored_secrets() -> list[str]:
    """Log a warning for each long-lived credential found in the environment.

    Returns:
        Names of the variables that were found.
    """
    found = find_stored_secrets()
    for env_var in found:
        logger.warning(
            "Long-lived credential present in environment; federated identity does not need it",
            extra={"security_event": "credential_detected", "env_var": env_var},
        )
    if not found:
        logger.info("Secretless environment verified", extra={"security_event": "secretless_verified"})
    return found
