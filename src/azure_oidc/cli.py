"""Azure OIDC Action CLI (azure-oidc-action).

Exchanges the GitHub Actions OIDC token of the current job for an Azure AD
access token through a federated credential. Must run inside a workflow with
``id-token: write`` permission.

Usage:
    azure-oidc-action --tenant-id <tenant-id> --client-id <client-id> [options]
"""

from __future__ import annotations

import logging
import sys
from typing import NoReturn

import click

from . import runner
from .config import (
    DEFAULT_AUDIENCE,
    REQUEST_TOKEN_ENV_VAR,
    REQUEST_URL_ENV_VAR,
    Config,
)
from .errors import AzureOIDCError, ConfigurationError
from .logging_setup import setup_logging
from .security import warn_on_stored_secrets

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
PROG_NAME = "azure-oidc-action"

EPILOG = f"""\b
Required environment variables (set by GitHub Actions):
  {REQUEST_URL_ENV_VAR}    GitHub OIDC provider URL
  {REQUEST_TOKEN_ENV_VAR}  Bearer token for OIDC provider

\b
Example GitHub Actions workflow:
  permissions:
    id-token: write
    contents: read
  steps:
    - uses: actions/checkout@v4
    - name: Azure Login
      run: |
        azure-oidc-action \\
          --tenant-id ${{{{ secrets.AZURE_TENANT_ID }}}} \\
          --client-id ${{{{ secrets.AZURE_CLIENT_ID }}}}
"""


def fail(message: str) -> NoReturn:
    """Print an error to stderr and exit with status 1."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.command(epilog=EPILOG)
@click.version_option(version=VERSION, prog_name=PROG_NAME)
@click.option("--tenant-id", default="", help="Azure AD tenant ID (required)")
@click.option("--client-id", default="", help="Azure AD application client ID (required)")
@click.option(
    "--audience",
    default=DEFAULT_AUDIENCE,
    show_default=True,
    help="OIDC token audience",
)
@click.option(
    "--output-token",
    type=click.BOOL,
    is_flag=False,
    flag_value=True,
    default=False,
    show_default=True,
    help="Output the Azure token (security consideration)",
)
@click.pass_context
def main(
    ctx: click.Context,
    tenant_id: str,
    client_id: str,
    audience: str,
    output_token: bool,
) -> None:
    """Azure OIDC Action - GitHub Actions OIDC to Azure AD Authentication.

    Creates an Azure ClientAssertionCredential using the GitHub Actions OIDC
    token and verifies it by requesting an Azure Resource Manager token.
    """
    if not tenant_id or not client_id:
        click.echo("Error: Both --tenant-id and --client-id are required\n", err=True)
        click.echo(ctx.get_help(), err=True)
        sys.exit(1)

    setup_logging()

    try:
        config = Config.from_env(
            tenant_id=tenant_id,
            client_id=client_id,
            audience=audience,
            output_token=output_token,
        )
    except ConfigurationError as e:
        logger.error("Configuration error", extra={"error": str(e)})
        fail(str(e))

    warn_on_stored_secrets()

    click.echo(f"Requesting GitHub OIDC token for audience: {config.audience}")
    try:
        result = runner.run(config)
    except AzureOIDCError as e:
        logger.error(
            "Token exchange failed",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        fail(str(e))

    runner.publish_result(config, result)

    click.echo("Successfully authenticated with Azure!")
    click.echo(f"Token expires at: {result.expires_on_rfc3339}")
    if config.output_token:
        click.echo("WARNING: Azure token will be output as action output.")
        click.echo("   Make sure to handle this token securely in your workflow.")
    else:
        click.echo("Use --output-token=true to output the full token as an action output.")


def run() -> None:
    """Entry point for the azure-oidc-action console script."""
    main()


if __name__ == "__main__":
    run()
