"""Republish handoff artifacts as GitHub Actions step outputs.

Run by the container entrypoint after a successful exchange:

    azure-oidc-action --tenant-id ... --client-id ...
    azure-oidc-publish

Reads the expiry file (falling back to the current UTC time), and the token
file if present, appends ``token-expiry`` / ``azure-token`` to $GITHUB_OUTPUT
and deletes both files whatever happens.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

import click

from .artifacts import read_artifact, remove_artifacts
from .config import DEFAULT_EXPIRY_FILE, DEFAULT_TOKEN_FILE
from .credential import RFC3339_FORMAT
from .errors import ConfigurationError
from .logging_setup import setup_logging

logger = logging.getLogger(__name__)

GITHUB_OUTPUT_ENV_VAR = "GITHUB_OUTPUT"


def add_mask(value: str, stream: TextIO | None = None) -> None:
    """Ask the runner to mask ``value`` in all subsequent log output."""
    print(f"::add-mask::{value}", file=stream or sys.stdout, flush=True)


def append_output(output_file: Path, name: str, value: str) -> None:
    with output_file.open("a", encoding="utf-8") as handle:
        handle.write(f"{name}={value}\n")


def publish_outputs(
    output_file: Path,
    expiry_file: Path,
    token_file: Path,
    *,
    stream: TextIO | None = None,
) -> dict[str, str]:
    """Write step outputs from the handoff artifacts, then delete them.

    Returns:
        The outputs written, keyed by output name.
    """
    published: dict[str, str] = {}
    try:
        expiry = read_artifact(expiry_file)
        if not expiry:
            expiry = datetime.now(UTC).strftime(RFC3339_FORMAT)
            logger.warning("Token expiry file missing, using current time", extra={"path": str(expiry_file)})
        append_output(output_file, "token-expiry", expiry)
        published["token-expiry"] = expiry

        token = read_artifact(token_file)
        if token:
            add_mask(token, stream)
            append_output(output_file, "azure-token", token)
            published["azure-token"] = token
            logger.info("Azure token has been output (handle securely!)")
    finally:
        remove_artifacts(token_file, expiry_file)

    return published


@click.command()
@click.option(
    "--expiry-file",
    type=click.Path(path_type=Path),
    envvar="AZURE_OIDC_EXPIRY_FILE",
    default=DEFAULT_EXPIRY_FILE,
    show_default=True,
    help="Token expiry handoff file",
)
@click.option(
    "--token-file",
    type=click.Path(path_type=Path),
    envvar="AZURE_OIDC_TOKEN_FILE",
    default=DEFAULT_TOKEN_FILE,
    show_default=True,
    help="Access token handoff file",
)
def publish(expiry_file: Path, token_file: Path) -> None:
    """Publish token-expiry and azure-token as GitHub step outputs."""
    setup_logging()

    try:
        output = os.environ.get(GITHUB_OUTPUT_ENV_VAR)
        if not output:
            raise ConfigurationError(f"{GITHUB_OUTPUT_ENV_VAR} is not set")
        publish_outputs(Path(output), expiry_file, token_file)
    except (ConfigurationError, OSError) as e:
        remove_artifacts(token_file, expiry_file)
        logger.error("Failed to publish step outputs", extra={"error": str(e)})
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def main() -> None:
    """Entry point for the azure-oidc-publish console script."""
    publish()
