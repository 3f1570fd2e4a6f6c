"""Token exchange orchestration.

A strictly linear run:

    IDLE -> FETCHING_IDENTITY_TOKEN -> BUILDING_CREDENTIAL -> EXCHANGING_TOKEN -> DONE

Any step may move to ERROR. No step is retried or revisited.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

import requests

from .artifacts import remove_artifacts, write_expiry_file, write_token_file
from .config import Config
from .credential import (
    ExchangeResult,
    build_credential,
    exchange_token,
    static_assertion,
)
from .oidc import IdentityTokenRequest

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Lifecycle states of a single exchange run."""

    IDLE = "idle"
    FETCHING_IDENTITY_TOKEN = "fetchingIdentityToken"
    BUILDING_CREDENTIAL = "buildingCredential"
    EXCHANGING_TOKEN = "exchangingToken"
    DONE = "done"
    ERROR = "error"


class TokenExchangeRun:
    """Runs the GitHub OIDC to Azure AD exchange for one configuration."""

    def __init__(
        self,
        config: Config,
        *,
        session: requests.Session | None = None,
        credential_factory: Callable[..., Any] = build_credential,
    ) -> None:
        self._config = config
        self._session = session
        self._credential_factory = credential_factory
        self._state = RunState.IDLE

    @property
    def state(self) -> RunState:
        return self._state

    def _transition(self, state: RunState) -> None:
        logger.info(
            "Run state changed",
            extra={"from_state": self._state.value, "to_state": state.value},
        )
        self._state = state

    def run(self) -> ExchangeResult:
        """Fetch the GitHub token, build the credential and exchange it.

        Raises:
            AzureOIDCError: Any failure; the run ends in ERROR.
        """
        config = self._config
        try:
            self._transition(RunState.FETCHING_IDENTITY_TOKEN)
            logger.info("Requesting GitHub OIDC token", extra={"audience": config.audience})
            request = IdentityTokenRequest(
                request_url=config.request_url,
                request_token=config.request_token,
                audience=config.audience,
            )
            identity_token = request.fetch(
                session=self._session, timeout=config.request_timeout_seconds
            )
            logger.info("Successfully obtained GitHub OIDC token")

            self._transition(RunState.BUILDING_CREDENTIAL)
            credential = self._credential_factory(
                config.tenant_id,
                config.client_id,
                static_assertion(identity_token),
                authority=config.authority_host,
                timeout=config.exchange_timeout_seconds,
            )

            self._transition(RunState.EXCHANGING_TOKEN)
            try:
                result = exchange_token(
                    credential, [config.scope], timeout=config.exchange_timeout_seconds
                )
            finally:
                credential.close()
        except Exception:
            self._transition(RunState.ERROR)
            raise

        self._transition(RunState.DONE)
        logger.info(
            "Successfully authenticated with Azure",
            extra={"expires_on": result.expires_on_rfc3339},
        )
        return result


def run(
    config: Config,
    *,
    session: requests.Session | None = None,
    credential_factory: Callable[..., Any] = build_credential,
) -> ExchangeResult:
    """Run one exchange for ``config``. See TokenExchangeRun.run."""
    return TokenExchangeRun(
        config, session=session, credential_factory=credential_factory
    ).run()


def publish_result(config: Config, result: ExchangeResult) -> None:
    """Write the handoff artifacts for the entrypoint.

    The expiry is always written. The token is written only when
    ``config.output_token`` is set; otherwise any stale token file from a
    previous run is removed.
    """
    write_expiry_file(config.expiry_file, result.expires_on_rfc3339)

    if config.output_token:
        write_token_file(config.token_file, result.access_token)
    else:
        remove_artifacts(config.token_file)
