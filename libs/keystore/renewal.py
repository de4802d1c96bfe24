"""
Token renewal engine for the Vault key store.

The engine keeps a valid Vault token in the shared session for as long as
the process runs. It is a small state machine:

    NEEDS_AUTH --login ok--> HAS_LEASE(ttl) --ttl/2 elapsed--> RENEWING
        ^                         ^                               |
        |                         +-------- renewed (ttl > 0) ----+
        +---- login failed (retry after delay)                    |
        +---- renewal failed / not renewable / ttl == 0 ----------+

    Any state -> PAUSED while Vault is sealed, polling every second,
    then back to the state it left.

Renewal happens at half the TTL so slow responses and clock skew never let
the token expire. Login failures are retried forever with a fixed delay
(tenacity). Every wait goes through the shared cancellation event, so
setting it stops the engine at the next wait point without further calls
to Vault. Tokens are not revoked on exit.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Final

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_when_event_set,
    wait_fixed,
)

from libs.keystore.backend import VaultBackend
from libs.keystore.config import AppRoleCredentials
from libs.keystore.exceptions import AuthFailureError
from libs.keystore.session import Lease, SessionState

logger = logging.getLogger(__name__)

SEALED_POLL_SECONDS: Final[float] = 1.0


class RenewalState(str, Enum):
    """States of the token renewal engine."""

    NEEDS_AUTH = "needs_auth"
    HAS_LEASE = "has_lease"
    RENEWING = "renewing"
    PAUSED = "paused"


class TokenRenewalEngine:
    """
    Keep the session token alive: renew at TTL/2, re-authenticate on failure.

    The engine is the only writer of ``SessionState.token``.

    Args:
        backend: Vault backend used for login and renewal
        session: Shared session state
        credentials: AppRole credentials for (re-)authentication

    Example:
        >>> cancel = threading.Event()
        >>> engine = TokenRenewalEngine(backend, session, config.credentials())
        >>> threading.Thread(target=engine.run, args=(cancel, lease.ttl_seconds)).start()
        >>> cancel.set()  # stops the engine at its next wait point
    """

    def __init__(
        self,
        backend: VaultBackend,
        session: SessionState,
        credentials: AppRoleCredentials,
    ) -> None:
        self._backend = backend
        self._session = session
        self._credentials = credentials
        self._state = RenewalState.NEEDS_AUTH

    @property
    def state(self) -> RenewalState:
        """Current state of the engine."""
        return self._state

    def run(self, cancel: threading.Event, initial_ttl_seconds: int = 0) -> None:
        """
        Run the renewal loop until cancel is set.

        Args:
            cancel: Shared cancellation event, checked at every wait point
            initial_ttl_seconds: TTL of the token obtained by the initial
                login. 0 starts with a fresh login.
        """
        ttl = initial_ttl_seconds
        self._state = RenewalState.HAS_LEASE if ttl > 0 else RenewalState.NEEDS_AUTH
        logger.info(
            "Started Vault token renewal",
            extra={"backend": "vault", "state": self._state.value, "ttl_seconds": ttl},
        )

        while not cancel.is_set():
            if ttl <= 0:
                self._state = RenewalState.NEEDS_AUTH
                # No valid token until the next login succeeds
                self._session.token = None
                lease = self._authenticate(cancel)
                if lease is None:
                    break
                self._session.token = lease.token
                ttl = lease.ttl_seconds
                logger.info(
                    "Authenticated to Vault",
                    extra={"backend": "vault", "ttl_seconds": ttl, "renewable": lease.renewable},
                )
                if ttl <= 0:
                    logger.warning(
                        "Vault issued a token without TTL, logging in again after retry delay",
                        extra={"backend": "vault", "retry_delay": self._credentials.retry_delay},
                    )
                    if cancel.wait(self._credentials.retry_delay):
                        break
                    continue

            if self._keep_renewing(cancel, ttl) is None:
                break
            ttl = 0

        logger.info("Stopped Vault token renewal", extra={"backend": "vault"})

    def _keep_renewing(self, cancel: threading.Event, ttl: int) -> int | None:
        """
        Renew the token at half its TTL until a renewal fails.

        Returns:
            0 once the token can no longer be renewed, None when cancelled.
        """
        while True:
            self._state = RenewalState.HAS_LEASE
            if cancel.wait(ttl / 2):
                return None
            if not self._wait_while_sealed(cancel):
                return None

            self._state = RenewalState.RENEWING
            try:
                lease = self._backend.renew_self(int(ttl))
            except AuthFailureError as e:
                logger.warning(
                    "Vault token renewal failed, re-authenticating",
                    extra={"backend": "vault", "error": str(e), "ttl_seconds": ttl},
                )
                return 0
            except Exception as e:
                logger.warning(
                    "Unexpected error during Vault token renewal, re-authenticating",
                    extra={"backend": "vault", "error": str(e), "ttl_seconds": ttl},
                    exc_info=True,
                )
                return 0

            if lease is None:
                logger.warning(
                    "Vault token renewal returned no lease, re-authenticating",
                    extra={"backend": "vault"},
                )
                return 0
            if not lease.renewable:
                logger.info(
                    "Vault token is no longer renewable, re-authenticating",
                    extra={"backend": "vault"},
                )
                return 0
            if lease.ttl_seconds <= 0:
                logger.info(
                    "Vault token reached its maximum TTL, re-authenticating",
                    extra={"backend": "vault"},
                )
                return 0

            ttl = lease.ttl_seconds
            logger.debug("Renewed Vault token", extra={"backend": "vault", "ttl_seconds": ttl})

    def _authenticate(self, cancel: threading.Event) -> Lease | None:
        """
        Log in with the AppRole credentials, retrying until it succeeds.

        Returns:
            The new lease, or None when cancelled.
        """
        retrying = Retrying(
            retry=retry_if_exception_type(Exception),
            wait=wait_fixed(self._credentials.retry_delay),
            stop=stop_when_event_set(cancel),
            sleep=cancel.wait,
            before_sleep=self._log_login_failure,
            reraise=True,
        )
        lease: Lease | None = None
        try:
            for attempt in retrying:
                with attempt:
                    if cancel.is_set() or not self._wait_while_sealed(cancel):
                        return None
                    self._state = RenewalState.NEEDS_AUTH
                    lease = self._backend.login(
                        self._credentials.role_id,
                        self._credentials.secret_id,
                    )
        except Exception as e:
            # Only reached once cancel is set: the retry loop itself never gives up
            logger.debug(
                "Vault login retries cancelled",
                extra={"backend": "vault", "error": str(e)},
            )
            return None
        return lease

    def _wait_while_sealed(self, cancel: threading.Event) -> bool:
        """
        Block while Vault is sealed.

        Returns:
            False when cancelled while waiting, True otherwise.
        """
        if not self._session.sealed:
            return True

        resume_state = self._state
        self._state = RenewalState.PAUSED
        logger.info("Vault is sealed, pausing token renewal", extra={"backend": "vault"})
        while self._session.sealed:
            if cancel.wait(SEALED_POLL_SECONDS):
                return False
        self._state = resume_state
        logger.info("Vault is unsealed, resuming token renewal", extra={"backend": "vault"})
        return True

    def _log_login_failure(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Vault login failed, retrying",
            extra={
                "backend": "vault",
                "attempt": retry_state.attempt_number,
                "retry_delay": self._credentials.retry_delay,
                "error": str(error),
            },
        )
