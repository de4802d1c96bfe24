"""Availability monitor: keeps the session's seal status up to date."""

from __future__ import annotations

import logging
import threading

from libs.keystore.backend import VaultBackend
from libs.keystore.config import DEFAULT_STATUS_PING_SECONDS
from libs.keystore.session import SessionState

logger = logging.getLogger(__name__)


class AvailabilityMonitor:
    """Poll the Vault seal status on a fixed interval.

    The monitor is the only writer of ``SessionState.sealed``. A failed
    status check keeps the last known value instead of flapping to an
    unknown state. The loop only ends when the cancellation event is set.
    """

    def __init__(
        self,
        backend: VaultBackend,
        session: SessionState,
        interval_seconds: float = DEFAULT_STATUS_PING_SECONDS,
    ) -> None:
        self._backend = backend
        self._session = session
        self._interval = interval_seconds or DEFAULT_STATUS_PING_SECONDS

    @property
    def interval(self) -> float:
        return self._interval

    def check_once(self) -> None:
        """Probe the seal status once and record it on success."""
        try:
            sealed = self._backend.is_sealed()
        except Exception as e:
            logger.debug(
                "Vault status check failed, keeping last known seal status",
                extra={
                    "backend": "vault",
                    "sealed": self._session.sealed,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return

        previous = self._session.sealed
        self._session.sealed = sealed
        if sealed and not previous:
            logger.warning("Vault is sealed", extra={"backend": "vault"})
        elif previous and not sealed:
            logger.info("Vault has been unsealed", extra={"backend": "vault"})

    def run(self, cancel: threading.Event) -> None:
        """Check the seal status every interval until cancel is set."""
        logger.info(
            "Started Vault status monitor",
            extra={"backend": "vault", "interval": self._interval},
        )
        while not cancel.is_set():
            self.check_once()
            if cancel.wait(self._interval):
                break
        logger.info("Stopped Vault status monitor", extra={"backend": "vault"})
