"""Tests for AvailabilityMonitor."""

import threading

import pytest
from hvac.exceptions import VaultDown

from libs.keystore.monitor import AvailabilityMonitor
from tests.libs.keystore.fakes import RecordingEvent


@pytest.fixture()
def monitor(fake_backend, session) -> AvailabilityMonitor:
    return AvailabilityMonitor(fake_backend, session, interval_seconds=10)


class TestCheckOnce:
    """A single status probe."""

    @pytest.mark.unit()
    def test_records_sealed(self, monitor, fake_backend, session):
        fake_backend.sealed = True

        monitor.check_once()

        assert session.sealed is True

    @pytest.mark.unit()
    def test_records_unsealed(self, monitor, fake_backend, session):
        session.sealed = True
        fake_backend.sealed = False

        monitor.check_once()

        assert session.sealed is False

    @pytest.mark.unit()
    @pytest.mark.parametrize("last_known", [True, False])
    def test_failure_keeps_last_known_status(self, monitor, fake_backend, session, last_known):
        session.sealed = last_known
        fake_backend.sealed = not last_known
        fake_backend.health_error = VaultDown("connection refused")

        monitor.check_once()

        assert session.sealed is last_known

    @pytest.mark.unit()
    def test_failure_does_not_touch_token(self, monitor, fake_backend, session):
        session.token = "s.token-1"
        fake_backend.health_error = RuntimeError("boom")

        monitor.check_once()

        assert session.token == "s.token-1"


class TestRun:
    """The polling loop."""

    @pytest.mark.unit()
    def test_polls_every_interval_until_cancelled(self, monitor, fake_backend):
        cancel = RecordingEvent(max_waits=3)

        monitor.run(cancel)

        assert fake_backend.call_names() == ["is_sealed"] * 3
        assert cancel.waits == [10, 10, 10]

    @pytest.mark.unit()
    def test_keeps_running_after_errors(self, monitor, fake_backend, session):
        def recover_on_second_wait(count, timeout):
            if count == 2:
                fake_backend.health_error = None
                fake_backend.sealed = True

        fake_backend.health_error = VaultDown("connection refused")
        cancel = RecordingEvent(max_waits=3, on_wait=recover_on_second_wait)

        monitor.run(cancel)

        assert fake_backend.call_names() == ["is_sealed"] * 3
        assert session.sealed is True

    @pytest.mark.unit()
    def test_zero_interval_uses_default(self, fake_backend, session):
        monitor = AvailabilityMonitor(fake_backend, session, interval_seconds=0)
        cancel = RecordingEvent(max_waits=1)

        monitor.run(cancel)

        assert monitor.interval == 10.0
        assert cancel.waits == [10.0]

    @pytest.mark.unit()
    def test_already_cancelled(self, monitor, fake_backend):
        cancel = threading.Event()
        cancel.set()

        monitor.run(cancel)

        assert fake_backend.calls == []

    @pytest.mark.unit()
    def test_stops_promptly_in_thread(self, fake_backend, session):
        monitor = AvailabilityMonitor(fake_backend, session, interval_seconds=60)
        cancel = threading.Event()
        thread = threading.Thread(target=monitor.run, args=(cancel,), daemon=True)
        thread.start()

        cancel.set()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert fake_backend.call_names().count("is_sealed") <= 1
