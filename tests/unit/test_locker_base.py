"""Unit tests for mailbox_locker.locker.base.Locker.

A scripted strategy drives the shared contract: held-state bookkeeping,
the attempt budget, cancellation and the context-manager protocol.  No
filesystem locking happens here.
"""
from __future__ import annotations

import logging
import threading
import time

import pytest

from mailbox_locker.errors import LockNotAcquiredError
from mailbox_locker.locker.base import (
    NOTIMEOUT,
    AttemptOutcome,
    Locker,
    ProbeResult,
    validate_timeout,
)
from mailbox_locker.locker.nolock import NoLocker


class ScriptedLocker(Locker):
    """Replays a fixed sequence of attempt outcomes."""

    name = "SCRIPTED"

    def __init__(self, outcomes: list[AttemptOutcome], **kwargs: object) -> None:
        super().__init__("/tmp/scripted-folder", **kwargs)  # type: ignore[arg-type]
        self.outcomes = list(outcomes)
        self.attempts = 0
        self.released = 0
        self.release_error: OSError | None = None
        self.probe_result = ProbeResult.AVAILABLE

    def _attempt(self) -> AttemptOutcome:
        self.attempts += 1
        if self.outcomes:
            return self.outcomes.pop(0)
        return AttemptOutcome.RETRY

    def _acquire(self, cancel: threading.Event | None) -> bool:
        return self._retry_loop(self._attempt, cancel)

    def _release(self) -> None:
        self.released += 1
        if self.release_error is not None:
            raise self.release_error

    def probe(self) -> ProbeResult:
        return self.probe_result


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestLockerConstruction:
    def test_defaults(self) -> None:
        locker = ScriptedLocker([])
        assert locker.filename == "/tmp/scripted-folder"
        assert locker.folder == "/tmp/scripted-folder"
        assert locker.timeout == 10
        assert locker.retry_interval == 1.0
        assert locker.has_lock() is False

    def test_folder_name_overrides_filename_in_logs(self) -> None:
        locker = ScriptedLocker([], folder="inbox")
        assert locker.folder == "inbox"

    def test_notimeout_accepted(self) -> None:
        assert ScriptedLocker([], timeout=NOTIMEOUT).timeout == NOTIMEOUT

    @pytest.mark.parametrize("bad", [0, -3, True, 2.5, "forever"])
    def test_invalid_timeout_rejected(self, bad: object) -> None:
        with pytest.raises(ValueError, match="timeout"):
            ScriptedLocker([], timeout=bad)

    def test_non_positive_retry_interval_rejected(self) -> None:
        with pytest.raises(ValueError, match="retry_interval"):
            ScriptedLocker([], retry_interval=0)

    def test_empty_file_rejected(self) -> None:
        with pytest.raises(ValueError, match="requires a target file"):
            NoLocker("")

    def test_validate_timeout_returns_value(self) -> None:
        assert validate_timeout(3) == 3
        assert validate_timeout(NOTIMEOUT) == NOTIMEOUT

    def test_repr_mentions_file_and_state(self) -> None:
        text = repr(ScriptedLocker([]))
        assert "ScriptedLocker" in text
        assert "scripted-folder" in text
        assert "has_lock=False" in text


# ---------------------------------------------------------------------------
# lock()
# ---------------------------------------------------------------------------


class TestLock:
    def test_immediate_success_sets_held_state(self) -> None:
        locker = ScriptedLocker([AttemptOutcome.ACQUIRED])
        assert locker.lock() is True
        assert locker.has_lock() is True
        assert locker.attempts == 1

    def test_second_lock_is_a_warning_no_op(self, caplog: pytest.LogCaptureFixture) -> None:
        locker = ScriptedLocker([AttemptOutcome.ACQUIRED], folder="inbox")
        locker.lock()
        with caplog.at_level(logging.WARNING, logger="mailbox_locker"):
            assert locker.lock() is True
        assert locker.attempts == 1
        assert "Folder inbox already SCRIPTED-locked" in caplog.text

    def test_retries_until_acquired(self) -> None:
        locker = ScriptedLocker(
            [AttemptOutcome.RETRY, AttemptOutcome.RETRY, AttemptOutcome.ACQUIRED],
            timeout=5,
            retry_interval=0.01,
        )
        assert locker.lock() is True
        assert locker.attempts == 3

    def test_budget_limits_attempts(self, caplog: pytest.LogCaptureFixture) -> None:
        locker = ScriptedLocker([], timeout=4, retry_interval=0.01)
        with caplog.at_level(logging.INFO, logger="mailbox_locker"):
            assert locker.lock() is False
        assert locker.attempts == 4
        assert locker.has_lock() is False
        assert "after 4 attempts" in caplog.text

    def test_budget_of_one_never_sleeps(self) -> None:
        locker = ScriptedLocker([], timeout=1, retry_interval=5.0)
        start = time.monotonic()
        assert locker.lock() is False
        assert time.monotonic() - start < 1.0

    def test_timeout_bounds_wall_clock(self) -> None:
        locker = ScriptedLocker([], timeout=3, retry_interval=0.1)
        start = time.monotonic()
        assert locker.lock() is False
        elapsed = time.monotonic() - start
        # Three attempts, two waits.
        assert 0.15 <= elapsed < 1.0

    def test_fatal_outcome_stops_immediately(self) -> None:
        locker = ScriptedLocker(
            [AttemptOutcome.RETRY, AttemptOutcome.FATAL], timeout=50, retry_interval=0.01
        )
        assert locker.lock() is False
        assert locker.attempts == 2

    def test_notimeout_still_honours_fatal_outcome(self) -> None:
        outcomes = [AttemptOutcome.RETRY] * 5 + [AttemptOutcome.FATAL]
        locker = ScriptedLocker(outcomes, timeout=NOTIMEOUT, retry_interval=0.001)
        assert locker.lock() is False
        assert locker.attempts == 6

    def test_failed_lock_can_be_retried_later(self) -> None:
        locker = ScriptedLocker(
            [AttemptOutcome.FATAL, AttemptOutcome.ACQUIRED], timeout=1
        )
        assert locker.lock() is False
        assert locker.lock() is True


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class TestCancellation:
    def test_pre_set_event_skips_attempts(self) -> None:
        cancel = threading.Event()
        cancel.set()
        locker = ScriptedLocker([AttemptOutcome.ACQUIRED])
        assert locker.lock(cancel=cancel) is False
        assert locker.attempts == 0

    def test_cancel_interrupts_notimeout_wait(self, caplog: pytest.LogCaptureFixture) -> None:
        cancel = threading.Event()
        locker = ScriptedLocker([], timeout=NOTIMEOUT, retry_interval=30.0)
        timer = threading.Timer(0.1, cancel.set)
        timer.start()
        start = time.monotonic()
        with caplog.at_level(logging.INFO, logger="mailbox_locker"):
            assert locker.lock(cancel=cancel) is False
        timer.join()
        assert time.monotonic() - start < 5.0
        assert locker.has_lock() is False
        assert "cancelled" in caplog.text


# ---------------------------------------------------------------------------
# unlock()
# ---------------------------------------------------------------------------


class TestUnlock:
    def test_unlock_without_lock_is_no_op(self) -> None:
        locker = ScriptedLocker([])
        assert locker.unlock() is locker
        assert locker.released == 0
        assert locker.has_lock() is False

    def test_unlock_releases_and_clears_state(self) -> None:
        locker = ScriptedLocker([AttemptOutcome.ACQUIRED])
        locker.lock()
        locker.unlock()
        assert locker.released == 1
        assert locker.has_lock() is False

    def test_unlock_twice_releases_once(self) -> None:
        locker = ScriptedLocker([AttemptOutcome.ACQUIRED])
        locker.lock()
        locker.unlock()
        locker.unlock()
        assert locker.released == 1

    def test_release_error_is_swallowed(self, caplog: pytest.LogCaptureFixture) -> None:
        locker = ScriptedLocker([AttemptOutcome.ACQUIRED])
        locker.lock()
        locker.release_error = OSError(9, "Bad file descriptor")
        with caplog.at_level(logging.DEBUG, logger="mailbox_locker"):
            locker.unlock()
        assert locker.has_lock() is False
        assert "Bad file descriptor" in caplog.text


# ---------------------------------------------------------------------------
# is_locked()
# ---------------------------------------------------------------------------


class TestIsLocked:
    @pytest.mark.parametrize(
        ("result", "expected"),
        [
            (ProbeResult.AVAILABLE, True),
            (ProbeResult.UNAVAILABLE, False),
            (ProbeResult.UNKNOWN, False),
        ],
    )
    def test_maps_probe_result(self, result: ProbeResult, expected: bool) -> None:
        locker = ScriptedLocker([])
        locker.probe_result = result
        assert locker.is_locked() is expected

    def test_does_not_change_held_state(self) -> None:
        locker = ScriptedLocker([AttemptOutcome.ACQUIRED])
        locker.lock()
        locker.is_locked()
        assert locker.has_lock() is True


# ---------------------------------------------------------------------------
# Context manager
# ---------------------------------------------------------------------------


class TestContextManager:
    def test_acquires_and_releases(self) -> None:
        locker = ScriptedLocker([AttemptOutcome.ACQUIRED])
        with locker as entered:
            assert entered is locker
            assert locker.has_lock() is True
        assert locker.has_lock() is False
        assert locker.released == 1

    def test_releases_on_exception(self) -> None:
        locker = ScriptedLocker([AttemptOutcome.ACQUIRED])
        with pytest.raises(RuntimeError):
            with locker:
                raise RuntimeError("deliberate error")
        assert locker.has_lock() is False

    def test_failure_raises_lock_not_acquired(self) -> None:
        locker = ScriptedLocker([AttemptOutcome.FATAL])
        with pytest.raises(LockNotAcquiredError, match="SCRIPTED lock"):
            with locker:
                pass  # pragma: no cover

    def test_lock_not_acquired_is_a_timeout_error(self) -> None:
        assert issubclass(LockNotAcquiredError, TimeoutError)


# ---------------------------------------------------------------------------
# NoLocker
# ---------------------------------------------------------------------------


class TestNoLocker:
    def test_always_succeeds(self) -> None:
        first = NoLocker("/nonexistent/folder")
        second = NoLocker("/nonexistent/folder")
        assert first.lock() is True
        assert second.lock() is True
        assert first.is_locked() is True
        first.unlock()
        assert first.has_lock() is False

    def test_name(self) -> None:
        assert NoLocker.name == "NONE"
