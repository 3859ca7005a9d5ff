"""Abstract locking contract shared by every strategy.

A folder owner asks a :class:`Locker` for exclusive access to a folder
file before mutating it and releases it afterwards.  Strategies differ in
*how* one attempt is made; the retry policy, held-state bookkeeping and
logging live here.

Classes
-------
- AttemptOutcome  — result of a single acquisition attempt
- ProbeResult     — three-state answer of :meth:`Locker.probe`
- Locker          — abstract base for all strategies

Thread-safety
-------------
One instance must not be used from several threads at once.  Callers that
share an instance across threads serialise access themselves.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, ClassVar, Final, Literal, Union

from mailbox_locker.errors import LockNotAcquiredError

logger = logging.getLogger(__name__)

NOTIMEOUT: Final = "NOTIMEOUT"
"""Timeout sentinel: retry until success or a non-retryable error."""

TimeoutPolicy = Union[int, Literal["NOTIMEOUT"]]

DEFAULT_TIMEOUT: Final[int] = 10
DEFAULT_RETRY_INTERVAL: Final[float] = 1.0


class AttemptOutcome(str, Enum):
    """What a single call to a strategy's attempt function reported."""

    ACQUIRED = "acquired"
    RETRY = "retry"
    FATAL = "fatal"


class ProbeResult(str, Enum):
    """Availability of a lock as seen by :meth:`Locker.probe`.

    ``UNKNOWN`` covers probes that could not be carried out, e.g. because
    the target could not be opened.  Such a target may or may not be held
    by someone else.
    """

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


def validate_timeout(timeout: object) -> TimeoutPolicy:
    """Return ``timeout`` if it is a positive attempt count or ``NOTIMEOUT``.

    Raises
    ------
    ValueError
        For zero, negative, boolean or otherwise unsupported values.
    """
    if timeout == NOTIMEOUT:
        return NOTIMEOUT
    if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout < 1:
        raise ValueError(
            f"timeout must be a positive attempt count or {NOTIMEOUT!r}, got {timeout!r}"
        )
    return timeout


class Locker(ABC):
    """Exclusive access to one folder file.

    Parameters
    ----------
    file:
        Path of the file to protect.  Fixed for the lifetime of the locker.
    folder:
        Name used in log messages.  Defaults to ``file``.
    timeout:
        Maximum number of acquisition attempts, or :data:`NOTIMEOUT` to
        retry until a non-retryable error occurs.
    retry_interval:
        Seconds to wait between two attempts.
    """

    name: ClassVar[str] = "ABSTRACT"

    #: Strategy-specific keyword options accepted by ``__init__``.
    option_names: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        file: str,
        *,
        folder: str | None = None,
        timeout: TimeoutPolicy = DEFAULT_TIMEOUT,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
    ) -> None:
        if not file:
            raise ValueError(f"{type(self).__name__} requires a target file")
        if retry_interval <= 0:
            raise ValueError(f"retry_interval must be positive, got {retry_interval!r}")
        self._filename: str = str(file)
        self._folder: str = folder or self._filename
        self._timeout: TimeoutPolicy = validate_timeout(timeout)
        self._retry_interval: float = float(retry_interval)
        self._has_lock: bool = False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def filename(self) -> str:
        """The protected file."""
        return self._filename

    @property
    def folder(self) -> str:
        return self._folder

    @property
    def timeout(self) -> TimeoutPolicy:
        return self._timeout

    @property
    def retry_interval(self) -> float:
        return self._retry_interval

    def has_lock(self) -> bool:
        """Return True between a successful ``lock()`` and ``unlock()``."""
        return self._has_lock

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    def lock(self, *, cancel: threading.Event | None = None) -> bool:
        """Acquire the lock, retrying on contention.

        A second call while the lock is held logs a warning and returns
        True without touching the OS.

        Parameters
        ----------
        cancel:
            Optional event checked before each attempt and while waiting
            between attempts.  Setting it makes ``lock()`` give up and
            return False.

        Returns
        -------
        bool
            True when the lock is held after the call.
        """
        if self._has_lock:
            logger.warning("Folder %s already %s-locked", self._folder, self.name)
            return True

        if not self._acquire(cancel):
            return False

        self._has_lock = True
        logger.debug("Folder %s %s-locked via %s", self._folder, self.name, self._filename)
        return True

    def unlock(self) -> Locker:
        """Release the lock if held.  Never raises.

        Release errors from the OS are logged at DEBUG level; the held
        state is cleared regardless.
        """
        if self._has_lock:
            try:
                self._release()
            except OSError as exc:
                logger.debug(
                    "Releasing %s lock on %s failed: %s", self.name, self._filename, exc
                )
            else:
                logger.debug("Folder %s %s-unlocked", self._folder, self.name)
        self._has_lock = False
        return self

    def is_locked(self) -> bool:
        """Return True when the lock could be taken right now.

        The check acquires and immediately releases the lock, so the target
        is left as it was found.  A False result means either that someone
        else holds the lock or that the check itself failed; use
        :meth:`probe` to tell these apart.
        """
        return self.probe() is ProbeResult.AVAILABLE

    @abstractmethod
    def probe(self) -> ProbeResult:
        """Report whether the lock is available without keeping it."""

    # ------------------------------------------------------------------
    # Strategy hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _acquire(self, cancel: threading.Event | None) -> bool:
        """Take the lock; return False on timeout, cancellation or error."""

    @abstractmethod
    def _release(self) -> None:
        """Drop the lock taken by :meth:`_acquire`.  May raise OSError."""

    def _retry_loop(
        self,
        attempt: Callable[[], AttemptOutcome],
        cancel: threading.Event | None,
    ) -> bool:
        """Call ``attempt`` until it succeeds, fails fatally or the budget runs out.

        ``attempt`` is called at most ``timeout`` times; with
        :data:`NOTIMEOUT` the budget never runs out and only a fatal outcome
        or ``cancel`` ends the loop.
        """
        remaining = -1 if self._timeout == NOTIMEOUT else int(self._timeout)
        waiter = cancel if cancel is not None else threading.Event()
        attempts = 0

        while True:
            if waiter.is_set():
                logger.info("Locking %s for %s cancelled", self._filename, self._folder)
                return False

            attempts += 1
            outcome = attempt()
            if outcome is AttemptOutcome.ACQUIRED:
                return True
            if outcome is AttemptOutcome.FATAL:
                return False

            remaining -= 1
            if remaining == 0:
                logger.info(
                    "Gave up %s-locking %s for %s after %d attempts",
                    self.name,
                    self._filename,
                    self._folder,
                    attempts,
                )
                return False

            if waiter.wait(self._retry_interval):
                logger.info("Locking %s for %s cancelled", self._filename, self._folder)
                return False

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> Locker:
        """Acquire the lock on context entry.

        Raises
        ------
        LockNotAcquiredError
            If ``lock()`` returns False.
        """
        if not self.lock():
            raise LockNotAcquiredError(self.name, self._filename)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Release the lock on context exit, even if an exception occurred."""
        self.unlock()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(file={self._filename!r}, "
            f"timeout={self._timeout!r}, has_lock={self._has_lock})"
        )
