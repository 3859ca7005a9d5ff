"""Folder locking by exclusive creation of a ``.lock`` sentinel file.

The lock is held while ``<file>.lock`` exists.  Creation uses
``O_CREAT | O_EXCL``, which either succeeds atomically or fails with
:class:`FileExistsError` when another process holds the lock.  This works
without kernel lock support, which makes it the traditional choice for
mail spools.

A sentinel older than ``expires`` seconds is treated as left behind by a
crashed process and removed.  The sentinel is stat()ed again just before
removal and left alone if it was replaced in the meantime; a replacement
between that second check and the unlink is not detected.

Classes
-------
DotLocker
    ``DOTLOCK`` strategy.
"""
from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path

from mailbox_locker.locker.base import (
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_TIMEOUT,
    AttemptOutcome,
    Locker,
    ProbeResult,
    TimeoutPolicy,
)
from mailbox_locker.locker.registry import register_locker

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_EXPIRES_SECONDS: float = 3600.0
_LOCK_SUFFIX = ".lock"


# ---------------------------------------------------------------------------
# DotLocker
# ---------------------------------------------------------------------------


@register_locker("DOTLOCK")
class DotLocker(Locker):
    """Lock a folder by creating a sentinel file next to it.

    Parameters
    ----------
    file:
        The folder file.  The sentinel is ``<file>.lock``.
    dotlock_file:
        Explicit sentinel path, overriding the derived one.
    expires:
        Age in seconds after which an existing sentinel is considered
        stale and removed.
    folder, timeout, retry_interval:
        See :class:`~mailbox_locker.locker.base.Locker`.
    """

    name = "DOTLOCK"
    option_names = ("dotlock_file", "expires")

    def __init__(
        self,
        file: str | None = None,
        *,
        dotlock_file: str | None = None,
        expires: float = DEFAULT_EXPIRES_SECONDS,
        folder: str | None = None,
        timeout: TimeoutPolicy = DEFAULT_TIMEOUT,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
    ) -> None:
        super().__init__(
            file or dotlock_file or "",
            folder=folder,
            timeout=timeout,
            retry_interval=retry_interval,
        )
        if expires <= 0:
            raise ValueError(f"expires must be positive, got {expires!r}")
        self._lock_path: Path = (
            Path(dotlock_file) if dotlock_file else Path(self._filename + _LOCK_SUFFIX)
        )
        self._expires: float = float(expires)

    @property
    def lock_path(self) -> Path:
        """The sentinel file."""
        return self._lock_path

    @property
    def expires(self) -> float:
        return self._expires

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _create_sentinel(self) -> None:
        """Atomically create the sentinel and record our PID in it.

        A sentinel that cannot be written completely is removed again.
        """
        fd = os.open(self._lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        try:
            try:
                os.write(fd, f"{os.getpid()}\n".encode("ascii"))
            finally:
                os.close(fd)
        except OSError:
            try:
                os.unlink(self._lock_path)
            except FileNotFoundError:
                pass
            raise

    def _remove_if_stale(self) -> bool:
        """Remove the sentinel if it has expired.  Return True if removed."""
        try:
            st = os.stat(self._lock_path)
        except FileNotFoundError:
            return False
        age = time.time() - st.st_mtime
        if age <= self._expires:
            return False
        try:
            current = os.stat(self._lock_path)
        except FileNotFoundError:
            return True
        if (current.st_dev, current.st_ino) != (st.st_dev, st.st_ino):
            logger.debug("Lockfile %s was replaced while checking its age", self._lock_path)
            return False
        logger.warning(
            "Removing expired lockfile %s (%.0fs old) for %s",
            self._lock_path,
            age,
            self._folder,
        )
        try:
            os.unlink(self._lock_path)
        except FileNotFoundError:
            pass
        return True

    def _attempt(self) -> AttemptOutcome:
        # A second try is made straight after removing a stale sentinel.
        for _ in range(2):
            try:
                self._create_sentinel()
                return AttemptOutcome.ACQUIRED
            except FileExistsError:
                if not self._remove_if_stale():
                    return AttemptOutcome.RETRY
            except OSError as exc:
                logger.error(
                    "Unable to create lockfile %s for %s: %s",
                    self._lock_path,
                    self._folder,
                    exc.strerror or exc,
                )
                return AttemptOutcome.FATAL
        return AttemptOutcome.RETRY

    # ------------------------------------------------------------------
    # Locker interface
    # ------------------------------------------------------------------

    def _acquire(self, cancel: threading.Event | None) -> bool:
        return self._retry_loop(self._attempt, cancel)

    def _release(self) -> None:
        self._lock_path.unlink()

    def probe(self) -> ProbeResult:
        """Available unless a sentinel exists.  Stale sentinels count as held."""
        if self._has_lock:
            return ProbeResult.UNAVAILABLE
        try:
            exists = self._lock_path.exists()
        except OSError as exc:
            logger.error("Unable to check lockfile %s: %s", self._lock_path, exc)
            return ProbeResult.UNKNOWN
        return ProbeResult.UNAVAILABLE if exists else ProbeResult.AVAILABLE
