"""Folder locking with BSD ``flock`` locks.

``flock`` locks belong to the open file description, so every locker
opens its own descriptor and two lockers in one process exclude each
other without extra bookkeeping.  They do not work over most network
filesystems.

The descriptors are opened on the folder file itself, which may also
carry a POSIX record lock of this process.  They are therefore closed
through :func:`~mailbox_locker.locker.posix.close_descriptor`.

Classes
-------
- FlockLocker  — ``FLOCK`` strategy
"""
from __future__ import annotations

import errno
import fcntl
import logging
import os
import threading

from mailbox_locker.locker.base import (
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_TIMEOUT,
    AttemptOutcome,
    Locker,
    ProbeResult,
    TimeoutPolicy,
)
from mailbox_locker.locker.posix import close_descriptor
from mailbox_locker.locker.registry import register_locker

logger = logging.getLogger(__name__)


@register_locker("FLOCK")
class FlockLocker(Locker):
    """Lock a folder file with ``fcntl.flock``.

    ``flock_file`` is an alternative name for ``file``.
    """

    name = "FLOCK"
    option_names = ("flock_file",)

    def __init__(
        self,
        file: str | None = None,
        *,
        flock_file: str | None = None,
        folder: str | None = None,
        timeout: TimeoutPolicy = DEFAULT_TIMEOUT,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
    ) -> None:
        super().__init__(
            flock_file or file or "",
            folder=folder,
            timeout=timeout,
            retry_interval=retry_interval,
        )
        self._fd: int | None = None

    def _open(self, action: str) -> int | None:
        try:
            return os.open(self._filename, os.O_RDONLY)
        except OSError as exc:
            logger.error(
                "Unable to %s flock file %s for %s: %s",
                action,
                self._filename,
                self._folder,
                exc.strerror or exc,
            )
            return None

    def _acquire(self, cancel: threading.Event | None) -> bool:
        fd = self._open("open")
        if fd is None:
            return False

        def attempt() -> AttemptOutcome:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except OSError as exc:
                if exc.errno == errno.EWOULDBLOCK:
                    return AttemptOutcome.RETRY
                logger.error(
                    "Will never get a flock on %s for %s: %s",
                    self._filename,
                    self._folder,
                    exc.strerror or exc,
                )
                return AttemptOutcome.FATAL
            return AttemptOutcome.ACQUIRED

        if self._retry_loop(attempt, cancel):
            self._fd = fd
            return True
        close_descriptor(fd)
        return False

    def _release(self) -> None:
        fd, self._fd = self._fd, None
        if fd is None:
            return
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            close_descriptor(fd)

    def probe(self) -> ProbeResult:
        if self._has_lock:
            return ProbeResult.UNAVAILABLE
        fd = self._open("check")
        if fd is None:
            return ProbeResult.UNKNOWN
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as exc:
            if exc.errno == errno.EWOULDBLOCK:
                return ProbeResult.UNAVAILABLE
            logger.error("Unable to check flock on %s: %s", self._filename, exc)
            return ProbeResult.UNKNOWN
        else:
            fcntl.flock(fd, fcntl.LOCK_UN)
            return ProbeResult.AVAILABLE
        finally:
            close_descriptor(fd)
