"""Folder locking with kernel advisory record locks.

The lock is taken with :func:`fcntl.lockf` over the whole file on a
descriptor opened only for locking, never on the descriptor that reads or
writes folder content.

Record locks belong to the *process*, not to the descriptor.  Two lockers
in one process would therefore both be granted the lock, and closing any
descriptor of a locked file drops the lock for the whole process.
:class:`_ProcessLockTable` tracks which files this process holds so that
in-process lockers contend like separate processes would and no descriptor
of a held file is closed before its holder unlocks.

Classes
-------
- PosixLocker       — ``POSIX`` strategy
- close_descriptor  — close a folder descriptor without dropping our lock

Not all filesystems support record locks (some network mounts answer
``ENOLCK``); such errors end ``lock()`` immediately.
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
from mailbox_locker.locker.registry import register_locker

logger = logging.getLogger(__name__)

# Errors meaning "someone else holds a conflicting lock right now".
_CONTENTION_ERRNOS: frozenset[int] = frozenset({errno.EAGAIN, errno.EACCES})

_InodeKey = tuple[int, int]


def _inode_key(fd: int) -> _InodeKey:
    st = os.fstat(fd)
    return (st.st_dev, st.st_ino)


class _ProcessLockTable:
    """Files currently record-locked by this process.

    All methods except :attr:`mutex` itself expect the caller to hold
    :attr:`mutex`.
    """

    def __init__(self) -> None:
        self.mutex = threading.Lock()
        self._holders: dict[_InodeKey, PosixLocker] = {}
        self._deferred: dict[_InodeKey, list[int]] = {}

    def holder(self, key: _InodeKey) -> PosixLocker | None:
        return self._holders.get(key)

    def claim(self, key: _InodeKey, locker: PosixLocker) -> None:
        self._holders[key] = locker

    def close(self, key: _InodeKey, fd: int) -> None:
        """Close ``fd`` now, or once the in-process holder of ``key`` unlocks."""
        if key in self._holders:
            self._deferred.setdefault(key, []).append(fd)
        else:
            os.close(fd)

    def release(self, key: _InodeKey) -> None:
        """Forget the holder of ``key`` and close descriptors parked for it."""
        self._holders.pop(key, None)
        for fd in self._deferred.pop(key, []):
            try:
                os.close(fd)
            except OSError as exc:
                logger.debug("Closing deferred descriptor %d failed: %s", fd, exc)


_LOCK_TABLE = _ProcessLockTable()


def close_descriptor(fd: int) -> None:
    """Close ``fd`` without dropping a record lock held by this process.

    Other strategies that open the folder file close their descriptors
    through here, so a :class:`PosixLocker` of this process keeps its lock.
    """
    with _LOCK_TABLE.mutex:
        try:
            key = _inode_key(fd)
        except OSError:
            os.close(fd)
            return
        _LOCK_TABLE.close(key, fd)


@register_locker("POSIX")
class PosixLocker(Locker):
    """Lock a folder file with ``fcntl`` record locks.

    Parameters
    ----------
    file:
        The folder file.  It must exist and be writable: the lock
        descriptor is opened read-write, which write locks require.
    posix_file:
        Alternative name for ``file``; takes precedence when both are
        given.  Useful in a multi-locker where each strategy may point
        at a different file.
    folder, timeout, retry_interval:
        See :class:`~mailbox_locker.locker.base.Locker`.
    """

    name = "POSIX"
    option_names = ("posix_file",)

    def __init__(
        self,
        file: str | None = None,
        *,
        posix_file: str | None = None,
        folder: str | None = None,
        timeout: TimeoutPolicy = DEFAULT_TIMEOUT,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
    ) -> None:
        super().__init__(
            posix_file or file or "",
            folder=folder,
            timeout=timeout,
            retry_interval=retry_interval,
        )
        self._fd: int | None = None
        self._key: _InodeKey | None = None

    # ------------------------------------------------------------------
    # Acquire / release
    # ------------------------------------------------------------------

    def _acquire(self, cancel: threading.Event | None) -> bool:
        try:
            fd = os.open(self._filename, os.O_RDWR)
        except OSError as exc:
            logger.error(
                "Unable to open POSIX lock file %s for %s: %s",
                self._filename,
                self._folder,
                exc.strerror or exc,
            )
            return False

        try:
            key = _inode_key(fd)
        except OSError as exc:
            os.close(fd)
            logger.error(
                "Unable to stat POSIX lock file %s for %s: %s",
                self._filename,
                self._folder,
                exc.strerror or exc,
            )
            return False

        def attempt() -> AttemptOutcome:
            with _LOCK_TABLE.mutex:
                if _LOCK_TABLE.holder(key) is not None:
                    return AttemptOutcome.RETRY
                try:
                    fcntl.lockf(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                except OSError as exc:
                    if exc.errno in _CONTENTION_ERRNOS:
                        return AttemptOutcome.RETRY
                    logger.error(
                        "Will never get a POSIX lock on %s for %s: %s",
                        self._filename,
                        self._folder,
                        exc.strerror or exc,
                    )
                    return AttemptOutcome.FATAL
                _LOCK_TABLE.claim(key, self)
            return AttemptOutcome.ACQUIRED

        if self._retry_loop(attempt, cancel):
            self._fd = fd
            self._key = key
            return True

        with _LOCK_TABLE.mutex:
            _LOCK_TABLE.close(key, fd)
        return False

    def _release(self) -> None:
        fd, key = self._fd, self._key
        self._fd = None
        self._key = None
        if fd is None or key is None:
            return
        with _LOCK_TABLE.mutex:
            try:
                fcntl.lockf(fd, fcntl.LOCK_UN)
            finally:
                _LOCK_TABLE.release(key)
                os.close(fd)

    # ------------------------------------------------------------------
    # Probe
    # ------------------------------------------------------------------

    def probe(self) -> ProbeResult:
        """Test the lock on a separate read-only descriptor.

        A shared lock is requested because a read-only descriptor cannot
        carry a write lock; it conflicts with any exclusive holder all the
        same.  When granted it is released at once.
        """
        if self._has_lock:
            return ProbeResult.UNAVAILABLE

        with _LOCK_TABLE.mutex:
            try:
                fd = os.open(self._filename, os.O_RDONLY)
            except OSError as exc:
                logger.error(
                    "Unable to check lock file %s for %s: %s",
                    self._filename,
                    self._folder,
                    exc.strerror or exc,
                )
                return ProbeResult.UNKNOWN

            try:
                key = _inode_key(fd)
            except OSError as exc:
                logger.error("Unable to stat lock file %s: %s", self._filename, exc)
                os.close(fd)
                return ProbeResult.UNKNOWN

            try:
                if _LOCK_TABLE.holder(key) is not None:
                    return ProbeResult.UNAVAILABLE
                try:
                    fcntl.lockf(fd, fcntl.LOCK_SH | fcntl.LOCK_NB)
                except OSError as exc:
                    if exc.errno in _CONTENTION_ERRNOS:
                        return ProbeResult.UNAVAILABLE
                    logger.error(
                        "Unable to check POSIX lock on %s for %s: %s",
                        self._filename,
                        self._folder,
                        exc.strerror or exc,
                    )
                    return ProbeResult.UNKNOWN
                try:
                    fcntl.lockf(fd, fcntl.LOCK_UN)
                except OSError as exc:
                    logger.debug("Releasing probe lock on %s failed: %s", self._filename, exc)
                return ProbeResult.AVAILABLE
            finally:
                _LOCK_TABLE.close(key, fd)
