"""Hold several locking strategies at once.

Different mail programs honour different conventions on the same spool;
taking all of them keeps every cooperating program out.  Acquisition is
all-or-nothing: if one sub-locker fails, the ones already taken are
released again in reverse order.

Classes
-------
- MultiLocker  — ``MULTI`` strategy
"""
from __future__ import annotations

import logging
import threading
from typing import Iterable, Sequence

from mailbox_locker.locker.base import (
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_TIMEOUT,
    Locker,
    ProbeResult,
    TimeoutPolicy,
)
from mailbox_locker.locker.dotlock import DEFAULT_EXPIRES_SECONDS
from mailbox_locker.locker.registry import get_locker_class, register_locker

logger = logging.getLogger(__name__)

DEFAULT_METHODS: tuple[str, ...] = ("POSIX", "DOTLOCK")


@register_locker("MULTI")
class MultiLocker(Locker):
    """Combine several strategies into one lock.

    Parameters
    ----------
    file:
        The folder file, passed to every sub-locker.  When omitted, the
        first of ``posix_file``, ``flock_file`` and ``dotlock_file`` given
        stands in for it.
    methods:
        Strategy names to combine.  Defaults to ``POSIX`` and ``DOTLOCK``.
    lockers:
        Ready-made sub-lockers; when given, ``methods`` and the per-strategy
        options are ignored.
    posix_file, dotlock_file, flock_file, expires:
        Forwarded to the sub-lockers that accept them.
    folder, timeout, retry_interval:
        Shared by all sub-lockers.
    """

    name = "MULTI"
    option_names = ("methods", "posix_file", "dotlock_file", "flock_file", "expires")

    def __init__(
        self,
        file: str | None = None,
        *,
        methods: Sequence[str] | None = None,
        lockers: Iterable[Locker] | None = None,
        posix_file: str | None = None,
        dotlock_file: str | None = None,
        flock_file: str | None = None,
        expires: float = DEFAULT_EXPIRES_SECONDS,
        folder: str | None = None,
        timeout: TimeoutPolicy = DEFAULT_TIMEOUT,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
    ) -> None:
        super().__init__(
            file or posix_file or flock_file or dotlock_file or "",
            folder=folder,
            timeout=timeout,
            retry_interval=retry_interval,
        )
        if lockers is not None:
            self._lockers: list[Locker] = list(lockers)
        else:
            shared = {
                "posix_file": posix_file,
                "dotlock_file": dotlock_file,
                "flock_file": flock_file,
                "expires": expires,
            }
            self._lockers = []
            for method in methods or DEFAULT_METHODS:
                cls = get_locker_class(method)
                if issubclass(cls, MultiLocker):
                    raise ValueError("A MULTI locker cannot contain another MULTI locker")
                options = {
                    key: value
                    for key, value in shared.items()
                    if key in cls.option_names and value is not None
                }
                self._lockers.append(
                    cls(
                        file or self._filename,
                        folder=folder,
                        timeout=timeout,
                        retry_interval=retry_interval,
                        **options,
                    )
                )
        if not self._lockers:
            raise ValueError("A MULTI locker needs at least one sub-locker")

    @property
    def lockers(self) -> list[Locker]:
        """The sub-lockers, in acquisition order."""
        return list(self._lockers)

    def _acquire(self, cancel: threading.Event | None) -> bool:
        taken: list[Locker] = []
        for locker in self._lockers:
            if not locker.lock(cancel=cancel):
                logger.debug(
                    "MULTI lock on %s failed at %s; releasing %d taken",
                    self._filename,
                    locker.name,
                    len(taken),
                )
                for held in reversed(taken):
                    held.unlock()
                return False
            taken.append(locker)
        return True

    def _release(self) -> None:
        for locker in reversed(self._lockers):
            locker.unlock()

    def probe(self) -> ProbeResult:
        """Available only if every sub-locker is; unknown if any check failed."""
        if self._has_lock:
            return ProbeResult.UNAVAILABLE
        results = [locker.probe() for locker in self._lockers]
        if ProbeResult.UNAVAILABLE in results:
            return ProbeResult.UNAVAILABLE
        if ProbeResult.UNKNOWN in results:
            return ProbeResult.UNKNOWN
        return ProbeResult.AVAILABLE
