"""The ``NONE`` strategy: locking that always succeeds.

For folders that are never shared, e.g. read-only archives or scratch
copies.  Held state is still tracked so callers see the usual contract.
"""
from __future__ import annotations

import threading

from mailbox_locker.locker.base import Locker, ProbeResult
from mailbox_locker.locker.registry import register_locker


@register_locker("NONE")
class NoLocker(Locker):
    """A locker that never touches the filesystem."""

    name = "NONE"

    def _acquire(self, cancel: threading.Event | None) -> bool:
        return True

    def _release(self) -> None:
        pass

    def probe(self) -> ProbeResult:
        return ProbeResult.AVAILABLE
