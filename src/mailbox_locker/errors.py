"""Exception hierarchy for mailbox-locker.

Locking operations report success or failure as booleans and put the
details in the log stream.  Exceptions are reserved for misconfiguration
and for the context-manager protocol, which has no return value to carry
a failed acquisition.

Classes
-------
- LockerError             — base class for all package errors
- LockNotAcquiredError    — ``with locker:`` could not take the lock
- UnknownLockMethodError  — no strategy registered under the given name
"""
from __future__ import annotations


class LockerError(Exception):
    """Base class for all mailbox-locker errors."""


class LockNotAcquiredError(LockerError, TimeoutError):
    """Raised on context-manager entry when ``lock()`` returned False."""

    def __init__(self, method: str, filename: str) -> None:
        self.method = method
        self.filename = filename
        super().__init__(f"Could not acquire {method} lock on {filename!r}")


class UnknownLockMethodError(LockerError, ValueError):
    """Raised when a locking strategy name is not registered."""

    def __init__(self, method: str, known: list[str]) -> None:
        self.method = method
        self.known = known
        super().__init__(
            f"Unknown lock method {method!r}; expected one of: {', '.join(known)}"
        )
