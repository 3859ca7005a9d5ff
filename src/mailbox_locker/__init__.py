"""mailbox-locker — Folder locking strategies for mail-folder files.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import mailbox_locker
>>> mailbox_locker.__version__
'0.1.0'
"""
from __future__ import annotations

# Strategies
from mailbox_locker.locker import (
    NOTIMEOUT,
    DotLocker,
    FlockLocker,
    Locker,
    MultiLocker,
    NoLocker,
    PosixLocker,
    ProbeResult,
    available_methods,
    create_locker,
    register_locker,
)

# Configuration and errors
from mailbox_locker.config import LockerConfig
from mailbox_locker.errors import LockerError, LockNotAcquiredError, UnknownLockMethodError

from mailbox_locker.convenience import locked

__version__: str = "0.1.0"

__all__ = [
    "__version__",
    # Strategies
    "NOTIMEOUT",
    "DotLocker",
    "FlockLocker",
    "Locker",
    "MultiLocker",
    "NoLocker",
    "PosixLocker",
    "ProbeResult",
    "available_methods",
    "create_locker",
    "register_locker",
    # Configuration
    "LockerConfig",
    # Errors
    "LockNotAcquiredError",
    "LockerError",
    "UnknownLockMethodError",
    # Convenience
    "locked",
]
