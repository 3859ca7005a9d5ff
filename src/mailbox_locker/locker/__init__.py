"""Locking strategies.

Every strategy implements the :class:`Locker` contract and registers
itself under a name.  Importing this subpackage registers the built-in
strategies.

Public surface
--------------
- Locker        — abstract base class
- PosixLocker   — ``POSIX``: fcntl record locks
- DotLocker     — ``DOTLOCK``: exclusive ``<file>.lock`` sentinel
- FlockLocker   — ``FLOCK``: BSD flock
- MultiLocker   — ``MULTI``: several strategies at once
- NoLocker      — ``NONE``: always succeeds
- create_locker — build a strategy from a ``LockerConfig`` or options
"""
from __future__ import annotations

from mailbox_locker.locker.base import (
    NOTIMEOUT,
    AttemptOutcome,
    Locker,
    ProbeResult,
    TimeoutPolicy,
)
from mailbox_locker.locker.dotlock import DotLocker
from mailbox_locker.locker.flock import FlockLocker
from mailbox_locker.locker.multi import MultiLocker
from mailbox_locker.locker.nolock import NoLocker
from mailbox_locker.locker.posix import PosixLocker
from mailbox_locker.locker.registry import available_methods, get_locker_class, register_locker
from mailbox_locker.locker.factory import create_locker

__all__ = [
    "NOTIMEOUT",
    "AttemptOutcome",
    "DotLocker",
    "FlockLocker",
    "Locker",
    "MultiLocker",
    "NoLocker",
    "PosixLocker",
    "ProbeResult",
    "TimeoutPolicy",
    "available_methods",
    "create_locker",
    "get_locker_class",
    "register_locker",
]
