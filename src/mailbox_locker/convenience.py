"""Convenience API for mailbox-locker — lock a folder in one statement.

Example
-------
::

    from mailbox_locker import locked
    with locked("/var/mail/alice", method="POSIX", timeout=5):
        append_message("/var/mail/alice", message)

"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from mailbox_locker.locker.base import Locker


@contextmanager
def locked(file: str, method: str = "DOTLOCK", **options: Any) -> Iterator[Locker]:
    """Hold a lock on ``file`` for the duration of the ``with`` block.

    Parameters
    ----------
    file:
        The folder file to protect.
    method:
        Strategy name; see :func:`~mailbox_locker.locker.available_methods`.
    **options:
        Further :class:`~mailbox_locker.config.LockerConfig` options such
        as ``timeout`` or ``retry_interval``.

    Raises
    ------
    LockNotAcquiredError
        If the lock could not be acquired.
    """
    from mailbox_locker.locker.factory import create_locker

    locker = create_locker(method=method, file=file, **options)
    with locker:
        yield locker
