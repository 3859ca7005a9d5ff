"""Name-to-class registry for locking strategies.

Strategies register themselves with the :func:`register_locker` decorator
when their module is imported.  Names are case-insensitive and stored
upper-cased, matching the ``method`` option of :class:`LockerConfig`.

Example
-------
.. code-block:: python

    @register_locker("NFS")
    class NfsLocker(Locker):
        ...
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Callable, TypeVar

from mailbox_locker.errors import UnknownLockMethodError

if TYPE_CHECKING:
    from mailbox_locker.locker.base import Locker

_LockerT = TypeVar("_LockerT", bound="type[Locker]")

_REGISTRY: dict[str, type[Locker]] = {}


def register_locker(name: str) -> Callable[[_LockerT], _LockerT]:
    """Class decorator registering a strategy under ``name``.

    Raises
    ------
    ValueError
        If ``name`` is already taken by a different class.
    """
    key = name.upper()

    def decorator(cls: _LockerT) -> _LockerT:
        existing = _REGISTRY.get(key)
        if existing is not None and existing is not cls:
            raise ValueError(
                f"Lock method {key!r} already registered by {existing.__qualname__}"
            )
        _REGISTRY[key] = cls
        return cls

    return decorator


def get_locker_class(name: str) -> type[Locker]:
    """Return the strategy class registered under ``name``.

    Raises
    ------
    UnknownLockMethodError
        If nothing is registered under ``name``.
    """
    try:
        return _REGISTRY[name.upper()]
    except KeyError:
        raise UnknownLockMethodError(name, available_methods()) from None


def available_methods() -> list[str]:
    """Return the registered strategy names, sorted."""
    return sorted(_REGISTRY)
