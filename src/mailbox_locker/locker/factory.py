"""Build a locker from configuration.

Classes are looked up by name in the strategy registry, so the folder
owning the locker chooses a strategy through its options instead of
through subclassing.
"""
from __future__ import annotations

from typing import Any

from mailbox_locker.config import LockerConfig
from mailbox_locker.locker.base import Locker
from mailbox_locker.locker.registry import get_locker_class


def create_locker(config: LockerConfig | None = None, **options: Any) -> Locker:
    """Instantiate the strategy named by ``config.method``.

    Parameters
    ----------
    config:
        Validated options.  When omitted, ``options`` are validated into a
        new :class:`LockerConfig`.
    **options:
        Extra or overriding options, e.g. ``method="POSIX", file=path``.

    Returns
    -------
    Locker
        An unlocked locker bound to the configured file.

    Raises
    ------
    pydantic.ValidationError
        If the options are invalid.
    UnknownLockMethodError
        If no strategy is registered under ``method``.
    """
    if config is None:
        config = LockerConfig(**options)
    elif options:
        config = LockerConfig(**{**config.model_dump(), **options})

    cls = get_locker_class(config.method)
    return cls(config.file, **config.locker_options(cls.option_names))
