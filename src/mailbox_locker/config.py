"""Locker configuration.

:class:`LockerConfig` validates the options a folder passes when it asks
for a locker.  Strategy-specific options are ignored by strategies that do
not use them.

Classes
-------
- LockerConfig  — validated construction options for any strategy
"""
from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from mailbox_locker.locker.base import DEFAULT_RETRY_INTERVAL, DEFAULT_TIMEOUT, NOTIMEOUT
from mailbox_locker.locker.dotlock import DEFAULT_EXPIRES_SECONDS

DEFAULT_METHOD: str = "DOTLOCK"

# Strategy-specific option that may replace ``file`` as the lock target.
_ALTERNATE_FILE_OPTIONS: dict[str, str] = {
    "POSIX": "posix_file",
    "DOTLOCK": "dotlock_file",
    "FLOCK": "flock_file",
}


class LockerConfig(BaseModel):
    """Construction options for a locker.

    Parameters
    ----------
    method:
        Strategy name, case-insensitive: ``POSIX``, ``DOTLOCK``, ``FLOCK``,
        ``MULTI`` or ``NONE``.  Default: ``DOTLOCK``.
    file:
        The folder file to protect.
    folder:
        Name used in log messages.  Defaults to ``file``.
    timeout:
        Number of acquisition attempts, or ``"NOTIMEOUT"``.  Default: 10.
    retry_interval:
        Seconds between attempts.  Default: 1.0.
    expires:
        Age in seconds after which a dotlock is considered stale.
        Default: 3600.
    posix_file, dotlock_file, flock_file:
        Per-strategy alternatives for ``file``.
    methods:
        Strategies combined by ``MULTI``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: str = DEFAULT_METHOD
    file: str | None = None
    folder: str | None = None
    timeout: Union[int, Literal["NOTIMEOUT"]] = DEFAULT_TIMEOUT
    retry_interval: float = Field(default=DEFAULT_RETRY_INTERVAL, gt=0)
    expires: float = Field(default=DEFAULT_EXPIRES_SECONDS, gt=0)
    posix_file: str | None = None
    dotlock_file: str | None = None
    flock_file: str | None = None
    methods: list[str] | None = None

    @field_validator("method")
    @classmethod
    def _normalise_method(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("methods")
    @classmethod
    def _normalise_methods(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [name.strip().upper() for name in value]

    @field_validator("timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("timeout must be an attempt count, not a boolean")
        if isinstance(value, str):
            text = value.strip()
            if text.upper() == NOTIMEOUT:
                return NOTIMEOUT
            if text.isdigit():
                return int(text)
        return value

    @field_validator("timeout")
    @classmethod
    def _check_timeout(cls, value: int | str) -> int | str:
        if isinstance(value, int) and value < 1:
            raise ValueError(f"timeout must be at least 1 attempt, got {value}")
        return value

    @model_validator(mode="after")
    def _require_target(self) -> LockerConfig:
        alternate = _ALTERNATE_FILE_OPTIONS.get(self.method)
        if self.method == "MULTI":
            targets = [self.file, self.posix_file, self.dotlock_file, self.flock_file]
        elif alternate is not None:
            targets = [self.file, getattr(self, alternate)]
        else:
            targets = [self.file]
        if not any(targets):
            names = "'file'" if alternate is None else f"'file' or '{alternate}'"
            raise ValueError(f"a target {names} is required for method {self.method}")
        return self

    def locker_options(self, option_names: tuple[str, ...]) -> dict[str, Any]:
        """Return constructor keyword arguments for a strategy.

        ``option_names`` lists the strategy-specific options the strategy
        accepts; the common options are always included.
        """
        options: dict[str, Any] = {
            "folder": self.folder,
            "timeout": self.timeout,
            "retry_interval": self.retry_interval,
        }
        for name in option_names:
            value = getattr(self, name)
            if value is not None:
                options[name] = value
        return options
