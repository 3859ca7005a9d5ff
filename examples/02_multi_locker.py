#!/usr/bin/env python3
"""Example: Combining strategies — mailbox-locker

Take a POSIX record lock and a dotlock together, the way a spool shared
with older mail programs is usually locked, and see the rollback when one
of them is unavailable.

Usage:
    python examples/02_multi_locker.py

Requirements:
    pip install mailbox-locker
"""
from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from mailbox_locker import LockerConfig, LockNotAcquiredError, create_locker


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    with tempfile.TemporaryDirectory() as tmp:
        folder = Path(tmp) / "alice"
        folder.write_text("")

        config = LockerConfig(
            method="multi",
            file=str(folder),
            methods=["posix", "dotlock"],
            timeout=2,
            retry_interval=0.2,
        )

        # Step 1: Both locks held inside the with-block
        with create_locker(config) as locker:
            print(f"Held: {[sub.name for sub in locker.lockers]}")
            print(f"Sentinel present: {Path(str(folder) + '.lock').exists()}")

        # Step 2: A leftover sentinel makes the whole MULTI lock fail
        Path(str(folder) + ".lock").write_text("4242\n")
        try:
            with create_locker(config):
                pass
        except LockNotAcquiredError as exc:
            print(f"Failed as expected: {exc}")


if __name__ == "__main__":
    main()
