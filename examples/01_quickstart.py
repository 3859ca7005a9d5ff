#!/usr/bin/env python3
"""Example: Quickstart — mailbox-locker

Minimal working example: lock a folder file, append a message, and show
what a second locker sees meanwhile.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install mailbox-locker
"""
from __future__ import annotations

import tempfile
from pathlib import Path

import mailbox_locker
from mailbox_locker import PosixLocker, create_locker


def main() -> None:
    print(f"mailbox-locker version: {mailbox_locker.__version__}")

    with tempfile.TemporaryDirectory() as tmp:
        folder = Path(tmp) / "inbox.mbox"
        folder.write_text("")

        # Step 1: Build a locker from options
        locker = create_locker(method="POSIX", file=str(folder), timeout=3)
        print(f"Locker: {locker!r}")

        # Step 2: Lock, mutate, unlock
        if locker.lock():
            try:
                with folder.open("a", encoding="utf-8") as fh:
                    fh.write("From alice@example.org Mon Jan  1 00:00:00 2024\n\nhello\n\n")

                # Step 3: A second locker cannot get in meanwhile
                other = PosixLocker(str(folder), timeout=2, retry_interval=0.1)
                print(f"  other.is_locked() while held: {other.is_locked()}")
                print(f"  other.lock() while held:      {other.lock()}")
            finally:
                locker.unlock()

        print(f"  has_lock() after unlock:      {locker.has_lock()}")
        print(f"  probe() after unlock:         {locker.probe().value}")


if __name__ == "__main__":
    main()
