"""Command-line interface for mailbox-locker."""
