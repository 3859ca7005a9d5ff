"""CLI entry point for mailbox-locker.

Invoked as::

    mailbox-locker [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m mailbox_locker.cli.main

Commands
--------
- version  — Show detailed version information
- methods  — List the registered locking strategies
- probe    — Report whether a folder could be locked right now
- run      — Run a command while holding a folder lock
"""
from __future__ import annotations

import logging
import subprocess
import sys

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from mailbox_locker.errors import UnknownLockMethodError
from mailbox_locker.locker import available_methods, get_locker_class
from mailbox_locker.locker.base import Locker, ProbeResult

console = Console()
err_console = Console(stderr=True)

# Exit status when the lock could not be taken (sysexits.h EX_TEMPFAIL).
EX_TEMPFAIL = 75
# Exit status for bad options, matching click's own usage errors.
EX_USAGE = 2

_METHOD_CHOICE = click.Choice(available_methods(), case_sensitive=False)

# ---------------------------------------------------------------------------
# Locker factory
# ---------------------------------------------------------------------------


def _make_locker(method: str, file: str, **options: object) -> Locker:
    """Build the requested locker, exiting with a usage error if invalid.

    Parameters
    ----------
    method:
        Strategy name, e.g. ``"POSIX"``.
    file:
        The folder file to protect.
    **options:
        Further ``LockerConfig`` options.

    Returns
    -------
    Locker
        A configured, unlocked locker.
    """
    from mailbox_locker.locker.factory import create_locker

    try:
        return create_locker(method=method, file=file, **options)
    except (ValidationError, UnknownLockMethodError) as exc:
        console.print(f"[red]Invalid locker options:[/red] {exc}")
        sys.exit(EX_USAGE)


def _configure_logging(verbose: int) -> None:
    level = logging.INFO if verbose == 1 else logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="mailbox-locker")
@click.option("-v", "--verbose", count=True, help="Log more (-v info, -vv debug).")
def cli(verbose: int) -> None:
    """Lock mail folders the way cooperating mail programs do."""
    if verbose:
        _configure_logging(verbose)


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from mailbox_locker import __version__

    console.print(f"[bold]mailbox-locker[/bold] v{__version__}")


# ---------------------------------------------------------------------------
# methods
# ---------------------------------------------------------------------------


@cli.command(name="methods")
def methods_command() -> None:
    """List the registered locking strategies."""
    table = Table(title="Locking strategies", show_lines=False)
    table.add_column("Method", style="cyan")
    table.add_column("Class", style="green")
    table.add_column("Description")

    for method in available_methods():
        cls = get_locker_class(method)
        summary = (cls.__doc__ or "").strip().splitlines()
        table.add_row(method, cls.__name__, summary[0] if summary else "")

    console.print(table)


# ---------------------------------------------------------------------------
# probe
# ---------------------------------------------------------------------------


@cli.command(name="probe")
@click.argument("file")
@click.option(
    "--method",
    default="DOTLOCK",
    show_default=True,
    type=_METHOD_CHOICE,
    help="Locking strategy to probe.",
)
def probe_command(file: str, method: str) -> None:
    """Report whether FILE could be locked right now.

    Exits 0 when the lock is available and 1 otherwise.
    """
    locker = _make_locker(method, file)
    result = locker.probe()

    style = {
        ProbeResult.AVAILABLE: "green",
        ProbeResult.UNAVAILABLE: "yellow",
        ProbeResult.UNKNOWN: "red",
    }[result]
    console.print(f"{locker.name} lock on {file}: [{style}]{result.value}[/{style}]")
    if result is not ProbeResult.AVAILABLE:
        sys.exit(1)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@cli.command(name="run", context_settings={"ignore_unknown_options": True})
@click.argument("file")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option(
    "--method",
    default="DOTLOCK",
    show_default=True,
    type=_METHOD_CHOICE,
    help="Locking strategy to use.",
)
@click.option(
    "--timeout",
    default="10",
    show_default=True,
    help="Number of lock attempts, or NOTIMEOUT to wait until an error.",
)
@click.option(
    "--retry-interval",
    default=1.0,
    show_default=True,
    type=float,
    help="Seconds between lock attempts.",
)
def run_command(
    file: str,
    command: tuple[str, ...],
    method: str,
    timeout: str,
    retry_interval: float,
) -> None:
    """Run COMMAND while holding a lock on FILE.

    Exits with the command's status, or 75 if the lock was not acquired.
    """
    locker = _make_locker(method, file, timeout=timeout, retry_interval=retry_interval)

    if not locker.lock():
        console.print(f"[red]Could not acquire {locker.name} lock on[/red] {file}")
        sys.exit(EX_TEMPFAIL)

    try:
        completed = subprocess.run(list(command), check=False)
    except OSError as exc:
        console.print(f"[red]Cannot run {command[0]!r}:[/red] {exc}")
        sys.exit(127)
    finally:
        locker.unlock()

    sys.exit(completed.returncode)


if __name__ == "__main__":
    cli()
