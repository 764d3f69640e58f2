"""
CLI interface for ssh-parallels
"""

import sys
import logging
import argparse
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich import box

from . import __version__
from .config import ResolvedAddress
from .detectors import GuestInspector
from .discovery import collect_addresses, discover
from .errors import ParallelsSSHError
from .menu import ListBox, Outcome, SurfaceFactory, ask_for_username
from .parallels import ParallelsInspector
from .settings import Settings, get_config_paths, load_settings
from .shell import ssh_login
from .tui import TerminalSurface

logger = logging.getLogger(__name__)

LIST_TITLE = "Choose VM from parallels"
NO_VM_MESSAGE = "no available(running) vm found!"
CANCEL_MESSAGE = "cancel login to vm"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity"""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='[%(asctime)s] %(levelname)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def create_parser(settings: Settings) -> argparse.ArgumentParser:
    """Create CLI argument parser with defaults from settings."""
    parser = argparse.ArgumentParser(
        prog="ssh-parallels",
        description="Pick a running Parallels VM and ssh into it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Choose a VM and log in as root on port 22
  %(prog)s

  # Log in as another user on a custom port
  %(prog)s -l admin -p 2222

  # Ask for the username after choosing the VM
  %(prog)s --ask
        """
    )

    parser.add_argument(
        "-p", "--port",
        type=int,
        default=settings.port,
        help=f"set ssh port (default: {settings.port})"
    )

    parser.add_argument(
        "-u", "-l", "--user",
        default=settings.user,
        help=f"set username to ssh login (default: {settings.user})"
    )

    parser.add_argument(
        "-a", "--ask",
        action="store_true",
        default=settings.ask,
        help="ask username before login"
    )

    parser.add_argument(
        "-w", "--workers",
        type=int,
        default=settings.workers,
        help=f"number of VMs probed in parallel (default: {settings.workers})"
    )

    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration and config search paths"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"ssh-parallels {__version__}"
    )

    return parser


def show_config(settings: Settings) -> None:
    """Display current configuration and where it came from."""
    console = Console()

    console.print("[bold cyan]Configuration Sources[/bold cyan]")
    if settings.config_sources:
        for source in settings.config_sources:
            console.print(f"  [green][OK][/green] {source}")
    else:
        console.print("  [dim]No config files found (using built-in defaults)[/dim]")

    console.print()

    console.print("[bold cyan]Config Search Paths[/bold cyan]")
    for path in get_config_paths():
        exists = "[green][OK][/green]" if path.exists() else "[dim]--[/dim]"
        console.print(f"  {exists} {path}")

    console.print()

    console.print("[bold cyan]Current Settings[/bold cyan]")
    table = Table(box=box.SIMPLE)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("user", settings.user)
    table.add_row("port", str(settings.port))
    table.add_row("ask", str(settings.ask))
    table.add_row("workers", str(settings.workers))
    table.add_row("prlctl", settings.prlctl)
    table.add_row("timeout", str(settings.timeout))
    table.add_row("supported_os", ", ".join(settings.supported_os))

    console.print(table)


def resolve_username(
    address: ResolvedAddress,
    args: argparse.Namespace,
    surface_factory: SurfaceFactory = TerminalSurface,
) -> str:
    """
    Determine the login name, prompting when --ask is set.

    Any prompt failure falls back to the --user value.
    """
    if not args.ask:
        return args.user

    try:
        username = ask_for_username(address.label(), surface_factory)
    except ParallelsSSHError as e:
        logger.info(f"Username prompt failed ({e}), using {args.user}")
        return args.user

    return username or args.user


def run(
    args: argparse.Namespace,
    settings: Settings,
    inspector: Optional[GuestInspector] = None,
    surface_factory: SurfaceFactory = TerminalSurface,
) -> int:
    """
    Discover VM addresses, let the user pick one and connect to it.

    Returns:
        Exit code
    """
    console = Console()
    inspector = inspector or ParallelsInspector(settings.prlctl, settings.timeout)

    results = discover(inspector, settings.supported_os, workers=args.workers)
    addresses = collect_addresses(results)

    if not addresses:
        console.print(NO_VM_MESSAGE, highlight=False)
        return EXIT_OK

    listbox = ListBox(LIST_TITLE, [address.display() for address in addresses])
    result = listbox.display_and_select(surface_factory)

    match result.outcome:
        case Outcome.INTERRUPTED:
            console.print(CANCEL_MESSAGE, highlight=False)
            return EXIT_INTERRUPTED
        case Outcome.CANCELLED:
            return EXIT_OK
        case Outcome.FAULT:
            logger.error(f"[FAIL] Selection aborted: {result.error}")
            return EXIT_FAILURE

    if not 0 <= result.index < len(addresses):
        logger.error(f"[FAIL] Selection out of range: {result.index}")
        return EXIT_FAILURE

    address = addresses[result.index]
    username = resolve_username(address, args, surface_factory)
    return ssh_login(address, username, args.port)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    settings = load_settings()
    parser = create_parser(settings)
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.show_config:
        show_config(settings)
        return EXIT_OK

    try:
        return run(args, settings)
    except KeyboardInterrupt:
        Console().print(CANCEL_MESSAGE, highlight=False)
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.error(f"[FAIL] Unexpected error: {e}", exc_info=args.verbose)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
