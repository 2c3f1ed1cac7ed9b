"""Command-line interface for pcap-streams."""

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.text import Text
from rich import box

from . import __version__
from .config import PcapStreamsConfig
from .capture.engine import LiveCaptureEngine
from .capture.interface_manager import InterfaceDirectory
from .capture.reader import OfflineReader
from .capture.writer import OfflineWriter
from .constants import STDIO_PATH
from .errors import PcapError


console = Console(stderr=True)
logger = logging.getLogger("pcap_streams")


def setup_logging(level: str = "INFO", rich_tracebacks: bool = True) -> None:
    """Route library logging through Rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=rich_tracebacks)],
        force=True,
    )


def list_interfaces(args) -> int:
    """List available network interfaces."""
    directory = InterfaceDirectory()
    interfaces = directory.list_interfaces()

    table = Table(title="Available Network Interfaces", box=box.ROUNDED)
    table.add_column("Interface", style="bold cyan")
    table.add_column("Flags")
    table.add_column("Addresses")
    table.add_column("Status")

    for info in interfaces.values():
        status = "UP" if info.is_up else "DOWN"
        status_style = "green" if info.is_up else "red"

        addresses = info.ipv4_addresses() + info.ipv6_addresses()
        table.add_row(
            info.name,
            ",".join(flag.name for flag in info.flags) or "-",
            "\n".join(addresses) or "N/A",
            Text(status, style=status_style),
        )

    console.print(table)
    return 0


def run_count(args) -> int:
    """Count the packets of a capture file."""
    with OfflineReader(args.file) as reader:
        total = reader.count()
    console.print(f"[cyan]{escape(args.file)}: {total:,} packets[/cyan]")
    return 0


def run_copy(args) -> int:
    """Copy every packet of one capture file into another."""
    with OfflineReader(args.source) as reader, OfflineWriter(args.destination) as writer:
        copied = writer.write_from(reader)
    if args.destination != STDIO_PATH:
        console.print(f"[green]Copied {copied:,} packets to {args.destination}[/green]")
    return 0


def run_capture(args) -> int:
    """Run a bounded live capture."""
    config = PcapStreamsConfig.load(args.config)
    if not args.verbose:
        setup_logging(config.logging.level, config.logging.rich_tracebacks)

    params = config.to_parameters(
        interface=args.interface,
        output=args.output,
        max_packets=args.count,
        promiscuous=True if args.promisc else None,
        timeout_ms=args.timeout_ms,
    )
    engine = LiveCaptureEngine(params)

    issues = engine.check_ready()
    if issues:
        console.print("[yellow]Capture may fail:[/yellow]")
        for issue in issues:
            console.print(f"  - {issue}")

    # Signal handler for graceful shutdown
    def signal_handler(sig, frame):
        console.print("\n[yellow]Stopping capture...[/yellow]")
        engine.stop()

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    console.print(f"[green]Starting capture on: {params.interface_name}[/green]")
    stats = engine.start()

    console.print(
        f"[cyan]Packets: {stats.packets_captured:,} | "
        f"Bytes: {stats.bytes_captured:,} | "
        f"Rate: {stats.packets_per_second:.1f} pps[/cyan]"
    )
    if stats.stopped:
        console.print("[yellow]Capture stopped before reaching the packet limit.[/yellow]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pcap-streams",
        description="Read, write, copy and capture pcap streams.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # List interfaces command
    list_parser = subparsers.add_parser("list", help="List available network interfaces")
    list_parser.set_defaults(func=list_interfaces)

    count_parser = subparsers.add_parser("count", help="Count packets in a capture file")
    count_parser.add_argument("file", help="Capture file ('-' for stdin)")
    count_parser.set_defaults(func=run_count)

    copy_parser = subparsers.add_parser("copy", help="Copy packets between capture files")
    copy_parser.add_argument("source", help="Source capture file ('-' for stdin)")
    copy_parser.add_argument("destination", help="Destination capture file ('-' for stdout)")
    copy_parser.set_defaults(func=run_copy)

    # Capture command
    capture_parser = subparsers.add_parser("capture", help="Capture packets off an interface")
    capture_parser.add_argument(
        "-i", "--interface",
        help="Interface to capture on (e.g., eth0)",
    )
    capture_parser.add_argument(
        "-o", "--output",
        help="Output capture file ('-' for stdout)",
    )
    capture_parser.add_argument(
        "-n", "--count",
        type=int,
        help="Number of packets to capture",
    )
    capture_parser.add_argument(
        "-p", "--promisc",
        action="store_true",
        help="Put the interface in promiscuous mode",
    )
    capture_parser.add_argument(
        "-t", "--timeout-ms",
        type=int,
        help="Read timeout in milliseconds (default: 1000)",
    )
    capture_parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
    )
    capture_parser.set_defaults(func=run_capture)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging("DEBUG" if args.verbose else "INFO")

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except (PcapError, OSError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
