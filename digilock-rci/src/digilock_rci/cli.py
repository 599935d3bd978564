"""Command-line interface for digilock-rci.

Sends single commands to a DigiLock 110 for quick checks from a shell.

Usage:
    # Send a directive
    digilock-rci --host 192.168.1.100 send "pid1:gain=5"

    # Query a raw reply
    digilock-rci --host 192.168.1.100 query "pid1:input?"

    # Query a number (SI suffixes decoded)
    digilock-rci --host 192.168.1.100 number "li:modulation:frequency set?"

    # Dump one scope channel, one sample per line
    digilock-rci --config lab.yaml waveform --channel 2 --length 500

    # Serve an emulator for offline development
    digilock-rci emulate --port 60001
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from digilock_rci.channel import RciChannel
from digilock_rci.config import DEFAULT_PORT, RciConfig, load_config
from digilock_rci.emulator import make_digilock_emulator
from digilock_rci.errors import RciError
from digilock_rci.server import EmulatorServer
from digilock_rci.session import RciSession


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_config(args: argparse.Namespace) -> RciConfig:
    """Merge the optional config file with command-line overrides."""
    if args.config:
        config = load_config(args.config)
        return config.replace(
            host=args.host,
            port=args.port,
            timeout=args.timeout,
            verbose=True if args.verbose else None,
        )
    if not args.host:
        raise ValueError("--host or --config is required")
    return RciConfig(
        host=args.host,
        port=args.port or DEFAULT_PORT,
        timeout=args.timeout or 5.0,
        verbose=args.verbose,
    )


def cmd_send(channel: RciChannel, args: argparse.Namespace) -> int:
    """Send a directive."""
    channel.send(args.rci_command)
    return 0


def cmd_query(channel: RciChannel, args: argparse.Namespace) -> int:
    """Print the raw reply to a query."""
    print(channel.query(args.rci_command))
    return 0


def cmd_number(channel: RciChannel, args: argparse.Namespace) -> int:
    """Print the decoded numeric reply to a query."""
    print(repr(channel.query_number(args.rci_command)))
    return 0


def cmd_waveform(channel: RciChannel, args: argparse.Namespace) -> int:
    """Print one waveform channel, one sample per line."""
    samples = channel.query_waveform(args.rci_command, args.channel, args.length)
    for value in samples:
        print(f"{value:.6e}")
    return 0


def cmd_emulate(args: argparse.Namespace) -> int:
    """Serve a DigiLock emulator until interrupted."""
    server = EmulatorServer(make_digilock_emulator(), host=args.bind, port=args.port or DEFAULT_PORT)
    server.start()
    host, port = server.address
    print(f"DigiLock emulator listening on {host}:{port} (Ctrl-C to stop)")
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
    return 0


_CHANNEL_COMMANDS = {
    "send": cmd_send,
    "query": cmd_query,
    "number": cmd_number,
    "waveform": cmd_waveform,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="digilock-rci",
        description="DigiLock 110 remote control interface client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--host", help="Instrument hostname or IP address")
    parser.add_argument("--port", type=int, help=f"RCI port (default: {DEFAULT_PORT})")
    parser.add_argument("--timeout", type=float, help="Connect/read timeout in seconds (default: 5)")
    parser.add_argument("--config", "-c", help="YAML connection config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every command and reply")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    send_parser = subparsers.add_parser("send", help="Send a directive")
    send_parser.add_argument("rci_command", help='Directive, e.g. "pid1:gain=5"')

    query_parser = subparsers.add_parser("query", help="Send a query and print the reply")
    query_parser.add_argument("rci_command", help='Query, e.g. "pid1:input?"')

    number_parser = subparsers.add_parser("number", help="Send a query and print the number")
    number_parser.add_argument("rci_command", help='Query, e.g. "pid1:gain?"')

    waveform_parser = subparsers.add_parser("waveform", help="Acquire one waveform channel")
    waveform_parser.add_argument(
        "rci_command", nargs="?", default="scope:graph?",
        help="Graph query (default: scope:graph?)"
    )
    waveform_parser.add_argument("--channel", type=int, default=1, help="1-based channel (default: 1)")
    waveform_parser.add_argument("--length", type=int, default=1000, help="Samples to return (default: 1000)")

    emulate_parser = subparsers.add_parser("emulate", help="Serve a DigiLock emulator over TCP")
    emulate_parser.add_argument("--bind", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.debug)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "emulate":
        return cmd_emulate(args)

    try:
        config = build_config(args)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        with RciSession(config) as session:
            return _CHANNEL_COMMANDS[args.command](RciChannel(session), args)
    except (RciError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
