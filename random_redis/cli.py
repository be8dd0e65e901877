"""
Command-line interface for random-redis.

Provides manual control over throwaway servers:
- Start a server on a random port and keep it until interrupted
- Print a free port
"""

import sys
import json
import signal
import logging
import argparse
import threading
from typing import Optional, List
from enum import Enum

from .config import RedisServerConfig
from .errors import RandomRedisError
from .port_manager import allocate_port
from .redis_server import RedisServer, new_server


logger = logging.getLogger(__name__)


class ExitCode(int, Enum):
    """CLI exit codes"""
    SUCCESS = 0
    ERROR = 1
    INVALID_ARGS = 2


class OutputFormat(str, Enum):
    """Output format options"""
    TEXT = "text"
    JSON = "json"


def setup_logging(verbose: int) -> None:
    """
    Setup logging based on verbosity level.

    Args:
        verbose: Verbosity count (0=WARNING, 1=INFO, 2+=DEBUG)
    """
    if verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def _print_server(server: RedisServer, output_format: str) -> None:
    if output_format == OutputFormat.JSON.value:
        output = {
            "id": server.server_id,
            "host": server.host,
            "port": server.port,
            "address": server.address,
            "pid": server.pid,
            "pid_file": server.pid_file,
        }
        print(json.dumps(output, indent=2), flush=True)
    else:
        print(f"Redis server {server.server_id} running", flush=True)
        print(f"  Address: {server.address}", flush=True)
        print(f"  PID:     {server.pid}", flush=True)
        print("Press Ctrl-C to stop", flush=True)


def cmd_start(args, stop_event: Optional[threading.Event] = None) -> int:
    """
    Start a server and block until interrupted.

    Args:
        args: Parsed command arguments
        stop_event: Event that ends the wait (SIGINT/SIGTERM set it when omitted)

    Returns:
        Exit code
    """
    try:
        config = RedisServerConfig.from_env().with_overrides(
            host=args.host,
            command=args.command_path,
            file_location=args.dir,
            startup_timeout=args.startup_timeout,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return ExitCode.INVALID_ARGS.value

    try:
        server = new_server(config)
    except RandomRedisError as e:
        print(f"Error: {e}", file=sys.stderr)
        return ExitCode.ERROR.value

    if stop_event is None:
        stop_event = threading.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, lambda signum, frame: stop_event.set())

    try:
        _print_server(server, args.format)
        stop_event.wait()
        logger.info(f"Shutdown requested for Redis server {server.server_id}")
    finally:
        server.stop()

    return ExitCode.SUCCESS.value


def cmd_port(args) -> int:
    """
    Print a free port on the requested host.

    Args:
        args: Parsed command arguments

    Returns:
        Exit code
    """
    host = args.host or RedisServerConfig.from_env().host
    try:
        port = allocate_port(host)
    except RandomRedisError as e:
        print(f"Error: {e}", file=sys.stderr)
        return ExitCode.ERROR.value

    if args.format == OutputFormat.JSON.value:
        print(json.dumps({"host": host, "port": port}, indent=2))
    else:
        print(port)

    return ExitCode.SUCCESS.value


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the random-redis command"""
    parser = argparse.ArgumentParser(
        prog="random-redis",
        description="Throwaway Redis servers on random ports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s start                      # Start a server, stop it on Ctrl-C
  %(prog)s --format json start        # Print server details as JSON
  %(prog)s start --dir /var/tmp       # Put dump and pid files elsewhere
  %(prog)s port                       # Print a free port
        """
    )

    # Global options
    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (can be repeated: -v, -vv)'
    )
    parser.add_argument(
        '--format',
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.TEXT.value,
        help='Output format'
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Start command
    start_parser = subparsers.add_parser(
        'start',
        help='Start a Redis server on a random port'
    )
    start_parser.add_argument(
        '--host',
        help='Host to bind (default: localhost)'
    )
    start_parser.add_argument(
        '--command',
        dest='command_path',
        help='redis-server executable (default: redis-server)'
    )
    start_parser.add_argument(
        '--dir',
        help='Directory for dump and pid files (default: /tmp)'
    )
    start_parser.add_argument(
        '--startup-timeout',
        type=float,
        help='Seconds the server must stay up to count as started (default: 0.2)'
    )

    # Port command
    port_parser = subparsers.add_parser(
        'port',
        help='Print a free port'
    )
    port_parser.add_argument(
        '--host',
        help='Host to allocate on (default: localhost)'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = build_parser()

    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else ExitCode.INVALID_ARGS.value

    # Setup logging
    setup_logging(args.verbose)

    # Route to command handler
    if not args.command:
        parser.print_help()
        return ExitCode.SUCCESS.value

    if args.command == 'start':
        return cmd_start(args)
    elif args.command == 'port':
        return cmd_port(args)
    else:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return ExitCode.INVALID_ARGS.value


if __name__ == '__main__':
    sys.exit(main())
