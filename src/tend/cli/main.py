"""Main CLI entry point."""

from __future__ import annotations

import argparse
import sys

from tend import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="tend",
        description="Run prep commands and keep development daemons running",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  tend run -p "make" -d "./server"   Build, then run and babysit ./server
  tend prep -p "go vet ./..."        Run preps once
  tend config                        Show configuration

While running: SIGHUP re-runs preps and restarts daemons,
SIGINT/SIGTERM shut daemons down and exit.

Config: ~/.tend/config.json
""",
    )

    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"tend {__version__}",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        metavar="<command>",
        title="Commands",
    )

    from tend.cli.commands import config, run

    run.register_commands(subparsers)
    config.register_commands(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except Exception as e:
        if not args.quiet:
            print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
