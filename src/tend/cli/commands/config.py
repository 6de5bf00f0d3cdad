"""Configuration commands."""

from __future__ import annotations

import argparse

from tend.cli.formatters import print_error, print_info, print_json, print_success


def cmd_config(args: argparse.Namespace) -> int:
    """Show the effective configuration."""
    from tend.core.config import Config

    config = Config(args.config) if args.config else Config()

    if not config.path.exists():
        print_info(f"No config file at {config.path}, showing defaults")

    if args.json or not config.path.exists():
        print_json(config.to_dict())
    else:
        print(f"Config file: {config.path}")
        print()
        print(config.path.read_text())
    return 0


def cmd_init(args: argparse.Namespace) -> int:
    """Write a starter config file."""
    from tend.core.config import Config

    config = Config(args.config, load=False) if args.config else Config(load=False)

    if config.path.exists() and not args.force:
        print_info(f"Config already exists: {config.path}")
        print_info("Use --force to overwrite")
        return 0

    try:
        config.prep("echo prep").daemon("echo daemon && sleep 3600").save()
    except OSError as e:
        print_error(f"Failed to create config: {e}")
        return 1

    print_success(f"Created config: {config.path}")
    print_info("Edit this file to set your preps and daemons.")
    return 0


def register_commands(subparsers: argparse._SubParsersAction) -> None:
    """Register config commands."""
    config_parser = subparsers.add_parser(
        "config",
        help="Show configuration",
    )
    config_parser.add_argument("-c", "--config", metavar="PATH", help="Config file")
    config_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the parsed configuration as JSON",
    )
    config_parser.set_defaults(func=cmd_config)

    init_parser = subparsers.add_parser(
        "init",
        help="Create a starter config file",
    )
    init_parser.add_argument("-c", "--config", metavar="PATH", help="Config file")
    init_parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Overwrite existing config",
    )
    init_parser.set_defaults(func=cmd_init)
