"""Run and prep commands."""

from __future__ import annotations

import argparse

from tend.cli.formatters import print_error, print_info, print_success


def build_config(args: argparse.Namespace):
    """Load the config file and add commands given on the command line."""
    from tend.core.config import Config

    config = Config(args.config) if args.config else Config()
    if args.prep:
        config.prep(*args.prep)
    for command in getattr(args, "daemon", None) or []:
        config.daemon(command, args.restart_signal)
    if getattr(args, "min_restart", None) is not None:
        config.min_restart(args.min_restart)
    if args.shell:
        config.shell(args.shell)
    if args.log_level:
        config.log_level(args.log_level)
    return config.build()


def cmd_run(args: argparse.Namespace) -> int:
    """Run preps, then keep daemons going until interrupted."""
    from tend.core.session import Session
    from tend.core.shutdown import ShutdownHandler
    from tend.utils.logging import TermLog, setup_logging

    data = build_config(args)
    if not data.preps and not data.daemons:
        print_error("Nothing to run: give --prep/--daemon or add them to the config file")
        return 1

    setup_logging(log_file=data.logging.file, level=data.logging.level)
    session = Session(data, TermLog())

    handler = ShutdownHandler()
    handler.on_shutdown(session.stop).on_reload(session.trigger)
    handler.install()

    if not session.start():
        print_info("Prep failed; send SIGHUP to retry")
    try:
        handler.run()
    finally:
        handler.uninstall()
    return 0


def cmd_prep(args: argparse.Namespace) -> int:
    """Run preps once."""
    from tend.core.prep import run_preps
    from tend.core.proc import ProcError
    from tend.utils.logging import TermLog, setup_logging

    data = build_config(args)
    setup_logging(log_file=data.logging.file, level=data.logging.level)

    try:
        run_preps(
            data.preps,
            TermLog(),
            shell=data.settings.shell,
            drain_timeout=data.settings.drain_timeout,
        )
    except ProcError as e:
        print_error(f"Prep failed: {e.command}: {e}")
        return 1

    if not args.quiet:
        print_success(f"{len(data.preps)} prep(s) completed")
    return 0


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c", "--config",
        metavar="PATH",
        help="Config file (default: ~/.tend/config.json)",
    )
    parser.add_argument(
        "-p", "--prep",
        action="append",
        metavar="CMD",
        help="Prep command; repeat for more, run in order",
    )
    parser.add_argument(
        "--shell",
        help="Shell commands are run with (default: /bin/sh)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level",
    )


def register_commands(subparsers: argparse._SubParsersAction) -> None:
    """Register run and prep commands."""
    # run
    run_parser = subparsers.add_parser(
        "run",
        help="Run preps and daemons in foreground",
    )
    _add_common(run_parser)
    run_parser.add_argument(
        "-d", "--daemon",
        action="append",
        metavar="CMD",
        help="Daemon command; repeat for more",
    )
    run_parser.add_argument(
        "-s", "--restart-signal",
        default="SIGHUP",
        metavar="SIG",
        help="Signal sent to daemons given with --daemon to restart them",
    )
    run_parser.add_argument(
        "--min-restart",
        type=float,
        metavar="SECONDS",
        help="Minimum time between daemon launches",
    )
    run_parser.set_defaults(func=cmd_run)

    # prep
    prep_parser = subparsers.add_parser(
        "prep",
        help="Run preps once and exit",
    )
    _add_common(prep_parser)
    prep_parser.set_defaults(func=cmd_prep)
