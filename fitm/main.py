# fitm/main.py
import argparse
import logging
import os
import sys

from rich.console import Console
from rich.table import Table

from fitm.config import FitmConfig, FitmConfigError
from fitm.errors import FitmError, StartupError
from fitm.logger import setup_fitm_logger
from fitm.restore import load_restore_generator
from fitm.startup import bootstrap, check_privilege
from fitm.state import ORIGIN, Role, StateCoordinate
from fitm.store import SnapshotStore
from fitm.transition import TransitionEngine

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fitm",
        description="fitm: snapshot-based state store for alternating client/server fuzzing"
    )
    parser.add_argument("--config", default=None,
                        help="Path to an alternate config file (otherwise uses ~/.fitm/config.json).")
    parser.add_argument("--work-dir", default=None,
                        help="Root holding active-state/ and saved-states/ (default: config work_dir).")
    parser.add_argument("--prefix", default=None,
                        help="State name prefix, e.g. 'fitm' for fitm-c0s1 ('' for bare c0s1).")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Set the logging level.")
    parser.add_argument("--quiet", action="store_true",
                        help="Minimize console output (overrides log-level to WARNING).")
    parser.add_argument("--no-root-check", action="store_true",
                        help="Skip the root privilege check (criu will likely fail).")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init", help="Run startup checks and create the store directories")

    seed = sub.add_parser("seed", help="Commit an external checkpoint as a saved state")
    seed.add_argument("--state", default=None, help="State name to commit (default: origin)")
    seed.add_argument("--snapshot", required=True, help="criu image directory")
    seed.add_argument("--pipes", required=True, help="Pipe registry file")

    derive = sub.add_parser("derive", help="Materialize the successor of a saved state")
    derive.add_argument("--base", required=True, help="Saved base state name, e.g. fitm-c0s0")
    derive.add_argument("--role", required=True, choices=[r.value for r in Role],
                        help="Whose round is being advanced")

    promote = sub.add_parser("promote", help="Commit an active state to the saved area")
    promote.add_argument("--active", required=True, help="Active directory name")
    promote.add_argument("--state", default=None, help="Saved state name (default: same as --active)")

    discard = sub.add_parser("discard", help="Remove an active directory")
    discard.add_argument("--active", required=True, help="Active directory name")

    sub.add_parser("list", help="Show saved and active states")
    return parser


def states_table(store: SnapshotStore) -> Table:
    table = Table(title="[bold green]fitm states[/]", border_style="bright_blue",
                  show_header=True, header_style="bold magenta")
    table.add_column("State", style="bold cyan", no_wrap=True)
    table.add_column("Client", justify="right")
    table.add_column("Server", justify="right")
    table.add_column("Area", style="yellow")
    saved = set(store.saved_states())
    active = set(store.active_states())
    for coord in sorted(saved | active, key=StateCoordinate.as_tuple):
        areas = [name for name, members in (("saved", saved), ("active", active)) if coord in members]
        table.add_row(store.state_name(coord), str(coord.client_round), str(coord.server_round),
                      ", ".join(areas))
    return table


def run_command(args, cfg: FitmConfig, store: SnapshotStore, logger: logging.Logger) -> None:
    if args.command == "init":
        return
    if args.command == "seed":
        coord = StateCoordinate.parse(args.state, store.prefix) if args.state else ORIGIN
        path = store.seed(coord, args.snapshot, args.pipes)
        console.print(str(path))
    elif args.command == "derive":
        generator = load_restore_generator(cfg.restore_generator, cfg)
        engine = TransitionEngine(store, generator)
        run = engine.derive(args.base, Role(args.role))
        console.print(str(store.active_path(run.active_dir)))
    elif args.command == "promote":
        coord = args.state or args.active
        path = store.promote(args.active, coord)
        console.print(str(path))
    elif args.command == "discard":
        store.discard(args.active)
    elif args.command == "list":
        console.print(states_table(store))
    else:
        logger.error(f"Unknown command {args.command}")


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = FitmConfig.load(args.config, write_default=False)
    except FitmConfigError as e:
        print(f"Failed to load config: {e}", file=sys.stderr)
        sys.exit(1)

    # Override config with CLI args if provided
    if args.work_dir:
        cfg.work_dir = args.work_dir
    if args.prefix is not None:
        cfg.state_prefix = args.prefix
    if args.log_level:
        cfg.log_level = args.log_level
    if args.no_root_check:
        cfg.require_root = False

    # Nothing is written (config, log, store) until the privilege check passes
    try:
        check_privilege(cfg.require_root)
    except StartupError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    try:
        if not os.path.exists(FitmConfig.resolve_path(args.config)):
            FitmConfig().save(args.config)
        logger = setup_fitm_logger(cfg, log_to_console=True, quiet=args.quiet)
    except (FitmConfigError, OSError) as e:
        print(f"Failed to initialize fitm home: {e}", file=sys.stderr)
        sys.exit(1)
    logger.debug(f"Running '{args.command}' with work_dir={cfg.work_dir}")

    try:
        store = bootstrap(cfg)
    except StartupError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    try:
        run_command(args, cfg, store, logger)
    except (FitmError, ValueError) as e:
        logger.error(f"'{args.command}' failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
