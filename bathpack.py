"""Command line interface for bathpack."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

from bathpack_tool.config import CONFIG_FILENAME, Config, ConfigError, dump_config, find_config, load_config
from bathpack_tool.copier import OverwriteError
from bathpack_tool.pack import Packer, PackError, PackPlan
from bathpack_tool.sources import SourceError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bathpack",
        description="Copy a project's files into a destination folder and zip it, as described by bathpack.toml.",
    )
    parser.add_argument("project", nargs="?", default=".", help="Project folder (default: current folder).")
    parser.add_argument("-c", "--config", help=f"Path to the configuration file (default: <project>/{CONFIG_FILENAME}).")
    parser.add_argument(
        "-o", "--output", help="Folder in which to create the destination folder (default: the project folder)."
    )
    parser.add_argument("--no-archive", action="store_true", help="Do not create the zip archive.")
    parser.add_argument(
        "-n", "--dry-run", action="store_true", help="Show what would be copied without writing anything."
    )
    parser.add_argument("--show-config", action="store_true", help="Print the resolved configuration and exit.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase logging verbosity.")
    return parser


def configure_logging(level: int) -> None:
    if level >= 2:
        log_level = logging.DEBUG
    elif level == 1:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING
    logging.basicConfig(level=log_level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def load_project_config(project_dir: Path, config_path: Optional[str]) -> Config:
    try:
        path = Path(config_path) if config_path else find_config(project_dir)
        return load_config(path)
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        sys.exit(1)


def print_plan(plan: PackPlan) -> None:
    print(f"Destination: {plan.dest_root}")
    for item in plan.items:
        suffix = "/" if item.is_dir else ""
        print(f"  {item.source}{suffix} -> {item.target.as_posix()}{suffix}")
    if plan.archive_path is not None:
        print(f"Archive: {plan.archive_path}")


def handle_run(args: argparse.Namespace, config: Config, project_dir: Path) -> None:
    packer = Packer(
        config=config,
        project_dir=project_dir,
        output_dir=Path(args.output) if args.output else None,
        archive=not args.no_archive,
    )
    try:
        if args.dry_run:
            plan = packer.plan()
            packer.check(plan)
            print_plan(plan)
            return
        result = packer.run()
    except (PackError, SourceError, OverwriteError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Copied {len(result.copied)} file(s) into {result.dest_root}")
    if result.archive_path is not None:
        print(f"Archive created at: {result.archive_path}")


def main(argv: Optional[Iterable[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    project_dir = Path(args.project)
    config = load_project_config(project_dir, args.config)

    if args.show_config:
        print(dump_config(config), end="")
        return

    handle_run(args, config, project_dir)


if __name__ == "__main__":
    main()
