"""The bathpack pipeline: resolve sources, copy them, archive the result."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .archive import archive_path_for, create_archive
from .config import Config
from .copier import OverwriteError, check_targets, copy_items
from .sources import CopyItem, resolve_sources

LOGGER = logging.getLogger(__name__)


class PackError(Exception):
    """Raised when the pipeline itself cannot run."""


@dataclass(frozen=True)
class PackPlan:
    dest_root: Path
    archive_path: Optional[Path]
    items: List[CopyItem] = field(default_factory=list)


@dataclass(frozen=True)
class PackResult:
    dest_root: Path
    copied: List[Path] = field(default_factory=list)
    archive_path: Optional[Path] = None


@dataclass
class Packer:
    config: Config
    project_dir: Path
    output_dir: Optional[Path] = None
    archive: bool = True
    logger: logging.Logger = LOGGER

    def __post_init__(self) -> None:
        self.config = self.config.interpolate()
        self.project_dir = Path(self.project_dir).expanduser().resolve()
        if self.output_dir is not None:
            self.output_dir = Path(self.output_dir).expanduser().resolve()

    @property
    def dest_root(self) -> Path:
        return (self.output_dir or self.project_dir) / self.config.destination.name

    def plan(self) -> PackPlan:
        """Work out every copy without touching the filesystem."""

        if not self.project_dir.is_dir():
            raise PackError(f"Project folder '{self.project_dir}' does not exist.")

        items = resolve_sources(self.config, self.project_dir)
        archive_path = None
        if self.archive and self.config.destination.archive:
            archive_path = archive_path_for(self.dest_root)
        return PackPlan(dest_root=self.dest_root, archive_path=archive_path, items=items)

    def check(self, plan: PackPlan) -> None:
        """Refuse the plan if it would overwrite anything, before a single byte is written."""

        check_targets(plan.items, plan.dest_root)
        if plan.archive_path is not None and (plan.archive_path.exists() or plan.archive_path.is_symlink()):
            raise OverwriteError(plan.archive_path)

    def run(self) -> PackResult:
        plan = self.plan()
        self.logger.info("Packing %d item(s) into '%s'.", len(plan.items), plan.dest_root)
        self.check(plan)

        copied = copy_items(plan.items, plan.dest_root)
        self.logger.info("Copied %d file(s) into '%s'.", len(copied), plan.dest_root)

        archive_path = None
        if plan.archive_path is not None:
            archive_path = create_archive(plan.dest_root, plan.archive_path)
            self.logger.info("Archive written to '%s'.", archive_path)

        return PackResult(dest_root=plan.dest_root, copied=copied, archive_path=archive_path)


__all__ = ["PackError", "PackPlan", "PackResult", "Packer"]
