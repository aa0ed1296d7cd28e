"""Non-destructive copying of resolved sources into the destination tree."""
from __future__ import annotations

import logging
import shutil
from pathlib import Path, PurePath
from typing import Dict, List, Sequence

from .sources import CopyItem
from .utils import ensure_directory

LOGGER = logging.getLogger(__name__)


class OverwriteError(Exception):
    """Raised when a copy or archive would replace something that already exists."""

    def __init__(self, path: Path, message: str | None = None) -> None:
        self.path = Path(path)
        super().__init__(message or f"Refusing to overwrite existing file '{self.path}'.")


def _blocking_ancestor(path: Path, stop: Path) -> Path | None:
    """Return the first ancestor of *path* (up to *stop*) that exists but is not a folder."""

    for parent in [path, *path.parents]:
        if parent.exists() and not parent.is_dir():
            return parent
        if parent == stop:
            break
    return None


def check_targets(items: Sequence[CopyItem], dest_root: Path) -> None:
    """Fail before anything is written if any planned copy would clobber something.

    Checks for targets that already exist on disk, two different sources
    mapped onto the same target and files planned where folders are needed.
    """

    dest_root = Path(dest_root)
    blocker = _blocking_ancestor(dest_root, dest_root.parent)
    if blocker is not None:
        raise OverwriteError(blocker, f"Destination folder '{dest_root}' is blocked by existing file '{blocker}'.")

    planned: Dict[PurePath, CopyItem] = {}
    for item in items:
        previous = planned.get(item.target)
        if previous is not None and previous.source != item.source:
            raise OverwriteError(
                dest_root / item.target,
                f"Both '{previous.source}' and '{item.source}' would be copied to '{dest_root / item.target}'.",
            )
        planned[item.target] = item

    file_targets = {target for target, item in planned.items() if not item.is_dir}
    for target, item in planned.items():
        for parent in target.parents:
            if parent in file_targets:
                raise OverwriteError(
                    dest_root / parent,
                    f"'{dest_root / parent}' is planned as a file but '{item.source}' needs it to be a folder.",
                )

        path = dest_root / target
        blocker = _blocking_ancestor(path.parent, dest_root)
        if blocker is not None:
            raise OverwriteError(blocker, f"Existing file '{blocker}' is in the way of '{path}'.")
        if item.is_dir:
            if path.exists() and not path.is_dir():
                raise OverwriteError(path)
        elif path.exists() or path.is_symlink():
            raise OverwriteError(path)


def copy_file(source: Path, target: Path) -> Path:
    """Copy *source* to *target*, never replacing an existing file."""

    try:
        with open(source, "rb") as fsrc, open(target, "xb") as fdst:
            shutil.copyfileobj(fsrc, fdst)
    except FileExistsError as exc:
        raise OverwriteError(target) from exc
    shutil.copystat(source, target)
    return target


def copy_items(items: Sequence[CopyItem], dest_root: Path) -> List[Path]:
    """Copy every planned item below *dest_root* and return the files written.

    The first conflict stops the run; whatever was copied before it stays.
    """

    dest_root = ensure_directory(Path(dest_root))
    copied: List[Path] = []
    written: Dict[Path, Path] = {}
    for item in items:
        target = dest_root / item.target
        if item.is_dir:
            ensure_directory(target)
            continue
        if target in written:
            if written[target] != item.source:
                raise OverwriteError(
                    target, f"Both '{written[target]}' and '{item.source}' would be copied to '{target}'."
                )
            continue
        ensure_directory(target.parent)
        copy_file(item.source, target)
        LOGGER.debug("Copied '%s' -> '%s'.", item.source, target)
        copied.append(target)
        written[target] = item.source
    return copied


__all__ = ["OverwriteError", "check_targets", "copy_file", "copy_items"]
