"""Expansion of configured sources into concrete files to copy."""
from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Iterable, List

from .config import Config, SourceSpec

LOGGER = logging.getLogger(__name__)


class SourceError(Exception):
    """Raised when a source cannot be resolved to files on disk."""


@dataclass(frozen=True)
class CopyItem:
    """A single planned copy.

    ``source`` is an absolute path, ``target`` is relative to the destination
    root. Directory items only exist for empty folders, which would otherwise
    disappear from the copied tree.
    """

    source: Path
    target: PurePath
    is_dir: bool = False


def _source_path(raw: str, project_dir: Path) -> Path:
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = project_dir / path
    return path


def _walk_directory(directory: Path, target: PurePath) -> Iterable[CopyItem]:
    """Yield items for every file (and every empty folder) below *directory*."""

    if not any(directory.iterdir()):
        yield CopyItem(source=directory, target=target, is_dir=True)
        return
    for item in sorted(directory.rglob("*")):
        relative = item.relative_to(directory)
        if item.is_dir():
            if not any(item.iterdir()):
                yield CopyItem(source=item, target=target / relative, is_dir=True)
            continue
        yield CopyItem(source=item, target=target / relative)


def resolve_source(name: str, spec: SourceSpec, location: str, project_dir: Path) -> List[CopyItem]:
    """Expand one source into copy items rooted at *location*."""

    base = PurePath(posixpath.normpath(location))
    path = _source_path(spec.path, project_dir)

    if spec.pattern is None:
        if not path.exists():
            raise SourceError(f"Source '{name}': path '{path}' does not exist.")
        if path.is_dir():
            return list(_walk_directory(path, base / path.name))
        return [CopyItem(source=path, target=base / path.name)]

    if not spec.pattern or PurePath(spec.pattern).is_absolute() or ".." in PurePath(spec.pattern).parts:
        raise SourceError(f"Source '{name}': invalid pattern '{spec.pattern}'.")
    if not path.is_dir():
        raise SourceError(f"Source '{name}': folder '{path}' does not exist.")

    try:
        matches = sorted(path.glob(spec.pattern))
    except (ValueError, NotImplementedError) as exc:
        raise SourceError(f"Source '{name}': invalid pattern '{spec.pattern}': {exc}") from exc
    if not matches:
        raise SourceError(f"Source '{name}': no matches for pattern '{spec.pattern}' in '{path}'.")

    items: List[CopyItem] = []
    for match in matches:
        relative = match.relative_to(path)
        if match.is_dir():
            items.extend(_walk_directory(match, base / relative))
        else:
            items.append(CopyItem(source=match, target=base / relative))
    # a matched folder and a matched file inside it plan the same copy
    return _dedupe(items)


def _dedupe(items: Iterable[CopyItem]) -> List[CopyItem]:
    seen = set()
    unique: List[CopyItem] = []
    for item in items:
        key = (item.source, item.target)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def resolve_sources(config: Config, project_dir: Path) -> List[CopyItem]:
    """Resolve every source of an interpolated *config*, in key order."""

    project_dir = Path(project_dir).expanduser().resolve()
    items: List[CopyItem] = []
    for name in sorted(config.sources):
        spec = config.sources[name]
        resolved = resolve_source(name, spec, config.destination.locations[name], project_dir)
        LOGGER.info("Source '%s' resolved to %d item(s).", name, len(resolved))
        items.extend(resolved)
    return items


__all__ = ["CopyItem", "SourceError", "resolve_source", "resolve_sources"]
