"""Zipping of the finished destination tree."""
from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Optional

from .copier import OverwriteError

LOGGER = logging.getLogger(__name__)


def archive_path_for(root: Path) -> Path:
    """Return where the archive of *root* goes: ``<name>.zip`` beside it."""

    root = Path(root)
    return root.with_name(f"{root.name}.zip")


def create_archive(root: Path, archive_path: Optional[Path] = None) -> Path:
    """Zip the folder *root* and return the archive path.

    Entries are prefixed with the folder name so extracting the archive
    recreates the folder itself. An existing archive is never replaced.
    """

    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Cannot archive '{root}': folder not found.")
    archive_path = Path(archive_path) if archive_path is not None else archive_path_for(root)

    LOGGER.info("Archiving '%s' into '%s'.", root, archive_path)
    base_name = Path(root.name)
    try:
        with zipfile.ZipFile(archive_path, "x", compression=zipfile.ZIP_DEFLATED) as archive:
            entries = sorted(root.rglob("*"))
            if not entries:
                archive.writestr(zipfile.ZipInfo(base_name.as_posix() + "/"), "")
            for path in entries:
                arcname = base_name / path.relative_to(root)
                if path.is_dir():
                    # zipfile does not create directory entries by default for empty dirs
                    if not any(path.iterdir()):
                        archive.writestr(zipfile.ZipInfo(arcname.as_posix() + "/"), "")
                    continue
                archive.write(path, arcname=arcname.as_posix())
    except FileExistsError as exc:
        raise OverwriteError(archive_path) from exc
    except BaseException:
        archive_path.unlink(missing_ok=True)
        raise

    return archive_path


__all__ = ["archive_path_for", "create_archive"]
