"""Helper utilities for the bathpack packaging tool."""
from __future__ import annotations

import re
import string
from pathlib import Path, PurePath
from typing import Dict, Optional

_UNRESOLVED = re.compile(r"\{[^{}]*\}")
_FORMATTER = string.Formatter()


class StrictTemplateDict(dict):
    """Dictionary for safe :py:meth:`str.format_map` usage."""

    def __missing__(self, key: str):  # pragma: no cover - small helper
        raise KeyError(key)


class TemplateError(ValueError):
    """Raised when a template cannot be rendered with the given context."""


def render_template(template: Optional[str], context: Dict[str, object]) -> Optional[str]:
    """Substitute ``{name}`` placeholders in *template* with values from *context*.

    Only plain named fields are supported. Positional fields, attribute or
    index access, conversions, format specs and malformed braces are reported
    as :class:`TemplateError`, as is a result that still looks like a
    ``{...}`` placeholder.
    """

    if template in (None, ""):
        return template
    _check_fields(template, context)
    rendered = template.format_map(StrictTemplateDict({k: str(v) for k, v in context.items()}))

    leftover = find_unresolved(rendered)
    if leftover:
        raise TemplateError(f"unresolved placeholder '{leftover}' in '{template}'")
    return rendered


def _check_fields(template: str, context: Dict[str, object]) -> None:
    try:
        fields = list(_FORMATTER.parse(template))
    except ValueError as exc:
        raise TemplateError(f"invalid template '{template}': {exc}") from exc

    for _, field_name, format_spec, conversion in fields:
        if field_name is None:
            continue
        if field_name == "" or field_name.isdigit():
            raise TemplateError(f"positional placeholder '{{{field_name}}}' in '{template}' is not supported")
        if not field_name.isidentifier():
            raise TemplateError(f"attribute or index access '{{{field_name}}}' in '{template}' is not supported")
        if conversion or format_spec:
            raise TemplateError(f"conversions and format specs in '{template}' are not supported")
        if field_name not in context:
            raise TemplateError(f"unknown placeholder '{{{field_name}}}' in '{template}'")


def find_unresolved(value: str) -> Optional[str]:
    """Return the first ``{...}`` token found in *value*, or ``None``."""

    match = _UNRESOLVED.search(value)
    return match.group(0) if match else None


def ensure_directory(path: Path) -> Path:
    """Create *path* if it does not exist and return it."""

    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_contained(relative: PurePath) -> bool:
    """Return ``True`` if *relative* is relative and never climbs above its base."""

    if relative.is_absolute() or relative.anchor:
        return False
    depth = 0
    for part in relative.parts:
        if part == "..":
            depth -= 1
            if depth < 0:
                return False
        elif part not in ("", "."):
            depth += 1
    return True


__all__ = [
    "StrictTemplateDict",
    "TemplateError",
    "ensure_directory",
    "find_unresolved",
    "is_contained",
    "render_template",
]
