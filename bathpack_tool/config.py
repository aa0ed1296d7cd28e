"""Configuration models and helpers for bathpack."""
from __future__ import annotations

import logging
import posixpath
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path, PurePath
from typing import Dict, Optional

import yaml

from .utils import TemplateError, is_contained, render_template

CONFIG_FILENAME = "bathpack.toml"

LOGGER = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading, validation or interpolation fails."""


@dataclass(frozen=True)
class UserConfig:
    username: str

    @classmethod
    def from_dict(cls, data: Dict) -> "UserConfig":
        username = data.get("username")
        if username is None:
            raise ConfigError("Missing required key 'user.username'.")
        if not isinstance(username, str) or not username.strip():
            raise ConfigError("'user.username' must be a non-empty string.")
        return cls(username=username)

    def to_dict(self) -> Dict:
        return {"username": self.username}


@dataclass(frozen=True)
class SourceSpec:
    """A named origin: a file or folder, optionally narrowed by a glob pattern."""

    path: str
    pattern: Optional[str] = None

    @classmethod
    def from_value(cls, name: str, value: object) -> "SourceSpec":
        if isinstance(value, str):
            if not value:
                raise ConfigError(f"Source '{name}' must be a non-empty path.")
            return cls(path=value)
        if not isinstance(value, dict):
            raise ConfigError(
                f"Source '{name}' must be a path string or a table with 'path' and 'pattern'."
            )
        unknown = set(value) - {"path", "pattern"}
        if unknown:
            raise ConfigError(f"Source '{name}' has unknown keys: {', '.join(sorted(unknown))}.")
        path = value.get("path")
        if not isinstance(path, str) or not path:
            raise ConfigError(f"Source '{name}' must have a non-empty string 'path'.")
        pattern = value.get("pattern")
        if pattern is not None and not isinstance(pattern, str):
            raise ConfigError(f"'pattern' of source '{name}' must be a string.")
        return cls(path=path, pattern=pattern)

    def to_value(self) -> object:
        if self.pattern is None:
            return self.path
        return {"path": self.path, "pattern": self.pattern}


@dataclass(frozen=True)
class DestinationSpec:
    """Where everything ends up: the root folder name, its locations and archiving."""

    name: str
    archive: bool
    locations: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict) -> "DestinationSpec":
        for key in ("name", "archive", "locations"):
            if key not in data:
                raise ConfigError(f"Missing required key 'destination.{key}'.")
        name = data["name"]
        if not isinstance(name, str) or not name:
            raise ConfigError("'destination.name' must be a non-empty string.")
        archive = data["archive"]
        if not isinstance(archive, bool):
            raise ConfigError("'destination.archive' must be true or false.")
        locations = data["locations"]
        if not isinstance(locations, dict):
            raise ConfigError("'destination.locations' must be a table.")
        for key, value in locations.items():
            if not isinstance(value, str):
                raise ConfigError(f"Location '{key}' in [destination.locations] must be a path string.")
        return cls(name=name, archive=archive, locations=dict(locations))

    def to_dict(self) -> Dict:
        return {"name": self.name, "archive": self.archive, "locations": dict(self.locations)}


@dataclass(frozen=True)
class Config:
    user: UserConfig
    sources: Dict[str, SourceSpec]
    destination: DestinationSpec
    interpolated: bool = False

    @property
    def username(self) -> str:
        return self.user.username

    def validate(self) -> None:
        for key in self.sources:
            if key not in self.destination.locations:
                raise ConfigError(f"Key '{key}' from [sources] does not exist in [destination.locations].")
        for key in self.destination.locations:
            if key not in self.sources:
                raise ConfigError(f"Key '{key}' from [destination.locations] does not exist in [sources].")

    @classmethod
    def from_dict(cls, data: Dict) -> "Config":
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a table.")

        user_data = data.get("user")
        if user_data is None:
            # older layout: username at the top level
            user_data = {"username": data["username"]} if "username" in data else {}
        elif not isinstance(user_data, dict):
            raise ConfigError("[user] must be a table.")

        if "sources" not in data:
            raise ConfigError("Missing required table [sources].")
        if not isinstance(data["sources"], dict):
            raise ConfigError("[sources] must be a table.")
        if "destination" not in data:
            raise ConfigError("Missing required table [destination].")
        if not isinstance(data["destination"], dict):
            raise ConfigError("[destination] must be a table.")

        unknown = set(data) - {"user", "username", "sources", "destination"}
        for key in sorted(unknown):
            LOGGER.debug("Ignoring unknown configuration key '%s'.", key)

        config = cls(
            user=UserConfig.from_dict(user_data),
            sources={name: SourceSpec.from_value(name, value) for name, value in data["sources"].items()},
            destination=DestinationSpec.from_dict(data["destination"]),
        )
        config.validate()
        return config

    def to_dict(self) -> Dict:
        return {
            "user": self.user.to_dict(),
            "sources": {name: spec.to_value() for name, spec in self.sources.items()},
            "destination": self.destination.to_dict(),
        }

    def root_name(self) -> str:
        if self.interpolated:
            return self.destination.name
        return _render("destination.name", self.destination.name, {"username": self.username})

    def interpolate(self) -> "Config":
        """Return a copy with every ``{placeholder}`` substituted.

        ``destination.name`` sees ``{username}`` only; source paths, patterns and
        destination locations see ``{username}`` and ``{root}``.
        """

        if self.interpolated:
            return self

        root = self.root_name()
        if not root or root in (".", "..") or any(sep in root for sep in ("/", "\\")):
            raise ConfigError(f"'destination.name' must be a plain folder name, got '{root}'.")

        context = {"username": self.username, "root": root}
        sources: Dict[str, SourceSpec] = {}
        for name, spec in self.sources.items():
            path = _render(f"sources.{name}.path", spec.path, context)
            pattern = None
            if spec.pattern is not None:
                pattern = _render(f"sources.{name}.pattern", spec.pattern, context)
            sources[name] = SourceSpec(path=path, pattern=pattern)

        locations: Dict[str, str] = {}
        for name, location in self.destination.locations.items():
            rendered = _render(f"destination.locations.{name}", location, context)
            if not is_contained(PurePath(rendered)):
                raise ConfigError(
                    f"Location '{name}' ('{rendered}') must be a relative path inside the destination folder."
                )
            locations[name] = posixpath.normpath(rendered)

        return replace(
            self,
            sources=sources,
            destination=replace(self.destination, name=root, locations=locations),
            interpolated=True,
        )


def _render(field_name: str, template: str, context: Dict[str, object]) -> str:
    try:
        return render_template(template, context) or ""
    except TemplateError as exc:
        raise ConfigError(f"Cannot interpolate '{field_name}': {exc}.") from exc


# ---------------------------------------------------------------------------
def parse_config(text: str) -> Config:
    """Parse TOML *text* into a validated, not yet interpolated :class:`Config`."""

    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML: {exc}") from exc
    return Config.from_dict(data)


def find_config(project_dir: Path, filename: str = CONFIG_FILENAME) -> Path:
    path = Path(project_dir).expanduser() / filename
    if not path.is_file():
        raise ConfigError(f"Configuration file '{path}' not found.")
    return path


def load_config(path: Path) -> Config:
    """Read, validate and interpolate the configuration file at *path*."""

    path = Path(path).expanduser()
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file '{path}' not found.") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read configuration file '{path}': {exc}") from exc

    LOGGER.debug("Loaded configuration from '%s'.", path)
    return parse_config(text).interpolate()


def dump_config(config: Config) -> str:
    return yaml.safe_dump(
        config.to_dict(),
        allow_unicode=True,
        sort_keys=False,
        default_flow_style=False,
    )


__all__ = [
    "CONFIG_FILENAME",
    "Config",
    "ConfigError",
    "DestinationSpec",
    "SourceSpec",
    "UserConfig",
    "dump_config",
    "find_config",
    "load_config",
    "parse_config",
]
