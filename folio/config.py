"""Layered configuration for Folio.

Configuration is resolved per level (site, section, page) by merging a
sequence of layers from lowest to highest precedence. Merging never lets
an absent or empty value in a higher layer erase a lower layer's value.

Each level has a closed schema: a frozen dataclass whose fields are the
known options and whose defaults form the built-in default table. Keys a
layer supplies that the schema does not know are kept in ``extras`` so
templates can still reach them.

Key functions and classes:
- merge_layers: Merge configuration mappings by precedence.
- load_header: Load a YAML header file into a mapping.
- SiteConfig, SectionConfig, PageConfig: Closed schemas per level.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import MISSING, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError, UnknownConfigKeyError
from .utils import is_empty, normalize_link

logger = logging.getLogger(__name__)


def merge_layers(*layers: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge configuration layers, lowest precedence first.

    For every key the newest present, non-empty value wins. Keys that
    only appear in a newer layer are added.

    Args:
        *layers: Mappings ordered from lowest to highest precedence.
            ``None`` layers are skipped.

    Returns:
        A new merged dictionary.

    Examples:
        >>> merge_layers({"title": "A", "desc": "x"}, {"title": "", "desc": "y"})
        {'title': 'A', 'desc': 'y'}
    """
    result: dict[str, Any] = {}
    for layer in layers:
        if not layer:
            continue
        for key, new in layer.items():
            key = str(key)
            if key in result and is_empty(new):
                continue
            result[key] = new
    return result


def load_header(path: Path) -> dict[str, Any]:
    """Load a YAML header file.

    Args:
        path: Header file path.

    Returns:
        The mapping stored in the file; an empty file yields ``{}``.

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Malformed header file '{path}': {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Header file '{path}' must contain a mapping, got {type(data).__name__}"
        )
    return {str(k): v for k, v in data.items()}


@dataclass(frozen=True)
class ConfigSchema:
    """Base class for the closed per-level configuration schemas."""

    extras: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def option_names(cls) -> list[str]:
        return [f.name for f in fields(cls) if f.name != "extras"]

    @classmethod
    def defaults(cls) -> dict[str, Any]:
        """Return the built-in default table for this level."""
        table: dict[str, Any] = {}
        for f in fields(cls):
            if f.name == "extras":
                continue
            if f.default_factory is not MISSING:
                table[f.name] = f.default_factory()
            else:
                table[f.name] = f.default
        return table

    @classmethod
    def from_layers(cls, *layers: Mapping[str, Any] | None):
        """Resolve a configuration from layers above the default table.

        Args:
            *layers: Mappings ordered from lowest to highest precedence.

        Returns:
            A frozen configuration instance.

        Raises:
            ConfigurationError: If a known option has an invalid value.
        """
        merged = merge_layers(cls.defaults(), *layers)
        known = set(cls.option_names())
        values = {k: v for k, v in merged.items() if k in known}
        extras = {k: v for k, v in merged.items() if k not in known}
        if extras:
            logger.debug(
                "%s: keeping unrecognized options %s", cls.__name__, sorted(extras)
            )
        return cls(extras=extras, **cls.normalize(values))

    @classmethod
    def normalize(cls, values: dict[str, Any]) -> dict[str, Any]:
        return values

    def conf(self, key: str) -> Any:
        """Look up an option by name.

        Raises:
            UnknownConfigKeyError: If the key is neither a schema option
                nor an extra supplied by a layer.
        """
        key = str(key)
        if key in self.option_names():
            return getattr(self, key)
        if key in self.extras:
            return self.extras[key]
        raise UnknownConfigKeyError(key)

    def as_dict(self) -> dict[str, Any]:
        """Return every option and extra as one mapping."""
        data = {name: getattr(self, name) for name in self.option_names()}
        data.update(self.extras)
        return data


def _positive_int_or_false(name: str, value: Any) -> int | bool:
    if is_empty(value) or value == 0:
        return False
    if isinstance(value, bool):
        raise ConfigurationError(f"Option '{name}' must be a number, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Option '{name}' must be a number, got {value!r}"
        ) from exc
    if number < 0:
        raise ConfigurationError(f"Option '{name}' must not be negative, got {number}")
    return number or False


@dataclass(frozen=True)
class SiteConfig(ConfigSchema):
    """Site-level options: defaults, then CLI overrides, then the site header."""

    title: str = "Untitled"
    author: Any = False
    desc: Any = False
    keywords: list[str] = field(default_factory=list)
    xuacompat: bool = False
    analytics_key: Any = False
    clean: bool = False
    clobber: bool = False
    minify: bool = False
    output: Any = False
    tmp: Any = False
    jobs: Any = False

    @classmethod
    def normalize(cls, values: dict[str, Any]) -> dict[str, Any]:
        values["jobs"] = _positive_int_or_false("jobs", values.get("jobs"))
        return values


@dataclass(frozen=True)
class SectionConfig(ConfigSchema):
    """Section-level options: defaults, then ``section.yaml``."""

    title: str = "Untitled"
    desc: Any = False
    autoindex: bool = False


@dataclass(frozen=True)
class PageConfig(ConfigSchema):
    """Page-level options: defaults, then the frontmatter block."""

    title: str = "Untitled"
    desc: Any = False
    keywords: list[str] = field(default_factory=list)
    collect: list[str] = field(default_factory=list)
    paginate: Any = False
    index: Any = False
    date: Any = False

    @classmethod
    def normalize(cls, values: dict[str, Any]) -> dict[str, Any]:
        values["collect"] = [normalize_link(str(c)) for c in _flatten(values["collect"])]
        values["paginate"] = _positive_int_or_false("paginate", values.get("paginate"))
        keywords = values.get("keywords")
        if isinstance(keywords, str):
            values["keywords"] = [k.strip() for k in keywords.split(",") if k.strip()]
        return values


def _flatten(value: Any) -> list[Any]:
    if value is None or value is False:
        return []
    if isinstance(value, (list, tuple)):
        flat: list[Any] = []
        for item in value:
            flat.extend(_flatten(item))
        return flat
    return [value]
