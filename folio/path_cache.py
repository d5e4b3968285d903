"""Incremental build manifest for Folio.

The path cache records every output link a build produced, in five
categories. The next build loads it as the "old" cache and diffs it
against what discovery found this time: links that disappeared are
stale outputs to delete, links that are new must be rendered. The
manifest is only a cache; when it is missing or unreadable the build
simply starts from scratch.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from jinja2.sandbox import unsafe

logger = logging.getLogger(__name__)

CATEGORIES = ("pages", "images", "favicons", "stylesheets", "sections")


@dataclass
class PathCache:
    """Ordered output links per category."""

    pages: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    favicons: list[str] = field(default_factory=list)
    stylesheets: list[str] = field(default_factory=list)
    sections: list[str] = field(default_factory=list)

    @unsafe
    def add(self, category: str, link: str) -> None:
        """Append a link to a category, ignoring repeats."""
        links = self.links(category)
        if link not in links:
            links.append(link)

    def links(self, category: str) -> list[str]:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown path cache category: {category}")
        return getattr(self, category)

    def to_dict(self) -> dict[str, list[str]]:
        return {category: list(self.links(category)) for category in CATEGORIES}

    @classmethod
    def from_dict(cls, data: object) -> PathCache:
        """Build a cache from a loaded mapping.

        Raises:
            ValueError: If the data is not a mapping of string lists.
        """
        if not isinstance(data, dict):
            raise ValueError("path cache must be a mapping")
        cache = cls()
        for category in CATEGORIES:
            links = data.get(category, [])
            if links is None:
                links = []
            if not isinstance(links, list) or not all(isinstance(l, str) for l in links):
                raise ValueError(f"path cache category '{category}' must be a list of strings")
            setattr(cache, category, list(links))
        return cache

    @classmethod
    def load(cls, path: Path) -> PathCache | None:
        """Load a persisted cache.

        Returns:
            The cache, or None when the file is absent or corrupt.
        """
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return cls.from_dict(yaml.safe_load(f))
        except (OSError, yaml.YAMLError, ValueError) as exc:
            logger.warning("Ignoring unreadable path cache %s (%s); doing a full build", path, exc)
            return None

    @unsafe
    def save(self, path: Path) -> None:
        """Persist the cache, replacing any previous file atomically."""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False, default_flow_style=False)
        os.replace(tmp, path)

    def diff(self, old: PathCache | None) -> PathCacheDiff:
        """Classify links against a previous build's cache."""
        return PathCacheDiff.between(old, self)


@dataclass
class CategoryDiff:
    """Kept, removed and added links of one category, order preserving."""

    kept: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.removed or self.added)


@dataclass
class PathCacheDiff:
    """Result of diffing an old path cache against a new one."""

    categories: dict[str, CategoryDiff]
    incremental: bool

    @classmethod
    def between(cls, old: PathCache | None, new: PathCache) -> PathCacheDiff:
        categories = {}
        for category in CATEGORIES:
            new_links = new.links(category)
            old_links = old.links(category) if old is not None else []
            new_set = set(new_links)
            old_set = set(old_links)
            categories[category] = CategoryDiff(
                kept=[l for l in old_links if l in new_set],
                removed=[l for l in old_links if l not in new_set],
                added=[l for l in new_links if l not in old_set],
            )
        return cls(categories=categories, incremental=old is not None)

    def __getitem__(self, category: str) -> CategoryDiff:
        return self.categories[category]

    @property
    def structure_changed(self) -> bool:
        """Whether any page or section was added or removed."""
        return self["pages"].changed or self["sections"].changed

    def is_new(self, category: str, link: str) -> bool:
        return link in self[category].added
