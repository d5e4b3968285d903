"""Utility functions for Folio.

This module contains small helpers used throughout the Folio codebase:
title derivation, link normalization, link-to-file mapping and
filesystem housekeeping.

Key functions:
    titleize: Convert a page name to a human-readable title.
    is_empty: Decide whether a configuration value counts as absent.
    normalize_link: Canonicalize a section or page link.
    section_link: Derive the link of a directory relative to the site root.
    output_file_for: Map a root-relative link to a relative output file.
    ensure_clean_dir: Ensure a directory exists and is empty.
    prune_empty_dirs: Remove empty directories up to a boundary.
"""

from __future__ import annotations

import re
import shutil
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any

_WORD_SPLIT_RE = re.compile(r"[\s\-_]+")


def titleize(name: str) -> str:
    """Convert a page name to a human-readable title.

    Replaces hyphens, underscores and whitespace with spaces and
    capitalizes each word.

    Args:
        name: Page name (filename without its suffixes).

    Returns:
        Human-readable title string.

    Examples:
        >>> titleize("getting-started")
        'Getting Started'

        >>> titleize("release_notes")
        'Release Notes'
    """
    words = _WORD_SPLIT_RE.split(name)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def is_empty(value: Any) -> bool:
    """Check whether a configuration value counts as absent.

    ``None``, ``False`` and empty strings or containers are empty.
    Zero is a real value.

    Args:
        value: Value to check.

    Returns:
        True if the value should not override a lower layer.
    """
    if value is None or value is False:
        return True
    if isinstance(value, (str, list, tuple, dict, set, frozenset)):
        return len(value) == 0
    return False


def normalize_link(link: str | PurePosixPath) -> str:
    """Canonicalize a link to a section or page.

    Links always start with a slash. Directory-like links end with a
    slash; links naming a file (a final segment containing a dot) do not.

    Args:
        link: Link such as ``blog``, ``/blog`` or ``/blog/``.

    Returns:
        Normalized link.

    Examples:
        >>> normalize_link("blog")
        '/blog/'

        >>> normalize_link("/blog/index.html")
        '/blog/index.html'
    """
    text = str(link).strip()
    parts = [p for p in text.split("/") if p and p != "."]
    if not parts:
        return "/"
    joined = "/" + "/".join(parts)
    if "." in parts[-1] and not text.endswith("/"):
        return joined
    return joined + "/"


def section_link(root: Path, directory: Path) -> str:
    """Derive the output link of a section directory.

    Args:
        root: Site root directory.
        directory: Section directory inside the root.

    Returns:
        ``/`` for the root itself, otherwise ``/relative/dir/``.
    """
    rel = directory.relative_to(root)
    if rel == Path("."):
        return "/"
    return "/" + rel.as_posix().strip("/") + "/"


def output_file_for(link: str) -> Path:
    """Map a root-relative link to a relative output file path.

    Args:
        link: Link beginning with a slash.

    Returns:
        Relative path of the file that serves the link.

    Examples:
        >>> output_file_for("/blog/")
        PosixPath('blog/index.html')

        >>> output_file_for("/blog/index.html")
        PosixPath('blog/index.html')
    """
    rel = link.lstrip("/")
    if not rel or rel.endswith("/"):
        rel = rel + "index.html"
    return Path(rel)


def file_created_at(path: Path) -> datetime:
    """Return the creation time of a file as a naive local datetime.

    Uses the birth time where the platform records one, otherwise the
    inode change time.

    Args:
        path: File to inspect.

    Returns:
        Creation datetime.
    """
    stat = path.stat()
    timestamp = getattr(stat, "st_birthtime", None) or stat.st_ctime
    return datetime.fromtimestamp(timestamp)


def is_hidden(path: Path) -> bool:
    """Check whether a path names a hidden file or directory."""
    return path.name.startswith(".")


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(str(path))
    path.mkdir(parents=True, exist_ok=True)


def prune_empty_dirs(start: Path, boundary: Path) -> None:
    """Remove empty directories from ``start`` upwards, stopping at ``boundary``.

    Args:
        start: Directory to begin with.
        boundary: Directory that is never removed.
    """
    current = start
    while current != boundary and boundary in current.parents:
        if not current.is_dir() or any(current.iterdir()):
            return
        current.rmdir()
        current = current.parent
