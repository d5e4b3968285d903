"""Site assets for Folio.

Assets live in the tooling directory and are materialized under the
output's own ``_folio/`` directory, except the favicon, whose ICO form
is served from the output root.

Key components:
- Image, Stylesheet, Script, Favicon: Discovered asset files and the
  links they are served under.
- discover_*: Find each kind of asset in the tooling directory.
- AssetPipeline: Materializes every discovered asset into the output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from markupsafe import Markup

from .asset_processors import (
    AssetProcessorRegistry,
    create_default_registry,
    render_favicon,
)
from .html_utils import escape_html
from .utils import is_hidden, output_file_for, prune_empty_dirs

if TYPE_CHECKING:
    from .site import Site

logger = logging.getLogger(__name__)

TOOLING_LINK = "/_folio/"
IMAGE_SUFFIXES = (".png", ".gif", ".jpg", ".jpeg", ".svg", ".webp", ".ico")
STYLESHEET_SUFFIXES = (".css", ".scss", ".sass")
FAVICON_SUFFIXES = (".png", ".gif", ".ico", ".jpg", ".jpeg")
FAVICON_PNG_SIZES = (16, 32, 96, 192)


@dataclass(frozen=True)
class Image:
    """An image copied to ``/_folio/images/``."""

    source: Path
    link: str

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def output_file(self) -> Path:
        return output_file_for(self.link)


@dataclass(frozen=True)
class Stylesheet:
    """A stylesheet served as ``/_folio/<stem>.css``.

    Sass sources are compiled; plain CSS is copied.
    """

    source: Path
    link: str

    @property
    def name(self) -> str:
        return self.source.stem

    @property
    def is_css(self) -> bool:
        return self.source.suffix == ".css"

    @property
    def output_file(self) -> Path:
        return output_file_for(self.link)

    def tag(self) -> Markup:
        return Markup(f'<link rel="stylesheet" href="{escape_html(self.link)}">')


@dataclass(frozen=True)
class Script:
    """A script copied to ``/_folio/scripts/``."""

    source: Path
    link: str

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def output_file(self) -> Path:
        return output_file_for(self.link)

    def tag(self) -> Markup:
        return Markup(f'<script src="{escape_html(self.link)}"></script>')


@dataclass(frozen=True)
class FaviconFormat:
    """One rendered size of the favicon."""

    format: str
    size: int
    link: str

    @property
    def resolution(self) -> str:
        return f"{self.size}x{self.size}"

    @property
    def output_file(self) -> Path:
        return output_file_for(self.link)


@dataclass(frozen=True)
class Favicon:
    """The site icon and every format rendered from it."""

    source: Path
    formats: list[FaviconFormat] = field(default_factory=list)

    @classmethod
    def for_source(cls, source: Path) -> Favicon:
        formats = [FaviconFormat("ico", 16, "/favicon.ico")]
        for size in FAVICON_PNG_SIZES:
            formats.append(
                FaviconFormat("png", size, f"{TOOLING_LINK}favicons/favicon-{size}x{size}.png")
            )
        return cls(source=source, formats=formats)

    @property
    def links(self) -> list[str]:
        return [fmt.link for fmt in self.formats]

    def tags(self) -> Markup:
        """Head ``<link>`` elements for every format."""
        lines = []
        for fmt in self.formats:
            if fmt.format == "ico":
                lines.append(f'<link rel="shortcut icon" href="{fmt.link}">')
            else:
                lines.append(
                    f'<link rel="icon" type="image/png" sizes="{fmt.resolution}" href="{fmt.link}">'
                )
        return Markup("\n".join(lines))


def _files(directory: Path, suffixes: tuple[str, ...]) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and not is_hidden(p) and p.suffix.lower() in suffixes
    )


def discover_images(tooling_dir: Path) -> list[Image]:
    return [
        Image(p, f"{TOOLING_LINK}images/{p.name}")
        for p in _files(tooling_dir / "images", IMAGE_SUFFIXES)
    ]


def discover_stylesheets(tooling_dir: Path) -> list[Stylesheet]:
    """Find stylesheets directly inside the tooling directory.

    When a CSS file and a Sass source share a stem the CSS file wins.
    """
    by_stem: dict[str, Stylesheet] = {}
    for path in _files(tooling_dir, STYLESHEET_SUFFIXES):
        existing = by_stem.get(path.stem)
        if existing is not None and existing.is_css:
            logger.warning("Ignoring %s; %s has the same name", path.name, existing.source.name)
            continue
        by_stem[path.stem] = Stylesheet(path, f"{TOOLING_LINK}{path.stem}.css")
    return list(by_stem.values())


def discover_scripts(tooling_dir: Path) -> list[Script]:
    return [
        Script(p, f"{TOOLING_LINK}scripts/{p.name}")
        for p in _files(tooling_dir / "scripts", (".js",))
    ]


def discover_favicon(tooling_dir: Path) -> Favicon | None:
    """Return the favicon built from the first ``icon.*`` source, if any."""
    for suffix in FAVICON_SUFFIXES:
        source = tooling_dir / f"icon{suffix}"
        if source.is_file():
            return Favicon.for_source(source)
    return None


def _is_fresh(source: Path, dest: Path) -> bool:
    return dest.exists() and dest.stat().st_mtime >= source.stat().st_mtime


class AssetPipeline:
    """Materializes a site's assets into its output directory.

    Unchanged assets whose output is newer than the source are left
    alone unless the site forces a full build. A failing asset is
    logged and skipped.

    Attributes:
        site: Site whose assets are processed.
        output_root: Directory the asset links resolve against.
        processor_registry: Registry of asset processors.
    """

    def __init__(
        self,
        site: Site,
        processor_registry: AssetProcessorRegistry | None = None,
    ):
        self.site = site
        self.output_root = site.output_root
        self.processor_registry = processor_registry or create_default_registry(
            site.root, minify=bool(site.config.minify)
        )

    def run(self) -> int:
        """Process every asset.

        Returns:
            Number of asset files written.
        """
        written = 0
        items = [*self.site.images, *self.site.stylesheets, *self.site.scripts]
        for item in items:
            if self._process(item.source, self.output_root / item.output_file):
                written += 1
        favicon = self.site.favicon
        if favicon is not None:
            written += self._render_favicon(favicon)
        self._remove_stale_scripts()
        logger.info("Processed %d asset files", written)
        return written

    def _process(self, source: Path, dest: Path) -> bool:
        if not self.site.config.clobber and _is_fresh(source, dest):
            logger.debug("Asset %s is up to date", source.name)
            return False
        try:
            return self.processor_registry.process(source, dest)
        except (OSError, ValueError) as exc:
            logger.warning("Skipping asset %s: %s", source.name, exc)
            return False

    def _remove_stale_scripts(self) -> None:
        """Delete script outputs whose source is gone."""
        scripts_dir = self.output_root / TOOLING_LINK.strip("/") / "scripts"
        if not scripts_dir.is_dir():
            return
        expected = {self.output_root / s.output_file for s in self.site.scripts}
        for path in scripts_dir.iterdir():
            if path.is_file() and path not in expected:
                logger.info("Removing stale script %s", path.name)
                path.unlink()
        prune_empty_dirs(scripts_dir, self.output_root)

    def _render_favicon(self, favicon: Favicon) -> int:
        dests = [self.output_root / fmt.output_file for fmt in favicon.formats]
        if not self.site.config.clobber and all(_is_fresh(favicon.source, d) for d in dests):
            return 0
        try:
            return len(render_favicon(favicon, self.output_root))
        except (OSError, ValueError) as exc:
            logger.warning("Skipping favicon %s: %s", favicon.source.name, exc)
            return 0
