"""Site discovery for Folio.

The Site is the build context: it loads the site header, finds the
templates, assets and hooks in the tooling directory, walks the content
tree into Sections and Pages, and records every output link in a fresh
path cache next to the one the previous build left behind.

Templates see the Site through the sandbox, so its query methods are
read-only; everything that changes build state is marked ``unsafe``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from jinja2.sandbox import unsafe
from markupsafe import Markup

from .assets import (
    Favicon,
    Image,
    Script,
    Stylesheet,
    discover_favicon,
    discover_images,
    discover_scripts,
    discover_stylesheets,
)
from .collections import Collection
from .config import SiteConfig, load_header
from .content import COMPOSITE_SUFFIX, SECTION_HEADER, Page, PageBuilder, Section, SectionBuilder
from .errors import BrokenSiteError, BuildError, ConfigurationError, MissingReferenceError
from .hooks import discover_hooks
from .html_utils import img_tag
from .path_cache import PathCache
from .renderers import ConverterRegistry
from .templates import SandboxedEvaluator, TemplatePipeline
from .utils import normalize_link, output_file_for

logger = logging.getLogger(__name__)

TOOLING_DIR = "_folio"
HEADER_FILE = "header.yaml"
SITE_TEMPLATE = "site.html.jinja"
PAGE_TEMPLATE = "page.html.jinja"
AUTOINDEX_TEMPLATE = "autoindex.html.jinja"
PATH_CACHE_FILE = ".path-cache.yaml"
DEFAULT_OUTPUT = "output"

SKELETON_DIR = Path(__file__).parent / "skeleton"
DEFAULT_TOOLING_DIR = SKELETON_DIR / TOOLING_DIR


class Site:
    """A site root and everything discovered beneath it.

    Attributes:
        root: Site root directory.
        config: Resolved site configuration.
        tooling_dir: The reserved ``_folio`` directory.
        output_root: Directory the build writes to.
        site_template, page_template, autoindex_template: Template files,
            either the site's own or the packaged defaults.
        before_hooks, after_hooks: Hook executables.
        images, stylesheets, scripts, favicon: Discovered assets.
        path_cache: Links discovered by this build.
        old_path_cache: Links the previous build recorded, or None.
        failures: Pages and sections skipped during discovery.
    """

    def __init__(
        self,
        root: Path | str,
        overrides: dict[str, Any] | None = None,
        evaluator: SandboxedEvaluator | None = None,
    ):
        """Discover a site.

        Args:
            root: Site root directory.
            overrides: Configuration layered between the defaults and the
                site header (normally from the command line).
            evaluator: Template evaluator; one rooted at the tooling
                directory is created when omitted.

        Raises:
            BrokenSiteError: If the root is not a directory or its header
                is missing or malformed.
        """
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise BrokenSiteError(f"Site root '{self.root}' is not a directory")
        self.tooling_dir = self.root / TOOLING_DIR
        self.header_file = self.tooling_dir / HEADER_FILE
        if not self.header_file.is_file():
            raise BrokenSiteError(
                f"'{self.root}' is not a folio site: {TOOLING_DIR}/{HEADER_FILE} is missing"
            )
        try:
            self.config = SiteConfig.from_layers(overrides, load_header(self.header_file))
        except ConfigurationError as exc:
            raise BrokenSiteError(str(exc)) from exc

        output = self.config.output
        if output:
            self.output_root = (self.root / str(output)).resolve()
        else:
            self.output_root = self.tooling_dir / DEFAULT_OUTPUT
        self.output_tooling_dir = self.output_root / TOOLING_DIR

        self.site_template = self._template(SITE_TEMPLATE)
        self.page_template = self._template(PAGE_TEMPLATE)
        self.autoindex_template = self._template(AUTOINDEX_TEMPLATE)

        self.before_hooks = discover_hooks(self.tooling_dir / "hooks" / "before")
        self.after_hooks = discover_hooks(self.tooling_dir / "hooks" / "after")

        self.path_cache_file = self.output_tooling_dir / PATH_CACHE_FILE
        self.path_cache = PathCache()
        if self.config.clean:
            self.old_path_cache = None
        else:
            self.old_path_cache = PathCache.load(self.path_cache_file)

        self._evaluator = evaluator or SandboxedEvaluator([self.tooling_dir, DEFAULT_TOOLING_DIR])
        self.failures: list[BuildError] = []
        self._sections: dict[str, Section] = {}
        self._pages: dict[str, Page] = {}
        self._newest_source_mtime: float | None = None

        self._discover_assets()
        self._discover_content()
        self._register_paginated_links()
        logger.info(
            "Discovered %d sections and %d pages in %s",
            len(self._sections),
            len(self._pages),
            self.root,
        )

    def _template(self, name: str) -> Path:
        user = self.tooling_dir / name
        if user.is_file():
            return user
        return DEFAULT_TOOLING_DIR / name

    @property
    def template_files(self) -> list[Path]:
        """Files every rendered page depends on."""
        return [self.header_file, self.page_template, self.site_template]

    @property
    def source_files(self) -> list[Path]:
        """Every file a rendered page can depend on."""
        files = [*self.template_files, self.autoindex_template]
        for section in self._sections.values():
            header = section.input_path / SECTION_HEADER
            if header.exists():
                files.append(header)
        for page in self._pages.values():
            files.append(page.input_path)
            files.extend(page.resources)
        for asset in (*self.images, *self.stylesheets, *self.scripts):
            files.append(asset.source)
        if self.favicon is not None:
            files.append(self.favicon.source)
        return files

    def newest_source_mtime(self) -> float:
        """Latest modification time over :attr:`source_files`, computed once."""
        if self._newest_source_mtime is None:
            self._newest_source_mtime = max(
                (p.stat().st_mtime for p in self.source_files if p.exists()),
                default=0.0,
            )
        return self._newest_source_mtime

    @property
    def smart_rendering(self) -> bool:
        """Whether a previous build's cache allows skipping unchanged pages."""
        return self.old_path_cache is not None

    def _discover_assets(self) -> None:
        self.favicon: Favicon | None = discover_favicon(self.tooling_dir)
        self.images: list[Image] = discover_images(self.tooling_dir)
        self.stylesheets: list[Stylesheet] = discover_stylesheets(self.tooling_dir)
        self.scripts: list[Script] = discover_scripts(self.tooling_dir)
        if self.favicon is not None:
            for link in self.favicon.links:
                self.path_cache.add("favicons", link)
        for image in self.images:
            self.path_cache.add("images", image.link)
        for stylesheet in self.stylesheets:
            self.path_cache.add("stylesheets", stylesheet.link)

    def _content_dirs(self):
        for dirpath, dirnames, _ in os.walk(self.root):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames if not self._is_pruned(current / d)
            )
            yield current

    def _is_pruned(self, directory: Path) -> bool:
        name = directory.name
        return (
            name.startswith(".")
            or name.endswith(COMPOSITE_SUFFIX)
            or directory == self.tooling_dir
            or directory.resolve() == self.output_root
        )

    def _discover_content(self) -> None:
        section_builder = SectionBuilder(
            self, PageBuilder(self, self._evaluator), self.failures
        )
        for directory in self._content_dirs():
            try:
                section = section_builder.build(directory)
            except ConfigurationError as exc:
                logger.error("Skipping section %s: %s", directory, exc)
                self.failures.append(BuildError(directory, str(exc), exc))
                continue
            self._sections[section.link] = section
            self.path_cache.add("sections", section.link)
            for page in section.pages:
                self._pages[page.link] = page
                self.path_cache.add("pages", page.link)

    def _register_paginated_links(self) -> None:
        for page in list(self._pages.values()):
            try:
                collection = self.collection_for(page)
            except MissingReferenceError as exc:
                logger.warning("%s: %s", page, exc)
                continue
            if collection is None:
                continue
            for index in collection.range:
                if index > 1:
                    self.path_cache.add("pages", page.paginated_link(index))

    @property
    def title(self) -> str:
        return self.config.title

    @property
    def desc(self) -> str:
        return self.config.desc or ""

    @property
    def name(self) -> str:
        return self.root.name

    @property
    def sections(self) -> list[Section]:
        return list(self._sections.values())

    @property
    def pages(self) -> list[Page]:
        return list(self._pages.values())

    def configs(self) -> dict[str, Any]:
        return self.config.as_dict()

    def conf(self, key: str) -> Any:
        """Look up a site option; unknown keys raise UnknownConfigKeyError."""
        return self.config.conf(key)

    def section(self, key: str) -> Section:
        """Return the section with the given link.

        Raises:
            MissingReferenceError: If no section has that link.
        """
        link = normalize_link(key)
        if link not in self._sections:
            raise MissingReferenceError(f"No section at {link}", str(key))
        return self._sections[link]

    def page(self, key: str) -> Page:
        """Return the page with the given link.

        A section link finds the section's index page.

        Raises:
            MissingReferenceError: If no page has that link.
        """
        link = normalize_link(key)
        if link in self._pages:
            return self._pages[link]
        if link.endswith("/") and f"{link}index.html" in self._pages:
            return self._pages[f"{link}index.html"]
        raise MissingReferenceError(f"No page at {link}", str(key))

    def addr(self, path: str) -> Page | Section:
        """Resolve an address to a page, falling back to a section.

        Raises:
            MissingReferenceError: If nothing lives at the address.
        """
        try:
            return self.page(path)
        except MissingReferenceError:
            pass
        try:
            return self.section(path)
        except MissingReferenceError:
            raise MissingReferenceError(f"Nothing at {normalize_link(path)}", str(path)) from None

    def img(
        self,
        name: str,
        alt: Any = None,
        id: str | None = None,
        klass: str | None = None,
    ) -> Markup:
        """Build an ``<img>`` tag for an image in ``_folio/images``.

        Raises:
            MissingReferenceError: If there is no image with that file name.
        """
        for image in self.images:
            if image.name == name:
                return img_tag(image.link, alt=alt, klass=klass, id=id)
        raise MissingReferenceError(f"No image named '{name}'", name)

    def collection_for(self, page: Page) -> Collection | None:
        """Return the collection an index page paginates over.

        Returns:
            A Collection over the pages of every collected section, or
            None when the page does not paginate.

        Raises:
            MissingReferenceError: If a collected section does not exist.
        """
        if not page.paginate:
            return None
        pages: list[Page] = []
        for link in page.collect:
            pages.extend(self.section(link).pages)
        return Collection(page, pages, page.paginate)

    @unsafe
    def render_pipeline(self, converters: ConverterRegistry | None = None) -> TemplatePipeline:
        """Create the pipeline that renders this site's pages."""
        return TemplatePipeline(self, self._evaluator, converters)

    def output_path(self, link: str) -> Path:
        """Absolute output file serving a link."""
        return self.output_root / output_file_for(link)

    def __repr__(self) -> str:
        return f"Site({self.root})"
