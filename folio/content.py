"""Content model for Folio.

A site is made of Sections (one per content directory) and the Pages
each Section owns. This module defines both and the builders that read
them from disk.

Key classes:
- Page: One content unit with resolved configuration, markup and date.
- Section: A directory-scoped group owning a named set of Pages.
- PageBuilder: Builds a Page from a content file or composite directory.
- SectionBuilder: Builds a Section and its Pages, then orders them.

Filename conventions:
- ``name.md``, ``name.html``, ``name.wiki``: plain markup pages.
- ``name.<dialect>.jinja``: the body is a template evaluated before the
  markup is converted; a bare ``name.jinja`` is an HTML template.
- ``name.page/``: a composite page; ``index.<dialect>[.jinja]`` inside is
  the body and every other file is copied next to the rendered page.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from markupsafe import Markup

from .config import PageConfig, SectionConfig, load_header
from .errors import BuildError, ConfigurationError, FolioError, MissingReferenceError
from .extractors import extract_frontmatter, parse_date, parse_source_name
from .html_utils import link_to, span
from .utils import file_created_at, is_hidden, output_file_for, section_link, titleize

if TYPE_CHECKING:
    from .protocols import TemplateEvaluator
    from .site import Site

logger = logging.getLogger(__name__)

PAGE_SUFFIXES = (".md", ".html", ".wiki", ".jinja")
COMPOSITE_SUFFIX = ".page"
SECTION_HEADER = "section.yaml"
INDEX_NAME = "index"


def is_page_file(path: Path) -> bool:
    """Check if a path is a single-file page."""
    return path.is_file() and not is_hidden(path) and path.suffix in PAGE_SUFFIXES


def is_composite_page(path: Path) -> bool:
    """Check if a path is a composite page directory (``name.page/``)."""
    return path.is_dir() and path.name.endswith(COMPOSITE_SUFFIX)


@dataclass(eq=False)
class Page:
    """Represents one content unit of the site.

    Attributes:
        site: Owning site.
        section: Owning section.
        input_path: Source file holding the page body.
        name: Page name, unique within the section.
        link: Output link, unique across the site.
        dialect: Markup dialect of the body.
        is_template: Whether the body is evaluated as a template.
        contents: Body text with the frontmatter removed.
        config: Resolved page configuration.
        date: Page date; explicit frontmatter date or file creation time.
        autoindex: Whether this page was synthesized as a section index.
        resources: Extra files of a composite page.
        index: 1-based position within the section, by date.
        sequence: Discovery order across the site; breaks date ties.
    """

    site: Site = field(repr=False)
    section: Section = field(repr=False)
    input_path: Path
    name: str
    link: str
    dialect: str
    is_template: bool
    contents: str = field(repr=False)
    config: PageConfig = field(repr=False)
    date: datetime
    autoindex: bool = False
    resources: list[Path] = field(default_factory=list, repr=False)
    index: int = 0
    sequence: int = 0

    @property
    def title(self) -> str:
        return self.config.title

    @property
    def desc(self) -> str:
        return self.config.desc or ""

    @property
    def keywords(self) -> list[str]:
        return list(self.config.keywords)

    @property
    def collect(self) -> list[str]:
        return list(self.config.collect)

    @property
    def paginate(self) -> int | bool:
        """Page size of this page's collection, or False."""
        return self.config.paginate

    @property
    def user_index(self) -> Any:
        return self.config.index if self.config.index is not False else -1

    @property
    def frontmatter(self) -> dict[str, Any]:
        """Frontmatter keys outside the page schema."""
        return dict(self.config.extras)

    @property
    def is_index(self) -> bool:
        return self.name == INDEX_NAME or self.autoindex

    @property
    def trail(self) -> str:
        """The canonical link: the section's link for index pages."""
        if self.is_index:
            return self.section.link
        return self.link

    def conf(self, key: str) -> Any:
        """Look up a page option; unknown keys raise UnknownConfigKeyError."""
        return self.config.conf(key)

    def compare(self, other: Page) -> int:
        """Compare by date, then discovery order: -1, 0 or 1."""
        mine, theirs = self._order_key(), other._order_key()
        if mine < theirs:
            return -1
        if mine > theirs:
            return 1
        return 0

    def __lt__(self, other: Page) -> bool:
        return self._order_key() < other._order_key()

    def _order_key(self) -> tuple[datetime, int]:
        return (self.date, self.sequence)

    def paginated_link(self, index: int | None = None) -> str:
        """Link of one pagination window; window 1 is the trail itself."""
        if not index or index <= 1:
            return self.trail
        return f"{self.trail}page/{index}/"

    def output_file(self, index: int | None = None) -> Path:
        """Output file of a pagination window, relative to the output root."""
        return output_file_for(self.paginated_link(index))

    def link_to(
        self,
        text: Any = None,
        klass: str | None = None,
        id: str | None = None,
        index: int | None = None,
    ) -> Markup:
        """Build an anchor to this page or one of its pagination windows."""
        return link_to(
            self.paginated_link(index),
            self.title if text is None else text,
            klass=klass,
            id=id,
        )

    @property
    def dependencies(self) -> list[Path]:
        """Files whose modification makes the rendered output stale.

        The page's own files come first, then every other source file of
        the site: page sources, section headers, assets and templates.
        """
        deps = [self.input_path, *self.resources]
        header = self.section.input_path / SECTION_HEADER
        if header.exists():
            deps.append(header)
        deps.extend(p for p in self.site.source_files if p not in deps)
        return deps

    def __str__(self) -> str:
        try:
            return self.input_path.relative_to(self.site.root).as_posix()
        except ValueError:
            return f"{self.section.link}{self.name}"


@dataclass(eq=False)
class Section:
    """Represents one content directory and the pages it owns.

    Attributes:
        site: Owning site.
        input_path: Section directory.
        link: Output link of the section.
        config: Resolved section configuration.
        page_map: Page name to Page, in discovery order.
    """

    site: Site = field(repr=False)
    input_path: Path
    link: str
    config: SectionConfig = field(repr=False)
    page_map: dict[str, Page] = field(default_factory=dict, repr=False)

    @property
    def title(self) -> str:
        return self.config.title

    @property
    def desc(self) -> str:
        return self.config.desc or ""

    @property
    def autoindex(self) -> bool:
        return bool(self.config.autoindex)

    @property
    def is_root(self) -> bool:
        return self.link == "/"

    @property
    def pages(self) -> list[Page]:
        return list(self.page_map.values())

    @property
    def ordered_pages(self) -> list[Page]:
        """Pages in position order (ascending date)."""
        return sorted(self.page_map.values(), key=lambda p: p.index)

    @property
    def members(self) -> list[Page]:
        """Every page except the section index."""
        return [p for name, p in self.page_map.items() if name != INDEX_NAME]

    @property
    def page_count(self) -> int:
        return len(self.page_map)

    def conf(self, key: str) -> Any:
        """Look up a section option; unknown keys raise UnknownConfigKeyError."""
        return self.config.conf(key)

    def has_page(self, name: str) -> bool:
        return name in self.page_map

    def page(self, name: str) -> Page:
        """Return the page with the given name.

        Raises:
            MissingReferenceError: If the section has no such page.
        """
        if name not in self.page_map:
            raise MissingReferenceError(
                f"Section {self.link} has no page named '{name}'", name
            )
        return self.page_map[name]

    def has_index(self) -> bool:
        return self.has_page(INDEX_NAME) or self.autoindex

    def link_to(
        self, text: Any = None, klass: str | None = None, id: str | None = None
    ) -> Markup:
        """Link to the section, or a plain span when it has no index."""
        text = self.title if text is None else text
        if self.has_index():
            return link_to(self.link, text, klass=klass, id=id)
        return span(text, klass=klass, id=id)

    def __str__(self) -> str:
        return self.link


class PageBuilder:
    """Builds Page objects from source files.

    Attributes:
        site: Site the pages belong to.
        evaluator: Template evaluator for frontmatter blocks.
    """

    def __init__(self, site: Site, evaluator: TemplateEvaluator):
        self.site = site
        self.evaluator = evaluator
        self._sequence = itertools.count(1)

    def build(self, path: Path, section: Section, autoindex: bool = False) -> Page:
        """Build a Page.

        Args:
            path: A page file, a composite page directory, or (for
                ``autoindex``) the autoindex template.
            section: Owning section.
            autoindex: Whether to synthesize the section's index page.

        Returns:
            The constructed Page, with position index 0.

        Raises:
            ConfigurationError: If the frontmatter or an option is invalid.
        """
        resources: list[Path] = []
        if is_composite_page(path):
            source, resources = self._composite_parts(path)
            name = path.name[: -len(COMPOSITE_SUFFIX)]
        else:
            source = path
            name = parse_source_name(path.name).name
        source_name = parse_source_name(source.name)
        if autoindex:
            name = INDEX_NAME

        raw = source.read_text(encoding="utf-8")
        frontmatter, body = extract_frontmatter(raw, self.evaluator, {"site": self.site})

        is_index = name == INDEX_NAME
        title = f"{section.title} Index" if is_index else titleize(name)
        defaults = {
            "title": title,
            "collect": [section.link],
            "paginate": 5 if autoindex else False,
        }
        config = PageConfig.from_layers(defaults, frontmatter)

        if config.date:
            date = parse_date(config.date)
        else:
            date = file_created_at(source)

        link = f"{section.link}index.html" if is_index else f"{section.link}{name}/"
        return Page(
            site=self.site,
            section=section,
            input_path=source,
            name=name,
            link=link,
            dialect=source_name.dialect,
            is_template=source_name.template,
            contents=body,
            config=config,
            date=date,
            autoindex=autoindex,
            resources=resources,
            sequence=next(self._sequence),
        )

    def _composite_parts(self, directory: Path) -> tuple[Path, list[Path]]:
        entries = sorted(p for p in directory.iterdir() if not is_hidden(p))
        sources = [
            p for p in entries
            if is_page_file(p) and parse_source_name(p.name).name == INDEX_NAME
        ]
        if not sources:
            raise ConfigurationError(
                f"Composite page '{directory}' has no index file"
            )
        source = sources[0]
        resources = [p for p in entries if p.is_file() and p != source]
        return source, resources


class SectionBuilder:
    """Builds a Section and all of its Pages.

    Page failures are recorded in ``failures`` and the page skipped, so
    one broken file never takes its siblings down.

    Attributes:
        site: Site the sections belong to.
        page_builder: Builder used for each page.
        failures: List receiving a BuildError per skipped page.
    """

    def __init__(self, site: Site, page_builder: PageBuilder, failures: list[BuildError]):
        self.site = site
        self.page_builder = page_builder
        self.failures = failures

    def build(self, directory: Path) -> Section:
        """Build the section rooted at ``directory``.

        Raises:
            ConfigurationError: If the section header is malformed.
        """
        link = section_link(self.site.root, directory)
        title = "Home" if link == "/" else Path(link).name.capitalize()
        header_file = directory / SECTION_HEADER
        header = load_header(header_file) if header_file.exists() else {}
        config = SectionConfig.from_layers({"title": title}, header)
        section = Section(site=self.site, input_path=directory, link=link, config=config)

        for path in sorted(directory.iterdir()):
            if not (is_page_file(path) or is_composite_page(path)):
                continue
            self._add(section, path)

        if section.autoindex and not section.has_page(INDEX_NAME):
            self._add(section, self.site.autoindex_template, autoindex=True)

        self.assign_positions(section)
        logger.debug("Section %s: %d pages", link, section.page_count)
        return section

    def _add(self, section: Section, path: Path, autoindex: bool = False) -> None:
        try:
            page = self.page_builder.build(path, section, autoindex=autoindex)
            if section.has_page(page.name):
                raise ConfigurationError(
                    f"Duplicate page name '{page.name}' in section {section.link}"
                )
        except (FolioError, OSError, UnicodeDecodeError) as exc:
            logger.error("Skipping page %s: %s", path, exc)
            self.failures.append(BuildError(path, str(exc), exc))
            return
        section.page_map[page.name] = page

    @staticmethod
    def assign_positions(section: Section) -> None:
        """Number pages 1..n by ascending date; ties keep discovery order."""
        for position, page in enumerate(sorted(section.page_map.values()), start=1):
            page.index = position
