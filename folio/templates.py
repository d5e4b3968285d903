"""Template evaluation and the page rendering pipeline for Folio.

Templates are Jinja2 text evaluated in a sandbox: each evaluation sees
exactly the bindings passed to it, may call read-only methods on the
bound site, section and page objects, and cannot mutate build state.

Rendering a page runs three stages:

1. Content: template-eligible bodies are evaluated, then the markup is
   converted to HTML by the dialect's converter.
2. Page wrap: the site's page template wraps the content.
3. Site wrap: the site template wraps the page fragment.

Key classes:
- SandboxedEvaluator: TemplateEvaluator backed by an immutable sandbox.
- TemplatePipeline: Runs the three stages for a page.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path, PurePath
from typing import TYPE_CHECKING, Any

from jinja2 import FileSystemLoader, Template
from jinja2.sandbox import ImmutableSandboxedEnvironment

from .renderers import ConverterRegistry, create_default_registry

if TYPE_CHECKING:
    from .collections import Collection
    from .content import Page
    from .protocols import TemplateEvaluator
    from .site import Site

logger = logging.getLogger(__name__)


_PATH_ATTRIBUTES = frozenset(
    {"name", "stem", "suffix", "suffixes", "parent", "parts", "as_posix"}
)


class ReadOnlySandbox(ImmutableSandboxedEnvironment):
    """Immutable sandbox that also hides filesystem methods of paths."""

    def is_safe_attribute(self, obj: Any, attr: str, value: Any) -> bool:
        if isinstance(obj, PurePath) and attr not in _PATH_ATTRIBUTES:
            return False
        return super().is_safe_attribute(obj, attr, value)


class SandboxedEvaluator:
    """Evaluates template text in a read-only Jinja2 sandbox.

    Apart from Jinja's own helpers such as ``range``, a template can only
    reach the names it is given. The sandbox rejects underscore
    attributes, calls to mutating methods of lists, dicts and sets,
    filesystem methods of paths, and any callable marked with
    ``jinja2.sandbox.unsafe``.

    Attributes:
        env: The sandboxed Jinja2 environment.
    """

    def __init__(self, search_path: Iterable[Path] = ()):
        """Initialize the evaluator.

        Args:
            search_path: Directories ``{% include %}`` may load from.
        """
        dirs = [str(p) for p in search_path if Path(p).is_dir()]
        self.env = ReadOnlySandbox(
            loader=FileSystemLoader(dirs) if dirs else None,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self._compiled: dict[str, Template] = {}
        self._lock = threading.Lock()

    def _compile(self, text: str) -> Template:
        with self._lock:
            template = self._compiled.get(text)
            if template is None:
                template = self.env.from_string(text)
                self._compiled[text] = template
            return template

    def evaluate(self, text: str, bindings: Mapping[str, Any]) -> str:
        """Render template text against ``bindings``.

        Raises:
            jinja2.TemplateError: On syntax errors, undefined lookups
                that are called, or sandbox violations.
        """
        return self._compile(text).render(**dict(bindings))


class TemplatePipeline:
    """Renders a page through the content, page-wrap and site-wrap stages.

    Attributes:
        site: The site whose templates wrap every page.
        evaluator: Template evaluator used by every stage.
        converters: Markup converters keyed by dialect.
    """

    def __init__(
        self,
        site: Site,
        evaluator: TemplateEvaluator,
        converters: ConverterRegistry | None = None,
    ):
        self.site = site
        self.evaluator = evaluator
        self.converters = converters or create_default_registry(site.root)
        self._sources: dict[Path, str] = {}
        self._lock = threading.Lock()

    def read(self, path: Path) -> str:
        """Read a template file once and cache its text."""
        with self._lock:
            if path not in self._sources:
                self._sources[path] = path.read_text(encoding="utf-8")
            return self._sources[path]

    def render_content(
        self,
        page: Page,
        index: int | None = None,
        collection: Collection | None = None,
    ) -> str:
        """Run the content stage and return the page body as HTML.

        Raises:
            UnknownDialectError: If the page's dialect has no converter.
            ConverterUnavailableError: If the converter's tool is missing.
        """
        if page.is_template:
            logger.debug("%s: evaluating template body", page)
            markup = self.evaluator.evaluate(
                page.contents,
                {
                    "site": self.site,
                    "section": page.section,
                    "page": page,
                    "index": index,
                    "collection": collection,
                },
            )
        else:
            markup = page.contents
        converter = self.converters.get(page.dialect)
        logger.debug("%s: converting %s markup", page, converter.dialect)
        return converter.convert(markup)

    def wrap(self, template: Path, page: Page, body: str) -> str:
        """Evaluate a wrapping template around ``body``."""
        return self.evaluator.evaluate(
            self.read(template),
            {
                "site": self.site,
                "section": page.section,
                "page": page,
                "body": body,
            },
        )

    def render(
        self,
        page: Page,
        index: int | None = None,
        collection: Collection | None = None,
    ) -> str:
        """Render a page to its final output text.

        Args:
            page: Page to render.
            index: Pagination index when rendering one window of a
                collection.
            collection: The page's collection, if it paginates.

        Returns:
            The fully wrapped output text.
        """
        html = self.render_content(page, index, collection)
        body = self.wrap(self.site.page_template, page, html)
        return self.wrap(self.site.site_template, page, body)
