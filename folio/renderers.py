"""Markup converters for Folio.

Each converter turns one markup dialect into HTML. Converters are looked
up by dialect name in a ConverterRegistry, so a page's dialect is
dispatched once and new dialects can be added without touching the
pipeline.

Key classes:
- HTMLConverter: Passes HTML through unchanged.
- MarkdownConverter: Renders Markdown with mistune and Pygments.
- WikiConverter: Renders MediaWiki markup through pandoc.
- ConverterRegistry: Maps dialect names to converters.
"""

from __future__ import annotations

import re
from pathlib import Path

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .errors import ConverterUnavailableError, UnknownDialectError
from .executable_utils import find_executable, run_tool
from .html_utils import escape_html
from .protocols import MarkupConverter


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text.

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


class _HighlightRenderer(mistune.HTMLRenderer):
    """Markdown renderer with heading anchors and Pygments code blocks."""

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        """Render a heading with a unique auto-generated id."""
        base_id = _generate_heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block, highlighted when the language is known."""
        if info:
            try:
                lexer = get_lexer_by_name(info.split()[0], stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(nowrap=False, cssclass="highlight")
                return highlight(code, lexer, formatter)
        lang_class = f' class="language-{escape_html(info)}"' if info else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"


class HTMLConverter:
    """Passes HTML through unchanged."""

    @property
    def dialect(self) -> str:
        return "html"

    def convert(self, text: str) -> str:
        return text


class MarkdownConverter:
    """Renders Markdown to HTML with mistune.

    Fenced code blocks with a language are highlighted by Pygments.
    """

    PLUGINS = ["strikethrough", "footnotes", "table", "url"]

    @property
    def dialect(self) -> str:
        return "md"

    def convert(self, text: str) -> str:
        markdown = mistune.create_markdown(
            renderer=_HighlightRenderer(), plugins=self.PLUGINS
        )
        return markdown(text)


class WikiConverter:
    """Renders MediaWiki markup to HTML by piping it through pandoc.

    Attributes:
        project_root: Site root searched for a local pandoc install.
    """

    def __init__(self, project_root: Path | None = None):
        self.project_root = project_root

    @property
    def dialect(self) -> str:
        return "wiki"

    def convert(self, text: str) -> str:
        """Convert wiki markup.

        Raises:
            ConverterUnavailableError: If pandoc is missing or fails.
        """
        pandoc = find_executable("pandoc", self.project_root)
        if not pandoc:
            raise ConverterUnavailableError(
                "pandoc not found; install it to render wiki markup"
            )
        result = run_tool([pandoc, "-f", "mediawiki", "-t", "html"], stdin=text)
        if result.returncode != 0:
            raise ConverterUnavailableError(
                f"pandoc failed to convert wiki markup: {result.stderr.strip()}"
            )
        return result.stdout


class ConverterRegistry:
    """Registry mapping markup dialect names to converters."""

    def __init__(self):
        self._converters: dict[str, MarkupConverter] = {}

    def register(self, converter: MarkupConverter, *aliases: str) -> None:
        """Register a converter under its dialect name and any aliases.

        A later registration for the same name replaces the earlier one.
        """
        for name in (converter.dialect, *aliases):
            self._converters[name.lower()] = converter

    def dialects(self) -> list[str]:
        return sorted(self._converters)

    def get(self, dialect: str) -> MarkupConverter:
        """Return the converter for a dialect.

        Raises:
            UnknownDialectError: If no converter handles the dialect.
        """
        try:
            return self._converters[dialect.lower()]
        except KeyError:
            raise UnknownDialectError(dialect) from None

    def convert(self, dialect: str, text: str) -> str:
        """Convert text using the converter registered for ``dialect``."""
        return self.get(dialect).convert(text)


def create_default_registry(project_root: Path | None = None) -> ConverterRegistry:
    """Create a registry with the html, Markdown and wiki converters.

    Args:
        project_root: Site root, used to find a local pandoc.

    Returns:
        Configured ConverterRegistry.
    """
    registry = ConverterRegistry()
    registry.register(HTMLConverter(), "htm")
    registry.register(MarkdownConverter(), "markdown")
    registry.register(WikiConverter(project_root), "mediawiki")
    return registry
