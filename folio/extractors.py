"""Source metadata extraction for Folio.

This module pulls the pieces of a content file apart before a Page is
built: the markup dialect and template flag encoded in its filename, the
frontmatter block at the top of the file, and the page date.

Key functions:
- parse_source_name: Split a filename into name, dialect and template flag.
- extract_frontmatter: Split, evaluate and parse a frontmatter block.
- parse_date: Turn a frontmatter date value into a naive datetime.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

import yaml
from jinja2 import TemplateError

from .errors import ConfigurationError, FrontmatterError

if TYPE_CHECKING:
    from .protocols import TemplateEvaluator

FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE
)

TEMPLATE_SUFFIX = ".jinja"

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%d %B %Y",
    "%B %d, %Y",
    "%a, %d %b %Y %H:%M:%S %z",
)


@dataclass(frozen=True)
class SourceName:
    """The parts of a content filename.

    Attributes:
        name: Page name, the text before the first dot.
        dialect: Markup dialect, e.g. ``md`` or ``html``.
        template: Whether the body is evaluated as a template first.
    """

    name: str
    dialect: str
    template: bool


def parse_source_name(filename: str) -> SourceName:
    """Split a content filename into name, dialect and template flag.

    Examples:
        >>> parse_source_name("post.md.jinja")
        SourceName(name='post', dialect='md', template=True)

        >>> parse_source_name("about.html")
        SourceName(name='about', dialect='html', template=False)

        >>> parse_source_name("feed.jinja")
        SourceName(name='feed', dialect='html', template=True)
    """
    template = filename.endswith(TEMPLATE_SUFFIX)
    stem = filename[: -len(TEMPLATE_SUFFIX)] if template else filename
    name, dot, dialect = stem.partition(".")
    if not dot:
        dialect = "html"
    return SourceName(name=name, dialect=dialect, template=template)


def split_frontmatter(text: str) -> tuple[str | None, str]:
    """Split raw file text into its frontmatter block and body.

    Returns:
        Tuple of (frontmatter text or None when absent, body).
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return None, text
    return match.group(1), text[match.end() :]


def extract_frontmatter(
    text: str,
    evaluator: TemplateEvaluator,
    bindings: dict[str, Any],
) -> tuple[dict[str, Any], str]:
    """Extract the frontmatter of a content file.

    The block is evaluated as a template against ``bindings`` and the
    result parsed as YAML.

    Args:
        text: Raw file content.
        evaluator: Template evaluator for the block.
        bindings: Names visible to the block (normally just ``site``).

    Returns:
        Tuple of (frontmatter dict, remaining body).

    Raises:
        FrontmatterError: If the block fails to evaluate or parse, or
            does not hold a mapping.
    """
    block, body = split_frontmatter(text)
    if block is None:
        return {}, text
    try:
        rendered = evaluator.evaluate(block, bindings)
    except TemplateError as exc:
        raise FrontmatterError(f"Frontmatter template failed: {exc}") from exc
    try:
        data = yaml.safe_load(rendered)
    except yaml.YAMLError as exc:
        raise FrontmatterError(f"Malformed frontmatter: {exc}") from exc
    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise FrontmatterError(
            f"Frontmatter must be a mapping, got {type(data).__name__}"
        )
    return {str(k): v for k, v in data.items()}, body


def _naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def parse_date(value: Any) -> datetime:
    """Parse a frontmatter date into a naive local datetime.

    Accepts datetimes, dates, and strings in ISO 8601 or a handful of
    common human formats.

    Raises:
        ConfigurationError: If the value cannot be understood as a date.
    """
    if isinstance(value, datetime):
        return _naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    try:
        return _naive(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return _naive(datetime.strptime(text, fmt))
        except ValueError:
            continue
    raise ConfigurationError(f"Cannot parse date: {value!r}")
