"""HTML utility functions for Folio.

This module provides the small HTML snippets that pages, sections and
collections hand to templates: escaped text, anchors, spans and image
tags. Snippets are returned as ``Markup`` so they survive an
autoescaping template unchanged.

Functions:
    escape_html: Escape special HTML characters in a string.
    link_to: Build an anchor element.
    span: Build a span element.
    img_tag: Build an image element.
"""

from __future__ import annotations

from typing import Any

from markupsafe import Markup, escape


def escape_html(text: Any) -> str:
    """Escape special HTML characters in a string.

    Args:
        text: The value to escape; non-strings are converted first.

    Returns:
        The escaped string, safe for inclusion in HTML.

    Examples:
        >>> escape_html("Tom & <Jerry>")
        'Tom &amp; &lt;Jerry&gt;'
    """
    return str(escape(text))


def _attributes(id: str | None = None, klass: str | None = None) -> str:
    parts = []
    if id:
        parts.append(f' id="{escape_html(id)}"')
    if klass:
        parts.append(f' class="{escape_html(klass)}"')
    return "".join(parts)


def link_to(
    href: str, text: Any, klass: str | None = None, id: str | None = None
) -> Markup:
    """Build an anchor element.

    Args:
        href: Link target.
        text: Anchor text; escaped.
        klass: Optional CSS class.
        id: Optional element id.

    Returns:
        HTML anchor markup.

    Examples:
        >>> str(link_to("/blog/", "Blog", klass="nav"))
        '<a class="nav" href="/blog/">Blog</a>'
    """
    attrs = _attributes(id=id, klass=klass)
    return Markup(f'<a{attrs} href="{escape_html(href)}">{escape_html(text)}</a>')


def span(text: Any, klass: str | None = None, id: str | None = None) -> Markup:
    """Build a span element around escaped text."""
    return Markup(f"<span{_attributes(id=id, klass=klass)}>{escape_html(text)}</span>")


def img_tag(
    src: str, alt: Any = None, klass: str | None = None, id: str | None = None
) -> Markup:
    """Build an image element; the alt text defaults to empty."""
    alt_text = "" if alt is None else alt
    return Markup(
        f'<img{_attributes(id=id, klass=klass)} src="{escape_html(src)}" alt="{escape_html(alt_text)}">'
    )
