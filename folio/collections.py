"""Paginated collections of pages for Folio.

A Collection is the view an index page paginates over: the pages of
every section named in the index page's ``collect`` option, cut into
windows of ``paginate`` pages each.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from markupsafe import Markup

if TYPE_CHECKING:
    from .content import Page

SortKey = str | Callable[..., Any]


def _key_func(sort: SortKey) -> Callable[[Page], Any]:
    if callable(sort):
        return sort
    return lambda page: getattr(page, sort)


class Collection:
    """Sortable, paginated view over pages drawn from one or more sections.

    Attributes:
        page: The index page the collection paginates for.
        pages: Source pages in discovery order.
        page_size: Pages per window.
        page_count: Number of windows, ``ceil(len(pages) / page_size)``.
    """

    def __init__(self, page: Page, pages: Iterable[Page], page_size: int):
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.page = page
        self.pages = list(pages)
        self.page_size = page_size
        self.page_count = math.ceil(len(self.pages) / page_size)

    @property
    def range(self) -> range:
        """Valid pagination indices, ``1..page_count``."""
        return range(1, self.page_count + 1)

    def sorted(self, sort: SortKey = "date", ascending: bool = True) -> list[Page]:
        """Return the source pages sorted by ``sort``.

        The sort is stable, so pages with equal keys keep discovery order.
        """
        ordered = sorted(self.pages, key=_key_func(sort))
        if not ascending:
            ordered.reverse()
        return ordered

    def paginate(
        self, index: int, sort: SortKey = "date", ascending: bool = True
    ) -> list[Page]:
        """Return the pages of window ``index``.

        Args:
            index: 1-based window index.
            sort: Attribute name or key function to order pages by.
            ascending: Sort direction.

        Returns:
            The window's pages; the last window may be shorter.

        Raises:
            IndexError: If ``index`` is outside ``1..page_count``.
        """
        if index not in self.range:
            raise IndexError(
                f"Pagination index {index} out of range 1..{self.page_count}"
            )
        first = (index - 1) * self.page_size
        last = first + self.page_size - 1
        return self.sorted(sort, ascending)[first : last + 1]

    def links(self, index: int) -> Markup:
        """Render navigation for window ``index``.

        Every window gets one element, in ascending order: the current
        window as a span, every other as a link to that window.
        """
        links = []
        for i in self.range:
            if i == index:
                links.append(f'<span class="pagination pagination-current">{i}</span>')
            else:
                links.append(
                    self.page.link_to(text=i, klass="pagination pagination-link", index=i)
                )
        return Markup("\n".join(links))

    def __len__(self) -> int:
        return len(self.pages)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Collection({self.page.link}, {len(self.pages)} pages, size {self.page_size})"
