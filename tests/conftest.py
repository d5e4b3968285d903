from pathlib import Path

import pytest

SIMPLE_SITE_TEMPLATE = "<html><title>{{ page.title }}</title>{{ body }}</html>\n"
SIMPLE_PAGE_TEMPLATE = "<article>{{ body }}</article>"


@pytest.fixture
def make_site(tmp_path):
    """Return a factory writing a site tree under ``tmp_path``.

    ``files`` maps root-relative paths to file text. Unless
    ``default_templates`` is set, small site and page templates are
    written so rendered output is easy to assert on.
    """

    def _make(
        files: dict[str, str] | None = None,
        header: str = "title: Test Site\n",
        default_templates: bool = False,
        root: Path | None = None,
    ) -> Path:
        site_root = root or tmp_path / "site"
        tooling = site_root / "_folio"
        tooling.mkdir(parents=True, exist_ok=True)
        (tooling / "header.yaml").write_text(header, encoding="utf-8")
        if not default_templates:
            (tooling / "site.html.jinja").write_text(SIMPLE_SITE_TEMPLATE, encoding="utf-8")
            (tooling / "page.html.jinja").write_text(SIMPLE_PAGE_TEMPLATE, encoding="utf-8")
        for rel, text in (files or {}).items():
            path = site_root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return site_root

    return _make


def dated(day: int, body: str = "Body", **extra) -> str:
    """Page text with a frontmatter date in January 2024."""
    lines = [f"date: 2024-01-{day:02d}"]
    lines.extend(f"{key}: {value}" for key, value in extra.items())
    return "---\n" + "\n".join(lines) + "\n---\n" + body + "\n"


@pytest.fixture
def page_text():
    return dated
