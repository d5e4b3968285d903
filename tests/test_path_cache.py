import logging

import pytest

from folio.path_cache import CATEGORIES, PathCache, PathCacheDiff


def make_cache(**links):
    cache = PathCache()
    for category, values in links.items():
        for link in values:
            cache.add(category, link)
    return cache


def test_add_ignores_repeats_and_unknown_categories():
    cache = make_cache(pages=["/a/", "/b/", "/a/"])
    assert cache.pages == ["/a/", "/b/"]
    with pytest.raises(ValueError):
        cache.add("fonts", "/f.woff")


def test_save_and_load_round_trip(tmp_path):
    cache = make_cache(
        pages=["/", "/blog/page/2/"],
        images=["/_folio/images/a.png"],
        favicons=["/favicon.ico"],
        stylesheets=["/_folio/site.css"],
        sections=["/", "/blog/"],
    )
    path = tmp_path / "out" / "_folio" / ".path-cache.yaml"
    cache.save(path)
    assert not path.with_name(path.name + ".tmp").exists()
    assert PathCache.load(path) == cache


def test_load_missing_returns_none(tmp_path):
    assert PathCache.load(tmp_path / "absent.yaml") is None


@pytest.mark.parametrize(
    "text",
    ["- not\n- a mapping\n", "pages: [unclosed\n", "pages: {a: 1}\n", "pages: [1, 2]\n"],
)
def test_load_corrupt_returns_none_with_warning(tmp_path, caplog, text):
    path = tmp_path / "cache.yaml"
    path.write_text(text, encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="folio"):
        assert PathCache.load(path) is None
    assert "Ignoring unreadable path cache" in caplog.text


def test_load_tolerates_missing_and_null_categories(tmp_path):
    path = tmp_path / "cache.yaml"
    path.write_text("pages: ['/a/']\nimages:\n", encoding="utf-8")
    cache = PathCache.load(path)
    assert cache.pages == ["/a/"]
    assert cache.images == []
    assert cache.sections == []


def test_diff_classifies_links_in_order():
    old = make_cache(pages=["/a/", "/b/", "/c/"], sections=["/"])
    new = make_cache(pages=["/c/", "/d/", "/a/"], sections=["/"])
    diff = new.diff(old)
    assert diff.incremental
    assert diff["pages"].kept == ["/a/", "/c/"]
    assert diff["pages"].removed == ["/b/"]
    assert diff["pages"].added == ["/d/"]
    assert diff.structure_changed
    assert diff.is_new("pages", "/d/")
    assert not diff.is_new("pages", "/a/")
    assert not diff["sections"].changed


def test_diff_without_old_cache_adds_everything():
    new = make_cache(pages=["/a/"], images=["/_folio/images/x.png"])
    diff = PathCacheDiff.between(None, new)
    assert not diff.incremental
    assert diff["pages"].added == ["/a/"]
    assert diff["images"].added == ["/_folio/images/x.png"]
    assert all(not diff[c].removed and not diff[c].kept for c in CATEGORIES)


def test_unchanged_structure():
    cache = make_cache(pages=["/a/"], sections=["/"], images=["/_folio/images/x.png"])
    old = make_cache(pages=["/a/"], sections=["/"])
    diff = cache.diff(old)
    assert not diff.structure_changed
    assert diff["images"].changed
