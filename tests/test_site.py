import pytest

from folio.build import build_site
from folio.errors import BrokenSiteError, MissingReferenceError
from folio.site import DEFAULT_TOOLING_DIR, Site


def test_missing_root_or_header_is_broken(tmp_path):
    with pytest.raises(BrokenSiteError):
        Site(tmp_path / "nowhere")
    with pytest.raises(BrokenSiteError, match="header.yaml"):
        Site(tmp_path)


def test_malformed_header_is_broken(make_site):
    root = make_site(header="- just\n- a list\n")
    with pytest.raises(BrokenSiteError):
        Site(root)


def test_header_wins_over_overrides(make_site):
    root = make_site(header="title: From Header\nminify: false\n")
    site = Site(root, {"title": "From CLI", "minify": True, "clobber": None})
    assert site.title == "From Header"
    assert site.config.minify is True
    assert site.config.clobber is False
    assert site.conf("title") == "From Header"
    assert site.configs()["minify"] is True


def test_discovery_prunes_tooling_hidden_and_output(make_site, page_text):
    root = make_site(
        {
            "index.md": page_text(1),
            "blog/post.md": page_text(2),
            ".git/ignored.md": page_text(3),
            "_folio/not-a-page.md": page_text(4),
            "public/leftover.md": page_text(5),
        }
    )
    site = Site(root, {"output": str(root / "public")})
    assert site.output_root == (root / "public").resolve()
    assert [s.link for s in site.sections] == ["/", "/blog/"]
    assert sorted(p.link for p in site.pages) == ["/blog/post/", "/index.html"]
    assert site.path_cache.sections == ["/", "/blog/"]
    assert site.path_cache.pages == ["/index.html", "/blog/post/"]


def test_default_output_and_templates(make_site):
    root = make_site(default_templates=True)
    site = Site(root)
    assert site.output_root == root.resolve() / "_folio" / "output"
    assert site.site_template == DEFAULT_TOOLING_DIR / "site.html.jinja"
    assert site.autoindex_template == DEFAULT_TOOLING_DIR / "autoindex.html.jinja"
    assert site.header_file in site.template_files


def test_lookup_by_link_and_address(make_site, page_text):
    root = make_site({"blog/index.md": page_text(1), "blog/post.md": page_text(2)})
    site = Site(root)
    assert site.page("blog/post").name == "post"
    assert site.page("/blog/").name == "index"
    assert site.page("/blog/index.html").name == "index"
    assert site.addr("/blog/post/").name == "post"
    assert site.addr("/blog/").name == "index"
    assert site.section("blog").link == "/blog/"
    assert site.name == root.resolve().name

    with pytest.raises(MissingReferenceError):
        site.page("/nope/")
    with pytest.raises(MissingReferenceError):
        site.section("/nope/")
    with pytest.raises(MissingReferenceError):
        site.addr("/nope/")


def test_addr_falls_back_to_section_without_index(make_site, page_text):
    root = make_site({"docs/intro.md": page_text(1)})
    section = Site(root).addr("/docs/")
    assert section.link == "/docs/"
    assert section.title == "Docs"


def test_collection_spans_collected_sections(make_site, page_text):
    root = make_site(
        {
            "index.md": page_text(1, paginate=2, collect="[blog, news]"),
            "blog/a.md": page_text(2),
            "blog/b.md": page_text(3),
            "news/c.md": page_text(4),
        }
    )
    site = Site(root)
    home = site.page("/")
    collection = site.collection_for(home)
    assert [p.name for p in collection.pages] == ["a", "b", "c"]
    assert collection.page_count == 2
    assert "/page/2/" in site.path_cache.pages
    assert site.collection_for(site.page("/blog/a/")) is None


def test_collection_for_unknown_section(make_site, page_text):
    root = make_site({"index.md": page_text(1, paginate=2, collect="missing")})
    site = Site(root)
    with pytest.raises(MissingReferenceError):
        site.collection_for(site.page("/"))


def test_img_tag(make_site):
    root = make_site()
    images = root / "_folio" / "images"
    images.mkdir()
    (images / "logo.svg").write_text("<svg/>", encoding="utf-8")
    site = Site(root)
    assert site.img("logo.svg", alt="Logo", klass="brand") == (
        '<img class="brand" src="/_folio/images/logo.svg" alt="Logo">'
    )
    assert site.path_cache.images == ["/_folio/images/logo.svg"]
    with pytest.raises(MissingReferenceError):
        site.img("missing.png")


def test_smart_rendering_after_first_build(make_site, page_text):
    root = make_site({"index.md": page_text(1)})
    assert Site(root).smart_rendering is False
    build_site(root)
    assert Site(root).smart_rendering is True
    assert Site(root, {"clean": True}).smart_rendering is False


def test_malformed_section_header_skips_section(make_site, page_text):
    root = make_site(
        {
            "index.md": page_text(1),
            "bad/section.yaml": "- nope\n",
            "bad/page.md": page_text(2),
        }
    )
    site = Site(root)
    assert [s.link for s in site.sections] == ["/"]
    assert [f.source_path.name for f in site.failures] == ["bad"]
