import logging
import subprocess
from pathlib import Path

from PIL import Image

from folio import asset_processors
from folio.asset_processors import (
    AssetProcessorRegistry,
    CSSProcessor,
    ImageProcessor,
    JSProcessor,
    SassProcessor,
    StaticAssetProcessor,
    create_default_registry,
)
from folio.assets import (
    AssetPipeline,
    Favicon,
    discover_favicon,
    discover_images,
    discover_scripts,
    discover_stylesheets,
)
from folio.build import build_site
from folio.site import Site


def test_image_processor(tmp_path):
    processor = ImageProcessor()
    assert processor.can_process(Path("test.png"))
    assert processor.can_process(Path("test.JPG"))
    assert not processor.can_process(Path("test.svg"))
    assert processor.priority == 100

    source = tmp_path / "source.png"
    Image.new("RGB", (10, 10), color="red").save(source)
    dest = tmp_path / "out" / "source.png"
    assert processor.process(source, dest)
    with Image.open(dest) as img:
        assert img.size == (10, 10)


def test_image_processor_copies_unreadable_images(tmp_path):
    source = tmp_path / "broken.png"
    source.write_text("not really a png", encoding="utf-8")
    dest = tmp_path / "out" / "broken.png"
    assert ImageProcessor().process(source, dest)
    assert dest.read_text(encoding="utf-8") == "not really a png"


def test_css_and_static_processors_copy(tmp_path):
    source = tmp_path / "style.css"
    source.write_text("body {}", encoding="utf-8")
    dest = tmp_path / "out" / "style.css"
    assert CSSProcessor().process(source, dest)
    assert dest.read_text(encoding="utf-8") == "body {}"

    processor = StaticAssetProcessor()
    assert processor.can_process(Path("any.file"))
    assert processor.priority == 0


def test_js_processor_minifies_only_when_asked(tmp_path):
    source = tmp_path / "app.js"
    source.write_text("function test() {\n  return 1 + 1;\n}\n", encoding="utf-8")

    copied = tmp_path / "copy" / "app.js"
    JSProcessor().process(source, copied)
    assert copied.read_text(encoding="utf-8") == source.read_text(encoding="utf-8")

    minified = tmp_path / "min" / "app.js"
    JSProcessor(minify=True).process(source, minified)
    text = minified.read_text(encoding="utf-8")
    assert "return 1+1" in text
    assert "\n" not in text.strip()


def test_css_processor_minifies_only_when_asked(tmp_path):
    source = tmp_path / "style.css"
    source.write_text("body {\n  margin: 0;\n}\n/* note */\n", encoding="utf-8")

    copied = tmp_path / "copy" / "style.css"
    CSSProcessor().process(source, copied)
    assert copied.read_text(encoding="utf-8") == source.read_text(encoding="utf-8")

    minified = tmp_path / "min" / "style.css"
    CSSProcessor(minify=True).process(source, minified)
    assert minified.read_text(encoding="utf-8").strip() == "body{margin:0}"


def test_sass_processor_without_compiler(tmp_path, monkeypatch, caplog):
    monkeypatch.setattr(asset_processors, "find_executable", lambda name, root=None: None)
    source = tmp_path / "site.scss"
    source.write_text("$c: red; body { color: $c; }", encoding="utf-8")
    dest = tmp_path / "out" / "site.css"
    with caplog.at_level(logging.WARNING, logger="folio"):
        assert not SassProcessor(tmp_path).process(source, dest)
    assert not dest.exists()
    assert "sass not found" in caplog.text


def test_sass_processor_runs_compiler(tmp_path, monkeypatch):
    seen = {}

    def fake_run_tool(cmd, stdin=None, cwd=None, env=None):
        seen["cmd"] = cmd
        Path(cmd[-1]).write_text("body{color:red}", encoding="utf-8")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(asset_processors, "find_executable", lambda name, root=None: "/bin/sass")
    monkeypatch.setattr(asset_processors, "run_tool", fake_run_tool)
    source = tmp_path / "site.scss"
    source.write_text("body { color: red; }", encoding="utf-8")
    dest = tmp_path / "out" / "site.css"
    assert SassProcessor(tmp_path).process(source, dest)
    assert seen["cmd"][0] == "/bin/sass"
    assert dest.read_text(encoding="utf-8") == "body{color:red}"


def test_registry_prefers_higher_priority(tmp_path):
    registry = AssetProcessorRegistry()
    registry.register(StaticAssetProcessor())
    registry.register(CSSProcessor())
    assert isinstance(registry.get_processor(Path("a.css")), CSSProcessor)
    assert isinstance(registry.get_processor(Path("a.txt")), StaticAssetProcessor)
    assert AssetProcessorRegistry().process(Path("a.css"), tmp_path / "a.css") is False

    default = create_default_registry(tmp_path)
    assert isinstance(default.get_processor(Path("a.scss")), SassProcessor)
    assert isinstance(default.get_processor(Path("a.js")), JSProcessor)


def test_discovery(tmp_path):
    tooling = tmp_path / "_folio"
    (tooling / "images").mkdir(parents=True)
    (tooling / "scripts").mkdir()
    (tooling / "images" / "b.png").write_bytes(b"x")
    (tooling / "images" / "a.svg").write_text("<svg/>", encoding="utf-8")
    (tooling / "images" / ".hidden.png").write_bytes(b"x")
    (tooling / "scripts" / "app.js").write_text("1", encoding="utf-8")
    (tooling / "site.css").write_text("", encoding="utf-8")
    (tooling / "site.scss").write_text("", encoding="utf-8")
    (tooling / "print.sass").write_text("", encoding="utf-8")
    (tooling / "icon.png").write_bytes(b"x")

    assert [i.link for i in discover_images(tooling)] == [
        "/_folio/images/a.svg",
        "/_folio/images/b.png",
    ]
    stylesheets = discover_stylesheets(tooling)
    assert [(s.source.name, s.link) for s in stylesheets] == [
        ("print.sass", "/_folio/print.css"),
        ("site.css", "/_folio/site.css"),
    ]
    assert [s.link for s in discover_scripts(tooling)] == ["/_folio/scripts/app.js"]
    favicon = discover_favicon(tooling)
    assert favicon.links == [
        "/favicon.ico",
        "/_folio/favicons/favicon-16x16.png",
        "/_folio/favicons/favicon-32x32.png",
        "/_folio/favicons/favicon-96x96.png",
        "/_folio/favicons/favicon-192x192.png",
    ]
    assert discover_favicon(tmp_path) is None


def test_favicon_tags():
    tags = Favicon.for_source(Path("icon.png")).tags()
    assert '<link rel="shortcut icon" href="/favicon.ico">' in tags
    assert 'sizes="192x192" href="/_folio/favicons/favicon-192x192.png"' in tags


def test_build_materializes_assets(make_site, page_text, monkeypatch):
    monkeypatch.setattr(asset_processors, "find_executable", lambda name, root=None: None)
    root = make_site({"index.md": page_text(1)})
    tooling = root / "_folio"
    (tooling / "images").mkdir()
    Image.new("RGB", (4, 4), color="blue").save(tooling / "images" / "logo.png")
    Image.new("RGBA", (64, 64), color="green").save(tooling / "icon.png")
    (tooling / "site.css").write_text("body { margin: 0; }", encoding="utf-8")
    (tooling / "theme.scss").write_text("body { color: red; }", encoding="utf-8")
    (tooling / "scripts").mkdir()
    (tooling / "scripts" / "app.js").write_text("var a = 1 ;\n", encoding="utf-8")

    result = build_site(root, {"minify": True})
    out = result.output_dir

    assert (out / "_folio" / "images" / "logo.png").exists()
    assert (out / "_folio" / "site.css").read_text(encoding="utf-8").strip() == "body{margin:0}"
    assert not (out / "_folio" / "theme.css").exists()
    assert (out / "_folio" / "scripts" / "app.js").read_text(encoding="utf-8").strip() == "var a=1;"
    with Image.open(out / "favicon.ico") as ico:
        assert ico.format == "ICO"
    with Image.open(out / "_folio" / "favicons" / "favicon-96x96.png") as png:
        assert png.size == (96, 96)
    assert result.site.path_cache.favicons[0] == "/favicon.ico"
    assert result.site.path_cache.stylesheets == ["/_folio/site.css", "/_folio/theme.css"]


def test_pipeline_skips_fresh_assets(make_site):
    root = make_site()
    (root / "_folio" / "site.css").write_text("a {}", encoding="utf-8")
    site = Site(root)
    assert AssetPipeline(site).run() == 1
    assert AssetPipeline(Site(root)).run() == 0
    assert AssetPipeline(Site(root, {"clobber": True})).run() == 1


def test_removed_stylesheet_output_is_deleted(make_site):
    root = make_site()
    css = root / "_folio" / "old.css"
    css.write_text("a {}", encoding="utf-8")
    first = build_site(root)
    assert (first.output_dir / "_folio" / "old.css").exists()
    css.unlink()
    second = build_site(root)
    assert second.diff["stylesheets"].removed == ["/_folio/old.css"]
    assert not (second.output_dir / "_folio" / "old.css").exists()


def test_removed_script_output_is_deleted(make_site):
    root = make_site()
    scripts = root / "_folio" / "scripts"
    scripts.mkdir()
    (scripts / "keep.js").write_text("var a;", encoding="utf-8")
    (scripts / "old.js").write_text("var b;", encoding="utf-8")
    first = build_site(root)
    out_scripts = first.output_dir / "_folio" / "scripts"
    assert (out_scripts / "old.js").exists()

    (scripts / "old.js").unlink()
    build_site(root)
    assert not (out_scripts / "old.js").exists()
    assert (out_scripts / "keep.js").exists()

    (scripts / "keep.js").unlink()
    build_site(root)
    assert not out_scripts.exists()
