from click.testing import CliRunner

from folio import __version__
from folio.cli import cli


def test_cli_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_new_scaffolds_site(tmp_path):
    runner = CliRunner()
    target = tmp_path / "mysite"
    result = runner.invoke(cli, ["new", str(target)])
    assert result.exit_code == 0
    assert (target / "_folio" / "header.yaml").exists()
    assert (target / "_folio" / "site.html.jinja").exists()
    assert (target / "index.md").exists()

    # fails on non-empty directory
    result = runner.invoke(cli, ["new", str(target)])
    assert result.exit_code != 0
    assert "non-empty" in result.output


def test_cli_build_scaffolded_site(tmp_path):
    runner = CliRunner()
    target = tmp_path / "mysite"
    runner.invoke(cli, ["new", str(target)])

    result = runner.invoke(cli, ["build", str(target)], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Built 1 pages into" in result.output
    html = (target / "_folio" / "output" / "index.html").read_text(encoding="utf-8")
    assert "<title>My Folio Site</title>" in html
    assert '<h1 id="welcome-to-folio">Welcome to folio</h1>' in html

    result = runner.invoke(cli, ["build", str(target)], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Built 0 pages" in result.output
    assert "(1 unchanged)" in result.output


def test_cli_build_options(tmp_path, monkeypatch):
    seen = {}

    def fake_build_site(root, overrides=None, converters=None):
        seen["root"] = root
        seen["overrides"] = overrides
        raise SystemExit(0)

    monkeypatch.setattr("folio.build.build_site", fake_build_site)
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(
        cli, ["build", "--clean", "--full", "--minify", "--jobs", "2", "-o", "public"]
    )
    assert result.exit_code == 0
    assert seen["root"] == tmp_path.resolve()
    assert seen["overrides"] == {
        "output": str((tmp_path / "public").resolve()),
        "clean": True,
        "clobber": True,
        "minify": True,
        "jobs": 2,
    }


def test_cli_build_broken_site(tmp_path):
    result = CliRunner().invoke(cli, ["build", str(tmp_path)])
    assert result.exit_code == 1
    assert "not a folio site" in result.output


def test_cli_build_reports_page_failures(make_site):
    root = make_site({"good.md": "fine", "odd.rst.jinja": "text"})
    result = CliRunner().invoke(cli, ["build", str(root)])
    assert result.exit_code == 1
    assert "Build failed for 1 files" in result.output
    assert "odd.rst.jinja" in result.output
    assert "Cannot render markup dialect: 'rst'" in result.output
