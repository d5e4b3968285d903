"""Command-line interface for Folio.

This module defines the CLI commands using the Click framework.

Commands:
- new: Scaffold a new Folio site.
- build: Build a site into its output directory.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import click

from . import __version__
from .errors import BrokenSiteError
from .site import SKELETON_DIR


@click.group()
@click.version_option(version=__version__, prog_name="folio")
def cli():
    """Folio static site generator."""


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Folio site."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New Folio site created at {target}")


@cli.command()
@click.argument(
    "root",
    required=False,
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
)
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Output directory (default: _folio/output inside the site)",
)
@click.option("--clean", is_flag=True, help="Wipe the output directory first")
@click.option("--full", is_flag=True, help="Render every page, changed or not")
@click.option("--minify", is_flag=True, help="Minify stylesheets and scripts")
@click.option("--jobs", "-j", type=click.IntRange(min=1), help="Number of render workers")
@click.option("-v", "--verbose", count=True, help="Show progress (-vv for debug output)")
def build(
    root: Path,
    output: Path | None,
    clean: bool,
    full: bool,
    minify: bool,
    jobs: int | None,
    verbose: int,
):
    """Build the site at ROOT (default: the current directory)."""
    _configure_logging(verbose)
    from .build import build_site

    project_root = root.resolve()
    overrides = {
        "output": str(output.resolve()) if output else None,
        "clean": clean,
        "clobber": full,
        "minify": minify,
        "jobs": jobs,
    }
    try:
        result = build_site(project_root, overrides)
    except BrokenSiteError as exc:
        raise click.ClickException(str(exc)) from None

    summary = f"Built {len(result.rendered)} pages into {result.output_dir}"
    if result.skipped:
        summary += f" ({len(result.skipped)} unchanged)"
    click.echo(summary)

    if result.failures:
        click.echo(
            click.style(f"Build failed for {len(result.failures)} files:", fg="red", bold=True),
            err=True,
        )
        for failure in result.failures:
            click.echo(
                click.style(f"  File: {_display_path(failure.source_path, project_root)}", fg="yellow"),
                err=True,
            )
            click.echo(click.style(f"  Error: {failure.message}", fg="white"), err=True)
        raise SystemExit(1)


def main():
    """Entry point for the CLI application."""
    cli()


def _display_path(path: Path, root: Path) -> Path:
    try:
        return path.relative_to(root)
    except ValueError:
        return path


class _EchoHandler(logging.Handler):
    """Logging handler writing through ``click.echo`` to stderr."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def _configure_logging(verbosity: int) -> None:
    """Send ``folio`` log records to stderr at a level set by ``-v``."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logger = logging.getLogger("folio")
    logger.setLevel(level)
    if not logger.handlers:
        handler = _EchoHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)


def _scaffold(root: Path) -> None:
    """Copy the packaged skeleton site into a new directory.

    Args:
        root: Root directory for the new site.
    """
    for src_path in SKELETON_DIR.rglob("*"):
        if src_path.is_dir():
            continue
        rel_path = src_path.relative_to(SKELETON_DIR)
        dest_path = root / rel_path
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)
