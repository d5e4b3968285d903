"""Site building functionality for Folio.

This module contains the build itself: discover the site, compare its
links with the previous build's path cache, delete what disappeared,
materialize assets, render every page that needs it on a worker pool,
and record the new path cache for next time.

Key functions:
- build_site: Build a site and report what happened.
- needs_render: Decide whether a page's output is stale.
"""

from __future__ import annotations

import logging
import os
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .assets import AssetPipeline
from .content import Page
from .errors import BuildError, format_error_message
from .hooks import run_hooks
from .path_cache import CATEGORIES, PathCacheDiff
from .renderers import ConverterRegistry
from .site import Site
from .templates import TemplatePipeline
from .utils import ensure_clean_dir, prune_empty_dirs

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        site: The discovered site.
        rendered: Pages whose output was written.
        skipped: Pages left untouched because their output was current.
        failures: Pages and sections that could not be built.
        output_dir: Directory where the site was built.
        diff: Link changes since the previous build.
    """

    site: Site
    rendered: list[Page]
    skipped: list[Page]
    failures: list[BuildError]
    output_dir: Path
    diff: PathCacheDiff

    @property
    def pages(self) -> list[Page]:
        return self.site.pages

    @property
    def ok(self) -> bool:
        return not self.failures


def build_site(
    root: Path | str,
    overrides: dict[str, Any] | None = None,
    converters: ConverterRegistry | None = None,
) -> BuildResult:
    """Build a site.

    Args:
        root: Site root directory.
        overrides: Configuration overrides, normally from the command
            line (``output``, ``clean``, ``clobber``, ``minify``, ``jobs``).
        converters: Optional custom markup converters.

    Returns:
        BuildResult describing the build. Page failures are collected
        there instead of stopping the build.

    Raises:
        BrokenSiteError: If the site root or header is unusable.
    """
    site = Site(root, overrides)
    output_dir = site.output_root
    if site.config.clean:
        logger.info("Cleaning %s", output_dir)
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    run_hooks(site.before_hooks, site, "before")

    diff = site.path_cache.diff(site.old_path_cache)
    _remove_stale_outputs(site, diff)
    AssetPipeline(site).run()

    pipeline = site.render_pipeline(converters)
    rendered: list[Page] = []
    skipped: list[Page] = []
    failures: list[BuildError] = list(site.failures)

    pending = []
    for page in site.pages:
        if needs_render(site, page, diff):
            pending.append(page)
        else:
            logger.debug("%s is up to date", page)
            skipped.append(page)

    jobs = site.config.jobs or os.cpu_count() or 1
    with ThreadPoolExecutor(max_workers=jobs) as executor:
        futures = {
            executor.submit(_render_page, site, pipeline, page): page for page in pending
        }
        for future in as_completed(futures):
            page = futures[future]
            try:
                future.result()
            except Exception as exc:
                message = format_error_message(exc)
                logger.error("Failed to render %s: %s", page, message)
                failures.append(BuildError(page.input_path, message, exc))
                continue
            rendered.append(page)

    site.path_cache.save(site.path_cache_file)
    run_hooks(site.after_hooks, site, "after")
    logger.info(
        "Rendered %d pages, skipped %d, %d failures",
        len(rendered),
        len(skipped),
        len(failures),
    )
    return BuildResult(
        site=site,
        rendered=rendered,
        skipped=skipped,
        failures=failures,
        output_dir=output_dir,
        diff=diff,
    )


def needs_render(site: Site, page: Page, diff: PathCacheDiff) -> bool:
    """Decide whether a page must be rendered.

    A page is skipped only on an incremental build where no page or
    section came or went, nothing forces a full build, the page does
    not paginate, and its output is at least as new as every source
    file in the site (see :attr:`Page.dependencies`).
    """
    if not site.smart_rendering or site.config.clobber:
        return True
    if diff.is_new("pages", page.link) or diff.structure_changed:
        return True
    if page.paginate:
        return True
    output = site.output_path(page.paginated_link())
    if not output.exists():
        return True
    return site.newest_source_mtime() > output.stat().st_mtime


def _remove_stale_outputs(site: Site, diff: PathCacheDiff) -> None:
    for category in CATEGORIES:
        for link in diff[category].removed:
            path = site.output_path(link)
            if path.is_file():
                logger.info("Removing stale output %s", link)
                path.unlink()
            prune_empty_dirs(path.parent, site.output_root)


def _render_page(site: Site, pipeline: TemplatePipeline, page: Page) -> list[Path]:
    """Render every pagination window of a page and copy its resources."""
    collection = site.collection_for(page)
    indices = list(collection.range) if collection is not None else []
    written = []
    for index in indices or [None]:
        rendered = pipeline.render(page, index=index, collection=collection)
        path = site.output_path(page.paginated_link(index))
        _write_page(path, rendered)
        written.append(path)
    if page.resources:
        target_dir = site.output_path(page.trail).parent
        for resource in page.resources:
            shutil.copy2(resource, target_dir / resource.name)
            written.append(target_dir / resource.name)
    logger.debug("Rendered %s (%d files)", page, len(written))
    return written


def _write_page(path: Path, rendered: str) -> None:
    """Write rendered output, creating parent directories.

    Args:
        path: Output file.
        rendered: Rendered HTML content.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(rendered)
