"""Build hooks for Folio.

Executables in ``_folio/hooks/before/`` run before a build and those in
``_folio/hooks/after/`` after it, in name order, from the site root.
Each hook sees ``FOLIO_ROOT`` and ``FOLIO_OUTPUT`` in its environment.
A hook that fails is reported and the build carries on.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from .executable_utils import run_tool
from .utils import is_hidden

if TYPE_CHECKING:
    from .site import Site

logger = logging.getLogger(__name__)


def discover_hooks(directory: Path) -> list[Path]:
    """Return the executable files of a hook directory in name order."""
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and not is_hidden(p) and os.access(p, os.X_OK)
    )


def run_hooks(hooks: list[Path], site: Site, stage: str) -> int:
    """Run hooks in order.

    Args:
        hooks: Executables to run.
        site: Site being built.
        stage: ``before`` or ``after``, for log messages.

    Returns:
        Number of hooks that succeeded.
    """
    env = {"FOLIO_ROOT": str(site.root), "FOLIO_OUTPUT": str(site.output_root)}
    succeeded = 0
    for hook in hooks:
        logger.info("Running %s hook %s", stage, hook.name)
        try:
            result = run_tool([str(hook)], cwd=site.root, env=env)
        except OSError as exc:
            logger.warning("Could not run %s hook %s: %s", stage, hook.name, exc)
            continue
        if result.returncode != 0:
            logger.warning(
                "%s hook %s exited with %d: %s",
                stage.capitalize(),
                hook.name,
                result.returncode,
                result.stderr.strip(),
            )
            continue
        succeeded += 1
    return succeeded
