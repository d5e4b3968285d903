"""External tool helpers for Folio.

Wiki markup goes through pandoc and Sass stylesheets through the sass
CLI. Both are optional: they are looked up on the system PATH and then
in a site's local ``node_modules/.bin``, and their absence is reported to
the caller rather than raised from here.

Functions:
    find_executable: Locate an executable in PATH or node_modules.
    run_tool: Run an external tool, feeding it text on stdin.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

logger = logging.getLogger(__name__)


def find_executable(name: str, project_root: Path | None = None) -> str | None:
    """Find an executable in PATH or local node_modules.

    Args:
        name: Name of the executable to find (e.g., 'pandoc', 'sass').
        project_root: Optional site root to search for a local
            node_modules installation.

    Returns:
        Full path to the executable if found, None otherwise.
    """
    found = shutil.which(name)
    if found:
        return found

    if project_root is not None:
        local = project_root / "node_modules" / ".bin" / name
        if local.exists():
            return str(local)

    return None


def run_tool(
    cmd: Sequence[str],
    stdin: str | None = None,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess:
    """Run an external tool and capture its output as text.

    Args:
        cmd: Command and arguments; ``cmd[0]`` is the executable path.
        stdin: Optional text fed to the process.
        cwd: Optional working directory.
        env: Optional extra environment variables.

    Returns:
        The completed process. A nonzero return code is left for the
        caller to interpret.
    """
    logger.debug("Running %s", " ".join(cmd))
    return subprocess.run(
        list(cmd),
        input=stdin,
        capture_output=True,
        text=True,
        cwd=cwd,
        env={**os.environ, **env} if env else None,
    )
