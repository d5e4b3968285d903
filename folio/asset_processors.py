"""Asset processors for Folio.

Each processor materializes one kind of asset file into the output tree.
Processors are chosen through a priority-ordered registry; anything no
specialised processor claims is copied as-is.

Key classes:
- ImageProcessor: Re-saves images through Pillow with optimization.
- CSSProcessor: Minifies CSS with rcssmin when minification is on.
- SassProcessor: Compiles .scss/.sass through the sass CLI.
- JSProcessor: Minifies JavaScript with rjsmin when minification is on.
- StaticAssetProcessor: Copies anything else.
- AssetProcessorRegistry: Registry for managing asset processors.

Functions:
- render_favicon: Render every favicon format from one source image.
"""

from __future__ import annotations

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from PIL import Image
from rcssmin import cssmin
from rjsmin import jsmin

from .executable_utils import find_executable, run_tool

if TYPE_CHECKING:
    from .assets import Favicon

logger = logging.getLogger(__name__)


class BaseAssetProcessor(ABC):
    """Base class for asset processors."""

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...

    @abstractmethod
    def can_process(self, path: Path) -> bool:
        """Check if this processor can handle the given asset."""
        ...

    @abstractmethod
    def process(self, source: Path, dest: Path) -> bool:
        """Process an asset file.

        Returns:
            True if the destination was written.
        """
        ...

    def ensure_dest_dir(self, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)


class ImageProcessor(BaseAssetProcessor):
    """Re-saves raster images through Pillow with optimization.

    Falls back to copying when Pillow cannot read the file.
    """

    SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif"}

    @property
    def priority(self) -> int:
        return 100

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in self.SUPPORTED_EXTENSIONS

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        try:
            with Image.open(source) as img:
                img.save(dest, optimize=True)
            return True
        except (OSError, ValueError) as exc:
            logger.debug("Pillow could not optimize %s (%s); copying", source, exc)
        shutil.copy2(source, dest)
        return True


class CSSProcessor(BaseAssetProcessor):
    """Copies plain CSS, minified with rcssmin when ``minify`` is set."""

    def __init__(self, minify: bool = False):
        self.minify = minify

    @property
    def priority(self) -> int:
        return 90

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".css"

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        if not self.minify:
            shutil.copy2(source, dest)
            return True
        text = source.read_text(encoding="utf-8")
        dest.write_text(cssmin(text), encoding="utf-8")
        return True


class SassProcessor(BaseAssetProcessor):
    """Compiles Sass stylesheets with the sass CLI.

    A missing or failing compiler skips the stylesheet with a warning.
    """

    def __init__(self, project_root: Path):
        self.project_root = project_root

    @property
    def priority(self) -> int:
        return 95

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in (".scss", ".sass")

    def process(self, source: Path, dest: Path) -> bool:
        sass_bin = find_executable("sass", self.project_root)
        if not sass_bin:
            logger.warning("sass not found; skipping stylesheet %s", source.name)
            return False
        self.ensure_dest_dir(dest)
        result = run_tool([sass_bin, "--style=compressed", str(source), str(dest)])
        if result.returncode != 0:
            logger.warning("Sass build failed for %s: %s", source.name, result.stderr.strip())
            return False
        return True


class JSProcessor(BaseAssetProcessor):
    """Copies JavaScript, minified with rjsmin when ``minify`` is set."""

    def __init__(self, minify: bool = False):
        self.minify = minify

    @property
    def priority(self) -> int:
        return 80

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".js"

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        if not self.minify:
            shutil.copy2(source, dest)
            return True
        text = source.read_text(encoding="utf-8")
        dest.write_text(jsmin(text), encoding="utf-8")
        return True


class StaticAssetProcessor(BaseAssetProcessor):
    """Copies assets that need no processing."""

    @property
    def priority(self) -> int:
        return 0

    def can_process(self, path: Path) -> bool:
        return True

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        shutil.copy2(source, dest)
        return True


class AssetProcessorRegistry:
    """Registry selecting the highest-priority processor for each file."""

    def __init__(self):
        self._processors: list[BaseAssetProcessor] = []

    def register(self, processor: BaseAssetProcessor) -> None:
        """Register a new processor, keeping the list sorted by priority."""
        self._processors.append(processor)
        self._processors.sort(key=lambda p: p.priority, reverse=True)

    def get_processor(self, path: Path) -> BaseAssetProcessor | None:
        for processor in self._processors:
            if processor.can_process(path):
                return processor
        return None

    def process(self, source: Path, dest: Path) -> bool:
        """Process an asset; False when no processor handled it."""
        processor = self.get_processor(source)
        if processor:
            return processor.process(source, dest)
        return False


def create_default_registry(project_root: Path, minify: bool = False) -> AssetProcessorRegistry:
    """Create a registry with the default processors.

    Args:
        project_root: Site root, searched for local tool installs.
        minify: Whether stylesheets and scripts are minified.

    Returns:
        Configured AssetProcessorRegistry.
    """
    registry = AssetProcessorRegistry()
    registry.register(ImageProcessor())
    registry.register(SassProcessor(project_root))
    registry.register(CSSProcessor(minify=minify))
    registry.register(JSProcessor(minify=minify))
    registry.register(StaticAssetProcessor())
    return registry


def render_favicon(favicon: Favicon, output_root: Path) -> list[Path]:
    """Render every favicon format from the favicon's source image.

    Args:
        favicon: Favicon with its list of formats.
        output_root: Output directory the format links resolve against.

    Returns:
        Paths written.

    Raises:
        OSError: If Pillow cannot read the source or write a format.
    """
    written = []
    with Image.open(favicon.source) as img:
        img = img.convert("RGBA")
        for fmt in favicon.formats:
            dest = output_root / fmt.output_file
            dest.parent.mkdir(parents=True, exist_ok=True)
            size = (fmt.size, fmt.size)
            if fmt.format == "ico":
                img.save(dest, format="ICO", sizes=[size])
            else:
                img.resize(size, Image.LANCZOS).save(dest, format="PNG")
            written.append(dest)
    return written
