"""Protocol definitions for Folio.

These protocols describe the collaborators the build pipeline talks to:
markup converters, the template evaluator and asset processors. Concrete
implementations live in ``renderers``, ``templates`` and
``asset_processors``; tests and embedders can substitute their own.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MarkupConverter(Protocol):
    """Protocol for converting one markup dialect to HTML."""

    @property
    @abstractmethod
    def dialect(self) -> str:
        """Return the dialect name this converter handles (e.g. 'md')."""
        ...

    @abstractmethod
    def convert(self, text: str) -> str:
        """Convert markup text to HTML.

        Args:
            text: Markup in this converter's dialect.

        Returns:
            HTML text.

        Raises:
            ConverterUnavailableError: If the backing tool is missing.
        """
        ...


@runtime_checkable
class TemplateEvaluator(Protocol):
    """Protocol for evaluating template text against a set of bindings."""

    @abstractmethod
    def evaluate(self, text: str, bindings: Mapping[str, Any]) -> str:
        """Render template text.

        Args:
            text: Template source.
            bindings: The only names visible to the template.

        Returns:
            Rendered text.
        """
        ...


@runtime_checkable
class AssetProcessor(Protocol):
    """Protocol for materializing one kind of asset into the output tree."""

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

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...
