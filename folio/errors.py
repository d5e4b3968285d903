"""Exception hierarchy for Folio.

All errors raised by Folio derive from FolioError so callers can catch
the whole family at once. The hierarchy mirrors how far a failure reaches:

- BrokenSiteError: the site root itself is unusable; the build stops.
- ConfigurationError: a single page or section is misconfigured.
- MissingReferenceError: a page, section or address was requested by a
  name that does not exist.
- ConverterUnavailableError: an external markup converter is missing.
- BuildError: wraps any of the above with the source file it came from.
"""

from __future__ import annotations

from pathlib import Path


class FolioError(Exception):
    """Base exception for all Folio errors."""


class BrokenSiteError(FolioError):
    """Raised when the site root or its header cannot be loaded."""


class ConfigurationError(FolioError):
    """Raised when configuration for a page or section is invalid."""


class UnknownConfigKeyError(ConfigurationError, KeyError):
    """Raised when a configuration key that does not exist is requested."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No such configuration: {key}")

    def __str__(self) -> str:
        return self.args[0]


class FrontmatterError(ConfigurationError):
    """Raised when a frontmatter block cannot be evaluated or parsed."""


class UnknownDialectError(ConfigurationError):
    """Raised when a page uses a markup dialect with no registered converter."""

    def __init__(self, dialect: str):
        self.dialect = dialect
        super().__init__(f"Cannot render markup dialect: {dialect!r}")


class MissingReferenceError(FolioError, LookupError):
    """Raised when a page, section or address is requested by an unknown name.

    Attributes:
        name: The name that was requested.
    """

    def __init__(self, message: str, name: str):
        self.name = name
        super().__init__(message)


class ConverterUnavailableError(FolioError):
    """Raised when the external tool behind a markup converter is unavailable."""


class BuildError(FolioError):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


def format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "TemplateSyntaxError":
        lineno = getattr(exc, "lineno", None)
        return f"Template syntax error on line {lineno}: {getattr(exc, 'message', error_msg)}"
    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "SecurityError":
        return f"Template tried an unsafe operation: {error_msg}"
    if isinstance(exc, FolioError):
        return error_msg

    return f"{error_type}: {error_msg}"
