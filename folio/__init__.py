"""Folio static site generator.

Folio turns a directory tree of content files into a static site. Every
directory is a section and every content file a page; configuration is
layered from built-in defaults, command-line overrides, the site header,
section headers and page frontmatter. Index pages can paginate over the
pages of any set of sections, and rebuilds only render what changed.

The main entry point is the CLI module, which provides commands for
scaffolding new sites and building them.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
