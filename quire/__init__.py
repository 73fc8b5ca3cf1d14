"""Quire static blog generator.

This package turns a folder of Markdown/MDX documents with YAML front-matter
into a static blog. Documents are grouped into named collections, validated
against a schema, sorted chronologically and rendered through Jinja2 layouts.

The main entry point is the CLI module, which provides commands for scaffolding
projects, validating and listing collections, building sites and running the
development server.

Pipeline:
- schema: validates front-matter and parses publish dates.
- content: discovers documents, derives slugs and loads collections.
- collections: orders loaded entries into the index listing.
- renderers / templates: turn markup and listings into HTML pages.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
