"""Utility functions for Quire.

This module contains small helpers shared across the Quire codebase:
string processing for slugs and titles, markup file detection and
output directory management and absolute URLs.

Key functions:
    slugify: Normalise one path segment into a URL slug.
    titleize: Convert filenames to human-readable titles.
    is_markup: Check if a path is a Markdown or MDX document.
    is_internal_path: Check if a path is hidden from discovery.
    ensure_clean_dir: Ensure a directory exists and is empty.
    absolute_url: Join the configured site URL with a path.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path

MARKUP_SUFFIXES = (".md", ".markdown", ".mdx")

_SLUG_STRIP_RE = re.compile(r"[^\w\s-]", re.UNICODE)
_SLUG_SPACE_RE = re.compile(r"\s")


def slugify(segment: str) -> str:
    """Normalise a single path segment into a URL slug.

    Lowercases the text, drops punctuation other than hyphens and
    underscores, and turns each whitespace character into a hyphen.

    Args:
        segment: One path component, without extension.

    Returns:
        URL-friendly slug segment.

    Examples:
        >>> slugify("First Post")
        'first-post'

        >>> slugify("What's new?")
        'whats-new'
    """
    cleaned = segment.strip().lower()
    cleaned = _SLUG_STRIP_RE.sub("", cleaned)
    return _SLUG_SPACE_RE.sub("-", cleaned)


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Replaces hyphens and underscores with spaces and capitalizes each word.

    Args:
        filename: Filename with or without extension.

    Returns:
        Human-readable title string.

    Examples:
        >>> titleize("getting-started.md")
        'Getting Started'
    """
    base = Path(filename).stem
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def is_markup(path: Path) -> bool:
    """Check if a path is a Markdown or MDX document.

    Args:
        path: Path to check.

    Returns:
        True if the file has a .md, .markdown or .mdx extension (case-insensitive).
    """
    return path.suffix.lower() in MARKUP_SUFFIXES


def is_internal_path(path: Path) -> bool:
    """Check if a path is internal (contains components starting with _).

    Args:
        path: Relative path to check.

    Returns:
        True if any path component starts with underscore.
    """
    return any(part.startswith("_") for part in path.parts)


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    An existing directory is removed with its contents and recreated.
    Removal errors propagate.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def absolute_url(site: str, path: str) -> str:
    """Prefix a site-relative path with the site's base URL.

    An empty ``site`` leaves the path untouched.

    Examples:
        >>> absolute_url("https://example.com/", "/hello/")
        'https://example.com/hello/'
    """
    if not site:
        return path
    return f"{site.rstrip('/')}/{path.lstrip('/')}"
