"""Protocol definitions for Quire.

These interfaces keep the content pipeline independent of the markup
engine and of how documents are discovered. Any object with the right
methods can be injected; tests use small fakes.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class MarkupRenderer(Protocol):
    """Protocol for turning an entry body into HTML."""

    @abstractmethod
    def render(self, markup: str) -> str:
        """Render markup source to HTML.

        Args:
            markup: Document body without front-matter.

        Returns:
            HTML fragment.
        """
        ...


@runtime_checkable
class ContentLoader(Protocol):
    """Protocol for discovering the documents of one collection."""

    @abstractmethod
    def iter_files(self) -> list[Path]:
        """Return document paths in discovery order."""
        ...
