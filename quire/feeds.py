"""Feed generation for Quire.

This module generates sitemap.xml and rss.xml from a loaded collection.
Both need an absolute base URL, taken from the ``site`` setting; without
it the feeds are skipped.

Classes:
    FeedGenerator: Base class for feed generators.
    SitemapGenerator: Generates sitemap.xml files.
    RSSGenerator: Generates RSS 2.0 feed files.
    FeedRegistry: Registry for managing feed generators.

Functions:
    create_default_feed_registry: Create a registry with default generators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from markupsafe import escape

from .utils import absolute_url

if TYPE_CHECKING:
    from .build import SiteConfig
    from .content import ContentEntry

RFC822_FORMAT = "%a, %d %b %Y %H:%M:%S +0000"


def _xml(text: str) -> str:
    return str(escape(text))


class FeedGenerator(ABC):
    """Abstract base class for feed generators."""

    @property
    @abstractmethod
    def filename(self) -> str:
        """Return the output filename for this feed."""
        ...

    @abstractmethod
    def generate(
        self,
        entries: Iterable[ContentEntry],
        config: SiteConfig,
    ) -> str | None:
        """Generate feed content from entries.

        Args:
            entries: Entries to include in the feed.
            config: Site configuration providing the base URL and title.

        Returns:
            Feed content as a string, or None if the feed cannot be
            generated (no base URL configured).
        """
        ...

    def write(
        self,
        output_dir: Path,
        entries: Iterable[ContentEntry],
        config: SiteConfig,
    ) -> bool:
        """Generate and write feed to the output directory.

        Returns:
            True if the feed was written, False if skipped.
        """
        content = self.generate(entries, config)
        if content is None:
            return False
        output_path = output_dir / self.filename
        output_path.write_text(content, encoding="utf-8")
        return True


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml following the sitemaps.org protocol.

    Lists the index page and every entry page. ``lastmod`` is the entry's
    updated date when present, otherwise its publish date.
    """

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(
        self,
        entries: Iterable[ContentEntry],
        config: SiteConfig,
    ) -> str | None:
        if not config.site:
            return None
        entries = list(entries)
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
            f"  <url><loc>{_xml(absolute_url(config.site, '/'))}</loc></url>",
        ]
        for entry in entries:
            loc = _xml(absolute_url(config.site, entry.url))
            lastmod = entry.last_modified.strftime("%Y-%m-%d")
            lines.append(f"  <url><loc>{loc}</loc><lastmod>{lastmod}</lastmod></url>")
        lines.append("</urlset>")
        return "\n".join(lines)


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed, newest entry first."""

    @property
    def filename(self) -> str:
        return "rss.xml"

    def generate(
        self,
        entries: Iterable[ContentEntry],
        config: SiteConfig,
    ) -> str | None:
        if not config.site:
            return None

        items = []
        for entry in sorted(entries, key=lambda e: e.pub_date, reverse=True):
            link = _xml(absolute_url(config.site, entry.url))
            items.append(
                f"<item><title>{_xml(entry.title)}</title><link>{link}</link>"
                f"<guid>{link}</guid>"
                f"<description>{_xml(entry.description)}</description>"
                f"<pubDate>{entry.pub_date.strftime(RFC822_FORMAT)}</pubDate></item>"
            )

        build_date = datetime.now(timezone.utc).strftime(RFC822_FORMAT)
        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{_xml(config.title)}</title>",
            f"<link>{_xml(absolute_url(config.site, '/'))}</link>",
            f"<description>{_xml(config.description or config.title)}</description>",
            f"<lastBuildDate>{build_date}</lastBuildDate>",
        ]
        rss.extend(items)
        rss.append("</channel></rss>")
        return "\n".join(rss)


class FeedRegistry:
    """Registry for managing feed generators."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(
        self,
        output_dir: Path,
        entries: Iterable[ContentEntry],
        config: SiteConfig,
    ) -> list[str]:
        """Generate all registered feeds.

        Returns:
            List of filenames that were generated.
        """
        entries_list = list(entries)
        generated = []
        for generator in self._generators:
            if generator.write(output_dir, entries_list, config):
                generated.append(generator.filename)
        return generated


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the sitemap and RSS generators."""
    registry = FeedRegistry()
    registry.register(SitemapGenerator())
    registry.register(RSSGenerator())
    return registry
