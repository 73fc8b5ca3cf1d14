"""Template rendering engine for Quire.

This module uses Jinja2 to render the index listing and entry pages.
Templates are looked up in the project's ``layouts/`` directory first and
then in the templates bundled with Quire, so a project only overrides the
pieces it wants to change.

Key class:
- TemplateEngine: Renders pages with an explicit SiteConfig in the context.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .utils import absolute_url
from .renderers import pygments_css

if TYPE_CHECKING:
    from .build import SiteConfig
    from .collections import ListItem
    from .content import ContentEntry

BUNDLED_TEMPLATES_DIR = Path(__file__).parent / "templates"

INDEX_TEMPLATE = "index.html.jinja"
ENTRY_TEMPLATE = "entry.html.jinja"


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        config: Site configuration exposed to templates as ``site``.
        env: Jinja2 environment.
    """

    def __init__(self, config: SiteConfig, layouts_dir: Path | None = None):
        """Initialize the template engine.

        Args:
            config: Site configuration.
            layouts_dir: Optional project directory with template overrides.
        """
        self.config = config
        loaders = []
        if layouts_dir is not None and layouts_dir.is_dir():
            loaders.append(FileSystemLoader(str(layouts_dir)))
        loaders.append(FileSystemLoader(str(BUNDLED_TEMPLATES_DIR)))
        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
        )
        self._install_globals()

    def _install_globals(self) -> None:
        self.env.globals["site"] = self.config
        self.env.globals["url_for"] = self.url_for
        self.env.globals["pygments_css"] = self._pygments_css

    def _pygments_css(self) -> Markup:
        return Markup(pygments_css(self.config.highlight_theme))

    def url_for(self, path: str, absolute: bool = False) -> str:
        """Generate a URL for a site path.

        Args:
            path: Site path such as ``/first-post/``.
            absolute: Prefix the configured site URL when one is set.

        Returns:
            The URL.
        """
        if path.startswith(("http://", "https://", "//")):
            return path
        path = path if path.startswith("/") else f"/{path}"
        if absolute and self.config.site:
            return absolute_url(self.config.site, path)
        return path

    def render_index(self, items: Iterable[ListItem]) -> str:
        """Render the index page listing.

        Args:
            items: Rows produced by render_listing.

        Returns:
            Rendered HTML string.
        """
        template = self.env.get_template(INDEX_TEMPLATE)
        return template.render(items=list(items), page_path="/")

    def render_entry(self, entry: ContentEntry, content_html: str) -> str:
        """Render one entry page.

        Args:
            entry: The entry being rendered.
            content_html: The entry body already rendered to HTML.

        Returns:
            Rendered HTML string.
        """
        template = self.env.get_template(ENTRY_TEMPLATE)
        return template.render(
            entry=entry,
            title=entry.title,
            description=entry.description,
            content=Markup(content_html),
            page_path=entry.url,
        )
