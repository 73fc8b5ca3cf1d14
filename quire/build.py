"""Site building functionality for Quire.

This module contains the core logic for building a static site from a
project directory. It loads configuration, loads and validates the
content collection, renders the index listing and every entry page, and
writes static files and feeds.

Key functions:
- build_site: Main function to build the entire site.
- load_config: Loads site configuration from quire.yaml into a SiteConfig.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, fields
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
from jinja2 import TemplateError, TemplateNotFound, TemplateSyntaxError

from .collections import EntryCollection, render_listing
from .content import CollectionLoader, ContentEntry
from .feeds import create_default_feed_registry
from .renderers import RendererRegistry
from .templates import TemplateEngine
from .utils import ensure_clean_dir

CONFIG_FILENAME = "quire.yaml"


class ConfigError(Exception):
    """quire.yaml is malformed or holds a value of the wrong type."""


class BuildError(Exception):
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


@dataclass
class SiteConfig:
    """Site-wide settings passed explicitly to every rendering component.

    Attributes:
        title: Site title shown in the header and feeds.
        description: Default meta description and feed description.
        site: Absolute base URL; enables canonical links, sitemap and RSS.
        collection: Name of the collection listed on the index page.
        content_dir: Directory holding one folder per collection.
        output_dir: Build output directory.
        public_dir: Static files copied verbatim into the output.
        layouts_dir: Project template overrides.
        highlight_theme: Pygments style for fenced code blocks.
        language: Value of the ``lang`` attribute on ``<html>``.
        date_format: strftime format for dates shown on entry pages.
        port: Dev server HTTP port.
        ws_port: Dev server live reload port (defaults to port + 1).
    """

    title: str = "Quire"
    description: str = ""
    site: str = ""
    collection: str = "blog"
    content_dir: str = "content"
    output_dir: str = "output"
    public_dir: str = "public"
    layouts_dir: str = "layouts"
    highlight_theme: str = "material"
    language: str = "en"
    date_format: str = "%b %d, %Y"
    port: int = 4000
    ws_port: int | None = None

    @property
    def year(self) -> int:
        return datetime.now().year

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> SiteConfig:
        """Build a config from a mapping, ignoring unknown keys.

        Raises:
            ConfigError: If a known key has a value of the wrong type.
        """
        kwargs: dict[str, Any] = {}
        for item in fields(cls):
            if item.name not in values:
                continue
            value = values[item.name]
            if item.name in ("port", "ws_port"):
                if value is None and item.name == "ws_port":
                    kwargs[item.name] = None
                    continue
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigError(
                        f"{CONFIG_FILENAME}: {item.name} must be an integer, got {value!r}"
                    )
            elif not isinstance(value, str):
                raise ConfigError(
                    f"{CONFIG_FILENAME}: {item.name} must be a string, got {value!r}"
                )
            kwargs[item.name] = value
        return cls(**kwargs)


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        entries: Entries of the built collection, in discovery order.
        output_dir: Directory where the site was built.
        config: Configuration used for the build.
        feeds: Feed files that were written.
    """

    entries: EntryCollection
    output_dir: Path
    config: SiteConfig
    feeds: list[str]


def load_config(project_root: Path) -> SiteConfig:
    """Load site configuration from quire.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        SiteConfig with defaults applied for missing keys.

    Raises:
        ConfigError: If the file is not a YAML mapping or has bad values.
    """
    config_path = project_root / CONFIG_FILENAME
    if not config_path.exists():
        return SiteConfig()
    with open(config_path, encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"{CONFIG_FILENAME}: invalid YAML: {exc}") from exc
    if loaded is None:
        return SiteConfig()
    if not isinstance(loaded, dict):
        raise ConfigError(f"{CONFIG_FILENAME}: expected a mapping at the top level")
    return SiteConfig.from_mapping(loaded)


def load_entries(project_root: Path, config: SiteConfig) -> EntryCollection:
    """Load the configured collection of a project.

    Content errors (SchemaError, CollectionNotFoundError,
    DuplicateSlugError) propagate unchanged.
    """
    loader = CollectionLoader(project_root / config.content_dir)
    return loader.load(config.collection)


def build_site(
    project_root: Path,
    config: SiteConfig | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
    renderers: RendererRegistry | None = None,
) -> BuildResult:
    """Build the entire static site.

    The collection is loaded and every page is rendered before anything is
    written, so a content or template error leaves the previous output
    untouched.

    Args:
        project_root: Root directory of the project.
        config: Optional configuration; loaded from quire.yaml when omitted.
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Optional path to write the build output instead
            of config.output_dir.
        renderers: Optional markup renderer registry.

    Returns:
        BuildResult containing the entries, output directory and config.
    """
    config = config or load_config(project_root)
    entries = load_entries(project_root, config)

    renderers = renderers or RendererRegistry(config.highlight_theme)
    engine = TemplateEngine(config, project_root / config.layouts_dir)

    pages = [
        (
            "/",
            _render(
                project_root / config.content_dir / config.collection,
                lambda: engine.render_index(render_listing(entries)),
            ),
        )
    ]
    for entry in entries:
        html = _render(entry.path, lambda: _render_entry(engine, renderers, entry))
        pages.append((entry.url, html))

    output_dir = output_dir_override or (project_root / config.output_dir)
    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)
    for url, html in pages:
        _write_page(output_dir, url, html)

    _copy_public(project_root / config.public_dir, output_dir)
    feeds = create_default_feed_registry().generate_all(output_dir, entries, config)
    return BuildResult(
        entries=entries, output_dir=output_dir, config=config, feeds=feeds
    )


def _render_entry(
    engine: TemplateEngine, renderers: RendererRegistry, entry: ContentEntry
) -> str:
    renderer = renderers.for_path(entry.path)
    if renderer is None:
        raise ValueError(f"No renderer registered for {entry.path.suffix}")
    return engine.render_entry(entry, entry.render(renderer))


def _render(source_path: Path, render) -> str:
    try:
        return render()
    except TemplateSyntaxError as exc:
        raise BuildError(
            source_path,
            f"Template syntax error in {exc.name or 'template'} on line {exc.lineno}: {exc.message}",
            exc,
        ) from exc
    except TemplateNotFound as exc:
        raise BuildError(source_path, f"Template not found: {exc.name}", exc) from exc
    except (TemplateError, ValueError, TypeError, AttributeError) as exc:
        raise BuildError(source_path, _format_error_message(exc), exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TypeError":
        return f"Type error: {error_msg}"
    if error_type == "AttributeError":
        return f"Attribute error: {error_msg}"

    return f"{error_type}: {error_msg}"


def _write_page(output_dir: Path, url: str, rendered: str) -> None:
    """Write a rendered page to ``<output_dir>/<url>/index.html``."""
    url_path = url.strip("/")
    target_dir = output_dir / url_path if url_path else output_dir
    target_dir.mkdir(parents=True, exist_ok=True)
    with open(target_dir / "index.html", "w", encoding="utf-8") as f:
        f.write(rendered)


def _copy_public(public_dir: Path, output_dir: Path) -> None:
    if not public_dir.is_dir():
        return
    shutil.copytree(public_dir, output_dir, dirs_exist_ok=True)
