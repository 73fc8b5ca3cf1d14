"""Command-line interface for Quire.

This module defines the CLI commands using the Click framework.

Commands:
- new: Scaffold a new Quire project.
- build: Build the site into the output directory.
- check: Validate the collection without writing anything.
- list: Print the chronological listing of the collection.
- serve: Run development server with live reload.
- post: Create a new post interactively.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .build import BuildError, ConfigError, SiteConfig, load_config
from .content import CollectionNotFoundError, DuplicateSlugError, derive_slug
from .schema import ContentError, DateParseError, SchemaError, parse_date
from .utils import is_markup, slugify, titleize

FRONTMATTER_DATE_FORMAT = "%d %b %Y"

_SAMPLE_POST = """---
title: "Hello, world"
description: "The first post on this blog."
pubDate: "{date}"
---

Welcome to your new blog. Edit `content/blog/hello-world.md` or run
`quire post` to write another entry.

```python
print("hello, world")
```
"""

_SAMPLE_CONFIG = """title: {title}
description: A blog built with Quire.
# site: https://example.com
collection: blog
highlight_theme: material
"""


@click.group()
@click.version_option(version=__version__, prog_name="quire")
def cli():
    """Quire static blog generator."""


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Quire project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New Quire site created at {target}")


@cli.command()
def build():
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site

    config = _load_config_or_exit()
    try:
        result = build_site(project_root, config=config)
    except (ContentError, BuildError) as exc:
        _report_failure(exc, project_root)
        raise SystemExit(1) from None
    feeds = f" (+ {', '.join(result.feeds)})" if result.feeds else ""
    click.echo(
        f"Built {len(result.entries) + 1} pages into {result.output_dir}{feeds}"
    )


@cli.command()
def check():
    """Validate the collection without writing anything."""
    project_root = Path.cwd()
    from .build import load_entries

    config = _load_config_or_exit()
    try:
        entries = load_entries(project_root, config)
    except ContentError as exc:
        _report_failure(exc, project_root, header="Check failed:")
        raise SystemExit(1) from None
    click.echo(f"{len(entries)} entries in '{config.collection}' are valid.")


@cli.command("list")
def list_entries():
    """Print the chronological listing of the collection."""
    project_root = Path.cwd()
    from .build import load_entries

    config = _load_config_or_exit()
    try:
        entries = load_entries(project_root, config)
    except ContentError as exc:
        _report_failure(exc, project_root, header="List failed:")
        raise SystemExit(1) from None
    for entry in entries.sorted():
        date = entry.pub_date.strftime("%Y-%m-%d")
        click.echo(f"{date}  {click.style(entry.url, fg='cyan')}  {entry.title}")


@cli.command()
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides quire.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides quire.yaml ws_port)",
)
def serve(port: int | None, ws_port: int | None):
    """Run dev server with live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    _load_config_or_exit()
    server = DevServer(project_root, http_port=port, ws_port=ws_port)
    try:
        server.start()
    except (ContentError, BuildError) as exc:
        _report_failure(exc, project_root)
        raise SystemExit(1) from None


@cli.command()
def post():
    """Create a new post interactively."""
    project_root = Path.cwd()
    config = _load_config_or_exit()
    collection_dir = project_root / config.content_dir / config.collection
    if not collection_dir.is_dir():
        raise click.ClickException(
            f"No {config.content_dir}/{config.collection}/ directory found. "
            "Run this command from a Quire project root."
        )

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()

    description = questionary.text(
        "Description:",
        validate=lambda x: len(x.strip()) > 0 or "Description cannot be empty",
        style=_questionary_style(),
    ).ask()
    if description is None:
        raise click.Abort()

    today = datetime.now().strftime(FRONTMATTER_DATE_FORMAT)
    pub_date = questionary.text(
        "Publish date:",
        default=today,
        validate=_validate_date,
        style=_questionary_style(),
    ).ask()
    if pub_date is None:
        raise click.Abort()

    slug = slugify(title.strip()) or "untitled"
    target_path = collection_dir / f"{slug}.md"
    existing = _existing_slugs(collection_dir)
    if slug in existing:
        raise click.ClickException(
            f"A post with slug '{slug}' already exists: {existing[slug].name}"
        )

    target_path.write_text(
        _render_frontmatter(title.strip(), description.strip(), pub_date.strip()),
        encoding="utf-8",
    )
    click.echo(f"Created {target_path.relative_to(project_root)}")


def _validate_date(value: str):
    try:
        parse_date(value)
    except DateParseError:
        return "Use a date like 14 Mar 2024 or 2024-03-14"
    return True


def _render_frontmatter(title: str, description: str, pub_date: str) -> str:
    header = yaml.safe_dump(
        {"title": title, "description": description, "pubDate": pub_date},
        sort_keys=False,
        allow_unicode=True,
    )
    return f"---\n{header}---\n\n"


def _existing_slugs(collection_dir: Path) -> dict[str, Path]:
    """Map slugs of top-level documents in a collection to their files."""
    slugs: dict[str, Path] = {}
    if collection_dir.exists():
        for f in collection_dir.iterdir():
            if f.is_file() and is_markup(f):
                slugs[derive_slug(Path(f.name))] = f
    return slugs


def _load_config_or_exit() -> SiteConfig:
    try:
        return load_config(Path.cwd())
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from None


def _relative(path: Path, project_root: Path) -> str:
    try:
        return str(path.relative_to(project_root))
    except ValueError:
        return str(path)


def _report_failure(
    exc: Exception, project_root: Path, header: str = "Build failed:"
) -> None:
    """Print a content or build error in a form an author can act on."""
    click.echo(click.style(header, fg="red", bold=True), err=True)
    if isinstance(exc, SchemaError):
        for error in exc.errors:
            where = _relative(error.path, project_root) if error.path else "?"
            click.echo(click.style(f"  File: {where}", fg="yellow"), err=True)
            click.echo(f"    {error.message}", err=True)
    elif isinstance(exc, DuplicateSlugError):
        click.echo(f"  Duplicate slug '{exc.slug}':", err=True)
        for path in exc.paths:
            click.echo(
                click.style(f"    {_relative(path, project_root)}", fg="yellow"),
                err=True,
            )
    elif isinstance(exc, CollectionNotFoundError):
        click.echo(
            f"  Collection '{exc.name}' has no directory at "
            f"{_relative(exc.path, project_root)}",
            err=True,
        )
    elif isinstance(exc, BuildError):
        click.echo(
            click.style(
                f"  File: {_relative(exc.source_path, project_root)}", fg="yellow"
            ),
            err=True,
        )
        click.echo(f"  Error: {exc.message}", err=True)
    else:
        click.echo(f"  {exc}", err=True)


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new Quire project.

    Args:
        root: Root directory for the new project.
    """
    posts = root / "content" / "blog"
    posts.mkdir(parents=True, exist_ok=True)
    (root / "public").mkdir(exist_ok=True)
    (root / "layouts").mkdir(exist_ok=True)
    title = titleize(root.name)
    (root / "quire.yaml").write_text(
        _SAMPLE_CONFIG.format(title=title or "My Blog"), encoding="utf-8"
    )
    (posts / "hello-world.md").write_text(
        _SAMPLE_POST.format(date=datetime.now().strftime(FRONTMATTER_DATE_FORMAT)),
        encoding="utf-8",
    )
    (root / ".gitignore").write_text("output/\noutput.staging/\n", encoding="utf-8")
