"""Content loading for Quire.

This module discovers the documents of a named collection, parses their
front-matter, validates it against the collection's schema and produces
immutable ContentEntry objects keyed by a slug derived from each
document's path.

Key classes:
- ContentEntry: Dataclass representing one validated document.
- FileContentLoader: Discovers markup files in a collection directory.
- CollectionLoader: Loads a whole collection atomically.

Loading either returns every entry of the collection or raises; a broken
document never silently drops out of the site.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .collections import EntryCollection
from .frontmatter import extract_frontmatter
from .schema import (
    BLOG_SCHEMA,
    CollectionSchema,
    ContentError,
    FieldError,
    SchemaError,
)
from .utils import is_internal_path, is_markup, slugify

if TYPE_CHECKING:
    from .protocols import ContentLoader, MarkupRenderer


class CollectionNotFoundError(ContentError):
    """The named collection has no directory under the content root."""

    def __init__(self, name: str, path: Path):
        self.name = name
        self.path = path
        super().__init__(f"Collection {name!r} not found: expected directory {path}")


class DuplicateSlugError(ContentError):
    """Two documents in one collection derive the same slug."""

    def __init__(self, slug: str, paths: list[Path]):
        self.slug = slug
        self.paths = list(paths)
        joined = ", ".join(str(p) for p in self.paths)
        super().__init__(f"Duplicate slug {slug!r} derived from: {joined}")


@dataclass(frozen=True)
class ContentEntry:
    """One validated document of a collection.

    Attributes:
        slug: Unique identifier within the collection, derived from the path.
        title: Entry title.
        description: Short summary shown in listings.
        pub_date: Publication date.
        body: Raw markup source, rendered only when the page is produced.
        path: Source file.
        collection: Name of the owning collection.
        updated_date: Optional last-updated date.
        hero_image: Optional image path or URL.
        data: The full front-matter mapping, including unknown keys.
    """

    slug: str
    title: str
    description: str
    pub_date: datetime
    body: str
    path: Path
    collection: str = ""
    updated_date: datetime | None = None
    hero_image: str | None = None
    data: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def url(self) -> str:
        return f"/{self.slug}/"

    @property
    def last_modified(self) -> datetime:
        return self.updated_date or self.pub_date

    def render(self, renderer: MarkupRenderer) -> str:
        """Render the body to HTML with the given markup renderer."""
        return renderer.render(self.body)


def derive_slug(rel: Path) -> str:
    """Derive an entry slug from a path relative to the collection root.

    The markup extension is dropped, separators become ``/`` and each
    segment is passed through slugify.

    Args:
        rel: Relative path such as ``posts/First Post.md``.

    Returns:
        Slug such as ``posts/first-post``.
    """
    parts = list(rel.parent.parts) + [rel.stem]
    return "/".join(slugify(part) for part in parts if part not in ("", "."))


class FileContentLoader:
    """Discovers documents in a collection directory.

    Files and folders whose name starts with an underscore are skipped.
    The returned order (sorted by relative POSIX path) is the discovery
    order used to break publish-date ties in listings.

    Attributes:
        collection_dir: Directory holding the collection's documents.
    """

    def __init__(self, collection_dir: Path):
        self.collection_dir = collection_dir

    def iter_files(self) -> list[Path]:
        """Return all markup documents in discovery order."""
        files: list[Path] = []
        for path in self.collection_dir.rglob("*"):
            if path.is_dir():
                continue
            rel = path.relative_to(self.collection_dir)
            if is_internal_path(rel):
                continue
            if is_markup(path):
                files.append(path)
        return sorted(
            files, key=lambda p: p.relative_to(self.collection_dir).as_posix()
        )


class CollectionLoader:
    """Loads named collections from a content root.

    Each collection lives in ``<content_root>/<name>/``. Documents are
    validated against the collection's schema (``BLOG_SCHEMA`` unless a
    different one is registered for the name).

    Attributes:
        content_root: Directory holding one subdirectory per collection.
        schemas: Mapping of collection name to schema overrides.
        default_schema: Schema used for collections without an override.
        loader_factory: Builds the ContentLoader for a collection directory.

    Schemas must declare title, description and pubDate (as pub_date).
    """

    def __init__(
        self,
        content_root: Path,
        schemas: Mapping[str, CollectionSchema] | None = None,
        default_schema: CollectionSchema = BLOG_SCHEMA,
        loader_factory: Callable[[Path], ContentLoader] = FileContentLoader,
    ):
        self.content_root = content_root
        self.schemas = dict(schemas or {})
        self.default_schema = default_schema
        self.loader_factory = loader_factory

    def schema_for(self, name: str) -> CollectionSchema:
        return self.schemas.get(name, self.default_schema)

    def load(self, name: str) -> EntryCollection:
        """Load every entry of a collection.

        Args:
            name: Collection name.

        Returns:
            EntryCollection in discovery order.

        Raises:
            CollectionNotFoundError: If the collection directory is missing.
            SchemaError: If any document has invalid front-matter. The error
                carries the field errors of every failing document.
            DuplicateSlugError: If two documents derive the same slug.
        """
        collection_dir = self.content_root / name
        if not collection_dir.is_dir():
            raise CollectionNotFoundError(name, collection_dir)

        schema = self.schema_for(name)
        entries: list[ContentEntry] = []
        errors = []
        seen: dict[str, Path] = {}
        duplicate: DuplicateSlugError | None = None

        for path in self.loader_factory(collection_dir).iter_files():
            rel = path.relative_to(collection_dir)
            slug = derive_slug(rel)
            if not all(slug.split("/")):
                errors.append(
                    FieldError("slug", "URL-safe file name", repr(rel.as_posix()), path)
                )
                continue
            if slug in seen and duplicate is None:
                duplicate = DuplicateSlugError(slug, [seen[slug], path])
            seen.setdefault(slug, path)
            try:
                entries.append(self._build_entry(path, slug, name, schema))
            except SchemaError as exc:
                errors.extend(error.with_path(path) for error in exc.errors)

        if errors:
            raise SchemaError(errors)
        if duplicate is not None:
            raise duplicate
        return EntryCollection(entries)

    def _build_entry(
        self, path: Path, slug: str, name: str, schema: CollectionSchema
    ) -> ContentEntry:
        try:
            raw = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            actual = f"undecodable byte at offset {exc.start}"
            raise SchemaError([FieldError("encoding", "UTF-8 text", actual)]) from exc
        except OSError as exc:
            actual = exc.strerror or type(exc).__name__
            raise SchemaError([FieldError("file", "readable document", actual)]) from exc
        frontmatter, body = extract_frontmatter(raw)
        header = schema.validate(frontmatter, path)
        return ContentEntry(
            slug=slug,
            title=header["title"],
            description=header["description"],
            pub_date=header["pub_date"],
            body=body,
            path=path,
            collection=name,
            updated_date=header.get("updated_date"),
            hero_image=header.get("hero_image"),
            data=dict(frontmatter),
        )


def load_collection(
    name: str,
    content_root: Path,
    schema: CollectionSchema | None = None,
) -> EntryCollection:
    """Load a collection with a one-off loader.

    Args:
        name: Collection name.
        content_root: Directory holding one subdirectory per collection.
        schema: Optional schema to use instead of BLOG_SCHEMA.

    Returns:
        EntryCollection in discovery order.
    """
    loader = CollectionLoader(content_root, default_schema=schema or BLOG_SCHEMA)
    return loader.load(name)
