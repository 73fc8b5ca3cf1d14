from datetime import datetime
from pathlib import Path

import pytest

from quire.collections import EntryCollection
from quire.content import (
    CollectionLoader,
    CollectionNotFoundError,
    ContentEntry,
    DuplicateSlugError,
    FileContentLoader,
    derive_slug,
    load_collection,
)
from quire.frontmatter import extract_frontmatter
from quire.schema import CollectionSchema, Field, SchemaError


def write_post(root: Path, rel: str, title="Post", description="About it", pub_date="14 Mar 2024", body="Body text.\n", extra=""):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = ["---"]
    if title is not None:
        lines.append(f'title: "{title}"')
    if description is not None:
        lines.append(f'description: "{description}"')
    if pub_date is not None:
        lines.append(f'pubDate: "{pub_date}"')
    if extra:
        lines.append(extra)
    lines.append("---")
    path.write_text("\n".join(lines) + "\n" + body, encoding="utf-8")
    return path


def create_content(tmp_path: Path) -> Path:
    content = tmp_path / "content"
    blog = content / "blog"
    write_post(blog, "seeding-laravel.md", title="Seeding Laravel", pub_date="14 Mar 2024")
    write_post(blog, "hello.md", title="Hello", pub_date="01 Jan 2024")
    write_post(blog, "guides/Factories And Seeders.mdx", title="Factories", pub_date="2024-02-01")
    write_post(blog, "_draft.md", title="Draft")
    write_post(blog, "_partials/snippet.md", title="Snippet")
    (blog / "notes.txt").write_text("ignored", encoding="utf-8")
    return content


def test_extract_frontmatter_splits_yaml_and_body():
    data, body = extract_frontmatter('---\ntitle: "Hi"\npubDate: 2024-01-01\n---\n# Heading\n')
    assert data["title"] == "Hi"
    assert str(data["pubDate"]) == "2024-01-01"
    assert body == "# Heading\n"


def test_extract_frontmatter_without_block_returns_text():
    data, body = extract_frontmatter("# Just markdown\n")
    assert data == {}
    assert body == "# Just markdown\n"


def test_extract_frontmatter_empty_block():
    data, body = extract_frontmatter("---\n---\nBody\n")
    assert data == {}
    assert body == "Body\n"


def test_extract_frontmatter_keeps_horizontal_rules_in_body():
    data, body = extract_frontmatter("---\ntitle: A\n---\nIntro\n\n---\n\nMore\n")
    assert data == {"title": "A"}
    assert body == "Intro\n\n---\n\nMore\n"


@pytest.mark.parametrize("block", ["title: [unclosed", "- a\n- b"])
def test_extract_frontmatter_rejects_bad_yaml(block):
    with pytest.raises(SchemaError) as excinfo:
        extract_frontmatter(f"---\n{block}\n---\nbody")
    assert excinfo.value.fields == ["frontmatter"]


def test_derive_slug_keeps_separators_and_strips_extension():
    assert derive_slug(Path("first-post.md")) == "first-post"
    assert derive_slug(Path("guides/Factories And Seeders.mdx")) == "guides/factories-and-seeders"
    assert derive_slug(Path("2024/what's-new.markdown")) == "2024/whats-new"
    assert derive_slug(Path("snake_case.md")) == "snake_case"


def test_file_loader_discovery_order_and_filters(tmp_path):
    content = create_content(tmp_path)
    files = FileContentLoader(content / "blog").iter_files()
    rel = [p.relative_to(content / "blog").as_posix() for p in files]
    assert rel == ["guides/Factories And Seeders.mdx", "hello.md", "seeding-laravel.md"]


def test_load_collection_preserves_fields(tmp_path):
    content = create_content(tmp_path)
    entries = load_collection("blog", content)
    assert isinstance(entries, EntryCollection)
    assert entries.slugs() == ["guides/factories-and-seeders", "hello", "seeding-laravel"]

    entry = entries.get("seeding-laravel")
    assert isinstance(entry, ContentEntry)
    assert entry.title == "Seeding Laravel"
    assert entry.description == "About it"
    assert entry.pub_date == datetime(2024, 3, 14)
    assert entry.body == "Body text.\n"
    assert entry.collection == "blog"
    assert entry.url == "/seeding-laravel/"
    assert entry.path == content / "blog" / "seeding-laravel.md"


def test_entries_are_immutable(tmp_path):
    content = create_content(tmp_path)
    entry = load_collection("blog", content)[0]
    with pytest.raises(AttributeError):
        entry.title = "changed"


def test_extra_frontmatter_is_tolerated_and_kept(tmp_path):
    content = tmp_path / "content"
    write_post(
        content / "blog",
        "post.md",
        extra='heroImage: "/img/hero.png"\nupdatedDate: 2024-04-02\ntags:\n  - php',
    )
    entry = load_collection("blog", content)[0]
    assert entry.hero_image == "/img/hero.png"
    assert entry.updated_date == datetime(2024, 4, 2)
    assert entry.last_modified == datetime(2024, 4, 2)
    assert entry.data["tags"] == ["php"]


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"title": None}, "title"),
        ({"description": None}, "description"),
        ({"pub_date": None}, "pubDate"),
    ],
)
def test_missing_required_field_fails_load(tmp_path, kwargs, field):
    content = tmp_path / "content"
    write_post(content / "blog", "ok.md")
    write_post(content / "blog", "broken.md", **kwargs)
    with pytest.raises(SchemaError) as excinfo:
        load_collection("blog", content)
    assert excinfo.value.fields == [field]
    assert excinfo.value.paths == [content / "blog" / "broken.md"]


def test_unparseable_date_fails_whole_collection(tmp_path):
    content = tmp_path / "content"
    write_post(content / "blog", "good.md")
    bad = write_post(content / "blog", "bad.md", pub_date="not-a-date")
    with pytest.raises(SchemaError) as excinfo:
        load_collection("blog", content)
    error = excinfo.value.errors[0]
    assert error.field == "pubDate"
    assert error.path == bad
    assert str(bad) in str(excinfo.value)
    assert "pubDate" in str(excinfo.value)


@pytest.mark.parametrize("literal", ["2024-13-45", "2024-02-30"])
def test_impossible_unquoted_date_fails_with_field_and_path(tmp_path, literal):
    content = tmp_path / "content"
    write_post(content / "blog", "good.md")
    bad = write_post(content / "blog", "bad.md", pub_date=None, extra=f"pubDate: {literal}")
    with pytest.raises(SchemaError) as excinfo:
        load_collection("blog", content)
    assert excinfo.value.fields == ["pubDate"]
    assert excinfo.value.paths == [bad]
    assert excinfo.value.errors[0].expected == "date"


def test_extract_frontmatter_names_key_with_impossible_date():
    with pytest.raises(SchemaError) as excinfo:
        extract_frontmatter("---\ntitle: A\nupdatedDate: 2024-02-30\n---\nbody")
    assert excinfo.value.fields == ["updatedDate"]


def test_undecodable_document_fails_with_path(tmp_path):
    content = tmp_path / "content"
    write_post(content / "blog", "good.md")
    bad = content / "blog" / "latin1.md"
    bad.write_bytes(b'---\ntitle: "Caf\xe9"\n---\n\xff\xfe')
    with pytest.raises(SchemaError) as excinfo:
        load_collection("blog", content)
    assert excinfo.value.fields == ["encoding"]
    assert excinfo.value.paths == [bad]
    assert "UTF-8 text" in str(excinfo.value)


def test_unreadable_document_fails_with_path(tmp_path, monkeypatch):
    content = tmp_path / "content"
    bad = write_post(content / "blog", "locked.md")
    original = Path.read_text

    def read_text(self, *args, **kwargs):
        if self == bad:
            raise PermissionError(13, "Permission denied", str(self))
        return original(self, *args, **kwargs)

    monkeypatch.setattr(Path, "read_text", read_text)
    with pytest.raises(SchemaError) as excinfo:
        load_collection("blog", content)
    assert excinfo.value.fields == ["file"]
    assert excinfo.value.paths == [bad]
    assert "Permission denied" in str(excinfo.value)


def test_errors_are_aggregated_across_documents(tmp_path):
    content = tmp_path / "content"
    write_post(content / "blog", "a.md", title=None)
    write_post(content / "blog", "b.md", pub_date="someday")
    (content / "blog" / "c.md").write_text("No front-matter at all\n", encoding="utf-8")
    with pytest.raises(SchemaError) as excinfo:
        load_collection("blog", content)
    assert excinfo.value.fields == ["title", "pubDate", "title", "description", "pubDate"]
    assert [p.name for p in excinfo.value.paths] == ["a.md", "b.md", "c.md"]


def test_duplicate_slugs_fail(tmp_path):
    content = tmp_path / "content"
    write_post(content / "blog", "post.md")
    write_post(content / "blog", "post.mdx")
    with pytest.raises(DuplicateSlugError) as excinfo:
        load_collection("blog", content)
    assert excinfo.value.slug == "post"
    assert [p.name for p in excinfo.value.paths] == ["post.md", "post.mdx"]


def test_duplicate_slugs_after_normalisation(tmp_path):
    content = tmp_path / "content"
    write_post(content / "blog", "Hello World.md")
    write_post(content / "blog", "hello-world.md")
    with pytest.raises(DuplicateSlugError):
        load_collection("blog", content)


def test_unsluggable_file_name_fails(tmp_path):
    content = tmp_path / "content"
    write_post(content / "blog", "!!!.md")
    with pytest.raises(SchemaError) as excinfo:
        load_collection("blog", content)
    assert excinfo.value.fields == ["slug"]


def test_missing_collection(tmp_path):
    with pytest.raises(CollectionNotFoundError) as excinfo:
        load_collection("blog", tmp_path / "content")
    assert excinfo.value.name == "blog"
    assert excinfo.value.path == tmp_path / "content" / "blog"


def test_empty_collection_loads(tmp_path):
    (tmp_path / "content" / "blog").mkdir(parents=True)
    entries = load_collection("blog", tmp_path / "content")
    assert len(entries) == 0
    assert entries.listing() == []


def test_per_collection_schema_override(tmp_path):
    content = tmp_path / "content"
    write_post(content / "notes", "n.md", extra='mood: "ok"')
    strict = CollectionSchema(
        [
            Field("title", "string"),
            Field("description", "string"),
            Field("pubDate", "date", attr="pub_date"),
            Field("author", "string"),
        ]
    )
    loader = CollectionLoader(content, schemas={"notes": strict})
    with pytest.raises(SchemaError) as excinfo:
        loader.load("notes")
    assert excinfo.value.fields == ["author"]


def test_custom_loader_factory(tmp_path):
    content = tmp_path / "content"
    first = write_post(content / "blog", "z-first.md", title="Z")
    second = write_post(content / "blog", "a-second.md", title="A")

    class ReversedLoader:
        def __init__(self, collection_dir):
            self.collection_dir = collection_dir

        def iter_files(self):
            return [first, second]

    entries = CollectionLoader(content, loader_factory=ReversedLoader).load("blog")
    assert [e.title for e in entries] == ["Z", "A"]


def test_entry_render_is_delegated_to_renderer(tmp_path):
    content = tmp_path / "content"
    write_post(content / "blog", "p.md", body="*hi*")

    class UpperRenderer:
        def render(self, markup):
            return markup.upper()

    entry = load_collection("blog", content)[0]
    assert entry.render(UpperRenderer()) == "*HI*"
