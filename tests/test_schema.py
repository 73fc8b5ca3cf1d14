from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from quire.schema import (
    BLOG_SCHEMA,
    CollectionSchema,
    DateParseError,
    Field,
    FieldError,
    SchemaError,
    parse_date,
)


def valid_frontmatter(**overrides):
    data = {
        "title": "Seeding a database",
        "description": "Filling tables with fake rows.",
        "pubDate": "14 Mar 2024",
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize(
    "value, expected",
    [
        ("14 Mar 2024", datetime(2024, 3, 14)),
        ("01 Jan 2024", datetime(2024, 1, 1)),
        ("14 March 2024", datetime(2024, 3, 14)),
        ("Mar 14 2024", datetime(2024, 3, 14)),
        ("Mar 14, 2024", datetime(2024, 3, 14)),
        ("March 14, 2024", datetime(2024, 3, 14)),
        ("2024-03-14", datetime(2024, 3, 14)),
        ("2024-03-14T10:30:00", datetime(2024, 3, 14, 10, 30)),
        ("2024-03-14T10:30:00Z", datetime(2024, 3, 14, 10, 30)),
        ("  14   Mar 2024 ", datetime(2024, 3, 14)),
    ],
)
def test_parse_date_accepts_human_and_iso_literals(value, expected):
    assert parse_date(value) == expected


def test_parse_date_accepts_yaml_date_objects():
    assert parse_date(date(2024, 3, 14)) == datetime(2024, 3, 14)
    assert parse_date(datetime(2024, 3, 14, 8)) == datetime(2024, 3, 14, 8)


def test_parse_date_normalises_aware_datetimes_to_naive_utc():
    aware = datetime(2024, 3, 14, 12, tzinfo=timezone.utc)
    parsed = parse_date(aware)
    assert parsed.tzinfo is None
    assert parsed == datetime(2024, 3, 14, 12)


@pytest.mark.parametrize("value", ["not-a-date", "", "31 Feb 2024", 2024, True, []])
def test_parse_date_rejects_garbage(value):
    with pytest.raises(DateParseError) as excinfo:
        parse_date(value)
    assert isinstance(excinfo.value, SchemaError)
    assert excinfo.value.fields == ["pubDate"]


def test_parse_date_error_uses_given_field_name():
    with pytest.raises(DateParseError) as excinfo:
        parse_date("soon", field="updatedDate")
    assert excinfo.value.errors[0].field == "updatedDate"
    assert "'soon'" in str(excinfo.value)


def test_validate_returns_coerced_header():
    header = BLOG_SCHEMA.validate(valid_frontmatter())
    assert header == {
        "title": "Seeding a database",
        "description": "Filling tables with fake rows.",
        "pub_date": datetime(2024, 3, 14),
    }


def test_validate_keeps_optional_fields_when_present():
    header = BLOG_SCHEMA.validate(
        valid_frontmatter(updatedDate="2024-04-01", heroImage="/hero.png")
    )
    assert header["updated_date"] == datetime(2024, 4, 1)
    assert header["hero_image"] == "/hero.png"


def test_validate_tolerates_unknown_fields():
    header = BLOG_SCHEMA.validate(valid_frontmatter(tags=["php"], layout="post"))
    assert "tags" not in header
    assert header["title"] == "Seeding a database"


@pytest.mark.parametrize("missing", ["title", "description", "pubDate"])
def test_validate_missing_required_field_is_named(missing):
    data = valid_frontmatter()
    del data[missing]
    with pytest.raises(SchemaError) as excinfo:
        BLOG_SCHEMA.validate(data)
    assert excinfo.value.fields == [missing]
    assert f"{missing}: expected" in str(excinfo.value)
    assert "got missing" in str(excinfo.value)


def test_validate_null_required_field_counts_as_missing():
    with pytest.raises(SchemaError) as excinfo:
        BLOG_SCHEMA.validate(valid_frontmatter(title=None))
    assert excinfo.value.fields == ["title"]


def test_validate_rejects_blank_and_non_string_values():
    with pytest.raises(SchemaError) as excinfo:
        BLOG_SCHEMA.validate(valid_frontmatter(title="   ", description=42))
    errors = {error.field: error for error in excinfo.value.errors}
    assert set(errors) == {"title", "description"}
    assert errors["title"].actual == "empty string"
    assert errors["description"].expected == "non-empty string"
    assert errors["description"].actual == "int 42"


def test_validate_collects_every_error_with_path():
    path = Path("content/blog/broken.md")
    with pytest.raises(SchemaError) as excinfo:
        BLOG_SCHEMA.validate({"pubDate": "not-a-date"}, path)
    assert excinfo.value.fields == ["title", "description", "pubDate"]
    assert all(error.path == path for error in excinfo.value.errors)
    assert excinfo.value.paths == [path]
    assert str(excinfo.value).startswith("3 front-matter errors:")


@pytest.mark.parametrize("value", [None, "just a string", ["a", "b"], 3])
def test_validate_rejects_non_mappings(value):
    with pytest.raises(SchemaError) as excinfo:
        BLOG_SCHEMA.validate(value)
    assert excinfo.value.fields == ["frontmatter"]


def test_field_error_formatting():
    error = FieldError("pubDate", "date", "'soon'")
    assert str(error) == "pubDate: expected date, got 'soon'"
    located = error.with_path(Path("a.md"))
    assert str(located) == "a.md: pubDate: expected date, got 'soon'"
    # An existing path is never overwritten
    assert located.with_path(Path("b.md")).path == Path("a.md")


def test_custom_schema_and_unknown_kind():
    schema = CollectionSchema([Field("name", "string"), Field("when", "date", required=False)])
    assert schema.validate({"name": "x"}) == {"name": "x"}
    with pytest.raises(ValueError):
        Field("size", "integer")
