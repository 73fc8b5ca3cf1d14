"""Front-matter schemas for Quire collections.

A schema declares which front-matter keys a collection's documents must
carry and what each value has to look like. Validation is pure: it takes
the parsed front-matter mapping and either returns the coerced header
values or raises a SchemaError listing every offending field.

Key classes:
- Field: One declared front-matter key with its kind and requiredness.
- CollectionSchema: An ordered set of fields with a validate() method.
- FieldError: A single failure (field, expected, actual, document path).
- SchemaError: Aggregates FieldErrors; raised by validation and loading.
- DateParseError: SchemaError raised when a date literal cannot be parsed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any

# Human-readable literals accepted in addition to ISO-8601.
DATE_FORMATS = (
    "%d %b %Y",
    "%d %B %Y",
    "%d %b, %Y",
    "%d %B, %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%B %d, %Y",
    "%Y/%m/%d",
)

MISSING = "missing"


class ContentError(Exception):
    """Base class for errors raised while loading content."""


@dataclass(frozen=True)
class FieldError:
    """One front-matter field that failed validation.

    Attributes:
        field: Front-matter key that failed.
        expected: Human-readable description of the expected value.
        actual: Description of what was found ("missing" when absent).
        path: Source document, when known.
    """

    field: str
    expected: str
    actual: str = MISSING
    path: Path | None = None

    def with_path(self, path: Path | None) -> FieldError:
        if path is None or self.path is not None:
            return self
        return replace(self, path=path)

    @property
    def message(self) -> str:
        return f"{self.field}: expected {self.expected}, got {self.actual}"

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.path}: {self.message}"


class SchemaError(ContentError):
    """Front-matter failed validation.

    Attributes:
        errors: Every FieldError found, in document then field order.
    """

    def __init__(self, errors: Iterable[FieldError]):
        self.errors = list(errors)
        super().__init__(self._format())

    @property
    def fields(self) -> list[str]:
        return [error.field for error in self.errors]

    @property
    def paths(self) -> list[Path]:
        seen: list[Path] = []
        for error in self.errors:
            if error.path is not None and error.path not in seen:
                seen.append(error.path)
        return seen

    def _format(self) -> str:
        if len(self.errors) == 1:
            return str(self.errors[0])
        lines = [f"{len(self.errors)} front-matter errors:"]
        lines.extend(f"  {error}" for error in self.errors)
        return "\n".join(lines)


class DateParseError(SchemaError):
    """A date literal could not be parsed."""

    def __init__(self, value: Any, field: str = "pubDate", path: Path | None = None):
        self.value = value
        super().__init__([FieldError(field, "date", repr(value), path)])


def _naive_utc(value: datetime) -> datetime:
    # Mixed aware/naive datetimes cannot be compared, so everything is stored naive UTC.
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_date(value: Any, field: str = "pubDate") -> datetime:
    """Parse a front-matter date value.

    Accepts datetime and date objects (PyYAML produces these for unquoted
    ISO dates), ISO-8601 strings and the human-readable formats listed in
    DATE_FORMATS, such as "14 Mar 2024" or "March 14, 2024".

    Args:
        value: Raw front-matter value.
        field: Field name used in the error if parsing fails.

    Returns:
        A naive datetime (timezone-aware inputs are converted to UTC).

    Raises:
        DateParseError: If the value is not a recognisable date.
    """
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time())
    if not isinstance(value, str):
        raise DateParseError(value, field)

    text = " ".join(value.split())
    if not text:
        raise DateParseError(value, field)

    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return _naive_utc(datetime.fromisoformat(iso))
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise DateParseError(value, field)


def _describe(value: Any) -> str:
    return f"{type(value).__name__} {value!r}"


def _coerce_string(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise SchemaError([FieldError(field, "non-empty string", _describe(value))])
    if not value.strip():
        raise SchemaError([FieldError(field, "non-empty string", "empty string")])
    return value


_COERCERS = {
    "string": _coerce_string,
    "date": parse_date,
}

_EXPECTED = {
    "string": "non-empty string",
    "date": "date",
}


@dataclass(frozen=True)
class Field:
    """A declared front-matter key.

    Attributes:
        name: Key as written in the front-matter (e.g. "pubDate").
        kind: Value kind, "string" or "date".
        required: Whether the key must be present.
        attr: Name of the coerced value in the validated header. Defaults to name.
    """

    name: str
    kind: str
    required: bool = True
    attr: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in _COERCERS:
            raise ValueError(f"Unknown field kind {self.kind!r} for {self.name!r}")

    @property
    def target(self) -> str:
        return self.attr or self.name

    @property
    def expected(self) -> str:
        return _EXPECTED[self.kind]

    def coerce(self, value: Any) -> Any:
        return _COERCERS[self.kind](value, self.name)


class CollectionSchema:
    """Declared shape of a collection's front-matter.

    Validation collects every failing field before raising, so an author
    sees all problems in a document at once. Keys that the schema does not
    declare are ignored.
    """

    def __init__(self, fields: Iterable[Field]):
        self.fields = tuple(fields)

    def validate(self, frontmatter: Any, path: Path | None = None) -> dict[str, Any]:
        """Validate a front-matter mapping.

        Args:
            frontmatter: Parsed front-matter (any value; non-mappings fail).
            path: Source document, attached to every reported error.

        Returns:
            Dictionary of coerced values keyed by each field's target name.
            Optional fields that are absent are omitted.

        Raises:
            SchemaError: If any required field is missing or any value is invalid.
        """
        if not isinstance(frontmatter, Mapping):
            raise SchemaError(
                [FieldError("frontmatter", "mapping", _describe(frontmatter), path)]
            )

        header: dict[str, Any] = {}
        errors: list[FieldError] = []
        for field in self.fields:
            value = frontmatter.get(field.name)
            if value is None:
                if field.required:
                    errors.append(FieldError(field.name, field.expected, MISSING, path))
                continue
            try:
                header[field.target] = field.coerce(value)
            except SchemaError as exc:
                errors.extend(error.with_path(path) for error in exc.errors)
        if errors:
            raise SchemaError(errors)
        return header


BLOG_SCHEMA = CollectionSchema(
    [
        Field("title", "string"),
        Field("description", "string"),
        Field("pubDate", "date", attr="pub_date"),
        Field("updatedDate", "date", required=False, attr="updated_date"),
        Field("heroImage", "string", required=False, attr="hero_image"),
    ]
)
