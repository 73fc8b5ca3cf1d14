from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from .content import ContentEntry


class ListItem(NamedTuple):
    """One row of the index listing."""

    slug: str
    title: str
    description: str

    @property
    def url(self) -> str:
        return f"/{self.slug}/"


def _by_pub_date(entry: ContentEntry):
    return entry.pub_date


def render_listing(entries: Iterable[ContentEntry]) -> list[ListItem]:
    """Produce the index listing, oldest entry first.

    Entries sharing a publish date keep the order they were given in
    (``sorted`` is stable), which for loaded collections is discovery order.

    Args:
        entries: Loaded entries. Not modified.

    Returns:
        List of (slug, title, description) rows.
    """
    return [
        ListItem(entry.slug, entry.title, entry.description)
        for entry in sorted(entries, key=_by_pub_date)
    ]


class EntryCollection(Sequence["ContentEntry"]):
    """Read-only sequence of loaded entries in discovery order."""

    def __init__(self, entries: Iterable[ContentEntry]):
        self._entries = tuple(entries)
        self._by_slug = {entry.slug: entry for entry in self._entries}

    def __iter__(self) -> Iterator[ContentEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return EntryCollection(self._entries[item])
        return self._entries[item]

    def get(self, slug: str, default=None):
        return self._by_slug.get(slug, default)

    def slugs(self) -> list[str]:
        return [entry.slug for entry in self._entries]

    def sorted(self, reverse: bool = False) -> EntryCollection:
        """Sort entries by publish date only.

        Ascending (the default) is oldest first. Ties keep discovery order
        in both directions.
        """
        return EntryCollection(
            sorted(self._entries, key=_by_pub_date, reverse=reverse)
        )

    def latest(self, count: int = 5) -> EntryCollection:
        return self.sorted(reverse=True)[:count]

    def listing(self) -> list[ListItem]:
        return render_listing(self._entries)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"EntryCollection({len(self._entries)} entries)"
