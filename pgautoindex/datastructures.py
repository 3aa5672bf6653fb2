"""Bookkeeping for the indexes the advisor has created."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator


@dataclass
class IndexEntry:
    """An index created on ``table_name`` over ``attributes``."""

    table_name: str
    attributes: frozenset[str]
    create_time: int
    num_accesses: int = 1
    index_name: str = field(default="")

    def __post_init__(self) -> None:
        self.attributes = frozenset(self.attributes)
        if not self.index_name:
            self.index_name = f"{self.table_name}{self.create_time}"

    def __lt__(self, other: IndexEntry) -> bool:
        if not isinstance(other, IndexEntry):
            return NotImplemented
        return self.create_time < other.create_time

    def __str__(self) -> str:
        attrs = "".join(f"{name} " for name in sorted(self.attributes))
        return (
            f"{self.table_name} {self.index_name} {self.create_time} "
            f"{self.num_accesses}Attributes {attrs}"
        )


class IndexRegistry:
    """Ordered collection of created indexes, oldest first."""

    def __init__(self, entries: Iterable[IndexEntry] = ()) -> None:
        self._entries: list[IndexEntry] = list(entries)

    def _find(self, table_name: str, attributes: Iterable[str]) -> IndexEntry | None:
        wanted = frozenset(attributes)
        return next(
            (
                entry
                for entry in self._entries
                if entry.table_name == table_name and entry.attributes == wanted
            ),
            None,
        )

    def exists(self, table_name: str, attributes: Iterable[str]) -> bool:
        """Whether an index on exactly these attributes of the table is recorded."""
        return self._find(table_name, attributes) is not None

    def add(self, entry: IndexEntry) -> None:
        """Record a newly created index."""
        self._entries.append(entry)

    def refresh(
        self, table_name: str, attributes: Iterable[str], timestamp: int
    ) -> IndexEntry | None:
        """Renew a matching entry at ``timestamp`` and count one more access.

        The renewed entry moves to the end of the registry. Returns it, or
        ``None`` when there is no matching entry.
        """
        old = self._find(table_name, attributes)
        if old is None:
            return None
        renewed = IndexEntry(
            table_name=table_name,
            attributes=frozenset(attributes),
            create_time=timestamp,
            num_accesses=old.num_accesses + 1,
        )
        self._entries.remove(old)
        self._entries.append(renewed)
        return renewed

    def replace(self, entries: Iterable[IndexEntry]) -> None:
        """Replace every recorded entry with ``entries``."""
        self._entries = list(entries)

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)