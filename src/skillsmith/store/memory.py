"""In-memory knowledge base for tests and dry runs."""

from __future__ import annotations

import threading
from datetime import UTC, datetime

from skillsmith.core.models import KnowledgeEntry, Record
from skillsmith.errors import EntryNotFound
from skillsmith.store.base import KnowledgeBase


class InMemoryKnowledgeBase:
    """Full KnowledgeBase implementation using a dict.

    Entries are deep-copied on the way in and out, so callers never share
    mutable state with the store.
    """

    def __init__(self, entries: list[KnowledgeEntry] | None = None) -> None:
        self._entries: dict[str, KnowledgeEntry] = {}
        self._lock = threading.Lock()
        for entry in entries or []:
            self._entries[entry.name] = entry.copy()

    @classmethod
    def snapshot(cls, kb: KnowledgeBase) -> InMemoryKnowledgeBase:
        """Copy every entry of another knowledge base. Used for dry runs."""
        entries = [e for e in (kb.get(name) for name in kb.list_entries()) if e is not None]
        return cls(entries)

    def exists(self, name: str) -> bool:
        return name in self._entries

    def get(self, name: str) -> KnowledgeEntry | None:
        entry = self._entries.get(name)
        return entry.copy() if entry is not None else None

    def put(self, entry: KnowledgeEntry) -> None:
        with self._lock:
            self._entries[entry.name] = entry.copy()

    def create(self, name: str, description: str = "", keywords: list[str] | None = None) -> KnowledgeEntry:
        with self._lock:
            if name not in self._entries:
                now = datetime.now(UTC)
                self._entries[name] = KnowledgeEntry(
                    name=name,
                    description=description,
                    keywords=list(keywords or []),
                    created_at=now,
                    updated_at=now,
                )
            return self._entries[name].copy()

    def list_entries(self) -> list[str]:
        return sorted(self._entries)

    def get_overflow(self, name: str) -> list[Record]:
        entry = self._entries.get(name)
        if entry is None:
            raise EntryNotFound(name)
        return list(entry.copy().overflow)
