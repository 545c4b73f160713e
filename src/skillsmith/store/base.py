"""Knowledge-base protocol.

The pipeline is storage-agnostic. Code against KnowledgeBase.
Primary: MarkdownKnowledgeBase (one directory per entry)
Testing and dry runs: InMemoryKnowledgeBase
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from skillsmith.core.models import KnowledgeEntry, Record


@runtime_checkable
class KnowledgeBase(Protocol):
    """Named entries with four ordered sections and an overflow store.

    Entries are never deleted. `put` replaces the stored entry as a
    whole; each entry is owned by a single writer for the duration of a
    run, so implementations only need a per-entry write barrier.
    """

    def exists(self, name: str) -> bool: ...

    def get(self, name: str) -> KnowledgeEntry | None: ...

    def put(self, entry: KnowledgeEntry) -> None: ...

    def create(self, name: str, description: str = "", keywords: list[str] | None = None) -> KnowledgeEntry: ...

    def list_entries(self) -> list[str]: ...

    def get_overflow(self, name: str) -> list[Record]: ...
