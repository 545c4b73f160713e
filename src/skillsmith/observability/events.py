"""Typed event dataclasses for skillsmith observability.

All events are frozen (immutable) dataclasses. Pipeline stages emit these;
they don't know about logs or sinks. Subscribers handle routing.

Grouped by stage: classification, extraction, merge, write, run.
"""

from __future__ import annotations

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentClassified:
    document: str
    entries: tuple[str, ...]
    top_score: float
    keyword_count: int
    ruleset_version: int


@dataclass(frozen=True)
class DocumentUnresolved:
    document: str
    keyword_count: int
    reason: str


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecordsExtracted:
    document: str
    entry: str
    patterns: int
    constraints: int
    decision_rules: int
    references: int
    unversioned: int


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EntryMerged:
    entry: str
    accepted: int
    duplicates: int
    superseded: int
    deprecated: int
    conflicted: int


# ---------------------------------------------------------------------------
# Write
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecordRejected:
    entry: str
    record_id: str
    missing: tuple[str, ...]


@dataclass(frozen=True)
class RecordsOverflowed:
    entry: str
    section: str
    count: int
    ceiling: int


@dataclass(frozen=True)
class EntryWritten:
    entry: str
    record_count: int
    overflow_count: int
    created: bool


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EntryFailed:
    entry: str
    error: str


@dataclass(frozen=True)
class RunCompleted:
    run_id: str
    documents: int
    entries_touched: int
    unresolved: int
    rejected: int
    latency_ms: float


ALL_EVENTS = (
    DocumentClassified,
    DocumentUnresolved,
    RecordsExtracted,
    EntryMerged,
    RecordRejected,
    RecordsOverflowed,
    EntryWritten,
    EntryFailed,
    RunCompleted,
)
