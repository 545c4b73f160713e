"""Merger: fold newly extracted records into a knowledge entry.

Resolution rules, per record type:

- Any record whose id already exists in the entry (visible or overflow) is
  a duplicate: citations are unioned, nothing else changes. Pattern ids
  hash the whitespace-normalized code, so re-ingesting a document is a
  no-op.
- Pattern with the same title as an active pattern but different code:
  the newer source wins, the older one is marked deprecated.
- Constraint with the same subject and opposite polarity as an active
  constraint: the newer source wins, the older one is marked superseded.
  When both sources carry the same date the contradiction is substantive
  and both are marked conflicted.
- DecisionRule with a known condition but a different outcome: both are
  marked conflicted. DecisionRules are never overwritten.
- Reference: deduplicated by target.

The input entry is never mutated; the merged copy is returned.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime

from skillsmith.core.models import (
    UNSPECIFIED_VERSION,
    ChangeKind,
    ChangeRecord,
    Constraint,
    DecisionRule,
    KnowledgeEntry,
    Pattern,
    Record,
    RecordStatus,
)
from skillsmith.observability import emit, get_logger
from skillsmith.observability.events import EntryMerged

logger = get_logger(__name__)

_SETUP_LINE = re.compile(
    r"^\s*(?:import\s|from\s+\S+\s+import\s|@import\s|#include\s|using\s|require\s*\(|"
    r"@main\b|@testable\s+import\s)",
    re.MULTILINE,
)

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _dated(record: Record) -> datetime:
    return record.latest_source_date or _EPOCH


def has_setup_lines(code: str) -> bool:
    """True when a code block carries the imports it needs to compile."""
    return bool(_SETUP_LINE.search(code))


@dataclass
class MergeResult:
    """The merged entry plus everything the merge did to it."""

    entry: KnowledgeEntry
    changes: list[ChangeRecord] = field(default_factory=list)
    counts: Counter = field(default_factory=Counter)

    @property
    def changed(self) -> bool:
        """Whether the entry differs from the one passed in."""
        return any(
            self.counts[k]
            for k in ("accepted", "superseded", "deprecated", "conflicted", "cited")
        )


class Merger:
    """Diff extracted records against an entry and resolve them."""

    def __init__(self, clock=None) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))

    def merge(self, entry: KnowledgeEntry, records: list[Record]) -> MergeResult:
        merged = entry.copy()
        result = MergeResult(entry=merged)
        now = self._clock()

        # Oldest first, so "newer wins" is decided in arrival order.
        for record in sorted(records, key=_dated):
            self._merge_one(merged, record, result, now)

        if result.changed:
            merged.updated_at = now

        emit(EntryMerged(
            entry=merged.name,
            accepted=result.counts["accepted"],
            duplicates=result.counts["duplicate"],
            superseded=result.counts["superseded"],
            deprecated=result.counts["deprecated"],
            conflicted=result.counts["conflicted"],
        ))
        logger.debug(
            "merge.done", entry=merged.name, records=len(records), changed=result.changed,
        )
        return result

    # -- dispatch -----------------------------------------------------------

    def _merge_one(
        self,
        entry: KnowledgeEntry,
        record: Record,
        result: MergeResult,
        now: datetime,
    ) -> None:
        existing = entry.find(record.id)
        if existing is not None:
            added = existing.cite(record.sources)
            if added:
                result.counts["cited"] += 1
            result.counts["duplicate"] += 1
            self._note(result, ChangeKind.DUPLICATE, entry, existing,
                       f"{existing.summary()} already present"
                       + (f", {added} citation(s) added" if added else ""))
            return

        record.added_at = now
        record.status = RecordStatus.ACCEPTED

        if isinstance(record, Pattern):
            self._merge_pattern(entry, record, result)
        elif isinstance(record, Constraint):
            self._merge_constraint(entry, record, result)
        elif isinstance(record, DecisionRule):
            self._merge_decision(entry, record, result)

        entry.add(record)
        if record.status == RecordStatus.ACCEPTED:
            result.counts["accepted"] += 1
            self._note(result, ChangeKind.ACCEPTED, entry, record, f"added {record.summary()}")
        self._flag_for_review(entry, record, result)

    # -- per type -----------------------------------------------------------

    def _merge_pattern(self, entry: KnowledgeEntry, new: Pattern, result: MergeResult) -> None:
        for old in entry.patterns:
            if not old.is_active or old.title != new.title or old.normalized == new.normalized:
                continue
            if _dated(new) >= _dated(old):
                self._retire(entry, old, RecordStatus.DEPRECATED, result,
                             f"{old.summary()} replaced by newer code from {_cited(new)}")
            else:
                self._retire(entry, new, RecordStatus.DEPRECATED, result,
                             f"{new.summary()} from {_cited(new)} is older than the current example")

    def _merge_constraint(self, entry: KnowledgeEntry, new: Constraint, result: MergeResult) -> None:
        for old in entry.constraints:
            if not old.is_active or not old.contradicts(new):
                continue
            old_date, new_date = _dated(old), _dated(new)
            if new_date > old_date:
                self._retire(entry, old, RecordStatus.SUPERSEDED, result,
                             f"{old.summary()} superseded by {_cited(new)}: {new.text}")
            elif new_date < old_date:
                self._retire(entry, new, RecordStatus.SUPERSEDED, result,
                             f"{new.summary()} from {_cited(new)} is older than {_cited(old)}")
            else:
                self._conflict(entry, old, new, result,
                               f"{old.text!r} vs {new.text!r} (same date)")

    def _merge_decision(self, entry: KnowledgeEntry, new: DecisionRule, result: MergeResult) -> None:
        for old in entry.decision_rules:
            if old.is_active and old.condition_key == new.condition_key:
                self._conflict(entry, old, new, result,
                               f"when {new.condition!r}: {old.outcome!r} vs {new.outcome!r}")

    # -- state changes ------------------------------------------------------

    def _retire(
        self,
        entry: KnowledgeEntry,
        record: Record,
        status: RecordStatus,
        result: MergeResult,
        detail: str,
    ) -> None:
        record.status = status
        kind = ChangeKind.SUPERSEDED if status == RecordStatus.SUPERSEDED else ChangeKind.DEPRECATED
        result.counts[kind.value] += 1
        self._note(result, kind, entry, record, detail)

    def _conflict(
        self,
        entry: KnowledgeEntry,
        old: Record,
        new: Record,
        result: MergeResult,
        detail: str,
    ) -> None:
        if old.status != RecordStatus.CONFLICTED:
            old.status = RecordStatus.CONFLICTED
            result.counts["conflicted"] += 1
        new.status = RecordStatus.CONFLICTED
        result.counts["conflicted"] += 1
        self._note(result, ChangeKind.CONFLICTED, entry, new,
                   f"{new.summary()} conflicts with {old.id}: {detail}")

    def _flag_for_review(self, entry: KnowledgeEntry, record: Record, result: MergeResult) -> None:
        if record.requires_version and record.min_version == UNSPECIFIED_VERSION:
            self._note(result, ChangeKind.REVIEW, entry, record,
                       f"{record.summary()} has no version annotation")
        if isinstance(record, Pattern) and not record.is_antipattern and not has_setup_lines(record.code):
            self._note(result, ChangeKind.REVIEW, entry, record,
                       f"{record.summary()} has no import or setup lines")

    def _note(
        self,
        result: MergeResult,
        kind: ChangeKind,
        entry: KnowledgeEntry,
        record: Record,
        detail: str,
    ) -> None:
        document = record.sources[-1].document if record.sources else None
        result.changes.append(ChangeRecord(
            entry=entry.name, kind=kind, detail=detail, document=document, record_id=record.id,
        ))


def _cited(record: Record) -> str:
    return str(record.sources[-1]) if record.sources else record.id
