"""Writer: persist a merged entry with the section schema enforced.

Two guarantees:
- No partial write. Every record is validated before anything touches the
  store; records missing a version tag or source citation raise
  MissingRequiredField and the stored entry is left as it was.
- No data loss. A section over its ceiling demotes its lowest-priority
  records to the overflow store (inactive before accepted, oldest first).
  Conflicted records wait for a human and are never demoted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from skillsmith.core.models import (
    INACTIVE_STATUSES,
    ChangeKind,
    ChangeRecord,
    KnowledgeEntry,
    Record,
    RecordStatus,
)
from skillsmith.errors import MissingRequiredField
from skillsmith.observability import emit, get_logger
from skillsmith.observability.events import EntryWritten, RecordsOverflowed
from skillsmith.store.base import KnowledgeBase

logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _demotion_key(indexed: tuple[int, Record]) -> tuple:
    index, record = indexed
    tier = 0 if record.status in INACTIVE_STATUSES else 1
    return (tier, record.added_at or _EPOCH, record.latest_source_date or _EPOCH, index)


@dataclass
class WriteResult:
    entry: KnowledgeEntry
    created: bool
    demoted: list[Record] = field(default_factory=list)
    changes: list[ChangeRecord] = field(default_factory=list)


class Writer:
    """Validate, apply the overflow ceiling, then store an entry."""

    def __init__(self, kb: KnowledgeBase, ceiling: int | None = None) -> None:
        if ceiling is not None and ceiling < 1:
            raise ValueError(f"Section ceiling must be >= 1, got {ceiling}")
        self.kb = kb
        self.ceiling = ceiling

    def validate(self, entry: KnowledgeEntry) -> None:
        """Raise MissingRequiredField listing every incomplete record."""
        offenders: list[Record] = []
        fields: list[str] = []
        for record in entry.records():
            missing = record.missing_fields()
            if missing:
                offenders.append(record)
                fields.extend(missing)
        if offenders:
            raise MissingRequiredField(entry.name, offenders, fields)

    def over_ceiling(self, entry: KnowledgeEntry) -> bool:
        if self.ceiling is None:
            return False
        return any(len(records) > self.ceiling for _, records in entry.sections())

    def write(self, entry: KnowledgeEntry) -> WriteResult:
        self.validate(entry)

        entry = entry.copy()
        created = not self.kb.exists(entry.name)
        result = WriteResult(entry=entry, created=created)

        if self.ceiling is not None:
            for section, records in entry.sections():
                self._enforce_ceiling(entry, section.value, records, result)

        self.kb.put(entry)
        emit(EntryWritten(
            entry=entry.name,
            record_count=entry.count(),
            overflow_count=len(entry.overflow),
            created=created,
        ))
        return result

    def _enforce_ceiling(
        self,
        entry: KnowledgeEntry,
        section: str,
        records: list[Record],
        result: WriteResult,
    ) -> None:
        excess = len(records) - self.ceiling
        if excess <= 0:
            return

        candidates = [
            (i, r) for i, r in enumerate(records) if r.status != RecordStatus.CONFLICTED
        ]
        demote = [r for _, r in sorted(candidates, key=_demotion_key)[:excess]]
        demoted_ids = {id(r) for r in demote}
        records[:] = [r for r in records if id(r) not in demoted_ids]
        entry.overflow.extend(demote)
        result.demoted.extend(demote)

        for record in demote:
            result.changes.append(ChangeRecord(
                entry=entry.name,
                kind=ChangeKind.OVERFLOW,
                detail=f"{record.summary()} moved to overflow ({section} ceiling {self.ceiling})",
                record_id=record.id,
            ))
        if demote:
            emit(RecordsOverflowed(
                entry=entry.name, section=section, count=len(demote), ceiling=self.ceiling,
            ))

        if len(records) > self.ceiling:
            logger.warning(
                "writer.ceiling_exceeded",
                entry=entry.name,
                section=section,
                count=len(records),
                ceiling=self.ceiling,
            )
            result.changes.append(ChangeRecord(
                entry=entry.name,
                kind=ChangeKind.REVIEW,
                detail=(
                    f"{section} holds {len(records)} records (ceiling {self.ceiling}); "
                    "the rest are conflicted and need resolving"
                ),
            ))
