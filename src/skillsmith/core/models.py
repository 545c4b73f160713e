"""Core data models for the skill knowledge base.

These models define the contract between components:
- Classifier produces ClassificationResult from IncomingDocument
- Extractor produces records (Pattern, Constraint, DecisionRule, Reference)
- Merger folds records into a KnowledgeEntry
- Writer persists KnowledgeEntry, Reporter renders ChangeReport
"""

from __future__ import annotations

import copy
import hashlib
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Union

UNSPECIFIED_VERSION = "unspecified"

_WS = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lowercase and collapse whitespace. Used for duplicate detection on prose."""
    return _WS.sub(" ", text).strip().lower().rstrip(".!")


def normalize_code(code: str) -> str:
    """Whitespace-insensitive form of a code block.

    Trailing whitespace is stripped, blank lines dropped, and runs of
    whitespace inside a line collapsed. Case and punctuation are kept.
    """
    lines = (_WS.sub(" ", line).strip() for line in code.splitlines())
    return "\n".join(line for line in lines if line)


def _digest(*parts: str) -> str:
    h = hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()
    return h[:12]


# =============================================================================
# Enums
# =============================================================================


class RecordStatus(str, Enum):
    """Lifecycle of a record inside an entry.

    proposed -> accepted | conflicted  (new records)
    accepted -> superseded | deprecated | conflicted  (existing records)
    rejected is terminal and never stored in an entry.
    """

    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    CONFLICTED = "conflicted"
    SUPERSEDED = "superseded"
    DEPRECATED = "deprecated"
    REJECTED = "rejected"


INACTIVE_STATUSES = frozenset({RecordStatus.SUPERSEDED, RecordStatus.DEPRECATED})


class Section(str, Enum):
    """The four fixed sections of an entry."""

    CONSTRAINTS = "constraints"
    DECISION_RULES = "decision_rules"
    PATTERNS = "patterns"
    REFERENCES = "references"

    @property
    def title(self) -> str:
        return self.value.replace("_", " ").title()


SECTION_ORDER: tuple[Section, ...] = (
    Section.CONSTRAINTS,
    Section.DECISION_RULES,
    Section.PATTERNS,
    Section.REFERENCES,
)


class EntryAction(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    NONE = "NONE"


class ChangeKind(str, Enum):
    """What a single ChangeReport line records."""

    ACCEPTED = "accepted"
    SUPERSEDED = "superseded"
    DEPRECATED = "deprecated"
    CONFLICTED = "conflicted"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"
    OVERFLOW = "overflow"
    REVIEW = "review"
    UNRESOLVED = "unresolved"
    ERROR = "error"


# =============================================================================
# Records
# =============================================================================


@dataclass
class SourceRef:
    """Where a record came from."""

    document: str
    dated: datetime | None = None
    location: str | None = None  # heading path, e.g. "Migration > Observation"

    def key(self) -> tuple[str, str | None]:
        return (self.document, self.location)

    def __str__(self) -> str:
        if self.location:
            return f"{self.document} ({self.location})"
        return self.document


class _Cited:
    """Shared behaviour for records that carry citations and a status."""

    id: str
    sources: list[SourceRef]
    min_version: str
    status: RecordStatus
    added_at: datetime | None

    section: ClassVar[Section]
    requires_version: ClassVar[bool] = True

    @property
    def latest_source_date(self) -> datetime | None:
        dates = [s.dated for s in self.sources if s.dated is not None]
        return max(dates) if dates else None

    @property
    def is_active(self) -> bool:
        return self.status in (RecordStatus.ACCEPTED, RecordStatus.CONFLICTED, RecordStatus.PROPOSED)

    def cite(self, refs: list[SourceRef]) -> int:
        """Union citations into this record. Returns how many were new."""
        known = {s.key() for s in self.sources}
        added = 0
        for ref in refs:
            if ref.key() not in known:
                self.sources.append(ref)
                known.add(ref.key())
                added += 1
        return added

    def missing_fields(self) -> list[str]:
        missing = []
        if self.requires_version and not (self.min_version or "").strip():
            missing.append("min_version")
        if not any(s.document for s in self.sources):
            missing.append("sources")
        return missing


@dataclass
class Pattern(_Cited):
    """A tagged code example with a minimum version and a citation."""

    id: str
    title: str
    code: str
    language: str = ""
    is_antipattern: bool = False  # shown as "what not to write"
    min_version: str = UNSPECIFIED_VERSION
    sources: list[SourceRef] = field(default_factory=list)
    status: RecordStatus = RecordStatus.PROPOSED
    added_at: datetime | None = None

    section: ClassVar[Section] = Section.PATTERNS

    @classmethod
    def make_id(cls, code: str) -> str:
        return f"pat-{_digest(normalize_code(code))}"

    @property
    def normalized(self) -> str:
        return normalize_code(self.code)

    def summary(self) -> str:
        return f"pattern {self.title!r}"


@dataclass
class Constraint(_Cited):
    """A prohibition/recommendation pair about one subject.

    polarity is "avoid" when the text prohibits the subject and "do" when
    it recommends it. Two constraints on the same subject with opposite
    polarity contradict each other.
    """

    id: str
    subject: str
    polarity: str  # "do" | "avoid"
    text: str
    prohibition: str | None = None
    recommendation: str | None = None
    min_version: str = UNSPECIFIED_VERSION
    sources: list[SourceRef] = field(default_factory=list)
    status: RecordStatus = RecordStatus.PROPOSED
    added_at: datetime | None = None

    section: ClassVar[Section] = Section.CONSTRAINTS

    @classmethod
    def make_id(cls, subject: str, polarity: str, text: str) -> str:
        return f"con-{_digest(subject, polarity, normalize_text(text))}"

    def contradicts(self, other: Constraint) -> bool:
        return self.subject == other.subject and self.polarity != other.polarity

    def summary(self) -> str:
        return f"constraint {self.polarity} {self.subject!r}"


@dataclass
class DecisionRule(_Cited):
    """A conditional branch: when condition holds, take outcome."""

    id: str
    condition: str
    outcome: str
    min_version: str = UNSPECIFIED_VERSION
    sources: list[SourceRef] = field(default_factory=list)
    status: RecordStatus = RecordStatus.PROPOSED
    added_at: datetime | None = None

    section: ClassVar[Section] = Section.DECISION_RULES

    @classmethod
    def make_id(cls, condition: str, outcome: str) -> str:
        return f"dec-{_digest(normalize_text(condition), normalize_text(outcome))}"

    @property
    def condition_key(self) -> str:
        return normalize_text(self.condition)

    def summary(self) -> str:
        return f"decision rule {self.condition!r}"


@dataclass
class Reference(_Cited):
    """A link to further reading."""

    id: str
    title: str
    target: str
    min_version: str = UNSPECIFIED_VERSION
    sources: list[SourceRef] = field(default_factory=list)
    status: RecordStatus = RecordStatus.PROPOSED
    added_at: datetime | None = None

    section: ClassVar[Section] = Section.REFERENCES
    requires_version: ClassVar[bool] = False

    @classmethod
    def make_id(cls, target: str) -> str:
        return f"ref-{_digest(target.strip().rstrip('/').lower())}"

    def summary(self) -> str:
        return f"reference {self.title!r}"


Record = Union[Pattern, Constraint, DecisionRule, Reference]

RECORD_TYPES: dict[Section, type] = {
    Section.CONSTRAINTS: Constraint,
    Section.DECISION_RULES: DecisionRule,
    Section.PATTERNS: Pattern,
    Section.REFERENCES: Reference,
}


# =============================================================================
# Knowledge entry
# =============================================================================


@dataclass
class KnowledgeEntry:
    """A named skill document with four ordered sections.

    Entries are never deleted. Records leave the visible sections only by
    being demoted to `overflow`, where they stay queryable.
    """

    name: str
    description: str = ""
    keywords: list[str] = field(default_factory=list)

    constraints: list[Constraint] = field(default_factory=list)
    decision_rules: list[DecisionRule] = field(default_factory=list)
    patterns: list[Pattern] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)

    overflow: list[Record] = field(default_factory=list)

    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def section(self, section: Section) -> list[Any]:
        return getattr(self, section.value)

    def sections(self) -> list[tuple[Section, list[Any]]]:
        return [(s, self.section(s)) for s in SECTION_ORDER]

    def records(self) -> list[Record]:
        out: list[Record] = []
        for _, records in self.sections():
            out.extend(records)
        return out

    def add(self, record: Record) -> None:
        self.section(record.section).append(record)

    def remove(self, record: Record) -> None:
        records = self.section(record.section)
        records[:] = [r for r in records if r is not record]

    def find(self, record_id: str) -> Record | None:
        for record in self.records():
            if record.id == record_id:
                return record
        for record in self.overflow:
            if record.id == record_id:
                return record
        return None

    def count(self) -> int:
        return sum(len(records) for _, records in self.sections())

    def copy(self) -> KnowledgeEntry:
        return copy.deepcopy(self)


# =============================================================================
# Pipeline inputs and outputs
# =============================================================================


@dataclass
class IncomingDocument:
    """Raw text plus metadata. Consumed by one run, never persisted."""

    filename: str
    text: str
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_path(cls, path: Path, uploaded_at: datetime | None = None) -> IncomingDocument:
        """Read a document from disk. Upload time defaults to the file's mtime."""
        path = Path(path)
        if uploaded_at is None:
            uploaded_at = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
        return cls(
            filename=path.name,
            text=path.read_text(encoding="utf-8"),
            uploaded_at=uploaded_at,
            metadata={"path": str(path)},
        )


@dataclass(frozen=True)
class EntryMatch:
    entry: str
    score: float
    matched_keywords: tuple[str, ...] = ()


@dataclass
class ClassificationResult:
    """Which entries a document maps to, and why."""

    document: IncomingDocument
    matches: list[EntryMatch] = field(default_factory=list)
    keywords: frozenset[str] = frozenset()
    explanation: str = ""
    ruleset_version: int = 0

    @property
    def unmapped(self) -> bool:
        return not self.matches

    @property
    def entries(self) -> list[str]:
        return [m.entry for m in self.matches]


@dataclass(frozen=True)
class ChangeRecord:
    """One (entry, kind, detail) line of a run's report."""

    entry: str
    kind: ChangeKind
    detail: str
    document: str | None = None
    record_id: str | None = None


_ACTION_RANK = {EntryAction.NONE: 0, EntryAction.UPDATED: 1, EntryAction.CREATED: 2}


@dataclass
class ChangeReport:
    """Append-only log of everything a run did.

    The report is the only surface for warnings and errors: nothing in
    the pipeline raises past it.
    """

    run_id: str = ""
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    ruleset_version: int = 0
    changes: list[ChangeRecord] = field(default_factory=list)
    actions: dict[str, EntryAction] = field(default_factory=dict)

    def append(
        self,
        entry: str,
        kind: ChangeKind,
        detail: str,
        document: str | None = None,
        record_id: str | None = None,
    ) -> ChangeRecord:
        change = ChangeRecord(
            entry=entry, kind=kind, detail=detail, document=document, record_id=record_id,
        )
        self.changes.append(change)
        return change

    def extend(self, changes: list[ChangeRecord]) -> None:
        self.changes.extend(changes)

    def set_action(self, entry: str, action: EntryAction) -> None:
        """Record the entry-level action; CREATED beats UPDATED beats NONE."""
        current = self.actions.get(entry)
        if current is None or _ACTION_RANK[action] > _ACTION_RANK[current]:
            self.actions[entry] = action

    def of_kind(self, kind: ChangeKind) -> list[ChangeRecord]:
        return [c for c in self.changes if c.kind == kind]

    def for_entry(self, entry: str) -> list[ChangeRecord]:
        return [c for c in self.changes if c.entry == entry]

    @property
    def unresolved(self) -> list[str]:
        return [c.document or c.detail for c in self.of_kind(ChangeKind.UNRESOLVED)]

    @property
    def rejected(self) -> list[ChangeRecord]:
        return self.of_kind(ChangeKind.REJECTED)
