"""Shared serialization helpers for knowledge-base stores.

Contains the canonical entry schema written to ``entry.yaml`` and
``references/overflow.yaml``. Records are flat dicts; the section key
tells the loader which record type to rebuild.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from skillsmith.core.models import (
    RECORD_TYPES,
    UNSPECIFIED_VERSION,
    Constraint,
    DecisionRule,
    KnowledgeEntry,
    Pattern,
    Record,
    RecordStatus,
    Reference,
    Section,
    SourceRef,
)

SCHEMA_VERSION = 1


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_ts(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def source_to_dict(source: SourceRef) -> dict[str, Any]:
    d: dict[str, Any] = {"document": source.document}
    if source.location:
        d["location"] = source.location
    if source.dated is not None:
        d["dated"] = _ts(source.dated)
    return d


def source_from_dict(d: dict[str, Any]) -> SourceRef:
    return SourceRef(
        document=str(d.get("document") or ""),
        dated=_parse_ts(d.get("dated")),
        location=d.get("location"),
    )


def record_to_dict(record: Record) -> dict[str, Any]:
    """Convert a record to a flat serializable dict."""
    d: dict[str, Any] = {"id": record.id, "section": record.section.value}

    if isinstance(record, Pattern):
        d["title"] = record.title
        d["language"] = record.language
        if record.is_antipattern:
            d["antipattern"] = True
        d["code"] = record.code
    elif isinstance(record, Constraint):
        d["subject"] = record.subject
        d["polarity"] = record.polarity
        d["text"] = record.text
        if record.prohibition:
            d["prohibition"] = record.prohibition
        if record.recommendation:
            d["recommendation"] = record.recommendation
    elif isinstance(record, DecisionRule):
        d["condition"] = record.condition
        d["outcome"] = record.outcome
    elif isinstance(record, Reference):
        d["title"] = record.title
        d["target"] = record.target

    if record.requires_version or record.min_version != UNSPECIFIED_VERSION:
        d["min_version"] = record.min_version
    d["status"] = record.status.value
    d["added_at"] = _ts(record.added_at)
    d["sources"] = [source_to_dict(s) for s in record.sources]
    return d


def record_from_dict(d: dict[str, Any]) -> Record:
    """Rebuild a record from its dict form."""
    section = Section(d["section"])
    common: dict[str, Any] = {
        "id": d["id"],
        "min_version": d.get("min_version", UNSPECIFIED_VERSION),
        "sources": [source_from_dict(s) for s in d.get("sources") or []],
        "status": RecordStatus(d.get("status", RecordStatus.ACCEPTED.value)),
        "added_at": _parse_ts(d.get("added_at")),
    }
    cls = RECORD_TYPES[section]

    if cls is Pattern:
        return Pattern(
            title=d.get("title", ""),
            code=d.get("code", ""),
            language=d.get("language", ""),
            is_antipattern=bool(d.get("antipattern", False)),
            **common,
        )
    if cls is Constraint:
        return Constraint(
            subject=d["subject"],
            polarity=d["polarity"],
            text=d.get("text", ""),
            prohibition=d.get("prohibition"),
            recommendation=d.get("recommendation"),
            **common,
        )
    if cls is DecisionRule:
        return DecisionRule(condition=d["condition"], outcome=d["outcome"], **common)
    return Reference(title=d.get("title", ""), target=d["target"], **common)


def entry_to_dict(entry: KnowledgeEntry) -> dict[str, Any]:
    """Serialize an entry's visible sections. Overflow is stored separately."""
    d: dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "name": entry.name,
        "description": entry.description,
        "keywords": list(entry.keywords),
        "created_at": _ts(entry.created_at),
        "updated_at": _ts(entry.updated_at),
    }
    for section, records in entry.sections():
        d[section.value] = [record_to_dict(r) for r in records]
    return d


def entry_from_dict(d: dict[str, Any], overflow: list[dict[str, Any]] | None = None) -> KnowledgeEntry:
    entry = KnowledgeEntry(
        name=d["name"],
        description=d.get("description") or "",
        keywords=list(d.get("keywords") or []),
    )
    if created := _parse_ts(d.get("created_at")):
        entry.created_at = created
    if updated := _parse_ts(d.get("updated_at")):
        entry.updated_at = updated
    for section in Section:
        for item in d.get(section.value) or []:
            entry.add(record_from_dict({**item, "section": section.value}))
    entry.overflow = [record_from_dict(item) for item in overflow or []]
    return entry
