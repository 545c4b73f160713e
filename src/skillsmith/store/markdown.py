"""MarkdownKnowledgeBase: one directory of files per entry.

Layout::

    <root>/<entry>/entry.yaml                canonical record data
    <root>/<entry>/SKILL.md                  rendered view, YAML frontmatter
    <root>/<entry>/references/overflow.yaml  demoted records
    <root>/<entry>/references/overflow.md    rendered overflow

``entry.yaml`` is the source of truth. ``SKILL.md`` is regenerated on
every write with sections in fixed order: Constraints, Decision Rules,
Patterns, References.
"""

from __future__ import annotations

import re
import threading
from datetime import UTC, datetime
from pathlib import Path

import yaml

from skillsmith.core.models import (
    Constraint,
    DecisionRule,
    KnowledgeEntry,
    Pattern,
    Record,
    RecordStatus,
    Reference,
    Section,
)
from skillsmith.errors import EntryNotFound
from skillsmith.observability import get_logger
from skillsmith.store._serialize import entry_from_dict, entry_to_dict, record_to_dict

logger = get_logger(__name__)

ENTRY_FILE = "entry.yaml"
SKILL_FILE = "SKILL.md"
OVERFLOW_DIR = "references"
OVERFLOW_YAML = "overflow.yaml"
OVERFLOW_MD = "overflow.md"

_VALID_NAME = re.compile(r"^[a-z0-9][a-z0-9._-]*$")


def _dump(data) -> str:
    return yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(path)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _status_tag(record: Record) -> str:
    if record.status in (RecordStatus.ACCEPTED, RecordStatus.PROPOSED):
        return ""
    return f" **[{record.status.value}]**"


def _cite(record: Record) -> str:
    return "; ".join(str(s) for s in record.sources)


def _render_constraint(c: Constraint) -> list[str]:
    verb = "Avoid" if c.polarity == "avoid" else "Do"
    line = f"- **{verb}** `{c.subject}`: {c.text}{_status_tag(c)}"
    lines = [line, f"  - version: {c.min_version} | source: {_cite(c)}"]
    if c.recommendation and c.polarity == "avoid":
        lines.insert(1, f"  - instead: {c.recommendation}")
    return lines


def _render_decision(d: DecisionRule) -> list[str]:
    return [
        f"- **When** {d.condition} -> {d.outcome}{_status_tag(d)}",
        f"  - version: {d.min_version} | source: {_cite(d)}",
    ]


def _render_pattern(p: Pattern) -> list[str]:
    heading = f"### {p.title}"
    if p.is_antipattern:
        heading += " (anti-pattern)"
    return [
        heading + _status_tag(p),
        "",
        f"`{p.min_version}` | source: {_cite(p)}",
        "",
        f"```{p.language}",
        p.code,
        "```",
        "",
    ]


def _render_reference(r: Reference) -> list[str]:
    return [f"- [{r.title}]({r.target}){_status_tag(r)}"]


_RENDERERS = {
    Section.CONSTRAINTS: _render_constraint,
    Section.DECISION_RULES: _render_decision,
    Section.PATTERNS: _render_pattern,
    Section.REFERENCES: _render_reference,
}


def render_skill(entry: KnowledgeEntry) -> str:
    """Render an entry as a SKILL.md document."""
    front = {
        "name": entry.name,
        "description": entry.description,
        "keywords": list(entry.keywords),
        "updated": entry.updated_at.isoformat(),
    }
    lines = ["---", _dump(front).rstrip(), "---", "", f"# {entry.name}", ""]
    if entry.description:
        lines += [entry.description, ""]

    for section, records in entry.sections():
        lines += [f"## {section.title}", ""]
        if not records:
            lines += ["_None yet._", ""]
            continue
        for record in records:
            lines += _RENDERERS[section](record)
        if lines[-1] != "":
            lines.append("")

    if entry.overflow:
        lines += [f"_{len(entry.overflow)} older record(s) in "
                  f"[{OVERFLOW_DIR}/{OVERFLOW_MD}]({OVERFLOW_DIR}/{OVERFLOW_MD})._", ""]
    return "\n".join(lines)


def render_overflow(entry: KnowledgeEntry) -> str:
    lines = [f"# {entry.name}: overflow", ""]
    for section in Section:
        records = [r for r in entry.overflow if r.section == section]
        if not records:
            continue
        lines += [f"## {section.title}", ""]
        for record in records:
            lines += _RENDERERS[section](record)
        if lines[-1] != "":
            lines.append("")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class MarkdownKnowledgeBase:
    """KnowledgeBase backed by a directory tree of YAML and Markdown files."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).expanduser()
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, name: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(name, threading.Lock())

    def path_for(self, name: str) -> Path:
        if not _VALID_NAME.match(name):
            raise ValueError(f"Invalid entry name: {name!r}")
        return self.root / name

    def exists(self, name: str) -> bool:
        return _VALID_NAME.match(name) is not None and (self.path_for(name) / ENTRY_FILE).exists()

    def get(self, name: str) -> KnowledgeEntry | None:
        if not self.exists(name):
            return None
        base = self.path_for(name)
        data = yaml.safe_load((base / ENTRY_FILE).read_text(encoding="utf-8")) or {}
        overflow_path = base / OVERFLOW_DIR / OVERFLOW_YAML
        overflow = None
        if overflow_path.exists():
            overflow = (yaml.safe_load(overflow_path.read_text(encoding="utf-8")) or {}).get("records")
        return entry_from_dict(data, overflow)

    def put(self, entry: KnowledgeEntry) -> None:
        base = self.path_for(entry.name)
        with self._lock_for(entry.name):
            if entry.overflow:
                _write(
                    base / OVERFLOW_DIR / OVERFLOW_YAML,
                    _dump({"entry": entry.name, "records": [record_to_dict(r) for r in entry.overflow]}),
                )
                _write(base / OVERFLOW_DIR / OVERFLOW_MD, render_overflow(entry))
            _write(base / SKILL_FILE, render_skill(entry))
            # entry.yaml last: an entry exists once its canonical file does
            _write(base / ENTRY_FILE, _dump(entry_to_dict(entry)))
        logger.debug("store.put", entry=entry.name, path=str(base), records=entry.count())

    def create(self, name: str, description: str = "", keywords: list[str] | None = None) -> KnowledgeEntry:
        existing = self.get(name)
        if existing is not None:
            return existing
        now = datetime.now(UTC)
        entry = KnowledgeEntry(
            name=name,
            description=description,
            keywords=list(keywords or []),
            created_at=now,
            updated_at=now,
        )
        self.put(entry)
        return entry

    def list_entries(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(p.parent.name for p in self.root.glob(f"*/{ENTRY_FILE}"))

    def get_overflow(self, name: str) -> list[Record]:
        entry = self.get(name)
        if entry is None:
            raise EntryNotFound(name)
        return entry.overflow
