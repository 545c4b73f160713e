"""Reporter: render a run's ChangeReport as Markdown or a dict.

Pure formatting. Output is deterministic for a given report: rows and
list items are ordered by entry name, then by the order the pipeline
recorded them.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from skillsmith.core.models import ChangeKind, ChangeRecord, ChangeReport, EntryAction

# Order of the per-entry counts in the Details column
_DETAIL_KINDS = (
    ChangeKind.ACCEPTED,
    ChangeKind.SUPERSEDED,
    ChangeKind.DEPRECATED,
    ChangeKind.CONFLICTED,
    ChangeKind.DUPLICATE,
    ChangeKind.REJECTED,
    ChangeKind.OVERFLOW,
    ChangeKind.REVIEW,
    ChangeKind.ERROR,
)

_LISTS: tuple[tuple[str, tuple[ChangeKind, ...]], ...] = (
    ("Deprecations Flagged", (ChangeKind.SUPERSEDED, ChangeKind.DEPRECATED)),
    ("Conflicts", (ChangeKind.CONFLICTED,)),
    ("Rejected", (ChangeKind.REJECTED,)),
    ("Needs Review", (ChangeKind.REVIEW, ChangeKind.ERROR)),
)


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def _sorted(changes: list[ChangeRecord]) -> list[ChangeRecord]:
    # sorted() is stable: insertion order survives within an entry
    return sorted(changes, key=lambda c: c.entry)


class Reporter:
    """Render ChangeReports."""

    def details(self, report: ChangeReport, entry: str) -> str:
        counts = Counter(c.kind for c in report.for_entry(entry))
        parts = [f"{counts[k]} {k.value}" for k in _DETAIL_KINDS if counts[k]]
        return ", ".join(parts) if parts else "no changes"

    def render(self, report: ChangeReport) -> str:
        lines = [
            "## Skill Update Report",
            "",
            f"_Ruleset v{report.ruleset_version}_",
            "",
            "| Entry | Action | Details |",
            "|-------|--------|---------|",
        ]
        for entry in sorted(report.actions):
            action = report.actions.get(entry, EntryAction.NONE)
            lines.append(f"| {_cell(entry)} | {action.value} | {_cell(self.details(report, entry))} |")
        if not report.actions:
            lines.append("| - | NONE | no entries touched |")

        for title, kinds in _LISTS:
            lines += ["", f"### {title}", ""]
            items = _sorted([c for c in report.changes if c.kind in kinds])
            if not items:
                lines.append("- none")
            for change in items:
                prefix = "error: " if change.kind == ChangeKind.ERROR else ""
                lines.append(f"- **{change.entry}**: {prefix}{change.detail}")

        lines += ["", "### Unresolved", ""]
        unresolved = report.of_kind(ChangeKind.UNRESOLVED)
        if not unresolved:
            lines.append("- none")
        for change in sorted(unresolved, key=lambda c: c.document or ""):
            lines.append(f"- `{change.document}`: {change.detail}")

        return "\n".join(lines) + "\n"

    def render_json(self, report: ChangeReport) -> dict[str, Any]:
        return {
            "run_id": report.run_id,
            "started_at": report.started_at.isoformat(),
            "ruleset_version": report.ruleset_version,
            "entries": [
                {
                    "entry": entry,
                    "action": report.actions[entry].value,
                    "details": self.details(report, entry),
                }
                for entry in sorted(report.actions)
            ],
            "changes": [
                {
                    "entry": c.entry,
                    "kind": c.kind.value,
                    "detail": c.detail,
                    "document": c.document,
                    "record_id": c.record_id,
                }
                for c in _sorted(report.changes)
            ],
            "unresolved": sorted(report.unresolved),
        }
