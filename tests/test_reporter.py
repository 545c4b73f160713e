"""Tests for the Reporter."""

from __future__ import annotations

from skillsmith.core.models import ChangeKind, ChangeReport, EntryAction
from skillsmith.report import Reporter


def sample_report() -> ChangeReport:
    r = ChangeReport(run_id="run1", ruleset_version=3)
    r.append("zeta", ChangeKind.ACCEPTED, "added pattern 'A'", document="z.md")
    r.append("alpha", ChangeKind.SUPERSEDED, "constraint do 'x' superseded", document="a.md")
    r.append("alpha", ChangeKind.ACCEPTED, "added constraint avoid 'x'", document="a.md")
    r.append("alpha", ChangeKind.CONFLICTED, "decision rule 'undo' conflicts", document="a.md")
    r.append("", ChangeKind.UNRESOLVED, "no extractable keywords", document="misc.md")
    r.set_action("zeta", EntryAction.CREATED)
    r.set_action("alpha", EntryAction.UPDATED)
    return r


class TestRender:
    def test_table_sorted_by_entry(self):
        text = Reporter().render(sample_report())
        assert text.index("| alpha | UPDATED |") < text.index("| zeta | CREATED |")

    def test_details_counts(self):
        text = Reporter().render(sample_report())
        assert "| alpha | UPDATED | 1 accepted, 1 superseded, 1 conflicted |" in text

    def test_sections_present_in_order(self):
        text = Reporter().render(sample_report())
        headings = ["## Skill Update Report", "### Deprecations Flagged", "### Conflicts",
                    "### Rejected", "### Needs Review", "### Unresolved"]
        positions = [text.index(h) for h in headings]
        assert positions == sorted(positions)

    def test_empty_sections_render_none(self):
        text = Reporter().render(sample_report())
        rejected = text.split("### Rejected")[1].split("###")[0]
        assert rejected.strip() == "- none"

    def test_unresolved_lists_filename(self):
        text = Reporter().render(sample_report())
        assert "- `misc.md`: no extractable keywords" in text

    def test_deprecations_listed(self):
        text = Reporter().render(sample_report())
        assert "- **alpha**: constraint do 'x' superseded" in text

    def test_deterministic(self):
        assert Reporter().render(sample_report()) == Reporter().render(sample_report())

    def test_no_change_entry(self):
        r = ChangeReport()
        r.set_action("alpha", EntryAction.NONE)
        assert "| alpha | NONE | no changes |" in Reporter().render(r)

    def test_pipe_escaped(self):
        r = ChangeReport()
        r.append("alpha", ChangeKind.REVIEW, "a | b")
        r.set_action("alpha", EntryAction.UPDATED)
        assert "a | b" in Reporter().render(r)
        assert "| alpha | UPDATED | 1 review |" in Reporter().render(r)


class TestRenderJson:
    def test_shape(self):
        data = Reporter().render_json(sample_report())
        assert data["run_id"] == "run1"
        assert data["ruleset_version"] == 3
        assert [e["entry"] for e in data["entries"]] == ["alpha", "zeta"]
        assert data["unresolved"] == ["misc.md"]
        assert data["changes"][0]["entry"] == ""
        assert {c["kind"] for c in data["changes"]} >= {"accepted", "superseded", "conflicted"}
