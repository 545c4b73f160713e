"""Tests for the Merger: duplicates, supersession, conflicts, idempotence."""

from __future__ import annotations

from conftest import dated, src

from skillsmith.core.models import (
    ChangeKind,
    Constraint,
    DecisionRule,
    KnowledgeEntry,
    Pattern,
    RecordStatus,
    Reference,
)
from skillsmith.merge import Merger, has_setup_lines


def pattern(code: str, title: str = "Example", when=None, document: str = "a.md") -> Pattern:
    return Pattern(
        id=Pattern.make_id(code), title=title, code=code, min_version="iOS 17+",
        sources=[src(document=document, when=when)],
    )


def constraint(polarity: str, text: str, when=None, document: str = "a.md", subject: str = "x") -> Constraint:
    return Constraint(
        id=Constraint.make_id(subject, polarity, text), subject=subject, polarity=polarity, text=text,
        min_version="iOS 17+", sources=[src(document=document, when=when)],
    )


def rule(condition: str, outcome: str, when=None, document: str = "a.md") -> DecisionRule:
    return DecisionRule(
        id=DecisionRule.make_id(condition, outcome), condition=condition, outcome=outcome,
        min_version="iOS 17+", sources=[src(document=document, when=when)],
    )


def kinds(result) -> list[ChangeKind]:
    return [c.kind for c in result.changes]


class TestPatterns:
    def test_new_pattern_accepted(self):
        result = Merger().merge(KnowledgeEntry(name="e"), [pattern("import X\nfoo()")])
        p = result.entry.patterns[0]
        assert p.status == RecordStatus.ACCEPTED
        assert p.added_at is not None
        assert result.changed

    def test_whitespace_duplicate_discarded_and_cited(self):
        first = Merger().merge(KnowledgeEntry(name="e"), [pattern("import X\nfoo()", document="a.md")])
        second = Merger().merge(first.entry, [pattern("import X\n\n   foo()  \n", document="b.md")])
        assert len(second.entry.patterns) == 1
        assert [s.document for s in second.entry.patterns[0].sources] == ["a.md", "b.md"]
        assert ChangeKind.DUPLICATE in kinds(second)

    def test_same_title_newer_code_deprecates_old(self):
        first = Merger().merge(KnowledgeEntry(name="e"), [pattern("import X\nold()", "Fetch", dated(2024))])
        second = Merger().merge(first.entry, [pattern("import X\nnew()", "Fetch", dated(2025))])
        old, new = second.entry.patterns
        assert old.status == RecordStatus.DEPRECATED
        assert new.status == RecordStatus.ACCEPTED
        assert ChangeKind.DEPRECATED in kinds(second)

    def test_same_title_older_code_arrives_deprecated(self):
        first = Merger().merge(KnowledgeEntry(name="e"), [pattern("import X\nnew()", "Fetch", dated(2025))])
        second = Merger().merge(first.entry, [pattern("import X\nold()", "Fetch", dated(2024))])
        current, late = second.entry.patterns
        assert current.status == RecordStatus.ACCEPTED
        assert late.status == RecordStatus.DEPRECATED

    def test_missing_setup_lines_flagged_for_review(self):
        result = Merger().merge(KnowledgeEntry(name="e"), [pattern("foo()")])
        assert any("import or setup" in c.detail for c in result.changes if c.kind == ChangeKind.REVIEW)

    def test_has_setup_lines(self):
        assert has_setup_lines("import SwiftUI\nText(\"x\")")
        assert has_setup_lines("from x import y")
        assert not has_setup_lines("Text(\"x\")")


class TestConstraints:
    def test_newer_contradiction_supersedes_older(self):
        records = [
            constraint("avoid", "Never use x", dated(2025), "b.md"),
            constraint("do", "Use x", dated(2024), "a.md"),
        ]
        result = Merger().merge(KnowledgeEntry(name="e"), records)
        by_polarity = {c.polarity: c for c in result.entry.constraints}
        assert by_polarity["do"].status == RecordStatus.SUPERSEDED
        assert by_polarity["avoid"].status == RecordStatus.ACCEPTED
        assert len(result.entry.constraints) == 2

    def test_older_contradiction_arrives_superseded(self):
        first = Merger().merge(KnowledgeEntry(name="e"), [constraint("avoid", "Never use x", dated(2025))])
        second = Merger().merge(first.entry, [constraint("do", "Use x", dated(2024), "old.md")])
        by_polarity = {c.polarity: c for c in second.entry.constraints}
        assert by_polarity["avoid"].status == RecordStatus.ACCEPTED
        assert by_polarity["do"].status == RecordStatus.SUPERSEDED

    def test_same_date_contradiction_conflicts(self):
        records = [
            constraint("do", "Use x", dated(2024), "a.md"),
            constraint("avoid", "Never use x", dated(2024), "b.md"),
        ]
        result = Merger().merge(KnowledgeEntry(name="e"), records)
        assert {c.status for c in result.entry.constraints} == {RecordStatus.CONFLICTED}
        assert ChangeKind.CONFLICTED in kinds(result)

    def test_same_polarity_different_subject_both_kept(self):
        records = [
            constraint("avoid", "Never use x", subject="x"),
            constraint("avoid", "Never use y", subject="y"),
        ]
        result = Merger().merge(KnowledgeEntry(name="e"), records)
        assert all(c.status == RecordStatus.ACCEPTED for c in result.entry.constraints)


class TestDecisionRules:
    def test_appended(self):
        result = Merger().merge(KnowledgeEntry(name="e"), [rule("you need undo", "enable undo")])
        assert result.entry.decision_rules[0].status == RecordStatus.ACCEPTED

    def test_same_condition_same_outcome_is_duplicate(self):
        first = Merger().merge(KnowledgeEntry(name="e"), [rule("you need undo", "enable undo")])
        second = Merger().merge(first.entry, [rule("You need undo", "Enable undo.", document="b.md")])
        assert len(second.entry.decision_rules) == 1
        assert kinds(second) == [ChangeKind.DUPLICATE]

    def test_same_condition_different_outcome_conflicts(self):
        first = Merger().merge(KnowledgeEntry(name="e"), [rule("you need undo", "enable undo", dated(2024))])
        second = Merger().merge(first.entry, [rule("you need undo", "use a custom stack", dated(2025))])
        statuses = [r.status for r in second.entry.decision_rules]
        assert statuses == [RecordStatus.CONFLICTED, RecordStatus.CONFLICTED]
        assert second.counts["conflicted"] == 2


class TestReferences:
    def test_deduplicated_by_target(self):
        a = Reference(id=Reference.make_id("https://x.dev/docs"), title="Docs", target="https://x.dev/docs",
                      sources=[src(document="a.md")])
        b = Reference(id=Reference.make_id("https://x.dev/docs/"), title="X docs", target="https://x.dev/docs/",
                      sources=[src(document="b.md")])
        result = Merger().merge(KnowledgeEntry(name="e"), [a, b])
        assert len(result.entry.references) == 1
        assert len(result.entry.references[0].sources) == 2


class TestMergeBehaviour:
    def test_input_entry_not_mutated(self):
        entry = KnowledgeEntry(name="e")
        Merger().merge(entry, [pattern("import X\nfoo()")])
        assert entry.patterns == []

    def test_idempotent(self):
        records = lambda: [pattern("import X\nfoo()"), constraint("do", "Use x"), rule("a", "b")]  # noqa: E731
        first = Merger().merge(KnowledgeEntry(name="e"), records())
        second = Merger().merge(first.entry, records())
        assert not second.changed
        assert second.entry.count() == first.entry.count()
        assert set(kinds(second)) == {ChangeKind.DUPLICATE}

    def test_unversioned_record_flagged_for_review(self):
        c = constraint("do", "Use x")
        c.min_version = "unspecified"
        result = Merger().merge(KnowledgeEntry(name="e"), [c])
        assert any("no version annotation" in ch.detail for ch in result.changes)

    def test_changes_carry_record_ids(self):
        p = pattern("import X\nfoo()")
        result = Merger().merge(KnowledgeEntry(name="e"), [p])
        assert result.changes[0].record_id == p.id
        assert result.changes[0].entry == "e"

    def test_clock_sets_added_at(self):
        result = Merger(clock=lambda: dated(2030)).merge(KnowledgeEntry(name="e"), [pattern("import X\nf()")])
        assert result.entry.patterns[0].added_at == dated(2030)
        assert result.entry.updated_at == dated(2030)
