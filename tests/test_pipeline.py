"""End-to-end tests for IngestionPipeline."""

from __future__ import annotations

import logging

import pytest
from conftest import dated, doc, src

from skillsmith.classify import ClassificationRule, Ruleset
from skillsmith.config import SkillsmithConfig
from skillsmith.core.models import (
    ChangeKind,
    Constraint,
    EntryAction,
    IncomingDocument,
    KnowledgeEntry,
    Pattern,
    RecordStatus,
    Section,
)
from skillsmith.extract import Extraction, Extractor
from skillsmith.pipeline import IngestionPipeline, slugify
from skillsmith.report import Reporter
from skillsmith.store import InMemoryKnowledgeBase, MarkdownKnowledgeBase

WIDGET_PATTERN = """\
# Timelines

Provide entries from a timeline provider (iOS 17+):

```swift
import WidgetKit

struct Provider: TimelineProvider { }
```
"""


@pytest.fixture
def config(tmp_path) -> SkillsmithConfig:
    return SkillsmithConfig(
        kb_dir=tmp_path / "kb",
        ruleset_path=tmp_path / "ruleset.yaml",
        threshold=None,
        section_ceiling=25,
        max_workers=4,
    )


@pytest.fixture
def widget_rules() -> Ruleset:
    return Ruleset(rules=(ClassificationRule.build("alpha", ["widgetkit"]),), threshold=0.5)


def test_slugify():
    assert slugify("Charts Intro (draft).md") == "charts-intro-draft"
    assert slugify("!!!.md") == "untitled"


class TestScenarios:
    def test_reingest_adds_no_duplicate_patterns(self, widget_rules, config):
        kb = InMemoryKnowledgeBase()
        pipeline = IngestionPipeline(kb, widget_rules, config)
        first = pipeline.run([doc("w.md", WIDGET_PATTERN)])
        second = pipeline.run([doc("w.md", WIDGET_PATTERN)])
        assert first.report.actions["alpha"] == EntryAction.CREATED
        assert second.report.actions["alpha"] == EntryAction.NONE
        assert len(kb.get("alpha").patterns) == 1

    def test_later_contradiction_supersedes(self, widget_rules, config):
        kb = InMemoryKnowledgeBase()
        older = doc("a.md", "# Widgets\n\nUse `TimelineProvider` for WidgetKit refreshes (iOS 17+).\n", dated(2024, 1))
        newer = doc("b.md", "# Widgets\n\nNever use `TimelineProvider` for WidgetKit refreshes (iOS 18+).\n", dated(2024, 6))
        result = IngestionPipeline(kb, widget_rules, config).run([newer, older])
        constraints = kb.get("alpha").constraints
        assert len(constraints) == 2
        by_doc = {c.sources[0].document: c for c in constraints}
        assert by_doc["a.md"].status == RecordStatus.SUPERSEDED
        assert by_doc["b.md"].status == RecordStatus.ACCEPTED
        assert result.report.of_kind(ChangeKind.SUPERSEDED)

    def test_unmatched_document_listed_as_unresolved(self, widget_rules, config):
        result = IngestionPipeline(InMemoryKnowledgeBase(), widget_rules, config).run(
            [doc("misc.md", "# Misc\n\nimport Charts\n")]
        )
        assert result.report.unresolved == ["misc.md"]
        assert "`misc.md`" in Reporter().render(result.report)

    def test_prose_only_document_leaves_entry_unchanged(self, widget_rules, config):
        kb = InMemoryKnowledgeBase()
        kb.create("alpha")
        before = kb.get("alpha")
        result = IngestionPipeline(kb, widget_rules, config).run(
            [doc("p.md", "# WidgetKit notes\n\nWidgetKit timelines are nice.\n")]
        )
        assert result.report.actions["alpha"] == EntryAction.NONE
        assert "| alpha | NONE |" in Reporter().render(result.report)
        assert kb.get("alpha") == before

    def test_pattern_at_ceiling_demotes_oldest(self, config):
        config.section_ceiling = 2
        kb = InMemoryKnowledgeBase()
        beta = KnowledgeEntry(name="beta")
        for n in (1, 2):
            code = f"import SwiftUI\nlet old{n} = {n}"
            beta.add(Pattern(
                id=Pattern.make_id(code), title=f"Old {n}", code=code, min_version="iOS 16+",
                sources=[src(document=f"old{n}.md", when=dated(2023, n))],
                status=RecordStatus.ACCEPTED, added_at=dated(2023, n),
            ))
        kb.put(beta)

        new = doc("fresh.md", "# Fresh\n\n```swift\nimport SwiftUI\nlet fresh = 1\n```\n")
        result = IngestionPipeline(kb, Ruleset(), config).run([new], assignments={"fresh.md": "beta"})

        stored = kb.get("beta")
        assert len(stored.patterns) == 2
        assert [p.title for p in kb.get_overflow("beta")] == ["Old 1"]
        assert result.report.actions["beta"] == EntryAction.UPDATED
        assert result.report.of_kind(ChangeKind.OVERFLOW)

    def test_incomplete_records_rejected_and_reported(self, widget_rules, config):
        bad = Constraint(id="con-bad", subject="x", polarity="avoid", text="Never use x", min_version="")
        good = Constraint(id="con-good", subject="y", polarity="do", text="Use y",
                          min_version="iOS 17+", sources=[src(document="w.md")])

        class StubExtractor(Extractor):
            def extract(self, document: IncomingDocument, entry: str) -> Extraction:
                return Extraction(document=document, entry=entry, constraints=[bad, good])

        kb = InMemoryKnowledgeBase()
        result = IngestionPipeline(kb, widget_rules, config, extractor=StubExtractor()).run(
            [doc("w.md", "import WidgetKit\n")]
        )
        assert [c.record_id for c in result.report.rejected] == ["con-bad"]
        stored = kb.get("alpha")
        assert stored.find("con-bad") is None
        assert stored.find("con-good") is not None
        assert not [c for c in result.report.of_kind(ChangeKind.ACCEPTED) if c.record_id == "con-bad"]
        assert "missing min_version, sources" in Reporter().render(result.report)

    def test_sections_ordered_after_write(self, widget_rules, config, tmp_path):
        kb = MarkdownKnowledgeBase(tmp_path / "kb")
        text = WIDGET_PATTERN + "\nNever use `TimelineEntry` without a date.\n\nIf the widget is static, then use `StaticConfiguration`.\n\n[Docs](https://developer.apple.com/widgetkit)\n"
        IngestionPipeline(kb, widget_rules, config).run([doc("w.md", text)])
        entry = kb.get("alpha")
        assert [s for s, _ in entry.sections()] == [
            Section.CONSTRAINTS, Section.DECISION_RULES, Section.PATTERNS, Section.REFERENCES,
        ]
        assert all(records for _, records in entry.sections())
        skill = (tmp_path / "kb" / "alpha" / "SKILL.md").read_text()
        positions = [skill.index(f"## {s.title}") for s, _ in entry.sections()]
        assert positions == sorted(positions)


class TestRouting:
    def test_assignment_overrides_classification(self, widget_rules, config):
        kb = InMemoryKnowledgeBase()
        result = IngestionPipeline(kb, widget_rules, config).run(
            [doc("misc.md", "# Misc\n\nNever use `Foo` (iOS 17+).\n")], assignments={"misc.md": "gamma"},
        )
        assert result.report.actions == {"gamma": EntryAction.CREATED}
        assert kb.exists("gamma")

    def test_create_unmapped_adds_entry_and_rule(self, widget_rules, config):
        kb = InMemoryKnowledgeBase()
        text = "# Charts\n\n```swift\nimport Charts\nBarMark(x: .value(\"Day\", day))\n```\n"
        result = IngestionPipeline(kb, widget_rules, config).run(
            [doc("Charts Intro.md", text)], create_unmapped=True,
        )
        assert result.report.actions == {"charts-intro": EntryAction.CREATED}
        assert result.ruleset.version == widget_rules.version + 1
        assert "charts-intro" in result.ruleset.entries
        assert result.report.ruleset_version == result.ruleset.version
        assert "charts" in kb.get("charts-intro").keywords

    def test_document_mapped_to_several_entries(self, config):
        rules = Ruleset(rules=(
            ClassificationRule.build("alpha", ["widgetkit"]),
            ClassificationRule.build("beta", ["swiftui"]),
        ))
        kb = InMemoryKnowledgeBase()
        result = IngestionPipeline(kb, rules, config).run(
            [doc("x.md", "# X\n\n```swift\nimport SwiftUI\nimport WidgetKit\n```\n")]
        )
        assert result.report.actions == {"alpha": EntryAction.CREATED, "beta": EntryAction.CREATED}
        assert len(kb.get("alpha").patterns) == len(kb.get("beta").patterns) == 1

    def test_malformed_document_skipped(self, widget_rules, config):
        result = IngestionPipeline(InMemoryKnowledgeBase(), widget_rules, config).run(
            [doc("empty.md", "   \n"), doc("w.md", WIDGET_PATTERN)]
        )
        assert result.report.unresolved == ["empty.md"]
        assert result.report.actions["alpha"] == EntryAction.CREATED

    def test_failing_entry_does_not_abort_batch(self, widget_rules, config, tmp_path):
        kb = MarkdownKnowledgeBase(tmp_path / "kb")
        result = IngestionPipeline(kb, widget_rules, config).run(
            [doc("w.md", WIDGET_PATTERN), doc("bad.md", "# Bad\n\nNever use `Foo`.\n")],
            assignments={"bad.md": "Not A Slug"},
        )
        assert result.report.actions["alpha"] == EntryAction.CREATED
        assert result.report.actions["Not A Slug"] == EntryAction.NONE
        errors = result.report.of_kind(ChangeKind.ERROR)
        assert errors and errors[0].entry == "Not A Slug"

    def test_config_threshold_overrides_ruleset(self, config):
        config.threshold = 0.9
        rules = Ruleset(rules=(ClassificationRule.build("alpha", ["widgetkit", "timelineprovider", "x1"]),))
        result = IngestionPipeline(InMemoryKnowledgeBase(), rules, config).run([doc("w.md", WIDGET_PATTERN)])
        assert result.report.unresolved == ["w.md"]

    def test_unversioned_records_flagged_for_review(self, widget_rules, config):
        result = IngestionPipeline(InMemoryKnowledgeBase(), widget_rules, config).run(
            [doc("w.md", "# WidgetKit\n\nNever use `Timer` in widgets.\n")]
        )
        reviews = result.report.of_kind(ChangeKind.REVIEW)
        assert any("no version annotation" in c.detail for c in reviews)
        assert result.report.actions["alpha"] == EntryAction.CREATED

    def test_shared_version_tag_does_not_link_subjects(self, config):
        kb = InMemoryKnowledgeBase()
        fan_out = doc("a.md", "# Tasks\n\nAlways use task groups for fan-out work (iOS 17+).\n", dated(2024, 1))
        detached = doc("b.md", "# Tasks\n\nNever use detached tasks inside views (iOS 17+).\n", dated(2024, 6))
        result = IngestionPipeline(kb, Ruleset(), config).run(
            [fan_out, detached], assignments={"a.md": "tasks", "b.md": "tasks"},
        )
        constraints = kb.get("tasks").constraints
        assert sorted(c.subject for c in constraints) == ["detached tasks", "task groups"]
        assert [c.status for c in constraints] == [RecordStatus.ACCEPTED, RecordStatus.ACCEPTED]
        assert not result.report.of_kind(ChangeKind.SUPERSEDED)

    def test_always_then_never_in_plain_prose_supersedes(self, config):
        kb = InMemoryKnowledgeBase()
        older = doc("a.md", "# Tasks\n\nAlways use async let for parallel work (iOS 17+).\n", dated(2024, 1))
        newer = doc("b.md", "# Tasks\n\nNever use async let for parallel work (iOS 18+).\n", dated(2024, 6))
        IngestionPipeline(kb, Ruleset(), config).run(
            [older, newer], assignments={"a.md": "tasks", "b.md": "tasks"},
        )
        by_doc = {c.sources[0].document: c for c in kb.get("tasks").constraints}
        assert by_doc["a.md"].status == RecordStatus.SUPERSEDED
        assert by_doc["b.md"].status == RecordStatus.ACCEPTED

    def test_incomplete_stored_record_moves_to_overflow(self, config):
        kb = InMemoryKnowledgeBase()
        beta = KnowledgeEntry(name="beta")
        beta.add(Constraint(id="con-bad", subject="x", polarity="avoid", text="Never use x", min_version=""))
        kb.put(beta)

        result = IngestionPipeline(kb, Ruleset(), config).run(
            [doc("t.md", "# Tips\n\nNever use `Foo` (iOS 17+).\n")], assignments={"t.md": "beta"},
        )
        stored = kb.get("beta")
        assert [c.subject for c in stored.constraints] == ["foo"]
        overflow = kb.get_overflow("beta")
        assert [r.id for r in overflow] == ["con-bad"]
        assert overflow[0].status == RecordStatus.REJECTED
        assert [c.record_id for c in result.report.rejected] == ["con-bad"]
        assert result.report.actions["beta"] == EntryAction.UPDATED

    def test_document_without_records_is_logged(self, widget_rules, config, caplog):
        with caplog.at_level(logging.INFO, logger="skillsmith.pipeline"):
            IngestionPipeline(InMemoryKnowledgeBase(), widget_rules, config).run(
                [doc("p.md", "# WidgetKit notes\n\nWidgetKit timelines are nice.\n")]
            )
        assert "document.no_records" in caplog.messages
