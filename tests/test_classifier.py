"""Tests for keyword extraction and the Classifier."""

from __future__ import annotations

from conftest import doc

from skillsmith.classify import ClassificationRule, Classifier, Ruleset, extract_keywords, top_keywords


class TestExtractKeywords:
    def test_import_names(self):
        assert "swiftdata" in extract_keywords("import SwiftData\n")

    def test_call_shaped_tokens(self):
        kws = extract_keywords("view.task(priority: .high) { }\nwithAnimation(.spring) { }")
        assert "task" in kws
        assert "withanimation" in kws

    def test_attributes(self):
        assert "observable" in extract_keywords("@Observable final class Model {}")

    def test_camel_case(self):
        assert "navigationstack" in extract_keywords("Wrap it in a NavigationStack.")

    def test_capitalized_phrase(self):
        assert "liquid glass" in extract_keywords("The new Liquid Glass material is translucent.")

    def test_phrases_not_taken_from_code(self):
        text = "```swift\n// Liquid Glass\n```\n"
        assert "liquid glass" not in extract_keywords(text)

    def test_stop_words_removed(self):
        assert "print" not in extract_keywords('print("hello")')

    def test_plain_words_only_on_request(self):
        assert "timeline" not in extract_keywords("the timeline refreshes")
        assert "timeline" in extract_keywords("the timeline refreshes", include_words=True)

    def test_empty_text(self):
        assert extract_keywords("") == set()

    def test_top_keywords_ranks_by_frequency(self):
        text = "import Charts\nBarMark(x: 1)\nBarMark(x: 2)\nBarMark(x: 3)\n"
        assert top_keywords(text)[0] == "barmark"


class TestClassifier:
    def test_single_match(self, ruleset):
        d = doc("sd.md", "import SwiftData\n@Query var items: [Item]\nmodelContext.insert(item)\n")
        result = Classifier(ruleset).classify(d)
        assert result.entries == ["swiftdata"]
        assert result.matches[0].score == 1.0
        assert not result.unmapped

    def test_cross_cutting_document_maps_to_all_above_threshold(self, ruleset):
        d = doc("x.md", "import SwiftData\n@MainActor\nTask(priority: .high) { }\n")
        result = Classifier(ruleset).classify(d)
        assert result.entries == ["concurrency", "swiftdata"]
        assert result.matches[0].score > result.matches[1].score

    def test_ties_sorted_by_entry_name(self):
        rs = Ruleset(rules=(
            ClassificationRule.build("beta", ["widgetkit"]),
            ClassificationRule.build("alpha", ["widgetkit"]),
        ))
        result = Classifier(rs).classify(doc("w.md", "import WidgetKit\n"))
        assert result.entries == ["alpha", "beta"]

    def test_rules_for_same_entry_combine_by_max(self):
        rs = Ruleset(rules=(
            ClassificationRule.build("sd", ["swiftdata"]),
            ClassificationRule.build("sd", ["modelcontext", "query", "schema"]),
        ))
        result = Classifier(rs).classify(doc("sd.md", "import SwiftData\n"))
        assert result.matches[0].score == 1.0

    def test_weight_scales_score(self):
        rs = Ruleset(rules=(ClassificationRule.build("sd", ["swiftdata"], weight=0.5),), threshold=0.4)
        result = Classifier(rs).classify(doc("sd.md", "import SwiftData\n"))
        assert result.matches[0].score == 0.5

    def test_no_keywords_is_unmapped(self, ruleset):
        result = Classifier(ruleset).classify(doc("p.md", "just some words here\n"))
        assert result.unmapped
        assert result.explanation == "no extractable keywords"

    def test_no_overlap_is_unmapped(self, ruleset):
        result = Classifier(ruleset).classify(doc("c.md", "import Charts\n"))
        assert result.unmapped
        assert "none of 1 keywords" in result.explanation

    def test_below_threshold_explains_nearest(self):
        rs = Ruleset(
            rules=(ClassificationRule.build("swiftdata", ["swiftdata", "modelcontext", "query"]),),
            threshold=0.5,
        )
        result = Classifier(rs).classify(doc("sd.md", "import SwiftData\n"))
        assert result.unmapped
        assert "'swiftdata' scored 0.33" in result.explanation

    def test_pure(self, ruleset):
        d = doc("sd.md", "import SwiftData\n")
        c = Classifier(ruleset)
        assert c.classify(d).matches == c.classify(d).matches

    def test_result_carries_ruleset_version(self, ruleset):
        assert Classifier(ruleset).classify(doc("sd.md", "import SwiftData\n")).ruleset_version == 1

    def test_classify_batch(self, ruleset):
        results = Classifier(ruleset).classify_batch([
            doc("a.md", "import SwiftData\n@Query var x\n"),
            doc("b.md", "nothing\n"),
        ])
        assert [r.unmapped for r in results] == [False, True]
