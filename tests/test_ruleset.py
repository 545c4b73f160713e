"""Tests for the classification Ruleset."""

from __future__ import annotations

import pytest
import yaml

from skillsmith.classify import ClassificationRule, Ruleset
from skillsmith.errors import RulesetError


class TestClassificationRule:
    def test_build_normalizes_keywords(self):
        rule = ClassificationRule.build("c", ["@MainActor", ".task", "  Liquid   Glass "])
        assert rule.keywords == frozenset({"mainactor", "task", "liquid glass"})

    def test_rule_needs_entry(self):
        with pytest.raises(RulesetError):
            ClassificationRule.build("", ["x"])

    def test_rule_needs_keywords(self):
        with pytest.raises(RulesetError):
            ClassificationRule.build("e", [])

    def test_rule_weight_positive(self):
        with pytest.raises(RulesetError):
            ClassificationRule.build("e", ["x"], weight=0)


class TestRuleset:
    def test_threshold_bounds(self):
        with pytest.raises(RulesetError):
            Ruleset(threshold=0)
        with pytest.raises(RulesetError):
            Ruleset(threshold=1.5)

    def test_with_rule_bumps_version_and_is_immutable(self, ruleset):
        updated = ruleset.with_rule(ClassificationRule.build("charts", ["charts"]))
        assert updated.version == ruleset.version + 1
        assert "charts" in updated.entries
        assert "charts" not in ruleset.entries

    def test_entries_in_first_appearance_order(self, ruleset):
        assert ruleset.entries == ["swiftdata", "concurrency"]

    def test_signature_unions_rules(self):
        rs = Ruleset(rules=(
            ClassificationRule.build("sd", ["swiftdata"]),
            ClassificationRule.build("sd", ["query"]),
        ))
        assert rs.signature("sd") == frozenset({"swiftdata", "query"})

    def test_dump_and_load(self, ruleset, tmp_path):
        path = ruleset.dump(tmp_path / "rs.yaml")
        loaded = Ruleset.load(path)
        assert loaded == ruleset

    def test_dump_is_plain_yaml(self, ruleset, tmp_path):
        data = yaml.safe_load(ruleset.dump(tmp_path / "rs.yaml").read_text())
        assert data["version"] == 1
        assert data["rules"][0]["entry"] == "swiftdata"

    def test_from_dict_accepts_single_keyword_string(self):
        rs = Ruleset.from_dict({"rules": [{"entry": "e", "keywords": "WidgetKit"}]})
        assert rs.rules[0].keywords == frozenset({"widgetkit"})

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(RulesetError, match="not found"):
            Ruleset.load(tmp_path / "nope.yaml")

    def test_load_bad_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("rules: [\n")
        with pytest.raises(RulesetError):
            Ruleset.load(path)

    def test_rules_must_be_list(self):
        with pytest.raises(RulesetError):
            Ruleset.from_dict({"rules": {"entry": "e"}})
