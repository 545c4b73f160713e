"""Classification ruleset: explicit, versioned topic signatures.

A ruleset is an ordered list of (keyword-set, entry, weight) rules plus a
threshold. It is plain configuration data passed into the Classifier, so a
classification run is reproducible from the ruleset file alone.

YAML shape:

    version: 3
    threshold: 0.25
    include_words: false
    rules:
      - entry: swiftdata
        weight: 1.0
        keywords: [swiftdata, modelcontainer, "@model", query]
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from skillsmith.errors import RulesetError

DEFAULT_THRESHOLD = 0.25


def _normalize_keyword(keyword: str) -> str:
    return " ".join(str(keyword).lower().lstrip("@.").split())


@dataclass(frozen=True)
class ClassificationRule:
    """One topic signature pointing at an entry."""

    entry: str
    keywords: frozenset[str]
    weight: float = 1.0

    def __post_init__(self) -> None:
        if not self.entry:
            raise RulesetError("Classification rule must name an entry")
        if not self.keywords:
            raise RulesetError(f"Classification rule for {self.entry!r} has no keywords")
        if self.weight <= 0:
            raise RulesetError(f"Classification rule for {self.entry!r} has non-positive weight")

    @classmethod
    def build(cls, entry: str, keywords: list[str] | set[str], weight: float = 1.0) -> ClassificationRule:
        normalized = frozenset(k for k in (_normalize_keyword(k) for k in keywords) if k)
        return cls(entry=entry, keywords=normalized, weight=float(weight))

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry": self.entry,
            "weight": self.weight,
            "keywords": sorted(self.keywords),
        }


@dataclass(frozen=True)
class Ruleset:
    """Ordered classification rules with a version and a threshold."""

    rules: tuple[ClassificationRule, ...] = ()
    version: int = 1
    threshold: float = DEFAULT_THRESHOLD
    include_words: bool = False

    def __post_init__(self) -> None:
        if not 0.0 < self.threshold <= 1.0:
            raise RulesetError(f"Threshold must be in (0, 1], got {self.threshold}")

    @property
    def entries(self) -> list[str]:
        """Entry names in first-appearance order."""
        seen: dict[str, None] = {}
        for rule in self.rules:
            seen.setdefault(rule.entry, None)
        return list(seen)

    def rules_for(self, entry: str) -> list[ClassificationRule]:
        return [r for r in self.rules if r.entry == entry]

    def signature(self, entry: str) -> frozenset[str]:
        """Union of all keywords pointing at an entry."""
        out: set[str] = set()
        for rule in self.rules_for(entry):
            out |= rule.keywords
        return frozenset(out)

    def with_rule(self, rule: ClassificationRule) -> Ruleset:
        """Return a new ruleset with the rule appended and the version bumped."""
        return replace(self, rules=(*self.rules, rule), version=self.version + 1)

    # -- serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "threshold": self.threshold,
            "include_words": self.include_words,
            "rules": [r.to_dict() for r in self.rules],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Ruleset:
        if not isinstance(data, dict):
            raise RulesetError("Ruleset must be a mapping")
        raw_rules = data.get("rules") or []
        if not isinstance(raw_rules, list):
            raise RulesetError("Ruleset 'rules' must be a list")

        rules = []
        for i, raw in enumerate(raw_rules):
            if not isinstance(raw, dict):
                raise RulesetError(f"Rule #{i} must be a mapping")
            keywords = raw.get("keywords") or []
            if isinstance(keywords, str):
                keywords = [keywords]
            rules.append(
                ClassificationRule.build(
                    entry=str(raw.get("entry", "")),
                    keywords=list(keywords),
                    weight=raw.get("weight", 1.0),
                )
            )

        try:
            version = int(data.get("version", 1))
            threshold = float(data.get("threshold", DEFAULT_THRESHOLD))
        except (TypeError, ValueError) as err:
            raise RulesetError(f"Invalid ruleset header: {err}") from err

        return cls(
            rules=tuple(rules),
            version=version,
            threshold=threshold,
            include_words=bool(data.get("include_words", False)),
        )

    @classmethod
    def load(cls, path: Path | str) -> Ruleset:
        """Load a ruleset from a YAML file."""
        path = Path(path).expanduser()
        if not path.exists():
            raise RulesetError(f"Ruleset file not found: {path}")
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as err:
            raise RulesetError(f"Could not parse {path}: {err}") from err
        return cls.from_dict(data)

    def dump(self, path: Path | str) -> Path:
        """Write the ruleset to a YAML file."""
        path = Path(path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )
        return path
