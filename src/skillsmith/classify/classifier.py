"""Classifier: map an incoming document to knowledge-base entries.

Pure function over (ruleset, document). For each rule the score is

    weight * |K_doc & K_rule| / |K_rule|

which is the Jaccard overlap normalized by the signature, so a long
document is not penalized for mentioning other topics. Rules pointing at
the same entry combine by max. Every entry at or above the threshold is
returned: cross-cutting documents map to several entries.
"""

from __future__ import annotations

from dataclasses import dataclass

from skillsmith.classify.keywords import extract_keywords
from skillsmith.classify.ruleset import Ruleset
from skillsmith.core.models import ClassificationResult, EntryMatch, IncomingDocument
from skillsmith.observability import emit
from skillsmith.observability.events import DocumentClassified, DocumentUnresolved


@dataclass
class Classifier:
    """Keyword-signature classifier driven by an explicit Ruleset."""

    ruleset: Ruleset

    def keywords(self, document: IncomingDocument) -> frozenset[str]:
        return frozenset(extract_keywords(document.text, include_words=self.ruleset.include_words))

    def score(self, doc_keywords: frozenset[str]) -> dict[str, EntryMatch]:
        """Best-scoring match per entry, above threshold or not."""
        best: dict[str, EntryMatch] = {}
        for rule in self.ruleset.rules:
            hits = doc_keywords & rule.keywords
            if not hits:
                continue
            score = rule.weight * len(hits) / len(rule.keywords)
            current = best.get(rule.entry)
            if current is None or score > current.score:
                best[rule.entry] = EntryMatch(
                    entry=rule.entry,
                    score=round(score, 4),
                    matched_keywords=tuple(sorted(hits)),
                )
        return best

    def classify(self, document: IncomingDocument) -> ClassificationResult:
        doc_keywords = self.keywords(document)
        version = self.ruleset.version

        if not doc_keywords:
            result = ClassificationResult(
                document=document,
                keywords=doc_keywords,
                explanation="no extractable keywords",
                ruleset_version=version,
            )
            emit(DocumentUnresolved(
                document=document.filename, keyword_count=0, reason=result.explanation,
            ))
            return result

        scored = self.score(doc_keywords)
        threshold = self.ruleset.threshold
        matches = sorted(
            (m for m in scored.values() if m.score >= threshold),
            key=lambda m: (-m.score, m.entry),
        )

        if not matches:
            if scored:
                nearest = max(scored.values(), key=lambda m: (m.score, m.entry))
                explanation = (
                    f"best match {nearest.entry!r} scored {nearest.score:.2f} "
                    f"(threshold {threshold:.2f})"
                )
            else:
                explanation = f"none of {len(doc_keywords)} keywords match any signature"
            emit(DocumentUnresolved(
                document=document.filename,
                keyword_count=len(doc_keywords),
                reason=explanation,
            ))
            return ClassificationResult(
                document=document,
                keywords=doc_keywords,
                explanation=explanation,
                ruleset_version=version,
            )

        explanation = "; ".join(
            f"{m.entry} {m.score:.2f} via {', '.join(m.matched_keywords)}" for m in matches
        )
        emit(DocumentClassified(
            document=document.filename,
            entries=tuple(m.entry for m in matches),
            top_score=matches[0].score,
            keyword_count=len(doc_keywords),
            ruleset_version=version,
        ))
        return ClassificationResult(
            document=document,
            matches=matches,
            keywords=doc_keywords,
            explanation=explanation,
            ruleset_version=version,
        )

    def classify_batch(self, documents: list[IncomingDocument]) -> list[ClassificationResult]:
        return [self.classify(d) for d in documents]
