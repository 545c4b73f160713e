"""Extractor: pull structured records out of free-form Markdown.

Structural cues only, no LLM:
- fenced code blocks            -> Pattern
- do/don't, never/always,
  "replace X with Y",
  "use Y instead of X"          -> Constraint
- "if/when ..., then ..."       -> DecisionRule
- Markdown links, "Source:" lines -> Reference

Every record is cited with the document filename, the heading path and
the document's upload time. Records with no version annotation nearby get
UNSPECIFIED_VERSION and are flagged for review downstream, never dropped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from skillsmith.core.models import (
    UNSPECIFIED_VERSION,
    Constraint,
    DecisionRule,
    IncomingDocument,
    Pattern,
    Record,
    Reference,
    SourceRef,
)
from skillsmith.extract.markdown import Chunk, CodeBlock, chunk_markdown
from skillsmith.extract.versions import min_version, strip_versions
from skillsmith.observability import emit
from skillsmith.observability.events import RecordsExtracted

# ---------------------------------------------------------------------------
# Phrase patterns
# ---------------------------------------------------------------------------

_BULLET = re.compile(r"^\s*(?:[-*+•]|\d+[.)])\s+")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+(?=[A-Z`@❌✅])")

_DECISION = re.compile(
    r"^(?:if|when)\s+(?P<cond>.+?)\s*(?:→|->|=>|,\s*then\b|:|,)\s*(?P<out>.+)$",
    re.IGNORECASE,
)
_REPLACE = re.compile(r"^(?:replace|migrate(?:\s+from)?)\s+(?P<old>.+?)\s+(?:with|to)\s+(?P<new>.+?)$", re.IGNORECASE)
_INSTEAD = re.compile(
    r"^(?:use|prefer|choose|adopt)\s+(?P<new>.+?)\s+(?:instead\s+of|rather\s+than|over)\s+(?P<old>.+?)$",
    re.IGNORECASE,
)
_AVOID = re.compile(
    r"^(?:❌\s*)?(?:don['’]t|do\s+not|never|avoid|stop)\s+(?:use\s+|using\s+|call\s+|calling\s+)?(?P<subj>.+?)$",
    re.IGNORECASE,
)
_DEPRECATED = re.compile(r"^(?P<subj>.+?)\s+is\s+(?:now\s+)?deprecated\b.*$", re.IGNORECASE)
_DO = re.compile(
    r"^(?:✅\s*)?(?:do|always|prefer|use|must\s+use)\s+(?:use\s+|using\s+|call\s+|calling\s+)?(?P<subj>.+?)$",
    re.IGNORECASE,
)
_MARK_AVOID = re.compile(r"^❌\s*(?P<subj>.+)$")
_MARK_DO = re.compile(r"^✅\s*(?P<subj>.+)$")

_MD_LINK = re.compile(r"\[(?P<title>[^\]]+)\]\((?P<target>(?:https?://|\.{0,2}/?[\w./-]+\.md)[^)\s]*)\)")
_SOURCE_LINE = re.compile(r"^(?:source|see|reference|docs?|link)s?:\s*(?P<target>\S+)\s*(?P<title>.*)$", re.IGNORECASE)

_CODE_SPAN = re.compile(r"`([^`]+)`")
_IDENTIFIER = re.compile(r"@?[A-Za-z_][\w.]*(?:\(\))?")
_ANTIPATTERN_CUES = re.compile(r"❌|\b(?:bad|don['’]t|avoid|wrong|before|anti-?pattern|never)\b", re.IGNORECASE)
_COMMENT = re.compile(r"^\s*(?://+|#+|--)\s*(.+)$")
_HEAD_END = re.compile(
    r"\s+(?:for|in|inside|within|on|from|across|during|after|before|when|while|until|unless|if|because)\b",
    re.IGNORECASE,
)
_SUBJECT_STOP = {
    "the", "a", "an", "to", "for", "in", "on", "with", "your", "any", "new",
    "it", "this", "that", "them", "all", "when", "of", "and", "or",
}


def _head(phrase: str) -> str:
    # delimiters inside code spans do not count
    masked = _CODE_SPAN.sub(lambda m: "x" * len(m.group(0)), phrase)
    end = _HEAD_END.search(masked)
    return phrase[:end.start()] if end else phrase


def normalize_subject(phrase: str) -> str:
    """Reduce a phrase to the API or topic it is about.

    Version annotations are dropped and only the head of the phrase counts:
    "task groups for fan-out work (iOS 17+)" is about "task groups". Within
    the head, prefers the first code span, then the first identifier-looking
    token (CamelCase, dotted, call or attribute), then the first three
    content words. Lowercased, without ``@``, leading dots or trailing ``()``.
    """
    phrase = strip_versions(phrase) or phrase
    phrase = _head(phrase).strip() or phrase
    span = _CODE_SPAN.search(phrase)
    if span:
        token = span.group(1)
    else:
        token = ""
        for candidate in _IDENTIFIER.findall(phrase):
            bare = candidate.lstrip("@.").removesuffix("()")
            if any(c.isupper() for c in bare[1:]) or "." in bare or candidate.startswith("@") or candidate.endswith("()"):
                token = candidate
                break
        if not token:
            words = [w for w in re.findall(r"[A-Za-z][\w-]*", phrase) if w.lower() not in _SUBJECT_STOP]
            token = " ".join(words[:3])
    return " ".join(token.strip().lstrip("@.").removesuffix("()").lower().split())


def _clean(text: str) -> str:
    return text.strip().rstrip(".;:!").strip()


# ---------------------------------------------------------------------------
# Extraction result
# ---------------------------------------------------------------------------


@dataclass
class Extraction:
    """Records pulled from one document for one target entry."""

    document: IncomingDocument
    entry: str
    patterns: list[Pattern] = field(default_factory=list)
    constraints: list[Constraint] = field(default_factory=list)
    decision_rules: list[DecisionRule] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)

    def records(self) -> list[Record]:
        return [*self.constraints, *self.decision_rules, *self.patterns, *self.references]

    def unversioned(self) -> list[Record]:
        return [
            r for r in self.records()
            if r.requires_version and r.min_version == UNSPECIFIED_VERSION
        ]

    @property
    def empty(self) -> bool:
        return not self.records()


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class Extractor:
    """Rule-based record extraction from Markdown or plain text."""

    def extract(self, document: IncomingDocument, entry: str) -> Extraction:
        result = Extraction(document=document, entry=entry)
        seen: dict[str, Record] = {}

        def _add(record: Record, bucket: list) -> None:
            existing = seen.get(record.id)
            if existing is not None:
                existing.cite(record.sources)
                return
            seen[record.id] = record
            bucket.append(record)

        for chunk in chunk_markdown(document.text, root=document.filename or "root"):
            source = SourceRef(
                document=document.filename,
                dated=document.uploaded_at,
                location=chunk.location,
            )
            for index, block in enumerate(chunk.code_blocks):
                pattern = self._pattern(block, chunk, index, source)
                if pattern is not None:
                    _add(pattern, result.patterns)

            for sentence in self._sentences(chunk):
                rule = self._decision(sentence, chunk, source)
                if rule is not None:
                    _add(rule, result.decision_rules)
                    continue
                constraint = self._constraint(sentence, chunk, source)
                if constraint is not None:
                    _add(constraint, result.constraints)

            for ref in self._references(chunk, source):
                _add(ref, result.references)

        emit(RecordsExtracted(
            document=document.filename,
            entry=entry,
            patterns=len(result.patterns),
            constraints=len(result.constraints),
            decision_rules=len(result.decision_rules),
            references=len(result.references),
            unversioned=len(result.unversioned()),
        ))
        return result

    # -- helpers ------------------------------------------------------------

    def _paragraphs(self, chunk: Chunk) -> list[str]:
        """Prose lines joined back into paragraphs.

        Hard-wrapped lines are joined. Bullets, ❌/✅ marks and "Source:"
        lines start a new paragraph. Blank lines, tables, quotes and lines
        ending in ":" end one.
        """
        paragraphs: list[str] = []
        current: list[str] = []

        def _flush() -> None:
            if current:
                paragraphs.append(" ".join(current))
                current.clear()

        for line in chunk.prose:
            stripped = line.strip()
            if not stripped or stripped.startswith("|") or stripped.startswith(">"):
                _flush()
                continue
            if _BULLET.match(stripped) or stripped[0] in "❌✅" or _SOURCE_LINE.match(stripped):
                _flush()
            current.append(stripped)
            if stripped.endswith(":"):
                _flush()
        _flush()
        return paragraphs

    def _sentences(self, chunk: Chunk) -> list[str]:
        out: list[str] = []
        for paragraph in self._paragraphs(chunk):
            stripped = _BULLET.sub("", paragraph)
            stripped = re.sub(r"^\*\*(.+?)\*\*:?\s*", r"\1 ", stripped).strip()
            for sentence in _SENTENCE_SPLIT.split(stripped):
                sentence = sentence.strip()
                # "Bad:" or "Sorting (iOS 17+):" introduce a code block
                if sentence.endswith(":"):
                    continue
                if len(sentence) >= 6:
                    out.append(sentence)
        return out

    def _source_for(self, source: SourceRef) -> list[SourceRef]:
        return [SourceRef(document=source.document, dated=source.dated, location=source.location)]

    def _pattern(
        self,
        block: CodeBlock,
        chunk: Chunk,
        index: int,
        source: SourceRef,
    ) -> Pattern | None:
        if not block.code.strip():
            return None

        title = chunk.heading or ""
        if not title:
            first = block.code.strip().splitlines()[0]
            comment = _COMMENT.match(first)
            title = comment.group(1).strip() if comment else "Example"
        if index > 0:
            title = f"{title} ({index + 1})"

        return Pattern(
            id=Pattern.make_id(block.code),
            title=title,
            code=block.code.rstrip(),
            language=block.language,
            is_antipattern=bool(_ANTIPATTERN_CUES.search(block.lead_in)),
            min_version=min_version(block.code, block.lead_in, chunk.text, chunk.location),
            sources=self._source_for(source),
        )

    def _decision(self, sentence: str, chunk: Chunk, source: SourceRef) -> DecisionRule | None:
        match = _DECISION.match(sentence)
        if not match:
            return None
        condition = _clean(match.group("cond"))
        outcome = _clean(match.group("out"))
        if not condition or not outcome:
            return None
        return DecisionRule(
            id=DecisionRule.make_id(condition, outcome),
            condition=condition,
            outcome=outcome,
            min_version=min_version(sentence, chunk.text, chunk.location),
            sources=self._source_for(source),
        )

    def _constraint(self, sentence: str, chunk: Chunk, source: SourceRef) -> Constraint | None:
        text = _clean(sentence)
        polarity: str
        prohibition: str | None = None
        recommendation: str | None = None

        if m := _REPLACE.match(text):
            polarity, prohibition, recommendation = "avoid", _clean(m.group("old")), _clean(m.group("new"))
            subject_phrase = prohibition
        elif m := _INSTEAD.match(text):
            polarity, prohibition, recommendation = "avoid", _clean(m.group("old")), _clean(m.group("new"))
            subject_phrase = prohibition
        elif m := (_AVOID.match(text) or _MARK_AVOID.match(text)):
            polarity, prohibition = "avoid", _clean(m.group("subj"))
            subject_phrase = prohibition
        elif m := _DEPRECATED.match(text):
            polarity, prohibition = "avoid", _clean(m.group("subj"))
            subject_phrase = prohibition
        elif m := (_DO.match(text) or _MARK_DO.match(text)):
            polarity, recommendation = "do", _clean(m.group("subj"))
            subject_phrase = recommendation
        else:
            return None

        subject = normalize_subject(subject_phrase)
        if not subject:
            return None

        return Constraint(
            id=Constraint.make_id(subject, polarity, text),
            subject=subject,
            polarity=polarity,
            text=text,
            prohibition=prohibition,
            recommendation=recommendation,
            min_version=min_version(sentence, chunk.text, chunk.location),
            sources=self._source_for(source),
        )

    def _references(self, chunk: Chunk, source: SourceRef) -> list[Reference]:
        refs: list[Reference] = []
        for line in chunk.prose:
            stripped = _BULLET.sub("", line.strip())
            for m in _MD_LINK.finditer(stripped):
                target = m.group("target")
                refs.append(Reference(
                    id=Reference.make_id(target),
                    title=m.group("title").strip(),
                    target=target,
                    sources=self._source_for(source),
                ))
            if not _MD_LINK.search(stripped):
                m = _SOURCE_LINE.match(stripped)
                if m and ("://" in m.group("target") or m.group("target").endswith(".md")):
                    target = m.group("target").rstrip(".,;)")
                    refs.append(Reference(
                        id=Reference.make_id(target),
                        title=_clean(m.group("title").strip(" -–—")) or target,
                        target=target,
                        sources=self._source_for(source),
                    ))
        return refs
