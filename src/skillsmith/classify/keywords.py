"""Keyword extraction for classification (no LLM required).

Extracts identifier-like tokens from free text:
- Import names (``import SwiftData``)
- API-call-shaped tokens (``.task(``, ``withAnimation(``)
- Attributes (``@Observable``, ``@MainActor``)
- CamelCase identifiers (``NavigationStack``)
- Capitalized multi-word phrases (``Liquid Glass``, ``App Intents``)

All keywords are lowercased. Multi-word phrases keep their spaces so a
ruleset can name them directly.
"""

from __future__ import annotations

import re

STOP_WORDS = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "must", "shall", "can", "need", "to", "of",
    "in", "for", "on", "with", "at", "by", "from", "as", "into", "through",
    "during", "before", "after", "above", "below", "between", "under",
    "again", "then", "once", "here", "there", "when", "where", "why", "how",
    "all", "each", "few", "more", "most", "other", "some", "such", "no",
    "nor", "not", "only", "own", "same", "so", "than", "too", "very", "just",
    "and", "but", "if", "or", "because", "until", "while", "this", "that",
    "these", "those", "what", "which", "who", "it", "its", "they", "them",
    "their", "also", "about", "your", "you", "we", "our", "my", "me",
    "use", "using", "never", "always", "avoid", "prefer", "instead",
    "note", "example", "examples", "see", "source", "return", "let", "var",
    "func", "true", "false", "nil", "self", "new", "get", "set", "print",
})

_FENCE = re.compile(r"^```.*?^```", re.MULTILINE | re.DOTALL)
_IMPORT = re.compile(r"^\s*(?:@testable\s+)?import\s+([A-Za-z_][\w.]*)", re.MULTILINE)
_CALL = re.compile(r"\b([A-Za-z_]\w{2,})\s*\(")
_ATTRIBUTE = re.compile(r"@([A-Za-z_]\w+)")
_CAMEL = re.compile(r"\b([A-Z][a-z0-9]+(?:[A-Z][A-Za-z0-9]*)+|[a-z]+(?:[A-Z][a-z0-9]+)+)\b")
_PHRASE = re.compile(r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)+)\b")
_WORD = re.compile(r"\b([a-z]{4,})\b")


def _keep(token: str) -> bool:
    return len(token) > 2 and token not in STOP_WORDS


def extract_keywords(text: str, include_words: bool = False) -> set[str]:
    """Extract identifier-like keywords from text.

    Code inside fenced blocks contributes imports, calls, attributes and
    CamelCase identifiers. Prose also contributes capitalized phrases.
    With include_words, plain lowercase words of four letters or more
    are added too (used when suggesting a signature for a new entry).
    """
    keywords: set[str] = set()

    for match in _IMPORT.finditer(text):
        name = match.group(1).lower()
        if _keep(name):
            keywords.add(name)

    for pattern in (_CALL, _ATTRIBUTE, _CAMEL):
        for match in pattern.finditer(text):
            token = match.group(1).lower()
            if _keep(token):
                keywords.add(token)

    prose = _FENCE.sub(" ", text)
    for match in _PHRASE.finditer(prose):
        words = [w for w in match.group(1).split() if w.lower() not in STOP_WORDS]
        if len(words) >= 2:
            keywords.add(" ".join(words).lower())

    if include_words:
        for match in _WORD.finditer(prose.lower()):
            if _keep(match.group(1)):
                keywords.add(match.group(1))

    return keywords


def top_keywords(text: str, limit: int = 12) -> list[str]:
    """Most frequent keywords in a text, for seeding a new entry's signature."""
    counts: dict[str, int] = {}
    lowered = text.lower()
    for kw in extract_keywords(text):
        counts[kw] = lowered.count(kw)
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [kw for kw, _ in ranked[:limit]]
