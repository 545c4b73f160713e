"""Minimum-version annotations found in free text and code."""

from __future__ import annotations

import re

from skillsmith.core.models import UNSPECIFIED_VERSION

_PLATFORMS = r"iOS|iPadOS|macOS|Mac Catalyst|watchOS|tvOS|visionOS|Swift|Xcode"

_AVAILABLE = re.compile(rf"@available\(\s*({_PLATFORMS})\s+(\d+(?:\.\d+)*)", re.IGNORECASE)
_MENTION = re.compile(rf"\b({_PLATFORMS})\s*(\d+(?:\.\d+)*)(\s*\+|\s+(?:or|and)\s+later)?")
_ANNOTATION = re.compile(
    rf"\(\s*(?:@available\([^)]*\)|(?:{_PLATFORMS})\s*\d[^()]*)\s*\)"
    rf"|@available\([^)]*\)"
    rf"|{_MENTION.pattern}"
)

_CANONICAL = {p.lower(): p for p in _PLATFORMS.split("|")}


def _tag(platform: str, version: str) -> str:
    name = _CANONICAL.get(platform.lower(), platform)
    if version.endswith(".0") and version.count(".") == 1:
        version = version[:-2]
    return f"{name} {version}+"


def find_versions(text: str) -> list[str]:
    """All distinct version tags in text, in order of first appearance.

    One tag per platform: the first mention wins.
    """
    found: dict[str, str] = {}
    for pattern in (_AVAILABLE, _MENTION):
        for match in pattern.finditer(text):
            platform = _CANONICAL.get(match.group(1).lower(), match.group(1))
            found.setdefault(platform, _tag(platform, match.group(2)))
    return list(found.values())


def min_version(*texts: str | None) -> str:
    """Version annotation from the first text that has one.

    Texts are searched nearest-first (code, sentence, section, heading).
    Returns UNSPECIFIED_VERSION when none of them mention a version.
    """
    for text in texts:
        if not text:
            continue
        tags = find_versions(text)
        if tags:
            return ", ".join(tags)
    return UNSPECIFIED_VERSION


def strip_versions(text: str) -> str:
    """Text with version annotations such as "(iOS 17+)" removed."""
    return " ".join(_ANNOTATION.sub(" ", text).split())
