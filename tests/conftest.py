"""Shared fixtures for skillsmith tests."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from skillsmith.classify import ClassificationRule, Ruleset
from skillsmith.core.models import IncomingDocument, SourceRef


@pytest.fixture(autouse=True)
def _reset_observability():
    """Reset emitter state before and after each test."""
    from skillsmith.observability.emitter import reset

    reset()
    yield
    reset()


def dated(year: int, month: int = 1, day: int = 1) -> datetime:
    return datetime(year, month, day, tzinfo=UTC)


def doc(filename: str, text: str, when: datetime | None = None) -> IncomingDocument:
    return IncomingDocument(filename=filename, text=text, uploaded_at=when or dated(2024))


def src(document: str = "notes.md", when: datetime | None = None, location: str = "Notes") -> SourceRef:
    return SourceRef(document=document, dated=when or dated(2024), location=location)


@pytest.fixture
def ruleset() -> Ruleset:
    return Ruleset(
        rules=(
            ClassificationRule.build("swiftdata", ["swiftdata", "modelcontext", "query"]),
            ClassificationRule.build("concurrency", ["mainactor", "task", "sendable"]),
        ),
        threshold=0.3,
    )
