"""Error taxonomy for the ingestion pipeline.

Every error here is recoverable at document or record granularity. The
pipeline catches them and turns them into ChangeReport lines; only the CLI
converts configuration errors into exit codes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from skillsmith.core.models import Record


class SkillsmithError(Exception):
    """Base class for skillsmith errors."""


class MalformedDocument(SkillsmithError):
    """An incoming document is missing its filename or text."""


class UnclassifiableDocument(SkillsmithError):
    """No entry met the classification threshold for a document."""

    def __init__(self, filename: str, explanation: str = "") -> None:
        self.filename = filename
        self.explanation = explanation
        super().__init__(f"{filename}: {explanation or 'no entry matched'}")


class MissingRequiredField(SkillsmithError):
    """One or more records lack a version tag or a source citation.

    Carries every offending record so callers can reject them as a group.
    """

    def __init__(self, entry: str, records: list[Record], fields: list[str]) -> None:
        self.entry = entry
        self.records = records
        self.fields = fields
        super().__init__(
            f"{entry}: {len(records)} record(s) missing required fields "
            f"({', '.join(sorted(set(fields)))})"
        )


class EntryNotFound(SkillsmithError):
    """A knowledge-base entry does not exist."""


class RulesetError(SkillsmithError):
    """The classification ruleset is invalid or unreadable."""
