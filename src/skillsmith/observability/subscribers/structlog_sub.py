"""Routes all events to structured log lines via the configured LogFormatter.

Always-on subscriber. Called by emitter.configure() on every startup.
Uses get_logger() from the logging module -- works with structlog, stdlib,
or any registered LogFormatter.
"""

from __future__ import annotations

from dataclasses import asdict

from skillsmith.observability.events import (
    DocumentClassified,
    DocumentUnresolved,
    EntryFailed,
    EntryMerged,
    EntryWritten,
    RecordRejected,
    RecordsExtracted,
    RecordsOverflowed,
    RunCompleted,
)
from skillsmith.observability.linker import SkillsmithEventLinker
from skillsmith.observability.logging import get_logger


def _get_logger():
    """Lazy logger -- always reflects the active formatter, not stale import-time state."""
    return get_logger("skillsmith.events")


def _to_dict(event: object) -> dict:
    return asdict(event)  # type: ignore[arg-type]


def register_structlog_subscriber() -> None:
    """Register log handlers for all events on SkillsmithEventLinker."""

    # Classification
    @SkillsmithEventLinker.on(DocumentClassified)
    def _log_classified(event: DocumentClassified) -> None:
        _get_logger().info("document.classified", **_to_dict(event))

    @SkillsmithEventLinker.on(DocumentUnresolved)
    def _log_unresolved(event: DocumentUnresolved) -> None:
        _get_logger().warning("document.unresolved", **_to_dict(event))

    # Extraction
    @SkillsmithEventLinker.on(RecordsExtracted)
    def _log_extracted(event: RecordsExtracted) -> None:
        _get_logger().debug("records.extracted", **_to_dict(event))

    # Merge
    @SkillsmithEventLinker.on(EntryMerged)
    def _log_merged(event: EntryMerged) -> None:
        _get_logger().info("entry.merged", **_to_dict(event))

    # Write
    @SkillsmithEventLinker.on(RecordRejected)
    def _log_rejected(event: RecordRejected) -> None:
        _get_logger().warning("record.rejected", **_to_dict(event))

    @SkillsmithEventLinker.on(RecordsOverflowed)
    def _log_overflowed(event: RecordsOverflowed) -> None:
        _get_logger().info("records.overflowed", **_to_dict(event))

    @SkillsmithEventLinker.on(EntryWritten)
    def _log_written(event: EntryWritten) -> None:
        _get_logger().info("entry.written", **_to_dict(event))

    # Run
    @SkillsmithEventLinker.on(EntryFailed)
    def _log_failed(event: EntryFailed) -> None:
        _get_logger().error("entry.failed", **_to_dict(event))

    @SkillsmithEventLinker.on(RunCompleted)
    def _log_run_completed(event: RunCompleted) -> None:
        _get_logger().info("run.completed", **_to_dict(event))
