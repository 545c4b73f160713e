"""skillsmith observability: event-driven logging.

Public API:
    emit(event)     -- Fire-and-forget event emission (no-op if not configured)
    configure(cfg)  -- Initialize emitter + subscribers (call once at startup)
    reset()         -- Reset for testing

Logging (swappable formatter x destination):
    get_logger(name)             -- Get a structured logger
    run_context(run_id=...)      -- Bind fields to every log line in a block
    register_formatter(n, cls)   -- Register custom LogFormatter
    register_destination(n, cls) -- Register custom LogDestination
"""

from skillsmith.observability.config import ObservabilityConfig
from skillsmith.observability.emitter import configure, emit, is_configured, reset
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
from skillsmith.observability.logging import (
    LogDestination,
    LogFormatter,
    get_logger,
    register_destination,
    register_formatter,
    run_context,
)

__all__ = [
    "emit",
    "configure",
    "is_configured",
    "reset",
    "ObservabilityConfig",
    "get_logger",
    "register_formatter",
    "register_destination",
    "run_context",
    "LogFormatter",
    "LogDestination",
    "DocumentClassified",
    "DocumentUnresolved",
    "EntryFailed",
    "EntryMerged",
    "EntryWritten",
    "RecordRejected",
    "RecordsExtracted",
    "RecordsOverflowed",
    "RunCompleted",
]
