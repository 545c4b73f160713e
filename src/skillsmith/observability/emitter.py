"""Process-wide event emitter.

Pipeline stages call emit() and nothing else. Until configure() runs,
emit() drops events, so library use and unit tests pay nothing for
observability.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pyventus.events import EventEmitter

if TYPE_CHECKING:
    from skillsmith.observability.config import ObservabilityConfig

_emitter: EventEmitter | None = None


def emit(event: Any) -> None:
    """Publish an event to the registered subscribers, if any."""
    if _emitter is not None:
        _emitter.emit(event)


def configure(config: ObservabilityConfig | None = None) -> EventEmitter:
    """Set up logging, create the emitter and register subscribers.

    Safe to call more than once: later calls return the first emitter
    and ignore their config.
    """
    global _emitter

    if _emitter is not None:
        return _emitter

    from pyventus.core.processing.asyncio import AsyncIOProcessingService

    from skillsmith.observability.config import ObservabilityConfig
    from skillsmith.observability.linker import SkillsmithEventLinker
    from skillsmith.observability.logging import setup_logging
    from skillsmith.observability.subscribers.structlog_sub import register_structlog_subscriber

    cfg = config or ObservabilityConfig()
    setup_logging(cfg)

    emitter = EventEmitter(
        event_linker=SkillsmithEventLinker,
        event_processor=AsyncIOProcessingService(),
    )
    register_structlog_subscriber()
    if cfg.jsonl_path:
        from skillsmith.observability.subscribers.jsonl import register_jsonl_subscriber

        register_jsonl_subscriber(cfg.jsonl_path)

    _emitter = emitter
    return _emitter


def is_configured() -> bool:
    return _emitter is not None


def reset() -> None:
    """Drop the emitter, its subscribers and the log handler. For tests."""
    global _emitter

    from skillsmith.observability.linker import SkillsmithEventLinker
    from skillsmith.observability.logging import shutdown_logging

    shutdown_logging()
    SkillsmithEventLinker.remove_all()
    _emitter = None
