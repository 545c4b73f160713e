"""JSONL file subscriber: writes every event to a JSONL file.

Each line is a complete JSON object with the event type name and all fields.
"""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path

from skillsmith.observability.events import ALL_EVENTS
from skillsmith.observability.linker import SkillsmithEventLinker
from skillsmith.observability.sinks.jsonl_sink import JsonlSink


def register_jsonl_subscriber(path: str) -> JsonlSink:
    """Register a catch-all subscriber that writes every event to JSONL."""
    sink = JsonlSink(Path(path))

    @SkillsmithEventLinker.on(*ALL_EVENTS)
    def _write_jsonl(event: object) -> None:
        sink.write({"event": type(event).__name__, **asdict(event)})  # type: ignore[arg-type]

    return sink
