"""Event sinks."""

from skillsmith.observability.sinks.jsonl_sink import JsonlSink

__all__ = ["JsonlSink"]
