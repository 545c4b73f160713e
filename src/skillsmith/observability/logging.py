"""Structured logging for skillsmith runs.

A log setup is one LogFormatter (record structure) composed with one
LogDestination (output target). setup_logging() builds a handler from the
pair and installs it on the root logger, replacing any handler it installed
before and leaving foreign handlers (pytest's caplog) alone.

    SKILLSMITH_LOG_FORMATTER    structlog (default) | stdlib
    SKILLSMITH_LOG_DESTINATION  stderr (default) | jsonl
    SKILLSMITH_LOG_FORMAT       console (default) | json

Pipeline code logs event names with keyword fields:

    logger.warning("record.rejected", entry="swiftdata", missing=["sources"])

Fields bound with run_context() are added to every line logged inside the
block, on any thread that runs in a copy of the caller's context.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from skillsmith.observability.config import ObservabilityConfig

_run_fields: ContextVar[dict[str, Any]] = ContextVar("skillsmith_run_fields", default={})


@contextmanager
def run_context(**fields: Any) -> Iterator[None]:
    """Bind fields (run_id, ...) to every log line inside the block."""
    token = _run_fields.set({**_run_fields.get(), **fields})
    try:
        yield
    finally:
        _run_fields.reset(token)


def current_run_fields() -> dict[str, Any]:
    """Fields bound by the enclosing run_context() blocks."""
    return dict(_run_fields.get())


@runtime_checkable
class LogFormatter(Protocol):
    """How records are structured.

    setup() returns the logging.Formatter handlers use; get_logger()
    returns a logger that takes keyword fields.
    """

    def setup(self, config: ObservabilityConfig) -> logging.Formatter: ...

    def get_logger(self, name: str, **kwargs: Any) -> Any: ...


@runtime_checkable
class LogDestination(Protocol):
    """Where formatted lines go."""

    def create_handler(self, formatter: logging.Formatter) -> logging.Handler: ...

    def shutdown(self) -> None: ...


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def _merge_run_fields(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key, value in current_run_fields().items():
        event_dict.setdefault(key, value)
    return event_dict


def _record_fields(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    # keyword fields from a _KeywordLogger created before setup
    record = event_dict.get("_record")
    if record is not None:
        event_dict.update(getattr(record, "_structured", {}))
    return event_dict


class StructlogFormatter:
    """structlog processors bridged into stdlib logging.

    Plain logging.getLogger() records go through the same renderer, so
    third-party log lines match ours.
    """

    def setup(self, config: ObservabilityConfig) -> logging.Formatter:
        import structlog

        if config.log_format == "console":
            renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty()
            )
        else:
            renderer = structlog.processors.JSONRenderer()

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                _merge_run_fields,
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        return structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[
                _record_fields,
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
            ],
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )

    def get_logger(self, name: str, **kwargs: Any) -> Any:
        import structlog

        return structlog.get_logger(name, **kwargs)


class StdlibFormatter:
    """stdlib logging only; structlog is never imported."""

    def setup(self, config: ObservabilityConfig) -> logging.Formatter:
        if config.log_format == "console":
            return logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        return _JsonLineFormatter()

    def get_logger(self, name: str, **kwargs: Any) -> Any:
        return _KeywordLogger(logging.getLogger(name))


class _JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
            **getattr(record, "_structured", {}),
        }
        if record.exc_info and record.exc_info[1]:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


class _KeywordLogger:
    """stdlib logger that accepts keyword fields like a structlog logger.

    Fields ride on the LogRecord as ``_structured`` for _JsonLineFormatter.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _log(self, level: int, event: str, **fields: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        exc_info = fields.pop("exc_info", None)
        if exc_info is True:
            exc_info = sys.exc_info()
        record = self._logger.makeRecord(
            self._logger.name, level, "(unknown)", 0, event, (), exc_info or None,
        )
        record._structured = {**current_run_fields(), **fields}  # type: ignore[attr-defined]
        self._logger.handle(record)

    def debug(self, event: str, **fields: Any) -> None:
        self._log(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self._log(logging.INFO, event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._log(logging.WARNING, event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self._log(logging.ERROR, event, **fields)

    def exception(self, event: str, **fields: Any) -> None:
        fields.setdefault("exc_info", True)
        self._log(logging.ERROR, event, **fields)


# ---------------------------------------------------------------------------
# Destinations
# ---------------------------------------------------------------------------


class StderrDestination:
    def create_handler(self, formatter: logging.Formatter) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        return handler

    def shutdown(self) -> None:
        pass


class JsonlFileDestination:
    """Append lines to SKILLSMITH_LOG_PATH (default skillsmith.log.jsonl)."""

    def __init__(self, config: ObservabilityConfig) -> None:
        self._path = Path(config.jsonl_path or "skillsmith.log.jsonl")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._handler: logging.Handler | None = None

    def create_handler(self, formatter: logging.Formatter) -> logging.Handler:
        self._handler = logging.FileHandler(str(self._path), mode="a", encoding="utf-8")
        self._handler.setFormatter(formatter)
        return self._handler

    def shutdown(self) -> None:
        if self._handler is not None:
            self._handler.close()


_FORMATTERS: dict[str, type] = {"structlog": StructlogFormatter, "stdlib": StdlibFormatter}
_DESTINATIONS: dict[str, type] = {"stderr": StderrDestination, "jsonl": JsonlFileDestination}


def register_formatter(name: str, cls: type) -> None:
    """Make a LogFormatter selectable by name. Call before configure()."""
    _FORMATTERS[name] = cls


def register_destination(name: str, cls: type) -> None:
    """Make a LogDestination selectable by name. Call before configure()."""
    _DESTINATIONS[name] = cls


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_active_formatter: LogFormatter | None = None
_active_destination: LogDestination | None = None


def _lookup(registry: dict[str, type], kind: str, name: str) -> type:
    try:
        return registry[name]
    except KeyError:
        raise ValueError(
            f"Unknown log {kind}: {name!r}. Available: {sorted(registry)}. "
            f"Register one with register_{kind}()."
        ) from None


def setup_logging(config: ObservabilityConfig) -> None:
    """Install the configured formatter x destination on the root logger."""
    global _active_formatter, _active_destination

    formatter_cls = _lookup(_FORMATTERS, "formatter", config.log_formatter)
    destination_cls = _lookup(_DESTINATIONS, "destination", config.log_destination)

    formatter = formatter_cls()
    destination = (
        destination_cls(config) if destination_cls is JsonlFileDestination else destination_cls()
    )
    handler = destination.create_handler(formatter.setup(config))
    handler._skillsmith_managed = True  # type: ignore[attr-defined]

    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if not getattr(h, "_skillsmith_managed", False)]
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.log_level.upper(), logging.WARNING))

    _active_formatter = formatter
    _active_destination = destination


def get_logger(name: str = "", **kwargs: Any) -> Any:
    """Logger from the active formatter.

    Before setup_logging() this is a stdlib-backed keyword logger, so
    module-level loggers work without configuration.
    """
    if _active_formatter is not None:
        return _active_formatter.get_logger(name, **kwargs)
    return _KeywordLogger(logging.getLogger(name))


def shutdown_logging() -> None:
    global _active_formatter, _active_destination

    if _active_destination is not None:
        _active_destination.shutdown()
    _active_formatter = None
    _active_destination = None
