"""Observability configuration, env-var driven.

All settings have safe defaults. Zero config required for basic
structured logging.

Logging architecture:
    LogFormatter (how records are structured) x LogDestination (where they go)

    Formatter: SKILLSMITH_LOG_FORMATTER=structlog (default) | stdlib
    Destination: SKILLSMITH_LOG_DESTINATION=stderr (default) | jsonl
    Renderer: SKILLSMITH_LOG_FORMAT=console (default) | json
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class ObservabilityConfig:
    """Observability configuration, env-var driven."""

    # --- Logging: formatter x destination ---
    log_formatter: str = field(
        default_factory=lambda: os.environ.get("SKILLSMITH_LOG_FORMATTER", "structlog")
    )  # "structlog" | "stdlib"

    log_destination: str = field(
        default_factory=lambda: os.environ.get("SKILLSMITH_LOG_DESTINATION", "stderr")
    )  # "stderr" | "jsonl"

    log_level: str = field(
        default_factory=lambda: os.environ.get("SKILLSMITH_LOG_LEVEL", "WARNING")
    )

    log_format: str = field(
        default_factory=lambda: os.environ.get("SKILLSMITH_LOG_FORMAT", "console")
    )  # "json" | "console"

    # JSONL file destination (also used as event sink path)
    jsonl_path: str | None = field(
        default_factory=lambda: os.environ.get("SKILLSMITH_LOG_PATH")
    )
