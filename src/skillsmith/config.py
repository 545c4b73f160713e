"""Configuration via environment variables."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path


def _int_env(var: str, default: int) -> int:
    """Parse an integer from an environment variable with a helpful error on bad input."""
    raw = os.environ.get(var)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as err:
        print(f"Error: {var}={raw!r} is not a valid integer", file=sys.stderr)
        raise SystemExit(1) from err


def _float_env(var: str, default: float | None) -> float | None:
    raw = os.environ.get(var)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as err:
        print(f"Error: {var}={raw!r} is not a valid number", file=sys.stderr)
        raise SystemExit(1) from err


@dataclass
class SkillsmithConfig:
    """Configuration for a skillsmith run.

    Reads from environment variables with SKILLSMITH_ prefix.
    Falls back to sensible defaults for local use.

    threshold overrides the ruleset's own threshold when set.
    """

    kb_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("SKILLSMITH_KB_DIR", "skills")).expanduser()
    )
    ruleset_path: Path = field(
        default_factory=lambda: Path(
            os.environ.get("SKILLSMITH_RULESET", "skills/ruleset.yaml")
        ).expanduser()
    )
    threshold: float | None = field(default_factory=lambda: _float_env("SKILLSMITH_THRESHOLD", None))
    section_ceiling: int = field(default_factory=lambda: _int_env("SKILLSMITH_SECTION_CEILING", 25))
    max_workers: int = field(default_factory=lambda: _int_env("SKILLSMITH_MAX_WORKERS", 4))


def get_config() -> SkillsmithConfig:
    """Get the current configuration."""
    return SkillsmithConfig()
