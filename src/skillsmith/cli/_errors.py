"""CLI error handling and shared loaders."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from skillsmith.classify import Ruleset
from skillsmith.config import get_config
from skillsmith.errors import RulesetError
from skillsmith.store import MarkdownKnowledgeBase


def handle_error(msg: str) -> NoReturn:
    """Print an error message and exit."""
    typer.echo(f"Error: {msg}", err=True)
    raise typer.Exit(1)


def load_ruleset(path: Path | None, missing_ok: bool = False) -> tuple[Ruleset, Path]:
    """Load the ruleset from --ruleset or SKILLSMITH_RULESET, or exit.

    With missing_ok, a ruleset file that does not exist yet loads as empty.
    """
    path = path or get_config().ruleset_path
    if missing_ok and not path.exists():
        return Ruleset(), path
    try:
        return Ruleset.load(path), path
    except RulesetError as e:
        handle_error(str(e))


def open_kb(path: Path | None) -> MarkdownKnowledgeBase:
    """Open the knowledge base from --kb or SKILLSMITH_KB_DIR."""
    return MarkdownKnowledgeBase(path or get_config().kb_dir)
