"""CLI commands for inspecting the knowledge base."""

from __future__ import annotations

from pathlib import Path

import typer

from skillsmith.cli._errors import handle_error, open_kb
from skillsmith.core.models import Section
from skillsmith.store import render_skill

app = typer.Typer(help="Inspect the knowledge base (entries, overflow).")


@app.command()
def entries(
    kb_dir: Path = typer.Option(None, "--kb", help="Knowledge base directory"),
) -> None:
    """List entries with per-section record counts."""
    kb = open_kb(kb_dir)
    names = kb.list_entries()
    if not names:
        typer.echo("No entries found.")
        return

    typer.echo(
        f"{'Entry':<25} {'Constr.':>8} {'Rules':>6} {'Patt.':>6} {'Refs':>6} {'Overflow':>9}"
    )
    typer.echo("-" * 64)
    for name in names:
        e = kb.get(name)
        if e is None:
            continue
        counts = [len(e.section(s)) for s in Section]
        typer.echo(
            f"{name:<25} {counts[0]:>8} {counts[1]:>6} {counts[2]:>6} {counts[3]:>6} {len(e.overflow):>9}"
        )


@app.command()
def entry(
    name: str = typer.Argument(..., help="Entry name"),
    kb_dir: Path = typer.Option(None, "--kb", help="Knowledge base directory"),
) -> None:
    """Print an entry as rendered SKILL.md."""
    e = open_kb(kb_dir).get(name)
    if e is None:
        handle_error(f"Entry not found: {name}")
    typer.echo(render_skill(e))


@app.command()
def overflow(
    name: str = typer.Argument(..., help="Entry name"),
    kb_dir: Path = typer.Option(None, "--kb", help="Knowledge base directory"),
) -> None:
    """List records demoted to an entry's overflow store."""
    e = open_kb(kb_dir).get(name)
    if e is None:
        handle_error(f"Entry not found: {name}")
    if not e.overflow:
        typer.echo(f"No overflow records for {name}.")
        return
    for r in e.overflow:
        typer.echo(f"[{r.section.value}] {r.id} ({r.status.value}): {r.summary()}")
