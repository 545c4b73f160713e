"""skillsmith CLI -- typer-based command interface.

Commands:
    skillsmith ingest files <paths>          Ingest a batch of documents
    skillsmith inspect entries/entry/overflow  Inspect the knowledge base
    skillsmith ruleset show/classify/add     Work with the classification ruleset
"""

from __future__ import annotations

import typer

from skillsmith.cli import ingest, inspect_cmd, ruleset_cmd
from skillsmith.observability import configure

app = typer.Typer(
    name="skillsmith",
    help="Maintain a knowledge base of skill documents: ingest, inspect, classify.",
    no_args_is_help=True,
)

app.add_typer(ingest.app, name="ingest")
app.add_typer(inspect_cmd.app, name="inspect")
app.add_typer(ruleset_cmd.app, name="ruleset")


@app.callback()
def _startup() -> None:
    configure()


def main() -> None:
    """Entry point for the skillsmith CLI."""
    app()
