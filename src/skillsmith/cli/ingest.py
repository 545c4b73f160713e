"""CLI command for ingesting documents into the knowledge base."""

from __future__ import annotations

import json
from pathlib import Path

import typer

from skillsmith.cli._errors import handle_error, load_ruleset, open_kb
from skillsmith.config import get_config
from skillsmith.core.models import IncomingDocument
from skillsmith.pipeline import IngestionPipeline
from skillsmith.report import Reporter
from skillsmith.store import InMemoryKnowledgeBase

app = typer.Typer(help="Ingest documents into the knowledge base.", no_args_is_help=True)

_SUFFIXES = {".md", ".markdown", ".txt", ".text"}


def _collect(paths: list[Path]) -> list[Path]:
    """Expand directories into their text files, sorted for a stable batch order."""
    files: list[Path] = []
    for path in paths:
        if not path.exists():
            handle_error(f"File not found: {path}")
        if path.is_dir():
            files.extend(sorted(p for p in path.rglob("*") if p.is_file() and p.suffix.lower() in _SUFFIXES))
        else:
            files.append(path)
    return files


def _parse_assignments(values: list[str] | None) -> dict[str, str]:
    out: dict[str, str] = {}
    for value in values or []:
        filename, sep, entry = value.partition("=")
        if not sep or not filename.strip() or not entry.strip():
            handle_error(f"--assign expects FILE=ENTRY, got {value!r}")
        out[Path(filename.strip()).name] = entry.strip()
    return out


@app.command("files")
def ingest_files(
    paths: list[Path] = typer.Argument(..., help="Files or directories to ingest"),
    kb_dir: Path = typer.Option(None, "--kb", help="Knowledge base directory (default: SKILLSMITH_KB_DIR)"),
    ruleset_path: Path = typer.Option(
        None, "--ruleset", "-r", help="Ruleset YAML (default: SKILLSMITH_RULESET)"
    ),
    assign: list[str] = typer.Option(
        None, "--assign", "-a", help="Route FILE to ENTRY, overriding classification (FILE=ENTRY)"
    ),
    create_unmapped: bool = typer.Option(
        False, "--create-unmapped", help="Create a new entry for each unmapped document"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show the report without writing entries or the ruleset"
    ),
    report_path: Path = typer.Option(None, "--report", "-o", help="Also write the report to a file"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    """Classify, extract, merge and write a batch of documents.

    Every outcome, including unresolved documents and rejected records,
    lands in the change report. The command only fails on usage or
    configuration errors.

    Examples:
        skillsmith ingest files notes/wwdc.md
        skillsmith ingest files inbox/ --dry-run
        skillsmith ingest files new.md --assign new.md=swiftdata
        skillsmith ingest files inbox/ --create-unmapped -o report.md
    """
    ruleset, resolved_ruleset = load_ruleset(ruleset_path)
    assignments = _parse_assignments(assign)

    documents: list[IncomingDocument] = []
    for path in _collect(paths):
        try:
            documents.append(IncomingDocument.from_path(path))
        except (OSError, UnicodeDecodeError) as e:
            typer.echo(f"Skipping {path}: {e}", err=True)
    if not documents:
        handle_error("No readable documents to ingest")

    kb = open_kb(kb_dir)
    if dry_run:
        kb = InMemoryKnowledgeBase.snapshot(kb)

    pipeline = IngestionPipeline(kb, ruleset, config=get_config())
    result = pipeline.run(documents, assignments=assignments, create_unmapped=create_unmapped)

    if result.ruleset.version != ruleset.version and not dry_run:
        result.ruleset.dump(resolved_ruleset)
        typer.echo(f"Ruleset updated to v{result.ruleset.version}: {resolved_ruleset}", err=True)

    reporter = Reporter()
    if as_json:
        output = json.dumps(reporter.render_json(result.report), indent=2, default=str)
    else:
        output = reporter.render(result.report)

    if report_path:
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(output, encoding="utf-8")
    typer.echo(output)
    if dry_run:
        typer.echo("(dry run: nothing written)", err=True)
