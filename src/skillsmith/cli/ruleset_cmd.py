"""CLI commands for the classification ruleset."""

from __future__ import annotations

from pathlib import Path

import typer

from skillsmith.classify import ClassificationRule, Classifier
from skillsmith.cli._errors import handle_error, load_ruleset, open_kb
from skillsmith.core.models import IncomingDocument
from skillsmith.errors import RulesetError

app = typer.Typer(help="Show, test and extend the classification ruleset.", no_args_is_help=True)


@app.command()
def show(
    ruleset_path: Path = typer.Option(None, "--ruleset", "-r", help="Ruleset YAML"),
) -> None:
    """Print the ruleset version, threshold and rules."""
    ruleset, path = load_ruleset(ruleset_path)
    typer.echo(f"Ruleset: {path}")
    typer.echo(f"Version: {ruleset.version}  Threshold: {ruleset.threshold:.2f}")
    if not ruleset.rules:
        typer.echo("No rules.")
        return
    for rule in ruleset.rules:
        typer.echo(f"  {rule.entry:<20} w={rule.weight:<4} {', '.join(sorted(rule.keywords))}")


@app.command()
def classify(
    path: Path = typer.Argument(..., help="Document to classify"),
    ruleset_path: Path = typer.Option(None, "--ruleset", "-r", help="Ruleset YAML"),
) -> None:
    """Show which entries a document would be routed to, and why."""
    if not path.exists():
        handle_error(f"File not found: {path}")
    ruleset, _ = load_ruleset(ruleset_path)
    result = Classifier(ruleset).classify(IncomingDocument.from_path(path))
    if result.unmapped:
        typer.echo(f"{path.name}: unmapped ({result.explanation})")
        return
    for match in result.matches:
        typer.echo(f"{match.entry:<20} {match.score:.2f}  {', '.join(match.matched_keywords)}")


@app.command()
def add(
    entry: str = typer.Argument(..., help="Entry the rule routes to"),
    keyword: list[str] = typer.Option(..., "--keyword", "-k", help="Signature keyword (repeatable)"),
    weight: float = typer.Option(1.0, "--weight", "-w", help="Rule weight"),
    description: str = typer.Option("", "--description", help="Description for a new entry"),
    ruleset_path: Path = typer.Option(None, "--ruleset", "-r", help="Ruleset YAML"),
    kb_dir: Path = typer.Option(None, "--kb", help="Knowledge base directory"),
) -> None:
    """Add a classification rule and create its entry if needed."""
    ruleset, path = load_ruleset(ruleset_path, missing_ok=True)
    try:
        rule = ClassificationRule.build(entry, keyword, weight=weight)
    except RulesetError as e:
        handle_error(str(e))
    try:
        open_kb(kb_dir).create(rule.entry, description=description, keywords=sorted(rule.keywords))
    except ValueError as e:
        handle_error(str(e))
    updated = ruleset.with_rule(rule)
    updated.dump(path)
    typer.echo(f"Added rule for {rule.entry} ({len(rule.keywords)} keywords); ruleset v{updated.version}")
