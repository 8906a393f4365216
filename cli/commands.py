"""Typer CLI handlers for the flashcard parser.

Bridges the command line to the parsing core: parse a text block into a card
draft, certify a single regex, and inspect a template catalog.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from flashparse.config import AppConfig, load_settings
from flashparse.models import CardDraft, Severity, ValidationVerdict
from flashparse.safety import RegexSafetyValidator, security_advice
from flashparse.selection import TemplateSelectionEngine
from flashparse.templates.catalog import TemplateCatalog
from flashparse.utils.exceptions import ConfigurationError, ParserException
from flashparse.utils.logging import configure_logging

console = Console()

_SEVERITY_STYLE = {Severity.INFO: "dim", Severity.WARNING: "yellow", Severity.CRITICAL: "bold red"}
_RISK_STYLE = {"low": "green", "medium": "yellow", "high": "red", "critical": "bold red"}

# --------------------------------------------------------------------------- #
# Typer app - entry-point is exposed in pyproject.toml as "flashparse"        #
# --------------------------------------------------------------------------- #
app = typer.Typer(help="Parse free-form study notes into structured flashcard drafts.")


@app.callback(invoke_without_command=False)
def _root_options(
    ctx: typer.Context,
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
        show_default=True,
        case_sensitive=False,
    ),
    log_file: bool = typer.Option(False, "--log-file", help="Also write logs to LOG_DIR/flashparse.log."),
):
    """Shared option processed before any sub-command executes."""
    config = load_settings()
    configure_logging(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        log_to_file=log_file,
        log_dir=config.log_dir,
    )
    ctx.obj = config


def _load_catalog(config: AppConfig, catalog_path: Optional[Path]) -> TemplateCatalog:
    path = catalog_path or (Path(config.template_catalog_path) if config.template_catalog_path else None)
    try:
        if path is not None:
            return TemplateCatalog.from_yaml(path, config=config)
        return TemplateCatalog.build(config=config)
    except ConfigurationError as e:
        typer.echo(f"Template catalog rejected: {e}", err=True)
        raise typer.Exit(2)


def _read_content(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        typer.echo(f"Cannot read {path}: {e}", err=True)
        raise typer.Exit(1)


def _render_draft(draft: CardDraft) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    for name, value in draft.fields.items():
        table.add_row(name, escape(value))
    title = f"{draft.template_id} [dim](pattern: {draft.pattern_id or 'none'})[/dim]"
    console.print(Panel(table, title=title, subtitle=f"confidence {draft.confidence:.2f}"))
    for issue in draft.warnings:
        style = _SEVERITY_STYLE[issue.severity]
        console.print(f"[{style}]{issue.severity.value}[/{style}]: {escape(issue.message)}")


def _render_verdict(pattern: str, verdict: ValidationVerdict) -> None:
    risk = verdict.risk_level.value
    table = Table(show_header=False, box=None)
    table.add_row("Passed", "[green]yes[/green]" if verdict.passed else "[red]no[/red]")
    table.add_row("Risk", f"[{_RISK_STYLE[risk]}]{risk}[/{_RISK_STYLE[risk]}]")
    table.add_row("Complexity", f"{verdict.complexity_score:.1f} ({verdict.complexity_level})")
    table.add_row("Dynamic check", "run" if verdict.dynamic_checked else "skipped")
    console.print(Panel(table, title=escape(pattern)))
    for issue in verdict.critical_issues:
        console.print(f"[bold red]critical[/bold red]: {escape(issue)}")
    for issue in verdict.warnings:
        console.print(f"[yellow]warning[/yellow]: {escape(issue)}")
    for hint in security_advice(verdict):
        console.print(f"[cyan]advice[/cyan]: {escape(hint)}")


# --------------------------------------------------------------------------- #
# parse                                                                       #
# --------------------------------------------------------------------------- #
@app.command("parse", help="Parse a text block (file or '-' for stdin) into a card draft.")
def _parse(
    ctx: typer.Context,
    path: str = typer.Argument("-", help="File to parse, or '-' to read stdin."),
    template: Optional[str] = typer.Option(None, "--template", "-t", help="Force a template id."),
    catalog_path: Optional[Path] = typer.Option(None, "--catalog", help="YAML template catalog."),
    as_json: bool = typer.Option(False, "--json", help="Print the draft as JSON."),
):
    """Parse one block of notes."""
    config: AppConfig = ctx.obj
    catalog = _load_catalog(config, catalog_path)
    content = _read_content(path)
    try:
        draft = TemplateSelectionEngine(catalog, config=config).parse(content, template_id=template)
    except ParserException as e:
        typer.echo(f"Parse failed: {e}", err=True)
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(draft.to_dict(), ensure_ascii=False, indent=2))
    else:
        _render_draft(draft)


# --------------------------------------------------------------------------- #
# check-regex                                                                 #
# --------------------------------------------------------------------------- #
@app.command("check-regex", help="Certify a regular expression for safe use in a template.")
def _check_regex(
    ctx: typer.Context,
    pattern: str = typer.Argument(..., help="Regex source to check."),
    dynamic: Optional[bool] = typer.Option(
        None, "--dynamic/--static",
        help="Run (or skip) adversarial execution; defaults to DYNAMIC_REGEX_CHECK.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the verdict as JSON."),
):
    """Print the safety verdict; exit code 1 when the pattern is rejected."""
    verdict = RegexSafetyValidator(config=ctx.obj).validate(pattern, dynamic=dynamic)
    if as_json:
        typer.echo(json.dumps(verdict.to_dict(), indent=2))
    else:
        _render_verdict(pattern, verdict)
    if not verdict.passed:
        raise typer.Exit(1)


# --------------------------------------------------------------------------- #
# templates                                                                   #
# --------------------------------------------------------------------------- #
@app.command("templates", help="List catalog templates with risk levels and fallback chains.")
def _templates(
    ctx: typer.Context,
    catalog_path: Optional[Path] = typer.Option(None, "--catalog", help="YAML template catalog."),
):
    """Show every template and how it was certified."""
    catalog = _load_catalog(ctx.obj, catalog_path)
    table = Table(title=f"{len(catalog)} templates ({len(catalog.selectable_ids)} selectable)")
    table.add_column("Id", style="bold", no_wrap=True)
    table.add_column("Pattern")
    table.add_column("Risk")
    table.add_column("Score", justify="right")
    table.add_column("Chain", overflow="fold")
    for template in catalog:
        verdict = catalog.verdict(template.id)
        risk = verdict.risk_level.value
        chain = " -> ".join(catalog.chain_for(template.id)) if catalog.is_selectable(template.id) else "[red]rejected[/red]"
        table.add_row(
            template.id + (" *" if template.is_emergency else ""),
            template.pattern.value if template.pattern else "-",
            f"[{_RISK_STYLE[risk]}]{risk}[/{_RISK_STYLE[risk]}]",
            f"{verdict.complexity_score:.1f}",
            chain,
        )
    console.print(table)
    for error in catalog.configuration_errors:
        console.print(f"[red]{escape(str(error))}[/red]")
