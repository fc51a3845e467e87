"""
Intent and Scope CLI Subcommands

Read-only views of the intent registry, plus scope checks of paths
and diffs against an intent's owned scope.
"""

import json as json_lib
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from intentgate.cli.wiring import get_gate, get_registry
from intentgate.hitl.errors import InvalidIntentIdError
from intentgate.hitl.scope_matcher import ScopeValidationResult

intent_app = typer.Typer(
    name="intents",
    help="Inspect declared intents",
    no_args_is_help=True,
)

scope_app = typer.Typer(
    name="scope",
    help="Check paths against an intent's owned scope",
    no_args_is_help=True,
)

console = Console()


# =============================================================================
# Intent Commands
# =============================================================================

@intent_app.command("list")
def list_intents(
    json: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
):
    """List intents declared in the registry."""
    registry = get_registry()
    registry.reload()
    intents = registry.list_intents()

    if json:
        print(json_lib.dumps([i.model_dump(mode="json") for i in intents], indent=2))
        return

    if not intents:
        console.print(f"[dim]No intents found in {registry.source}[/dim]")
        return

    table = Table(title=f"Intents ({len(intents)})")
    table.add_column("Intent ID", style="cyan")
    table.add_column("Name")
    table.add_column("Status", style="green")
    table.add_column("Owned Scope", style="magenta")

    for i in intents:
        table.add_row(i.id, i.name, i.status, ", ".join(i.owned_scope) or "-")

    console.print(table)


@intent_app.command("show")
def show_intent(
    intent_id: str = typer.Argument(..., help="Intent ID to show"),
):
    """Show the context block an agent receives for an intent."""
    gate = get_gate()
    session = gate.open_session()

    try:
        summary = gate.select_intent(session, intent_id)
    except InvalidIntentIdError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(Panel(summary.render(), title=f"Intent {summary.intent_id}", border_style="blue"))


# =============================================================================
# Scope Commands
# =============================================================================

def _report(result: ScopeValidationResult, json: bool) -> None:
    if json:
        print(json_lib.dumps(result.to_dict(), indent=2))
    elif result.within_scope:
        console.print("[green]✓ Within scope[/green]")
    else:
        console.print(f"[red]✗ {result.reason}[/red]")
        if result.allowed_paths:
            console.print("  Owned scope:")
            for p in result.allowed_paths:
                console.print(f"    - {p}")

    if not result.within_scope:
        raise typer.Exit(1)


@scope_app.command("check")
def check_paths(
    intent_id: str = typer.Argument(..., help="Intent whose scope applies"),
    paths: List[str] = typer.Argument(..., help="File paths to check"),
    json: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
):
    """Check file paths against an intent's owned scope."""
    gate = get_gate()
    session = gate.open_session()

    try:
        gate.select_intent(session, intent_id)
    except InvalidIntentIdError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    _report(gate.validate_scope(session, paths), json)


@scope_app.command("diff")
def check_diff(
    intent_id: str = typer.Argument(..., help="Intent whose scope applies"),
    diff_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Unified diff file"),
    json: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
):
    """Check every file touched by a unified diff."""
    gate = get_gate()
    session = gate.open_session()

    try:
        gate.select_intent(session, intent_id)
    except InvalidIntentIdError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    _report(gate.validate_diff(session, diff_file.read_text(encoding="utf-8")), json)
