"""
intentgate CLI: Main Entry Point

Usage:
    intentgate approvals list
    intentgate approvals approve <request_id> --by "alice" --override
    intentgate intents show INT-001
    intentgate scope check INT-001 src/auth/middleware.ts README.md
"""

import typer
from rich.console import Console

from intentgate import __version__
from intentgate.cli.approval_cli import approval_app
from intentgate.cli.intent_cli import intent_app, scope_app
from intentgate.cli.wiring import get_config
from intentgate.utils.logging_setup import setup_logging

# Create main app
app = typer.Typer(
    name="intentgate",
    help="Intent-scoped change governance for coding agents",
    no_args_is_help=True,
)

# Register subcommands
app.add_typer(approval_app, name="approvals", help="Review approval requests")
app.add_typer(intent_app, name="intents", help="Inspect declared intents")
app.add_typer(scope_app, name="scope", help="Check paths against an intent's owned scope")

# Console for output
console = Console()


@app.callback()
def main_callback():
    """intentgate: Intent-scoped change governance for coding agents."""
    setup_logging(get_config().log_level)


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]intentgate[/bold] v{__version__}")
    console.print("Intent-scoped change governance for coding agents")


if __name__ == "__main__":
    app()
