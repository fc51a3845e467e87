"""
Approval CLI Subcommands

Thin wrapper over ApprovalWorkflow for the human approver.
No business logic; only command parsing and output formatting.

Decisions are appended to the shared approval log. An agent already
waiting in another process is not woken; it sees the decision on replay.
"""

import json as json_lib
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from intentgate.cli.wiring import get_workflow
from intentgate.hitl.errors import DuplicateDecisionError

# Create subcommand app
approval_app = typer.Typer(
    name="approvals",
    help="Review approval requests",
    no_args_is_help=True,
)

console = Console()


def _first_line(text: str, width: int = 60) -> str:
    line = text.splitlines()[0] if text else ""
    return line if len(line) <= width else line[: width - 1] + "…"


# =============================================================================
# List Command
# =============================================================================

@approval_app.command("list")
def list_pending(
    json: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
):
    """List approval requests awaiting a decision."""
    workflow = get_workflow()
    pending = workflow.get_all_pending_requests()

    if json:
        print(json_lib.dumps([r.to_dict() for r in pending], indent=2))
        return

    if not pending:
        console.print("[dim]No pending approval requests[/dim]")
        return

    table = Table(title=f"Pending Approvals ({len(pending)})")
    table.add_column("Request ID", style="cyan")
    table.add_column("Intent", style="magenta")
    table.add_column("Files", justify="right")
    table.add_column("Summary")
    table.add_column("Requested At", style="dim")

    for r in pending:
        table.add_row(
            r.request_id,
            r.intent_id or "-",
            str(len(r.files_affected)),
            _first_line(r.change_summary),
            r.timestamp.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


# =============================================================================
# Show Command
# =============================================================================

@approval_app.command("show")
def show_request(
    request_id: str = typer.Argument(..., help="Request ID to show"),
    json: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
):
    """Show a request, its diff and its decision."""
    workflow = get_workflow()

    request = workflow.get_request(request_id)
    decision = workflow.get_decision(request_id)
    if request is None and decision is None:
        console.print(f"[red]Approval request not found: {request_id}[/red]")
        raise typer.Exit(1)

    if json:
        output = {
            "request": request.to_dict() if request else None,
            "decision": decision.to_dict() if decision else None,
            "pending": workflow.get_pending_request(request_id) is not None,
        }
        print(json_lib.dumps(output, indent=2))
        return

    if request is not None:
        files = "\n".join(f"  - {f}" for f in request.files_affected) or "  (none)"
        panel_content = f"""[bold]Request ID:[/bold] {request.request_id}
[bold]Intent:[/bold] {request.intent_id or "None"}
[bold]Turn:[/bold] {request.turn_id or "None"}
[bold]Requested:[/bold] {request.timestamp.isoformat()}
[bold]Files:[/bold]
{files}

{request.change_summary}"""
        console.print(Panel(panel_content, title="Approval Request", border_style="blue"))

        if request.diff:
            console.print("\n[bold]Diff:[/bold]")
            console.print(Syntax(request.diff, "diff", theme="monokai"))

    if decision is None:
        console.print("\n[yellow]Awaiting decision[/yellow]")
        return

    verdict = "[green]approved[/green]" if decision.approved else "[red]rejected[/red]"
    console.print(
        f"\n[bold]Decision:[/bold] {verdict} by {decision.approver} "
        f"at {decision.timestamp.isoformat()}"
    )
    if decision.requires_override:
        console.print("  [yellow]Scope override granted[/yellow]")
    if decision.approver_notes:
        console.print(f"  Notes: {decision.approver_notes}")


# =============================================================================
# Approve Command
# =============================================================================

@approval_app.command("approve")
def approve_request(
    request_id: str = typer.Argument(..., help="Request ID to approve"),
    by: str = typer.Option(
        ...,
        "--by", "-b",
        help="Approver ID (required)",
    ),
    notes: Optional[str] = typer.Option(
        None,
        "--notes", "-n",
        help="Notes for the agent and the audit log",
    ),
    override: bool = typer.Option(
        False,
        "--override",
        help="Explicitly permit changes outside the intent's owned scope",
    ),
):
    """Approve a pending request."""
    workflow = get_workflow()

    if workflow.get_pending_request(request_id) is None:
        console.print(f"[yellow]Warning:[/yellow] {request_id} is not pending; recording anyway")

    try:
        workflow.record_decision(
            request_id, True, by, notes=notes, requires_override=override or None
        )
    except DuplicateDecisionError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ Approved:[/green] {request_id}")
    if override:
        console.print("  Scope override: yes")


# =============================================================================
# Reject Command
# =============================================================================

@approval_app.command("reject")
def reject_request(
    request_id: str = typer.Argument(..., help="Request ID to reject"),
    by: str = typer.Option(
        ...,
        "--by", "-b",
        help="Rejector ID (required)",
    ),
    notes: Optional[str] = typer.Option(
        None,
        "--notes", "-n",
        help="Reason for rejection",
    ),
):
    """Reject a pending request."""
    workflow = get_workflow()

    if workflow.get_pending_request(request_id) is None:
        console.print(f"[yellow]Warning:[/yellow] {request_id} is not pending; recording anyway")

    try:
        workflow.record_decision(request_id, False, by, notes=notes)
    except DuplicateDecisionError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[red]✗ Rejected:[/red] {request_id}")


# =============================================================================
# Log Command
# =============================================================================

@approval_app.command("log")
def show_log(
    intent: Optional[str] = typer.Option(
        None,
        "--intent", "-i",
        help="Only decisions for this intent",
    ),
    turn: Optional[str] = typer.Option(
        None,
        "--turn", "-t",
        help="Only decisions raised in this turn",
    ),
    json: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
):
    """Show the approval audit log."""
    workflow = get_workflow()

    if intent:
        entries = workflow.get_decisions_by_intent(intent)
    elif turn:
        entries = workflow.get_decisions_by_turn(turn)
    else:
        entries = workflow.get_all_log_entries()

    if json:
        print(json_lib.dumps([e.to_dict() for e in entries], indent=2))
        return

    if not entries:
        console.print("[dim]Approval log is empty[/dim]")
        return

    table = Table(title=f"Approval Log ({len(entries)})")
    table.add_column("Logged At", style="dim")
    table.add_column("Request ID", style="cyan")
    table.add_column("Intent", style="magenta")
    table.add_column("Event")
    table.add_column("Approver")
    table.add_column("Override")

    for e in entries:
        if e.decision is None:
            event, approver, override = "requested", "-", "-"
        else:
            event = "[green]approved[/green]" if e.decision.approved else "[red]rejected[/red]"
            approver = e.decision.approver
            override = "yes" if e.decision.requires_override else "-"
        table.add_row(
            e.logged_at.strftime("%Y-%m-%d %H:%M:%S"),
            e.request_id,
            e.intent_id or "-",
            event,
            approver,
            override,
        )

    console.print(table)
