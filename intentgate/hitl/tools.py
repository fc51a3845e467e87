"""
Agent Tools

Function-calling descriptors and implementations for the two
governance tools an agent sees:

    select_active_intent(intent_id)
    request_human_approval(change_summary, diff, files_affected, intent_id?)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ApprovalTimeoutError, GovernanceError
from .intent_gate import SELECT_ACTIVE_INTENT, IntentGate, IntentSession

logger = logging.getLogger(__name__)

REQUEST_HUMAN_APPROVAL = "request_human_approval"

REQUEST_HUMAN_APPROVAL_DESCRIPTION = """Request explicit human approval for a critical code change.

This tool blocks agent execution until a human approves or rejects the proposed change. Use this when:
- Making changes outside the current intent's owned_scope
- Applying experimental refactorings that need validation
- Modifying critical infrastructure or security-sensitive code
- The change requires explicit override of scope enforcement

The approval decision is recorded in the approval log with the approver
identity, timestamp, notes, and whether an override was required.

The agent MUST wait for human response before proceeding.
"""

SELECT_ACTIVE_INTENT_DESCRIPTION = """Select the intent this turn works under.

Returns the intent's constraints, owned scope and acceptance criteria.
Structural changes (write_file, apply_diff, execute_command) are refused
until an intent is selected.
"""


# =============================================================================
# Argument Contracts
# =============================================================================

class SelectActiveIntentArgs(BaseModel):
    """Arguments of select_active_intent."""

    model_config = ConfigDict(extra="forbid")

    intent_id: str = Field(description="ID of an intent from active_intents.yaml.")


class RequestHumanApprovalArgs(BaseModel):
    """Arguments of request_human_approval."""

    model_config = ConfigDict(extra="forbid")

    change_summary: str = Field(
        description=(
            "Concise summary of the proposed change, shown to the approver: "
            "what is changing, why, and any risks."
        )
    )
    diff: str = Field(description="Full unified diff of the proposed changes.")
    files_affected: List[str] = Field(
        description="File paths that will be modified by this change."
    )
    intent_id: Optional[str] = Field(
        default=None,
        description="Intent ID associated with this change, for the audit trail.",
    )


class ApprovalToolResult(BaseModel):
    """What request_human_approval hands back to the agent."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    request_id: str = ""
    status: Literal["approved", "rejected", "timeout", "error"]
    message: str
    requires_override: bool = False


def _function_tool(name: str, description: str, args_model: type[BaseModel]) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "strict": True,
            "parameters": args_model.model_json_schema(),
        },
    }


def tool_definitions() -> List[Dict[str, Any]]:
    """Function-calling descriptors for the governance tools."""
    return [
        _function_tool(SELECT_ACTIVE_INTENT, SELECT_ACTIVE_INTENT_DESCRIPTION, SelectActiveIntentArgs),
        _function_tool(
            REQUEST_HUMAN_APPROVAL, REQUEST_HUMAN_APPROVAL_DESCRIPTION, RequestHumanApprovalArgs
        ),
    ]


# =============================================================================
# Implementations
# =============================================================================

def select_active_intent(gate: IntentGate, session: IntentSession, args: SelectActiveIntentArgs) -> str:
    """Select the intent and return its rendered context block."""
    return gate.select_intent(session, args.intent_id).render()


async def request_human_approval(
    gate: IntentGate,
    session: IntentSession,
    args: RequestHumanApprovalArgs,
    turn_id: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ApprovalToolResult:
    """
    Submit a change for human approval and wait for the decision.

    Files outside the active intent's owned scope are listed in the
    request; without an active intent nothing is listed.
    Failures come back as a result, never as an exception.
    """
    out_of_scope: List[str] = []
    if session.has_intent and not gate.validate_scope(session, args.files_affected).within_scope:
        out_of_scope = [p for p in args.files_affected if not gate.is_path_in_scope(session, p)]

    intent_id = args.intent_id or (session.active_intent.id if session.active_intent else None)
    summary = args.change_summary
    if out_of_scope:
        listing = "\n".join(f"  - {p}" for p in out_of_scope)
        summary = (
            f"{summary}\n\n"
            "WARNING: The following files are outside the current intent's scope:\n"
            f"{listing}"
        )

    request = gate.workflow.create_request(
        summary, args.diff, args.files_affected, intent_id=intent_id, turn_id=turn_id
    )

    try:
        decision = await gate.workflow.submit_for_approval(request, timeout=timeout)
    except ApprovalTimeoutError as e:
        return ApprovalToolResult(
            success=False,
            request_id=request.request_id,
            status="timeout",
            message=str(e),
        )
    except GovernanceError as e:
        logger.warning(f"Approval request {request.request_id} failed: {e}")
        return ApprovalToolResult(
            success=False,
            request_id=request.request_id,
            status="error",
            message=f"Failed to submit approval request: {e}",
        )

    if decision.approved:
        message = f"Change approved by {decision.approver}. Request ID: {request.request_id}"
    else:
        message = f"Change rejected by {decision.approver}. Do not apply it. Request ID: {request.request_id}"
    if decision.approver_notes:
        message += f"\nNotes: {decision.approver_notes}"

    return ApprovalToolResult(
        success=True,
        request_id=request.request_id,
        status="approved" if decision.approved else "rejected",
        message=message,
        requires_override=bool(decision.requires_override),
    )
