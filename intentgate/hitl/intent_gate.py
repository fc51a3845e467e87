"""
Intent Gate

Binds an active intent to a work session and enforces that mutating
tools run only under an intent, and only inside its owned scope unless
a human approves the excursion.

Per-mutation state machine:
    NoIntent → (select) → HasIntent → (validate) → InScope
                                               └→ OutOfScope → (request approval)
                                                   → AwaitingDecision → Approved | Rejected

The active intent lives on an IntentSession owned by the caller, never
on the gate, so concurrent sessions do not share state.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .approval_workflow import ApprovalWorkflow
from .base import ApprovalDecision, ApprovalLogEntry, ApprovalRequest
from .errors import InvalidIntentIdError
from .intent_registry import Intent, IntentRegistry
from .scope_matcher import ScopeMatcher, ScopeValidationResult

logger = logging.getLogger(__name__)

SELECT_ACTIVE_INTENT = "select_active_intent"

NO_INTENT_MESSAGE = (
    "You must cite a valid active Intent ID via select_active_intent "
    "before performing structural changes."
)


class MutatingTool(str, Enum):
    """Tools that change the workspace and therefore need an active intent."""

    WRITE_FILE = "write_file"
    WRITE_TO_FILE = "write_to_file"
    APPLY_DIFF = "apply_diff"
    EXECUTE_COMMAND = "execute_command"

    @classmethod
    def parse(cls, tool: Union[str, "MutatingTool"]) -> Optional["MutatingTool"]:
        """Return the member for a tool name, or None for non-mutating tools."""
        if isinstance(tool, cls):
            return tool
        try:
            return cls(tool)
        except ValueError:
            return None


# =============================================================================
# Data Models
# =============================================================================

@dataclass
class IntentSession:
    """Caller-owned context holding at most one active intent."""

    session_id: str = field(default_factory=lambda: f"session_{uuid.uuid4().hex[:12]}")
    active_intent: Optional[Intent] = None

    @property
    def has_intent(self) -> bool:
        return self.active_intent is not None


@dataclass(frozen=True)
class IntentContextSummary:
    """Intent context injected into the agent's working context."""

    intent_id: str
    name: str
    status: str
    constraints: Tuple[str, ...]
    owned_scope: Tuple[str, ...]
    acceptance_criteria: Tuple[str, ...]

    @classmethod
    def from_intent(cls, intent: Intent) -> "IntentContextSummary":
        return cls(
            intent_id=intent.id,
            name=intent.name,
            status=intent.status,
            constraints=tuple(intent.constraints),
            owned_scope=tuple(intent.owned_scope),
            acceptance_criteria=tuple(intent.acceptance_criteria),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent_id": self.intent_id,
            "name": self.name,
            "status": self.status,
            "constraints": list(self.constraints),
            "owned_scope": list(self.owned_scope),
            "acceptance_criteria": list(self.acceptance_criteria),
        }

    def render(self) -> str:
        """Render as an <intent_context> block."""

        def items(values: Sequence[str]) -> str:
            return "\n".join(f"    - {v}" for v in values)

        return (
            "<intent_context>\n"
            f"  <intent_id>{self.intent_id}</intent_id>\n"
            f"  <intent_name>{self.name}</intent_name>\n"
            f"  <status>{self.status}</status>\n"
            "  <constraints>\n"
            f"{items(self.constraints)}\n"
            "  </constraints>\n"
            "  <owned_scope>\n"
            f"{items(self.owned_scope)}\n"
            "  </owned_scope>\n"
            "  <acceptance_criteria>\n"
            f"{items(self.acceptance_criteria)}\n"
            "  </acceptance_criteria>\n"
            "</intent_context>"
        )


@dataclass(frozen=True)
class GateDecision:
    """Outcome of gatekeeping a tool call."""

    allowed: bool
    message: Optional[str] = None


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of an out-of-scope approval request."""

    request_id: str
    approved: bool
    requires_override: bool = False


# =============================================================================
# Intent Gate
# =============================================================================

class IntentGate:
    """
    Orchestrates intent selection, tool gatekeeping, scope validation
    and out-of-scope escalation.

    Scope checks delegate to ScopeMatcher; escalations delegate to
    ApprovalWorkflow.
    """

    def __init__(
        self,
        registry: Optional[IntentRegistry] = None,
        workflow: Optional[ApprovalWorkflow] = None,
    ):
        self.registry = registry if registry is not None else IntentRegistry()
        self.workflow = workflow if workflow is not None else ApprovalWorkflow()

    # =========================================================================
    # Session / Intent Selection
    # =========================================================================

    def open_session(self, session_id: Optional[str] = None) -> IntentSession:
        if session_id is None:
            return IntentSession()
        return IntentSession(session_id=session_id)

    def select_intent(self, session: IntentSession, intent_id: str) -> IntentContextSummary:
        """
        Make an intent the session's active intent.

        Raises:
            InvalidIntentIdError: The id is not in the registry.
        """
        self.registry.reload()
        intent = self.registry.get(intent_id)
        if intent is None:
            logger.warning(f"Session {session.session_id}: unknown intent {intent_id!r}")
            raise InvalidIntentIdError(intent_id, self.registry.source)

        session.active_intent = intent
        logger.info(f"Session {session.session_id}: active intent {intent.id} ({intent.status})")
        return IntentContextSummary.from_intent(intent)

    def clear_active_intent(self, session: IntentSession) -> None:
        session.active_intent = None

    # =========================================================================
    # Gatekeeping
    # =========================================================================

    def gatekeep(self, session: IntentSession, tool: Union[str, MutatingTool]) -> GateDecision:
        """Mutating tools require an active intent; other tools always pass."""
        mutating = MutatingTool.parse(tool)
        if mutating is not None and not session.has_intent:
            logger.warning(f"Session {session.session_id}: blocked {mutating.value} (no active intent)")
            return GateDecision(allowed=False, message=NO_INTENT_MESSAGE)
        return GateDecision(allowed=True)

    def pre_hook(
        self,
        session: IntentSession,
        tool: Union[str, MutatingTool],
        payload: Optional[Dict[str, Any]] = None,
    ) -> Union[str, GateDecision]:
        """
        Tool pre-hook.

        select_active_intent returns the rendered intent context;
        every other tool returns its gatekeeping decision.
        """
        if tool == SELECT_ACTIVE_INTENT:
            intent_id = (payload or {}).get("intent_id", "")
            return self.select_intent(session, intent_id).render()
        return self.gatekeep(session, tool)

    # =========================================================================
    # Scope Validation
    # =========================================================================

    def validate_scope(self, session: IntentSession, paths: Sequence[str]) -> ScopeValidationResult:
        """Check paths against the active intent's owned scope."""
        intent = session.active_intent
        if intent is None:
            return ScopeValidationResult(
                within_scope=False,
                reason="No active intent - cannot validate scope",
                attempted_path=paths[0] if paths else None,
            )
        return ScopeMatcher.are_paths_in_scope(paths, intent.owned_scope)

    def validate_diff(self, session: IntentSession, diff_text: str) -> ScopeValidationResult:
        """
        Validate every file a unified diff touches.

        A diff naming no files is never in scope.
        """
        files = ScopeMatcher.extract_files_from_diff(diff_text)
        if not files:
            intent = session.active_intent
            return ScopeValidationResult(
                within_scope=False,
                reason="No files found in diff",
                allowed_paths=list(intent.owned_scope) if intent else None,
            )
        return self.validate_scope(session, files)

    def is_path_in_scope(self, session: IntentSession, path: str) -> bool:
        intent = session.active_intent
        if intent is None:
            return False
        return ScopeMatcher.is_path_in_scope(path, intent.owned_scope).within_scope

    # =========================================================================
    # Out-of-Scope Escalation
    # =========================================================================

    async def request_approval_for_out_of_scope(
        self,
        session: IntentSession,
        change_summary: str,
        diff: str,
        files_affected: Iterable[str],
        out_of_scope_paths: Iterable[str],
        turn_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ApprovalOutcome:
        """
        Ask a human to approve a change that leaves the owned scope.

        Suspends until a decision is recorded for the request.

        Raises:
            ApprovalTimeoutError: No decision within the timeout.
        """
        listing = "\n".join(f"  - {p}" for p in out_of_scope_paths)
        full_summary = (
            f"{change_summary}\n\n"
            "WARNING: The following files are outside the current intent's scope:\n"
            f"{listing}\n\n"
            "Human approval required to override scope enforcement."
        )

        intent_id = session.active_intent.id if session.active_intent else None
        request = ApprovalWorkflow.create_request(
            full_summary, diff, files_affected, intent_id=intent_id, turn_id=turn_id
        )

        decision = await self.workflow.submit_for_approval(request, timeout=timeout)
        return ApprovalOutcome(
            request_id=request.request_id,
            approved=decision.approved,
            requires_override=bool(decision.requires_override),
        )

    # =========================================================================
    # Approval Delegation
    # =========================================================================

    def record_approval_decision(
        self,
        request_id: str,
        approved: bool,
        approver: str,
        notes: Optional[str] = None,
        requires_override: Optional[bool] = None,
    ) -> ApprovalDecision:
        return self.workflow.record_decision(
            request_id, approved, approver, notes=notes, requires_override=requires_override
        )

    def get_pending_approvals(self) -> Dict[str, ApprovalRequest]:
        return {r.request_id: r for r in self.workflow.get_all_pending_requests()}

    def get_intent_approvals(self, intent_id: str) -> List[ApprovalLogEntry]:
        return self.workflow.get_log_entries_by_intent(intent_id)

    def is_approval_pending(self, request_id: str) -> bool:
        return self.workflow.get_pending_request(request_id) is not None
