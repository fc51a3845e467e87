"""
Human-in-the-Loop (HITL) Module

Scope matching, approval workflow and the intent gate that ties an
active intent to both.
"""

from .approval_log import ApprovalLogStore, InMemoryApprovalLog, JsonlApprovalLog
from .approval_workflow import ApprovalWorkflow
from .base import ApprovalDecision, ApprovalLogEntry, ApprovalRequest
from .errors import (
    ApprovalTimeoutError,
    DuplicateDecisionError,
    GovernanceError,
    InvalidIntentIdError,
)
from .intent_gate import (
    ApprovalOutcome,
    GateDecision,
    IntentContextSummary,
    IntentGate,
    IntentSession,
    MutatingTool,
)
from .intent_registry import Intent, IntentRegistry
from .scope_matcher import ScopeMatcher, ScopeValidationResult

__all__ = [
    # Scope
    "ScopeMatcher",
    "ScopeValidationResult",
    # Approval
    "ApprovalWorkflow",
    "ApprovalRequest",
    "ApprovalDecision",
    "ApprovalLogEntry",
    "ApprovalLogStore",
    "InMemoryApprovalLog",
    "JsonlApprovalLog",
    # Intent
    "Intent",
    "IntentRegistry",
    "IntentGate",
    "IntentSession",
    "IntentContextSummary",
    "GateDecision",
    "ApprovalOutcome",
    "MutatingTool",
    # Errors
    "GovernanceError",
    "InvalidIntentIdError",
    "ApprovalTimeoutError",
    "DuplicateDecisionError",
]
