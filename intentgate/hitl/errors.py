"""
Governance Errors

Handshake failures are exceptional; validation outcomes
(no active intent, scope violation, rejection) are returned as data.
"""


class GovernanceError(Exception):
    """Base class for intent governance errors."""
    pass


class InvalidIntentIdError(GovernanceError):
    """Raised when an intent id is not present in the registry."""

    def __init__(self, intent_id: str, source: str = "active_intents.yaml"):
        self.intent_id = intent_id
        self.source = source
        super().__init__(
            f'Invalid Intent ID: "{intent_id}". '
            f"You must cite a valid active Intent ID from {source}"
        )


class ApprovalTimeoutError(GovernanceError):
    """Raised when no decision arrives before the approval timeout."""

    def __init__(self, request_id: str, timeout: float):
        self.request_id = request_id
        self.timeout = timeout
        super().__init__(
            f"No decision for approval request {request_id} within {timeout:g}s"
        )


class DuplicateDecisionError(GovernanceError):
    """Raised when a second decision is recorded for the same request."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Approval request {request_id} already has a decision")
