"""
Approval Workflow

Human-in-the-loop lifecycle for proposed changes:
    create_request → submit_for_approval (suspends) → record_decision (resumes)

Every request and every decision is appended to the approval log.
The log is replayed at startup so both decided and still-pending
requests survive a restart.

INVARIANTS:
    - request_id is unique per process lifetime
    - A request is decided at most once
    - A decided request leaves the pending index and stays in the decided index
    - A decision may name a request this process never saw; it is logged anyway
"""

import asyncio
import logging
import time
import uuid
from typing import Dict, Iterable, List, Optional

from .approval_log import ApprovalLogStore, InMemoryApprovalLog
from .base import ApprovalDecision, ApprovalLogEntry, ApprovalRequest, utcnow
from .errors import ApprovalTimeoutError, DuplicateDecisionError

logger = logging.getLogger(__name__)

# 24 hours
DEFAULT_APPROVAL_TIMEOUT = 86400.0


def new_request_id() -> str:
    """approval-<epoch ms>-<random hex>"""
    return f"approval-{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"


class ApprovalWorkflow:
    """
    Request/decision lifecycle over an append-only ApprovalLogStore.

    Suspension is event-driven: each submitted request gets its own
    future, resolved by the matching record_decision call.
    """

    def __init__(
        self,
        store: Optional[ApprovalLogStore] = None,
        default_timeout: Optional[float] = DEFAULT_APPROVAL_TIMEOUT,
    ):
        """
        Args:
            store: Log store. Defaults to InMemoryApprovalLog.
            default_timeout: Seconds submit_for_approval waits when no
                timeout is passed. None waits without bound.
        """
        if store is None:
            store = InMemoryApprovalLog()
        self._store = store
        self.default_timeout = default_timeout

        self._requests: Dict[str, ApprovalRequest] = {}
        self._pending: Dict[str, ApprovalRequest] = {}
        self._decided: Dict[str, ApprovalDecision] = {}
        self._waiters: Dict[str, "asyncio.Future[ApprovalDecision]"] = {}

        self._replay()

    @property
    def store(self) -> ApprovalLogStore:
        return self._store

    def _replay(self) -> None:
        """Rebuild the pending and decided indices from the log."""
        for entry in self._store.read_all():
            if entry.request is not None:
                self._requests.setdefault(entry.request_id, entry.request)

            if entry.decision is not None:
                self._decided[entry.request_id] = entry.decision
                self._pending.pop(entry.request_id, None)
            elif entry.request is not None and entry.request_id not in self._decided:
                self._pending[entry.request_id] = entry.request

        if self._requests or self._decided:
            logger.info(
                f"Approval log replayed: {len(self._pending)} pending, "
                f"{len(self._decided)} decided"
            )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @staticmethod
    def create_request(
        change_summary: str,
        diff: str,
        files_affected: Iterable[str],
        intent_id: Optional[str] = None,
        turn_id: Optional[str] = None,
    ) -> ApprovalRequest:
        """Build a new request. Does not touch storage."""
        return ApprovalRequest(
            request_id=new_request_id(),
            timestamp=utcnow(),
            change_summary=change_summary,
            diff=diff,
            files_affected=tuple(files_affected),
            intent_id=intent_id,
            turn_id=turn_id,
        )

    async def submit_for_approval(
        self,
        request: ApprovalRequest,
        timeout: Optional[float] = None,
    ) -> ApprovalDecision:
        """
        Register a request as pending and wait for its decision.

        Args:
            request: The request to submit.
            timeout: Seconds to wait; defaults to default_timeout.

        Raises:
            ApprovalTimeoutError: No decision within the timeout. The
                request stays pending and can still be decided.
            asyncio.CancelledError: The waiting task was cancelled.
        """
        request_id = request.request_id
        self._requests[request_id] = request

        existing = self._decided.get(request_id)
        if existing is not None:
            self._pending.pop(request_id, None)
            return existing

        self._pending[request_id] = request
        self._store.append(ApprovalLogEntry(request_id=request_id, request=request))
        logger.info(
            f"Approval requested: {request_id} "
            f"(intent={request.intent_id}, files={len(request.files_affected)})"
        )

        waiter = self._waiters.get(request_id)
        if waiter is None or waiter.done():
            waiter = asyncio.get_running_loop().create_future()
            self._waiters[request_id] = waiter

        if timeout is None:
            timeout = self.default_timeout

        try:
            decision = await asyncio.wait_for(waiter, timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Approval request {request_id} timed out after {timeout:g}s")
            raise ApprovalTimeoutError(request_id, timeout) from None
        finally:
            if self._waiters.get(request_id) is waiter:
                del self._waiters[request_id]

        self._pending.pop(request_id, None)
        return decision

    def record_decision(
        self,
        request_id: str,
        approved: bool,
        approver: str,
        notes: Optional[str] = None,
        requires_override: Optional[bool] = None,
    ) -> ApprovalDecision:
        """
        Record a human decision and wake the submitter, if any.

        Raises:
            DuplicateDecisionError: The request was already decided.
        """
        if request_id in self._decided:
            raise DuplicateDecisionError(request_id)

        decision = ApprovalDecision(
            request_id=request_id,
            timestamp=utcnow(),
            approved=approved,
            approver=approver,
            approver_notes=notes,
            requires_override=requires_override,
        )
        self._decided[request_id] = decision

        request = self._pending.pop(request_id, None) or self._requests.get(request_id)
        if request is None:
            logger.warning(f"Decision recorded for unknown approval request: {request_id}")

        self._store.append(
            ApprovalLogEntry(request_id=request_id, request=request, decision=decision)
        )

        waiter = self._waiters.get(request_id)
        if waiter is not None and not waiter.done():
            waiter.set_result(decision)

        logger.info(
            f"Approval decision: {request_id} -> "
            f"{'approved' if approved else 'rejected'} by {approver}"
            f"{' (override)' if requires_override else ''}"
        )
        return decision

    # =========================================================================
    # Queries
    # =========================================================================

    def get_pending_request(self, request_id: str) -> Optional[ApprovalRequest]:
        return self._pending.get(request_id)

    def get_all_pending_requests(self) -> List[ApprovalRequest]:
        return list(self._pending.values())

    def get_request(self, request_id: str) -> Optional[ApprovalRequest]:
        """Any request seen by this process or replayed from the log."""
        return self._requests.get(request_id)

    def get_decision(self, request_id: str) -> Optional[ApprovalDecision]:
        return self._decided.get(request_id)

    def is_approved(self, request_id: str) -> bool:
        """Unknown and pending requests are not approved."""
        decision = self._decided.get(request_id)
        return decision is not None and decision.approved is True

    def requires_override(self, request_id: str) -> bool:
        decision = self._decided.get(request_id)
        return decision is not None and decision.requires_override is True

    def get_decisions_by_intent(self, intent_id: str) -> List[ApprovalLogEntry]:
        """Decision entries whose request belongs to the intent."""
        return [
            e for e in self._store.read_all()
            if e.is_decision and e.intent_id == intent_id
        ]

    def get_decisions_by_turn(self, turn_id: str) -> List[ApprovalLogEntry]:
        """Decision entries whose request was raised in the turn."""
        return [
            e for e in self._store.read_all()
            if e.is_decision and e.turn_id == turn_id
        ]

    def get_log_entries_by_intent(self, intent_id: str) -> List[ApprovalLogEntry]:
        """Request and decision entries for the intent, in log order."""
        return [e for e in self._store.read_all() if e.intent_id == intent_id]

    def get_all_log_entries(self) -> List[ApprovalLogEntry]:
        return self._store.read_all()

    # =========================================================================
    # Reset
    # =========================================================================

    def clear_all(self) -> None:
        """Destroy the log and both indices. Test isolation only."""
        self._store.clear()
        self._requests.clear()
        self._pending.clear()
        self._decided.clear()

        for waiter in self._waiters.values():
            if not waiter.done():
                waiter.cancel()
        self._waiters.clear()
