"""
HITL Base Records

Approval request, decision and log-entry records shared by the
approval workflow and its log stores.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as written by the log stores."""
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class ApprovalRequest:
    """A proposed change awaiting human review. Immutable once created."""

    request_id: str
    timestamp: datetime
    change_summary: str
    diff: str
    files_affected: Tuple[str, ...] = ()
    intent_id: Optional[str] = None
    turn_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat(),
            "change_summary": self.change_summary,
            "diff": self.diff,
            "files_affected": list(self.files_affected),
        }
        if self.intent_id is not None:
            data["intent_id"] = self.intent_id
        if self.turn_id is not None:
            data["turn_id"] = self.turn_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApprovalRequest":
        return cls(
            request_id=data["request_id"],
            timestamp=parse_timestamp(data["timestamp"]),
            change_summary=data.get("change_summary", ""),
            diff=data.get("diff", ""),
            files_affected=tuple(data.get("files_affected") or ()),
            intent_id=data.get("intent_id"),
            turn_id=data.get("turn_id"),
        )


@dataclass(frozen=True)
class ApprovalDecision:
    """A human decision on an approval request. Recorded exactly once."""

    request_id: str
    timestamp: datetime
    approved: bool
    approver: str
    approver_notes: Optional[str] = None
    requires_override: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat(),
            "approved": self.approved,
            "approver": self.approver,
        }
        if self.approver_notes is not None:
            data["approver_notes"] = self.approver_notes
        if self.requires_override is not None:
            data["requires_override"] = self.requires_override
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApprovalDecision":
        return cls(
            request_id=data["request_id"],
            timestamp=parse_timestamp(data["timestamp"]),
            approved=bool(data["approved"]),
            approver=data.get("approver", ""),
            approver_notes=data.get("approver_notes"),
            requires_override=data.get("requires_override"),
        )


@dataclass(frozen=True)
class ApprovalLogEntry:
    """
    One line of the approval log.

    Either a bare request, or a request merged with its decision.
    A decision for a request this process never saw carries only
    the request_id as request context.
    """

    request_id: str
    logged_at: datetime = field(default_factory=utcnow)
    request: Optional[ApprovalRequest] = None
    decision: Optional[ApprovalDecision] = None

    @property
    def is_decision(self) -> bool:
        return self.decision is not None

    @property
    def intent_id(self) -> Optional[str]:
        return self.request.intent_id if self.request else None

    @property
    def turn_id(self) -> Optional[str]:
        return self.request.turn_id if self.request else None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = (
            self.request.to_dict() if self.request else {"request_id": self.request_id}
        )
        if self.decision is not None:
            data["decision"] = self.decision.to_dict()
        data["logged_at"] = self.logged_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApprovalLogEntry":
        request = None
        if "timestamp" in data and "change_summary" in data:
            request = ApprovalRequest.from_dict(data)

        decision = None
        if data.get("decision"):
            decision = ApprovalDecision.from_dict(data["decision"])

        logged_at = parse_timestamp(data.get("logged_at")) or utcnow()
        return cls(
            request_id=data["request_id"],
            logged_at=logged_at,
            request=request,
            decision=decision,
        )
