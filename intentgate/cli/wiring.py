"""
CLI Wiring

Constructs IntentRegistry + ApprovalWorkflow + IntentGate from configuration.

Production: JsonlApprovalLog under the orchestration directory
Testing: instances injected via the module globals
"""

from typing import Optional

from intentgate.config import Config
from intentgate.hitl.approval_log import JsonlApprovalLog
from intentgate.hitl.approval_workflow import ApprovalWorkflow
from intentgate.hitl.intent_gate import IntentGate
from intentgate.hitl.intent_registry import IntentRegistry


def get_config() -> Config:
    return Config.from_env()


def build_gate(cfg: Optional[Config] = None) -> IntentGate:
    """Build an IntentGate over the configured registry file and approval log."""
    if cfg is None:
        cfg = get_config()
    registry = IntentRegistry(cfg.intents_path)
    workflow = ApprovalWorkflow(
        store=JsonlApprovalLog(cfg.approval_log_path),
        default_timeout=cfg.approval_timeout,
    )
    return IntentGate(registry=registry, workflow=workflow)


# Global gate instance (lazily initialized)
_gate: Optional[IntentGate] = None


def get_gate() -> IntentGate:
    """Get or create the global IntentGate instance."""
    global _gate
    if _gate is None:
        _gate = build_gate()
    return _gate


def get_workflow() -> ApprovalWorkflow:
    return get_gate().workflow


def get_registry() -> IntentRegistry:
    return get_gate().registry
