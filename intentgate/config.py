"""
intentgate Configuration

Environment configuration for the orchestration directory, the
intent registry, the approval log and approval timeouts.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_APPROVAL_TIMEOUT = 86400.0


def _timeout_from_env(value: Optional[str]) -> Optional[float]:
    """Empty or non-positive disables the timeout."""
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        logger.warning(
            f"Invalid INTENTGATE_APPROVAL_TIMEOUT {value!r}; "
            f"using {DEFAULT_APPROVAL_TIMEOUT:g}s"
        )
        return DEFAULT_APPROVAL_TIMEOUT
    return seconds if seconds > 0 else None


@dataclass
class Config:
    """Main configuration container."""
    orchestration_dir: Path
    intents_file: str = "active_intents.yaml"
    approval_log_file: str = "approval_log.jsonl"

    # Seconds an approval request waits for a decision (None: no limit)
    approval_timeout: Optional[float] = DEFAULT_APPROVAL_TIMEOUT

    log_level: str = "INFO"

    @property
    def intents_path(self) -> Path:
        return self.orchestration_dir / self.intents_file

    @property
    def approval_log_path(self) -> Path:
        return self.orchestration_dir / self.approval_log_file

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            orchestration_dir=Path(os.getenv("INTENTGATE_ORCHESTRATION_DIR", ".orchestration")),
            intents_file=os.getenv("INTENTGATE_INTENTS_FILE", "active_intents.yaml"),
            approval_log_file=os.getenv("INTENTGATE_APPROVAL_LOG", "approval_log.jsonl"),
            approval_timeout=_timeout_from_env(os.getenv("INTENTGATE_APPROVAL_TIMEOUT", "86400")),
            log_level=os.getenv("INTENTGATE_LOG_LEVEL", "INFO").upper(),
        )
