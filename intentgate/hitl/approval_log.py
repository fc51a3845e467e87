"""
Approval Log Store

Append-only persistence for approval requests and decisions.
Provides InMemory (testing) and JSON-lines file (durable) implementations.

INVARIANTS:
- Entries are append-only (no update, no per-entry delete)
- clear() is the only destructive operation and exists for test resets
- Storage failures degrade to a warning; callers keep running
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Union

from .base import ApprovalLogEntry

logger = logging.getLogger(__name__)


# =============================================================================
# Store Protocol (Interface)
# =============================================================================

class ApprovalLogStore(ABC):
    """
    Abstract append-only store for approval log entries.

    Two implementations:
    - InMemoryApprovalLog: For unit tests
    - JsonlApprovalLog: One JSON object per line on disk
    """

    @abstractmethod
    def append(self, entry: ApprovalLogEntry) -> None:
        """Append one entry. NEVER modify or delete existing entries."""
        pass

    @abstractmethod
    def read_all(self) -> List[ApprovalLogEntry]:
        """Return every entry in append order."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry. Test isolation only."""
        pass


# =============================================================================
# In-Memory Implementation (Testing)
# =============================================================================

class InMemoryApprovalLog(ApprovalLogStore):
    """In-memory store for unit testing."""

    def __init__(self):
        self._entries: List[ApprovalLogEntry] = []

    def append(self, entry: ApprovalLogEntry) -> None:
        self._entries.append(entry)

    def read_all(self) -> List[ApprovalLogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()


# =============================================================================
# JSON-lines Implementation (Durable)
# =============================================================================

class JsonlApprovalLog(ApprovalLogStore):
    """
    File-backed store, one self-contained JSON record per line.

    Each append is a single write of a single line, so concurrent
    writers in one process never interleave inside a record.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def append(self, entry: ApprovalLogEntry) -> None:
        line = json.dumps(entry.to_dict()) + "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.warning(f"Failed to persist approval log entry {entry.request_id}: {e}")

    def read_all(self) -> List[ApprovalLogEntry]:
        try:
            if not self.path.exists():
                return []
            content = self.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to read approval log {self.path}: {e}")
            return []

        entries: List[ApprovalLogEntry] = []
        for lineno, line in enumerate(content.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
                if not isinstance(record, dict):
                    raise TypeError(f"expected an object, got {type(record).__name__}")
                entries.append(ApprovalLogEntry.from_dict(record))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed approval log line {lineno}: {e}")
        return entries

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to clear approval log {self.path}: {e}")
