"""
Intent Registry

Read-only snapshot of the declared intents, loaded from
.orchestration/active_intents.yaml:

    active_intents:
      - id: INT-001
        name: JWT migration
        status: IN_PROGRESS
        owned_scope: ["src/auth/", "src/services/auth.ts"]
        constraints: ["Preserve backward compatibility"]
        acceptance_criteria: ["All tests pass"]

INVARIANTS:
- If an intent id isn't in the registry, it doesn't exist.
- Intents are frozen; owned_scope cannot change while a session holds one.
- The registry file is the source of truth; sessions hold references only.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class Intent(BaseModel):
    """A declared unit of work and the scope it may modify."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = ""
    status: str = "PENDING"
    owned_scope: Tuple[str, ...] = Field(default_factory=tuple)
    constraints: Tuple[str, ...] = Field(default_factory=tuple)
    acceptance_criteria: Tuple[str, ...] = Field(default_factory=tuple)


class IntentRegistry:
    """
    Intent lookup backed by a YAML file or an in-memory list.

    Load failures leave an empty registry and a warning; an unknown
    intent is reported by the caller, not here.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        self._intents: Dict[str, Intent] = {}
        if self.path is not None:
            self.reload()

    @classmethod
    def from_intents(cls, intents: Iterable[Union[Intent, Dict[str, Any]]]) -> "IntentRegistry":
        registry = cls()
        for item in intents:
            intent = item if isinstance(item, Intent) else Intent.model_validate(item)
            registry._intents[intent.id] = intent
        return registry

    @property
    def source(self) -> str:
        return str(self.path) if self.path is not None else "<memory>"

    def reload(self) -> None:
        """Re-read the registry file. No-op for in-memory registries."""
        if self.path is None:
            return
        self._intents = self._load(self.path)

    @staticmethod
    def _load(path: Path) -> Dict[str, Intent]:
        if not path.exists():
            return {}

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load intents from {path}: {e}")
            return {}

        items = data.get("active_intents") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return {}

        intents: Dict[str, Intent] = {}
        for item in items:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            try:
                intent = Intent.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Skipping invalid intent {item.get('id')!r}: {e}")
                continue
            intents[intent.id] = intent
        return intents

    def get(self, intent_id: str) -> Optional[Intent]:
        return self._intents.get(intent_id)

    def list_intents(self) -> List[Intent]:
        return list(self._intents.values())

    def __contains__(self, intent_id: object) -> bool:
        return intent_id in self._intents

    def __len__(self) -> int:
        return len(self._intents)
