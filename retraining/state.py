"""
Evaluation state: when each trigger rule last fired
"""
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from .signals import to_local_naive

logger = logging.getLogger(__name__)


class StateStoreError(RuntimeError):
    """Raised when persisted evaluation state cannot be read."""


@dataclass(frozen=True)
class EvaluationState:
    """
    Last firing time of each rule, used to enforce cooldowns.

    Instances are values: ``with_fired`` returns a new state and leaves the
    original untouched.
    """
    last_fired: Mapping[str, datetime] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'last_fired', MappingProxyType({
            name: to_local_naive(fired_at) for name, fired_at in self.last_fired.items()
        }))

    def last_fired_at(self, rule_name: str) -> Optional[datetime]:
        return self.last_fired.get(rule_name)

    def with_fired(self, rule_names: Iterable[str], at: datetime) -> "EvaluationState":
        updated = dict(self.last_fired)
        for name in rule_names:
            updated[name] = at
        return EvaluationState(last_fired=updated)

    def __eq__(self, other):
        if not isinstance(other, EvaluationState):
            return NotImplemented
        return dict(self.last_fired) == dict(other.last_fired)

    def __hash__(self):
        return hash(frozenset(self.last_fired.items()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'last_fired': {
                name: fired_at.isoformat()
                for name, fired_at in sorted(self.last_fired.items())
            }
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EvaluationState":
        return cls(last_fired={
            name: datetime.fromisoformat(fired_at)
            for name, fired_at in data.get('last_fired', {}).items()
        })


class StateStore:
    """Persists EvaluationState to a JSON file between evaluation runs."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> EvaluationState:
        """Load the saved state, or an empty state if nothing was saved yet."""
        if not self.path.exists():
            logger.info(f"No saved evaluation state at {self.path}, starting empty")
            return EvaluationState()

        try:
            with open(self.path, 'r') as f:
                state = EvaluationState.from_dict(json.load(f))
        except (json.JSONDecodeError, ValueError, AttributeError, TypeError) as e:
            raise StateStoreError(f"Cannot read evaluation state from {self.path}: {e}") from e

        logger.info(f"Loaded evaluation state for {len(state.last_fired)} rules from {self.path}")
        return state

    def save(self, state: EvaluationState):
        """Write the state, replacing the previous file in one step."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(state.to_dict(), f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug(f"Evaluation state saved to {self.path}")
