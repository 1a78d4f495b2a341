"""
Trigger rules: a named comparison over one signal plus a cooldown

Rules are configured as records (name, signal, operator, threshold, cooldown)
and validated with pydantic before they reach the evaluator. Operators are a
closed set; there is no free-form expression evaluation.
"""
import json
import logging
import math
import numbers
import operator as _op
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError

from config import settings
from .signals import (
    DATA_FRESHNESS_HOURS,
    DRIFT_SCORE,
    HOURS_SINCE_LAST_RUN,
    MODEL_ACCURACY,
    SignalValue,
)

logger = logging.getLogger(__name__)


class RuleConfigurationError(ValueError):
    """Raised when a rule is malformed or cannot be applied to its signal."""


class Operator(Enum):
    """Comparison operators supported by trigger rules."""
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    EQ = "eq"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]

    @property
    def is_ordering(self) -> bool:
        return self is not Operator.EQ

    def apply(self, value: SignalValue, threshold: SignalValue) -> bool:
        return bool(_FUNCTIONS[self](value, threshold))

    @classmethod
    def parse(cls, text: Union[str, "Operator"]) -> "Operator":
        """Accept an operator name (``gt``) or its symbol (``>``)."""
        if isinstance(text, Operator):
            return text
        key = str(text).strip().lower()
        for op in cls:
            if key == op.value or key == op.symbol:
                return op
        raise RuleConfigurationError(
            f"Unknown operator '{text}'; expected one of "
            f"{', '.join(op.value for op in cls)}"
        )


_SYMBOLS = {
    Operator.GT: ">",
    Operator.LT: "<",
    Operator.GTE: ">=",
    Operator.LTE: "<=",
    Operator.EQ: "==",
}

_FUNCTIONS = {
    Operator.GT: _op.gt,
    Operator.LT: _op.lt,
    Operator.GTE: _op.ge,
    Operator.LTE: _op.le,
    Operator.EQ: _op.eq,
}


class TriggerAction(Enum):
    """What a firing rule asks the downstream pipeline to do."""
    RETRAIN = "retrain"
    REDEPLOY = "redeploy"


def _is_bool(value: Any) -> bool:
    return isinstance(value, (bool, np.bool_))


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not _is_bool(value)


@dataclass(frozen=True)
class TriggerRule:
    """A named predicate over one signal, with a cooldown between firings."""
    name: str
    signal: str
    operator: Operator
    threshold: SignalValue
    cooldown: timedelta = timedelta(hours=24)
    action: TriggerAction = TriggerAction.RETRAIN
    enabled: bool = True
    description: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise RuleConfigurationError("Rule name must not be empty")
        if not self.signal:
            raise RuleConfigurationError(f"Rule '{self.name}' has no signal")

        object.__setattr__(self, 'operator', Operator.parse(self.operator))
        if not isinstance(self.action, TriggerAction):
            try:
                object.__setattr__(self, 'action', TriggerAction(self.action))
            except ValueError as e:
                raise RuleConfigurationError(
                    f"Rule '{self.name}' has unknown action '{self.action}'"
                ) from e

        if _is_bool(self.threshold):
            if self.operator.is_ordering:
                raise RuleConfigurationError(
                    f"Rule '{self.name}': boolean threshold only supports 'eq', "
                    f"got '{self.operator.value}'"
                )
        elif not _is_number(self.threshold):
            raise RuleConfigurationError(
                f"Rule '{self.name}': threshold must be numeric or boolean, "
                f"got {type(self.threshold).__name__}"
            )
        elif not math.isfinite(self.threshold):
            raise RuleConfigurationError(
                f"Rule '{self.name}': threshold must be finite, got {self.threshold}"
            )

        if not isinstance(self.cooldown, timedelta):
            raise RuleConfigurationError(
                f"Rule '{self.name}': cooldown must be a timedelta"
            )
        if self.cooldown < timedelta(0):
            raise RuleConfigurationError(
                f"Rule '{self.name}': cooldown must not be negative"
            )

    @property
    def expression(self) -> str:
        return f"{self.signal} {self.operator.symbol} {self.threshold}"

    def check(self, value: SignalValue) -> bool:
        """
        Evaluate the predicate against a signal value.

        Raises:
            RuleConfigurationError: value is not comparable with the threshold
        """
        if _is_bool(self.threshold):
            comparable = _is_bool(value)
        else:
            comparable = _is_number(value)

        if not comparable:
            raise RuleConfigurationError(
                f"Rule '{self.name}' ({self.expression}) cannot compare "
                f"{type(value).__name__} value {value!r} with "
                f"{type(self.threshold).__name__} threshold"
            )

        return self.operator.apply(value, self.threshold)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'signal': self.signal,
            'operator': self.operator.value,
            'threshold': self.threshold,
            'cooldown_hours': self.cooldown.total_seconds() / 3600,
            'action': self.action.value,
            'enabled': self.enabled,
            'description': self.description
        }


class RuleRecord(BaseModel):
    """Serialized form of a trigger rule."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    signal: str = Field(..., min_length=1)
    operator: str = Field(..., description="gt, lt, gte, lte, eq or their symbols")
    threshold: Union[StrictBool, float]
    cooldown_hours: Optional[float] = Field(None, ge=0)
    cooldown_seconds: Optional[float] = Field(None, ge=0)
    action: TriggerAction = TriggerAction.RETRAIN
    enabled: bool = True
    description: Optional[str] = None

    def to_rule(self) -> TriggerRule:
        if self.cooldown_hours is not None and self.cooldown_seconds is not None:
            raise RuleConfigurationError(
                f"Rule '{self.name}': set cooldown_hours or cooldown_seconds, not both"
            )
        if self.cooldown_seconds is not None:
            cooldown = timedelta(seconds=self.cooldown_seconds)
        elif self.cooldown_hours is not None:
            cooldown = timedelta(hours=self.cooldown_hours)
        else:
            cooldown = timedelta(hours=settings.DEFAULT_COOLDOWN_HOURS)

        return TriggerRule(
            name=self.name,
            signal=self.signal,
            operator=Operator.parse(self.operator),
            threshold=self.threshold,
            cooldown=cooldown,
            action=self.action,
            enabled=self.enabled,
            description=self.description
        )


def parse_rules(records: Iterable[Union[Dict[str, Any], RuleRecord]]) -> List[TriggerRule]:
    """
    Build trigger rules from configuration records.

    Args:
        records: Rule records as dictionaries or RuleRecord instances

    Returns:
        List of TriggerRule

    Raises:
        RuleConfigurationError: a record is invalid or names are duplicated
    """
    rules: List[TriggerRule] = []
    seen = set()

    for index, record in enumerate(records):
        try:
            if not isinstance(record, RuleRecord):
                record = RuleRecord.model_validate(record)
        except ValidationError as e:
            raise RuleConfigurationError(f"Invalid rule record #{index}: {e}") from e

        rule = record.to_rule()
        if rule.name in seen:
            raise RuleConfigurationError(f"Duplicate rule name '{rule.name}'")
        seen.add(rule.name)
        rules.append(rule)

    return rules


def load_rules(path: Union[str, Path]) -> List[TriggerRule]:
    """
    Load trigger rules from a JSON file.

    The file holds either a list of rule records or ``{"rules": [...]}``.
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise RuleConfigurationError(f"Rules file {path} is not valid JSON: {e}") from e

    if isinstance(payload, dict):
        payload = payload.get('rules')
    if not isinstance(payload, list):
        raise RuleConfigurationError(f"Rules file {path} must contain a list of rules")

    rules = parse_rules(payload)
    logger.info(f"Loaded {len(rules)} trigger rules from {path}")
    return rules


def default_rules() -> List[TriggerRule]:
    """Rules for the standard retraining triggers."""
    cooldown = timedelta(hours=settings.DEFAULT_COOLDOWN_HOURS)
    return [
        TriggerRule(
            name="new_data_available",
            signal=DATA_FRESHNESS_HOURS,
            operator=Operator.LTE,
            threshold=24.0,
            cooldown=cooldown,
            description="Fresh data landed within the last day"
        ),
        TriggerRule(
            name="performance_degraded",
            signal=MODEL_ACCURACY,
            operator=Operator.LT,
            threshold=0.8,
            cooldown=cooldown,
            description="Model accuracy dropped below the acceptable floor"
        ),
        TriggerRule(
            name="drift_detected",
            signal=DRIFT_SCORE,
            operator=Operator.GT,
            threshold=0.1,
            cooldown=cooldown,
            description="Share of drifted features exceeds 10%"
        ),
        TriggerRule(
            name="scheduled_interval",
            signal=HOURS_SINCE_LAST_RUN,
            operator=Operator.GTE,
            threshold=168.0,
            cooldown=cooldown,
            description="A week has passed since the last training run"
        ),
    ]


def load_configured_rules() -> List[TriggerRule]:
    """Rules from ``settings.RULES_PATH``, or the default rules when unset."""
    if settings.RULES_PATH:
        return load_rules(settings.RULES_PATH)
    return default_rules()
