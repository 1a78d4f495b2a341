"""
Signals observed by the trigger evaluator
"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

SignalValue = Union[float, int, bool]

# Well-known signal names
DATA_FRESHNESS_HOURS = "data_freshness_hours"
MODEL_ACCURACY = "model_accuracy"
DRIFT_SCORE = "drift_score"
HOURS_SINCE_LAST_RUN = "hours_since_last_run"


@dataclass(frozen=True)
class Signal:
    """A named observation with its value and the time it was recorded."""
    name: str
    value: SignalValue
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'value': self.value,
            'timestamp': self.timestamp.isoformat()
        }


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def to_local_naive(timestamp: Optional[datetime]) -> Optional[datetime]:
    """Express a timezone-aware timestamp as naive local time; naive ones pass through."""
    if timestamp is None or timestamp.tzinfo is None:
        return timestamp
    return timestamp.astimezone().replace(tzinfo=None)


def normalize_signals(
    raw: Mapping[str, Union[Signal, SignalValue, None]],
    now: Optional[datetime] = None
) -> Dict[str, Signal]:
    """
    Turn a mapping of signal name to value into Signals.

    Raw values are stamped with ``now``. ``None`` and NaN values are dropped,
    so rules depending on them are treated as having insufficient data.

    Args:
        raw: Mapping of signal name to a Signal or a raw value
        now: Timestamp for raw values (default: current time)

    Returns:
        Dictionary of signal name to Signal
    """
    now = now or datetime.now()
    signals: Dict[str, Signal] = {}

    for name, item in raw.items():
        if isinstance(item, Signal):
            if item.name != name:
                raise ValueError(
                    f"Signal recorded as '{item.name}' supplied under key '{name}'"
                )
            if _is_missing(item.value):
                continue
            signals[name] = item
        elif not _is_missing(item):
            signals[name] = Signal(name=name, value=item, timestamp=now)

    return signals
