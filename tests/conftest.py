"""Test configuration and fixtures."""

from datetime import datetime, timedelta

import pytest

from retraining.rules import Operator, TriggerAction, TriggerRule
from retraining.state import EvaluationState


@pytest.fixture
def t0() -> datetime:
    """A fixed evaluation time."""
    return datetime(2026, 1, 1, 12, 0, 0)


@pytest.fixture
def drift_rule() -> TriggerRule:
    """Drift rule with a one-day cooldown."""
    return TriggerRule(
        name="drift_detected",
        signal="drift_score",
        operator=Operator.GT,
        threshold=0.1,
        cooldown=timedelta(hours=24),
    )


@pytest.fixture
def accuracy_rule() -> TriggerRule:
    """Performance rule with a one-day cooldown."""
    return TriggerRule(
        name="performance_degraded",
        signal="model_accuracy",
        operator=Operator.LT,
        threshold=0.8,
        cooldown=timedelta(hours=24),
    )


@pytest.fixture
def redeploy_rule() -> TriggerRule:
    """Boolean rule asking for a redeploy."""
    return TriggerRule(
        name="canary_failed",
        signal="canary_failed",
        operator=Operator.EQ,
        threshold=True,
        cooldown=timedelta(hours=1),
        action=TriggerAction.REDEPLOY,
    )


@pytest.fixture
def empty_state() -> EvaluationState:
    return EvaluationState()
