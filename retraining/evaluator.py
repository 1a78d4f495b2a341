"""
Trigger Evaluator

Decides whether current signals warrant a retraining or redeployment request.
Rules are independent and combined with OR semantics: the decision triggers
when at least one rule fires. A rule fires when its predicate holds and its
cooldown has elapsed since it last fired.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple, Union

from .rules import RuleConfigurationError, TriggerAction, TriggerRule
from .signals import Signal, SignalValue, normalize_signals, to_local_naive
from .state import EvaluationState, StateStore

logger = logging.getLogger(__name__)


class RuleOutcome(Enum):
    """Result of evaluating a single rule."""
    FIRED = "fired"
    COOLDOWN = "cooldown"
    NOT_MET = "not_met"
    SKIPPED = "skipped"
    DISABLED = "disabled"


@dataclass(frozen=True)
class RuleResult:
    """How one rule fared in an evaluation."""
    rule: str
    signal: str
    outcome: RuleOutcome
    value: Optional[SignalValue] = None
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rule': self.rule,
            'signal': self.signal,
            'outcome': self.outcome.value,
            'value': self.value,
            'detail': self.detail
        }


@dataclass(frozen=True)
class TriggerDecision:
    """Output of one evaluation. ``state`` is the state after this evaluation."""
    should_trigger: bool
    fired_rules: Tuple[str, ...]
    skipped_rules: Tuple[str, ...]
    results: Tuple[RuleResult, ...]
    rationale: str
    evaluated_at: datetime
    actions: FrozenSet[TriggerAction]
    state: EvaluationState

    def to_dict(self) -> Dict[str, Any]:
        return {
            'should_trigger': self.should_trigger,
            'fired_rules': list(self.fired_rules),
            'skipped_rules': list(self.skipped_rules),
            'actions': sorted(action.value for action in self.actions),
            'rationale': self.rationale,
            'evaluated_at': self.evaluated_at.isoformat(),
            'results': [result.to_dict() for result in self.results]
        }


def _format_remaining(remaining: timedelta) -> str:
    hours = remaining.total_seconds() / 3600
    return f"{hours:.2f}h"


def _evaluate_rule(
    rule: TriggerRule,
    signals: Mapping[str, Signal],
    state: EvaluationState,
    now: datetime
) -> RuleResult:
    if not rule.enabled:
        return RuleResult(rule.name, rule.signal, RuleOutcome.DISABLED, detail="rule disabled")

    signal = signals.get(rule.signal)
    if signal is None:
        logger.info(f"Rule '{rule.name}' skipped: insufficient data (no '{rule.signal}' signal)")
        return RuleResult(
            rule.name, rule.signal, RuleOutcome.SKIPPED,
            detail=f"insufficient data: signal '{rule.signal}' missing"
        )

    if not rule.check(signal.value):
        return RuleResult(
            rule.name, rule.signal, RuleOutcome.NOT_MET, signal.value,
            detail=f"{rule.expression} is false (value={signal.value})"
        )

    last_fired = state.last_fired_at(rule.name)
    if last_fired is not None:
        elapsed = now - last_fired
        if elapsed < rule.cooldown:
            return RuleResult(
                rule.name, rule.signal, RuleOutcome.COOLDOWN, signal.value,
                detail=(f"{rule.expression} holds (value={signal.value}) but cooldown "
                        f"has {_format_remaining(rule.cooldown - elapsed)} left")
            )

    logger.warning(f"Rule '{rule.name}' fired: {rule.expression} (value={signal.value})")
    return RuleResult(
        rule.name, rule.signal, RuleOutcome.FIRED, signal.value,
        detail=f"{rule.expression} holds (value={signal.value})"
    )


def _build_rationale(results: Sequence[RuleResult]) -> str:
    if not results:
        return "No rules configured"
    return "; ".join(f"{result.rule}: {result.outcome.value} ({result.detail})" for result in results)


def evaluate(
    signals: Mapping[str, Union[Signal, SignalValue, None]],
    rules: Sequence[TriggerRule],
    state: EvaluationState,
    now: Optional[datetime] = None
) -> TriggerDecision:
    """
    Evaluate trigger rules against a snapshot of signals.

    The input state is not modified; the state reflecting any firings is
    returned as ``decision.state``.

    Args:
        signals: Mapping of signal name to Signal or raw value
        rules: Configured trigger rules
        state: Last firing times of each rule
        now: Evaluation timestamp (default: current time)

    Returns:
        TriggerDecision

    Raises:
        RuleConfigurationError: a rule cannot be applied to its signal value
    """
    now = to_local_naive(now) or datetime.now()
    current = normalize_signals(signals, now=now)

    results: List[RuleResult] = []
    for rule in rules:
        try:
            results.append(_evaluate_rule(rule, current, state, now))
        except RuleConfigurationError as e:
            logger.error(f"Configuration error in rule '{rule.name}': {e}")
            raise

    fired = tuple(r.rule for r in results if r.outcome is RuleOutcome.FIRED)
    skipped = tuple(r.rule for r in results if r.outcome is RuleOutcome.SKIPPED)
    actions = frozenset(rule.action for rule in rules if rule.name in fired)

    next_state = state.with_fired(fired, now) if fired else state

    return TriggerDecision(
        should_trigger=bool(fired),
        fired_rules=fired,
        skipped_rules=skipped,
        results=tuple(results),
        rationale=_build_rationale(results),
        evaluated_at=now,
        actions=actions,
        state=next_state
    )


class TriggerEvaluator:
    """
    Keeps evaluation state across calls.

    State updates are serialized with a lock so concurrent callers never lose
    a ``last_fired`` update.
    """

    def __init__(
        self,
        rules: Sequence[TriggerRule],
        state: Optional[EvaluationState] = None,
        state_store: Optional[StateStore] = None
    ):
        """
        Initialize evaluator.

        Args:
            rules: Trigger rules to evaluate
            state: Initial state (default: loaded from state_store, else empty)
            state_store: Optional store the state is saved to after each firing
        """
        self.rules = list(rules)
        self.state_store = state_store
        if state is None:
            state = state_store.load() if state_store else EvaluationState()
        self._state = state
        self._lock = threading.Lock()

        logger.info(f"TriggerEvaluator initialized with {len(self.rules)} rules")

    @property
    def state(self) -> EvaluationState:
        with self._lock:
            return self._state

    def _replace_state(self, state: EvaluationState):
        # Caller holds the lock. Memory only changes once the store accepted it.
        if self.state_store:
            self.state_store.save(state)
        self._state = state

    def evaluate(
        self,
        signals: Mapping[str, Union[Signal, SignalValue, None]],
        now: Optional[datetime] = None,
        commit: bool = True
    ) -> TriggerDecision:
        """
        Evaluate signals against the rules.

        Args:
            signals: Mapping of signal name to Signal or raw value
            now: Evaluation timestamp (default: current time)
            commit: Record firings right away; with False, call ``commit``
                once the request has been handed off

        Returns:
            TriggerDecision
        """
        with self._lock:
            decision = evaluate(signals, self.rules, self._state, now=now)
            if commit and decision.should_trigger:
                self._replace_state(
                    self._state.with_fired(decision.fired_rules, decision.evaluated_at)
                )
        return decision

    def commit(self, decision: TriggerDecision):
        """Record the firings of a decision evaluated with ``commit=False``."""
        if not decision.should_trigger:
            return
        with self._lock:
            self._replace_state(
                self._state.with_fired(decision.fired_rules, decision.evaluated_at)
            )

    def reset(self):
        """Forget all firing history."""
        with self._lock:
            self._replace_state(EvaluationState())
        logger.info("Evaluation state reset")
