"""Unit tests for the trigger evaluator."""

import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from retraining.evaluator import RuleOutcome, TriggerEvaluator, evaluate
from retraining.rules import Operator, RuleConfigurationError, TriggerAction, TriggerRule
from retraining.signals import Signal
from retraining.state import EvaluationState, StateStore


def test_no_predicate_true_means_no_trigger(drift_rule, accuracy_rule, empty_state, t0) -> None:
    decision = evaluate(
        {"drift_score": 0.02, "model_accuracy": 0.95},
        [drift_rule, accuracy_rule],
        empty_state,
        now=t0,
    )

    assert decision.should_trigger is False
    assert decision.fired_rules == ()
    assert [r.outcome for r in decision.results] == [RuleOutcome.NOT_MET, RuleOutcome.NOT_MET]
    assert decision.state == empty_state


def test_drift_cooldown_example(drift_rule, empty_state, t0) -> None:
    first = evaluate({"drift_score": 0.15}, [drift_rule], empty_state, now=t0)
    assert first.should_trigger is True
    assert first.fired_rules == ("drift_detected",)
    assert first.state.last_fired_at("drift_detected") == t0

    second = evaluate({"drift_score": 0.2}, [drift_rule], first.state, now=t0 + timedelta(hours=1))
    assert second.should_trigger is False
    assert second.results[0].outcome is RuleOutcome.COOLDOWN
    assert "cooldown" in second.rationale
    assert second.state.last_fired_at("drift_detected") == t0

    third = evaluate({"drift_score": 0.2}, [drift_rule], second.state, now=t0 + timedelta(hours=25))
    assert third.should_trigger is True
    assert third.state.last_fired_at("drift_detected") == t0 + timedelta(hours=25)


def test_rule_fires_exactly_when_cooldown_elapses(drift_rule, t0) -> None:
    state = EvaluationState({"drift_detected": t0})

    just_before = evaluate({"drift_score": 0.5}, [drift_rule], state, now=t0 + timedelta(hours=24, seconds=-1))
    at_boundary = evaluate({"drift_score": 0.5}, [drift_rule], state, now=t0 + timedelta(hours=24))

    assert just_before.should_trigger is False
    assert at_boundary.should_trigger is True


def test_evaluation_is_idempotent(drift_rule, accuracy_rule, t0) -> None:
    state = EvaluationState({"performance_degraded": t0 - timedelta(hours=2)})
    signals = {"drift_score": 0.3, "model_accuracy": 0.6}

    first = evaluate(signals, [drift_rule, accuracy_rule], state, now=t0)
    second = evaluate(signals, [drift_rule, accuracy_rule], state, now=t0)

    assert first == second
    assert first.to_dict() == second.to_dict()


def test_input_state_is_not_mutated(drift_rule, empty_state, t0) -> None:
    decision = evaluate({"drift_score": 0.3}, [drift_rule], empty_state, now=t0)

    assert decision.state is not empty_state
    assert empty_state.last_fired_at("drift_detected") is None


def test_missing_signal_skips_rule(drift_rule, accuracy_rule, empty_state, t0) -> None:
    decision = evaluate({"drift_score": 0.02}, [drift_rule, accuracy_rule], empty_state, now=t0)

    assert decision.should_trigger is False
    assert decision.skipped_rules == ("performance_degraded",)
    skipped = decision.results[1]
    assert skipped.outcome is RuleOutcome.SKIPPED
    assert "insufficient data" in skipped.detail
    assert "performance_degraded: skipped" in decision.rationale


def test_missing_signal_does_not_block_other_rules(drift_rule, accuracy_rule, empty_state, t0) -> None:
    decision = evaluate({"drift_score": 0.4}, [drift_rule, accuracy_rule], empty_state, now=t0)

    assert decision.should_trigger is True
    assert decision.fired_rules == ("drift_detected",)
    assert decision.skipped_rules == ("performance_degraded",)


@pytest.mark.parametrize("value", [None, float("nan")])
def test_null_values_count_as_missing(drift_rule, empty_state, t0, value) -> None:
    decision = evaluate({"drift_score": value}, [drift_rule], empty_state, now=t0)

    assert decision.skipped_rules == ("drift_detected",)


def test_multiple_rules_fire_together(drift_rule, accuracy_rule, redeploy_rule, empty_state, t0) -> None:
    decision = evaluate(
        {"drift_score": 0.4, "model_accuracy": 0.5, "canary_failed": True},
        [drift_rule, accuracy_rule, redeploy_rule],
        empty_state,
        now=t0,
    )

    assert decision.fired_rules == ("drift_detected", "performance_degraded", "canary_failed")
    assert decision.actions == frozenset({TriggerAction.RETRAIN, TriggerAction.REDEPLOY})
    assert all(decision.state.last_fired_at(name) == t0 for name in decision.fired_rules)


def test_type_mismatch_is_a_configuration_error(drift_rule, empty_state, t0) -> None:
    with pytest.raises(RuleConfigurationError, match="drift_detected"):
        evaluate({"drift_score": "high"}, [drift_rule], empty_state, now=t0)


def test_disabled_rule_never_fires(empty_state, t0) -> None:
    rule = TriggerRule(name="off", signal="drift_score", operator=Operator.GT, threshold=0.1, enabled=False)

    decision = evaluate({"drift_score": 0.9}, [rule], empty_state, now=t0)

    assert decision.should_trigger is False
    assert decision.results[0].outcome is RuleOutcome.DISABLED


def test_zero_cooldown_fires_every_time(t0) -> None:
    rule = TriggerRule(name="r", signal="s", operator=Operator.GTE, threshold=1, cooldown=timedelta(0))
    state = EvaluationState()

    for minutes in range(3):
        decision = evaluate({"s": 1}, [rule], state, now=t0 + timedelta(minutes=minutes))
        assert decision.should_trigger is True
        state = decision.state


def test_signal_objects_are_accepted(drift_rule, empty_state, t0) -> None:
    signal = Signal(name="drift_score", value=0.3, timestamp=t0 - timedelta(minutes=5))

    decision = evaluate({"drift_score": signal}, [drift_rule], empty_state, now=t0)

    assert decision.should_trigger is True
    assert decision.results[0].value == 0.3


def test_signal_name_must_match_key(drift_rule, empty_state, t0) -> None:
    signal = Signal(name="model_accuracy", value=0.3, timestamp=t0)

    with pytest.raises(ValueError, match="supplied under key"):
        evaluate({"drift_score": signal}, [drift_rule], empty_state, now=t0)


def test_no_rules(empty_state, t0) -> None:
    decision = evaluate({"drift_score": 0.5}, [], empty_state, now=t0)

    assert decision.should_trigger is False
    assert decision.rationale == "No rules configured"


def test_decision_to_dict(drift_rule, empty_state, t0) -> None:
    payload = evaluate({"drift_score": 0.3}, [drift_rule], empty_state, now=t0).to_dict()

    assert payload["should_trigger"] is True
    assert payload["fired_rules"] == ["drift_detected"]
    assert payload["actions"] == ["retrain"]
    assert payload["evaluated_at"] == t0.isoformat()
    assert payload["results"][0]["outcome"] == "fired"
    assert "state" not in payload


def test_evaluator_keeps_state_between_calls(drift_rule, t0) -> None:
    evaluator = TriggerEvaluator([drift_rule])

    assert evaluator.evaluate({"drift_score": 0.15}, now=t0).should_trigger is True
    assert evaluator.evaluate({"drift_score": 0.2}, now=t0 + timedelta(hours=1)).should_trigger is False
    assert evaluator.evaluate({"drift_score": 0.2}, now=t0 + timedelta(hours=25)).should_trigger is True
    assert evaluator.state.last_fired_at("drift_detected") == t0 + timedelta(hours=25)


def test_evaluator_persists_state(drift_rule, t0, tmp_path: Path) -> None:
    store = StateStore(tmp_path / "state.json")
    TriggerEvaluator([drift_rule], state_store=store).evaluate({"drift_score": 0.3}, now=t0)

    restored = TriggerEvaluator([drift_rule], state_store=store)

    assert restored.state.last_fired_at("drift_detected") == t0
    assert restored.evaluate({"drift_score": 0.3}, now=t0 + timedelta(hours=2)).should_trigger is False


def test_evaluator_reset(drift_rule, t0) -> None:
    evaluator = TriggerEvaluator([drift_rule])
    evaluator.evaluate({"drift_score": 0.3}, now=t0)

    evaluator.reset()

    assert evaluator.state == EvaluationState()
    assert evaluator.evaluate({"drift_score": 0.3}, now=t0).should_trigger is True


def test_concurrent_evaluations_fire_once(drift_rule, t0) -> None:
    evaluator = TriggerEvaluator([drift_rule])
    decisions = []
    lock = threading.Lock()
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        decision = evaluator.evaluate({"drift_score": 0.5}, now=t0)
        with lock:
            decisions.append(decision)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(d.should_trigger for d in decisions) == 1


class FailingStateStore(StateStore):
    def save(self, state: EvaluationState):
        raise OSError("disk full")


def test_failed_save_leaves_state_unchanged(drift_rule, t0, tmp_path: Path) -> None:
    evaluator = TriggerEvaluator([drift_rule], state_store=FailingStateStore(tmp_path / "state.json"))

    with pytest.raises(OSError, match="disk full"):
        evaluator.evaluate({"drift_score": 0.3}, now=t0)

    assert evaluator.state.last_fired_at("drift_detected") is None


def test_uncommitted_decision_keeps_state_until_commit(drift_rule, t0) -> None:
    evaluator = TriggerEvaluator([drift_rule])

    decision = evaluator.evaluate({"drift_score": 0.3}, now=t0, commit=False)

    assert decision.should_trigger is True
    assert evaluator.state.last_fired_at("drift_detected") is None

    evaluator.commit(decision)

    assert evaluator.state.last_fired_at("drift_detected") == t0


def test_aware_evaluation_time_against_naive_state(drift_rule, t0) -> None:
    state = EvaluationState({"drift_detected": t0})
    aware_now = (t0 + timedelta(hours=1)).astimezone(timezone.utc)

    decision = evaluate({"drift_score": 0.3}, [drift_rule], state, now=aware_now)

    assert decision.results[0].outcome is RuleOutcome.COOLDOWN
    assert decision.evaluated_at.tzinfo is None
    assert decision.evaluated_at == t0 + timedelta(hours=1)


def test_aware_state_against_naive_evaluation_time(drift_rule, t0) -> None:
    state = EvaluationState({"drift_detected": t0.astimezone(timezone.utc)})

    decision = evaluate({"drift_score": 0.3}, [drift_rule], state, now=t0 + timedelta(hours=25))

    assert decision.should_trigger is True
