"""Unit tests for evaluation state."""

import json
from datetime import timedelta, timezone
from pathlib import Path

import pytest

from retraining.state import EvaluationState, StateStore, StateStoreError


def test_state_starts_empty(empty_state) -> None:
    assert dict(empty_state.last_fired) == {}
    assert empty_state.last_fired_at("anything") is None


def test_with_fired_returns_new_state(empty_state, t0) -> None:
    updated = empty_state.with_fired(["a", "b"], t0)

    assert updated.last_fired_at("a") == t0
    assert updated.last_fired_at("b") == t0
    assert empty_state.last_fired_at("a") is None


def test_with_fired_keeps_other_rules(t0) -> None:
    state = EvaluationState({"a": t0})

    updated = state.with_fired(["b"], t0 + timedelta(hours=1))

    assert updated.last_fired_at("a") == t0
    assert updated.last_fired_at("b") == t0 + timedelta(hours=1)


def test_last_fired_is_read_only(t0) -> None:
    state = EvaluationState({"a": t0})

    with pytest.raises(TypeError):
        state.last_fired["a"] = t0 + timedelta(hours=1)


def test_state_survives_dict_conversion(t0) -> None:
    state = EvaluationState({"drift_detected": t0})

    assert state.to_dict() == {"last_fired": {"drift_detected": t0.isoformat()}}
    assert EvaluationState.from_dict(state.to_dict()) == state


def test_store_load_missing_file_returns_empty(tmp_path: Path) -> None:
    store = StateStore(tmp_path / "missing" / "state.json")

    assert store.load() == EvaluationState()


def test_store_save_and_load(tmp_path: Path, t0) -> None:
    store = StateStore(tmp_path / "nested" / "state.json")
    state = EvaluationState({"drift_detected": t0})

    store.save(state)

    assert store.load() == state
    assert json.loads(store.path.read_text())["last_fired"]["drift_detected"] == t0.isoformat()
    assert list(store.path.parent.glob("*.tmp")) == []


def test_store_rejects_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("not json")

    with pytest.raises(StateStoreError):
        StateStore(path).load()


def test_store_rejects_bad_timestamp(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"last_fired": {"drift_detected": "yesterday"}}))

    with pytest.raises(StateStoreError):
        StateStore(path).load()


def test_aware_timestamps_are_stored_as_local_time(t0) -> None:
    aware = t0.astimezone(timezone.utc)

    state = EvaluationState.from_dict({"last_fired": {"drift_detected": aware.isoformat()}})

    assert state.last_fired_at("drift_detected").tzinfo is None
    assert state.last_fired_at("drift_detected") == t0
