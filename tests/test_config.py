"""Unit tests for configuration."""

from config import Settings


def test_settings_defaults() -> None:
    config = Settings()

    assert config.PROJECT_NAME == "retraining-trigger"
    assert config.DEFAULT_COOLDOWN_HOURS == 24.0
    assert config.RULES_PATH is None
    assert config.STATE_PATH.name == "evaluation_state.json"
    assert config.ENABLE_MLFLOW_TRACKING is False


def test_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("DEFAULT_COOLDOWN_HOURS", "6")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    config = Settings()

    assert config.DEFAULT_COOLDOWN_HOURS == 6.0
    assert config.LOG_LEVEL == "DEBUG"


def test_create_directories(tmp_path) -> None:
    config = Settings(STATE_DIR=tmp_path / "state", JOBS_DIR=tmp_path / "jobs")

    config.create_directories()

    assert (tmp_path / "state").is_dir()
    assert (tmp_path / "jobs").is_dir()
