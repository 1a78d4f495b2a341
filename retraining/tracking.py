"""
Log trigger decisions to MLflow
"""
import logging
from typing import Mapping, Optional

import mlflow

from config import settings
from .evaluator import TriggerDecision
from .signals import Signal

logger = logging.getLogger(__name__)


def log_decision(
    decision: TriggerDecision,
    model_name: str = "default",
    signals: Optional[Mapping[str, Signal]] = None
) -> bool:
    """
    Log a trigger decision as an MLflow run.

    Tracking problems never fail the evaluation; they are logged and the
    function returns False.

    Args:
        decision: Decision to record
        model_name: Name of the monitored model
        signals: Signals the decision was made from

    Returns:
        True if the run was logged
    """
    if not settings.ENABLE_MLFLOW_TRACKING:
        return False

    try:
        mlflow.set_tracking_uri(settings.MLFLOW_TRACKING_URI)
        mlflow.set_experiment(settings.MLFLOW_EXPERIMENT_NAME)

        run_name = f"trigger_evaluation_{decision.evaluated_at.strftime('%Y%m%d_%H%M%S')}"
        with mlflow.start_run(run_name=run_name):
            mlflow.set_tag("model_name", model_name)
            mlflow.set_tag("monitoring_type", "retraining_trigger")

            mlflow.log_metric("should_trigger", int(decision.should_trigger))
            mlflow.log_metric("rules_fired", len(decision.fired_rules))
            mlflow.log_metric("rules_skipped", len(decision.skipped_rules))

            for signal in (signals or {}).values():
                mlflow.log_metric(f"signal_{signal.name}", float(signal.value))

            for rule_name in decision.fired_rules:
                mlflow.set_tag(f"fired.{rule_name}", "true")

            mlflow.log_dict(decision.to_dict(), "decision.json")

        logger.info("Trigger decision logged to MLflow")
        return True

    except Exception as e:
        logger.warning(f"Could not log to MLflow: {e}")
        return False
