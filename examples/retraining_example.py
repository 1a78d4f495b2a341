"""
Retraining Trigger Example

Demonstrates:
1. Cooldown-limited drift trigger
2. Signals collected from monitoring data
3. Scheduler hand-off to a training pipeline
4. Manual triggers and reports
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import logging
from datetime import datetime, timedelta

import pandas as pd
from sklearn.datasets import make_classification

from monitoring.collector import SignalCollector
from monitoring.drift_detector import DriftDetector, generate_sample_drift_data
from retraining.evaluator import TriggerEvaluator, evaluate
from retraining.rules import Operator, TriggerRule, default_rules
from retraining.scheduler import RetrainingScheduler, SchedulerConfig
from retraining.state import EvaluationState

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_data(n_samples=1000, drift=0.0):
    """Create synthetic feature data with optional drift."""
    X, _ = make_classification(
        n_samples=n_samples,
        n_features=10,
        n_informative=6,
        random_state=42
    )
    df = pd.DataFrame(X, columns=[f'feature_{i}' for i in range(10)])

    if drift > 0:
        df = generate_sample_drift_data(df, drift_magnitude=drift)

    return df


def demo_cooldown():
    """A drift rule fires, cools down for a day, then fires again."""
    logger.info("\n" + "=" * 60)
    logger.info("DEMO 1: Drift Trigger with Cooldown")
    logger.info("=" * 60)

    rules = [TriggerRule(
        name="drift_detected",
        signal="drift_score",
        operator=Operator.GT,
        threshold=0.1,
        cooldown=timedelta(hours=24)
    )]
    state = EvaluationState()
    start = datetime(2026, 1, 1)

    for offset_hours, drift in [(0, 0.15), (1, 0.2), (25, 0.2)]:
        decision = evaluate({"drift_score": drift}, rules, state, now=start + timedelta(hours=offset_hours))
        state = decision.state
        logger.info(f"  T+{offset_hours}h drift={drift}: should_trigger={decision.should_trigger}")
        logger.info(f"    {decision.rationale}")


def demo_collected_signals():
    """Signals computed from production data drive the default rules."""
    logger.info("\n" + "=" * 60)
    logger.info("DEMO 2: Signals from Monitoring Data")
    logger.info("=" * 60)

    collector = SignalCollector(drift_detector=DriftDetector(create_data()))
    now = datetime.now()
    signals = collector.collect(
        now=now,
        current_data=create_data(n_samples=500, drift=0.5),
        y_true=[1, 0, 1, 1, 0, 1, 0, 0],
        y_pred=[1, 0, 0, 1, 1, 1, 0, 1],
        last_run_at=now - timedelta(days=3)
    )

    decision = evaluate(signals, default_rules(), EvaluationState(), now=now)
    logger.info(f"  Should trigger: {decision.should_trigger}")
    logger.info(f"  Fired rules: {list(decision.fired_rules)}")
    logger.info(f"  Skipped rules: {list(decision.skipped_rules)}")


def demo_scheduler():
    """The scheduler hands triggering decisions to a pipeline callback."""
    logger.info("\n" + "=" * 60)
    logger.info("DEMO 3: Scheduler Hand-off")
    logger.info("=" * 60)

    def start_training(job, decision):
        logger.info(f"  Pipeline received job {job.job_id} ({', '.join(a.value for a in job.actions)})")

    scheduler = RetrainingScheduler(
        config=SchedulerConfig(model_name="demo_model"),
        evaluator=TriggerEvaluator(default_rules()),
        signal_provider=lambda: {"drift_score": 0.3, "model_accuracy": 0.92},
        on_trigger=start_training
    )

    scheduler.run_once()
    scheduler.run_once()  # drift rule is cooling down
    scheduler.trigger_manual("User-initiated retraining for testing")

    report = scheduler.generate_report()
    logger.info(f"  Report: {report}")


def main():
    """Run all retraining trigger demonstrations."""
    demo_cooldown()
    demo_collected_signals()
    demo_scheduler()

    logger.info("\n" + "=" * 60)
    logger.info("ALL DEMONSTRATIONS COMPLETE!")
    logger.info("=" * 60)
    logger.info("\nGenerated files:")
    logger.info("  - retraining_jobs/*.json (job records)")
    logger.info("  - retraining_jobs/*.md (reports)")


if __name__ == "__main__":
    main()
