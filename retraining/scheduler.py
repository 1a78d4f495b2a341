"""
Automated Retraining Scheduler

Periodically collects signals, evaluates trigger rules and hands triggering
decisions to the training/deployment pipeline:
- Rule-based triggers (new data, performance, drift, elapsed time)
- Manual triggers
"""
import json
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import schedule

from config import settings
from .evaluator import TriggerDecision, TriggerEvaluator
from .rules import TriggerAction
from .signals import normalize_signals
from .tracking import log_decision

logger = logging.getLogger(__name__)

SignalProvider = Callable[[], Mapping[str, Any]]
TriggerHandler = Callable[["RetrainingJob", Optional[TriggerDecision]], Any]


class RetrainingTrigger(Enum):
    """Reasons for requesting retraining."""
    RULE = "rule"
    MANUAL = "manual"


@dataclass
class SchedulerConfig:
    """Configuration for the retraining scheduler."""
    model_name: str
    check_interval_seconds: int = settings.CHECK_INTERVAL_SECONDS
    jobs_dir: Path = settings.JOBS_DIR
    enable_notifications: bool = True

    def to_dict(self) -> Dict:
        return {
            'model_name': self.model_name,
            'check_interval_seconds': self.check_interval_seconds,
            'jobs_dir': str(self.jobs_dir),
            'enable_notifications': self.enable_notifications
        }


@dataclass
class RetrainingJob:
    """A retraining/redeployment request handed to the pipeline."""
    job_id: str
    model_name: str
    trigger: RetrainingTrigger
    reason: str
    requested_at: datetime
    actions: List[TriggerAction] = field(default_factory=list)
    fired_rules: List[str] = field(default_factory=list)
    status: str = "requested"  # requested, dispatched, failed
    dispatched_at: Optional[datetime] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'job_id': self.job_id,
            'model_name': self.model_name,
            'trigger': self.trigger.value,
            'reason': self.reason,
            'requested_at': self.requested_at.isoformat(),
            'actions': [action.value for action in self.actions],
            'fired_rules': list(self.fired_rules),
            'status': self.status,
            'dispatched_at': self.dispatched_at.isoformat() if self.dispatched_at else None,
            'error': self.error
        }


class RetrainingScheduler:
    """
    Drives a TriggerEvaluator on a schedule.

    Features:
    - Periodic signal evaluation
    - Hand-off of triggering decisions to the pipeline
    - Manual triggers
    - Job history and reports
    """

    def __init__(
        self,
        config: SchedulerConfig,
        evaluator: TriggerEvaluator,
        signal_provider: SignalProvider,
        on_trigger: Optional[TriggerHandler] = None
    ):
        """
        Initialize retraining scheduler.

        Args:
            config: Scheduler configuration
            evaluator: Evaluator holding rules and state
            signal_provider: Function that returns current signal values
            on_trigger: Function that starts training/deployment for a job
        """
        self.config = config
        self.evaluator = evaluator
        self.signal_provider = signal_provider
        self.on_trigger = on_trigger

        self.jobs_dir = Path(config.jobs_dir)
        self.jobs_dir.mkdir(parents=True, exist_ok=True)

        self.job_history: List[RetrainingJob] = []
        self.last_decision: Optional[TriggerDecision] = None
        self.scheduler = schedule.Scheduler()
        self.monitoring_thread: Optional[threading.Thread] = None
        self.is_monitoring = False
        self._stop_event = threading.Event()

        logger.info(f"RetrainingScheduler initialized for model: {config.model_name}")

    def _new_job_id(self, at: datetime) -> str:
        return f"{self.config.model_name}_{at.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"

    def run_once(self, now: Optional[datetime] = None) -> Tuple[TriggerDecision, Optional[RetrainingJob]]:
        """
        Collect signals, evaluate rules and dispatch a job if triggered.

        Args:
            now: Evaluation timestamp (default: current time)

        Returns:
            Tuple of (decision, job or None)
        """
        now = now or datetime.now()
        signals = normalize_signals(self.signal_provider(), now=now)
        logger.info(f"Evaluating {len(signals)} signals for {self.config.model_name}")

        # Firings are committed only after the pipeline accepted the job.
        decision = self.evaluator.evaluate(signals, now=now, commit=False)
        self.last_decision = decision
        log_decision(decision, model_name=self.config.model_name, signals=signals)

        if not decision.should_trigger:
            logger.info(f"No retraining needed: {decision.rationale}")
            return decision, None

        job = RetrainingJob(
            job_id=self._new_job_id(now),
            model_name=self.config.model_name,
            trigger=RetrainingTrigger.RULE,
            reason=decision.rationale,
            requested_at=now,
            actions=sorted(decision.actions, key=lambda a: a.value),
            fired_rules=list(decision.fired_rules)
        )
        self._dispatch(job, decision)
        self.evaluator.commit(decision)
        return decision, job

    def trigger_manual(self, reason: str, action: TriggerAction = TriggerAction.RETRAIN) -> RetrainingJob:
        """
        Request retraining regardless of rules.

        Args:
            reason: Detailed explanation
            action: What the pipeline should do

        Returns:
            RetrainingJob instance
        """
        now = datetime.now()
        job = RetrainingJob(
            job_id=self._new_job_id(now),
            model_name=self.config.model_name,
            trigger=RetrainingTrigger.MANUAL,
            reason=reason,
            requested_at=now,
            actions=[action]
        )
        self._dispatch(job, None)
        return job

    def _dispatch(self, job: RetrainingJob, decision: Optional[TriggerDecision]):
        self.job_history.append(job)

        logger.info(f"Retraining requested: {job.trigger.value}")
        logger.info(f"  Reason: {job.reason}")
        logger.info(f"  Job ID: {job.job_id}")

        try:
            if self.on_trigger is not None:
                self.on_trigger(job, decision)
            job.status = "dispatched"
            job.dispatched_at = datetime.now()
        except Exception as e:
            job.status = "failed"
            job.error = str(e)
            logger.error(f"Dispatching job {job.job_id} failed: {e}")
            raise
        finally:
            self._save_job(job)
            if self.config.enable_notifications:
                self._send_notification(job)

    def _save_job(self, job: RetrainingJob):
        """Save job record to file."""
        job_file = self.jobs_dir / f"{job.job_id}.json"
        with open(job_file, 'w') as f:
            json.dump(job.to_dict(), f, indent=2)

    def _send_notification(self, job: RetrainingJob):
        """Send notification about job status."""
        logger.info(f"NOTIFICATION: Retraining job {job.job_id} - Status: {job.status}")

    def _scheduled_evaluation_task(self):
        try:
            self.run_once()
        except Exception as e:
            logger.error(f"Scheduled evaluation failed: {e}")

    def schedule_periodic_evaluation(self):
        """Register the periodic evaluation job."""
        self.scheduler.clear()
        self.scheduler.every(self.config.check_interval_seconds).seconds.do(
            self._scheduled_evaluation_task
        )
        logger.info(f"Scheduled trigger evaluation every {self.config.check_interval_seconds}s")

    def start_monitoring(self, poll_interval_seconds: float = 1.0):
        """
        Start periodic evaluation in a background thread.

        Args:
            poll_interval_seconds: How often pending scheduled jobs are checked
        """
        if self.is_monitoring:
            logger.warning("Monitoring already active")
            return

        self.schedule_periodic_evaluation()
        self.is_monitoring = True
        self._stop_event.clear()

        def monitor_loop():
            while not self._stop_event.is_set():
                self.scheduler.run_pending()
                self._stop_event.wait(poll_interval_seconds)

        self.monitoring_thread = threading.Thread(target=monitor_loop, daemon=True)
        self.monitoring_thread.start()

        logger.info(f"Monitoring started (check interval: {self.config.check_interval_seconds}s)")

    def stop_monitoring(self):
        """Stop periodic evaluation."""
        self.is_monitoring = False
        self._stop_event.set()
        if self.monitoring_thread:
            self.monitoring_thread.join(timeout=5)
            self.monitoring_thread = None
        self.scheduler.clear()
        logger.info("Monitoring stopped")

    def get_job_history(self, limit: int = 10) -> List[Dict]:
        """
        Get recent job history.

        Args:
            limit: Number of recent jobs to return

        Returns:
            List of job dictionaries
        """
        return [job.to_dict() for job in self.job_history[-limit:]]

    def get_job_status(self, job_id: str) -> Optional[Dict]:
        """
        Get status of a specific job.

        Args:
            job_id: Job identifier

        Returns:
            Job dictionary or None
        """
        for job in self.job_history:
            if job.job_id == job_id:
                return job.to_dict()
        return None

    def generate_report(self) -> str:
        """
        Generate retraining summary report.

        Returns:
            Path to generated report
        """
        report_lines = [
            f"# Retraining Trigger Report: {self.config.model_name}",
            f"\nGenerated: {datetime.now().isoformat()}",
            "\n## Rules",
        ]
        for rule in self.evaluator.rules:
            last_fired = self.evaluator.state.last_fired_at(rule.name)
            report_lines.append(
                f"- {rule.name}: `{rule.expression}`, cooldown {rule.cooldown}, "
                f"last fired {last_fired.isoformat() if last_fired else 'never'}"
            )

        if self.last_decision is not None:
            report_lines.extend([
                "\n## Last Decision",
                f"- Evaluated: {self.last_decision.evaluated_at.isoformat()}",
                f"- Should trigger: {self.last_decision.should_trigger}",
                f"- Rationale: {self.last_decision.rationale}",
            ])

        report_lines.append("\n## Job History (Last 10)\n")
        for job in self.job_history[-10:]:
            report_lines.extend([
                f"### {job.job_id}",
                f"- Status: {job.status}",
                f"- Trigger: {job.trigger.value}",
                f"- Actions: {', '.join(a.value for a in job.actions)}",
                f"- Reason: {job.reason}",
                f"- Error: {job.error}" if job.error else "",
                ""
            ])

        report_text = "\n".join(report_lines)
        report_file = self.jobs_dir / f"report_{datetime.now().strftime('%Y%m%d_%H%M%S')}.md"

        with open(report_file, 'w') as f:
            f.write(report_text)

        logger.info(f"Report generated: {report_file}")
        return str(report_file)
