"""
Assemble trigger signals from monitoring inputs
"""
import logging
from datetime import datetime
from typing import Dict, Optional, Sequence

import pandas as pd

from retraining.signals import (
    DATA_FRESHNESS_HOURS,
    DRIFT_SCORE,
    HOURS_SINCE_LAST_RUN,
    MODEL_ACCURACY,
    Signal,
)
from .drift_detector import DriftDetector, ModelPerformanceMonitor

logger = logging.getLogger(__name__)


def _hours_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() / 3600


class SignalCollector:
    """
    Builds the well-known trigger signals from whatever is available.

    Inputs that are not supplied produce no signal, so rules that depend on
    them are skipped by the evaluator.
    """

    def __init__(
        self,
        drift_detector: Optional[DriftDetector] = None,
        performance_monitor: Optional[ModelPerformanceMonitor] = None
    ):
        self.drift_detector = drift_detector
        self.performance_monitor = performance_monitor or ModelPerformanceMonitor()

    def collect(
        self,
        now: Optional[datetime] = None,
        current_data: Optional[pd.DataFrame] = None,
        y_true: Optional[Sequence] = None,
        y_pred: Optional[Sequence] = None,
        latest_data_at: Optional[datetime] = None,
        last_run_at: Optional[datetime] = None
    ) -> Dict[str, Signal]:
        """
        Collect signals.

        Args:
            now: Observation time (default: current time)
            current_data: Recent production data, compared for drift
            y_true: Labels for recent predictions
            y_pred: Recent predictions
            latest_data_at: When the newest data arrived
            last_run_at: When the model was last trained

        Returns:
            Dictionary of signal name to Signal
        """
        now = now or datetime.now()
        signals: Dict[str, Signal] = {}

        if current_data is not None and self.drift_detector is not None and not current_data.empty:
            summary = self.drift_detector.detect_data_drift(current_data)
            signals[DRIFT_SCORE] = Signal(DRIFT_SCORE, float(summary['drift_score']), now)

        if y_true is not None and y_pred is not None and len(y_true) > 0:
            result = self.performance_monitor.check_performance(y_true, y_pred)
            signals[MODEL_ACCURACY] = Signal(MODEL_ACCURACY, result['accuracy'], now)

        if latest_data_at is not None:
            signals[DATA_FRESHNESS_HOURS] = Signal(
                DATA_FRESHNESS_HOURS, _hours_between(latest_data_at, now), now
            )

        if last_run_at is not None:
            signals[HOURS_SINCE_LAST_RUN] = Signal(
                HOURS_SINCE_LAST_RUN, _hours_between(last_run_at, now), now
            )

        logger.info(f"Collected signals: {sorted(signals)}")
        return signals
