"""
Data Drift and Model Performance Monitoring

Monitors:
- Data drift (per-feature distribution changes)
- Model performance degradation
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.metrics import accuracy_score

from config import settings

logger = logging.getLogger(__name__)


class DriftDetector:
    """
    Detects drift between reference (training-time) data and current data.

    Numeric columns are compared with the two-sample Kolmogorov-Smirnov test,
    categorical columns with a chi-square test on category counts. The drift
    score is the share of compared columns whose p-value falls below the
    threshold.
    """

    def __init__(
            self,
            reference_data: pd.DataFrame,
            p_value_threshold: Optional[float] = None,
            columns: Optional[Sequence[str]] = None
    ):
        """
        Initialize drift detector.

        Args:
            reference_data: Baseline/training data for comparison
            p_value_threshold: A column drifts when its test p-value is below this
            columns: Columns to compare (default: all reference columns)
        """
        if reference_data.empty:
            raise ValueError("Reference data must not be empty")

        self.reference_data = reference_data
        self.p_value_threshold = (
            settings.DRIFT_P_VALUE_THRESHOLD if p_value_threshold is None else p_value_threshold
        )
        self.columns = list(columns) if columns is not None else list(reference_data.columns)

        logger.info(f"DriftDetector initialized with {len(reference_data)} reference samples")

    def _column_drift(self, reference: pd.Series, current: pd.Series) -> Dict[str, Any]:
        reference = reference.dropna()
        current = current.dropna()

        if reference.empty or current.empty:
            return {'stattest_name': 'none', 'statistic': None, 'p_value': None, 'drift_detected': False}

        if pd.api.types.is_numeric_dtype(reference) and pd.api.types.is_numeric_dtype(current):
            statistic, p_value = stats.ks_2samp(reference.to_numpy(), current.to_numpy())
            test_name = 'ks'
        else:
            categories = sorted(set(reference.astype(str)) | set(current.astype(str)))
            ref_counts = reference.astype(str).value_counts().reindex(categories, fill_value=0)
            cur_counts = current.astype(str).value_counts().reindex(categories, fill_value=0)
            if len(categories) < 2:
                return {'stattest_name': 'chi2', 'statistic': 0.0, 'p_value': 1.0, 'drift_detected': False}
            statistic, p_value, _, _ = stats.chi2_contingency(
                np.vstack([ref_counts.to_numpy(), cur_counts.to_numpy()])
            )
            test_name = 'chi2'

        return {
            'stattest_name': test_name,
            'statistic': float(statistic),
            'p_value': float(p_value),
            'drift_detected': bool(p_value < self.p_value_threshold)
        }

    def detect_data_drift(self, current_data: pd.DataFrame) -> Dict[str, Any]:
        """
        Detect data drift between reference and current data.

        Args:
            current_data: New production data

        Returns:
            Dictionary with drift score and per-column results
        """
        logger.info(f"Detecting data drift on {len(current_data)} samples...")

        drift_by_columns = {}
        for column in self.columns:
            if column not in current_data.columns:
                logger.warning(f"Column '{column}' missing from current data, not compared")
                continue
            drift_by_columns[column] = self._column_drift(
                self.reference_data[column], current_data[column]
            )

        compared = len(drift_by_columns)
        drifted = sum(1 for result in drift_by_columns.values() if result['drift_detected'])
        drift_score = drifted / compared if compared else 0.0

        drift_summary = {
            'timestamp': datetime.now().isoformat(),
            'drift_score': drift_score,
            'number_of_columns': compared,
            'number_of_drifted_columns': drifted,
            'drift_by_columns': drift_by_columns
        }

        logger.info("Data drift analysis complete:")
        logger.info(f"  Drift score: {drift_score:.2%}")
        logger.info(f"  Drifted columns: {drifted}/{compared}")

        return drift_summary


class ModelPerformanceMonitor:
    """
    Monitors model accuracy over time to detect degradation.
    """

    def __init__(self, baseline_accuracy: Optional[float] = None):
        """
        Initialize performance monitor.

        Args:
            baseline_accuracy: Reference accuracy from validation/test set
        """
        self.baseline_accuracy = baseline_accuracy
        self.performance_history: List[Dict[str, Any]] = []

        logger.info(f"Performance monitor initialized with baseline: {baseline_accuracy}")

    def check_performance(self, y_true: Sequence, y_pred: Sequence) -> Dict[str, Any]:
        """
        Score predictions against labels.

        Args:
            y_true: Ground-truth labels
            y_pred: Model predictions

        Returns:
            Dictionary with accuracy and degradation against the baseline
        """
        if len(y_true) == 0:
            raise ValueError("Cannot score an empty set of predictions")

        accuracy = float(accuracy_score(y_true, y_pred))
        degradation = None
        if self.baseline_accuracy:
            degradation = (self.baseline_accuracy - accuracy) / self.baseline_accuracy
            if degradation > 0:
                logger.warning(f"⚠️  Accuracy degraded: {self.baseline_accuracy:.4f} → "
                               f"{accuracy:.4f} ({degradation:.2%})")

        result = {
            'timestamp': datetime.now().isoformat(),
            'accuracy': accuracy,
            'samples': len(y_true),
            'degradation_pct': degradation
        }
        self.performance_history.append(result)
        return result

    def get_performance_trend(self) -> List[float]:
        """Accuracy values over time."""
        return [entry['accuracy'] for entry in self.performance_history]


def generate_sample_drift_data(
        reference_data: pd.DataFrame,
        drift_magnitude: float = 0.5
) -> pd.DataFrame:
    """
    Generate synthetic drifted data for testing.

    Args:
        reference_data: Original data
        drift_magnitude: Mean shift in units of each column's standard deviation

    Returns:
        Drifted dataframe
    """
    drifted_data = reference_data.copy()

    numeric_cols = drifted_data.select_dtypes(include=[np.number]).columns
    for col in numeric_cols:
        if col != 'target':  # Don't drift the target
            mean_shift = drifted_data[col].std() * drift_magnitude
            drifted_data[col] = drifted_data[col] + mean_shift

    logger.info(f"Generated drifted data with magnitude {drift_magnitude}")

    return drifted_data
