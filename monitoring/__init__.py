"""
Monitoring module for the Retraining Trigger service

Provides drift detection, model performance monitoring and signal collection.
"""
from .drift_detector import DriftDetector, ModelPerformanceMonitor, generate_sample_drift_data
from .collector import SignalCollector

__all__ = ['DriftDetector', 'ModelPerformanceMonitor', 'generate_sample_drift_data', 'SignalCollector']
