"""
Automated Retraining module for the Retraining Trigger service

Decides when to request retraining or redeployment based on:
- New data availability
- Performance degradation
- Data drift detection
- Elapsed time since the last run
"""
from .signals import Signal, normalize_signals
from .rules import (
    Operator,
    RuleConfigurationError,
    TriggerAction,
    TriggerRule,
    default_rules,
    load_rules,
    parse_rules,
)
from .state import EvaluationState, StateStore, StateStoreError
from .evaluator import RuleOutcome, RuleResult, TriggerDecision, TriggerEvaluator, evaluate
from .scheduler import RetrainingJob, RetrainingScheduler, RetrainingTrigger, SchedulerConfig

__all__ = [
    'Signal',
    'normalize_signals',
    'Operator',
    'RuleConfigurationError',
    'TriggerAction',
    'TriggerRule',
    'default_rules',
    'load_rules',
    'parse_rules',
    'EvaluationState',
    'StateStore',
    'StateStoreError',
    'RuleOutcome',
    'RuleResult',
    'TriggerDecision',
    'TriggerEvaluator',
    'evaluate',
    'RetrainingJob',
    'RetrainingScheduler',
    'RetrainingTrigger',
    'SchedulerConfig',
]
