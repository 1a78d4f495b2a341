#!/usr/bin/env python
"""Evaluate a signals file against trigger rules and print the decision."""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse
import json
import logging
from typing import List, Optional

from config import settings
from retraining.evaluator import TriggerEvaluator
from retraining.rules import RuleConfigurationError, default_rules, load_rules
from retraining.state import StateStore

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def evaluate_file(signals_path: str, rules_path: Optional[str], state_path: str) -> dict:
    """Evaluate signals from a JSON file, persisting rule state between runs."""
    rules = load_rules(rules_path) if rules_path else default_rules()
    with open(signals_path, 'r') as f:
        signals = json.load(f)

    evaluator = TriggerEvaluator(rules, state_store=StateStore(state_path))
    return evaluator.evaluate(signals).to_dict()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--signals", required=True, help="JSON file mapping signal names to values")
    parser.add_argument("--rules", default=None, help="JSON rules file (default: built-in rules)")
    parser.add_argument("--state", default=str(settings.STATE_PATH))
    args = parser.parse_args(argv)

    try:
        decision = evaluate_file(args.signals, args.rules, args.state)
    except RuleConfigurationError as e:
        logger.error(f"✗ Rule configuration error: {e}")
        return 2

    print(json.dumps(decision, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
