#!/usr/bin/env python
"""Ask a running trigger API whether current signals warrant retraining."""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse
import json
import logging

import requests

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def check_triggers(signals: dict, api_url: str = "http://localhost:8000") -> bool:
    """Post signals to the API and return whether retraining should start."""
    response = requests.post(f"{api_url}/evaluate", json={"signals": signals}, timeout=30)
    response.raise_for_status()
    decision = response.json()
    logger.info(f"Rationale: {decision['rationale']}")
    return decision.get('should_trigger', False)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--signals", required=True, help="JSON file mapping signal names to values")
    parser.add_argument("--api-url", default="http://localhost:8000")
    args = parser.parse_args()

    with open(args.signals, 'r') as f:
        signals = json.load(f)

    should_trigger = check_triggers(signals, args.api_url)
    print("true" if should_trigger else "false")
