"""
Trigger Evaluation API with FastAPI
"""
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from pydantic import BaseModel, ConfigDict, Field

from config import settings
from retraining.evaluator import TriggerEvaluator
from retraining.rules import RuleConfigurationError, load_configured_rules
from retraining.signals import to_local_naive
from retraining.state import StateStore
from retraining.tracking import log_decision

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Prometheus metrics
EVALUATION_COUNT = Counter(
    'trigger_evaluations_total',
    'Total trigger evaluations',
    ['result']
)

RULE_OUTCOMES = Counter(
    'trigger_rule_outcomes_total',
    'Rule outcomes across evaluations',
    ['rule', 'outcome']
)

EVALUATION_LATENCY = Histogram(
    'trigger_evaluation_latency_seconds',
    'Trigger evaluation latency in seconds'
)

# FastAPI app
app = FastAPI(
    title="Retraining Trigger API",
    description="Evaluates monitoring signals against trigger rules and decides when to retrain or redeploy",
    version=settings.VERSION
)

_evaluator: Optional[TriggerEvaluator] = None


def get_evaluator() -> TriggerEvaluator:
    """Evaluator built from the configured rules and persisted state."""
    global _evaluator

    if _evaluator is None:
        settings.create_directories()
        _evaluator = TriggerEvaluator(
            rules=load_configured_rules(),
            state_store=StateStore(settings.STATE_PATH)
        )
    return _evaluator


# Request/Response Models
class EvaluationRequest(BaseModel):
    """Request model for trigger evaluation."""
    model_config = ConfigDict(json_schema_extra={
        "example": {
            "signals": {"drift_score": 0.15, "model_accuracy": 0.91},
            "timestamp": "2026-01-01T00:00:00"
        }
    })

    signals: Dict[str, Any] = Field(..., description="Current signal values by name")
    timestamp: Optional[datetime] = Field(None, description="Evaluation time (default: now)")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    rules: int


# API Endpoints
@app.get("/", response_class=JSONResponse)
async def root():
    """Root endpoint."""
    return {
        "message": "Retraining Trigger API",
        "version": settings.VERSION,
        "docs": "/docs"
    }


@app.get("/health", response_model=HealthResponse)
async def health_check(evaluator: TriggerEvaluator = Depends(get_evaluator)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now().isoformat(),
        rules=len(evaluator.rules)
    )


@app.get("/rules")
async def list_rules(evaluator: TriggerEvaluator = Depends(get_evaluator)) -> List[Dict[str, Any]]:
    """List configured trigger rules."""
    return [rule.to_dict() for rule in evaluator.rules]


@app.post("/evaluate")
async def evaluate_signals(
        request: EvaluationRequest,
        evaluator: TriggerEvaluator = Depends(get_evaluator)
):
    """
    Evaluate signals against the trigger rules.

    Args:
        request: Signal values and optional evaluation time

    Returns:
        Trigger decision
    """
    start_time = time.time()

    try:
        decision = evaluator.evaluate(request.signals, now=to_local_naive(request.timestamp))
    except RuleConfigurationError as e:
        EVALUATION_COUNT.labels(result='error').inc()
        raise HTTPException(status_code=422, detail=str(e))
    except ValueError as e:
        EVALUATION_COUNT.labels(result='error').inc()
        raise HTTPException(status_code=400, detail=str(e))

    EVALUATION_LATENCY.observe(time.time() - start_time)
    EVALUATION_COUNT.labels(result='triggered' if decision.should_trigger else 'idle').inc()
    for result in decision.results:
        RULE_OUTCOMES.labels(rule=result.rule, outcome=result.outcome.value).inc()

    log_decision(decision)

    if decision.should_trigger:
        logger.info(f"Retraining requested by rules: {', '.join(decision.fired_rules)}")

    return decision.to_dict()


@app.get("/state")
async def get_state(evaluator: TriggerEvaluator = Depends(get_evaluator)):
    """Last firing time of each rule."""
    return evaluator.state.to_dict()


@app.post("/state/reset")
async def reset_state(evaluator: TriggerEvaluator = Depends(get_evaluator)):
    """Forget all firing history."""
    evaluator.reset()
    return {"status": "success", "message": "Evaluation state reset"}


@app.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.

    Returns:
        Prometheus metrics in text format
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.SERVING_HOST,
        port=settings.SERVING_PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
