"""GET /v1/decision, POST /v1/decision/acknowledge - the daily directive"""

import time
import uuid
import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from budget_copilot.api.v1.schemas import (
    AcknowledgeRequest,
    AcknowledgeResponse,
    DecisionContext,
    DecisionResponse,
    NextActionSchema,
    PrimaryCommandSchema,
)
from budget_copilot.api.dependencies import get_financial_state_client, get_request_id
from budget_copilot.config import settings
from budget_copilot.domain.decision import compute_decision
from budget_copilot.domain.exceptions import DecisionNotFound, FinancialStateError, InvalidInput
from budget_copilot.domain.models import DecisionOutput
from budget_copilot.infrastructure.clients.financial_state import FinancialStateClient
from budget_copilot.infrastructure.database.models import DecisionState
from budget_copilot.infrastructure.database.session import get_db
from budget_copilot.infrastructure.observability.logging import log_decision
from budget_copilot.infrastructure.observability.metrics import provider_fetch_failures_counter
from budget_copilot.services.decision_state import (
    DecisionResult,
    acknowledge_decision,
    get_or_compute_decision,
)

router = APIRouter()


def to_decision_response(result: DecisionResult) -> DecisionResponse:
    state: DecisionState = result.state
    basis = state.decision_basis or {}

    context = None
    if basis:
        context = DecisionContext(
            cash_available_cents=basis["cash_available_cents"],
            days_until_pay=basis["days_until_pay"],
            upcoming_bills_total_cents=basis["upcoming_bills_total_cents"],
            runway_days=basis["runway_days"],
        )

    return DecisionResponse(
        id=str(state.id),
        risk_level=state.risk_level,
        primary_command=PrimaryCommandSchema(
            type=state.primary_command_type,
            text=state.primary_command_text,
            amount_cents=state.primary_command_amount_cents,
            target=state.primary_command_target,
            date=state.primary_command_date,
        ),
        warnings=state.warnings,
        next_action=NextActionSchema(text=state.next_action_text, url=state.next_action_url),
        is_new=result.is_new,
        hours_remaining=result.hours_remaining,
        has_expired_decision=result.has_expired_decision,
        computed_at=state.computed_at,
        expires_at=state.expires_at,
        acknowledged_at=state.acknowledged_at,
        context=context,
    )


@router.get("/decision", response_model=DecisionResponse)
async def get_decision(
    request: Request,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    db: Session = Depends(get_db),
    financial_state_client: FinancialStateClient = Depends(get_financial_state_client),
):
    """
    Get today's decision for a user.

    Flow:
    1. Return the stored decision if it has not expired
    2. Otherwise lock it, fetch the user's financial state and compute a new one
    3. Persist the new decision until the end of the UTC day
    """
    start_time = time.time()
    request_id = get_request_id(request)

    async def compute(now: datetime) -> DecisionOutput:
        snapshot = await financial_state_client.get_snapshot(user_id)
        return compute_decision(
            snapshot,
            today=now.date(),
            default_days_until_pay=settings.default_days_until_pay,
            safe_buffer_days=settings.safe_buffer_days,
            extra_payment_threshold_cents=settings.extra_payment_threshold_cents,
        )

    try:
        result = await get_or_compute_decision(db, user_id, compute)

        duration_ms = (time.time() - start_time) * 1000
        log_decision(
            request_id,
            user_id,
            result.state.risk_level,
            result.state.primary_command_type,
            result.is_new,
            duration_ms,
        )

        return to_decision_response(result)

    except FinancialStateError as e:
        provider_fetch_failures_counter.inc()
        db.rollback()
        logging.error(f"Financial state API error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Financial state service unavailable")

    except InvalidInput as e:
        db.rollback()
        logging.warning(f"Rejected financial state: {e}", extra={"request_id": request_id})
        raise

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/decision/acknowledge", response_model=AcknowledgeResponse)
def post_acknowledge(body: AcknowledgeRequest, db: Session = Depends(get_db)):
    """Record that the user saw the decision. Safe to repeat."""
    try:
        decision_id = uuid.UUID(body.decision_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid decision ID format")

    try:
        decision = acknowledge_decision(db, decision_id)
    except DecisionNotFound:
        raise HTTPException(status_code=404, detail="Decision not found")

    return AcknowledgeResponse(success=True, acknowledged_at=decision.acknowledged_at)
