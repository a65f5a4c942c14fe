"""GET /v1/decision/history - Fetch user's decision history"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budget_copilot.api.v1.schemas import HistoryResponse, HistoryItem
from budget_copilot.config import settings
from budget_copilot.infrastructure.database.session import get_db
from budget_copilot.infrastructure.database.repositories import DecisionStateRepository

router = APIRouter()


@router.get("/decision/history", response_model=HistoryResponse)
def get_decision_history(
    user_id: str = Query(..., description="User identifier"),
    db: Session = Depends(get_db),
):
    """
    Retrieve recent daily decisions for a user.

    Returns:
        Decisions newest first, including locked (expired) ones
    """
    decision_repo = DecisionStateRepository(db)
    decisions = decision_repo.get_history(user_id, limit=settings.decision_history_limit)

    history_items = [
        HistoryItem(
            decision_id=str(d.id),
            risk_level=d.risk_level,
            command_type=d.primary_command_type,
            command_text=d.primary_command_text,
            is_locked=d.is_locked,
            computed_at=d.computed_at,
            acknowledged_at=d.acknowledged_at,
        )
        for d in decisions
    ]

    return HistoryResponse(user_id=user_id, decisions=history_items)
