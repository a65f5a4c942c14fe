"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional

from budget_copilot.domain.models import CommandType, RiskLevel, Strategy


class PrimaryCommandSchema(BaseModel):
    type: CommandType
    text: str
    amount_cents: Optional[int] = None
    target: Optional[str] = None
    date: Optional[str] = None


class NextActionSchema(BaseModel):
    text: str
    url: str


class DecisionContext(BaseModel):
    """Facts behind the command for the "Why?" drawer"""

    cash_available_cents: int
    days_until_pay: int
    upcoming_bills_total_cents: int
    runway_days: int


class DecisionResponse(BaseModel):
    """Response for GET /v1/decision"""

    id: str
    risk_level: RiskLevel
    primary_command: PrimaryCommandSchema
    warnings: List[str] = Field(default_factory=list, max_length=2)
    next_action: NextActionSchema
    is_new: bool
    hours_remaining: int
    has_expired_decision: bool
    computed_at: datetime
    expires_at: datetime
    acknowledged_at: Optional[datetime] = None
    context: Optional[DecisionContext] = None


class AcknowledgeRequest(BaseModel):
    """Request body for POST /v1/decision/acknowledge"""

    decision_id: str = Field(..., min_length=1)


class AcknowledgeResponse(BaseModel):
    success: bool
    acknowledged_at: datetime


class HistoryItem(BaseModel):
    """Single decision in history"""

    decision_id: str
    risk_level: RiskLevel
    command_type: CommandType
    command_text: str
    is_locked: bool
    computed_at: datetime
    acknowledged_at: Optional[datetime] = None


class HistoryResponse(BaseModel):
    """Response for GET /v1/decision/history"""

    user_id: str
    decisions: List[HistoryItem]


class PayoffOrderSchema(BaseModel):
    id: str
    name: str
    balance: int
    apr: float
    payoff_month: Optional[int] = None
    total_paid: int
    interest_paid: int


class PayoffPlanSchema(BaseModel):
    total_interest_cents: int
    months_to_payoff: Optional[int]
    unresolved: bool
    interest_saved_cents: Optional[int]
    order: List[PayoffOrderSchema]


class StrategyComparisonResponse(BaseModel):
    """Response for GET /v1/debts/strategies"""

    avalanche: PayoffPlanSchema
    snowball: PayoffPlanSchema
    recommendation: Strategy
    savings_with_avalanche: int


class DebtProjectionSchema(BaseModel):
    id: str
    monthly_interest_cents: int
    months_to_payoff: Optional[int]
    total_interest_cents: Optional[int]
    payoff_date: Optional[date]
    monthly_payment_needed_cents: int
    danger_score: int = Field(..., ge=0, le=100)


class DebtSummaryResponse(BaseModel):
    """Response for GET /v1/debts/summary"""

    total_debt_cents: int
    total_minimum_payment_cents: int
    highest_apr_percent: float
    average_apr_percent: float
    debt_count: int
    projected_interest_cents: int
    unresolved_count: int
    debts: List[DebtProjectionSchema]


class PayoffSchema(BaseModel):
    months: int
    total_interest_cents: int


class WhatIfResponse(BaseModel):
    """Response for GET /v1/debts/{debt_id}/what-if"""

    debt_id: str
    extra_monthly_cents: int
    baseline: Optional[PayoffSchema]
    with_extra: Optional[PayoffSchema]
    months_saved: Optional[int]
    interest_saved_cents: Optional[int]


class AprEstimateRequest(BaseModel):
    """Request body for POST /v1/debts/apr-estimate"""

    principal_cents: int
    monthly_payment_cents: int
    term_months: int


class AprEstimateResponse(BaseModel):
    apr_percent: Optional[float] = None
    error: Optional[str] = None


class PaymentPlanRequest(BaseModel):
    """Request body for POST /v1/debts/payment-plan"""

    principal_cents: int
    apr_percent: float
    term_months: int


class PaymentPlanResponse(BaseModel):
    monthly_payment_cents: int
    total_interest_cents: int
