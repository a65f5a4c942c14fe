"""Debt payoff endpoints - strategy comparison, projections, APR estimation"""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from budget_copilot.api.v1.schemas import (
    AprEstimateRequest,
    AprEstimateResponse,
    DebtProjectionSchema,
    DebtSummaryResponse,
    PaymentPlanRequest,
    PaymentPlanResponse,
    PayoffOrderSchema,
    PayoffPlanSchema,
    PayoffSchema,
    StrategyComparisonResponse,
    WhatIfResponse,
)
from budget_copilot.api.dependencies import get_financial_state_client, get_request_id
from budget_copilot.config import settings
from budget_copilot.domain.amortization import monthly_payment, total_interest
from budget_copilot.domain.apr import estimate_apr
from budget_copilot.domain.exceptions import FinancialStateError
from budget_copilot.domain.models import Debt, DebtPayoffPlan, MinimumOnlyPayoff
from budget_copilot.domain.strategies import (
    compare_strategies,
    debt_projections,
    debt_summary,
    what_if_extra_payment,
)
from budget_copilot.infrastructure.clients.financial_state import FinancialStateClient
from budget_copilot.infrastructure.observability.metrics import (
    apr_estimate_counter,
    provider_fetch_failures_counter,
    record_simulation,
)
from budget_copilot.utils.date_utils import utc_now

router = APIRouter()


async def fetch_debts(client: FinancialStateClient, user_id: str, request_id: str) -> List[Debt]:
    try:
        snapshot = await client.get_snapshot(user_id)
    except FinancialStateError as e:
        provider_fetch_failures_counter.inc()
        logging.error(f"Financial state API error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Financial state service unavailable")
    return snapshot.debts


def to_plan_schema(plan: DebtPayoffPlan) -> PayoffPlanSchema:
    return PayoffPlanSchema(
        total_interest_cents=plan.total_interest_cents,
        months_to_payoff=plan.months_to_payoff,
        unresolved=not plan.is_resolved,
        interest_saved_cents=plan.interest_saved_cents,
        order=[
            PayoffOrderSchema(
                id=entry.debt_id,
                name=entry.name,
                balance=entry.balance_cents,
                apr=entry.apr_percent,
                payoff_month=entry.payoff_month,
                total_paid=entry.total_paid_cents,
                interest_paid=entry.interest_paid_cents,
            )
            for entry in plan.order
        ],
    )


def to_payoff_schema(payoff: MinimumOnlyPayoff | None) -> PayoffSchema | None:
    if payoff is None:
        return None
    return PayoffSchema(months=payoff.months, total_interest_cents=payoff.total_interest_cents)


@router.get("/debts/strategies", response_model=StrategyComparisonResponse)
async def get_strategies(
    request: Request,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    extra_payment_cents: int = Query(0, ge=0, description="Monthly budget on top of minimums"),
    excluded_ids: List[str] = Query([], description="Debt IDs left out of the simulation"),
    financial_state_client: FinancialStateClient = Depends(get_financial_state_client),
):
    """
    Compare avalanche and snowball payoff for the user's active debts.

    Unresolved plans (not retired within 50 years) report months_to_payoff = null.
    """
    debts = await fetch_debts(financial_state_client, user_id, get_request_id(request))

    comparison = compare_strategies(
        debts,
        extra_payment_cents=extra_payment_cents,
        excluded_ids=excluded_ids,
        high_apr_threshold=settings.high_apr_threshold_percent,
    )

    record_simulation(comparison.avalanche)
    record_simulation(comparison.snowball)

    return StrategyComparisonResponse(
        avalanche=to_plan_schema(comparison.avalanche),
        snowball=to_plan_schema(comparison.snowball),
        recommendation=comparison.recommendation,
        savings_with_avalanche=comparison.savings_with_avalanche_cents,
    )


@router.get("/debts/summary", response_model=DebtSummaryResponse)
async def get_summary(
    request: Request,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    financial_state_client: FinancialStateClient = Depends(get_financial_state_client),
):
    """
    Totals over every active debt, including ones excluded from strategy simulations,
    plus a per-debt projection ordered by danger score.
    """
    debts = await fetch_debts(financial_state_client, user_id, get_request_id(request))

    summary = debt_summary(debts)
    projections = debt_projections(debts, utc_now().date())

    return DebtSummaryResponse(
        total_debt_cents=summary.total_debt_cents,
        total_minimum_payment_cents=summary.total_minimum_payment_cents,
        highest_apr_percent=summary.highest_apr_percent,
        average_apr_percent=summary.average_apr_percent,
        debt_count=summary.debt_count,
        projected_interest_cents=summary.projected_interest_cents,
        unresolved_count=summary.unresolved_count,
        debts=[
            DebtProjectionSchema(
                id=p.debt_id,
                monthly_interest_cents=p.monthly_interest_cents,
                months_to_payoff=p.months_to_payoff,
                total_interest_cents=p.total_interest_cents,
                payoff_date=p.payoff_date,
                monthly_payment_needed_cents=p.monthly_payment_needed_cents,
                danger_score=p.danger_score,
            )
            for p in projections
        ],
    )


@router.get("/debts/{debt_id}/what-if", response_model=WhatIfResponse)
async def get_what_if(
    debt_id: str,
    request: Request,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    extra_monthly_cents: int = Query(..., ge=0, description="Extra paid every month"),
    financial_state_client: FinancialStateClient = Depends(get_financial_state_client),
):
    """Minimum-only payoff for one debt with and without an extra monthly payment"""
    debts = await fetch_debts(financial_state_client, user_id, get_request_id(request))
    debt = next((d for d in debts if d.debt_id == debt_id), None)
    if debt is None:
        raise HTTPException(status_code=404, detail="Debt not found")

    result = what_if_extra_payment(debt, extra_monthly_cents)

    return WhatIfResponse(
        debt_id=debt.debt_id,
        extra_monthly_cents=result.extra_monthly_cents,
        baseline=to_payoff_schema(result.baseline),
        with_extra=to_payoff_schema(result.with_extra),
        months_saved=result.months_saved,
        interest_saved_cents=result.interest_saved_cents,
    )


@router.post("/debts/apr-estimate", response_model=AprEstimateResponse, response_model_exclude_none=True)
def post_apr_estimate(body: AprEstimateRequest):
    """
    Infer the APR of a fixed-rate loan from its payment schedule.

    Returns {"error": "unresolvable"} when no non-negative rate fits.
    """
    apr = estimate_apr(body.principal_cents, body.monthly_payment_cents, body.term_months)
    if apr is None:
        apr_estimate_counter.labels(outcome="unresolvable").inc()
        return AprEstimateResponse(error="unresolvable")

    apr_estimate_counter.labels(outcome="resolved").inc()
    return AprEstimateResponse(apr_percent=apr)


@router.post("/debts/payment-plan", response_model=PaymentPlanResponse)
def post_payment_plan(body: PaymentPlanRequest):
    """Level monthly payment and lifetime interest for a fixed-rate loan"""
    payment = monthly_payment(body.principal_cents, body.apr_percent, body.term_months)
    return PaymentPlanResponse(
        monthly_payment_cents=round(payment),
        total_interest_cents=round(total_interest(body.principal_cents, payment, body.term_months)),
    )
