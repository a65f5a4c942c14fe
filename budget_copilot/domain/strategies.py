"""Multi-debt payoff simulation - avalanche vs snowball"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, List, Optional, Tuple
from budget_copilot.domain.models import (
    Debt,
    DebtPayoffPlan,
    DebtProjection,
    DebtStatus,
    DebtSummary,
    PayoffOrderEntry,
    Strategy,
    StrategyComparison,
    WhatIfResult,
)
from budget_copilot.domain.amortization import (
    MAX_PAYOFF_MONTHS,
    minimum_only_payoff,
    monthly_payment,
    monthly_rate,
)
from budget_copilot.domain.exceptions import InvalidInput
from budget_copilot.utils.date_utils import add_months

logger = logging.getLogger(__name__)

# At or above this APR, interest cost outweighs the motivational value of quick wins
HIGH_APR_THRESHOLD_PERCENT = 25.0

# Horizon for the "pay this much to be done in 3 years" figure
PAYOFF_TARGET_MONTHS = 36

# Danger score weights
DANGER_APR_POINTS_CAP = 30
DANGER_BALANCE_POINTS_CAP = 30
DANGER_DOLLARS_PER_BALANCE_POINT = 333
DANGER_PAYMENT_RATIO_POINTS = ((1.1, 40), (1.5, 30), (2.0, 20), (3.0, 10))


@dataclass(frozen=True)
class SimulatedDebt:
    """One debt's position inside a running simulation"""

    debt_id: str
    name: str
    balance: float
    apr_percent: float
    minimum_cents: int
    payoff_month: Optional[int] = None
    total_paid: float = 0.0
    interest_paid: float = 0.0

    @property
    def is_open(self) -> bool:
        return self.balance > 0


@dataclass(frozen=True)
class SimulationState:
    """
    Snapshot of a simulation at the end of `month`.

    `debts` is in strategy order. `freed_cents` is the minimum-payment budget
    released by debts retired in earlier months; it is applied from the
    first open debt onward together with the extra payment.
    """

    month: int
    debts: Tuple[SimulatedDebt, ...]
    extra_payment_cents: int
    freed_cents: int = 0
    total_interest: float = 0.0

    @property
    def is_settled(self) -> bool:
        return not any(d.is_open for d in self.debts)


def _validate_debts(debts: Iterable[Debt]) -> None:
    for debt in debts:
        if debt.balance_cents < 0:
            raise InvalidInput(f"Debt {debt.debt_id} has a negative balance")
        if debt.apr_percent < 0:
            raise InvalidInput(f"Debt {debt.debt_id} has a negative APR")
        if debt.minimum_payment_cents is not None and debt.minimum_payment_cents < 0:
            raise InvalidInput(f"Debt {debt.debt_id} has a negative minimum payment")


def order_debts(
    debts: Iterable[Debt],
    strategy: Strategy,
    excluded_ids: Iterable[str] = (),
) -> List[Debt]:
    """
    Payable, non-excluded debts in strategy order.

    avalanche: APR descending. snowball: balance ascending.
    Equal keys keep their input order (sorted() is stable).
    """
    excluded = set(excluded_ids)
    candidates = [d for d in debts if d.is_payable and d.debt_id not in excluded]

    if strategy == Strategy.AVALANCHE:
        return sorted(candidates, key=lambda d: -d.apr_percent)
    if strategy == Strategy.SNOWBALL:
        return sorted(candidates, key=lambda d: d.balance_cents)
    raise InvalidInput(f"Unknown payoff strategy: {strategy}")


def initial_state(ordered_debts: Iterable[Debt], extra_payment_cents: int = 0) -> SimulationState:
    return SimulationState(
        month=0,
        debts=tuple(
            SimulatedDebt(
                debt_id=d.debt_id,
                name=d.name,
                balance=float(d.balance_cents),
                apr_percent=d.apr_percent,
                minimum_cents=d.minimum_cents,
            )
            for d in ordered_debts
        ),
        extra_payment_cents=extra_payment_cents,
    )


def step(state: SimulationState) -> SimulationState:
    """
    Advance the simulation by one month.

    1. Every open debt accrues interest and pays its own minimum. A minimum
       larger than what the debt still owes leaves a surplus.
    2. The extra payment, the minimums freed in earlier months and this
       month's surplus are applied from the first open debt in strategy
       order, spilling onto the next open debt once one is cleared.

    Debts cleared this month release their minimum from the next month on.
    """
    month = state.month + 1
    pool = float(state.extra_payment_cents + state.freed_cents)
    interest_total = state.total_interest
    debts = []

    for debt in state.debts:
        if not debt.is_open:
            debts.append(debt)
            continue

        interest = debt.balance * monthly_rate(debt.apr_percent)
        interest_total += interest
        owed = debt.balance + interest

        applied = min(debt.minimum_cents, owed)
        pool += debt.minimum_cents - applied
        debts.append(
            replace(
                debt,
                balance=owed - applied,
                total_paid=debt.total_paid + applied,
                interest_paid=debt.interest_paid + interest,
            )
        )

    freed = state.freed_cents
    for index, debt in enumerate(debts):
        if debt.payoff_month is not None:
            continue

        if pool > 0 and debt.balance > 0:
            applied = min(pool, debt.balance)
            pool -= applied
            debt = replace(debt, balance=debt.balance - applied, total_paid=debt.total_paid + applied)

        if debt.balance <= 0:
            debt = replace(debt, balance=0.0, payoff_month=month)
            freed += debt.minimum_cents
        debts[index] = debt

    return replace(
        state,
        month=month,
        debts=tuple(debts),
        freed_cents=freed,
        total_interest=interest_total,
    )


def simulate(
    debts: Iterable[Debt],
    strategy: Strategy,
    extra_payment_cents: int = 0,
    excluded_ids: Iterable[str] = (),
) -> DebtPayoffPlan:
    """
    Simulate paying down every payable debt under `strategy`.

    Pure function of its arguments. Runs at most MAX_PAYOFF_MONTHS steps;
    if balances remain after that, months_to_payoff is None (unresolved).

    Raises:
        InvalidInput: negative extra payment or malformed debt
    """
    debts = list(debts)
    if extra_payment_cents < 0:
        raise InvalidInput(f"Extra payment cannot be negative, got {extra_payment_cents}")
    _validate_debts(debts)

    ordered = order_debts(debts, strategy, excluded_ids)
    state = initial_state(ordered, extra_payment_cents)

    while not state.is_settled and state.month < MAX_PAYOFF_MONTHS:
        state = step(state)

    months = state.month if state.is_settled else None
    if months is None:
        logger.debug(
            "Payoff simulation hit the month cap",
            extra={"strategy": strategy.value, "debt_count": len(ordered)},
        )

    total_interest_cents = round(state.total_interest)

    return DebtPayoffPlan(
        strategy=strategy,
        order=[
            PayoffOrderEntry(
                debt_id=original.debt_id,
                name=original.name,
                balance_cents=original.balance_cents,
                apr_percent=original.apr_percent,
                payoff_month=simulated.payoff_month,
                total_paid_cents=round(simulated.total_paid),
                interest_paid_cents=round(simulated.interest_paid),
            )
            for original, simulated in zip(ordered, state.debts)
        ],
        total_interest_cents=total_interest_cents,
        months_to_payoff=months,
        interest_saved_cents=(
            _interest_saved_vs_minimums(ordered, total_interest_cents) if months is not None else None
        ),
    )


def _interest_saved_vs_minimums(debts: List[Debt], total_interest_cents: int) -> Optional[int]:
    """Minimum-only interest summed per debt, minus the plan's interest; None if a baseline never finishes"""
    baseline = 0
    for debt in debts:
        payoff = minimum_only_payoff(debt.balance_cents, debt.apr_percent, debt.minimum_cents)
        if payoff is None:
            return None
        baseline += payoff.total_interest_cents
    return max(0, baseline - total_interest_cents)


def recommend_strategy(
    debts: Iterable[Debt],
    high_apr_threshold: float = HIGH_APR_THRESHOLD_PERCENT,
) -> Strategy:
    """Avalanche when any payable debt is high-interest, otherwise snowball for quick wins"""
    if any(d.is_payable and d.apr_percent >= high_apr_threshold for d in debts):
        return Strategy.AVALANCHE
    return Strategy.SNOWBALL


def compare_strategies(
    debts: Iterable[Debt],
    extra_payment_cents: int = 0,
    excluded_ids: Iterable[str] = (),
    high_apr_threshold: float = HIGH_APR_THRESHOLD_PERCENT,
) -> StrategyComparison:
    """Run both strategies over the same inputs and recommend one"""
    debts = list(debts)
    excluded_ids = set(excluded_ids)

    avalanche = simulate(debts, Strategy.AVALANCHE, extra_payment_cents, excluded_ids)
    snowball = simulate(debts, Strategy.SNOWBALL, extra_payment_cents, excluded_ids)
    considered = [d for d in debts if d.debt_id not in excluded_ids]

    return StrategyComparison(
        avalanche=avalanche,
        snowball=snowball,
        recommendation=recommend_strategy(considered, high_apr_threshold),
        savings_with_avalanche_cents=max(0, snowball.total_interest_cents - avalanche.total_interest_cents),
    )


def what_if_extra_payment(debt: Debt, extra_monthly_cents: int) -> WhatIfResult:
    """
    Compare minimum-only payoff against minimum plus a fixed monthly extra.

    Savings are None when the baseline never finishes (nothing finite to compare).
    """
    if extra_monthly_cents < 0:
        raise InvalidInput(f"Extra payment cannot be negative, got {extra_monthly_cents}")
    _validate_debts([debt])

    baseline = minimum_only_payoff(debt.balance_cents, debt.apr_percent, debt.minimum_cents)
    with_extra = minimum_only_payoff(
        debt.balance_cents,
        debt.apr_percent,
        debt.minimum_cents + extra_monthly_cents,
    )

    months_saved = None
    interest_saved = None
    if baseline is not None and with_extra is not None:
        months_saved = baseline.months - with_extra.months
        interest_saved = baseline.total_interest_cents - with_extra.total_interest_cents

    return WhatIfResult(
        extra_monthly_cents=extra_monthly_cents,
        baseline=baseline,
        with_extra=with_extra,
        months_saved=months_saved,
        interest_saved_cents=interest_saved,
    )


def debt_summary(debts: Iterable[Debt]) -> DebtSummary:
    """
    Raw aggregate over every active debt.

    Simulation exclusions do not apply here: an excluded mortgage still
    counts toward the total owed.
    """
    active = [d for d in debts if d.status == DebtStatus.ACTIVE]
    _validate_debts(active)

    if not active:
        return DebtSummary(
            total_debt_cents=0,
            total_minimum_payment_cents=0,
            highest_apr_percent=0.0,
            average_apr_percent=0.0,
            debt_count=0,
            projected_interest_cents=0,
            unresolved_count=0,
        )

    projected_interest = 0
    unresolved = 0
    for debt in active:
        payoff = minimum_only_payoff(debt.balance_cents, debt.apr_percent, debt.minimum_cents)
        if payoff is None:
            unresolved += 1
        else:
            projected_interest += payoff.total_interest_cents

    return DebtSummary(
        total_debt_cents=sum(d.balance_cents for d in active),
        total_minimum_payment_cents=sum(d.minimum_cents for d in active),
        highest_apr_percent=max(d.apr_percent for d in active),
        average_apr_percent=round(sum(d.apr_percent for d in active) / len(active), 2),
        debt_count=len(active),
        projected_interest_cents=projected_interest,
        unresolved_count=unresolved,
    )


def danger_score(balance_cents: int, apr_percent: float, minimum_payment_cents: int) -> int:
    """
    0-100, higher = more dangerous to cashflow.

    - APR: 1 point per percent, max 30
    - Balance: 1 point per $333, max 30
    - Minimum payment vs monthly interest: < 1.1x -> 40, < 1.5x -> 30,
      < 2x -> 20, < 3x -> 10 (nothing without a minimum or interest)
    """
    score = min(DANGER_APR_POINTS_CAP, apr_percent)
    score += min(DANGER_BALANCE_POINTS_CAP, round(balance_cents / 100 / DANGER_DOLLARS_PER_BALANCE_POINT))

    monthly_interest = balance_cents * monthly_rate(apr_percent)
    if minimum_payment_cents > 0 and monthly_interest > 0:
        payment_ratio = minimum_payment_cents / monthly_interest
        for ratio_limit, points in DANGER_PAYMENT_RATIO_POINTS:
            if payment_ratio < ratio_limit:
                score += points
                break

    return min(100, round(score))


def project_debt(debt: Debt, today: date) -> DebtProjection:
    """Minimum-only payoff outlook plus the level payment that clears the debt in 36 months"""
    _validate_debts([debt])
    payoff = minimum_only_payoff(debt.balance_cents, debt.apr_percent, debt.minimum_cents)

    return DebtProjection(
        debt_id=debt.debt_id,
        monthly_interest_cents=round(debt.balance_cents * monthly_rate(debt.apr_percent)),
        months_to_payoff=payoff.months if payoff else None,
        total_interest_cents=payoff.total_interest_cents if payoff else None,
        payoff_date=add_months(today, payoff.months) if payoff else None,
        monthly_payment_needed_cents=round(
            monthly_payment(debt.balance_cents, debt.apr_percent, PAYOFF_TARGET_MONTHS)
        ),
        danger_score=danger_score(debt.balance_cents, debt.apr_percent, debt.minimum_cents),
    )


def debt_projections(debts: Iterable[Debt], today: date) -> List[DebtProjection]:
    """Projection for every active debt, most dangerous first (stable on ties)"""
    projections = [project_debt(d, today) for d in debts if d.status == DebtStatus.ACTIVE]
    return sorted(projections, key=lambda p: -p.danger_score)
