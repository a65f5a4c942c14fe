"""Fixed-rate amortization formulas shared by the payoff simulators"""

import math
import logging
from typing import Optional
from budget_copilot.domain.models import MinimumOnlyPayoff
from budget_copilot.domain.exceptions import InvalidInput

logger = logging.getLogger(__name__)

# 50 years of monthly payments: past this horizon a payment plan is treated as never finishing
MAX_PAYOFF_MONTHS = 600


def monthly_rate(apr_percent: float) -> float:
    """Nominal APR in percent -> periodic monthly rate"""
    return apr_percent / 100 / 12


def monthly_payment(principal: float, apr_percent: float, months: int) -> float:
    """
    Level payment that retires `principal` in `months` periods.

    M = P * r * (1+r)^n / ((1+r)^n - 1), evaluated as P * r / (1 - (1+r)^-n)
    so long terms cannot overflow; M = P / n when r = 0.

    Raises:
        InvalidInput: months <= 0, principal < 0 or apr_percent < 0
    """
    if months <= 0:
        raise InvalidInput(f"Term must be at least one month, got {months}")
    if principal < 0:
        raise InvalidInput(f"Principal cannot be negative, got {principal}")
    if apr_percent < 0:
        raise InvalidInput(f"APR cannot be negative, got {apr_percent}")

    rate = monthly_rate(apr_percent)
    if rate == 0:
        return principal / months

    # 1 - (1+r)^-n without cancellation for tiny r
    discount = -math.expm1(-months * math.log1p(rate))
    return principal * rate / discount


def total_interest(principal: float, payment: float, months: int) -> float:
    """Interest paid over the life of a level-payment loan"""
    return payment * months - principal


def minimum_only_payoff(
    principal: float,
    apr_percent: float,
    minimum_payment: float,
) -> Optional[MinimumOnlyPayoff]:
    """
    Simulate paying only the minimum every month.

    Returns None when the balance is still positive after MAX_PAYOFF_MONTHS,
    i.e. the minimum never retires the principal.

    Raises:
        InvalidInput: negative principal, APR or minimum payment
    """
    if principal < 0:
        raise InvalidInput(f"Principal cannot be negative, got {principal}")
    if apr_percent < 0:
        raise InvalidInput(f"APR cannot be negative, got {apr_percent}")
    if minimum_payment < 0:
        raise InvalidInput(f"Minimum payment cannot be negative, got {minimum_payment}")

    if principal == 0:
        return MinimumOnlyPayoff(months=0, total_interest_cents=0)

    rate = monthly_rate(apr_percent)
    balance = float(principal)
    interest_paid = 0.0

    for month in range(1, MAX_PAYOFF_MONTHS + 1):
        interest = balance * rate
        interest_paid += interest
        balance = balance + interest - minimum_payment
        if balance <= 0:
            return MinimumOnlyPayoff(months=month, total_interest_cents=round(interest_paid))

    logger.debug(
        "Minimum payment never retires principal",
        extra={"principal": principal, "apr_percent": apr_percent, "minimum_payment": minimum_payment},
    )
    return None
