"""Implied APR recovery from loan terms"""

import logging
from typing import Optional
from budget_copilot.domain.amortization import monthly_payment

logger = logging.getLogger(__name__)

# Bisection halves [0, 1] each step; 100 halvings reach ~1e-30, far below any payment tolerance
MAX_BISECTION_ITERATIONS = 100
PAYMENT_TOLERANCE = 1e-5

# Upper bracket: 100% per month
MAX_MONTHLY_RATE = 1.0


def estimate_apr(principal: float, payment: float, term_months: int) -> Optional[float]:
    """
    Estimate the APR (percent, 2 decimals) implied by a level payment schedule.

    Returns None when no non-negative rate fits:
    - non-positive principal, payment or term
    - payment * term < principal (schedule never retires the principal)

    A schedule whose payments sum exactly to the principal is a 0% loan.

    Payment is strictly increasing in the monthly rate, so bisection over
    [0, MAX_MONTHLY_RATE] converges toward the single matching rate.
    """
    if principal <= 0 or payment <= 0 or term_months <= 0:
        return None

    total_paid = payment * term_months
    if total_paid <= principal:
        if total_paid == principal:
            return 0.0
        logger.debug(
            "APR unresolvable: payments cannot retire principal",
            extra={"principal": principal, "payment": payment, "term_months": term_months},
        )
        return None

    low, high = 0.0, MAX_MONTHLY_RATE
    rate = (low + high) / 2

    for _ in range(MAX_BISECTION_ITERATIONS):
        rate = (low + high) / 2
        calculated = monthly_payment(principal, rate * 12 * 100, term_months)

        if abs(calculated - payment) < PAYMENT_TOLERANCE:
            break

        if calculated < payment:
            low = rate
        else:
            high = rate

    return round(rate * 12 * 100, 2)
