"""Decision rule engine - core business logic for the daily directive"""

from datetime import date, timedelta
from typing import List, Optional, Tuple
from budget_copilot.domain.models import (
    CASH_ACCOUNT_TYPES,
    CommandType,
    Debt,
    DecisionBasis,
    DecisionOutput,
    FinancialSnapshot,
    NextAction,
    PrimaryCommand,
    RecurringItem,
    RiskLevel,
    Strategy,
    TransactionType,
)
from budget_copilot.domain.strategies import simulate
from budget_copilot.utils.date_utils import add_months, days_between, format_short_date

DECISION_VERSION = "v1.0.0"

BURN_WINDOW_DAYS = 30
DEFAULT_DAYS_UNTIL_PAY = 14
SAFE_BUFFER_DAYS = 14
EXTRA_PAYMENT_THRESHOLD_CENTS = 5_000  # $50

# Runway reported when nothing is being spent
RUNWAY_SENTINEL_DAYS = 999

# Runway thresholds (days), most severe first
DANGER_RUNWAY_DAYS = 3
WARNING_RUNWAY_DAYS = 7
CAUTION_RUNWAY_DAYS = 14

IMMINENT_BILL_DAYS = 3
SAFE_PATH_BILL_NOTICE_DAYS = 5
MAX_WARNINGS = 2


def format_cents(cents: int) -> str:
    return f"${abs(cents) / 100:,.0f}"


def _due_phrase(days: int) -> str:
    if days < 0:
        return "overdue"
    if days == 0:
        return "due today"
    return f"due in {days} day{'' if days == 1 else 's'}"


def calculate_daily_burn(snapshot: FinancialSnapshot) -> int:
    """Average daily spend over the trailing window, rounded half-up"""
    total = sum(abs(t.amount_cents) for t in snapshot.expenses_30d if t.type == TransactionType.EXPENSE)
    return (total + BURN_WINDOW_DAYS // 2) // BURN_WINDOW_DAYS


def find_next_pay_date(recurring: List[RecurringItem], today: date, default_days: int) -> date:
    """Earliest scheduled income on or after today, else today + default_days"""
    paydays = sorted(
        r.next_due_date
        for r in recurring
        if r.kind == TransactionType.INCOME and r.next_due_date is not None and r.next_due_date >= today
    )
    return paydays[0] if paydays else today + timedelta(days=default_days)


def find_upcoming_bills(recurring: List[RecurringItem], next_pay_date: date) -> List[RecurringItem]:
    """Expense items due on or before the next payday, soonest first"""
    bills = [
        r
        for r in recurring
        if r.kind == TransactionType.EXPENSE and r.next_due_date is not None and r.next_due_date <= next_pay_date
    ]
    return sorted(bills, key=lambda r: r.next_due_date)


def calculate_runway_days(available_after_bills_cents: int, daily_burn_cents: int) -> int:
    if daily_burn_cents <= 0:
        return RUNWAY_SENTINEL_DAYS
    return max(0, available_after_bills_cents) // daily_burn_cents


def classify_risk(available_after_bills_cents: int, runway_days: int) -> RiskLevel:
    """
    First match wins:
    - bills cannot be covered      -> critical
    - runway < 3 / < 7 / < 14 days -> danger / warning / caution
    - otherwise                    -> safe
    """
    if available_after_bills_cents < 0:
        return RiskLevel.CRITICAL
    if runway_days < DANGER_RUNWAY_DAYS:
        return RiskLevel.DANGER
    if runway_days < WARNING_RUNWAY_DAYS:
        return RiskLevel.WARNING
    if runway_days < CAUTION_RUNWAY_DAYS:
        return RiskLevel.CAUTION
    return RiskLevel.SAFE


def calculate_days_saved(
    debts: List[Debt],
    extra_payment_cents: int,
    today: date,
) -> Tuple[Optional[int], Optional[date]]:
    """
    Days the debt-free date moves earlier with a monthly extra payment.

    Uses the per-debt avalanche simulation. Returns (days_saved, debt_free_date);
    days_saved is None when the baseline never finishes, debt_free_date is None
    when the accelerated plan never finishes.
    """
    baseline = simulate(debts, Strategy.AVALANCHE, 0)
    accelerated = simulate(debts, Strategy.AVALANCHE, extra_payment_cents)

    debt_free_date = None
    if accelerated.months_to_payoff is not None:
        debt_free_date = add_months(today, accelerated.months_to_payoff)

    if baseline.months_to_payoff is None or debt_free_date is None:
        return None, debt_free_date

    baseline_date = add_months(today, baseline.months_to_payoff)
    return days_between(debt_free_date, baseline_date), debt_free_date


def compute_decision(
    snapshot: FinancialSnapshot,
    today: date,
    default_days_until_pay: int = DEFAULT_DAYS_UNTIL_PAY,
    safe_buffer_days: int = SAFE_BUFFER_DAYS,
    extra_payment_threshold_cents: int = EXTRA_PAYMENT_THRESHOLD_CENTS,
) -> DecisionOutput:
    """
    Main entry point: aggregate a user's financial state into one command.

    Priority order:
    1. CRITICAL: cash cannot cover bills due before payday
    2. DANGER / WARNING: runway under 7 days -> daily spending cap
    3. DEBT: payable debt -> extra payment, minimum payment, or spend
    4. SAFE: weekly spending allowance
    """
    cash_available = sum(a.balance_cents for a in snapshot.accounts if a.type in CASH_ACCOUNT_TYPES)
    daily_burn = calculate_daily_burn(snapshot)

    next_pay_date = find_next_pay_date(snapshot.recurring, today, default_days_until_pay)
    days_until_pay = max(1, days_between(today, next_pay_date))

    upcoming_bills = find_upcoming_bills(snapshot.recurring, next_pay_date)
    upcoming_bills_total = sum(b.amount_cents for b in upcoming_bills)
    next_bill = upcoming_bills[0] if upcoming_bills else None

    payable_debts = sorted((d for d in snapshot.debts if d.is_payable), key=lambda d: -d.apr_percent)
    highest_apr_debt = payable_debts[0] if payable_debts else None

    available_after_bills = cash_available - upcoming_bills_total
    runway_days = calculate_runway_days(available_after_bills, daily_burn)
    risk_level = classify_risk(available_after_bills, runway_days)

    warnings: List[str] = []

    if risk_level == RiskLevel.CRITICAL:
        deficit = -available_after_bills
        chosen_path = "CRITICAL_DEFICIT"
        primary_command = PrimaryCommand(
            type=CommandType.FREEZE,
            text=(
                f"FREEZE all spending. You are {format_cents(deficit)} short for upcoming bills. "
                "Any purchase now means a missed payment."
            ),
            amount_cents=deficit,
        )
        next_action = NextAction(text="See which bills to defer", url="/recurring")

        if next_bill:
            warnings.append(
                f"{next_bill.name} ({format_cents(next_bill.amount_cents)}) due "
                f"{next_bill.next_due_date.isoformat()}. You cannot cover it."
            )

    elif risk_level in (RiskLevel.DANGER, RiskLevel.WARNING):
        daily_safe = max(0, available_after_bills // days_until_pay)
        chosen_path = "DANGER_DAILY_LIMIT" if risk_level == RiskLevel.DANGER else "WARNING_DAILY_LIMIT"
        bill_at_risk = next_bill.name if next_bill else "your bills"

        primary_command = PrimaryCommand(
            type=CommandType.FREEZE,
            text=(
                f"Do not exceed {format_cents(daily_safe)}/day until {format_short_date(next_pay_date)}. "
                f"Going over means {bill_at_risk} gets missed."
            ),
            amount_cents=daily_safe,
            date=next_pay_date.isoformat(),
        )
        next_action = NextAction(text="I understand", url="/dashboard")

        if next_bill:
            days_until_bill = days_between(today, next_bill.next_due_date)
            if days_until_bill <= IMMINENT_BILL_DAYS:
                warnings.append(
                    f"{next_bill.name} ({format_cents(next_bill.amount_cents)}) {_due_phrase(days_until_bill)}."
                )

        if risk_level == RiskLevel.DANGER:
            warnings.append(f"Runway: {runway_days} days. Every dollar counts.")

    elif highest_apr_debt is not None:
        minimum_total = sum(d.minimum_cents for d in payable_debts)
        safe_buffer = daily_burn * safe_buffer_days
        extra_payment = max(0, available_after_bills - safe_buffer - minimum_total)

        if extra_payment > extra_payment_threshold_cents:
            chosen_path = "DEBT_EXTRA_PAYMENT"
            days_saved, debt_free_date = calculate_days_saved(payable_debts, extra_payment, today)

            if days_saved is not None:
                consequence = f"This shortens your debt-free date by {days_saved} days."
            else:
                consequence = "Minimum payments alone never clear your debt."

            primary_command = PrimaryCommand(
                type=CommandType.PAY,
                text=f"Pay {format_cents(extra_payment)} extra to {highest_apr_debt.name} today. {consequence}",
                amount_cents=extra_payment,
                target=highest_apr_debt.name,
                date=today.isoformat(),
            )
            next_action = NextAction(text="Mark as paid", url=f"/debts/{highest_apr_debt.debt_id}")

            if debt_free_date is not None:
                warnings.append(f"Debt-free by {format_short_date(debt_free_date)} if you keep this up.")

        else:
            next_debt_due = next(
                (d for d in payable_debts if d.next_due_date is not None and d.minimum_payment_cents),
                None,
            )
            if next_debt_due is not None:
                chosen_path = "DEBT_MINIMUM"
                primary_command = PrimaryCommand(
                    type=CommandType.PAY,
                    text=(
                        f"Pay {format_cents(next_debt_due.minimum_cents)} minimum to {next_debt_due.name} "
                        f"by {next_debt_due.next_due_date.isoformat()}. "
                        "Missing this adds fees and damages your credit."
                    ),
                    amount_cents=next_debt_due.minimum_cents,
                    target=next_debt_due.name,
                    date=next_debt_due.next_due_date.isoformat(),
                )
                next_action = NextAction(text="Mark as paid", url=f"/debts/{next_debt_due.debt_id}")
            else:
                chosen_path = "SAFE_SPEND_WITH_DEBT"
                weekly_safe = available_after_bills * 7 // days_until_pay
                primary_command = PrimaryCommand(
                    type=CommandType.SPEND,
                    text=(
                        f"You can spend {format_cents(weekly_safe)} this week. "
                        "This keeps bills covered and debt payments on track."
                    ),
                    amount_cents=weekly_safe,
                )
                next_action = NextAction(text="Got it", url="/dashboard")

    else:
        chosen_path = "SAFE_SPEND"
        weekly_safe = available_after_bills * 7 // days_until_pay
        if risk_level == RiskLevel.CAUTION:
            runway_note = f"This keeps all bills covered, but your runway is only {runway_days} days."
        else:
            runway_note = f"This keeps all bills covered and your runway above {CAUTION_RUNWAY_DAYS} days."
        primary_command = PrimaryCommand(
            type=CommandType.SPEND,
            text=f"You can spend {format_cents(weekly_safe)} this week. {runway_note}",
            amount_cents=weekly_safe,
        )
        next_action = NextAction(text="Got it", url="/dashboard")

        if next_bill:
            days_until_bill = days_between(today, next_bill.next_due_date)
            if days_until_bill <= SAFE_PATH_BILL_NOTICE_DAYS:
                warnings.append(
                    f"{next_bill.name} ({format_cents(next_bill.amount_cents)}) "
                    f"{_due_phrase(days_until_bill)}. You're covered."
                )

    basis = DecisionBasis(
        cash_available_cents=cash_available,
        days_until_pay=days_until_pay,
        upcoming_bills_total_cents=upcoming_bills_total,
        available_after_bills_cents=available_after_bills,
        runway_days=runway_days,
        daily_burn_cents=daily_burn,
        chosen_path=chosen_path,
        highest_apr_debt=(
            {
                "debt_id": highest_apr_debt.debt_id,
                "name": highest_apr_debt.name,
                "apr_percent": highest_apr_debt.apr_percent,
                "balance_cents": highest_apr_debt.balance_cents,
            }
            if highest_apr_debt
            else None
        ),
        next_bill=(
            {
                "name": next_bill.name,
                "amount_cents": next_bill.amount_cents,
                "due_date": next_bill.next_due_date.isoformat(),
            }
            if next_bill
            else None
        ),
    )

    return DecisionOutput(
        risk_level=risk_level,
        primary_command=primary_command,
        warnings=warnings[:MAX_WARNINGS],
        next_action=next_action,
        basis=basis,
    )
