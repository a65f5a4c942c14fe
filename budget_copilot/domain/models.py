"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    CASH = "cash"


# Only these balances count as spendable cash
CASH_ACCOUNT_TYPES = frozenset({AccountType.CHECKING, AccountType.SAVINGS, AccountType.CASH})


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class DebtStatus(str, Enum):
    ACTIVE = "active"
    PAID_OFF = "paid_off"
    DEFAULTED = "defaulted"
    DEFERRED = "deferred"


class RiskLevel(str, Enum):
    """Risk tiers, declared from least to most severe"""

    SAFE = "safe"
    CAUTION = "caution"
    WARNING = "warning"
    DANGER = "danger"
    CRITICAL = "critical"

    @property
    def severity(self) -> int:
        return list(RiskLevel).index(self)


class CommandType(str, Enum):
    PAY = "pay"
    SAVE = "save"
    SPEND = "spend"
    FREEZE = "freeze"
    WAIT = "wait"


class Strategy(str, Enum):
    AVALANCHE = "avalanche"
    SNOWBALL = "snowball"


@dataclass
class Account:
    """Balance holder from the financial state provider"""

    account_id: str
    type: AccountType
    balance_cents: int


@dataclass
class Transaction:
    """Ledger transaction; only used in aggregate by the decision engine"""

    amount_cents: int
    type: TransactionType = TransactionType.EXPENSE
    date: Optional[date] = None
    transaction_id: Optional[str] = None


@dataclass
class RecurringItem:
    """Scheduled income (payday) or expense (bill)"""

    name: str
    kind: TransactionType
    amount_cents: int
    next_due_date: Optional[date]


@dataclass
class Debt:
    """Liability tracked for payoff simulation"""

    debt_id: str
    name: str
    balance_cents: int
    apr_percent: float
    minimum_payment_cents: Optional[int] = None
    status: DebtStatus = DebtStatus.ACTIVE
    next_due_date: Optional[date] = None

    @property
    def is_payable(self) -> bool:
        """Active with a positive balance, i.e. eligible for simulation"""
        return self.status == DebtStatus.ACTIVE and self.balance_cents > 0

    @property
    def minimum_cents(self) -> int:
        return self.minimum_payment_cents or 0


@dataclass
class FinancialSnapshot:
    """Everything the decision engine needs for one user, fully materialized"""

    accounts: List[Account] = field(default_factory=list)
    expenses_30d: List[Transaction] = field(default_factory=list)
    recurring: List[RecurringItem] = field(default_factory=list)
    debts: List[Debt] = field(default_factory=list)


@dataclass
class PrimaryCommand:
    type: CommandType
    text: str
    amount_cents: Optional[int] = None
    target: Optional[str] = None
    date: Optional[str] = None  # ISO date


@dataclass
class NextAction:
    text: str
    url: str


@dataclass
class DecisionBasis:
    """Diagnostic snapshot of the inputs behind a decision (not user-facing)"""

    cash_available_cents: int
    days_until_pay: int
    upcoming_bills_total_cents: int
    available_after_bills_cents: int
    runway_days: int
    daily_burn_cents: int
    chosen_path: str
    highest_apr_debt: Optional[dict] = None
    next_bill: Optional[dict] = None


@dataclass
class DecisionOutput:
    """Output of the decision rule engine"""

    risk_level: RiskLevel
    primary_command: PrimaryCommand
    warnings: List[str]
    next_action: NextAction
    basis: DecisionBasis


@dataclass
class PayoffOrderEntry:
    """Debt position within a strategy's payoff order"""

    debt_id: str
    name: str
    balance_cents: int
    apr_percent: float
    payoff_month: Optional[int] = None  # None if not retired within the cap
    total_paid_cents: int = 0
    interest_paid_cents: int = 0


@dataclass
class DebtPayoffPlan:
    """Result of a single strategy simulation (never persisted)"""

    strategy: Strategy
    order: List[PayoffOrderEntry]
    total_interest_cents: int
    months_to_payoff: Optional[int]  # None means unresolved
    # Versus paying only minimums on each debt; None when either side never finishes
    interest_saved_cents: Optional[int] = None

    @property
    def is_resolved(self) -> bool:
        return self.months_to_payoff is not None


@dataclass
class StrategyComparison:
    avalanche: DebtPayoffPlan
    snowball: DebtPayoffPlan
    recommendation: Strategy
    savings_with_avalanche_cents: int


@dataclass
class MinimumOnlyPayoff:
    months: int
    total_interest_cents: int


@dataclass
class WhatIfResult:
    """Minimum-only payoff compared against minimum plus an extra amount"""

    extra_monthly_cents: int
    baseline: Optional[MinimumOnlyPayoff]
    with_extra: Optional[MinimumOnlyPayoff]
    months_saved: Optional[int]
    interest_saved_cents: Optional[int]


@dataclass
class DebtSummary:
    total_debt_cents: int
    total_minimum_payment_cents: int
    highest_apr_percent: float
    average_apr_percent: float
    debt_count: int
    projected_interest_cents: int
    unresolved_count: int


@dataclass
class DebtProjection:
    """Minimum-only outlook for a single debt"""

    debt_id: str
    monthly_interest_cents: int
    months_to_payoff: Optional[int]
    total_interest_cents: Optional[int]
    payoff_date: Optional[date]
    monthly_payment_needed_cents: int  # level payment that clears the balance in 36 months
    danger_score: int  # 0-100, higher hurts cashflow more
