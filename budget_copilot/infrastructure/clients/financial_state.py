"""Financial state provider HTTP client"""

import httpx
from datetime import date
from typing import Any, Dict, Optional
from budget_copilot.domain.models import (
    Account,
    AccountType,
    Debt,
    DebtStatus,
    FinancialSnapshot,
    RecurringItem,
    Transaction,
    TransactionType,
)
from budget_copilot.domain.exceptions import FinancialStateError
from budget_copilot.config import settings


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _parse_cents(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


def parse_snapshot(data: Dict[str, Any]) -> FinancialSnapshot:
    """
    Build a FinancialSnapshot from the provider payload.

    Raises:
        KeyError, ValueError, TypeError: malformed payload
    """
    return FinancialSnapshot(
        accounts=[
            Account(
                account_id=str(acct.get("id", "")),
                type=AccountType(acct["type"]),
                balance_cents=int(acct["balance_cents"]),
            )
            for acct in data.get("accounts", [])
        ],
        expenses_30d=[
            Transaction(
                amount_cents=int(txn["amount_cents"]),
                type=TransactionType.EXPENSE,
                date=_parse_date(txn.get("date")),
                transaction_id=txn.get("id"),
            )
            for txn in data.get("expenses_30d", [])
        ],
        recurring=[
            RecurringItem(
                name=item.get("name", ""),
                kind=TransactionType(item["kind"]),
                amount_cents=int(item["amount_cents"]),
                next_due_date=_parse_date(item.get("next_due_date")),
            )
            for item in data.get("recurring", [])
        ],
        debts=[
            Debt(
                debt_id=str(debt["id"]),
                name=debt["name"],
                balance_cents=int(debt["balance_cents"]),
                apr_percent=float(debt["apr_percent"]),
                minimum_payment_cents=_parse_cents(debt.get("minimum_payment_cents")),
                status=DebtStatus(debt.get("status", "active")),
                next_due_date=_parse_date(debt.get("next_due_date")),
            )
            for debt in data.get("debts", [])
        ],
    )


class FinancialStateClient:
    """Client for the external financial state provider"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.financial_state_api_base
        self.timeout = timeout or settings.http_timeout_seconds

    async def get_snapshot(self, user_id: str) -> FinancialSnapshot:
        """
        Fetch accounts, 30-day expenses, recurring items and debts for a user.

        Raises:
            FinancialStateError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(f"{self.base_url}/users/{user_id}/financial-state")
                response.raise_for_status()
                return parse_snapshot(response.json())

            except httpx.TimeoutException as e:
                raise FinancialStateError(f"Financial state API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise FinancialStateError(f"Financial state API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise FinancialStateError(f"Financial state API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise FinancialStateError(f"Invalid financial state data: {e}") from e
