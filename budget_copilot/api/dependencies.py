"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from budget_copilot.infrastructure.clients.financial_state import FinancialStateClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_financial_state_client() -> FinancialStateClient:
    """Provide financial state API client instance"""
    return FinancialStateClient()
