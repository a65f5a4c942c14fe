"""Prometheus metrics for monitoring risk tiers, decision caching, and payoff simulations"""

from prometheus_client import Counter, Histogram
from budget_copilot.domain.models import DebtPayoffPlan

# Decision metrics
decision_counter = Counter(
    "budget_copilot_decision_total",
    "Freshly computed daily decisions",
    ["risk_level", "command_type"],
)

decision_cache_counter = Counter(
    "budget_copilot_decision_cache_total",
    "Decision requests by cache outcome",
    ["outcome"],  # hit | computed | conflict
)

# Debt strategy metrics
strategy_simulation_counter = Counter(
    "budget_copilot_strategy_simulation_total",
    "Debt payoff simulations run",
    ["strategy", "outcome"],  # resolved | unresolved
)

apr_estimate_counter = Counter(
    "budget_copilot_apr_estimate_total",
    "APR estimation requests",
    ["outcome"],  # resolved | unresolvable
)

# Financial state provider metrics
provider_fetch_failures_counter = Counter(
    "financial_state_fetch_failures_total",
    "Failed financial state API calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_decision(risk_level: str, command_type: str) -> None:
    decision_counter.labels(risk_level=risk_level, command_type=command_type).inc()


def record_simulation(plan: DebtPayoffPlan) -> None:
    outcome = "resolved" if plan.is_resolved else "unresolved"
    strategy_simulation_counter.labels(strategy=plan.strategy.value, outcome=outcome).inc()
