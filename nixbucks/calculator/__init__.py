"""Balance calculation package."""

from nixbucks.calculator.balance import (
    PeriodSummary,
    Projection,
    Snapshot,
    balance_at,
    cost_to_year_end,
    cost_until,
    month_bounds,
    monthly_delta,
    monthly_summary,
    period_delta,
    project,
    settle,
    summarize,
)

__all__ = [
    "PeriodSummary",
    "Projection",
    "Snapshot",
    "balance_at",
    "cost_to_year_end",
    "cost_until",
    "month_bounds",
    "monthly_delta",
    "monthly_summary",
    "period_delta",
    "project",
    "settle",
    "summarize",
]
