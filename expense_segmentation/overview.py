"""
Whole-history spending overview.

Plain aggregates over all of a user's expenses, independent of any
clustering run, plus a few threshold-based recommendations.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Sequence

from expense_segmentation.schemas import TransactionRecord

_TOP_CATEGORY_SHARE = 0.4
_HIGH_AVERAGE_EXPENSE = 1000.0

NO_EXPENSES_MESSAGE = "No expenses to analyze. Add some expenses first."


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    amount: float


@dataclass(frozen=True)
class SpendingOverview:
    total_expenses: int
    total_spent: float
    average_expense: float
    top_categories: tuple[CategoryTotal, ...] = field(default_factory=tuple)
    monthly_spending: dict[str, float] = field(default_factory=dict)
    category_breakdown: dict[str, float] = field(default_factory=dict)
    recommendations: tuple[str, ...] = field(default_factory=tuple)
    message: str | None = None

    def to_dict(self) -> dict:
        return {
            "total_expenses": self.total_expenses,
            "total_spent": self.total_spent,
            "average_expense": self.average_expense,
            "top_categories": [
                {"category": item.category, "amount": item.amount} for item in self.top_categories
            ],
            "monthly_spending": dict(self.monthly_spending),
            "category_breakdown": dict(self.category_breakdown),
            "recommendations": list(self.recommendations),
            "message": self.message,
        }


def summarize_spending(records: Sequence[TransactionRecord], top_n: int = 3) -> SpendingOverview:
    """
    Aggregate totals, top categories and monthly spending.

    Category names are kept as recorded. Monthly keys are ``YYYY-MM``.
    Amounts are rounded to two decimals.
    """
    if not records:
        return SpendingOverview(
            total_expenses=0,
            total_spent=0.0,
            average_expense=0.0,
            recommendations=("Start by adding your daily expenses",),
            message=NO_EXPENSES_MESSAGE,
        )

    total_spent = sum(record.amount_value for record in records)
    average = total_spent / len(records)

    category_totals: dict[str, float] = defaultdict(float)
    monthly: dict[str, float] = defaultdict(float)
    for record in records:
        category_totals[record.category] += record.amount_value
        monthly[record.date.strftime("%Y-%m")] += record.amount_value

    ranked = sorted(category_totals.items(), key=lambda item: item[1], reverse=True)
    top = tuple(
        CategoryTotal(category=category, amount=round(amount, 2))
        for category, amount in ranked[: max(0, top_n)]
    )

    recommendations: list[str] = []
    if top and total_spent > 0 and top[0].amount > total_spent * _TOP_CATEGORY_SHARE:
        share = round(top[0].amount / total_spent * 100)
        recommendations.append(
            f"Consider reducing spending on {top[0].category} as it's "
            f"{share}% of your total expenses"
        )
    if average > _HIGH_AVERAGE_EXPENSE:
        recommendations.append(
            "Your average expense is high. Try to find ways to reduce large individual expenses"
        )
    if total_spent == 0:
        recommendations.append("Start tracking your daily expenses to get personalized insights")

    return SpendingOverview(
        total_expenses=len(records),
        total_spent=round(total_spent, 2),
        average_expense=round(average, 2),
        top_categories=top,
        monthly_spending={month: round(amount, 2) for month, amount in sorted(monthly.items())},
        category_breakdown={category: round(amount, 2) for category, amount in category_totals.items()},
        recommendations=tuple(recommendations),
    )
