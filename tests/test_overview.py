"""
tests/test_overview.py

Pytest unit tests for summarize_spending.
"""

from __future__ import annotations

from datetime import date

import pytest

from expense_segmentation.overview import NO_EXPENSES_MESSAGE, summarize_spending
from expense_segmentation.schemas import TransactionRecord


def _record(amount: float, category: str, day: date) -> TransactionRecord:
    return TransactionRecord(amount=amount, category=category, date=day)


class TestEmptyHistory:
    def test_no_records_returns_starter_recommendation(self) -> None:
        overview = summarize_spending([])
        assert overview.total_expenses == 0
        assert overview.total_spent == 0.0
        assert overview.message == NO_EXPENSES_MESSAGE
        assert overview.recommendations == ("Start by adding your daily expenses",)


class TestAggregates:
    @pytest.fixture()
    def records(self) -> list[TransactionRecord]:
        return [
            _record(600.0, "Travel", date(2024, 1, 5)),
            _record(200.0, "Groceries", date(2024, 1, 20)),
            _record(100.0, "Groceries", date(2024, 2, 2)),
            _record(100.0, "Shopping", date(2024, 2, 14)),
        ]

    def test_totals(self, records) -> None:
        overview = summarize_spending(records)
        assert overview.total_expenses == 4
        assert overview.total_spent == pytest.approx(1000.0)
        assert overview.average_expense == pytest.approx(250.0)

    def test_monthly_spending(self, records) -> None:
        overview = summarize_spending(records)
        assert overview.monthly_spending == {"2024-01": 800.0, "2024-02": 200.0}

    def test_top_categories_ranked_by_amount(self, records) -> None:
        overview = summarize_spending(records, top_n=2)
        assert [(t.category, t.amount) for t in overview.top_categories] == [
            ("Travel", 600.0),
            ("Groceries", 300.0),
        ]

    def test_dominant_category_recommendation(self, records) -> None:
        overview = summarize_spending(records)
        assert overview.recommendations == (
            "Consider reducing spending on Travel as it's 60% of your total expenses",
        )


class TestRecommendations:
    def test_high_average_expense(self) -> None:
        records = [
            _record(1500.0, "Travel", date(2024, 1, 1)),
            _record(1500.0, "Shopping", date(2024, 1, 2)),
            _record(1500.0, "Healthcare", date(2024, 1, 3)),
        ]
        overview = summarize_spending(records)
        assert any("average expense is high" in r for r in overview.recommendations)

    def test_zero_total_spent(self) -> None:
        overview = summarize_spending([_record(0.0, "Other", date(2024, 1, 1))])
        assert overview.recommendations == (
            "Start tracking your daily expenses to get personalized insights",
        )

    def test_to_dict_is_plain(self) -> None:
        payload = summarize_spending([_record(10.0, "Other", date(2024, 1, 1))]).to_dict()
        assert payload["top_categories"] == [{"category": "Other", "amount": 10.0}]
