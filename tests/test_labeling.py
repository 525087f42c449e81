"""
tests/test_labeling.py

Pytest unit tests for ClusterLabeler.

Coverage
--------
- Every amount bracket, including boundary values
- Category suffix, omitted for the fallback category
- Custom bracket tables
- Packaged rules file matches the built-in brackets
"""

from __future__ import annotations

import pytest

from expense_segmentation.labeling import AMOUNT_BRACKETS, FLOOR_LABEL, ClusterLabeler


@pytest.fixture()
def labeler() -> ClusterLabeler:
    return ClusterLabeler()


class TestAmountBrackets:
    @pytest.mark.parametrize(
        "amount, expected",
        [
            (10_000.0, "Premium Expenses"),
            (5_000.01, "Premium Expenses"),
            (5_000.0, "High-Value Purchases"),
            (2_500.0, "High-Value Purchases"),
            (2_000.0, "Regular Expenses"),
            (1_500.0, "Regular Expenses"),
            (1_000.0, "Daily Essentials"),
            (750.0, "Daily Essentials"),
            (500.0, "Small Expenses"),
            (0.0, "Small Expenses"),
            (-20.0, "Small Expenses"),
        ],
    )
    def test_bracket_thresholds_are_strict(self, labeler, amount, expected) -> None:
        assert labeler.amount_label(amount) == expected


class TestCategorySuffix:
    def test_named_category_is_appended(self, labeler) -> None:
        assert labeler.label(3000.0, "Travel") == "High-Value Purchases (Travel)"

    def test_other_category_is_omitted(self, labeler) -> None:
        assert labeler.label(3000.0, "Other") == "High-Value Purchases"

    def test_missing_category_is_omitted(self, labeler) -> None:
        assert labeler.label(100.0) == "Small Expenses"


class TestCustomBrackets:
    def test_custom_table_is_sorted_by_threshold(self) -> None:
        labeler = ClusterLabeler(brackets=((10.0, "Low"), (100.0, "High")), floor_label="Tiny")
        assert labeler.amount_label(150.0) == "High"
        assert labeler.amount_label(50.0) == "Low"
        assert labeler.amount_label(5.0) == "Tiny"


class TestRulesFile:
    def test_packaged_rules_match_defaults(self) -> None:
        assert AMOUNT_BRACKETS == (
            (5000.0, "Premium Expenses"),
            (2000.0, "High-Value Purchases"),
            (1000.0, "Regular Expenses"),
            (500.0, "Daily Essentials"),
        )
        assert FLOOR_LABEL == "Small Expenses"
