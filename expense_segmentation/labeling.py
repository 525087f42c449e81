"""
Semantic labeling module for expense clusters.

Maps an amount and a category to a human-readable label using an
ordered amount-bracket table. No ML or DB access.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from expense_segmentation.categories import FALLBACK_CATEGORY
from expense_segmentation.config import PROJECT_ROOT

_RULES_PATH: Path = PROJECT_ROOT / "config" / "segmentation_rules.json"


@lru_cache(maxsize=1)
def _load_rules() -> dict:
    try:
        raw = _RULES_PATH.read_text(encoding="utf-8")
        data = json.loads(raw)
        return data if isinstance(data, dict) else {}
    except (OSError, ValueError, TypeError):
        return {}


def _as_dict(value: object) -> dict:
    return value if isinstance(value, dict) else {}


# ------------------------------------------------------------------
# Brackets (checked top-down; first strictly-greater threshold wins)
# ------------------------------------------------------------------

_DEFAULT_BRACKETS: tuple[tuple[float, str], ...] = (
    (5000.0, "Premium Expenses"),
    (2000.0, "High-Value Purchases"),
    (1000.0, "Regular Expenses"),
    (500.0, "Daily Essentials"),
)
_DEFAULT_FLOOR_LABEL = "Small Expenses"


def _parse_brackets(raw: object) -> tuple[tuple[float, str], ...]:
    if not isinstance(raw, list):
        return _DEFAULT_BRACKETS
    brackets: list[tuple[float, str]] = []
    for entry in raw:
        entry = _as_dict(entry)
        try:
            threshold = float(entry["min_amount"])
        except (KeyError, TypeError, ValueError):
            return _DEFAULT_BRACKETS
        label = entry.get("label")
        if not isinstance(label, str) or not label:
            return _DEFAULT_BRACKETS
        brackets.append((threshold, label))
    if not brackets:
        return _DEFAULT_BRACKETS
    return tuple(sorted(brackets, key=lambda item: item[0], reverse=True))


_LABELING_RULES = _as_dict(_load_rules().get("labeling"))

AMOUNT_BRACKETS: tuple[tuple[float, str], ...] = _parse_brackets(_LABELING_RULES.get("brackets"))
FLOOR_LABEL: str = str(_LABELING_RULES.get("floor_label") or _DEFAULT_FLOOR_LABEL)


class ClusterLabeler:
    """
    Produces a label for one representative amount and category.

    The result is the first bracket whose threshold the amount strictly
    exceeds, with the category appended in parentheses unless it is the
    fallback category. Callers choose what to pass: a single member
    record, or a cluster's average amount and dominant category.

    Args:
        brackets:    ``(threshold, label)`` pairs, highest threshold first.
        floor_label: Label for amounts under every threshold.
    """

    def __init__(
        self,
        brackets: tuple[tuple[float, str], ...] = AMOUNT_BRACKETS,
        floor_label: str = FLOOR_LABEL,
    ) -> None:
        self._brackets = tuple(sorted(brackets, key=lambda item: item[0], reverse=True))
        self._floor_label = floor_label

    def label(self, amount: float, category: str | None = None) -> str:
        base = self.amount_label(amount)
        if category and category != FALLBACK_CATEGORY:
            return f"{base} ({category})"
        return base

    def amount_label(self, amount: float) -> str:
        for threshold, label in self._brackets:
            if amount > threshold:
                return label
        return self._floor_label
