"""
Expense category tables.

A single structure describes every category enumeration the pipeline
knows about. Call sites pick a table by name instead of embedding their
own literal mapping.
"""

from __future__ import annotations

from dataclasses import dataclass, field

FALLBACK_CATEGORY = "Other"


@dataclass(frozen=True)
class CategoryTable:
    """
    Ordered category names with 1-based integer codes.

    Matching is case-sensitive. Unknown names resolve to the fallback
    category, whose code is used for them.
    """

    name: str
    categories: tuple[str, ...]
    fallback: str = FALLBACK_CATEGORY
    _codes: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.fallback not in self.categories:
            raise ValueError(
                f"category table {self.name!r} must contain its fallback {self.fallback!r}."
            )
        codes = {category: index for index, category in enumerate(self.categories, start=1)}
        object.__setattr__(self, "_codes", codes)

    def __len__(self) -> int:
        return len(self.categories)

    @property
    def fallback_code(self) -> int:
        return self._codes[self.fallback]

    def code(self, category: str | None) -> int:
        """Integer code in ``1..len(self)``; unknown names get the fallback code."""
        if category is None:
            return self.fallback_code
        return self._codes.get(category, self.fallback_code)

    def resolve(self, category: str | None) -> str:
        """Canonical category name, or the fallback for unknown names."""
        if category is not None and category in self._codes:
            return category
        return self.fallback

    def scaled_code(self, category: str | None) -> float:
        """Category code divided by the table size, in ``(0, 1]``."""
        return self.code(category) / len(self)


_CORE_NAMES = (
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Bills & Utilities",
    "Entertainment",
    "Healthcare",
    "Education",
    "Groceries",
    "Travel",
    "Personal Care",
)

# Storage enumeration: ten named categories plus the fallback.
CORE_CATEGORIES = CategoryTable(
    name="core",
    categories=_CORE_NAMES + (FALLBACK_CATEGORY,),
)

# Entry-form enumeration used for the ``category`` feature.
EXTENDED_CATEGORIES = CategoryTable(
    name="extended",
    categories=_CORE_NAMES + ("Savings", "Investment", "Gifts & Donations", FALLBACK_CATEGORY),
)

_TABLES = {
    CORE_CATEGORIES.name: CORE_CATEGORIES,
    EXTENDED_CATEGORIES.name: EXTENDED_CATEGORIES,
}


def get_category_table(name: str) -> CategoryTable:
    """
    Look up a category table by name.

    Raises:
        KeyError: If no table has that name.
    """
    try:
        return _TABLES[name]
    except KeyError:
        raise KeyError(
            f"unknown category table {name!r}; expected one of {sorted(_TABLES)}."
        ) from None
