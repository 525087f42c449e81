"""
Feature engineering module for segmentation.

Transforms transaction records into a feature matrix suitable for
clustering. Normalization bounds are computed once per run and returned
alongside the matrix so callers can inspect or reuse them.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from expense_segmentation.categories import EXTENDED_CATEGORIES, CategoryTable
from expense_segmentation.errors import EmptyFeatureRequestError
from expense_segmentation.schemas import TransactionRecord

logger = logging.getLogger(__name__)

FEATURE_AMOUNT = "amount"
FEATURE_CATEGORY = "category"
FEATURE_DATE = "date"
FEATURE_LOG_AMOUNT = "log_amount"

KNOWN_FEATURES = (FEATURE_AMOUNT, FEATURE_CATEGORY, FEATURE_DATE, FEATURE_LOG_AMOUNT)
DEFAULT_FEATURES = (FEATURE_AMOUNT, FEATURE_CATEGORY, FEATURE_DATE)

_AMOUNT_WIDENING = 1.0
_DATE_WIDENING_SECONDS = 86_400.0


@dataclass(frozen=True)
class NormalizationContext:
    """
    Per-run bounds and category codes used to build every feature vector.

    Degenerate ranges are already widened, so ``max_* > min_*`` always
    holds and the midpoint of a widened range maps to 0.5.
    """

    min_amount: float
    max_amount: float
    min_date: float
    max_date: float
    category_codes: dict[str, int] = field(default_factory=dict)
    min_log_amount: float = 0.0
    max_log_amount: float = 1.0

    @property
    def amount_span(self) -> float:
        return self.max_amount - self.min_amount

    @property
    def date_span(self) -> float:
        return self.max_date - self.min_date

    def to_dict(self) -> dict:
        return {
            "min_amount": self.min_amount,
            "max_amount": self.max_amount,
            "min_date": self.min_date,
            "max_date": self.max_date,
            "min_log_amount": self.min_log_amount,
            "max_log_amount": self.max_log_amount,
            "category_codes": dict(self.category_codes),
        }


class FeatureVectorBuilder:
    """
    Builds one feature vector per transaction record.

    Vector ``i`` always corresponds to record ``i``. Each requested
    feature name contributes one column, in request order:

    * ``amount``     -- min-max scaled amount in [0, 1].
    * ``category``   -- category code divided by the table size.
    * ``date``       -- min-max scaled timestamp in [0, 1].
    * ``log_amount`` -- ``ln(1 + amount)``, left unscaled unless
      ``normalize_log_amount`` is set.
    * anything else  -- treated as ``amount``.

    Args:
        category_table:       Table used for the ``category`` feature.
        normalize_log_amount: Min-max scale ``log_amount`` like its
                              siblings instead of leaving it raw.
    """

    def __init__(
        self,
        category_table: CategoryTable = EXTENDED_CATEGORIES,
        normalize_log_amount: bool = False,
    ) -> None:
        self._category_table = category_table
        self._normalize_log_amount = normalize_log_amount

    def build(
        self,
        records: Sequence[TransactionRecord],
        feature_names: Sequence[str] = DEFAULT_FEATURES,
    ) -> tuple[np.ndarray, NormalizationContext]:
        """
        Build the feature matrix for a run.

        Args:
            records:       Transaction records, in the order their vectors
                           should appear.
            feature_names: Requested features, one column each.

        Returns:
            A tuple of:
                - feature_matrix: float array of shape
                  ``(len(records), len(feature_names))``.
                - context: the :class:`NormalizationContext` used.

        Raises:
            EmptyFeatureRequestError: If records are given but no features
                                      are requested.
        """
        names = [feature_names] if isinstance(feature_names, str) else list(feature_names)
        if records and not names:
            raise EmptyFeatureRequestError(
                "at least one feature name is required to build feature vectors."
            )

        context = self._fit_context(records)
        if not records:
            return np.empty((0, len(names)), dtype=np.float64), context

        unknown = sorted({name for name in names if name not in KNOWN_FEATURES})
        if unknown:
            logger.debug("Unrecognized features %s fall back to normalized amount", unknown)

        matrix = np.empty((len(records), len(names)), dtype=np.float64)
        for i, record in enumerate(records):
            for j, name in enumerate(names):
                matrix[i, j] = self._feature_value(record, name, context)

        return matrix, context

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _fit_context(records: Sequence[TransactionRecord]) -> NormalizationContext:
        """
        First pass: bounds for amount, date and log amount plus
        first-seen category codes.
        """
        if not records:
            return NormalizationContext(
                min_amount=0.0,
                max_amount=_AMOUNT_WIDENING,
                min_date=0.0,
                max_date=_DATE_WIDENING_SECONDS,
            )

        amounts = [record.amount_value for record in records]
        timestamps = [record.timestamp for record in records]
        log_amounts = [_log_amount(amount) for amount in amounts]

        category_codes: dict[str, int] = {}
        for record in records:
            if record.category not in category_codes:
                category_codes[record.category] = len(category_codes) + 1

        min_amount, max_amount = _widen(min(amounts), max(amounts), _AMOUNT_WIDENING)
        min_date, max_date = _widen(min(timestamps), max(timestamps), _DATE_WIDENING_SECONDS)
        min_log, max_log = _widen(min(log_amounts), max(log_amounts), _AMOUNT_WIDENING)

        return NormalizationContext(
            min_amount=min_amount,
            max_amount=max_amount,
            min_date=min_date,
            max_date=max_date,
            category_codes=category_codes,
            min_log_amount=min_log,
            max_log_amount=max_log,
        )

    def _feature_value(
        self,
        record: TransactionRecord,
        name: str,
        context: NormalizationContext,
    ) -> float:
        if name == FEATURE_CATEGORY:
            return self._category_table.scaled_code(record.category)

        if name == FEATURE_DATE:
            return (record.timestamp - context.min_date) / context.date_span

        if name == FEATURE_LOG_AMOUNT:
            value = _log_amount(record.amount_value)
            if not self._normalize_log_amount:
                return value
            return (value - context.min_log_amount) / (
                context.max_log_amount - context.min_log_amount
            )

        return (record.amount_value - context.min_amount) / context.amount_span


def _widen(low: float, high: float, width: float) -> tuple[float, float]:
    """Spread a zero-width range symmetrically so its midpoint maps to 0.5."""
    if high > low:
        return low, high
    half = width / 2.0
    return low - half, high + half


def _log_amount(amount: float) -> float:
    # Amounts at or below -1 have no real logarithm; clamp to zero.
    if amount <= -1.0:
        return 0.0
    return math.log1p(amount)
