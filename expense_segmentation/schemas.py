"""
expense_segmentation/schemas.py

Input record model and serialized response models for segmentation runs.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from expense_segmentation.categories import FALLBACK_CATEGORY


class TransactionRecord(BaseModel):
    """
    One expense row supplied by the persistence layer.

    Immutable once parsed. ``category`` is kept verbatim; category tables
    decide how unknown names are treated.
    """

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    id: int | str | None = None
    title: str | None = None
    amount: Decimal = Field(allow_inf_nan=False)
    category: str = FALLBACK_CATEGORY
    date: datetime = Field(validation_alias=AliasChoices("date", "expense_date"))
    payment_method: str | None = None
    description: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return FALLBACK_CATEGORY
        return value

    @field_validator("amount")
    @classmethod
    def _amount_fits_float(cls, value: Decimal) -> Decimal:
        if not math.isfinite(float(value)):
            raise ValueError("amount must be representable as a finite float")
        return value

    @field_validator("date", mode="before")
    @classmethod
    def _date_to_datetime(cls, value: Any) -> Any:
        if isinstance(value, str) and len(value.strip()) == 10:
            try:
                value = date.fromisoformat(value.strip())
            except ValueError:
                return value
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, time.min)
        return value

    @property
    def amount_value(self) -> float:
        return float(self.amount)

    @property
    def timestamp(self) -> float:
        """Seconds since the epoch; naive datetimes are read as UTC."""
        moment = self.date
        if moment.tzinfo is None:
            return (moment - datetime(1970, 1, 1)).total_seconds()
        return moment.timestamp()


def parse_records(records: Iterable[TransactionRecord | dict[str, Any]]) -> tuple[TransactionRecord, ...]:
    """
    Coerce raw dicts into :class:`TransactionRecord` instances, preserving order.

    Raises:
        pydantic.ValidationError: If any row is malformed.
    """
    return tuple(
        record if isinstance(record, TransactionRecord) else TransactionRecord.model_validate(record)
        for record in records
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class InsightResponse(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: str
    title: str
    description: str
    severity: str
    confidence: float = Field(ge=0.0, le=1.0)
    cluster_id: int | None = None
    recommendation: str | None = None


class ClusterSummaryResponse(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    cluster_id: int = Field(..., ge=1)
    count: int = Field(..., ge=0)
    total_amount: float
    average_amount: float
    dominant_category: str
    label: str
    share_of_total: float
    category_counts: dict[str, int] = Field(default_factory=dict)


class RecordAssignmentResponse(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    record_id: int | str | None
    index: int = Field(..., ge=0)
    cluster_id: int = Field(..., ge=1)
    distance_to_center: float = Field(..., ge=0.0)
    record_label: str


class SegmentationResponse(BaseModel):
    """
    Serialized form of one segmentation run, as stored and returned by
    the persistence and HTTP layers.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    k: int = Field(..., ge=1)
    inertia: float = Field(..., ge=0.0)
    iterations: int = Field(..., ge=0)
    algorithm_version: str
    feature_names: list[str]
    centroids: list[list[float]]
    assignments: list[RecordAssignmentResponse]
    clusters: list[ClusterSummaryResponse]
    insights: list[InsightResponse]
    silhouette_score: float
    normalization: dict[str, Any] | None = None
    k_selection: dict[str, Any] | None = None
