"""
Cluster profiling module for segmentation.

Computes per-cluster aggregate statistics from the original records and
their cluster assignments. No ML or feature engineering here.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from expense_segmentation.categories import EXTENDED_CATEGORIES, CategoryTable
from expense_segmentation.labeling import ClusterLabeler
from expense_segmentation.schemas import TransactionRecord


@dataclass(frozen=True)
class ClusterSummary:
    """
    Aggregated view of one cluster, keyed by its 1-based ``cluster_id``.
    """

    cluster_id: int
    count: int
    total_amount: float
    average_amount: float
    dominant_category: str
    label: str
    share_of_total: float = 0.0
    category_counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "cluster_id": self.cluster_id,
            "count": self.count,
            "total_amount": self.total_amount,
            "average_amount": self.average_amount,
            "dominant_category": self.dominant_category,
            "label": self.label,
            "share_of_total": self.share_of_total,
            "category_counts": dict(self.category_counts),
        }


class ClusterProfiler:
    """
    Summarises clusters from their member records.

    Responsibilities:
        - Group records by cluster label.
        - Compute count, total and average amount per cluster.
        - Find the dominant category and derive the cluster label from
          the cluster's average amount and dominant category.

    Not responsible for:
        - Cluster assignment (labels come from the clustering step).
        - Insight generation.

    Args:
        category_table: Table used to resolve unknown categories.
        labeler:        Labeler applied to each cluster aggregate.
    """

    def __init__(
        self,
        category_table: CategoryTable = EXTENDED_CATEGORIES,
        labeler: ClusterLabeler | None = None,
    ) -> None:
        self._category_table = category_table
        self._labeler = labeler or ClusterLabeler()

    def profile_clusters(
        self,
        records: Sequence[TransactionRecord],
        labels: np.ndarray,
        n_clusters: int,
    ) -> list[ClusterSummary]:
        """
        Build a summary for every cluster index ``0 .. n_clusters - 1``.

        Args:
            records:    Records aligned with ``labels``.
            labels:     0-based cluster index per record.
            n_clusters: Number of clusters; empty clusters still get a
                        summary with ``count == 0``.

        Returns:
            Summaries ordered by ``cluster_id`` (1-based).

        Raises:
            ValueError: If ``records`` and ``labels`` differ in length.
        """
        self._validate(records, labels)

        members: list[list[TransactionRecord]] = [[] for _ in range(n_clusters)]
        for record, label in zip(records, labels):
            members[int(label)].append(record)

        grand_total = float(sum(record.amount_value for record in records))

        return [
            self._summarise(index + 1, cluster_records, grand_total)
            for index, cluster_records in enumerate(members)
        ]

    def dominant_category(self, records: Sequence[TransactionRecord]) -> str:
        """
        Most frequent resolved category; ties go to the one seen first.
        """
        return self._dominant(self._category_counts(records))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _category_counts(self, records: Sequence[TransactionRecord]) -> Counter:
        return Counter(self._category_table.resolve(record.category) for record in records)

    def _dominant(self, counts: Counter) -> str:
        if not counts:
            return self._category_table.fallback
        return counts.most_common(1)[0][0]

    def _summarise(
        self,
        cluster_id: int,
        records: list[TransactionRecord],
        grand_total: float,
    ) -> ClusterSummary:
        if not records:
            return ClusterSummary(
                cluster_id=cluster_id,
                count=0,
                total_amount=0.0,
                average_amount=0.0,
                dominant_category=self.dominant_category(records),
                label=f"Cluster {cluster_id}",
            )

        total = float(sum(record.amount_value for record in records))
        average = total / len(records)
        counts = self._category_counts(records)
        dominant = self._dominant(counts)

        return ClusterSummary(
            cluster_id=cluster_id,
            count=len(records),
            total_amount=total,
            average_amount=average,
            dominant_category=dominant,
            label=self._labeler.label(average, dominant),
            share_of_total=total / grand_total if grand_total else 0.0,
            category_counts=dict(counts),
        )

    @staticmethod
    def _validate(records: Sequence[TransactionRecord], labels: np.ndarray) -> None:
        if len(records) != len(labels):
            raise ValueError(
                f"records and labels must have the same length; "
                f"got {len(records)} records and {len(labels)} labels."
            )
