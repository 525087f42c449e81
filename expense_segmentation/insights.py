"""
Rule-based insight generation over cluster summaries.

Each rule is a fixed threshold check evaluated independently per cluster.
Confidence values are constants attached to each rule, not statistical
estimates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from expense_segmentation.logging_utils import log_event
from expense_segmentation.profiling import ClusterSummary

logger = logging.getLogger(__name__)

KIND_HIGH_VALUE = "high_value_cluster"
KIND_FREQUENT_SHOPPING = "frequent_shopping"
KIND_SMALL_PURCHASES = "frequent_small_purchases"
KIND_REVIEW_HIGH_SPENDING = "review_high_spending"
KIND_SIMPLIFY_CATEGORIES = "simplify_categories"

SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"


@dataclass(frozen=True)
class Insight:
    """
    One structured observation about the clustered expenses.

    ``cluster_id`` is ``None`` for run-wide recommendations.
    """

    kind: str
    title: str
    description: str
    severity: str
    confidence: float
    cluster_id: int | None = None
    recommendation: str | None = None

    @property
    def is_pattern(self) -> bool:
        return self.cluster_id is not None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "confidence": self.confidence,
            "cluster_id": self.cluster_id,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class InsightPolicy:
    """
    Thresholds for insight rules.

    ``min_cluster_count`` gates the high-spending rule: a cluster must
    have strictly more members than this to be considered.
    """

    name: str
    min_cluster_count: int
    high_value_average: float = 3000.0
    shopping_category: str = "Shopping"
    shopping_min_count: int = 10
    small_purchase_average: float = 500.0
    small_purchase_min_count: int = 5
    simplify_cluster_count: int = 4
    pattern_confidence: float = 0.8
    recommendation_confidence: float = 0.7


# Whole-history analysis: only clusters with more than five members count.
StrictInsightPolicy = InsightPolicy(name="strict", min_cluster_count=5)

# Per-run analysis: the high-spending check accepts clusters of three or more.
LenientInsightPolicy = InsightPolicy(name="lenient", min_cluster_count=2)

_POLICIES = {
    StrictInsightPolicy.name: StrictInsightPolicy,
    LenientInsightPolicy.name: LenientInsightPolicy,
}


def get_insight_policy(name: str) -> InsightPolicy:
    """
    Look up a named insight policy.

    Raises:
        KeyError: If no policy has that name.
    """
    try:
        return _POLICIES[name]
    except KeyError:
        raise KeyError(
            f"unknown insight policy {name!r}; expected one of {sorted(_POLICIES)}."
        ) from None


class InsightGenerator:
    """
    Emits :class:`Insight` records from cluster summaries.

    Args:
        policy: Thresholds to apply; defaults to :data:`StrictInsightPolicy`.
    """

    def __init__(self, policy: InsightPolicy = StrictInsightPolicy) -> None:
        self._policy = policy

    def generate(self, summaries: Sequence[ClusterSummary]) -> list[Insight]:
        """
        Apply every rule to every cluster, then add run-wide recommendations.

        Returns:
            Cluster patterns in cluster order, followed by recommendations.
        """
        insights: list[Insight] = []
        for summary in summaries:
            insights.extend(self._cluster_patterns(summary))

        if insights:
            insights.append(self._review_recommendation(len(insights)))

        if len(summaries) > self._policy.simplify_cluster_count:
            insights.append(self._simplify_recommendation(len(summaries)))

        log_event(
            logger,
            logging.DEBUG,
            "insights_generated",
            policy=self._policy.name,
            clusters=len(summaries),
            insights=[insight.kind for insight in insights],
        )
        return insights

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _cluster_patterns(self, summary: ClusterSummary) -> list[Insight]:
        policy = self._policy
        patterns: list[Insight] = []

        if (
            summary.count > policy.min_cluster_count
            and summary.average_amount > policy.high_value_average
        ):
            patterns.append(
                Insight(
                    kind=KIND_HIGH_VALUE,
                    title="High-value spending cluster",
                    description=(
                        f"Cluster {summary.cluster_id} ({summary.label}) averages "
                        f"{summary.average_amount:.2f} across {summary.count} expenses."
                    ),
                    severity=SEVERITY_HIGH,
                    confidence=policy.pattern_confidence,
                    cluster_id=summary.cluster_id,
                    recommendation="Review these large expenses for possible savings.",
                )
            )

        if (
            summary.dominant_category == policy.shopping_category
            and summary.count > policy.shopping_min_count
        ):
            patterns.append(
                Insight(
                    kind=KIND_FREQUENT_SHOPPING,
                    title="Frequent shopping pattern",
                    description=(
                        f"Cluster {summary.cluster_id} holds {summary.count} expenses "
                        f"dominated by {policy.shopping_category}."
                    ),
                    severity=SEVERITY_MEDIUM,
                    confidence=policy.pattern_confidence,
                    cluster_id=summary.cluster_id,
                    recommendation="Set a monthly shopping budget.",
                )
            )

        if (
            summary.average_amount < policy.small_purchase_average
            and summary.count > policy.small_purchase_min_count
        ):
            patterns.append(
                Insight(
                    kind=KIND_SMALL_PURCHASES,
                    title="Frequent small purchases",
                    description=(
                        f"Cluster {summary.cluster_id} has {summary.count} small expenses "
                        f"averaging {summary.average_amount:.2f}; they add up to "
                        f"{summary.total_amount:.2f}."
                    ),
                    severity=SEVERITY_MEDIUM,
                    confidence=policy.pattern_confidence,
                    cluster_id=summary.cluster_id,
                    recommendation="Track small daily purchases; they accumulate quickly.",
                )
            )

        return patterns

    def _review_recommendation(self, n_patterns: int) -> Insight:
        return Insight(
            kind=KIND_REVIEW_HIGH_SPENDING,
            title="Review high spending clusters",
            description=f"{n_patterns} spending pattern(s) were detected across your clusters.",
            severity=SEVERITY_MEDIUM,
            confidence=self._policy.recommendation_confidence,
            recommendation="Focus on the clusters with the highest totals first.",
        )

    def _simplify_recommendation(self, n_clusters: int) -> Insight:
        return Insight(
            kind=KIND_SIMPLIFY_CATEGORIES,
            title="Simplify expense categories",
            description=f"Your expenses split into {n_clusters} distinct groups.",
            severity=SEVERITY_LOW,
            confidence=self._policy.recommendation_confidence,
            recommendation="Consider consolidating similar expense categories.",
        )
