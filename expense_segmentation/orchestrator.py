"""
Segmentation orchestrator.

Wires together feature building, k selection, clustering, profiling,
labeling and insight generation into a single pipeline call.
No math and no business rules here; persistence belongs to the caller,
which receives a plain result object.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import numpy as np

from expense_segmentation.categories import CategoryTable, get_category_table
from expense_segmentation.clustering import KMeansEngine
from expense_segmentation.config import SegmentationSettings, get_segmentation_settings
from expense_segmentation.errors import InsufficientDataError, InvalidClusterCountError
from expense_segmentation.features import DEFAULT_FEATURES, FeatureVectorBuilder, NormalizationContext
from expense_segmentation.insights import Insight, InsightGenerator, InsightPolicy, get_insight_policy
from expense_segmentation.k_selection import KSelectionResult, OptimalKSelector
from expense_segmentation.labeling import ClusterLabeler
from expense_segmentation.logging_utils import log_event
from expense_segmentation.profiling import ClusterProfiler, ClusterSummary
from expense_segmentation.quality import silhouette
from expense_segmentation.schemas import SegmentationResponse, TransactionRecord, parse_records

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordAssignment:
    """Cluster membership of one input record; ``cluster_id`` is 1-based."""

    record_id: int | str | None
    index: int
    cluster_id: int
    distance_to_center: float
    record_label: str

    def to_dict(self) -> dict:
        return {
            "record_id": self.record_id,
            "index": self.index,
            "cluster_id": self.cluster_id,
            "distance_to_center": self.distance_to_center,
            "record_label": self.record_label,
        }


@dataclass(frozen=True)
class SegmentationResult:
    """
    Everything one run hands back to the persistence/HTTP layer.

    ``assignments`` follow input order; ``clusters`` are ordered by
    ``cluster_id`` and include empty clusters.
    """

    k: int
    inertia: float
    iterations: int
    algorithm_version: str
    feature_names: tuple[str, ...]
    centroids: tuple[tuple[float, ...], ...]
    assignments: tuple[RecordAssignment, ...]
    clusters: tuple[ClusterSummary, ...]
    insights: tuple[Insight, ...]
    silhouette_score: float
    normalization: NormalizationContext
    k_selection: KSelectionResult | None = None

    def records_by_cluster(self) -> dict[int, list[int]]:
        """Record indices grouped under each 1-based cluster id."""
        groups: dict[int, list[int]] = {summary.cluster_id: [] for summary in self.clusters}
        for assignment in self.assignments:
            groups[assignment.cluster_id].append(assignment.index)
        return groups

    def to_dict(self) -> dict[str, Any]:
        return {
            "k": self.k,
            "inertia": self.inertia,
            "iterations": self.iterations,
            "algorithm_version": self.algorithm_version,
            "feature_names": list(self.feature_names),
            "centroids": [list(centroid) for centroid in self.centroids],
            "assignments": [assignment.to_dict() for assignment in self.assignments],
            "clusters": [summary.to_dict() for summary in self.clusters],
            "insights": [insight.to_dict() for insight in self.insights],
            "silhouette_score": self.silhouette_score,
            "normalization": self.normalization.to_dict(),
            "k_selection": self.k_selection.to_dict() if self.k_selection else None,
        }

    def to_response(self) -> SegmentationResponse:
        return SegmentationResponse.model_validate(self.to_dict())


class SegmentationOrchestrator:
    """
    Coordinates the end-to-end expense segmentation pipeline.

    Each step is delegated to its dedicated module:
        1. FeatureVectorBuilder -- builds the normalized feature matrix.
        2. OptimalKSelector     -- picks k when the caller gives none.
        3. KMeansEngine         -- assigns clusters and centroids.
        4. ClusterProfiler      -- aggregates and labels each cluster.
        5. InsightGenerator     -- derives insights from the summaries.

    Every run builds fresh components; no state is shared between runs.

    Args:
        settings:       Pipeline settings; defaults to environment settings.
        category_table: Overrides ``settings.category_table``.
        insight_policy: Overrides ``settings.insight_policy``.
        labeler:        Labeler for cluster and record labels.
    """

    def __init__(
        self,
        settings: SegmentationSettings | None = None,
        category_table: CategoryTable | None = None,
        insight_policy: InsightPolicy | None = None,
        labeler: ClusterLabeler | None = None,
    ) -> None:
        self._settings = settings or get_segmentation_settings()
        self._category_table = category_table or get_category_table(self._settings.category_table)
        self._insight_policy = insight_policy or get_insight_policy(self._settings.insight_policy)
        self._labeler = labeler or ClusterLabeler()

    def run_segmentation(
        self,
        records: Iterable[TransactionRecord | dict[str, Any]],
        feature_names: Sequence[str] | None = None,
        n_clusters: int | None = None,
        max_iterations: int | None = None,
        seed: int | None = None,
        normalize_log_amount: bool = False,
    ) -> SegmentationResult:
        """
        Execute the full segmentation pipeline.

        Args:
            records:              Transaction records or raw dicts.
            feature_names:        Features to build; defaults to
                                  ``amount``, ``category``, ``date``.
            n_clusters:           Explicit k; selected automatically if None.
            max_iterations:       Iteration cap for the final run.
            seed:                 Seed for initialization; falls back to
                                  ``settings.seed``.
            normalize_log_amount: Scale ``log_amount`` into [0, 1].

        Returns:
            :class:`SegmentationResult`.

        Raises:
            InsufficientDataError:   If there are no records.
            InvalidClusterCountError: If an explicit k is not in ``1..n``.
            EmptyFeatureRequestError: If ``feature_names`` is empty.
            pydantic.ValidationError: If a raw record is malformed.
        """
        settings = self._settings
        parsed = parse_records(records)
        if not parsed:
            raise InsufficientDataError("no transaction records to cluster.")

        if feature_names is None:
            feature_names = DEFAULT_FEATURES
        elif isinstance(feature_names, str):
            feature_names = (feature_names,)
        names = tuple(feature_names)
        iterations_cap = max_iterations if max_iterations is not None else settings.max_iterations
        rng = np.random.default_rng(seed if seed is not None else settings.seed)

        # Step 1 -- Feature vectors
        builder = FeatureVectorBuilder(
            category_table=self._category_table,
            normalize_log_amount=normalize_log_amount,
        )
        points, context = builder.build(parsed, names)
        n_points = len(parsed)

        # Step 2 -- Cluster count
        k_selection: KSelectionResult | None = None
        if n_clusters is None:
            k_selection = OptimalKSelector(
                max_k=settings.max_candidate_k,
                default_k=settings.default_k,
                exploratory_iterations=settings.exploratory_iterations,
                drop_threshold=settings.elbow_drop_threshold,
                tolerance=settings.tolerance,
                rng=rng,
            ).select(points)
            k = min(k_selection.optimal_k, n_points)
        else:
            if n_clusters < 1 or n_clusters > n_points:
                raise InvalidClusterCountError(
                    f"n_clusters ({n_clusters}) must be between 1 and the number of records ({n_points})."
                )
            k = n_clusters

        log_event(
            logger,
            logging.INFO,
            "segmentation_started",
            n_records=n_points,
            k=k,
            k_auto=k_selection is not None,
            features=list(names),
        )

        # Step 3 -- Final KMeans run
        result = KMeansEngine(tolerance=settings.tolerance, rng=rng).run(
            points, k, max_iterations=iterations_cap
        )

        # Step 4 -- Profiling and labeling
        profiler = ClusterProfiler(category_table=self._category_table, labeler=self._labeler)
        summaries = profiler.profile_clusters(parsed, result.labels, k)
        assignments = tuple(
            RecordAssignment(
                record_id=record.id,
                index=index,
                cluster_id=int(result.labels[index]) + 1,
                distance_to_center=float(result.distances[index]),
                record_label=self._labeler.label(
                    record.amount_value, self._category_table.resolve(record.category)
                ),
            )
            for index, record in enumerate(parsed)
        )

        # Step 5 -- Insights
        insights = InsightGenerator(self._insight_policy).generate(summaries)

        score = silhouette(points, result.labels)

        log_event(
            logger,
            logging.INFO,
            "segmentation_completed",
            k=k,
            inertia=round(result.inertia, 6),
            iterations=result.iterations,
            converged=result.converged,
            insights=len(insights),
            silhouette=round(score, 4),
        )

        return SegmentationResult(
            k=k,
            inertia=result.inertia,
            iterations=result.iterations,
            algorithm_version=settings.algorithm_version,
            feature_names=names,
            centroids=tuple(tuple(float(v) for v in centroid) for centroid in result.centroids),
            assignments=assignments,
            clusters=tuple(summaries),
            insights=tuple(insights),
            silhouette_score=score,
            normalization=context,
            k_selection=k_selection,
        )
