"""
KMeans clustering engine for segmentation.

Lloyd's algorithm over a pre-built feature matrix. Initialization,
assignment, update and convergence are separate steps so each can be
exercised on its own. No feature engineering or business logic here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from expense_segmentation.errors import (
    DimensionMismatchError,
    InvalidClusterCountError,
    PreconditionViolation,
)
from expense_segmentation.logging_utils import log_event

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 300
DEFAULT_TOLERANCE = 1e-4


def euclidean_distance(point_a: np.ndarray, point_b: np.ndarray) -> float:
    """Plain, unweighted Euclidean distance between two vectors."""
    diff = np.asarray(point_a, dtype=np.float64) - np.asarray(point_b, dtype=np.float64)
    return float(np.sqrt(np.dot(diff, diff)))


def pairwise_distances(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Distances from every point to every centroid.

    Returns:
        Array of shape ``(n_points, n_centroids)``.
    """
    diff = points[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    return np.sqrt(np.einsum("ijk,ijk->ij", diff, diff))


@dataclass(frozen=True)
class ClusteringResult:
    """
    Immutable outcome of one KMeans run.

    ``labels`` are 0-based centroid indices; ``clusters`` holds the point
    indices grouped per centroid. ``distances`` and ``inertia`` come from
    a final assignment pass against ``centroids``, so all fields agree.
    """

    centroids: np.ndarray
    labels: np.ndarray
    distances: np.ndarray
    clusters: tuple[tuple[int, ...], ...]
    inertia: float
    iterations: int
    converged: bool

    @property
    def k(self) -> int:
        return int(self.centroids.shape[0])


class KMeansEngine:
    """
    Seedable Lloyd's-algorithm KMeans.

    Responsibilities:
        - Pick initial centroids from the input points.
        - Alternate assignment and mean updates until centroids settle.
        - Report centroids, assignments, distances and inertia.

    Not responsible for:
        - Feature engineering or scaling.
        - Choosing k.
        - Labeling or profiling clusters.

    Empty clusters keep their previous centroid; they are never reseeded
    or removed.

    Args:
        tolerance: Largest centroid movement still counted as converged.
        seed:      Seed for a private random generator.
        rng:       Generator to use instead of creating one from ``seed``.
    """

    def __init__(
        self,
        tolerance: float = DEFAULT_TOLERANCE,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        if tolerance < 0:
            raise PreconditionViolation(f"tolerance must be non-negative, got {tolerance!r}.")
        self._tolerance = float(tolerance)
        self._rng = rng if rng is not None else np.random.default_rng(seed)

    def initialize_centroids(self, points: np.ndarray, k: int) -> np.ndarray:
        """
        Choose ``k`` distinct points, by index and without replacement,
        uniformly at random as starting centroids.

        Raises:
            InvalidClusterCountError: If ``k`` is not in ``1..len(points)``.
        """
        points = _as_matrix(points)
        self._validate_k(points, k)
        indices = self._rng.choice(points.shape[0], size=k, replace=False)
        return points[np.sort(indices)].copy()

    @staticmethod
    def assign(points: np.ndarray, centroids: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Assign every point to its nearest centroid.

        Ties go to the lowest centroid index.

        Returns:
            A tuple of:
                - labels:    int array of shape ``(n_points,)``.
                - distances: float array of each point's distance to its
                             assigned centroid.
        """
        points = _as_matrix(points)
        centroids = _as_matrix(centroids)
        if points.shape[1] != centroids.shape[1]:
            raise DimensionMismatchError(
                f"points have {points.shape[1]} features but centroids have {centroids.shape[1]}."
            )
        if points.shape[0] == 0:
            return np.empty(0, dtype=np.int64), np.empty(0, dtype=np.float64)

        distance_matrix = pairwise_distances(points, centroids)
        # argmin returns the first minimum, which breaks ties by lowest index.
        labels = np.argmin(distance_matrix, axis=1).astype(np.int64)
        distances = distance_matrix[np.arange(points.shape[0]), labels]
        return labels, distances

    @staticmethod
    def update(points: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        """
        Recompute each centroid as the mean of its members.

        A centroid with no members is returned unchanged.
        """
        points = _as_matrix(points)
        updated = np.array(centroids, dtype=np.float64, copy=True)
        for index in range(updated.shape[0]):
            members = points[labels == index]
            if members.shape[0] > 0:
                updated[index] = members.mean(axis=0)
        return updated

    def converged(self, old_centroids: np.ndarray, new_centroids: np.ndarray) -> bool:
        """
        True when no centroid moved farther than the tolerance.

        With a tolerance of 0 this only holds for identical centroids.
        """
        old = _as_matrix(old_centroids)
        new = _as_matrix(new_centroids)
        if old.shape != new.shape:
            return False
        shifts = np.sqrt(np.sum((new - old) ** 2, axis=1))
        return bool(np.all(shifts <= self._tolerance))

    def run(
        self,
        points: np.ndarray,
        k: int,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        initial_centroids: np.ndarray | None = None,
    ) -> ClusteringResult:
        """
        Cluster ``points`` into ``k`` groups.

        Args:
            points:            Float array of shape ``(n_points, n_features)``.
            k:                 Number of clusters, ``1 <= k <= n_points``.
            max_iterations:    Upper bound on assign/update passes.
            initial_centroids: Optional explicit starting centroids.

        Returns:
            :class:`ClusteringResult` whose assignments and inertia come
            from a final pass against the returned centroids.

        Raises:
            PreconditionViolation: On empty input, invalid ``k`` or
                                   mismatched dimensions.
        """
        points = _as_matrix(points)
        self._validate_k(points, k)
        if max_iterations < 1:
            raise PreconditionViolation(
                f"max_iterations must be at least 1, got {max_iterations!r}."
            )

        if initial_centroids is None:
            centroids = self.initialize_centroids(points, k)
        else:
            centroids = _as_matrix(initial_centroids).copy()
            if centroids.shape != (k, points.shape[1]):
                raise DimensionMismatchError(
                    f"initial centroids must have shape {(k, points.shape[1])}, "
                    f"got {centroids.shape}."
                )

        iterations = 0
        has_converged = False
        while iterations < max_iterations:
            iterations += 1
            labels, _ = self.assign(points, centroids)
            new_centroids = self.update(points, labels, centroids)
            has_converged = self.converged(centroids, new_centroids)
            centroids = new_centroids
            if has_converged:
                break

        labels, distances = self.assign(points, centroids)
        inertia = float(np.sum(distances ** 2))
        clusters = tuple(
            tuple(int(i) for i in np.flatnonzero(labels == index)) for index in range(k)
        )

        log_event(
            logger,
            logging.DEBUG,
            "kmeans_run_completed",
            k=k,
            n_points=int(points.shape[0]),
            iterations=iterations,
            converged=has_converged,
            inertia=round(inertia, 6),
        )

        return ClusteringResult(
            centroids=centroids,
            labels=labels,
            distances=distances,
            clusters=clusters,
            inertia=inertia,
            iterations=iterations,
            converged=has_converged,
        )

    def predict(self, points: np.ndarray, centroids: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Nearest-centroid lookup for new points against fitted centroids.

        Returns the same ``(labels, distances)`` pair as :meth:`assign`.
        """
        centroids = _as_matrix(centroids)
        if centroids.shape[0] == 0:
            raise PreconditionViolation("cannot predict without fitted centroids.")
        return self.assign(points, centroids)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_k(points: np.ndarray, k: int) -> None:
        n_points = points.shape[0]
        if n_points == 0:
            raise PreconditionViolation("points array is empty (0 samples).")
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1:
            raise InvalidClusterCountError(f"k must be a positive integer, got {k!r}.")
        if k > n_points:
            raise InvalidClusterCountError(
                f"k ({k}) cannot exceed number of points ({n_points})."
            )


def _as_matrix(values: np.ndarray) -> np.ndarray:
    matrix = np.asarray(values, dtype=np.float64)
    if matrix.ndim != 2:
        raise DimensionMismatchError(f"expected a 2-D array, got shape {matrix.shape}.")
    return matrix
