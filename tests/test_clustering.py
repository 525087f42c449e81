"""
tests/test_clustering.py

Pytest unit tests for KMeansEngine.

Every test seeds the engine explicitly, so results are reproducible.

Coverage
--------
- Centroid initialization (distinct input points, bounds on k)
- Assignment with lowest-index tie breaking
- Update with frozen empty clusters
- Convergence check, including tolerance 0
- Full runs on well-separated groups
- Inertia consistency with the final assignment
- Prediction against fitted centroids
"""

from __future__ import annotations

import numpy as np
import pytest

from expense_segmentation.clustering import KMeansEngine, euclidean_distance
from expense_segmentation.errors import (
    DimensionMismatchError,
    InvalidClusterCountError,
    PreconditionViolation,
)


@pytest.fixture()
def engine() -> KMeansEngine:
    return KMeansEngine(seed=7)


@pytest.fixture()
def two_groups() -> np.ndarray:
    return np.array(
        [
            [0.0, 0.0],
            [0.0, 1.0],
            [1.0, 0.0],
            [10.0, 10.0],
            [10.0, 11.0],
            [11.0, 10.0],
        ]
    )


# ---------------------------------------------------------------------------
# Distance
# ---------------------------------------------------------------------------


class TestDistance:
    def test_euclidean_distance(self) -> None:
        assert euclidean_distance(np.array([0.0, 0.0]), np.array([3.0, 4.0])) == pytest.approx(5.0)

    def test_distance_to_self_is_zero(self) -> None:
        point = np.array([1.5, -2.0, 3.0])
        assert euclidean_distance(point, point) == 0.0


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------


class TestInitializeCentroids:
    def test_centroids_are_input_points(self, engine, two_groups) -> None:
        centroids = engine.initialize_centroids(two_groups, 3)
        rows = {tuple(row) for row in two_groups}
        assert all(tuple(c) in rows for c in centroids)

    def test_centroids_come_from_distinct_indices(self, engine, two_groups) -> None:
        centroids = engine.initialize_centroids(two_groups, 6)
        assert {tuple(c) for c in centroids} == {tuple(row) for row in two_groups}

    def test_same_seed_same_centroids(self, two_groups) -> None:
        first = KMeansEngine(seed=3).initialize_centroids(two_groups, 2)
        second = KMeansEngine(seed=3).initialize_centroids(two_groups, 2)
        assert np.array_equal(first, second)

    def test_k_larger_than_points_raises(self, engine, two_groups) -> None:
        with pytest.raises(InvalidClusterCountError):
            engine.initialize_centroids(two_groups, 7)

    def test_non_positive_k_raises(self, engine, two_groups) -> None:
        with pytest.raises(InvalidClusterCountError):
            engine.initialize_centroids(two_groups, 0)


# ---------------------------------------------------------------------------
# Assignment / update / convergence
# ---------------------------------------------------------------------------


class TestAssign:
    def test_nearest_centroid_wins(self) -> None:
        points = np.array([[0.0], [9.0]])
        centroids = np.array([[1.0], [10.0]])
        labels, distances = KMeansEngine.assign(points, centroids)
        assert labels.tolist() == [0, 1]
        assert distances.tolist() == pytest.approx([1.0, 1.0])

    def test_ties_go_to_lowest_index(self) -> None:
        points = np.array([[5.0]])
        centroids = np.array([[0.0], [10.0]])
        labels, _ = KMeansEngine.assign(points, centroids)
        assert labels.tolist() == [0]

    def test_dimension_mismatch_raises(self) -> None:
        with pytest.raises(DimensionMismatchError):
            KMeansEngine.assign(np.zeros((2, 2)), np.zeros((1, 3)))


class TestUpdate:
    def test_centroid_is_member_mean(self) -> None:
        points = np.array([[0.0, 0.0], [2.0, 4.0]])
        updated = KMeansEngine.update(points, np.array([0, 0]), np.array([[9.0, 9.0]]))
        assert updated.tolist() == [[1.0, 2.0]]

    def test_empty_cluster_keeps_previous_centroid(self) -> None:
        points = np.array([[0.0], [1.0]])
        previous = np.array([[0.0], [50.0]])
        updated = KMeansEngine.update(points, np.array([0, 0]), previous)
        assert updated[1].tolist() == [50.0]
        assert updated.shape == previous.shape


class TestConverged:
    def test_small_movement_is_converged(self, engine) -> None:
        assert engine.converged(np.array([[0.0, 0.0]]), np.array([[0.0, 5e-5]]))

    def test_large_movement_is_not_converged(self, engine) -> None:
        assert not engine.converged(np.array([[0.0, 0.0]]), np.array([[0.0, 1e-3]]))

    def test_every_centroid_must_settle(self, engine) -> None:
        old = np.array([[0.0], [1.0]])
        new = np.array([[0.0], [2.0]])
        assert not engine.converged(old, new)

    def test_zero_tolerance_requires_identical_centroids(self) -> None:
        strict = KMeansEngine(tolerance=0.0, seed=1)
        assert strict.converged(np.array([[1.0, 2.0]]), np.array([[1.0, 2.0]]))
        assert not strict.converged(np.array([[1.0, 2.0]]), np.array([[1.0, 2.0 + 1e-12]]))

    def test_negative_tolerance_rejected(self) -> None:
        with pytest.raises(PreconditionViolation):
            KMeansEngine(tolerance=-1.0)


# ---------------------------------------------------------------------------
# Full runs
# ---------------------------------------------------------------------------


class TestRun:
    def test_separated_groups_split_cleanly(self, engine, two_groups) -> None:
        result = engine.run(two_groups, 2)
        assert len(set(result.labels[:3].tolist())) == 1
        assert len(set(result.labels[3:].tolist())) == 1
        assert result.labels[0] != result.labels[3]

    def test_centroids_near_group_means(self, engine, two_groups) -> None:
        result = engine.run(two_groups, 2)
        found = sorted(tuple(np.round(c, 6)) for c in result.centroids)
        assert found[0] == pytest.approx((1 / 3, 1 / 3))
        assert found[1] == pytest.approx((31 / 3, 31 / 3))

    def test_converges_within_a_few_iterations(self, engine, two_groups) -> None:
        result = engine.run(two_groups, 2)
        assert result.converged
        assert result.iterations <= 5

    def test_every_point_gets_one_cluster(self, engine, two_groups) -> None:
        result = engine.run(two_groups, 3)
        assert result.labels.shape == (6,)
        assert set(result.labels.tolist()) <= {0, 1, 2}
        assert sorted(i for members in result.clusters for i in members) == list(range(6))

    def test_inertia_matches_final_distances(self, engine, two_groups) -> None:
        result = engine.run(two_groups, 2)
        assert result.inertia == pytest.approx(float(np.sum(result.distances ** 2)))
        assert result.inertia >= 0.0

    def test_inertia_is_sum_of_squared_distances_to_centroid(self, engine, two_groups) -> None:
        result = engine.run(two_groups, 2)
        expected = sum(
            euclidean_distance(point, result.centroids[label]) ** 2
            for point, label in zip(two_groups, result.labels)
        )
        assert result.inertia == pytest.approx(expected)

    def test_k_equal_to_points_gives_zero_inertia(self, engine, two_groups) -> None:
        result = engine.run(two_groups, 6)
        assert result.inertia == pytest.approx(0.0)

    def test_single_member_cluster_sits_on_its_point(self, engine) -> None:
        points = np.array([[0.0], [0.1], [100.0]])
        result = engine.run(points, 2, initial_centroids=np.array([[0.0], [100.0]]))
        lone = [members for members in result.clusters if len(members) == 1][0]
        assert result.distances[lone[0]] == 0.0

    def test_max_iterations_caps_the_loop(self, two_groups) -> None:
        result = KMeansEngine(tolerance=0.0, seed=5).run(two_groups, 2, max_iterations=1)
        assert result.iterations == 1

    def test_zero_tolerance_stops_on_identical_centroids(self, two_groups) -> None:
        result = KMeansEngine(tolerance=0.0, seed=5).run(two_groups, 2, max_iterations=50)
        assert result.converged
        assert result.iterations < 50

    def test_final_inertia_not_above_previous_step(self, two_groups) -> None:
        start = np.array([[0.0, 0.0], [0.0, 1.0]])
        engine = KMeansEngine(seed=0)
        one_step = engine.run(two_groups, 2, max_iterations=1, initial_centroids=start)
        full = engine.run(two_groups, 2, initial_centroids=start)
        assert full.inertia <= one_step.inertia + 1e-12

    def test_same_seed_is_reproducible(self, two_groups) -> None:
        first = KMeansEngine(seed=11).run(two_groups, 3)
        second = KMeansEngine(seed=11).run(two_groups, 3)
        assert np.array_equal(first.labels, second.labels)
        assert first.inertia == second.inertia

    def test_empty_points_raise(self, engine) -> None:
        with pytest.raises(PreconditionViolation):
            engine.run(np.empty((0, 2)), 2)

    def test_bad_initial_centroid_shape_raises(self, engine, two_groups) -> None:
        with pytest.raises(DimensionMismatchError):
            engine.run(two_groups, 2, initial_centroids=np.zeros((3, 2)))


class TestPredict:
    def test_predict_uses_nearest_centroid(self, engine) -> None:
        centroids = np.array([[0.0, 0.0], [10.0, 10.0]])
        labels, distances = engine.predict(np.array([[9.0, 10.0], [0.0, 2.0]]), centroids)
        assert labels.tolist() == [1, 0]
        assert distances.tolist() == pytest.approx([1.0, 2.0])

    def test_predict_without_centroids_raises(self, engine) -> None:
        with pytest.raises(PreconditionViolation):
            engine.predict(np.zeros((1, 2)), np.empty((0, 2)))
