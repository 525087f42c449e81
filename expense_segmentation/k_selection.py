"""
Cluster-count selection for segmentation.

Runs short exploratory KMeans fits over a small range of k and picks
the elbow of the inertia curve. This is a heuristic: it looks for the
largest slowdown in relative inertia reduction and does not guarantee
the statistically best k.
"""

from __future__ import annotations

import itertools
import logging
import math
from dataclasses import dataclass, field

import numpy as np

from expense_segmentation.clustering import KMeansEngine
from expense_segmentation.logging_utils import log_event

logger = logging.getLogger(__name__)

MIN_K = 2
_MIN_POINTS_FOR_SEARCH = 3
_POINTS_PER_CLUSTER = 3
_MIN_CANDIDATES_FOR_ELBOW = 3


@dataclass(frozen=True)
class CandidateRun:
    """Inertia recorded for one exploratory k; ``inf`` marks a failed run."""

    k: int
    inertia: float
    iterations: int = 0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return not math.isfinite(self.inertia)


@dataclass(frozen=True)
class KSelectionResult:
    optimal_k: int
    candidates: tuple[CandidateRun, ...] = field(default_factory=tuple)
    reduction_rates: dict[int, float] = field(default_factory=dict)
    explanation: str = ""

    def to_dict(self) -> dict:
        return {
            "optimal_k": self.optimal_k,
            "candidates": [
                {
                    "k": run.k,
                    "inertia": run.inertia if not run.failed else None,
                    "iterations": run.iterations,
                    "error": run.error,
                }
                for run in self.candidates
            ],
            "reduction_rates": {str(k): rate for k, rate in self.reduction_rates.items()},
            "explanation": self.explanation,
        }


class OptimalKSelector:
    """
    Elbow-method k selection.

    Candidates are ``2 .. min(max_k, n // 3)``. For each candidate the
    reduction rate is ``(inertia(k-1) - inertia(k)) / inertia(k-1)``;
    the chosen k is the one after which that rate drops the most, if the
    drop exceeds ``drop_threshold``. Otherwise ``default_k`` is returned.

    Args:
        max_k:                  Upper bound on candidate k.
        default_k:              Fallback when no clear elbow exists.
        exploratory_iterations: Iteration cap for each candidate run.
        drop_threshold:         Minimum drop in reduction rate (fraction).
        tolerance:              Convergence tolerance for candidate runs.
        seed:                   Seed for the shared random generator.
        rng:                    Generator to use instead of ``seed``.
    """

    def __init__(
        self,
        max_k: int = 6,
        default_k: int = 3,
        exploratory_iterations: int = 100,
        drop_threshold: float = 0.10,
        tolerance: float = 1e-4,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._max_k = max(MIN_K, int(max_k))
        self._default_k = max(MIN_K, int(default_k))
        self._exploratory_iterations = max(1, int(exploratory_iterations))
        self._drop_threshold = float(drop_threshold)
        self._tolerance = float(tolerance)
        self._rng = rng if rng is not None else np.random.default_rng(seed)

    def candidate_range(self, n_points: int) -> range:
        return range(MIN_K, min(self._max_k, n_points // _POINTS_PER_CLUSTER) + 1)

    def select(self, points: np.ndarray) -> KSelectionResult:
        """
        Choose k for ``points``.

        Fewer than three points short-circuits to k = 2 without any
        exploratory runs. A candidate whose run raises is recorded with
        infinite inertia and the search carries on.

        Returns:
            :class:`KSelectionResult`; ``optimal_k`` is always >= 2 and is
            never a candidate whose run failed.
        """
        points = np.asarray(points, dtype=np.float64)
        n_points = int(points.shape[0]) if points.ndim else 0

        if n_points < _MIN_POINTS_FOR_SEARCH:
            return KSelectionResult(
                optimal_k=MIN_K,
                explanation=f"Only {n_points} points; using K={MIN_K} without search",
            )

        candidates = tuple(self._evaluate(points, k) for k in self.candidate_range(n_points))
        rates = self._reduction_rates(candidates)
        optimal_k, explanation = self._pick(candidates, rates)

        log_event(
            logger,
            logging.INFO,
            "optimal_k_selected",
            n_points=n_points,
            optimal_k=optimal_k,
            candidates={run.k: run.inertia for run in candidates},
        )

        return KSelectionResult(
            optimal_k=optimal_k,
            candidates=candidates,
            reduction_rates=rates,
            explanation=explanation,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _evaluate(self, points: np.ndarray, k: int) -> CandidateRun:
        engine = KMeansEngine(tolerance=self._tolerance, rng=self._rng)
        try:
            result = engine.run(points, k, max_iterations=self._exploratory_iterations)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.WARNING,
                "candidate_k_failed",
                k=k,
                error=str(exc),
            )
            return CandidateRun(k=k, inertia=math.inf, error=str(exc))

        log_event(
            logger,
            logging.DEBUG,
            "candidate_k_evaluated",
            k=k,
            inertia=round(result.inertia, 6),
            iterations=result.iterations,
        )
        return CandidateRun(k=k, inertia=result.inertia, iterations=result.iterations)

    @staticmethod
    def _reduction_rates(candidates: tuple[CandidateRun, ...]) -> dict[int, float]:
        """
        Relative inertia reduction from each candidate to the next.

        Keyed by the larger k. Zero or non-finite inertia yields a rate
        of 0 rather than a division error.
        """
        rates: dict[int, float] = {}
        for previous, current in zip(candidates, candidates[1:]):
            if previous.failed or current.failed or previous.inertia <= 0:
                rates[current.k] = 0.0
                continue
            rates[current.k] = (previous.inertia - current.inertia) / previous.inertia
        return rates

    def _pick(
        self,
        candidates: tuple[CandidateRun, ...],
        rates: dict[int, float],
    ) -> tuple[int, str]:
        by_k = {run.k: run for run in candidates}
        chosen: int | None = None
        max_drop = 0.0

        if len(candidates) >= _MIN_CANDIDATES_FOR_ELBOW:
            ordered = sorted(rates.items())
            for (k, rate), (_next_k, next_rate) in zip(ordered, ordered[1:]):
                drop = rate - next_rate
                if drop > max_drop and drop > self._drop_threshold and not by_k[k].failed:
                    max_drop = drop
                    chosen = k

        if chosen is not None:
            return chosen, f"Elbow method selected K={chosen} (max drop: {max_drop * 100:.1f}%)"

        fallback = self._default_k
        failed = {run.k for run in candidates if run.failed}
        if fallback in failed:
            finite = [run.k for run in candidates if not run.failed]
            if finite:
                fallback = min(finite, key=lambda k: abs(k - self._default_k))
            else:
                fallback = next(k for k in itertools.count(MIN_K) if k not in failed)
        return fallback, f"No clear elbow; using K={fallback}"
