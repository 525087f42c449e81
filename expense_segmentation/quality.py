"""
Cluster quality scoring.
"""

from __future__ import annotations

import numpy as np
from sklearn.metrics import silhouette_score

_MIN_POINTS = 3


def silhouette(points: np.ndarray, labels: np.ndarray) -> float:
    """
    Mean silhouette coefficient of a partition, in ``[-1, 1]``.

    Returns 0.0 where the score is undefined: fewer than three points,
    fewer than two non-empty clusters, or one cluster per point.
    """
    points = np.asarray(points, dtype=np.float64)
    labels = np.asarray(labels)
    n_points = labels.shape[0]
    n_labels = np.unique(labels).shape[0]
    if n_points < _MIN_POINTS or n_labels < 2 or n_labels >= n_points:
        return 0.0
    return float(silhouette_score(points, labels, metric="euclidean"))
