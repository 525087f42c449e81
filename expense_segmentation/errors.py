"""
Exceptions raised by the segmentation pipeline.

Statistically degenerate input (constant columns, empty clusters,
failed exploratory runs) is handled in place and never raised. Only
structurally invalid input reaches the caller as an exception.
"""

from __future__ import annotations


class SegmentationError(Exception):
    """Base exception for segmentation failures."""


class PreconditionViolation(SegmentationError, ValueError):
    """Raised when input is structurally invalid for clustering."""


class InvalidClusterCountError(PreconditionViolation):
    """Raised when k is not positive or exceeds the number of points."""


class EmptyFeatureRequestError(PreconditionViolation):
    """Raised when no feature names are requested for non-empty data."""


class DimensionMismatchError(PreconditionViolation):
    """Raised when points and centroids do not share a dimensionality."""


class InsufficientDataError(SegmentationError, ValueError):
    """Raised when the pipeline is asked to cluster zero records."""
