"""
Behavioral segmentation of expense transactions.

Groups a user's transactions with KMeans and turns the resulting
clusters into labels and insights.
"""

from expense_segmentation.categories import CORE_CATEGORIES, EXTENDED_CATEGORIES, CategoryTable
from expense_segmentation.clustering import ClusteringResult, KMeansEngine
from expense_segmentation.features import DEFAULT_FEATURES, FeatureVectorBuilder, NormalizationContext
from expense_segmentation.insights import (
    Insight,
    InsightGenerator,
    InsightPolicy,
    LenientInsightPolicy,
    StrictInsightPolicy,
)
from expense_segmentation.k_selection import KSelectionResult, OptimalKSelector
from expense_segmentation.labeling import ClusterLabeler
from expense_segmentation.orchestrator import RecordAssignment, SegmentationOrchestrator, SegmentationResult
from expense_segmentation.overview import SpendingOverview, summarize_spending
from expense_segmentation.profiling import ClusterProfiler, ClusterSummary
from expense_segmentation.schemas import TransactionRecord

__all__ = [
    "CORE_CATEGORIES",
    "DEFAULT_FEATURES",
    "EXTENDED_CATEGORIES",
    "CategoryTable",
    "ClusterLabeler",
    "ClusterProfiler",
    "ClusterSummary",
    "ClusteringResult",
    "FeatureVectorBuilder",
    "Insight",
    "InsightGenerator",
    "InsightPolicy",
    "KMeansEngine",
    "KSelectionResult",
    "LenientInsightPolicy",
    "NormalizationContext",
    "OptimalKSelector",
    "RecordAssignment",
    "SegmentationOrchestrator",
    "SegmentationResult",
    "SpendingOverview",
    "StrictInsightPolicy",
    "TransactionRecord",
    "summarize_spending",
]
