"""
expense_segmentation/config.py

Environment-driven settings for the segmentation pipeline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

_ALLOWED_CATEGORY_TABLES = {"extended", "core"}
_ALLOWED_INSIGHT_POLICIES = {"strict", "lenient"}


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    for filename in (".env", ".env.local"):
        env_path = PROJECT_ROOT / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_optional_int_env(name: str) -> int | None:
    """
    Read an optional integer; blank or malformed values yield None.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return None
    try:
        return int(raw_value)
    except ValueError:
        return None


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_choice_env(name: str, default: str, allowed: set[str]) -> str:
    """
    Read a lower-cased string restricted to ``allowed``; anything else
    falls back to ``default``.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    return normalized if normalized in allowed else default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class SegmentationSettings:
    """
    Runtime settings for clustering, k selection and insight generation.
    """

    max_iterations: int = 300
    exploratory_iterations: int = 100
    tolerance: float = 1e-4
    max_candidate_k: int = 6
    default_k: int = 3
    elbow_drop_threshold: float = 0.10
    seed: int | None = None
    category_table: str = "extended"
    insight_policy: str = "strict"
    algorithm_version: str = "kmeans-v1"


@lru_cache(maxsize=1)
def get_segmentation_settings() -> SegmentationSettings:
    """
    Return cached segmentation settings from environment variables.
    """

    return SegmentationSettings(
        max_iterations=max(1, _get_int_env("SEGMENTATION_MAX_ITERATIONS", 300)),
        exploratory_iterations=max(1, _get_int_env("SEGMENTATION_EXPLORATORY_ITERATIONS", 100)),
        tolerance=max(0.0, _get_float_env("SEGMENTATION_TOLERANCE", 1e-4)),
        max_candidate_k=max(2, _get_int_env("SEGMENTATION_MAX_CANDIDATE_K", 6)),
        default_k=max(2, _get_int_env("SEGMENTATION_DEFAULT_K", 3)),
        elbow_drop_threshold=max(0.0, _get_float_env("SEGMENTATION_ELBOW_DROP_THRESHOLD", 0.10)),
        seed=_get_optional_int_env("SEGMENTATION_SEED"),
        category_table=_get_choice_env(
            "SEGMENTATION_CATEGORY_TABLE", "extended", _ALLOWED_CATEGORY_TABLES
        ),
        insight_policy=_get_choice_env(
            "SEGMENTATION_INSIGHT_POLICY", "strict", _ALLOWED_INSIGHT_POLICIES
        ),
        algorithm_version=_get_str_env("SEGMENTATION_ALGORITHM_VERSION", "kmeans-v1"),
    )
