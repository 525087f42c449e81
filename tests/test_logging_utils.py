"""
tests/test_logging_utils.py

Structured JSON log lines from log_event.
"""

from __future__ import annotations

import json
import logging

import pytest

from expense_segmentation.logging_utils import log_event


class TestLogEvent:
    def test_emits_sorted_json(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("tests.logging_utils")
        with caplog.at_level(logging.INFO, logger="tests.logging_utils"):
            log_event(logger, logging.INFO, "kmeans_done", k=3, inertia=float("inf"))
        message = caplog.records[0].getMessage()
        assert message.startswith('{"event": "kmeans_done"')
        assert json.loads(message) == {"event": "kmeans_done", "inertia": float("inf"), "k": 3}

    def test_disabled_level_is_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("tests.logging_utils.quiet")
        with caplog.at_level(logging.WARNING, logger="tests.logging_utils.quiet"):
            log_event(logger, logging.DEBUG, "noise")
        assert caplog.records == []
