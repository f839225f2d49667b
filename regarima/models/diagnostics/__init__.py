"""
Pre-estimation diagnostics.

Key components:
- Range-mean test for the log/level transformation
"""

import logging

logger = logging.getLogger("regarima.models.diagnostics")

from .range_mean import RangeMeanResult, group_length, range_mean_test, range_mean_test_model

__all__ = [
    "RangeMeanResult",
    "group_length",
    "range_mean_test",
    "range_mean_test_model",
]
