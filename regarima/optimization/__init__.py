"""
Nonlinear least-squares minimizers used by the estimation loop.
"""

import logging

logger = logging.getLogger("regarima.optimization")

from .minimizers import (
    LevenbergMarquardtMinimizer,
    ScipyLeastSquaresMinimizer,
    SsqFunction,
    SsqFunctionMinimizer,
)

__all__ = [
    "SsqFunction",
    "SsqFunctionMinimizer",
    "LevenbergMarquardtMinimizer",
    "ScipyLeastSquaresMinimizer",
]
