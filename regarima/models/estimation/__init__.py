# regarima/models/estimation/__init__.py
"""
Estimation of regression models with ARIMA errors.

Key components:
- Innovations filter (KalmanFilter, FilterPlan) with numba kernels
- Concentrated likelihood of regression models with ARMA errors
- Nonlinear estimation loop of the ARMA parameters (RegArmaProcessor)
- GLS-ARIMA processor with pluggable initializers and finalizers
"""

import logging

logger = logging.getLogger("regarima.models.estimation")

from .kalman import FilterPlan, KalmanFilter, apply_filter, compile_filter
from .regression import RegArimaModel, RegArmaModel
from .likelihood import ConcentratedLikelihood, ConcentratedLikelihoodComputer
from .regarma import (
    RegArmaEstimation,
    RegArmaProcessor,
    RegArmaSsqFunction,
    gauss_newton_covariance,
)
from .results import RegArimaEstimation, concentrated_loglikelihood_function
from .initializers import HannanRissanenInitializer, RegArimaInitializer
from .finalizers import RegArimaFinalizer, UnitRootFinalizer
from .processor import GlsArimaConfig, GlsArimaProcessor, GlsArimaProcessorBuilder

__all__ = [
    "FilterPlan",
    "KalmanFilter",
    "apply_filter",
    "compile_filter",
    "RegArimaModel",
    "RegArmaModel",
    "ConcentratedLikelihood",
    "ConcentratedLikelihoodComputer",
    "RegArmaEstimation",
    "RegArmaProcessor",
    "RegArmaSsqFunction",
    "gauss_newton_covariance",
    "RegArimaEstimation",
    "concentrated_loglikelihood_function",
    "RegArimaInitializer",
    "HannanRissanenInitializer",
    "RegArimaFinalizer",
    "UnitRootFinalizer",
    "GlsArimaConfig",
    "GlsArimaProcessor",
    "GlsArimaProcessorBuilder",
]
