# regarima/models/arima/__init__.py
"""
ARIMA error models and their parametric mappings.

Key components:
- Lag polynomial helpers (roots, stabilization, seasonal products)
- ArimaModel and the seasonal SarimaModel
- The parameter domain contract and mappings for the supported model families
"""

import logging

logger = logging.getLogger("regarima.models.arima")

from . import polynomials
from .model import ArimaModel, StationaryTransformation
from .sarima import SarimaModel, SarimaSpecification
from .mapping import (
    ParamValidation,
    ParametersDomain,
    ParametricMapping,
    ArimaMapping,
    SarimaMapping,
    FixedParametersMapping,
    mapping_for,
)

__all__ = [
    "polynomials",
    "ArimaModel",
    "StationaryTransformation",
    "SarimaModel",
    "SarimaSpecification",
    "ParamValidation",
    "ParametersDomain",
    "ParametricMapping",
    "ArimaMapping",
    "SarimaMapping",
    "FixedParametersMapping",
    "mapping_for",
]
