# regarima/models/__init__.py
"""
regarima models.

Subpackages:
- arima: ARIMA and seasonal ARIMA error models and their parametric mappings
- estimation: innovations filter, concentrated likelihood and GLS-ARIMA estimation
- diagnostics: pre-estimation tests
"""

import logging

# Set up module-level logger
logger = logging.getLogger("regarima.models")

# The arima subpackage must be complete before the estimation modules load
try:
    from . import arima
    from . import estimation
    from . import diagnostics
except ImportError as e:
    logger.error(f"Error importing model components: {e}")
    raise ImportError(
        "Failed to import model components. Please ensure the package "
        "is correctly installed. You can install it using: "
        "pip install regarima-toolbox"
    ) from e

from .arima import ArimaModel, SarimaModel, SarimaSpecification, mapping_for
from .estimation import GlsArimaProcessor, RegArimaEstimation, RegArimaModel

__all__ = [
    "arima",
    "estimation",
    "diagnostics",
    "ArimaModel",
    "SarimaModel",
    "SarimaSpecification",
    "mapping_for",
    "GlsArimaProcessor",
    "RegArimaEstimation",
    "RegArimaModel",
]
