# regarima/__init__.py
"""
regarima - GLS estimation of regression models with ARIMA errors

The package estimates regression models whose errors follow ARIMA or
multiplicative seasonal ARIMA models by maximizing the Gaussian likelihood,
concentrated in the regression coefficients and the innovation variance.
The likelihood is evaluated through an innovations (Kalman-type) filter and
maximized by nonlinear least squares.

The package provides:
- ARIMA/SARIMA error models and parametric mappings with admissible domains
- The innovations filter and the concentrated likelihood
- The GLS-ARIMA processor with pluggable initializers, finalizers and minimizers
- The range-mean test for the log/level transformation

This module serves as the main entry point of the package.
"""

import logging
import os
from typing import Union

# Set up package-wide logger
logger = logging.getLogger("regarima")

from .version import __version__, __license__, __title__, __description__

# Import order matters: the model packages are loaded before the optimizers
# that depend on the parameter domains
try:
    from . import core
    from . import models
    from . import optimization
    from . import utils
except ImportError as e:
    logger.error(f"Error importing regarima components: {e}")
    raise ImportError(
        "Failed to import regarima components. Please ensure the package "
        "is correctly installed. You can install it using: "
        "pip install regarima-toolbox"
    ) from e

from .core.config import initialize_config, set_config
from .core.exceptions import (
    ConvergenceWarning,
    InvalidModelError,
    ModelWarning,
    RegArimaError,
)
from .models.arima import (
    ArimaMapping,
    ArimaModel,
    FixedParametersMapping,
    SarimaMapping,
    SarimaModel,
    SarimaSpecification,
    mapping_for,
)
from .models.estimation import (
    ConcentratedLikelihoodComputer,
    GlsArimaConfig,
    GlsArimaProcessor,
    HannanRissanenInitializer,
    KalmanFilter,
    RegArimaEstimation,
    RegArimaModel,
    UnitRootFinalizer,
)
from .models.diagnostics import range_mean_test
from .optimization import LevenbergMarquardtMinimizer, ScipyLeastSquaresMinimizer


def get_version() -> str:
    """
    Return the version of regarima.

    Returns:
        str: Version string in format MAJOR.MINOR.PATCH
    """
    return __version__


def set_log_level(level: Union[str, int]) -> None:
    """
    Set the logging level of the package.

    Args:
        level: Logging level, either as string ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
              or as an integer constant from the logging module
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logger.setLevel(level)
    logger.info(f"Log level set to {logging.getLevelName(level)}")


def enable_numba(enabled: bool = True) -> None:
    """
    Enable or disable the numba kernels of the innovations filter.

    Args:
        enabled: Whether compiled kernels are used; when False the pure
            Python versions of the same kernels run instead
    """
    set_config("core", "enable_numba", enabled)
    logger.info(f"Numba acceleration {'enabled' if enabled else 'disabled'}")


def _initialize() -> None:
    """Load the configuration and apply the REGARIMA_LOG_LEVEL override."""
    initialize_config()
    log_level = os.environ.get("REGARIMA_LOG_LEVEL")
    if log_level:
        try:
            set_log_level(log_level)
        except AttributeError:
            logger.warning(f"Unknown log level in REGARIMA_LOG_LEVEL: {log_level}")


_initialize()

__all__ = [
    # Subpackages
    "core",
    "models",
    "optimization",
    "utils",

    # Models and estimation
    "ArimaModel",
    "SarimaModel",
    "SarimaSpecification",
    "ArimaMapping",
    "SarimaMapping",
    "FixedParametersMapping",
    "mapping_for",
    "RegArimaModel",
    "KalmanFilter",
    "ConcentratedLikelihoodComputer",
    "GlsArimaConfig",
    "GlsArimaProcessor",
    "RegArimaEstimation",
    "HannanRissanenInitializer",
    "UnitRootFinalizer",
    "LevenbergMarquardtMinimizer",
    "ScipyLeastSquaresMinimizer",
    "range_mean_test",

    # Errors and warnings
    "RegArimaError",
    "InvalidModelError",
    "ConvergenceWarning",
    "ModelWarning",

    # Public functions
    "get_version",
    "set_log_level",
    "enable_numba",

    # Version info
    "__version__",
]

logger.debug(f"regarima v{__version__} initialized")
