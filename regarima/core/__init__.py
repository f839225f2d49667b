"""
regarima core module

Foundations shared by every estimation component: the exception and warning
hierarchy, the layered configuration system, type aliases and input
validation helpers.
"""

import logging

logger = logging.getLogger("regarima.core")

from .exceptions import (
    RegArimaError,
    ParameterError,
    DimensionError,
    NumericError,
    InvalidModelError,
    DataError,
    ModelSpecificationError,
    ConfigurationError,
    RegArimaWarning,
    ConvergenceWarning,
    NumericWarning,
    ModelWarning,
)

from .config import (
    ConfigManager,
    get_config,
    set_config,
    reset_config,
    save_config,
    get_numerical_config,
    get_performance_config,
    get_logging_config,
)

from .validation import validate_series, validate_design

__all__ = [
    # Exceptions
    "RegArimaError",
    "ParameterError",
    "DimensionError",
    "NumericError",
    "InvalidModelError",
    "DataError",
    "ModelSpecificationError",
    "ConfigurationError",
    # Warnings
    "RegArimaWarning",
    "ConvergenceWarning",
    "NumericWarning",
    "ModelWarning",
    # Configuration
    "ConfigManager",
    "get_config",
    "set_config",
    "reset_config",
    "save_config",
    "get_numerical_config",
    "get_performance_config",
    "get_logging_config",
    # Validation
    "validate_series",
    "validate_design",
]

logger.debug("regarima core module initialized")
