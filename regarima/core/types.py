# regarima/core/types.py

"""
Core type annotations for the regarima package.

Type aliases for arrays, time series inputs and the callables exchanged
between the estimation components.
"""

from typing import Callable, Literal, Tuple, TypeVar, Union

import numpy as np
import pandas as pd

T = TypeVar('T')  # Generic type
M = TypeVar('M')  # Model type

# NumPy array type aliases
Vector = np.ndarray  # 1D array
Matrix = np.ndarray  # 2D array

# Inputs accepted at the model boundary
TimeSeriesData = Union[np.ndarray, pd.Series]
DesignData = Union[np.ndarray, pd.DataFrame, pd.Series]

# Estimation vectors
ParameterVector = np.ndarray  # Vector of free model parameters
ResidualVector = np.ndarray  # Residuals whose sum of squares is minimized
Polynomial = np.ndarray  # Lag polynomial, coefficient of lag 0 first

# Callables
ResidualFunction = Callable[[ParameterVector], ResidualVector]
ProgressCallback = Callable[[int, float], None]

# Model orders
ARMAOrder = Tuple[int, int]  # (p, q)
ARIMAOrder = Tuple[int, int, int]  # (p, d, q)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
