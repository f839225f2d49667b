# regarima/core/validation.py

"""
Validation utilities for the regarima package.

Helpers that turn user input (numpy arrays, pandas Series or DataFrames) into
clean float arrays, raising the package errors with informative context when
the input cannot be used.
"""

from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from regarima.core.exceptions import raise_data_error, raise_dimension_error
from regarima.core.types import DesignData, Matrix, TimeSeriesData, Vector


def validate_series(
    data: TimeSeriesData,
    min_length: int = 1,
    data_name: str = "y"
) -> Vector:
    """Validate a univariate series and return it as a float vector.

    Args:
        data: Series to validate
        min_length: Minimum required length
        data_name: Name of the data for error messages

    Returns:
        np.ndarray: Contiguous float64 copy of the data

    Raises:
        TypeError: If data is not an array or Series
        DimensionError: If data is not one-dimensional
        DataError: If data is too short or contains NaN or infinite values
    """
    if isinstance(data, pd.DataFrame):
        if data.shape[1] != 1:
            raise_dimension_error(
                f"{data_name} must be univariate",
                array_name=data_name,
                expected_shape="(n,)",
                actual_shape=data.shape
            )
        data = data.iloc[:, 0]

    if isinstance(data, pd.Series):
        values = data.to_numpy(dtype=float)
    elif isinstance(data, (np.ndarray, list, tuple)):
        values = np.asarray(data, dtype=float)
    else:
        raise TypeError(
            f"{data_name} must be a NumPy array or Pandas Series, "
            f"got {type(data).__name__}"
        )

    if values.ndim == 2 and 1 in values.shape:
        values = values.ravel()
    if values.ndim != 1:
        raise_dimension_error(
            f"{data_name} must be one-dimensional",
            array_name=data_name,
            expected_shape="(n,)",
            actual_shape=values.shape
        )

    if values.shape[0] < min_length:
        raise_data_error(
            f"{data_name} is too short (length {values.shape[0]}), "
            f"minimum required length is {min_length}",
            data_name=data_name,
            issue=f"insufficient length: {values.shape[0]} < {min_length}"
        )

    if not np.all(np.isfinite(values)):
        bad = np.flatnonzero(~np.isfinite(values))
        raise_data_error(
            f"{data_name} contains NaN or infinite values",
            data_name=data_name,
            issue="non-finite values",
            index=int(bad[0])
        )

    return np.ascontiguousarray(values)


def validate_design(
    x: Optional[DesignData],
    n: int,
    data_name: str = "x"
) -> Tuple[Matrix, List[str]]:
    """Validate a design matrix against a series length.

    Args:
        x: Regressors, one column per variable, or None for no regressors
        n: Required number of rows
        data_name: Name of the data for error messages

    Returns:
        Tuple[np.ndarray, List[str]]: The (n, k) float matrix and the column
        names (taken from a DataFrame or Series, generated otherwise)

    Raises:
        DimensionError: If the number of rows differs from n
        DataError: If x contains NaN or infinite values
    """
    if x is None:
        return np.zeros((n, 0)), []

    if isinstance(x, pd.Series):
        names = [str(x.name) if x.name is not None else f"{data_name}1"]
        values = x.to_numpy(dtype=float).reshape(-1, 1)
    elif isinstance(x, pd.DataFrame):
        names = [str(c) for c in x.columns]
        values = x.to_numpy(dtype=float)
    else:
        values = np.asarray(x, dtype=float)
        if values.ndim == 1:
            values = values.reshape(-1, 1)
        names = [f"{data_name}{i + 1}" for i in range(values.shape[1] if values.ndim == 2 else 0)]

    if values.ndim != 2 or values.shape[0] != n:
        raise_dimension_error(
            f"{data_name} must have {n} rows",
            array_name=data_name,
            expected_shape=f"({n}, k)",
            actual_shape=values.shape
        )

    if not np.all(np.isfinite(values)):
        raise_data_error(
            f"{data_name} contains NaN or infinite values",
            data_name=data_name,
            issue="non-finite values"
        )

    return np.ascontiguousarray(values), names
