# regarima/models/estimation/kalman.py
"""
Innovations (Kalman-type) filter for stationary ARMA models.

The filter transforms a series generated by a stationary ARMA model into
standardized innovations ``e_t = (y_t - E[y_t | y_1..y_{t-1}]) / sqrt(h_t)``
and accumulates ``log det(Omega) = sum_t log h_t``, where ``Omega`` is the
covariance matrix of the series. Both quantities are exactly what the Gaussian
likelihood of the model needs.

Two modes are supported:

* single-use: the coefficient recursion runs while the data are whitened;
* multiuse: the coefficient trace is computed once into an immutable
  :class:`FilterPlan` and applied to many series of the same length (the
  response and every regressor of a regression model).

The recursion stops updating its coefficients once the prediction-error
variance is within a relative tolerance of the innovation variance (steady
state). The tolerance comes from the numerical configuration
(``steady_state_tolerance``); the short-circuit can be disabled to obtain a
reference computation.

Instances of :class:`KalmanFilter` are stateful and must not be shared
between threads; :meth:`KalmanFilter.exemplar` returns an independent
instance with the same settings. A :class:`FilterPlan` is read-only and may be
shared freely.
"""

import logging
from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np

from regarima.core.config import get_core_config, get_numerical_config
from regarima.core.exceptions import (
    InvalidModelError, ModelSpecificationError, raise_dimension_error
)
from regarima.models.arima.model import ArimaModel
from regarima.models.estimation import _numba_core

logger = logging.getLogger("regarima.models.estimation.kalman")


def _kernel(func):
    """Compiled kernel, or its Python source when numba is disabled."""
    if get_core_config().enable_numba:
        return func
    return func.py_func


class _FilterSetup(NamedTuple):
    c0: np.ndarray
    h0: float
    phi: np.ndarray
    var: float
    length: int
    eps: float


def _setup(model: ArimaModel, length: int, eps: float) -> _FilterSetup:
    if not model.is_stationary:
        raise ModelSpecificationError(
            "The innovations filter requires a stationary model",
            model_type=type(model).__name__,
            parameter="delta",
            details="Apply the differencing polynomial to the data first"
        )
    if length < 0:
        raise_dimension_error("Filter length must be non-negative",
                              array_name="data", actual_shape=(length,))

    phi = np.ascontiguousarray(model.ar, dtype=float)
    dim = max(model.ar_degree, model.ma_degree + 1)
    acov = model.autocovariance(dim)
    c0 = _kernel(_numba_core.initial_coefficients)(acov, phi)
    return _FilterSetup(c0, float(acov[0]), phi, model.var, length, eps)


def _raise_invalid(setup: _FilterSetup, position: int) -> None:
    raise InvalidModelError(
        "Prediction-error variance is not a finite positive number",
        position=position,
        details="The model does not define a valid covariance for the data",
        context={"Innovation Variance": setup.var, "Length": setup.length}
    )


def _tolerance(steady_state: bool, tolerance: Optional[float]) -> float:
    if not steady_state:
        return -1.0
    if tolerance is None:
        return get_numerical_config().steady_state_tolerance
    return float(tolerance)


@dataclass(frozen=True, eq=False)
class FilterPlan:
    """
    Precomputed coefficient trace of the filter for one model and length.

    Attributes:
        dim: Order of the recursion
        length: Number of observations the plan applies to
        phi: Autoregressive lag polynomial
        rows: Coefficient rows, one per position up to the steady state
        stdev: Prediction standard deviations ``sqrt(h_t)``
        log_determinant: ``sum_t log h_t``
    """
    dim: int
    length: int
    phi: np.ndarray
    rows: np.ndarray
    stdev: np.ndarray
    log_determinant: float

    def __post_init__(self) -> None:
        for array in (self.phi, self.rows, self.stdev):
            array.setflags(write=False)

    @property
    def steady_state_position(self) -> int:
        """First position from which the coefficients no longer change."""
        return max(self.rows.shape[0] - 1, 0)


def compile_filter(model: ArimaModel,
                   length: int,
                   steady_state: bool = True,
                   tolerance: Optional[float] = None) -> FilterPlan:
    """
    Compute the filter plan of a stationary model for a given length.

    Args:
        model: Stationary ARMA model
        length: Number of observations
        steady_state: Whether the coefficient recursion may stop early
        tolerance: Relative steady-state tolerance (configuration default if None)

    Returns:
        FilterPlan: Immutable plan usable with :func:`apply_filter`

    Raises:
        ModelSpecificationError: If the model has a differencing polynomial
        InvalidModelError: If the autoregressive polynomial is not stationary
            or the model produces an invalid prediction-error variance
    """
    return _compile(_setup(model, length, _tolerance(steady_state, tolerance)))


def _compile(setup: _FilterSetup) -> FilterPlan:
    rows, stdev, ldet, status = _kernel(_numba_core.kalman_coefficients)(
        setup.c0, setup.h0, setup.phi, setup.var, setup.length, setup.eps
    )
    if status >= 0:
        _raise_invalid(setup, status)
    return FilterPlan(setup.c0.shape[0], setup.length, setup.phi, rows, stdev, ldet)


def apply_filter(plan: FilterPlan, data: np.ndarray) -> np.ndarray:
    """
    Whiten data with a precomputed plan.

    Args:
        plan: Filter plan
        data: Vector of length ``plan.length`` or matrix with that many rows

    Returns:
        np.ndarray: Standardized innovations with the shape of ``data``
    """
    data = np.ascontiguousarray(data, dtype=float)
    if data.shape[:1] != (plan.length,) or data.ndim > 2:
        raise_dimension_error(
            "Data length does not match the filter plan",
            array_name="data",
            expected_shape=f"({plan.length},) or ({plan.length}, k)",
            actual_shape=data.shape
        )
    if plan.length == 0:
        return data.copy()
    if data.ndim == 1:
        return _kernel(_numba_core.kalman_apply)(data, plan.rows, plan.stdev, plan.phi)
    return _kernel(_numba_core.kalman_apply_columns)(data, plan.rows, plan.stdev, plan.phi)


class KalmanFilter:
    """
    Stateful innovations filter.

    Typical use::

        kf = KalmanFilter()
        kf.initialize(model, len(y))
        e = kf.filter(y)
        ldet = kf.log_determinant()

    Args:
        multiuse: Precompute the coefficient trace so that several series of
            the same length can be filtered
        steady_state: Whether the coefficient recursion may stop at the
            steady state
        tolerance: Relative steady-state tolerance (configuration default if None)
    """

    def __init__(self,
                 multiuse: bool = False,
                 steady_state: bool = True,
                 tolerance: Optional[float] = None) -> None:
        self._multiuse = multiuse
        self._steady_state = steady_state
        self._tolerance = tolerance
        self._setup: Optional[_FilterSetup] = None
        self._plan: Optional[FilterPlan] = None
        self._ldet = np.nan

    @property
    def multiuse(self) -> bool:
        return self._multiuse

    @property
    def plan(self) -> Optional[FilterPlan]:
        """The coefficient trace in multiuse mode, None otherwise."""
        return self._plan

    def initialize(self, model: ArimaModel, length: int) -> int:
        """
        Prepare the filter for a model and a data length.

        Args:
            model: Stationary ARMA model
            length: Number of observations to be filtered

        Returns:
            int: The number of observations the filter accepts

        Raises:
            ModelSpecificationError: If the model has a differencing polynomial
            InvalidModelError: If the autoregressive polynomial is not
                stationary, the innovation variance is not positive or, in
                multiuse mode, a prediction-error variance is invalid
        """
        self._ldet = np.nan
        self._plan = None
        self._setup = _setup(model, length, _tolerance(self._steady_state, self._tolerance))
        if self._multiuse:
            self._plan = _compile(self._setup)
            self._ldet = self._plan.log_determinant
        return length

    def _require_setup(self) -> _FilterSetup:
        if self._setup is None:
            raise RuntimeError("KalmanFilter.initialize must be called before filtering")
        return self._setup

    def filter(self, data: np.ndarray) -> np.ndarray:
        """
        Whiten a series.

        Args:
            data: Observations, as many as the initialized length

        Returns:
            np.ndarray: Standardized innovations

        Raises:
            InvalidModelError: If the prediction-error variance becomes invalid
            DimensionError: If the data length differs from the initialized one
        """
        setup = self._require_setup()
        if self._plan is not None:
            return apply_filter(self._plan, data)

        data = np.ascontiguousarray(data, dtype=float)
        if data.shape != (setup.length,):
            raise_dimension_error(
                "Data length does not match the initialized filter",
                array_name="data",
                expected_shape=(setup.length,),
                actual_shape=data.shape
            )
        e, ldet, status = _kernel(_numba_core.kalman_filter)(
            data, setup.c0, setup.h0, setup.phi, setup.var, setup.eps
        )
        if status >= 0:
            _raise_invalid(setup, status)
        self._ldet = ldet
        return e

    def log_determinant(self) -> float:
        """
        Log-determinant of the covariance matrix of the initialized length.

        Available after :meth:`filter` or, without data, computed from the
        variance recursion alone.
        """
        setup = self._require_setup()
        if np.isnan(self._ldet):
            ldet, status = _kernel(_numba_core.kalman_log_determinant)(
                setup.c0, setup.h0, setup.phi, setup.var, setup.length, setup.eps
            )
            if status >= 0:
                _raise_invalid(setup, status)
            self._ldet = ldet
        return self._ldet

    def exemplar(self) -> "KalmanFilter":
        """A new, uninitialized filter with the same settings."""
        return KalmanFilter(self._multiuse, self._steady_state, self._tolerance)

    def __repr__(self) -> str:
        mode = "multiuse" if self._multiuse else "single-use"
        return f"KalmanFilter({mode}, steady_state={self._steady_state})"
