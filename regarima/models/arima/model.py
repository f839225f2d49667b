# regarima/models/arima/model.py
"""
ARIMA error models.

An :class:`ArimaModel` is an immutable description of the stochastic part of a
regression model: a stationary autoregressive polynomial, a differencing
(unit-root) polynomial, a moving-average polynomial and the innovation
variance. The estimation engine only needs the stationary ARMA part and its
autocovariances; the differencing polynomial is applied to the data before
the likelihood is evaluated.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import NamedTuple

import numpy as np
from statsmodels.tsa.arima_process import arma_acovf

from regarima.core.exceptions import InvalidModelError, raise_parameter_error
from regarima.core.types import Polynomial
from regarima.models.arima import polynomials

logger = logging.getLogger("regarima.models.arima.model")


class StationaryTransformation(NamedTuple):
    """Decomposition of an ARIMA model into its stationary part and unit roots."""
    stationary_model: "ArimaModel"
    unit_roots: Polynomial


@dataclass(frozen=True, eq=False)
class ArimaModel:
    """
    ARIMA model ``ar(B) delta(B) y_t = ma(B) e_t`` with ``var(e_t) = var``.

    Attributes:
        ar: Stationary autoregressive lag polynomial, ``[1, -phi_1, ...]``
        delta: Differencing lag polynomial, ``[1]`` for a stationary model
        ma: Moving-average lag polynomial, ``[1, theta_1, ...]``
        var: Innovation variance
    """
    ar: Polynomial = field(default_factory=lambda: polynomials.ONE)
    delta: Polynomial = field(default_factory=lambda: polynomials.ONE)
    ma: Polynomial = field(default_factory=lambda: polynomials.ONE)
    var: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "ar", polynomials.as_polynomial(self.ar, "ar"))
        object.__setattr__(self, "delta", polynomials.as_polynomial(self.delta, "delta"))
        object.__setattr__(self, "ma", polynomials.as_polynomial(self.ma, "ma"))
        if not np.isfinite(self.var):
            raise_parameter_error(
                "Innovation variance must be finite",
                param_name="var",
                param_value=self.var
            )
        object.__setattr__(self, "var", float(self.var))

    @property
    def ar_degree(self) -> int:
        return self.ar.shape[0] - 1

    @property
    def ma_degree(self) -> int:
        return self.ma.shape[0] - 1

    @property
    def differencing_order(self) -> int:
        return self.delta.shape[0] - 1

    @property
    def is_stationary(self) -> bool:
        """True when the model has no differencing polynomial."""
        return self.differencing_order == 0

    @property
    def ar_coefficients(self) -> np.ndarray:
        """Autoregressive coefficients ``phi`` of ``y_t = phi_1 y_{t-1} + ...``."""
        return -self.ar[1:]

    @property
    def ma_coefficients(self) -> np.ndarray:
        """Moving-average coefficients ``theta`` of ``e_t + theta_1 e_{t-1} + ...``."""
        return self.ma[1:].copy()

    def check_stationarity(self) -> None:
        """Raise if the autoregressive polynomial is not stationary.

        Raises:
            InvalidModelError: If an inverse root of ``ar`` is on or outside
                the unit circle
        """
        modulus = polynomials.max_inverse_root(self.ar)
        if modulus >= 1.0:
            raise InvalidModelError(
                "Autoregressive polynomial is not stationary",
                details=f"Largest inverse root modulus is {modulus:.6f}",
                context={"AR Polynomial": self.ar}
            )

    def autocovariance(self, n: int) -> np.ndarray:
        """First ``n`` autocovariances of the stationary ARMA part.

        Args:
            n: Number of lags (lag 0 included)

        Returns:
            np.ndarray: ``gamma_0, ..., gamma_{n-1}``

        Raises:
            InvalidModelError: If the autoregressive polynomial is not stationary
                or the innovation variance is not positive
        """
        self.check_stationarity()
        if not self.var > 0:
            raise InvalidModelError(
                "Innovation variance must be positive",
                position=0,
                variance=self.var
            )
        acov = arma_acovf(np.asarray(self.ar), np.asarray(self.ma), nobs=n, sigma2=self.var)
        return np.asarray(acov, dtype=float)

    def stationary_transformation(self) -> StationaryTransformation:
        """Split the model into its stationary ARMA part and its unit roots."""
        return StationaryTransformation(self.stationary_model(), self.delta)

    def stationary_model(self) -> "ArimaModel":
        """The ARMA model obtained by dropping the differencing polynomial."""
        if self.is_stationary:
            return self
        return ArimaModel(ar=self.ar, ma=self.ma, var=self.var)

    def with_variance(self, var: float) -> "ArimaModel":
        """Copy of the model with another innovation variance."""
        return replace(self, var=var)

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(ar={self.ar.tolist()}, delta={self.delta.tolist()}, "
                f"ma={self.ma.tolist()}, var={self.var:g})")
