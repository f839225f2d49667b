# regarima/models/estimation/likelihood.py
"""
Concentrated Gaussian likelihood of regression models with ARMA errors.

For ``y = X b + u`` with ``u ~ N(0, sigma^2 Omega)`` the likelihood is
maximized analytically in ``b`` (generalized least squares) and ``sigma^2``
(``ssq / n``). Whitening ``y`` and ``X`` with the innovations filter turns the
GLS problem into an ordinary least-squares problem, so what remains is::

    log L = -0.5 * (n log(2 pi) + n (1 + log(ssq / n)) + log det(Omega))

Maximizing it over the ARMA parameters is the same as minimizing
``ssq * exp(log det(Omega) / n)``, the sum of squares of the scaled residuals
``e * sqrt(factor)`` returned by :meth:`ConcentratedLikelihood.v`.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

import numpy as np
from scipy import linalg

from regarima.core.config import get_numerical_config
from regarima.core.exceptions import NumericError, raise_data_error
from regarima.models.estimation.kalman import KalmanFilter
from regarima.models.estimation.regression import RegArimaModel, RegArmaModel

logger = logging.getLogger("regarima.models.estimation.likelihood")


@dataclass(frozen=True, eq=False)
class ConcentratedLikelihood:
    """
    Likelihood of a regression model with ARMA errors, concentrated in the
    regression coefficients and the innovation variance.

    Attributes:
        n: Number of observations
        log_determinant: ``log det(Omega)``
        ssq: Sum of squared standardized residuals
        residuals: Standardized residuals ``e`` (None when not kept)
        coefficients: GLS estimates of the regression coefficients
        unscaled_covariance: ``(X' Omega^-1 X)^-1``
    """
    n: int
    log_determinant: float
    ssq: float
    residuals: Optional[np.ndarray] = None
    coefficients: np.ndarray = field(default_factory=lambda: np.zeros(0))
    unscaled_covariance: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))

    @property
    def nx(self) -> int:
        return self.coefficients.shape[0]

    @property
    def degrees_of_freedom(self) -> int:
        return self.n - self.nx

    @property
    def factor(self) -> float:
        """``exp(log det(Omega) / n)``, the scaling of the residuals."""
        return float(np.exp(self.log_determinant / self.n))

    @property
    def log_likelihood(self) -> float:
        n = self.n
        return -0.5 * (n * np.log(2.0 * np.pi) + n * (1.0 + np.log(self.ssq / n))
                       + self.log_determinant)

    @property
    def sigma(self) -> float:
        """Maximum likelihood estimate of the innovation variance."""
        return self.ssq / self.n

    @property
    def ser(self) -> float:
        """Standard error of the regression, ``sqrt(ssq / n)``."""
        return float(np.sqrt(self.ssq / self.n))

    @property
    def objective(self) -> float:
        """``ssq * factor``, minimized by the maximum likelihood estimates."""
        return self.ssq * self.factor

    def v(self) -> np.ndarray:
        """Scaled residuals ``e * sqrt(factor)``; their sum of squares is :attr:`objective`."""
        if self.residuals is None:
            raise ValueError("Residuals were not kept by the likelihood computer")
        return self.residuals * np.sqrt(self.factor)

    def aic(self, nparams: int) -> float:
        return -2.0 * self.log_likelihood + 2.0 * nparams

    def bic(self, nparams: int) -> float:
        return -2.0 * self.log_likelihood + nparams * np.log(self.n)

    def coefficient_covariance(self, unbiased: bool = True) -> np.ndarray:
        """
        Covariance of the regression coefficients.

        Args:
            unbiased: Scale with ``ssq / (n - nx)`` instead of ``ssq / n``
        """
        ndf = self.degrees_of_freedom if unbiased else self.n
        return self.unscaled_covariance * (self.ssq / ndf)

    def coefficient_standard_errors(self, unbiased: bool = True) -> np.ndarray:
        return np.sqrt(np.diag(self.coefficient_covariance(unbiased)))

    def t_statistics(self, unbiased: bool = True) -> np.ndarray:
        return self.coefficients / self.coefficient_standard_errors(unbiased)


class ConcentratedLikelihoodComputer:
    """
    Computes the concentrated likelihood through the innovations filter.

    Each call uses its own filter instance, so a computer can be shared by
    concurrent evaluations.

    Args:
        kalman_filter: Template filter, copied through ``exemplar()``; by
            default a multiuse filter when the model has regressors
        keep_residuals: Whether the standardized residuals are stored in the
            result (required by the estimation loop)
    """

    def __init__(self,
                 kalman_filter: Optional[KalmanFilter] = None,
                 keep_residuals: bool = True) -> None:
        self._template = kalman_filter
        self._keep_residuals = keep_residuals

    def _new_filter(self, nx: int) -> KalmanFilter:
        if self._template is not None:
            return self._template.exemplar()
        return KalmanFilter(multiuse=nx > 0)

    def compute(self, model: Union[RegArmaModel, RegArimaModel]) -> ConcentratedLikelihood:
        """
        Compute the likelihood of a model.

        Args:
            model: Regression model; a RegArimaModel is differenced first

        Returns:
            ConcentratedLikelihood: The likelihood and the GLS estimates

        Raises:
            InvalidModelError: If the errors model is invalid
            NumericError: If the whitened regressors are collinear
            DataError: If there are no more observations than regressors
        """
        if isinstance(model, RegArimaModel):
            model = model.differenced_model()

        n, nx = model.n, model.nx
        if n <= nx:
            raise_data_error(
                f"{n} observations cannot identify {nx} regression coefficients",
                data_name="y",
                issue="insufficient degrees of freedom"
            )

        kf = self._new_filter(nx)
        kf.initialize(model.arma, n)
        ey = kf.filter(model.y)

        if nx == 0:
            e = ey
            coefficients = np.zeros(0)
            unscaled = np.zeros((0, 0))
        else:
            if kf.multiuse:
                ex = kf.filter(model.x)
            else:
                ex = np.column_stack([kf.filter(column) for column in model.x.T])
            coefficients, unscaled = self._least_squares(ex, ey)
            e = ey - ex @ coefficients

        ssq = float(e @ e)
        return ConcentratedLikelihood(
            n=n,
            log_determinant=kf.log_determinant(),
            ssq=ssq,
            residuals=e if self._keep_residuals else None,
            coefficients=coefficients,
            unscaled_covariance=unscaled
        )

    @staticmethod
    def _least_squares(ex: np.ndarray, ey: np.ndarray):
        q, r = linalg.qr(ex, mode='economic')
        diag = np.abs(np.diag(r))
        tolerance = get_numerical_config().collinearity_tolerance
        if diag.min() <= tolerance * max(diag.max(), 1.0):
            raise NumericError(
                "Regression variables are collinear",
                operation="QR decomposition of the whitened regressors",
                values=diag,
                error_type="singular"
            )
        coefficients = linalg.solve_triangular(r, q.T @ ey)
        rinv = linalg.solve_triangular(r, np.eye(r.shape[0]))
        return coefficients, rinv @ rinv.T
