# regarima/models/estimation/results.py
"""
Estimation results of regression models with ARIMA errors.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from regarima.core.exceptions import ModelWarning
from regarima.core.types import Matrix, ParameterVector, Vector
from regarima.models.arima.mapping import ParametricMapping
from regarima.models.arima.model import ArimaModel
from regarima.models.estimation.likelihood import (
    ConcentratedLikelihood, ConcentratedLikelihoodComputer
)
from regarima.models.estimation.regarma import gauss_newton_covariance
from regarima.models.estimation.regression import RegArimaModel
from regarima.utils.differentiation import hessian_2sided

logger = logging.getLogger("regarima.models.estimation.results")

MappingProvider = Callable[[ArimaModel], ParametricMapping]


def concentrated_loglikelihood_function(
        mapping: MappingProvider,
        model: RegArimaModel) -> Callable[[ParameterVector], float]:
    """
    Concentrated log-likelihood of a model as a function of its ARIMA parameters.

    Args:
        mapping: Provider of the mapping of the model's family
        model: Regression model; its errors model only selects the family

    Returns:
        Callable returning the log-likelihood of ``model`` with the errors
        model ``mapping(model.arima).map(params)``
    """
    pmapping = mapping(model.arima)
    computer = ConcentratedLikelihoodComputer(keep_residuals=False)

    def loglikelihood(params: ParameterVector) -> float:
        return computer.compute(model.with_arima(pmapping.map(params))).log_likelihood

    return loglikelihood


@dataclass(frozen=True, eq=False)
class RegArimaEstimation:
    """
    Estimated regression model with ARIMA errors.

    Attributes:
        model: Regression model with the estimated errors model
        likelihood: Concentrated likelihood of the full model
        parameters: Estimated ARIMA parameters
        gradient: Gradient of the minimized sum of squares
        hessian: Gauss-Newton Hessian of the minimized sum of squares
        objective: Minimized sum of squares
        degrees_of_freedom: Observations of the differenced model minus its
            regression variables
        converged: Whether the minimizer converged
        iterations: Number of minimizer iterations
        trace: Objective values accepted along the iterations
        parameter_names: Names of the ARIMA parameters
        loglikelihood_function: Log-likelihood as a function of the parameters
        warnings: Warnings attached by finalizers
    """
    model: RegArimaModel
    likelihood: ConcentratedLikelihood
    parameters: ParameterVector
    gradient: Vector
    hessian: Matrix
    objective: float
    degrees_of_freedom: int
    converged: bool = True
    iterations: int = 0
    trace: Tuple[float, ...] = ()
    parameter_names: Sequence[str] = ()
    loglikelihood_function: Optional[Callable[[ParameterVector], float]] = None
    warnings: Tuple[ModelWarning, ...] = field(default_factory=tuple)

    @property
    def arima(self) -> ArimaModel:
        return self.model.arima

    @property
    def log_likelihood(self) -> float:
        return self.likelihood.log_likelihood

    @property
    def nparams(self) -> int:
        """ARIMA parameters, regression coefficients and the innovation variance."""
        return self.parameters.shape[0] + self.model.nx + 1

    @property
    def aic(self) -> float:
        return self.likelihood.aic(self.nparams)

    @property
    def bic(self) -> float:
        return self.likelihood.bic(self.nparams)

    @property
    def innovation_variance(self) -> float:
        return self.likelihood.sigma

    @property
    def coefficients(self) -> np.ndarray:
        """GLS estimates of the regression coefficients."""
        return self.likelihood.coefficients

    def parameter_covariance(self) -> Matrix:
        """Gauss-Newton covariance of the ARIMA parameters."""
        return gauss_newton_covariance(self.hessian, self.objective, self.degrees_of_freedom)

    def parameter_standard_errors(self) -> np.ndarray:
        return np.sqrt(np.abs(np.diag(self.parameter_covariance())))

    def numerical_hessian(self) -> Matrix:
        """Two-sided numerical Hessian of the negative log-likelihood at the estimates."""
        if self.loglikelihood_function is None:
            raise ValueError("The log-likelihood function of the estimation is not available")
        llf = self.loglikelihood_function
        return hessian_2sided(lambda p: -llf(p), self.parameters)

    def parameter_table(self) -> pd.DataFrame:
        """ARIMA parameters with their standard errors and t-statistics."""
        se = self.parameter_standard_errors()
        with np.errstate(divide="ignore", invalid="ignore"):
            t = self.parameters / se
        names = list(self.parameter_names) or [f"parameter-{i + 1}"
                                               for i in range(self.parameters.shape[0])]
        return pd.DataFrame({"estimate": self.parameters, "std. error": se, "t-stat": t},
                            index=names)

    def coefficient_table(self) -> pd.DataFrame:
        """Regression coefficients with their standard errors and t-statistics."""
        se = self.likelihood.coefficient_standard_errors()
        return pd.DataFrame({"estimate": self.coefficients, "std. error": se,
                             "t-stat": self.coefficients / se},
                            index=list(self.model.variable_names))

    def summary(self) -> str:
        """Text summary of the estimation."""
        lines = [
            "RegARIMA estimation",
            "=" * 60,
            f"Errors model: {self.arima!r}",
            f"Observations: {self.model.n} (effective {self.likelihood.n})",
            f"Log-likelihood: {self.log_likelihood:.6f}",
            f"AIC: {self.aic:.6f}    BIC: {self.bic:.6f}",
            f"Innovation variance: {self.innovation_variance:.6g}",
            f"Converged: {self.converged} ({self.iterations} iterations)",
        ]
        if self.parameters.shape[0] > 0:
            lines += ["", "ARIMA parameters", "-" * 60, self.parameter_table().to_string()]
        if self.model.nx > 0:
            lines += ["", "Regression coefficients", "-" * 60, self.coefficient_table().to_string()]
        for warning in self.warnings:
            lines += ["", f"Warning: {warning.message}"]
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameters": self.parameters.tolist(),
            "parameter_names": list(self.parameter_names),
            "coefficients": self.coefficients.tolist(),
            "variable_names": list(self.model.variable_names),
            "log_likelihood": self.log_likelihood,
            "aic": self.aic,
            "bic": self.bic,
            "innovation_variance": self.innovation_variance,
            "converged": self.converged,
            "iterations": self.iterations,
            "trace": list(self.trace),
            "warnings": [w.message for w in self.warnings],
        }

    def __str__(self) -> str:
        return self.summary()
