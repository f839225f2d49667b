# regarima/models/estimation/regarma.py
"""
Nonlinear estimation of the ARMA parameters of a regression model.

The regression coefficients and the innovation variance are concentrated out
of the likelihood, so only the ARMA parameters are left to the minimizer. For
maximum likelihood the minimized residuals are the scaled innovations
``e * sqrt(factor)`` (their sum of squares is ``ssq * exp(log det / n)``);
otherwise the plain standardized innovations are used, which gives a
least-squares estimate.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy import linalg

from regarima.core.config import get_performance_config
from regarima.core.exceptions import (
    InvalidModelError, ModelSpecificationError, warn_convergence, warn_numeric
)
from regarima.core.types import Matrix, ParameterVector, ResidualVector, Vector
from regarima.models.arima.mapping import ParametricMapping
from regarima.models.arima.model import ArimaModel
from regarima.models.estimation.likelihood import (
    ConcentratedLikelihood, ConcentratedLikelihoodComputer
)
from regarima.models.estimation.regression import RegArmaModel
from regarima.optimization.minimizers import SsqFunctionMinimizer
from regarima.utils.differentiation import jacobian

logger = logging.getLogger("regarima.models.estimation.regarma")


class RegArmaSsqFunction:
    """
    Residual function of a RegArmaModel in its ARMA parameters.

    Args:
        model: Differenced regression model; its errors model is replaced
            by the mapped parameters
        mapping: Mapping between parameters and stationary ARMA models
        ml: Minimize the scaled residuals (maximum likelihood) instead of
            the standardized innovations
        computer: Likelihood computer (a default one if None)
        executor: Thread pool for the Jacobian columns, None for serial evaluation
    """

    def __init__(self,
                 model: RegArmaModel,
                 mapping: ParametricMapping,
                 ml: bool = True,
                 computer: Optional[ConcentratedLikelihoodComputer] = None,
                 executor: Optional[ThreadPoolExecutor] = None) -> None:
        self.model = model
        self.mapping = mapping
        self.ml = ml
        self.computer = computer if computer is not None else ConcentratedLikelihoodComputer()
        self._executor = executor

    @property
    def domain(self) -> ParametricMapping:
        return self.mapping

    def likelihood(self, params: ParameterVector) -> ConcentratedLikelihood:
        arma = self.mapping.map(params)
        return self.computer.compute(self.model.with_arma(arma))

    def residuals(self, params: ParameterVector) -> ResidualVector:
        ll = self.likelihood(params)
        return ll.v() if self.ml else ll.residuals

    def jacobian(self, params: ParameterVector, residuals: ResidualVector) -> Matrix:
        params = np.asarray(params, dtype=float)
        steps = [self.mapping.epsilon(params, i) for i in range(params.shape[0])]
        return jacobian(self.residuals, params, steps, f_x=residuals,
                        executor=self._executor, retry_on=(InvalidModelError,))


def gauss_newton_covariance(hessian: Matrix, objective: float, ndf: int) -> Matrix:
    """
    Gauss-Newton covariance of the parameters, ``(2 S / ndf) H^-1``.

    ``S`` is the minimized sum of squares and ``H = 2 J'J``, so this is the
    usual ``s^2 (J'J)^-1`` with ``s^2 = S / ndf``.
    """
    if hessian.shape[0] == 0:
        return np.zeros((0, 0))
    try:
        inverse = linalg.inv(hessian)
    except linalg.LinAlgError:
        warn_numeric(
            "Hessian approximation is singular, using its pseudo-inverse",
            operation="parameter covariance",
            issue="singular matrix"
        )
        inverse = linalg.pinvh(hessian)
    return (2.0 * objective / ndf) * inverse


@dataclass(frozen=True, eq=False)
class RegArmaEstimation:
    """
    Result of the nonlinear estimation of a RegArmaModel.

    Attributes:
        model: Regression model with the estimated ARMA errors
        parameters: Estimated ARMA parameters
        gradient: Gradient of the objective at the solution
        hessian: Gauss-Newton approximation ``2 J'J`` of the objective Hessian
        likelihood: Concentrated likelihood at the solution
        objective: Minimized sum of squares
        converged: Whether the minimizer met its convergence criterion
        iterations: Number of minimizer iterations
        trace: Objective values accepted along the iterations
        degrees_of_freedom: Observations minus regression variables
    """
    model: RegArmaModel
    parameters: ParameterVector
    gradient: Vector
    hessian: Matrix
    likelihood: ConcentratedLikelihood
    objective: float
    converged: bool
    iterations: int
    trace: Tuple[float, ...]
    degrees_of_freedom: int

    def parameter_covariance(self) -> Matrix:
        return gauss_newton_covariance(self.hessian, self.objective, self.degrees_of_freedom)


class RegArmaProcessor:
    """
    Estimation loop of the ARMA parameters of a regression model.

    Args:
        ml: Maximum likelihood (True) or least squares (False)
        parallel: Evaluate the Jacobian columns in a thread pool
        max_workers: Size of the pool (configuration default if None)
    """

    def __init__(self,
                 ml: bool = True,
                 parallel: bool = False,
                 max_workers: Optional[int] = None) -> None:
        self.ml = ml
        self.parallel = parallel
        self.max_workers = (get_performance_config().max_workers if max_workers is None
                            else max_workers)

    def compute(self,
                model: RegArmaModel,
                start: ArimaModel,
                mapping: ParametricMapping,
                minimizer: SsqFunctionMinimizer,
                ndf: int) -> Optional[RegArmaEstimation]:
        """
        Estimate the ARMA parameters.

        Args:
            model: Differenced regression model
            start: Starting ARMA model, a member of the mapping's family
            mapping: Stationary mapping of the parameters
            minimizer: Sum-of-squares minimizer, used as is
            ndf: Degrees of freedom of the parameter covariance

        Returns:
            RegArmaEstimation or None when the start is invalid, does not
            belong to the mapping's family, or the minimizer could not
            improve on it
        """
        try:
            start_params = mapping.parameters(start)
        except ModelSpecificationError as e:
            logger.warning(f"Estimation failed: the starting model does not fit {mapping!r}: {e}")
            return None
        logger.debug(f"Estimating {mapping!r} from {start_params}")

        executor = None
        if self.parallel and mapping.dim > 1:
            executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                          thread_name_prefix="regarima-jacobian")
        try:
            function = RegArmaSsqFunction(model, mapping, self.ml, executor=executor)
            converged = minimizer.minimize(function, start_params)
            params = minimizer.result
            if params is None:
                logger.warning("Estimation failed: the starting model is invalid")
                return None
            trace = tuple(minimizer.trace)
            if not converged:
                if len(trace) < 2:
                    logger.warning("Estimation failed: no improvement on the starting model")
                    return None
                warn_convergence(
                    "Minimizer stopped before convergence",
                    iterations=minimizer.iterations,
                    tolerance=minimizer.function_precision,
                    gradient_norm=float(np.linalg.norm(minimizer.gradient))
                )
            likelihood = function.likelihood(params)
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        logger.info(f"Estimation {'converged' if converged else 'stopped'} after "
                    f"{minimizer.iterations} iterations, objective={minimizer.objective:.10g}")
        return RegArmaEstimation(
            model=model.with_arma(mapping.map(params)),
            parameters=params,
            gradient=minimizer.gradient,
            hessian=minimizer.hessian,
            likelihood=likelihood,
            objective=minimizer.objective,
            converged=converged,
            iterations=minimizer.iterations,
            trace=trace,
            degrees_of_freedom=ndf
        )
