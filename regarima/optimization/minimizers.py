# regarima/optimization/minimizers.py
"""
Sum-of-squares minimizers.

The estimation loop minimizes ``||r(p)||^2`` for a residual function ``r``
defined on a parameter domain. This module defines the two contracts involved
and provides two implementations:

* :class:`LevenbergMarquardtMinimizer`, a damped Gauss-Newton method that
  repairs candidates through the domain and treats models rejected by the
  innovations filter as failed steps;
* :class:`ScipyLeastSquaresMinimizer`, an adapter over
  :func:`scipy.optimize.least_squares` using the domain's box bounds.

After :meth:`SsqFunctionMinimizer.minimize`, a minimizer exposes the
solution, the gradient ``2 J'r`` and the Gauss-Newton Hessian ``2 J'J`` of
the sum of squares at the solution, the final objective and the trace of
accepted objective values.
"""

import logging
from typing import List, Optional, Protocol, runtime_checkable

import numpy as np
from scipy import linalg, optimize

from regarima.core.config import get_numerical_config
from regarima.core.exceptions import InvalidModelError, NumericError, raise_parameter_error
from regarima.core.types import Matrix, ParameterVector, ResidualVector, Vector
from regarima.models.arima.mapping import ParametersDomain, ParamValidation

logger = logging.getLogger("regarima.optimization.minimizers")


@runtime_checkable
class SsqFunction(Protocol):
    """Residual function whose sum of squares is minimized."""

    @property
    def domain(self) -> ParametersDomain:
        """Domain of the parameters."""
        ...

    def residuals(self, params: ParameterVector) -> ResidualVector:
        """Residuals at ``params``.

        Raises:
            InvalidModelError: If ``params`` describe an invalid model
        """
        ...

    def jacobian(self, params: ParameterVector, residuals: ResidualVector) -> Matrix:
        """Jacobian of the residuals at ``params``, ``residuals`` being ``r(params)``."""
        ...


@runtime_checkable
class SsqFunctionMinimizer(Protocol):
    """Contract of the minimizers used by the estimation loop."""

    function_precision: float

    def minimize(self, function: SsqFunction, start: ParameterVector) -> bool:
        """Minimize from ``start``; True when the convergence criterion was met."""
        ...

    @property
    def result(self) -> Optional[ParameterVector]:
        ...

    @property
    def gradient(self) -> Optional[Vector]:
        ...

    @property
    def hessian(self) -> Optional[Matrix]:
        ...

    @property
    def objective(self) -> float:
        ...

    @property
    def iterations(self) -> int:
        ...

    @property
    def trace(self) -> List[float]:
        ...

    def exemplar(self) -> "SsqFunctionMinimizer":
        """A new minimizer with the same settings and no results."""
        ...


def _admissible(domain: ParametersDomain, params: np.ndarray) -> bool:
    """Repair ``params`` in place; False when they cannot be used."""
    if domain.validate(params) is ParamValidation.INVALID:
        return False
    return domain.check_boundaries(params)


class _SsqMinimizer:
    """Settings and result storage shared by the minimizers."""

    def __init__(self,
                 function_precision: Optional[float] = None,
                 max_iterations: Optional[int] = None) -> None:
        numerical = get_numerical_config()
        self.function_precision = (numerical.function_precision if function_precision is None
                                   else function_precision)
        self.max_iterations = (numerical.max_iterations if max_iterations is None
                               else max_iterations)
        if self.max_iterations < 1:
            raise_parameter_error(
                "Maximum number of iterations must be positive",
                param_name="max_iterations",
                param_value=self.max_iterations,
                constraint="max_iterations >= 1"
            )
        self._reset()

    @property
    def function_precision(self) -> float:
        return self._function_precision

    @function_precision.setter
    def function_precision(self, value: float) -> None:
        if not value > 0 or not np.isfinite(value):
            raise_parameter_error(
                "Function precision must be a positive number",
                param_name="function_precision",
                param_value=value,
                constraint="0 < function_precision < inf"
            )
        self._function_precision = float(value)

    def _reset(self) -> None:
        self._result: Optional[np.ndarray] = None
        self._gradient: Optional[np.ndarray] = None
        self._hessian: Optional[np.ndarray] = None
        self._objective = np.nan
        self._iterations = 0
        self._trace: List[float] = []

    def _store(self, params: np.ndarray, residuals: np.ndarray, jac: np.ndarray) -> None:
        self._result = params.copy()
        self._objective = float(residuals @ residuals)
        self._gradient = 2.0 * jac.T @ residuals
        self._hessian = 2.0 * jac.T @ jac

    @property
    def result(self) -> Optional[ParameterVector]:
        """Parameters at the solution; None when the start could not be evaluated."""
        return None if self._result is None else self._result.copy()

    @property
    def gradient(self) -> Optional[Vector]:
        return self._gradient

    @property
    def hessian(self) -> Optional[Matrix]:
        return self._hessian

    @property
    def objective(self) -> float:
        return self._objective

    @property
    def iterations(self) -> int:
        return self._iterations

    @property
    def trace(self) -> List[float]:
        """Objective at the start and after every accepted step."""
        return list(self._trace)

    def exemplar(self):
        return type(self)(self.function_precision, self.max_iterations)


class LevenbergMarquardtMinimizer(_SsqMinimizer):
    """
    Levenberg-Marquardt minimizer of a sum of squares.

    Each iteration solves ``(J'J + lambda D) step = -J'r`` with ``D`` the
    diagonal of ``J'J``. A candidate is accepted when it can be repaired into
    the domain, the residual function accepts it and the sum of squares
    decreases; otherwise the damping is increased. The iterations stop when the
    relative decrease of the objective is below :attr:`function_precision`.

    Args:
        function_precision: Relative decrease of the objective that ends the
            iterations (configuration default if None)
        max_iterations: Maximum number of iterations (configuration default if None)
        initial_damping: Starting value of ``lambda``
        damping_factor: Factor by which ``lambda`` grows after a rejected
            candidate and shrinks after an accepted one
        max_damping: Value of ``lambda`` above which no step can be found
    """

    def __init__(self,
                 function_precision: Optional[float] = None,
                 max_iterations: Optional[int] = None,
                 initial_damping: float = 1e-3,
                 damping_factor: float = 10.0,
                 max_damping: float = 1e16) -> None:
        self.initial_damping = initial_damping
        self.damping_factor = damping_factor
        self.max_damping = max_damping
        super().__init__(function_precision, max_iterations)

    def exemplar(self) -> "LevenbergMarquardtMinimizer":
        return LevenbergMarquardtMinimizer(self.function_precision, self.max_iterations,
                                           self.initial_damping, self.damping_factor,
                                           self.max_damping)

    def _stationary(self, grad: np.ndarray, objective: float) -> bool:
        return np.max(np.abs(grad), initial=0.0) <= np.sqrt(self.function_precision) * max(objective, 1.0)

    def minimize(self, function: SsqFunction, start: ParameterVector) -> bool:
        """
        Minimize the sum of squares of ``function`` from ``start``.

        Args:
            function: Residual function and its domain
            start: Starting parameters (not modified)

        Returns:
            bool: True when the relative decrease criterion was met or no
            further decrease is possible at a stationary point
        """
        self._reset()
        domain = function.domain
        params = np.array(start, dtype=float)
        if not _admissible(domain, params):
            logger.warning(f"Starting parameters {params} are outside the domain")
            return False
        try:
            residuals = function.residuals(params)
        except InvalidModelError as e:
            logger.warning(f"Starting parameters {params} define an invalid model: {e.message}")
            return False

        objective = float(residuals @ residuals)
        self._trace.append(objective)
        if params.shape[0] == 0:
            self._store(params, residuals, np.zeros((residuals.shape[0], 0)))
            return True

        damping = self.initial_damping
        converged = False
        jac = function.jacobian(params, residuals)
        for iteration in range(1, self.max_iterations + 1):
            self._iterations = iteration
            grad = jac.T @ residuals
            jtj = jac.T @ jac
            scale = np.maximum(np.diag(jtj), 1e-12 * max(np.max(np.diag(jtj)), 1.0))

            candidate = None
            while damping <= self.max_damping:
                try:
                    step = linalg.solve(jtj + damping * np.diag(scale), -grad, assume_a='sym')
                except linalg.LinAlgError:
                    damping *= self.damping_factor
                    continue
                trial = params + step
                if _admissible(domain, trial):
                    try:
                        trial_residuals = function.residuals(trial)
                    except InvalidModelError:
                        trial_residuals = None
                    if trial_residuals is not None and trial_residuals @ trial_residuals < objective:
                        candidate = trial
                        break
                damping *= self.damping_factor

            if candidate is None:
                converged = len(self._trace) > 1 or self._stationary(grad, objective)
                logger.debug(f"No acceptable step at iteration {iteration} (converged={converged})")
                break

            new_objective = float(trial_residuals @ trial_residuals)
            decrease = (objective - new_objective) / objective if objective > 0 else 0.0
            params, residuals, objective = candidate, trial_residuals, new_objective
            self._trace.append(objective)
            damping = max(damping / self.damping_factor, 1e-12)
            logger.debug(f"Iteration {iteration}: objective={objective:.10g}, damping={damping:g}")
            jac = function.jacobian(params, residuals)
            if decrease <= self.function_precision:
                converged = True
                break

        self._store(params, residuals, jac)
        if not converged:
            logger.info(f"Levenberg-Marquardt stopped after {self._iterations} iterations "
                        f"without convergence")
        return converged


class ScipyLeastSquaresMinimizer(_SsqMinimizer):
    """
    Adapter over :func:`scipy.optimize.least_squares`.

    The trust-region reflective method is used with the lower and upper
    bounds of the domain. Evaluation points are repaired through the domain
    before the residual function is called; points it cannot accept are given
    a large penalty residual.

    Args:
        function_precision: ``ftol`` of the scipy solver (configuration default if None)
        max_iterations: Maximum number of residual evaluations of the solver
            (configuration default if None)
    """

    PENALTY = 1e3

    def minimize(self, function: SsqFunction, start: ParameterVector) -> bool:
        self._reset()
        domain = function.domain
        params = np.array(start, dtype=float)
        if not _admissible(domain, params):
            logger.warning(f"Starting parameters {params} are outside the domain")
            return False
        try:
            start_residuals = function.residuals(params)
        except InvalidModelError as e:
            logger.warning(f"Starting parameters {params} define an invalid model: {e.message}")
            return False
        start_objective = float(start_residuals @ start_residuals)
        self._trace.append(start_objective)
        dim = params.shape[0]
        if dim == 0:
            self._store(params, start_residuals, np.zeros((start_residuals.shape[0], 0)))
            return True

        penalty = np.full_like(start_residuals, self.PENALTY * np.sqrt(max(start_objective, 1.0)
                                                                        / start_residuals.shape[0]))
        lower = np.array([domain.lbound(i) for i in range(dim)])
        upper = np.array([domain.ubound(i) for i in range(dim)])
        # trf requires a strictly feasible start
        width = np.where(np.isfinite(upper - lower), upper - lower, 2.0)
        x0 = np.clip(params, lower + 1e-8 * width, upper - 1e-8 * width)

        def repaired(p: np.ndarray) -> Optional[np.ndarray]:
            q = np.array(p, dtype=float)
            return q if _admissible(domain, q) else None

        def residuals(p: np.ndarray) -> np.ndarray:
            q = repaired(p)
            if q is None:
                return penalty
            try:
                r = function.residuals(q)
            except InvalidModelError:
                return penalty
            value = float(r @ r)
            if value < self._trace[-1]:
                self._trace.append(value)
            return r

        def jac(p: np.ndarray) -> np.ndarray:
            q = repaired(p)
            if q is None:
                return np.zeros((start_residuals.shape[0], dim))
            try:
                return function.jacobian(q, function.residuals(q))
            except (InvalidModelError, NumericError):
                return np.zeros((start_residuals.shape[0], dim))

        solution = optimize.least_squares(
            residuals, x0, jac=jac, bounds=(lower, upper), method='trf',
            ftol=self.function_precision, xtol=None, gtol=None,
            max_nfev=self.max_iterations
        )
        self._iterations = int(solution.nfev)

        final = repaired(solution.x)
        if final is None:
            final = params
        try:
            final_residuals = function.residuals(final)
        except InvalidModelError:
            final, final_residuals = params, start_residuals
        if final_residuals @ final_residuals > start_objective:
            final, final_residuals = params, start_residuals
        self._store(final, final_residuals, function.jacobian(final, final_residuals))

        converged = solution.status > 0
        if not converged:
            logger.info(f"least_squares stopped without convergence: {solution.message}")
        return converged
