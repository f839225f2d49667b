"""
Numerical Differentiation Module

Finite-difference derivatives used by the estimation loop and by the result
objects.

Functions:
    jacobian: Forward-difference Jacobian of a vector-valued function with
        per-parameter signed steps, optionally evaluated in a thread pool
    hessian_2sided: Two-sided numerical Hessian of a scalar function
"""

import logging
from concurrent.futures import Executor
from typing import Callable, Optional, Sequence, Tuple, Type

import numpy as np

from regarima.core.exceptions import NumericError, raise_dimension_error
from regarima.core.types import Matrix, Vector

logger = logging.getLogger("regarima.utils.differentiation")


def _as_point(x: Vector) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    if x.ndim != 1:
        raise_dimension_error(
            "Input must be a 1D vector",
            array_name="x",
            expected_shape="(n,)",
            actual_shape=x.shape
        )
    return x


def jacobian(func: Callable[[np.ndarray], np.ndarray],
             x: Vector,
             steps: Sequence[float],
             f_x: Optional[np.ndarray] = None,
             executor: Optional[Executor] = None,
             retry_on: Tuple[Type[BaseException], ...] = ()) -> Matrix:
    """
    Compute the Jacobian matrix of a vector-valued function by forward differences.

    Column ``j`` is ``(f(x + s_j e_j) - f(x)) / s_j`` where ``s_j`` is the
    signed step of parameter ``j``. A negative step gives a backward
    difference, which keeps the perturbed point on the admissible side of a
    boundary.

    Args:
        func: Function to differentiate, should take a vector and return a vector
        x: Point at which to compute the Jacobian
        steps: Signed step of each parameter, non-zero
        f_x: ``func(x)`` when already known
        executor: Evaluate the columns concurrently on this executor; ``func``
            must then be safe to call from several threads
        retry_on: Exception types after which a column is evaluated once more
            with the opposite step

    Returns:
        Jacobian matrix of shape (m, n) where m is the length of f(x) and n is
        the length of x

    Raises:
        DimensionError: If x is not a 1D vector or steps do not match x
        NumericError: If a step is zero or the function returns non-finite values

    Examples:
        >>> import numpy as np
        >>> from regarima.utils.differentiation import jacobian
        >>> f = lambda x: np.array([x[0] ** 2, x[0] * x[1]])
        >>> np.round(jacobian(f, np.array([1.0, 2.0]), [1e-7, 1e-7]), 4)
        array([[2., 0.],
               [2., 1.]])
    """
    x = _as_point(x)
    steps = np.asarray(steps, dtype=float)
    n = x.shape[0]
    if steps.shape != (n,):
        raise_dimension_error(
            "One step per parameter is required",
            array_name="steps",
            expected_shape=(n,),
            actual_shape=steps.shape
        )
    if np.any(steps == 0.0) or not np.all(np.isfinite(steps)):
        raise NumericError(
            "Finite-difference steps must be finite and non-zero",
            operation="jacobian",
            values=steps,
            error_type="invalid_step"
        )

    if f_x is None:
        f_x = func(x)
    f_x = np.asarray(f_x, dtype=float)

    def column(j: int) -> np.ndarray:
        step = steps[j]
        xj = x.copy()
        xj[j] += step
        try:
            fj = func(xj)
        except retry_on:
            logger.debug(f"Column {j} failed with step {step:g}, retrying with {-step:g}")
            step = -step
            xj[j] = x[j] + step
            fj = func(xj)
        return (np.asarray(fj, dtype=float) - f_x) / step

    if n == 0:
        return np.zeros((f_x.shape[0], 0))
    if executor is None:
        columns = [column(j) for j in range(n)]
    else:
        columns = list(executor.map(column, range(n)))

    jac = np.column_stack(columns)
    if not np.all(np.isfinite(jac)):
        raise NumericError(
            "Jacobian contains non-finite values",
            operation="jacobian",
            values=jac,
            error_type="non_finite_derivative"
        )
    return jac


def hessian_2sided(func: Callable[[np.ndarray], float],
                   x: Vector,
                   epsilon: Optional[Sequence[float]] = None) -> Matrix:
    """
    Compute two-sided numerical Hessian of a scalar function.

    For a function f(x), the Hessian elements are computed as:

    ∂²f/∂x_i∂x_j ≈ [f(x + h_i e_i + h_j e_j) - f(x + h_i e_i - h_j e_j)
                    - f(x - h_i e_i + h_j e_j) + f(x - h_i e_i - h_j e_j)] / (4 h_i h_j)

    Args:
        func: Function to differentiate, should take a vector and return a scalar
        x: Point at which to compute the Hessian
        epsilon: Step of each parameter. If None, ``eps^(1/3) * max(|x_i|, 0.1)``

    Returns:
        Symmetric Hessian matrix of shape (n, n)

    Raises:
        DimensionError: If x is not a 1D array
        NumericError: If the function evaluation produces NaN or Inf values
    """
    x = _as_point(x)
    n = x.shape[0]
    if epsilon is None:
        h = np.power(np.finfo(float).eps, 1 / 3) * np.maximum(np.abs(x), 0.1)
    else:
        h = np.abs(np.asarray(epsilon, dtype=float))

    def value(point: np.ndarray) -> float:
        result = float(func(point))
        if not np.isfinite(result):
            raise NumericError(
                "Function evaluation produced a non-finite value",
                operation="hessian_2sided",
                values=point,
                error_type="function_evaluation_error"
            )
        return result

    f0 = value(x)
    hess = np.zeros((n, n))
    for i in range(n):
        ei = np.zeros(n)
        ei[i] = h[i]
        hess[i, i] = (value(x + 2 * ei) - 2 * f0 + value(x - 2 * ei)) / (4 * h[i] * h[i])
        for j in range(i):
            ej = np.zeros(n)
            ej[j] = h[j]
            hess[i, j] = (value(x + ei + ej) - value(x + ei - ej)
                          - value(x - ei + ej) + value(x - ei - ej)) / (4 * h[i] * h[j])
            hess[j, i] = hess[i, j]
    return hess
