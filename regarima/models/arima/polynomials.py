# regarima/models/arima/polynomials.py
"""
Lag polynomial utilities.

A lag polynomial is stored as a float vector ``c`` with ``c[0] == 1`` and
represents ``c[0] + c[1] B + ... + c[k] B^k`` where ``B`` is the backshift
operator. Autoregressive polynomials use the statsmodels sign convention
``[1, -phi_1, ..., -phi_p]`` and moving-average polynomials
``[1, theta_1, ..., theta_q]``.

Stationarity and invertibility are expressed through the inverse roots of a
polynomial: the roots of ``z^k + c[1] z^(k-1) + ... + c[k]``. A polynomial is
stationary when all its inverse roots lie strictly inside the unit circle.
"""

import logging
from typing import Tuple

import numpy as np

from regarima.core.exceptions import raise_parameter_error
from regarima.core.types import Polynomial

logger = logging.getLogger("regarima.models.arima.polynomials")

ONE = np.ones(1)
ONE.setflags(write=False)


def as_polynomial(coefficients, name: str = "polynomial") -> Polynomial:
    """Convert coefficients to a lag polynomial with unit leading coefficient.

    Args:
        coefficients: Coefficients, lag 0 first
        name: Name used in error messages

    Returns:
        np.ndarray: Read-only float copy of the coefficients

    Raises:
        ParameterError: If the polynomial is empty, not finite, or its
            lag-0 coefficient is not 1
    """
    poly = np.array(coefficients, dtype=float).ravel()
    if poly.size == 0 or not np.all(np.isfinite(poly)) or poly[0] != 1.0:
        raise_parameter_error(
            f"{name} must be a finite lag polynomial with unit leading coefficient",
            param_name=name,
            param_value=poly,
            constraint="c[0] == 1"
        )
    poly.setflags(write=False)
    return poly


def from_ar_coefficients(phi, lag: int = 1) -> Polynomial:
    """Build ``1 - phi_1 B^lag - ... - phi_p B^(p*lag)``."""
    return _lag_polynomial(-np.asarray(phi, dtype=float), lag)


def from_ma_coefficients(theta, lag: int = 1) -> Polynomial:
    """Build ``1 + theta_1 B^lag + ... + theta_q B^(q*lag)``."""
    return _lag_polynomial(np.asarray(theta, dtype=float), lag)


def _lag_polynomial(coefficients: np.ndarray, lag: int) -> Polynomial:
    k = coefficients.shape[0]
    poly = np.zeros(k * lag + 1)
    poly[0] = 1.0
    if k > 0:
        poly[lag::lag] = coefficients
    return poly


def multiply(*polynomials: Polynomial) -> Polynomial:
    """Product of lag polynomials."""
    result = ONE
    for poly in polynomials:
        result = np.convolve(result, poly)
    return result


def differencing(d: int = 0, bd: int = 0, period: int = 1) -> Polynomial:
    """Build ``(1 - B)^d (1 - B^period)^bd``."""
    factors = [np.array([1.0, -1.0])] * d
    if bd > 0:
        seasonal = np.zeros(period + 1)
        seasonal[0], seasonal[period] = 1.0, -1.0
        factors += [seasonal] * bd
    return multiply(*factors)


def inverse_roots(poly: Polynomial) -> np.ndarray:
    """Inverse roots of a lag polynomial (empty for degree 0)."""
    poly = np.asarray(poly, dtype=float)
    if poly.shape[0] <= 1:
        return np.zeros(0, dtype=complex)
    return np.roots(poly).astype(complex)


def max_inverse_root(poly: Polynomial) -> float:
    """Largest modulus of the inverse roots, 0 for degree 0."""
    roots = inverse_roots(poly)
    return float(np.max(np.abs(roots))) if roots.size else 0.0


def from_inverse_roots(roots: np.ndarray) -> Polynomial:
    """Lag polynomial with the given inverse roots (conjugate pairs expected)."""
    if roots.size == 0:
        return ONE.copy()
    return np.real(np.poly(roots))


def is_stationary(poly: Polynomial) -> bool:
    """Whether all inverse roots lie strictly inside the unit circle."""
    return max_inverse_root(poly) < 1.0


def stabilize(poly: Polynomial, max_modulus: float = 1.0) -> Tuple[Polynomial, bool]:
    """Move the inverse roots of a polynomial inside a disk.

    Inverse roots outside the unit circle are reflected (``r -> 1 / conj(r)``),
    which leaves the autocorrelation structure unchanged; roots whose modulus
    still exceeds ``max_modulus`` are shrunk radially onto it.

    Args:
        poly: Lag polynomial
        max_modulus: Largest admissible modulus of an inverse root

    Returns:
        Tuple[np.ndarray, bool]: The stabilized polynomial (same degree) and
        whether it differs from the input
    """
    roots = inverse_roots(poly)
    if roots.size == 0:
        return np.array(poly, dtype=float), False

    moduli = np.abs(roots)
    if np.all(moduli <= max_modulus):
        return np.array(poly, dtype=float), False

    fixed = roots.copy()
    outside = moduli > 1.0
    fixed[outside] = 1.0 / np.conj(roots[outside])

    moduli = np.abs(fixed)
    too_large = moduli > max_modulus
    fixed[too_large] *= max_modulus / moduli[too_large]

    logger.debug(f"Stabilized polynomial {poly} (max inverse root {np.max(np.abs(roots)):.6f})")
    return from_inverse_roots(fixed), True


def apply(poly: Polynomial, data: np.ndarray) -> np.ndarray:
    """Apply a lag polynomial to data along the first axis.

    The first ``degree`` observations are consumed, so the result has
    ``len(data) - degree`` rows.
    """
    data = np.asarray(data, dtype=float)
    degree = poly.shape[0] - 1
    if degree == 0:
        return data.copy()
    n = data.shape[0] - degree
    if n <= 0:
        return np.zeros((0,) + data.shape[1:])
    result = poly[0] * data[degree:]
    for j in range(1, degree + 1):
        if poly[j] != 0.0:
            result = result + poly[j] * data[degree - j:degree - j + n]
    return result
