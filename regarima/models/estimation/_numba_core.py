"""
Numba-accelerated kernels of the innovations filter.

The filter whitens a series generated by a stationary ARMA model with
innovation variance ``var``. It propagates a coefficient vector ``C`` and an
auxiliary vector ``L`` of length ``dim = max(AR degree, MA degree + 1)``,
initialized from the first ``dim`` autocovariances, together with the
prediction-error variance ``h``. At each observation the standardized
innovation ``(y_t - a_t[0]) / sqrt(h_t)`` is produced, ``log h_t`` is added to
the log-determinant and the prediction vector ``a`` is advanced through the
autoregressive companion transition.

When ``h`` comes within ``eps * var`` of ``var`` the recursion has reached
its steady state: the coefficient updates stop and the remaining observations
reuse the last coefficients. A negative ``eps`` disables this short-circuit.

Kernels report failures through an integer status: ``-1`` on success,
otherwise the position at which the prediction-error variance was not a
finite positive number. The Python layer turns that status into an
exception.
"""

import logging
from typing import Tuple

import numpy as np
from numba import jit

logger = logging.getLogger("regarima.models.estimation._numba_core")


@jit(nopython=True, cache=True, nogil=True)
def ar_last(x: np.ndarray, phi: np.ndarray) -> float:
    """
    Last element of the autoregressive transition applied to ``x``.

    Args:
        x: State-like vector of length dim
        phi: Autoregressive lag polynomial, ``phi[0] == 1``

    Returns:
        float: ``-sum_{i=1..p} phi[i] * x[dim - i]``
    """
    dim = x.shape[0]
    last = 0.0
    for i in range(1, phi.shape[0]):
        last -= phi[i] * x[dim - i]
    return last


@jit(nopython=True, cache=True, nogil=True)
def initial_coefficients(acov: np.ndarray, phi: np.ndarray) -> np.ndarray:
    """
    Initial coefficient vector: the autocovariances shifted by one lag,
    the last element produced by the autoregressive transition.

    Args:
        acov: Autocovariances gamma_0 .. gamma_{dim-1}
        phi: Autoregressive lag polynomial

    Returns:
        np.ndarray: Coefficient vector of length dim
    """
    dim = acov.shape[0]
    c = np.empty(dim)
    last = ar_last(acov, phi)
    for i in range(1, dim):
        c[i - 1] = acov[i]
    c[dim - 1] = last
    return c


@jit(nopython=True, cache=True, nogil=True)
def update_coefficients(c: np.ndarray, l: np.ndarray, h: float,
                        phi: np.ndarray, var: float) -> float:
    """
    One step of the coefficient recursion, in place.

    Args:
        c: Coefficient vector, updated in place
        l: Auxiliary vector, updated in place
        h: Current prediction-error variance
        phi: Autoregressive lag polynomial
        var: Innovation variance

    Returns:
        float: The next prediction-error variance, never below ``var``
    """
    dim = c.shape[0]
    ilast = dim - 1
    zl = l[0]
    zlv = zl / h
    llast = ar_last(l, phi)
    clast = c[ilast]

    for i in range(ilast):
        li = l[i + 1]
        if zlv != 0.0:
            l[i] = li - c[i] * zlv
            c[i] -= zlv * li
        else:
            l[i] = li

    l[ilast] = llast - zlv * clast
    c[ilast] -= zlv * llast

    h -= zl * zlv
    if h < var:
        h = var
    return h


@jit(nopython=True, cache=True, nogil=True)
def _advance(a: np.ndarray, c: np.ndarray, phi: np.ndarray, v: float) -> None:
    dim = a.shape[0]
    ilast = dim - 1
    la = ar_last(a, phi)
    for i in range(ilast):
        a[i] = a[i + 1] + c[i] * v
    a[ilast] = la + c[ilast] * v


@jit(nopython=True, cache=True, nogil=True)
def kalman_filter(y: np.ndarray, c0: np.ndarray, h0: float, phi: np.ndarray,
                  var: float, eps: float) -> Tuple[np.ndarray, float, int]:
    """
    Single-pass filter: coefficients are updated while the data are whitened.

    Args:
        y: Observations
        c0: Initial coefficient vector
        h0: Initial prediction-error variance (gamma_0)
        phi: Autoregressive lag polynomial
        var: Innovation variance
        eps: Relative steady-state tolerance (negative to disable)

    Returns:
        Tuple[np.ndarray, float, int]: Standardized innovations,
        log-determinant and status
    """
    n = y.shape[0]
    c = c0.copy()
    l = c0.copy()
    a = np.zeros(c0.shape[0])
    e = np.empty(n)
    h = h0
    ldet = 0.0
    frozen = False

    for pos in range(n):
        if pos > 0 and not frozen:
            h = update_coefficients(c, l, h, phi, var)
            if h - var <= eps * var:
                frozen = True
        if not (h > 0.0) or not np.isfinite(h):
            return e, ldet, pos
        ldet += np.log(h)
        s = np.sqrt(h)
        innovation = (y[pos] - a[0]) / s
        e[pos] = innovation
        _advance(a, c, phi, innovation / s)

    return e, ldet, -1


@jit(nopython=True, cache=True, nogil=True)
def kalman_coefficients(c0: np.ndarray, h0: float, phi: np.ndarray, var: float,
                        n: int, eps: float) -> Tuple[np.ndarray, np.ndarray, float, int]:
    """
    Precompute the coefficient trace of the filter for a given length.

    Row ``t`` of the returned matrix holds the coefficients used after the
    innovation at position ``t``. Rows stop at the steady-state position;
    later positions reuse the last row.

    Args:
        c0: Initial coefficient vector
        h0: Initial prediction-error variance
        phi: Autoregressive lag polynomial
        var: Innovation variance
        n: Number of observations
        eps: Relative steady-state tolerance (negative to disable)

    Returns:
        Tuple[np.ndarray, np.ndarray, float, int]: Coefficient rows,
        prediction standard deviations, log-determinant and status
    """
    dim = c0.shape[0]
    rows = np.zeros((n, dim))
    stdev = np.zeros(n)
    c = c0.copy()
    l = c0.copy()
    h = h0
    ldet = 0.0
    nrows = n
    frozen = False

    for pos in range(n):
        if pos > 0 and not frozen:
            h = update_coefficients(c, l, h, phi, var)
            if h - var <= eps * var:
                frozen = True
                nrows = pos + 1
        if not (h > 0.0) or not np.isfinite(h):
            return rows[:0].copy(), stdev, ldet, pos
        ldet += np.log(h)
        stdev[pos] = np.sqrt(h)
        if pos < nrows:
            for i in range(dim):
                rows[pos, i] = c[i]

    return rows[:nrows].copy(), stdev, ldet, -1


@jit(nopython=True, cache=True, nogil=True)
def kalman_apply(y: np.ndarray, rows: np.ndarray, stdev: np.ndarray,
                 phi: np.ndarray) -> np.ndarray:
    """
    Whiten a series with a precomputed coefficient trace.

    Args:
        y: Observations
        rows: Coefficient rows from :func:`kalman_coefficients`
        stdev: Prediction standard deviations
        phi: Autoregressive lag polynomial

    Returns:
        np.ndarray: Standardized innovations
    """
    n = y.shape[0]
    nrows = rows.shape[0]
    a = np.zeros(rows.shape[1])
    e = np.empty(n)

    for pos in range(n):
        r = pos if pos < nrows else nrows - 1
        s = stdev[pos]
        innovation = (y[pos] - a[0]) / s
        e[pos] = innovation
        _advance(a, rows[r], phi, innovation / s)

    return e


@jit(nopython=True, cache=True, nogil=True)
def kalman_apply_columns(x: np.ndarray, rows: np.ndarray, stdev: np.ndarray,
                         phi: np.ndarray) -> np.ndarray:
    """Whiten every column of a matrix with a precomputed coefficient trace."""
    out = np.empty_like(x)
    for j in range(x.shape[1]):
        out[:, j] = kalman_apply(np.ascontiguousarray(x[:, j]), rows, stdev, phi)
    return out


@jit(nopython=True, cache=True, nogil=True)
def kalman_log_determinant(c0: np.ndarray, h0: float, phi: np.ndarray, var: float,
                           n: int, eps: float) -> Tuple[float, int]:
    """
    Log-determinant of the covariance matrix of ``n`` observations.

    Only the variance recursion is run. Once the steady state is reached the
    remaining terms are added in closed form.

    Returns:
        Tuple[float, int]: Log-determinant and status
    """
    c = c0.copy()
    l = c0.copy()
    h = h0
    ldet = 0.0

    for pos in range(n):
        if pos > 0:
            h = update_coefficients(c, l, h, phi, var)
        if not (h > 0.0) or not np.isfinite(h):
            return ldet, pos
        ldet += np.log(h)
        if pos > 0 and h - var <= eps * var:
            ldet += (n - pos - 1) * np.log(h)
            break

    return ldet, -1
