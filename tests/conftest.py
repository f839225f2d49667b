'''
Pytest configuration and fixtures for the regarima test suite.

This module provides the simulated series shared by the test modules, helpers
computing reference likelihoods with dense linear algebra, and hypothesis
strategies for admissible ARMA parameters.
'''

from typing import Tuple

import numpy as np
import pytest
from hypothesis import strategies as st
from scipy import linalg, optimize, signal
from statsmodels.tsa.arima_process import arma_generate_sample

from regarima.core.config import reset_config
from regarima.models.arima.model import ArimaModel


# ---- Configuration ----

@pytest.fixture
def default_configuration():
    """Restore the default configuration around a test that modifies it."""
    reset_config()
    yield
    reset_config()


# ---- Basic Data Generation Fixtures ----

@pytest.fixture
def rng() -> np.random.Generator:
    """Provide a seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


def simulate_arma(rng: np.random.Generator,
                  ar: np.ndarray,
                  ma: np.ndarray,
                  n: int,
                  scale: float = 1.0) -> np.ndarray:
    """Simulate a stationary ARMA series with lag polynomials ``ar`` and ``ma``."""
    return arma_generate_sample(ar, ma, n, scale=scale,
                                distrvs=rng.standard_normal, burnin=200)


def ls_ar1_coefficient(y: np.ndarray) -> float:
    """Least-squares slope of ``y_t`` on a constant and ``y_{t-1}``."""
    design = np.column_stack([np.ones(y.shape[0] - 1), y[:-1]])
    return float(linalg.lstsq(design, y[1:])[0][1])


@pytest.fixture
def ar1_series(rng: np.random.Generator) -> np.ndarray:
    """AR(1) series with phi = 0.6 and 300 observations."""
    return simulate_arma(rng, np.array([1.0, -0.6]), np.array([1.0]), 300)


@pytest.fixture
def arma11_series(rng: np.random.Generator) -> np.ndarray:
    """ARMA(1,1) series with phi = 0.5, theta = 0.4 and 400 observations."""
    return simulate_arma(rng, np.array([1.0, -0.5]), np.array([1.0, 0.4]), 400)


@pytest.fixture
def calibrated_ar1() -> np.ndarray:
    """
    AR(1) series of 120 observations around a level of 10 whose least-squares
    lag-1 coefficient is exactly 0.7.

    The generating coefficient is adjusted on a fixed set of innovations so
    that the sample estimate, not only the population value, is known.
    """
    rng = np.random.default_rng(20240101)
    n, burn = 120, 100
    e = rng.standard_normal(n + burn)

    def series(phi: float) -> np.ndarray:
        return 10.0 + signal.lfilter([1.0], [1.0, -phi], e)[burn:]

    phi = optimize.brentq(lambda p: ls_ar1_coefficient(series(p)) - 0.7, 0.2, 0.95, xtol=1e-12)
    return series(phi)


@pytest.fixture
def airline_series(rng: np.random.Generator) -> np.ndarray:
    """Monthly series of 20 years generated by an airline model."""
    n, period = 240, 12
    ma = np.convolve([1.0, -0.6], np.r_[1.0, np.zeros(period - 1), -0.5])
    w = simulate_arma(rng, np.array([1.0]), ma, n)
    z = np.zeros(n)
    for t in range(n):
        z[t] = w[t] + (z[t - period] if t >= period else 0.0)
    return 100.0 + np.cumsum(z)


# ---- Reference Computations ----

def covariance_matrix(model: ArimaModel, n: int) -> np.ndarray:
    """Dense covariance matrix of ``n`` consecutive observations of a stationary model."""
    return linalg.toeplitz(model.autocovariance(n))


def dense_innovations(model: ArimaModel, y: np.ndarray) -> Tuple[np.ndarray, float]:
    """Standardized innovations ``L^-1 y`` and ``log det(Omega)`` from a Cholesky factor."""
    chol = linalg.cholesky(covariance_matrix(model, y.shape[0]), lower=True)
    e = linalg.solve_triangular(chol, y, lower=True)
    return e, 2.0 * float(np.sum(np.log(np.diag(chol))))


# ---- Hypothesis Strategies ----

coefficient = st.floats(min_value=-0.9, max_value=0.9, allow_nan=False, allow_infinity=False)


@st.composite
def stationary_ar2(draw) -> np.ndarray:
    """Coefficients of a stationary AR(2) polynomial, drawn through its inverse roots."""
    r1 = draw(coefficient)
    r2 = draw(coefficient)
    return np.array([r1 + r2, -r1 * r2])
