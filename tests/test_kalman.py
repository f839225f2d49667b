"""
Tests for the innovations filter.

The filter output is checked against closed forms (white noise, AR(1)) and
against a dense Cholesky factorization of the covariance matrix for models
with moving-average terms.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from regarima.core.config import set_config
from regarima.core.exceptions import DimensionError, InvalidModelError, ModelSpecificationError
from regarima.models.arima.model import ArimaModel
from regarima.models.arima.sarima import SarimaModel, SarimaSpecification
from regarima.models.estimation.kalman import FilterPlan, KalmanFilter, apply_filter, compile_filter

from tests.conftest import dense_innovations


def _run(model: ArimaModel, y: np.ndarray, **kwargs):
    kf = KalmanFilter(**kwargs)
    kf.initialize(model, y.shape[0])
    e = kf.filter(y)
    return e, kf.log_determinant()


class TestClosedForms:
    """Tests against closed-form innovations."""

    def test_white_noise(self, rng):
        """Test that white noise is only standardized."""
        y = rng.standard_normal(50)
        e, ldet = _run(ArimaModel(var=4.0), y)
        assert_allclose(e, y / 2.0)
        assert ldet == pytest.approx(50 * np.log(4.0))

    def test_ar1(self, ar1_series):
        """Test the exact AR(1) innovations and log-determinant."""
        phi, var = 0.6, 1.5
        y = ar1_series
        n = y.shape[0]
        e, ldet = _run(ArimaModel(ar=[1.0, -phi], var=var), y)

        expected = np.empty(n)
        expected[0] = y[0] * np.sqrt(1 - phi ** 2)
        expected[1:] = y[1:] - phi * y[:-1]
        expected /= np.sqrt(var)
        assert_allclose(e, expected, rtol=1e-9, atol=1e-12)
        assert ldet == pytest.approx(np.log(var / (1 - phi ** 2)) + (n - 1) * np.log(var), rel=1e-10)

    def test_empty_series(self):
        """Test that a filter of length zero returns no innovations."""
        e, ldet = _run(ArimaModel(ar=[1.0, -0.5]), np.zeros(0))
        assert e.shape == (0,)
        assert ldet == 0.0


class TestDenseReference:
    """Tests against the Cholesky factor of the covariance matrix."""

    @pytest.mark.parametrize("model", [
        ArimaModel(ma=[1.0, 0.8]),
        ArimaModel(ar=[1.0, -0.5], ma=[1.0, 0.4], var=2.0),
        ArimaModel(ar=[1.0, -0.3, 0.2], ma=[1.0, -0.5, 0.3]),
        SarimaModel.of(SarimaSpecification(period=4, q=1, bq=1), [-0.6, -0.5]),
        SarimaModel.of(SarimaSpecification(period=4, p=1, bp=1), [0.4, 0.5]),
    ])
    @pytest.mark.parametrize("multiuse", [False, True])
    def test_matches_cholesky(self, rng, model, multiuse):
        """Test innovations and log-determinant against L^-1 y and log det(Omega)."""
        y = rng.standard_normal(60)
        e, ldet = _run(model, y, multiuse=multiuse)
        expected, expected_ldet = dense_innovations(model, y)
        assert_allclose(e, expected, rtol=1e-7, atol=1e-9)
        assert ldet == pytest.approx(expected_ldet, rel=1e-9)

    def test_non_invertible_ma(self, rng):
        """Test a moving average with a unit root against the dense computation."""
        model = ArimaModel(ma=[1.0, -1.0])
        y = rng.standard_normal(40)
        e, ldet = _run(model, y)
        expected, expected_ldet = dense_innovations(model, y)
        assert_allclose(e, expected, rtol=1e-6, atol=1e-8)
        assert ldet == pytest.approx(expected_ldet, rel=1e-8)


class TestSteadyState:
    """Tests for the steady-state short-circuit."""

    @pytest.mark.parametrize("model", [
        ArimaModel(ar=[1.0, -0.7]),
        ArimaModel(ma=[1.0, 0.9]),
        ArimaModel(ar=[1.0, -0.8], ma=[1.0, -0.7]),
        SarimaModel.of(SarimaSpecification(period=12, q=1, bq=1), [-0.4, -0.6]),
    ])
    def test_matches_reference(self, rng, model):
        """Test that stopping the recursion does not change the results."""
        y = rng.standard_normal(500)
        e, ldet = _run(model, y)
        e_ref, ldet_ref = _run(model, y, steady_state=False)
        assert_allclose(e, e_ref, rtol=1e-8, atol=1e-10)
        # Each frozen step adds at most the relative tolerance to log h_t
        assert abs(ldet - ldet_ref) <= y.shape[0] * 1e-12

    def test_plan_stops_at_steady_state(self):
        """Test that the plan keeps rows only up to the steady state."""
        plan = compile_filter(ArimaModel(ma=[1.0, 0.5]), 1000)
        assert plan.rows.shape[0] < 1000
        assert plan.steady_state_position == plan.rows.shape[0] - 1
        reference = compile_filter(ArimaModel(ma=[1.0, 0.5]), 1000, steady_state=False)
        assert reference.rows.shape[0] == 1000

    def test_log_determinant_without_data(self, rng):
        """Test the log-determinant computed from the variance recursion alone."""
        model = ArimaModel(ar=[1.0, -0.4], ma=[1.0, 0.6])
        y = rng.standard_normal(300)
        _, ldet = _run(model, y)
        kf = KalmanFilter()
        kf.initialize(model, 300)
        assert kf.log_determinant() == pytest.approx(ldet, rel=1e-12)


class TestFilterModes:
    """Tests for multiuse filters, plans and exemplars."""

    def test_multiuse_matches_single_use(self, arma11_series):
        """Test that both modes whiten a series identically."""
        model = ArimaModel(ar=[1.0, -0.5], ma=[1.0, 0.4])
        e1, ldet1 = _run(model, arma11_series)
        e2, ldet2 = _run(model, arma11_series, multiuse=True)
        assert_allclose(e1, e2, rtol=1e-12, atol=1e-14)
        assert ldet1 == pytest.approx(ldet2, rel=1e-12)

    def test_multiuse_filters_matrices(self, rng):
        """Test that the columns of a matrix are whitened like separate series."""
        model = ArimaModel(ar=[1.0, -0.5], ma=[1.0, 0.4])
        x = rng.standard_normal((80, 3))
        kf = KalmanFilter(multiuse=True)
        kf.initialize(model, 80)
        ex = kf.filter(x)
        for j in range(3):
            assert_allclose(ex[:, j], kf.filter(x[:, j]), rtol=1e-12)

    def test_exemplar(self, rng):
        """Test that exemplars are independent and produce identical results."""
        model = ArimaModel(ar=[1.0, -0.3], ma=[1.0, 0.5])
        y = rng.standard_normal(100)
        kf = KalmanFilter(multiuse=True)
        copy = kf.exemplar()
        assert copy is not kf
        assert copy.multiuse
        assert copy.plan is None

        kf.initialize(model, 100)
        copy.initialize(model, 100)
        assert_array_equal(kf.filter(y), copy.filter(y))

        copy.initialize(ArimaModel(), 10)
        assert kf.plan.length == 100

    def test_plan_is_read_only(self):
        """Test that the arrays of a plan cannot be modified."""
        plan = compile_filter(ArimaModel(ar=[1.0, -0.5]), 20)
        assert isinstance(plan, FilterPlan)
        with pytest.raises(ValueError):
            plan.rows[0, 0] = 1.0
        with pytest.raises(ValueError):
            plan.stdev[0] = 1.0

    def test_apply_filter(self, rng):
        """Test that a shared plan gives the filter results."""
        model = ArimaModel(ma=[1.0, 0.3])
        y = rng.standard_normal(30)
        plan = compile_filter(model, 30)
        e, _ = _run(model, y)
        assert_allclose(apply_filter(plan, y), e, rtol=1e-12)

    def test_initialize_returns_length(self):
        """Test that initialize reports the accepted length."""
        assert KalmanFilter().initialize(ArimaModel(ar=[1.0, -0.5]), 25) == 25

    def test_python_kernels(self, rng, default_configuration):
        """Test that the pure Python kernels give the compiled results."""
        model = ArimaModel(ar=[1.0, -0.5], ma=[1.0, 0.4])
        y = rng.standard_normal(120)
        e, ldet = _run(model, y)
        set_config("core", "enable_numba", False)
        e_py, ldet_py = _run(model, y)
        assert_allclose(e_py, e, rtol=1e-12, atol=1e-14)
        assert ldet_py == pytest.approx(ldet, rel=1e-12)


class TestErrors:
    """Tests for invalid models and misuse."""

    def test_explosive_model(self):
        """Test that a non-stationary AR polynomial is rejected."""
        with pytest.raises(InvalidModelError):
            KalmanFilter().initialize(ArimaModel(ar=[1.0, -1.2]), 10)

    @pytest.mark.parametrize("var", [-1.0, 0.0])
    def test_negative_variance(self, var):
        """Test that a non-positive innovation variance is reported with its position."""
        with pytest.raises(InvalidModelError) as excinfo:
            KalmanFilter().initialize(ArimaModel(ar=[1.0, -0.5], var=var), 10)
        assert excinfo.value.position == 0
        assert excinfo.value.variance == var

    def test_negative_variance_multiuse(self):
        """Test that a multiuse filter rejects the model when it is initialized."""
        with pytest.raises(InvalidModelError):
            KalmanFilter(multiuse=True).initialize(ArimaModel(var=-1.0), 10)

    def test_differenced_model(self):
        """Test that unit roots must be removed before filtering."""
        with pytest.raises(ModelSpecificationError):
            KalmanFilter().initialize(ArimaModel(delta=[1.0, -1.0]), 10)
        with pytest.raises(ModelSpecificationError):
            compile_filter(ArimaModel(ar=[1.0, -0.5], delta=[1.0, -1.0]), 10)

    def test_wrong_length(self, rng):
        """Test that the data must have the initialized length."""
        for multiuse in (False, True):
            kf = KalmanFilter(multiuse=multiuse)
            kf.initialize(ArimaModel(ar=[1.0, -0.5]), 10)
            with pytest.raises(DimensionError):
                kf.filter(rng.standard_normal(11))

    def test_filter_before_initialize(self):
        """Test that filtering requires an initialized filter."""
        with pytest.raises(RuntimeError):
            KalmanFilter().filter(np.ones(3))
