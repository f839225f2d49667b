"""
Tests for the parameter domains and parametric mappings.
"""

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from numpy.testing import assert_allclose, assert_array_equal

from regarima.core.exceptions import DimensionError, ModelSpecificationError
from regarima.models.arima import polynomials
from regarima.models.arima.mapping import (
    MAX_AR_ROOT, ArimaMapping, FixedParametersMapping, ParametersDomain,
    ParamValidation, SarimaMapping, mapping_for
)
from regarima.models.arima.model import ArimaModel
from regarima.models.arima.sarima import SarimaModel, SarimaSpecification
from regarima.models.estimation.likelihood import ConcentratedLikelihoodComputer
from regarima.models.estimation.regression import RegArimaModel

from tests.conftest import stationary_ar2


class TestArimaMapping:
    """Tests for mappings of regular ARIMA models."""

    def test_map_and_parameters(self):
        """Test that parameters map to polynomials and back."""
        mapping = ArimaMapping(2, 1, delta=[1.0, -1.0])
        model = mapping.map([0.5, -0.2, 0.3])
        assert_array_equal(model.ar, [1.0, -0.5, 0.2])
        assert_array_equal(model.ma, [1.0, 0.3])
        assert_array_equal(model.delta, [1.0, -1.0])
        assert_allclose(mapping.parameters(model), [0.5, -0.2, 0.3])

    def test_parameters_of_smaller_model(self):
        """Test that missing lags of a smaller model are zero."""
        mapping = ArimaMapping(2, 1)
        assert_array_equal(mapping.parameters(ArimaModel(ar=[1.0, -0.4])), [0.4, 0.0, 0.0])
        with pytest.raises(ModelSpecificationError):
            mapping.parameters(ArimaModel(ma=[1.0, 0.1, 0.1]))

    def test_bounds(self):
        """Test box bounds: (-1, 1) for single coefficients, unbounded otherwise."""
        mapping = ArimaMapping(2, 1)
        assert mapping.dim == 3
        assert (mapping.lbound(0), mapping.ubound(0)) == (-np.inf, np.inf)
        assert (mapping.lbound(2), mapping.ubound(2)) == (-1.0, 1.0)
        with pytest.raises(IndexError):
            mapping.lbound(3)

    def test_check_boundaries(self):
        """Test stationarity of AR factors and invertibility of MA factors."""
        mapping = ArimaMapping(1, 1)
        assert mapping.check_boundaries(np.array([0.5, 0.5]))
        assert mapping.check_boundaries(np.array([0.5, -1.0]))
        assert not mapping.check_boundaries(np.array([1.0, 0.5]))
        assert not mapping.check_boundaries(np.array([0.5, 1.5]))
        assert not mapping.check_boundaries(np.array([np.nan, 0.5]))

    def test_validate_reflects_explosive_ar(self):
        """Test that an explosive AR coefficient is replaced by its reciprocal."""
        params = np.array([1.5, 0.2])
        assert ArimaMapping(1, 1).validate(params) is ParamValidation.CHANGED
        assert_allclose(params, [1 / 1.5, 0.2])

    def test_validate_shrinks_unit_ar_root(self):
        """Test that a unit AR root is pulled inside the unit circle."""
        params = np.array([1.0])
        assert ArimaMapping(1, 0).validate(params) is ParamValidation.CHANGED
        assert params[0] == pytest.approx(MAX_AR_ROOT)

    def test_validate_keeps_unit_ma_root(self):
        """Test that a non-invertible MA coefficient on the unit circle is valid."""
        params = np.array([-1.0])
        assert ArimaMapping(0, 1).validate(params) is ParamValidation.VALID
        assert params[0] == -1.0

    def test_validate_reflects_ma(self):
        """Test that an MA root outside the unit circle is reflected."""
        params = np.array([2.0])
        assert ArimaMapping(0, 1).validate(params) is ParamValidation.CHANGED
        assert params[0] == pytest.approx(0.5)

    def test_validate_non_finite(self):
        """Test that non-finite parameters cannot be repaired."""
        params = np.array([np.inf, 0.0])
        assert ArimaMapping(1, 1).validate(params) is ParamValidation.INVALID

    def test_wrong_length(self):
        """Test that the parameter vector must match the dimension."""
        with pytest.raises(DimensionError):
            ArimaMapping(1, 1).check_boundaries(np.zeros(3))
        with pytest.raises(DimensionError):
            ArimaMapping(1, 1).map([0.1])

    def test_epsilon_sign(self):
        """Test that the step points back into the domain near a boundary."""
        mapping = ArimaMapping(1, 0)
        assert mapping.epsilon(np.array([0.5]), 0) > 0
        step = mapping.epsilon(np.array([0.9999995]), 0)
        assert step < 0
        assert mapping.check_boundaries(np.array([0.9999995 + step]))

    def test_epsilon_scales_with_parameter(self):
        """Test that the step is relative for large parameters."""
        mapping = ArimaMapping(2, 0)
        small = mapping.epsilon(np.array([0.1, 0.0]), 0)
        large = mapping.epsilon(np.array([1.2, -0.5]), 0)
        assert abs(large) == pytest.approx(1.2 * abs(small))

    def test_default_parameters(self):
        """Test the default starting point."""
        assert_array_equal(ArimaMapping(1, 1).default_parameters(), [0.1, -0.2])
        mapping = ArimaMapping(3, 2)
        assert mapping.check_boundaries(mapping.default_parameters())

    def test_descriptions(self):
        """Test the parameter labels."""
        assert ArimaMapping(2, 1).descriptions() == ("phi(1)", "phi(2)", "theta(1)")


class TestSarimaMapping:
    """Tests for seasonal mappings."""

    def test_airline(self):
        """Test the mapping of the airline model."""
        spec = SarimaSpecification.airline(12)
        mapping = SarimaMapping(spec)
        assert mapping.dim == 2
        assert mapping.descriptions() == ("theta(1)", "btheta(1)")
        model = mapping.map([-0.6, -0.5])
        assert isinstance(model, SarimaModel)
        assert model.specification == spec
        assert_allclose(mapping.parameters(model), [-0.6, -0.5])

    def test_parameters_of_stationary_model(self):
        """Test that the stationary part of a model belongs to the family."""
        mapping = SarimaMapping(SarimaSpecification.airline(4))
        model = SarimaModel.of(SarimaSpecification.airline(4), [-0.3, -0.4]).stationary_model()
        assert_allclose(mapping.parameters(model), [-0.3, -0.4])

    def test_parameters_of_other_family(self):
        """Test that models of another family are rejected."""
        mapping = SarimaMapping(SarimaSpecification.airline(4))
        with pytest.raises(ModelSpecificationError):
            mapping.parameters(ArimaModel(ma=[1.0, 0.3]))
        with pytest.raises(ModelSpecificationError):
            mapping.parameters(SarimaModel.of(SarimaSpecification(period=4, p=1, bq=1)))

    def test_seasonal_factor_checked_alone(self):
        """Test that each factor is checked separately."""
        mapping = SarimaMapping(SarimaSpecification(period=4, p=1, bp=1))
        assert mapping.check_boundaries(np.array([0.9, 0.9]))
        assert not mapping.check_boundaries(np.array([0.5, 1.0]))
        params = np.array([0.5, 1.2])
        assert mapping.validate(params) is ParamValidation.CHANGED
        assert params[0] == 0.5
        assert params[1] == pytest.approx(1 / 1.2)

    def test_mapping_for(self):
        """Test the selection of the mapping family."""
        assert isinstance(mapping_for(SarimaModel.of(SarimaSpecification.airline(12))), SarimaMapping)
        mapping = mapping_for(ArimaModel(ar=[1.0, -0.5], delta=[1.0, -1.0], ma=[1.0, 0.1, 0.2]))
        assert isinstance(mapping, ArimaMapping)
        assert (mapping.p, mapping.q) == (1, 2)
        assert_array_equal(mapping.delta, [1.0, -1.0])

    def test_domain_protocol(self):
        """Test that mappings implement the domain contract."""
        assert isinstance(ArimaMapping(1, 1), ParametersDomain)
        assert isinstance(SarimaMapping(SarimaSpecification.airline(12)), ParametersDomain)


class TestFixedParametersMapping:
    """Tests for mappings with fixed parameters."""

    def test_expand_and_map(self):
        """Test that fixed values are inserted at their positions."""
        mapping = FixedParametersMapping(ArimaMapping(1, 1), {0: 0.5})
        assert mapping.dim == 1
        assert_array_equal(mapping.free_indices, [1])
        assert_array_equal(mapping.expand([0.3]), [0.5, 0.3])
        model = mapping.map([0.3])
        assert_array_equal(model.ar, [1.0, -0.5])
        assert_array_equal(mapping.parameters(model), [0.3])
        assert mapping.descriptions() == ("theta(1)",)

    def test_bounds_of_free_parameters(self):
        """Test that bounds are those of the free parameters."""
        mapping = FixedParametersMapping(ArimaMapping(2, 1), {2: 0.1})
        assert mapping.dim == 2
        assert mapping.lbound(0) == -np.inf
        assert mapping.check_boundaries(np.array([0.5, 0.2]))

    def test_validate_repairs_free_parameters(self):
        """Test that repairs of free parameters are applied."""
        mapping = FixedParametersMapping(ArimaMapping(1, 1), {0: 0.5})
        params = np.array([2.0])
        assert mapping.validate(params) is ParamValidation.CHANGED
        assert params[0] == pytest.approx(0.5)

    def test_validate_cannot_move_fixed_parameters(self):
        """Test that a repair changing a fixed value is invalid."""
        mapping = FixedParametersMapping(ArimaMapping(2, 0), {0: 1.9})
        params = np.array([0.0])
        assert mapping.validate(params) is ParamValidation.INVALID

    def test_valid_parameters(self):
        """Test that admissible parameters are left unchanged."""
        mapping = FixedParametersMapping(ArimaMapping(2, 0), {0: 0.5})
        params = np.array([0.2])
        assert mapping.validate(params) is ParamValidation.VALID
        assert params[0] == 0.2

    def test_default_parameters(self):
        """Test that the default of the free parameters comes from the wrapped mapping."""
        mapping = FixedParametersMapping(SarimaMapping(SarimaSpecification.airline(12)), {1: -0.5})
        assert_array_equal(mapping.default_parameters(), [-0.2])

    def test_invalid_index(self):
        """Test that fixed indices must exist."""
        with pytest.raises(ModelSpecificationError):
            FixedParametersMapping(ArimaMapping(1, 0), {3: 0.1})


class TestMappingProperties:
    """Property-based tests of the domain contract."""

    @given(stationary_ar2())
    @settings(max_examples=50, deadline=None)
    def test_round_trip(self, phi):
        """Test that parameters survive map followed by parameters."""
        mapping = ArimaMapping(2, 0)
        assert_allclose(mapping.parameters(mapping.map(phi)), phi, atol=1e-12)
        params = phi.copy()
        assert mapping.validate(params) is ParamValidation.VALID
        assert mapping.check_boundaries(params)

    @given(st.lists(st.floats(min_value=-5.0, max_value=5.0), min_size=3, max_size=3))
    @settings(max_examples=100, deadline=None)
    def test_validate_lands_in_domain(self, values):
        """Test that every repaired vector is admissible."""
        mapping = ArimaMapping(2, 1)
        params = np.array(values)
        status = mapping.validate(params)
        assert status is not ParamValidation.INVALID
        assert mapping.check_boundaries(params)
        assert polynomials.max_inverse_root(polynomials.from_ar_coefficients(params[:2])) < 1.0

    @given(stationary_ar2(), st.floats(min_value=-0.9, max_value=0.9))
    @settings(max_examples=25, deadline=None)
    def test_likelihood_invariant_under_round_trip(self, phi, theta):
        """Test that the mapped-back model has the same likelihood."""
        y = np.sin(np.arange(60) / 3.0) + np.cos(np.arange(60) / 7.0)
        mapping = ArimaMapping(2, 1)
        model = mapping.map(np.r_[phi, theta])
        again = mapping.map(mapping.parameters(model))
        computer = ConcentratedLikelihoodComputer()
        ll1 = computer.compute(RegArimaModel.of(y, arima=model))
        ll2 = computer.compute(RegArimaModel.of(y, arima=again))
        assert ll1.log_likelihood == pytest.approx(ll2.log_likelihood, rel=1e-12)
