"""
Tests for the range-mean test.
"""

import numpy as np
import pytest

from regarima.core.exceptions import ParameterError
from regarima.models.arima.model import ArimaModel
from regarima.models.arima.sarima import SarimaModel, SarimaSpecification
from regarima.models.diagnostics.range_mean import (
    RangeMeanResult, group_length, range_mean_test, range_mean_test_model
)
from regarima.models.estimation.regression import RegArimaModel


@pytest.fixture
def multiplicative_series(rng):
    """Monthly series whose spread grows with its level."""
    level = np.exp(np.linspace(0.0, 3.0, 144))
    return level * np.exp(0.1 * rng.standard_normal(144))


@pytest.fixture
def shrinking_series():
    """Monthly series whose seasonal amplitude decreases while the level grows."""
    t = np.arange(144.0)
    amplitude = 30.0 - 0.15 * t
    season = amplitude * np.sin(2 * np.pi * t / 12) * (1 + 0.05 * np.sin(0.7 * t))
    return 100.0 + t + season


class TestGroupLength:
    """Tests for the group layout."""

    @pytest.mark.parametrize("frequency, n, expected", [
        (12, 100, (12, 1)),
        (12, 300, (12, 1)),
        (6, 100, (12, 2)),
        (6, 300, (12, 1)),
        (4, 100, (12, 2)),
        (4, 300, (8, 1)),
        (2, 100, (12, 2)),
        (3, 300, (6, 1)),
        (1, 165, (9, 2)),
        (1, 166, (5, 1)),
        (7, 100, (7, 1)),
    ])
    def test_layout(self, frequency, n, expected):
        """Test the group length and trimming for each frequency."""
        assert group_length(frequency, n) == expected


class TestRangeMean:
    """Tests for the decision of the test."""

    def test_multiplicative_series(self, multiplicative_series):
        """Test that logs are advised when the spread grows with the level."""
        result = range_mean_test(multiplicative_series, 12)
        assert isinstance(result, RangeMeanResult)
        assert result.use_logs
        assert result.test_statistic > 2.0
        assert 0.0 <= result.p_value < 0.05
        assert result.ranges.shape == (12,)

    def test_shrinking_spread(self, shrinking_series):
        """Test that levels are kept when the spread decreases with the level."""
        result = range_mean_test(shrinking_series, 12)
        assert not result.use_logs
        assert result.test_statistic < 0.0

    def test_threshold(self, multiplicative_series):
        """Test that the decision follows the threshold."""
        result = range_mean_test(multiplicative_series, 12)
        strict = range_mean_test(multiplicative_series, 12, t_log=result.test_statistic + 1.0)
        assert strict.test_statistic == pytest.approx(result.test_statistic)
        assert not strict.use_logs

    def test_trimmed_statistics(self):
        """Test the trimmed range and mean of a group."""
        base = np.array([5.0, 1.0, 2.0, 3.0, 4.0, 100.0, 6.0, 7.0, 8.0, 9.0, 10.0, 11.0])
        scale = np.array([1.0, 1.2, 1.1, 1.5, 1.3])
        shift = np.array([0.0, 3.0, 1.0, 0.0, 5.0])
        y = np.concatenate([s * base + c for s, c in zip(scale, shift)])
        result = range_mean_test(y, 12)
        assert result.trim == 1
        assert result.ranges[0] == pytest.approx(11.0 - 2.0)
        assert result.means[0] == pytest.approx(np.mean([2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0, 9.0, 10.0, 11.0]))

    def test_non_positive_data(self, multiplicative_series):
        """Test that the test does not apply to non-positive data."""
        y = multiplicative_series.copy()
        y[10] = 0.0
        assert range_mean_test(y, 12) is None

    def test_too_few_groups(self, multiplicative_series):
        """Test that at least four groups are needed."""
        assert range_mean_test(multiplicative_series[:40], 12) is None

    def test_constant_series(self):
        """Test that a constant series gives no result."""
        assert range_mean_test(np.full(60, 5.0), 12) is None

    def test_invalid_frequency(self, multiplicative_series):
        """Test that the frequency must be positive."""
        with pytest.raises(ParameterError):
            range_mean_test(multiplicative_series, 0)

    def test_result_forms(self, multiplicative_series):
        """Test the text and dictionary forms of the result."""
        result = range_mean_test(multiplicative_series, 12)
        assert "Range-Mean Test Results" in str(result)
        assert "log" in str(result)
        data = result.to_dict()
        assert data["group_length"] == 12
        assert len(data["ranges"]) == 12
        assert data["use_logs"] is True


class TestRangeMeanModel:
    """Tests for the test on the response of a model."""

    def test_seasonal_model(self, multiplicative_series):
        """Test that the period of a seasonal model gives the frequency."""
        model = RegArimaModel.of(multiplicative_series,
                                 arima=SarimaModel.of(SarimaSpecification.airline(12)))
        assert range_mean_test_model(model).group_length == 12

    def test_regular_model(self, multiplicative_series):
        """Test that a regular model is treated as annual data."""
        model = RegArimaModel.of(multiplicative_series, arima=ArimaModel(ar=[1.0, -0.5]))
        result = range_mean_test_model(model)
        assert result.group_length == 9
        assert result.trim == 2
