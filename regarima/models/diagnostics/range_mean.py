# regarima/models/diagnostics/range_mean.py

"""
Range-mean test for the log/level transformation of a series.

The series is cut into consecutive groups of a length that depends on its
frequency and length. In every group the extreme observations are trimmed;
the range and the mean of the remaining observations are computed and the
ranges are regressed on the means by ordinary least squares. A significantly
positive slope, meaning that the spread grows with the level, suggests taking
logs before modelling.

Functions:
    range_mean_test: Run the test on a series
    range_mean_test_model: Run the test on the response of a regression model
"""
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np
import statsmodels.api as sm

from regarima.core.exceptions import raise_parameter_error
from regarima.core.types import TimeSeriesData
from regarima.core.validation import validate_series
from regarima.models.arima.sarima import SarimaModel
from regarima.models.estimation.regression import RegArimaModel

logger = logging.getLogger("regarima.models.diagnostics.range_mean")

# Series up to this length use longer, more trimmed groups
SHORT_SERIES = 165


@dataclass
class RangeMeanResult:
    """Result of the range-mean test.

    Attributes:
        test_statistic: t-statistic of the slope of ranges on means
        p_value: Two-sided p-value of the slope
        use_logs: Whether the statistic exceeds ``t_log``
        t_log: Threshold of the decision
        group_length: Number of observations per group
        trim: Observations dropped at each end of a sorted group
        ranges: Trimmed range of each group
        means: Trimmed mean of each group
    """
    test_statistic: float
    p_value: float
    use_logs: bool
    t_log: float
    group_length: int
    trim: int
    ranges: np.ndarray = field(repr=False)
    means: np.ndarray = field(repr=False)

    def __str__(self) -> str:
        return "\n".join([
            "Range-Mean Test Results:",
            f"  Test statistic: {self.test_statistic:.6f}",
            f"  P-value: {self.p_value:.6f}",
            f"  Groups: {self.ranges.shape[0]} of {self.group_length} observations "
            f"(trim {self.trim})",
            f"  Transformation: {'log' if self.use_logs else 'none'}",
        ])

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["ranges"] = self.ranges.tolist()
        result["means"] = self.means.tolist()
        return result


def group_length(frequency: int, n: int) -> Tuple[int, int]:
    """Group length and trimming for a frequency and a series length.

    Args:
        frequency: Number of observations per year
        n: Length of the series

    Returns:
        Tuple[int, int]: Group length and number of observations trimmed at
        each end of a sorted group
    """
    short = n <= SHORT_SERIES
    if frequency == 12:
        return 12, 1
    if frequency == 6:
        return (12, 2) if short else (12, 1)
    if frequency == 4:
        return (12, 2) if short else (8, 1)
    if frequency in (2, 3):
        return (12, 2) if short else (6, 1)
    if frequency == 1:
        return (9, 2) if short else (5, 1)
    return frequency, 1


def range_mean_test(data: TimeSeriesData,
                    frequency: int,
                    t_log: float = 2.0) -> Optional[RangeMeanResult]:
    """Perform the range-mean test.

    Args:
        data: Observations, all positive
        frequency: Number of observations per year
        t_log: Threshold of the slope t-statistic above which logs are advised

    Returns:
        RangeMeanResult, or None when the test does not apply (non-positive
        observations, fewer than four groups, degenerate regression)

    Examples:
        >>> import numpy as np
        >>> from regarima.models.diagnostics.range_mean import range_mean_test
        >>> rng = np.random.default_rng(0)
        >>> level = np.exp(np.linspace(0, 3, 144))
        >>> y = level * np.exp(0.1 * rng.standard_normal(144))
        >>> range_mean_test(y, 12).use_logs
        True
    """
    if frequency < 1:
        raise_parameter_error("Frequency must be positive", param_name="frequency",
                              param_value=frequency, constraint="frequency >= 1")
    y = validate_series(data, data_name="data")
    if np.any(y <= 0):
        logger.debug("Range-mean test not applicable to non-positive data")
        return None

    isj, itrim = group_length(frequency, y.shape[0])
    npoints = y.shape[0] // isj
    if npoints <= 3 or isj <= 2 * itrim:
        logger.debug(f"Range-mean test not applicable: {npoints} groups of {isj}")
        return None

    groups = np.sort(y[:npoints * isj].reshape(npoints, isj), axis=1)
    ranges = groups[:, isj - itrim - 1] - groups[:, itrim]
    means = groups[:, itrim:isj - itrim].mean(axis=1)
    if np.ptp(means) == 0.0:
        return None

    fit = sm.OLS(ranges, sm.add_constant(means, has_constant="add")).fit()
    t = float(fit.tvalues[1])
    if not np.isfinite(t):
        return None
    return RangeMeanResult(
        test_statistic=t,
        p_value=float(fit.pvalues[1]),
        use_logs=t > t_log,
        t_log=t_log,
        group_length=isj,
        trim=itrim,
        ranges=ranges,
        means=means
    )


def range_mean_test_model(model: RegArimaModel, t_log: float = 2.0) -> Optional[RangeMeanResult]:
    """Range-mean test of the response of a model.

    The frequency is the period of a seasonal errors model, 1 otherwise.
    """
    frequency = model.arima.specification.period if isinstance(model.arima, SarimaModel) else 1
    return range_mean_test(model.y, frequency, t_log)
