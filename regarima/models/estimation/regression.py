# regarima/models/estimation/regression.py
"""
Regression models with ARIMA errors.

:class:`RegArimaModel` describes ``y = X b + u`` where ``u`` follows an
ARIMA model, possibly non-stationary. Applying the differencing polynomial of
the errors to ``y`` and to every column of ``X`` gives a
:class:`RegArmaModel` whose errors follow the stationary ARMA part; that is
the model on which the likelihood is evaluated.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Tuple

import numpy as np

from regarima.core.exceptions import ModelSpecificationError, raise_data_error
from regarima.core.types import DesignData, Matrix, TimeSeriesData, Vector
from regarima.core.validation import validate_design, validate_series
from regarima.models.arima import polynomials
from regarima.models.arima.model import ArimaModel

logger = logging.getLogger("regarima.models.estimation.regression")


def _frozen(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=float)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class RegArmaModel:
    """
    Regression model with stationary ARMA errors.

    Attributes:
        y: Response, length n
        x: Design matrix, shape (n, k), possibly with no columns
        arma: Stationary ARMA model of the errors
    """
    y: Vector
    x: Matrix
    arma: ArimaModel

    def __post_init__(self) -> None:
        y = _frozen(self.y)
        x = np.array(self.x, dtype=float)
        if x.size == 0:
            x = np.zeros((y.shape[0], 0))
        elif x.ndim == 1:
            x = x.reshape(-1, 1)
        if x.ndim != 2 or x.shape[0] != y.shape[0]:
            raise ModelSpecificationError(
                "Design matrix and response have different lengths",
                model_type="RegArma",
                context={"Response": y.shape, "Design": x.shape}
            )
        if not self.arma.is_stationary:
            raise ModelSpecificationError(
                "Errors of a RegArmaModel must be stationary",
                model_type="RegArma",
                parameter="arma"
            )
        x.setflags(write=False)
        object.__setattr__(self, "y", y)
        object.__setattr__(self, "x", x)

    @property
    def n(self) -> int:
        return self.y.shape[0]

    @property
    def nx(self) -> int:
        return self.x.shape[1]

    @property
    def degrees_of_freedom(self) -> int:
        return self.n - self.nx

    def with_arma(self, arma: ArimaModel) -> "RegArmaModel":
        """Copy of the model with other errors."""
        return replace(self, arma=arma)


@dataclass(frozen=True, eq=False)
class RegArimaModel:
    """
    Regression model with ARIMA errors.

    Attributes:
        y: Response
        arima: Model of the errors
        x: Regressors, shape (n, k); None for no regressors
        mean: Whether the differenced regression includes a constant
        names: Names of the columns of ``x``
    """
    y: Vector
    arima: ArimaModel = field(default_factory=ArimaModel)
    x: Optional[Matrix] = None
    mean: bool = False
    names: Sequence[str] = ()

    def __post_init__(self) -> None:
        y = validate_series(self.y, data_name="y")
        x, names = validate_design(self.x, y.shape[0], data_name="x")
        y.setflags(write=False)
        x.setflags(write=False)
        object.__setattr__(self, "y", y)
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "names", tuple(self.names) if self.names else tuple(names))
        if len(self.names) != x.shape[1]:
            raise ModelSpecificationError(
                "Number of names does not match the number of regressors",
                model_type="RegArima",
                parameter="names",
                context={"Names": len(self.names), "Regressors": x.shape[1]}
            )

    @classmethod
    def of(cls,
           y: TimeSeriesData,
           x: Optional[DesignData] = None,
           arima: Optional[ArimaModel] = None,
           mean: bool = False) -> "RegArimaModel":
        """Build a model from arrays or pandas objects."""
        return cls(y=y, arima=arima if arima is not None else ArimaModel(), x=x, mean=mean)

    @property
    def n(self) -> int:
        return self.y.shape[0]

    @property
    def nx(self) -> int:
        """Number of regression variables, the mean included."""
        return self.x.shape[1] + int(self.mean)

    @property
    def variable_names(self) -> Tuple[str, ...]:
        """Names of the regression variables in coefficient order."""
        return (("mean",) if self.mean else ()) + tuple(self.names)

    def with_arima(self, arima: ArimaModel) -> "RegArimaModel":
        """Copy of the model with other errors."""
        return replace(self, arima=arima)

    def differenced_model(self) -> RegArmaModel:
        """
        Apply the differencing polynomial of the errors.

        Returns:
            RegArmaModel: Differenced response and regressors (a column of
            ones first when ``mean`` is set) with the stationary ARMA errors

        Raises:
            DataError: If the series is not longer than the differencing order
        """
        delta = self.arima.delta
        d = delta.shape[0] - 1
        if self.n <= d:
            raise_data_error(
                f"Series of length {self.n} is too short for differencing of order {d}",
                data_name="y",
                issue="insufficient length"
            )

        dy = polynomials.apply(delta, self.y)
        dx = polynomials.apply(delta, self.x)
        if self.mean:
            dx = np.column_stack([np.ones(dy.shape[0]), dx])
        return RegArmaModel(dy, dx, self.arima.stationary_model())
