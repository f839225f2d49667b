# regarima/models/arima/sarima.py
"""
Seasonal ARIMA models.

A seasonal model ``(p, d, q)(bp, bd, bq)_s`` is an :class:`ArimaModel` whose
polynomials are products of a regular and a seasonal factor::

    phi(B) Phi(B^s) (1 - B)^d (1 - B^s)^bd y_t = theta(B) Theta(B^s) e_t

Its free parameters are the coefficients of the four factors, stored in the
order ``[phi_1..phi_p, Phi_1..Phi_bp, theta_1..theta_q, Theta_1..Theta_bq]``
with the signs of :mod:`regarima.models.arima.polynomials`.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional

import numpy as np

from regarima.core.exceptions import ModelSpecificationError
from regarima.core.types import ParameterVector
from regarima.models.arima import polynomials
from regarima.models.arima.model import ArimaModel


@dataclass(frozen=True)
class SarimaSpecification:
    """
    Orders of a seasonal ARIMA model.

    Attributes:
        period: Seasonal period (1 for a non-seasonal model)
        p: Regular autoregressive order
        d: Regular differencing order
        q: Regular moving-average order
        bp: Seasonal autoregressive order
        bd: Seasonal differencing order
        bq: Seasonal moving-average order
    """
    period: int = 1
    p: int = 0
    d: int = 0
    q: int = 0
    bp: int = 0
    bd: int = 0
    bq: int = 0

    def __post_init__(self) -> None:
        orders = {"p": self.p, "d": self.d, "q": self.q,
                  "bp": self.bp, "bd": self.bd, "bq": self.bq}
        negative = [name for name, value in orders.items() if value < 0]
        if negative or self.period < 1:
            raise ModelSpecificationError(
                "SARIMA orders must be non-negative and the period positive",
                model_type="SARIMA",
                parameter=", ".join(negative) or "period",
                context={"Orders": orders, "Period": self.period}
            )
        if self.period == 1 and (self.bp or self.bd or self.bq):
            raise ModelSpecificationError(
                "Seasonal orders require a period larger than 1",
                model_type="SARIMA",
                parameter="period"
            )

    @classmethod
    def airline(cls, period: int) -> "SarimaSpecification":
        """The ``(0, 1, 1)(0, 1, 1)`` airline model."""
        return cls(period=period, d=1, q=1, bd=1, bq=1)

    @property
    def parameters_count(self) -> int:
        return self.p + self.bp + self.q + self.bq

    @property
    def blocks(self) -> Dict[str, slice]:
        """Position of each factor in the parameter vector."""
        start = 0
        blocks = {}
        for name, size in (("phi", self.p), ("bphi", self.bp),
                           ("theta", self.q), ("btheta", self.bq)):
            blocks[name] = slice(start, start + size)
            start += size
        return blocks

    def stationary(self) -> "SarimaSpecification":
        """The same specification without differencing."""
        return replace(self, d=0, bd=0)

    def __str__(self) -> str:
        regular = f"({self.p},{self.d},{self.q})"
        if self.period == 1:
            return regular
        return f"{regular}({self.bp},{self.bd},{self.bq})_{self.period}"


@dataclass(frozen=True, eq=False)
class SarimaModel(ArimaModel):
    """
    Seasonal ARIMA model defined by a specification and its parameters.

    Use :meth:`of` to build instances; the polynomials are derived from the
    specification and the parameters.

    Attributes:
        specification: Model orders
        parameters: Factor coefficients, see the module documentation
    """
    specification: SarimaSpecification = field(default_factory=SarimaSpecification)
    parameters: Optional[ParameterVector] = None

    def __post_init__(self) -> None:
        spec = self.specification
        params = (np.zeros(spec.parameters_count) if self.parameters is None
                  else np.array(self.parameters, dtype=float).ravel())
        if params.shape[0] != spec.parameters_count:
            raise ModelSpecificationError(
                f"SARIMA {spec} has {spec.parameters_count} parameters, got {params.shape[0]}",
                model_type="SARIMA",
                parameter="parameters"
            )
        params.setflags(write=False)
        blocks = spec.blocks

        ar = polynomials.multiply(
            polynomials.from_ar_coefficients(params[blocks["phi"]]),
            polynomials.from_ar_coefficients(params[blocks["bphi"]], spec.period)
        )
        ma = polynomials.multiply(
            polynomials.from_ma_coefficients(params[blocks["theta"]]),
            polynomials.from_ma_coefficients(params[blocks["btheta"]], spec.period)
        )
        object.__setattr__(self, "parameters", params)
        object.__setattr__(self, "ar", ar)
        object.__setattr__(self, "ma", ma)
        object.__setattr__(self, "delta", polynomials.differencing(spec.d, spec.bd, spec.period))
        super().__post_init__()

    @classmethod
    def of(cls,
           specification: SarimaSpecification,
           parameters: Optional[ParameterVector] = None,
           var: float = 1.0) -> "SarimaModel":
        """Build a model from its orders and parameters (zeros by default)."""
        return cls(var=var, specification=specification, parameters=parameters)

    def block(self, name: str) -> np.ndarray:
        """Coefficients of one factor ("phi", "bphi", "theta" or "btheta")."""
        return self.parameters[self.specification.blocks[name]]

    def stationary_model(self) -> "SarimaModel":
        if self.is_stationary:
            return self
        return SarimaModel.of(self.specification.stationary(), self.parameters, self.var)

    def __repr__(self) -> str:
        return (f"SarimaModel({self.specification}, parameters={self.parameters.tolist()}, "
                f"var={self.var:g})")
