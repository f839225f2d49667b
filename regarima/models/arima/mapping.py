# regarima/models/arima/mapping.py
"""
Parameter domains and parametric mappings.

The optimization loop works on plain parameter vectors. A mapping tells it
which vectors are admissible (the *domain* part: bounds, boundary checks,
repair of invalid points, finite-difference steps) and how a vector becomes
an ARIMA model (the *mapping* part, with its inverse).

Three model families are provided:

* :class:`ArimaMapping` for models described directly by their regular
  autoregressive and moving-average polynomials,
* :class:`SarimaMapping` for multiplicative seasonal models,
* :class:`FixedParametersMapping`, a wrapper that holds selected parameters
  of another mapping at fixed values.

:func:`mapping_for` selects the family matching a model.

Autoregressive factors must be stationary (inverse roots strictly inside the
unit circle), moving-average factors invertible (inverse roots inside or on
the unit circle). Each factor is checked on its own, so a seasonal factor
``1 - Phi B^s`` is admissible exactly when ``|Phi| < 1``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Protocol, Sequence, runtime_checkable

import numpy as np

from regarima.core.config import get_numerical_config
from regarima.core.exceptions import ModelSpecificationError, raise_dimension_error
from regarima.core.types import ParameterVector, Polynomial
from regarima.models.arima import polynomials
from regarima.models.arima.model import ArimaModel
from regarima.models.arima.sarima import SarimaModel, SarimaSpecification

logger = logging.getLogger("regarima.models.arima.mapping")

# Largest modulus of an autoregressive inverse root after repair
MAX_AR_ROOT = 0.9999
# Largest modulus of a moving-average inverse root
MAX_MA_ROOT = 1.0

DEFAULT_AR = 0.1
DEFAULT_MA = -0.2


class ParamValidation(Enum):
    """Outcome of :meth:`ParametersDomain.validate`."""
    VALID = "valid"
    CHANGED = "changed"
    INVALID = "invalid"


@runtime_checkable
class ParametersDomain(Protocol):
    """
    Contract describing the admissible region of a parameter vector.

    All methods are deterministic and free of side effects except
    :meth:`validate`, which may repair its argument in place.
    """

    @property
    def dim(self) -> int:
        """Number of parameters."""
        ...

    def lbound(self, idx: int) -> float:
        """Lower bound of parameter ``idx`` (may be ``-inf``)."""
        ...

    def ubound(self, idx: int) -> float:
        """Upper bound of parameter ``idx`` (may be ``inf``)."""
        ...

    def check_boundaries(self, params: ParameterVector) -> bool:
        """Whether the vector lies inside the domain."""
        ...

    def epsilon(self, params: ParameterVector, idx: int) -> float:
        """Signed finite-difference step for parameter ``idx`` at ``params``."""
        ...

    def validate(self, params: ParameterVector) -> ParamValidation:
        """Check the vector, repairing it in place when possible."""
        ...

    def default_parameters(self) -> ParameterVector:
        """A starting point inside the domain."""
        ...

    def description(self, idx: int) -> str:
        """Human-readable name of parameter ``idx``."""
        ...


@dataclass(frozen=True)
class _Factor:
    """A polynomial factor occupying a contiguous slice of the parameters."""
    label: str
    start: int
    size: int
    autoregressive: bool

    @property
    def indices(self) -> slice:
        return slice(self.start, self.start + self.size)

    def polynomial(self, params: ParameterVector) -> Polynomial:
        coefficients = params[self.indices]
        if self.autoregressive:
            return polynomials.from_ar_coefficients(coefficients)
        return polynomials.from_ma_coefficients(coefficients)

    def coefficients(self, poly: Polynomial) -> np.ndarray:
        return -poly[1:] if self.autoregressive else poly[1:]

    @property
    def max_root(self) -> float:
        return MAX_AR_ROOT if self.autoregressive else MAX_MA_ROOT

    def admissible(self, params: ParameterVector) -> bool:
        modulus = polynomials.max_inverse_root(self.polynomial(params))
        return modulus < 1.0 if self.autoregressive else modulus <= MAX_MA_ROOT


def _factors(*layout) -> Sequence[_Factor]:
    factors = []
    start = 0
    for label, size, autoregressive in layout:
        if size > 0:
            factors.append(_Factor(label, start, size, autoregressive))
        start += size
    return tuple(factors)


class ParametricMapping(ABC):
    """
    Base class of the mappings between parameter vectors and ARIMA models.

    Implements the :class:`ParametersDomain` contract from a list of
    polynomial factors; subclasses provide :meth:`map` and its inverse
    :meth:`parameters`.
    """

    def __init__(self, factors: Sequence[_Factor], dim: int) -> None:
        self._factors = tuple(factors)
        self._dim = dim
        self._labels = [f"parameter-{i + 1}" for i in range(dim)]
        for factor in self._factors:
            for k in range(factor.size):
                self._labels[factor.start + k] = f"{factor.label}({k + 1})"

    @property
    def dim(self) -> int:
        return self._dim

    @abstractmethod
    def map(self, params: ParameterVector) -> ArimaModel:
        """Build the model described by a parameter vector."""
        pass

    @abstractmethod
    def parameters(self, model: ArimaModel) -> ParameterVector:
        """Parameter vector of a model of this family (inverse of :meth:`map`)."""
        pass

    def _factor_of(self, idx: int) -> _Factor:
        for factor in self._factors:
            if factor.start <= idx < factor.start + factor.size:
                return factor
        raise IndexError(f"parameter index {idx} out of range for dimension {self._dim}")

    def lbound(self, idx: int) -> float:
        factor = self._factor_of(idx)
        return -1.0 if factor.size == 1 else -np.inf

    def ubound(self, idx: int) -> float:
        factor = self._factor_of(idx)
        return 1.0 if factor.size == 1 else np.inf

    def _check_length(self, params: ParameterVector) -> None:
        if np.shape(params) != (self._dim,):
            raise_dimension_error(
                "Parameter vector does not match the mapping",
                array_name="params",
                expected_shape=(self._dim,),
                actual_shape=np.shape(params)
            )

    def check_boundaries(self, params: ParameterVector) -> bool:
        params = np.asarray(params, dtype=float)
        self._check_length(params)
        if not np.all(np.isfinite(params)):
            return False
        return all(factor.admissible(params) for factor in self._factors)

    def epsilon(self, params: ParameterVector, idx: int) -> float:
        """Step ``h * max(1, |p_idx|)``, negated when the forward point leaves the domain."""
        params = np.asarray(params, dtype=float)
        step = get_numerical_config().finite_difference_step * max(1.0, abs(params[idx]))
        trial = params.copy()
        trial[idx] += step
        if not self.check_boundaries(trial):
            return -step
        return step

    def validate(self, params: ParameterVector) -> ParamValidation:
        self._check_length(params)
        if not np.all(np.isfinite(params)):
            return ParamValidation.INVALID

        changed = False
        for factor in self._factors:
            poly, modified = polynomials.stabilize(factor.polynomial(params), factor.max_root)
            if modified:
                params[factor.indices] = factor.coefficients(poly)
                changed = True

        if changed:
            logger.debug(f"Parameters repaired to {params}")
            return ParamValidation.CHANGED
        return ParamValidation.VALID

    def default_parameters(self) -> ParameterVector:
        params = np.zeros(self._dim)
        for factor in self._factors:
            params[factor.indices] = DEFAULT_AR if factor.autoregressive else DEFAULT_MA
        # A constant default may not be admissible for long factors
        self.validate(params)
        return params

    def description(self, idx: int) -> str:
        return self._labels[idx]

    def descriptions(self) -> Sequence[str]:
        return tuple(self._labels)


class ArimaMapping(ParametricMapping):
    """
    Mapping for ARIMA models given by their regular polynomials.

    Parameters are ``[phi_1..phi_p, theta_1..theta_q]``; the differencing
    polynomial is carried unchanged to every mapped model.

    Args:
        p: Autoregressive order
        q: Moving-average order
        delta: Differencing polynomial of the mapped models
    """

    def __init__(self, p: int, q: int, delta: Polynomial = polynomials.ONE) -> None:
        if p < 0 or q < 0:
            raise ModelSpecificationError(
                "ARMA orders must be non-negative",
                model_type="ARIMA",
                context={"p": p, "q": q}
            )
        self.p = p
        self.q = q
        self.delta = polynomials.as_polynomial(delta, "delta")
        super().__init__(_factors(("phi", p, True), ("theta", q, False)), p + q)

    @classmethod
    def from_model(cls, model: ArimaModel) -> "ArimaMapping":
        return cls(model.ar_degree, model.ma_degree, model.delta)

    def map(self, params: ParameterVector) -> ArimaModel:
        params = np.asarray(params, dtype=float)
        self._check_length(params)
        return ArimaModel(
            ar=polynomials.from_ar_coefficients(params[:self.p]),
            delta=self.delta,
            ma=polynomials.from_ma_coefficients(params[self.p:])
        )

    def parameters(self, model: ArimaModel) -> ParameterVector:
        if model.ar_degree > self.p or model.ma_degree > self.q:
            raise ModelSpecificationError(
                f"Model orders ({model.ar_degree}, {model.ma_degree}) exceed "
                f"the mapping orders ({self.p}, {self.q})",
                model_type="ARIMA"
            )
        params = np.zeros(self._dim)
        params[:model.ar_degree] = model.ar_coefficients
        params[self.p:self.p + model.ma_degree] = model.ma_coefficients
        return params

    def __repr__(self) -> str:
        return f"ArimaMapping(p={self.p}, q={self.q}, d={self.delta.shape[0] - 1})"


class SarimaMapping(ParametricMapping):
    """
    Mapping for multiplicative seasonal ARIMA models.

    Args:
        specification: Orders of the mapped models
    """

    def __init__(self, specification: SarimaSpecification) -> None:
        self.specification = specification
        spec = specification
        super().__init__(
            _factors(("phi", spec.p, True), ("bphi", spec.bp, True),
                     ("theta", spec.q, False), ("btheta", spec.bq, False)),
            spec.parameters_count
        )

    def map(self, params: ParameterVector) -> SarimaModel:
        params = np.asarray(params, dtype=float)
        self._check_length(params)
        return SarimaModel.of(self.specification, params)

    def parameters(self, model: ArimaModel) -> ParameterVector:
        if (not isinstance(model, SarimaModel)
                or model.specification.stationary() != self.specification.stationary()):
            raise ModelSpecificationError(
                f"Model is not a SARIMA {self.specification} model",
                model_type="SARIMA",
                context={"Model": repr(model)}
            )
        return np.array(model.parameters, dtype=float)

    def __repr__(self) -> str:
        return f"SarimaMapping({self.specification})"


class FixedParametersMapping(ParametricMapping):
    """
    Mapping holding some parameters of another mapping at fixed values.

    Only the free parameters are exposed to the optimizer; they keep their
    relative order.

    Args:
        mapping: The unconstrained mapping
        fixed: Fixed values keyed by index in the unconstrained parameter vector
    """

    def __init__(self, mapping: ParametricMapping, fixed: Mapping[int, float]) -> None:
        invalid = [idx for idx in fixed if not 0 <= idx < mapping.dim]
        if invalid:
            raise ModelSpecificationError(
                "Fixed parameter indices out of range",
                parameter=str(invalid),
                context={"Dimension": mapping.dim}
            )
        self.mapping = mapping
        self.fixed: Dict[int, float] = {int(k): float(v) for k, v in fixed.items()}
        self._free = np.array([i for i in range(mapping.dim) if i not in self.fixed], dtype=int)
        super().__init__((), self._free.shape[0])
        self._labels = [mapping.description(int(i)) for i in self._free]

    @property
    def free_indices(self) -> np.ndarray:
        return self._free.copy()

    def expand(self, params: ParameterVector) -> ParameterVector:
        """Full parameter vector of the wrapped mapping."""
        params = np.asarray(params, dtype=float)
        self._check_length(params)
        full = np.zeros(self.mapping.dim)
        full[self._free] = params
        for idx, value in self.fixed.items():
            full[idx] = value
        return full

    def map(self, params: ParameterVector) -> ArimaModel:
        return self.mapping.map(self.expand(params))

    def parameters(self, model: ArimaModel) -> ParameterVector:
        return self.mapping.parameters(model)[self._free]

    def lbound(self, idx: int) -> float:
        return self.mapping.lbound(int(self._free[idx]))

    def ubound(self, idx: int) -> float:
        return self.mapping.ubound(int(self._free[idx]))

    def check_boundaries(self, params: ParameterVector) -> bool:
        return self.mapping.check_boundaries(self.expand(params))

    def validate(self, params: ParameterVector) -> ParamValidation:
        full = self.expand(params)
        status = self.mapping.validate(full)
        if status is ParamValidation.CHANGED:
            # Repairs must not move the fixed coefficients
            if any(full[idx] != value for idx, value in self.fixed.items()):
                return ParamValidation.INVALID
            params[:] = full[self._free]
        return status

    def default_parameters(self) -> ParameterVector:
        full = self.mapping.default_parameters()
        for idx, value in self.fixed.items():
            full[idx] = value
        return full[self._free]

    def __repr__(self) -> str:
        return f"FixedParametersMapping({self.mapping!r}, fixed={self.fixed})"


def mapping_for(model: ArimaModel) -> ParametricMapping:
    """Default mapping of the family a model belongs to.

    Args:
        model: Seasonal or plain ARIMA model

    Returns:
        ParametricMapping: A :class:`SarimaMapping` for seasonal models, an
        :class:`ArimaMapping` with the model's orders otherwise
    """
    if isinstance(model, SarimaModel):
        return SarimaMapping(model.specification)
    return ArimaMapping.from_model(model)
