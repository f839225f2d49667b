# regarima/models/estimation/finalizers.py
"""
Post-processing of estimation results.
"""

import logging
from dataclasses import replace
from typing import Protocol, runtime_checkable

from regarima.core.exceptions import warn_model
from regarima.models.arima import polynomials
from regarima.models.estimation.results import RegArimaEstimation

logger = logging.getLogger("regarima.models.estimation.finalizers")


@runtime_checkable
class RegArimaFinalizer(Protocol):
    """Strategy applied to the estimation returned by the processor."""

    def finalize(self, estimation: RegArimaEstimation) -> RegArimaEstimation:
        ...


class UnitRootFinalizer:
    """
    Flags estimated autoregressive roots close to the unit circle.

    A root of modulus above ``threshold`` usually means that the series needs
    one more difference. The estimation is returned with a ``ModelWarning``
    attached; it is not re-estimated.

    Args:
        threshold: Largest acceptable modulus of an autoregressive inverse root
    """

    def __init__(self, threshold: float = 0.98) -> None:
        self.threshold = threshold

    def finalize(self, estimation: RegArimaEstimation) -> RegArimaEstimation:
        ar = estimation.arima.ar
        if ar.shape[0] <= 1:
            return estimation
        modulus = polynomials.max_inverse_root(ar)
        if modulus <= self.threshold:
            return estimation

        logger.info(f"Autoregressive inverse root of modulus {modulus:.4f} found")
        warning = warn_model(
            "Autoregressive polynomial has a root close to the unit circle",
            model_type=type(estimation.arima).__name__,
            issue="near unit root",
            parameter="ar",
            value=round(modulus, 6),
            details="An additional difference may be needed"
        )
        return replace(estimation, warnings=estimation.warnings + (warning,))
