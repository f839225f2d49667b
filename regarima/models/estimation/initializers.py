# regarima/models/estimation/initializers.py
"""
Starting models for the estimation of regression models with ARIMA errors.

An initializer receives the model to be estimated and returns a copy whose
errors model is a better starting point than the mapping's default, or None
when it does not apply; the processor then falls back to the default.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

import numpy as np
from scipy import linalg
from statsmodels.tsa.arima.estimators.hannan_rissanen import hannan_rissanen

from regarima.models.arima.mapping import ArimaMapping, ParamValidation
from regarima.models.arima.model import ArimaModel
from regarima.models.arima.sarima import SarimaModel
from regarima.models.estimation.regression import RegArimaModel

logger = logging.getLogger("regarima.models.estimation.initializers")


@runtime_checkable
class RegArimaInitializer(Protocol):
    """Strategy producing the starting model of an estimation."""

    def initialize(self, model: RegArimaModel) -> Optional[RegArimaModel]:
        """The model with a starting errors model, or None if not applicable."""
        ...


def _regular_orders(arima: ArimaModel) -> Optional[tuple]:
    if isinstance(arima, SarimaModel):
        spec = arima.specification
        if spec.bp > 0 or spec.bq > 0:
            return None
        return spec.p, spec.q
    return arima.ar_degree, arima.ma_degree


class HannanRissanenInitializer:
    """
    Hannan-Rissanen starting values for the regular ARMA part.

    The regression is fitted by ordinary least squares on the differenced
    data; the Hannan-Rissanen estimator of statsmodels is applied to its
    residuals. Models with seasonal ARMA factors are not handled.

    Args:
        min_observations: Smallest number of differenced observations per
            ARMA parameter for which the estimator is used
    """

    def __init__(self, min_observations: int = 10) -> None:
        self.min_observations = min_observations

    def initialize(self, model: RegArimaModel) -> Optional[RegArimaModel]:
        orders = _regular_orders(model.arima)
        if orders is None:
            logger.debug("Hannan-Rissanen initialization skipped for a seasonal model")
            return None
        p, q = orders
        if p + q == 0:
            return None

        dmodel = model.differenced_model()
        if dmodel.n - dmodel.nx < self.min_observations * (p + q) + 1:
            logger.debug(f"Series too short for Hannan-Rissanen initialization ({dmodel.n})")
            return None

        residuals = dmodel.y
        if dmodel.nx > 0:
            coefficients = linalg.lstsq(dmodel.x, dmodel.y)[0]
            residuals = dmodel.y - dmodel.x @ coefficients

        try:
            estimates, _ = hannan_rissanen(residuals, ar_order=p, ma_order=q, demean=False)
        except (ValueError, np.linalg.LinAlgError) as e:
            logger.info(f"Hannan-Rissanen initialization failed: {e}")
            return None

        params = np.concatenate([np.atleast_1d(estimates.ar_params)[:p],
                                 np.atleast_1d(estimates.ma_params)[:q]]).astype(float)
        if ArimaMapping(p, q).validate(params) is ParamValidation.INVALID:
            logger.info("Hannan-Rissanen estimates are not finite")
            return None

        arima = model.arima
        if isinstance(arima, SarimaModel):
            start = SarimaModel.of(arima.specification, params, arima.var)
        else:
            start = ArimaMapping(p, q, arima.delta).map(params)
        logger.debug(f"Hannan-Rissanen starting values: {params}")
        return model.with_arima(start)
