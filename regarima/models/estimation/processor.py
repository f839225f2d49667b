# regarima/models/estimation/processor.py
"""
GLS estimation of regression models with ARIMA errors.

:class:`GlsArimaProcessor` drives a complete estimation:

1. ``initialize``: the starting errors model comes from the configured
   initializer or, when there is none or it does not apply, from the default
   parameters of the mapping;
2. ``optimize``: the ARMA parameters are estimated on the differenced model
   with the mapping of the stationary part, mapped back with the mapping of
   the full model, and the likelihood of the full model is recomputed;
3. ``finalize``: the configured finalizer post-processes the estimation.

Processors are configured through an immutable :class:`GlsArimaConfig`,
usually built with :meth:`GlsArimaProcessor.builder`::

    processor = (GlsArimaProcessor.builder()
                 .precision(1e-7)
                 .initializer(HannanRissanenInitializer())
                 .build())
    estimation = processor.process(model)
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from regarima.core.config import get_numerical_config, get_performance_config
from regarima.core.exceptions import raise_parameter_error
from regarima.models.arima.mapping import ParametricMapping, mapping_for
from regarima.models.arima.model import ArimaModel
from regarima.models.estimation.finalizers import RegArimaFinalizer
from regarima.models.estimation.initializers import RegArimaInitializer
from regarima.models.estimation.likelihood import ConcentratedLikelihoodComputer
from regarima.models.estimation.regarma import RegArmaProcessor
from regarima.models.estimation.regression import RegArimaModel
from regarima.models.estimation.results import (
    RegArimaEstimation, concentrated_loglikelihood_function
)
from regarima.optimization.minimizers import LevenbergMarquardtMinimizer, SsqFunctionMinimizer

logger = logging.getLogger("regarima.models.estimation.processor")

MappingProvider = Callable[[ArimaModel], ParametricMapping]


@dataclass(frozen=True)
class GlsArimaConfig:
    """
    Settings of a :class:`GlsArimaProcessor`.

    Attributes:
        mapping: Provider of the parametric mapping of a model
        initializer: Starting-model strategy, None for the mapping's default
        finalizer: Post-processing strategy, None for none
        minimizer: Sum-of-squares minimizer, Levenberg-Marquardt if None
        precision: Function precision of the minimizer
        use_maximum_likelihood: Maximum likelihood (True) or least squares
        use_parallel_processing: Evaluate the Jacobian columns in a thread pool
        max_workers: Size of the thread pool (configuration default if None)
    """
    mapping: MappingProvider = mapping_for
    initializer: Optional[RegArimaInitializer] = None
    finalizer: Optional[RegArimaFinalizer] = None
    minimizer: Optional[SsqFunctionMinimizer] = None
    precision: float = field(default_factory=lambda: get_numerical_config().function_precision)
    use_maximum_likelihood: bool = True
    use_parallel_processing: bool = field(
        default_factory=lambda: get_performance_config().parallel_processing)
    max_workers: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.precision > 0:
            raise_parameter_error(
                "Precision must be positive",
                param_name="precision",
                param_value=self.precision,
                constraint="precision > 0"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise_parameter_error(
                "Number of workers must be positive",
                param_name="max_workers",
                param_value=self.max_workers,
                constraint="max_workers >= 1"
            )


class GlsArimaProcessorBuilder:
    """Fluent construction of a :class:`GlsArimaProcessor`."""

    def __init__(self) -> None:
        self._config = GlsArimaConfig()

    def mapping(self, mapping: MappingProvider) -> "GlsArimaProcessorBuilder":
        self._config = replace(self._config, mapping=mapping)
        return self

    def initializer(self, initializer: Optional[RegArimaInitializer]) -> "GlsArimaProcessorBuilder":
        self._config = replace(self._config, initializer=initializer)
        return self

    def finalizer(self, finalizer: Optional[RegArimaFinalizer]) -> "GlsArimaProcessorBuilder":
        self._config = replace(self._config, finalizer=finalizer)
        return self

    def minimizer(self, minimizer: Optional[SsqFunctionMinimizer]) -> "GlsArimaProcessorBuilder":
        self._config = replace(self._config, minimizer=minimizer)
        return self

    def precision(self, precision: float) -> "GlsArimaProcessorBuilder":
        self._config = replace(self._config, precision=precision)
        return self

    def use_maximum_likelihood(self, ml: bool = True) -> "GlsArimaProcessorBuilder":
        self._config = replace(self._config, use_maximum_likelihood=ml)
        return self

    def use_parallel_processing(self, parallel: bool = True) -> "GlsArimaProcessorBuilder":
        self._config = replace(self._config, use_parallel_processing=parallel)
        return self

    def max_workers(self, max_workers: Optional[int]) -> "GlsArimaProcessorBuilder":
        self._config = replace(self._config, max_workers=max_workers)
        return self

    def build(self) -> "GlsArimaProcessor":
        return GlsArimaProcessor(self._config)


class GlsArimaProcessor:
    """
    Estimation of regression models with ARIMA errors.

    Args:
        config: Processor settings (defaults if None)
    """

    def __init__(self, config: Optional[GlsArimaConfig] = None) -> None:
        self.config = config if config is not None else GlsArimaConfig()
        template = (self.config.minimizer if self.config.minimizer is not None
                    else LevenbergMarquardtMinimizer())
        self._minimizer = template.exemplar()
        self._minimizer.function_precision = self.config.precision

    @staticmethod
    def builder() -> GlsArimaProcessorBuilder:
        return GlsArimaProcessorBuilder()

    @property
    def precision(self) -> float:
        """Function precision of the minimizer."""
        return self._minimizer.function_precision

    def process(self, model: RegArimaModel) -> Optional[RegArimaEstimation]:
        """
        Estimate a model.

        Args:
            model: Regression model; its errors model gives the orders

        Returns:
            RegArimaEstimation or None if the estimation failed
        """
        estimation = self.optimize(self.initialize(model))
        if estimation is None:
            return None
        return self.finalize(estimation)

    async def process_async(self, model: RegArimaModel) -> Optional[RegArimaEstimation]:
        """Run :meth:`process` in the default executor of the running loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.process, model)

    def initialize(self, model: RegArimaModel) -> RegArimaModel:
        start = None
        if self.config.initializer is not None:
            start = self.config.initializer.initialize(model)
        if start is None:
            mapping = self.config.mapping(model.arima)
            return model.with_arima(mapping.map(mapping.default_parameters()))
        return start

    def finalize(self, estimation: RegArimaEstimation) -> RegArimaEstimation:
        if self.config.finalizer is not None:
            return self.config.finalizer.finalize(estimation)
        return estimation

    def optimize(self, model: RegArimaModel) -> Optional[RegArimaEstimation]:
        """
        Estimate the errors model starting from the errors model of ``model``.

        Returns:
            RegArimaEstimation or None if the estimation loop failed
        """
        arima = model.arima
        arma = arima.stationary_transformation().stationary_model
        stmapping = self.config.mapping(arma)
        dmodel = model.differenced_model()
        ndf = dmodel.n - dmodel.nx

        logger.info(f"Estimating {arima!r} on {model.n} observations with {model.nx} regressors")
        processor = RegArmaProcessor(self.config.use_maximum_likelihood,
                                     self.config.use_parallel_processing,
                                     self.config.max_workers)
        # Each estimation works on its own minimizer
        minimizer = self._minimizer.exemplar()
        rslt = processor.compute(dmodel, arma, stmapping, minimizer, ndf)
        if rslt is None:
            logger.warning(f"Estimation of {arima!r} failed")
            return None

        mapping = self.config.mapping(arima)
        nmodel = model.with_arima(mapping.map(rslt.parameters))
        likelihood = ConcentratedLikelihoodComputer().compute(nmodel)
        return RegArimaEstimation(
            model=nmodel,
            likelihood=likelihood,
            parameters=rslt.parameters,
            gradient=rslt.gradient,
            hessian=rslt.hessian,
            objective=rslt.objective,
            degrees_of_freedom=ndf,
            converged=rslt.converged,
            iterations=rslt.iterations,
            trace=rslt.trace,
            parameter_names=tuple(mapping.description(i) for i in range(mapping.dim)),
            loglikelihood_function=concentrated_loglikelihood_function(self.config.mapping, model)
        )

    def __repr__(self) -> str:
        return (f"GlsArimaProcessor(precision={self.precision:g}, "
                f"ml={self.config.use_maximum_likelihood}, "
                f"parallel={self.config.use_parallel_processing})")
