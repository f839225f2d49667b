"""
regarima Test Suite

This package contains tests for regarima: the ARIMA error models and their
parametric mappings, the innovations filter, the concentrated likelihood, the
minimizers and the GLS-ARIMA processor.
"""
