"""
regarima utilities.

Key components:
- Numerical differentiation (forward-difference Jacobian, two-sided Hessian)
"""

import logging

# Set up module-level logger
logger = logging.getLogger("regarima.utils")

from .differentiation import hessian_2sided, jacobian

__all__ = [
    "jacobian",
    "hessian_2sided",
]
