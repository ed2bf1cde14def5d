"""
pybife: Fixed effects logit and probit models for large panels.

Pseudo-demeaning IRLS estimation with analytical bias correction,
following R's bife package.

Licensed under GPL-3.0
"""

__version__ = "0.1.0"

# Import main user-facing API
from .bife import bife, BinaryFixedEffects
from ._config import BifeControl
from ._core.fit import fit_bife, BifeResult
from .exceptions import (
    BifeError,
    ConvergenceWarning,
    DegenerateGroup,
    DimensionMismatch,
    FitFailure,
    InvalidConfiguration,
)

# Import backend utilities (for advanced users)
from ._backends import get_backend, list_available_backends

__all__ = [
    'bife',
    'BinaryFixedEffects',
    'BifeControl',
    'fit_bife',
    'BifeResult',
    'BifeError',
    'ConvergenceWarning',
    'DegenerateGroup',
    'DimensionMismatch',
    'FitFailure',
    'InvalidConfiguration',
    'get_backend',
    'list_available_backends',
]
