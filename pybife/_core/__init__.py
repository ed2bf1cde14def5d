"""
Core algorithms (backend-agnostic).
"""

from .families import Link, Logit, Probit, get_link
from .groups import GroupIndex
from .demeaning import DemeaningResult, fit_demeaning
from .bias import BiasCorrection, bias_correct
from .offset import OffsetResult, fit_offset
from .covariance import ParameterSet, parameter_covariance
from .fit import BifeResult, fit_bife

__all__ = [
    "Link",
    "Logit",
    "Probit",
    "get_link",
    "GroupIndex",
    "DemeaningResult",
    "fit_demeaning",
    "BiasCorrection",
    "bias_correct",
    "OffsetResult",
    "fit_offset",
    "ParameterSet",
    "parameter_covariance",
    "BifeResult",
    "fit_bife",
]
