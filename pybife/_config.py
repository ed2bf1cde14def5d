"""
Fit configuration.

All options are validated when a BifeControl is created, so a bad
model or bias_corr value is reported before any computation.
"""

import numbers
from dataclasses import dataclass

from .exceptions import InvalidConfiguration

_VALID_MODELS = ("logit", "probit")
_VALID_BIAS_CORR = ("no", "ana")


def _check_positive_int(name, value):
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
        raise InvalidConfiguration(f"'{name}' must be a positive integer, got {value!r}")


def _check_positive_float(name, value):
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not value > 0:
        raise InvalidConfiguration(f"'{name}' must be a positive number, got {value!r}")


@dataclass(frozen=True)
class BifeControl:
    """
    Estimation options.

    Attributes
    ----------
    model : str
        'logit' or 'probit'
    bias_corr : str
        'ana' (analytical bias correction) or 'no'
    iter_demeaning : int
        Maximum iterations of the demeaning algorithm
    tol_demeaning : float
        Stop when ||b(i) - b(i-1)|| < tol_demeaning
    iter_offset : int
        Maximum iterations of the offset algorithm (bias_corr='ana' only)
    tol_offset : float
        Per-group relative tolerance of the offset algorithm

    Examples
    --------
    >>> control = BifeControl(bias_corr='no', tol_demeaning=1e-8)
    """
    model: str = "logit"
    bias_corr: str = "ana"
    iter_demeaning: int = 100
    tol_demeaning: float = 1e-5
    iter_offset: int = 1000
    tol_offset: float = 1e-5

    def __post_init__(self):
        if self.model not in _VALID_MODELS:
            raise InvalidConfiguration(
                f"'model' must be 'logit' or 'probit', got {self.model!r}"
            )
        if self.bias_corr not in _VALID_BIAS_CORR:
            raise InvalidConfiguration(
                f"'bias_corr' must be 'no' or 'ana', got {self.bias_corr!r}"
            )
        _check_positive_int("iter_demeaning", self.iter_demeaning)
        _check_positive_float("tol_demeaning", self.tol_demeaning)
        _check_positive_int("iter_offset", self.iter_offset)
        _check_positive_float("tol_offset", self.tol_offset)


__all__ = ["BifeControl"]
