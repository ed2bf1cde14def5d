"""
Exceptions and warnings raised by pybife.
"""

from typing import Optional


class BifeError(Exception):
    """Base class for all pybife errors."""


class InvalidConfiguration(BifeError, ValueError):
    """Unknown model, bias correction or backend, or bad control values."""


class DimensionMismatch(BifeError, ValueError):
    """Input arrays or starting values have inconsistent shapes."""


class DegenerateGroup(BifeError, ValueError):
    """A retained group cannot contribute to the estimation."""


class FitFailure(BifeError, RuntimeError):
    """
    Numerical failure during fitting.

    Parameters
    ----------
    message : str
        Description of the failure
    iteration : int, optional
        Outer iteration in which the failure occurred
    """

    def __init__(self, message: str, iteration: Optional[int] = None):
        if iteration is not None:
            message = f"{message} (iteration {iteration})"
        super().__init__(message)
        self.iteration = iteration


class ConvergenceWarning(UserWarning):
    """An iterative algorithm stopped at its iteration cap."""


__all__ = [
    "BifeError",
    "InvalidConfiguration",
    "DimensionMismatch",
    "DegenerateGroup",
    "FitFailure",
    "ConvergenceWarning",
]
