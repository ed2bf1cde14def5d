"""
Input validation for the fitting routines.
"""

import numpy as np

from .exceptions import DimensionMismatch


def check_regressors(X, name='X'):
    """Validate the regressor matrix (a vector is read as one column)."""
    X = np.asarray(X, dtype=np.float64)
    if X.ndim == 1:
        X = X[:, np.newaxis]
    if X.ndim != 2:
        raise ValueError(f"{name} must be 2-dimensional")
    if X.shape[1] == 0:
        raise DimensionMismatch(f"{name} must have at least one column")
    if not np.all(np.isfinite(X)):
        raise ValueError(f"{name} contains NaN or Inf")
    return X


def check_response(y, name='y'):
    """Validate a 0/1 response vector."""
    y = np.asarray(y, dtype=np.float64)
    if y.ndim != 1:
        raise ValueError(f"{name} must be 1-dimensional")
    if not np.all((y == 0.0) | (y == 1.0)):
        raise ValueError(f"{name} must be coded 0/1 without missing values")
    return y


def check_lengths(y, X, ids):
    """All inputs must describe the same rows."""
    if not (len(y) == X.shape[0] == len(ids)):
        raise DimensionMismatch(
            f"y, X and id must have the same number of rows "
            f"(got {len(y)}, {X.shape[0]}, {len(ids)})"
        )
