"""
Covariance estimation for structural parameters and fixed effects.

The information for β is the profile (concentrated) information
X̃'WX̃, where X̃ is X with weighted group means removed. This equals
the β block of the inverse of the full dummy-variable information
matrix without ever forming it.
"""

import numpy as np
from dataclasses import dataclass

from .families import Link, WEIGHT_FLOOR
from ..exceptions import FitFailure


@dataclass(frozen=True, eq=False)
class ConcentratedInformation:
    """Profile information for β at a given linear predictor."""
    X_tilde: np.ndarray    # Weighted-demeaned regressors (n, k)
    weights: np.ndarray    # IRLS weights (n,)
    hessian: np.ndarray    # X̃'WX̃ (k, k)


@dataclass(frozen=True, eq=False)
class ParameterSet:
    """One set of estimates with their uncertainty."""
    beta: np.ndarray        # Structural parameters (k,)
    alpha: np.ndarray       # Fixed effects (G,)
    se_beta: np.ndarray     # Standard errors of β
    se_alpha: np.ndarray    # Standard errors of α
    beta_vcov: np.ndarray   # Covariance matrix of β (k, k)
    avg_alpha: float        # Mean fixed effect


def concentrated_information(
    X: np.ndarray,
    eta: np.ndarray,
    groups,
    link: Link,
    backend,
) -> ConcentratedInformation:
    """Build X̃ and X̃'WX̃ at the weights implied by eta."""
    w = np.maximum(link.weight(eta), WEIGHT_FLOOR)
    X_tilde = groups.demean(X, w, backend)
    H = X_tilde.T @ (X_tilde * w[:, np.newaxis])
    return ConcentratedInformation(X_tilde=X_tilde, weights=w, hessian=H)


def parameter_covariance(
    X: np.ndarray,
    beta: np.ndarray,
    alpha: np.ndarray,
    groups,
    link: Link,
    backend=None,
) -> ParameterSet:
    """
    Standard errors and covariance matrix for a parameter set.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Structural regressors
    beta : ndarray, shape (k,)
        Structural parameters
    alpha : ndarray, shape (G,)
        Fixed effects
    groups : GroupIndex
        Row partition
    link : Link
        Logit or probit
    backend : Backend, optional
        Computational backend

    Returns
    -------
    ParameterSet

    Raises
    ------
    FitFailure
        If X̃'WX̃ is numerically singular
    """
    if backend is None:
        from .._backends import get_backend
        backend = get_backend('cpu')

    eta = X @ beta + groups.expand(alpha)
    info = concentrated_information(X, eta, groups, link, backend)

    try:
        beta_vcov = backend.invert_information(info.hessian)
    except np.linalg.LinAlgError as exc:
        raise FitFailure(f"Cannot invert information matrix: {exc}") from exc

    # Var(α_g) = 1 / Σ_{i∈g} w_i
    alpha_info = backend.group_sums(info.weights, groups)

    return ParameterSet(
        beta=np.asarray(beta, dtype=np.float64),
        alpha=np.asarray(alpha, dtype=np.float64),
        se_beta=np.sqrt(np.diag(beta_vcov)),
        se_alpha=np.sqrt(1.0 / alpha_info),
        beta_vcov=beta_vcov,
        avg_alpha=float(np.mean(alpha)),
    )


__all__ = [
    "ConcentratedInformation",
    "ParameterSet",
    "concentrated_information",
    "parameter_covariance",
]
