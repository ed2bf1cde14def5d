"""
Analytical incidental parameter bias correction.

Reference
---------
Hahn, J., and W. Newey (2004). "Jackknife and analytical bias reduction
for nonlinear panel models". Econometrica 72(4), 1295-1319.

Fernández-Val, I. (2009). "Fixed effects estimation of structural
parameters and marginal effects in panel probit models". Journal of
Econometrics 150(1), 71-85.
"""

import numpy as np
from dataclasses import dataclass

from .covariance import concentrated_information
from .families import Link
from ..exceptions import DegenerateGroup, FitFailure


@dataclass(frozen=True, eq=False)
class BiasCorrection:
    """Bias-corrected structural parameters."""
    beta: np.ndarray    # β - bias
    bias: np.ndarray    # Estimated leading-order bias of β


def bias_correct(
    X: np.ndarray,
    beta: np.ndarray,
    eta: np.ndarray,
    groups,
    link: Link,
    backend=None,
) -> BiasCorrection:
    """
    Remove the O(1/T) incidental parameter bias from β.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Structural regressors
    beta : ndarray, shape (k,)
        Converged (uncorrected) structural parameters
    eta : ndarray, shape (n,)
        Linear predictor at the converged (β, α)
    groups : GroupIndex
        Row partition
    link : Link
        Logit or probit
    backend : Backend, optional
        Computational backend

    Returns
    -------
    BiasCorrection

    Raises
    ------
    DegenerateGroup
        If a group has fewer than 2 observations or no information

    Notes
    -----
    With h = f/(F(1-F)), w = f h and X̃ the w-weighted demeaned X:

        b    = ½ Σ_g (Σ_{i∈g} h_i f'_i X̃_i) / (Σ_{i∈g} w_i)
        bias = -(X̃'WX̃)⁻¹ b

    The group term is a sum over n_g observations divided by another, so
    each group contributes O(1) while X̃'WX̃ grows with n·T̄: the bias
    shrinks at rate 1/T̄.
    """
    if backend is None:
        from .._backends import get_backend
        backend = get_backend('cpu')

    groups.require_min_size(2)

    info = concentrated_information(X, eta, groups, link, backend)

    w_sums = backend.group_sums(info.weights, groups)
    bad = ~np.isfinite(w_sums) | (w_sums <= 0.0)
    if np.any(bad):
        raise DegenerateGroup(
            f"Undefined bias term for {int(bad.sum())} group(s), "
            f"e.g. id {groups.keys[bad][0]!r}"
        )

    z = link.score_factor(eta) * link.d_pdf(eta)
    num = backend.group_sums(info.X_tilde * z[:, np.newaxis], groups)
    b = 0.5 * np.sum(num / w_sums[:, np.newaxis], axis=0)

    try:
        bias = -backend.invert_information(info.hessian) @ b
    except np.linalg.LinAlgError as exc:
        raise FitFailure(f"Cannot invert information matrix: {exc}") from exc

    return BiasCorrection(beta=np.asarray(beta, dtype=np.float64) - bias, bias=bias)


__all__ = ["BiasCorrection", "bias_correct"]
