"""
Offset IRLS for the fixed effects.

With the structural parameters held fixed as an offset, the likelihood
splits into one scalar problem per group. All groups take their Newton
(Fisher scoring) step in the same vectorised pass; a group that has met
the stopping rule is frozen while the others continue.
"""

import logging
import warnings
import numpy as np
from typing import Optional
from dataclasses import dataclass

from .convergence import ConvergenceInfo
from .families import Link, WEIGHT_FLOOR
from ..exceptions import ConvergenceWarning


logger = logging.getLogger(__name__)

# Keeps the relative criterion finite for fixed effects near zero
ALPHA_GUARD = 0.1

# Step-halving gives up once a step is shrunk by 2^-MAX_HALVING
MAX_HALVING = 40

# Relative rounding allowance when comparing log-likelihoods
LOGLIK_SLACK = 1e-12


@dataclass(frozen=True, eq=False)
class OffsetResult:
    """Results from the offset algorithm."""
    alpha: np.ndarray              # Fixed effects (G,)
    eta: np.ndarray                # Linear predictor offset + α (n,)
    group_iterations: np.ndarray   # Iterations used per group
    group_converged: np.ndarray    # Convergence flag per group
    convergence: ConvergenceInfo   # Worst case over groups


def null_alpha(y: np.ndarray, offset: np.ndarray, groups, link: Link) -> np.ndarray:
    """Starting values F⁻¹(ȳ_g) shifted by the mean group offset."""
    sizes = groups.sizes
    return link.quantile(groups.sum(y) / sizes) - groups.sum(offset) / sizes


def fit_offset(
    y: np.ndarray,
    offset: np.ndarray,
    groups,
    link: Link,
    alpha_start: Optional[np.ndarray] = None,
    max_iter: int = 1000,
    tol: float = 1e-5,
    backend=None,
) -> OffsetResult:
    """
    Estimate the fixed effects given a fixed offset.

    Parameters
    ----------
    y : ndarray, shape (n,)
        Binary response
    offset : ndarray, shape (n,)
        Fixed part of the linear predictor, usually X @ beta
    groups : GroupIndex
        Row partition
    link : Link
        Logit or probit
    alpha_start : ndarray, shape (G,), optional
        Starting values; defaults to the null-model intercepts
    max_iter : int, default=1000
        Iteration cap (per group)
    tol : float, default=1e-5
        Per-group stopping rule |Δα| / (|α| + 0.1) < tol
    backend : Backend, optional
        Computational backend for the group sums

    Returns
    -------
    result : OffsetResult

    Notes
    -----
    Each group iterates

        α_g ← α_g + Σ h (y - μ) / Σ w

    where h = f/(F(1-F)) (h = 1 for logit) and w is the IRLS weight.
    A step that lowers the group log-likelihood is halved until it does
    not; a group where halving fails keeps its value and is reported as
    not converged.
    Groups never share state, so one group's data has no effect on
    another group's estimate.
    """
    if backend is None:
        from .._backends import get_backend
        backend = get_backend('cpu')

    y = np.asarray(y, dtype=np.float64)
    offset = np.asarray(offset, dtype=np.float64)
    G = groups.n_groups

    if alpha_start is None:
        alpha = null_alpha(y, offset, groups, link)
    else:
        alpha = np.array(alpha_start, dtype=np.float64)

    active = np.ones(G, dtype=bool)
    group_iterations = np.zeros(G, dtype=np.int64)
    group_converged = np.zeros(G, dtype=bool)
    crit = np.zeros(G)

    for iteration in range(1, max_iter + 1):
        eta = offset + groups.expand(alpha)
        w = np.maximum(link.weight(eta), WEIGHT_FLOOR)
        score = link.score_factor(eta) * link.residual(y, eta)

        step = backend.group_sums(score, groups) / backend.group_sums(w, groups)
        step = np.where(active, step, 0.0)
        crit = np.abs(step) / (np.abs(alpha) + ALPHA_GUARD)
        group_iterations[active] = iteration
        done = active & (crit < tol)

        # Per-group step-halving while a group's log-likelihood drops
        loglik = backend.group_sums(link.loglik_rows(y, eta), groups)
        slack = LOGLIK_SLACK * (np.abs(loglik) + 1.0)
        t = np.ones(G)
        for _ in range(MAX_HALVING):
            eta_new = offset + groups.expand(alpha + t * step)
            loglik_new = backend.group_sums(link.loglik_rows(y, eta_new), groups)
            worse = active & ~done & ~(loglik_new >= loglik - slack)
            if not worse.any():
                break
            t = np.where(worse, 0.5 * t, t)
        else:
            # Stuck groups keep their current value and stop unconverged
            t = np.where(worse, 0.0, t)
            active &= ~worse
            logger.debug(
                "offset iteration %d: step-halving failed for %d groups",
                iteration, int(worse.sum())
            )

        alpha = alpha + t * step
        group_converged |= done
        active &= ~done

        logger.debug(
            "offset iteration %d: %d of %d groups still active",
            iteration, int(active.sum()), G
        )
        if not active.any():
            break

    converged = bool(group_converged.all())
    if not converged:
        warnings.warn(
            f"Offset algorithm did not converge for {int((~group_converged).sum())} "
            f"of {G} groups after {max_iter} iterations",
            ConvergenceWarning
        )

    return OffsetResult(
        alpha=alpha,
        eta=offset + groups.expand(alpha),
        group_iterations=group_iterations,
        group_converged=group_converged,
        convergence=ConvergenceInfo(
            iterations=int(group_iterations.max()) if G else 0,
            last_delta=float(np.max(crit)) if G else 0.0,
            converged=converged,
        ),
    )


__all__ = ["OffsetResult", "fit_offset", "null_alpha"]
