"""
Pseudo-demeaning IRLS for binary-choice models with fixed effects.

Estimates β and α jointly without the individual dummy matrix. Every
outer iteration linearizes the likelihood (IRLS), concentrates α out in
closed form through weighted group means, and solves the remaining k×k
weighted least squares problem on the demeaned data.

Reference
---------
Stammann, A., F. Heiss, and D. McFadden (2016). "Estimating Fixed Effects
Logit Models with Large Panel Data". Working paper.
"""

import logging
import warnings
import numpy as np
from typing import Optional
from dataclasses import dataclass

from .convergence import ConvergenceInfo
from .families import Link, WEIGHT_FLOOR
from .offset import fit_offset, null_alpha
from ..exceptions import (
    ConvergenceWarning, DimensionMismatch, FitFailure, InvalidConfiguration
)


logger = logging.getLogger(__name__)

# Iteration cap for the profile starting values of α
START_ITER = 1000

# Step-halving gives up once the step is shrunk by 2^-MAX_HALVING
MAX_HALVING = 40

# Relative rounding allowance when comparing log-likelihoods
LOGLIK_SLACK = 1e-12

# Demeaned column norm, relative to the raw one, below which a regressor
# counts as absorbed by the fixed effects
ABSORBED_TOL = 1e-10


@dataclass(frozen=True, eq=False)
class DemeaningResult:
    """Results from the demeaning algorithm."""
    beta: np.ndarray               # Structural parameters (k,)
    alpha: np.ndarray              # Fixed effects (G,)
    eta: np.ndarray                # Linear predictor at (β, α)
    beta_start: np.ndarray         # Starting values used
    deltas: tuple                  # ‖β_new - β_old‖₂ per iteration
    logliks: tuple                 # Log-likelihood after each iteration
    convergence: ConvergenceInfo


def start_alpha(y, X, beta, groups, link, tol, backend) -> np.ndarray:
    """
    Fixed effects matching a starting β.

    With β = 0 these are the null-model intercepts F⁻¹(ȳ_g); otherwise
    the per-group maximizers given the offset Xβ.
    """
    offset = X @ beta
    if not np.any(beta):
        return null_alpha(y, offset, groups, link)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        result = fit_offset(
            y, offset, groups, link, max_iter=START_ITER, tol=tol,
            backend=backend
        )
    if not result.convergence.converged:
        n_open = int((~result.group_converged).sum())
        warnings.warn(
            f"Starting values for the fixed effects did not converge for "
            f"{n_open} of {groups.n_groups} groups",
            ConvergenceWarning
        )
    return result.alpha


def fit_demeaning(
    y: np.ndarray,
    X: np.ndarray,
    groups,
    link: Link,
    beta_start: Optional[np.ndarray] = None,
    alpha_start: Optional[np.ndarray] = None,
    max_iter: int = 100,
    tol: float = 1e-5,
    backend=None,
) -> DemeaningResult:
    """
    Fit β and α by pseudo-demeaning IRLS.

    Parameters
    ----------
    y : ndarray, shape (n,)
        Binary response (0/1), rows grouped by id
    X : ndarray, shape (n, k)
        Structural regressors (no intercept, no time-invariant columns)
    groups : GroupIndex
        Row partition
    link : Link
        Logit or probit
    beta_start : ndarray, shape (k,), optional
        Starting values for β (default zeros)
    alpha_start : ndarray, shape (G,), optional
        Starting values for α (default: fitted to beta_start)
    max_iter : int, default=100
        Maximum outer iterations
    tol : float, default=1e-5
        Stop when ‖β_new - β_old‖₂ < tol
    backend : Backend, optional
        Computational backend

    Returns
    -------
    result : DemeaningResult

    Raises
    ------
    DimensionMismatch
        If beta_start or alpha_start have the wrong length
    FitFailure
        If the normal equations are singular, a regressor is absorbed by
        the fixed effects, or step-halving cannot increase the
        log-likelihood

    Notes
    -----
    One iteration, with W = diag(w):

        z   = η + h (y - μ) / w        (y - μ set to 0 on saturated rows)
        z̄_g = Σ_g w z / Σ_g w,   X̄_g = Σ_g w X / Σ_g w
        β   = (X̃'WX̃)⁻¹ X̃'W z̃,  z̃ = z - z̄, X̃ = X - X̄
        α_g = z̄_g - X̄_g β

    h = f/(F(1-F)) and w = f h, so z = η + (y - μ)/f; the product form
    stays finite in the probit tails. When the full step lowers the
    log-likelihood it is halved until it does not, as in glm.fit.

    Non-convergence is not an error: the last iterate is returned with
    converged=False.
    """
    if max_iter < 1:
        raise InvalidConfiguration("max_iter must be at least 1")
    if backend is None:
        from .._backends import get_backend
        backend = get_backend('cpu')

    y = np.asarray(y, dtype=np.float64)
    X = np.asarray(X, dtype=np.float64)
    k = X.shape[1]

    if beta_start is None:
        beta = np.zeros(k)
    else:
        beta = np.array(beta_start, dtype=np.float64).reshape(-1)
        if len(beta) != k:
            raise DimensionMismatch(
                f"beta_start has length {len(beta)}, expected {k} "
                f"(number of structural parameters)"
            )
    beta_start = beta.copy()

    if alpha_start is None:
        alpha = start_alpha(y, X, beta, groups, link, tol, backend)
    else:
        alpha = np.array(alpha_start, dtype=np.float64).reshape(-1)
        if len(alpha) != groups.n_groups:
            raise DimensionMismatch(
                f"alpha_start has length {len(alpha)}, expected {groups.n_groups}"
            )

    deltas = []
    logliks = []
    converged = False
    iteration = 0
    eta = X @ beta + groups.expand(alpha)
    loglik = link.loglik(y, eta)

    for iteration in range(1, max_iter + 1):
        w = np.maximum(link.weight(eta), WEIGHT_FLOOR)
        z = eta + link.score_factor(eta) * link.residual(y, eta) / w

        z_bar = groups.weighted_mean(z, w, backend)
        X_bar = groups.weighted_mean(X, w, backend)
        z_tilde = z - groups.expand(z_bar)
        X_tilde = X - groups.expand(X_bar)

        absorbed = np.flatnonzero(
            np.sqrt(w @ X_tilde ** 2) <= ABSORBED_TOL * np.sqrt(w @ X ** 2)
        )
        if len(absorbed):
            raise FitFailure(
                f"Regressor column(s) {absorbed.tolist()} are constant within "
                f"individuals and collinear with the fixed effects",
                iteration=iteration
            )

        try:
            wls = backend.solve_normal_equations(X_tilde, w, z_tilde)
        except np.linalg.LinAlgError as exc:
            raise FitFailure(
                f"Singular normal equations in demeaning algorithm: {exc}",
                iteration=iteration
            ) from exc

        step_beta = wls.coef - beta
        step_alpha = z_bar - X_bar @ wls.coef - alpha
        full_delta = float(np.linalg.norm(step_beta))
        if not (np.isfinite(full_delta) and np.all(np.isfinite(step_alpha))):
            raise FitFailure(
                "Non-finite parameter update in demeaning algorithm",
                iteration=iteration
            )

        # Step-halving: shrink the update until the log-likelihood does not drop
        t = 1.0
        for _ in range(MAX_HALVING):
            beta_new = beta + t * step_beta
            alpha_new = alpha + t * step_alpha
            eta_new = X @ beta_new + groups.expand(alpha_new)
            loglik_new = link.loglik(y, eta_new)
            if full_delta < tol or loglik_new >= loglik - LOGLIK_SLACK * (abs(loglik) + 1.0):
                break
            t *= 0.5
        else:
            raise FitFailure(
                f"Step-halving failed to increase the log-likelihood "
                f"({loglik:.6f}) in demeaning algorithm",
                iteration=iteration
            )

        if t < 1.0:
            logger.debug("demeaning iteration %d: step halved to %.3g", iteration, t)

        delta = t * full_delta
        deltas.append(delta)
        logliks.append(loglik_new)
        beta, alpha, eta, loglik = beta_new, alpha_new, eta_new, loglik_new

        logger.debug("demeaning iteration %d: ||delta beta|| = %.3e", iteration, delta)

        if full_delta < tol:
            converged = True
            break

    if not converged:
        warnings.warn(
            f"Demeaning algorithm did not converge after {max_iter} iterations "
            f"(last ||delta beta|| = {deltas[-1]:.3e})",
            ConvergenceWarning
        )

    return DemeaningResult(
        beta=beta,
        alpha=alpha,
        eta=eta,
        beta_start=beta_start,
        deltas=tuple(deltas),
        logliks=tuple(logliks),
        convergence=ConvergenceInfo(
            iterations=iteration,
            last_delta=deltas[-1],
            converged=converged,
        ),
    )


__all__ = ["DemeaningResult", "fit_demeaning", "start_alpha"]
