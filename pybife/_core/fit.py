"""
Fit orchestration.

Runs demeaning, bias correction, offset recovery and covariance
estimation in order and assembles the result record. Inputs must
already be cleaned: 0/1 response, no missing values, rows grouped by id,
perfectly classified groups removed.
"""

import logging
import numpy as np
from typing import Optional
from dataclasses import dataclass, field

from .bias import bias_correct
from .covariance import ParameterSet, parameter_covariance
from .demeaning import DemeaningResult, fit_demeaning
from .families import get_link
from .groups import GroupIndex
from .offset import OffsetResult, fit_offset
from .._backends import get_backend
from .._config import BifeControl
from .._utils import check_lengths, check_regressors, check_response
from ..exceptions import DimensionMismatch


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoglikInfo:
    """Likelihood and convergence diagnostics."""
    nobs: int                           # Observations (before dropping perfectly classified)
    k: int                              # Structural parameters + retained fixed effects
    loglik: float                       # Log-likelihood at uncorrected parameters
    events: int                         # Number of y == 1
    iter_demeaning: int
    conv_demeaning: bool
    loglik_corr: Optional[float] = None  # At bias-corrected/-adjusted parameters
    iter_offset: Optional[int] = None
    conv_offset: Optional[bool] = None


@dataclass(frozen=True, eq=False)
class ModelInfo:
    """Retained sample and pass-through information."""
    used_ids: np.ndarray    # Retained group keys
    y: np.ndarray           # Response of the retained sample
    X: np.ndarray           # Regressors of the retained sample
    id: np.ndarray          # Group key per retained row
    beta_start: np.ndarray  # Starting values used
    names: tuple            # Regressor names
    model: str
    bias_corr: str
    drop_NA: int = 0        # Rows dropped for missing values
    drop_pc: int = 0        # Rows dropped for perfect classification
    drop_pc_groups: int = 0  # Groups dropped for perfect classification


@dataclass(frozen=True, eq=False)
class BifeResult:
    """Complete results of a fixed effects binary choice fit."""
    par: ParameterSet
    par_corr: Optional[ParameterSet]
    logl_info: LoglikInfo
    model_info: ModelInfo
    demeaning: DemeaningResult
    offset: Optional[OffsetResult] = None
    bias: Optional[np.ndarray] = None
    device_info: dict = field(default_factory=dict)


def fit_bife(
    y,
    X,
    ids,
    beta_start=None,
    model: str = "logit",
    bias_corr: str = "ana",
    iter_demeaning: int = 100,
    tol_demeaning: float = 1e-5,
    iter_offset: int = 1000,
    tol_offset: float = 1e-5,
    backend='cpu',
    sample_info: Optional[dict] = None,
) -> BifeResult:
    """
    Fit a fixed effects logit/probit model on a prepared sample.

    Parameters
    ----------
    y : array, shape (n,)
        Binary response (0/1)
    X : array, shape (n, k)
        Structural regressors
    ids : array, shape (n,)
        Individual identifier, rows grouped contiguously
    beta_start : array, shape (k,), optional
        Starting values for β (default zeros)
    model : str, default='logit'
        'logit' or 'probit'
    bias_corr : str, default='ana'
        'ana' or 'no'
    iter_demeaning, tol_demeaning : int, float
        Demeaning algorithm controls
    iter_offset, tol_offset : int, float
        Offset algorithm controls
    backend : str or Backend, default='cpu'
        Computational backend
    sample_info : dict, optional
        Pass-through counts from data preparation: 'nobs', 'events',
        'drop_NA', 'drop_pc', 'drop_pc_groups', 'names'

    Returns
    -------
    result : BifeResult

    Raises
    ------
    InvalidConfiguration
        Unknown model / bias_corr / backend or bad controls
    DimensionMismatch
        Inconsistent input lengths or beta_start length
    DegenerateGroup
        Group too small for the bias correction
    FitFailure
        Singular normal equations
    """
    control = BifeControl(
        model=model,
        bias_corr=bias_corr,
        iter_demeaning=iter_demeaning,
        tol_demeaning=tol_demeaning,
        iter_offset=iter_offset,
        tol_offset=tol_offset,
    )
    link = get_link(control.model)
    backend = get_backend(backend)

    y = check_response(y)
    X = check_regressors(X)
    ids = np.asarray(ids)
    check_lengths(y, X, ids)
    n, k = X.shape

    if beta_start is None:
        beta_start = np.zeros(k)
    else:
        beta_start = np.asarray(beta_start, dtype=np.float64).reshape(-1)
        if len(beta_start) != k:
            raise DimensionMismatch(
                "'beta_start' must be of same dimension as the number of "
                f"structural parameters ({len(beta_start)} != {k})"
            )

    info = dict(sample_info or {})
    groups = GroupIndex.from_ids(ids)

    logger.debug(
        "fitting %s model: n=%d, k=%d, groups=%d, backend=%s",
        control.model, n, k, groups.n_groups, backend.name
    )

    demeaning = fit_demeaning(
        y, X, groups, link,
        beta_start=beta_start,
        max_iter=control.iter_demeaning,
        tol=control.tol_demeaning,
        backend=backend,
    )
    par = parameter_covariance(X, demeaning.beta, demeaning.alpha, groups, link, backend)

    par_corr = None
    offset = None
    bias = None
    corrected_fields = {}

    if control.bias_corr == "ana":
        correction = bias_correct(X, demeaning.beta, demeaning.eta, groups, link, backend)
        bias = correction.bias
        offset = fit_offset(
            y, X @ correction.beta, groups, link,
            alpha_start=demeaning.alpha,
            max_iter=control.iter_offset,
            tol=control.tol_offset,
            backend=backend,
        )
        par_corr = parameter_covariance(X, correction.beta, offset.alpha, groups, link, backend)
        corrected_fields = dict(
            loglik_corr=link.loglik(y, offset.eta),
            iter_offset=offset.convergence.iterations,
            conv_offset=offset.convergence.converged,
        )

    logl_info = LoglikInfo(
        nobs=int(info.get("nobs", n)),
        k=k + groups.n_groups,
        loglik=link.loglik(y, demeaning.eta),
        events=int(info.get("events", int(y.sum()))),
        iter_demeaning=demeaning.convergence.iterations,
        conv_demeaning=demeaning.convergence.converged,
        **corrected_fields,
    )

    names = info.get("names")
    model_info = ModelInfo(
        used_ids=groups.keys,
        y=y,
        X=X,
        id=ids,
        beta_start=demeaning.beta_start,
        names=tuple(names) if names is not None else tuple(f"x{i}" for i in range(k)),
        model=control.model,
        bias_corr=control.bias_corr,
        drop_NA=int(info.get("drop_NA", 0)),
        drop_pc=int(info.get("drop_pc", 0)),
        drop_pc_groups=int(info.get("drop_pc_groups", 0)),
    )

    return BifeResult(
        par=par,
        par_corr=par_corr,
        logl_info=logl_info,
        model_info=model_info,
        demeaning=demeaning,
        offset=offset,
        bias=bias,
        device_info=backend.get_device_info(),
    )


__all__ = ["BifeResult", "LoglikInfo", "ModelInfo", "fit_bife"]
