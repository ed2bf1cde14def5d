"""
Test the analytical bias correction.

In short panels the fixed effects estimators are badly biased away from
zero; the corrected estimator must remove a substantial part of that
bias.
"""

import pytest
import numpy as np
import pandas as pd
from scipy import stats

from pybife import bife
from pybife._core.bias import bias_correct
from pybife._core.demeaning import fit_demeaning
from pybife._core.families import Logit, Probit
from pybife._core.groups import GroupIndex
from pybife.exceptions import DegenerateGroup


BETA_TRUE = 1.0
N_SIM = 10


# The probit correction is first order in 1/T and overshoots at T = 3
@pytest.mark.parametrize("model, T", [("logit", 3), ("probit", 4)])
def test_correction_reduces_bias(model, T, panel_factory):
    """Monte Carlo with short panels."""
    uncorrected, corrected = [], []
    for rep in range(N_SIM):
        data = panel_factory(
            n_groups=300, T=T, beta=(BETA_TRUE,), model=model, seed=100 + rep
        )
        fit = bife("y", "x1", "id", data=data, model=model)
        uncorrected.append(fit.coef(corrected=False)["x1"])
        corrected.append(fit.coef()["x1"])

    bias_uncorrected = np.mean(uncorrected) - BETA_TRUE
    bias_corrected = np.mean(corrected) - BETA_TRUE

    # Incidental parameter bias inflates the estimate
    assert bias_uncorrected > 0
    assert abs(bias_corrected) < abs(bias_uncorrected)
    assert np.mean(corrected) < np.mean(uncorrected)


def test_bias_shrinks_with_T(panel_factory):
    """The estimated bias is O(1/T)."""
    short = bife("y", "x1", "id", data=panel_factory(
        n_groups=200, T=4, beta=(BETA_TRUE,), seed=7
    ))
    long = bife("y", "x1", "id", data=panel_factory(
        n_groups=200, T=20, beta=(BETA_TRUE,), seed=7
    ))
    assert abs(long.result.bias[0]) < abs(short.result.bias[0])


@pytest.mark.parametrize("link", [Logit(), Probit()], ids=["logit", "probit"])
def test_corrected_is_beta_minus_bias(link, logit_panel):
    panel = logit_panel.sort_values("id", kind="mergesort")
    groups = GroupIndex.from_ids(panel["id"].to_numpy())
    y = panel["y"].to_numpy(dtype=float)
    X = panel[["x1", "x2"]].to_numpy()

    # Constant responses carry no information; keep varying individuals
    keep = groups.expand((groups.sum(y) > 0) & (groups.sum(y) < groups.sizes))
    y, X = y[keep], X[keep]
    groups = GroupIndex.from_ids(panel["id"].to_numpy()[keep])

    fit = fit_demeaning(y, X, groups, link, tol=1e-10)
    correction = bias_correct(X, fit.beta, fit.eta, groups, link)

    assert correction.bias.shape == (2,)
    assert np.all(np.isfinite(correction.bias))
    np.testing.assert_allclose(correction.beta, fit.beta - correction.bias, rtol=1e-14)


def test_singleton_group_rejected():
    """An individual observed once has no defined bias term."""
    y = np.array([0.0, 1.0, 1.0, 0.0, 1.0])
    X = np.array([[0.3], [1.2], [0.8], [-0.4], [0.1]])
    groups = GroupIndex.from_ids(np.array([1, 1, 2, 2, 3]))
    eta = X[:, 0] * 0.5

    with pytest.raises(DegenerateGroup, match="fewer than 2"):
        bias_correct(X, np.array([0.5]), eta, groups, Logit())


def test_probit_bias_formula(probit_panel):
    """Probit bias term recomputed directly from the normal density."""
    panel = probit_panel.sort_values("id", kind="mergesort")
    rows = panel.groupby("id")["y"].transform("mean")
    panel = panel[(rows > 0) & (rows < 1)]
    groups = GroupIndex.from_ids(panel["id"].to_numpy())
    y = panel["y"].to_numpy(dtype=float)
    X = panel[["x1", "x2"]].to_numpy()

    fit = fit_demeaning(y, X, groups, Probit(), tol=1e-10)
    eta = fit.eta

    F, f = stats.norm.cdf(eta), stats.norm.pdf(eta)
    h = f / (F * (1.0 - F))
    w = f * h
    ids = panel["id"].to_numpy()
    frame = pd.DataFrame(X * w[:, np.newaxis], columns=["x1", "x2"])
    frame["w"] = w
    frame["id"] = ids
    sums = frame.groupby("id").transform("sum")
    X_tilde = X - sums[["x1", "x2"]].to_numpy() / sums[["w"]].to_numpy()

    term = pd.DataFrame(X_tilde * (h * -eta * f)[:, np.newaxis])
    term["w"] = w
    term["id"] = ids
    per_group = term.groupby("id").sum()
    b = 0.5 * (per_group[[0, 1]].to_numpy() / per_group[["w"]].to_numpy()).sum(axis=0)
    H = X_tilde.T @ (X_tilde * w[:, np.newaxis])
    expected = -np.linalg.solve(H, b)

    correction = bias_correct(X, fit.beta, eta, groups, Probit())
    np.testing.assert_allclose(correction.bias, expected, rtol=1e-8)
