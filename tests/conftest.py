"""
Shared fixtures: simulated binary panels.
"""

import pytest
import numpy as np
import pandas as pd


def simulate_panel(n_groups=100, T=5, beta=(1.0, -0.5), model="logit", seed=42):
    """
    Draw a balanced panel from a fixed effects logit/probit model.

    Regressors are correlated with the fixed effects, so pooled
    estimators would be inconsistent.
    """
    np.random.seed(seed)
    beta = np.asarray(beta, dtype=np.float64)
    n = n_groups * T

    ids = np.repeat(np.arange(n_groups), T)
    alpha = np.random.randn(n_groups)
    X = np.random.randn(n, len(beta)) + 0.5 * alpha[ids][:, np.newaxis]

    if model == "logit":
        eps = np.random.logistic(size=n)
    else:
        eps = np.random.randn(n)
    y = (X @ beta + alpha[ids] + eps > 0).astype(np.float64)

    data = pd.DataFrame(X, columns=[f"x{j + 1}" for j in range(len(beta))])
    data.insert(0, "y", y)
    data.insert(0, "id", ids)
    return data


@pytest.fixture
def panel_factory():
    """Factory for simulated panels (see simulate_panel)."""
    return simulate_panel


@pytest.fixture
def logit_panel():
    """Moderate logit panel: 80 individuals, 6 periods, 2 regressors."""
    return simulate_panel(n_groups=80, T=6, model="logit", seed=1)


@pytest.fixture
def probit_panel():
    """Moderate probit panel: 80 individuals, 6 periods, 2 regressors."""
    return simulate_panel(n_groups=80, T=6, model="probit", seed=2)
