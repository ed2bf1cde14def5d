"""
Binary-choice link definitions.

Defines the cdf, density and derived IRLS quantities for logit and probit.
"""

import numpy as np
from abc import ABC, abstractmethod
from scipy import stats

from ..exceptions import InvalidConfiguration


# Lower bound for IRLS weights and densities used as divisors; below the
# weight of either link at its clipping threshold
WEIGHT_FLOOR = 1e-16


class Link(ABC):
    """Base class for binary-choice links."""

    EPS = np.finfo(np.float64).eps

    @property
    @abstractmethod
    def name(self) -> str:
        """Link name."""
        pass

    @abstractmethod
    def cdf(self, eta: np.ndarray) -> np.ndarray:
        """Response probability: μ = F(η), kept inside [ε, 1-ε]"""
        pass

    @abstractmethod
    def pdf(self, eta: np.ndarray) -> np.ndarray:
        """Density: f(η) = dμ/dη"""
        pass

    @abstractmethod
    def d_pdf(self, eta: np.ndarray) -> np.ndarray:
        """Derivative of the density: f'(η) = d²μ/dη²"""
        pass

    @abstractmethod
    def quantile(self, p: np.ndarray) -> np.ndarray:
        """Inverse cdf: η = F⁻¹(p)"""
        pass

    @abstractmethod
    def loglik_rows(self, y: np.ndarray, eta: np.ndarray) -> np.ndarray:
        """Bernoulli log-likelihood contribution of every row."""
        pass

    def loglik(self, y: np.ndarray, eta: np.ndarray) -> float:
        """Bernoulli log-likelihood."""
        return float(np.sum(self.loglik_rows(y, eta)))

    def weight(self, eta: np.ndarray) -> np.ndarray:
        """IRLS weight: w = f²/(F(1-F))"""
        mu = self.cdf(eta)
        return self.pdf(eta) ** 2 / (mu * (1.0 - mu))

    def score_factor(self, eta: np.ndarray) -> np.ndarray:
        """Score factor: h = f/(F(1-F)), so that ∂ℓ/∂η = h (y - μ)"""
        mu = self.cdf(eta)
        return self.pdf(eta) / (mu * (1.0 - mu))

    def residual(self, y: np.ndarray, eta: np.ndarray) -> np.ndarray:
        """
        Response residual y - μ.

        Zero for rows beyond the clipping threshold on the side of their
        outcome, where the clipped likelihood is flat. This keeps IRLS
        from drifting forever on perfectly separated rows.
        """
        saturated = ((y == 1.0) & (eta >= self.THRESH)) | \
                    ((y == 0.0) & (eta <= -self.THRESH))
        return np.where(saturated, 0.0, y - self.cdf(eta))

    def __repr__(self):
        return f"{type(self).__name__}()"


class Logit(Link):
    """
    Logistic link.

    Thresholds η at ±30 like R's binomial family to prevent overflow.
    """

    THRESH = 30.0
    MTHRESH = -30.0

    @property
    def name(self) -> str:
        return "logit"

    def cdf(self, eta: np.ndarray) -> np.ndarray:
        eta = np.clip(eta, self.MTHRESH, self.THRESH)
        mu = 1.0 / (1.0 + np.exp(-eta))
        return np.clip(mu, self.EPS, 1.0 - self.EPS)

    def pdf(self, eta: np.ndarray) -> np.ndarray:
        mu = self.cdf(eta)
        return mu * (1.0 - mu)

    def d_pdf(self, eta: np.ndarray) -> np.ndarray:
        mu = self.cdf(eta)
        return mu * (1.0 - mu) * (1.0 - 2.0 * mu)

    def weight(self, eta: np.ndarray) -> np.ndarray:
        # f = μ(1-μ) makes the general formula collapse
        return self.pdf(eta)

    def score_factor(self, eta: np.ndarray) -> np.ndarray:
        return np.ones_like(np.asarray(eta, dtype=np.float64))

    def quantile(self, p: np.ndarray) -> np.ndarray:
        p = np.clip(p, self.EPS, 1.0 - self.EPS)
        return np.log(p / (1.0 - p))

    def loglik_rows(self, y: np.ndarray, eta: np.ndarray) -> np.ndarray:
        return y * eta - np.logaddexp(0.0, eta)


class Probit(Link):
    """
    Normal (probit) link.

    Thresholds η at ±Φ⁻¹(ε) like R's make.link("probit").
    """

    THRESH = -stats.norm.ppf(np.finfo(np.float64).eps)

    @property
    def name(self) -> str:
        return "probit"

    def cdf(self, eta: np.ndarray) -> np.ndarray:
        eta = np.clip(eta, -self.THRESH, self.THRESH)
        return np.clip(stats.norm.cdf(eta), self.EPS, 1.0 - self.EPS)

    def pdf(self, eta: np.ndarray) -> np.ndarray:
        return np.maximum(stats.norm.pdf(eta), self.EPS)

    def d_pdf(self, eta: np.ndarray) -> np.ndarray:
        return -eta * stats.norm.pdf(eta)

    def quantile(self, p: np.ndarray) -> np.ndarray:
        p = np.clip(p, self.EPS, 1.0 - self.EPS)
        return stats.norm.ppf(p)

    def score_factor(self, eta: np.ndarray) -> np.ndarray:
        # φ / (Φ (1 - Φ)) in log space; grows like |η| in the tails where
        # the clipped cdf would cap it
        eta = np.asarray(eta, dtype=np.float64)
        return np.exp(
            stats.norm.logpdf(eta) - stats.norm.logcdf(eta) - stats.norm.logcdf(-eta)
        )

    def weight(self, eta: np.ndarray) -> np.ndarray:
        return stats.norm.pdf(eta) * self.score_factor(eta)

    def loglik_rows(self, y: np.ndarray, eta: np.ndarray) -> np.ndarray:
        return y * stats.norm.logcdf(eta) + (1.0 - y) * stats.norm.logcdf(-eta)


_LINKS = {
    "logit": Logit,
    "probit": Probit,
}


def get_link(model: str) -> Link:
    """
    Look up a link by name.

    Parameters
    ----------
    model : str
        'logit' or 'probit'

    Returns
    -------
    Link
    """
    try:
        return _LINKS[model]()
    except (KeyError, TypeError):
        raise InvalidConfiguration(
            f"'model' must be 'logit' or 'probit', got {model!r}"
        ) from None


__all__ = ["Link", "Logit", "Probit", "get_link", "WEIGHT_FLOOR"]
