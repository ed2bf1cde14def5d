"""
CPU backend using NumPy + SciPy.

This is the reference implementation.
"""

import numpy as np
from scipy.linalg import cho_factor, cho_solve

from .base import CPUBackend, WLSResult


# Reciprocal condition number below which X'WX, scaled to unit
# diagonal, counts as singular
RCOND_TOL = np.finfo(np.float64).eps * 1e3


def _check_information(H: np.ndarray) -> None:
    if not np.all(np.isfinite(H)):
        raise np.linalg.LinAlgError("Information matrix has non-finite entries")
    if H.shape[0] == 0:
        return
    # Equilibrate so that the units of the regressors do not matter
    d = np.sqrt(np.diag(H))
    if (not np.all(d > 0.0)
            or not 1.0 / np.linalg.cond(H / np.outer(d, d)) >= RCOND_TOL):
        raise np.linalg.LinAlgError(
            "Information matrix is numerically singular "
            "(collinear regressors after demeaning?)"
        )


class CPUBackendFP64(CPUBackend):
    """
    CPU backend using NumPy + SciPy.

    Group sums use contiguous np.add.reduceat; the normal equations are
    solved by Cholesky factorization (LAPACK).
    """

    def __init__(self):
        self.name = "cpu_fp64"
        self.precision = "fp64"

    def group_sums(self, values: np.ndarray, groups) -> np.ndarray:
        return groups.sum(np.asarray(values, dtype=np.float64))

    def solve_normal_equations(
        self,
        X: np.ndarray,
        w: np.ndarray,
        z: np.ndarray,
    ) -> WLSResult:
        Xw = X * w[:, np.newaxis]
        H = X.T @ Xw
        rhs = Xw.T @ z

        _check_information(H)
        factor = cho_factor(H, lower=False)
        coef = cho_solve(factor, rhs)

        return WLSResult(coef=coef, hessian=H)

    def invert_information(self, H: np.ndarray) -> np.ndarray:
        _check_information(H)
        factor = cho_factor(H, lower=False)
        return cho_solve(factor, np.eye(H.shape[0]))

    def get_device_info(self) -> dict:
        """Get backend information."""
        import scipy
        return {
            'backend': 'cpu',
            'precision': 'fp64',
            'library': f'NumPy {np.__version__}, SciPy {scipy.__version__}',
        }
