"""
Abstract base classes for backends.

Defines the numerical primitives all backends must implement: grouped
sums and the k×k weighted normal equations.
"""

from abc import ABC, abstractmethod
import numpy as np
from dataclasses import dataclass


@dataclass
class WLSResult:
    """Weighted least squares solution of the demeaned problem."""
    coef: np.ndarray      # β solving (X'WX) β = X'Wz
    hessian: np.ndarray   # X'WX


class BackendBase(ABC):
    """Abstract base class for all backends."""

    name: str
    precision: str

    @abstractmethod
    def group_sums(self, values: np.ndarray, groups) -> np.ndarray:
        """
        Sum rows within groups.

        Parameters
        ----------
        values : ndarray, shape (n,) or (n, k)
            Values to reduce
        groups : GroupIndex
            Row partition

        Returns
        -------
        ndarray, shape (G,) or (G, k)
            Group sums (numpy)
        """
        pass

    @abstractmethod
    def solve_normal_equations(
        self,
        X: np.ndarray,
        w: np.ndarray,
        z: np.ndarray,
    ) -> WLSResult:
        """
        Solve (X'WX) β = X'Wz.

        Parameters
        ----------
        X : ndarray, shape (n, k)
            Demeaned design matrix
        w : ndarray, shape (n,)
            Weights (diagonal of W)
        z : ndarray, shape (n,)
            Demeaned working response

        Returns
        -------
        WLSResult

        Raises
        ------
        numpy.linalg.LinAlgError
            If X'WX is not numerically positive definite
        """
        pass

    @abstractmethod
    def invert_information(self, H: np.ndarray) -> np.ndarray:
        """
        Invert a symmetric positive definite k×k matrix.

        Raises
        ------
        numpy.linalg.LinAlgError
            If H is not numerically positive definite
        """
        pass

    @abstractmethod
    def get_device_info(self) -> dict:
        """Get backend information."""
        pass


class CPUBackend(BackendBase):
    """CPU backend base class (always FP64)."""
    pass


class GPUBackendFP64(BackendBase):
    """GPU backend base class for FP64."""
    pass
