"""
GPU backend using PyTorch with FP64 precision.

For data center GPUs: A100, H100, V100.
"""

import numpy as np
import warnings
from typing import Optional

from .base import GPUBackendFP64, WLSResult


class PyTorchBackendFP64(GPUBackendFP64):
    """
    PyTorch GPU backend with FP64 precision.

    Grouped sums run as index_add_ scatters and the normal equations are
    assembled and Cholesky-solved on the device. Only the k-vector and
    k×k results travel back to the host.
    """

    def __init__(self, device: Optional[str] = None):
        """Initialize PyTorch FP64 backend."""
        self.name = "pytorch_fp64"
        self.precision = "fp64"

        try:
            import torch
            self.torch = torch
        except ImportError:
            raise ImportError(
                "PyTorch required for GPU backend. "
                "Install: pip install pybife[gpu]"
            )

        if device == 'mps':
            raise RuntimeError(
                "FP64 not supported on Apple Metal. "
                "Use the CPU backend."
            )

        if device is None:
            if torch.cuda.is_available():
                device = 'cuda'
            else:
                warnings.warn("No CUDA GPU available, using CPU")
                device = 'cpu'

        self.device = torch.device(device)

        if device == 'cuda':
            from .precision_detector import detect_gpu_capabilities
            caps = detect_gpu_capabilities()
            if caps.fp64_support.value == 'gimped_fp64':
                warnings.warn(
                    f"Using FP64 on {caps.gpu_name} with gimped FP64 support. "
                    f"This will be ~{int(1/caps.fp64_throughput_ratio)}x slower than FP32.",
                    UserWarning
                )

    def _to_device(self, a: np.ndarray):
        return self.torch.tensor(
            np.asarray(a, dtype=np.float64), dtype=self.torch.float64,
            device=self.device
        )

    def group_sums(self, values: np.ndarray, groups) -> np.ndarray:
        torch = self.torch
        v = self._to_device(values)
        codes = torch.tensor(
            np.asarray(groups.codes, dtype=np.int64), device=self.device
        )
        out = torch.zeros(
            (groups.n_groups,) + tuple(v.shape[1:]),
            dtype=torch.float64, device=self.device
        )
        out.index_add_(0, codes, v)
        return out.cpu().numpy()

    def _cholesky(self, H):
        L, info = self.torch.linalg.cholesky_ex(H)
        if int(info.item()) != 0 or not bool(self.torch.isfinite(H).all()):
            raise np.linalg.LinAlgError(
                "Information matrix is not positive definite "
                "(collinear regressors after demeaning?)"
            )
        return L

    def solve_normal_equations(
        self,
        X: np.ndarray,
        w: np.ndarray,
        z: np.ndarray,
    ) -> WLSResult:
        X_gpu = self._to_device(X)
        w_gpu = self._to_device(w)
        z_gpu = self._to_device(z)

        Xw = X_gpu * w_gpu.unsqueeze(1)
        H = X_gpu.T @ Xw
        rhs = Xw.T @ z_gpu

        L = self._cholesky(H)
        coef = self.torch.cholesky_solve(rhs.unsqueeze(1), L).squeeze(1)

        return WLSResult(coef=coef.cpu().numpy(), hessian=H.cpu().numpy())

    def invert_information(self, H: np.ndarray) -> np.ndarray:
        L = self._cholesky(self._to_device(H))
        return self.torch.cholesky_inverse(L).cpu().numpy()

    def get_device_info(self) -> dict:
        """Get backend information."""
        return {
            'backend': 'gpu',
            'precision': 'fp64',
            'device': str(self.device),
            'library': f'PyTorch {self.torch.__version__}',
        }
