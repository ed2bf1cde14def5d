"""
Test GPU backend implementations.

Validates that the PyTorch FP64 backend produces the same fits as CPU.
"""

import pytest
import numpy as np

from pybife._core.groups import GroupIndex

# Check if PyTorch with CUDA is available
try:
    import torch
    TORCH_AVAILABLE = torch.cuda.is_available()
except ImportError:
    TORCH_AVAILABLE = False


@pytest.mark.skipif(not TORCH_AVAILABLE, reason="PyTorch CUDA not available")
class TestPyTorchBackend:
    """Test PyTorch CUDA backend (NVIDIA GPUs only)."""

    def test_backend_creation(self):
        """Test that GPU backend can be created."""
        from pybife._backends import get_backend

        backend = get_backend('gpu')
        assert backend.name == "pytorch_fp64"
        assert backend.precision == "fp64"

        info = backend.get_device_info()
        assert info['backend'] == 'gpu'
        assert 'cuda' in info['device']

    def test_rejects_mps(self):
        from pybife._backends.gpu_fp64_backend import PyTorchBackendFP64

        with pytest.raises(RuntimeError, match="Apple Metal"):
            PyTorchBackendFP64(device='mps')

    def test_primitives_match_cpu(self):
        """Group sums and normal equations agree with the CPU backend."""
        from pybife._backends import get_backend

        cpu_backend = get_backend('cpu')
        gpu_backend = get_backend('gpu')

        np.random.seed(42)
        groups = GroupIndex.from_ids(np.repeat(np.arange(10), 5))
        X = np.random.randn(50, 3)
        w = np.random.uniform(0.1, 0.25, 50)
        z = np.random.randn(50)

        np.testing.assert_allclose(
            gpu_backend.group_sums(X, groups), cpu_backend.group_sums(X, groups),
            rtol=1e-12
        )
        np.testing.assert_allclose(
            gpu_backend.solve_normal_equations(X, w, z).coef,
            cpu_backend.solve_normal_equations(X, w, z).coef,
            rtol=1e-10
        )
        H = X.T @ X
        np.testing.assert_allclose(
            gpu_backend.invert_information(H), cpu_backend.invert_information(H),
            rtol=1e-10
        )

    def test_full_fit(self, logit_panel):
        """Test full estimation workflow CPU vs GPU."""
        from pybife import bife

        cpu_fit = bife('y', ['x1', 'x2'], 'id', data=logit_panel, backend='cpu')
        gpu_fit = bife('y', ['x1', 'x2'], 'id', data=logit_panel, backend='gpu')

        np.testing.assert_allclose(
            gpu_fit.coef().to_numpy(), cpu_fit.coef().to_numpy(), rtol=1e-8
        )
        np.testing.assert_allclose(
            gpu_fit.coef(corrected=False).to_numpy(),
            cpu_fit.coef(corrected=False).to_numpy(),
            rtol=1e-8
        )
        np.testing.assert_allclose(
            gpu_fit.vcov().to_numpy(), cpu_fit.vcov().to_numpy(), rtol=1e-8
        )
        assert gpu_fit.result.device_info['backend'] == 'gpu'
