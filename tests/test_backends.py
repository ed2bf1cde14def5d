"""
Test backend implementations with auto-detection.

Tests appropriate backends based on available hardware:
- CPU: Always tested
- PyTorch CUDA: Tested if NVIDIA GPU available (see test_gpu_backends.py)
"""

import pytest
import numpy as np

from pybife._backends import (
    get_backend,
    list_available_backends,
    print_backend_info
)
from pybife._backends.cpu_fp64_backend import CPUBackendFP64
from pybife._backends.precision_detector import (
    PrecisionSupport,
    _classify_nvidia_gpu,
    detect_gpu_capabilities,
)
from pybife._core.groups import GroupIndex
from pybife.exceptions import InvalidConfiguration


class TestBackendDetection:
    """Test hardware detection and backend availability."""

    def test_detect_gpu_capabilities(self):
        """Test GPU detection returns valid capabilities."""
        caps = detect_gpu_capabilities()
        assert caps.gpu_name is not None
        assert caps.gpu_type in ['cuda', 'none']
        assert caps.has_gpu == (caps.gpu_type != 'none')

    def test_classify_nvidia_gpu(self):
        """Data center cards have full FP64, consumer cards do not."""
        support, ratio, recommended = _classify_nvidia_gpu("NVIDIA A100-SXM4-80GB")
        assert support == PrecisionSupport.FULL_FP64
        assert recommended

        support, ratio, recommended = _classify_nvidia_gpu("NVIDIA GeForce RTX 4090")
        assert support == PrecisionSupport.GIMPED_FP64
        assert ratio == pytest.approx(1 / 64)
        assert not recommended

    def test_list_backends(self):
        """Test backend listing."""
        backends = list_available_backends()
        assert isinstance(backends, list)
        assert 'cpu' in backends  # CPU always available

    def test_print_backend_info(self, capsys):
        """Test diagnostic printing."""
        print_backend_info()
        captured = capsys.readouterr()
        assert 'Backend Status' in captured.out
        assert 'CPU' in captured.out


class TestBackendSelection:
    """Test get_backend() dispatch."""

    def test_auto_returns_backend(self):
        backend = get_backend('auto')
        assert backend.precision == 'fp64'

    def test_instance_passes_through(self):
        backend = CPUBackendFP64()
        assert get_backend(backend) is backend

    def test_unknown_backend(self):
        with pytest.raises(InvalidConfiguration, match="Unknown backend"):
            get_backend('tpu')


class TestCPUBackend:
    """Test CPU backend (always available)."""

    def setup_method(self):
        np.random.seed(42)
        self.backend = get_backend('cpu')

    def test_cpu_backend_creation(self):
        """Test CPU backend initializes correctly."""
        assert self.backend is not None
        assert self.backend.name == 'cpu_fp64'
        assert self.backend.precision == 'fp64'

    def test_cpu_device_info(self):
        """Test CPU backend device info."""
        info = self.backend.get_device_info()
        assert info['backend'] == 'cpu'
        assert info['precision'] == 'fp64'

    def test_group_sums(self):
        groups = GroupIndex.from_ids(np.repeat([3, 1, 2], [4, 2, 3]))
        values = np.random.randn(9, 2)
        expected = np.vstack([values[:4].sum(0), values[4:6].sum(0), values[6:].sum(0)])
        np.testing.assert_allclose(
            self.backend.group_sums(values, groups), expected, rtol=1e-14
        )

    def test_weighted_normal_equations(self):
        """Solution matches weighted least squares via lstsq."""
        n, p = 100, 3
        X = np.random.randn(n, p)
        z = X @ np.array([1.0, 2.0, -1.5]) + 0.1 * np.random.randn(n)
        w = np.random.uniform(0.5, 1.5, n)

        result = self.backend.solve_normal_equations(X, w, z)

        sw = np.sqrt(w)
        expected, *_ = np.linalg.lstsq(X * sw[:, np.newaxis], z * sw, rcond=None)
        np.testing.assert_allclose(result.coef, expected, rtol=1e-10)
        np.testing.assert_allclose(result.hessian, X.T @ (X * w[:, np.newaxis]), rtol=1e-12)

    def test_invert_information(self):
        A = np.random.randn(4, 4)
        H = A @ A.T + 4 * np.eye(4)
        np.testing.assert_allclose(
            self.backend.invert_information(H), np.linalg.inv(H), rtol=1e-10
        )

    def test_singular_information(self):
        X = np.random.randn(20, 2)
        X = np.column_stack([X, X[:, 0] + X[:, 1]])
        with pytest.raises(np.linalg.LinAlgError, match="singular"):
            self.backend.solve_normal_equations(X, np.ones(20), np.random.randn(20))

    def test_badly_scaled_columns(self):
        """Regressors in very different units are not mistaken for collinear."""
        n = 100
        X = np.random.randn(n, 2)
        z = X @ np.array([1.0, -0.5]) + 0.1 * np.random.randn(n)
        w = np.random.uniform(0.5, 1.5, n)

        unscaled = self.backend.solve_normal_equations(X, w, z).coef
        scaled = self.backend.solve_normal_equations(
            X * np.array([1e8, 1.0]), w, z
        ).coef
        np.testing.assert_allclose(scaled, unscaled / np.array([1e8, 1.0]), rtol=1e-8)

    def test_zero_column(self):
        X = np.column_stack([np.random.randn(20), np.zeros(20)])
        with pytest.raises(np.linalg.LinAlgError, match="singular"):
            self.backend.solve_normal_equations(X, np.ones(20), np.random.randn(20))
