"""
Backend selection and management.

Provides a unified interface for the CPU (NumPy/SciPy) and NVIDIA GPU
(PyTorch, FP64) backends.
"""

import warnings

from ..exceptions import InvalidConfiguration
from .base import BackendBase, WLSResult
from .precision_detector import detect_gpu_capabilities, GPUCapabilities

# Try importing CPU backend (always available)
try:
    from .cpu_fp64_backend import CPUBackendFP64
    CPU_AVAILABLE = True
except ImportError:
    CPU_AVAILABLE = False
    warnings.warn("CPU backend unavailable - installation error!")

# PyTorch is optional (pip install pybife[gpu])
try:
    import torch  # noqa: F401
    from .gpu_fp64_backend import PyTorchBackendFP64
    PYTORCH_FP64_AVAILABLE = True
except ImportError:
    PYTORCH_FP64_AVAILABLE = False


def get_backend(backend='cpu') -> BackendBase:
    """
    Get computational backend.

    Parameters
    ----------
    backend : str or BackendBase
        Backend selection:
        - 'cpu': CPU with NumPy/SciPy (FP64, reference)
        - 'auto': PyTorch on a GPU with full-speed FP64, else CPU
        - 'gpu' / 'pytorch': PyTorch CUDA (FP64)
        An already constructed backend is returned unchanged.

    Returns
    -------
    BackendBase
        Backend instance

    Examples
    --------
    >>> backend = get_backend('cpu')
    >>> backend = get_backend('auto')
    """
    if isinstance(backend, BackendBase):
        return backend

    if backend == 'cpu':
        if not CPU_AVAILABLE:
            raise RuntimeError("CPU backend unavailable!")
        return CPUBackendFP64()

    elif backend == 'auto':
        caps = detect_gpu_capabilities()
        if caps.has_gpu and caps.recommended_fp64 and PYTORCH_FP64_AVAILABLE:
            return PyTorchBackendFP64()
        if not CPU_AVAILABLE:
            raise RuntimeError("No backends available!")
        return CPUBackendFP64()

    elif backend in ('gpu', 'pytorch'):
        if not PYTORCH_FP64_AVAILABLE:
            raise RuntimeError(
                "PyTorch backend unavailable.\n"
                "Install: pip install pybife[gpu]"
            )
        caps = detect_gpu_capabilities()
        if not caps.has_gpu:
            raise RuntimeError(
                "No CUDA GPU detected.\n"
                "Options:\n"
                "  - Use backend='cpu'\n"
                "  - Install PyTorch with CUDA for NVIDIA"
            )
        return PyTorchBackendFP64(device='cuda')

    else:
        raise InvalidConfiguration(
            f"Unknown backend: {backend!r}\n"
            f"Valid options: 'cpu', 'auto', 'gpu', 'pytorch'"
        )


def list_available_backends() -> list:
    """List names of available backends."""
    backends = []
    if CPU_AVAILABLE:
        backends.append('cpu')
    if PYTORCH_FP64_AVAILABLE:
        backends.append('pytorch')
    return backends


def print_backend_info():
    """Print detailed backend information (diagnostic)."""
    caps = detect_gpu_capabilities()

    print("pybife Backend Status")
    print("=" * 50)
    print("\nAvailable Backends:")
    print(f"  CPU (FP64):          {'yes' if CPU_AVAILABLE else 'no'}")
    print(f"  PyTorch CUDA (FP64): {'yes' if PYTORCH_FP64_AVAILABLE else 'no'}")

    print("\nHardware Detection:")
    if caps.has_gpu:
        print(f"  GPU Name: {caps.gpu_name}")
        print(f"  FP64 Support: {caps.fp64_support.value}")
    else:
        print("  No GPU detected")

    print("\nRecommended Backend:")
    print(f"  {get_backend('auto').name}")


__all__ = [
    'get_backend',
    'list_available_backends',
    'print_backend_info',
    'BackendBase',
    'WLSResult',
    'GPUCapabilities',
    'detect_gpu_capabilities',
    'CPU_AVAILABLE',
    'PYTORCH_FP64_AVAILABLE',
]


if __name__ == "__main__":
    print_backend_info()
