"""
CUDA device detection for backend selection.

pybife computes in FP64 throughout: the bias correction works with
terms of order 1/T, which FP32 rounding would swamp. A GPU is therefore
only picked by backend='auto' when its FP64 throughput is close to its
FP32 throughput.
"""

import warnings
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional


class PrecisionSupport(Enum):
    """FP64 support level for hardware."""
    NO_GPU = "no_gpu"            # No CUDA device
    GIMPED_FP64 = "gimped_fp64"  # FP64 at 1/32 or 1/64 rate (consumer cards)
    FULL_FP64 = "full_fp64"      # FP64 at half rate (data center cards)


# FP64:FP32 throughput by NVIDIA product line, checked in order
_FP64_RATIOS = (
    (('A100', 'A800', 'H100', 'H200', 'H800', 'V100', 'P100'), 0.5),
    (('RTX 50', 'RTX 40', 'RTX 30', 'L40', 'L4', 'A10'), 1 / 64),
    (('RTX 20', 'GTX', 'T4'), 1 / 32),
)

# Smallest FP64 ratio for which backend='auto' prefers the GPU
MIN_AUTO_RATIO = 0.25


@dataclass(frozen=True)
class GPUCapabilities:
    """
    What the first CUDA device offers for FP64 work.

    Attributes
    ----------
    has_gpu : bool
        Whether a CUDA GPU is available
    gpu_name : str
        Device name, or 'CPU only'
    gpu_type : str
        'cuda' or 'none'
    fp64_support : PrecisionSupport
    fp64_throughput_ratio : float
        FP64 / FP32 throughput
    recommended_fp64 : bool
        Whether backend='auto' should use the device
    """
    has_gpu: bool
    gpu_name: str
    gpu_type: str
    fp64_support: PrecisionSupport
    fp64_throughput_ratio: float
    recommended_fp64: bool


_NO_GPU = GPUCapabilities(
    has_gpu=False,
    gpu_name="CPU only",
    gpu_type="none",
    fp64_support=PrecisionSupport.NO_GPU,
    fp64_throughput_ratio=1.0,
    recommended_fp64=False,
)


@lru_cache(maxsize=1)
def detect_gpu_capabilities() -> GPUCapabilities:
    """
    Detect the CUDA device once per process.

    Returns
    -------
    GPUCapabilities
    """
    caps = _detect_cuda_capabilities()
    return _NO_GPU if caps is None else caps


def _detect_cuda_capabilities() -> Optional[GPUCapabilities]:
    try:
        import torch
    except ImportError:
        return None

    if not torch.cuda.is_available():
        return None

    gpu_name = torch.cuda.get_device_name(0)
    support, ratio, recommended = _classify_nvidia_gpu(gpu_name)
    return GPUCapabilities(
        has_gpu=True,
        gpu_name=gpu_name,
        gpu_type="cuda",
        fp64_support=support,
        fp64_throughput_ratio=ratio,
        recommended_fp64=recommended,
    )


def _classify_nvidia_gpu(gpu_name: str) -> tuple:
    """
    Look up the FP64 rate of an NVIDIA card by name.

    Returns
    -------
    (support_level, throughput_ratio, recommended)
    """
    name = gpu_name.upper()
    for models, ratio in _FP64_RATIOS:
        if any(model in name for model in models):
            support = (PrecisionSupport.FULL_FP64 if ratio >= MIN_AUTO_RATIO
                       else PrecisionSupport.GIMPED_FP64)
            return support, ratio, ratio >= MIN_AUTO_RATIO

    warnings.warn(f"Unknown NVIDIA GPU '{gpu_name}'. Assuming gimped FP64.")
    return PrecisionSupport.GIMPED_FP64, 1 / 32, False
