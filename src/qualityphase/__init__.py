"""
qualityphase: quality-guided phase unwrapping.

This package unwraps phase images from digital holographic microscopy by
growing the unwrapped region in order of a per-pixel quality map, and
provides the double-wavelength technique for samples thicker than one
wavelength. Quality metrics run on GPU (CUDA and Apple Silicon MPS) when
available, with CPU fallback.
"""

from qualityphase.api import (
    unwrap,
    unwrap_stack,
    unwrap_double_wavelength,
    compute_quality,
    get_available_devices,
)
from qualityphase.core.quality_guided import QualityGuidedUnwrapper, UnwrapCancelled
from qualityphase.device.manager import DeviceManager

__version__ = "0.1.0"
__all__ = [
    "unwrap",
    "unwrap_stack",
    "unwrap_double_wavelength",
    "compute_quality",
    "get_available_devices",
    "DeviceManager",
    "QualityGuidedUnwrapper",
    "UnwrapCancelled",
]
