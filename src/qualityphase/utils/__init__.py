"""Utility functions for phase unwrapping."""

from qualityphase.utils.phase_ops import (
    wrap,
    fold,
    neighbor_differences,
    elementwise,
    check_same_shape,
    check_period,
    check_finite,
)

__all__ = [
    "wrap",
    "fold",
    "neighbor_differences",
    "elementwise",
    "check_same_shape",
    "check_period",
    "check_finite",
]
