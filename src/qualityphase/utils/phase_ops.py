"""
Phase and grid operations shared by the quality metrics and unwrappers.

All tensor operations here are elementwise or fixed-stencil, so they run
unchanged on any torch device.
"""

from __future__ import annotations

import math
from typing import Callable

import numpy as np
import torch

# Offsets (dy, dx) of the 8-connected neighborhood, center excluded.
NEIGHBORS_8 = [
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1), (0, 1),
    (1, -1), (1, 0), (1, 1),
]


def wrap(phase: torch.Tensor, period: float = 2 * math.pi) -> torch.Tensor:
    """
    Wrap phase values to the interval [-period/2, period/2).

    Parameters
    ----------
    phase : torch.Tensor
        Phase values (any range).
    period : float
        Wrap period, e.g. 2*pi for radians or 256 for 8-bit phase images.

    Returns
    -------
    torch.Tensor
        Wrapped phase.
    """
    half = period / 2
    return torch.remainder(phase + half, period) - half


def fold(phase: torch.Tensor, period: float) -> torch.Tensor:
    """Fold phase values into [0, period)."""
    return torch.remainder(phase, period)


def neighbor_differences(
    data: torch.Tensor,
) -> tuple[torch.Tensor, torch.Tensor]:
    """
    Differences between every pixel and each of its 8 neighbors.

    Parameters
    ----------
    data : torch.Tensor
        2D array of shape (H, W).

    Returns
    -------
    diffs : torch.Tensor
        Shape (8, H, W). ``diffs[k, y, x] = data[y, x] - data[y+dy, x+dx]``
        for the k-th offset in ``NEIGHBORS_8``. Out-of-bounds entries are 0.
    valid : torch.Tensor
        Boolean tensor of shape (8, H, W), False where the neighbor falls
        outside the image.
    """
    H, W = data.shape

    # Constant padding; the validity mask removes the padded terms
    data_pad = torch.nn.functional.pad(
        data.unsqueeze(0).unsqueeze(0), (1, 1, 1, 1), mode="constant", value=0.0,
    )[0, 0]
    inside = torch.nn.functional.pad(
        torch.ones((1, 1, H, W), dtype=data.dtype, device=data.device),
        (1, 1, 1, 1),
        mode="constant",
        value=0.0,
    )[0, 0] > 0.5

    diffs = []
    valid = []
    for dy, dx in NEIGHBORS_8:
        shifted = data_pad[1 + dy:1 + dy + H, 1 + dx:1 + dx + W]
        mask = inside[1 + dy:1 + dy + H, 1 + dx:1 + dx + W]
        diffs.append(torch.where(mask, data - shifted, torch.zeros_like(data)))
        valid.append(mask)

    return torch.stack(diffs, dim=0), torch.stack(valid, dim=0)


def check_same_shape(a, b, names: tuple[str, str] = ("a", "b")) -> None:
    """Raise ValueError if two grids do not have the same shape."""
    if tuple(a.shape) != tuple(b.shape):
        raise ValueError(
            f"Shape mismatch: {names[0]} has shape {tuple(a.shape)} but "
            f"{names[1]} has shape {tuple(b.shape)}"
        )


def check_period(period: float) -> None:
    """Raise ValueError unless period is a finite positive number."""
    if not math.isfinite(period) or period <= 0:
        raise ValueError(f"period must be a finite positive number, got {period}")


def check_finite(data: np.ndarray, name: str = "data") -> None:
    """Raise ValueError if a host grid holds NaN or infinite values."""
    if not np.isfinite(data).all():
        raise ValueError(f"{name} contains NaN or infinite values")


def elementwise(
    a: torch.Tensor | np.ndarray,
    b: torch.Tensor | np.ndarray,
    op: Callable,
):
    """
    Apply a binary operation to two equally shaped grids.

    Parameters
    ----------
    a, b : torch.Tensor or np.ndarray
        Input grids of the same shape.
    op : callable
        Binary function applied elementwise, e.g. ``torch.sub``.

    Returns
    -------
    torch.Tensor or np.ndarray
        ``op(a, b)``.

    Raises
    ------
    ValueError
        If the shapes differ. Broadcasting is never applied.
    """
    check_same_shape(a, b)
    return op(a, b)


def period_range_warning(phase: np.ndarray, period: float) -> str | None:
    """
    Describe a period that is smaller than the value range of an image.

    A wrapped image can never span more than one period, so a smaller
    period usually means the wrong period was given.

    Returns
    -------
    str or None
        Warning message, or None if the period covers the image range.
    """
    finite = phase[np.isfinite(phase)]
    if finite.size == 0:
        return None
    value_range = float(finite.max() - finite.min())
    if period < value_range:
        return (
            f"period={period} is less than the range of values present in "
            f"the phase image ({value_range})."
        )
    return None
