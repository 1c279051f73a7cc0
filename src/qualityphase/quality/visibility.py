"""
Fringe visibility quality.

Fringe visibility measures the local contrast of the interference fringes
in the hologram a phase image was reconstructed from. High contrast means a
well-defined phase, so it is a natural unwrap order for holographic
microscopy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import torch

from qualityphase.quality.base import StackQuality

if TYPE_CHECKING:
    from qualityphase.device.manager import DeviceManager


def fringe_visibility(data: torch.Tensor) -> torch.Tensor:
    """
    Compute the fringe visibility of a hologram.

    For every pixel the maximum and the average are taken over the 3x3
    neighborhood (pixel included, out-of-bounds neighbors skipped) and

        visibility = ((max - average) / 2) / average

    Every value must be non-negative for this to make sense, so if the
    hologram has negative values its global minimum is subtracted first.

    Parameters
    ----------
    data : torch.Tensor
        Hologram intensities of shape (H, W).

    Returns
    -------
    torch.Tensor
        Visibility of shape (H, W). Pixels whose neighborhood averages to
        zero get a visibility of 0.
    """
    global_min = data.min()
    if global_min < 0:
        data = data - global_min

    data_4d = data.unsqueeze(0).unsqueeze(0)
    # max_pool2d pads with -inf and avg_pool2d can skip the padding, so
    # both only see in-bounds neighbors
    local_max = torch.nn.functional.max_pool2d(
        data_4d, kernel_size=3, stride=1, padding=1,
    )[0, 0]
    local_avg = torch.nn.functional.avg_pool2d(
        data_4d, kernel_size=3, stride=1, padding=1, count_include_pad=False,
    )[0, 0]

    zero_avg = local_avg == 0
    safe_avg = torch.where(zero_avg, torch.ones_like(local_avg), local_avg)
    visibility = ((local_max - local_avg) / 2) / safe_avg

    return torch.where(zero_avg, torch.zeros_like(visibility), visibility)


class VisibilityQuality(StackQuality):
    """
    Quality from the fringe visibility of the hologram.

    The hologram is a 2D image or a (T, Z, H, W) stack matching the phase
    stack being unwrapped.
    """

    def __init__(
        self,
        device_manager: DeviceManager,
        hologram: np.ndarray | torch.Tensor,
    ):
        if hologram is None:
            raise ValueError("VisibilityQuality requires a hologram")
        super().__init__(device_manager, hologram)

    def _compute(self, phase: torch.Tensor, t: int, z: int) -> torch.Tensor:
        return fringe_visibility(self._source(phase, t, z))
