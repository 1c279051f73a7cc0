"""
Gradient-based quality metrics.

Both metrics score a pixel by the negative sum of absolute differences to
its 8-connected neighbors, so flat regions get the highest quality and are
unwrapped first. Pixels on the border or in a corner have fewer neighbors
and therefore fewer terms.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import torch

from qualityphase.quality.base import StackQuality
from qualityphase.utils.phase_ops import check_period, neighbor_differences, wrap

if TYPE_CHECKING:
    from qualityphase.device.manager import DeviceManager


def gradient_quality(data: torch.Tensor, period: float | None = None) -> torch.Tensor:
    """
    Compute the gradient quality of a 2D grid.

    Parameters
    ----------
    data : torch.Tensor
        Grid of shape (H, W).
    period : float, optional
        If given, each neighbor difference is wrapped into
        [-period/2, period/2) before taking its absolute value, so values on
        either side of the wrap boundary count as close.

    Returns
    -------
    torch.Tensor
        Quality of shape (H, W), always <= 0.
    """
    diffs, _ = neighbor_differences(data)
    if period is not None:
        diffs = wrap(diffs, period)
    # Out-of-bounds differences are exactly 0 and stay 0 after wrapping
    return -torch.abs(diffs).sum(dim=0)


class GradientQuality(StackQuality):
    """
    Quality from the gradient of an image.

    By default the gradient of the phase image itself is used. Passing an
    ``image`` (2D, or a (T, Z, H, W) stack) scores pixels by the gradient of
    that image instead, e.g. an amplitude image recorded alongside the phase.
    """

    def __init__(
        self,
        device_manager: DeviceManager,
        image: np.ndarray | torch.Tensor | None = None,
    ):
        """
        Initialize the gradient quality.

        Parameters
        ----------
        device_manager : DeviceManager
            Device manager for GPU/CPU operations.
        image : np.ndarray or torch.Tensor, optional
            Image whose gradient defines the quality. If None, the phase
            image passed to `calculate` is used.
        """
        super().__init__(device_manager, image)

    def _compute(self, phase: torch.Tensor, t: int, z: int) -> torch.Tensor:
        return gradient_quality(self._source(phase, t, z))


class PhaseGradientQuality(GradientQuality):
    """
    Quality from the wrapped gradient of the phase image.

    Like `GradientQuality`, but 0 and the period are considered adjacent.
    A flat background wrapped across the period boundary then still scores
    as flat, so it is unwrapped before the sample and any unwrapping errors
    inside the sample stay local.
    """

    def __init__(
        self,
        device_manager: DeviceManager,
        period: float | None = None,
        image: np.ndarray | torch.Tensor | None = None,
    ):
        """
        Initialize the phase gradient quality.

        Parameters
        ----------
        device_manager : DeviceManager
            Device manager for GPU/CPU operations.
        period : float, optional
            Wrap period of the phase image. Can also be set later with
            `set_period`.
        image : np.ndarray or torch.Tensor, optional
            Wrapped image to use instead of the phase image.
        """
        super().__init__(device_manager, image)
        self.period = None
        if period is not None:
            self.set_period(period)

    def set_period(self, period: float) -> None:
        check_period(period)
        self.period = period

    def _compute(self, phase: torch.Tensor, t: int, z: int) -> torch.Tensor:
        if self.period is None:
            raise RuntimeError("PhaseGradientQuality needs a period; call set_period() first")
        return gradient_quality(self._source(phase, t, z), period=self.period)
