"""
Base class for quality metrics.

A quality metric assigns a score to every pixel of a phase image. The
quality-guided unwrapper commits pixels with higher scores first, so a
metric must give its most trustworthy pixels the largest values.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np
import torch

if TYPE_CHECKING:
    from qualityphase.device.manager import DeviceManager


class BaseQuality(ABC):
    """
    Abstract base class for quality metrics.

    Subclasses implement `_compute`; `calculate` stores the result so that
    it can be read back later through `result`.

    Some metrics are computed from an auxiliary image stack instead of the
    phase image (e.g. the hologram for fringe visibility). Those report the
    stack size through `frame_count_t` and `frame_count_z`, letting a stack
    driver decide whether the map has to be recomputed for every slice. A
    count of 0 means the metric does not depend on that axis.
    """

    def __init__(self, device_manager: DeviceManager):
        """
        Initialize the metric.

        Parameters
        ----------
        device_manager : DeviceManager
            Device manager for GPU/CPU operations.
        """
        self.dm = device_manager
        self._result: torch.Tensor | None = None

    @abstractmethod
    def _compute(self, phase: torch.Tensor, t: int, z: int) -> torch.Tensor:
        """Compute the quality map for one slice."""

    def calculate(
        self,
        phase: np.ndarray | torch.Tensor,
        t: int = 0,
        z: int = 0,
    ) -> torch.Tensor:
        """
        Calculate the quality map.

        Parameters
        ----------
        phase : np.ndarray or torch.Tensor
            Phase image of shape (H, W) that is about to be unwrapped.
        t : int
            Time index to use from the metric's own image stack.
        z : int
            Z index to use from the metric's own image stack.

        Returns
        -------
        torch.Tensor
            Quality map of shape (H, W).
        """
        phase_t = self.dm.to_tensor(phase)
        if phase_t.ndim != 2 or phase_t.numel() == 0:
            raise ValueError(f"phase must be a non-empty 2D grid, got shape {tuple(phase_t.shape)}")
        self._result = self._compute(phase_t, t, z)
        return self._result

    @property
    def result(self) -> torch.Tensor:
        """The map produced by the last call to `calculate`."""
        if self._result is None:
            raise RuntimeError(
                f"{type(self).__name__}.calculate() must be called before reading the result"
            )
        return self._result

    def set_period(self, period: float) -> None:
        """Set the wrap period of the phase images. Ignored by default."""

    @property
    def frame_count_t(self) -> int:
        """Number of time frames the metric can use (0: insensitive to t)."""
        return 0

    @property
    def frame_count_z(self) -> int:
        """Number of z slices the metric can use (0: insensitive to z)."""
        return 0


class StackQuality(BaseQuality):
    """
    A quality metric that can be computed from its own image or image stack.

    The image is either 2D (H, W), used for every slice, or a hyperstack
    of shape (T, Z, H, W). Without an image the metric works on the phase
    image handed to `calculate` and is insensitive to t and z.
    """

    def __init__(
        self,
        device_manager: DeviceManager,
        image: np.ndarray | torch.Tensor | None = None,
    ):
        super().__init__(device_manager)
        self._stack: torch.Tensor | None = None
        if image is not None:
            image_t = self.dm.to_tensor(image)
            if image_t.ndim == 2:
                image_t = image_t.reshape(1, 1, *image_t.shape)
            elif image_t.ndim != 4:
                raise ValueError(
                    f"image must have shape (H, W) or (T, Z, H, W), got {tuple(image_t.shape)}"
                )
            self._stack = image_t

    def _source(self, phase: torch.Tensor, t: int, z: int) -> torch.Tensor:
        """The grid the metric is computed from for slice (t, z)."""
        if self._stack is None:
            return phase
        T, Z = self._stack.shape[:2]
        # Axes of size one are shared by every slice
        return self._stack[t if T > 1 else 0, z if Z > 1 else 0]

    @property
    def frame_count_t(self) -> int:
        return 0 if self._stack is None else self._stack.shape[0]

    @property
    def frame_count_z(self) -> int:
        return 0 if self._stack is None else self._stack.shape[1]
