"""
Base class for phase unwrapping algorithms.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import torch

from qualityphase.utils.phase_ops import check_same_shape

if TYPE_CHECKING:
    from qualityphase.device.manager import DeviceManager


class BaseUnwrapper(ABC):
    """
    Abstract base class for phase unwrapping algorithms.

    Unwrappers implement `unwrap` on device tensors and validate their
    input with `check_inputs` before touching any state.
    """

    def __init__(self, device_manager: DeviceManager):
        """
        Initialize the unwrapper.

        Parameters
        ----------
        device_manager : DeviceManager
            Device manager for GPU/CPU operations.
        """
        self.dm = device_manager

    @abstractmethod
    def unwrap(
        self,
        phase: torch.Tensor,
        quality: torch.Tensor | None = None,
        **kwargs,
    ) -> torch.Tensor:
        """
        Unwrap a 2D phase field.

        Parameters
        ----------
        phase : torch.Tensor
            Wrapped phase of shape (H, W).
        quality : torch.Tensor, optional
            Quality map of shape (H, W). Higher values are trusted more.
        **kwargs
            Algorithm-specific parameters.

        Returns
        -------
        torch.Tensor
            Unwrapped phase of shape (H, W).
        """
        pass

    @staticmethod
    def check_inputs(phase, quality=None) -> None:
        """
        Validate the phase and quality grids before any work is done.

        Raises
        ------
        ValueError
            If the phase is not a non-empty 2D grid or the quality map
            does not have the same shape.
        """
        if phase.ndim != 2:
            raise ValueError(f"phase must be 2D, got shape {tuple(phase.shape)}")
        if phase.shape[0] == 0 or phase.shape[1] == 0:
            raise ValueError(f"phase must not be empty, got shape {tuple(phase.shape)}")
        if quality is not None:
            check_same_shape(phase, quality, names=("phase", "quality"))

    @property
    def device(self) -> torch.device:
        """The device used for computation."""
        return self.dm.device

    @property
    def dtype(self) -> torch.dtype:
        """The dtype used for computation."""
        return self.dm.dtype
