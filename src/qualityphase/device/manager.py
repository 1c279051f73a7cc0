"""
Device management for the tensor side of phase unwrapping.

Quality metrics and the double-wavelength pipeline are stencil/elementwise
work and run on the selected torch device. The quality-guided engine itself
is sequential and always runs on host memory; the manager moves grids
between the two.
"""

from __future__ import annotations

from typing import Literal

import numpy as np
import torch

DeviceType = Literal["cpu", "cuda", "mps", "auto"] | str  # Also supports "cuda:0", "cuda:1", etc.


class DeviceManager:
    """
    Selects the torch device and moves phase grids on and off it.

    "auto" prefers CUDA, then Apple Silicon MPS, then the CPU. Grids live on
    the device as float64, except on MPS which only has float32.
    """

    def __init__(self, device: DeviceType = "auto"):
        """
        Initialize the device manager.

        Parameters
        ----------
        device : str
            Device to use: "cuda", "cuda:N", "mps", "cpu", or "auto"
            (default).
        """
        self._device = self._resolve_device(device)
        self._dtype = torch.float32 if self._device.type == "mps" else torch.float64

    @staticmethod
    def _resolve_device(device: DeviceType) -> torch.device:
        if device == "auto":
            if torch.cuda.is_available():
                return torch.device("cuda")
            if torch.backends.mps.is_available():
                return torch.device("mps")
            return torch.device("cpu")

        if device == "cpu":
            return torch.device("cpu")

        if device == "mps":
            if not torch.backends.mps.is_available():
                raise RuntimeError("MPS requested but not available")
            return torch.device("mps")

        if isinstance(device, str) and (device == "cuda" or device.startswith("cuda:")):
            if not torch.cuda.is_available():
                raise RuntimeError("CUDA requested but not available")
            resolved = torch.device(device)
            if resolved.index is not None and resolved.index >= torch.cuda.device_count():
                raise RuntimeError(
                    f"CUDA device {resolved.index} not available "
                    f"(only {torch.cuda.device_count()} GPUs)"
                )
            return resolved

        raise ValueError(f"Unknown device: {device}")

    @property
    def device(self) -> torch.device:
        """The active torch device."""
        return self._device

    @property
    def dtype(self) -> torch.dtype:
        """Floating point dtype of grids on the device."""
        return self._dtype

    @property
    def device_type(self) -> str:
        """"cpu", "cuda" or "mps"."""
        return self._device.type

    def to_tensor(
        self,
        data: np.ndarray | torch.Tensor,
        dtype: torch.dtype | None = None,
    ) -> torch.Tensor:
        """
        Put a real-valued grid on the managed device.

        Parameters
        ----------
        data : np.ndarray or torch.Tensor
            Phase, quality or hologram grid of any real dtype (8-bit
            images included). Nested lists are accepted as well.
        dtype : torch.dtype, optional
            Dtype on the device. Defaults to `dtype`.

        Returns
        -------
        torch.Tensor
            Tensor on the managed device.
        """
        if not isinstance(data, torch.Tensor):
            data = torch.from_numpy(self.as_host_array(data))
        return data.to(device=self._device, dtype=dtype or self._dtype)

    def to_numpy(self, tensor: torch.Tensor) -> np.ndarray:
        """Bring a device tensor back to the host as float64."""
        return self.as_host_array(tensor)

    @staticmethod
    def as_host_array(data) -> np.ndarray:
        """
        Convert a grid to a float64 numpy array in host memory.

        Numpy input that already is float64 is returned without a copy.
        """
        if isinstance(data, torch.Tensor):
            return data.detach().cpu().numpy().astype(np.float64, copy=False)
        return np.asarray(data, dtype=np.float64)

    def zeros(self, shape: tuple[int, ...]) -> torch.Tensor:
        """A zero grid on the managed device."""
        return torch.zeros(shape, dtype=self._dtype, device=self._device)

    @staticmethod
    def available_devices() -> dict:
        """
        Report which compute devices this machine offers.

        Returns
        -------
        dict
            ``{"cpu": True, "cuda": bool, "mps": bool, "cuda_devices": list}``
            where ``cuda_devices`` holds the name of every visible GPU.
        """
        cuda = torch.cuda.is_available()
        return {
            "cpu": True,
            "cuda": cuda,
            "mps": torch.backends.mps.is_available(),
            "cuda_devices": [
                torch.cuda.get_device_name(i) for i in range(torch.cuda.device_count())
            ] if cuda else [],
        }

    def __repr__(self) -> str:
        return f"DeviceManager(device={self._device}, dtype={self._dtype})"
