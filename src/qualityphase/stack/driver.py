"""
Stack driver for quality-guided unwrapping.

Phase hyperstacks of shape (T, Z, H, W) are unwrapped one 2D slice at a
time. The quality map is recomputed only as often as the quality metric's
own image stack requires: once per slice when the metric covers both axes
of the phase stack, once per time frame when it only covers T, and a
single time for the whole stack when it covers neither.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Callable, Literal

import numpy as np
import torch
from tqdm import tqdm

from qualityphase.core.quality_guided import QualityGuidedUnwrapper
from qualityphase.quality.none import NoneQuality

if TYPE_CHECKING:
    from qualityphase.device.manager import DeviceManager
    from qualityphase.quality.base import BaseQuality

OutputType = Literal["float", "radians", "uint8"]


def convert_result(
    image: torch.Tensor,
    period: float,
    output: OutputType = "float",
) -> torch.Tensor:
    """
    Convert an unwrapped slice to the requested output type.

    Parameters
    ----------
    image : torch.Tensor
        Unwrapped phase of shape (H, W), in units of the period.
    period : float
        Wrap period of the input phase.
    output : str
        - "float": unchanged
        - "radians": rescaled so that one period is 2*pi
        - "uint8": linearly mapped from [min, max] onto [0, 255]

    Returns
    -------
    torch.Tensor
        Converted image. uint8 output has dtype torch.uint8.
    """
    if output == "float":
        return image
    elif output == "radians":
        return image / period * (2 * math.pi)
    elif output == "uint8":
        lo = image.min()
        hi = image.max()
        if hi == lo:
            return torch.zeros(image.shape, dtype=torch.uint8, device=image.device)
        scaled = torch.floor((image - lo) * 255.0 / (hi - lo) + 0.5)
        return scaled.clamp(0, 255).to(torch.uint8)
    else:
        raise ValueError(f"Unknown output type: {output}")


class StackDriver:
    """
    Unwrap every (t, z) slice of a phase stack.

    Every slice is unwrapped independently by a `QualityGuidedUnwrapper`;
    nothing is carried over between slices except the quality map when it
    does not need to be recomputed.
    """

    def __init__(
        self,
        device_manager: DeviceManager,
        period: float = 2 * math.pi,
        output: OutputType = "float",
        progress_interval: int = 50_000,
        verbose: bool = False,
    ):
        """
        Initialize the stack driver.

        Parameters
        ----------
        device_manager : DeviceManager
            Device manager for GPU/CPU operations.
        period : float
            Wrap period of the phase stack.
        output : str
            Output type of the unwrapped slices, see `convert_result`.
        progress_interval : int
            Passed to the per-slice unwrapper.
        verbose : bool
            If True, show a progress bar over the slices.
        """
        if output not in ("float", "radians", "uint8"):
            raise ValueError(f"Unknown output type: {output}")
        self.dm = device_manager
        self.period = period
        self.output = output
        self.verbose = verbose
        self.unwrapper = QualityGuidedUnwrapper(
            device_manager, period=period, progress_interval=progress_interval,
        )

    def run(
        self,
        phase_stack: np.ndarray | torch.Tensor,
        quality: BaseQuality | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> np.ndarray:
        """
        Unwrap a phase stack.

        Parameters
        ----------
        phase_stack : np.ndarray or torch.Tensor
            Wrapped phase of shape (T, Z, H, W). A 2D image is treated as
            a stack with a single slice.
        quality : BaseQuality, optional
            Quality metric. Its period is set to the driver's period. If
            None, every pixel has the same quality.
        should_cancel : callable, optional
            Passed to the unwrapper of every slice.

        Returns
        -------
        np.ndarray
            Unwrapped stack of shape (T, Z, H, W); float64, or uint8 for
            ``output="uint8"``.
        """
        stack = self.dm.to_tensor(phase_stack)
        if stack.ndim == 2:
            stack = stack.reshape(1, 1, *stack.shape)
        if stack.ndim != 4:
            raise ValueError(
                f"phase_stack must have shape (T, Z, H, W), got {tuple(stack.shape)}"
            )
        ts, zs = stack.shape[:2]
        if ts == 0 or zs == 0:
            raise ValueError(f"phase_stack has no slices, shape {tuple(stack.shape)}")

        if quality is None:
            quality = NoneQuality(self.dm)
        quality.set_period(self.period)

        # A metric without a stack of its own fits every axis
        q_ts = quality.frame_count_t or ts
        q_zs = quality.frame_count_z or zs
        per_t = q_ts == ts
        per_z = q_zs == zs

        if not per_t and not per_z:
            quality.calculate(stack[0, 0], 0, 0)

        dtype = np.uint8 if self.output == "uint8" else np.float64
        result = np.zeros(tuple(stack.shape), dtype=dtype)

        pbar = tqdm(
            total=ts * zs,
            desc="Unwrapping slices",
            unit="slice",
            disable=not self.verbose,
        )
        try:
            for t in range(ts):
                if per_t and not per_z:
                    quality.calculate(stack[t, 0], t, 0)
                for z in range(zs):
                    if per_z:
                        quality.calculate(stack[t, z], t if per_t else 0, z)

                    unwrapped = self.unwrapper(
                        stack[t, z], quality.result, should_cancel=should_cancel,
                    )
                    converted = convert_result(
                        self.dm.to_tensor(unwrapped), self.period, self.output,
                    )
                    result[t, z] = converted.cpu().numpy()
                    pbar.update(1)
        finally:
            pbar.close()

        return result
