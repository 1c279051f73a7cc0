"""
Double-wavelength phase unwrapping.

Two phase images recorded at close wavelengths w1 and w2 are combined into
a coarse map at the much longer synthetic wavelength

    w12 = w1 * w2 / |w1 - w2|

which does not wrap over the sample, and the short-wavelength image is
then used to refine it. The method is purely pixelwise; no pixel depends
on any other, so it runs fully parallel on the torch device.

The intermediate images are labelled (a) to (g), see `STEP_NAMES`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import torch

from qualityphase.utils.phase_ops import check_period, check_same_shape, elementwise, fold

if TYPE_CHECKING:
    from qualityphase.device.manager import DeviceManager

STEP_NAMES = (
    "Phase Image 1 (a)",
    "Phase Image 2 (b)",
    "Phase Difference (c)",
    "Coarse Map (d)",
    "Round to Phase 1 (e)",
    "Round + Phase 1 (f)",
    "Fine Map (g)",
)


@dataclass
class PhaseImage:
    """A phase image together with how it was recorded."""

    phase: np.ndarray | torch.Tensor
    # Only the ratio of the two wavelengths matters, so any unit works
    wavelength: float
    # Difference between the largest and smallest possible phase value,
    # e.g. 256 for an 8-bit image or 2*pi for radians
    period: float


@dataclass
class DoubleWavelengthResult:
    """Output of double-wavelength unwrapping."""

    coarse: torch.Tensor
    fine: torch.Tensor
    # All seven intermediate images (a)..(g) if requested
    steps: tuple[torch.Tensor, ...] | None = None


def combined_wavelength(wavelength1: float, wavelength2: float) -> float:
    """
    Synthetic wavelength of two wavelengths.

    Raises
    ------
    ValueError
        If the wavelengths are equal or not positive.
    """
    if wavelength1 <= 0 or wavelength2 <= 0:
        raise ValueError(
            f"Wavelengths must be positive, got {wavelength1} and {wavelength2}"
        )
    if wavelength1 == wavelength2:
        raise ValueError("The two wavelengths must differ")
    return (wavelength1 * wavelength2) / abs(wavelength1 - wavelength2)


class DoubleWavelengthUnwrapper:
    """
    Double-wavelength unwrapper.

    Both phase images are expressed in the period of the first image; if the
    second one was recorded with a different period it is rescaled first.
    """

    def __init__(self, device_manager: DeviceManager):
        """
        Initialize the double-wavelength unwrapper.

        Parameters
        ----------
        device_manager : DeviceManager
            Device manager for GPU/CPU operations.
        """
        self.dm = device_manager

    def unwrap(
        self,
        image1: PhaseImage,
        image2: PhaseImage,
        show_steps: bool = False,
    ) -> DoubleWavelengthResult:
        """
        Unwrap a pair of 2D phase images.

        Parameters
        ----------
        image1 : PhaseImage
            Phase image at the first wavelength. The result is in its period.
        image2 : PhaseImage
            Phase image at the second wavelength, same shape as image1.
        show_steps : bool
            If True, keep every intermediate image in ``result.steps``.

        Returns
        -------
        DoubleWavelengthResult
            Coarse and fine maps.
        """
        check_period(image1.period)
        check_period(image2.period)
        combined = combined_wavelength(image1.wavelength, image2.wavelength)
        period = image1.period

        phase1 = self.dm.to_tensor(image1.phase)
        phase2 = self.dm.to_tensor(image2.phase)
        check_same_shape(phase1, phase2, names=("image1", "image2"))

        # (b) in the period of image 1
        if image2.period != period:
            phase2 = phase2 * period / image2.period

        # (c)
        difference = elementwise(phase1, phase2, torch.sub)
        # (d)
        coarse = fold(difference, period) * (combined / image1.wavelength)
        # (e) coarse is never negative, so floor rounds down to a multiple
        rounded = torch.floor(coarse / period) * period
        # (f)
        rounded_plus = elementwise(rounded, phase1, torch.add)
        # (g)
        fine = self._bring_close_to(rounded_plus, coarse, period)

        steps = None
        if show_steps:
            steps = (phase1, phase2, difference, coarse, rounded, rounded_plus, fine)
        return DoubleWavelengthResult(coarse=coarse, fine=fine, steps=steps)

    def unwrap_stack(
        self,
        image1: PhaseImage,
        image2: PhaseImage,
        show_steps: bool = False,
    ) -> DoubleWavelengthResult:
        """
        Unwrap a pair of (T, Z, H, W) phase stacks slice by slice.

        Only the slices present in both stacks are processed, i.e. the
        first ``min(T1, T2)`` time frames and ``min(Z1, Z2)`` z slices.

        Returns
        -------
        DoubleWavelengthResult
            Coarse, fine and (optionally) step stacks of shape
            (T, Z, H, W).
        """
        stack1 = self.dm.to_tensor(image1.phase)
        stack2 = self.dm.to_tensor(image2.phase)
        for name, stack in (("image1", stack1), ("image2", stack2)):
            if stack.ndim != 4:
                raise ValueError(
                    f"{name} must have shape (T, Z, H, W), got {tuple(stack.shape)}"
                )

        T = min(stack1.shape[0], stack2.shape[0])
        Z = min(stack1.shape[1], stack2.shape[1])

        slices = []
        for t in range(T):
            for z in range(Z):
                slices.append(self.unwrap(
                    PhaseImage(stack1[t, z], image1.wavelength, image1.period),
                    PhaseImage(stack2[t, z], image2.wavelength, image2.period),
                    show_steps=show_steps,
                ))

        def collect(images: list[torch.Tensor]) -> torch.Tensor:
            stacked = torch.stack(images, dim=0)
            return stacked.reshape(T, Z, *stacked.shape[1:])

        steps = None
        if show_steps:
            steps = tuple(
                collect([s.steps[i] for s in slices]) for i in range(len(STEP_NAMES))
            )
        return DoubleWavelengthResult(
            coarse=collect([s.coarse for s in slices]),
            fine=collect([s.fine for s in slices]),
            steps=steps,
        )

    @staticmethod
    def _bring_close_to(
        image: torch.Tensor,
        target: torch.Tensor,
        period: float,
    ) -> torch.Tensor:
        """Move pixels by one period toward target when over half a period away."""
        delta = image - target
        return torch.where(
            torch.abs(delta) > period / 2,
            image - period * torch.sign(delta),
            image,
        )
