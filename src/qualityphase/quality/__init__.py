"""
Quality metrics for quality-guided phase unwrapping.

The set of metrics is closed: `QualityKind` names every metric and
`create_quality` builds one from its name.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import numpy as np
import torch

from qualityphase.quality.base import BaseQuality, StackQuality
from qualityphase.quality.gradient import GradientQuality, PhaseGradientQuality, gradient_quality
from qualityphase.quality.none import NoneQuality
from qualityphase.quality.visibility import VisibilityQuality, fringe_visibility

if TYPE_CHECKING:
    from qualityphase.device.manager import DeviceManager

QualityKind = Literal["none", "gradient", "phase_gradient", "visibility"]


def create_quality(
    kind: QualityKind,
    device_manager: DeviceManager,
    period: float | None = None,
    image: np.ndarray | torch.Tensor | None = None,
) -> BaseQuality:
    """
    Create a quality metric by name.

    Parameters
    ----------
    kind : str
        Quality metric:
        - "none": Every pixel has quality 0
        - "gradient": Negative absolute gradient of ``image`` (or of the
          phase image if ``image`` is None)
        - "phase_gradient": Like "gradient" but wrapping differences by
          ``period``
        - "visibility": Fringe visibility of the hologram ``image``
    device_manager : DeviceManager
        Device manager for GPU/CPU operations.
    period : float, optional
        Wrap period, used by "phase_gradient".
    image : np.ndarray or torch.Tensor, optional
        Auxiliary image or (T, Z, H, W) stack. Required for "visibility".

    Returns
    -------
    BaseQuality
        The quality metric, not yet calculated.
    """
    if kind == "none":
        return NoneQuality(device_manager)
    elif kind == "gradient":
        return GradientQuality(device_manager, image=image)
    elif kind == "phase_gradient":
        return PhaseGradientQuality(device_manager, period=period, image=image)
    elif kind == "visibility":
        if image is None:
            raise ValueError("quality='visibility' requires a hologram image")
        return VisibilityQuality(device_manager, image)
    else:
        raise ValueError(f"Unknown quality: {kind}")


__all__ = [
    "BaseQuality",
    "StackQuality",
    "NoneQuality",
    "GradientQuality",
    "PhaseGradientQuality",
    "VisibilityQuality",
    "QualityKind",
    "create_quality",
    "gradient_quality",
    "fringe_visibility",
]
