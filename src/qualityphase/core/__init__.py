"""Core unwrapping algorithms."""

from qualityphase.core.base import BaseUnwrapper
from qualityphase.core.double_wavelength import (
    DoubleWavelengthResult,
    DoubleWavelengthUnwrapper,
    PhaseImage,
)
from qualityphase.core.frontier import Frontier, FrontierEntry
from qualityphase.core.quality_guided import QualityGuidedUnwrapper, UnwrapCancelled

__all__ = [
    "BaseUnwrapper",
    "DoubleWavelengthResult",
    "DoubleWavelengthUnwrapper",
    "PhaseImage",
    "Frontier",
    "FrontierEntry",
    "QualityGuidedUnwrapper",
    "UnwrapCancelled",
]
