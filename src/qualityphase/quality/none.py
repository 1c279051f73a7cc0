"""Constant quality metric."""

from __future__ import annotations

import torch

from qualityphase.quality.base import BaseQuality


class NoneQuality(BaseQuality):
    """
    Quality metric that scores every pixel 0.

    With all scores equal the unwrap order is decided purely by the
    frontier's coordinate tie-break.
    """

    def _compute(self, phase: torch.Tensor, t: int, z: int) -> torch.Tensor:
        return self.dm.zeros(tuple(phase.shape))
