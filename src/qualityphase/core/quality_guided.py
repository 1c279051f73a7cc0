"""
Quality-guided phase unwrapping.

The unwrapped region grows from a single seed pixel in the center of the
image. At every step the highest-quality pixel bordering the region is
unwrapped against its best already-unwrapped orthogonal neighbor:

    k = round((neighbor - raw) / period)
    unwrapped = raw + k * period

and its own orthogonal neighbors join the frontier. Growing strictly
through shared edges, highest quality first, keeps unwrapping errors from
noisy pixels local instead of spreading them through the image.

The algorithm is inherently sequential (every step depends on the previous
one), so it runs on host memory with numpy regardless of the torch device.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Callable

import numpy as np
import torch
from tqdm import tqdm

from qualityphase.core.base import BaseUnwrapper
from qualityphase.core.frontier import Frontier
from qualityphase.utils.phase_ops import check_finite, check_period

if TYPE_CHECKING:
    from qualityphase.device.manager import DeviceManager

ProgressCallback = Callable[[int, int], None]


class UnwrapCancelled(RuntimeError):
    """Raised when unwrapping is cancelled before every pixel is unwrapped."""


def round_half_away(x: float) -> float:
    """
    Round to the nearest integer, ties away from zero.

    ``round_half_away(0.5) == 1`` and ``round_half_away(-0.5) == -1``,
    unlike the builtin round() which rounds ties to even.
    """
    return math.copysign(math.floor(abs(x) + 0.5), x)


class QualityGuidedUnwrapper(BaseUnwrapper):
    """
    Quality-guided region-growing phase unwrapper.

    Unlike the least-squares family this unwrapper is exact: every output
    pixel differs from its input by an integer number of periods, and a
    phase image without jumps larger than half a period is returned
    unchanged.
    """

    def __init__(
        self,
        device_manager: DeviceManager,
        period: float = 2 * math.pi,
        progress_interval: int = 50_000,
        verbose: bool = False,
    ):
        """
        Initialize the quality-guided unwrapper.

        Parameters
        ----------
        device_manager : DeviceManager
            Device manager for GPU/CPU operations.
        period : float
            Wrap period of the phase, e.g. 2*pi or 256 for 8-bit images.
        progress_interval : int
            Number of unwrapped pixels between progress reports.
        verbose : bool
            If True, show a progress bar.
        """
        super().__init__(device_manager)
        check_period(period)
        if progress_interval < 1:
            raise ValueError(f"progress_interval must be at least 1, got {progress_interval}")
        self.period = period
        self.progress_interval = progress_interval
        self.verbose = verbose

    def unwrap(
        self,
        phase: torch.Tensor,
        quality: torch.Tensor | None = None,
        period: float | None = None,
        progress: ProgressCallback | None = None,
        should_cancel: Callable[[], bool] | None = None,
        **kwargs,
    ) -> torch.Tensor:
        """
        Unwrap phase guided by a quality map.

        Parameters
        ----------
        phase : torch.Tensor
            Wrapped phase of shape (H, W).
        quality : torch.Tensor, optional
            Quality map of shape (H, W). If None, every pixel has the same
            quality and the order is decided by the coordinate tie-break.
        period : float, optional
            Overrides the period given at construction.
        progress : callable, optional
            Called as ``progress(done, total)`` every `progress_interval`
            unwrapped pixels and once at the end.
        should_cancel : callable, optional
            Polled before every step; returning True aborts with
            `UnwrapCancelled`.
        **kwargs
            Unused, for API compatibility.

        Returns
        -------
        torch.Tensor
            Unwrapped phase of shape (H, W).
        """
        phase_np = self.dm.to_numpy(phase)
        quality_np = self.dm.to_numpy(quality) if quality is not None else None
        result = self.unwrap_array(
            phase_np, quality_np, period=period,
            progress=progress, should_cancel=should_cancel,
        )
        return self.dm.to_tensor(result)

    def __call__(
        self,
        phase: np.ndarray | torch.Tensor,
        quality: np.ndarray | torch.Tensor | None = None,
        **kwargs,
    ) -> np.ndarray:
        """Unwrap host grids (numpy or torch) and return a numpy array."""
        phase_np = self.dm.as_host_array(phase)
        quality_np = self.dm.as_host_array(quality) if quality is not None else None
        return self.unwrap_array(phase_np, quality_np, **kwargs)

    def unwrap_array(
        self,
        phase: np.ndarray,
        quality: np.ndarray | None = None,
        period: float | None = None,
        progress: ProgressCallback | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> np.ndarray:
        """
        Run the region-growing loop on host arrays.

        Parameters are as for `unwrap`, with numpy arrays.

        Returns
        -------
        np.ndarray
            Unwrapped phase of shape (H, W), float64.

        Raises
        ------
        ValueError
            On invalid input, before anything is computed.
        UnwrapCancelled
            If ``should_cancel`` returned True. No partial result is
            returned.
        """
        period = self.period if period is None else period
        check_period(period)

        phase = np.asarray(phase, dtype=np.float64)
        if quality is None:
            quality = np.zeros(phase.shape, dtype=np.float64)
        quality = np.asarray(quality, dtype=np.float64)
        self.check_inputs(phase, quality)
        if np.isnan(quality).any():
            raise ValueError("quality map contains NaN values")
        check_finite(phase, "phase")

        H, W = phase.shape
        total = H * W

        result = np.zeros((H, W), dtype=np.float64)
        committed = np.zeros((H, W), dtype=bool)
        frontier = Frontier(quality, committed)

        # Seeding: the center pixel keeps its raw value
        seed = (H // 2, W // 2)
        result[seed] = phase[seed]
        committed[seed] = True
        n_done = 1
        self._expand(frontier, committed, seed, H, W)

        bar = tqdm(
            total=total,
            desc="Quality-guided unwrapping",
            unit="px",
            disable=not self.verbose,
        )
        last_reported = 0

        def report() -> None:
            nonlocal last_reported
            bar.update(n_done - last_reported)
            last_reported = n_done
            if progress is not None:
                progress(n_done, total)

        try:
            # The seed is commit 1
            if n_done % self.progress_interval == 0:
                report()

            # Growing
            while n_done < total:
                if should_cancel is not None and should_cancel():
                    raise UnwrapCancelled(
                        f"Unwrapping cancelled after {n_done} of {total} pixels"
                    )

                entry = frontier.extract_best()
                source = entry.source
                if not committed[source]:
                    raise RuntimeError(
                        f"Source {source} of pixel {entry.coordinate} is not unwrapped"
                    )

                raw = float(phase[entry.coordinate])
                base = float(result[source])
                if raw == base:
                    value = raw
                else:
                    value = raw + round_half_away((base - raw) / period) * period

                result[entry.coordinate] = value
                committed[entry.coordinate] = True
                n_done += 1
                self._expand(frontier, committed, entry.coordinate, H, W)

                if n_done % self.progress_interval == 0:
                    report()

            # Done
            if last_reported != total:
                report()
        finally:
            bar.close()

        return result

    @staticmethod
    def _expand(
        frontier: Frontier,
        committed: np.ndarray,
        coordinate: tuple[int, int],
        H: int,
        W: int,
    ) -> None:
        """Offer the orthogonal neighbors of a newly committed pixel."""
        row, col = coordinate
        for nrow, ncol in ((row - 1, col), (row, col - 1), (row + 1, col), (row, col + 1)):
            if 0 <= nrow < H and 0 <= ncol < W and not committed[nrow, ncol]:
                frontier.insert_or_update((nrow, ncol), coordinate)
