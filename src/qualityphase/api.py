"""
Public API for qualityphase.

This module provides the main entry points for quality-guided phase
unwrapping of single images and stacks, double-wavelength unwrapping and
quality map computation.
"""

from __future__ import annotations

import math
import warnings
from typing import Callable

import numpy as np

from qualityphase.core.double_wavelength import (
    STEP_NAMES,
    DoubleWavelengthUnwrapper,
    PhaseImage,
)
from qualityphase.core.quality_guided import ProgressCallback, QualityGuidedUnwrapper
from qualityphase.device.manager import DeviceManager, DeviceType
from qualityphase.quality import BaseQuality, QualityKind, create_quality
from qualityphase.stack.driver import OutputType, StackDriver
from qualityphase.utils.phase_ops import check_finite, check_period, period_range_warning


def _warn_period(phase: np.ndarray, period: float) -> None:
    message = period_range_warning(phase, period)
    if message is not None:
        warnings.warn(message, UserWarning, stacklevel=3)


def unwrap(
    phase: np.ndarray,
    quality: np.ndarray | BaseQuality | QualityKind | None = None,
    period: float = 2 * math.pi,
    progress: ProgressCallback | None = None,
    *,
    progress_interval: int = 50_000,
    should_cancel: Callable[[], bool] | None = None,
    verbose: bool = False,
    device: DeviceType = "auto",
) -> np.ndarray:
    """
    Unwrap a 2D phase image with the quality-guided algorithm.

    This is the main entry point for phase unwrapping. The unwrapped region
    grows from the center pixel, always adding the best-quality pixel next
    to it, so the result depends on the quality map only through the order
    in which pixels are visited.

    Parameters
    ----------
    phase : np.ndarray
        Wrapped phase of shape (H, W), in [0, period) or [-period/2,
        period/2).
    quality : np.ndarray, BaseQuality, str or None
        Unwrap order. Can be:
        - Array of shape (H, W): higher values are unwrapped first
        - BaseQuality instance: its period is set and it is calculated
          from ``phase``
        - Name of a quality metric ("none", "gradient", "phase_gradient");
          "visibility" needs a hologram, use `compute_quality` for it
        - None: same as "none"
    period : float
        Wrap period, e.g. 2*pi (default) for radians or 256 for 8-bit
        phase images.
    progress : callable, optional
        Called as ``progress(done, total)`` every `progress_interval`
        unwrapped pixels and once at the end.
    progress_interval : int
        Number of pixels between progress reports (default 50_000).
    should_cancel : callable, optional
        Polled before every step; returning True aborts with
        `UnwrapCancelled`.
    verbose : bool
        If True, show a progress bar.
    device : str
        Compute device for the quality metric: "cuda", "mps", "cpu", or
        "auto" (default). The region-growing loop itself runs on the host.

    Returns
    -------
    np.ndarray
        Unwrapped phase of shape (H, W), float64. Every pixel differs from
        the input by an integer multiple of ``period``.

    Raises
    ------
    ValueError
        On non-2D or empty input, mismatched shapes, a non-positive period
        or NaN quality values.
    UnwrapCancelled
        If ``should_cancel`` returned True.

    Examples
    --------
    >>> import qualityphase
    >>> unw = qualityphase.unwrap(phase)

    Unwrap an 8-bit phase image in order of the wrapped phase gradient:

    >>> unw = qualityphase.unwrap(phase, "phase_gradient", period=256)
    """
    check_period(period)
    dm = DeviceManager(device)
    phase = DeviceManager.as_host_array(phase)
    check_finite(phase, "phase")

    if quality is None:
        quality = "none"
    if isinstance(quality, str):
        quality = create_quality(quality, dm, period=period)
    if isinstance(quality, BaseQuality):
        quality.set_period(period)
        quality_map = dm.to_numpy(quality.calculate(phase))
    else:
        quality_map = DeviceManager.as_host_array(quality)

    _warn_period(phase, period)

    unwrapper = QualityGuidedUnwrapper(
        dm, period=period, progress_interval=progress_interval, verbose=verbose,
    )
    return unwrapper(
        phase, quality_map, progress=progress, should_cancel=should_cancel,
    )


def compute_quality(
    phase: np.ndarray,
    kind: QualityKind = "phase_gradient",
    period: float = 2 * math.pi,
    image: np.ndarray | None = None,
    t: int = 0,
    z: int = 0,
    device: DeviceType = "auto",
) -> np.ndarray:
    """
    Compute a quality map.

    Parameters
    ----------
    phase : np.ndarray
        Wrapped phase of shape (H, W).
    kind : str
        Quality metric:
        - "none": Every pixel has quality 0
        - "gradient": Negative absolute gradient of ``image`` or ``phase``
        - "phase_gradient": Negative absolute wrapped phase gradient
          (default)
        - "visibility": Fringe visibility of the hologram ``image``
    period : float
        Wrap period, used by "phase_gradient".
    image : np.ndarray, optional
        Auxiliary image of shape (H, W) or (T, Z, H, W). Required for
        "visibility".
    t, z : int
        Slice of ``image`` to use when it is a stack.
    device : str
        Compute device: "cuda", "mps", "cpu", or "auto" (default).

    Returns
    -------
    np.ndarray
        Quality map of shape (H, W).
    """
    dm = DeviceManager(device)
    metric = create_quality(kind, dm, period=period, image=image)
    metric.set_period(period)
    return dm.to_numpy(metric.calculate(phase, t, z))


def unwrap_stack(
    phase_stack: np.ndarray,
    quality: BaseQuality | QualityKind | None = None,
    period: float = 2 * math.pi,
    output: OutputType = "float",
    verbose: bool = False,
    device: DeviceType = "auto",
) -> np.ndarray:
    """
    Unwrap every slice of a (T, Z, H, W) phase stack.

    Parameters
    ----------
    phase_stack : np.ndarray
        Wrapped phase of shape (T, Z, H, W).
    quality : BaseQuality, str or None
        Quality metric. A metric with its own image stack (e.g. a
        `VisibilityQuality` built from the hologram stack) is recomputed
        for every slice it has an image for.
    period : float
        Wrap period (default 2*pi).
    output : str
        Output type of the slices:
        - "float": unwrapped phase in units of the period (default)
        - "radians": unwrapped phase scaled so one period is 2*pi
        - "uint8": each slice linearly mapped onto [0, 255]
    verbose : bool
        If True, show a progress bar over the slices.
    device : str
        Compute device: "cuda", "mps", "cpu", or "auto" (default).

    Returns
    -------
    np.ndarray
        Unwrapped stack of shape (T, Z, H, W).
    """
    check_period(period)
    dm = DeviceManager(device)
    phase_stack = DeviceManager.as_host_array(phase_stack)

    if isinstance(quality, str):
        quality = create_quality(quality, dm, period=period)

    _warn_period(phase_stack, period)

    driver = StackDriver(dm, period=period, output=output, verbose=verbose)
    return driver.run(phase_stack, quality)


def unwrap_double_wavelength(
    phase1: np.ndarray,
    wavelength1: float,
    period1: float,
    phase2: np.ndarray,
    wavelength2: float,
    period2: float,
    show_steps: bool = False,
    device: DeviceType = "auto",
):
    """
    Unwrap phase with the double-wavelength technique.

    Parameters
    ----------
    phase1, phase2 : np.ndarray
        Wrapped phase at the two wavelengths, both of shape (H, W) or both
        of shape (T, Z, H, W).
    wavelength1, wavelength2 : float
        Wavelengths of the two recordings, in any common unit.
    period1, period2 : float
        Wrap periods of the two phase images. The result is expressed in
        ``period1``.
    show_steps : bool
        If True, also return every intermediate image.
    device : str
        Compute device: "cuda", "mps", "cpu", or "auto" (default).

    Returns
    -------
    coarse : np.ndarray
        Unwrapped phase at the combined wavelength.
    fine : np.ndarray
        Coarse map refined with the first phase image.
    steps : dict, only if ``show_steps`` is True
        The seven intermediate images keyed by their names (a) to (g).

    Examples
    --------
    >>> coarse, fine = qualityphase.unwrap_double_wavelength(
    ...     phase_633, 633.0, 256, phase_660, 660.0, 256,
    ... )
    """
    dm = DeviceManager(device)
    unwrapper = DoubleWavelengthUnwrapper(dm)
    image1 = PhaseImage(DeviceManager.as_host_array(phase1), wavelength1, period1)
    image2 = PhaseImage(DeviceManager.as_host_array(phase2), wavelength2, period2)

    if image1.phase.ndim == 4:
        result = unwrapper.unwrap_stack(image1, image2, show_steps=show_steps)
    else:
        result = unwrapper.unwrap(image1, image2, show_steps=show_steps)

    coarse = dm.to_numpy(result.coarse)
    fine = dm.to_numpy(result.fine)
    if not show_steps:
        return coarse, fine

    steps = {
        name: dm.to_numpy(step) for name, step in zip(STEP_NAMES, result.steps)
    }
    return coarse, fine, steps


def get_available_devices() -> dict:
    """
    Get information about available compute devices.

    Returns
    -------
    dict
        Dictionary with device availability:
        - 'cpu': Always True
        - 'cuda': True if CUDA is available
        - 'mps': True if MPS (Apple Silicon) is available
        - 'cuda_devices': Names of the visible CUDA devices

    Examples
    --------
    >>> import qualityphase
    >>> devices = qualityphase.get_available_devices()
    >>> print(devices)
    {'cpu': True, 'cuda': True, 'mps': False, 'cuda_devices': ['NVIDIA A100-SXM4-40GB']}
    """
    return DeviceManager.available_devices()
