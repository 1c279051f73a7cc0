"""Pytest configuration and fixtures for qualityphase tests."""

import math

import numpy as np
import pytest
import torch


@pytest.fixture
def simple_phase():
    """Create a smooth phase ramp that wraps a few times."""
    H, W = 32, 40
    y, x = np.meshgrid(np.linspace(0, 1, H), np.linspace(0, 1, W), indexing='ij')
    return 3 * math.pi * (x + y)


@pytest.fixture
def wrapped_phase(simple_phase):
    """Create wrapped version of simple phase, in [0, 2*pi)."""
    return np.mod(simple_phase, 2 * np.pi)


@pytest.fixture
def ramp_8bit():
    """Create an integer ramp wrapped to 8-bit values, with its unwrapped form."""
    H, W = 16, 24
    y, x = np.meshgrid(np.arange(H), np.arange(W), indexing='ij')
    unwrapped = (20 * x + 15 * y).astype(np.float64)
    return np.mod(unwrapped, 256.0), unwrapped


@pytest.fixture
def hologram():
    """Create a hologram-like fringe pattern with a low-contrast corner."""
    H, W = 32, 40
    y, x = np.meshgrid(np.arange(H), np.arange(W), indexing='ij')
    contrast = np.where((x < 10) & (y < 10), 0.05, 0.8)
    return 100.0 * (1.0 + contrast * np.cos(0.9 * x))


@pytest.fixture
def device_manager():
    """Create a DeviceManager for testing."""
    from qualityphase.device.manager import DeviceManager
    return DeviceManager(device="cpu")  # Use CPU for consistent tests


@pytest.fixture
def available_device():
    """Return the best available device for testing."""
    if torch.cuda.is_available():
        return "cuda"
    elif torch.backends.mps.is_available():
        return "mps"
    return "cpu"
