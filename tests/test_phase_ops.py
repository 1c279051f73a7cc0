"""Tests for phase operation utilities."""

import math

import numpy as np
import pytest
import torch

from qualityphase.utils.phase_ops import (
    NEIGHBORS_8,
    check_finite,
    check_period,
    check_same_shape,
    elementwise,
    fold,
    neighbor_differences,
    period_range_warning,
    wrap,
)


class TestWrap:
    """Tests for wrap() function."""

    def test_wrap_within_range(self):
        """Values already in [-pi, pi) are unchanged."""
        phase = torch.tensor([0.0, 1.0, -1.0, math.pi - 0.1, -math.pi + 0.1])
        torch.testing.assert_close(wrap(phase), phase, rtol=1e-6, atol=1e-6)

    def test_wrap_range(self):
        """Wrapped values lie in [-period/2, period/2)."""
        phase = torch.randn(10, 20, dtype=torch.float64) * 50
        wrapped = wrap(phase, 10.0)

        assert wrapped.shape == phase.shape
        assert torch.all(wrapped >= -5.0)
        assert torch.all(wrapped < 5.0)

    def test_wrap_custom_period(self):
        """Wrapping uses the given period."""
        phase = torch.tensor([6.0, -6.0, 5.0, 14.0], dtype=torch.float64)
        wrapped = wrap(phase, 10.0)
        torch.testing.assert_close(
            wrapped, torch.tensor([-4.0, 4.0, -5.0, 4.0], dtype=torch.float64)
        )


class TestFold:
    """Tests for fold() function."""

    def test_fold_negative(self):
        """Negative values fold into [0, period)."""
        phase = torch.tensor([-1.0, 0.0, 5.0, 11.0], dtype=torch.float64)
        torch.testing.assert_close(
            fold(phase, 5.0), torch.tensor([4.0, 0.0, 0.0, 1.0], dtype=torch.float64)
        )


class TestNeighborDifferences:
    """Tests for neighbor_differences() function."""

    def test_shapes(self):
        """One difference plane per neighbor."""
        data = torch.zeros(4, 5, dtype=torch.float64)
        diffs, valid = neighbor_differences(data)

        assert diffs.shape == (len(NEIGHBORS_8), 4, 5)
        assert valid.shape == (len(NEIGHBORS_8), 4, 5)
        assert valid.dtype == torch.bool

    def test_corner_has_three_neighbors(self):
        """Corner pixels see three neighbors, interior pixels eight."""
        data = torch.zeros(3, 3, dtype=torch.float64)
        _, valid = neighbor_differences(data)
        counts = valid.sum(dim=0)

        assert counts[0, 0] == 3
        assert counts[0, 1] == 5
        assert counts[1, 1] == 8

    def test_difference_values(self):
        """Differences are pixel minus neighbor, zero outside the image."""
        data = torch.tensor([[1.0, 4.0]], dtype=torch.float64)
        diffs, valid = neighbor_differences(data)
        right = NEIGHBORS_8.index((0, 1))
        left = NEIGHBORS_8.index((0, -1))

        assert diffs[right, 0, 0] == -3.0
        assert diffs[left, 0, 1] == 3.0
        assert diffs[right, 0, 1] == 0.0
        assert not valid[right, 0, 1]


class TestChecks:
    """Tests for the argument checks."""

    def test_same_shape_passes(self):
        """Equal shapes are accepted."""
        check_same_shape(np.zeros((2, 3)), torch.zeros(2, 3))

    def test_same_shape_mismatch(self):
        """Different shapes name both arguments."""
        with pytest.raises(ValueError, match="phase has shape"):
            check_same_shape(np.zeros((2, 3)), np.zeros((3, 2)), names=("phase", "quality"))

    @pytest.mark.parametrize("period", [0.0, -1.0, math.inf, math.nan])
    def test_invalid_period(self, period):
        """Periods must be finite and positive."""
        with pytest.raises(ValueError, match="period"):
            check_period(period)

    def test_check_finite(self):
        """NaN and infinity are reported under the grid name."""
        check_finite(np.zeros((2, 2)), "phase")
        with pytest.raises(ValueError, match="phase contains NaN or infinite values"):
            check_finite(np.array([[0.0, np.inf]]), "phase")

    def test_valid_period(self):
        """Ordinary periods are accepted."""
        check_period(256)
        check_period(2 * math.pi)


class TestElementwise:
    """Tests for elementwise() function."""

    def test_subtract(self):
        """Operations are applied pixel by pixel."""
        a = torch.tensor([[5.0, 7.0]])
        b = torch.tensor([[1.0, 2.0]])
        torch.testing.assert_close(elementwise(a, b, torch.sub), torch.tensor([[4.0, 5.0]]))

    def test_no_broadcasting(self):
        """Broadcastable but different shapes are rejected."""
        with pytest.raises(ValueError, match="Shape mismatch"):
            elementwise(torch.zeros(2, 2), torch.zeros(1, 2), torch.add)


class TestPeriodRangeWarning:
    """Tests for period_range_warning() function."""

    def test_period_covers_range(self):
        """No message when the image fits in one period."""
        phase = np.array([[0.0, 255.0]])
        assert period_range_warning(phase, 256) is None

    def test_period_too_small(self):
        """A period smaller than the image range is reported."""
        phase = np.array([[0.0, 255.0]])
        message = period_range_warning(phase, 2 * math.pi)
        assert message is not None
        assert "less than the range" in message

    def test_ignores_nan(self):
        """Non-finite values do not count towards the range."""
        phase = np.array([[0.0, np.nan, 1.0]])
        assert period_range_warning(phase, 2.0) is None
