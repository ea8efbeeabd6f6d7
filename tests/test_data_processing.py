"""Tests for signal conditioning."""

import numpy as np
import pytest

from data_processing import SignalConditioner


def test_rolling_mean_window_one_is_identity():
    """Window 1 returns the input unchanged."""
    data = np.array([3.0, -1.0, 7.5, 2.0])
    assert np.array_equal(SignalConditioner.rolling_mean(data, 1), data)


def test_rolling_mean_window_below_one_is_identity():
    """Windows below 1 are treated as 1."""
    data = np.array([1.0, 4.0, 9.0])
    assert np.array_equal(SignalConditioner.rolling_mean(data, 0), data)


def test_rolling_mean_shrinks_at_edges():
    """Edge samples average fewer points instead of padding."""
    smoothed = SignalConditioner.rolling_mean([1, 2, 3, 4, 5], 3)
    assert np.allclose(smoothed, [1.5, 2.0, 3.0, 4.0, 4.5])


def test_rolling_mean_window_as_long_as_series():
    """Window equal to the length gives expanding/contracting averages."""
    smoothed = SignalConditioner.rolling_mean([1, 2, 3, 4, 5], 5)
    # i=0 -> [1,2,3], i=1 -> [1..4], i=2 -> all, i=3 -> [2..5], i=4 -> [3,4,5]
    assert np.allclose(smoothed, [2.0, 2.5, 3.0, 3.5, 4.0])


def test_rolling_mean_even_window():
    """Even windows take floor(w/2) samples before and ceil(w/2) from i on."""
    smoothed = SignalConditioner.rolling_mean([2, 4, 6, 8], 2)
    assert np.allclose(smoothed, [2.0, 3.0, 5.0, 7.0])


def test_central_diff_linear_ramp():
    """Derivative of y = c*t is c everywhere."""
    t = np.linspace(0, 10, 101)
    dt = SignalConditioner.mean_sample_interval(t)
    derivative = SignalConditioner.central_diff(2.5 * t, dt)

    assert np.allclose(derivative[1:-1], 2.5)
    assert derivative[0] == pytest.approx(2.5)
    assert derivative[-1] == pytest.approx(2.5)


def test_central_diff_boundaries_are_one_sided():
    """First/last points use forward/backward differences."""
    y = np.array([0.0, 1.0, 4.0, 9.0])
    derivative = SignalConditioner.central_diff(y, 1.0)
    assert np.allclose(derivative, [1.0, 2.0, 4.0, 5.0])


def test_central_diff_short_series_is_zero():
    """Fewer than 3 samples give zeros."""
    assert np.array_equal(SignalConditioner.central_diff([1.0, 5.0], 0.1), [0.0, 0.0])
    assert len(SignalConditioner.central_diff([], 0.1)) == 0


def test_mean_sample_interval():
    """dt is the whole-series mean step, not a per-sample value."""
    t = np.array([0.0, 0.1, 0.3, 0.4, 1.0])
    assert SignalConditioner.mean_sample_interval(t) == pytest.approx(0.25)
    assert SignalConditioner.mean_sample_interval([0.0]) == pytest.approx(0.1)


def test_percentile_constant_array():
    """Any percentile of a constant array is the constant."""
    values = np.full(7, 42.0)
    for p in (0, 13, 50, 95, 100):
        assert SignalConditioner.percentile(values, p) == pytest.approx(42.0)


def test_percentile_extremes():
    """p=0 is the minimum and p=100 the maximum."""
    values = np.array([5.0, -2.0, 11.0, 3.0])
    assert SignalConditioner.percentile(values, 0) == -2.0
    assert SignalConditioner.percentile(values, 100) == 11.0


def test_percentile_linear_interpolation():
    """Known 5-element array at p=50 and p=90."""
    values = np.array([5.0, 1.0, 4.0, 2.0, 3.0])
    assert SignalConditioner.percentile(values, 50) == pytest.approx(3.0)
    # rank 0.9 * 4 = 3.6 -> 4 + 0.6 * (5 - 4)
    assert SignalConditioner.percentile(values, 90) == pytest.approx(4.6)


def test_percentile_beyond_range_clamps_to_max():
    """Ranks past the end clamp to the last element."""
    assert SignalConditioner.percentile([1.0, 2.0, 3.0], 150) == 3.0
