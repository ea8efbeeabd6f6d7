"""Shared synthetic telemetry for the test suite."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from telemetry import TimeSeries


def _ramp(n=200, v_start=0.0, v_end=20.0, k0=300.0, session="session", lap=1):
    """Linear speed ramp with RPM locked to speed (no slip)."""
    accel = 1.0 if v_end >= v_start else -1.0
    duration = abs(v_end - v_start) / abs(accel)
    t = np.linspace(0.0, duration, n)
    speed = v_start + accel * t
    rpm = k0 * speed
    return TimeSeries.from_arrays(t, rpm, speed, lap=np.full(n, lap), session=session)


@pytest.fixture
def make_ramp():
    """Factory for linear speed ramps."""
    return _ramp


@pytest.fixture
def ramp_series():
    """200 samples, 0 -> 20 m/s at 1 m/s², RPM = 300 * speed."""
    return _ramp()
