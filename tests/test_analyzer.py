"""Tests for the curve pipeline, groupings, report and export."""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pandas as pd
import pytest

from analyzer import (
    EXPORT_COLUMNS,
    CurveAssembler,
    PowerAnalyzer,
    compute_curves,
    compute_groupings,
    results_to_frame,
)
from constants import AnalysisConstants
from curve_result import CurveError
from session_params import SessionParams
from telemetry import GroupingMode, TimeSeries


def test_end_to_end_ramp(ramp_series):
    """Linear ramp with RPM = 300 * speed gives a positive curve and K ≈ 300."""
    result = compute_curves(ramp_series, SessionParams(mass_kg=165.0, rpm_bin=200))

    assert result.ok
    assert len(result.rpm_curve) > 0
    assert len(result.rpm_curve) == len(result.torque_curve) == len(result.power_curve)
    assert np.all(np.isfinite(result.torque_curve))
    assert np.all(result.torque_curve > 0)
    assert np.all(np.diff(result.rpm_curve) > 0)
    assert result.k == pytest.approx(300.0, rel=0.01)
    assert result.r_over_gr == pytest.approx(2 * np.pi / (60 * result.k))
    assert result.n_valid_samples > 0


def test_end_to_end_power_matches_torque(ramp_series):
    """Power is torque * rpm / 9549 bin by bin."""
    result = compute_curves(ramp_series, SessionParams())
    expected = result.torque_curve * result.rpm_curve / AnalysisConstants.KW_CONVERSION
    assert np.allclose(result.power_curve, expected)


def test_diagnostics_report_static_coefficients(ramp_series):
    """Without coastdown fitting the configured CdA/Crr are reported."""
    params = SessionParams(cda=0.7, crr=0.02, temp_c=15.0, pressure_hpa=1013.25)
    result = compute_curves(ramp_series, params)

    assert result.cda == 0.7
    assert result.crr == 0.02
    assert result.rho == pytest.approx(1.225)
    assert not result.coastdown_applied


def test_too_short_input():
    """Five samples give InsufficientSamples and no curves."""
    ts = TimeSeries.from_arrays(np.arange(5) * 0.1, np.full(5, 3000.0), np.full(5, 10.0))
    result = compute_curves(ts, SessionParams())

    assert result.error == CurveError.INSUFFICIENT_SAMPLES
    assert result.rpm_curve is None
    assert result.torque_curve is None
    assert result.power_curve is None


def test_all_decelerating_input(make_ramp):
    """Nothing survives the slip filter when a < 0 everywhere."""
    result = compute_curves(make_ramp(v_start=20.0, v_end=0.0), SessionParams())

    assert result.error == CurveError.NO_VALID_SAMPLES
    assert result.rpm_curve is None
    assert result.k == pytest.approx(300.0, rel=0.01)


def test_low_rpm_input_has_no_bins():
    """Samples that all sit below 1000 RPM fail at binning."""
    n = 200
    t = np.linspace(0.0, 20.0, n)
    speed = 6.0 + 0.5 * t
    ts = TimeSeries.from_arrays(t, 50.0 * speed, speed)

    result = compute_curves(ts, SessionParams())

    assert result.error == CurveError.NO_BINNED_SAMPLES
    assert result.n_valid_samples > 0


def test_compute_curves_is_deterministic(ramp_series):
    """Identical input and parameters give identical output."""
    params = SessionParams(use_coastdown_fit=True)
    first = compute_curves(ramp_series, params)
    second = compute_curves(ramp_series, params)

    assert np.array_equal(first.rpm_curve, second.rpm_curve)
    assert np.array_equal(first.torque_curve, second.torque_curve)
    assert np.array_equal(first.power_curve, second.power_curve)
    assert first.k == second.k


def test_coastdown_fit_falls_back_silently(ramp_series):
    """Without deceleration the static coefficients are kept, no error raised."""
    params = SessionParams(use_coastdown_fit=True, cda=0.55, crr=0.012)
    result = compute_curves(ramp_series, params)

    assert result.ok
    assert not result.coastdown_applied
    assert result.cda == 0.55
    assert result.crr == 0.012


def test_coastdown_fit_applied_with_coasting_phase():
    """A pull followed by a coastdown calibrates CdA/Crr within their limits."""
    dt, mass, rho = 0.1, 165.0, 1.18
    pull = np.arange(0.0, 20.0, dt)  # 0 -> 20 m/s at 1 m/s²
    coast = [20.0]
    for _ in range(150):
        v = coast[-1]
        decel = 0.5 * rho * 0.6 * v * v / mass + 0.015 * AnalysisConstants.GRAVITY_MS2
        coast.append(v - decel * dt)
    speed = np.concatenate([pull, np.array(coast[1:])])
    t = np.arange(len(speed)) * dt
    ts = TimeSeries.from_arrays(t, 300.0 * speed, speed)

    result = compute_curves(ts, SessionParams(use_coastdown_fit=True))

    assert result.ok
    assert result.coastdown_applied
    assert 0.3 <= result.cda <= 1.2
    assert 0.0 <= result.crr <= 0.03


def test_accel_clip_limits_torque(ramp_series):
    """Clamping acceleration lowers the inferred torque."""
    base = compute_curves(ramp_series, SessionParams())
    clipped = compute_curves(ramp_series, SessionParams(accel_clip=0.5))

    assert clipped.ok
    assert np.array_equal(base.rpm_curve, clipped.rpm_curve)
    assert np.all(clipped.torque_curve < base.torque_curve)


def test_assembler_is_reusable(make_ramp, ramp_series):
    """One assembler serves several groupings without carrying state."""
    assembler = CurveAssembler(SessionParams())
    first = assembler.run(ramp_series)
    assembler.run(make_ramp(v_start=20.0, v_end=0.0))
    again = assembler.run(ramp_series)

    assert np.array_equal(first.torque_curve, again.torque_curve)


def _two_sessions(make_ramp):
    good = make_ramp(session="s1", lap=1)
    short = make_ramp(n=5, session="s2", lap=1)
    return TimeSeries.concat([good, short])


def test_groupings_fail_independently(make_ramp):
    """One failing session does not affect another."""
    results = compute_groupings(_two_sessions(make_ramp), SessionParams(), GroupingMode.BY_SESSION)

    assert [name for name, _ in results] == ["s1", "s2"]
    assert results[0][1].ok
    assert results[1][1].error == CurveError.INSUFFICIENT_SAMPLES


def test_groupings_by_lap_names(make_ramp):
    """Lap groupings are named '<session> | Lap <n>'."""
    ts = TimeSeries.concat([make_ramp(session="s1", lap=1), make_ramp(session="s1", lap=2)])
    results = compute_groupings(ts, SessionParams(), GroupingMode.BY_LAP)

    assert [name for name, _ in results] == ["s1 | Lap 1", "s1 | Lap 2"]
    assert all(result.ok for _, result in results)


def test_groupings_with_executor_match_serial(make_ramp):
    """Running groupings on a thread pool preserves order and values."""
    ts = _two_sessions(make_ramp)
    serial = compute_groupings(ts, SessionParams(), GroupingMode.BY_SESSION)
    with ThreadPoolExecutor(max_workers=2) as executor:
        parallel = compute_groupings(ts, SessionParams(), GroupingMode.BY_SESSION, executor)

    assert [name for name, _ in parallel] == [name for name, _ in serial]
    assert np.array_equal(parallel[0][1].torque_curve, serial[0][1].torque_curve)
    assert parallel[1][1].error == serial[1][1].error


def test_results_to_frame(make_ramp):
    """Export has one row per (grouping, bin) and skips failures."""
    results = compute_groupings(_two_sessions(make_ramp), SessionParams(), GroupingMode.BY_SESSION)
    frame = results_to_frame(results)

    assert list(frame.columns) == EXPORT_COLUMNS
    assert set(frame['Session']) == {"s1"}
    assert len(frame) == len(results[0][1].rpm_curve)


def test_results_to_frame_all_failed():
    """No successful grouping gives an empty frame with the header."""
    frame = results_to_frame([])
    assert list(frame.columns) == EXPORT_COLUMNS
    assert len(frame) == 0


def test_power_analyzer_export_and_report(tmp_path, ramp_series):
    """PowerAnalyzer computes, reports and exports the loaded data."""
    analyzer = PowerAnalyzer(SessionParams())
    analyzer.data = ramp_series
    analyzer.compute(GroupingMode.OVERALL)

    report = analyzer.generate_report()
    assert "All:" in report
    assert "Peak Torque" in report

    out = tmp_path / "curves.csv"
    analyzer.export_csv(str(out))
    exported = pd.read_csv(out)
    assert list(exported.columns) == EXPORT_COLUMNS
    assert (exported['Session'] == "All").all()


def test_power_analyzer_requires_data():
    """Computing before loading raises ValueError."""
    with pytest.raises(ValueError):
        PowerAnalyzer().compute()
