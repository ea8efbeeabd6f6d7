"""
Main PowerAnalyzer class and the per-grouping curve pipeline
"""

import logging
from concurrent.futures import Executor
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from binning import BinningAggregator, power_kw
from constants import AnalysisConstants
from curve_result import CurveError, CurveResult
from data_loader import DataLoader
from data_processing import SignalConditioner
from gear_ratio import GearRatioEstimator
from plotting import Plotter
from power_calculator import TractionForceCalculator
from resistance_model import ResistanceModel
from session_params import SessionParams
from slip_filter import SlipFilter
from telemetry import GroupingMode, TimeSeries, group_time_series

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ['Session', 'RPM', 'Torque_Nm', 'Power_kW']

# Lazy imports for heavy dependencies
def _import_pandas():
    import pandas as pd
    return pd


class PipelineStage(str, Enum):
    PENDING = 'Pending'
    CONDITIONING = 'Conditioning'
    GEAR_FIT = 'GearFit'
    FORCE_COMPUTE = 'ForceCompute'
    FILTERING = 'Filtering'
    BINNING = 'Binning'
    DONE = 'Done'
    FAILED = 'Failed'


class CurveAssembler:
    """
    Runs the estimation pipeline for one grouping

    Conditioning -> gear fit -> force/torque -> slip filter -> binning.
    Holds only the read-only parameters, so one instance can serve any
    number of groupings, concurrently if needed.
    """

    def __init__(self, params: SessionParams):
        self.params = params

    def run(self, ts: TimeSeries) -> CurveResult:
        """
        Compute the torque/power curve of one grouping

        Args:
            ts: Telemetry of the grouping

        Returns:
            CurveResult with curves, or with an error tag when a stage fails
        """
        params = self.params
        stage = PipelineStage.PENDING

        if len(ts) < AnalysisConstants.MIN_SAMPLES:
            return self._fail(stage, CurveError.INSUFFICIENT_SAMPLES)

        stage = self._advance(stage, PipelineStage.CONDITIONING)
        dt = SignalConditioner.mean_sample_interval(ts.t)
        speed_smoothed = SignalConditioner.rolling_mean(ts.speed_mps, params.accel_smooth_win)
        accel = SignalConditioner.central_diff(speed_smoothed, dt)
        if params.accel_clip is not None:
            accel = np.clip(accel, -params.accel_clip, params.accel_clip)

        stage = self._advance(stage, PipelineStage.GEAR_FIT)
        k = GearRatioEstimator.fit_k_origin(ts.rpm, speed_smoothed, accel, params.min_speed_mps)
        slip = SlipFilter.slip_ratio(ts.rpm, speed_smoothed, k)

        stage = self._advance(stage, PipelineStage.FORCE_COMPUTE)
        rho = ResistanceModel.air_density_simple(params.temp_c, params.pressure_hpa)
        cda, crr = params.cda, params.crr
        coastdown_applied = False
        if params.use_coastdown_fit:
            est_cda, est_crr = ResistanceModel.estimate_resistances_from_decel(
                accel, speed_smoothed, params.mass_kg, rho
            )
            # Static coefficients stay in place when the fit is not possible
            if np.isfinite(est_cda) and np.isfinite(est_crr):
                cda, crr = est_cda, est_crr
                coastdown_applied = True

        calculator = TractionForceCalculator(params, rho, cda, crr)
        torque = calculator.engine_torque(accel, speed_smoothed, k)
        r_over_gr = calculator.r_over_gr(k)
        diagnostics = dict(k=k, rho=rho, cda=cda, crr=crr, r_over_gr=r_over_gr,
                           coastdown_applied=coastdown_applied)

        stage = self._advance(stage, PipelineStage.FILTERING)
        mask = SlipFilter(params.max_slip, params.min_speed_mps).valid_mask(
            accel, slip, speed_smoothed, torque
        )
        n_valid = int(np.count_nonzero(mask))
        if n_valid == 0:
            return self._fail(stage, CurveError.NO_VALID_SAMPLES, **diagnostics)

        stage = self._advance(stage, PipelineStage.BINNING)
        aggregator = BinningAggregator(params.rpm_bin, params.percentile, params.smooth_window_bins)
        rpm_curve, torque_curve = aggregator.aggregate(ts.rpm[mask], torque[mask])
        if len(rpm_curve) == 0:
            return self._fail(stage, CurveError.NO_BINNED_SAMPLES, n_valid_samples=n_valid, **diagnostics)

        self._advance(stage, PipelineStage.DONE)
        return CurveResult(
            rpm_curve=rpm_curve,
            torque_curve=torque_curve,
            power_curve=power_kw(torque_curve, rpm_curve),
            n_valid_samples=n_valid,
            **diagnostics,
        )

    @staticmethod
    def _advance(current: PipelineStage, nxt: PipelineStage) -> PipelineStage:
        logger.debug("Pipeline %s -> %s", current.value, nxt.value)
        return nxt

    @staticmethod
    def _fail(stage: PipelineStage, error: CurveError, **diagnostics) -> CurveResult:
        logger.debug("Pipeline %s -> %s (%s)", stage.value, PipelineStage.FAILED.value, error.value)
        return CurveResult.failed(error, **diagnostics)


def compute_curves(ts: TimeSeries, params: SessionParams) -> CurveResult:
    """Run the full pipeline on one grouping"""
    return CurveAssembler(params).run(ts)


def compute_groupings(ts: TimeSeries, params: SessionParams,
                      mode: GroupingMode = GroupingMode.OVERALL,
                      executor: Optional[Executor] = None) -> List[Tuple[str, CurveResult]]:
    """
    Run the pipeline independently for every grouping

    Args:
        ts: Combined telemetry
        params: Session parameters shared by all groupings
        mode: overall, by_session or by_lap
        executor: Optional executor to run groupings in parallel

    Returns:
        (name, result) pairs in grouping order
    """
    groups = list(group_time_series(ts, mode))
    names = [name for name, _ in groups]
    assembler = CurveAssembler(params)

    if executor is None:
        results = [assembler.run(group) for _, group in groups]
    else:
        results = list(executor.map(assembler.run, [group for _, group in groups]))

    for name, result in zip(names, results):
        if not result.ok:
            logger.info("Grouping '%s' failed: %s", name, result.error.value)

    return list(zip(names, results))


def results_to_frame(results: Sequence[Tuple[str, CurveResult]]) -> 'pd.DataFrame':
    """Flatten results to one row per (grouping, bin); failed groupings add no rows"""
    pd = _import_pandas()
    frames = []
    for name, result in results:
        if not result.ok:
            continue
        frames.append(pd.DataFrame({
            'Session': name,
            'RPM': result.rpm_curve,
            'Torque_Nm': result.torque_curve,
            'Power_kW': result.power_curve,
        }))

    if not frames:
        return pd.DataFrame(columns=EXPORT_COLUMNS)
    return pd.concat(frames, ignore_index=True)[EXPORT_COLUMNS]


class PowerAnalyzer:
    """Main class for loading telemetry and estimating torque/power curves"""

    def __init__(self, params: Optional[SessionParams] = None):
        self.params = params if params is not None else SessionParams()

        # Initialize sub-modules
        self.data_loader = DataLoader()
        self.plotter = Plotter()

        self.files = []
        self.data = None
        self.results = []

    def load_data(self, csv_paths: Sequence[str], sessions: Optional[Sequence[str]] = None,
                  laps: Optional[Sequence[int]] = None) -> TimeSeries:
        """Load CSV logs, combine the readable ones and apply the session/lap selection"""
        self.files = self.data_loader.load_files(csv_paths)
        for loaded in self.files:
            if loaded.error:
                print(f"Skipping {loaded.filename}: {loaded.error}")

        combined = DataLoader.combine(self.files)
        if len(combined) == 0:
            raise ValueError("No readable telemetry in the given files.")

        self.data = combined.filter_selection(sessions, laps)
        if len(self.data) == 0:
            raise ValueError("Session/lap selection matched no samples.")

        return self.data

    def compute(self, mode: GroupingMode = GroupingMode.OVERALL,
                executor: Optional[Executor] = None) -> List[Tuple[str, CurveResult]]:
        """Estimate one curve per grouping of the loaded data"""
        if self.data is None:
            raise ValueError("No data loaded. Call load_data() first.")

        self.results = compute_groupings(self.data, self.params, mode, executor)
        return self.results

    @property
    def successful_results(self) -> List[Tuple[str, CurveResult]]:
        return [(name, result) for name, result in self.results if result.ok]

    def export_csv(self, path: str) -> None:
        """Write Session,RPM,Torque_Nm,Power_kW rows for every successful grouping"""
        if not self.results:
            raise ValueError("No results to export. Call compute() first.")

        results_to_frame(self.results).to_csv(path, index=False)
        print(f"Results saved to {path}")

    def plot_curves(self, save_path: Optional[str] = None, title: Optional[str] = None) -> None:
        if not self.successful_results:
            raise ValueError("No curves to plot. Call compute() first.")
        self.plotter.plot_curves(self.successful_results, save_path, title)

    def plot_raw_preview(self, save_path: Optional[str] = None) -> None:
        if self.data is None:
            raise ValueError("No data loaded. Call load_data() first.")
        self.plotter.plot_raw_preview(self.data, save_path)

    def generate_report(self) -> str:
        """Generate a text report of the analysis"""
        if not self.results:
            return "No results to report."

        p = self.params
        report = ["Torque and Power Analysis Report", "=" * 40, ""]

        report.extend([
            "Session Parameters:",
            f"  Mass: {p.mass_kg:.1f} kg",
            f"  Ambient: {p.temp_c:.1f}°C, {p.pressure_hpa:.1f} hPa",
            f"  Driveline Efficiency: {p.eta:.3f}",
            f"  CdA / Crr: {p.cda:.3f} m² / {p.crr:.4f}" + (" (coastdown fit enabled)" if p.use_coastdown_fit else ""),
            f"  RPM Bin: {p.rpm_bin:.0f}, Percentile: {p.percentile:.1f}, Max Slip: {p.max_slip:.3f}",
            ""
        ])

        for name, result in self.results:
            report.append(f"{name}:")
            if not result.ok:
                report.extend([f"  Error: {result.error.value}", ""])
                continue

            torque_rpm, torque_max = result.peak_torque()
            power_rpm, power_max = result.peak_power()
            rpm_gap = power_rpm - torque_rpm

            report.extend([
                f"  RPM Range: {result.rpm_curve[0]:.0f} - {result.rpm_curve[-1]:.0f} ({len(result.rpm_curve)} bins)",
                f"  Peak Torque: {torque_max:.1f} N·m @ {torque_rpm:.0f} RPM",
                f"  Peak Power: {power_max:.2f} kW @ {power_rpm:.0f} RPM",
                f"  Peak Power - Peak Torque: {rpm_gap:+.0f} RPM",
                f"  K: {result.k:.2f} RPM/(m/s), rOverGr: {result.r_over_gr:.5f} m",
                f"  Air Density: {result.rho:.4f} kg/m³",
                f"  CdA / Crr: {result.cda:.3f} m² / {result.crr:.4f}"
                + (" (coastdown fit)" if result.coastdown_applied else " (static)"),
                f"  Valid Samples: {result.n_valid_samples}",
                ""
            ])

        return "\n".join(report)
