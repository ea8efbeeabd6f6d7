"""
RPM binning and percentile envelope of torque samples
"""

import logging
from typing import Tuple

import numpy as np

from constants import AnalysisConstants
from data_processing import SignalConditioner

logger = logging.getLogger(__name__)


def power_kw(torque_nm: np.ndarray, rpm: np.ndarray) -> np.ndarray:
    """Shaft power in kW from torque in N·m and engine speed in RPM"""
    return np.asarray(torque_nm, dtype=float) * np.asarray(rpm, dtype=float) / AnalysisConstants.KW_CONVERSION


class BinningAggregator:
    """Handles bucketing of torque samples by RPM into a smoothed curve"""

    def __init__(self, rpm_bin: float, percentile: float, smooth_window_bins: int):
        self.rpm_bin = rpm_bin
        self.percentile = percentile
        self.smooth_window_bins = smooth_window_bins

    @staticmethod
    def rpm_range(rpm: np.ndarray) -> Tuple[float, float]:
        """1st/99th percentile of RPM, lower bound floored at 1000 RPM"""
        low_p, high_p = AnalysisConstants.RPM_RANGE_PERCENTILES
        rpm_min = max(SignalConditioner.percentile(rpm, low_p), AnalysisConstants.MIN_CURVE_RPM)
        rpm_max = SignalConditioner.percentile(rpm, high_p)
        return rpm_min, rpm_max

    def bin_edges(self, rpm_min: float, rpm_max: float) -> np.ndarray:
        """Contiguous edges from floor(min/bin)*bin to ceil(max/bin)*bin inclusive"""
        start = np.floor(rpm_min / self.rpm_bin) * self.rpm_bin
        stop = np.ceil(rpm_max / self.rpm_bin) * self.rpm_bin
        if stop < start:
            return np.empty(0)
        n_edges = int(round((stop - start) / self.rpm_bin)) + 1
        return start + self.rpm_bin * np.arange(n_edges)

    def aggregate(self, rpm: np.ndarray, torque: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Build the binned torque envelope

        Args:
            rpm: Engine speed of the filtered samples
            torque: Engine torque of the filtered samples (N·m)

        Returns:
            (rpm_curve, torque_curve) with bin midpoints ascending and the
            percentile torque smoothed across bins; both empty when no bin
            holds enough samples
        """
        rpm = np.asarray(rpm, dtype=float)
        torque = np.asarray(torque, dtype=float)

        edges = self.bin_edges(*self.rpm_range(rpm))

        rpm_curve = []
        torque_curve = []
        for bin_start, bin_end in zip(edges[:-1], edges[1:]):
            in_bin = (rpm >= bin_start) & (rpm < bin_end)
            if np.count_nonzero(in_bin) < AnalysisConstants.MIN_BIN_SAMPLES:
                continue

            torque_curve.append(SignalConditioner.percentile(torque[in_bin], self.percentile))
            rpm_curve.append((bin_start + bin_end) / 2.0)

        logger.debug("Binning kept %d of %d bins", len(rpm_curve), max(len(edges) - 1, 0))

        if not torque_curve:
            return np.empty(0), np.empty(0)

        smoothed = SignalConditioner.rolling_mean(np.array(torque_curve), self.smooth_window_bins)
        return np.array(rpm_curve), smoothed
