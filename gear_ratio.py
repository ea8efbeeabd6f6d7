"""
Gear ratio regression relating engine RPM to ground speed
"""

import logging

import numpy as np

from constants import AnalysisConstants

logger = logging.getLogger(__name__)


class GearRatioEstimator:
    """Fits the RPM-per-(m/s) constant K of the driveline"""

    @staticmethod
    def fit_k_origin(rpm: np.ndarray, speed_mps: np.ndarray, accel: np.ndarray,
                     min_speed_mps: float) -> float:
        """
        Least-squares fit of rpm = K * speed through the origin

        Steady-speed samples (|a| < 0.5 m/s²) above the speed gate isolate the
        kinematic RPM/speed relationship best. When fewer than 10 of those
        exist, every sample above the speed gate is used instead.

        Args:
            rpm: Engine speed samples
            speed_mps: Ground speed samples in m/s
            accel: Longitudinal acceleration samples in m/s²
            min_speed_mps: Minimum speed for a sample to count

        Returns:
            K = sum(v * rpm) / sum(v²), or 1.0 when the denominator is zero
        """
        rpm = np.asarray(rpm, dtype=float)
        speed = np.asarray(speed_mps, dtype=float)
        accel = np.asarray(accel, dtype=float)

        with np.errstate(invalid='ignore'):
            mask = ((np.abs(accel) < AnalysisConstants.GEAR_FIT_MAX_ABS_ACCEL)
                    & (speed > min_speed_mps)
                    & np.isfinite(rpm)
                    & np.isfinite(speed))

            if np.count_nonzero(mask) < AnalysisConstants.GEAR_FIT_MIN_SAMPLES:
                logger.debug("Gear fit: only %d steady samples, falling back to speed gate only",
                             np.count_nonzero(mask))
                mask = speed > min_speed_mps

        v = speed[mask]
        n = rpm[mask]

        v_dot_v = float(np.dot(v, v))
        if v_dot_v == 0:
            logger.debug("Gear fit: degenerate regression, using K=%.1f",
                         AnalysisConstants.GEAR_FIT_FALLBACK_K)
            return AnalysisConstants.GEAR_FIT_FALLBACK_K

        return float(np.dot(v, n)) / v_dot_v
