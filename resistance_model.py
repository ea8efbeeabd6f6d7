"""
Air density and driving-resistance estimation
"""

import logging
from typing import Tuple

import numpy as np

from constants import AnalysisConstants

logger = logging.getLogger(__name__)

# Lazy imports for heavy dependencies
def _import_scipy_stats():
    from scipy import stats
    return stats


class ResistanceModel:
    """Handles ambient air density and coastdown calibration of CdA/Crr"""

    @staticmethod
    def air_density_simple(temp_c: float, pressure_hpa: float) -> float:
        """Ideal-gas density scaled from the ISA sea-level reference (kg/m³)"""
        temp_k = temp_c + AnalysisConstants.CELSIUS_TO_KELVIN
        return (AnalysisConstants.AIR_DENSITY_KG_M3
                * (pressure_hpa / AnalysisConstants.REFERENCE_PRESSURE_HPA)
                * (AnalysisConstants.REFERENCE_TEMPERATURE_K / temp_k))

    @staticmethod
    def estimate_resistances_from_decel(accel: np.ndarray, speed_mps: np.ndarray,
                                        mass_kg: float, rho: float) -> Tuple[float, float]:
        """
        Estimate CdA and Crr from unpowered deceleration

        While coasting, a = -(rho * CdA / 2m) * v² - Crr * g, so a straight-line
        fit of a against v² gives drag from the slope and rolling resistance
        from the intercept.

        Args:
            accel: Acceleration samples in m/s²
            speed_mps: Speed samples in m/s
            mass_kg: Vehicle + driver mass
            rho: Air density in kg/m³

        Returns:
            (cda, crr) clamped to plausible kart values, or (nan, nan) when
            too few deceleration samples qualify
        """
        accel = np.asarray(accel, dtype=float)
        speed = np.asarray(speed_mps, dtype=float)
        v2 = speed ** 2

        with np.errstate(invalid='ignore'):
            fast = speed > AnalysisConstants.COASTDOWN_MIN_SPEED
            mask = (accel < AnalysisConstants.COASTDOWN_DECEL_THRESHOLD) & fast

            if np.count_nonzero(mask) < AnalysisConstants.COASTDOWN_PREFERRED_SAMPLES:
                mask = (accel < AnalysisConstants.COASTDOWN_RELAXED_DECEL_THRESHOLD) & fast

        n_samples = int(np.count_nonzero(mask))
        if n_samples < AnalysisConstants.COASTDOWN_MIN_SAMPLES:
            logger.info("Coastdown fit unavailable: %d deceleration samples (need %d)",
                        n_samples, AnalysisConstants.COASTDOWN_MIN_SAMPLES)
            return np.nan, np.nan

        stats = _import_scipy_stats()
        try:
            fit = stats.linregress(v2[mask], accel[mask])
        except ValueError as e:
            # All v² identical: slope is undefined
            logger.info("Coastdown fit unavailable: %s", e)
            return np.nan, np.nan

        slope, intercept = fit.slope, fit.intercept
        if not (np.isfinite(slope) and np.isfinite(intercept)):
            logger.info("Coastdown fit unavailable: non-finite regression")
            return np.nan, np.nan

        cda = -2.0 * mass_kg * slope / max(rho, AnalysisConstants.EPSILON)
        crr = -intercept / AnalysisConstants.GRAVITY_MS2

        cda = float(np.clip(cda, *AnalysisConstants.CDA_LIMITS))
        crr = float(np.clip(crr, *AnalysisConstants.CRR_LIMITS))

        logger.debug("Coastdown fit over %d samples: CdA=%.3f m², Crr=%.4f", n_samples, cda, crr)
        return cda, crr
