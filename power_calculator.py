"""
Traction force and engine torque calculation
"""

import numpy as np

from constants import AnalysisConstants
from session_params import SessionParams


class TractionForceCalculator:
    """Handles propulsive force and engine torque from vehicle dynamics"""

    def __init__(self, params: SessionParams, rho: float, cda: float, crr: float):
        self.params = params
        self.rho = rho
        self.cda = cda
        self.crr = crr

    def traction_force(self, accel: np.ndarray, speed_mps: np.ndarray) -> np.ndarray:
        """
        Force at the contact patch needed for the observed acceleration

        F = m*a + 0.5*rho*CdA*v² + Crr*m*g
        """
        mass_kg = self.params.mass_kg
        accel = np.asarray(accel, dtype=float)
        speed = np.asarray(speed_mps, dtype=float)

        # Force required to accelerate the vehicle
        force_n = mass_kg * accel
        aero_drag = 0.5 * self.rho * self.cda * speed * speed
        rolling_resistance_force = self.crr * mass_kg * AnalysisConstants.GRAVITY_MS2

        return force_n + aero_drag + rolling_resistance_force

    @staticmethod
    def r_over_gr(k: float) -> float:
        """
        Effective wheel radius over overall gear ratio (m)

        With K in RPM per m/s, engine angular speed is K*v*2π/60, so the
        radius-over-ratio constant is 2π / (60*K).
        """
        return AnalysisConstants.RPM_TO_RAD_PER_SEC / max(k, AnalysisConstants.EPSILON)

    def engine_torque(self, accel: np.ndarray, speed_mps: np.ndarray, k: float) -> np.ndarray:
        """
        Engine torque in N·m, T = F * rOverGr / eta

        A configured efficiency of 0 is treated as 1e-6.
        """
        eta = max(self.params.eta, AnalysisConstants.EPSILON)
        with np.errstate(over='ignore', invalid='ignore'):
            return self.traction_force(accel, speed_mps) * self.r_over_gr(k) / eta
