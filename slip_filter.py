"""
Sample quality filtering for curve construction
"""

import logging

import numpy as np

from constants import AnalysisConstants

logger = logging.getLogger(__name__)


class SlipFilter:
    """Handles rejection of slipping, coasting and slow samples"""

    def __init__(self, max_slip: float, min_speed_mps: float):
        self.max_slip = max_slip
        self.min_speed_mps = min_speed_mps

    @staticmethod
    def slip_ratio(rpm: np.ndarray, speed_mps: np.ndarray, k: float) -> np.ndarray:
        """Fractional deviation of observed RPM from K*v"""
        expected_rpm = k * np.asarray(speed_mps, dtype=float)
        return np.asarray(rpm, dtype=float) / np.maximum(AnalysisConstants.EPSILON, expected_rpm) - 1.0

    def valid_mask(self, accel: np.ndarray, slip: np.ndarray, speed_mps: np.ndarray,
                   torque: np.ndarray) -> np.ndarray:
        """
        Samples usable for the torque curve

        Keeps accelerating samples (the model assumes power delivery) with
        |slip| below the limit, speed above the gate and a finite torque.
        """
        with np.errstate(invalid='ignore'):
            accelerating = np.asarray(accel) > 0.0
            gripping = np.abs(slip) < self.max_slip
            moving = np.asarray(speed_mps) > self.min_speed_mps
            finite = np.isfinite(torque)

        mask = accelerating & gripping & moving & finite

        logger.debug(
            "Slip filter kept %d/%d samples (accelerating=%d, |slip|<%.3f=%d, v>%.1f=%d, finite=%d)",
            np.count_nonzero(mask), len(mask), np.count_nonzero(accelerating), self.max_slip,
            np.count_nonzero(gripping), self.min_speed_mps, np.count_nonzero(moving),
            np.count_nonzero(finite),
        )
        return mask
