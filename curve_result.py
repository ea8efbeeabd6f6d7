"""
Result of one curve computation
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np


class CurveError(str, Enum):
    """Reasons a grouping produced no curve"""
    INSUFFICIENT_SAMPLES = 'InsufficientSamples'
    NO_VALID_SAMPLES = 'NoValidSamples'
    NO_BINNED_SAMPLES = 'NoBinnedSamples'


@dataclass(frozen=True)
class CurveResult:
    """Torque/power curve for one grouping plus the constants used to build it"""
    rpm_curve: Optional[np.ndarray]
    torque_curve: Optional[np.ndarray]  # N·m
    power_curve: Optional[np.ndarray]  # kW
    k: float  # RPM per m/s
    rho: float  # kg/m³
    cda: float  # m²
    crr: float
    r_over_gr: float
    coastdown_applied: bool = False
    n_valid_samples: int = 0
    error: Optional[CurveError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, error: CurveError, k: float = np.nan, rho: float = np.nan,
               cda: float = np.nan, crr: float = np.nan, r_over_gr: float = np.nan,
               coastdown_applied: bool = False, n_valid_samples: int = 0) -> 'CurveResult':
        """Error result; diagnostics computed before the failing stage are kept"""
        return cls(None, None, None, k, rho, cda, crr, r_over_gr,
                   coastdown_applied, n_valid_samples, error)

    def peak_torque(self) -> Tuple[float, float]:
        """(rpm, N·m) at the torque maximum"""
        self._require_curves()
        idx = int(np.argmax(self.torque_curve))
        return float(self.rpm_curve[idx]), float(self.torque_curve[idx])

    def peak_power(self) -> Tuple[float, float]:
        """(rpm, kW) at the power maximum"""
        self._require_curves()
        idx = int(np.argmax(self.power_curve))
        return float(self.rpm_curve[idx]), float(self.power_curve[idx])

    def _require_curves(self):
        if not self.ok:
            raise ValueError(f"No curve available: {self.error.value}")
