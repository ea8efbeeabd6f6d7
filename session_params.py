"""
Session parameters for a single curve computation
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from constants import AnalysisConstants


@dataclass(frozen=True)
class SessionParams:
    """Physics inputs and pipeline settings, read-only for the whole run"""
    mass_kg: float = AnalysisConstants.DEFAULT_MASS_KG
    temp_c: float = AnalysisConstants.DEFAULT_TEMP_C
    pressure_hpa: float = AnalysisConstants.DEFAULT_PRESSURE_HPA
    eta: float = AnalysisConstants.DEFAULT_ETA  # driveline efficiency
    cda: float = AnalysisConstants.DEFAULT_CDA  # m²
    crr: float = AnalysisConstants.DEFAULT_CRR
    use_coastdown_fit: bool = False
    rpm_bin: float = AnalysisConstants.DEFAULT_RPM_BIN
    percentile: float = AnalysisConstants.DEFAULT_PERCENTILE
    max_slip: float = AnalysisConstants.DEFAULT_MAX_SLIP
    min_speed_mps: float = AnalysisConstants.DEFAULT_MIN_SPEED_MPS
    smooth_window_bins: int = AnalysisConstants.DEFAULT_SMOOTH_WINDOW_BINS
    accel_smooth_win: int = AnalysisConstants.DEFAULT_ACCEL_SMOOTH_WIN
    accel_clip: Optional[float] = None  # m/s², symmetric
    
    def __post_init__(self):
        if self.mass_kg <= 0:
            raise ValueError(f"mass_kg must be positive, got {self.mass_kg}")
        if not 0.0 <= self.eta <= 1.0:
            raise ValueError(f"eta must be within [0, 1], got {self.eta}")
        if not 0.0 <= self.percentile <= 100.0:
            raise ValueError(f"percentile must be within [0, 100], got {self.percentile}")
        if self.rpm_bin <= 0:
            raise ValueError(f"rpm_bin must be positive, got {self.rpm_bin}")
        if self.max_slip < 0 or self.min_speed_mps < 0:
            raise ValueError("max_slip and min_speed_mps must not be negative")
        if self.accel_clip is not None and self.accel_clip < 0:
            raise ValueError(f"accel_clip must not be negative, got {self.accel_clip}")
        if self.pressure_hpa <= 0 or self.temp_c + AnalysisConstants.CELSIUS_TO_KELVIN <= 0:
            raise ValueError("pressure and absolute temperature must be positive")
    
    def replace(self, **changes) -> 'SessionParams':
        """Return a copy with the given fields changed"""
        return dataclasses.replace(self, **changes)
    
    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> 'SessionParams':
        """Build parameters from user-supplied key/values, rejecting unknown keys"""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown session parameter(s): {', '.join(unknown)}")
        return cls(**dict(values))
