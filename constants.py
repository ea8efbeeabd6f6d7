"""
Constants and analysis parameters for torque/power curve estimation
"""

import numpy as np


class AnalysisConstants:
    """Constants used throughout the torque/power analysis"""
    
    # Physics constants
    GRAVITY_MS2 = 9.80665
    RPM_TO_RAD_PER_SEC = 2 * np.pi / 60
    KW_CONVERSION = 9549.0  # N·m·RPM -> kW
    KMH_PER_MS = 3.6
    
    # ISA reference atmosphere for the air density estimate
    AIR_DENSITY_KG_M3 = 1.225
    REFERENCE_PRESSURE_HPA = 1013.25
    REFERENCE_TEMPERATURE_K = 288.15
    CELSIUS_TO_KELVIN = 273.15
    
    # Numeric guards
    EPSILON = 1e-6
    DEFAULT_TIME_STEP = 0.1  # s, used when a series is too short to infer dt
    
    # Pipeline support thresholds
    MIN_SAMPLES = 10
    MIN_BIN_SAMPLES = 5
    MIN_CURVE_RPM = 1000.0
    RPM_RANGE_PERCENTILES = (1.0, 99.0)
    
    # Gear ratio regression
    GEAR_FIT_MAX_ABS_ACCEL = 0.5  # m/s²
    GEAR_FIT_MIN_SAMPLES = 10
    GEAR_FIT_FALLBACK_K = 1.0
    
    # Coastdown (deceleration) fit
    COASTDOWN_MIN_SPEED = 3.0  # m/s
    COASTDOWN_DECEL_THRESHOLD = -0.2  # m/s²
    COASTDOWN_RELAXED_DECEL_THRESHOLD = -0.05  # m/s²
    COASTDOWN_PREFERRED_SAMPLES = 20
    COASTDOWN_MIN_SAMPLES = 10
    CDA_LIMITS = (0.3, 1.2)  # m²
    CRR_LIMITS = (0.0, 0.03)
    
    # Ingestion heuristics
    KMH_DETECTION_MEAN_SPEED = 40.0
    
    # Analysis defaults (kart on a typical day)
    DEFAULT_MASS_KG = 165.0
    DEFAULT_TEMP_C = 25.0
    DEFAULT_PRESSURE_HPA = 1013.25
    DEFAULT_ETA = 0.90
    DEFAULT_CDA = 0.60
    DEFAULT_CRR = 0.015
    DEFAULT_RPM_BIN = 200.0
    DEFAULT_PERCENTILE = 95.0
    DEFAULT_MAX_SLIP = 0.05
    DEFAULT_MIN_SPEED_MPS = 5.0
    DEFAULT_SMOOTH_WINDOW_BINS = 3
    DEFAULT_ACCEL_SMOOTH_WIN = 5
