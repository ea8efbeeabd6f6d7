"""
Signal conditioning: smoothing, differentiation and robust statistics
"""

import numpy as np

from constants import AnalysisConstants


class SignalConditioner:
    """Handles smoothing and differentiation of sampled telemetry"""

    @staticmethod
    def rolling_mean(data: np.ndarray, window: int) -> np.ndarray:
        """
        Centered moving average that shrinks at the edges instead of padding

        Each output i averages data[i - floor(w/2) : i + ceil(w/2)] clipped to
        the series bounds, so boundary samples average fewer points.

        Args:
            data: Input samples
            window: Window length in samples; values below 1 mean no smoothing

        Returns:
            Smoothed samples, same length as data
        """
        values = np.asarray(data, dtype=float)
        win = max(1, int(np.floor(window)))
        n = len(values)
        if win == 1 or n == 0:
            return values.copy()

        half_before = win // 2
        half_after = win - half_before  # ceil(win / 2)

        smoothed = np.empty(n)
        for i in range(n):
            start_idx = max(0, i - half_before)
            end_idx = min(n, i + half_after)
            smoothed[i] = values[start_idx:end_idx].sum() / (end_idx - start_idx)

        return smoothed

    @staticmethod
    def central_diff(y: np.ndarray, dt: float) -> np.ndarray:
        """
        First derivative with one-sided differences at the ends

        Interior points use (y[i+1] - y[i-1]) / 2dt, the first point a forward
        and the last point a backward difference. Fewer than 3 samples give zeros.
        """
        values = np.asarray(y, dtype=float)
        if len(values) < 3:
            return np.zeros(len(values))

        # A zero time step yields non-finite rates; the slip filter drops them later
        with np.errstate(divide='ignore', invalid='ignore'):
            return np.gradient(values, dt, edge_order=1)

    @staticmethod
    def mean_sample_interval(t: np.ndarray) -> float:
        """Mean time step over the whole series, (t[-1] - t[0]) / (N - 1)"""
        t = np.asarray(t, dtype=float)
        if len(t) < 2:
            return AnalysisConstants.DEFAULT_TIME_STEP
        return float((t[-1] - t[0]) / (len(t) - 1))

    @staticmethod
    def percentile(values: np.ndarray, p: float) -> float:
        """
        Linear-interpolation percentile

        Sorts the values, takes rank p/100 * (n - 1) and blends the two
        neighbouring elements; ranks beyond the end clamp to the maximum.
        """
        values = np.asarray(values, dtype=float)
        if len(values) == 0:
            raise ValueError("percentile of an empty sequence")
        p = min(max(float(p), 0.0), 100.0)
        return float(np.percentile(values, p))
