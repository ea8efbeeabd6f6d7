"""
Standardized telemetry time series and logical groupings
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

# Lazy imports for heavy dependencies
def _import_pandas():
    import pandas as pd
    return pd


class GroupingMode(str, Enum):
    """How the combined telemetry is split into independent pipeline runs"""
    OVERALL = 'overall'
    BY_SESSION = 'by_session'
    BY_LAP = 'by_lap'


@dataclass(frozen=True)
class TimeSeries:
    """
    Index-aligned telemetry samples.

    t is in seconds starting at 0, rpm in rev/min, speed_mps in m/s,
    lap is a 1-based lap number and session the source label.
    """
    t: np.ndarray
    rpm: np.ndarray
    speed_mps: np.ndarray
    lap: np.ndarray
    session: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, 't', np.asarray(self.t, dtype=float))
        object.__setattr__(self, 'rpm', np.asarray(self.rpm, dtype=float))
        object.__setattr__(self, 'speed_mps', np.asarray(self.speed_mps, dtype=float))
        object.__setattr__(self, 'lap', np.asarray(self.lap, dtype=np.int64))
        object.__setattr__(self, 'session', np.asarray(self.session, dtype=object))

        lengths = {len(self.t), len(self.rpm), len(self.speed_mps), len(self.lap), len(self.session)}
        if len(lengths) != 1:
            raise ValueError(
                f"TimeSeries columns must share one length, got t={len(self.t)}, rpm={len(self.rpm)}, "
                f"speed={len(self.speed_mps)}, lap={len(self.lap)}, session={len(self.session)}"
            )

    def __len__(self) -> int:
        return len(self.t)

    @classmethod
    def empty(cls) -> 'TimeSeries':
        return cls([], [], [], [], [])

    @classmethod
    def from_arrays(cls, t, rpm, speed_mps, lap=None, session: str = 'session') -> 'TimeSeries':
        """Build a single-session series, defaulting every lap to 1"""
        n = len(t)
        lap = np.ones(n, dtype=np.int64) if lap is None else lap
        return cls(t, rpm, speed_mps, lap, np.full(n, session, dtype=object))

    def select(self, mask: np.ndarray) -> 'TimeSeries':
        """Return the samples where mask is True, keeping their order"""
        mask = np.asarray(mask, dtype=bool)
        return TimeSeries(self.t[mask], self.rpm[mask], self.speed_mps[mask],
                          self.lap[mask], self.session[mask])

    @classmethod
    def concat(cls, series: Iterable['TimeSeries']) -> 'TimeSeries':
        """Append series end to end (time is not re-based)"""
        series = list(series)
        if not series:
            return cls.empty()
        return cls(
            np.concatenate([s.t for s in series]),
            np.concatenate([s.rpm for s in series]),
            np.concatenate([s.speed_mps for s in series]),
            np.concatenate([s.lap for s in series]),
            np.concatenate([s.session for s in series]),
        )

    def sessions(self) -> List[str]:
        """Session labels in order of first appearance"""
        return list(dict.fromkeys(self.session.tolist()))

    def laps(self, sessions: Optional[Sequence[str]] = None) -> List[int]:
        """Sorted lap numbers present, optionally restricted to some sessions"""
        laps = self.lap
        if sessions:
            laps = laps[np.isin(self.session, list(sessions))]
        return sorted(set(int(lap) for lap in laps))

    def filter_selection(self, sessions: Optional[Sequence[str]] = None,
                         laps: Optional[Sequence[int]] = None) -> 'TimeSeries':
        """Keep only the chosen sessions and laps; an empty choice keeps everything"""
        mask = np.ones(len(self), dtype=bool)
        if sessions:
            mask &= np.isin(self.session, list(sessions))
        if laps:
            mask &= np.isin(self.lap, list(laps))
        return self.select(mask)

    @classmethod
    def from_frame(cls, frame: 'pd.DataFrame') -> 'TimeSeries':
        """Build from a DataFrame with columns t, rpm, speed_mps, lap, session"""
        return cls(frame['t'].values, frame['rpm'].values, frame['speed_mps'].values,
                   frame['lap'].values, frame['session'].values)

    def to_frame(self) -> 'pd.DataFrame':
        pd = _import_pandas()
        return pd.DataFrame({
            't': self.t,
            'rpm': self.rpm,
            'speed_mps': self.speed_mps,
            'lap': self.lap,
            'session': self.session,
        })


def group_time_series(ts: TimeSeries, mode: GroupingMode) -> Iterator[Tuple[str, TimeSeries]]:
    """
    Split telemetry into named, independent groupings

    Args:
        ts: Combined telemetry
        mode: overall, by_session or by_lap

    Yields:
        (name, series) pairs in order of first appearance; empty groups are skipped
    """
    mode = GroupingMode(mode)

    if mode == GroupingMode.OVERALL:
        if len(ts) > 0:
            yield 'All', ts
        return

    if mode == GroupingMode.BY_SESSION:
        for session in ts.sessions():
            group = ts.select(ts.session == session)
            if len(group) > 0:
                yield session, group
        return

    # by_lap: one group per (session, lap) pair
    pairs = dict.fromkeys(zip(ts.session.tolist(), ts.lap.tolist()))
    for session, lap in pairs:
        group = ts.select((ts.session == session) & (ts.lap == lap))
        if len(group) > 0:
            yield f"{session} | Lap {lap}", group
