"""
Data loading and normalization of lap-timer / data-logger CSV exports
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from constants import AnalysisConstants
from telemetry import TimeSeries

# Lazy imports for heavy dependencies
def _import_pandas():
    import pandas as pd
    return pd


SPEED_COLUMN_KEYS = ['speed gps', 'gps speed', 'speed', 'speed rear', 'v', 'velocity']
SNIFF_BYTES = 4096


@dataclass(frozen=True)
class ColumnMapping:
    """Source column names for each telemetry channel (None when absent)"""
    rpm: Optional[str] = None
    speed: Optional[str] = None
    time: Optional[str] = None
    lap: Optional[str] = None


@dataclass(frozen=True)
class LoadedFile:
    """One parsed log file, or the reason it could not be parsed"""
    filename: str
    session_name: str
    data: Optional[TimeSeries] = None
    error: Optional[str] = None


def detect_delimiter(sample: str) -> str:
    """Pick ';', ',' or tab by frequency, preferring ';' then ',' on ties"""
    semi = sample.count(';')
    comma = sample.count(',')
    tab = sample.count('\t')

    if semi >= max(comma, tab):
        return ';'
    if comma >= max(semi, tab):
        return ','
    return '\t'


def auto_map_columns(columns: Sequence[str]) -> ColumnMapping:
    """Find rpm/speed/time/lap columns by case-insensitive name"""
    cols: Dict[str, str] = {}
    for col in columns:
        cols.setdefault(str(col).lower(), col)

    speed_col = next((cols[key] for key in SPEED_COLUMN_KEYS if key in cols), None)

    time_col = cols.get('time') or cols.get('absolute time')
    if time_col is None:
        time_col = next((col for col in columns if str(col).lower().startswith('utc time')), None)

    return ColumnMapping(rpm=cols.get('rpm'), speed=speed_col, time=time_col, lap=cols.get('lap'))


def session_name_from_filename(filename: str) -> str:
    """File name without directory and extension"""
    base = os.path.basename(filename) or filename
    stem, ext = os.path.splitext(base)
    return stem if stem and ext else base


class DataLoader:
    """Handles CSV loading and conversion to a standardized TimeSeries"""

    def load_file(self, csv_path: str, session_name: Optional[str] = None) -> TimeSeries:
        """
        Load one CSV log

        Args:
            csv_path: Path to the CSV export
            session_name: Label for the samples, defaults to the file stem

        Returns:
            Normalized TimeSeries
        """
        pd = _import_pandas()
        session = session_name or session_name_from_filename(csv_path)

        try:
            with open(csv_path, 'r', encoding='utf-8', errors='replace') as f:
                sample = f.read(SNIFF_BYTES)
            if not sample.strip():
                raise ValueError("Empty CSV file")

            data = pd.read_csv(csv_path, sep=detect_delimiter(sample), encoding_errors='replace')
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise ValueError(f"Error loading CSV data: {e}")

        # Clean column names
        data.columns = [str(col).strip('"').strip() for col in data.columns]

        ts = self.to_time_series(data, auto_map_columns(list(data.columns)), session)
        print(f"Loaded {len(ts)} data points from {csv_path}")
        return ts

    def load_files(self, csv_paths: Sequence[str]) -> List[LoadedFile]:
        """Load several logs; a failing file is reported in its LoadedFile.error"""
        loaded = []
        for path in csv_paths:
            session = session_name_from_filename(path)
            try:
                loaded.append(LoadedFile(path, session, data=self.load_file(path, session)))
            except ValueError as e:
                loaded.append(LoadedFile(path, session, error=str(e)))
        return loaded

    @staticmethod
    def combine(files: Sequence[LoadedFile]) -> TimeSeries:
        """Concatenate the successfully loaded files"""
        return TimeSeries.concat(f.data for f in files if f.error is None and f.data is not None)

    @staticmethod
    def to_time_series(data: 'pd.DataFrame', mapping: ColumnMapping, session_name: str) -> TimeSeries:
        """
        Normalize raw columns into a TimeSeries

        Gaps are carried forward from the previous sample (back-filled at the
        start). Speed whose mean exceeds 40 is taken as km/h. Missing time
        defaults to a 10 Hz grid and missing lap numbers to lap 1.
        """
        n = len(data)

        if mapping.time and mapping.time in data.columns:
            t = DataLoader._numeric_column(data, mapping.time)
        else:
            t = np.arange(n) * AnalysisConstants.DEFAULT_TIME_STEP
        if n > 0:
            t = t - t[0]

        if not mapping.rpm or mapping.rpm not in data.columns:
            raise ValueError("RPM column not found")
        rpm = DataLoader._numeric_column(data, mapping.rpm)

        if not mapping.speed or mapping.speed not in data.columns:
            raise ValueError("Speed column not found")
        speed = DataLoader._numeric_column(data, mapping.speed)
        if n > 0 and speed.mean() > AnalysisConstants.KMH_DETECTION_MEAN_SPEED:
            speed = speed / AnalysisConstants.KMH_PER_MS

        if mapping.lap and mapping.lap in data.columns:
            pd = _import_pandas()
            lap_values = pd.to_numeric(data[mapping.lap], errors='coerce')
            lap = np.floor(lap_values.fillna(1).values).astype(np.int64)
        else:
            lap = np.ones(n, dtype=np.int64)

        return TimeSeries(t, rpm, speed, lap, np.full(n, session_name, dtype=object))

    @staticmethod
    def _numeric_column(data: 'pd.DataFrame', column: str) -> np.ndarray:
        pd = _import_pandas()
        values = pd.to_numeric(data[column], errors='coerce').ffill().bfill()
        return values.fillna(0.0).values.astype(float)
