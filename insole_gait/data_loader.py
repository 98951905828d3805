"""
Data Loader
===========

Converts stored session tables (the sample-table layout written by the
recording backend) into time-ordered Sample records.

Expected columns (case-insensitive):
    time or timestamp, deviceid, foot,
    accelx, accely, accelz, gyrox, gyroy, gyroz,
    fsr1..fsr5, heelraw, [sessionid]

Rows with missing or non-numeric sensor fields are dropped.
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from .models import LIMBS, Sample

__all__ = ['ACCEL_COLUMNS', 'GYRO_COLUMNS', 'FSR_COLUMNS', 'NUMERIC_COLUMNS',
           'samples_from_frame', 'load_session_csv', 'split_by_limb', 'samples_to_frame']

logger = logging.getLogger(__name__)

ACCEL_COLUMNS = ['accelx', 'accely', 'accelz']
GYRO_COLUMNS = ['gyrox', 'gyroy', 'gyroz']
FSR_COLUMNS = ['fsr1', 'fsr2', 'fsr3', 'fsr4', 'fsr5']
NUMERIC_COLUMNS = ACCEL_COLUMNS + GYRO_COLUMNS + FSR_COLUMNS


def _timestamps_ms(df):
    """Epoch milliseconds from a numeric 'timestamp' or an ISO 'time' column."""
    if 'timestamp' in df.columns:
        return pd.to_numeric(df['timestamp'], errors='coerce')
    parsed = pd.to_datetime(df['time'], errors='coerce', utc=True)
    ms = pd.Series(np.nan, index=df.index, dtype=np.float64)
    valid = parsed.notna()
    ms[valid] = (parsed[valid] - pd.Timestamp(0, tz='UTC')) / pd.Timedelta(milliseconds=1)
    return ms


def samples_from_frame(df, limb=None):
    """
    Build Samples from a session DataFrame.

    Parameters:
    -----------
    df : pandas.DataFrame
        One row per sensor reading
    limb : str, optional
        Keep only 'left' or 'right' rows

    Returns:
    --------
    list of Sample, ordered by timestamp

    Raises:
    -------
    ValueError if a required column is missing
    """
    df = df.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]

    if 'time' not in df.columns and 'timestamp' not in df.columns:
        raise ValueError("Session table needs a 'time' or 'timestamp' column")
    missing = [c for c in NUMERIC_COLUMNS + ['foot'] if c not in df.columns]
    if missing:
        raise ValueError(f"Session table is missing columns: {missing}")

    if 'heelraw' not in df.columns:
        df['heelraw'] = 0.0
    if 'deviceid' not in df.columns:
        df['deviceid'] = ''
    df['deviceid'] = df['deviceid'].fillna('')

    df['t_ms'] = _timestamps_ms(df)
    for c in NUMERIC_COLUMNS + ['heelraw']:
        df[c] = pd.to_numeric(df[c], errors='coerce')
    df['heelraw'] = df['heelraw'].fillna(0.0)
    df['foot'] = df['foot'].astype(str).str.strip().str.lower()

    valid = df[NUMERIC_COLUMNS + ['t_ms']].notna().all(axis=1) & df['foot'].isin(LIMBS)
    dropped = int((~valid).sum())
    if dropped:
        logger.warning("Dropped %d malformed rows out of %d", dropped, len(df))
    df = df[valid]

    if limb is not None:
        df = df[df['foot'] == limb]
    df = df.sort_values('t_ms', kind='stable')

    has_session = 'sessionid' in df.columns
    samples = []
    for r in df.to_dict('records'):
        samples.append(Sample(
            timestamp=float(r['t_ms']),
            limb=r['foot'],
            accel=tuple(float(r[c]) for c in ACCEL_COLUMNS),
            gyro=tuple(float(r[c]) for c in GYRO_COLUMNS),
            pressure=tuple(float(r[c]) for c in FSR_COLUMNS),
            heel=float(r['heelraw']),
            device_id=str(r['deviceid']),
            session_id=str(r['sessionid']) if has_session and pd.notna(r['sessionid']) else None,
        ))
    return samples


def load_session_csv(csv_path, limb=None):
    """Load one session CSV export into Samples."""
    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"No session file at {csv_path}")
    return samples_from_frame(pd.read_csv(csv_path), limb=limb)


def split_by_limb(samples):
    """Dict limb -> that limb's samples in timestamp order."""
    out = {limb: [] for limb in LIMBS}
    for s in samples:
        out.setdefault(s.limb, []).append(s)
    for limb in out:
        out[limb].sort(key=lambda s: s.timestamp)
    return out


def samples_to_frame(samples):
    """Inverse of samples_from_frame, using the 'timestamp' column."""
    rows = []
    for s in samples:
        row = {'timestamp': s.timestamp, 'sessionid': s.session_id,
               'deviceid': s.device_id, 'foot': s.limb}
        row.update(dict(zip(ACCEL_COLUMNS, s.accel)))
        row.update(dict(zip(GYRO_COLUMNS, s.gyro)))
        row.update(dict(zip(FSR_COLUMNS, s.pressure)))
        row['heelraw'] = s.heel
        rows.append(row)
    return pd.DataFrame(rows, columns=['timestamp', 'sessionid', 'deviceid', 'foot']
                        + NUMERIC_COLUMNS + ['heelraw'])
