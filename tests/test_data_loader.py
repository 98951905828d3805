import pandas as pd
import pytest

from insole_gait.data_loader import (load_session_csv, samples_from_frame, samples_to_frame,
                                     split_by_limb)


def _row(time, foot, accelx=0.0, fsr1=100.0, **extra):
    row = {'time': time, 'deviceId': 'dev1', 'foot': foot,
           'accelX': accelx, 'accelY': 0.0, 'accelZ': 1.0,
           'gyroX': 0.0, 'gyroY': 0.0, 'gyroZ': 0.0,
           'fsr1': fsr1, 'fsr2': 0.0, 'fsr3': 0.0, 'fsr4': 0.0, 'fsr5': 0.0,
           'heelRaw': 25.0, 'sessionId': 'abc'}
    row.update(extra)
    return row


def test_iso_time_and_mixed_case_columns():
    df = pd.DataFrame([
        _row('2024-01-01T00:00:00.050Z', 'Left'),
        _row('2024-01-01T00:00:00.000Z', 'left'),
    ])
    samples = samples_from_frame(df)
    assert [s.timestamp for s in samples] == [1704067200000.0, 1704067200050.0]
    s = samples[0]
    assert s.limb == 'left'
    assert s.pressure == (100.0, 0.0, 0.0, 0.0, 0.0)
    assert s.heel == 25.0
    assert s.device_id == 'dev1'
    assert s.session_id == 'abc'


def test_malformed_rows_dropped():
    df = pd.DataFrame([
        _row('2024-01-01T00:00:00.000Z', 'left'),
        _row('2024-01-01T00:00:00.010Z', 'left', accelx='abc'),
        _row('not a time', 'left'),
        _row('2024-01-01T00:00:00.020Z', 'middle'),
        _row('2024-01-01T00:00:00.030Z', 'right', fsr1=None),
        _row('2024-01-01T00:00:00.040Z', 'right'),
    ])
    samples = samples_from_frame(df)
    assert [s.limb for s in samples] == ['left', 'right']


def test_limb_filter():
    df = pd.DataFrame([_row('2024-01-01T00:00:00.000Z', 'left'),
                       _row('2024-01-01T00:00:00.010Z', 'right')])
    assert [s.limb for s in samples_from_frame(df, limb='right')] == ['right']


def test_missing_column():
    df = pd.DataFrame([_row('2024-01-01T00:00:00.000Z', 'left')]).drop(columns=['gyroZ'])
    with pytest.raises(ValueError, match='gyroz'):
        samples_from_frame(df)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_session_csv(tmp_path / 'nope.csv')


def test_csv_export_reloads(tmp_path, walk):
    path = tmp_path / 'session.csv'
    samples_to_frame(walk[:40]).to_csv(path, index=False)
    loaded = load_session_csv(path)
    assert len(loaded) == 40
    by_limb = split_by_limb(loaded)
    assert len(by_limb['left']) == len(by_limb['right']) == 20
    expected = [s for s in walk if s.limb == 'left'][3]
    assert by_limb['left'][3].pressure == pytest.approx(expected.pressure)
    assert by_limb['left'][3].timestamp == expected.timestamp
    assert by_limb['left'][0].session_id is None
