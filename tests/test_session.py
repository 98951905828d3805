import pickle
import threading
import time
from dataclasses import asdict

import pytest

from insole_gait.axis_mapping import AxisMapping, AxisSpec
from insole_gait.contact import detect_steps
from insole_gait.quaternion import Quaternion
from insole_gait.session import GaitSession, LimbState, SampleDispatcher


def _close_to_identity(q, tol=1e-9):
    return (abs(q.w - 1.0) < tol and abs(q.x) < tol and abs(q.y) < tol and abs(q.z) < tol)


def test_live_step_count_matches_batch(walk):
    session = GaitSession('s1')
    out = session.process_samples(walk)
    assert len(out) == len(walk)
    for limb in ('left', 'right'):
        batch = detect_steps([s for s in walk if s.limb == limb])
        assert session.limb(limb).step_count == len(batch)
        flagged = [p.step for p in out if p.limb == limb and p.is_step]
        assert flagged == batch


def test_processed_sample_fields(make_sample):
    session = GaitSession()
    p = session.process_sample(make_sample(1234.0, 100.0, limb='right'))
    assert p.timestamp == 1234.0
    assert p.limb == 'right'
    assert p.gait_phase == 'stance'
    assert p.step_count == 0
    assert not p.is_step
    assert abs(p.quaternion.norm() - 1.0) < 1e-9
    assert set(p.orientation()) == {'yaw', 'pitch', 'roll', 'quaternion'}


def test_unknown_limb(make_sample):
    session = GaitSession()
    with pytest.raises(ValueError):
        session.process_sample(make_sample(0, limb='middle'))


def test_limbs_are_independent(make_sample):
    session = GaitSession()
    for i in range(20):
        session.process_sample(make_sample(i * 10, gyro=(0.0, 0.0, 200.0), limb='left'))
    assert not _close_to_identity(session.limb('left').orientation())
    assert _close_to_identity(session.limb('right').orientation())


def test_axis_mapping_applied_before_fusion(make_sample):
    mapping = AxisMapping(x=AxisSpec(1, -1), y=AxisSpec(0, 1), z=AxisSpec(2, 1))
    state = LimbState('left', mapping=mapping)
    p = state.process(make_sample(0, accel=(1.0, 2.0, 3.0), gyro=(4.0, 5.0, 6.0)))
    assert p.sample.accel == (-2.0, 1.0, 3.0)
    assert p.sample.gyro == (-5.0, 4.0, 6.0)


def test_remap_resets_orientation(make_sample):
    state = LimbState('left')
    for i in range(20):
        state.process(make_sample(i * 10, gyro=(0.0, 0.0, 200.0)))
    state.set_axis_mapping(AxisMapping.identity())
    assert state.orientation() == Quaternion.identity()
    assert state.detector.phase == 'swing'


def test_rezero(make_sample):
    state = LimbState('left')
    for i in range(30):
        state.process(make_sample(i * 10, accel=(0.3, 0.1, 0.95), gyro=(10.0, 0.0, 90.0)))
    state.rezero()
    assert _close_to_identity(state.orientation(), 1e-12)
    state.clear_offset()
    assert not _close_to_identity(state.orientation())


def test_calibration_state_restores(make_sample):
    session = GaitSession()
    mapping = AxisMapping(x=AxisSpec(2, 1), y=AxisSpec(1, -1), z=AxisSpec(0, 1))
    session.set_axis_mapping('left', mapping)
    for i in range(10):
        session.process_sample(make_sample(i * 10, accel=(1.0, 0.0, 0.0), gyro=(30.0, 0.0, 0.0)))
    session.rezero('left')
    state = session.calibration_state('left')

    other = GaitSession()
    other.restore_calibration('left', state)
    assert other.limb('left').mapping == mapping
    assert other.calibration_state('left')['offset'] == pytest.approx(state['offset'])
    assert other.calibration_state('right') == {'mapping': None, 'offset': None}


def test_dispatcher_delivers_to_all_sinks(make_sample):
    first, second = [], []
    with SampleDispatcher([first.append, second.append]) as dispatcher:
        session = GaitSession(dispatcher=dispatcher)
        for i in range(5):
            session.process_sample(make_sample(i * 10))
    assert len(first) == 5
    assert [p.timestamp for p in second] == [0.0, 10.0, 20.0, 30.0, 40.0]


def test_failing_sink_does_not_stop_others():
    received = []

    def broken(item):
        raise RuntimeError('storage down')

    dispatcher = SampleDispatcher([broken, received.append])
    dispatcher.start()
    for i in range(3):
        dispatcher.submit(i)
    dispatcher.flush()
    dispatcher.stop()
    assert received == [0, 1, 2]


def test_full_queue_drops_without_blocking():
    dispatcher = SampleDispatcher(maxsize=2)
    assert dispatcher.submit('a')
    assert dispatcher.submit('b')
    assert not dispatcher.submit('c')
    assert dispatcher.dropped == 1


def test_slow_sink_does_not_block_processing(make_sample):
    release = threading.Event()
    dispatcher = SampleDispatcher([lambda item: release.wait(5.0)], maxsize=1)
    dispatcher.start()
    session = GaitSession(dispatcher=dispatcher)
    start = time.monotonic()
    for i in range(50):
        session.process_sample(make_sample(i * 10))
    elapsed = time.monotonic() - start
    release.set()
    dispatcher.stop()
    assert elapsed < 2.0
    assert dispatcher.dropped > 0


def test_processed_sample_serializes(make_sample):
    p = GaitSession('s2').process_sample(make_sample(0, 100.0, gyro=(10.0, 0.0, 0.0)))
    as_dict = asdict(p)
    assert as_dict['quaternion'] == p.quaternion
    assert as_dict['sample']['pressure'] == p.sample.pressure
    assert pickle.loads(pickle.dumps(p)) == p


def test_stop_gives_up_on_stuck_sink():
    release = threading.Event()
    dispatcher = SampleDispatcher([lambda item: release.wait()])
    dispatcher.start()
    dispatcher.submit('x')
    dispatcher.submit('y')
    start = time.monotonic()
    try:
        assert dispatcher.stop(timeout=0.2) is False
        assert time.monotonic() - start < 1.5
    finally:
        release.set()


def test_stop_reports_clean_drain():
    received = []
    dispatcher = SampleDispatcher([received.append])
    dispatcher.start()
    dispatcher.submit(1)
    assert dispatcher.stop(timeout=2.0) is True
    assert received == [1]


def test_flush_requires_running_worker():
    dispatcher = SampleDispatcher()
    dispatcher.submit('queued')
    with pytest.raises(RuntimeError):
        dispatcher.flush()


def test_flush_with_timeout_on_stuck_sink():
    release = threading.Event()
    dispatcher = SampleDispatcher([lambda item: release.wait()])
    dispatcher.start()
    dispatcher.submit('x')
    try:
        assert dispatcher.flush(timeout=0.1) is False
    finally:
        release.set()
        dispatcher.stop()
