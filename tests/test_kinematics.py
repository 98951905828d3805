import math
import threading

import numpy as np
import pytest

from insole_gait.config import GaitConfig
from insole_gait.contact import detect_steps
from insole_gait.kinematics import (AnalysisCancelled, build_pose_samples, estimate_step_lengths,
                                    integrate_step_length, is_zero_velocity, rotate_to_world,
                                    pose_times, step_window, window_bounds)
from insole_gait.models import PoseSample, StepEvent
from insole_gait.simulation import simulate_limb


def _pose(make_sample, t, ax, zero_velocity=False, dt=0.1):
    return PoseSample(sample=make_sample(t), ax_world=ax, ay_world=0.0, az_dynamic=0.0,
                      zero_velocity=zero_velocity, dt=dt)


def test_rotate_to_world_level():
    assert rotate_to_world((0.1, 0.2, 1.0), 0.0, 0.0) == pytest.approx((0.1, 0.2, 1.0))


def test_rotate_to_world_pitched():
    p = math.radians(30.0)
    ax, ay, az = rotate_to_world((0.0, 0.0, 1.0), p, 0.0)
    assert ax == pytest.approx(math.sin(p))
    assert ay == pytest.approx(0.0)
    assert az == pytest.approx(math.cos(p))


def test_rotate_to_world_rolled():
    r = math.radians(20.0)
    ax, ay, az = rotate_to_world((0.0, 1.0, 0.0), 0.0, r)
    assert ax == pytest.approx(0.0)
    assert ay == pytest.approx(1.0)
    assert az == pytest.approx(math.sin(r))


def test_zero_velocity(make_sample):
    assert is_zero_velocity(make_sample(0, 100.0))
    assert not is_zero_velocity(make_sample(0, 50.0))                     # not above threshold
    assert not is_zero_velocity(make_sample(0, 100.0, gyro=(0, 60.0, 0)))
    assert not is_zero_velocity(make_sample(0, 100.0, accel=(0, 0, 1.3)))
    assert is_zero_velocity(make_sample(0, 100.0, accel=(0, 0, 1.15), gyro=(0, 0, 49.0)))


def test_integration_with_damping(make_sample):
    poses = [_pose(make_sample, t, 1.0) for t in (0, 100)]
    # v1 = 0.1*0.95, x1 = v1*0.1; v2 = (v1 + 0.1)*0.95, x2 = x1 + v2*0.1
    assert integrate_step_length(poses) == pytest.approx(0.0095 + 0.018525)


def test_integration_without_damping(make_sample):
    config = GaitConfig(velocity_damping=1.0)
    poses = [_pose(make_sample, t, 1.0) for t in (0, 100, 200)]
    assert integrate_step_length(poses, config) == pytest.approx(0.06)


def test_zero_velocity_resets_velocity(make_sample):
    poses = [_pose(make_sample, t, 1.0, zero_velocity=True) for t in (0, 100, 200)]
    assert integrate_step_length(poses) == 0.0


def test_backward_displacement_clamped(make_sample):
    poses = [_pose(make_sample, t, -1.0) for t in (0, 100)]
    assert integrate_step_length(poses) == 0.0
    assert integrate_step_length(poses, GaitConfig(clamp_backward_steps=False)) < 0.0


def test_build_pose_samples_stationary(stationary_imu):
    poses = build_pose_samples(stationary_imu)
    assert len(poses) == len(stationary_imu)
    for p in poses:
        assert p.ax_world == pytest.approx(0.0)
        assert p.az_dynamic == pytest.approx(0.0)
        assert p.dt == pytest.approx(0.01)
        # Unloaded foot never counts as zero velocity
        assert not p.zero_velocity


def test_build_pose_samples_clamps_gaps(make_sample):
    samples = [make_sample(0, 100.0), make_sample(20, 100.0), make_sample(5000, 100.0)]
    poses = build_pose_samples(samples)
    assert [p.dt for p in poses] == pytest.approx([0.01, 0.02, 0.01])
    assert all(p.zero_velocity for p in poses)


def test_step_window_is_inclusive(make_sample):
    poses = [_pose(make_sample, t, 0.0) for t in range(0, 500, 100)]
    step = StepEvent('left', 100, 300, 200, 200)
    assert [p.timestamp for p in step_window(poses, step)] == [100, 200, 300]


def test_step_lengths_one_per_step(walk):
    left = [s for s in walk if s.limb == 'left']
    steps = detect_steps(left)
    lengths = estimate_step_lengths(build_pose_samples(left), steps)
    assert len(lengths) == len(steps)
    assert all(length >= 0.0 for length in lengths)


def test_cancelled_before_start(stationary_imu):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(AnalysisCancelled):
        build_pose_samples(stationary_imu, cancel_event=cancel)


def test_step_window_matches_full_scan():
    left = simulate_limb('left', duration_s=30.0, rate_hz=100.0, noise=0.5)
    poses = build_pose_samples(left)
    steps = detect_steps(left)
    times = pose_times(poses)
    assert len(steps) > 20
    for step in steps:
        expected = [p for p in poses if step.start_time <= p.timestamp <= step.end_time]
        assert step_window(poses, step, times) == expected


def test_window_bounds_edges():
    times = np.array([0.0, 10.0, 20.0, 30.0])
    assert window_bounds(times, 10.0, 20.0) == (1, 3)
    assert window_bounds(times, 5.0, 6.0) == (1, 1)
    assert window_bounds(times, 40.0, 50.0) == (4, 4)
