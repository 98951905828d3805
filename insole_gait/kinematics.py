"""
Kinematic integration
=====================

Body-frame acceleration -> world frame (zero yaw) using the complementary
filter's pitch/roll, gravity removal, zero-velocity detection, and
per-step forward displacement by damped double integration with ZUPT.
"""

import math

import numpy as np

from .attitude import ComplementaryFilter, clamp_dt
from .config import GaitConfig
from .models import PoseSample


__all__ = ['AnalysisCancelled', 'check_cancelled', 'rotate_to_world', 'is_zero_velocity',
           'build_pose_samples', 'integrate_step_length', 'pose_times', 'window_bounds',
           'step_window', 'estimate_step_lengths']


class AnalysisCancelled(RuntimeError):
    """Batch analysis stopped because the caller set the cancel event."""


def check_cancelled(cancel_event):
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelled("Analysis cancelled")


def rotate_to_world(accel, pitch, roll):
    """
    Rotate body-frame acceleration into the world frame with yaw = 0.

    Parameters:
    -----------
    accel : 3 floats
        Body-frame acceleration (g)
    pitch, roll : float
        Tilt in radians

    Returns:
    --------
    ax_world, ay_world, az_world : float (g)
    """
    ax, ay, az = accel
    cp, sp = math.cos(pitch), math.sin(pitch)
    cr, sr = math.cos(roll), math.sin(roll)

    ax_world = cp * ax + sr * sp * ay + cr * sp * az
    ay_world = cp * ay
    az_world = -sp * ax + sr * cp * ay + cr * cp * az
    return ax_world, ay_world, az_world


def is_zero_velocity(sample, config=None):
    """Foot loaded and nearly static: a proxy for genuine stance."""
    config = config or GaitConfig()
    gyro_mag = float(np.linalg.norm(sample.gyro))
    accel_mag = float(np.linalg.norm(sample.accel))
    return (sample.pressure_sum > config.contact_threshold
            and gyro_mag < config.zupt_gyro_dps
            and abs(accel_mag - 1.0) < config.zupt_accel_tolerance_g)


def build_pose_samples(samples, config=None, cancel_event=None):
    """
    Run the complementary filter over a single-limb batch and derive
    world-frame acceleration and the zero-velocity flag for each sample.

    Returns:
    --------
    list of PoseSample
    """
    config = config or GaitConfig()
    tilt = ComplementaryFilter(config.complementary_alpha,
                               config.sample_interval_s,
                               config.max_gap_s)
    g = config.gravity

    poses = []
    prev_t = None
    for i, s in enumerate(samples):
        if i % 1000 == 0:
            check_cancelled(cancel_event)

        raw_dt = None if prev_t is None else (s.timestamp - prev_t) / 1000.0
        dt = clamp_dt(raw_dt, config.sample_interval_s, config.max_gap_s)
        prev_t = s.timestamp

        tilt.update(s.gyro, s.accel, dt)
        pitch, roll = tilt.radians()
        ax_w, ay_w, az_w = rotate_to_world(s.accel, pitch, roll)

        poses.append(PoseSample(
            sample=s,
            ax_world=ax_w * g,
            ay_world=ay_w * g,
            az_dynamic=(az_w - 1.0) * g,
            zero_velocity=is_zero_velocity(s, config),
            dt=dt,
        ))
    return poses


def integrate_step_length(poses, config=None):
    """
    Forward displacement over one contact window.

    v += a*dt, forced to 0 on zero-velocity samples, damped every sample,
    x += v*dt. Backward displacement is clamped to zero unless
    ``config.clamp_backward_steps`` is off.
    """
    config = config or GaitConfig()
    v = 0.0
    x = 0.0
    for p in poses:
        v += p.ax_world * p.dt
        if p.zero_velocity:
            v = 0.0
        v *= config.velocity_damping
        x += v * p.dt
    if config.clamp_backward_steps:
        return max(0.0, x)
    return x


def pose_times(poses):
    """Timestamps of a time-ordered pose list, for window lookups."""
    return np.fromiter((p.timestamp for p in poses), dtype=np.float64, count=len(poses))


def window_bounds(times, start, end):
    """Slice bounds of the inclusive [start, end] window in sorted ``times``."""
    lo = int(np.searchsorted(times, start, side='left'))
    hi = int(np.searchsorted(times, end, side='right'))
    return lo, hi


def step_window(poses, step, times=None):
    """Pose samples inside a step's contact interval (inclusive)."""
    if times is None:
        times = pose_times(poses)
    lo, hi = window_bounds(times, step.start_time, step.end_time)
    return poses[lo:hi]


def estimate_step_lengths(poses, steps, config=None, cancel_event=None):
    """
    Step length (m) for each StepEvent.

    Parameters:
    -----------
    poses : list of PoseSample
        Output of build_pose_samples, time ordered
    steps : list of StepEvent

    Returns:
    --------
    list of float, one per step
    """
    config = config or GaitConfig()
    times = pose_times(poses)
    lengths = []
    for step in steps:
        check_cancelled(cancel_event)
        lengths.append(integrate_step_length(step_window(poses, step, times), config))
    return lengths
