"""
Synthetic walking data
======================

Generates two-limb insole samples following a four-phase gait cycle
(heel strike, mid-stance, toe-off, swing); the right limb lags the left by
half a cycle. Used for demos and tests.
"""

import math

import numpy as np

from .models import Sample

__all__ = ['gait_phase_reading', 'simulate_limb', 'simulate_walk']

HEEL_STRIKE_END = 0.2
MID_STANCE_END = 0.5
TOE_OFF_END = 0.7

SWING_GYRO_DPS = 250.0


def gait_phase_reading(phase):
    """
    Nominal reading at a point of the gait cycle.

    Parameters:
    -----------
    phase : float
        Position in the cycle, 0..1

    Returns:
    --------
    accel (g), gyro (deg/s), pressure (5 values), heel
    """
    gyro = (0.0, 0.0, 0.0)
    if phase < HEEL_STRIKE_END:
        tilt = math.radians(20.0)
        accel = (math.sin(tilt), 0.0, math.cos(tilt))
        pressure = (0.0, 0.0, 0.0, 0.0, 0.0)
        heel = 900.0
    elif phase < MID_STANCE_END:
        accel = (0.0, 0.0, 1.0)
        pressure = (0.0, 0.0, 300.0, 600.0, 600.0)
        heel = 200.0
    elif phase < TOE_OFF_END:
        tilt = math.radians(-30.0)
        accel = (math.sin(tilt), 0.0, math.cos(tilt))
        pressure = (900.0, 800.0, 800.0, 100.0, 100.0)
        heel = 0.0
    else:
        swing = (phase - TOE_OFF_END) / (1.0 - TOE_OFF_END)
        accel = (5.0 / 9.81, 0.0, 1.0)
        gyro = (0.0, -SWING_GYRO_DPS * math.sin(math.pi * swing), 0.0)
        pressure = (0.0, 0.0, 0.0, 0.0, 0.0)
        heel = 0.0
    return accel, gyro, pressure, heel


def simulate_limb(limb, duration_s=10.0, rate_hz=20.0, cycle_s=1.2, start_ms=0.0,
                  noise=0.0, rng=None, device_id='sim001', session_id=None):
    """Time-ordered samples for one limb."""
    rng = rng or np.random.default_rng(42)
    offset = cycle_s / 2.0 if limb == 'right' else 0.0
    n = int(round(duration_s * rate_hz))

    samples = []
    for i in range(n):
        t = i / rate_hz
        phase = ((t + offset) % cycle_s) / cycle_s
        accel, gyro, pressure, heel = gait_phase_reading(phase)
        if noise > 0:
            accel = tuple(float(v) for v in np.asarray(accel) + rng.normal(0.0, noise * 0.05, 3))
            gyro = tuple(float(v) for v in np.asarray(gyro) + rng.normal(0.0, noise * 2.0, 3))
            pressure = tuple(max(0.0, float(v)) for v in np.asarray(pressure) + rng.normal(0.0, noise * 5.0, 5))
        samples.append(Sample(
            timestamp=start_ms + t * 1000.0,
            limb=limb,
            accel=tuple(accel),
            gyro=tuple(gyro),
            pressure=tuple(pressure),
            heel=heel,
            device_id=f'{device_id}-{limb}',
            session_id=session_id,
        ))
    return samples


def simulate_walk(duration_s=10.0, rate_hz=20.0, cycle_s=1.2, start_ms=0.0,
                  noise=0.0, seed=42, device_id='sim001', session_id=None):
    """Interleaved left/right samples sorted by timestamp."""
    rng = np.random.default_rng(seed)
    samples = []
    for limb in ('left', 'right'):
        samples.extend(simulate_limb(limb, duration_s, rate_hz, cycle_s, start_ms,
                                     noise, rng, device_id, session_id))
    samples.sort(key=lambda s: (s.timestamp, s.limb))
    return samples
