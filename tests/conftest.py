import pytest

from insole_gait.models import Sample
from insole_gait.simulation import simulate_walk


def _sample(t, pressure=0.0, accel=(0.0, 0.0, 1.0), gyro=(0.0, 0.0, 0.0),
            limb='left', heel=0.0):
    if isinstance(pressure, (int, float)):
        pressure = (float(pressure), 0.0, 0.0, 0.0, 0.0)
    return Sample(timestamp=float(t), limb=limb, accel=tuple(accel), gyro=tuple(gyro),
                  pressure=tuple(pressure), heel=heel)


@pytest.fixture
def make_sample():
    return _sample


@pytest.fixture
def square_wave():
    """1 Hz pressure square wave: 500 for 600 ms, 0 for 400 ms, 5 cycles at 50 ms."""
    samples = []
    for cycle in range(5):
        for k in range(20):
            t = cycle * 1000 + k * 50
            samples.append(_sample(t, 500.0 if k * 50 < 600 else 0.0))
    return samples


@pytest.fixture
def stationary_imu():
    """Motionless foot, gravity on +Z, 100 samples at 10 ms."""
    return [_sample(i * 10, 0.0) for i in range(100)]


@pytest.fixture
def walk():
    return simulate_walk(duration_s=10.0)
