"""
Attitude estimation
===================

Two interchangeable orientation estimators behind one interface:

- MadgwickFilter: gradient-descent quaternion fusion of gyro and
  accelerometer, used for live orientation.
- ComplementaryFilter: pitch/roll blend of integrated gyro and
  accelerometer tilt, used by the batch analytics path.

Yaw is unobservable without a magnetometer. The Madgwick filter integrates
it from the gyro only; the complementary filter does not estimate it.
"""

import logging
import math

import numpy as np

from .quaternion import Quaternion

__all__ = ['clamp_dt', 'tilt_from_accel', 'AttitudeFilter', 'MadgwickFilter',
           'ComplementaryFilter', 'zero_offset', 'apply_offset']

logger = logging.getLogger(__name__)


def clamp_dt(dt, nominal, max_gap=0.5):
    """
    Sanitize a measured inter-sample interval.

    Missing, non-finite, non-positive or larger-than-``max_gap`` intervals
    are replaced by the nominal interval, so a reconnect or a clock jump
    never turns into one huge integration step.
    """
    if dt is None or not math.isfinite(dt) or dt <= 0 or dt > max_gap:
        if dt is not None:
            logger.debug("Clamping dt=%s to nominal %s", dt, nominal)
        return nominal
    return dt


def tilt_from_accel(accel):
    """
    Accelerometer-only tilt estimate.

    Returns:
    --------
    pitch, roll : float
        Degrees; pitch = atan2(ax, sqrt(ay^2 + az^2)), roll = atan2(ay, az)
    """
    ax, ay, az = accel
    pitch = math.degrees(math.atan2(ax, math.sqrt(ay * ay + az * az)))
    roll = math.degrees(math.atan2(ay, az))
    return pitch, roll


class AttitudeFilter:
    """Common interface: update(gyro, accel, dt), orientation(), reset()."""

    def update(self, gyro, accel, dt=None):
        raise NotImplementedError()

    def orientation(self):
        raise NotImplementedError()

    def reset(self):
        raise NotImplementedError()


class MadgwickFilter(AttitudeFilter):
    """
    Gradient-descent AHRS (IMU-only variant).

    Parameters:
    -----------
    beta : float
        Filter gain weighting the accelerometer correction
    sample_period : float
        Nominal interval in seconds between updates
    max_gap : float
        Intervals above this (s) are treated as one nominal step
    """

    def __init__(self, beta=0.1, sample_period=0.01, max_gap=0.5):
        self.beta = float(beta)
        self.sample_period = float(sample_period)
        self.max_gap = float(max_gap)
        self.quaternion = Quaternion.identity()
        self.skipped_updates = 0

    def reset(self):
        self.quaternion = Quaternion.identity()
        self.skipped_updates = 0

    def orientation(self):
        return self.quaternion

    def euler(self, degrees=False):
        return self.quaternion.to_euler(degrees=degrees)

    def update(self, gyro, accel, dt=None):
        """
        Fuse one sample.

        Parameters:
        -----------
        gyro : 3 floats
            Angular rate, deg/s
        accel : 3 floats
            Acceleration in any consistent unit (direction only)
        dt : float or None
            Measured interval since the previous sample (s). The angular
            rate is scaled by dt / sample_period so the fixed-step update
            integrates the real elapsed time.

        Returns:
        --------
        Quaternion
            Current orientation (unchanged if the update was rejected)
        """
        step = clamp_dt(dt, self.sample_period, self.max_gap)
        scale = step / self.sample_period
        gyr = np.radians(np.asarray(gyro, dtype=np.float64)) * scale
        acc = np.asarray(accel, dtype=np.float64)

        q = self._fuse(self.quaternion.as_array(), gyr, acc)

        n = np.linalg.norm(q)
        if not np.all(np.isfinite(q)) or n < 1e-12:
            self.skipped_updates += 1
            logger.debug("Rejected non-finite attitude update (gyro=%s, accel=%s)", gyro, accel)
            return self.quaternion

        self.quaternion = Quaternion.from_array(q / n)
        return self.quaternion

    def _fuse(self, q, gyr, acc):
        q0, q1, q2, q3 = q

        # Rate of change from gyroscope: 0.5 * q ⊗ (0, w)
        q_dot = 0.5 * (Quaternion.from_array(q) * Quaternion(0.0, *gyr)).as_array()

        acc_norm = np.linalg.norm(acc)
        if np.isfinite(acc_norm) and acc_norm > 1e-9:
            a = acc / acc_norm
            # Objective: predicted gravity direction minus measured
            f = np.array([
                2.0 * (q1 * q3 - q0 * q2) - a[0],
                2.0 * (q0 * q1 + q2 * q3) - a[1],
                2.0 * (0.5 - q1 * q1 - q2 * q2) - a[2],
            ])
            J = np.array([
                [-2.0 * q2, 2.0 * q3, -2.0 * q0, 2.0 * q1],
                [2.0 * q1, 2.0 * q0, 2.0 * q3, 2.0 * q2],
                [0.0, -4.0 * q1, -4.0 * q2, 0.0],
            ])
            grad = J.T @ f
            grad_norm = np.linalg.norm(grad)
            if grad_norm > 0:
                q_dot = q_dot - self.beta * (grad / grad_norm)

        return q + q_dot * self.sample_period


class ComplementaryFilter(AttitudeFilter):
    """
    Pitch/roll complementary filter.

    state = alpha * (state + gyro * dt) + (1 - alpha) * accel_tilt
    Pitch integrates -gyro Y (a right-handed turn about +Y lowers
    atan2(ax, ...)), roll integrates gyro X. Angles in degrees.
    """

    def __init__(self, alpha=0.98, sample_period=0.01, max_gap=0.5):
        self.alpha = float(alpha)
        self.sample_period = float(sample_period)
        self.max_gap = float(max_gap)
        self.pitch = 0.0
        self.roll = 0.0

    def reset(self):
        self.pitch = 0.0
        self.roll = 0.0

    def update(self, gyro, accel, dt=None):
        dt = clamp_dt(dt, self.sample_period, self.max_gap)
        pitch_acc, roll_acc = tilt_from_accel(accel)

        pitch_gyro = self.pitch - gyro[1] * dt
        roll_gyro = self.roll + gyro[0] * dt

        pitch = self.alpha * pitch_gyro + (1.0 - self.alpha) * pitch_acc
        roll = self.alpha * roll_gyro + (1.0 - self.alpha) * roll_acc
        if math.isfinite(pitch) and math.isfinite(roll):
            self.pitch, self.roll = pitch, roll
        else:
            logger.debug("Rejected non-finite tilt update (gyro=%s, accel=%s)", gyro, accel)
        return self.pitch, self.roll

    def orientation(self):
        """Tilt as a quaternion with yaw fixed at zero."""
        return Quaternion.from_euler(0.0, self.pitch, self.roll, degrees=True)

    def radians(self):
        return math.radians(self.pitch), math.radians(self.roll)


def zero_offset(current):
    """Offset that makes ``current`` read as identity: its conjugate."""
    return current.normalized().conjugate()


def apply_offset(offset, current):
    """User-relative orientation, offset ⊗ current."""
    if offset is None:
        return current
    return offset * current
