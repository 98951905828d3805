"""
Axis calibration
================

Resolve the sensor-to-body signed permutation from either

1. two static poses: flat (gravity identifies Z) and nose-down
   (gravity identifies X), with Y completing a right-handed frame, or
2. three rotation gestures (yaw, pitch, roll), each exciting one axis.

No partial mapping is ever returned: failures raise CalibrationError and
the calibration sequences restart from their first step.
"""

import logging

import numpy as np

from .axis_mapping import AxisMapping, AxisSpec, CalibrationError

__all__ = ['MIN_GESTURE_SAMPLES', 'solve_two_pose', 'resolve_gesture_axis', 'solve_gestures',
           'TwoPoseCalibration', 'GestureCalibration']

logger = logging.getLogger(__name__)

MIN_GESTURE_SAMPLES = 10


def _dominant_axis(values, exclude=()):
    best, best_val = None, 0.0
    for i, v in enumerate(values):
        if i in exclude:
            continue
        if best is None or abs(v) > abs(best_val):
            best, best_val = i, v
    return best, best_val


def _validated(x, y, z):
    indices = [x.index, y.index, z.index]
    if len(set(indices)) != 3:
        raise CalibrationError(f"Resolved axes {indices} are not unique")
    return AxisMapping(x=x, y=y, z=z)


def solve_two_pose(flat_accel, nose_down_accel):
    """
    Mapping from a flat pose and a nose-down pose.

    Parameters:
    -----------
    flat_accel : 3 floats
        Raw accelerometer reading with the shoe flat; the axis reading the
        gravity reaction (+1g) points up
    nose_down_accel : 3 floats
        Raw reading with the toe pointing down; the forward axis reads -1g

    Returns:
    --------
    AxisMapping

    Raises:
    -------
    CalibrationError if either pose has no dominant axis or the frame is
    degenerate
    """
    flat = np.asarray(flat_accel, dtype=np.float64)
    down = np.asarray(nose_down_accel, dtype=np.float64)
    if flat.shape != (3,) or down.shape != (3,):
        raise CalibrationError("Pose readings must be 3-axis")
    if not (np.all(np.isfinite(flat)) and np.all(np.isfinite(down))):
        raise CalibrationError("Pose readings contain non-finite values")

    z_index, z_val = _dominant_axis(flat)
    if z_val == 0:
        raise CalibrationError("Flat pose has no dominant gravity axis")
    z_sign = 1 if z_val > 0 else -1

    x_index, x_val = _dominant_axis(down, exclude=(z_index,))
    if x_val == 0:
        raise CalibrationError("Nose-down pose has no dominant gravity axis")
    x_sign = 1 if x_val < 0 else -1

    y_index = ({0, 1, 2} - {x_index, z_index}).pop()

    # Right-handed frame: Y = Z x X
    vec_z = np.zeros(3)
    vec_z[z_index] = z_sign
    vec_x = np.zeros(3)
    vec_x[x_index] = x_sign
    cross = np.cross(vec_z, vec_x)
    if cross[y_index] == 0:
        raise CalibrationError("Degenerate poses: cannot derive Y axis sign")
    y_sign = 1 if cross[y_index] > 0 else -1

    return _validated(AxisSpec(x_index, x_sign), AxisSpec(y_index, y_sign),
                      AxisSpec(z_index, z_sign))


def resolve_gesture_axis(gyro_window, min_samples=MIN_GESTURE_SAMPLES):
    """
    Raw axis excited by one rotation gesture: largest |sum| of the gyro
    readings over the window, signed by that sum.
    """
    if len(gyro_window) < min_samples:
        raise CalibrationError(
            f"Gesture recorded {len(gyro_window)} samples, need at least {min_samples}"
        )
    data = np.asarray(gyro_window, dtype=np.float64)
    if data.ndim != 2 or data.shape[1] != 3:
        raise CalibrationError("Gesture window must be an N x 3 array of gyro readings")
    totals = data.sum(axis=0)
    index = int(np.argmax(np.abs(totals)))
    if totals[index] == 0 or not np.isfinite(totals[index]):
        raise CalibrationError("Gesture produced no rotation")
    return AxisSpec(index, 1 if totals[index] > 0 else -1)


def solve_gestures(yaw_window, pitch_window, roll_window, min_samples=MIN_GESTURE_SAMPLES):
    """
    Mapping from three rotation gestures.

    Yaw excites the up axis (Z), pitch the right axis (Y), roll the forward
    axis (X). Each gesture needs at least ``min_samples`` gyro readings and
    the three resolved axes must be distinct.
    """
    z = resolve_gesture_axis(yaw_window, min_samples)
    y = resolve_gesture_axis(pitch_window, min_samples)
    x = resolve_gesture_axis(roll_window, min_samples)
    return _validated(x, y, z)


class TwoPoseCalibration:
    """Ordered flat -> nose-down capture; any failure restarts at the flat step."""

    STEPS = ('flat', 'nose_down')

    def __init__(self, limb='left'):
        self.limb = limb
        self.reset()

    def reset(self):
        self.captures = {}

    @property
    def next_step(self):
        for step in self.STEPS:
            if step not in self.captures:
                return step
        return None

    def capture(self, accel):
        step = self.next_step
        if step is None:
            raise CalibrationError("All poses already captured; call solve()")
        if accel is None:
            self.reset()
            raise CalibrationError("No sensor data received")
        self.captures[step] = tuple(float(v) for v in accel)
        return step

    def solve(self):
        try:
            if self.next_step is not None:
                raise CalibrationError(f"Pose '{self.next_step}' not captured")
            return solve_two_pose(self.captures['flat'], self.captures['nose_down'])
        except CalibrationError as e:
            logger.warning("Two-pose calibration failed for %s: %s", self.limb, e)
            raise
        finally:
            self.reset()


class GestureCalibration:
    """Ordered yaw -> pitch -> roll gesture recording; restarts at yaw on failure."""

    STEPS = ('yaw', 'pitch', 'roll')

    def __init__(self, limb='left', min_samples=MIN_GESTURE_SAMPLES):
        self.limb = limb
        self.min_samples = min_samples
        self.reset()

    def reset(self):
        self.windows = {}
        self._current = []

    @property
    def next_step(self):
        for step in self.STEPS:
            if step not in self.windows:
                return step
        return None

    def add_sample(self, gyro):
        if self.next_step is None:
            raise CalibrationError("All gestures already recorded; call solve()")
        self._current.append(tuple(float(v) for v in gyro))

    def finish_gesture(self):
        """Close the window for the current gesture, validating its axis."""
        step = self.next_step
        if step is None:
            raise CalibrationError("All gestures already recorded; call solve()")
        window = self._current
        try:
            resolve_gesture_axis(window, self.min_samples)
        except CalibrationError as e:
            logger.warning("Gesture '%s' rejected for %s: %s", step, self.limb, e)
            self.reset()
            raise
        self.windows[step] = window
        self._current = []
        return step

    def solve(self):
        try:
            if self.next_step is not None:
                raise CalibrationError(f"Gesture '{self.next_step}' not recorded")
            return solve_gestures(self.windows['yaw'], self.windows['pitch'],
                                  self.windows['roll'], self.min_samples)
        except CalibrationError as e:
            logger.warning("Gesture calibration failed for %s: %s", self.limb, e)
            raise
        finally:
            self.reset()
