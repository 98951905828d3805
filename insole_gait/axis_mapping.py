"""
Axis mapping
============

Signed permutation taking raw sensor axes to the body frame
(X = forward, Y = right, Z = up). Applied identically to accelerometer and
gyroscope triples before any fusion or detection.
"""

from dataclasses import dataclass, replace


__all__ = ['CalibrationError', 'AxisSpec', 'AxisMapping', 'IDENTITY_MAPPING',
           'apply_axis_mapping', 'normalize_sample']


class CalibrationError(ValueError):
    """Calibration input could not be resolved into a valid axis mapping."""


@dataclass(frozen=True)
class AxisSpec:
    """One output axis: which raw axis feeds it and with what sign."""
    index: int
    sign: int = 1


@dataclass(frozen=True)
class AxisMapping:
    x: AxisSpec = AxisSpec(0, 1)
    y: AxisSpec = AxisSpec(1, 1)
    z: AxisSpec = AxisSpec(2, 1)

    def __post_init__(self):
        indices = [self.x.index, self.y.index, self.z.index]
        if sorted(indices) != [0, 1, 2]:
            raise CalibrationError(
                f"Axis mapping indices {indices} are not a permutation of (0, 1, 2)"
            )
        for spec in (self.x, self.y, self.z):
            if spec.sign not in (1, -1):
                raise CalibrationError(f"Axis sign must be +1 or -1, got {spec.sign}")

    @classmethod
    def identity(cls):
        return cls()

    def apply(self, raw):
        return (raw[self.x.index] * self.x.sign,
                raw[self.y.index] * self.y.sign,
                raw[self.z.index] * self.z.sign)

    def to_dict(self):
        return {axis: {'index': spec.index, 'sign': spec.sign}
                for axis, spec in (('x', self.x), ('y', self.y), ('z', self.z))}

    @classmethod
    def from_dict(cls, data):
        specs = {}
        for axis in ('x', 'y', 'z'):
            try:
                entry = data[axis]
                specs[axis] = AxisSpec(int(entry['index']), int(entry['sign']))
            except (KeyError, TypeError, ValueError) as e:
                raise CalibrationError(f"Invalid axis entry for '{axis}': {e}") from e
        return cls(**specs)


IDENTITY_MAPPING = AxisMapping()


def apply_axis_mapping(raw, mapping=None):
    """
    Map a raw 3-tuple into the body frame.

    Parameters:
    -----------
    raw : sequence of 3 floats
        Accelerometer or gyroscope reading in sensor axes
    mapping : AxisMapping or None
        Calibrated mapping; identity when None

    Returns:
    --------
    tuple (x, y, z) in body axes
    """
    return (mapping or IDENTITY_MAPPING).apply(raw)


def normalize_sample(sample, mapping=None):
    """Return a copy of ``sample`` with accel and gyro remapped to the body frame."""
    if mapping is None:
        return sample
    return replace(sample,
                   accel=mapping.apply(sample.accel),
                   gyro=mapping.apply(sample.gyro))
