"""
Quaternion
==========

Unit-quaternion value type in (w, x, y, z) order with Hamilton product.
Shared by the attitude filters, the re-zero offset and the simulator so the
rotation convention lives in one place.
"""

import math

import numpy as np
from scipy.spatial.transform import Rotation


__all__ = ['Quaternion']


class Quaternion:
    """Immutable quaternion, (w, x, y, z)."""

    __slots__ = ('w', 'x', 'y', 'z')

    def __init__(self, w=1.0, x=0.0, y=0.0, z=0.0):
        object.__setattr__(self, 'w', float(w))
        object.__setattr__(self, 'x', float(x))
        object.__setattr__(self, 'y', float(y))
        object.__setattr__(self, 'z', float(z))

    def __setattr__(self, name, value):
        raise AttributeError("Quaternion is immutable")

    def __reduce__(self):
        # copy and pickle go through __init__ instead of setattr
        return (Quaternion, (self.w, self.x, self.y, self.z))

    @classmethod
    def identity(cls):
        return cls(1.0, 0.0, 0.0, 0.0)

    @classmethod
    def from_array(cls, q):
        return cls(q[0], q[1], q[2], q[3])

    @classmethod
    def from_euler(cls, yaw, pitch, roll, degrees=False):
        """Build from intrinsic Z-Y-X (yaw, pitch, roll) angles."""
        r = Rotation.from_euler('ZYX', [yaw, pitch, roll], degrees=degrees)
        x, y, z, w = r.as_quat()  # scipy is [x, y, z, w]
        return cls(w, x, y, z)

    def as_array(self):
        return np.array([self.w, self.x, self.y, self.z])

    def as_dict(self):
        return {'w': self.w, 'x': self.x, 'y': self.y, 'z': self.z}

    def norm(self):
        return math.sqrt(self.w * self.w + self.x * self.x + self.y * self.y + self.z * self.z)

    def is_finite(self):
        return all(math.isfinite(v) for v in (self.w, self.x, self.y, self.z))

    def normalized(self):
        """Return the unit quaternion. Raises ValueError on zero or non-finite norm."""
        n = self.norm()
        if not math.isfinite(n) or n < 1e-12:
            raise ValueError(f"Cannot normalize quaternion with norm {n}")
        return Quaternion(self.w / n, self.x / n, self.y / n, self.z / n)

    def conjugate(self):
        return Quaternion(self.w, -self.x, -self.y, -self.z)

    def __mul__(self, other):
        # Hamilton product self ⊗ other
        w1, x1, y1, z1 = self.w, self.x, self.y, self.z
        w2, x2, y2, z2 = other.w, other.x, other.y, other.z
        return Quaternion(
            w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
            w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
            w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
            w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        )

    def __eq__(self, other):
        if not isinstance(other, Quaternion):
            return NotImplemented
        return (self.w, self.x, self.y, self.z) == (other.w, other.x, other.y, other.z)

    def __hash__(self):
        return hash((self.w, self.x, self.y, self.z))

    def __repr__(self):
        return f"Quaternion(w={self.w:.6f}, x={self.x:.6f}, y={self.y:.6f}, z={self.z:.6f})"

    def to_euler(self, degrees=False):
        """
        Convert to (yaw, pitch, roll), Z-Y-X convention.

        Pitch is clamped to +/-90 deg at the gimbal-lock singularity.
        """
        w, x, y, z = self.w, self.x, self.y, self.z
        roll = math.atan2(2.0 * (w * x + y * z), 1.0 - 2.0 * (x * x + y * y))
        sinp = max(-1.0, min(1.0, 2.0 * (w * y - z * x)))
        pitch = math.asin(sinp)
        yaw = math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
        if degrees:
            return math.degrees(yaw), math.degrees(pitch), math.degrees(roll)
        return yaw, pitch, roll

    def to_rotation_matrix(self):
        """3x3 rotation matrix taking body-frame vectors into the reference frame."""
        return Rotation.from_quat([self.x, self.y, self.z, self.w]).as_matrix()

    def rotate(self, v):
        return self.to_rotation_matrix() @ np.asarray(v, dtype=np.float64)
