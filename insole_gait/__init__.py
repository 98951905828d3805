"""
Insole Gait Analysis
====================

Sensor fusion and gait-event detection for a pair of instrumented insoles
(IMU + 5 FSR + heel sensor per foot).

Core Modules:
- axis_mapping: Sensor-to-body signed axis permutation
- attitude: Madgwick and complementary orientation filters
- contact: Pressure-threshold stance detection (step events)
- kinematics: World-frame acceleration, ZUPT, step length
- metrics: Cadence, load, symmetry, variability, insights
- calibration: Two-pose and rotation-gesture axis calibration
- session: Live per-limb processing and sample dispatch
"""

from .config import *
from .models import *
from .quaternion import *
from .axis_mapping import *
from .attitude import *
from .contact import *
from .kinematics import *
from .metrics import *
from .calibration import *
from .session import *
from .data_loader import *
from .simulation import *

__version__ = "1.0.0"
