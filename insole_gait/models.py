"""Data records flowing through the gait pipeline."""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

__all__ = ['Vector3', 'LIMBS', 'Sample', 'StepEvent', 'PoseSample', 'BasicMetrics', 'LoadMetrics',
           'OrientationStats', 'ImuMetrics', 'Variability', 'Insight', 'AnalyticsMetrics',
           'Asymmetry', 'BilateralAnalytics']

Vector3 = Tuple[float, float, float]

LIMBS = ('left', 'right')


@dataclass(frozen=True)
class Sample:
    """Single insole reading: IMU triples plus 5 FSR values and the heel sensor."""
    timestamp: float           # ms
    limb: str                  # 'left' or 'right'
    accel: Vector3             # g, body frame after normalization
    gyro: Vector3              # deg/s, body frame
    pressure: Tuple[float, ...]  # 5 FSR values
    heel: float = 0.0
    device_id: str = ''
    session_id: Optional[str] = None

    @property
    def forefoot_force(self) -> float:
        return float(sum(self.pressure))

    @property
    def pressure_sum(self) -> float:
        return self.forefoot_force + self.heel


@dataclass(frozen=True)
class StepEvent:
    """Closed stance interval detected from summed pressure."""
    limb: str
    start_time: float          # ms
    end_time: float            # ms
    peak_time: float           # ms
    contact_duration_ms: float
    peak_force: float = 0.0


@dataclass(frozen=True)
class PoseSample:
    """Sample augmented with world-frame acceleration and the zero-velocity flag."""
    sample: Sample
    ax_world: float            # m/s^2, forward
    ay_world: float            # m/s^2, lateral
    az_dynamic: float          # m/s^2, vertical with gravity removed
    zero_velocity: bool
    dt: float                  # s since previous sample (clamped)

    @property
    def timestamp(self) -> float:
        return self.sample.timestamp


@dataclass
class BasicMetrics:
    step_count: int = 0
    cadence: float = 0.0           # steps/min
    avg_contact_time: float = 0.0  # ms
    stance_percent: float = 0.0


@dataclass
class LoadMetrics:
    heel_pct: float = 0.0
    forefoot_pct: float = 0.0
    medial_pct: float = 0.0
    lateral_pct: float = 0.0
    dominant_region: str = 'none'


@dataclass
class OrientationStats:
    """Tilt range and spread over a batch, degrees."""
    pitch_min: float = 0.0
    pitch_max: float = 0.0
    pitch_range: float = 0.0
    pitch_std: float = 0.0
    roll_min: float = 0.0
    roll_max: float = 0.0
    roll_range: float = 0.0
    roll_std: float = 0.0


@dataclass
class ImuMetrics:
    avg_peak_shock: float = 0.0    # g
    peak_shock_cv: float = 0.0     # %
    avg_swing_speed: float = 0.0   # deg/s


@dataclass
class Variability:
    contact_time_cv: float = 0.0
    peak_force_cv: float = 0.0


@dataclass(frozen=True)
class Insight:
    label: str
    severity: str = 'info'         # 'info' or 'warn'


@dataclass
class AnalyticsMetrics:
    basic: BasicMetrics = field(default_factory=BasicMetrics)
    load: LoadMetrics = field(default_factory=LoadMetrics)
    steps: List[StepEvent] = field(default_factory=list)
    orientation: OrientationStats = field(default_factory=OrientationStats)
    imu: ImuMetrics = field(default_factory=ImuMetrics)
    insights: List[Insight] = field(default_factory=list)
    step_lengths: List[float] = field(default_factory=list)
    avg_step_length: float = 0.0   # m
    gait_speed: float = 0.0        # m/s
    variability: Variability = field(default_factory=Variability)


@dataclass
class Asymmetry:
    step_count_diff: int = 0
    contact_time_si: float = 0.0
    load_si: float = 0.0
    severity: str = 'Low'
    load_severity: str = 'Low'


@dataclass
class BilateralAnalytics:
    left: AnalyticsMetrics
    right: AnalyticsMetrics
    asymmetry: Asymmetry
