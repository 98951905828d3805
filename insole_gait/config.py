"""
Configuration
=============

Tunable thresholds for contact detection, attitude fusion, step-length
integration and the derived-metrics layer. Every value has a default so
``GaitConfig()`` is a working configuration.
"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Tuple

__all__ = ['N_PRESSURE_SENSORS', 'RegionLayout', 'GaitConfig', 'load_config']

N_PRESSURE_SENSORS = 5


@dataclass(frozen=True)
class RegionLayout:
    """Partition of the 5 forefoot/midfoot sensors into medial and lateral groups.

    The grouping depends on where the sensors physically sit in the insole,
    so it is part of the calibration rather than a constant.
    """
    medial: Tuple[int, ...] = (0, 2)
    lateral: Tuple[int, ...] = (1, 3)

    def __post_init__(self):
        medial = tuple(int(i) for i in self.medial)
        lateral = tuple(int(i) for i in self.lateral)
        for idx in medial + lateral:
            if not 0 <= idx < N_PRESSURE_SENSORS:
                raise ValueError(f"Sensor index {idx} outside 0..{N_PRESSURE_SENSORS - 1}")
        if set(medial) & set(lateral):
            raise ValueError(f"Medial {medial} and lateral {lateral} groups overlap")
        object.__setattr__(self, 'medial', medial)
        object.__setattr__(self, 'lateral', lateral)


@dataclass
class GaitConfig:
    """Configuration for insole gait analysis."""

    # Contact phase detection
    contact_threshold: float = 50.0   # summed pressure, >= enters stance
    min_contact_ms: float = 100.0     # shorter intervals are discarded

    # Attitude estimation
    complementary_alpha: float = 0.98
    madgwick_beta: float = 0.1
    sample_interval_s: float = 0.01   # nominal Madgwick step (100 Hz)
    max_gap_s: float = 0.5            # larger gaps count as one nominal step

    # Zero-velocity detection
    zupt_gyro_dps: float = 50.0
    zupt_accel_tolerance_g: float = 0.2

    # Step-length integration
    gravity: float = 9.81             # m/s^2 per g
    velocity_damping: float = 0.95
    clamp_backward_steps: bool = True

    # Load / insight thresholds (%)
    dominant_region_pct: float = 60.0
    strike_pattern_pct: float = 65.0
    foot_roll_pct: float = 60.0

    # Symmetry index severity bands (%)
    severity_high: float = 15.0
    severity_moderate: float = 8.0

    regions: RegionLayout = field(default_factory=RegionLayout)

    def to_dict(self):
        out = asdict(self)
        out['regions'] = {'medial': list(self.regions.medial),
                          'lateral': list(self.regions.lateral)}
        return out

    @classmethod
    def from_dict(cls, data):
        """
        Build a config from a plain dict, e.g. a parsed JSON document.

        Missing keys keep their defaults; unknown keys raise ValueError.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")

        values = dict(data)
        regions = values.pop('regions', None)
        if regions is not None and not isinstance(regions, RegionLayout):
            regions = RegionLayout(medial=tuple(regions.get('medial', RegionLayout.medial)),
                                   lateral=tuple(regions.get('lateral', RegionLayout.lateral)))
        if regions is not None:
            values['regions'] = regions
        return cls(**values)


def load_config(path):
    """Read a GaitConfig from a JSON file."""
    with open(Path(path), 'r', encoding='utf-8') as fh:
        return GaitConfig.from_dict(json.load(fh))
