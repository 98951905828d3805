"""
Gait metrics
============

Batch analytics over one limb's time-ordered samples: step timing, load
distribution, tilt statistics, IMU shock/swing figures, step length and
gait speed, variability, rule-based insights, and left/right asymmetry.

Every metric degrades to zero/empty on insufficient data so one weak
metric never blocks the rest of the report.
"""

import logging

import numpy as np

from .attitude import tilt_from_accel
from .config import GaitConfig
from .contact import detect_steps
from .kinematics import (build_pose_samples, check_cancelled, estimate_step_lengths,
                         window_bounds)
from .models import (AnalyticsMetrics, Asymmetry, BasicMetrics, BilateralAnalytics,
                     ImuMetrics, Insight, LoadMetrics, OrientationStats, Variability)

__all__ = ['coefficient_of_variation', 'symmetry_index', 'severity_band',
           'compute_basic_metrics', 'compute_load_metrics', 'compute_orientation_stats',
           'compute_imu_metrics', 'compute_variability', 'derive_insights', 'gait_speed',
           'compute_analytics', 'compute_asymmetry', 'compute_bilateral_analytics']

logger = logging.getLogger(__name__)


def coefficient_of_variation(values):
    """stddev / mean * 100 (population std). 0 for fewer than 2 values or zero mean."""
    data = np.asarray(values, dtype=np.float64)
    if data.size < 2:
        return 0.0
    mean = data.mean()
    if mean == 0:
        return 0.0
    return float(data.std() / mean * 100.0)


def symmetry_index(a, b):
    """100 * (b - a) / ((a + b) / 2); 0 when a + b == 0."""
    total = a + b
    if total == 0:
        return 0.0
    return 100.0 * (b - a) / (total / 2.0)


def severity_band(si, config=None):
    config = config or GaitConfig()
    if abs(si) > config.severity_high:
        return 'High'
    if abs(si) > config.severity_moderate:
        return 'Moderate'
    return 'Low'


def compute_basic_metrics(steps):
    """
    Step count, cadence, mean contact time and stance percentage.

    Cadence uses the span between the first and last step peaks; with fewer
    than 2 steps there is no cycle to infer and the rates are zero.
    """
    n = len(steps)
    if n < 2:
        return BasicMetrics(step_count=n)

    span_ms = steps[-1].peak_time - steps[0].peak_time
    cadence = n / (span_ms / 60000.0) if span_ms > 0 else 0.0
    avg_contact = float(np.mean([s.contact_duration_ms for s in steps]))
    mean_interval = span_ms / (n - 1)
    stance_pct = avg_contact / mean_interval * 100.0 if mean_interval > 0 else 0.0

    return BasicMetrics(step_count=n, cadence=cadence,
                        avg_contact_time=avg_contact, stance_percent=stance_pct)


def compute_load_metrics(samples, config=None):
    """
    Heel / forefoot and medial / lateral load shares (%).

    Only loaded samples (pressure sum above the contact threshold) count,
    so swing-phase zeros do not dilute the percentages.
    """
    config = config or GaitConfig()
    medial_idx = list(config.regions.medial)
    lateral_idx = list(config.regions.lateral)

    loaded = [s for s in samples if s.pressure_sum > config.contact_threshold]
    if not loaded:
        return LoadMetrics()

    pressure = np.array([s.pressure for s in loaded], dtype=np.float64)
    heel = float(sum(s.heel for s in loaded))
    forefoot = float(pressure.sum())
    medial = float(pressure[:, medial_idx].sum()) if medial_idx else 0.0
    lateral = float(pressure[:, lateral_idx].sum()) if lateral_idx else 0.0

    total = max(heel + forefoot, 1.0)
    ml_total = max(medial + lateral, 1.0)
    load = LoadMetrics(
        heel_pct=heel / total * 100.0,
        forefoot_pct=forefoot / total * 100.0,
        medial_pct=medial / ml_total * 100.0,
        lateral_pct=lateral / ml_total * 100.0,
        dominant_region='balanced',
    )
    for region in ('heel', 'forefoot', 'medial', 'lateral'):
        if getattr(load, f'{region}_pct') > config.dominant_region_pct:
            load.dominant_region = region
            break
    return load


def compute_orientation_stats(samples):
    """Accelerometer tilt range and population std over the batch (degrees)."""
    if not samples:
        return OrientationStats()

    tilt = np.array([tilt_from_accel(s.accel) for s in samples], dtype=np.float64)
    pitch, roll = tilt[:, 0], tilt[:, 1]
    return OrientationStats(
        pitch_min=float(pitch.min()), pitch_max=float(pitch.max()),
        pitch_range=float(pitch.max() - pitch.min()), pitch_std=float(pitch.std()),
        roll_min=float(roll.min()), roll_max=float(roll.max()),
        roll_range=float(roll.max() - roll.min()), roll_std=float(roll.std()),
    )


def compute_imu_metrics(samples, steps):
    """
    Peak shock per step (max |accel| in the contact window, g) and peak
    swing speed between consecutive steps (max |gyro|, deg/s).
    ``samples`` must be time ordered.
    """
    if not samples or not steps:
        return ImuMetrics()

    t = np.array([s.timestamp for s in samples], dtype=np.float64)
    acc_mag = np.linalg.norm(np.array([s.accel for s in samples], dtype=np.float64), axis=1)
    gyr_mag = np.linalg.norm(np.array([s.gyro for s in samples], dtype=np.float64), axis=1)

    shocks = []
    for step in steps:
        lo, hi = window_bounds(t, step.start_time, step.end_time)
        if hi > lo:
            shocks.append(acc_mag[lo:hi].max())

    swings = []
    for prev, nxt in zip(steps[:-1], steps[1:]):
        # strictly between the two contacts
        lo = int(np.searchsorted(t, prev.end_time, side='right'))
        hi = int(np.searchsorted(t, nxt.start_time, side='left'))
        if hi > lo:
            swings.append(gyr_mag[lo:hi].max())

    return ImuMetrics(
        avg_peak_shock=float(np.mean(shocks)) if shocks else 0.0,
        peak_shock_cv=coefficient_of_variation(shocks),
        avg_swing_speed=float(np.mean(swings)) if swings else 0.0,
    )


def compute_variability(steps):
    return Variability(
        contact_time_cv=coefficient_of_variation([s.contact_duration_ms for s in steps]),
        peak_force_cv=coefficient_of_variation([s.peak_force for s in steps]),
    )


def derive_insights(load, config=None):
    config = config or GaitConfig()
    insights = []
    if load.heel_pct > config.strike_pattern_pct:
        insights.append(Insight('primary heel striker'))
    elif load.forefoot_pct > config.strike_pattern_pct:
        insights.append(Insight('primary forefoot striker'))

    if load.medial_pct > config.foot_roll_pct:
        insights.append(Insight('pronation tendency', 'warn'))
    elif load.lateral_pct > config.foot_roll_pct:
        insights.append(Insight('supination tendency', 'warn'))
    return insights


def gait_speed(avg_step_length, cadence):
    """m/s from mean step length (m) and cadence (steps/min)."""
    if cadence <= 0:
        return 0.0
    return avg_step_length * (cadence / 60.0)


def compute_analytics(samples, config=None, cancel_event=None):
    """
    Full metrics bundle for one limb.

    Parameters:
    -----------
    samples : list of Sample
        Time-ordered, single limb, body-frame axes
    config : GaitConfig, optional
    cancel_event : threading.Event, optional
        When set, the computation stops with AnalysisCancelled

    Returns:
    --------
    AnalyticsMetrics
    """
    config = config or GaitConfig()
    samples = list(samples)

    steps = detect_steps(samples, config)
    check_cancelled(cancel_event)

    basic = compute_basic_metrics(steps)
    load = compute_load_metrics(samples, config)
    orientation = compute_orientation_stats(samples)
    imu = compute_imu_metrics(samples, steps)
    check_cancelled(cancel_event)

    poses = build_pose_samples(samples, config, cancel_event)
    step_lengths = estimate_step_lengths(poses, steps, config, cancel_event)
    avg_len = float(np.mean(step_lengths)) if step_lengths else 0.0

    metrics = AnalyticsMetrics(
        basic=basic,
        load=load,
        steps=steps,
        orientation=orientation,
        imu=imu,
        insights=derive_insights(load, config),
        step_lengths=step_lengths,
        avg_step_length=avg_len,
        gait_speed=gait_speed(avg_len, basic.cadence),
        variability=compute_variability(steps),
    )
    logger.debug("Analysed %d samples: %d steps, cadence %.1f",
                 len(samples), basic.step_count, basic.cadence)
    return metrics


def compute_asymmetry(left, right, config=None):
    """Left/right comparison of two AnalyticsMetrics (SI sign: right relative to left)."""
    config = config or GaitConfig()
    contact_si = symmetry_index(left.basic.avg_contact_time, right.basic.avg_contact_time)
    load_si = symmetry_index(left.load.heel_pct, right.load.heel_pct)
    return Asymmetry(
        step_count_diff=right.basic.step_count - left.basic.step_count,
        contact_time_si=contact_si,
        load_si=load_si,
        severity=severity_band(contact_si, config),
        load_severity=severity_band(load_si, config),
    )


def compute_bilateral_analytics(left_samples, right_samples, config=None, cancel_event=None):
    left = compute_analytics(left_samples, config, cancel_event)
    right = compute_analytics(right_samples, config, cancel_event)
    return BilateralAnalytics(left=left, right=right,
                              asymmetry=compute_asymmetry(left, right, config))
