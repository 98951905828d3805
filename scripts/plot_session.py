"""
Session Plots - Pressure, Tilt, Step Length
===========================================

Output:
    output/figures/{session}/
        01_contact.png      Summed pressure per limb, stance shading
        02_tilt.png         Complementary-filter pitch/roll per limb
        03_step_length.png  Step length per detected step, left vs right

Usage:
    python scripts/plot_session.py session.csv
    python scripts/plot_session.py --demo
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from insole_gait.attitude import ComplementaryFilter
from insole_gait.config import GaitConfig
from insole_gait.contact import detect_steps
from insole_gait.data_loader import load_session_csv, split_by_limb
from insole_gait.kinematics import build_pose_samples, estimate_step_lengths
from insole_gait.simulation import simulate_walk

PROJECT_ROOT = Path(__file__).parent.parent
OUT_ROOT = PROJECT_ROOT / 'output' / 'figures'

COL = {'left': '#c0392b', 'right': '#2980b9'}


def shade_steps(ax, steps, color, alpha=0.2):
    for s in steps:
        ax.axvspan(s.start_time / 1000.0, s.end_time / 1000.0, color=color, alpha=alpha)


def plot_contact(by_limb, config, out_path):
    fig, axes = plt.subplots(2, 1, figsize=(14, 7), sharex=True)
    fig.suptitle('Summed pressure + detected stance', fontsize=11, fontweight='bold')

    for ax, limb in zip(axes, ('left', 'right')):
        samples = by_limb[limb]
        if not samples:
            ax.set_title(f'{limb}: no samples')
            continue
        t = np.array([s.timestamp for s in samples]) / 1000.0
        p = np.array([s.pressure_sum for s in samples])
        ax.plot(t, p, color=COL[limb], linewidth=0.8)
        ax.axhline(config.contact_threshold, color='k', linestyle='--', linewidth=0.7)
        shade_steps(ax, detect_steps(samples, config), COL[limb])
        ax.set_ylabel('Pressure sum')
        ax.set_title(f'{limb.capitalize()} foot  (shading = stance)')
        ax.grid(alpha=0.3)
    axes[-1].set_xlabel('Time (s)')

    plt.tight_layout()
    fig.savefig(out_path, dpi=120, bbox_inches='tight')
    plt.close(fig)


def plot_tilt(by_limb, config, out_path):
    fig, axes = plt.subplots(2, 1, figsize=(14, 7), sharex=True)
    fig.suptitle('Complementary filter tilt', fontsize=11, fontweight='bold')

    for ax, limb in zip(axes, ('left', 'right')):
        samples = by_limb[limb]
        tilt = ComplementaryFilter(config.complementary_alpha, config.sample_interval_s,
                                   config.max_gap_s)
        pitch, roll, t = [], [], []
        prev = None
        for s in samples:
            dt = None if prev is None else (s.timestamp - prev) / 1000.0
            prev = s.timestamp
            p, r = tilt.update(s.gyro, s.accel, dt)
            pitch.append(p)
            roll.append(r)
            t.append(s.timestamp / 1000.0)
        ax.plot(t, pitch, color=COL[limb], linewidth=0.9, label='pitch')
        ax.plot(t, roll, color='grey', linewidth=0.9, label='roll')
        ax.set_ylabel('deg')
        ax.set_title(f'{limb.capitalize()} foot')
        ax.legend(fontsize=8)
        ax.grid(alpha=0.3)
    axes[-1].set_xlabel('Time (s)')

    plt.tight_layout()
    fig.savefig(out_path, dpi=120, bbox_inches='tight')
    plt.close(fig)


def plot_step_length(by_limb, config, out_path):
    fig, ax = plt.subplots(figsize=(10, 5))
    for limb in ('left', 'right'):
        samples = by_limb[limb]
        steps = detect_steps(samples, config)
        lengths = estimate_step_lengths(build_pose_samples(samples, config), steps, config)
        ax.plot(np.arange(1, len(lengths) + 1), lengths, 'o-', color=COL[limb],
                label=f'{limb} (mean {np.mean(lengths) if lengths else 0:.2f} m)')
    ax.set_xlabel('Step #')
    ax.set_ylabel('Step length (m)')
    ax.set_title('Step length per step', fontweight='bold')
    ax.legend()
    ax.grid(alpha=0.3)

    plt.tight_layout()
    fig.savefig(out_path, dpi=120, bbox_inches='tight')
    plt.close(fig)


def main():
    args = sys.argv[1:]
    config = GaitConfig()

    if '--demo' in args:
        name = 'demo'
        samples = simulate_walk(duration_s=10.0, noise=0.5)
    elif args:
        name = Path(args[0]).stem
        samples = load_session_csv(args[0])
    else:
        print(__doc__)
        sys.exit(1)

    by_limb = split_by_limb(samples)
    out_dir = OUT_ROOT / name
    out_dir.mkdir(parents=True, exist_ok=True)

    plot_contact(by_limb, config, out_dir / '01_contact.png')
    plot_tilt(by_limb, config, out_dir / '02_tilt.png')
    plot_step_length(by_limb, config, out_dir / '03_step_length.png')
    print(f'Figures saved -> {out_dir}')


if __name__ == '__main__':
    main()
