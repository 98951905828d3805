"""
Session Report - Bilateral Gait Metrics
=======================================

Runs the batch analytics over one recorded session (CSV export of the
sample table) and prints per-limb metrics plus left/right asymmetry.

Usage:
    python scripts/analyze_session.py session.csv               # report
    python scripts/analyze_session.py session.csv --config c.json
    python scripts/analyze_session.py --demo                    # simulated walk
    python scripts/analyze_session.py session.csv --json out.json
"""

import sys
import json
import logging
from dataclasses import asdict
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from insole_gait.config import GaitConfig, load_config
from insole_gait.data_loader import load_session_csv, split_by_limb
from insole_gait.metrics import compute_bilateral_analytics
from insole_gait.simulation import simulate_walk


def _option(args, name):
    if name in args:
        i = args.index(name)
        if i + 1 < len(args):
            return args[i + 1]
    return None


def print_limb(name, m):
    b, ld, imu = m.basic, m.load, m.imu
    print(f'  {name.upper()}')
    print(f'    Steps            : {b.step_count}')
    print(f'    Cadence          : {b.cadence:.1f} steps/min')
    print(f'    Contact time     : {b.avg_contact_time:.0f} ms  (CV {m.variability.contact_time_cv:.1f}%)')
    print(f'    Stance           : {b.stance_percent:.1f}%')
    print(f'    Heel / forefoot  : {ld.heel_pct:.1f}% / {ld.forefoot_pct:.1f}%')
    print(f'    Medial / lateral : {ld.medial_pct:.1f}% / {ld.lateral_pct:.1f}%  ({ld.dominant_region})')
    print(f'    Pitch range      : {m.orientation.pitch_range:.1f} deg')
    print(f'    Peak shock       : {imu.avg_peak_shock:.2f} g')
    print(f'    Swing speed      : {imu.avg_swing_speed:.0f} deg/s')
    print(f'    Step length      : {m.avg_step_length:.2f} m')
    print(f'    Gait speed       : {m.gait_speed:.2f} m/s')
    for insight in m.insights:
        print(f'    [{insight.severity}] {insight.label}')


def main():
    args = sys.argv[1:]
    logging.basicConfig(level=logging.DEBUG if '--verbose' in args else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    config_path = _option(args, '--config')
    json_path = _option(args, '--json')
    config = load_config(config_path) if config_path else GaitConfig()

    if '--demo' in args:
        source = 'simulated walk (10 s)'
        samples = simulate_walk(duration_s=10.0, noise=0.5)
    else:
        paths = [a for a in args if not a.startswith('--') and a not in (config_path, json_path)]
        if not paths:
            print(__doc__)
            sys.exit(1)
        source = paths[0]
        try:
            samples = load_session_csv(source)
        except (FileNotFoundError, ValueError) as e:
            print(f'  Cannot load {source}: {e}')
            sys.exit(1)

    by_limb = split_by_limb(samples)
    result = compute_bilateral_analytics(by_limb['left'], by_limb['right'], config)
    asym = result.asymmetry

    print(f'\n{"="*55}')
    print(f'Session    : {source}')
    print(f'Samples    : {len(samples)} '
          f'(left {len(by_limb["left"])}, right {len(by_limb["right"])})')
    print(f'{"="*55}')
    print_limb('left', result.left)
    print_limb('right', result.right)
    print(f'  ASYMMETRY')
    print(f'    Step count diff  : {asym.step_count_diff:+d}')
    print(f'    Contact time SI  : {asym.contact_time_si:+.1f}%  ({asym.severity})')
    print(f'    Heel load SI     : {asym.load_si:+.1f}%  ({asym.load_severity})')
    print(f'{"="*55}')

    if json_path:
        with open(json_path, 'w', encoding='utf-8') as fh:
            json.dump(asdict(result), fh, indent=2)
        print(f'Saved -> {json_path}')


if __name__ == '__main__':
    main()
