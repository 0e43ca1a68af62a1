#!/usr/bin/env python3
# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
run_experiments.py — Play many Ashwick settlements headless and tally how they end.

Each run is a separate ``python -m ashwick`` process writing its metrics
CSVs into one output directory.  The batch reads the ``Outcome`` line of
every run's final report, so the tally (victory, abandonment, ...) is
available without opening the CSVs.

Usage examples
──────────────
    # Seeds 1..5 under the default governance rules
    python run_experiments.py --seeds 1-5

    # Every deficit lethal, with a scripted steward
    python run_experiments.py --seeds 1-20 --condition starvation --variant starvation \
        --extra-args "--plan plans/farm_first.json"

    # Every condition of an experiment file
    python run_experiments.py --plan experiments.json

    # After a batch: are all metrics files there?
    python run_experiments.py --verify --plan experiments.json

Experiment file
───────────────
    {"default_days": 50,
     "conditions": [
        {"name": "governance", "seeds": "1-10"},
        {"name": "baseline",   "seeds": "1-10", "variant": "baseline"},
        {"name": "farmers",    "seeds": "1-10", "extra_args": ["--plan", "farm.json"]}
     ]}
"""

import argparse
import collections
import json
import os
import re
import subprocess
import sys
import time

from ashwick.config import VARIANTS
from ashwick.state import EndReason

RUN_TIMEOUT = 600   # seconds per settlement

_OUTCOME_LINE = re.compile(r'^Outcome\s*:.*\((?P<reason>[a-z ]+)\)\s*$', re.MULTILINE)


# ── Helpers ────────────────────────────────────────────────────────────────

def parse_seed_range(text: str) -> list:
    """'1-20' → 1..20, '1,3,5' → [1, 3, 5], '42' → [42].  Parts may be mixed."""
    seeds = []
    for part in text.split(','):
        part = part.strip()
        if '-' in part:
            lo, hi = part.split('-', 1)
            seeds.extend(range(int(lo), int(hi) + 1))
        else:
            seeds.append(int(part))
    return seeds


def build_command(seed: int, condition: str, days: int | None,
                  variant: str | None, extra_args: list,
                  output_dir: str = 'data') -> list:
    cmd = [
        sys.executable, '-m', 'ashwick',
        '--seed', str(seed),
        '--condition', condition,
        '--output-dir', output_dir,
    ]
    if days is not None:
        cmd += ['--days', str(days)]
    if variant:
        cmd += ['--variant', variant]
    return cmd + list(extra_args)


def read_outcome(stdout: str) -> str:
    """End reason reported by a finished run, or 'ongoing' when --days cut it short
    before any ending (or no report was printed)."""
    found = _OUTCOME_LINE.findall(stdout)
    if not found:
        return EndReason.ONGOING.value
    reason = found[-1].strip()
    return reason if reason in {r.value for r in EndReason} else EndReason.ONGOING.value


def check_variant(variant: str | None) -> None:
    if variant is not None and variant not in VARIANTS:
        raise ValueError(f"unknown variant {variant!r} "
                         f"(choose from {', '.join(sorted(VARIANTS))})")


def _result(seed: int, condition: str, ok: bool, elapsed: float,
            returncode: int, outcome: str = 'error') -> dict:
    return {
        'seed': seed,
        'condition': condition,
        'ok': ok,
        'elapsed': elapsed,
        'returncode': returncode,
        'outcome': outcome,
    }


def tally_outcomes(results: list) -> dict:
    """Count results per outcome, most common first."""
    return dict(collections.Counter(r['outcome'] for r in results).most_common())


def _print_tally(results: list, indent: str = '   ') -> None:
    for outcome, n in tally_outcomes(results).items():
        print(f'{indent}{outcome:<20} {n}')


# ── Running ────────────────────────────────────────────────────────────────

def run_single(seed: int, condition: str, days: int | None, variant: str | None,
               extra_args: list, output_dir: str = 'data') -> dict:
    cmd = build_command(seed, condition, days, variant, extra_args, output_dir)

    print(f'  [{condition}] seed={seed}  ...', end='', flush=True)
    t0 = time.time()
    proc = subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        encoding='utf-8',
        errors='replace',
        timeout=RUN_TIMEOUT,
    )
    elapsed = round(time.time() - t0, 1)

    if proc.returncode != 0:
        print(f'  FAIL(rc={proc.returncode})  ({elapsed}s)')
        for line in proc.stderr.strip().splitlines()[-10:]:
            print(f'    | {line}')
        return _result(seed, condition, False, elapsed, proc.returncode)

    outcome = read_outcome(proc.stdout)
    print(f'  {outcome}  ({elapsed}s)')
    return _result(seed, condition, True, elapsed, 0, outcome)


def run_batch(seeds: list, condition: str, days: int | None, variant: str | None,
              extra_args: list, output_dir: str = 'data') -> list:
    """One condition, every seed, one after another."""
    results = []
    for seed in seeds:
        try:
            results.append(run_single(seed, condition, days, variant, extra_args, output_dir))
        except subprocess.TimeoutExpired:
            print(f'  [{condition}] seed={seed}  TIMEOUT after {RUN_TIMEOUT}s')
            results.append(_result(seed, condition, False, RUN_TIMEOUT, -1, 'timeout'))
        except OSError as exc:
            print(f'  [{condition}] seed={seed}  ERROR: {exc}')
            results.append(_result(seed, condition, False, 0, -1))
    return results


def _load_experiments(path: str) -> dict:
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    for cond in data.get('conditions', []):
        check_variant(cond.get('variant'))
    return data


def run_from_plan(plan_path: str, output_dir: str = 'data') -> list:
    experiments = _load_experiments(plan_path)
    conditions = experiments.get('conditions', [])
    default_days = experiments.get('default_days')

    print(f'\n{"=" * 60}')
    print(f'  Experiments: {plan_path}')
    print(f'  Conditions : {len(conditions)}')
    print(f'  Days       : {default_days or "until each run ends"}')
    print(f'{"=" * 60}\n')

    all_results = []
    for cond in conditions:
        name = cond['name']
        seeds = parse_seed_range(str(cond.get('seeds', '1-5')))
        variant = cond.get('variant')
        extra = cond.get('extra_args', [])
        if isinstance(extra, str):
            extra = extra.split()

        print(f'\n── {name}  ({len(seeds)} seeds, rules: {variant or "governance"}) ──')
        results = run_batch(seeds, name, cond.get('days', default_days),
                            variant, extra, output_dir)
        all_results.extend(results)
        _print_tally(results)

    print(f'\n{"=" * 60}')
    ok_total = sum(1 for r in all_results if r['ok'])
    print(f'  Runs finished: {ok_total}/{len(all_results)}')
    _print_tally(all_results, indent='  ')
    print(f'{"=" * 60}\n')
    return all_results


def verify_outputs(plan_path: str, output_dir: str = 'data') -> bool:
    """Every seed of every condition needs its metrics CSV; the batch needs
    run_summaries.csv."""
    experiments = _load_experiments(plan_path)

    missing = []
    for cond in experiments.get('conditions', []):
        for seed in parse_seed_range(str(cond.get('seeds', '1-5'))):
            csv_path = os.path.join(output_dir, f'metrics_seed_{seed}.csv')
            if not os.path.isfile(csv_path):
                missing.append((cond['name'], seed, csv_path))

    summary_path = os.path.join(output_dir, 'run_summaries.csv')
    if not os.path.isfile(summary_path):
        missing.append(('*', '*', summary_path))

    if missing:
        print(f'\n  ✗ {len(missing)} missing output(s):')
        for cond, seed, path in missing[:20]:
            print(f'    [{cond}] seed={seed}: {path}')
        if len(missing) > 20:
            print(f'    ... and {len(missing) - 20} more')
        return False
    print('  ✓ All expected outputs found.')
    return True


# ── Main ───────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Play many Ashwick settlements and tally how they end')

    parser.add_argument('--seeds', type=str, default=None,
                        help='Seeds to play, e.g. "1-100" or "1,5,10"')
    parser.add_argument('--condition', type=str, default='governance',
                        help='Label written into run_summaries.csv')
    parser.add_argument('--variant', type=str, default=None,
                        help=f'Rule set: {", ".join(sorted(VARIANTS))}')
    parser.add_argument('--days', type=int, default=None,
                        help='Stop each run after this many days (default: until it ends)')
    parser.add_argument('--extra-args', type=str, default='',
                        help='Further ashwick CLI arguments (quoted string)')
    parser.add_argument('--output-dir', type=str, default='data',
                        help='Where metrics CSVs are written (default: data)')
    parser.add_argument('--plan', type=str, default=None,
                        help='Experiment file (JSON)')
    parser.add_argument('--verify', action='store_true',
                        help='Only check the outputs of --plan exist')

    args = parser.parse_args(argv)
    try:
        check_variant(args.variant)
    except ValueError as exc:
        parser.error(str(exc))

    if args.plan:
        try:
            if args.verify:
                sys.exit(0 if verify_outputs(args.plan, args.output_dir) else 1)
            run_from_plan(args.plan, args.output_dir)
        except ValueError as exc:
            parser.error(f'{args.plan}: {exc}')
    elif args.seeds:
        seeds = parse_seed_range(args.seeds)
        extra = args.extra_args.split() if args.extra_args else []
        print(f'\n-- {args.condition}  ({len(seeds)} seeds) --')
        results = run_batch(seeds, args.condition, args.days, args.variant,
                            extra, args.output_dir)
        print(f'\n  Finished: {sum(1 for r in results if r["ok"])}/{len(results)}')
        _print_tally(results, indent='  ')
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
