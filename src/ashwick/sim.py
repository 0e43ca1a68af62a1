# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
sim.py — Headless command-line runner for the Ashwick settlement.

Run with:  python -m ashwick --seed 1337 --variant governance

Each simulated day:
  1. planned player actions for the day are applied (``--plan``)
  2. a pending event is answered by the steward rule
  3. the engine ticks (manual loop, or a threading timer in scheduled mode)
  4. metrics row, dashboard snapshot, progress line, full render → log file

Plan file format
────────────────
  {"actions": [
      {"day": 1,  "action": "preset", "name": "balanced"},
      {"day": 4,  "action": "build_farm"},
      {"day": 10, "action": "labor", "slot": "tooling", "workers": 4},
      {"day": 12, "action": "resolve", "option_index": 1}
  ]}
A bare list of the same entries is accepted too.
"""

import argparse
import json
import pathlib
import sys
import threading
from collections import defaultdict
from datetime import datetime

from . import dashboard_bridge
from . import display
from .actions import PlayerAction, ResolveEvent, from_dict
from .config import (
    ConfigError, DEFAULT_TUNING, DEFAULT_SEED, DEFAULT_MODE, DEFAULT_INTERVAL,
    VARIANTS, Tuning,
)
from .engine import SettlementEngine, TickReport, MODES
from .metrics import MetricsLogger
from .scheduler import ManualScheduler, ThreadingIntervalScheduler


# ══════════════════════════════════════════════════════════════════════════
# Logging — tees stdout to file; shows only notable lines on terminal
# ══════════════════════════════════════════════════════════════════════════

class _LogTee:
    """Every byte goes to the log file.  Only filtered lines reach the terminal."""

    # Keywords that earn a line a spot on the terminal during the run
    _SHOW = frozenset({
        # Progress
        '[Day ',
        # Hardship
        'Starvation killed', 'Emigration:',
        # Random events and their outcomes
        'EVENT —', 'Steward:',
        # Fatal / terminal signals
        'RUN ENDED', '[Simulation interrupted',
        # Player orders
        'Built a farm', 'Rationing enforced', 'Feast declared', 'Applied preset',
    })

    passthrough: bool = False   # True → show everything (used for final report)

    def __init__(self, log_fh, real_stdout):
        self._log  = log_fh
        self._real = real_stdout
        self._buf  = ''

    def write(self, text: str) -> None:
        self._log.write(text)
        self._log.flush()
        self._buf += text
        while '\n' in self._buf:
            line, self._buf = self._buf.split('\n', 1)
            show = self.passthrough or (
                any(kw in line for kw in self._SHOW)
                and '│' not in line   # skip box-border lines (│)
            )
            if show:
                self._real.write(line + '\n')
                self._real.flush()

    def flush(self) -> None:
        self._log.flush()

    def fileno(self) -> int:          # lets sys.stderr etc. work
        return self._real.fileno()


# ══════════════════════════════════════════════════════════════════════════
# Input files
# ══════════════════════════════════════════════════════════════════════════

def _read_json(path: str, what: str):
    try:
        with open(path, 'r', encoding='utf-8') as fh:
            return json.load(fh)
    except OSError as exc:
        raise ConfigError(f"cannot read {what} file {path!r}: {exc}") from None
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{what} file {path!r} is not valid JSON: {exc}") from None


def load_tuning(path: str | None, variant: str | None = None,
                victory_day: int | None = None, base: Tuning = DEFAULT_TUNING) -> Tuning:
    """Apply a variant, then a JSON override file, then --victory-day."""
    tuning = base
    if variant:
        tuning = tuning.with_overrides({'mechanics': variant})
    if path:
        data = _read_json(path, 'tuning')
        if not isinstance(data, dict):
            raise ConfigError(f"tuning file {path!r} must hold a JSON object")
        tuning = tuning.with_overrides(data)
    if victory_day is not None:
        if victory_day < 1:
            raise ConfigError(f"victory day must be at least 1, got {victory_day}")
        tuning = tuning.with_overrides({'victory_day': victory_day})
    return tuning


def load_plan(path: str | None) -> dict[int, list[PlayerAction]]:
    """Map day → ordered player actions.  Empty when *path* is None."""
    plan: dict[int, list[PlayerAction]] = defaultdict(list)
    if not path:
        return plan
    data = _read_json(path, 'plan')
    entries = data.get('actions', []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ConfigError(f"plan file {path!r} must hold a list of actions")
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict) or 'day' not in entry:
            raise ConfigError(f"plan entry {i} needs a 'day' and an 'action'")
        try:
            day = int(entry['day'])
            plan[day].append(from_dict(entry))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"plan entry {i}: {exc}") from None
    return plan


# ══════════════════════════════════════════════════════════════════════════
# Steward — answers events the plan left open
# ══════════════════════════════════════════════════════════════════════════

def steward_choice(view) -> int | None:
    """Index of the first option whose guard holds, or None when idle."""
    for i, (_label, ok) in enumerate(view.event_options):
        if ok:
            return i
    return None


# ══════════════════════════════════════════════════════════════════════════
# Driver
# ══════════════════════════════════════════════════════════════════════════

class _RunDriver:
    """Glue between one engine and the run's outputs.

    ``before_day`` runs the plan and the steward for the upcoming day;
    ``after_day`` records what the tick produced.  Both run while the
    engine lock is held in scheduled mode, since the engine calls
    ``on_tick`` from inside ``tick``.
    """

    def __init__(self, engine: SettlementEngine, plan: dict, max_days: int,
                 metrics: MetricsLogger | None, dashboard: bool) -> None:
        self.engine    = engine
        self.plan      = plan
        self.max_days  = max_days
        self.metrics   = metrics
        self.dashboard = dashboard
        self.days_run  = 0
        self.finished  = threading.Event()

    def before_day(self) -> None:
        eng = self.engine
        day = eng.state.day
        for action in self.plan.get(day, []):
            result = eng.apply(action)
            if self.metrics is not None:
                kind = 'action' if result.accepted else 'action_rejected'
                self.metrics.record_event(day, kind, action.describe())
        view = eng.view()
        choice = steward_choice(view)
        if choice is not None:
            title = view.active_event_definition.title
            result = eng.apply(ResolveEvent(choice))
            print(f"Day {day:03d}: Steward: answered \"{title}\" with option {choice}.")
            if self.metrics is not None and result.accepted:
                self.metrics.record_event(day, 'event_resolved',
                                          f"{view.active_event.value}:{choice}")

    def after_day(self, report: TickReport) -> None:
        if report.skipped:
            return
        self.days_run += 1
        view = self.engine.view()
        if self.metrics is not None:
            self.metrics.record_day(report, view)
        last = report.ended or self.days_run >= self.max_days
        if self.dashboard and (last or report.day % dashboard_bridge.DASHBOARD_WRITE_EVERY == 0):
            dashboard_bridge.write_dashboard_snapshot(view)

        print(f"[Day {report.day:03d}] Pop: {view.population} | Food: {view.food:.1f} | "
              f"Morale: {view.morale:.1f} | Legitimacy: {view.legitimacy:.1f} | "
              f"Status: {view.status}")
        display.render(view, self.engine.tuning.victory_day)

        if last:
            self.finished.set()
            self.engine.close()
        else:
            self.before_day()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='ashwick',
        description='Run the Ashwick settlement simulation headless.',
    )
    parser.add_argument('--seed', type=str, default=str(DEFAULT_SEED),
                        help=f'seed value, any string or number (default: {DEFAULT_SEED})')
    parser.add_argument('--days', type=int, default=None,
                        help='stop after this many days (default: run to the end)')
    parser.add_argument('--victory-day', type=int, default=None,
                        help='day on which surviving counts as victory')
    parser.add_argument('--variant', choices=sorted(VARIANTS), default=None,
                        help='named rule set (default: governance)')
    parser.add_argument('--tuning', type=str, default=None,
                        help='JSON file of tuning overrides')
    parser.add_argument('--plan', type=str, default=None,
                        help='JSON file of player actions by day')
    parser.add_argument('--mode', choices=MODES, default=DEFAULT_MODE,
                        help='manual: step as fast as possible; scheduled: one day per interval')
    parser.add_argument('--interval', type=float, default=DEFAULT_INTERVAL,
                        help=f'seconds per day in scheduled mode (default: {DEFAULT_INTERVAL})')
    parser.add_argument('--condition', type=str, default='default',
                        help='experiment condition label written to metrics')
    parser.add_argument('--output-dir', type=str, default='data',
                        help='directory for metrics CSV files (default: data)')
    parser.add_argument('--no-metrics', action='store_true',
                        help='do not write metrics CSV files')
    parser.add_argument('--dashboard', action='store_true',
                        help='write dashboard_data.json for the Streamlit dashboard')
    return parser


def run(argv=None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.interval <= 0:
        parser.error('--interval must be positive')
    if args.days is not None and args.days < 1:
        parser.error('--days must be at least 1')
    try:
        tuning = load_tuning(args.tuning, args.variant, args.victory_day)
        plan   = load_plan(args.plan)
    except ConfigError as exc:
        parser.error(str(exc))

    max_days = args.days if args.days is not None else tuning.victory_day
    seed     = args.seed

    # ── Set up file logging ────────────────────────────────────────────────
    pathlib.Path('logs').mkdir(exist_ok=True)
    _ts       = datetime.now().strftime('%Y%m%d_%H%M%S')
    _log_path = f'logs/run_{_ts}.txt'
    _log_fh   = open(_log_path, 'w', encoding='utf-8')
    _real     = sys.stdout
    _tee      = _LogTee(_log_fh, _real)
    sys.stdout    = _tee
    display.LOG_MODE = True

    _real.write(f"Log → {_log_path}\n")
    _real.write(f"Running up to {max_days} days  seed={seed}  "
                f"variant={args.variant or 'governance'}  mode={args.mode}\n\n")

    metrics = None if args.no_metrics else MetricsLogger(seed, args.condition, args.output_dir)
    if args.dashboard:
        dashboard_bridge.reset_history()

    scheduler = (ThreadingIntervalScheduler() if args.mode == 'scheduled'
                 else ManualScheduler())
    engine = SettlementEngine(seed=seed, tuning=tuning, scheduler=scheduler,
                              mode='manual', interval=args.interval)
    driver = _RunDriver(engine, plan, max_days, metrics, args.dashboard)
    engine.on_tick = driver.after_day

    try:
        driver.before_day()
        if args.mode == 'scheduled':
            engine.set_speed(args.interval)
            while not driver.finished.wait(0.25):
                pass
        else:
            while not driver.finished.is_set():
                report = engine.step()
                if report.skipped:
                    break

    except KeyboardInterrupt:
        print("\n\n[Simulation interrupted by user]\n")

    finally:
        engine.close()
        _real.write('\n')
        _tee.passthrough = True
        view = engine.view()
        display.final_report(view, engine.event_log, tuning.start_population)
        if metrics is not None:
            metrics.finalize(view, args.variant or 'governance')
            metrics.close()
        sys.stdout = _real
        _log_fh.close()
        print(f"\nFull log saved → {_log_path}")

    return 0


# ══════════════════════════════════════════════════════════════════════════
if __name__ == '__main__':
    sys.exit(run())
