# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
metrics.py — Per-Day Metrics Logger for the Ashwick settlement simulation.

Collects per-day meters, discrete events and a run-level summary, writing
them to CSV files for later analysis across seeds and variants.
"""

import csv
import os
import time
import tracemalloc
from pathlib import Path


class MetricsLogger:
    """Collects per-day simulation metrics and writes them to CSV."""

    EVENT_TYPES = frozenset({
        'starvation', 'emigration', 'event_triggered', 'event_resolved',
        'action', 'action_rejected', 'run_ended',
    })

    def __init__(self, seed, condition: str, output_dir: str = "data"):
        self.seed = seed
        self.condition = condition
        self.output_dir = output_dir

        Path(output_dir).mkdir(parents=True, exist_ok=True)

        self._metrics_path = os.path.join(output_dir, f"metrics_seed_{seed}.csv")
        self._events_path = os.path.join(output_dir, f"settlement_events_seed_{seed}.csv")

        self._metrics_fh = open(self._metrics_path, 'w', newline='', encoding='utf-8')
        self._events_fh = open(self._events_path, 'w', newline='', encoding='utf-8')

        self._metrics_writer = csv.writer(self._metrics_fh)
        self._events_writer = csv.writer(self._events_fh)

        self._metrics_writer.writerow([
            'seed', 'day', 'population', 'food', 'material', 'tooling',
            'morale', 'legitimacy', 'p_subsistence', 'p_security',
            'p_extraction', 'hunger_streak', 'emigration_streak',
            'labor_food', 'labor_material', 'labor_tooling', 'farms',
            'deficit', 'deaths', 'emigrants', 'event', 'status',
        ])
        self._metrics_fh.flush()

        self._events_writer.writerow([
            'seed', 'day', 'event_type', 'detail',
        ])
        self._events_fh.flush()

        # Cumulative counters
        self.total_deaths = 0
        self.total_emigrants = 0
        self.total_events = 0
        self.total_actions = 0
        self.rejected_actions = 0
        self.hungry_days = 0

        # Running stats for finalize
        self._peak_population = 0
        self._min_population = None
        self._min_legitimacy = None
        self._peak_pressure = 0.0

        self.start_time = time.time()
        tracemalloc.start()

    def _warn(self, what: str, exc: Exception) -> None:
        print(f"  ⚠ metrics: could not write {what}: {exc}")

    # ──────────────────────────────────────────────────────────────────────
    # Per-day recording
    # ──────────────────────────────────────────────────────────────────────

    def record_day(self, report, view):
        """Called once per simulated day with its TickReport and the view after it."""
        if report.skipped:
            return
        self.total_deaths += report.outcome.deaths
        self.total_emigrants += report.emigrants
        if report.deficit > 0:
            self.hungry_days += 1
        if report.outcome.deaths:
            self.record_event(report.day, 'starvation', f"{report.outcome.deaths} died")
        if report.emigrants:
            self.record_event(report.day, 'emigration', f"{report.emigrants} left")
        if report.event is not None:
            self.record_event(report.day, 'event_triggered', report.event.value)
        if report.ended:
            self.record_event(report.day, 'run_ended', report.end_reason.value)

        pop = view.population
        self._peak_population = max(self._peak_population, pop)
        self._min_population = pop if self._min_population is None else min(self._min_population, pop)
        self._min_legitimacy = (view.legitimacy if self._min_legitimacy is None
                                else min(self._min_legitimacy, view.legitimacy))
        self._peak_pressure = max(self._peak_pressure, view.pressure_total)

        try:
            self._metrics_writer.writerow([
                self.seed, report.day, pop,
                round(view.food, 3), round(view.material, 3), round(view.tooling, 3),
                round(view.morale, 3), round(view.legitimacy, 3),
                round(view.pressure_subsistence, 3), round(view.pressure_security, 3),
                round(view.pressure_extraction, 3),
                view.hunger_streak, view.emigration_streak,
                view.labor_food, view.labor_material, view.labor_tooling, view.farms,
                round(report.deficit, 3), report.outcome.deaths, report.emigrants,
                report.event.value if report.event is not None else '',
                view.status,
            ])
            if report.day % 10 == 0 or report.ended:
                self._metrics_fh.flush()
        except OSError as exc:
            self._warn(self._metrics_path, exc)

    # ──────────────────────────────────────────────────────────────────────
    # Discrete event recording
    # ──────────────────────────────────────────────────────────────────────

    def record_event(self, day, event_type, detail=""):
        """Write one row and bump the matching counter.

        event_type must be one of EVENT_TYPES.
        """
        if event_type not in self.EVENT_TYPES:
            raise ValueError(f"unknown metrics event type {event_type!r}")
        if event_type == 'event_triggered':
            self.total_events += 1
        elif event_type in ('action', 'event_resolved'):
            self.total_actions += 1
        elif event_type == 'action_rejected':
            self.rejected_actions += 1
        try:
            self._events_writer.writerow([self.seed, day, event_type, detail])
            self._events_fh.flush()
        except OSError as exc:
            self._warn(self._events_path, exc)

    # ──────────────────────────────────────────────────────────────────────
    # Finalize — run-level summary
    # ──────────────────────────────────────────────────────────────────────

    def finalize(self, view, variant: str = ""):
        """Called once at end of simulation.  Appends one row to
        <output_dir>/run_summaries.csv.
        """
        wall_clock = round(time.time() - self.start_time, 2)
        peak_ram = 0.0
        if tracemalloc.is_tracing():
            peak_ram = round(tracemalloc.get_traced_memory()[1] / (1024 * 1024), 2)
            tracemalloc.stop()

        summary_path = os.path.join(self.output_dir, "run_summaries.csv")
        file_exists = os.path.isfile(summary_path)
        try:
            with open(summary_path, 'a', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)
                if not file_exists:
                    writer.writerow([
                        'seed', 'condition', 'variant', 'final_day', 'end_reason',
                        'final_population', 'peak_population', 'min_population',
                        'final_morale', 'final_legitimacy', 'min_legitimacy',
                        'peak_pressure_total', 'farms',
                        'total_deaths', 'total_emigrants', 'hungry_days',
                        'total_events', 'total_actions', 'rejected_actions',
                        'wall_clock_seconds', 'peak_ram_mb',
                    ])
                writer.writerow([
                    self.seed, self.condition, variant, view.day, view.end_reason.value,
                    view.population, self._peak_population,
                    self._min_population if self._min_population is not None else view.population,
                    round(view.morale, 3), round(view.legitimacy, 3),
                    round(self._min_legitimacy if self._min_legitimacy is not None
                          else view.legitimacy, 3),
                    round(self._peak_pressure, 3), view.farms,
                    self.total_deaths, self.total_emigrants, self.hungry_days,
                    self.total_events, self.total_actions, self.rejected_actions,
                    wall_clock, peak_ram,
                ])
        except OSError as exc:
            self._warn(summary_path, exc)

    # ──────────────────────────────────────────────────────────────────────
    # Cleanup
    # ──────────────────────────────────────────────────────────────────────

    def close(self):
        """Flush and close all CSV file handles.  Call after finalize()."""
        for fh in (self._metrics_fh, self._events_fh):
            try:
                fh.flush()
                fh.close()
            except OSError as exc:
                self._warn(fh.name, exc)
