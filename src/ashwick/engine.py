# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
engine.py — SettlementEngine: one run of the settlement, one day at a time.

Phase architecture (fixed order, once per day)
──────────────────────────────────────────────
   1 · workforce   — reconcile labor against population
   2 · policy      — rationing / feasting timers count down
   3 · production  — food, material, tooling from labor
   4 · decay       — tooling wear
   5 · consumption — eat; shortfall becomes the deficit
   6 · starvation  — hunger streak, morale loss, maybe deaths
   7 · pressures   — subsistence / security / extraction     (pressure model)
   8 · legitimacy  — bleed or recovery, ambient morale drift  (pressure model)
   9 · emigration  — sustained misery drives people away     (pressure model)
  10 · events      — roll for a random occurrence             (events)
  11 · terminal    — collapse, abandonment, removal, victory
  12 · clock       — day += 1 (skipped once the run ends)

Every mutation (tick, player action, reset) holds the engine's RLock, so
a timer thread firing ``tick`` cannot interleave with player input.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from . import events
from .actions import (
    ActionResult, PlayerAction,
    ReallocateLabor, BuildFarm, DeclareRationing, DeclareFeast,
    ApplyPreset, ResolveEvent,
)
from .bridge import SettlementView, settlement_status
from .config import (
    Tuning, DEFAULT_TUNING, DEFAULT_SEED, DEFAULT_MODE, DEFAULT_INTERVAL,
)
from .consumption import StarvationOutcome, FED, apply_consumption, apply_starvation
from .pressure import (
    adjust, update_pressures, update_legitimacy_and_morale, apply_emigration,
)
from .production import (
    ProductionResult, Rates, apply_production, apply_tooling_decay, compute_rates,
)
from .rng import SeededRng
from .scheduler import IntervalScheduler, ThreadingIntervalScheduler
from .state import SettlementState, EndReason, initial_state
from .workforce import reconcile, set_labor, apply_preset

MODES = ('manual', 'scheduled')

_END_MESSAGES = {
    EndReason.POPULATION_COLLAPSE: "Population collapsed.",
    EndReason.ABANDONMENT:         "The settlement was abandoned.",
    EndReason.LEGITIMACY_COLLAPSE: "Legitimacy collapsed. You were removed from power.",
}


@dataclass(frozen=True)
class TickReport:
    day:        int
    production: Optional[ProductionResult] = None
    deficit:    float = 0.0
    outcome:    StarvationOutcome = FED
    emigrants:  int   = 0
    event:      Optional[events.EventKind] = None
    ended:      bool  = False
    end_reason: EndReason = EndReason.ONGOING
    skipped:    bool  = False


class SettlementEngine:
    """Owns one SettlementState, its RNG cursor, its log and its timer handle."""

    def __init__(
        self,
        seed=DEFAULT_SEED,
        tuning:    Tuning = DEFAULT_TUNING,
        scheduler: Optional[IntervalScheduler] = None,
        on_render: Optional[Callable[[SettlementView], None]] = None,
        on_tick:   Optional[Callable[[TickReport], None]] = None,
        mode:      str   = DEFAULT_MODE,
        interval:  float = DEFAULT_INTERVAL,
        echo:      bool  = True,
    ) -> None:
        if mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {mode!r}")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        self.tuning        = tuning
        self.scheduler     = scheduler if scheduler is not None else ThreadingIntervalScheduler()
        self.on_render     = on_render
        self.on_tick       = on_tick
        self.mode          = mode
        self.paused        = False
        self.tick_interval = float(interval)
        self.echo          = echo
        self.event_log: list[str] = []
        self.closed        = False

        self._lock       = threading.RLock()
        self._arm_generation = 0
        self._seed_value = seed
        self.state: SettlementState = initial_state(seed, tuning)
        self.rng = SeededRng(self.state)

        self._log(f"New run started. Seed: {self.state.seed}")
        self.apply_time_control()

    # ══════════════════════════════════════════════════════════════════════
    # Logging and rendering
    # ══════════════════════════════════════════════════════════════════════

    def _log(self, text: str) -> str:
        msg = f"Day {self.state.day:03d}: {text}"
        self.event_log.append(msg)
        if self.echo:
            print(msg)
        return msg

    def view(self) -> SettlementView:
        with self._lock:
            return SettlementView(
                state     = self.state,
                tuning    = self.tuning,
                event_log = self.event_log,
                mode      = self.mode,
                paused    = self.paused,
                interval  = self.tick_interval,
            )

    def _render(self) -> None:
        if self.on_render is not None:
            self.on_render(self.view())

    def rates(self) -> Rates:
        with self._lock:
            return compute_rates(self.state, self.tuning)

    def status(self) -> str:
        with self._lock:
            return settlement_status(self.state, self.tuning)

    # ══════════════════════════════════════════════════════════════════════
    # The day
    # ══════════════════════════════════════════════════════════════════════

    def tick(self, source: str = 'manual') -> TickReport:
        """Advance one day.  No-op (``skipped``) after the run ends, or for a
        scheduled call while paused or outside scheduled mode."""
        with self._lock:
            if self.state.ended or self.closed:
                return TickReport(day=self.state.day, ended=self.state.ended,
                                  end_reason=self.state.end_reason, skipped=True)
            if source == 'scheduled' and (self.paused or self.mode != 'scheduled'):
                return TickReport(day=self.state.day, skipped=True)

            report = self._run_day()
            if report.ended:
                self.scheduler.disarm()
            self._render()
            if self.on_tick is not None:
                self.on_tick(report)
            return report

    def step(self) -> TickReport:
        """Manual single step.  Ignores pause."""
        return self.tick(source='manual')

    def _run_day(self) -> TickReport:
        s, t, mech = self.state, self.tuning, self.tuning.mechanics
        day = s.day

        # 1 · workforce
        reconcile(s)

        # 2 · policy timers
        s.policy.rationing_days_left = max(0, s.policy.rationing_days_left - 1)
        s.policy.feasting_days_left  = max(0, s.policy.feasting_days_left - 1)

        # 3 · production, 4 · decay
        produced = apply_production(s, t)
        apply_tooling_decay(s, t)

        # 5 · consumption, 6 · starvation
        deficit = apply_consumption(s, t)
        outcome = apply_starvation(s, t, deficit)
        if outcome.deaths:
            self._log(f"💀 Starvation killed {outcome.deaths} people. "
                      f"(streak: {s.hunger_streak}d)")
        elif deficit > 0:
            self._log(f"Food shortage reduced morale by {outcome.morale_loss:.1f}. "
                      f"(streak: {s.hunger_streak}d)")

        # 7 · pressures, 8 · legitimacy, 9 · emigration
        leaving = 0
        if mech.pressure_model:
            update_pressures(s, t, deficit, outcome)
            update_legitimacy_and_morale(s, t)
            leaving = apply_emigration(s, t)
            if leaving:
                self._log(f"Emigration: {leaving} people left the settlement. "
                          f"(streak: {s.emigration_streak}d)")

        # 10 · events
        triggered = None
        if mech.events:
            triggered = events.maybe_trigger(s, t, self.rng)
            if triggered is not None:
                ev = events.definition(triggered)
                self._log(f"EVENT — {ev.title}: {ev.body}")

        # 11 · terminal checks
        reason = self._terminal_reason()
        if reason is not EndReason.ONGOING:
            s.ended      = True
            s.end_reason = reason
            if reason is EndReason.VICTORY:
                self._log(f"RUN ENDED — You survived {t.victory_day} days. Victory.")
            else:
                self._log(f"RUN ENDED — {_END_MESSAGES[reason]}")
        else:
            # 12 · clock
            s.day += 1

        return TickReport(
            day        = day,
            production = produced,
            deficit    = deficit,
            outcome    = outcome,
            emigrants  = leaving,
            event      = triggered,
            ended      = s.ended,
            end_reason = s.end_reason,
        )

    def _terminal_reason(self) -> EndReason:
        s, t = self.state, self.tuning
        if s.population <= 0:
            return EndReason.POPULATION_COLLAPSE
        if s.population <= t.abandonment_population:
            return EndReason.ABANDONMENT
        if s.legitimacy <= 0:
            return EndReason.LEGITIMACY_COLLAPSE
        if s.day >= t.victory_day:
            return EndReason.VICTORY
        return EndReason.ONGOING

    # ══════════════════════════════════════════════════════════════════════
    # Player actions
    # ══════════════════════════════════════════════════════════════════════

    def apply(self, action: PlayerAction) -> ActionResult:
        """Validate and execute one player command.

        Rejections are logged and returned; they never raise and never
        touch the state.
        """
        with self._lock:
            if self.state.ended:
                return self._reject("The run has ended; no further orders are taken.")

            if isinstance(action, ReallocateLabor):
                result = self._reallocate(action)
            elif isinstance(action, BuildFarm):
                result = self._build_farm()
            elif isinstance(action, DeclareRationing):
                result = self._declare_rationing()
            elif isinstance(action, DeclareFeast):
                result = self._declare_feast()
            elif isinstance(action, ApplyPreset):
                result = self._apply_preset(action)
            elif isinstance(action, ResolveEvent):
                result = self._resolve_event(action)
            else:
                return self._reject(f"Unknown command type {type(action).__name__} — ignored.")

            if result.accepted:
                self._render()
            return result

    def _reject(self, text: str) -> ActionResult:
        return ActionResult(False, self._log(text))

    def _accept(self, text: str) -> ActionResult:
        return ActionResult(True, self._log(text))

    def _reallocate(self, action: ReallocateLabor) -> ActionResult:
        if not action.valid_slot:
            return self._reject(f"Unknown labor slot {action.slot!r}.")
        try:
            workers = int(action.workers)
        except (TypeError, ValueError):
            return self._reject(f"Worker count must be a whole number, got {action.workers!r}.")
        slot = action.slot_name
        set_labor(self.state, slot, workers)
        s = self.state
        return self._accept(f"Labor set: food {s.labor_food} / material {s.labor_material} "
                            f"/ tooling {s.labor_tooling}.")

    def _build_farm(self) -> ActionResult:
        cost = self.tuning.farm_material_cost
        if self.state.material < cost:
            return self._reject("Not enough material to build a farm.")
        self.state.material -= cost
        self.state.buildings.farms += 1
        adjust(self.state, morale=+2, legitimacy=+1, subsistence=-2)
        return self._accept("Built a farm. Food output will scale better.")

    def _declare_rationing(self) -> ActionResult:
        policy = self.state.policy
        policy.rationing_days_left = self.tuning.ration_days
        policy.feasting_days_left  = 0
        adjust(self.state, morale=-6, legitimacy=+1, security=+2)
        return self._accept(f"Rationing enforced for {self.tuning.ration_days} days.")

    def _declare_feast(self) -> ActionResult:
        if self.state.food < self.tuning.feast_min_food:
            return self._reject("Not enough food to feast.")
        policy = self.state.policy
        policy.feasting_days_left  = self.tuning.feast_days
        policy.rationing_days_left = 0
        adjust(self.state, food=-self.tuning.feast_food_cost,
               morale=+8, legitimacy=+2, subsistence=-3)
        return self._accept(f"Feast declared for {self.tuning.feast_days} days.")

    def _apply_preset(self, action: ApplyPreset) -> ActionResult:
        if not isinstance(action.name, str):
            return self._reject(f"Unknown preset {action.name!r}.")
        try:
            f, m, t = apply_preset(self.state, action.name)
        except KeyError:
            return self._reject(f"Unknown preset {action.name!r}.")
        return self._accept(f"Applied preset: {action.name} ({f}/{m}/{t}).")

    def _resolve_event(self, action: ResolveEvent) -> ActionResult:
        index = action.option_index
        if isinstance(index, bool) or not isinstance(index, int):
            return self._reject(f"Option must be a whole number, got {index!r}.")
        res = events.resolve(self.state, self.tuning, self.rng, action.option_index)
        if res.accepted:
            return self._accept(res.message)
        return self._reject(res.message)

    # ══════════════════════════════════════════════════════════════════════
    # Run control
    # ══════════════════════════════════════════════════════════════════════

    def apply_time_control(self) -> None:
        """Disarm, then re-arm only for a live, unpaused, scheduled run."""
        with self._lock:
            self.scheduler.disarm()
            self._arm_generation += 1
            if self.state.ended or self.closed:
                return
            if self.mode == 'scheduled' and not self.paused:
                generation = self._arm_generation
                self.scheduler.arm(self.tick_interval,
                                   lambda: self._scheduled_tick(generation))

    def _scheduled_tick(self, generation: int) -> None:
        # A timer thread may already be past its own cancellation check.
        with self._lock:
            if generation != self._arm_generation:
                return
            self.tick(source='scheduled')

    def set_mode(self, mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {mode!r}")
        with self._lock:
            if self.state.ended:
                return
            self.mode   = mode
            self.paused = False
            self._log(f"Mode -> {mode}.")
            self.apply_time_control()
            self._render()

    def pause(self) -> None:
        with self._lock:
            if self.state.ended or self.paused:
                return
            self.paused = True
            self._log("Paused time.")
            self.apply_time_control()
            self._render()

    def resume(self) -> None:
        with self._lock:
            if self.state.ended or not self.paused:
                return
            self.paused = False
            self._log("Resumed time.")
            self.apply_time_control()
            self._render()

    def toggle_pause(self) -> None:
        """From manual mode, start scheduled time; otherwise flip pause."""
        with self._lock:
            if self.state.ended:
                return
            if self.mode == 'manual':
                self.mode   = 'scheduled'
                self.paused = False
                self._log("Switched to scheduled time.")
                self.apply_time_control()
                self._render()
            elif self.paused:
                self.resume()
            else:
                self.pause()

    def set_speed(self, seconds: float) -> None:
        if seconds <= 0:
            raise ValueError(f"seconds per day must be positive, got {seconds!r}")
        with self._lock:
            if self.state.ended:
                return
            self.tick_interval = float(seconds)
            if self.mode != 'scheduled':
                self.mode   = 'scheduled'
                self.paused = False
                self._log("Switched to scheduled time.")
            self._log(f"Set speed to {self.tick_interval:g}s/day.")
            self.apply_time_control()
            self._render()

    def reset(self, seed=None) -> None:
        """Start a fresh run.  Keeps the current seed unless one is given."""
        with self._lock:
            self.scheduler.disarm()
            if seed is not None:
                self._seed_value = seed
            self.state = initial_state(self._seed_value, self.tuning)
            self.rng   = SeededRng(self.state)
            self.event_log.clear()
            self._log(f"New run started. Seed: {self.state.seed}")
            self._render()
            self.apply_time_control()

    def close(self) -> None:
        with self._lock:
            self.closed = True
            self.scheduler.disarm()
