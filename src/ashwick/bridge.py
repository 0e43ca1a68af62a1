# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
bridge.py — Read-only snapshot of a settlement for renderers and tools.

SettlementView is what every collaborator outside the engine sees: the
terminal display, the dashboard writer, the CLI steward and the tests.
It is built from a private copy of the state, so holding on to a view
never observes later ticks and nothing written to it reaches the engine.
"""

from __future__ import annotations

import copy

from .config import Tuning
from .events import EVENT_CATALOG, EventDefinition, available_options
from .production import Rates, compute_rates
from .state import SettlementState, EndReason
from .workforce import labor_total


def settlement_status(state: SettlementState, tuning: Tuning) -> str:
    """'stable' / 'tense' / 'unstable' by morale, or 'ended' once the run is over."""
    if state.ended:
        return 'ended'
    if state.morale >= tuning.status_stable_morale:
        return 'stable'
    if state.morale >= tuning.status_tense_morale:
        return 'tense'
    return 'unstable'


class SettlementView:
    """Immutable snapshot of one engine's state.

    Scalars are read straight off the copied record.  Derived figures
    (``rates``, ``status``, event options) are computed against the same
    copy, so they always agree with the numbers shown next to them.
    """

    def __init__(
        self,
        *,
        state:     SettlementState,
        tuning:    Tuning,
        event_log: list,
        mode:      str   = 'manual',
        paused:    bool  = False,
        interval:  float = 0.0,
    ) -> None:
        self._state     : SettlementState = copy.deepcopy(state)
        self._tuning    : Tuning = tuning
        self._event_log : list   = list(event_log[-40:])
        self._mode      : str    = mode
        self._paused    : bool   = paused
        self._interval  : float  = interval
        self._rates     : Rates  = compute_rates(self._state, tuning)

    # ── Clock and run control ──────────────────────────────────────────────

    @property
    def day(self) -> int:
        return self._state.day

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def tick_interval(self) -> float:
        """Seconds per day in scheduled mode."""
        return self._interval

    @property
    def seed(self) -> int:
        return self._state.seed

    @property
    def rng_cursor(self) -> int:
        return self._state.rng_cursor

    @property
    def ended(self) -> bool:
        return self._state.ended

    @property
    def end_reason(self) -> EndReason:
        return self._state.end_reason

    # ── People and stocks ─────────────────────────────────────────────────

    @property
    def population(self) -> int:
        return self._state.population

    @property
    def food(self) -> float:
        return self._state.food

    @property
    def material(self) -> float:
        return self._state.material

    @property
    def tooling(self) -> float:
        return self._state.tooling

    @property
    def farms(self) -> int:
        return self._state.buildings.farms

    # ── Meters ────────────────────────────────────────────────────────────

    @property
    def morale(self) -> float:
        return self._state.morale

    @property
    def legitimacy(self) -> float:
        return self._state.legitimacy

    @property
    def pressure_subsistence(self) -> float:
        return self._state.pressure_subsistence

    @property
    def pressure_security(self) -> float:
        return self._state.pressure_security

    @property
    def pressure_extraction(self) -> float:
        return self._state.pressure_extraction

    @property
    def pressure_total(self) -> float:
        return self._state.pressure_total

    @property
    def hunger_streak(self) -> int:
        return self._state.hunger_streak

    @property
    def emigration_streak(self) -> int:
        return self._state.emigration_streak

    # ── Workforce and policy ──────────────────────────────────────────────

    @property
    def labor_food(self) -> int:
        return self._state.labor_food

    @property
    def labor_material(self) -> int:
        return self._state.labor_material

    @property
    def labor_tooling(self) -> int:
        return self._state.labor_tooling

    @property
    def labor_total(self) -> int:
        return labor_total(self._state)

    @property
    def idle(self) -> int:
        """Population not assigned to any slot."""
        return self._state.population - labor_total(self._state)

    @property
    def rationing_days_left(self) -> int:
        return self._state.policy.rationing_days_left

    @property
    def feasting_days_left(self) -> int:
        return self._state.policy.feasting_days_left

    # ── Derived ───────────────────────────────────────────────────────────

    @property
    def rates(self) -> Rates:
        return self._rates

    @property
    def status(self) -> str:
        return settlement_status(self._state, self._tuning)

    @property
    def active_event(self):
        """The pending ``EventKind``, or None."""
        return self._state.active_event

    @property
    def active_event_definition(self) -> EventDefinition | None:
        if self._state.active_event is None:
            return None
        return EVENT_CATALOG[self._state.active_event]

    @property
    def event_options(self) -> list[tuple[str, bool]]:
        """(label, affordable) for each option of the pending event."""
        return available_options(self._state, self._tuning)

    @property
    def recent_events(self) -> list[str]:
        """Last 20 entries from the engine's event log (read-only copy)."""
        return list(self._event_log[-20:])

    def as_dict(self) -> dict:
        """Plain JSON-ready mapping, used by the dashboard bridge."""
        ev = self.active_event_definition
        return {
            'day':         self.day,
            'status':      self.status,
            'mode':        self.mode,
            'paused':      self.paused,
            'ended':       self.ended,
            'end_reason':  self.end_reason.value,
            'population':  self.population,
            'food':        round(self.food, 2),
            'material':    round(self.material, 2),
            'tooling':     round(self.tooling, 2),
            'farms':       self.farms,
            'morale':      round(self.morale, 2),
            'legitimacy':  round(self.legitimacy, 2),
            'pressures': {
                'subsistence': round(self.pressure_subsistence, 2),
                'security':    round(self.pressure_security, 2),
                'extraction':  round(self.pressure_extraction, 2),
            },
            'labor': {
                'food':     self.labor_food,
                'material': self.labor_material,
                'tooling':  self.labor_tooling,
                'idle':     self.idle,
            },
            'policy': {
                'rationing_days_left': self.rationing_days_left,
                'feasting_days_left':  self.feasting_days_left,
            },
            'rates': {
                'food_per_day':     round(self._rates.food_per_day, 3),
                'material_per_day': round(self._rates.material_per_day, 3),
                'tooling_per_day':  round(self._rates.tooling_per_day, 3),
                'tooling_decay':    round(self._rates.tooling_decay_per_day, 3),
                'food_demand':      round(self._rates.food_demand, 3),
                'net_food':         round(self._rates.net_food, 3),
                'tooling_bonus':    round(self._rates.tooling_bonus, 4),
            },
            'event': None if ev is None else {
                'kind':    ev.kind.value,
                'title':   ev.title,
                'body':    ev.body,
                'options': [{'label': lbl, 'available': ok}
                            for lbl, ok in self.event_options],
            },
        }
