# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
state.py — The single mutable settlement record and its starting values.

Only the engine mutates a SettlementState.  Everything else reads it
through ``bridge.SettlementView``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .config import Tuning, DEFAULT_TUNING, DEFAULT_SEED
from .rng import hash_seed


class EndReason(str, Enum):
    ONGOING             = "ongoing"
    POPULATION_COLLAPSE = "population collapse"
    ABANDONMENT         = "abandonment"
    LEGITIMACY_COLLAPSE = "legitimacy collapse"
    VICTORY             = "victory"


LABOR_SLOTS = ('labor_food', 'labor_material', 'labor_tooling')


@dataclass
class Buildings:
    farms: int = 0


@dataclass
class Policy:
    """Rationing and feasting timers.  At most one is non-zero."""

    rationing_days_left: int = 0
    feasting_days_left:  int = 0

    @property
    def rationing(self) -> bool:
        return self.rationing_days_left > 0

    @property
    def feasting(self) -> bool:
        return self.feasting_days_left > 0


@dataclass
class SettlementState:
    day:        int   = 1
    population: int   = 0

    food:     float = 0.0
    material: float = 0.0
    tooling:  float = 0.0

    morale:     float = 0.0
    legitimacy: float = 0.0

    pressure_subsistence: float = 0.0
    pressure_security:    float = 0.0
    pressure_extraction:  float = 0.0

    hunger_streak:     int = 0
    emigration_streak: int = 0

    labor_food:     int = 0
    labor_material: int = 0
    labor_tooling:  int = 0

    buildings: Buildings = field(default_factory=Buildings)
    policy:    Policy    = field(default_factory=Policy)

    active_event: object = None          # events.EventKind while pending

    seed:       int = 0
    rng_cursor: int = 0

    ended:      bool      = False
    end_reason: EndReason = EndReason.ONGOING

    @property
    def pressure_total(self) -> float:
        return (self.pressure_subsistence + self.pressure_security
                + self.pressure_extraction)


def initial_state(seed=DEFAULT_SEED, tuning: Tuning = DEFAULT_TUNING) -> SettlementState:
    """Build the day-1 record for a run.  *seed* may be any str/int."""
    seed_u32 = hash_seed(seed)
    return SettlementState(
        day        = 1,
        population = tuning.start_population,
        food       = float(tuning.start_food),
        material   = float(tuning.start_material),
        tooling    = float(tuning.start_tooling),
        morale     = float(tuning.start_morale),
        legitimacy = float(tuning.start_legitimacy),
        labor_food     = tuning.start_labor_food,
        labor_material = tuning.start_labor_material,
        labor_tooling  = tuning.start_labor_tooling,
        seed       = seed_u32,
        rng_cursor = seed_u32,
    )
