# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
production.py — Daily output from labor, farms and tooling; tooling wear.

Every ``*_per_day`` helper is a pure read so the same numbers feed both
the tick and the rate preview shown to the player.

Tooling bonus rules
───────────────────
  diminishing (default) : 1 + min(tooling, softcap) × bonus_per_unit, ≥ min_bonus
  flat (legacy)         : fixed multiplier whenever at least one unit is on hand

Wear scales with the population served, not with the stock: it is a
maintenance burden, not depreciation.
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import Tuning
from .consumption import food_demand
from .state import SettlementState


@dataclass(frozen=True)
class ProductionResult:
    food:          float
    material:      float
    tooling:       float
    material_used: float = 0.0


@dataclass(frozen=True)
class Rates:
    """Per-day figures for display.  Net values assume today's stock."""

    food_per_day:          float
    material_per_day:      float
    tooling_per_day:       float
    tooling_decay_per_day: float
    food_demand:           float
    tooling_bonus:         float
    farm_multiplier:       float

    @property
    def net_food(self) -> float:
        return self.food_per_day - self.food_demand

    @property
    def net_tooling(self) -> float:
        return self.tooling_per_day - self.tooling_decay_per_day


# ══════════════════════════════════════════════════════════════════════════
# Pure rate helpers
# ══════════════════════════════════════════════════════════════════════════

def tooling_bonus(state: SettlementState, tuning: Tuning) -> float:
    if not tuning.mechanics.diminishing_tooling:
        return tuning.tooling_flat_bonus if state.tooling >= 1 else 1.0
    effective = max(0.0, min(state.tooling, tuning.tooling_softcap))
    return max(tuning.tooling_min_bonus,
               1.0 + effective * tuning.tooling_bonus_per_unit)


def farm_multiplier(state: SettlementState, tuning: Tuning) -> float:
    return 1.0 + state.buildings.farms * tuning.farm_food_mult_per_farm


def food_per_day(state: SettlementState, tuning: Tuning) -> float:
    return (state.labor_food * tuning.food_per_worker
            * farm_multiplier(state, tuning) * tooling_bonus(state, tuning))


def material_per_day(state: SettlementState, tuning: Tuning) -> float:
    return state.labor_material * tuning.material_per_worker * tooling_bonus(state, tuning)


def tooling_per_day(state: SettlementState, tuning: Tuning) -> float:
    """Tooling output.  Under the toolmaking rule, capped by material on hand."""
    output = state.labor_tooling * tuning.tooling_per_worker
    if tuning.mechanics.toolmaking_material_cost and tuning.material_per_tooling > 0:
        output = min(output, state.material / tuning.material_per_tooling)
    return max(0.0, output)


def tooling_decay_per_day(state: SettlementState, tuning: Tuning) -> float:
    return tuning.tooling_decay_flat + state.population * tuning.tooling_decay_per_pop


def compute_rates(state: SettlementState, tuning: Tuning) -> Rates:
    return Rates(
        food_per_day          = food_per_day(state, tuning),
        material_per_day      = material_per_day(state, tuning),
        tooling_per_day       = tooling_per_day(state, tuning),
        tooling_decay_per_day = tooling_decay_per_day(state, tuning),
        food_demand           = food_demand(state, tuning),
        tooling_bonus         = tooling_bonus(state, tuning),
        farm_multiplier       = farm_multiplier(state, tuning),
    )


# ══════════════════════════════════════════════════════════════════════════
# Tick phases
# ══════════════════════════════════════════════════════════════════════════

def apply_production(state: SettlementState, tuning: Tuning) -> ProductionResult:
    """Phase 3: add the day's output to the stocks.

    All three amounts are computed before any stock moves, so the tooling
    bonus used for food and material is the morning's tooling.
    """
    fp = food_per_day(state, tuning)
    mp = material_per_day(state, tuning)
    tp = tooling_per_day(state, tuning)

    used = 0.0
    if tuning.mechanics.toolmaking_material_cost:
        used = min(state.material, tp * tuning.material_per_tooling)
        state.material -= used

    state.food     += fp
    state.material += mp
    state.tooling  += tp
    return ProductionResult(food=fp, material=mp, tooling=tp, material_used=used)


def apply_tooling_decay(state: SettlementState, tuning: Tuning) -> float:
    """Phase 4: wear the tooling stock down, floored at 0.  Returns the loss."""
    before = state.tooling
    state.tooling = max(0.0, state.tooling - tooling_decay_per_day(state, tuning))
    return before - state.tooling
