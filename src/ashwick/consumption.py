# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
consumption.py — Eating, shortfall and the hunger streak.

Call order each day (phases 5 and 6):
    deficit = apply_consumption(state, tuning)
    outcome = apply_starvation(state, tuning, deficit)

A shortfall always costs morale.  It only costs lives once the deficit
passes the serious-famine line (a share of the population); below that
line hunger is miserable but not lethal.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .config import Tuning, MORALE_MIN, MORALE_MAX
from .state import SettlementState
from .workforce import reconcile


@dataclass(frozen=True)
class StarvationOutcome:
    deaths:      int   = 0
    morale_loss: float = 0.0
    serious:     bool  = False


FED = StarvationOutcome()


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def food_demand(state: SettlementState, tuning: Tuning) -> float:
    demand = state.population * tuning.food_consumption_per_pop
    if state.policy.rationing:
        demand *= tuning.ration_consumption_mult
    if state.policy.feasting:
        demand *= tuning.feast_consumption_mult
    return demand


def apply_consumption(state: SettlementState, tuning: Tuning) -> float:
    """Phase 5: eat.  Returns the unmet part of demand (0 when fed)."""
    demand  = food_demand(state, tuning)
    deficit = max(0.0, demand - state.food)
    state.food = max(0.0, state.food - demand)
    return deficit


def morale_loss(deficit: float, streak: int, tuning: Tuning) -> float:
    """Morale cost of one hungry day.

    The base loss sits in [min, max].  The streak multiplier then pushes
    it up; with ``escalating_morale_ceiling`` the ceiling rises with it
    (bounded by the hard max), otherwise the result is pinned back into
    the original band.
    """
    lo, hi = tuning.starvation_morale_loss_min, tuning.starvation_morale_loss_max
    mult   = 1.0 + streak * tuning.starve_morale_mult_per_day
    base   = _clamp(deficit * tuning.starvation_morale_loss_mult, lo, hi)
    if tuning.mechanics.escalating_morale_ceiling:
        hi = min(tuning.starvation_morale_loss_hard_max, hi * mult)
    return _clamp(base * mult, lo, hi)


def starvation_deaths(deficit: float, population: int, streak: int,
                      tuning: Tuning) -> int:
    """Deaths for a lethal day: unfed mouths, escalated, capped per day."""
    per_pop = tuning.food_consumption_per_pop or 1.0
    unfed   = math.ceil(deficit / per_pop)
    raw     = math.floor(unfed * (1.0 + streak * tuning.starve_death_mult_per_day))
    cap     = max(1, math.floor(population * tuning.starve_death_max_per_day_ratio))
    return int(_clamp(raw, 1, cap))


def is_serious(deficit: float, population: int, tuning: Tuning) -> bool:
    if not tuning.mechanics.famine_threshold:
        return deficit > 0
    return deficit > population * tuning.starvation_death_deficit_ratio


def apply_starvation(state: SettlementState, tuning: Tuning,
                     deficit: float) -> StarvationOutcome:
    """Phase 6: update the streak, take morale, maybe take lives."""
    if deficit <= 0:
        state.hunger_streak = 0
        return FED

    state.hunger_streak += 1
    streak = state.hunger_streak

    loss = morale_loss(deficit, streak, tuning)
    state.morale = _clamp(state.morale - loss, MORALE_MIN, MORALE_MAX)

    if not is_serious(deficit, state.population, tuning) or state.population <= 0:
        return StarvationOutcome(deaths=0, morale_loss=loss, serious=False)

    deaths = min(state.population,
                 starvation_deaths(deficit, state.population, streak, tuning))
    state.population -= deaths
    reconcile(state)
    return StarvationOutcome(deaths=deaths, morale_loss=loss, serious=True)

