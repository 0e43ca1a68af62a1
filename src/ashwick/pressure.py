# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
pressure.py — Slow stressors, legitimacy drift and emigration (phases 7–9).

Call order each day:
    update_pressures(state, tuning, deficit, outcome)
    update_legitimacy_and_morale(state, tuning)
    leaving = apply_emigration(state, tuning)

Tracks
──────
  subsistence : rises with the deficit and the hunger streak
  security    : rises while morale sits below the unrest line
  extraction  : decays only; reserved for tax-like mechanics

Legitimacy bleeds every day by a weighted sum of the three tracks.  It
recovers only when *all* of them are simultaneously low and morale holds,
so a stressed settlement slides monotonically and a recovering one has to
settle completely before its mandate grows back.

Everything here is deterministic and draws no random numbers.
"""

from __future__ import annotations

import math

from .config import (
    Tuning,
    MORALE_MIN, MORALE_MAX,
    LEGITIMACY_MIN, LEGITIMACY_MAX,
    PRESSURE_MIN, PRESSURE_MAX,
)
from .consumption import StarvationOutcome
from .state import SettlementState
from .workforce import reconcile


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def _pressure(v: float) -> float:
    return _clamp(v, PRESSURE_MIN, PRESSURE_MAX)


def is_well_fed(state: SettlementState, tuning: Tuning) -> bool:
    return state.food > state.population * tuning.morale_well_fed_ratio


def adjust(state: SettlementState, *, food: float = 0.0, material: float = 0.0,
           tooling: float = 0.0, morale: float = 0.0, legitimacy: float = 0.0,
           subsistence: float = 0.0, security: float = 0.0,
           extraction: float = 0.0) -> None:
    """Apply signed deltas with every bound enforced.

    Shared by player actions and event options so no effect can push a
    stock negative or a meter out of its band.
    """
    state.food     = max(0.0, state.food + food)
    state.material = max(0.0, state.material + material)
    state.tooling  = max(0.0, state.tooling + tooling)
    state.morale     = _clamp(state.morale + morale, MORALE_MIN, MORALE_MAX)
    state.legitimacy = _clamp(state.legitimacy + legitimacy,
                              LEGITIMACY_MIN, LEGITIMACY_MAX)
    state.pressure_subsistence = _pressure(state.pressure_subsistence + subsistence)
    state.pressure_security    = _pressure(state.pressure_security + security)
    state.pressure_extraction  = _pressure(state.pressure_extraction + extraction)


# ══════════════════════════════════════════════════════════════════════════
# Phase 7 — pressure tracks
# ══════════════════════════════════════════════════════════════════════════

def update_pressures(state: SettlementState, tuning: Tuning, deficit: float,
                     outcome: StarvationOutcome) -> None:
    if deficit > 0:
        add = (deficit * tuning.p_subs_from_deficit_mult
               + state.hunger_streak * tuning.p_subs_streak_mult)
        state.pressure_subsistence = _pressure(state.pressure_subsistence + add)
    else:
        relief = tuning.p_decay_base
        if is_well_fed(state, tuning):
            relief *= tuning.p_decay_well_fed_mult
        state.pressure_subsistence = _pressure(state.pressure_subsistence - relief)

    line = tuning.p_sec_low_morale_line
    if state.morale < line:
        add = (line - state.morale) * tuning.p_sec_from_low_morale_mult
        state.pressure_security = _pressure(state.pressure_security + add)
    else:
        state.pressure_security = _pressure(state.pressure_security - tuning.p_decay_base)

    extraction_delta = (tuning.p_extr_from_policies_mult
                        - tuning.p_decay_base * tuning.p_decay_extraction_mult)
    state.pressure_extraction = _pressure(state.pressure_extraction + extraction_delta)

    if outcome.deaths > 0:
        shock = outcome.deaths * tuning.p_shock_from_deaths
        share = tuning.p_shock_subsistence_share
        state.pressure_subsistence = _pressure(state.pressure_subsistence + shock * share)
        state.pressure_security    = _pressure(state.pressure_security + shock * (1.0 - share))


# ══════════════════════════════════════════════════════════════════════════
# Phase 8 — legitimacy bleed / recovery and ambient morale drift
# ══════════════════════════════════════════════════════════════════════════

def legitimacy_bleed(state: SettlementState, tuning: Tuning) -> float:
    return (tuning.legit_bleed_base
            + state.pressure_subsistence * tuning.legit_bleed_psubs_mult
            + state.pressure_security * tuning.legit_bleed_psec_mult
            + state.pressure_extraction * tuning.legit_bleed_pextr_mult)


def can_recover(state: SettlementState, tuning: Tuning) -> bool:
    return (state.pressure_total < tuning.legit_calm_pressure_sum
            and state.morale >= tuning.legit_calm_min_morale
            and state.legitimacy < tuning.legit_recover_cap)


def update_legitimacy_and_morale(state: SettlementState, tuning: Tuning) -> float:
    """Returns the signed legitimacy change applied today."""
    if is_well_fed(state, tuning) and state.morale < tuning.morale_drift_cap:
        state.morale = min(state.morale + tuning.morale_drift_up,
                           tuning.morale_drift_cap)
    if state.morale > tuning.morale_too_high:
        state.morale = _clamp(state.morale - tuning.morale_drift_down,
                              MORALE_MIN, MORALE_MAX)

    before = state.legitimacy
    if can_recover(state, tuning):
        delta = tuning.legit_recover_base
    else:
        delta = -legitimacy_bleed(state, tuning)
    state.legitimacy = _clamp(state.legitimacy + delta, LEGITIMACY_MIN, LEGITIMACY_MAX)
    return state.legitimacy - before


# ══════════════════════════════════════════════════════════════════════════
# Phase 9 — emigration (departures, not deaths)
# ══════════════════════════════════════════════════════════════════════════

def emigration_condition(state: SettlementState, tuning: Tuning) -> bool:
    return (state.pressure_subsistence >= tuning.emigration_trigger_psubs
            and state.pressure_security >= tuning.emigration_trigger_psec
            and state.morale <= tuning.emigration_trigger_morale)


def emigrants_for(population: int, streak: int, tuning: Tuning) -> int:
    cap   = max(tuning.emigration_per_day_min,
                math.floor(population * tuning.emigration_per_day_max_ratio))
    extra = math.floor(population * streak * tuning.emigration_streak_mult)
    return int(_clamp(tuning.emigration_per_day_min + extra,
                      tuning.emigration_per_day_min, cap))


def apply_emigration(state: SettlementState, tuning: Tuning) -> int:
    """Returns how many people left today."""
    if emigration_condition(state, tuning):
        state.emigration_streak += 1
    else:
        state.emigration_streak = 0

    if state.emigration_streak < tuning.emigration_streak_start or state.population <= 0:
        return 0

    leaving = min(state.population,
                  emigrants_for(state.population, state.emigration_streak, tuning))
    if leaving <= 0:
        return 0

    state.population -= leaving
    reconcile(state)
    adjust(state, morale=-tuning.emigration_morale_hit,
           legitimacy=-tuning.emigration_legitimacy_hit)
    return leaving
