# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
config.py — Shared tuning constants for the Ashwick settlement simulation.

The module-level names are the defaults.  ``Tuning`` bundles them into one
frozen record so each engine instance can run with its own overrides
(CLI ``--tuning`` file, experiment plans, tests) without touching globals.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field


class ConfigError(ValueError):
    """Raised for unknown tuning keys, variants, or malformed plan files."""


# ── Run control ─────────────────────────────────────────────────────────
DEFAULT_SEED        = 1337
DEFAULT_MODE        = "manual"      # "manual" | "scheduled"
DEFAULT_INTERVAL    = 5.0           # seconds per day in scheduled mode
VICTORY_DAY         = 50

# ── Starting record ─────────────────────────────────────────────────────
START_POPULATION    = 30
START_FOOD          = 80.0
START_MATERIAL      = 40.0
START_TOOLING       = 10.0
START_MORALE        = 70.0
START_LEGITIMACY    = 70.0
START_LABOR_FOOD    = 10
START_LABOR_MATERIAL = 5
START_LABOR_TOOLING = 0

# ── Workforce production ────────────────────────────────────────────────
FOOD_PER_WORKER      = 1.0
MATERIAL_PER_WORKER  = 0.8
TOOLING_PER_WORKER   = 0.35
MATERIAL_PER_TOOLING = 2.0          # toolmaking variant: material burned per tooling unit

# ── Buildings ───────────────────────────────────────────────────────────
FARM_MATERIAL_COST      = 30
FARM_FOOD_MULT_PER_FARM = 0.08

# ── Tooling ─────────────────────────────────────────────────────────────
TOOLING_SOFTCAP       = 100
TOOLING_BONUS_PER_UNIT = 0.002
TOOLING_MIN_BONUS     = 1.0
TOOLING_FLAT_BONUS    = 1.2         # legacy rule: fixed multiplier whenever tooling ≥ 1
TOOLING_DECAY_FLAT    = 1.0
TOOLING_DECAY_PER_POP = 0.05

# ── Consumption & policies ──────────────────────────────────────────────
FOOD_CONSUMPTION_PER_POP = 1.0
RATION_CONSUMPTION_MULT  = 0.75
FEAST_CONSUMPTION_MULT   = 1.25
RATION_DAYS              = 5
FEAST_DAYS               = 3
FEAST_MIN_FOOD           = 20
FEAST_FOOD_COST          = 10

# ── Meter bounds ────────────────────────────────────────────────────────
MORALE_MIN, MORALE_MAX         = 0.0, 100.0
LEGITIMACY_MIN, LEGITIMACY_MAX = 0.0, 100.0
PRESSURE_MIN, PRESSURE_MAX     = 0.0, 100.0

# ── Starvation ──────────────────────────────────────────────────────────
STARVATION_MORALE_LOSS_MULT     = 0.15
STARVATION_MORALE_LOSS_MIN      = 2.0
STARVATION_MORALE_LOSS_MAX      = 18.0
STARVATION_MORALE_LOSS_HARD_MAX = 30.0   # ceiling once escalation lifts the band
STARVATION_DEATH_DEFICIT_RATIO  = 0.8    # deficit > pop × ratio → serious famine
STARVE_MORALE_MULT_PER_DAY      = 0.08
STARVE_DEATH_MULT_PER_DAY       = 0.05
STARVE_DEATH_MAX_PER_DAY_RATIO  = 0.35

# ── Pressure tracks ─────────────────────────────────────────────────────
P_DECAY_BASE              = 0.6
P_DECAY_WELL_FED_MULT     = 1.15
P_DECAY_EXTRACTION_MULT   = 0.5
P_SUBS_FROM_DEFICIT_MULT  = 0.55
P_SUBS_STREAK_MULT        = 0.25
P_SEC_LOW_MORALE_LINE     = 50.0
P_SEC_FROM_LOW_MORALE_MULT = 0.12
P_EXTR_FROM_POLICIES_MULT = 0.0     # reserved hook for tax-like mechanics
P_SHOCK_FROM_DEATHS       = 0.6
P_SHOCK_SUBSISTENCE_SHARE = 0.6

# ── Legitimacy drift ────────────────────────────────────────────────────
LEGIT_BLEED_BASE       = 0.25
LEGIT_BLEED_PSUBS_MULT = 0.045
LEGIT_BLEED_PSEC_MULT  = 0.04
LEGIT_BLEED_PEXTR_MULT = 0.03
LEGIT_RECOVER_BASE     = 0.25
LEGIT_RECOVER_CAP      = 85.0
LEGIT_CALM_PRESSURE_SUM = 45.0
LEGIT_CALM_MIN_MORALE  = 45.0

# ── Morale drift ────────────────────────────────────────────────────────
MORALE_WELL_FED_RATIO   = 3.0       # food > pop × ratio → drift up
MORALE_DRIFT_UP         = 0.6
MORALE_DRIFT_CAP        = 85.0
MORALE_DRIFT_DOWN       = 0.2
MORALE_TOO_HIGH         = 90.0

# ── Emigration ──────────────────────────────────────────────────────────
ABANDONMENT_POPULATION      = 6
EMIGRATION_TRIGGER_PSUBS    = 55.0
EMIGRATION_TRIGGER_PSEC     = 55.0
EMIGRATION_TRIGGER_MORALE   = 35.0
EMIGRATION_STREAK_START     = 3
EMIGRATION_PER_DAY_MIN      = 1
EMIGRATION_PER_DAY_MAX_RATIO = 0.08
EMIGRATION_STREAK_MULT      = 0.12
EMIGRATION_MORALE_HIT       = 1.5
EMIGRATION_LEGITIMACY_HIT   = 1.0

# ── Events ──────────────────────────────────────────────────────────────
EVENT_BASE_CHANCE       = 0.05
EVENT_LOW_MORALE_BONUS  = 0.10
EVENT_HIGH_PSUBS_BONUS  = 0.12
EVENT_HIGH_PSEC_BONUS   = 0.10
EVENT_MAX_CHANCE        = 0.65
EVENT_LOW_MORALE_LINE   = 35.0
EVENT_HIGH_PRESSURE_LINE = 55.0
EVENT_MAX_WEIGHT        = 5.0
COUP_LEGITIMACY_LINE    = 45.0
COUP_PRESSURE_SUM_LINE  = 110.0

# ── Status badge ────────────────────────────────────────────────────────
STATUS_STABLE_MORALE = 75.0
STATUS_TENSE_MORALE  = 40.0

# ── Workforce presets (food, material, tooling shares) ──────────────────
PRESETS: dict[str, tuple[float, float, float]] = {
    'max_food':     (1.0,  0.0,  0.0),
    'max_material': (0.0,  1.0,  0.0),
    'balanced':     (0.55, 0.30, 0.15),
    'survival':     (0.75, 0.20, 0.05),
}


# ══════════════════════════════════════════════════════════════════════════
# Mechanics toggles and rule-set variants
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Mechanics:
    """Independently switchable rule modules composed by the engine."""

    pressure_model:            bool = True   # pressures, legitimacy drift, emigration
    diminishing_tooling:       bool = True   # softcapped bonus vs flat multiplier
    toolmaking_material_cost:  bool = False  # tooling production burns material
    famine_threshold:          bool = True   # False → any deficit kills
    events:                    bool = True
    escalating_morale_ceiling: bool = True   # streak lifts the morale-loss ceiling too


VARIANTS: dict[str, Mechanics] = {
    'governance': Mechanics(),
    'baseline':   Mechanics(pressure_model=False, diminishing_tooling=False,
                            events=False, escalating_morale_ceiling=False),
    'starvation': Mechanics(pressure_model=False, diminishing_tooling=False,
                            events=False, famine_threshold=False,
                            escalating_morale_ceiling=False),
    'toolmaking': Mechanics(pressure_model=False, diminishing_tooling=False,
                            events=False, toolmaking_material_cost=True,
                            escalating_morale_ceiling=False),
}


# ══════════════════════════════════════════════════════════════════════════
# Tuning — per-engine snapshot of every constant above
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Tuning:
    """All numbers one engine instance runs with.  Defaults mirror the module."""

    victory_day:          int   = VICTORY_DAY
    abandonment_population: int = ABANDONMENT_POPULATION

    start_population:     int   = START_POPULATION
    start_food:           float = START_FOOD
    start_material:       float = START_MATERIAL
    start_tooling:        float = START_TOOLING
    start_morale:         float = START_MORALE
    start_legitimacy:     float = START_LEGITIMACY
    start_labor_food:     int   = START_LABOR_FOOD
    start_labor_material: int   = START_LABOR_MATERIAL
    start_labor_tooling:  int   = START_LABOR_TOOLING

    food_per_worker:      float = FOOD_PER_WORKER
    material_per_worker:  float = MATERIAL_PER_WORKER
    tooling_per_worker:   float = TOOLING_PER_WORKER
    material_per_tooling: float = MATERIAL_PER_TOOLING

    farm_material_cost:   float = FARM_MATERIAL_COST
    farm_food_mult_per_farm: float = FARM_FOOD_MULT_PER_FARM

    tooling_softcap:      float = TOOLING_SOFTCAP
    tooling_bonus_per_unit: float = TOOLING_BONUS_PER_UNIT
    tooling_min_bonus:    float = TOOLING_MIN_BONUS
    tooling_flat_bonus:   float = TOOLING_FLAT_BONUS
    tooling_decay_flat:   float = TOOLING_DECAY_FLAT
    tooling_decay_per_pop: float = TOOLING_DECAY_PER_POP

    food_consumption_per_pop: float = FOOD_CONSUMPTION_PER_POP
    ration_consumption_mult: float = RATION_CONSUMPTION_MULT
    feast_consumption_mult:  float = FEAST_CONSUMPTION_MULT
    ration_days:          int   = RATION_DAYS
    feast_days:           int   = FEAST_DAYS
    feast_min_food:       float = FEAST_MIN_FOOD
    feast_food_cost:      float = FEAST_FOOD_COST

    starvation_morale_loss_mult: float = STARVATION_MORALE_LOSS_MULT
    starvation_morale_loss_min:  float = STARVATION_MORALE_LOSS_MIN
    starvation_morale_loss_max:  float = STARVATION_MORALE_LOSS_MAX
    starvation_morale_loss_hard_max: float = STARVATION_MORALE_LOSS_HARD_MAX
    starvation_death_deficit_ratio: float = STARVATION_DEATH_DEFICIT_RATIO
    starve_morale_mult_per_day:  float = STARVE_MORALE_MULT_PER_DAY
    starve_death_mult_per_day:   float = STARVE_DEATH_MULT_PER_DAY
    starve_death_max_per_day_ratio: float = STARVE_DEATH_MAX_PER_DAY_RATIO

    p_decay_base:         float = P_DECAY_BASE
    p_decay_well_fed_mult: float = P_DECAY_WELL_FED_MULT
    p_decay_extraction_mult: float = P_DECAY_EXTRACTION_MULT
    p_subs_from_deficit_mult: float = P_SUBS_FROM_DEFICIT_MULT
    p_subs_streak_mult:   float = P_SUBS_STREAK_MULT
    p_sec_low_morale_line: float = P_SEC_LOW_MORALE_LINE
    p_sec_from_low_morale_mult: float = P_SEC_FROM_LOW_MORALE_MULT
    p_extr_from_policies_mult: float = P_EXTR_FROM_POLICIES_MULT
    p_shock_from_deaths:  float = P_SHOCK_FROM_DEATHS
    p_shock_subsistence_share: float = P_SHOCK_SUBSISTENCE_SHARE

    legit_bleed_base:     float = LEGIT_BLEED_BASE
    legit_bleed_psubs_mult: float = LEGIT_BLEED_PSUBS_MULT
    legit_bleed_psec_mult: float = LEGIT_BLEED_PSEC_MULT
    legit_bleed_pextr_mult: float = LEGIT_BLEED_PEXTR_MULT
    legit_recover_base:   float = LEGIT_RECOVER_BASE
    legit_recover_cap:    float = LEGIT_RECOVER_CAP
    legit_calm_pressure_sum: float = LEGIT_CALM_PRESSURE_SUM
    legit_calm_min_morale: float = LEGIT_CALM_MIN_MORALE

    morale_well_fed_ratio: float = MORALE_WELL_FED_RATIO
    morale_drift_up:      float = MORALE_DRIFT_UP
    morale_drift_cap:     float = MORALE_DRIFT_CAP
    morale_drift_down:    float = MORALE_DRIFT_DOWN
    morale_too_high:      float = MORALE_TOO_HIGH

    emigration_trigger_psubs: float = EMIGRATION_TRIGGER_PSUBS
    emigration_trigger_psec:  float = EMIGRATION_TRIGGER_PSEC
    emigration_trigger_morale: float = EMIGRATION_TRIGGER_MORALE
    emigration_streak_start: int = EMIGRATION_STREAK_START
    emigration_per_day_min: int  = EMIGRATION_PER_DAY_MIN
    emigration_per_day_max_ratio: float = EMIGRATION_PER_DAY_MAX_RATIO
    emigration_streak_mult: float = EMIGRATION_STREAK_MULT
    emigration_morale_hit: float = EMIGRATION_MORALE_HIT
    emigration_legitimacy_hit: float = EMIGRATION_LEGITIMACY_HIT

    event_base_chance:    float = EVENT_BASE_CHANCE
    event_low_morale_bonus: float = EVENT_LOW_MORALE_BONUS
    event_high_psubs_bonus: float = EVENT_HIGH_PSUBS_BONUS
    event_high_psec_bonus: float = EVENT_HIGH_PSEC_BONUS
    event_max_chance:     float = EVENT_MAX_CHANCE
    event_low_morale_line: float = EVENT_LOW_MORALE_LINE
    event_high_pressure_line: float = EVENT_HIGH_PRESSURE_LINE
    event_max_weight:     float = EVENT_MAX_WEIGHT
    coup_legitimacy_line: float = COUP_LEGITIMACY_LINE
    coup_pressure_sum_line: float = COUP_PRESSURE_SUM_LINE

    status_stable_morale: float = STATUS_STABLE_MORALE
    status_tense_morale:  float = STATUS_TENSE_MORALE

    mechanics: Mechanics = field(default_factory=Mechanics)

    def with_overrides(self, overrides: dict) -> 'Tuning':
        """Return a copy with *overrides* applied.

        ``mechanics`` may be given as a variant name or as a dict of toggle
        names.  Unknown keys raise ConfigError so a typo in a plan file is
        caught before the run starts.
        """
        kinds = {f.name: f.type for f in dataclasses.fields(self)}
        changes: dict = {}
        for key, value in overrides.items():
            if key not in kinds:
                raise ConfigError(f"unknown tuning key {key!r}")
            if key == 'mechanics':
                value = _coerce_mechanics(value, self.mechanics)
            else:
                value = _coerce_number(key, value, kinds[key])
            changes[key] = value
        return dataclasses.replace(self, **changes)


def _coerce_number(key: str, value, kind):
    # Field annotations are strings here (postponed evaluation).
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"tuning key {key!r} must be a number, got {value!r}")
    if kind in ('int', int):
        if not float(value).is_integer():
            raise ConfigError(f"tuning key {key!r} must be a whole number, got {value!r}")
        return int(value)
    return float(value)


def _coerce_mechanics(value, current: Mechanics) -> Mechanics:
    if isinstance(value, Mechanics):
        return value
    if isinstance(value, str):
        return variant(value)
    if isinstance(value, dict):
        toggles = {f.name for f in dataclasses.fields(Mechanics)}
        bad = sorted(set(value) - toggles)
        if bad:
            raise ConfigError(f"unknown mechanics toggle(s): {', '.join(bad)}")
        return dataclasses.replace(current, **{k: bool(v) for k, v in value.items()})
    raise ConfigError(f"mechanics must be a variant name or a mapping, got {value!r}")


def variant(name: str) -> Mechanics:
    """Look up a named rule set from VARIANTS."""
    try:
        return VARIANTS[name]
    except KeyError:
        raise ConfigError(
            f"unknown variant {name!r} (choose from {', '.join(sorted(VARIANTS))})"
        ) from None


DEFAULT_TUNING = Tuning()
