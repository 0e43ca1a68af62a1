# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
events.py — Declarative random occurrences and the choices they demand.

Lifecycle
─────────
  idle ──(daily roll succeeds, weighted pick)──▶ pending ──(player option)──▶ idle

Each tick with no pending event costs exactly one draw for the trigger
roll, plus one more for the weighted pick when it succeeds.  Option
effects may draw too; those draws are the only ones an option makes.
Events never expire and never resolve themselves.

Adding an event kind means one EventKind member and one EVENT_CATALOG
entry; ``test_events`` checks the two stay in step.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .config import Tuning
from .pressure import adjust
from .rng import SeededRng
from .state import SettlementState
from .workforce import reconcile


class EventKind(str, Enum):
    TRADERS       = "TRADERS"
    THEFT         = "THEFT"
    RIOT          = "RIOT"
    COUP_WHISPERS = "COUP_WHISPERS"


Guard  = Callable[[SettlementState, Tuning], bool]
Effect = Callable[[SettlementState, Tuning, SeededRng], str]


@dataclass(frozen=True)
class EventOption:
    label:  str
    guard:  Guard
    effect: Effect       # returns the log line describing what happened


@dataclass(frozen=True)
class EventDefinition:
    kind:     EventKind
    title:    str
    body:     str
    weight:   Callable[[SettlementState, Tuning], float]
    eligible: Callable[[SettlementState, Tuning], bool]
    options:  tuple[EventOption, ...]


@dataclass(frozen=True)
class ResolveResult:
    accepted: bool
    message:  str
    kind:     EventKind | None = None
    option:   int | None = None


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def _always(state: SettlementState, tuning: Tuning) -> bool:
    return True


def _high_subsistence(state: SettlementState, tuning: Tuning) -> bool:
    return state.pressure_subsistence >= tuning.event_high_pressure_line


def _high_security(state: SettlementState, tuning: Tuning) -> bool:
    return state.pressure_security >= tuning.event_high_pressure_line


def _low_morale(state: SettlementState, tuning: Tuning) -> bool:
    return state.morale < tuning.event_low_morale_line


# ══════════════════════════════════════════════════════════════════════════
# Wandering traders — always possible
# ══════════════════════════════════════════════════════════════════════════

_TRADE_MATERIAL = 20
_TRADE_FOOD     = 35


def _traders_trade(state, tuning, rng) -> str:
    adjust(state, material=-_TRADE_MATERIAL, food=_TRADE_FOOD, morale=+2, legitimacy=+1)
    return f"You traded {_TRADE_MATERIAL} material for {_TRADE_FOOD} food. Supplies improved."


def _traders_refuse(state, tuning, rng) -> str:
    adjust(state, morale=-1)
    return "You refused the traders."


# ══════════════════════════════════════════════════════════════════════════
# Food theft — hungry citizens raid the stores
# ══════════════════════════════════════════════════════════════════════════

def _theft_harsh(state, tuning, rng) -> str:
    adjust(state, morale=+4, legitimacy=+3, security=-6)
    if rng.draw() < 0.35 and state.population > 0:
        state.population -= 1
        reconcile(state)
        adjust(state, morale=-2, legitimacy=-2, subsistence=+2)
        return "Harsh punishment restored order, at a human cost."
    return "Harsh punishment restored order."


def _theft_mercy(state, tuning, rng) -> str:
    adjust(state, legitimacy=-6, morale=-2, food=-6, security=+4)
    return "Mercy preserved lives but weakened authority."


# ══════════════════════════════════════════════════════════════════════════
# Public riot
# ══════════════════════════════════════════════════════════════════════════

_RIOT_FOOD = 25


def _riot_calm(state, tuning, rng) -> str:
    adjust(state, food=-_RIOT_FOOD, morale=+10, legitimacy=+6,
           security=-10, subsistence=-6)
    return "You defused the riot with emergency supplies."


def _riot_force(state, tuning, rng) -> str:
    adjust(state, morale=+3, legitimacy=+4, security=-5)
    if rng.draw() < 0.5:
        loss = rng.draw_int(5, 18)
        adjust(state, material=-loss, morale=-7, legitimacy=-5, security=+6)
        return f"Force backfired: property damage (-{loss} material)."
    return "Force ended the riot quickly."


# ══════════════════════════════════════════════════════════════════════════
# Whispers of a coup — weight climbs as legitimacy falls
# ══════════════════════════════════════════════════════════════════════════

def _coup_weight(state: SettlementState, tuning: Tuning) -> float:
    a = 1.0 + (50.0 - state.legitimacy) * 0.03
    p = 1.0 + (state.pressure_subsistence + state.pressure_security) * 0.004
    return _clamp(a * p, 0.2, 2.2)


def _coup_eligible(state: SettlementState, tuning: Tuning) -> bool:
    return (state.legitimacy < tuning.coup_legitimacy_line
            or state.pressure_subsistence + state.pressure_security
            > tuning.coup_pressure_sum_line)


def _coup_concede(state, tuning, rng) -> str:
    adjust(state, morale=+6, legitimacy=-2, extraction=+4)
    return "Concessions eased tension but signaled weakness."


def _coup_purge(state, tuning, rng) -> str:
    adjust(state, legitimacy=+6, morale=-6, security=+5)
    return "You purged plotters. Control rose; fear spread."


EVENT_CATALOG: dict[EventKind, EventDefinition] = {
    EventKind.TRADERS: EventDefinition(
        kind     = EventKind.TRADERS,
        title    = "Wandering Traders Arrive",
        body     = "They offer food for material. A fair deal, but your stores matter.",
        weight   = lambda s, t: 1.0,
        eligible = _always,
        options  = (
            EventOption(f"Trade {_TRADE_MATERIAL} material → {_TRADE_FOOD} food",
                        lambda s, t: s.material >= _TRADE_MATERIAL, _traders_trade),
            EventOption("Refuse", _always, _traders_refuse),
        ),
    ),
    EventKind.THEFT: EventDefinition(
        kind     = EventKind.THEFT,
        title    = "Food Theft at Night",
        body     = "Hungry citizens stole from the stores. You must respond.",
        weight   = lambda s, t: 1.2 if _high_subsistence(s, t) else 0.6,
        eligible = _high_subsistence,
        options  = (
            EventOption("Punish harshly (order now, legitimacy risk)", _always, _theft_harsh),
            EventOption("Show mercy (legitimacy down)", _always, _theft_mercy),
        ),
    ),
    EventKind.RIOT: EventDefinition(
        kind     = EventKind.RIOT,
        title    = "Public Riot",
        body     = "Crowds gather, angry and scared. This can spiral.",
        weight   = lambda s, t: 1.2 if _high_security(s, t) else 0.7,
        eligible = lambda s, t: _high_security(s, t) or _low_morale(s, t),
        options  = (
            EventOption(f"Spend {_RIOT_FOOD} food to calm them",
                        lambda s, t: s.food >= _RIOT_FOOD, _riot_calm),
            EventOption("Use force (can backfire)", _always, _riot_force),
        ),
    ),
    EventKind.COUP_WHISPERS: EventDefinition(
        kind     = EventKind.COUP_WHISPERS,
        title    = "Whispers of a Coup",
        body     = "Elites doubt your mandate. They watch for weakness.",
        weight   = _coup_weight,
        eligible = _coup_eligible,
        options  = (
            EventOption("Concessions (morale up, legitimacy mixed)", _always, _coup_concede),
            EventOption("Purge plotters (legitimacy up, morale down)", _always, _coup_purge),
        ),
    ),
}


def definition(kind: EventKind) -> EventDefinition:
    return EVENT_CATALOG[EventKind(kind)]


# ══════════════════════════════════════════════════════════════════════════
# Trigger: chance roll, eligibility pool, weighted pick
# ══════════════════════════════════════════════════════════════════════════

def trigger_chance(state: SettlementState, tuning: Tuning) -> float:
    chance = tuning.event_base_chance
    if _low_morale(state, tuning):
        chance += tuning.event_low_morale_bonus
    if _high_subsistence(state, tuning):
        chance += tuning.event_high_psubs_bonus
    if _high_security(state, tuning):
        chance += tuning.event_high_psec_bonus
    return _clamp(chance, 0.0, tuning.event_max_chance)


def eligible_events(state: SettlementState, tuning: Tuning) -> list[EventKind]:
    """Candidate pool in catalog order."""
    return [kind for kind, ev in EVENT_CATALOG.items() if ev.eligible(state, tuning)]


def pick_weighted(pool: list[EventKind], state: SettlementState, tuning: Tuning,
                  rng: SeededRng) -> EventKind | None:
    """Cumulative-weight draw over live weights.  One draw, or none if empty."""
    weights = [_clamp(EVENT_CATALOG[k].weight(state, tuning), 0.0, tuning.event_max_weight)
               for k in pool]
    total = sum(weights)
    if total <= 0:
        return None
    roll = rng.draw() * total
    cumulative = 0.0
    for kind, w in zip(pool, weights):
        cumulative += w
        if roll < cumulative:
            return kind
    return pool[-1]


def maybe_trigger(state: SettlementState, tuning: Tuning,
                  rng: SeededRng) -> EventKind | None:
    """Phase 10.  Sets ``state.active_event`` and returns the kind on success."""
    if state.active_event is not None or state.ended:
        return None
    if rng.draw() >= trigger_chance(state, tuning):
        return None
    kind = pick_weighted(eligible_events(state, tuning), state, tuning, rng)
    if kind is not None:
        state.active_event = kind
    return kind


def available_options(state: SettlementState, tuning: Tuning) -> list[tuple[str, bool]]:
    """(label, guard holds) for the pending event; empty when idle."""
    if state.active_event is None:
        return []
    ev = definition(state.active_event)
    return [(opt.label, bool(opt.guard(state, tuning))) for opt in ev.options]


def resolve(state: SettlementState, tuning: Tuning, rng: SeededRng,
            option_index: int) -> ResolveResult:
    """Run the chosen option of the pending event.  Rejections leave state as-is."""
    if state.active_event is None:
        return ResolveResult(False, "No event is waiting for a decision.")
    ev = definition(state.active_event)
    if not 0 <= option_index < len(ev.options):
        return ResolveResult(False, f"{ev.title}: there is no option {option_index}.",
                             ev.kind, option_index)
    opt = ev.options[option_index]
    if not opt.guard(state, tuning):
        return ResolveResult(False, f"{ev.title}: cannot afford \"{opt.label}\".",
                             ev.kind, option_index)
    message = opt.effect(state, tuning, rng)
    state.active_event = None
    return ResolveResult(True, message, ev.kind, option_index)
