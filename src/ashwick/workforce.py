# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
workforce.py — Labor allocation: three slots that never outnumber the people.

Public helpers:
    reconcile(state, changed_slot=None)
    set_labor(state, slot, workers)
    apply_preset(state, name)        -> (food, material, tooling)
    labor_total(state)               -> int

When population shrinks or the player pushes one slot past the headcount,
overflow is taken from the *other* slots first.  The slot the player just
touched is cut last, so their latest intent survives as long as possible.
"""

from __future__ import annotations

from .config import PRESETS
from .state import SettlementState, LABOR_SLOTS


def labor_total(state: SettlementState) -> int:
    return state.labor_food + state.labor_material + state.labor_tooling


def reconcile(state: SettlementState, changed_slot: str | None = None) -> None:
    """Clamp every slot to [0, population] and trim any overflow."""
    pop = max(0, state.population)
    for slot in LABOR_SLOTS:
        setattr(state, slot, max(0, min(int(getattr(state, slot)), pop)))

    overflow = labor_total(state) - pop
    if overflow <= 0:
        return

    order = [s for s in LABOR_SLOTS if s != changed_slot]
    if changed_slot in LABOR_SLOTS:
        order.append(changed_slot)

    for slot in order:
        if overflow <= 0:
            break
        current = getattr(state, slot)
        cut     = min(current, overflow)
        setattr(state, slot, current - cut)
        overflow -= cut


def set_labor(state: SettlementState, slot: str, workers: int) -> None:
    """Assign *workers* to *slot*, then reconcile keeping that slot."""
    if slot not in LABOR_SLOTS:
        raise KeyError(slot)
    setattr(state, slot, int(workers))
    reconcile(state, changed_slot=slot)


def apply_preset(state: SettlementState, name: str) -> tuple[int, int, int]:
    """Split the whole population by a PRESETS ratio.

    Shares are floored; the leftover workers are handed out round-robin
    (food → material → tooling) and any excess is trimmed from tooling
    first.  Raises KeyError for an unknown preset.
    """
    share_f, share_m, share_t = PRESETS[name]
    pop = max(0, state.population)

    f = max(0, int(pop * share_f))
    m = max(0, int(pop * share_m))
    t = max(0, int(pop * share_t))

    used = f + m + t
    while used < pop:
        f += 1
        used += 1
        if used >= pop:
            break
        m += 1
        used += 1
        if used >= pop:
            break
        t += 1
        used += 1
    while used > pop:
        if t > 0:
            t -= 1
        elif m > 0:
            m -= 1
        else:
            f -= 1
        used = f + m + t

    state.labor_food, state.labor_material, state.labor_tooling = f, m, t
    reconcile(state)
    return f, m, t
