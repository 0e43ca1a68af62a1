# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
actions.py — Player commands, the only way the player affects the settlement.

Each command is a small dataclass.  ``SettlementEngine.apply`` validates it
against the current state and either executes it or rejects it with a
log line; a rejected command never changes the state.

Supported commands
──────────────────
  ReallocateLabor(slot, workers)
      Put *workers* on 'food', 'material' or 'tooling' (or the full
      ``labor_*`` name).  Other slots give way if the total would exceed
      the population.

  BuildFarm()
      Spend FARM_MATERIAL_COST material on one more farm.

  DeclareRationing() / DeclareFeast()
      Start a consumption policy.  Either one cancels the other.

  ApplyPreset(name)
      Re-split the whole population by a named PRESETS ratio.

  ResolveEvent(option_index)
      Answer the pending event with one of its options.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass

from .state import LABOR_SLOTS


@dataclass(frozen=True)
class ActionResult:
    accepted: bool
    message:  str


# ══════════════════════════════════════════════════════════════════════════
# PlayerAction hierarchy
# ══════════════════════════════════════════════════════════════════════════

@dataclass
class PlayerAction(abc.ABC):
    """Sealed base class.  Every concrete command must inherit from this."""

    @abc.abstractmethod
    def describe(self) -> str:
        """Human-readable description for log messages."""


@dataclass
class ReallocateLabor(PlayerAction):
    slot:    str
    workers: int

    @property
    def slot_name(self) -> str:
        """Normalised ``labor_*`` attribute name (may still be invalid)."""
        return self.slot if self.slot.startswith('labor_') else f"labor_{self.slot}"

    @property
    def valid_slot(self) -> bool:
        return isinstance(self.slot, str) and self.slot_name in LABOR_SLOTS

    def describe(self) -> str:
        return f"ReallocateLabor(slot={self.slot!r}, workers={self.workers})"


@dataclass
class BuildFarm(PlayerAction):
    def describe(self) -> str:
        return "BuildFarm()"


@dataclass
class DeclareRationing(PlayerAction):
    def describe(self) -> str:
        return "DeclareRationing()"


@dataclass
class DeclareFeast(PlayerAction):
    def describe(self) -> str:
        return "DeclareFeast()"


@dataclass
class ApplyPreset(PlayerAction):
    name: str

    def describe(self) -> str:
        return f"ApplyPreset(name={self.name!r})"


@dataclass
class ResolveEvent(PlayerAction):
    option_index: int

    def describe(self) -> str:
        return f"ResolveEvent(option_index={self.option_index})"


_BY_NAME = {
    'reallocate': ReallocateLabor,
    'labor':      ReallocateLabor,
    'build_farm': BuildFarm,
    'ration':     DeclareRationing,
    'feast':      DeclareFeast,
    'preset':     ApplyPreset,
    'resolve':    ResolveEvent,
}

# JSON types each plan-file argument must arrive as.
_FIELD_TYPES = {
    ReallocateLabor: {'slot': str, 'workers': int},
    ApplyPreset:     {'name': str},
    ResolveEvent:    {'option_index': int},
}


def from_dict(entry: dict) -> PlayerAction:
    """Build a command from a plan-file entry such as
    ``{"action": "preset", "name": "balanced"}``.

    Raises ValueError for an unknown action name or bad arguments.
    """
    data = dict(entry)
    name = data.pop('action', None)
    data.pop('day', None)
    cls  = _BY_NAME.get(name) if isinstance(name, str) else None
    if cls is None:
        raise ValueError(f"unknown action {name!r} (choose from {', '.join(sorted(_BY_NAME))})")
    try:
        action = cls(**data)
    except TypeError as exc:
        raise ValueError(f"bad arguments for {name!r}: {exc}") from None
    for field_name, expected in _FIELD_TYPES.get(cls, {}).items():
        value = getattr(action, field_name)
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ValueError(f"bad arguments for {name!r}: {field_name} must be "
                             f"{expected.__name__}, got {value!r}")
    return action
