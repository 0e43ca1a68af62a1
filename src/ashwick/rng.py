# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
rng.py — Seeded, replayable random draws.

The generator keeps no state of its own: the 32-bit cursor lives on the
SettlementState, so a state copy carries its random future with it and two
engines started from the same seed stay bit-identical as long as they see
the same ticks and the same player choices.
"""

from __future__ import annotations

_MASK32      = 0xFFFFFFFF
_FNV_OFFSET  = 2166136261
_FNV_PRIME   = 16777619
_GOLDEN_STEP = 0x6D2B79F5


def hash_seed(value) -> int:
    """FNV-1a over ``str(value)`` → unsigned 32-bit seed.  None hashes as ''."""
    text = '' if value is None else str(value)
    h = _FNV_OFFSET
    for ch in text:
        h ^= ord(ch)
        h = (h * _FNV_PRIME) & _MASK32
    return h


def _mix(a: int) -> float:
    """mulberry32 output function for an already-advanced cursor."""
    t = ((a ^ (a >> 15)) * (a | 1)) & _MASK32
    t = ((t + (((t ^ (t >> 7)) * (t | 61)) & _MASK32)) & _MASK32) ^ t
    return ((t ^ (t >> 14)) & _MASK32) / 4294967296.0


class SeededRng:
    """Draws bound to one state record's ``rng_cursor``."""

    def __init__(self, state) -> None:
        self._state = state
        self.draws  = 0

    @property
    def cursor(self) -> int:
        return self._state.rng_cursor

    def draw(self) -> float:
        """Uniform float in [0, 1).  Advances the cursor."""
        a = (self._state.rng_cursor + _GOLDEN_STEP) & _MASK32
        self._state.rng_cursor = a
        self.draws += 1
        return _mix(a)

    def draw_int(self, lo: int, hi: int) -> int:
        """Uniform int in [lo, hi].  Caller guarantees lo ≤ hi."""
        return int(self.draw() * (hi - lo + 1)) + lo
