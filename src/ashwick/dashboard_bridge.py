"""
dashboard_bridge.py — Periodic JSON snapshot writer for the Streamlit live dashboard.

sim.py calls write_dashboard_snapshot() every DASHBOARD_WRITE_EVERY days and on the last day.
Uses an atomic rename-swap so the dashboard process never reads a half-written file.

No Streamlit dependency — this runs inside the main simulation process.
"""

import collections
import json
import os
import pathlib

from .bridge import SettlementView

# ── Configuration ─────────────────────────────────────────────────────────
DASHBOARD_WRITE_EVERY: int    = 1                           # write interval (days)
DASHBOARD_DATA_PATH:   pathlib.Path = pathlib.Path("dashboard_data.json")

_HISTORY_MAX = 400   # far beyond any victory day; caps memory on long custom runs

# ── Rolling meter history (module-level, survives across calls) ───────────
_history: collections.deque = collections.deque(maxlen=_HISTORY_MAX)


def reset_history() -> None:
    """Forget earlier days (called when a run is reset)."""
    _history.clear()


def _history_row(view: SettlementView) -> dict:
    return {
        'day':         view.day,
        'population':  view.population,
        'food':        round(view.food, 2),
        'material':    round(view.material, 2),
        'tooling':     round(view.tooling, 2),
        'morale':      round(view.morale, 2),
        'legitimacy':  round(view.legitimacy, 2),
        'subsistence': round(view.pressure_subsistence, 2),
        'security':    round(view.pressure_security, 2),
        'extraction':  round(view.pressure_extraction, 2),
    }


# ──────────────────────────────────────────────────────────────────────────
# Main API
# ──────────────────────────────────────────────────────────────────────────

def write_dashboard_snapshot(view: SettlementView,
                             path: pathlib.Path = DASHBOARD_DATA_PATH) -> None:
    """Serialise the view plus rolling history and write to *path* atomically.

    The write goes to a .tmp file first; os.replace() then performs an atomic rename
    so the dashboard reader never sees a partial JSON file.  An OSError is
    printed as a warning and the run carries on.
    """
    row = _history_row(view)
    if _history and _history[-1]['day'] == row['day']:
        _history[-1] = row
    else:
        _history.append(row)

    snap = view.as_dict()
    snap['history']    = list(_history)
    snap['event_tail'] = view.recent_events     # last 20 entries for the live feed

    path = pathlib.Path(path)
    tmp  = path.with_suffix('.tmp')
    try:
        tmp.write_text(json.dumps(snap, separators=(',', ':')), encoding='utf-8')
        os.replace(tmp, path)
    except OSError as exc:
        print(f"  ⚠ dashboard snapshot not written: {exc}")
