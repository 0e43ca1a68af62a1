# (c) 2026 (KriaetvAspie / AspieTheBard)
# Licensed under the Polyform Noncommercial License 1.0.0
"""
display.py — Terminal rendering of a SettlementView.
Called after every day by sim.py.
"""
import os

from .bridge import SettlementView

W        = 72
LOG_MODE = False  # set True by sim.py to suppress cls and route output to file

_STATUS_LABEL = {
    'stable':   'Stable',
    'tense':    'Tense',
    'unstable': 'Unstable',
}


def _meter(value: float, width: int = 20) -> str:
    filled = max(0, min(width, int(round(value / 100 * width))))
    return '█' * filled + '░' * (width - filled)


def _row(text: str) -> None:
    print(f"│  {text[:W-4]:<{W-2}}│")


def status_label(view: SettlementView) -> str:
    if view.ended:
        return 'VICTORY' if view.end_reason.value == 'victory' else 'GAME OVER'
    return _STATUS_LABEL[view.status]


def render(view: SettlementView, victory_day: int) -> None:
    """Print the full day display."""
    if not LOG_MODE:
        os.system('cls' if os.name == 'nt' else 'clear')

    bar = '─' * W
    r   = view.rates
    timing = 'paused' if view.paused else f"{view.tick_interval:g}s/day"
    clock  = 'manual' if view.mode == 'manual' else f"scheduled ({timing})"

    hdr = (f"  Day {view.day:03d}/{victory_day}  Pop:{view.population:3d}  "
           f"Farms:{view.farms}  [{status_label(view)}]  {clock}")
    print(f"┌{bar}┐")
    print(f"│{hdr:<{W}}│")
    print(f"├{bar}┤")
    _row(f"Food     {view.food:8.1f}   ({r.net_food:+.1f}/day, eat {r.food_demand:.1f})")
    _row(f"Material {view.material:8.1f}   ({r.material_per_day:+.1f}/day)")
    _row(f"Tooling  {view.tooling:8.1f}   ({r.net_tooling:+.2f}/day, bonus x{r.tooling_bonus:.3f})")
    print(f"├{bar}┤")
    _row(f"Morale      [{_meter(view.morale)}] {view.morale:5.1f}")
    _row(f"Legitimacy  [{_meter(view.legitimacy)}] {view.legitimacy:5.1f}")
    _row(f"Subsistence [{_meter(view.pressure_subsistence)}] {view.pressure_subsistence:5.1f}")
    _row(f"Security    [{_meter(view.pressure_security)}] {view.pressure_security:5.1f}")
    _row(f"Extraction  [{_meter(view.pressure_extraction)}] {view.pressure_extraction:5.1f}")
    print(f"├{bar}┤")
    policy = []
    if view.rationing_days_left:
        policy.append(f"Rationing({view.rationing_days_left}d)")
    if view.feasting_days_left:
        policy.append(f"Feast({view.feasting_days_left}d)")
    _row(f"Labor  food {view.labor_food}  material {view.labor_material}  "
         f"tooling {view.labor_tooling}  idle {view.idle}   "
         f"{' '.join(policy) or 'No policy'}")

    ev = view.active_event_definition
    if ev is not None:
        print(f"├{bar}┤")
        _row(f"⚠ {ev.title}")
        _row(f"  {ev.body}")
        for i, (label, ok) in enumerate(view.event_options):
            _row(f"  [{i}] {label}{'' if ok else '  (cannot afford)'}")

    shown = view.recent_events[-6:]
    if shown:
        print(f"├{bar}┤")
        for msg in shown:
            _row(msg)
    print(f"└{bar}┘")


def final_report(view: SettlementView, event_log: list, start_population: int) -> None:
    sep = '═' * W
    print(f"\n{sep}")
    print(f"SETTLEMENT SUMMARY — day {view.day}")
    print(f"{sep}")
    print(f"Outcome    : {status_label(view)}  ({view.end_reason.value})")
    print(f"Population : {view.population}/{start_population}  |  Farms: {view.farms}")
    print(f"Stocks     : food {view.food:.1f}  material {view.material:.1f}  "
          f"tooling {view.tooling:.1f}")
    print(f"Meters     : morale {view.morale:.1f}  legitimacy {view.legitimacy:.1f}  "
          f"pressure total {view.pressure_total:.1f}")

    _KEY = {'EVENT', 'Starvation', 'Emigration', 'RUN ENDED', 'Built a farm',
            'Rationing', 'Feast declared'}
    key_events = [e for e in event_log if any(k in e for k in _KEY)]
    n_show     = min(10, len(key_events))
    print(f"\nLast {n_show} key events:")
    for e in key_events[-10:]:
        print(f"  {e}")
    if len(key_events) > 10:
        print(f"  … ({len(key_events) - 10} earlier key events in log file)")
