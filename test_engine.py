"""
test_engine.py — pytest suite for ashwick.engine
================================================
Covers: the day's phases end to end, invariants over long runs,
determinism, the four reference scenarios, player actions (accepted and
rejected), run control (modes, pause, speed, reset, close) and variants.
"""

import copy
from dataclasses import dataclass

import pytest

from ashwick.actions import (
    ApplyPreset, BuildFarm, DeclareFeast, DeclareRationing, PlayerAction,
    ReallocateLabor, ResolveEvent,
)
from ashwick.config import DEFAULT_TUNING, PRESSURE_MAX
from ashwick.consumption import apply_consumption, apply_starvation
from ashwick.engine import SettlementEngine
from ashwick.events import EventKind
from ashwick.pressure import update_pressures
from ashwick.rng import hash_seed
from ashwick.scheduler import ManualScheduler
from ashwick.state import EndReason, initial_state
from ashwick.workforce import labor_total

QUIET = DEFAULT_TUNING.with_overrides({'mechanics': {'events': False}})
SELF_SUFFICIENT = QUIET.with_overrides({
    'start_labor_food': 30, 'start_labor_material': 0, 'start_tooling': 0,
})


def _engine(seed=1337, tuning=DEFAULT_TUNING, **kw):
    kw.setdefault('scheduler', ManualScheduler())
    return SettlementEngine(seed=seed, tuning=tuning, echo=False, **kw)


def _steward(engine):
    """Answer any pending event with its first affordable option."""
    for i, (_label, ok) in enumerate(engine.view().event_options):
        if ok:
            engine.apply(ResolveEvent(i))
            return


def _check_invariants(s):
    assert s.population >= 0
    assert 0 <= labor_total(s) <= s.population
    for slot in (s.labor_food, s.labor_material, s.labor_tooling):
        assert slot >= 0
    assert s.food >= 0 and s.material >= 0 and s.tooling >= 0
    assert 0.0 <= s.morale <= 100.0
    assert 0.0 <= s.legitimacy <= 100.0
    for p in (s.pressure_subsistence, s.pressure_security, s.pressure_extraction):
        assert 0.0 <= p <= 100.0
    assert not (s.policy.rationing and s.policy.feasting)
    assert s.ended == (s.end_reason is not EndReason.ONGOING)


# ─────────────────────────────────────────────────────
# Construction
# ─────────────────────────────────────────────────────

class TestConstruction:
    def test_bad_mode_rejected(self):
        with pytest.raises(ValueError):
            _engine(mode='turbo')

    def test_bad_interval_rejected(self):
        with pytest.raises(ValueError):
            _engine(interval=0)

    def test_first_log_line_names_the_seed(self):
        eng = _engine(seed="ashwick")
        assert eng.event_log == [f"Day 001: New run started. Seed: {hash_seed('ashwick')}"]

    def test_manual_mode_leaves_scheduler_idle(self):
        assert not _engine().scheduler.armed

    def test_scheduled_mode_arms_scheduler(self):
        eng = _engine(mode='scheduled', interval=2.5)
        assert eng.scheduler.armed
        assert eng.scheduler.interval == 2.5


# ─────────────────────────────────────────────────────
# Scenarios
# ─────────────────────────────────────────────────────

class TestScenarios:
    def test_a_balanced_food_holds_steady(self):
        eng = _engine(tuning=SELF_SUFFICIENT)
        report = eng.step()
        assert report.production.food == pytest.approx(30.0)
        assert eng.state.food == pytest.approx(80.0)
        assert eng.state.hunger_streak == 0
        assert eng.state.day == 2

    def test_a_with_a_never_firing_roll(self):
        never = SELF_SUFFICIENT.with_overrides({
            'mechanics': {'events': True},
            'event_base_chance': 0.0, 'event_low_morale_bonus': 0.0,
            'event_high_psubs_bonus': 0.0, 'event_high_psec_bonus': 0.0,
        })
        eng = _engine(tuning=never)
        for _ in range(10):
            assert eng.step().event is None
        assert eng.state.food == pytest.approx(80.0)
        assert eng.state.active_event is None

    def test_b_mild_hunger_never_kills(self):
        s = initial_state(1)
        s.food = 0.0
        s.labor_food = 0
        previous = s.pressure_subsistence
        for day in range(1, 21):
            s.policy.rationing_days_left = 1
            deficit = apply_consumption(s, DEFAULT_TUNING)
            outcome = apply_starvation(s, DEFAULT_TUNING, deficit)
            update_pressures(s, DEFAULT_TUNING, deficit, outcome)
            assert s.hunger_streak == day
            assert outcome.deaths == 0
            if previous < PRESSURE_MAX:
                assert s.pressure_subsistence > previous
            else:
                assert s.pressure_subsistence == PRESSURE_MAX
            previous = s.pressure_subsistence
        assert s.hunger_streak == 20
        assert s.population == 30

    def test_c_legitimacy_collapse_ends_the_run(self):
        eng = _engine(tuning=QUIET)
        eng.state.legitimacy = 0.5
        eng.state.pressure_subsistence = 80.0
        eng.state.pressure_security = 80.0
        report = eng.step()
        assert report.ended
        assert eng.state.legitimacy == 0.0
        assert eng.state.end_reason is EndReason.LEGITIMACY_COLLAPSE
        assert eng.state.day == 1                   # clock did not advance
        assert eng.event_log[-1].endswith("RUN ENDED — Legitimacy collapsed. "
                                          "You were removed from power.")
        before = copy.deepcopy(eng.state)
        assert eng.step().skipped
        assert eng.state == before

    def test_d_victory_halts_scheduled_time(self):
        tuned = SELF_SUFFICIENT.with_overrides({'victory_day': 5})
        eng = _engine(tuning=tuned, mode='scheduled', interval=1.0)
        ran = eng.scheduler.fire(20)
        assert ran == 5
        assert eng.state.ended
        assert eng.state.end_reason is EndReason.VICTORY
        assert eng.state.day == 5
        assert not eng.scheduler.armed
        assert "Victory." in eng.event_log[-1]

    def test_abandonment_beats_legitimacy(self):
        eng = _engine(tuning=QUIET)
        eng.state.population = 5
        eng.state.legitimacy = 0.0
        eng.step()
        assert eng.state.end_reason is EndReason.ABANDONMENT


# ─────────────────────────────────────────────────────
# Long runs: invariants and determinism
# ─────────────────────────────────────────────────────

class TestLongRuns:
    @pytest.mark.parametrize("seed", [1, 2, 3, "ashwick", 1337])
    def test_invariants_hold_every_day(self, seed):
        eng = _engine(seed=seed)
        for _ in range(60):
            _steward(eng)
            report = eng.step()
            _check_invariants(eng.state)
            assert (report.deficit == 0) == (eng.state.hunger_streak == 0)
            if eng.state.ended:
                break
        assert eng.state.ended

    def test_idle_player_run_ends_by_victory_day(self):
        eng = _engine(seed=9)
        for _ in range(100):
            _steward(eng)
            if eng.step().skipped:
                break
        assert eng.state.ended
        assert eng.state.day <= DEFAULT_TUNING.victory_day

    def test_same_seed_same_history(self):
        def play(seed):
            eng = _engine(seed=seed)
            for day in range(40):
                if day == 2:
                    eng.apply(ApplyPreset('balanced'))
                if day == 6:
                    eng.apply(BuildFarm())
                _steward(eng)
                eng.step()
            return eng

        a, b = play("twin"), play("twin")
        assert a.state == b.state
        assert a.event_log == b.event_log

    def test_different_seeds_diverge(self):
        def cursor_after(seed):
            eng = _engine(seed=seed)
            for _ in range(10):
                eng.step()
            return eng.state.rng_cursor

        assert cursor_after(1) != cursor_after(2)


# ─────────────────────────────────────────────────────
# Player actions
# ─────────────────────────────────────────────────────

@dataclass
class _Dance(PlayerAction):
    def describe(self) -> str:
        return "Dance()"


class TestActions:
    def test_build_farm(self):
        eng = _engine()
        res = eng.apply(BuildFarm())
        assert res.accepted
        assert eng.state.buildings.farms == 1
        assert eng.state.material == pytest.approx(10.0)

    def test_reallocate_short_slot_name(self):
        eng = _engine()
        res = eng.apply(ReallocateLabor('tooling', 8))
        assert res.accepted
        assert eng.state.labor_tooling == 8
        assert labor_total(eng.state) <= eng.state.population

    def test_rationing_cancels_feast(self):
        eng = _engine()
        assert eng.apply(DeclareFeast()).accepted
        assert eng.state.policy.feasting
        assert eng.apply(DeclareRationing()).accepted
        assert eng.state.policy.rationing
        assert not eng.state.policy.feasting

    def test_feast_costs_food(self):
        eng = _engine()
        eng.apply(DeclareFeast())
        assert eng.state.food == pytest.approx(70.0)
        assert eng.state.policy.feasting_days_left == 3

    def test_preset(self):
        eng = _engine()
        res = eng.apply(ApplyPreset('balanced'))
        assert res.accepted
        assert res.message.endswith("Applied preset: balanced (17/9/4).")

    @pytest.mark.parametrize("action, setup, message", [
        (BuildFarm(), {'material': 5.0}, "Not enough material to build a farm."),
        (DeclareFeast(), {'food': 10.0}, "Not enough food to feast."),
        (ReallocateLabor('priests', 3), {}, "Unknown labor slot 'priests'."),
        (ReallocateLabor('food', 'many'), {}, "Worker count must be a whole number"),
        (ApplyPreset('chaos'), {}, "Unknown preset 'chaos'."),
        (ResolveEvent(0), {}, "No event is waiting for a decision."),
        (_Dance(), {}, "Unknown command type _Dance"),
    ])
    def test_rejections_leave_state_untouched(self, action, setup, message):
        eng = _engine()
        for key, value in setup.items():
            setattr(eng.state, key, value)
        before = copy.deepcopy(eng.state)
        res = eng.apply(action)
        assert not res.accepted
        assert message in res.message
        assert eng.state == before

    def test_resolve_pending_event(self):
        eng = _engine()
        eng.state.active_event = EventKind.TRADERS
        res = eng.apply(ResolveEvent(1))
        assert res.accepted
        assert "refused" in res.message
        assert eng.state.active_event is None

    def test_orders_refused_after_run_ends(self):
        eng = _engine(tuning=QUIET)
        eng.state.population = 0
        eng.step()
        res = eng.apply(BuildFarm())
        assert not res.accepted
        assert "run has ended" in res.message

    def test_render_hook_on_tick_and_accepted_actions_only(self):
        seen = []
        eng = _engine(on_render=seen.append)
        eng.step()
        eng.apply(BuildFarm())
        eng.apply(ApplyPreset('nonsense'))
        assert len(seen) == 2
        assert seen[0].day == 2


# ─────────────────────────────────────────────────────
# Run control
# ─────────────────────────────────────────────────────

class TestRunControl:
    def test_pause_disarms_and_blocks_scheduled_ticks(self):
        eng = _engine(mode='scheduled', interval=1.0)
        eng.pause()
        assert eng.paused
        assert not eng.scheduler.armed
        assert eng.tick(source='scheduled').skipped
        assert eng.state.day == 1

    def test_in_flight_callback_dropped_after_switch_to_manual(self):
        eng = _engine(mode='scheduled', interval=1.0)
        in_flight = eng.scheduler.callback
        eng.set_mode('manual')
        in_flight()
        assert eng.state.day == 1

    def test_in_flight_callback_dropped_after_reset(self):
        eng = _engine(mode='scheduled', interval=1.0)
        in_flight = eng.scheduler.callback
        eng.reset()
        assert eng.scheduler.armed
        in_flight()
        assert eng.state.day == 1
        assert eng.scheduler.fire() == 1
        assert eng.state.day == 2

    def test_scheduled_tick_outside_scheduled_mode_skipped(self):
        eng = _engine()
        assert eng.tick(source='scheduled').skipped
        assert eng.state.day == 1

    def test_manual_step_ignores_pause(self):
        eng = _engine(mode='scheduled', interval=1.0)
        eng.pause()
        assert not eng.step().skipped
        assert eng.state.day == 2

    def test_resume_rearms(self):
        eng = _engine(mode='scheduled', interval=1.0)
        eng.pause()
        eng.resume()
        assert eng.scheduler.armed
        assert eng.scheduler.fire() == 1
        assert eng.state.day == 2

    def test_toggle_pause_from_manual_starts_time(self):
        eng = _engine()
        eng.toggle_pause()
        assert eng.mode == 'scheduled'
        assert eng.scheduler.armed
        eng.toggle_pause()
        assert eng.paused
        assert not eng.scheduler.armed

    def test_set_speed(self):
        eng = _engine()
        eng.set_speed(0.5)
        assert eng.mode == 'scheduled'
        assert eng.scheduler.interval == 0.5
        with pytest.raises(ValueError):
            eng.set_speed(0)

    def test_set_mode(self):
        eng = _engine(mode='scheduled', interval=1.0)
        eng.set_mode('manual')
        assert not eng.scheduler.armed
        with pytest.raises(ValueError):
            eng.set_mode('warp')

    def test_controls_are_noops_after_the_end(self):
        eng = _engine(tuning=QUIET)
        eng.state.population = 0
        eng.step()
        log_size = len(eng.event_log)
        eng.set_mode('scheduled')
        eng.toggle_pause()
        eng.set_speed(1.0)
        assert not eng.scheduler.armed
        assert len(eng.event_log) == log_size

    def test_reset_restores_day_one(self):
        eng = _engine(seed="again")
        for _ in range(5):
            eng.step()
        eng.reset()
        assert eng.state == initial_state("again")
        assert len(eng.event_log) == 1

    def test_reset_with_new_seed(self):
        eng = _engine(seed=1)
        eng.reset(seed=7)
        assert eng.state.seed == hash_seed(7)
        eng.reset()
        assert eng.state.seed == hash_seed(7)

    def test_reset_keeps_scheduled_time_running(self):
        eng = _engine(mode='scheduled', interval=1.0)
        eng.scheduler.fire(3)
        eng.reset()
        assert eng.scheduler.armed
        assert eng.state.day == 1

    def test_close_stops_everything(self):
        eng = _engine(mode='scheduled', interval=1.0)
        eng.close()
        assert not eng.scheduler.armed
        assert eng.step().skipped

    def test_on_tick_receives_report(self):
        reports = []
        eng = _engine(on_tick=reports.append)
        eng.step()
        eng.step()
        assert [r.day for r in reports] == [1, 2]


# ─────────────────────────────────────────────────────
# Views
# ─────────────────────────────────────────────────────

class TestView:
    def test_view_is_a_snapshot(self):
        eng = _engine()
        v = eng.view()
        eng.step()
        assert v.day == 1
        assert eng.view().day == 2

    def test_as_dict_shape(self):
        eng = _engine()
        eng.state.active_event = EventKind.RIOT
        d = eng.view().as_dict()
        assert d['day'] == 1
        assert d['status'] == 'tense'
        assert d['labor'] == {'food': 10, 'material': 5, 'tooling': 0, 'idle': 15}
        assert d['event']['kind'] == 'RIOT'
        assert [o['available'] for o in d['event']['options']] == [True, True]

    def test_status_bands(self):
        eng = _engine()
        eng.state.morale = 80.0
        assert eng.status() == 'stable'
        eng.state.morale = 10.0
        assert eng.status() == 'unstable'


# ─────────────────────────────────────────────────────
# Variants
# ─────────────────────────────────────────────────────

class TestVariants:
    def test_baseline_has_no_pressure_or_events(self):
        tuned = DEFAULT_TUNING.with_overrides({'mechanics': 'baseline'})
        eng = _engine(tuning=tuned)
        for _ in range(15):
            report = eng.step()
            assert report.event is None
            assert report.emigrants == 0
        assert eng.state.pressure_total == 0.0
        assert eng.state.legitimacy == pytest.approx(70.0)

    def test_starvation_variant_kills_on_any_shortfall(self):
        tuned = DEFAULT_TUNING.with_overrides({'mechanics': 'starvation'})
        eng = _engine(tuning=tuned)
        eng.state.food = 0.0
        eng.state.labor_food = 24          # 24 × 1.2 flat bonus = 28.8
        report = eng.step()
        assert report.deficit == pytest.approx(1.2)
        assert report.outcome.deaths >= 1

    def test_governance_same_shortfall_only_hurts_morale(self):
        eng = _engine(tuning=QUIET)
        eng.state.food = 0.0
        eng.state.labor_food = 24
        report = eng.step()
        assert report.deficit > 0
        assert report.outcome.deaths == 0
