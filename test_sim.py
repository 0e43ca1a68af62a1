"""
test_sim.py — pytest suite for the CLI runner and its outputs
=============================================================
Covers: tuning / plan loading, actions.from_dict, the steward rule,
MetricsLogger, the dashboard snapshot writer, and run() end to end.
"""

import copy
import csv
import json
import sys

import pytest

from ashwick import dashboard_bridge
from ashwick.actions import ApplyPreset, BuildFarm, ReallocateLabor, ResolveEvent, from_dict
from ashwick.config import ConfigError, DEFAULT_TUNING, VARIANTS, Tuning
from ashwick.engine import SettlementEngine
from ashwick.events import EventKind
from ashwick.metrics import MetricsLogger
from ashwick.scheduler import ManualScheduler
from ashwick.sim import load_plan, load_tuning, run, steward_choice


def _engine(**kw):
    return SettlementEngine(scheduler=ManualScheduler(), echo=False, **kw)


# ─────────────────────────────────────────────────────
# Tuning
# ─────────────────────────────────────────────────────

class TestTuning:
    def test_defaults_without_inputs(self):
        assert load_tuning(None) == DEFAULT_TUNING

    def test_variant_swaps_mechanics(self):
        tuned = load_tuning(None, variant='starvation')
        assert tuned.mechanics == VARIANTS['starvation']
        assert not tuned.mechanics.famine_threshold

    def test_file_overrides_and_victory_day(self, tmp_path):
        path = tmp_path / "tuning.json"
        path.write_text(json.dumps({"start_food": 120, "mechanics": {"events": False}}),
                        encoding="utf-8")
        tuned = load_tuning(str(path), victory_day=30)
        assert tuned.start_food == 120
        assert not tuned.mechanics.events
        assert tuned.mechanics.pressure_model
        assert tuned.victory_day == 30

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "tuning.json"
        path.write_text(json.dumps({"start_gold": 5}), encoding="utf-8")
        with pytest.raises(ConfigError, match="start_gold"):
            load_tuning(str(path))

    def test_unknown_toggle_rejected(self):
        with pytest.raises(ConfigError, match="magic"):
            Tuning().with_overrides({'mechanics': {'magic': True}})

    def test_unknown_variant_rejected(self):
        with pytest.raises(ConfigError):
            load_tuning(None, variant='utopia')

    def test_bad_json_rejected(self, tmp_path):
        path = tmp_path / "tuning.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="not valid JSON"):
            load_tuning(str(path))

    def test_missing_file_rejected(self, tmp_path):
        with pytest.raises(ConfigError, match="cannot read"):
            load_tuning(str(tmp_path / "nope.json"))

    @pytest.mark.parametrize("overrides", [
        {"victory_day": "50"},
        {"victory_day": 50.5},
        {"start_food": "lots"},
        {"start_food": None},
        {"ration_days": True},
    ])
    def test_wrong_value_types_rejected(self, tmp_path, overrides):
        path = tmp_path / "tuning.json"
        path.write_text(json.dumps(overrides), encoding="utf-8")
        with pytest.raises(ConfigError, match=next(iter(overrides))):
            load_tuning(str(path))

    def test_numbers_coerced_to_field_kind(self):
        tuned = Tuning().with_overrides({'victory_day': 40.0, 'start_food': 90})
        assert tuned.victory_day == 40 and isinstance(tuned.victory_day, int)
        assert isinstance(tuned.start_food, float)

    def test_victory_day_must_be_positive(self):
        with pytest.raises(ConfigError):
            load_tuning(None, victory_day=0)


# ─────────────────────────────────────────────────────
# Plans and actions
# ─────────────────────────────────────────────────────

class TestPlan:
    def test_from_dict_builds_commands(self):
        assert from_dict({"action": "build_farm"}) == BuildFarm()
        assert from_dict({"action": "preset", "name": "survival", "day": 3}) == ApplyPreset("survival")
        assert from_dict({"action": "labor", "slot": "food", "workers": 12}) == ReallocateLabor("food", 12)
        assert from_dict({"action": "resolve", "option_index": 1}) == ResolveEvent(1)

    def test_from_dict_rejects_unknown_action(self):
        with pytest.raises(ValueError, match="unknown action"):
            from_dict({"action": "summon"})

    def test_from_dict_rejects_bad_arguments(self):
        with pytest.raises(ValueError, match="bad arguments"):
            from_dict({"action": "preset", "colour": "red"})

    @pytest.mark.parametrize("entry", [
        {"action": "labor", "slot": 3, "workers": 5},
        {"action": "labor", "slot": "food", "workers": "5"},
        {"action": "labor", "slot": "food", "workers": True},
        {"action": "resolve", "option_index": "1"},
        {"action": "preset", "name": ["balanced"]},
        {"action": ["preset"]},
    ])
    def test_from_dict_rejects_wrong_types(self, entry):
        with pytest.raises(ValueError):
            from_dict(entry)

    @pytest.mark.parametrize("entry", [
        {"day": 1, "action": "labor", "slot": 3, "workers": 5},
        {"day": 1, "action": "resolve", "option_index": "1"},
        {"day": 1, "action": "preset", "name": ["balanced"]},
        {"day": [1], "action": "feast"},
    ])
    def test_wrong_types_caught_at_load(self, tmp_path, entry):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps([entry]), encoding="utf-8")
        with pytest.raises(ConfigError, match="entry 0"):
            load_plan(str(path))

    @pytest.mark.parametrize("action", [
        ReallocateLabor(3, 5),
        ResolveEvent("1"),
        ApplyPreset(["balanced"]),
    ])
    def test_engine_rejects_wrong_types_without_raising(self, action):
        eng = _engine()
        eng.state.active_event = EventKind.TRADERS
        before = copy.deepcopy(eng.state)
        result = eng.apply(action)
        assert not result.accepted
        assert eng.state == before

    def test_load_plan_groups_by_day(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps({"actions": [
            {"day": 1, "action": "preset", "name": "balanced"},
            {"day": 4, "action": "build_farm"},
            {"day": 1, "action": "ration"},
        ]}), encoding="utf-8")
        plan = load_plan(str(path))
        assert [a.describe() for a in plan[1]] == ["ApplyPreset(name='balanced')", "DeclareRationing()"]
        assert plan[4] == [BuildFarm()]
        assert plan[2] == []

    def test_bare_list_accepted(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps([{"day": 2, "action": "feast"}]), encoding="utf-8")
        assert len(load_plan(str(path))[2]) == 1

    def test_entry_without_day_rejected(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps([{"action": "feast"}]), encoding="utf-8")
        with pytest.raises(ConfigError, match="entry 0"):
            load_plan(str(path))

    def test_bad_action_reported_as_config_error(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps([{"day": 1, "action": "summon"}]), encoding="utf-8")
        with pytest.raises(ConfigError, match="unknown action"):
            load_plan(str(path))

    def test_no_path_means_empty_plan(self):
        assert load_plan(None) == {}


class TestSteward:
    def test_idle_means_no_choice(self):
        assert steward_choice(_engine().view()) is None

    def test_first_affordable_option(self):
        eng = _engine()
        eng.state.active_event = EventKind.TRADERS
        eng.state.material = 3.0
        assert steward_choice(eng.view()) == 1
        eng.state.material = 30.0
        assert steward_choice(eng.view()) == 0


# ─────────────────────────────────────────────────────
# MetricsLogger
# ─────────────────────────────────────────────────────

class TestMetrics:
    def test_writes_days_events_and_summary(self, tmp_path):
        eng = _engine(seed=4)
        metrics = MetricsLogger(4, "unit", str(tmp_path))
        for _ in range(3):
            report = eng.step()
            metrics.record_day(report, eng.view())
        metrics.record_event(3, 'action', "BuildFarm()")
        metrics.finalize(eng.view(), "governance")
        metrics.close()

        with open(tmp_path / "metrics_seed_4.csv", newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [int(r['day']) for r in rows] == [1, 2, 3]
        assert rows[0]['population'] == '30'

        with open(tmp_path / "settlement_events_seed_4.csv", newline="", encoding="utf-8") as f:
            events = list(csv.DictReader(f))
        assert events[-1]['event_type'] == 'action'

        with open(tmp_path / "run_summaries.csv", newline="", encoding="utf-8") as f:
            summary = list(csv.DictReader(f))
        assert summary[0]['condition'] == 'unit'
        assert summary[0]['total_actions'] == '1'

    def test_unknown_event_type_rejected(self, tmp_path):
        metrics = MetricsLogger(1, "unit", str(tmp_path))
        try:
            with pytest.raises(ValueError):
                metrics.record_event(1, 'festival')
        finally:
            metrics.finalize(_engine().view())
            metrics.close()

    def test_skipped_reports_not_recorded(self, tmp_path):
        eng = _engine(seed=2)
        eng.close()
        metrics = MetricsLogger(2, "unit", str(tmp_path))
        metrics.record_day(eng.step(), eng.view())
        metrics.finalize(eng.view())
        metrics.close()
        with open(tmp_path / "metrics_seed_2.csv", newline="", encoding="utf-8") as f:
            assert list(csv.DictReader(f)) == []


# ─────────────────────────────────────────────────────
# Dashboard snapshot
# ─────────────────────────────────────────────────────

class TestDashboardSnapshot:
    def test_snapshot_carries_history(self, tmp_path):
        dashboard_bridge.reset_history()
        path = tmp_path / "dash.json"
        eng = _engine()
        for _ in range(3):
            eng.step()
            dashboard_bridge.write_dashboard_snapshot(eng.view(), path)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data['day'] == 4
        assert [h['day'] for h in data['history']] == [2, 3, 4]
        assert data['event_tail'][0].startswith("Day 001: New run started.")
        assert not (tmp_path / "dash.tmp").exists()

    def test_same_day_replaces_last_row(self, tmp_path):
        dashboard_bridge.reset_history()
        path = tmp_path / "dash.json"
        eng = _engine()
        dashboard_bridge.write_dashboard_snapshot(eng.view(), path)
        eng.apply(BuildFarm())
        dashboard_bridge.write_dashboard_snapshot(eng.view(), path)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert len(data['history']) == 1
        assert data['farms'] == 1


# ─────────────────────────────────────────────────────
# End-to-end: run()
# ─────────────────────────────────────────────────────

class TestRun:
    def test_short_manual_run(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        out = tmp_path / "out"
        rc = run(["--seed", "11", "--days", "5", "--condition", "e2e",
                  "--output-dir", str(out)])
        assert rc == 0
        with open(out / "metrics_seed_11.csv", newline="", encoding="utf-8") as f:
            assert len(list(csv.DictReader(f))) == 5
        logs = list((tmp_path / "logs").glob("run_*.txt"))
        assert len(logs) == 1
        text = logs[0].read_text(encoding="utf-8")
        assert "[Day 001] Pop: 30" in text
        assert "SETTLEMENT SUMMARY" in text

    def test_plan_and_victory_day(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        plan = tmp_path / "plan.json"
        plan.write_text(json.dumps({"actions": [
            {"day": 1, "action": "preset", "name": "survival"},
            {"day": 2, "action": "build_farm"},
        ]}), encoding="utf-8")
        rc = run(["--seed", "3", "--victory-day", "8", "--plan", str(plan),
                  "--no-metrics", "--dashboard"])
        assert rc == 0
        data = json.loads((tmp_path / "dashboard_data.json").read_text(encoding="utf-8"))
        assert data['farms'] == 1
        assert data['ended']

    def test_dashboard_written_on_interval_and_last_day(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(dashboard_bridge, "DASHBOARD_WRITE_EVERY", 3)
        written = []
        real_write = dashboard_bridge.write_dashboard_snapshot
        monkeypatch.setattr(dashboard_bridge, "write_dashboard_snapshot",
                            lambda view, *a: written.append(view.day) or real_write(view, *a))
        rc = run(["--seed", "5", "--days", "5", "--variant", "baseline",
                  "--no-metrics", "--dashboard"])
        assert rc == 0
        # Snapshots taken after days 3 and 5 show the following morning.
        assert written == [4, 6]
        data = json.loads((tmp_path / "dashboard_data.json").read_text(encoding="utf-8"))
        assert [h['day'] for h in data['history']] == [4, 6]

    def test_bad_plan_exits_with_usage_error(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as exc_info:
            run(["--plan", str(tmp_path / "missing.json")])
        assert exc_info.value.code == 2

    def test_stdout_restored(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        before = sys.stdout
        run(["--days", "2", "--no-metrics"])
        assert sys.stdout is before
