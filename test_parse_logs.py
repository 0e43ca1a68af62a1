"""
test_parse_logs.py — pytest suite for parse_logs.py
====================================================
Covers: extract_run_id, parse_line, parse_file (flat and box formats), and
the main() end-to-end path.
"""

import csv
import sys

import pytest

from parse_logs import extract_run_id, parse_line, parse_file, main


# ─────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────

EXPECTED_12 = {"day": 12, "pop": 30, "food": 74.5, "morale": 68.2, "legitimacy": 69.8}


# ─────────────────────────────────────────────────────
# extract_run_id
# ─────────────────────────────────────────────────────

class TestExtractRunId:
    def test_date_stamped_filename(self):
        assert extract_run_id("run_20260227_054559.txt") == "20260227_054559"

    def test_short_numeric_id(self):
        assert extract_run_id("run_042.txt") == "042"

    def test_run_prefix_with_text_suffix(self):
        assert extract_run_id("run_farmers.txt") == "farmers"

    def test_unrecognised_filename_no_numeric_content(self):
        # Filename has no 'run_' prefix — full stem is returned
        assert extract_run_id("chronicle.txt") == "chronicle"


# ─────────────────────────────────────────────────────
# parse_line
# ─────────────────────────────────────────────────────

class TestParseLine:
    def test_progress_line(self):
        line = "[Day 012] Pop: 30 | Food: 74.5 | Morale: 68.2 | Legitimacy: 69.8 | Status: tense"
        assert parse_line(line) == EXPECTED_12

    def test_equals_delimited(self):
        line = "Day=12, Pop=30, Food=74.5, Morale=68.2, Legitimacy=69.8"
        assert parse_line(line) == EXPECTED_12

    def test_bracket_d_colon(self):
        line = "[D:12] population=30 food=74.5 morale=68.2 legitimacy=69.8"
        assert parse_line(line) == EXPECTED_12

    def test_event_log_line_returns_none(self):
        assert parse_line("Day 012: Built a farm (farms: 1).") is None

    def test_steward_line_returns_none(self):
        assert parse_line('Day 004: Steward: answered "Traders" with option 0.') is None

    def test_empty_string_returns_none(self):
        assert parse_line("") is None

    def test_case_insensitive_field_names(self):
        line = "[DAY 012] POP: 30 | FOOD: 74.5 | MORALE: 68.2 | LEGITIMACY: 69.8"
        assert parse_line(line) == EXPECTED_12

    def test_zero_food_parsed(self):
        result = parse_line("[Day 031] Pop: 7 | Food: 0.0 | Morale: 3.5 | Legitimacy: 12.0 | Status: unstable")
        assert result is not None
        assert result["food"] == pytest.approx(0.0)
        assert result["pop"] == 7


# ─────────────────────────────────────────────────────
# parse_file
# ─────────────────────────────────────────────────────

_ALL_VARIANTS = (
    "[Day 001] Pop: 30 | Food: 80.0 | Morale: 70.0 | Legitimacy: 70.0 | Status: tense\n"
    "Day 001: Built a farm (farms: 1).\n"
    "Day=2, Pop=29, Food=61.5, Morale=66.0, Legitimacy=69.0\n"
    "[D:3] population=28 food=40.25 morale=60.0 legitimacy=68.5\n"
)

_BOX_LOG = (
    "┌────┐\n"
    "│  Day 004/50  Pop: 30  Farms:1  [Tense]  manual   │\n"
    "├────┤\n"
    "│  Food         82.5   (+2.5/day, eat 30.0)        │\n"
    "│  Material     14.0   (+9.0/day)                  │\n"
    "├────┤\n"
    "│  Morale      [██████████████░░░░░░]  70.0        │\n"
    "│  Legitimacy  [██████████████░░░░░░]  71.5        │\n"
    "│  Subsistence [████░░░░░░░░░░░░░░░░]  20.0        │\n"
    "└────┘\n"
    "┌────┐\n"
    "│  Day 005/50  Pop: 29  Farms:1  [Tense]  manual   │\n"
    "│  Food         60.0   (-4.0/day, eat 29.0)        │\n"
    "│  Morale      [█████████████░░░░░░░]  66.0        │\n"
    "│  Legitimacy  [██████████████░░░░░░]  70.0        │\n"
    "└────┘\n"
    "┌────┐\n"
    "│  Day 006/50  Pop: 29  Farms:1  [Tense]  manual   │\n"
    "│  Food         58.0   (-2.0/day, eat 29.0)        │\n"
)


class TestParseFile:
    def test_all_three_variants_parsed(self, tmp_path):
        f = tmp_path / "run_test.txt"
        f.write_text(_ALL_VARIANTS, encoding="utf-8")
        rows = parse_file(f)
        assert len(rows) == 3
        # Exact dict equality (no run_id field)
        assert rows[0] == {"day": 1, "pop": 30, "food": pytest.approx(80.0),
                           "morale": pytest.approx(70.0), "legitimacy": pytest.approx(70.0)}
        assert rows[2]["food"] == pytest.approx(40.25)

    def test_box_format_parsed_and_incomplete_block_dropped(self, tmp_path):
        f = tmp_path / "run_box.txt"
        f.write_text(_BOX_LOG, encoding="utf-8")
        rows = parse_file(f)
        assert [r["day"] for r in rows] == [4, 5]
        assert rows[0] == {"day": 4, "pop": 30, "food": pytest.approx(82.5),
                           "morale": pytest.approx(70.0), "legitimacy": pytest.approx(71.5)}
        assert rows[1]["pop"] == 29

    def test_progress_lines_win_over_box_render(self, tmp_path):
        f = tmp_path / "run_mixed.txt"
        f.write_text(
            _BOX_LOG
            + "[Day 004] Pop: 30 | Food: 82.5 | Morale: 70.0 | Legitimacy: 71.5 | Status: tense\n",
            encoding="utf-8",
        )
        rows = parse_file(f)
        assert len(rows) == 1
        assert rows[0]["day"] == 4

    def test_warning_emitted_for_data_like_unmatched_line(self, tmp_path, capsys):
        f = tmp_path / "run_warn.txt"
        # Contains 'pop' and 'morale' keywords but matches no pattern
        f.write_text("pop and morale data but no numbers\n", encoding="utf-8")
        parse_file(f)
        captured = capsys.readouterr()
        assert "WARNING" in captured.out
        assert "1" in captured.out

    def test_empty_result_for_non_data_lines_only(self, tmp_path):
        f = tmp_path / "run_empty.txt"
        f.write_text(
            "Day 000: New run started. Seed: 1234\n"
            "Day 003: EVENT — Traders: A caravan offers food for material.\n",
            encoding="utf-8",
        )
        rows = parse_file(f)
        assert rows == []


# ─────────────────────────────────────────────────────
# End-to-end: main()
# ─────────────────────────────────────────────────────

_LOG_A = (
    "[Day 001] Pop: 30 | Food: 80.0 | Morale: 70.0 | Legitimacy: 70.0 | Status: tense\n"
    "[Day 002] Pop: 30 | Food: 79.0 | Morale: 71.0 | Legitimacy: 70.5 | Status: tense\n"
)
_LOG_B = (
    "Day=1, Pop=30, Food=80.0, Morale=70.0, Legitimacy=70.0\n"
    "Day=2, Pop=28, Food=50.0, Morale=62.0, Legitimacy=66.0\n"
)


def _write_logs(tmp_path):
    (tmp_path / "run_20260101_000001.txt").write_text(_LOG_A, encoding="utf-8")
    (tmp_path / "run_20260101_000002.txt").write_text(_LOG_B, encoding="utf-8")


class TestMain:
    def test_generates_valid_csv(self, tmp_path, monkeypatch):
        _write_logs(tmp_path)
        output = tmp_path / "results.csv"
        monkeypatch.setattr(sys, "argv", [
            "parse_logs.py", "--log-dir", str(tmp_path), "--output", str(output),
        ])
        main()
        assert output.exists()
        with open(output, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 4
        assert set(rows[0].keys()) == {"run_id", "day", "pop", "food", "morale", "legitimacy"}

    def test_argv_parameter_overrides_sys_argv(self, tmp_path):
        _write_logs(tmp_path)
        output = tmp_path / "direct.csv"
        main(["--log-dir", str(tmp_path), "--output", str(output)])
        assert output.exists()

    def test_correct_run_ids_in_output(self, tmp_path, monkeypatch):
        _write_logs(tmp_path)
        output = tmp_path / "results.csv"
        monkeypatch.setattr(sys, "argv", [
            "parse_logs.py", "--log-dir", str(tmp_path), "--output", str(output),
        ])
        main()
        with open(output, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        run_ids = {r["run_id"] for r in rows}
        assert "20260101_000001" in run_ids
        assert "20260101_000002" in run_ids

    def test_rows_sorted_by_run_id_then_day(self, tmp_path, monkeypatch):
        # Write files in reverse order to confirm sort is applied by content, not discovery
        (tmp_path / "run_20260101_000002.txt").write_text(_LOG_A, encoding="utf-8")
        (tmp_path / "run_20260101_000001.txt").write_text(_LOG_B, encoding="utf-8")
        output = tmp_path / "results.csv"
        monkeypatch.setattr(sys, "argv", [
            "parse_logs.py", "--log-dir", str(tmp_path), "--output", str(output),
        ])
        main()
        with open(output, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        run_ids = [r["run_id"] for r in rows]
        assert run_ids == sorted(run_ids)
        for rid in set(run_ids):
            days = [int(r["day"]) for r in rows if r["run_id"] == rid]
            assert days == sorted(days)

    def test_exits_nonzero_on_empty_log_directory(self, tmp_path, monkeypatch):
        monkeypatch.setattr(sys, "argv", [
            "parse_logs.py", "--log-dir", str(tmp_path),
        ])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code != 0

    def test_exits_nonzero_when_no_rows_extracted(self, tmp_path, monkeypatch):
        (tmp_path / "run_001.txt").write_text("Day 000: New run started.\n", encoding="utf-8")
        monkeypatch.setattr(sys, "argv", [
            "parse_logs.py", "--log-dir", str(tmp_path),
            "--output", str(tmp_path / "out.csv"),
        ])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code != 0
