"""
parse_logs.py — Ashwick Log Parser
==================================
Scrapes Day, Pop, Food, Morale and Legitimacy from raw run_*.txt simulation
logs and consolidates the data into a single results.csv file.

Usage:
    python parse_logs.py --log-dir ./logs --output results.csv

Expected log line formats (any of the following are handled):
    [Day 012] Pop: 30 | Food: 74.5 | Morale: 68.2 | Legitimacy: 69.8 | Status: tense
    Day=12, Pop=30, Food=74.5, Morale=68.2, Legitimacy=69.8
    [D:12] population=30 food=74.5 morale=68.2 legitimacy=69.8

If your logs use a different format, add a pattern to PATTERNS below.
The parser tries all patterns in order and uses the first match per line.
"""

import argparse
import csv
import glob
import os
import re
import sys
from pathlib import Path


# ---------------------------------------------------------------------------
# Pattern library — add new patterns here as needed
# Each pattern must define five named groups: day, pop, food, morale, legitimacy
# ---------------------------------------------------------------------------
PATTERNS = [
    # [Day 012] Pop: 30 | Food: 74.5 | Morale: 68.2 | Legitimacy: 69.8
    re.compile(
        r"\[Day\s+(?P<day>\d+)\]"
        r".*?Pop(?:ulation)?[:\s=]+(?P<pop>\d+)"
        r".*?Food[:\s=]+(?P<food>[\d.]+)"
        r".*?Morale[:\s=]+(?P<morale>[\d.]+)"
        r".*?Legitimacy[:\s=]+(?P<legitimacy>[\d.]+)",
        re.IGNORECASE,
    ),
    # Day=12, Pop=30, Food=74.5, Morale=68.2, Legitimacy=69.8  (comma/space delimited k=v)
    re.compile(
        r"Day[=\s]+(?P<day>\d+)"
        r".*?Pop(?:ulation)?[=\s]+(?P<pop>\d+)"
        r".*?Food[=\s]+(?P<food>[\d.]+)"
        r".*?Morale[=\s]+(?P<morale>[\d.]+)"
        r".*?Legitimacy[=\s]+(?P<legitimacy>[\d.]+)",
        re.IGNORECASE,
    ),
    # [D:12] population=30 food=74.5 morale=68.2 legitimacy=69.8
    re.compile(
        r"\[D:(?P<day>\d+)\]"
        r".*?pop(?:ulation)?[=:\s]+(?P<pop>\d+)"
        r".*?food[=:\s]+(?P<food>[\d.]+)"
        r".*?morale[=:\s]+(?P<morale>[\d.]+)"
        r".*?legitimacy[=:\s]+(?P<legitimacy>[\d.]+)",
        re.IGNORECASE,
    ),
]

OUTPUT_FIELDS = ["run_id", "day", "pop", "food", "morale", "legitimacy"]

# ---------------------------------------------------------------------------
# TUI (box-drawing) format — the per-day render written to the log file
# Header:  │  Day 012/50  Pop: 30  Farms:1  [Tense]  manual            │
# Rows:    │  Food         74.5   (+1.2/day, eat 30.0)                  │
#          │  Morale      [██████████████░░░░░░]  68.2                 │
#          │  Legitimacy  [██████████████░░░░░░]  69.8                 │
# ---------------------------------------------------------------------------
_TUI_DAY_HEADER = re.compile(
    r"Day\s+(?P<day>\d+)/\d+\s+Pop:\s*(?P<pop>\d+)",
    re.IGNORECASE,
)
_TUI_FOOD       = re.compile(r"│\s+Food\s+(?P<food>[\d.]+)")
_TUI_MORALE     = re.compile(r"Morale\s+\[[^\]]*\]\s*(?P<morale>[\d.]+)")
_TUI_LEGITIMACY = re.compile(r"Legitimacy\s+\[[^\]]*\]\s*(?P<legitimacy>[\d.]+)")


def extract_run_id(filepath: str) -> str:
    """Derive a run identifier from the filename.

    Handles both formats:
      - Date-stamped:  run_20260227_054559.txt  → '20260227_054559'
      - Numeric:       run_042.txt              → '042'
      - Fallback:      anything_else.txt        → stem as-is
    """
    stem = Path(filepath).stem
    # Date-stamped: YYYYMMDD_HHMMSS
    m = re.match(r"run_(\d{8}_\d{6})$", stem)
    if m:
        return m.group(1)
    m2 = re.match(r"run_(\d+)$", stem)
    if m2:
        return m2.group(1)
    if stem.startswith("run_"):
        return stem[4:]
    return stem


def parse_line(line: str) -> dict | None:
    """Attempt to match a log line against all known patterns. Returns a dict or None."""
    for pattern in PATTERNS:
        m = pattern.search(line)
        if m:
            return {
                "day":        int(m.group("day")),
                "pop":        int(m.group("pop")),
                "food":       float(m.group("food")),
                "morale":     float(m.group("morale")),
                "legitimacy": float(m.group("legitimacy")),
            }
    return None


def _is_tui_format(filepath) -> bool:
    """Peek at the first 100 lines: box headers and no flat progress lines."""
    saw_header = False
    with open(filepath, "r", encoding="utf-8", errors="replace") as fh:
        for i, line in enumerate(fh):
            if i >= 100:
                break
            if parse_line(line):
                return False
            if _TUI_DAY_HEADER.search(line):
                saw_header = True
    return saw_header


def _parse_file_tui(filepath) -> list[dict]:
    """Stateful parser for the box-drawing TUI log format.

    Each day block starts with a header line carrying day / pop; the food,
    morale and legitimacy rows that follow complete the record.  Blocks
    missing any of the three are dropped.
    """
    rows = []
    current: dict | None = None

    def _flush():
        if current is not None and all(k in current for k in ("food", "morale", "legitimacy")):
            rows.append(dict(current))

    with open(filepath, "r", encoding="utf-8", errors="replace") as fh:
        for line in fh:
            header_m = _TUI_DAY_HEADER.search(line)
            if header_m:
                _flush()
                current = {
                    "day": int(header_m.group("day")),
                    "pop": int(header_m.group("pop")),
                }
                continue
            if current is None:
                continue
            for rx, key in ((_TUI_FOOD, "food"), (_TUI_MORALE, "morale"),
                            (_TUI_LEGITIMACY, "legitimacy")):
                m = rx.search(line)
                if m and key not in current:
                    current[key] = float(m.group(key))
    _flush()
    return rows


def parse_file(filepath) -> list[dict]:
    """Parse a single log file, returning a list of {day, pop, food, morale, legitimacy} dicts.

    Automatically detects TUI (box-drawing) vs flat progress-line format.
    run_id is NOT attached here — callers (e.g. main) are responsible for that.
    """
    if _is_tui_format(filepath):
        return _parse_file_tui(filepath)

    rows = []
    unmatched_count = 0
    with open(filepath, "r", encoding="utf-8", errors="replace") as fh:
        for line in fh:
            parsed = parse_line(line)
            if parsed:
                rows.append(parsed)
            else:
                lcase = line.lower()
                if "pop" in lcase and ("morale" in lcase or "legitimacy" in lcase):
                    unmatched_count += 1
    if unmatched_count:
        print(f"WARNING: {unmatched_count} data-like lines in '{Path(filepath).name}' did not match any pattern.")
    return rows


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Parse Ashwick run_*.txt logs into results.csv"
    )
    parser.add_argument(
        "--log-dir", default="logs", help="Directory containing run_*.txt files (default: logs)"
    )
    parser.add_argument(
        "--output", default="results.csv", help="Output CSV path (default: results.csv)"
    )
    parser.add_argument(
        "--pattern", default="run_*.txt",
        help="Glob pattern for log files (default: run_*.txt). "
             "Matches both run_20260227_054559.txt and run_042.txt style names."
    )
    parser.add_argument(
        "--sample", action="store_true",
        help="Print the first 5 parsed rows from each file for verification"
    )
    args = parser.parse_args(argv)

    log_glob = os.path.join(args.log_dir, args.pattern)
    log_files = sorted(glob.glob(log_glob))

    if not log_files:
        print(f"ERROR: No files found matching '{log_glob}'")
        sys.exit(1)

    print(f"Found {len(log_files)} log file(s) in '{args.log_dir}'")

    all_rows = []
    for filepath in log_files:
        run_id = extract_run_id(filepath)
        rows = parse_file(filepath)
        print(f"  {Path(filepath).name}: {len(rows)} days parsed")
        if args.sample and rows:
            for r in rows[:5]:
                print(f"    {r}")
        for row in rows:
            all_rows.append({"run_id": run_id, **row})

    if not all_rows:
        print(
            "\nERROR: No data rows were extracted. Check that your log format matches "
            "one of the patterns in PATTERNS, or add a new pattern."
        )
        sys.exit(1)

    # Sort by run_id then day for readability
    all_rows.sort(key=lambda r: (r["run_id"], r["day"]))

    output_path = Path(args.output)
    with open(output_path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=OUTPUT_FIELDS)
        writer.writeheader()
        writer.writerows(all_rows)

    print(f"\nDone. {len(all_rows)} total rows written to '{output_path}'")
    print("Columns: " + ", ".join(OUTPUT_FIELDS))


if __name__ == "__main__":
    main()
