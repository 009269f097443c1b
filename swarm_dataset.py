"""
Group Dataset Loading
=====================

Reads the per-day group dataset that drives the swarm simulation and
checks it before anything is built from it.

Document shape (JSON):

    {
      "start_date": "1-6-2020",
      "end_date":   "8-6-2020",
      "groups": [
        {"key": "#sydney", "index": 0,
         "day_values":     [10, 25, 5],      # particle counts per day
         "display_values": [512, 1290, 260]} # numbers shown on screen
      ]
    }

Also contains the dataset builder: raw daily counts per key are eased
onto a particle budget (``scale_counts``) so that a handful of very busy
keys do not swamp the canvas.

Usage:
    python swarm_dataset.py build counts.json data.json --start 1-6-2020 --end 8-6-2020
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence

# Raw counts are divided by this after easing to get a particle count
COUNT_DIVIDER = 50
CURVE_DEGREE = 3


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class GroupRecord:
    """One labelled group and its per-day values."""
    key: str
    index: int
    day_values: List[int]
    display_values: List[int]

    @property
    def n_days(self) -> int:
        return len(self.day_values)

    def to_dict(self) -> Dict:
        return {"key": self.key, "index": self.index,
                "day_values": list(self.day_values),
                "display_values": list(self.display_values)}


@dataclass
class Dataset:
    groups: List[GroupRecord] = field(default_factory=list)
    start_date: str = ""
    end_date: str = ""

    @property
    def n_days(self) -> int:
        """Shortest per-day sequence across groups (days every group can show)."""
        if not self.groups:
            return 0
        return min(g.n_days for g in self.groups)

    def to_dict(self) -> Dict:
        return {"start_date": self.start_date, "end_date": self.end_date,
                "groups": [g.to_dict() for g in self.groups]}


# =============================================================================
# VALIDATION / LOADING
# =============================================================================

def _int_sequence(values, name: str, key: str) -> List[int]:
    if not isinstance(values, (list, tuple)):
        raise ValueError(f"group {key!r}: {name} must be a list, got {type(values).__name__}")
    out = []
    for v in values:
        # bool is an int subclass but never a valid count
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError(f"group {key!r}: {name} must hold integers, got {v!r}")
        if v < 0:
            raise ValueError(f"group {key!r}: {name} must be non-negative, got {v}")
        out.append(v)
    return out


def parse_group(raw: Dict) -> GroupRecord:
    key = str(raw["key"])
    index = raw["index"]
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        raise ValueError(f"group {key!r}: index must be a non-negative integer, got {index!r}")

    day_values = _int_sequence(raw["day_values"], "day_values", key)
    display_values = _int_sequence(raw["display_values"], "display_values", key)

    if len(day_values) == 0:
        raise ValueError(f"group {key!r}: day_values is empty")
    if len(day_values) != len(display_values):
        raise ValueError(
            f"group {key!r}: day_values ({len(day_values)}) and "
            f"display_values ({len(display_values)}) differ in length"
        )
    return GroupRecord(key=key, index=index, day_values=day_values,
                       display_values=display_values)


def parse_dataset(raw: Dict) -> Dataset:
    """Build a Dataset from an already-decoded JSON document.

    Raises ``KeyError`` for missing fields and ``ValueError`` for anything
    malformed. Nothing is repaired.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"dataset must be a JSON object, got {type(raw).__name__}")

    groups = [parse_group(g) for g in raw["groups"]]
    if not groups:
        raise ValueError("dataset has no groups")

    seen = set()
    for g in groups:
        if g.index in seen:
            raise ValueError(f"duplicate group index {g.index} (key {g.key!r})")
        seen.add(g.index)

    return Dataset(groups=groups,
                   start_date=str(raw["start_date"]),
                   end_date=str(raw["end_date"]))


def load_dataset(filepath) -> Dataset:
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    return parse_dataset(raw)


def save_dataset(dataset: Dataset, filepath) -> Path:
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(dataset.to_dict(), f)
    return path


# =============================================================================
# BUILDER (raw daily counts -> particle counts)
# =============================================================================

def scale_counts(values: Sequence[int], max_value: int,
                 divider: int = COUNT_DIVIDER,
                 curve_degree: int = CURVE_DEGREE) -> List[int]:
    """
    Ease raw counts onto a particle budget.

        f      = 1 - v / max_value
        eased  = 1 - f ** curve_degree
        result = round(eased * max_value / divider)

    Small counts get boosted relative to a linear scale, large counts get
    compressed. A zero ``max_value`` maps everything to 0.
    """
    if max_value <= 0:
        return [0 for _ in values]
    out = []
    for v in values:
        f = 1.0 - v / max_value
        eased = 1.0 - f ** curve_degree
        # JS Math.round semantics: halves go up
        out.append(int(eased * max_value / divider + 0.5))
    return out


def build_dataset(daily_counts: Sequence[Dict[str, float]],
                  start_date: str, end_date: str,
                  divider: int = COUNT_DIVIDER,
                  curve_degree: int = CURVE_DEGREE) -> Dataset:
    """
    Turn per-day ``{key: raw_count}`` mappings into a Dataset.

    Keys are taken in first-seen order and get sequential indices. A key
    missing on a day counts as 0. Display values are the floored raw
    counts; day values are the eased particle counts, using the largest raw
    count over all keys and days as the scale.
    """
    if not daily_counts:
        raise ValueError("daily_counts is empty")

    keys: List[str] = []
    for day in daily_counts:
        for key in day:
            if key not in keys:
                keys.append(key)

    raw_by_key = {}
    max_value = 0
    for key in keys:
        raw = [day.get(key, 0) for day in daily_counts]
        # checked before flooring so that e.g. -0.5 is not read as 0
        if any(v < 0 for v in raw):
            raise ValueError(f"negative count for key {key!r}")
        values = [int(v) for v in raw]
        raw_by_key[key] = values
        max_value = max(max_value, *values)

    groups = [
        GroupRecord(key=key, index=i,
                    day_values=scale_counts(raw_by_key[key], max_value,
                                            divider, curve_degree),
                    display_values=list(raw_by_key[key]))
        for i, key in enumerate(keys)
    ]
    return Dataset(groups=groups, start_date=start_date, end_date=end_date)


# =============================================================================
# MAIN
# =============================================================================

def main(argv=None):
    parser = argparse.ArgumentParser(description="Swarm dataset tools")
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="Build a dataset from raw daily counts")
    build.add_argument("counts", help="JSON list of per-day {key: count} objects")
    build.add_argument("output", help="Dataset JSON to write")
    build.add_argument("--start", required=True, help="Start date label")
    build.add_argument("--end", required=True, help="End date label")
    build.add_argument("--divider", type=int, default=COUNT_DIVIDER)

    check = sub.add_parser("check", help="Validate a dataset file")
    check.add_argument("dataset")

    args = parser.parse_args(argv)

    if args.command == "build":
        with open(args.counts, encoding="utf-8") as f:
            daily = json.load(f)
        dataset = build_dataset(daily, args.start, args.end, divider=args.divider)
        path = save_dataset(dataset, args.output)
        print(f"Wrote {len(dataset.groups)} groups x {dataset.n_days} days to {path}")
    else:
        dataset = load_dataset(args.dataset)
        total = [sum(g.day_values[d] for g in dataset.groups) for d in range(dataset.n_days)]
        print(f"{args.dataset}: {len(dataset.groups)} groups, {dataset.n_days} days "
              f"({dataset.start_date} -> {dataset.end_date})")
        print(f"  Particles per day: {total}")


if __name__ == "__main__":
    main()
