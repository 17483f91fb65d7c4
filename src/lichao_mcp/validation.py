#!/usr/bin/env python3
"""Comprehensive functional validation for lichao-mcp."""

from __future__ import annotations

import json
import subprocess
import sys
import time
from pathlib import Path

from .server import add_lines, create_tree, drop_tree, inspect_tree, lower_envelope, query, query_range


ROOT = Path(__file__).resolve().parents[2]


def _assert(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def _check_points(tree_id: str, expected: dict[int, int]) -> dict[str, int]:
    seen: dict[str, int] = {}
    for x, want in expected.items():
        out = query(tree_id, x)
        _assert("error" not in out, f"query({tree_id}, {x}) failed: {out}")
        _assert(out["value"] == want, f"query({tree_id}, {x}) = {out['value']}, expected {want}")
        seen[str(x)] = out["value"]
    return seen


def _run_scenarios() -> dict[str, object]:
    a = create_tree(0, 10, tree_id="validation-a")
    _assert("error" not in a, f"create_tree A failed: {a}")
    try:
        added = add_lines("validation-a", [{"m": 2, "c": 3}, {"m": -1, "c": 10}])
        _assert(added.get("inserted") == 2, f"add_lines A failed: {added}")
        scenario_a = _check_points("validation-a", {0: 3, 5: 5, 10: 0, 2: 7, 3: 7})
        sweep = query_range("validation-a", 0, 10)
        _assert("error" not in sweep, f"query_range A failed: {sweep}")
        _assert(sweep["min_value"] == 0, "envelope minimum over [0, 10] should be 0")
    finally:
        drop_tree("validation-a")

    b = create_tree(0, 20, tree_id="validation-b")
    _assert("error" not in b, f"create_tree B failed: {b}")
    try:
        add_lines("validation-b", [{"m": -10, "c": 100}, {"m": 1, "c": 0}])
        scenario_b = _check_points("validation-b", {0: 0, 9: 9, 10: 0, 20: -100})
        meta = inspect_tree("validation-b")
        _assert(meta["line_count"] == 2, f"unexpected line count: {meta}")
    finally:
        drop_tree("validation-b")

    one_shot = lower_envelope([{"m": 0, "c": 5}, {"m": 0, "c": 2}], [-10, 0, 10])
    _assert("error" not in one_shot, f"lower_envelope failed: {one_shot}")
    _assert(all(p["value"] == 2 for p in one_shot["points"]), "horizontal minimum should win everywhere")

    return {"scenario_a": scenario_a, "scenario_b": scenario_b, "lower_envelope": one_shot["points"]}


def _run_rejection_checks() -> dict[str, object]:
    inverted = create_tree(10, 0)
    _assert("error" in inverted, "inverted range must be rejected")

    bounds = create_tree(0, 10, tree_id="validation-bounds")
    _assert("error" not in bounds, f"create_tree bounds failed: {bounds}")
    try:
        below = query("validation-bounds", -1)
        above = query("validation-bounds", 11)
        sentinel = add_lines("validation-bounds", [{"m": 0, "c": (1 << 63) - 1}])
        empty = query("validation-bounds", 5)
    finally:
        drop_tree("validation-bounds")

    _assert("error" in below, "query below x_min must be rejected")
    _assert("error" in above, "query above x_max must be rejected")
    _assert("error" in sentinel, "sentinel line must be rejected")
    _assert(empty["present"] is False, "empty tree must report no value")

    return {
        "inverted": inverted["error"],
        "below": below["error"],
        "above": above["error"],
        "sentinel": sentinel["error"],
    }


def _stdio_smoke() -> dict[str, object]:
    proc = subprocess.Popen(
        [sys.executable, "-m", "lichao_mcp.server"],
        cwd=str(ROOT),
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    time.sleep(1.0)
    alive = proc.poll() is None
    if proc.poll() is None:
        proc.terminate()
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait(timeout=5)
    _assert(alive, "stdio server did not stay alive during smoke window")
    return {"alive_for_1s": alive, "returncode": proc.returncode}


def main() -> None:
    report = {
        "scenarios": _run_scenarios(),
        "rejections": _run_rejection_checks(),
        "stdio_smoke": _stdio_smoke(),
    }
    print(json.dumps(report, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
