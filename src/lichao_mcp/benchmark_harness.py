"""Replay harness: random insert/query streams through LiChaoTree vs a brute-force oracle."""

from __future__ import annotations

import argparse
import csv
import json
import random
import time
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .line import INT64_MAX, Line
from .tree import LiChaoTree


@dataclass(frozen=True)
class ReplayStep:
    line: Line
    query_x: int


def build_stream(seed: int, line_count: int, coord_bound: int, coef_bound: int) -> list[ReplayStep]:
    """Deterministic stream of (line, query coordinate) pairs."""

    rng = random.Random(seed)
    steps: list[ReplayStep] = []
    for _ in range(line_count):
        m = rng.randint(-coef_bound, coef_bound)
        c = rng.randint(-coef_bound, coef_bound)
        x = rng.randint(-coord_bound, coord_bound)
        steps.append(ReplayStep(line=Line(m, c), query_x=x))
    return steps


def oracle_min(lines: Iterable[Line], x: int) -> Optional[int]:
    best = INT64_MAX
    for line in lines:
        best = min(best, line.eval(x))
    return None if best == INT64_MAX else best


def _parse_ints(spec: str, name: str) -> list[int]:
    items = [s.strip() for s in spec.split(",") if s.strip()]
    if not items:
        raise ValueError(f"{name} cannot be empty")

    vals = [int(v) for v in items]
    for v in vals:
        if v < 0:
            raise ValueError(f"each {name} entry must be >= 0")
    return vals


def run_replay(
    seeds: Iterable[int],
    line_counts: Iterable[int],
    coord_bound: int = 1_000_000,
    coef_bound: int = 1_000_000,
) -> list[dict[str, Any]]:
    if coord_bound < 0 or coef_bound < 0:
        raise ValueError("bounds must be >= 0")

    rows: list[dict[str, Any]] = []
    counts = list(line_counts)

    for seed in seeds:
        for line_count in counts:
            steps = build_stream(seed, line_count, coord_bound, coef_bound)
            tree = LiChaoTree(-coord_bound, coord_bound)
            inserted: list[Line] = []

            insert_s = 0.0
            query_s = 0.0
            oracle_s = 0.0
            mismatches = 0
            first_mismatch: Optional[int] = None
            last_value: Optional[int] = None

            for idx, step in enumerate(steps):
                t0 = time.perf_counter()
                tree.add_line(step.line)
                t1 = time.perf_counter()
                got = tree.query(step.query_x)
                t2 = time.perf_counter()
                inserted.append(step.line)
                expected = oracle_min(inserted, step.query_x)
                t3 = time.perf_counter()

                insert_s += t1 - t0
                query_s += t2 - t1
                oracle_s += t3 - t2
                last_value = got

                if got != expected:
                    mismatches += 1
                    if first_mismatch is None:
                        first_mismatch = idx

            rows.append(
                {
                    "seed": int(seed),
                    "line_count": int(line_count),
                    "domain_size": tree.domain_size,
                    "mismatches": mismatches,
                    "first_mismatch": first_mismatch,
                    "last_value": last_value,
                    "insert_us_mean": (insert_s / line_count * 1e6) if line_count else 0.0,
                    "query_us_mean": (query_s / line_count * 1e6) if line_count else 0.0,
                    "oracle_us_mean": (oracle_s / line_count * 1e6) if line_count else 0.0,
                }
            )

    return rows


def summarize_rows(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    buckets: dict[int, list[dict[str, Any]]] = {}
    for row in rows:
        buckets.setdefault(int(row["line_count"]), []).append(row)

    summary: list[dict[str, Any]] = []
    for line_count, vals in sorted(buckets.items()):
        n = len(vals)
        summary.append(
            {
                "line_count": line_count,
                "n": n,
                "agreement_rate": sum(1 for v in vals if v["mismatches"] == 0) / n,
                "total_mismatches": sum(int(v["mismatches"]) for v in vals),
                "insert_us_mean": sum(float(v["insert_us_mean"]) for v in vals) / n,
                "query_us_mean": sum(float(v["query_us_mean"]) for v in vals) / n,
                "oracle_us_mean": sum(float(v["oracle_us_mean"]) for v in vals) / n,
            }
        )

    return summary


def _write_csv(path: Path, rows: list[dict[str, Any]]) -> None:
    if not rows:
        path.write_text("", encoding="utf-8")
        return

    fieldnames = list(rows[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay random line streams through LiChaoTree against a brute-force oracle.")
    parser.add_argument("--seeds", default="69420,1,2")
    parser.add_argument("--line-counts", default="100,1000,5000")
    parser.add_argument("--coord-bound", type=int, default=1_000_000)
    parser.add_argument("--coef-bound", type=int, default=1_000_000)
    parser.add_argument("--output-dir", default="artifacts/lichao_replay")
    args = parser.parse_args()

    seeds = _parse_ints(args.seeds, "seeds")
    line_counts = _parse_ints(args.line_counts, "line-counts")

    rows = run_replay(
        seeds=seeds,
        line_counts=line_counts,
        coord_bound=args.coord_bound,
        coef_bound=args.coef_bound,
    )
    summary = summarize_rows(rows)

    out_dir = Path(args.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    detail_csv = out_dir / "replay_rows.csv"
    summary_csv = out_dir / "replay_summary.csv"
    summary_json = out_dir / "replay_summary.json"

    _write_csv(detail_csv, rows)
    _write_csv(summary_csv, summary)
    summary_json.write_text(json.dumps({"summary": summary, "rows": rows}, indent=2), encoding="utf-8")

    print(f"Wrote: {detail_csv}")
    print(f"Wrote: {summary_csv}")
    print(f"Wrote: {summary_json}")


if __name__ == "__main__":
    main()
