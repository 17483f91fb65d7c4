"""lichao-mcp MCP server (stdio transport)."""

from __future__ import annotations

import logging
import os
import sys
import uuid
from typing import Any

from mcp.server.fastmcp import FastMCP

from .line import Line
from .tree import LiChaoTree


_MAX_DOMAIN_SIZE = int(os.environ.get("LICHAO_MCP_MAX_DOMAIN", str(1 << 22)))
_MAX_TREES = int(os.environ.get("LICHAO_MCP_MAX_TREES", "64"))
_MAX_QUERY_POINTS = int(os.environ.get("LICHAO_MCP_MAX_QUERY_POINTS", "10000"))

# IMPORTANT: stdout is reserved for MCP JSON-RPC transport.
logging.basicConfig(
    stream=sys.stderr,
    level=os.environ.get("LICHAO_MCP_LOG_LEVEL", "INFO").upper(),
    format="%(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("lichao-mcp")

mcp = FastMCP("lichao-mcp")

_TREES: dict[str, LiChaoTree] = {}


def _invalid(message: str) -> dict[str, str]:
    return {"error": message}


def lines_from_payload(lines: list[dict[str, Any]]) -> list[Line]:
    """Normalize incoming `{"m": int, "c": int}` objects into `Line` values."""

    if not isinstance(lines, list):
        raise ValueError("lines must be a list of objects")

    out: list[Line] = []
    for i, item in enumerate(lines):
        if not isinstance(item, dict):
            raise ValueError(f"lines[{i}] must be an object")
        m = item.get("m")
        c = item.get("c")
        # bool is an int subclass; reject it explicitly.
        if not isinstance(m, int) or isinstance(m, bool):
            raise ValueError(f"lines[{i}].m must be an integer")
        if not isinstance(c, int) or isinstance(c, bool):
            raise ValueError(f"lines[{i}].c must be an integer")
        out.append(Line(m, c))
    return out


def _tree_summary(tree_id: str, tree: LiChaoTree) -> dict[str, Any]:
    return {
        "tree_id": tree_id,
        "x_min": tree.x_min_coord,
        "x_max": tree.x_max_coord,
        "domain_size": tree.domain_size,
        "node_count": tree.node_count,
        "line_count": tree.line_count,
    }


def _lookup(tree_id: str) -> LiChaoTree | None:
    return _TREES.get(tree_id)


def _grid(x_start: int, x_end: int, step: int) -> list[int]:
    if step <= 0:
        raise ValueError("step must be > 0")
    if x_start > x_end:
        raise ValueError("x_start must be <= x_end")
    n_points = (x_end - x_start) // step + 1
    if n_points > _MAX_QUERY_POINTS:
        raise ValueError(f"range yields {n_points} points; the limit is {_MAX_QUERY_POINTS}")
    return list(range(x_start, x_end + 1, step))


def _point(x: int, value: int | None) -> dict[str, Any]:
    return {"x": x, "value": value, "present": value is not None}


@mcp.tool()
def create_tree(x_min: int, x_max: int, tree_id: str | None = None) -> dict[str, Any]:
    """
    Create an empty envelope tree over the inclusive domain [x_min, x_max].

    The tree is registered under `tree_id` (generated when omitted) and lives
    until `drop_tree` or server exit.
    """

    if tree_id is not None and tree_id in _TREES:
        return _invalid(f"tree '{tree_id}' already exists")
    if len(_TREES) >= _MAX_TREES:
        return _invalid(f"tree limit reached ({_MAX_TREES}); drop a tree first")
    if x_min <= x_max and x_max - x_min + 1 > _MAX_DOMAIN_SIZE:
        return _invalid(f"domain size {x_max - x_min + 1} exceeds the limit of {_MAX_DOMAIN_SIZE}")

    try:
        tree = LiChaoTree(x_min, x_max)
    except ValueError as exc:
        return _invalid(str(exc))

    tid = tree_id if tree_id is not None else uuid.uuid4().hex[:12]
    _TREES[tid] = tree
    log.info("created tree %s over [%d, %d]", tid, x_min, x_max)
    return _tree_summary(tid, tree)


@mcp.tool()
def add_lines(tree_id: str, lines: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Insert lines `{"m": slope, "c": intercept}` into a tree.

    All lines are validated first; on any error nothing is inserted.
    """

    tree = _lookup(tree_id)
    if tree is None:
        return _invalid(f"unknown tree '{tree_id}'")

    try:
        parsed = lines_from_payload(lines)
        tree.add_lines(parsed)
    except ValueError as exc:
        return _invalid(str(exc))

    log.debug("inserted %d lines into %s", len(parsed), tree_id)
    result = _tree_summary(tree_id, tree)
    result["inserted"] = len(parsed)
    return result


@mcp.tool()
def query(tree_id: str, x: int) -> dict[str, Any]:
    """Minimum value of the inserted lines at x; `value` is null when no line contributes."""

    tree = _lookup(tree_id)
    if tree is None:
        return _invalid(f"unknown tree '{tree_id}'")

    try:
        value = tree.query(x)
    except ValueError as exc:
        return _invalid(str(exc))

    return _point(x, value)


@mcp.tool()
def query_range(tree_id: str, x_start: int, x_end: int, step: int = 1) -> dict[str, Any]:
    """Sample the lower envelope at x_start, x_start + step, ... <= x_end."""

    tree = _lookup(tree_id)
    if tree is None:
        return _invalid(f"unknown tree '{tree_id}'")

    try:
        xs = _grid(x_start, x_end, step)
        values = tree.query_many(xs)
    except ValueError as exc:
        return _invalid(str(exc))

    present = [v for v in values if v is not None]
    return {
        "tree_id": tree_id,
        "points": [_point(x, v) for x, v in zip(xs, values)],
        "min_value": (min(present) if present else None),
        "max_value": (max(present) if present else None),
    }


@mcp.tool()
def inspect_tree(tree_id: str) -> dict[str, Any]:
    """Report bounds, sizes and the number of inserted lines."""

    tree = _lookup(tree_id)
    if tree is None:
        return _invalid(f"unknown tree '{tree_id}'")
    return _tree_summary(tree_id, tree)


@mcp.tool()
def list_trees() -> dict[str, Any]:
    """List registered trees."""

    return {
        "trees": [_tree_summary(tid, tree) for tid, tree in sorted(_TREES.items())],
        "max_trees": _MAX_TREES,
        "max_domain_size": _MAX_DOMAIN_SIZE,
    }


@mcp.tool()
def drop_tree(tree_id: str) -> dict[str, Any]:
    """Remove a tree from the registry."""

    tree = _TREES.pop(tree_id, None)
    if tree is None:
        return _invalid(f"unknown tree '{tree_id}'")
    log.info("dropped tree %s", tree_id)
    return {"tree_id": tree_id, "dropped": True}


@mcp.tool()
def lower_envelope(lines: list[dict[str, Any]], xs: list[int]) -> dict[str, Any]:
    """
    One-shot evaluation without registering a tree.

    Builds a tree spanning min(xs)..max(xs), inserts `lines`, and reports the
    envelope at each requested x (in request order).
    """

    if not isinstance(xs, list) or not xs:
        return _invalid("xs must be a non-empty list of integers")
    if any(not isinstance(x, int) or isinstance(x, bool) for x in xs):
        return _invalid("xs must be a non-empty list of integers")
    if len(xs) > _MAX_QUERY_POINTS:
        return _invalid(f"{len(xs)} points requested; the limit is {_MAX_QUERY_POINTS}")

    x_min, x_max = min(xs), max(xs)
    if x_max - x_min + 1 > _MAX_DOMAIN_SIZE:
        return _invalid(f"domain size {x_max - x_min + 1} exceeds the limit of {_MAX_DOMAIN_SIZE}")

    try:
        parsed = lines_from_payload(lines)
        tree = LiChaoTree(x_min, x_max)
        tree.add_lines(parsed)
        values = tree.query_many(xs)
    except ValueError as exc:
        return _invalid(str(exc))

    return {
        "line_count": len(parsed),
        "x_min": x_min,
        "x_max": x_max,
        "points": [_point(x, v) for x, v in zip(xs, values)],
    }


def main() -> None:
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
