from __future__ import annotations

import pytest

from lichao_mcp import server
from lichao_mcp.line import INT64_MAX, Line
from lichao_mcp.server import (
    add_lines,
    create_tree,
    drop_tree,
    inspect_tree,
    lines_from_payload,
    list_trees,
    lower_envelope,
    query,
    query_range,
)

SCENARIO_A = [{"m": 2, "c": 3}, {"m": -1, "c": 10}]


@pytest.fixture(autouse=True)
def _empty_registry():
    server._TREES.clear()
    yield
    server._TREES.clear()


def test_lines_from_payload_normalizes_objects() -> None:
    assert lines_from_payload(SCENARIO_A) == [Line(2, 3), Line(-1, 10)]

    with pytest.raises(ValueError):
        lines_from_payload([{"m": 1}])
    with pytest.raises(ValueError):
        lines_from_payload([{"m": True, "c": 0}])
    with pytest.raises(ValueError):
        lines_from_payload(["not-an-object"])  # type: ignore[list-item]


def test_create_add_and_query_scenario_a() -> None:
    created = create_tree(0, 10, tree_id="a")
    assert created["domain_size"] == 11
    assert created["node_count"] == 44
    assert created["line_count"] == 0

    added = add_lines("a", SCENARIO_A)
    assert added["inserted"] == 2
    assert added["line_count"] == 2

    expected = {0: 3, 5: 5, 10: 0, 2: 7, 3: 7}
    for x, value in expected.items():
        out = query("a", x)
        assert out == {"x": x, "value": value, "present": True}


def test_query_on_empty_tree_reports_absent_value() -> None:
    create_tree(-5, 5, tree_id="empty")
    out = query("empty", 0)
    assert out["value"] is None
    assert out["present"] is False


def test_create_tree_generates_ids_and_rejects_duplicates() -> None:
    out = create_tree(0, 3)
    assert "error" not in out
    assert isinstance(out["tree_id"], str) and out["tree_id"]

    create_tree(0, 3, tree_id="dup")
    again = create_tree(0, 3, tree_id="dup")
    assert "error" in again


def test_create_tree_rejects_invalid_and_oversized_domains() -> None:
    assert "error" in create_tree(10, 0)
    assert "error" in create_tree(0, server._MAX_DOMAIN_SIZE)
    assert "error" in create_tree(-(1 << 64), -(1 << 64) + 3)
    assert list_trees()["trees"] == []


def test_tree_limit_is_enforced(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(server, "_MAX_TREES", 2)
    create_tree(0, 1, tree_id="t1")
    create_tree(0, 1, tree_id="t2")
    out = create_tree(0, 1, tree_id="t3")
    assert "error" in out
    assert "t3" not in server._TREES


def test_add_lines_is_atomic_on_bad_payload() -> None:
    create_tree(0, 10, tree_id="atomic")

    bad_shape = add_lines("atomic", [{"m": 1, "c": 1}, {"m": "x", "c": 0}])
    sentinel = add_lines("atomic", [{"m": 1, "c": 1}, {"m": 0, "c": INT64_MAX}])
    assert "error" in bad_shape
    assert "error" in sentinel

    assert inspect_tree("atomic")["line_count"] == 0
    assert query("atomic", 4)["present"] is False


def test_query_out_of_domain_and_unknown_tree() -> None:
    create_tree(0, 10, tree_id="bounds")
    assert "error" in query("bounds", -1)
    assert "error" in query("bounds", 11)
    assert "error" in query("missing", 0)
    assert "error" in add_lines("missing", SCENARIO_A)
    assert "error" in inspect_tree("missing")


def test_query_range_samples_envelope_scenario_b() -> None:
    create_tree(0, 20, tree_id="b")
    add_lines("b", [{"m": -10, "c": 100}, {"m": 1, "c": 0}])

    out = query_range("b", 0, 20, step=10)
    assert [p["x"] for p in out["points"]] == [0, 10, 20]
    assert [p["value"] for p in out["points"]] == [0, 0, -100]
    assert out["min_value"] == -100
    assert out["max_value"] == 0


def test_query_range_validates_grid(monkeypatch: pytest.MonkeyPatch) -> None:
    create_tree(0, 20, tree_id="grid")
    assert "error" in query_range("grid", 0, 20, step=0)
    assert "error" in query_range("grid", 10, 0)
    assert "error" in query_range("grid", 0, 21)

    monkeypatch.setattr(server, "_MAX_QUERY_POINTS", 5)
    assert "error" in query_range("grid", 0, 20)


def test_query_range_on_empty_tree_has_no_extremes() -> None:
    create_tree(0, 4, tree_id="blank")
    out = query_range("blank", 0, 4)
    assert all(p["present"] is False for p in out["points"])
    assert out["min_value"] is None
    assert out["max_value"] is None


def test_list_and_drop_trees() -> None:
    create_tree(0, 1, tree_id="x")
    create_tree(0, 2, tree_id="y")
    listed = list_trees()
    assert [t["tree_id"] for t in listed["trees"]] == ["x", "y"]

    assert drop_tree("x") == {"tree_id": "x", "dropped": True}
    assert "error" in drop_tree("x")
    assert [t["tree_id"] for t in list_trees()["trees"]] == ["y"]


def test_lower_envelope_one_shot_keeps_request_order() -> None:
    out = lower_envelope(SCENARIO_A, [10, 0, 3])
    assert out["x_min"] == 0
    assert out["x_max"] == 10
    assert out["line_count"] == 2
    assert [p["value"] for p in out["points"]] == [0, 3, 7]
    assert server._TREES == {}


def test_lower_envelope_rejects_bad_inputs() -> None:
    assert "error" in lower_envelope(SCENARIO_A, [])
    assert "error" in lower_envelope(SCENARIO_A, [0, "1"])  # type: ignore[list-item]
    assert "error" in lower_envelope(SCENARIO_A, [0, server._MAX_DOMAIN_SIZE])
    assert "error" in lower_envelope([{"m": 0, "c": INT64_MAX}], [0, 1])

    no_lines = lower_envelope([], [0, 1])
    assert [p["present"] for p in no_lines["points"]] == [False, False]
