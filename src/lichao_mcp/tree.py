"""Li Chao tree: lower envelope of lines over a fixed integer domain."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from typing import Optional

from .line import INT64_MAX, NO_LINE, Line, fits_int64


log = logging.getLogger(__name__)


def _validate_coord(name: str, value: int) -> None:
    if not fits_int64(value):
        raise ValueError(f"{name} ({value!r}) is not an int64 integer")


class LiChaoTree:
    """
    Minimum envelope of lines y = m*x + c over [x_min_coord, x_max_coord].

    Nodes live in a flat list of 4 * domain_size slots. Node v covers an index
    range [l, r]; its children 2v+1 and 2v+2 cover [l, mid] and [mid+1, r].
    Empty nodes hold NO_LINE.

    For any x in the domain, the minimum over all inserted lines at x equals
    the minimum over the stored lines on the root-to-leaf path of x.

    Both add_line and query take O(log domain_size) steps.
    """

    __slots__ = ("_nodes", "x_min_coord", "domain_size", "line_count")

    def __init__(self, x_min_coord: int, x_max_coord: int) -> None:
        _validate_coord("x_min_coord", x_min_coord)
        _validate_coord("x_max_coord", x_max_coord)
        if x_min_coord > x_max_coord:
            raise ValueError(
                f"x_min_coord ({x_min_coord}) cannot be greater than x_max_coord ({x_max_coord})"
            )

        domain_size = x_max_coord - x_min_coord + 1
        # A list holds at most sys.maxsize // 8 object pointers.
        if 4 * domain_size > sys.maxsize // 8:
            raise ValueError(
                f"domain size {domain_size} is too large; 4 * domain_size would overflow the node list"
            )

        self._nodes: list[Line] = [NO_LINE] * (4 * domain_size)
        self.x_min_coord = x_min_coord
        self.domain_size = domain_size
        self.line_count = 0
        log.debug("allocated %d nodes for [%d, %d]", len(self._nodes), x_min_coord, x_max_coord)

    @property
    def x_max_coord(self) -> int:
        return self.x_min_coord + self.domain_size - 1

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def __contains__(self, x_coord: object) -> bool:
        if not isinstance(x_coord, int):
            return False
        return self.x_min_coord <= x_coord < self.x_min_coord + self.domain_size

    def __repr__(self) -> str:
        return (
            f"LiChaoTree(x_min_coord={self.x_min_coord}, x_max_coord={self.x_max_coord}, "
            f"line_count={self.line_count})"
        )

    def _coord(self, index: int) -> int:
        return self.x_min_coord + index

    def _check_insertable(self, line: Line) -> None:
        if line == NO_LINE:
            raise ValueError("line is the reserved NO_LINE sentinel and cannot be inserted")

    def _check_queryable(self, x_coord: int) -> None:
        if x_coord not in self:
            raise ValueError(
                f"{x_coord} does not fit inside the tree's bounds [{self.x_min_coord}, {self.x_max_coord}]"
            )

    def _insert(self, line: Line) -> None:
        nodes = self._nodes
        carried = line
        v, lo, hi = 0, 0, self.domain_size - 1

        while True:
            if v >= len(nodes):
                raise AssertionError(f"node {v} is past the end of the node list ({len(nodes)})")

            mid = lo + (hi - lo) // 2
            x_mid = self._coord(mid)

            # Ties keep the incumbent.
            if carried.eval(x_mid) < nodes[v].eval(x_mid):
                nodes[v], carried = carried, nodes[v]

            if carried == NO_LINE or lo == hi:
                return

            # Two lines cross at most once: after the midpoint swap the carried
            # line can only still win on the side where it wins at the endpoint.
            x_lo = self._coord(lo)
            x_hi = self._coord(hi)
            if carried.eval(x_lo) < nodes[v].eval(x_lo):
                v, hi = 2 * v + 1, mid
            elif carried.eval(x_hi) < nodes[v].eval(x_hi):
                v, lo = 2 * v + 2, mid + 1
            else:
                return

    def add_line(self, line: Line) -> None:
        """Insert a line. Raises ValueError for the NO_LINE sentinel."""

        self._check_insertable(line)
        self._insert(line)
        self.line_count += 1

    def add_lines(self, lines: Iterable[Line]) -> None:
        """Insert lines in order; a batch containing NO_LINE is rejected whole."""

        batch = list(lines)
        for line in batch:
            self._check_insertable(line)
        for line in batch:
            self._insert(line)
        self.line_count += len(batch)

    def _descend(self, x_coord: int) -> int:
        nodes = self._nodes
        query_idx = x_coord - self.x_min_coord
        best = INT64_MAX
        v, lo, hi = 0, 0, self.domain_size - 1

        while True:
            if not lo <= query_idx <= hi:
                raise AssertionError(f"descent lost the query index: {query_idx} not in [{lo}, {hi}]")

            best = min(best, nodes[v].eval(x_coord))
            if lo == hi:
                return best

            mid = lo + (hi - lo) // 2
            if query_idx <= mid:
                v, hi = 2 * v + 1, mid
            else:
                v, lo = 2 * v + 2, mid + 1

    def query(self, x_coord: int) -> Optional[int]:
        """
        Minimum value at x_coord over all inserted lines.

        Returns None when no line has been inserted. A line whose saturated
        value at x_coord is exactly INT64_MAX is indistinguishable from the
        empty sentinel and also yields None.
        """

        self._check_queryable(x_coord)
        best = self._descend(x_coord)
        if best == INT64_MAX:
            return None
        return best

    def query_many(self, xs: Iterable[int]) -> list[Optional[int]]:
        coords = list(xs)
        for x_coord in coords:
            self._check_queryable(x_coord)
        return [self.query(x_coord) for x_coord in coords]
