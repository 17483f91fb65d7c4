"""Linear functions over int64 with saturating evaluation."""

from __future__ import annotations

from dataclasses import dataclass


INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


def _clamp(value: int) -> int:
    if value > INT64_MAX:
        return INT64_MAX
    if value < INT64_MIN:
        return INT64_MIN
    return value


def fits_int64(value: object) -> bool:
    # bool is an int subclass but not a coordinate or coefficient.
    if not isinstance(value, int) or isinstance(value, bool):
        return False
    return INT64_MIN <= value <= INT64_MAX


def saturating_mul(a: int, b: int) -> int:
    return _clamp(a * b)


def saturating_add(a: int, b: int) -> int:
    return _clamp(a + b)


@dataclass(frozen=True, slots=True)
class Line:
    """y = m*x + c with int64 coefficients."""

    m: int
    c: int

    def __post_init__(self) -> None:
        if not fits_int64(self.m):
            raise ValueError(f"slope {self.m!r} is not an int64 integer")
        if not fits_int64(self.c):
            raise ValueError(f"intercept {self.c!r} is not an int64 integer")

    def eval(self, x: int) -> int:
        """
        Evaluate at x, clamping the product and then the sum to int64.

        A product that saturates is shifted by c from the clamped value,
        e.g. Line(2**62, -1).eval(4) == INT64_MAX - 1.
        """

        return saturating_add(saturating_mul(self.m, x), self.c)


# Marks an empty tree node. Evaluates to INT64_MAX everywhere, so it never
# wins a strict minimum comparison.
NO_LINE = Line(0, INT64_MAX)
