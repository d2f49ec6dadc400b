"""
Fixed-point running aggregates.

Each registry keeps one RunningAggregate per agent and updates it inside the
same call that changes the counted set, so summaries are O(1) reads that
never iterate stored history.

Values arrive with their own precision (``value_decimals`` 0-18) and are
normalized to WAD (1e18) before being summed, which makes values submitted
at different precisions directly comparable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

WAD_DECIMALS = 18
WAD = 10**WAD_DECIMALS
MAX_DECIMALS = WAD_DECIMALS


def scale(value: int, decimals: int) -> int:
    """Normalize ``value`` carrying ``decimals`` places to WAD scale."""
    if not 0 <= decimals <= MAX_DECIMALS:
        raise ValueError(f"decimals must be within 0..{MAX_DECIMALS}, got {decimals}")
    return value * 10 ** (WAD_DECIMALS - decimals)


def truncating_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero (Python's // floors)."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


@dataclass
class RunningAggregate:
    """
    O(1) {count, scaled_sum} accumulator.

    Attributes:
        count: Number of values currently counted
        scaled_sum: Sum of counted values (WAD scale for feedback,
            raw 0-100 scores for validations)
    """

    count: int = 0
    scaled_sum: int = 0

    def add(self, value: int, decimals: int = WAD_DECIMALS) -> None:
        self.scaled_sum += scale(value, decimals)
        self.count += 1

    def remove(self, value: int, decimals: int = WAD_DECIMALS) -> None:
        if self.count <= 0:
            raise ValueError("cannot remove from an empty aggregate")
        self.scaled_sum -= scale(value, decimals)
        self.count -= 1

    def add_raw(self, value: int) -> None:
        """Count ``value`` without rescaling it."""
        self.scaled_sum += value
        self.count += 1

    def adjust(self, old_value: int, new_value: int) -> None:
        """Replace a counted raw value; count is unchanged."""
        self.scaled_sum += new_value - old_value

    def average(self) -> int:
        if self.count == 0:
            return 0
        return truncating_div(self.scaled_sum, self.count)

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "scaled_sum": self.scaled_sum}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RunningAggregate:
        if not data:
            return cls()
        return cls(count=int(data.get("count", 0)), scaled_sum=int(data.get("scaled_sum", 0)))


__all__ = [
    "WAD",
    "WAD_DECIMALS",
    "MAX_DECIMALS",
    "scale",
    "truncating_div",
    "RunningAggregate",
]
