"""Clock-face readings to compass bearings and pipe sides.

Inspection crews record the position of a connection as a clock reading
looking downstream: 12 is the crown, 3 the right wall, 6 the invert and 9 the
left wall.
"""

from __future__ import annotations

from dataclasses import dataclass

RIGHT = 1
LEFT = -1
CENTER = 0


@dataclass(frozen=True)
class SideReading:
    side: int
    confidence: str


def normalize_bearing(bearing: float) -> float:
    normalized = bearing % 360.0
    # Tiny negatives round up to 360.0 under float modulo.
    if normalized >= 360.0:
        return 0.0
    return normalized


def clock_to_bearing(clock_position: float) -> float:
    """12 is north (0 degrees); each hour is 30 degrees clockwise."""
    return normalize_bearing((clock_position % 12) * 30.0)


def clock_to_side(clock_position: float | None) -> SideReading:
    if clock_position is None:
        return SideReading(CENTER, "none")

    clock = clock_position % 12 or 12
    if clock == 3:
        return SideReading(RIGHT, "high")
    if clock == 9:
        return SideReading(LEFT, "high")
    if 0 < clock < 6:
        return SideReading(RIGHT, "low")
    if 6 < clock < 12:
        return SideReading(LEFT, "low")
    return SideReading(CENTER, "low")
