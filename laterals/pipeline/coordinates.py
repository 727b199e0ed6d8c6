"""Coordinate order repair and WGS84 validity checks.

Source exports disagree on whether a pair is ``[lat, lng]`` or ``[lng, lat]``.
``validate_coordinates`` always returns ``(lng, lat)`` or ``None``. The swap
rules lean on magnitudes: a value whose absolute size could only be a
longitude is treated as one, and between two plausible readings the smaller
magnitude is taken as latitude. That second rule assumes mid-latitude,
large-longitude data (the continental US) and can misfire near the equator or
the prime meridian, so its thresholds are configurable.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping

from laterals.common.models import Position

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapThresholds:
    lat_ceiling: float = 60.0
    magnitude_ratio: float = 0.8
    certain_lat: float = 50.0

    @classmethod
    def from_config(cls, swap_cfg: Mapping[str, Any] | None) -> "SwapThresholds":
        if not swap_cfg:
            return cls()
        return cls(
            lat_ceiling=float(swap_cfg.get("lat_ceiling", cls.lat_ceiling)),
            magnitude_ratio=float(swap_cfg.get("magnitude_ratio", cls.magnitude_ratio)),
            certain_lat=float(swap_cfg.get("certain_lat", cls.certain_lat)),
        )


DEFAULT_THRESHOLDS = SwapThresholds()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def clamp(value: float, *, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


def _valid_lat_lon(lat: float, lon: float) -> bool:
    return -90 <= lat <= 90 and -180 <= lon <= 180


def _needs_swap(first: float, second: float, thresholds: SwapThresholds) -> bool:
    abs_first = abs(first)
    abs_second = abs(second)

    # Impossible as [lng, lat].
    if abs_second > 90 or abs_first > 180:
        return True

    if abs_first <= 90 and abs_first < abs_second:
        return (
            (first > 0 and second < 0)
            or (abs_first < thresholds.lat_ceiling and abs_second > thresholds.lat_ceiling)
            or abs_first < abs_second * thresholds.magnitude_ratio
            or abs_first < thresholds.certain_lat
        )
    return False


def validate_coordinates(
    coords: Any,
    thresholds: SwapThresholds = DEFAULT_THRESHOLDS,
) -> Position | None:
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        logger.warning("invalid coordinate array: %r", coords)
        return None

    first, second = coords[0], coords[1]
    if not _is_number(first) or not _is_number(second) or math.isnan(first) or math.isnan(second):
        logger.warning("coordinates contain NaN or non-numeric values: %r", coords)
        return None

    if _needs_swap(first, second, thresholds):
        lng, lat = float(second), float(first)
        logger.debug("swapped coordinates [%s, %s] to [%s, %s]", first, second, lng, lat)
    else:
        lng, lat = float(first), float(second)

    if lat < -90 or lat > 90:
        if -90 <= lng <= 90 and (lat < -180 or lat > 180 or abs(lat) > abs(lng)):
            logger.warning("latitude %s out of range, swapping back", lat)
            lng, lat = lat, lng
        else:
            logger.warning("latitude %s out of range, clamping", lat)
            lat = clamp(lat, minimum=-90.0, maximum=90.0)

    if lng < -180 or lng > 180:
        logger.warning("longitude %s out of range, wrapping", lng)
        lng = ((lng + 180) % 360) - 180

    if math.isnan(lat) or math.isnan(lng) or not _valid_lat_lon(lat, lng):
        logger.error("coordinates still invalid after repair: [%s, %s]", lng, lat)
        return None

    return lng, lat
