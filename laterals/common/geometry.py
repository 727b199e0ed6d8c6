"""GeoJSON geometry helpers."""

from __future__ import annotations

from typing import Any

from laterals.common.errors import GeometryError, UnsupportedGeometryError
from laterals.common.models import Position

SUPPORTED_GEOMETRY_TYPES = ("Point", "LineString", "MultiLineString")


def _position(raw: Any) -> Position:
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        raise GeometryError(f"Invalid position: {raw!r}")
    try:
        return float(raw[0]), float(raw[1])
    except (TypeError, ValueError) as exc:
        raise GeometryError(f"Invalid position: {raw!r}") from exc


def point_position(geometry: dict[str, Any]) -> Position:
    return _position(geometry.get("coordinates"))


def line_positions(geometry: dict[str, Any]) -> list[Position]:
    """Positions of a LineString, or of the first member of a MultiLineString."""
    geometry_type = geometry.get("type")
    coordinates = geometry.get("coordinates") or []
    if geometry_type == "MultiLineString":
        coordinates = coordinates[0] if coordinates else []
    elif geometry_type != "LineString":
        raise UnsupportedGeometryError(geometry_type)
    positions = [_position(raw) for raw in coordinates]
    if not positions:
        raise GeometryError(f"{geometry_type} has no positions")
    return positions


def reference_position(geometry: dict[str, Any] | None) -> Position | None:
    """First vertex of the asset, used to draw a line from asset to lateral."""
    if not geometry:
        return None
    try:
        if geometry.get("type") == "Point":
            return point_position(geometry)
        return line_positions(geometry)[0]
    except GeometryError:
        return None
