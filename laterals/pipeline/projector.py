"""Place laterals and stubs relative to a mainline asset.

All distances are metres measured on the WGS84 ellipsoid with ``pyproj.Geod``;
positions are ``(lng, lat)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from pyproj import Geod

from laterals.common.constants import (
    DEFAULT_LATERAL_OFFSET_M,
    DEFAULT_STUB_LENGTH_M,
    DEFAULT_TANGENT_SAMPLE_M,
)
from laterals.common.errors import UnsupportedGeometryError
from laterals.common.geometry import line_positions, point_position
from laterals.common.models import Asset, Position
from laterals.pipeline.bearing import CENTER, RIGHT, clock_to_bearing, clock_to_side, normalize_bearing


@dataclass(frozen=True)
class Stub:
    connection_point: Position
    stub_line: tuple[Position, Position]


class GeometryProjector:
    def __init__(
        self,
        *,
        ellipsoid: str = "WGS84",
        lateral_offset_m: float = DEFAULT_LATERAL_OFFSET_M,
        stub_length_m: float = DEFAULT_STUB_LENGTH_M,
        tangent_sample_m: float = DEFAULT_TANGENT_SAMPLE_M,
    ) -> None:
        self.geod = Geod(ellps=ellipsoid)
        self.lateral_offset_m = lateral_offset_m
        self.stub_length_m = stub_length_m
        self.tangent_sample_m = tangent_sample_m

    @classmethod
    def from_config(cls, geometry_cfg: Mapping[str, Any]) -> "GeometryProjector":
        return cls(
            ellipsoid=str(geometry_cfg.get("ellipsoid", "WGS84")),
            lateral_offset_m=float(geometry_cfg["lateral_offset_m"]),
            stub_length_m=float(geometry_cfg["stub_length_m"]),
            tangent_sample_m=float(geometry_cfg["tangent_sample_m"]),
        )

    def destination(self, origin: Position, distance_m: float, bearing: float) -> Position:
        lng, lat, _back_azimuth = self.geod.fwd(origin[0], origin[1], bearing, distance_m)
        return lng, lat

    def line_length(self, positions: list[Position]) -> float:
        total = 0.0
        for start, end in zip(positions, positions[1:]):
            _az, _back, distance = self.geod.inv(start[0], start[1], end[0], end[1])
            total += distance
        return total

    def along(self, positions: list[Position], distance_m: float) -> Position:
        """Point at ``distance_m`` from the first vertex; never past the last one."""
        remaining = max(0.0, distance_m)
        for start, end in zip(positions, positions[1:]):
            azimuth, _back, segment = self.geod.inv(start[0], start[1], end[0], end[1])
            if segment == 0:
                continue
            if remaining <= segment:
                return self.destination(start, remaining, azimuth)
            remaining -= segment
        return positions[-1]

    def tangent_bearing(self, positions: list[Position], distance_m: float, length_m: float) -> float:
        before = self.along(positions, max(0.0, distance_m - self.tangent_sample_m))
        after = self.along(positions, min(length_m, distance_m + self.tangent_sample_m))
        if before == after:
            return 0.0
        azimuth, _back, _distance = self.geod.inv(before[0], before[1], after[0], after[1])
        return normalize_bearing(azimuth)

    def _locate_on_line(self, geometry: dict[str, Any], distance_m: float) -> tuple[Position, float]:
        positions = line_positions(geometry)
        length = self.line_length(positions)
        clamped = min(max(0.0, distance_m), length)
        return self.along(positions, clamped), self.tangent_bearing(positions, clamped, length)

    def project(self, asset: Asset, distance_m: float, clock_position: float | None) -> Position:
        geometry_type = asset.geometry_type
        if geometry_type == "Point":
            bearing = clock_to_bearing(12 if clock_position is None else clock_position)
            return self.destination(point_position(asset.geometry), distance_m, bearing)
        if geometry_type in ("LineString", "MultiLineString"):
            connection, tangent = self._locate_on_line(asset.geometry, distance_m)
            reading = clock_to_side(clock_position)
            if reading.side == CENTER:
                return connection
            return self.destination(
                connection,
                self.lateral_offset_m,
                normalize_bearing(tangent + reading.side * 90.0),
            )
        raise UnsupportedGeometryError(geometry_type)

    def stub(
        self,
        asset: Asset,
        distance_m: float,
        clock_position: float | None,
        stub_length_m: float | None = None,
    ) -> Stub:
        length = self.stub_length_m if stub_length_m is None else stub_length_m
        geometry_type = asset.geometry_type
        if geometry_type == "Point":
            origin = point_position(asset.geometry)
            bearing = clock_to_bearing(12 if clock_position is None else clock_position)
            return Stub(connection_point=origin, stub_line=(origin, self.destination(origin, length, bearing)))
        if geometry_type in ("LineString", "MultiLineString"):
            connection, tangent = self._locate_on_line(asset.geometry, distance_m)
            side = clock_to_side(clock_position).side
            # A stub has to leave the mainline, so an ambiguous side goes right.
            if side == CENTER:
                side = RIGHT
            end = self.destination(connection, length, normalize_bearing(tangent + side * 90.0))
            return Stub(connection_point=connection, stub_line=(connection, end))
        raise UnsupportedGeometryError(geometry_type)
