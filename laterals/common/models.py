"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

Position = tuple[float, float]


@dataclass(frozen=True)
class Asset:
    key: str
    geometry: dict[str, Any]
    properties: dict[str, Any]
    fid: str | None = None
    asset_id: str | None = None

    @property
    def geometry_type(self) -> str | None:
        return self.geometry.get("type") if isinstance(self.geometry, dict) else None


@dataclass(frozen=True)
class InspectionRecord:
    inspection_id: str
    pipe_segment_reference: str
    asset_id: str | None = None
    tap_distance: float | None = None
    clock_position: float | None = None
    inspection_date: str | None = None
    direction: str | None = None
    reverse_setup: Any = None
    is_imperial: bool = False
    length_surveyed: float | None = None
    upstream_mh: str | None = None
    downstream_mh: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DefectRecord:
    id: str
    inspection_id: str | None = None
    pipe_segment_reference: str | None = None
    defect_code: str | None = None
    defect_description: str | None = None
    grade: int | float | str | None = None
    distance: float | None = None
    clock_position: float | None = None
    coordinates: Position | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GeocodeResult:
    address: str
    details: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LateralInspection:
    id: str
    coordinates: Position
    asset_id: str | None
    tap_distance: float
    clock_position: float
    address: str
    address_details: dict[str, str] = field(default_factory=dict)
    asset_coordinates: Position | None = None
    connection_point: Position | None = None
    stub_line: tuple[Position, Position] | None = None
    inspection_date: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TapInspection:
    id: str
    coordinates: Position
    asset_id: str
    distance: float
    clock_position: float
    address: str
    address_details: dict[str, str] = field(default_factory=dict)
    distance_m: float | None = None
    pipe_segment_reference: str | None = None
    inspection_id: str | None = None
    defect_code: str | None = None
    inspection_date: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RecordOutcome:
    status: str
    reason: str | None = None
    record_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"
