"""GeoJSON export for laterals and taps."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

from laterals.common.fs import write_json
from laterals.common.models import DefectRecord, LateralInspection, Position, TapInspection


def _coords(position: Position | None) -> list[float] | None:
    return None if position is None else [position[0], position[1]]


def lateral_geometry(lateral: LateralInspection) -> dict[str, Any]:
    if lateral.stub_line is not None:
        return {"type": "LineString", "coordinates": [_coords(p) for p in lateral.stub_line]}
    if lateral.asset_coordinates is not None and lateral.asset_coordinates != lateral.coordinates:
        return {
            "type": "LineString",
            "coordinates": [_coords(lateral.asset_coordinates), _coords(lateral.coordinates)],
        }
    return {"type": "Point", "coordinates": _coords(lateral.coordinates)}


def lateral_feature(lateral: LateralInspection) -> dict[str, Any]:
    properties = dict(lateral.properties)
    properties.update(lateral.address_details)
    properties.update(
        {
            "id": lateral.id,
            "asset_id": lateral.asset_id,
            "tap_distance": lateral.tap_distance,
            "clock_position": lateral.clock_position,
            "address": lateral.address,
            "inspection_date": lateral.inspection_date,
            "lateral_point": _coords(lateral.coordinates),
            "connection_point": _coords(lateral.connection_point),
            "asset_coordinates": _coords(lateral.asset_coordinates),
        }
    )
    return {"type": "Feature", "id": lateral.id, "geometry": lateral_geometry(lateral), "properties": properties}


def tap_feature(tap: TapInspection) -> dict[str, Any]:
    properties = dict(tap.properties)
    properties.update(tap.address_details)
    properties.update(
        {
            "id": tap.id,
            "asset_id": tap.asset_id,
            "distance": tap.distance,
            "distance_m": tap.distance_m,
            "clock_position": tap.clock_position,
            "address": tap.address,
            "pipe_segment_reference": tap.pipe_segment_reference,
            "inspection_id": tap.inspection_id,
            "defect_code": tap.defect_code,
            "inspection_date": tap.inspection_date,
        }
    )
    return {
        "type": "Feature",
        "id": tap.id,
        "geometry": {"type": "Point", "coordinates": _coords(tap.coordinates)},
        "properties": properties,
    }


def feature_collection(features: Iterable[dict[str, Any]]) -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


def laterals_to_geojson(laterals: Iterable[LateralInspection]) -> dict[str, Any]:
    return feature_collection(lateral_feature(lateral) for lateral in laterals)


def taps_to_geojson(taps: Iterable[TapInspection]) -> dict[str, Any]:
    return feature_collection(tap_feature(tap) for tap in taps)


def defects_payload(defects: Iterable[DefectRecord]) -> list[dict[str, Any]]:
    rows = []
    for defect in defects:
        row = defect.to_dict()
        row["coordinates"] = _coords(defect.coordinates)
        rows.append(row)
    return rows


def write_outputs(
    out_dir: Path,
    laterals: list[LateralInspection],
    taps: list[TapInspection],
    defects: list[DefectRecord],
) -> dict[str, Path]:
    paths = {
        "laterals": out_dir / "laterals.geojson",
        "taps": out_dir / "taps.geojson",
        "defects": out_dir / "defects.json",
    }
    write_json(paths["laterals"], laterals_to_geojson(laterals))
    write_json(paths["taps"], taps_to_geojson(taps))
    write_json(paths["defects"], defects_payload(defects))
    return paths
