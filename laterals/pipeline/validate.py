"""Export validation: per-feature coordinate checks and a bounding box."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

from laterals.common.errors import InputFormatError
from laterals.common.fs import read_json, write_json

logger = logging.getLogger(__name__)


class _Ranges:
    def __init__(self) -> None:
        self.min_lat = math.inf
        self.max_lat = -math.inf
        self.min_lng = math.inf
        self.max_lng = -math.inf

    def add(self, lng: float, lat: float) -> None:
        self.min_lat = min(self.min_lat, lat)
        self.max_lat = max(self.max_lat, lat)
        self.min_lng = min(self.min_lng, lng)
        self.max_lng = max(self.max_lng, lng)

    def to_dict(self) -> dict[str, dict[str, float]]:
        def finite(value: float) -> float:
            return 0.0 if math.isinf(value) else value

        return {
            "latitude": {"min": finite(self.min_lat), "max": finite(self.max_lat)},
            "longitude": {"min": finite(self.min_lng), "max": finite(self.max_lng)},
        }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_position(
    feature_id: str,
    coords: Any,
    label: str,
    errors: list[dict],
    warnings: list[dict],
    ranges: _Ranges,
) -> None:
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        errors.append({"feature_id": feature_id, "error": f"Invalid coordinate{label}", "coordinates": coords})
        return
    lng, lat = coords[0], coords[1]
    if not (_is_number(lng) and _is_number(lat)) or math.isnan(lng) or math.isnan(lat):
        errors.append({"feature_id": feature_id, "error": f"Coordinate{label} is not a number", "coordinates": coords})
        return
    if lat < -90 or lat > 90:
        errors.append(
            {
                "feature_id": feature_id,
                "error": f"Invalid latitude{label}: {lat} (must be between -90 and 90)",
                "coordinates": coords,
            }
        )
    if lng < -180 or lng > 180:
        warnings.append(
            {
                "feature_id": feature_id,
                "warning": f"Longitude{label} {lng} outside standard range",
                "coordinates": coords,
            }
        )
    ranges.add(lng, lat)


def validate_feature_collection(collection: Any) -> dict[str, Any]:
    if not isinstance(collection, dict) or not isinstance(collection.get("features"), list):
        raise InputFormatError("Export must be a FeatureCollection with a features array")

    errors: list[dict] = []
    warnings: list[dict] = []
    ranges = _Ranges()
    point_count = 0
    line_count = 0

    for index, feature in enumerate(collection["features"]):
        if not isinstance(feature, dict):
            feature = {}
        properties = feature.get("properties") or {}
        feature_id = str(properties.get("id") or f"feature-{index}")
        geometry = feature.get("geometry")
        if not isinstance(geometry, dict):
            geometry = {}
        geometry_type = geometry.get("type")
        coordinates = geometry.get("coordinates")

        if geometry_type == "Point":
            point_count += 1
            _check_position(feature_id, coordinates, "", errors, warnings, ranges)
        elif geometry_type == "LineString":
            line_count += 1
            if not isinstance(coordinates, list) or len(coordinates) < 2:
                errors.append(
                    {"feature_id": feature_id, "error": "Invalid LineString coordinates", "coordinates": coordinates}
                )
                continue
            for point_index, coords in enumerate(coordinates):
                _check_position(feature_id, coords, f" at point {point_index}", errors, warnings, ranges)
        else:
            warnings.append(
                {"feature_id": feature_id, "warning": f"Unchecked geometry type {geometry_type}", "coordinates": None}
            )

    report = {
        "is_valid": not errors,
        "errors": errors,
        "warnings": warnings,
        "statistics": {
            "total_features": len(collection["features"]),
            "point_features": point_count,
            "linestring_features": line_count,
            "coordinate_ranges": ranges.to_dict(),
        },
    }
    log = logger.warning if errors else logger.info
    log(
        "export validation: %s errors, %s warnings",
        len(errors),
        len(warnings),
        extra={"event": "VALIDATE_EXPORT", "rows_in": len(collection["features"]), "status": "ok" if not errors else "error"},
    )
    return report


def run_validate(geojson_path: Path, out_dir: Path) -> tuple[Path, dict[str, Any]]:
    if not geojson_path.exists():
        raise InputFormatError(f"Missing GeoJSON input: {geojson_path}")
    try:
        collection = read_json(geojson_path)
    except ValueError as exc:
        raise InputFormatError(f"Invalid JSON in {geojson_path}: {exc}") from exc

    report = validate_feature_collection(collection)
    report_path = out_dir / "reports" / "export_validation.json"
    write_json(report_path, report)
    return report_path, report
