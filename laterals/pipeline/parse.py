"""Parse GeoJSON assets and exported table rows into typed records."""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Mapping

from laterals.common.errors import InputFormatError
from laterals.common.fields import FieldAliases
from laterals.common.geometry import SUPPORTED_GEOMETRY_TYPES
from laterals.common.models import Asset, DefectRecord, InspectionRecord

logger = logging.getLogger(__name__)

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")
_TRUE_FLAGS = {"true"}


def key_text(value: Any) -> str | None:
    """Render an identifier the way it is written in the other tables."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = _NON_NUMERIC_RE.sub("", str(value))
        try:
            number = float(cleaned)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_non_negative(value: Any) -> float | None:
    number = to_float(value)
    if number is None or number < 0:
        return None
    return number


def to_flag(value: Any) -> bool:
    if value is True:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 1
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_FLAGS:
            return True
        try:
            return float(text) == 1
        except ValueError:
            return False
    return False


def _optional_text(value: Any) -> str | None:
    return None if value is None else str(value).strip() or None


def parse_assets(payload: Any, aliases: FieldAliases | None = None) -> list[Asset]:
    aliases = aliases or FieldAliases()
    if not isinstance(payload, dict) or payload.get("type") != "FeatureCollection":
        raise InputFormatError("GeoJSON must be a FeatureCollection")
    features = payload.get("features")
    if not isinstance(features, list):
        raise InputFormatError("GeoJSON features must be an array")

    assets: list[Asset] = []
    seen: set[str] = set()
    unsupported = 0
    for index, feature in enumerate(features):
        if not isinstance(feature, dict) or not isinstance(feature.get("geometry"), dict):
            logger.warning("feature %s has no geometry; ignored", index, extra={"reason": "missing_geometry"})
            continue
        geometry = feature["geometry"]
        properties = feature.get("properties") or {}

        fid = key_text(aliases.resolve("asset", "fid", properties))
        if fid is not None:
            key = fid
            asset_id = None
        else:
            key = key_text(aliases.resolve("asset", "key_fallback", properties)) or f"asset-{index}"
            asset_id = key_text(aliases.resolve("asset", "asset_id", properties))

        if key in seen:
            logger.warning(
                "duplicate asset key %s; keeping the first feature",
                key,
                extra={"asset_key": key, "reason": "duplicate_asset_key"},
            )
            continue
        seen.add(key)

        if geometry.get("type") not in SUPPORTED_GEOMETRY_TYPES:
            unsupported += 1

        assets.append(
            Asset(
                key=key,
                geometry=geometry,
                properties=dict(properties),
                fid=fid,
                asset_id=asset_id,
            )
        )

    if unsupported:
        logger.warning("%s assets have unsupported geometry types", unsupported, extra={"reason": "unsupported_geometry"})
    logger.info("parsed assets", extra={"event": "PARSE_ASSETS", "rows_in": len(features), "rows_out": len(assets)})
    return assets


def _require_rows(rows: Any, label: str) -> list[Mapping[str, Any]]:
    if not isinstance(rows, list):
        raise InputFormatError(f"{label} must be a list of rows")
    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise InputFormatError(f"{label}[{index}] is not an object")
    return rows


def parse_inspection_rows(rows: Any, aliases: FieldAliases | None = None) -> list[InspectionRecord]:
    aliases = aliases or FieldAliases()
    rows = _require_rows(rows, "inspections")

    def field(name: str, row: Mapping[str, Any]) -> Any:
        return aliases.resolve("inspection", name, row)

    records: list[InspectionRecord] = []
    for row in rows:
        inspection_id = key_text(field("inspection_id", row))
        pipe_ref = key_text(field("pipe_segment_reference", row))
        if inspection_id is None or pipe_ref is None:
            continue

        records.append(
            InspectionRecord(
                inspection_id=inspection_id,
                pipe_segment_reference=pipe_ref,
                asset_id=key_text(field("asset_id", row)) or pipe_ref,
                tap_distance=to_non_negative(field("tap_distance", row)),
                clock_position=to_non_negative(field("clock_position", row)),
                inspection_date=_optional_text(field("inspection_date", row)),
                direction=_optional_text(field("direction", row)),
                reverse_setup=field("reverse_setup", row),
                is_imperial=to_flag(field("is_imperial", row)),
                length_surveyed=to_float(field("length_surveyed", row)),
                upstream_mh=_optional_text(field("upstream_mh", row)),
                downstream_mh=_optional_text(field("downstream_mh", row)),
                raw=dict(row),
            )
        )

    dropped = len(rows) - len(records)
    if dropped:
        logger.warning(
            "%s inspection rows lack an inspection id or pipe segment reference",
            dropped,
            extra={"reason": "missing_join_keys"},
        )
    logger.info("parsed inspections", extra={"event": "PARSE_INSPECTIONS", "rows_in": len(rows), "rows_out": len(records)})
    return records


def _grade(value: Any) -> int | float | str | None:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return str(value).strip() or None


def parse_defect_rows(rows: Any, aliases: FieldAliases | None = None) -> list[DefectRecord]:
    aliases = aliases or FieldAliases()
    rows = _require_rows(rows, "defects")

    def field(name: str, row: Mapping[str, Any]) -> Any:
        return aliases.resolve("defect", name, row)

    records: list[DefectRecord] = []
    for index, row in enumerate(rows):
        inspection_id = key_text(field("inspection_id", row))
        pipe_ref = key_text(field("pipe_segment_reference", row))
        if inspection_id is None and pipe_ref is None:
            continue

        records.append(
            DefectRecord(
                id=f"defect-{inspection_id or pipe_ref}-{index}",
                inspection_id=inspection_id,
                pipe_segment_reference=pipe_ref,
                defect_code=_optional_text(field("defect_code", row)),
                defect_description=_optional_text(field("defect_description", row)),
                grade=_grade(field("grade", row)),
                distance=to_non_negative(field("distance", row)),
                clock_position=to_non_negative(field("clock_position", row)),
                raw=dict(row),
            )
        )

    logger.info("parsed defects", extra={"event": "PARSE_DEFECTS", "rows_in": len(rows), "rows_out": len(records)})
    return records
