"""Ordered field-alias resolution for loosely-typed source rows.

Exports from inspection software name the same column many ways
("InspectionID", "Inspection_ID", "Inspection ID" ...). Every logical field is
resolved once, at parse time, by walking an ordered candidate list: exact key
matches win, then a case-insensitive pass over the same candidates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

ASSET_FIELDS: dict[str, tuple[str, ...]] = {
    "fid": ("FID", "fid", "Fid"),
    "key_fallback": ("id", "assetId", "ASSET_ID"),
    "asset_id": (
        "id",
        "assetId",
        "ASSET_ID",
        "Asset_ID",
        "ASSETID",
        "AssetId",
        "STATION_ID",
        "StationID",
        "station_id",
        "PIPE_ID",
        "PipeID",
        "pipe_id",
        "ID",
        "Id",
    ),
}

INSPECTION_FIELDS: dict[str, tuple[str, ...]] = {
    "inspection_id": (
        "InspectionID",
        "Inspection_ID",
        "Inspection_Id",
        "Inspection ID",
        "InspecID",
        "Inspec_Id",
        "inspection_id",
        "inspectionId",
    ),
    "pipe_segment_reference": (
        "Pipe_Segment_Reference",
        "Pipe Segment Reference",
        "PipeSegmentReference",
        "pipeSegmentReference",
        "PipeID",
        "Pipe Id",
        "SegmentReference",
    ),
    "asset_id": ("assetId", "AssetID", "Asset_ID", "ASSET_ID"),
    "tap_distance": ("tapDistance", "TapDistance", "Tap_Distance", "Tap Distance", "TAP_DISTANCE"),
    "clock_position": ("clockPosition", "ClockPosition", "Clock_Position", "Clock Position", "CLOCK_POSITION"),
    "inspection_date": ("Inspection_Date", "Inspection Date", "inspection_date", "inspectionDate", "Date", "date"),
    "direction": ("Direction", "direction"),
    "reverse_setup": ("Reverse_Setup", "Reverse Setup", "reverse_setup"),
    "is_imperial": ("IsImperial", "isImperial", "Is Imperial", "Is_Imperial"),
    "length_surveyed": ("Length_Surveyed", "Length Surveyed", "length_surveyed", "lengthSurveyed"),
    "upstream_mh": ("Upstream_MH", "Upstream MH", "upstream_mh", "upstreamMH"),
    "downstream_mh": ("Downstream_MH", "Downstream MH", "downstream_mh", "downstreamMH"),
}

DEFECT_FIELDS: dict[str, tuple[str, ...]] = {
    "inspection_id": (
        "InspectionID",
        "INSPECTION_ID",
        "Inspection_ID",
        "Inspection_Id",
        "inspection_id",
        "Inspection ID",
        "INSPECTIONID",
        "InspectionId",
        "inspectionId",
        "InspecID",
        "ID",
        "id",
        "Id",
    ),
    "pipe_segment_reference": (
        "Pipe_Segment_Reference",
        "PIPE_SEGMENT_REFERENCE",
        "PipeSegmentReference",
        "pipe_segment_reference",
        "Pipe Segment Reference",
        "PIPE_SEG_REF",
        "PipeSegRef",
        "Pipe Seg Ref",
        "SEGMENT_REFERENCE",
        "SegmentReference",
        "Segment Reference",
        "SEGMENT_REF",
        "SegmentRef",
        "PIPE_REF",
        "PipeRef",
        "Pipe Ref",
        "REFERENCE",
        "Reference",
        "PSR",
        "PSRef",
    ),
    "defect_code": (
        "PACP_Code",
        "PACP Code",
        "DEFECT_CODE",
        "DefectCode",
        "Defect Code",
        "CONDITION_CODE",
        "ConditionCode",
        "Condition Code",
        "NASSCO_CODE",
        "NasscoCode",
        "CODE",
        "Code",
    ),
    "defect_description": (
        "DEFECT_DESCRIPTION",
        "DefectDescription",
        "Defect Description",
        "CONDITION_DESCRIPTION",
        "ConditionDescription",
        "DESCRIPTION",
        "Description",
        "COMMENTS",
        "Comments",
        "Comment",
    ),
    "grade": ("Grade", "PACP_Grade", "PACP Grade", "GRADE", "SEVERITY", "Severity", "RATING", "Rating", "SCORE", "Score"),
    "distance": (
        "Distance",
        "Dist",
        "DISTANCE",
        "DEFECT_DISTANCE",
        "DefectDistance",
        "Distance_Along_Pipe",
        "Distance Along Pipe",
        "OFFSET",
        "Offset",
    ),
    "clock_position": (
        "CLOCK_POSITION",
        "ClockPosition",
        "Clock Position",
        "Clock_Position",
        "CLOCK_POS",
        "ClockPos",
        "CLOCK",
        "Clock",
        "POSITION",
        "Position",
    ),
}

DEFAULT_FIELDS: dict[str, dict[str, tuple[str, ...]]] = {
    "asset": ASSET_FIELDS,
    "inspection": INSPECTION_FIELDS,
    "defect": DEFECT_FIELDS,
}


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def lookup_first(row: Mapping[str, Any], candidates: tuple[str, ...] | list[str]) -> Any | None:
    for key in candidates:
        if key in row and _present(row[key]):
            return row[key]

    lowered: dict[str, str] = {}
    for key in row:
        if isinstance(key, str):
            lowered.setdefault(key.lower(), key)
    for key in candidates:
        actual = lowered.get(key.lower())
        if actual is not None and _present(row[actual]):
            return row[actual]
    return None


@dataclass(frozen=True)
class FieldAliases:
    asset: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(ASSET_FIELDS))
    inspection: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(INSPECTION_FIELDS))
    defect: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(DEFECT_FIELDS))

    @classmethod
    def from_config(cls, fields_cfg: Mapping[str, Any] | None) -> "FieldAliases":
        """Configured aliases are tried before the built-in ones."""
        fields_cfg = fields_cfg or {}
        merged: dict[str, dict[str, tuple[str, ...]]] = {}
        for family, defaults in DEFAULT_FIELDS.items():
            extra = fields_cfg.get(family) or {}
            table = dict(defaults)
            for name, aliases in extra.items():
                configured = tuple(str(alias) for alias in (aliases or []))
                table[name] = tuple(dict.fromkeys(configured + table.get(name, ())))
            merged[family] = table
        return cls(**merged)

    def resolve(self, family: str, name: str, row: Mapping[str, Any]) -> Any | None:
        table = getattr(self, family)
        return lookup_first(row, table.get(name, ()))
