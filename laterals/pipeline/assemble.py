"""Build geocoded lateral and tap records from matched inspections."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from laterals.common.constants import (
    DEFAULT_TAP_CLOCK_POSITION,
    FEET_TO_METERS,
    SKIP_INVALID_COORDINATES,
    SKIP_MISSING_TAP_FIELDS,
    SKIP_UNSUPPORTED_GEOMETRY,
    TAP_CODE_PREFIXES,
)
from laterals.common.errors import GeometryError
from laterals.common.geometry import reference_position
from laterals.common.ids import lateral_id, tap_lateral_id
from laterals.common.models import (
    Asset,
    DefectRecord,
    InspectionRecord,
    LateralInspection,
    Position,
    RecordOutcome,
    TapInspection,
)
from laterals.geocoding.service import GeocodingService
from laterals.pipeline.coordinates import DEFAULT_THRESHOLDS, SwapThresholds, validate_coordinates
from laterals.pipeline.matching import AssetIndex, DefectIndex, is_tap, match_inspections_to_assets
from laterals.pipeline.projector import GeometryProjector

logger = logging.getLogger(__name__)

_UNJOINED_SAMPLE = 5


@dataclass
class AssemblyResult:
    laterals: list[LateralInspection]
    taps: list[TapInspection]
    defects: list[DefectRecord]
    outcomes: list[RecordOutcome]
    stats: dict[str, Any] = field(default_factory=dict)


class LateralAssembler:
    def __init__(
        self,
        projector: GeometryProjector,
        geocoding: GeocodingService,
        *,
        thresholds: SwapThresholds = DEFAULT_THRESHOLDS,
        feet_to_meters: float = FEET_TO_METERS,
        tap_prefixes: Iterable[str] = TAP_CODE_PREFIXES,
        default_tap_clock: float = DEFAULT_TAP_CLOCK_POSITION,
    ) -> None:
        self.projector = projector
        self.geocoding = geocoding
        self.thresholds = thresholds
        self.feet_to_meters = feet_to_meters
        self.tap_prefixes = tuple(tap_prefixes)
        self.default_tap_clock = default_tap_clock

    @classmethod
    def from_config(cls, cfg: dict, geocoding: GeocodingService) -> "LateralAssembler":
        return cls(
            GeometryProjector.from_config(cfg["geometry"]),
            geocoding,
            thresholds=SwapThresholds.from_config(cfg["validator"]["swap"]),
            feet_to_meters=float(cfg["units"]["feet_to_meters"]),
            tap_prefixes=[str(prefix) for prefix in cfg["taps"]["code_prefixes"]],
            default_tap_clock=float(cfg["taps"]["default_clock_position"]),
        )

    def close(self) -> None:
        self.geocoding.close()

    def _validate(self, position: Position | None) -> Position | None:
        if position is None:
            return None
        return validate_coordinates(position, self.thresholds)

    def _to_meters(self, distance: float, inspection: InspectionRecord | None) -> float:
        if inspection is not None and inspection.is_imperial:
            return distance * self.feet_to_meters
        return distance

    def _stub_positions(
        self, asset: Asset, distance_m: float, clock_position: float | None
    ) -> tuple[Position | None, tuple[Position, Position] | None]:
        try:
            stub = self.projector.stub(asset, distance_m, clock_position)
        except GeometryError as exc:
            logger.warning("stub unavailable: %s", exc, extra={"asset_key": asset.key, "error_code": exc.error_code})
            return None, None

        connection = self._validate(stub.connection_point)
        start = self._validate(stub.stub_line[0])
        end = self._validate(stub.stub_line[1])
        if start is None or end is None:
            logger.warning("stub line failed validation; using point geometry", extra={"asset_key": asset.key})
            return connection, None
        return connection, (start, end)

    def _skip(self, reason: str, record_id: str, **extra: Any) -> RecordOutcome:
        logger.warning("record skipped: %s", reason, extra={"reason": reason, **extra})
        return RecordOutcome(status="skipped", reason=reason, record_id=record_id)

    def _draft_lateral(
        self,
        asset: Asset,
        inspection: InspectionRecord,
        defect_count: int,
        sequence: int,
    ) -> tuple[RecordOutcome, LateralInspection | None]:
        ids = {"asset_key": asset.key, "inspection_id": inspection.inspection_id}
        if inspection.tap_distance is None or inspection.clock_position is None:
            return self._skip(SKIP_MISSING_TAP_FIELDS, inspection.inspection_id, **ids), None

        distance_m = self._to_meters(inspection.tap_distance, inspection)
        try:
            raw_position = self.projector.project(asset, distance_m, inspection.clock_position)
        except GeometryError as exc:
            return self._skip(SKIP_UNSUPPORTED_GEOMETRY, inspection.inspection_id, error_code=exc.error_code, **ids), None

        coordinates = self._validate(raw_position)
        if coordinates is None:
            return self._skip(SKIP_INVALID_COORDINATES, inspection.inspection_id, **ids), None

        connection_point, stub_line = self._stub_positions(asset, distance_m, inspection.clock_position)
        lateral = LateralInspection(
            id=lateral_id(asset.key, inspection.tap_distance, inspection.clock_position, sequence),
            coordinates=coordinates,
            asset_id=asset.key,
            tap_distance=inspection.tap_distance,
            clock_position=inspection.clock_position,
            address="",
            asset_coordinates=self._validate(reference_position(asset.geometry)),
            connection_point=connection_point,
            stub_line=stub_line,
            inspection_date=inspection.inspection_date,
            properties={
                **inspection.raw,
                "asset_id": asset.key,
                "inspection_id": inspection.inspection_id,
                "pipe_segment_reference": inspection.pipe_segment_reference,
                "tap_distance_m": distance_m,
                "defect_count": defect_count,
            },
        )
        return RecordOutcome(status="ok", record_id=lateral.id), lateral

    def _position_defect(self, asset: Asset, inspection: InspectionRecord, defect: DefectRecord) -> DefectRecord:
        if defect.distance is None or defect.clock_position is None:
            return defect
        try:
            raw_position = self.projector.project(
                asset, self._to_meters(defect.distance, inspection), defect.clock_position
            )
        except GeometryError as exc:
            logger.warning("defect position unavailable: %s", exc, extra={"defect_id": defect.id})
            return defect
        return replace(defect, coordinates=self._validate(raw_position))

    def _draft_tap(
        self, asset: Asset, inspection: InspectionRecord, defect: DefectRecord
    ) -> tuple[RecordOutcome, TapInspection | None]:
        ids = {"asset_key": asset.key, "defect_id": defect.id}
        clock_position = defect.clock_position if defect.clock_position is not None else self.default_tap_clock
        distance_m = self._to_meters(defect.distance, inspection)
        try:
            coordinates = self._validate(self.projector.project(asset, distance_m, clock_position))
        except GeometryError as exc:
            return self._skip(SKIP_UNSUPPORTED_GEOMETRY, defect.id, error_code=exc.error_code, **ids), None
        if coordinates is None:
            return self._skip(SKIP_INVALID_COORDINATES, defect.id, **ids), None

        inspection_id = defect.inspection_id or inspection.inspection_id
        tap = TapInspection(
            id=f"tap-{defect.id}",
            coordinates=coordinates,
            asset_id=asset.key,
            distance=defect.distance,
            clock_position=clock_position,
            address="",
            distance_m=distance_m,
            pipe_segment_reference=inspection.pipe_segment_reference,
            inspection_id=inspection_id,
            defect_code=defect.defect_code,
            inspection_date=inspection.inspection_date,
            properties={
                **defect.raw,
                "defect_id": defect.id,
                "inspection_id": inspection_id,
                "pipe_segment_reference": inspection.pipe_segment_reference,
            },
        )
        return RecordOutcome(status="ok", record_id=tap.id), tap

    def _defect_owners(
        self, joins: list[tuple[Asset, InspectionRecord, list[DefectRecord]]]
    ) -> dict[str, tuple[Asset, InspectionRecord, DefectRecord]]:
        """Pick one owning inspection per defect id, preferring the one the defect names."""
        owners: dict[str, tuple[Asset, InspectionRecord, DefectRecord]] = {}
        for asset, inspection, joined in joins:
            for defect in joined:
                current = owners.get(defect.id)
                if current is None:
                    owners[defect.id] = (asset, inspection, defect)
                elif (
                    defect.inspection_id is not None
                    and current[1].inspection_id != defect.inspection_id
                    and inspection.inspection_id == defect.inspection_id
                ):
                    owners[defect.id] = (asset, inspection, defect)
        return owners

    def _log_unjoined(self, defects: list[DefectRecord], owners: dict) -> int:
        unjoined: dict[str, DefectRecord] = {}
        for defect in defects:
            if defect.id not in owners:
                unjoined.setdefault(defect.id, defect)
        for position, defect in enumerate(unjoined.values()):
            logger.log(
                logging.WARNING if position < _UNJOINED_SAMPLE else logging.DEBUG,
                "defect joins no matched inspection",
                extra={"defect_id": defect.id, "inspection_id": defect.inspection_id, "reason": "unresolvable_join"},
            )
        return len(unjoined)

    def _with_addresses(self, records: list) -> list:
        results = self.geocoding.geocode_many(record.coordinates for record in records)
        return [
            replace(record, address=result.address, address_details=dict(result.details))
            for record, result in zip(records, results)
        ]

    def promote_taps(
        self,
        taps: Iterable[TapInspection],
        layer_name: str,
        assets: Iterable[Asset] | AssetIndex,
    ) -> list[LateralInspection]:
        """Re-emit taps as laterals in a caller-named layer, keeping their provenance."""
        taps = list(taps)
        index = assets if isinstance(assets, AssetIndex) else AssetIndex(assets)
        promoted: list[LateralInspection] = []
        for position, tap in enumerate(taps):
            coordinates = self._validate(tap.coordinates)
            if coordinates is None:
                logger.warning("tap coordinates failed validation", extra={"defect_id": tap.id})
                continue

            asset = index.get(tap.asset_id) or index.find_by_fid(tap.asset_id)
            connection_point = stub_line = asset_coordinates = None
            if asset is not None:
                distance_m = tap.distance_m if tap.distance_m is not None else tap.distance
                connection_point, stub_line = self._stub_positions(asset, distance_m, tap.clock_position)
                asset_coordinates = self._validate(reference_position(asset.geometry))

            promoted.append(
                LateralInspection(
                    id=tap_lateral_id(layer_name, position),
                    coordinates=coordinates,
                    asset_id=tap.asset_id,
                    tap_distance=tap.distance,
                    clock_position=tap.clock_position,
                    address=tap.address,
                    address_details=dict(tap.address_details),
                    asset_coordinates=asset_coordinates,
                    connection_point=connection_point,
                    stub_line=stub_line,
                    inspection_date=tap.inspection_date,
                    properties={
                        **tap.properties,
                        "layer_name": layer_name,
                        "source": "tap",
                        "tap_id": tap.id,
                        "defect_code": tap.defect_code,
                        "inspection_id": tap.inspection_id,
                        "original_pipe_segment_reference": tap.pipe_segment_reference,
                    },
                )
            )
        logger.info(
            "promoted taps to laterals",
            extra={"event": "PROMOTE_TAPS", "rows_in": len(taps), "rows_out": len(promoted)},
        )
        return promoted

    def assemble(
        self,
        assets: Iterable[Asset],
        inspections: Iterable[InspectionRecord],
        defects: Iterable[DefectRecord] = (),
        *,
        lateral_layer_name: str | None = None,
    ) -> AssemblyResult:
        assets = list(assets)
        inspections = list(inspections)
        defects = list(defects)

        index = AssetIndex(assets)
        matched = match_inspections_to_assets(inspections, index)
        defect_index = DefectIndex(defects)

        joins = [
            (asset, inspection, defect_index.for_inspection(inspection))
            for asset in index.assets.values()
            for inspection in matched.get(asset.key, [])
        ]
        owners = self._defect_owners(joins)
        unmatched_defects = self._log_unjoined(defects, owners)

        processed_defects: list[DefectRecord] = []
        tap_drafts: list[TapInspection] = []
        tap_outcomes: list[RecordOutcome] = []
        for asset, inspection, defect in owners.values():
            processed_defects.append(self._position_defect(asset, inspection, defect))
            if is_tap(defect, self.tap_prefixes):
                tap_outcome, tap = self._draft_tap(asset, inspection, defect)
                tap_outcomes.append(tap_outcome)
                if tap is not None:
                    tap_drafts.append(tap)

        outcomes: list[RecordOutcome] = []
        drafts: list[LateralInspection] = []
        for asset, inspection, joined in joins:
            outcome, lateral = self._draft_lateral(asset, inspection, len(joined), len(drafts))
            outcomes.append(outcome)
            if lateral is not None:
                drafts.append(lateral)

        laterals = self._with_addresses(drafts)
        taps = self._with_addresses(tap_drafts)

        promoted: list[LateralInspection] = []
        if lateral_layer_name:
            promoted = self.promote_taps(taps, lateral_layer_name, index)
            laterals.extend(promoted)

        matched_count = sum(len(group) for group in matched.values())
        skip_reasons = Counter(outcome.reason for outcome in outcomes if not outcome.ok)
        tap_skips = Counter(outcome.reason for outcome in tap_outcomes if not outcome.ok)
        stats = {
            "assets_count": len(assets),
            "inspections_count": len(inspections),
            "defects_input_count": len(defects),
            "matched_inspections": matched_count,
            "unmatched_inspections": len(inspections) - matched_count,
            "processed_count": len(drafts) + len(promoted),
            "skipped_count": sum(skip_reasons.values()),
            "skip_reasons": dict(sorted(skip_reasons.items())),
            "defect_count": len(processed_defects),
            "unmatched_defects": unmatched_defects,
            "tap_count": len(taps),
            "skipped_taps": dict(sorted(tap_skips.items())),
            "tap_laterals_count": len(promoted),
            "laterals_count": len(laterals),
            "geocoding": dict(self.geocoding.counters),
        }
        logger.info(
            "assembled laterals",
            extra={"event": "ASSEMBLE", "rows_in": len(inspections), "rows_out": len(laterals)},
        )
        return AssemblyResult(
            laterals=laterals,
            taps=taps,
            defects=processed_defects,
            outcomes=outcomes,
            stats=stats,
        )
