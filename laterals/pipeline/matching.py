"""Join assets, inspections and defects on noisy identifiers.

Identifiers arrive with stray whitespace, mixed case and zero padding
("007" in the inspection table, 7 in the GIS layer). Every index keeps three
tiers per key (as written, lowercased, integer form for all-digit keys) and
lookups walk the tiers in that order, so an exact match always beats a
normalised one.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Generic, Iterable, TypeVar

from laterals.common.constants import TAP_CODE_PREFIXES
from laterals.common.models import Asset, DefectRecord, InspectionRecord
from laterals.pipeline.parse import key_text

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DIGITS_RE = re.compile(r"^\d+$", re.ASCII)
_UNMATCHED_SAMPLE = 5


def key_tiers(value: object) -> tuple[str | None, str | None, str | None]:
    text = key_text(value)
    if text is None:
        return None, None, None
    numeric = str(int(text)) if _DIGITS_RE.match(text) else None
    return text, text.lower(), numeric


class KeyIndex(Generic[T]):
    """Single-valued tolerant lookup; the first registration of a key wins."""

    def __init__(self) -> None:
        self.tiers: tuple[dict[str, T], dict[str, T], dict[str, T]] = ({}, {}, {})

    def add(self, key: object, value: T) -> None:
        for tier, variant in zip(self.tiers, key_tiers(key)):
            if variant is not None:
                tier.setdefault(variant, value)

    def get(self, key: object) -> T | None:
        for tier, variant in zip(self.tiers, key_tiers(key)):
            if variant is not None and variant in tier:
                return tier[variant]
        return None

    def __len__(self) -> int:
        return len(self.tiers[0])


class MultiKeyIndex(Generic[T]):
    def __init__(self) -> None:
        self.tiers: tuple[dict[str, list[T]], dict[str, list[T]], dict[str, list[T]]] = ({}, {}, {})

    def add(self, key: object, value: T) -> None:
        for tier, variant in zip(self.tiers, key_tiers(key)):
            if variant is not None:
                tier.setdefault(variant, []).append(value)

    def get(self, key: object) -> list[T]:
        for tier, variant in zip(self.tiers, key_tiers(key)):
            if variant is not None and variant in tier:
                return list(tier[variant])
        return []

    def __len__(self) -> int:
        return len(self.tiers[0])


class AssetIndex:
    def __init__(self, assets: Iterable[Asset]) -> None:
        self.assets: dict[str, Asset] = {}
        self.by_reference: KeyIndex[str] = KeyIndex()
        self.by_asset_id: KeyIndex[str] = KeyIndex()

        for asset in assets:
            if asset.key in self.assets:
                continue
            self.assets[asset.key] = asset
            if asset.fid is not None:
                # FID is what the inspection table calls the pipe segment reference.
                self.by_reference.add(asset.fid, asset.key)
            elif asset.asset_id is not None:
                self.by_asset_id.add(asset.asset_id, asset.key)

        logger.debug(
            "built asset lookup: %s pipe segment references, %s asset ids",
            len(self.by_reference),
            len(self.by_asset_id),
        )

    def __len__(self) -> int:
        return len(self.assets)

    def get(self, key: str) -> Asset | None:
        return self.assets.get(key)

    def resolve(self, inspection: InspectionRecord) -> str | None:
        matched = self.by_reference.get(inspection.pipe_segment_reference)
        if matched is None and inspection.asset_id is not None:
            matched = self.by_asset_id.get(inspection.asset_id)
        return matched

    def find_by_fid(self, value: object) -> Asset | None:
        key = self.by_reference.get(value)
        return self.assets.get(key) if key is not None else None


def match_inspections_to_assets(
    inspections: Iterable[InspectionRecord],
    assets: Iterable[Asset] | AssetIndex,
) -> dict[str, list[InspectionRecord]]:
    index = assets if isinstance(assets, AssetIndex) else AssetIndex(assets)
    matched: dict[str, list[InspectionRecord]] = {}
    unmatched = 0

    for inspection in inspections:
        asset_key = index.resolve(inspection)
        if asset_key is None:
            unmatched += 1
            logger.log(
                logging.WARNING if unmatched <= _UNMATCHED_SAMPLE else logging.DEBUG,
                "unmatched inspection for pipe segment reference %s",
                inspection.pipe_segment_reference,
                extra={"inspection_id": inspection.inspection_id, "reason": "unresolvable_join"},
            )
            continue
        matched.setdefault(asset_key, []).append(inspection)

    logger.info(
        "matched %s assets with inspections out of %s; %s inspections unmatched",
        len(matched),
        len(index),
        unmatched,
        extra={"event": "MATCH_INSPECTIONS", "rows_out": sum(len(v) for v in matched.values())},
    )
    return matched


class DefectIndex:
    def __init__(self, defects: Iterable[DefectRecord]) -> None:
        self.by_inspection: MultiKeyIndex[DefectRecord] = MultiKeyIndex()
        self.by_reference: MultiKeyIndex[DefectRecord] = MultiKeyIndex()
        for defect in defects:
            if defect.inspection_id is not None:
                self.by_inspection.add(defect.inspection_id, defect)
            if defect.pipe_segment_reference is not None:
                self.by_reference.add(defect.pipe_segment_reference, defect)

    def for_inspection(self, inspection: InspectionRecord) -> list[DefectRecord]:
        found = self.by_inspection.get(inspection.inspection_id)
        seen = {defect.id for defect in found}
        for defect in self.by_reference.get(inspection.pipe_segment_reference):
            if defect.id not in seen:
                seen.add(defect.id)
                found.append(defect)
        return found


def is_tap(defect: DefectRecord, prefixes: Iterable[str] = TAP_CODE_PREFIXES) -> bool:
    code = (defect.defect_code or "").strip().upper()
    if not code.startswith(tuple(prefix.upper() for prefix in prefixes)):
        return False
    return defect.distance is not None and not math.isnan(defect.distance)
