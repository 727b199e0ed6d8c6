from laterals.common.models import Asset, DefectRecord, InspectionRecord
from laterals.pipeline.matching import (
    AssetIndex,
    DefectIndex,
    KeyIndex,
    is_tap,
    key_tiers,
    match_inspections_to_assets,
)

LINE = {"type": "LineString", "coordinates": [[-121.0, 37.0], [-120.99, 37.0]]}


def _asset(key, fid=None, asset_id=None):
    return Asset(key=key, geometry=LINE, properties={}, fid=fid, asset_id=asset_id)


def _inspection(inspection_id, ref, asset_id=None):
    return InspectionRecord(inspection_id=inspection_id, pipe_segment_reference=ref, asset_id=asset_id or ref)


def test_key_tiers():
    assert key_tiers(" 007 ") == ("007", "007", "7")
    assert key_tiers("ABC") == ("ABC", "abc", None)
    assert key_tiers(None) == (None, None, None)


def test_key_index_prefers_exact_match():
    index: KeyIndex[str] = KeyIndex()
    index.add("abc", "lower")
    index.add("ABC", "upper")
    assert index.get("ABC") == "upper"
    assert index.get("Abc") == "lower"


def test_zero_padded_reference_matches_numeric_fid():
    matched = match_inspections_to_assets([_inspection("I-1", "007")], [_asset("7", fid="7")])
    assert list(matched) == ["7"]


def test_reference_match_is_case_insensitive():
    matched = match_inspections_to_assets([_inspection("I-1", "abc")], [_asset("ABC", fid="ABC")])
    assert [record.inspection_id for record in matched["ABC"]] == ["I-1"]


def test_asset_id_fallback_when_fid_absent():
    assets = [_asset("MH-9", asset_id="MH-9")]
    matched = match_inspections_to_assets([_inspection("I-1", "unknown", asset_id="mh-9")], assets)
    assert list(matched) == ["MH-9"]


def test_unmatched_inspections_are_excluded():
    matched = match_inspections_to_assets(
        [_inspection("I-1", "1"), _inspection("I-2", "99")],
        [_asset("1", fid="1")],
    )
    assert sum(len(group) for group in matched.values()) == 1


def test_asset_index_find_by_fid():
    index = AssetIndex([_asset("12", fid="12"), _asset("MH-1", asset_id="MH-1")])
    assert index.find_by_fid("012").key == "12"
    assert index.find_by_fid("MH-1") is None
    assert len(index) == 2


def test_defect_index_joins_by_inspection_and_reference():
    defects = [
        DefectRecord(id="d1", inspection_id="I-1"),
        DefectRecord(id="d2", pipe_segment_reference="0007"),
        DefectRecord(id="d3", inspection_id="I-1", pipe_segment_reference="0007"),
        DefectRecord(id="d4", inspection_id="I-9"),
    ]
    index = DefectIndex(defects)
    found = index.for_inspection(_inspection("i-1", "7"))
    assert [defect.id for defect in found] == ["d1", "d3", "d2"]


def test_is_tap_requires_prefix_and_distance():
    assert is_tap(DefectRecord(id="a", defect_code="TF1", distance=4.0))
    assert is_tap(DefectRecord(id="b", defect_code=" tbb ", distance=0.0))
    assert not is_tap(DefectRecord(id="c", defect_code="TF", distance=None))
    assert not is_tap(DefectRecord(id="d", defect_code="CL", distance=4.0))
    assert not is_tap(DefectRecord(id="e", defect_code=None, distance=4.0))
