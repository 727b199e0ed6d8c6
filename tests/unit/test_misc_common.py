import json
import logging
from pathlib import Path

import pytest

from laterals.common.errors import InputFormatError
from laterals.common.fs import read_rows, write_json
from laterals.common.geometry import reference_position
from laterals.common.ids import generate_run_id, lateral_id, tap_lateral_id
from laterals.common.logging import build_logger, log_event


def test_generate_run_id_prefix():
    assert generate_run_id().startswith("run-")


def test_lateral_ids_are_stable():
    assert lateral_id("12", 10.0, 3.0, 0) == "lateral-12-10-3-0"
    assert lateral_id("12", 10.5, 2.5, 4) == "lateral-12-10.5-2.5-4"
    assert tap_lateral_id("Taps", 2) == "lateral-tap-Taps-2"


def test_reference_position_handles_missing_and_shapes():
    assert reference_position(None) is None
    assert reference_position({"type": "Point", "coordinates": [-121.0, 37.0]}) == (-121.0, 37.0)
    assert reference_position({"type": "LineString", "coordinates": [[-121.0, 37.0], [-120.0, 37.0]]}) == (-121.0, 37.0)
    assert reference_position({"type": "LineString", "coordinates": []}) is None


def test_read_rows_reads_csv_with_bom(tmp_path: Path):
    path = tmp_path / "inspections.csv"
    path.write_text("\ufeffInspectionID,PipeID\nI-1,7\n", encoding="utf-8")
    assert read_rows(path) == [{"InspectionID": "I-1", "PipeID": "7"}]


def test_read_rows_reads_json_list_and_rows_wrapper(tmp_path: Path):
    listed = tmp_path / "a.json"
    wrapped = tmp_path / "b.json"
    write_json(listed, [{"a": 1}])
    write_json(wrapped, {"rows": [{"a": 2}]})
    assert read_rows(listed) == [{"a": 1}]
    assert read_rows(wrapped) == [{"a": 2}]


def test_read_rows_rejects_bad_inputs(tmp_path: Path):
    with pytest.raises(InputFormatError):
        read_rows(tmp_path / "missing.csv")
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(InputFormatError):
        read_rows(broken)
    scalar = tmp_path / "scalar.json"
    write_json(scalar, {"a": 1})
    with pytest.raises(InputFormatError):
        read_rows(scalar)


def test_build_logger_writes_json_lines(tmp_path: Path):
    logger = build_logger("run-log", data_dir=tmp_path, level="INFO")
    log_event(logger, "stage start", stage="parse", event="STAGE_START", status="ok", rows_in=3)
    logging.getLogger("laterals.pipeline.test").warning("skipped", extra={"reason": "missing_tap_fields"})
    for handler in logging.getLogger("laterals").handlers:
        handler.flush()

    lines = (tmp_path / "run_meta" / "run-log.log.jsonl").read_text(encoding="utf-8").splitlines()
    first, second = (json.loads(line) for line in lines[:2])

    assert first["run_id"] == "run-log"
    assert first["event"] == "STAGE_START"
    assert first["rows_in"] == 3
    assert second["reason"] == "missing_tap_fields"
    assert second["level"] == "WARNING"
    assert second["logger"] == "laterals.pipeline.test"
