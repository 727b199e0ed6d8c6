from pathlib import Path

import pytest

from laterals.cli import parse_args, run_command
from laterals.common.fs import write_json

ASSETS = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "geometry": {
                "type": "MultiLineString",
                "coordinates": [[[-84.39, 33.75], [-84.3895, 33.7504], [-84.389, 33.7504]]],
            },
            "properties": {"FID": "0042"},
        },
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [-84.38, 33.76]},
            "properties": {"id": "MH-1"},
        },
    ],
}

INSPECTIONS = [
    {"Inspection_ID": "A1", "PipeSegmentReference": "42", "TapDistance": "15.5", "ClockPosition": "2"},
    {"Inspection_ID": "A2", "PipeSegmentReference": "42", "TapDistance": "40", "ClockPosition": "10"},
    {"Inspection_ID": "A3", "PipeSegmentReference": "mh-1", "TapDistance": "3", "ClockPosition": "4.5"},
]

DEFECTS = [
    {"InspectionID": "A1", "PACP_Code": "TSA", "Distance": "22", "Clock_Position": "3"},
    {"PipeSegRef": "42", "PACP_Code": "TBD", "Distance": "55"},
    {"InspectionID": "A3", "PACP_Code": "FL", "Distance": "1", "Clock_Position": "6"},
]


def _run_once(tmp_path: Path, name: str, run_id: str) -> Path:
    inputs = tmp_path / "inputs"
    write_json(inputs / "assets.geojson", ASSETS)
    write_json(inputs / "inspections.json", INSPECTIONS)
    write_json(inputs / "defects.json", {"rows": DEFECTS})
    out_dir = tmp_path / name
    args = parse_args(
        [
            "process",
            "--assets",
            str(inputs / "assets.geojson"),
            "--inspections",
            str(inputs / "inspections.json"),
            "--defects",
            str(inputs / "defects.json"),
            "--lateral-layer-name",
            "Taps",
            "--config-dir",
            "config",
            "--out-dir",
            str(out_dir),
            "--run-id",
            run_id,
            "--no-geocode",
        ]
    )
    assert run_command(args) == 0
    return out_dir


@pytest.mark.regression
def test_outputs_are_byte_stable_for_same_inputs(tmp_path: Path):
    first = _run_once(tmp_path, "first", "run-a")
    second = _run_once(tmp_path, "second", "run-b")

    for name in ("laterals.geojson", "taps.geojson", "defects.json", "reports/export_validation.json"):
        assert (first / name).read_bytes() == (second / name).read_bytes()


@pytest.mark.regression
def test_fixture_counts_are_stable(tmp_path: Path):
    out_dir = _run_once(tmp_path, "out", "run-c")
    laterals = (out_dir / "laterals.geojson").read_text(encoding="utf-8")

    assert laterals.count('"type": "Feature"') == 5
    assert '"source": "tap"' in laterals
    assert '"lateral-0042-15.5-2-0"' in laterals
