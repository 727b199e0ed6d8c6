import math

import pytest
from pyproj import Geod

from laterals.common.errors import UnsupportedGeometryError
from laterals.common.models import Asset
from laterals.pipeline.projector import GeometryProjector

GEOD = Geod(ellps="WGS84")

EAST_LINE = Asset(
    key="1",
    geometry={"type": "LineString", "coordinates": [[-121.0, 37.0], [-120.99, 37.0]]},
    properties={"FID": 1},
    fid="1",
)


def _distance(a, b) -> float:
    return GEOD.inv(a[0], a[1], b[0], b[1])[2]


def _azimuth(a, b) -> float:
    return GEOD.inv(a[0], a[1], b[0], b[1])[0] % 360


def test_along_walks_the_line():
    projector = GeometryProjector()
    positions = [(-121.0, 37.0), (-120.99, 37.0)]
    point = projector.along(positions, 10.0)
    assert math.isclose(_distance(positions[0], point), 10.0, abs_tol=1e-6)


def test_along_clamps_past_the_end():
    projector = GeometryProjector()
    positions = [(-121.0, 37.0), (-120.99, 37.0)]
    length = projector.line_length(positions)
    assert projector.along(positions, length + 500) == positions[-1]


def test_along_skips_repeated_vertices():
    projector = GeometryProjector()
    positions = [(-121.0, 37.0), (-121.0, 37.0), (-120.99, 37.0)]
    point = projector.along(positions, 5.0)
    assert math.isclose(_distance(positions[0], point), 5.0, abs_tol=1e-6)


def test_project_on_line_offsets_to_the_right():
    projector = GeometryProjector()
    lateral = projector.project(EAST_LINE, 10.0, 3)
    connection = projector.along([(-121.0, 37.0), (-120.99, 37.0)], 10.0)

    assert math.isclose(_distance(connection, lateral), 2.0, abs_tol=1e-3)
    assert abs(_azimuth(connection, lateral) - 180.0) < 0.5


def test_project_on_line_with_ambiguous_side_stays_on_line():
    projector = GeometryProjector()
    lateral = projector.project(EAST_LINE, 10.0, 12)
    connection = projector.along([(-121.0, 37.0), (-120.99, 37.0)], 10.0)
    assert _distance(connection, lateral) < 1e-6


def test_project_beyond_line_length_clamps_to_end():
    projector = GeometryProjector()
    lateral = projector.project(EAST_LINE, 100_000.0, 12)
    assert _distance((-120.99, 37.0), lateral) < 1e-6


def test_stub_is_perpendicular_and_fixed_length():
    projector = GeometryProjector()
    stub = projector.stub(EAST_LINE, 10.0, 3)
    start, end = stub.stub_line

    assert start == stub.connection_point
    assert math.isclose(_distance((-121.0, 37.0), stub.connection_point), 10.0, abs_tol=1e-3)
    assert math.isclose(_distance(start, end), 3.048, abs_tol=1e-3)
    assert abs(_azimuth(start, end) - 180.0) < 0.5


def test_stub_on_left_side_points_north():
    projector = GeometryProjector()
    start, end = projector.stub(EAST_LINE, 10.0, 9).stub_line
    assert _azimuth(start, end) < 0.5 or _azimuth(start, end) > 359.5


def test_stub_with_ambiguous_side_defaults_right():
    projector = GeometryProjector()
    start, end = projector.stub(EAST_LINE, 10.0, None).stub_line
    assert abs(_azimuth(start, end) - 180.0) < 0.5


def test_point_asset_projects_along_clock_bearing():
    projector = GeometryProjector()
    asset = Asset(key="mh-1", geometry={"type": "Point", "coordinates": [-121.0, 37.0]}, properties={})

    lateral = projector.project(asset, 10.0, 3)
    assert math.isclose(_distance((-121.0, 37.0), lateral), 10.0, abs_tol=1e-6)
    assert abs(_azimuth((-121.0, 37.0), lateral) - 90.0) < 0.01

    stub = projector.stub(asset, 10.0, 6)
    assert stub.connection_point == (-121.0, 37.0)
    assert abs(_azimuth(*stub.stub_line) - 180.0) < 0.01


def test_multilinestring_uses_first_member():
    projector = GeometryProjector()
    asset = Asset(
        key="2",
        geometry={
            "type": "MultiLineString",
            "coordinates": [[[-121.0, 37.0], [-120.99, 37.0]], [[-80.0, 25.0], [-80.1, 25.0]]],
        },
        properties={},
    )
    lateral = projector.project(asset, 10.0, 12)
    assert _distance((-121.0, 37.0), lateral) < 11.0


def test_unsupported_geometry_raises():
    projector = GeometryProjector()
    asset = Asset(key="3", geometry={"type": "Polygon", "coordinates": []}, properties={})
    with pytest.raises(UnsupportedGeometryError) as excinfo:
        projector.project(asset, 1.0, 3)
    assert excinfo.value.geometry_type == "Polygon"


def test_from_config_reads_geometry_section():
    projector = GeometryProjector.from_config(
        {"ellipsoid": "WGS84", "stub_length_m": 1.5, "lateral_offset_m": 0.5, "tangent_sample_m": 2.0}
    )
    assert projector.stub_length_m == 1.5
    assert projector.lateral_offset_m == 0.5
    assert projector.tangent_sample_m == 2.0
