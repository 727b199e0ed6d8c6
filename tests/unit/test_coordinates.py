import math

from laterals.pipeline.coordinates import SwapThresholds, clamp, validate_coordinates


def test_lat_lng_pair_is_swapped_to_lng_lat():
    assert validate_coordinates([37.6789, -121.8453]) == (-121.8453, 37.6789)


def test_lng_lat_pair_is_kept():
    assert validate_coordinates([-121.8453, 37.6789]) == (-121.8453, 37.6789)


def test_longitude_out_of_range_is_wrapped():
    lng, lat = validate_coordinates([200, 45])
    assert lat == 45
    assert math.isclose(lng, -160)


def test_result_never_has_latitude_beyond_poles():
    result = validate_coordinates([91, 45])
    assert result is not None
    assert -90 <= result[1] <= 90
    assert result == (91.0, 45.0)


def test_latitude_out_of_range_is_clamped_when_not_swappable():
    lng, lat = validate_coordinates([-100, -95])
    assert lat == -90
    assert lng == -95


def test_rejects_non_numeric_and_short_inputs():
    assert validate_coordinates(None) is None
    assert validate_coordinates([1.0]) is None
    assert validate_coordinates(["a", 2.0]) is None
    assert validate_coordinates([float("nan"), 2.0]) is None
    assert validate_coordinates([True, 2.0]) is None


def test_tuple_input_is_accepted():
    assert validate_coordinates((-84.39, 33.75)) == (-84.39, 33.75)


def test_small_magnitude_pair_near_equator_follows_thresholds():
    # Both readings are plausible; the smaller magnitude is taken as latitude.
    assert validate_coordinates([5.0, 30.0]) == (30.0, 5.0)
    relaxed = SwapThresholds(lat_ceiling=60.0, magnitude_ratio=0.0, certain_lat=0.0)
    assert validate_coordinates([5.0, 30.0], relaxed) == (5.0, 30.0)


def test_clamp_within_bounds():
    assert clamp(-5, minimum=0, maximum=100) == 0
    assert clamp(50, minimum=0, maximum=100) == 50
    assert clamp(150, minimum=0, maximum=100) == 100


def test_swap_thresholds_from_config_defaults():
    assert SwapThresholds.from_config(None) == SwapThresholds()
    assert SwapThresholds.from_config({"lat_ceiling": 70}).lat_ceiling == 70.0
