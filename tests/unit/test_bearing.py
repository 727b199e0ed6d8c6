from laterals.pipeline.bearing import CENTER, LEFT, RIGHT, SideReading, clock_to_bearing, clock_to_side, normalize_bearing


def test_clock_to_bearing_cardinal_hours():
    assert clock_to_bearing(12) == 0
    assert clock_to_bearing(3) == 90
    assert clock_to_bearing(6) == 180
    assert clock_to_bearing(9) == 270


def test_clock_to_bearing_wraps_past_twelve():
    assert clock_to_bearing(15) == 90
    assert clock_to_bearing(0) == 0
    assert clock_to_bearing(1.5) == 45


def test_normalize_bearing():
    assert normalize_bearing(-90) == 270
    assert normalize_bearing(450) == 90
    assert normalize_bearing(-1e-20) == 0.0


def test_clock_to_side_high_confidence():
    assert clock_to_side(3) == SideReading(RIGHT, "high")
    assert clock_to_side(9) == SideReading(LEFT, "high")
    assert clock_to_side(15) == SideReading(RIGHT, "high")


def test_clock_to_side_low_confidence_and_ambiguous():
    assert clock_to_side(2) == SideReading(RIGHT, "low")
    assert clock_to_side(10.5) == SideReading(LEFT, "low")
    assert clock_to_side(12) == SideReading(CENTER, "low")
    assert clock_to_side(6) == SideReading(CENTER, "low")
    assert clock_to_side(0) == SideReading(CENTER, "low")


def test_clock_to_side_missing_reading():
    assert clock_to_side(None) == SideReading(CENTER, "none")
