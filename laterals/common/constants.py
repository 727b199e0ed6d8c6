"""Application constants."""

USER_AGENT = "lateral-locator/0.3 (+inspection-processing)"
COMMANDS = (
    "process",
    "validate",
)
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20

FEET_TO_METERS = 0.3048
DEFAULT_STUB_LENGTH_M = 3.048
DEFAULT_LATERAL_OFFSET_M = 2.0
DEFAULT_TANGENT_SAMPLE_M = 1.0
DEFAULT_GEOCODE_TIMEOUT_S = 5.0

TAP_CODE_PREFIXES = ("TB", "TF", "TS")
DEFAULT_TAP_CLOCK_POSITION = 12.0

ADDRESS_NOT_FOUND = "Address not found"
GEOCODING_FAILED = "Geocoding failed"

SKIP_MISSING_TAP_FIELDS = "missing_tap_fields"
SKIP_UNSUPPORTED_GEOMETRY = "unsupported_geometry"
SKIP_INVALID_COORDINATES = "invalid_coordinates"

JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "event",
    "status",
    "asset_key",
    "inspection_id",
    "defect_id",
    "reason",
    "error_code",
    "rows_in",
    "rows_out",
    "duration_ms",
    "message",
)
