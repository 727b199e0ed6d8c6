"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from laterals.common.errors import ConfigError

SECTION_KEYS = {
    "geometry": {"ellipsoid", "stub_length_m", "lateral_offset_m", "tangent_sample_m"},
    "units": {"feet_to_meters"},
    "validator": {"swap"},
    "geocoding": {
        "enabled",
        "endpoint",
        "access_token_env",
        "timeout_seconds",
        "max_workers",
        "cache_precision",
        "rate_per_sec",
    },
    "taps": {"code_prefixes", "default_clock_position"},
    "fields": set(),
}
FIELD_FAMILIES = {"asset", "inspection", "defect"}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number")


def validate_processing_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    if not isinstance(cfg, dict):
        raise ConfigError("processing config must be a mapping")

    _assert_required_keys(cfg, set(SECTION_KEYS), "processing config")
    _assert_no_unknown_keys(cfg, set(SECTION_KEYS), "processing config", allow_unknown)

    for section, keys in SECTION_KEYS.items():
        if not isinstance(cfg[section], dict):
            raise ConfigError(f"{section} must be a mapping")
        _assert_required_keys(cfg[section], keys, section)
        if keys:
            _assert_no_unknown_keys(cfg[section], keys, section, allow_unknown)

    _assert_required_keys(
        cfg["validator"]["swap"],
        {"lat_ceiling", "magnitude_ratio", "certain_lat"},
        "validator.swap",
    )
    _assert_no_unknown_keys(cfg["fields"], FIELD_FAMILIES, "fields", allow_unknown)

    for key in ("stub_length_m", "lateral_offset_m", "tangent_sample_m"):
        _assert_positive(cfg["geometry"][key], f"geometry.{key}")
    _assert_positive(cfg["units"]["feet_to_meters"], "units.feet_to_meters")
    _assert_positive(cfg["geocoding"]["timeout_seconds"], "geocoding.timeout_seconds")
    _assert_positive(cfg["geocoding"]["max_workers"], "geocoding.max_workers")

    prefixes = cfg["taps"]["code_prefixes"]
    if not isinstance(prefixes, list) or not prefixes:
        raise ConfigError("taps.code_prefixes must be a non-empty list")

    return cfg
