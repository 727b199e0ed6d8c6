"""Run identifier helpers."""

from __future__ import annotations

from datetime import datetime, timezone


def generate_run_id() -> str:
    now = datetime.now(tz=timezone.utc)
    # Sortable id without external dependency.
    return now.strftime("run-%Y%m%dT%H%M%S%fZ")


def lateral_id(asset_key: str, tap_distance: float, clock_position: float, sequence: int) -> str:
    return f"lateral-{asset_key}-{tap_distance:g}-{clock_position:g}-{sequence}"


def tap_lateral_id(layer_name: str, index: int) -> str:
    return f"lateral-tap-{layer_name}-{index}"
