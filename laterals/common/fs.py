"""Filesystem helpers."""

from __future__ import annotations

import csv
import json
from pathlib import Path

from laterals.common.errors import InputFormatError


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def read_yaml(path: Path):
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def write_json(path: Path, payload) -> None:
    ensure_dir(path.parent)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2, sort_keys=True)
        f.write("\n")


def read_json(path: Path):
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def read_csv_rows(path: Path) -> list[dict]:
    # utf-8-sig drops the BOM some database exporters prepend.
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        return list(csv.DictReader(f))


def read_rows(path: Path) -> list[dict]:
    """Read tabular rows from a CSV export or a JSON list of objects."""
    if not path.exists():
        raise InputFormatError(f"Missing input file: {path}")
    if path.suffix.lower() == ".csv":
        return read_csv_rows(path)
    try:
        payload = read_json(path)
    except ValueError as exc:
        raise InputFormatError(f"Invalid JSON in {path}: {exc}") from exc
    if isinstance(payload, dict) and isinstance(payload.get("rows"), list):
        payload = payload["rows"]
    if not isinstance(payload, list):
        raise InputFormatError(f"Expected a list of rows in {path}")
    return payload
