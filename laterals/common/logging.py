"""JSON logging with stable schema."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from laterals.common.constants import JSON_LOG_FIELDS
from laterals.common.fs import ensure_dir
from laterals.common.time_utils import utc_timestamp_iso

ROOT_LOGGER_NAME = "laterals"


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": utc_timestamp_iso(),
            "run_id": getattr(record, "run_id", None),
            "stage": getattr(record, "stage", None),
            "event": getattr(record, "event", None),
            "status": getattr(record, "status", None),
            "asset_key": getattr(record, "asset_key", None),
            "inspection_id": getattr(record, "inspection_id", None),
            "defect_id": getattr(record, "defect_id", None),
            "reason": getattr(record, "reason", None),
            "error_code": getattr(record, "error_code", None),
            "rows_in": getattr(record, "rows_in", None),
            "rows_out": getattr(record, "rows_out", None),
            "duration_ms": getattr(record, "duration_ms", None),
            "message": record.getMessage(),
        }
        for field in JSON_LOG_FIELDS:
            payload.setdefault(field, None)
        payload["level"] = record.levelname
        payload["logger"] = record.name
        return json.dumps(payload, ensure_ascii=False, default=str)


class RunContextFilter(logging.Filter):
    """Stamp every record passing through a handler with the current run id."""

    def __init__(self, run_id: str) -> None:
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "run_id", None) is None:
            record.run_id = self.run_id
        return True


def build_logger(run_id: str, data_dir: Path, level: str = "INFO") -> logging.Logger:
    # Handlers live on the package root so module loggers share them.
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()
    root.propagate = False

    context = RunContextFilter(run_id)

    stream = logging.StreamHandler()
    stream.setFormatter(JsonLineFormatter())
    stream.addFilter(context)
    root.addHandler(stream)

    log_path = data_dir / "run_meta" / f"{run_id}.log.jsonl"
    ensure_dir(log_path.parent)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(JsonLineFormatter())
    file_handler.addFilter(context)
    root.addHandler(file_handler)

    return logging.getLogger(f"{ROOT_LOGGER_NAME}.run")


def log_event(logger: logging.Logger, message: str, *, level: int = logging.INFO, **event_fields: Any) -> None:
    logger.log(level, message, extra=event_fields)
