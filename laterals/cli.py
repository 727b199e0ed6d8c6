"""CLI entrypoint for the lateral locator."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from laterals.common.config_loader import load_processing_config
from laterals.common.constants import COMMANDS, EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from laterals.common.errors import InputFormatError, PipelineError
from laterals.common.fields import FieldAliases
from laterals.common.fs import read_json, read_rows, write_json
from laterals.common.ids import generate_run_id
from laterals.common.logging import build_logger, log_event
from laterals.common.time_utils import utc_timestamp_iso
from laterals.geocoding.mapbox import MapboxGeocoder
from laterals.geocoding.service import GeocodingService
from laterals.pipeline.assemble import LateralAssembler
from laterals.pipeline.export import laterals_to_geojson, taps_to_geojson, write_outputs
from laterals.pipeline.parse import parse_assets, parse_defect_rows, parse_inspection_rows
from laterals.pipeline.reports import run_status, write_run_summary
from laterals.pipeline.validate import run_validate, validate_feature_collection


def parse_args(argv: list[str]) -> argparse.Namespace:
    shared = argparse.ArgumentParser(add_help=False)
    shared.add_argument("--run-id", default=None)
    shared.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    shared.add_argument("--out-dir", default="./out")

    parser = argparse.ArgumentParser(description=__doc__)
    commands = parser.add_subparsers(dest="command", required=True)

    process = commands.add_parser(COMMANDS[0], help="build laterals and taps from inspection exports", parents=[shared])
    process.add_argument("--assets", required=True)
    process.add_argument("--inspections", required=True)
    process.add_argument("--defects", default=None)
    process.add_argument("--lateral-layer-name", default=None)
    process.add_argument("--config-dir", default="./config")
    process.add_argument("--overlay-config-dir", default=None)
    process.add_argument("--no-geocode", action="store_true")
    process.add_argument("--strict", action="store_true")

    validate = commands.add_parser(COMMANDS[1], help="validate an exported GeoJSON file", parents=[shared])
    validate.add_argument("--geojson", required=True)
    return parser.parse_args(argv)


def _read_assets(path: Path) -> dict:
    if not path.exists():
        raise InputFormatError(f"Missing input file: {path}")
    try:
        return read_json(path)
    except ValueError as exc:
        raise InputFormatError(f"Invalid JSON in {path}: {exc}") from exc


def run_process(args: argparse.Namespace, logger: logging.Logger, run_id: str) -> int:
    out_dir = Path(args.out_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    cfg = load_processing_config(Path(args.config_dir), overlay_config_dir=overlay_config_dir)
    aliases = FieldAliases.from_config(cfg["fields"])

    started = time.monotonic()
    log_event(logger, "stage start", stage="parse", event="STAGE_START", status="ok")
    assets = parse_assets(_read_assets(Path(args.assets)), aliases)
    inspections = parse_inspection_rows(read_rows(Path(args.inspections)), aliases)
    defects = parse_defect_rows(read_rows(Path(args.defects)), aliases) if args.defects else []
    log_event(
        logger,
        "stage end",
        stage="parse",
        event="STAGE_END",
        status="ok",
        rows_out=len(assets) + len(inspections) + len(defects),
        duration_ms=round((time.monotonic() - started) * 1000),
    )

    geocoder = None if args.no_geocode else MapboxGeocoder.from_config(cfg["geocoding"])
    assembler = LateralAssembler.from_config(cfg, GeocodingService.from_config(cfg["geocoding"], geocoder))
    started = time.monotonic()
    log_event(logger, "stage start", stage="assemble", event="STAGE_START", status="ok")
    try:
        result = assembler.assemble(assets, inspections, defects, lateral_layer_name=args.lateral_layer_name)
    finally:
        assembler.close()
        if geocoder is not None:
            geocoder.close()
    log_event(
        logger,
        "stage end",
        stage="assemble",
        event="STAGE_END",
        status="ok",
        rows_in=len(inspections),
        rows_out=len(result.laterals),
        duration_ms=round((time.monotonic() - started) * 1000),
    )

    outputs = write_outputs(out_dir, result.laterals, result.taps, result.defects)
    validation_reports = {
        "laterals": validate_feature_collection(laterals_to_geojson(result.laterals)),
        "taps": validate_feature_collection(taps_to_geojson(result.taps)),
    }
    write_json(out_dir / "reports" / "export_validation.json", validation_reports)
    write_run_summary(
        out_dir,
        run_id=run_id,
        generated_at=utc_timestamp_iso(),
        stats=result.stats,
        validation_reports=validation_reports,
        outputs=outputs,
        strict=args.strict,
    )

    status = run_status(result.stats, validation_reports, strict=args.strict)
    log_event(
        logger,
        "run complete",
        stage="report",
        event="RUN_END",
        status=status,
        rows_out=result.stats["processed_count"],
    )
    return EXIT_PARTIAL if status == "partial" else EXIT_SUCCESS


def run_validate_command(args: argparse.Namespace, logger: logging.Logger) -> int:
    report_path, report = run_validate(Path(args.geojson), Path(args.out_dir))
    log_event(
        logger,
        f"validation report written to {report_path}",
        stage="validate",
        event="STAGE_END",
        status="ok" if report["is_valid"] else "error",
        rows_in=report["statistics"]["total_features"],
    )
    return EXIT_SUCCESS if report["is_valid"] else EXIT_PARTIAL


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    logger = build_logger(run_id, data_dir=Path(args.out_dir), level=args.log_level)

    try:
        if args.command == "process":
            return run_process(args, logger, run_id)
        return run_validate_command(args, logger)
    except PipelineError as exc:
        log_event(
            logger,
            f"{args.command} failed: {exc}",
            level=logging.ERROR,
            stage=args.command,
            event="STAGE_FAIL",
            status="error",
            error_code=exc.error_code,
        )
        return EXIT_HARD_FAIL
    except Exception:
        logger.exception(
            "unexpected failure",
            extra={"stage": args.command, "event": "STAGE_FAIL", "status": "error", "error_code": "UNEXPECTED_ERROR"},
        )
        return EXIT_HARD_FAIL


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    return run_command(args)


if __name__ == "__main__":
    raise SystemExit(main())
