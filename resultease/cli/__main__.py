from __future__ import annotations

import argparse
import json
import sys
import time
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from resultease.config.loader import ConfigError, resolve_config
from resultease.domain.result_set import ResultSet
from resultease.excel.column_mapper import auto_map_columns
from resultease.excel.reader import StructuralError, preview_table
from resultease.logging.init import enable_debug, log_summary, setup_logging
from resultease.logging.issue_log import IssueLogBuffer
from resultease.models.config_models import AppConfig
from resultease.models.outcome import Failure, FailureKind
from resultease.models.processing_result import BatchResult, FileStat
from resultease.services.analytics import analyze_performance_trends
from resultease.services.pipeline import PipelineError, analyze_file, collect_issues
from resultease.services.progress import ProgressTracker
from resultease.services.report import build_analysis_report
from resultease.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env, then the YAML config (--config, $RESULTEASE_CONFIG, config/analysis.yml)
- Run every input file through the pipeline; log per-file outcomes
- Write row/field issues to the JSON Lines issue log
- Optionally write a JSON report and analyze trends across valid files
- Print the SUMMARY line last

Exit codes: 0 every file valid, 2 at least one file rejected, 1 fatal startup error.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env via python-dotenv; its values win over the inherited environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid integer: {text!r}") from e
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {value}")
    return value


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="resultease", description="Student result sheet analyzer")
    p.add_argument("files", nargs="*", type=Path, help="CSV / .xlsx / .xls result sheets")
    p.add_argument("--config", type=Path, default=None, help="YAML config path")
    p.add_argument("--sheet", default=None, help="Sheet name to read (default: first sheet)")
    p.add_argument("--header-row", type=_non_negative_int, default=None, help="0-based header row offset")
    p.add_argument("--max-rows", type=_non_negative_int, default=None, help="Cap on data rows per file")
    p.add_argument("--title", default=None, help="Result title (default: file stem)")
    p.add_argument("--json", type=Path, default=None, dest="json_path", help="Write the analysis report as JSON")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print headers, first rows and proposed mapping then exit")
    return p.parse_args(argv)


def _apply_cli_overrides(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    reader = cfg.reader
    if args.sheet is not None:
        reader = replace(reader, sheet_name=args.sheet)
    if args.header_row is not None:
        reader = replace(reader, header_row=args.header_row)
    if args.max_rows is not None:
        reader = replace(reader, max_rows=args.max_rows)
    return replace(cfg, reader=reader)


def _inspect_data(files: list[Path]) -> int:
    for f in files:
        print(f"FILE: {f.name}")
        try:
            table = preview_table(f.read_bytes(), f.name, max_rows=3)
        except (OSError, StructuralError) as e:
            print(f"  read_error: {e}")
            continue
        print(f"  SHEET: {table.metadata.sheet_name} cols={table.headers}")
        print("    sample_rows=", table.rows)
        mapping = auto_map_columns(table.headers, table.rows)
        for m in mapping.mappings:
            print(f"    map: {m.source_header} -> {m.target_field}")
        for s in mapping.suggestions:
            print(f"    suggest: {s.source_header} -> {s.suggested_field} ({s.confidence:.2f}) {s.reason}")
        if mapping.unmapped_headers:
            print(f"    unmapped: {mapping.unmapped_headers}")
    return EXIT_SUCCESS_ALL


def _failure_dict(failure: Failure) -> dict[str, Any]:
    return {"kind": failure.kind.value, "message": failure.message, "details": list(failure.details)}


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an empty list must not fall back to sys.argv (pytest args)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        enable_debug()
        logger.debug("debug mode enabled")

    if not args.files:
        logger.error("no input files given")
        return EXIT_FATAL

    try:
        cfg = _apply_cli_overrides(resolve_config(args.config), args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(args.files)

    start_time = datetime.now(UTC)
    issues = IssueLogBuffer()
    stats: list[FileStat] = []
    valid_sets: list[ResultSet] = []
    file_reports: list[dict[str, Any]] = []
    passed_students = 0

    with ProgressTracker(len(args.files)) as progress:
        for path in args.files:
            progress.start_file(path)
            t0 = time.perf_counter()
            try:
                outcome = analyze_file(path, cfg, title=args.title)
            except PipelineError as e:
                logger.error(f"{path.name}: {e}")
                stats.append(FileStat(path.name, "invalid", 0, 0.0, 0.0, time.perf_counter() - t0, str(e)))
                file_reports.append({"file": path.name, "status": "invalid",
                                     "failure": {"kind": FailureKind.IO.value, "message": str(e), "details": []}})
                progress.finish_file(success=False)
                continue
            elapsed = time.perf_counter() - t0
            issues.extend(collect_issues(path.name, outcome))

            if isinstance(outcome, Failure):
                logger.error(f"{path.name}: {outcome.kind.value}: {outcome.message}")
                for detail in outcome.details:
                    logger.warning(f"{path.name}: {detail}")
                stats.append(FileStat(path.name, "invalid", 0, 0.0, 0.0, elapsed, outcome.message))
                file_reports.append({"file": path.name, "status": "invalid", "failure": _failure_dict(outcome)})
                progress.finish_file(success=False)
                continue

            result = outcome.data
            report = build_analysis_report(result.result_set, cfg.analysis)
            summary = report.to_dict()["summary"]
            for w in outcome.warnings:
                logger.warning(f"{path.name}: {w}")
            logger.info(
                f"{path.name}: class_average={summary['class_average']} "
                f"pass_percentage={summary['pass_percentage']} performance={report.insights.class_performance}"
            )
            top = report.rankings[0] if report.rankings else None
            if top is not None:
                logger.info(f"{path.name}: top student {top.student.full_identifier} ({top.percentage})")

            valid_sets.append(result.result_set)
            passed_students += report.pass_fail.passed
            stats.append(
                FileStat(
                    path.name,
                    "valid",
                    result.result_set.student_count,
                    result.validation.quality.overall,
                    report.class_stats.average_percentage,
                    elapsed,
                )
            )
            file_reports.append({
                "file": path.name,
                "status": "valid",
                "validation": result.validation.to_dict(),
                "mapping": result.mapping.to_dict(),
                "report": report.to_dict(),
            })
            progress.finish_file(success=True)

    trend = None
    if len(valid_sets) >= 2:
        trend = analyze_performance_trends(valid_sets, cfg.analysis.trend_threshold)
        logger.info(f"trend={trend.trend} average_change={trend.average_change:+.2f}")

    written = issues.flush()
    if written is not None:
        logger.info(f"issue log written: {written}")

    if args.json_path is not None:
        payload = {"files": file_reports, "trend": trend.to_dict() if trend else None}
        args.json_path.parent.mkdir(parents=True, exist_ok=True)
        args.json_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info(f"report written: {args.json_path}")

    end_time = datetime.now(UTC)
    valid = [s for s in stats if s.status == "valid"]
    total_students = sum(s.students for s in valid)
    batch = BatchResult(
        valid_files=len(valid),
        invalid_files=len(stats) - len(valid),
        total_students=total_students,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=round((end_time - start_time).total_seconds(), 3),
        average_percentage=round(sum(s.class_average for s in valid) / len(valid), 2) if valid else 0.0,
        pass_rate=round(passed_students / total_students * 100, 2) if total_students else 0.0,
        file_stats=stats,
    )
    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(len(stats), batch).removeprefix("SUMMARY "))

    return EXIT_PARTIAL_FAILURE if batch.invalid_files > 0 else EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
