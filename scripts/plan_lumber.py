#!/usr/bin/env python3
"""Compute a lumber purchase plan from a JSON job file."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lumberlogic import InvalidInput, PlannerConfig, Unit, optimize_lumber_plan
from lumberlogic.audit import AuditTrail
from lumberlogic.report import build_summary, compute_metrics
from lumberlogic.serialization import (
    load_job,
    result_fingerprint,
    result_to_payload,
    settings_to_payload,
)
from lumberlogic.validation import validate_inputs
from run_protocol import (
    copy_input_job,
    prepare_run_dir,
    update_latest_pointer,
    write_json,
    write_text,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Plan raw lumber purchases and cuts for a list of finished parts"
    )
    parser.add_argument("--job", required=True, help="Path to job JSON (parts, stocks, settings)")
    parser.add_argument("--name", default=None, help="Run name (defaults to job file stem)")
    parser.add_argument("--runs-dir", default="runs", help="Runs output root")
    parser.add_argument("--kerf", type=float, default=None, help="Override saw kerf")
    parser.add_argument(
        "--width-allowance", type=float, default=None, help="Override width allowance"
    )
    parser.add_argument(
        "--thickness-allowance",
        type=float,
        default=None,
        help="Override thickness allowance",
    )
    parser.add_argument(
        "--unit",
        choices=["mm", "inch"],
        default=None,
        help="Override the job unit label; dimensions are not converted",
    )
    parser.add_argument(
        "--max-strips",
        type=int,
        default=8,
        help="Maximum pieces glued along one axis",
    )
    parser.add_argument(
        "--no-lamination", action="store_true", help="Only allow single-board fits"
    )
    parser.add_argument(
        "--no-offcut-reuse", action="store_true", help="Discard every lamination offcut"
    )
    parser.add_argument(
        "--workers", type=int, default=1, help="Threads for candidate evaluation"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        job = load_job(Path(args.job))
    except InvalidInput as exc:
        print(f"Invalid job: {exc}", file=sys.stderr)
        return 2

    settings = job.settings
    overrides = {
        "kerf": args.kerf,
        "width_allowance": args.width_allowance,
        "thickness_allowance": args.thickness_allowance,
    }
    settings = replace(settings, **{k: v for k, v in overrides.items() if v is not None})
    if args.unit is not None:
        settings = replace(settings, unit=Unit.parse(args.unit))

    config = PlannerConfig(
        allow_lamination=not args.no_lamination,
        max_strips_per_axis=max(1, int(args.max_strips)),
        reuse_offcuts=not args.no_offcut_reuse,
        max_workers=max(1, int(args.workers)),
    )

    try:
        validate_inputs(job.parts, job.stocks, settings)
    except InvalidInput as exc:
        print(f"Invalid job: {exc}", file=sys.stderr)
        return 2

    name = args.name or job.name
    started = time.perf_counter()
    run_paths = prepare_run_dir(args.runs_dir, name)
    copied_job = copy_input_job(args.job, run_paths.input_dir)

    audit = AuditTrail(run_id=run_paths.run_id, artifacts_dir=run_paths.artifacts_dir)
    result = optimize_lumber_plan(job.parts, job.stocks, settings, config, audit)
    audit.finalize()
    elapsed = time.perf_counter() - started

    write_json(run_paths.plan_path, result_to_payload(result))

    metrics = compute_metrics(result)
    fingerprint = result_fingerprint(result)
    metrics_payload = {
        "run_id": run_paths.run_id,
        "elapsed_s": round(elapsed, 3),
        "result_sha256": fingerprint,
        **metrics.to_dict(),
    }
    write_json(run_paths.metrics_path, metrics_payload)
    write_text(
        run_paths.summary_path,
        build_summary(result, metrics, run_id=run_paths.run_id, elapsed_s=elapsed),
    )

    manifest = {
        "run_id": run_paths.run_id,
        "job_name": name,
        "created_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "input_job": str(copied_job),
        "settings": settings_to_payload(settings),
        "config": {
            "allow_lamination": config.allow_lamination,
            "max_strips_per_axis": config.max_strips_per_axis,
            "reuse_offcuts": config.reuse_offcuts,
            "max_workers": config.max_workers,
        },
        "artifacts": {
            "plan": str(run_paths.plan_path),
            "metrics": str(run_paths.metrics_path),
            "summary": str(run_paths.summary_path),
            "decision_log": str(audit.decision_log_path),
            "decision_hash_chain": str(audit.hash_chain_path),
        },
    }
    write_json(run_paths.manifest_path, manifest)
    update_latest_pointer(args.runs_dir, run_paths.run_dir)

    print(f"Run ID: {run_paths.run_id}")
    print(f"Run dir: {run_paths.run_dir}")
    print(f"Boards: {metrics.boards} across {metrics.stock_lines} stock types")
    for line in result.plan:
        print(f"  {line.quantity_needed} x {line.raw_stock_name}")
    print(f"Total raw volume: {result.total_raw_volume:.1f}")
    print(f"Unmatchable parts: {len(result.unmatchable_parts)}")
    print(f"Plan: {run_paths.plan_path}")
    print(f"Summary: {run_paths.summary_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
