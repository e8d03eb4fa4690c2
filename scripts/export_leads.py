#!/usr/bin/env python3
"""
Operator tool for full-result lead exports.

Resumes the export job persisted by a previous run if there is one, otherwise
starts a new job for the given filters. Polls until the job finishes, then
downloads the artifact. Interrupting the script leaves the job id persisted so
the next run picks the same job back up.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from leadgrid.config import get_settings
from leadgrid.contracts.export import ExportJob, ExportStatus
from leadgrid.services.export_orchestrator import ExportJobOrchestrator
from leadgrid.services.job_store import FileJobStore
from leadgrid.utils.exceptions import LeadSearchError


def _print_step(message: str) -> None:
    print(f"\n==> {message}")


def _print_error(message: str) -> None:
    print(f"ERROR: {message}", file=sys.stderr)


def _print_progress(job: ExportJob | None) -> None:
    if job is not None and job.status in {ExportStatus.PENDING, ExportStatus.RUNNING}:
        print(f"  {job.job_id}: {job.status.value} {job.progress}%")


def _load_filters(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError("--filters-json must be a JSON object")
    return parsed


async def run_export(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = FileJobStore(args.job_store or settings.export_job_store_path)
    orchestrator = ExportJobOrchestrator(store, download_dir=args.output_dir, on_update=_print_progress)

    job = orchestrator.resume()
    if job is not None:
        _print_step(f"Resuming export job {job.job_id}")
    elif args.resume_only:
        _print_error("No persisted export job to resume.")
        return 1
    else:
        try:
            filters = _load_filters(args.filters_json)
        except ValueError as exc:
            _print_error(f"Invalid filters: {exc}")
            return 1
        _print_step("Starting export job")
        job = await orchestrator.start(filters)
        if job.status is ExportStatus.ERROR:
            _print_error(job.error or "Failed to start export")
            return 1

    try:
        job = await orchestrator.wait()
    except asyncio.CancelledError:
        orchestrator.cancel_polling()
        raise

    if job is None or job.status is not ExportStatus.DONE:
        _print_error((job.error if job else None) or "Export did not finish")
        return 1

    _print_step(f"Downloading export job {job.job_id}")
    try:
        artifact = await orchestrator.download()
    except LeadSearchError as exc:
        _print_error(f"{exc.message} (job {job.job_id} kept; rerun to retry the download)")
        return 1

    print(f"Saved {artifact.size_bytes} bytes to {artifact.path}")
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Start or resume a full lead export and download the result.")
    parser.add_argument(
        "--filters-json",
        default=None,
        help='Filter object as JSON, e.g. \'{"state_code": ["CA"], "employees": ["50-200"]}\'.',
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for the downloaded file (default: LEADGRID_EXPORT_DOWNLOAD_DIR).",
    )
    parser.add_argument(
        "--job-store",
        default=None,
        help="Path of the persisted job file (default: LEADGRID_EXPORT_JOB_STORE_PATH).",
    )
    parser.add_argument(
        "--resume-only",
        action="store_true",
        help="Only resume a persisted job; never start a new one.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        return asyncio.run(run_export(args))
    except KeyboardInterrupt:
        _print_error("Interrupted; the export job stays persisted for the next run.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
