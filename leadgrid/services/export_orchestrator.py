from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any
from urllib.parse import unquote

from leadgrid.config import get_settings
from leadgrid.contracts.export import ExportArtifact, ExportJob, ExportStatus
from leadgrid.contracts.filters import FilterModel
from leadgrid.providers import lead_search
from leadgrid.services.job_store import JobStore
from leadgrid.services.query_compiler import compile_filters
from leadgrid.utils.exceptions import LeadSearchError

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_FILENAME = "leads_export.csv"

_FILENAME_PATTERN = re.compile(r"filename\*?=(?:UTF-8'')?[\"']?([^;\"']+)", re.IGNORECASE)

_DONE_STATUSES = {"done", "completed", "complete", "finished", "success"}
_ERROR_STATUSES = {"error", "failed", "failure"}
_PENDING_STATUSES = {"pending", "queued", "scheduled"}

UpdateCallback = Callable[[ExportJob | None], None]


def filename_from_content_disposition(value: str | None, default: str = DEFAULT_EXPORT_FILENAME) -> str:
    if not value:
        return default
    match = _FILENAME_PATTERN.search(value)
    if not match:
        return default
    # Basename only; the header is server-controlled.
    name = Path(unquote(match.group(1)).strip()).name
    return name or default


def _parse_status(value: Any) -> ExportStatus:
    text = str(value or "").strip().lower()
    if text in _DONE_STATUSES:
        return ExportStatus.DONE
    if text in _ERROR_STATUSES:
        return ExportStatus.ERROR
    if text in _PENDING_STATUSES:
        return ExportStatus.PENDING
    return ExportStatus.RUNNING


def _parse_progress(value: Any, previous: int) -> int:
    try:
        progress = int(float(value))
    except (TypeError, ValueError):
        return previous
    return min(100, max(0, progress))


class ExportJobOrchestrator:
    """Runs one server-side export job: start, poll until terminal, download.

    The job id is written to ``store`` as soon as the server hands it out, and
    stays there until the artifact has been downloaded, the job has failed, or
    the caller discards it. A new orchestrator built over the same store picks
    the job back up through ``resume()``.

    ``cancel_polling()`` only stops the local poll loop. The server-side job
    keeps running and can be resumed later.
    """

    def __init__(
        self,
        store: JobStore,
        *,
        poll_interval_seconds: float | None = None,
        max_poll_attempts: int | None = None,
        failure_tolerance: int | None = None,
        download_dir: str | Path | None = None,
        on_update: UpdateCallback | None = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.poll_interval_seconds = (
            poll_interval_seconds if poll_interval_seconds is not None else settings.export_poll_interval_ms / 1000
        )
        self.max_poll_attempts = max_poll_attempts or settings.export_max_poll_attempts
        self.failure_tolerance = (
            failure_tolerance if failure_tolerance is not None else settings.export_poll_failure_tolerance
        )
        self.download_dir = Path(download_dir or settings.export_download_dir)
        self.on_update = on_update
        self.job: ExportJob | None = None
        self.last_error: str | None = None
        self._poll_task: asyncio.Task[ExportJob] | None = None
        self._consecutive_failures = 0

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def _set_job(self, job: ExportJob | None) -> None:
        self.job = job
        if self.on_update is not None:
            self.on_update(job)

    async def start(self, filters: FilterModel | Mapping[str, Any] | None) -> ExportJob:
        self.cancel_polling()
        self.last_error = None
        compiled = compile_filters(filters)
        try:
            job_id = await lead_search.start_export(filters=compiled)
        except LeadSearchError as exc:
            logger.warning("Export start failed", extra={"error": exc.message, "http_status": exc.status_code})
            self.store.clear()
            job = ExportJob(job_id="", status=ExportStatus.ERROR, error=exc.message)
            self.last_error = exc.message
            self._set_job(job)
            return job

        self.store.set(job_id)
        job = ExportJob(job_id=job_id, status=ExportStatus.RUNNING)
        self._set_job(job)
        logger.info("Export job started", extra={"job_id": job_id})
        self.poll(job_id)
        return job

    def resume(self) -> ExportJob | None:
        job_id = self.store.get()
        if not job_id:
            return None
        logger.info("Resuming persisted export job", extra={"job_id": job_id})
        self._set_job(ExportJob(job_id=job_id, status=ExportStatus.RUNNING))
        self.poll(job_id)
        return self.job

    def poll(self, job_id: str) -> asyncio.Task[ExportJob]:
        """Start the repeating status check for ``job_id``, replacing any existing loop."""
        self.cancel_polling()
        if self.job is None or self.job.job_id != job_id:
            self._set_job(ExportJob(job_id=job_id, status=ExportStatus.RUNNING))
        self._consecutive_failures = 0
        self._poll_task = asyncio.create_task(self._poll_loop(job_id))
        return self._poll_task

    async def _poll_loop(self, job_id: str) -> ExportJob:
        while True:
            await asyncio.sleep(self.poll_interval_seconds)
            try:
                job = await self.poll_once(job_id)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Export poll loop crashed", extra={"job_id": job_id})
                current = self.job if self.job is not None and self.job.job_id == job_id else None
                if current is None:
                    current = ExportJob(job_id=job_id, status=ExportStatus.RUNNING)
                return self._fail(current, f"{type(exc).__name__}: {exc}", current.poll_attempts)
            if job.is_terminal:
                return job

    async def poll_once(self, job_id: str) -> ExportJob:
        job = self.job if self.job is not None and self.job.job_id == job_id else None
        if job is None:
            job = ExportJob(job_id=job_id, status=ExportStatus.RUNNING)
        if job.is_terminal:
            return job
        attempts = job.poll_attempts + 1

        try:
            body = await lead_search.get_export_status(job_id=job_id)
        except LeadSearchError as exc:
            self._consecutive_failures += 1
            self.last_error = exc.message
            if self._consecutive_failures > self.failure_tolerance:
                return self._fail(job, exc.message, attempts)
            logger.warning(
                "Export status check failed; retrying once more",
                extra={"job_id": job_id, "error": exc.message, "attempt": attempts},
            )
            updated = job.model_copy(update={"poll_attempts": attempts})
            self._set_job(updated)
            return updated

        self._consecutive_failures = 0
        self.last_error = None
        status = _parse_status(body.get("status"))

        if status is ExportStatus.ERROR:
            message = body.get("error") or body.get("message") or "Export failed"
            return self._fail(job, str(message), attempts)

        if status is ExportStatus.DONE:
            done = job.model_copy(
                update={
                    "status": ExportStatus.DONE,
                    "progress": 100,
                    "result_ref": body.get("filename") or job.result_ref,
                    "error": None,
                    "poll_attempts": attempts,
                }
            )
            self._stop_polling()
            self._set_job(done)
            logger.info("Export job finished", extra={"job_id": job_id, "result_ref": done.result_ref})
            return done

        if attempts >= self.max_poll_attempts:
            return self._fail(job, f"Export timed out after {attempts} status checks", attempts)

        updated = job.model_copy(
            update={
                "status": status,
                "progress": _parse_progress(body.get("progress"), job.progress),
                "poll_attempts": attempts,
            }
        )
        self._set_job(updated)
        return updated

    def _fail(self, job: ExportJob, message: str, attempts: int) -> ExportJob:
        self._stop_polling()
        self.store.clear()
        self.last_error = message
        failed = job.model_copy(update={"status": ExportStatus.ERROR, "error": message, "poll_attempts": attempts})
        self._set_job(failed)
        logger.warning("Export job failed", extra={"job_id": job.job_id, "error": message})
        return failed

    async def download(
        self,
        job_id: str | None = None,
        *,
        destination_dir: str | Path | None = None,
    ) -> ExportArtifact:
        job_id = job_id or (self.job.job_id if self.job is not None and self.job.job_id else None) or self.store.get()
        if not job_id:
            raise ValueError("No export job to download")
        tracked = self.job if self.job is not None and self.job.job_id == job_id else None
        if tracked is not None and tracked.status is not ExportStatus.DONE:
            raise ValueError(f"Export job {job_id} is not finished (status: {tracked.status.value})")

        try:
            downloaded = await lead_search.download_export(job_id=job_id)
        except LeadSearchError as exc:
            logger.warning("Export download failed", extra={"job_id": job_id, "error": exc.message})
            self.last_error = exc.message
            if tracked is not None:
                self._set_job(tracked.model_copy(update={"error": exc.message}))
            raise

        filename = filename_from_content_disposition(downloaded.content_disposition)
        directory = Path(destination_dir) if destination_dir is not None else self.download_dir
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename
        path.write_bytes(downloaded.content)

        self.store.clear()
        self.last_error = None
        self._set_job(None)
        logger.info("Export downloaded", extra={"job_id": job_id, "path": str(path)})
        return ExportArtifact(job_id=job_id, filename=filename, path=str(path), size_bytes=len(downloaded.content))

    def _stop_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def cancel_polling(self) -> None:
        self._stop_polling()

    def discard(self) -> None:
        self.cancel_polling()
        self.store.clear()
        self.last_error = None
        self._set_job(None)

    async def wait(self) -> ExportJob | None:
        """Block until the current poll loop ends (terminal state or cancellation)."""
        task = self._poll_task
        if task is not None:
            await asyncio.wait({task})
        return self.job
