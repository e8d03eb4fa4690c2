# leadgrid/routers/export_jobs.py - Full-result export job endpoints

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from leadgrid.routers._responses import DataEnvelope, ErrorEnvelope, error_response
from leadgrid.services.export_orchestrator import ExportJobOrchestrator
from leadgrid.utils.exceptions import LeadSearchError

router = APIRouter()


class ExportStartRequest(BaseModel):
    filters: dict[str, Any] = Field(default_factory=dict)


def get_export_orchestrator(request: Request) -> ExportJobOrchestrator:
    return request.app.state.export_orchestrator


def _job_payload(orchestrator: ExportJobOrchestrator) -> dict[str, Any] | None:
    if orchestrator.job is None:
        return None
    return {
        **orchestrator.job.model_dump(mode="json"),
        "polling": orchestrator.is_polling,
        "last_error": orchestrator.last_error,
    }


@router.post("/start", response_model=DataEnvelope, responses={502: {"model": ErrorEnvelope}})
async def start_export(
    payload: ExportStartRequest,
    orchestrator: ExportJobOrchestrator = Depends(get_export_orchestrator),
):
    job = await orchestrator.start(payload.filters)
    if job.error:
        return error_response(job.error, 502)
    return DataEnvelope(data=_job_payload(orchestrator))


@router.get("/current", response_model=DataEnvelope, responses={404: {"model": ErrorEnvelope}})
async def current_export(orchestrator: ExportJobOrchestrator = Depends(get_export_orchestrator)):
    payload = _job_payload(orchestrator)
    if payload is None:
        return error_response("No export job", 404)
    return DataEnvelope(data=payload)


@router.post("/download", responses={409: {"model": ErrorEnvelope}, 502: {"model": ErrorEnvelope}})
async def download_export(orchestrator: ExportJobOrchestrator = Depends(get_export_orchestrator)):
    try:
        artifact = await orchestrator.download()
    except LeadSearchError as exc:
        return error_response(exc.message, 502)
    except ValueError as exc:
        return error_response(str(exc), 409)
    return FileResponse(artifact.path, filename=artifact.filename, media_type="application/octet-stream")


@router.post("/cancel-polling", response_model=DataEnvelope)
async def cancel_export_polling(orchestrator: ExportJobOrchestrator = Depends(get_export_orchestrator)):
    orchestrator.cancel_polling()
    return DataEnvelope(data=_job_payload(orchestrator))


@router.post("/discard", response_model=DataEnvelope)
async def discard_export(orchestrator: ExportJobOrchestrator = Depends(get_export_orchestrator)):
    orchestrator.discard()
    return DataEnvelope(data=None)
