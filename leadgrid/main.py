# leadgrid/main.py - FastAPI app entry point

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from leadgrid.config import get_settings
from leadgrid.routers import export_jobs, leads
from leadgrid.services.export_orchestrator import ExportJobOrchestrator
from leadgrid.services.job_store import FileJobStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    orchestrator = ExportJobOrchestrator(FileJobStore(settings.export_job_store_path))
    app.state.export_orchestrator = orchestrator
    # A job started before the last shutdown keeps polling from where it left off.
    if orchestrator.resume() is not None:
        logger.info("Resumed export job on startup", extra={"job_id": orchestrator.job.job_id})
    yield
    orchestrator.cancel_polling()


app = FastAPI(
    title="leadgrid",
    description="Lead search, pagination and export pipeline",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(HTTPException)
async def http_exception_handler(_: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


app.include_router(leads.router, prefix="/api/leads", tags=["leads"])
app.include_router(export_jobs.router, prefix="/api/export", tags=["export"])
