from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ExportStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


TERMINAL_EXPORT_STATUSES = {ExportStatus.DONE, ExportStatus.ERROR}


class ExportJob(BaseModel):
    job_id: str
    status: ExportStatus = ExportStatus.PENDING
    progress: int = 0
    result_ref: str | None = None
    error: str | None = None
    poll_attempts: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_EXPORT_STATUSES


class ExportArtifact(BaseModel):
    job_id: str
    filename: str
    path: str
    size_bytes: int
