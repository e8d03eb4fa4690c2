from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class JobStore(Protocol):
    """Durable home for the single active export job id."""

    def get(self) -> str | None: ...

    def set(self, job_id: str) -> None: ...

    def clear(self) -> None: ...


class InMemoryJobStore:
    def __init__(self, job_id: str | None = None) -> None:
        self._job_id = job_id

    def get(self) -> str | None:
        return self._job_id

    def set(self, job_id: str) -> None:
        self._job_id = job_id

    def clear(self) -> None:
        self._job_id = None


class FileJobStore:
    """JSON file ``{"job_id": ...}`` replaced whole on every write."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get(self) -> str | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable export job store", extra={"path": str(self.path)})
            return None
        job_id = data.get("job_id") if isinstance(data, dict) else None
        if isinstance(job_id, str) and job_id.strip():
            return job_id.strip()
        return None

    def set(self, job_id: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".export_job.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump({"job_id": job_id}, handle)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
