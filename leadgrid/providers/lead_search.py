from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from leadgrid.config import Settings, get_settings
from leadgrid.providers.common import error_message_from, now_ms, parse_json_or_raw
from leadgrid.utils.exceptions import LeadSearchError

logger = logging.getLogger(__name__)


@dataclass
class DownloadedFile:
    content: bytes
    content_disposition: str | None
    content_type: str | None


def _headers(settings: Settings) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if settings.search_api_token:
        headers["Authorization"] = f"Bearer {settings.search_api_token}"
    return headers


async def _request(
    method: str,
    path: str,
    *,
    default_error: str,
    params: dict[str, Any] | None = None,
    json: dict[str, Any] | None = None,
) -> httpx.Response:
    settings = get_settings()
    url = f"{settings.search_api_url}{path}"
    start_ms = now_ms()
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            response = await client.request(method, url, headers=_headers(settings), params=params, json=json)
    except httpx.HTTPError as exc:
        raise LeadSearchError(error_message_from(None, fallback=str(exc), default=default_error)) from exc

    if response.status_code >= 400:
        body = parse_json_or_raw(response.text, response.json)
        logger.warning(
            "Lead search service returned an error",
            extra={
                "method": method,
                "url": url,
                "http_status": response.status_code,
                "duration_ms": now_ms() - start_ms,
            },
        )
        raise LeadSearchError(
            error_message_from(body, fallback=f"HTTP {response.status_code} from {path}", default=default_error),
            status_code=response.status_code,
        )
    return response


async def search_leads(*, params: dict[str, Any]) -> Any:
    """One page of raw hits; either a bare list or a ``{meta, data}`` envelope."""
    settings = get_settings()
    response = await _request("GET", settings.search_path, params=params, default_error="Search request failed")
    try:
        return response.json()
    except ValueError as exc:
        raise LeadSearchError("Search response was not valid JSON", status_code=response.status_code) from exc


async def start_export(*, filters: dict[str, Any]) -> str:
    settings = get_settings()
    response = await _request(
        "POST",
        settings.export_start_path,
        json={"filters": filters},
        default_error="Failed to start export",
    )
    body = parse_json_or_raw(response.text, response.json)
    job_id = body.get("jobId") or body.get("job_id")
    if not isinstance(job_id, str) or not job_id.strip():
        raise LeadSearchError("jobId missing from export start response", status_code=response.status_code)
    return job_id.strip()


async def get_export_status(*, job_id: str) -> dict[str, Any]:
    settings = get_settings()
    response = await _request(
        "GET",
        f"{settings.export_status_path}/{job_id}",
        default_error="Failed to fetch export status",
    )
    return parse_json_or_raw(response.text, response.json)


async def download_export(*, job_id: str) -> DownloadedFile:
    settings = get_settings()
    response = await _request(
        "GET",
        f"{settings.export_download_path}/{job_id}",
        default_error="Download failed",
    )
    return DownloadedFile(
        content=response.content,
        content_disposition=response.headers.get("content-disposition"),
        content_type=response.headers.get("content-type"),
    )
