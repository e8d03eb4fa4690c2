from __future__ import annotations

from typing import Any

import httpx
import pytest

from leadgrid.config import Settings
from leadgrid.providers import lead_search
from leadgrid.utils.exceptions import LeadSearchError


class _FakeResponse:
    def __init__(
        self,
        *,
        status_code: int,
        payload: Any = None,
        headers: dict[str, str] | None = None,
        content: bytes = b"",
        text: str | None = None,
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.content = content
        self.text = text if text is not None else "{}"

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("not json")
        return self._payload


def _settings(**overrides: Any) -> Settings:
    return Settings(search_api_url="https://leads.example.com/", **overrides)


def _install(monkeypatch: pytest.MonkeyPatch, response: _FakeResponse, calls: list[dict[str, Any]], **settings: Any) -> None:
    async def _mock_request(self, method: str, url: str, **kwargs):  # noqa: ANN001
        _ = self
        calls.append({"method": method, "url": url, **kwargs})
        return response

    monkeypatch.setattr(lead_search.httpx.AsyncClient, "request", _mock_request)
    monkeypatch.setattr(lead_search, "get_settings", lambda: _settings(**settings))


@pytest.mark.asyncio
async def test_search_leads_sends_params_to_search_path(monkeypatch: pytest.MonkeyPatch):
    calls: list[dict[str, Any]] = []
    _install(monkeypatch, _FakeResponse(status_code=200, payload={"meta": {"total": 0}, "data": []}), calls)

    payload = await lead_search.search_leads(params={"state_code": "CA", "limit": 100, "offset": 0})

    assert payload == {"meta": {"total": 0}, "data": []}
    assert calls[0]["method"] == "GET"
    assert calls[0]["url"] == "https://leads.example.com/api/data/leads"
    assert calls[0]["params"] == {"state_code": "CA", "limit": 100, "offset": 0}
    assert "Authorization" not in calls[0]["headers"]


@pytest.mark.asyncio
async def test_search_leads_passes_bare_array_through(monkeypatch: pytest.MonkeyPatch):
    calls: list[dict[str, Any]] = []
    _install(monkeypatch, _FakeResponse(status_code=200, payload=[{"_id": "1"}]), calls)

    assert await lead_search.search_leads(params={}) == [{"_id": "1"}]


@pytest.mark.asyncio
async def test_start_export_posts_filters_with_bearer_token(monkeypatch: pytest.MonkeyPatch):
    calls: list[dict[str, Any]] = []
    _install(
        monkeypatch,
        _FakeResponse(status_code=200, payload={"jobId": "f00d", "filename": "x.csv"}),
        calls,
        search_api_token="secret",
    )

    job_id = await lead_search.start_export(filters={"state_code": "CA"})

    assert job_id == "f00d"
    assert calls[0]["method"] == "POST"
    assert calls[0]["url"] == "https://leads.example.com/api/export/start"
    assert calls[0]["json"] == {"filters": {"state_code": "CA"}}
    assert calls[0]["headers"]["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_start_export_without_job_id_raises(monkeypatch: pytest.MonkeyPatch):
    _install(monkeypatch, _FakeResponse(status_code=200, payload={}), [])

    with pytest.raises(LeadSearchError, match="jobId missing"):
        await lead_search.start_export(filters={})


@pytest.mark.asyncio
async def test_server_message_is_preferred_for_errors(monkeypatch: pytest.MonkeyPatch):
    _install(monkeypatch, _FakeResponse(status_code=403, payload={"message": "Admin only"}), [])

    with pytest.raises(LeadSearchError) as exc_info:
        await lead_search.start_export(filters={})

    assert exc_info.value.message == "Admin only"
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_status_error_without_body_falls_back_to_http_status(monkeypatch: pytest.MonkeyPatch):
    _install(monkeypatch, _FakeResponse(status_code=404, payload=None, text="Not Found"), [])

    with pytest.raises(LeadSearchError) as exc_info:
        await lead_search.get_export_status(job_id="gone")

    assert exc_info.value.message == "HTTP 404 from /api/export/status/gone"


@pytest.mark.asyncio
async def test_transport_error_uses_library_message(monkeypatch: pytest.MonkeyPatch):
    async def _mock_request(self, method: str, url: str, **kwargs):  # noqa: ANN001
        raise httpx.ConnectError("Connection refused")

    monkeypatch.setattr(lead_search.httpx.AsyncClient, "request", _mock_request)
    monkeypatch.setattr(lead_search, "get_settings", _settings)

    with pytest.raises(LeadSearchError, match="Connection refused"):
        await lead_search.search_leads(params={})


@pytest.mark.asyncio
async def test_download_export_returns_bytes_and_disposition(monkeypatch: pytest.MonkeyPatch):
    calls: list[dict[str, Any]] = []
    _install(
        monkeypatch,
        _FakeResponse(
            status_code=200,
            content=b"a,b\r\n1,2",
            headers={"content-disposition": 'attachment; filename="out.csv"', "content-type": "text/csv"},
        ),
        calls,
    )

    downloaded = await lead_search.download_export(job_id="f00d")

    assert calls[0]["url"] == "https://leads.example.com/api/export/download/f00d"
    assert downloaded.content == b"a,b\r\n1,2"
    assert downloaded.content_disposition == 'attachment; filename="out.csv"'
