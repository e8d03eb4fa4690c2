from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest

from leadgrid.contracts.rows import PageState, format_total_hits
from leadgrid.services import paginated_fetcher
from leadgrid.services.paginated_fetcher import PaginatedFetcher, decode_search_response
from leadgrid.utils.exceptions import LeadSearchError


def _hits(count: int, prefix: str = "id") -> list[dict[str, Any]]:
    return [{"_id": f"{prefix}-{index}", "merged": {"Name": f"Person {index}"}} for index in range(count)]


@pytest.mark.asyncio
async def test_fetch_page_requests_offset_and_limit(monkeypatch: pytest.MonkeyPatch):
    seen: list[dict[str, Any]] = []

    async def _stub_search(*, params):
        seen.append(params)
        return {"meta": {"total": 500}, "data": _hits(100)}

    monkeypatch.setattr(paginated_fetcher.lead_search, "search_leads", _stub_search)

    page = await PaginatedFetcher().fetch_page({}, 2, 100)

    assert seen == [{"limit": 100, "offset": 200}]
    assert page.page_index == 2
    assert page.page_size == 100
    assert len(page.rows) == 100


@pytest.mark.asyncio
async def test_end_to_end_first_page(monkeypatch: pytest.MonkeyPatch):
    seen: list[dict[str, Any]] = []

    async def _stub_search(*, params):
        seen.append(params)
        return {"meta": {"total": 237}, "data": _hits(100)}

    monkeypatch.setattr(paginated_fetcher.lead_search, "search_leads", _stub_search)
    fetcher = PaginatedFetcher()

    page = await fetcher.fetch_page({"state": ["CA"], "employees": ["50-200"]}, 0, 100)

    assert seen == [{"state_code": "CA", "employees": "50-200", "limit": 100, "offset": 0}]
    assert page.page_index == 0
    assert page.total_hits == 237
    assert page.is_approximate is False
    assert len(page.rows) == 100
    assert page.has_next_page is True
    assert page.has_previous_page is False
    assert page.total_pages == 3
    assert fetcher.state == page


@pytest.mark.asyncio
async def test_bare_array_total_is_page_length(monkeypatch: pytest.MonkeyPatch):
    async def _stub_search(*, params):
        return _hits(7)

    monkeypatch.setattr(paginated_fetcher.lead_search, "search_leads", _stub_search)

    page = await PaginatedFetcher().fetch_page({}, 0, 25)

    # Without a reported total the current page is the whole result set.
    assert page.total_hits == 7
    assert page.has_next_page is False


@pytest.mark.asyncio
async def test_capped_total_is_marked_approximate(monkeypatch: pytest.MonkeyPatch):
    async def _stub_search(*, params):
        return {"meta": {"count": 10000}, "data": _hits(50)}

    monkeypatch.setattr(paginated_fetcher.lead_search, "search_leads", _stub_search)

    page = await PaginatedFetcher(total_hits_cap=10000).fetch_page({}, 0, 50)

    assert page.total_hits == 10000
    assert page.is_approximate is True
    assert page.total_hits_display == "10,000+"


@pytest.mark.asyncio
async def test_fetch_failure_returns_empty_page_and_logs(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture):
    async def _stub_search(*, params):
        raise LeadSearchError("connection refused")

    monkeypatch.setattr(paginated_fetcher.lead_search, "search_leads", _stub_search)
    fetcher = PaginatedFetcher()

    with caplog.at_level(logging.ERROR, logger="leadgrid.services.paginated_fetcher"):
        page = await fetcher.fetch_page({"city": ["Reno"]}, 1, 20)

    assert page.rows == []
    assert page.total_hits == 0
    assert fetcher.state == page
    assert fetcher.last_error == "connection refused"
    assert any("Lead page fetch failed" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_stale_response_does_not_overwrite_newer_page(monkeypatch: pytest.MonkeyPatch):
    release_first = asyncio.Event()

    async def _stub_search(*, params):
        if params.get("q") == "first":
            await release_first.wait()
            return {"meta": {"total": 1}, "data": [{"_id": "stale"}]}
        return {"meta": {"total": 1}, "data": [{"_id": "fresh"}]}

    monkeypatch.setattr(paginated_fetcher.lead_search, "search_leads", _stub_search)
    fetcher = PaginatedFetcher()

    first = asyncio.create_task(fetcher.fetch_page({"q": "first"}, 0, 10))
    await asyncio.sleep(0)
    await fetcher.fetch_page({"q": "second"}, 0, 10)
    release_first.set()
    stale_page = await first

    assert stale_page.rows[0].id == "stale"
    assert fetcher.state.rows[0].id == "fresh"
    assert fetcher.generation == 2


@pytest.mark.asyncio
async def test_stale_failure_does_not_blank_newer_page(monkeypatch: pytest.MonkeyPatch):
    release_first = asyncio.Event()

    async def _stub_search(*, params):
        if params["offset"] == 0:
            await release_first.wait()
            raise LeadSearchError("timeout")
        return {"meta": {"total": 30}, "data": _hits(10)}

    monkeypatch.setattr(paginated_fetcher.lead_search, "search_leads", _stub_search)
    fetcher = PaginatedFetcher()

    first = asyncio.create_task(fetcher.fetch_page({}, 0, 10))
    await asyncio.sleep(0)
    await fetcher.fetch_page({}, 1, 10)
    release_first.set()
    await first

    assert len(fetcher.state.rows) == 10
    assert fetcher.last_error is None


def test_decode_search_response_shapes():
    assert decode_search_response([{"_id": "a"}]).total == 1
    assert decode_search_response({"meta": {"total": 42}, "data": []}).total == 42
    assert decode_search_response({"meta": {"count": "9"}, "data": [{}]}).total == 9
    assert decode_search_response({"data": [{}, {}]}).total == 2
    assert decode_search_response({"meta": {"total": {"value": 10000, "relation": "gte"}}, "data": []}).approximate is True
    assert decode_search_response("garbage").hits == []


def test_total_hits_display():
    assert format_total_hits(10000, True) == "10,000+"
    assert format_total_hits(42, False) == "42"
    assert format_total_hits(0, False) == "0"
    assert PageState(total_hits=1234, page_size=10).total_hits_display == "1,234"


def test_explicit_zero_total_is_kept():
    result = decode_search_response({"meta": {"total": 0, "count": 7}, "data": [{"_id": "a"}]})

    assert result.total == 0
    assert result.hits == [{"_id": "a"}]
