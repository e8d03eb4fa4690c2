from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from leadgrid.config import get_settings
from leadgrid.contracts.filters import FilterModel
from leadgrid.contracts.rows import PageState
from leadgrid.providers import lead_search
from leadgrid.services.query_compiler import compile_filters
from leadgrid.services.record_normalizer import normalize_hits

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    hits: list[Any] = field(default_factory=list)
    total: int = 0
    approximate: bool = False


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def decode_search_response(payload: Any) -> SearchResult:
    """Reduce either backend response shape to ``(hits, total)``.

    Legacy backends return a bare list of hits; newer ones wrap it as
    ``{"meta": {"total" | "count": n}, "data": [...]}``. Without a total the
    returned hits are taken to be the entire result set.
    """
    if isinstance(payload, list):
        return SearchResult(hits=payload, total=len(payload))
    if not isinstance(payload, dict):
        return SearchResult()

    data = payload.get("data")
    hits = data if isinstance(data, list) else []
    meta = payload.get("meta") if isinstance(payload.get("meta"), dict) else {}

    approximate = False
    total: int | None = None
    for key in ("total", "count"):
        candidate = meta.get(key)
        if isinstance(candidate, dict):
            approximate = candidate.get("relation") == "gte"
            candidate = candidate.get("value")
        total = _as_int(candidate)
        if total is not None:
            break
    if total is None:
        total = len(hits)
    return SearchResult(hits=hits, total=total, approximate=approximate)


def build_page_params(
    filters: FilterModel | Mapping[str, Any] | None,
    *,
    offset: int,
    limit: int,
) -> dict[str, str | int]:
    params = compile_filters(filters)
    params["limit"] = limit
    params["offset"] = max(0, offset)
    return params


class PaginatedFetcher:
    """Fetches one page at a time and keeps the latest applied ``PageState``.

    Every call takes a generation number when it starts. A response is applied
    to ``state`` only if no newer call has started since, so a slow response for
    an older request never overwrites a newer page.
    """

    def __init__(self, *, total_hits_cap: int | None = None) -> None:
        self.state = PageState()
        self.last_error: str | None = None
        self._total_hits_cap = total_hits_cap or get_settings().total_hits_cap
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def _cap_total(self, result: SearchResult) -> tuple[int, bool]:
        if result.total >= self._total_hits_cap:
            return self._total_hits_cap, True
        return result.total, result.approximate

    async def fetch_page(
        self,
        filters: FilterModel | Mapping[str, Any] | None,
        page_index: int,
        page_size: int,
    ) -> PageState:
        self._generation += 1
        generation = self._generation
        page_index = max(0, page_index)
        params = build_page_params(filters, offset=page_index * page_size, limit=page_size)

        error: str | None = None
        try:
            payload = await lead_search.search_leads(params=params)
            result = decode_search_response(payload)
            total_hits, is_approximate = self._cap_total(result)
            page = PageState(
                rows=normalize_hits(result.hits),
                page_index=page_index,
                page_size=page_size,
                total_hits=total_hits,
                is_approximate=is_approximate,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "Lead page fetch failed; returning an empty page",
                extra={"page_index": page_index, "page_size": page_size, "generation": generation},
            )
            error = str(exc) or "Search request failed"
            page = PageState(page_index=page_index, page_size=page_size)

        if generation != self._generation:
            logger.info(
                "Discarding superseded page response",
                extra={"generation": generation, "latest_generation": self._generation},
            )
            return page

        self.state = page
        self.last_error = error
        return page
