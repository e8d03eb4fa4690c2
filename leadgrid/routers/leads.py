# leadgrid/routers/leads.py - Lead browsing and page export endpoints

from typing import Any, Literal

from fastapi import APIRouter
from pydantic import BaseModel, Field

from leadgrid.config import get_settings
from leadgrid.contracts.filters import FilterModel, QuickSearchKind, quick_search_filters
from leadgrid.routers._responses import DataEnvelope, ErrorEnvelope, attachment_response, error_response
from leadgrid.services.bulk_collector import collect_rows
from leadgrid.services.facets import build_facets
from leadgrid.services.paginated_fetcher import PaginatedFetcher
from leadgrid.services.spreadsheet import DEFAULT_EXPORT_COLUMNS, render_page_export
from leadgrid.utils.exceptions import LeadSearchError

router = APIRouter()


class QuickSearch(BaseModel):
    kind: QuickSearchKind
    value: str = Field(min_length=1)


class LeadSearchRequest(BaseModel):
    filters: dict[str, Any] = Field(default_factory=dict)
    quick_search: QuickSearch | None = None
    page_index: int = Field(default=0, ge=0)
    page_size: int | None = Field(default=None, ge=1, le=10000)


class PageExportRequest(LeadSearchRequest):
    format: Literal["csv", "xls"] = "csv"
    columns: list[str] | None = None


def _resolve_filters(payload: LeadSearchRequest) -> FilterModel:
    # A quick search seeds one field; explicit filters narrow it further.
    if payload.quick_search is None:
        return FilterModel.model_validate(payload.filters)
    return quick_search_filters(payload.quick_search.kind, payload.quick_search.value).merged_with(payload.filters)


@router.post("/search", response_model=DataEnvelope)
async def search_leads(payload: LeadSearchRequest):
    page_size = payload.page_size or get_settings().default_page_size
    fetcher = PaginatedFetcher()
    page = await fetcher.fetch_page(_resolve_filters(payload), payload.page_index, page_size)
    return DataEnvelope(
        data={
            "rows": [row.model_dump() for row in page.rows],
            "page_index": page.page_index,
            "page_size": page.page_size,
            "total_hits": page.total_hits,
            "is_approximate": page.is_approximate,
            "total_hits_display": page.total_hits_display,
            "total_pages": page.total_pages,
            "has_next_page": page.has_next_page,
            "has_previous_page": page.has_previous_page,
            "facets": build_facets(page.rows).model_dump(),
            "error": fetcher.last_error,
        }
    )


@router.post("/page-export", responses={400: {"model": ErrorEnvelope}, 502: {"model": ErrorEnvelope}})
async def export_page(payload: PageExportRequest):
    page_size = payload.page_size or get_settings().default_page_size
    columns = payload.columns or list(DEFAULT_EXPORT_COLUMNS)
    try:
        rows = await collect_rows(_resolve_filters(payload), payload.page_index * page_size, page_size)
    except LeadSearchError as exc:
        return error_response(exc.message, 502)
    try:
        document, media_type = render_page_export(rows, columns, payload.format)
    except ValueError as exc:
        return error_response(str(exc), 400)
    return attachment_response(
        document,
        filename=f"leads_page_{payload.page_index + 1}.{payload.format}",
        media_type=media_type,
    )
