from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Row(BaseModel):
    """One normalized lead. Canonical fields are always strings; absent is ``""``."""

    id: str = ""
    full_name: str = ""
    first_name: str = ""
    last_name: str = ""
    company: str = ""
    job_title: str = ""
    website: str = ""
    domain: str = ""
    employee_count: str = ""
    revenue: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    zip_code: str = ""
    phone: str = ""
    email: str = ""
    linkedin_url: str = ""
    facebook_url: str = ""
    twitter_url: str = ""
    skills: str = ""
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)

    # Upstream carries a single sales-volume figure; both display roles read it.
    @property
    def min_revenue(self) -> str:
        return self.revenue

    @property
    def max_revenue(self) -> str:
        return self.revenue


CANONICAL_ROW_FIELDS: tuple[str, ...] = tuple(name for name in Row.model_fields if name != "raw")


class PageState(BaseModel):
    rows: list[Row] = Field(default_factory=list)
    page_index: int = 0
    page_size: int = 0
    total_hits: int = 0
    is_approximate: bool = False

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 1
        return max(1, (self.total_hits + self.page_size - 1) // self.page_size)

    @property
    def has_next_page(self) -> bool:
        return (self.page_index + 1) * self.page_size < self.total_hits

    @property
    def has_previous_page(self) -> bool:
        return self.page_index > 0

    @property
    def total_hits_display(self) -> str:
        return format_total_hits(self.total_hits, self.is_approximate)


def format_total_hits(total_hits: int, is_approximate: bool) -> str:
    if not total_hits:
        return "0"
    display = f"{total_hits:,}"
    return f"{display}+" if is_approximate else display


class BatchProgress(BaseModel):
    batch_index: int
    total_batches: int
    percent: int


class Facets(BaseModel):
    state_code: list[str] = Field(default_factory=list)
    city: list[str] = Field(default_factory=list)
    country: list[str] = Field(default_factory=list)
    industry: list[str] = Field(default_factory=list)
    job_title: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    company: list[str] = Field(default_factory=list)
    website: list[str] = Field(default_factory=list)
    employees_options: list[str] = Field(default_factory=list)
    revenue_options: list[str] = Field(default_factory=list)
