from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

TriState = Literal["any", "yes", "no"]
FilterKind = Literal["text", "multi", "tri", "query"]

_TRI_YES = {"yes", "y", "true", "1"}
_TRI_NO = {"no", "n", "false", "0"}


@dataclass(frozen=True)
class FilterField:
    key: str
    kind: FilterKind
    param: str


# Registry order is the compiled parameter order; the free-text query stays last.
FILTER_FIELDS: tuple[FilterField, ...] = (
    FilterField("company_name", "multi", "company_name"),
    FilterField("city", "multi", "city"),
    FilterField("zip_code", "text", "zip_code"),
    FilterField("website", "multi", "website"),
    FilterField("contact_full_name", "text", "contact_full_name"),
    FilterField("state_code", "multi", "state_code"),
    FilterField("company_location_country", "multi", "company_location_country"),
    FilterField("industry", "multi", "industry"),
    FilterField("industry_source", "text", "industry_source"),
    FilterField("job_title", "multi", "job_title"),
    FilterField("contact_gender", "multi", "contact_gender"),
    FilterField("skills_tokens", "multi", "skills"),
    FilterField("public_company", "tri", "public_company"),
    FilterField("franchise_flag", "tri", "franchise_flag"),
    FilterField("has_company_linkedin", "tri", "has_company_linkedin"),
    FilterField("has_contact_linkedin", "tri", "has_contact_linkedin"),
    FilterField("employees", "multi", "employees"),
    FilterField("sales_volume", "multi", "sales_volume"),
    FilterField("phone", "text", "phone"),
    FilterField("normalized_email", "text", "normalized_email"),
    FilterField("domain", "multi", "domain"),
    FilterField("q", "query", "q"),
)

_KEYS_BY_KIND: dict[str, list[str]] = {}
for _field in FILTER_FIELDS:
    _KEYS_BY_KIND.setdefault(_field.kind, []).append(_field.key)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(_as_text(item) for item in value if _as_text(item))
    return str(value).strip()


def _as_unique_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (str, int, float)):
        value = [value]
    if not isinstance(value, (list, tuple, set)):
        return []
    seen: set[str] = set()
    cleaned: list[str] = []
    for item in value:
        text = _as_text(item)
        if text and text not in seen:
            seen.add(text)
            cleaned.append(text)
    return cleaned


def _as_tri(value: Any) -> TriState:
    if isinstance(value, bool):
        return "yes" if value else "no"
    text = _as_text(value).lower()
    if text in _TRI_YES:
        return "yes"
    if text in _TRI_NO:
        return "no"
    return "any"


class FilterModel(BaseModel):
    """What the user wants to see.

    Unset values are the empty string (text / query), the empty list (multi)
    and ``"any"`` (tri). Unknown keys are dropped so older and newer clients can
    share one payload shape.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    state_code: list[str] = Field(default_factory=list, validation_alias=AliasChoices("state_code", "state"))
    city: list[str] = Field(default_factory=list)
    zip_code: str = ""
    company_location_country: list[str] = Field(default_factory=list)
    company_name: list[str] = Field(default_factory=list)
    industry: list[str] = Field(default_factory=list)
    industry_source: str = ""
    skills_tokens: list[str] = Field(default_factory=list, validation_alias=AliasChoices("skills_tokens", "skills"))
    website: list[str] = Field(default_factory=list)
    public_company: TriState = "any"
    franchise_flag: TriState = "any"
    has_company_linkedin: TriState = "any"
    has_contact_linkedin: TriState = "any"
    employees: list[str] = Field(default_factory=list)
    sales_volume: list[str] = Field(default_factory=list)
    contact_full_name: str = ""
    job_title: list[str] = Field(default_factory=list)
    contact_gender: list[str] = Field(default_factory=list)
    phone: str = ""
    normalized_email: str = ""
    domain: list[str] = Field(default_factory=list)
    q: str = ""

    @field_validator(*_KEYS_BY_KIND["multi"], mode="before")
    @classmethod
    def _clean_multi(cls, value: Any) -> list[str]:
        return _as_unique_list(value)

    @field_validator(*_KEYS_BY_KIND["text"], *_KEYS_BY_KIND["query"], mode="before")
    @classmethod
    def _clean_text(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator(*_KEYS_BY_KIND["tri"], mode="before")
    @classmethod
    def _clean_tri(cls, value: Any) -> TriState:
        return _as_tri(value)

    def merged_with(self, overrides: dict[str, Any] | None) -> FilterModel:
        if not overrides:
            return self
        data = self.model_dump()
        data.update(FilterModel.model_validate(overrides).model_dump(exclude_unset=True))
        return FilterModel.model_validate(data)


QuickSearchKind = Literal["phone", "area_code", "email", "domain", "name"]

_QUICK_SEARCH_KEYS: dict[str, str] = {
    "phone": "phone",
    "area_code": "phone",
    "email": "normalized_email",
    "domain": "domain",
    "name": "contact_full_name",
}


def quick_search_filters(kind: QuickSearchKind, value: str) -> FilterModel:
    """Single-field lookup used by the search-by-phone/email/domain/name views."""
    key = _QUICK_SEARCH_KEYS.get(kind)
    if key is None:
        raise ValueError(f"Unsupported quick search kind: {kind}")
    if key == "domain":
        return FilterModel.model_validate({key: [value]})
    return FilterModel.model_validate({key: value})
