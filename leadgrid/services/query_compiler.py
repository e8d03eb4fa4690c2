from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from leadgrid.contracts.filters import FILTER_FIELDS, FilterModel

_TRI_PARAM_VALUES = {"yes": "Y", "no": "N"}


def as_filter_model(filters: FilterModel | Mapping[str, Any] | None) -> FilterModel:
    if isinstance(filters, FilterModel):
        return filters
    return FilterModel.model_validate(dict(filters or {}))


def compile_filters(filters: FilterModel | Mapping[str, Any] | None) -> dict[str, str | int]:
    """Flatten a filter model into search query parameters.

    Unset values are omitted entirely. Multi values are comma-joined without
    escaping, so values containing commas split on the server side. The free-text
    query is appended after the structured filters. Pagination is not added here.
    """
    model = as_filter_model(filters)
    compiled: dict[str, str | int] = {}
    query: str | None = None

    for field in FILTER_FIELDS:
        value = getattr(model, field.key)
        if field.kind == "multi":
            if value:
                compiled[field.param] = ",".join(value)
        elif field.kind == "tri":
            if value in _TRI_PARAM_VALUES:
                compiled[field.param] = _TRI_PARAM_VALUES[value]
        elif field.kind == "text":
            if value.strip():
                compiled[field.param] = value.strip()
        elif value.strip():
            query = value.strip()

    if query:
        compiled["q"] = query
    return compiled
