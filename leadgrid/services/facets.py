from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

from leadgrid.contracts.rows import Facets, Row
from leadgrid.services.record_normalizer import resolve_field

_SKILL_SEPARATORS = re.compile(r"[;,]+")


def _uniq(values: Iterable[str]) -> list[str]:
    return sorted({value.strip() for value in values if value and value.strip()})


def build_facets(rows: Sequence[Row]) -> Facets:
    """Option lists for the filter pickers, drawn from the rows on screen."""
    states: list[str] = []
    cities: list[str] = []
    countries: list[str] = []
    industries: list[str] = []
    job_titles: list[str] = []
    skills: list[str] = []
    companies: list[str] = []
    websites: list[str] = []
    employees: list[str] = []
    revenues: list[str] = []

    for row in rows:
        raw: dict[str, Any] = row.raw
        states.append(resolve_field(raw, ("merged.normalized_state",)) or row.state)
        cities.append(row.city)
        countries.append(row.country)
        job_titles.append(row.job_title)
        companies.append(row.company)
        websites.append(row.website)
        employees.append(row.employee_count)
        revenues.append(row.revenue)
        skills.extend(_SKILL_SEPARATORS.split(row.skills))
        for candidate in (
            resolve_field(raw, ("industry",)),
            resolve_field(raw, ("linked.Industry",)),
            resolve_field(raw, ("linked.Industry_2",)),
        ):
            industries.extend(candidate.split(","))

    return Facets(
        state_code=_uniq(states),
        city=_uniq(cities),
        country=_uniq(countries),
        industry=_uniq(industries),
        job_title=_uniq(job_titles),
        skills=_uniq(skills),
        company=_uniq(companies),
        website=_uniq(websites),
        employees_options=_uniq(employees),
        revenue_options=_uniq(revenues),
    )
