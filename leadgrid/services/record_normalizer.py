from __future__ import annotations

from typing import Any

from leadgrid.contracts.rows import Row

# Candidate source paths per canonical field, highest precedence first. Top-level
# keys are values the backend already reconciled, so they beat the raw merged /
# linked sub-schemas.
FIELD_SOURCES: dict[str, tuple[str, ...]] = {
    "id": ("_id", "id", "merged.id", "linked.id"),
    "full_name": (
        "name",
        "full_name",
        "merged.normalized_full_name",
        "merged.Name",
        "merged.ContactName",
        "linked.Full_name",
        "linked.normalized_full_name",
    ),
    "company": (
        "company",
        "merged.Company",
        "merged.normalized_company_name",
        "linked.Company_Name",
        "linked.normalized_company_name",
    ),
    "job_title": ("job_title", "merged.Title_Full", "linked.Job_title"),
    "website": (
        "website",
        "linked.Company_Website",
        "merged.normalized_website",
        "merged.Web_Address",
        "linked.normalized_company_website",
    ),
    "domain": ("domain",),
    "employee_count": ("employees", "merged.NumEmployees", "merged.Employees"),
    "revenue": ("revenue", "min_revenue", "merged.SalesVolume", "merged.Sales_Volume", "merged.sales_volume"),
    "city": ("city", "merged.City", "linked.Locality"),
    "state": ("state", "merged.State", "linked.normalized_state", "merged.normalized_state"),
    "country": ("country", "merged.Country", "linked.Countries", "linked.Location_Country"),
    "zip_code": ("zip_code", "merged.Zip", "linked.Postal_Code"),
    "phone": ("phone", "merged.Telephone_Number", "merged.Phone", "linked.Phone_numbers", "linked.Mobile"),
    "email": ("email", "merged.normalized_email", "merged.Email", "linked.normalized_email", "linked.Emails"),
    "linkedin_url": ("linkedin_url", "merged.Linkedin_URL", "linked.LinkedIn_URL", "linked.Linkedin_URL"),
    "facebook_url": ("facebook_url", "facebook", "merged.Facebook", "linked.Facebook"),
    "twitter_url": ("twitter_url", "twitter", "merged.Twitter", "linked.Twitter"),
    "skills": ("Skills", "skills", "linked.Skills", "merged.Skills"),
}


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _lookup(hit: dict[str, Any], path: str) -> Any:
    current: Any = hit
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _as_scalar_text(value: Any) -> str:
    if value is None or isinstance(value, dict):
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(text for text in (_as_scalar_text(item) for item in value) if text)
    return str(value).strip()


def resolve_field(hit: dict[str, Any], paths: tuple[str, ...]) -> str:
    """First candidate whose trimmed string form is non-empty, else ``""``."""
    for path in paths:
        text = _as_scalar_text(_lookup(hit, path))
        if text:
            return text
    return ""


def split_full_name(full_name: str) -> tuple[str, str]:
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def normalize_hit(hit: Any) -> Row:
    raw = _as_dict(hit)
    values = {field: resolve_field(raw, paths) for field, paths in FIELD_SOURCES.items()}

    first_name, last_name = split_full_name(values["full_name"])
    values["first_name"] = first_name
    values["last_name"] = last_name

    # Scheme stripping for display happens downstream; the website is reused as-is.
    if not values["domain"]:
        values["domain"] = values["website"]

    return Row(**values, raw=raw)


def normalize_hits(hits: list[Any]) -> list[Row]:
    return [normalize_hit(hit) for hit in hits]
