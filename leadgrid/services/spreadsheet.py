from __future__ import annotations

import html
import re
from collections.abc import Iterable, Sequence
from typing import Any

from leadgrid.contracts.rows import CANONICAL_ROW_FIELDS, Row

DEFAULT_EXPORT_COLUMNS: tuple[str, ...] = (
    "full_name",
    "first_name",
    "last_name",
    "job_title",
    "company",
    "email",
    "phone",
    "city",
    "state",
    "country",
    "zip_code",
    "website",
    "domain",
    "employee_count",
    "revenue",
    "skills",
    "linkedin_url",
    "facebook_url",
    "twitter_url",
)

_HEADER_OVERRIDES = {
    "full_name": "Full name",
    "linkedin_url": "LinkedIn URL",
}

_CSV_NEEDS_QUOTES = re.compile(r"[\",\r\n]")


def to_header(field: str) -> str:
    if field in _HEADER_OVERRIDES:
        return _HEADER_OVERRIDES[field]
    return re.sub(r"\b\w", lambda match: match.group(0).upper(), field.replace("_", " "))


def row_values(row: Row, columns: Sequence[str]) -> list[str]:
    values: list[str] = []
    for column in columns:
        if column in CANONICAL_ROW_FIELDS:
            value = getattr(row, column)
        else:
            value = row.raw.get(column, "")
        values.append("" if value is None else str(value))
    return values


def _escape_csv(value: Any) -> str:
    text = "" if value is None else str(value)
    if _CSV_NEEDS_QUOTES.search(text):
        return '"' + text.replace('"', '""') + '"'
    return text


def rows_to_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    lines = [",".join(_escape_csv(header) for header in headers)]
    lines.extend(",".join(_escape_csv(cell) for cell in row) for row in rows)
    return "\r\n".join(lines)


def rows_to_xls(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """HTML table that spreadsheet tools open as an ``.xls`` workbook."""
    parts = ['<table border="1"><tr>']
    parts.extend(f"<th>{html.escape(str(header))}</th>" for header in headers)
    parts.append("</tr>")
    for row in rows:
        parts.append("<tr>")
        parts.extend(f"<td>{html.escape('' if cell is None else str(cell))}</td>" for cell in row)
        parts.append("</tr>")
    parts.append("</table>")
    return "".join(parts)


def render_page_export(rows: Sequence[Row], columns: Sequence[str], export_format: str) -> tuple[str, str]:
    """Serialized document and its media type for ``csv`` or ``xls``."""
    headers = [to_header(column) for column in columns]
    values = [row_values(row, columns) for row in rows]
    if export_format == "xls":
        return rows_to_xls(headers, values), "application/vnd.ms-excel"
    if export_format == "csv":
        return rows_to_csv(headers, values), "text/csv; charset=utf-8"
    raise ValueError(f"Unsupported export format: {export_format}")
