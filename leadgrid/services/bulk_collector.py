from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from typing import Any

from leadgrid.config import get_settings
from leadgrid.contracts.filters import FilterModel
from leadgrid.contracts.rows import BatchProgress, Row
from leadgrid.providers import lead_search
from leadgrid.services.paginated_fetcher import build_page_params, decode_search_response
from leadgrid.services.record_normalizer import normalize_hits

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BatchProgress], None]


async def collect_rows(
    filters: FilterModel | Mapping[str, Any] | None,
    base_offset: int,
    total_needed: int,
    on_progress: ProgressCallback | None = None,
    *,
    batch_size: int | None = None,
) -> list[Row]:
    """Fetch up to ``total_needed`` rows starting at ``base_offset``, one batch at a time.

    Batches run strictly in sequence. A short batch means the backend has no
    more rows, and collection stops there. Transport errors propagate.
    """
    if total_needed <= 0:
        return []

    batch_size = batch_size or get_settings().bulk_batch_size
    total_batches = math.ceil(total_needed / batch_size)
    collected: list[Row] = []

    for index in range(total_batches):
        limit = min(batch_size, total_needed - index * batch_size)
        params = build_page_params(filters, offset=base_offset + index * batch_size, limit=limit)
        payload = await lead_search.search_leads(params=params)
        rows = normalize_hits(decode_search_response(payload).hits)
        collected.extend(rows)

        batch_index = index + 1
        if on_progress is not None:
            on_progress(
                BatchProgress(
                    batch_index=batch_index,
                    total_batches=total_batches,
                    percent=(200 * batch_index + total_batches) // (2 * total_batches),
                )
            )

        if len(rows) < limit:
            logger.info(
                "Bulk collection stopped early; backend exhausted",
                extra={"batch_index": batch_index, "requested": limit, "returned": len(rows)},
            )
            break

    return collected
