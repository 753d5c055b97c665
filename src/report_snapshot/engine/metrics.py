from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional, Sequence

from ..models import ReportMetrics
from ..utils import as_number, as_text, is_missing, resolve_attribute_key, stable_mean

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


def round_half_up(value: float, digits: int) -> float:
    """Round to `digits` decimals with halves going toward +infinity (0.125 -> 0.13, -2.5 -> -2)."""
    factor = 10**digits
    scaled = value * factor
    if not math.isfinite(scaled):
        return value
    return math.floor(scaled + 0.5) / factor


def row_attributes(rows: Sequence[Row]) -> list[str]:
    """Every key seen across the rows, in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            seen.setdefault(str(key), None)
    return list(seen)


def compute_metrics(
    filtered: Sequence[Row],
    unfiltered: Sequence[Row],
    attributes: Optional[Sequence[str]] = None,
) -> ReportMetrics:
    """
    Summary metrics for the filtered rows.

    filterMatchRate is the share of input rows kept, as a percentage with one
    decimal. Each attribute is looked up on the first filtered row; when every
    present value reads as a number the attribute gets an average rounded to two
    decimals, otherwise a count per distinct text value. Attributes with no key
    or no present values are left out.
    """
    total = len(filtered)
    total_unfiltered = len(unfiltered)
    match_rate = round_half_up(total / total_unfiltered * 1000, 0) / 10 if total_unfiltered else 0.0

    averages: dict[str, float] = {}
    counts: dict[str, dict[str, int]] = {}
    names = row_attributes(unfiltered) if attributes is None else list(attributes)
    for name in names:
        key = resolve_attribute_key(filtered[0], name) if filtered else None
        if key is None:
            continue
        values = [row[key] for row in filtered if not is_missing(row, key)]
        if not values:
            continue

        numbers = [as_number(v) for v in values]
        if all(n is not None for n in numbers):
            averages[name] = round_half_up(stable_mean(numbers), 2)
        else:
            tally: dict[str, int] = {}
            for v in values:
                text = as_text(v)
                tally[text] = tally.get(text, 0) + 1
            counts[name] = tally

    logger.debug("compute_metrics: %d/%d rows, %d attribute(s)", total, total_unfiltered, len(names))
    return ReportMetrics(
        total_rows=total,
        total_rows_unfiltered=total_unfiltered,
        filter_match_rate=match_rate,
        numeric_averages=averages,
        category_counts=counts,
    )
