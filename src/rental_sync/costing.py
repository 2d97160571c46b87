"""Rental line-item costing.

Pure functions over the equipment list stored on an Equipment Rental record:
decode/encode the serialised list, price each line item under the monthly,
weekly and daily rate tiers, and sum the stored costs.
"""

from __future__ import annotations

import json
import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Optional

from rental_sync.coerce import parse_timestamp, to_number
from rental_sync.model import LineItem

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
MONTHLY_MIN_DAYS = 28
WEEKLY_MIN_DAYS = 7
CENT = Decimal("0.01")


class LineItemParseError(ValueError):
    """The serialised equipment list could not be decoded."""


def format_amount(value: float) -> str:
    """Two-decimal string, rounding exact ties away from zero."""
    return str(Decimal(value + 0.0).quantize(CENT, rounding=ROUND_HALF_UP))


def parse_equipment_list(raw: str) -> List[LineItem]:
    try:
        decoded = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise LineItemParseError(f"Equipment list is not valid JSON: {exc}") from exc
    if not isinstance(decoded, list):
        raise LineItemParseError("Equipment list must be a JSON array")

    items: List[LineItem] = []
    for entry in decoded:
        if not isinstance(entry, dict):
            raise LineItemParseError(f"Equipment list entry is not an object: {entry!r}")
        values = entry.get("values")
        if values is None:
            values = {}
        if not isinstance(values, dict):
            raise LineItemParseError("Equipment list entry 'values' is not an object")
        extra = {k: v for k, v in entry.items() if k != "values"}
        items.append(LineItem(values=dict(values), extra=extra))
    return items


def dump_equipment_list(items: Iterable[LineItem]) -> str:
    return json.dumps(
        [{**item.extra, "values": item.values} for item in items],
        separators=(",", ":"),
    )


def duration_days(start: Any, end: Any) -> Optional[int]:
    """Inclusive day count between two dates, or ``None`` if either is invalid."""
    start_at = parse_timestamp(start)
    end_at = parse_timestamp(end)
    if start_at is None or end_at is None:
        return None
    days = (end_at - start_at).total_seconds() / SECONDS_PER_DAY
    return math.floor(days + 0.5) + 1


def compute_line_item_cost(item: LineItem) -> Optional[str]:
    """Return the item's cost as a two-decimal string, or ``None`` to skip it."""
    values = item.values
    days = duration_days(values.get("cf_rental_period_start"), values.get("cf_rental_period_end"))
    if days is None or days <= 0:
        return None

    quantity = to_number(values.get("cf_quantity_rental"))
    daily_rate = to_number(values.get("cf_daily_rental_price"))
    weekly_rate = to_number(values.get("cf_weekly_rental_price"))
    monthly_rate = to_number(values.get("cf_monthly_rental_price"))

    if monthly_rate > 0 and days >= MONTHLY_MIN_DAYS:
        cost = (days / 30) * monthly_rate * quantity
    elif weekly_rate > 0 and days >= WEEKLY_MIN_DAYS:
        cost = (days / 7) * weekly_rate * quantity
    elif daily_rate > 0:
        cost = days * daily_rate * quantity
    else:
        cost = 0.0
    return format_amount(cost)


def apply_line_item_costs(items: Iterable[LineItem]) -> int:
    """Store each priceable item's cost in ``cf_total_cost``; return how many were priced."""
    priced = 0
    for index, item in enumerate(items):
        cost = compute_line_item_cost(item)
        if cost is None:
            logger.info("Skipping line item %d: invalid rental period", index)
            continue
        item.values["cf_total_cost"] = cost
        priced += 1
    return priced


def compute_aggregate(items: Iterable[LineItem]) -> str:
    """Sum the stored ``cf_total_cost`` values as a two-decimal string."""
    total = sum(to_number(item.total_cost) for item in items)
    return format_amount(total)


__all__ = [
    "LineItemParseError",
    "parse_equipment_list",
    "dump_equipment_list",
    "duration_days",
    "format_amount",
    "compute_line_item_cost",
    "apply_line_item_costs",
    "compute_aggregate",
]
