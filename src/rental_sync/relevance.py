from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from rental_sync.coerce import parse_timestamp
from rental_sync.model import Entity, RentalCandidate


def candidate_from_entity(entity: Entity) -> RentalCandidate:
    """Build a candidate from a child record's rental period fields."""
    return RentalCandidate(
        id=entity.id,
        start_date=parse_timestamp(entity.attributes.get("cf_rental_period_start")),
        end_date=parse_timestamp(entity.attributes.get("cf_rental_period_end")),
        attributes=entity.attributes,
    )


def select_relevant(
    candidates: Iterable[RentalCandidate],
    now: Optional[datetime] = None,
) -> Optional[RentalCandidate]:
    """Pick the rental that should govern an asset right now.

    Active rentals (``start <= now <= end``) win; among them the latest start,
    then the latest end. Without an active rental the soonest future one is
    chosen. Candidates missing either date are ignored.
    """

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    dated = [c for c in candidates if c.start_date and c.end_date]

    active = [c for c in dated if c.start_date <= now <= c.end_date]
    if active:
        return max(active, key=lambda c: (c.start_date, c.end_date))

    # A start in the future with an end before now is an inverted range
    future = [c for c in dated if c.start_date > now and c.end_date >= now]
    if future:
        return min(future, key=lambda c: c.start_date)

    return None


__all__ = ["candidate_from_entity", "select_relevant"]
