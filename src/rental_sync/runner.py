from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional

import httpx

from rental_sync.config import Settings
from rental_sync.dispatcher import ProcessOutcome, RecordProcessor
from rental_sync.records_gateway import RecordsGateway


async def process_record(
    record_id: str,
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProcessOutcome:
    """Classify the triggering record and run its workflow handler."""

    async with RecordsGateway(settings, transport=transport) as gateway:
        return await RecordProcessor(gateway).process_record_update(record_id)


async def refresh_asset(
    asset_id: str,
    settings: Settings,
    *,
    now: Optional[datetime] = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProcessOutcome:
    """Copy the currently relevant child rental onto an asset."""

    async with RecordsGateway(settings, transport=transport) as gateway:
        return await RecordProcessor(gateway).refresh_asset(asset_id, now)


def run_record_update(
    record_id: str,
    project_id: str | None = None,
    *,
    settings: Settings | None = None,
    refresh: bool = False,
) -> ProcessOutcome:
    """Synchronous entry point for one webhook trigger.

    ``project_id`` is accepted for the webhook's argument shape and is not used.
    """

    settings = settings or Settings.from_env()
    if refresh:
        return asyncio.run(refresh_asset(record_id, settings))
    return asyncio.run(process_record(record_id, settings))


__all__ = ["process_record", "refresh_asset", "run_record_update"]
