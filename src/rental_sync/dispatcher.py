"""Workflow dispatch for record-update webhooks.

A triggering record is classified once from its record type, primary key and
workflow step, then routed to a single handler:

* Asset/Component records have their rental fields cleared.
* Equipment Rentals on "Equipment On Hold" get their line items priced.
* Equipment Rentals on "Shipment Preparation" get their total cost written
  and their rental bundle copied onto every associated asset.

Missing data on the read side ends the run quietly; a rejected update raises
:class:`~rental_sync.records_gateway.RecordUpdateError`.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from rental_sync.costing import (
    LineItemParseError,
    apply_line_item_costs,
    compute_aggregate,
    dump_equipment_list,
    parse_equipment_list,
)
from rental_sync.model import Entity, RentalFields
from rental_sync.records_gateway import RecordsGateway
from rental_sync.relevance import candidate_from_entity, select_relevant

logger = logging.getLogger(__name__)

ASSET_TYPE_NAMES = frozenset({"Asset Record", "Component Record"})
RENTAL_TYPE_NAME = "Equipment Rental"
RENTAL_PKEY_MARKER = "RENT"
STEP_ON_HOLD = "Equipment On Hold"
STEP_SHIPMENT = "Shipment Preparation"

EQUIPMENT_LIST_FIELD = "cf_list_equipment_to_be"
TOTAL_COST_FIELD = "cf_total_equipment_rental_cost"
ASSET_IDS_FIELD = "cf_available_equipment"


class Classification(enum.Enum):
    ASSET_OR_COMPONENT = "asset_or_component"
    RENTAL_ON_HOLD = "rental_on_hold"
    RENTAL_SHIPMENT = "rental_shipment"
    RENTAL_OTHER = "rental_other"
    UNCLASSIFIED = "unclassified"


def classify(
    type_name: Optional[str],
    pkey: Optional[str] = None,
    step_text: Optional[str] = None,
) -> Classification:
    """Map a record's type name, primary key and workflow step to a handler."""
    if type_name in ASSET_TYPE_NAMES:
        return Classification.ASSET_OR_COMPONENT
    if type_name != RENTAL_TYPE_NAME:
        return Classification.UNCLASSIFIED
    if not pkey or RENTAL_PKEY_MARKER not in pkey:
        return Classification.RENTAL_OTHER
    if step_text == STEP_ON_HOLD:
        return Classification.RENTAL_ON_HOLD
    if step_text == STEP_SHIPMENT:
        return Classification.RENTAL_SHIPMENT
    return Classification.RENTAL_OTHER


@dataclass(slots=True)
class ProcessOutcome:
    """What a single webhook run decided and which records it patched."""

    record_id: str
    classification: Optional[Classification] = None  # None when aborted early
    updated_ids: List[str] = field(default_factory=list)


class RecordProcessor:
    """Routes one triggering record to the matching handler."""

    def __init__(self, gateway: RecordsGateway) -> None:
        self.gateway = gateway

    async def process_record_update(self, record_id: str) -> ProcessOutcome:
        logger.info("Starting record processing for ID: %s", record_id)
        outcome = ProcessOutcome(record_id=record_id)

        record = await self.gateway.get_record(record_id)
        if record is None:
            return outcome
        if not record.type_id:
            logger.info("Record is missing type ID. Aborting.")
            return outcome

        type_name = await self.gateway.get_record_type_name(record.type_id)
        if not type_name:
            return outcome

        step_text = None
        if type_name == RENTAL_TYPE_NAME:
            if not record.pkey or not record.status_id:
                logger.info(
                    "Equipment Rental record is missing pkey or status ID. Aborting."
                )
                return outcome
            step = await self.gateway.get_workflow_step(record.status_id)
            step_text = step.text if step else None
            logger.info('Record pkey: "%s", Workflow Step: "%s"', record.pkey, step_text)

        classification = classify(type_name, record.pkey, step_text)
        outcome.classification = classification

        if classification is Classification.ASSET_OR_COMPONENT:
            await self._clear_rental_fields(record.id, outcome)
        elif classification is Classification.RENTAL_ON_HOLD:
            await self._handle_on_hold(record, outcome)
        elif classification is Classification.RENTAL_SHIPMENT:
            await self._handle_shipment_preparation(record, outcome)
        elif classification is Classification.RENTAL_OTHER:
            if RENTAL_PKEY_MARKER not in record.pkey:
                logger.info(
                    "Pkey does not contain '%s'. No action taken.", RENTAL_PKEY_MARKER
                )
            else:
                logger.info('No action defined for workflow step: "%s".', step_text)
        else:
            logger.info('No logic defined for record type: "%s".', type_name)
        return outcome

    def _load_line_items(self, record: Entity):
        raw = record.attributes.get(EQUIPMENT_LIST_FIELD)
        if not raw:
            logger.info("No equipment list found on %s.", record.id)
            return None
        try:
            return parse_equipment_list(raw)
        except LineItemParseError as exc:
            logger.error("Failed to parse equipment list JSON: %s", exc)
            return None

    async def _handle_on_hold(self, record: Entity, outcome: ProcessOutcome) -> None:
        logger.info("Handling '%s' status.", STEP_ON_HOLD)
        items = self._load_line_items(record)
        if items is None:
            return
        apply_line_item_costs(items)
        await self.gateway.update_record(
            record.id, {EQUIPMENT_LIST_FIELD: dump_equipment_list(items)}
        )
        outcome.updated_ids.append(record.id)
        logger.info("Successfully calculated and updated line item costs.")

    async def _handle_shipment_preparation(
        self, record: Entity, outcome: ProcessOutcome
    ) -> None:
        logger.info("Handling '%s' status.", STEP_SHIPMENT)
        items = self._load_line_items(record)
        if items is None:
            return

        total = compute_aggregate(items)
        logger.info("Calculated Overall Total Cost: %s", total)
        await self.gateway.update_record(record.id, {TOTAL_COST_FIELD: total})
        outcome.updated_ids.append(record.id)

        asset_ids = record.attributes.get(ASSET_IDS_FIELD)
        if not isinstance(asset_ids, list) or not asset_ids:
            logger.info("No associated assets found in '%s'.", ASSET_IDS_FIELD)
            return

        patch = RentalFields.from_rental(record.id, record.attributes).to_patch()
        logger.info("Updating %d associated asset(s)...", len(asset_ids))
        for asset_id in asset_ids:
            await self.gateway.update_record(str(asset_id), patch)
            outcome.updated_ids.append(str(asset_id))
        logger.info("Finished updating associated assets.")

    async def _clear_rental_fields(self, record_id: str, outcome: ProcessOutcome) -> None:
        logger.info("Handling Asset/Component record update. Clearing rental fields.")
        await self.gateway.update_record(record_id, RentalFields.cleared().to_patch())
        outcome.updated_ids.append(record_id)
        logger.info("Cleared rental fields for record %s.", record_id)

    async def clear_rental_fields(self, record_id: str) -> ProcessOutcome:
        """Null every rental, client and address field on an asset or component."""
        outcome = ProcessOutcome(
            record_id=record_id, classification=Classification.ASSET_OR_COMPONENT
        )
        await self._clear_rental_fields(record_id, outcome)
        return outcome

    async def refresh_asset(
        self, asset_id: str, now: Optional[datetime] = None
    ) -> ProcessOutcome:
        """Mirror the most relevant child rental onto an asset, if there is one."""
        logger.info("Refreshing rental fields for asset: %s", asset_id)
        outcome = ProcessOutcome(record_id=asset_id)
        children = await self.gateway.search_child_records(asset_id)
        rental = select_relevant((candidate_from_entity(c) for c in children), now)
        if rental is None:
            logger.info("No active or upcoming rental for %s. No update.", asset_id)
            return outcome

        logger.info("Rental %s governs asset %s", rental.id, asset_id)
        patch = RentalFields.from_rental(rental.id, rental.attributes).to_patch()
        await self.gateway.update_record(asset_id, patch)
        outcome.updated_ids.append(asset_id)
        return outcome


__all__ = ["Classification", "classify", "ProcessOutcome", "RecordProcessor"]
