"""Record store gateway helpers for equipment rentals.

This module talks to the record-management REST API over ``httpx``. Reads
(records, workflow steps, record types, child searches) degrade to ``None`` or
an empty list when the store answers with an error, so callers can abort the
branch quietly. Writes raise :class:`RecordUpdateError` carrying the remote
response body.
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

import json
import logging
from typing import Any, List, Mapping, Optional

import httpx

from rental_sync.config import Settings
from rental_sync.model import UNSET, Entity, RecordType, WorkflowStep

logger = logging.getLogger(__name__)

# Fields requested when searching for a record's rental children
CHILD_SEARCH_FIELDS = (
    "id",
    "pkey",
    "cf_rental_period_start",
    "cf_rental_period_end",
    "cf_client_project_name",
    "cf_address_line1",
    "cf_address_line2",
    "cf_address_city",
    "cf_address_state",
    "cf_address_zip",
    "cf_address_country",
)


class RecordsApiError(RuntimeError):
    """A non-success response from the record store."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RecordUpdateError(RecordsApiError):
    """Raised when a PATCH against a record is rejected."""


def drop_unset(attributes: Mapping[str, Any]) -> dict[str, Any]:
    """Remove :data:`UNSET` entries, keeping explicit ``None`` values."""
    return {key: value for key, value in attributes.items() if value is not UNSET}


class RecordsGateway:
    """Async client for the record store, used as ``async with RecordsGateway(...)``."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            headers=settings.headers,
            timeout=httpx.Timeout(settings.request_timeout),
            transport=transport,
        )

    async def __aenter__(self) -> RecordsGateway:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _read_json(self, response: httpx.Response, what: str) -> Optional[Any]:
        """Return the decoded body of a successful read, or ``None`` after logging."""
        if not response.is_success:
            logger.error(
                "Failed to fetch %s (HTTP %s): %s",
                what,
                response.status_code,
                response.text,
            )
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.error("Failed to parse JSON for %s: %s", what, exc)
            return None

    async def get_record(self, record_id: str) -> Optional[Entity]:
        """Fetch a record with its attributes and relationships."""
        logger.info("Fetching full data for record: %s", record_id)
        response = await self._client.get(f"/records/{record_id}/meta")
        result = self._read_json(response, f"record {record_id}")
        if not isinstance(result, dict):
            return None
        entity = Entity.from_payload(result.get("data"))
        if entity is not None:
            logger.debug("Parsed attributes for %s: %s", record_id, entity.attributes)
        return entity

    async def search_child_records(self, parent_id: str) -> List[Entity]:
        """Return records whose parent is ``parent_id``."""
        logger.info("Searching child records of: %s", parent_id)
        body = {
            "aql": (
                f"select {', '.join(CHILD_SEARCH_FIELDS)} from __main__ "
                f"where parent_id eq {parent_id}"
            )
        }
        response = await self._client.post("/records/search", json=body)
        result = self._read_json(response, f"children of {parent_id}")
        if not isinstance(result, dict) or not isinstance(result.get("data"), list):
            return []
        children: List[Entity] = []
        for row in result["data"]:
            entity = Entity.from_payload(row)
            if entity is not None:
                children.append(entity)
        logger.info("Found %d child record(s) of %s", len(children), parent_id)
        return children

    async def get_workflow_step(self, step_id: str) -> Optional[WorkflowStep]:
        logger.info("Fetching workflow step details for ID: %s", step_id)
        response = await self._client.get(f"/workflow-steps/{step_id}")
        result = self._read_json(response, f"workflow step {step_id}")
        if not isinstance(result, dict) or not isinstance(result.get("data"), dict):
            return None
        attributes = result["data"].get("attributes")
        text = attributes.get("text") if isinstance(attributes, dict) else None
        if text is not None and not isinstance(text, str):
            logger.warning("Workflow step %s has non-text display value: %r", step_id, text)
            text = None
        return WorkflowStep(id=str(step_id), text=text)

    async def get_record_type(self, type_id: str) -> Optional[RecordType]:
        """Resolve a record type's display name via the type search endpoint."""
        logger.info("Searching for record type name with ID: %s", type_id)
        body = {"aql": f"select id, name from __main__ where id eq {type_id}"}
        response = await self._client.post("/record-types/search", json=body)
        result = self._read_json(response, f"record type {type_id}")
        rows = result.get("data") if isinstance(result, dict) else None
        if not rows or not isinstance(rows, list) or not isinstance(rows[0], dict):
            logger.error("Record type with ID %s not found.", type_id)
            return None
        attributes = rows[0].get("attributes")
        name = attributes.get("name") if isinstance(attributes, dict) else None
        if not name or not isinstance(name, str):
            logger.error("Record type %s has no name.", type_id)
            return None
        logger.info('Found record type name: "%s"', name)
        return RecordType(id=str(type_id), name=name)

    async def get_record_type_name(self, type_id: str) -> Optional[str]:
        record_type = await self.get_record_type(type_id)
        return record_type.name if record_type else None

    async def update_record(self, record_id: str, attributes: Mapping[str, Any]) -> None:
        """Patch ``attributes`` onto a record; ``UNSET`` values are not sent."""
        patch = drop_unset(attributes)
        logger.info("Updating record: %s", record_id)
        logger.debug("Update attributes: %s", json.dumps(patch, indent=2, default=str))
        body = {"data": {"type": "records", "id": record_id, "attributes": patch}}
        response = await self._client.patch(f"/records/{record_id}", json=body)
        if not response.is_success:
            logger.error("Record update for %s failed: %s", record_id, response.text)
            raise RecordUpdateError(
                f"Update failed: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        logger.info("Record %s updated successfully.", record_id)


__all__ = [
    "RecordsGateway",
    "RecordsApiError",
    "RecordUpdateError",
    "drop_unset",
]
