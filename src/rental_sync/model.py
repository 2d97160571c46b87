"""Domain models for equipment rental synchronisation.

These dataclasses represent the entities shared throughout the tool: records
fetched from the record store, rental candidates competing for an asset,
equipment line items, and the rental field bundle copied onto assets.
"""

from __future__ import annotations  # Postponed evaluation of annotations (PEP 563)

import logging
from dataclasses import dataclass, field  # Dataclass utilities
from datetime import datetime
from typing import Any, Mapping

logger = logging.getLogger(__name__)


class _Unset:
    """Marker for an attribute that is absent, as opposed to explicitly null."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()  # Dropped from update payloads; None is sent as null


def _relationship_id(relationships: Mapping[str, Any], name: str) -> str | None:
    rel = relationships.get(name)
    if not isinstance(rel, dict):
        return None
    data = rel.get("data")
    if not isinstance(data, dict):
        return None
    rel_id = data.get("id")
    return str(rel_id) if rel_id not in (None, "") else None


@dataclass(slots=True)
class Entity:
    """A record from the remote store with its attributes and relationships."""

    id: str  # Record identifier
    attributes: dict[str, Any] = field(default_factory=dict)  # Raw attribute map
    type_id: str | None = None  # ``relationships.type.data.id``
    status_id: str | None = None  # ``relationships.status.data.id``
    parent_id: str | None = None  # ``relationships.parent.data.id``

    @property
    def pkey(self) -> str | None:
        value = self.attributes.get("pkey")
        return str(value) if value not in (None, "") else None

    @classmethod
    def from_payload(cls, payload: Any) -> Entity | None:
        """Build an entity from a ``data`` object, or ``None`` if it has the wrong shape."""
        if not isinstance(payload, dict) or payload.get("id") in (None, ""):
            logger.warning("Ignoring record payload without an id: %r", payload)
            return None
        attributes = payload.get("attributes")
        if attributes is None:
            attributes = {}
        if not isinstance(attributes, dict):
            logger.warning(
                "Ignoring record %s with non-object attributes", payload.get("id")
            )
            return None
        relationships = payload.get("relationships")
        if not isinstance(relationships, dict):
            relationships = {}
        return cls(
            id=str(payload["id"]),
            attributes=dict(attributes),
            type_id=_relationship_id(relationships, "type"),
            status_id=_relationship_id(relationships, "status"),
            parent_id=_relationship_id(relationships, "parent"),
        )


@dataclass(slots=True)
class WorkflowStep:
    """A named stage in a rental's lifecycle."""

    id: str
    text: str | None


@dataclass(slots=True)
class RecordType:
    id: str
    name: str


@dataclass(slots=True)
class RentalCandidate:
    """A child rental competing to govern an asset's rental fields."""

    id: str
    start_date: datetime | None  # None when missing or unparseable
    end_date: datetime | None
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class LineItem:
    """One equipment entry from a rental's serialised equipment list.

    ``values`` holds the ``cf_*`` fields (rental period, quantity, rates and the
    computed ``cf_total_cost``); ``extra`` keeps any other keys so the list can
    be written back without losing data.
    """

    values: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def total_cost(self) -> Any:
        return self.values.get("cf_total_cost")


# Rental field bundle attribute names on asset/component records
RENTAL_FIELD_KEYS: dict[str, str] = {
    "rental_period_start": "cf_rental_period_start",
    "rental_period_end": "cf_rental_period_end",
    "client_name": "cf_client_name",
    "rental_record": "cf_equipment_rental_record",
    "address_line1": "cf_address_line1",
    "address_line2": "cf_address_line2",
    "address_city": "cf_address_city",
    "address_state": "cf_address_state",
    "address_zip": "cf_address_zip",
    "address_country": "cf_address_country",
}


@dataclass(slots=True)
class RentalFields:
    """Rental, client and address fields mirrored from a rental onto an asset.

    Fields left as :data:`UNSET` are omitted from the update; ``None`` clears
    the remote value.
    """

    rental_period_start: Any = UNSET
    rental_period_end: Any = UNSET
    client_name: Any = UNSET
    rental_record: Any = UNSET
    address_line1: Any = UNSET
    address_line2: Any = UNSET
    address_city: Any = UNSET
    address_state: Any = UNSET
    address_zip: Any = UNSET
    address_country: Any = UNSET

    @classmethod
    def from_rental(cls, rental_id: str, attributes: Mapping[str, Any]) -> RentalFields:
        """Bundle a rental's period, client and address for propagation."""
        return cls(
            rental_period_start=attributes.get("cf_rental_period_start", UNSET),
            rental_period_end=attributes.get("cf_rental_period_end", UNSET),
            client_name=attributes.get("cf_client_project_name", UNSET),
            rental_record=rental_id,
            address_line1=attributes.get("cf_address_line1", UNSET),
            address_line2=attributes.get("cf_address_line2", UNSET),
            address_city=attributes.get("cf_address_city", UNSET),
            address_state=attributes.get("cf_address_state", UNSET),
            address_zip=attributes.get("cf_address_zip", UNSET),
            address_country=attributes.get("cf_address_country", UNSET),
        )

    @classmethod
    def cleared(cls) -> RentalFields:
        return cls(**{name: None for name in RENTAL_FIELD_KEYS})

    def to_patch(self) -> dict[str, Any]:
        return {
            attr: getattr(self, name) for name, attr in RENTAL_FIELD_KEYS.items()
        }


__all__ = [
    "UNSET",
    "Entity",
    "WorkflowStep",
    "RecordType",
    "RentalCandidate",
    "LineItem",
    "RentalFields",
    "RENTAL_FIELD_KEYS",
]
