"""
Parser del feed XML de propiedades.

Convierte el documento crudo en una lista ordenada de PropertyRecord:
- Un <listing> sin <reference_id> se omite en silencio.
- Un tag opcional ausente produce "" (nunca lanza).
- Un documento mal formado lanza ParseError y no devuelve resultado parcial.
"""
from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Optional

from loguru import logger

from propsync.domain.entities.property_record import ListingOperation, PropertyRecord
from propsync.shared.exceptions.sync import ParseError

LISTING_TAG = "listing"
EXTERNAL_ID_TAG = "reference_id"

# Campo de PropertyRecord -> tag del feed
TEXT_FIELDS = {
    "title": "title",
    "description": "description",
    "price": "price",
    "bedrooms": "bedrooms",
    "bathrooms": "bathrooms",
    "floor_area": "floorArea",
    "plot_area": "plotArea",
    "floor": "floor",
    "fee": "communityFeesPrice",
    "property_type": "propertyType",
    "address": "address",
    "postal_code": "postalCode",
    "latitude": "latitude",
    "longitude": "longitude",
}

# Campo -> (contenedor, tag hijo)
CONTACT_FIELDS = {
    "agent_name": ("contact", "name"),
    "agent_email": ("contact", "email"),
    "agent_phone": ("contact", "phone"),
}

IMAGES_CONTAINER = ("pictures", "url")
AMENITIES_CONTAINER = ("amenities", "amenity")


def _local_name(tag: str) -> str:
    """Quita el namespace ({uri}tag -> tag)."""
    return tag.split("}", 1)[1] if "}" in tag else tag


def _find_first(element: ET.Element, tag: str) -> Optional[ET.Element]:
    """Primer descendiente con ese nombre local, en orden de documento."""
    for child in element.iter():
        if child is not element and _local_name(child.tag) == tag:
            return child
    return None


def _text(element: Optional[ET.Element]) -> str:
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def _collect(listing: ET.Element, container_tag: str, item_tag: str) -> tuple[str, ...]:
    container = _find_first(listing, container_tag)
    if container is None:
        return ()
    values = []
    for node in container.iter():
        if node is container or _local_name(node.tag) != item_tag:
            continue
        value = _text(node)
        if value:
            values.append(value)
    return tuple(values)


class FeedParser:
    """Parser sin estado: `parse(raw)` es una funcion pura sobre bytes."""

    def parse(self, raw: bytes | str) -> list[PropertyRecord]:
        """
        Parsea el documento completo.

        Args:
            raw: Cuerpo del feed

        Returns:
            list[PropertyRecord]: En orden de documento

        Raises:
            ParseError: Si el XML no es valido
        """
        try:
            root = ET.fromstring(raw)
        except ET.ParseError as e:
            raise ParseError(f"XML Import Error: Failed to parse XML: {e}") from e

        records: list[PropertyRecord] = []
        skipped = 0
        for listing in root.iter():
            if _local_name(listing.tag) != LISTING_TAG:
                continue
            record = self.parse_listing(listing)
            if record is None:
                skipped += 1
                continue
            records.append(record)

        if skipped:
            logger.debug(f"[FEED] {skipped} listing(s) sin {EXTERNAL_ID_TAG} omitidos")
        logger.info(f"[FEED] {len(records)} propiedades parseadas")
        return records

    def parse_listing(self, listing: ET.Element) -> Optional[PropertyRecord]:
        """Convierte un <listing> en PropertyRecord, o None si no tiene id."""
        external_id = _text(_find_first(listing, EXTERNAL_ID_TAG))
        if not external_id:
            return None

        values = {name: _text(_find_first(listing, tag)) for name, tag in TEXT_FIELDS.items()}

        for name, (parent_tag, child_tag) in CONTACT_FIELDS.items():
            parent = _find_first(listing, parent_tag)
            values[name] = _text(_find_first(parent, child_tag)) if parent is not None else ""

        price = _find_first(listing, "price")
        operation = ListingOperation.from_feed(price.get("operation") if price is not None else None)

        return PropertyRecord(
            external_id=external_id,
            operation=operation,
            images=_collect(listing, *IMAGES_CONTAINER),
            amenities=_collect(listing, *AMENITIES_CONTAINER),
            **values,
        )
