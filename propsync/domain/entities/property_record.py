"""
Representacion canonica en memoria de una propiedad del feed.

Se mantiene libre de I/O para poder testearla facilmente.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ListingOperation(str, Enum):
    """Tipo de operacion comercial del listado."""
    SALE = "sale"
    RENT = "rent"

    @classmethod
    def from_feed(cls, raw: str | None) -> "ListingOperation":
        """
        Clasifica el atributo `operation` del tag <price>.

        Solo "rent" (sin distinguir mayusculas) se considera arriendo;
        cualquier otro valor, incluido ausente, cae en venta.
        """
        if raw and raw.strip().lower() == cls.RENT.value:
            return cls.RENT
        return cls.SALE


@dataclass(frozen=True)
class PropertyRecord:
    """
    Una propiedad normalizada desde el feed XML.

    - external_id: reference_id del feed, clave natural para reconciliar
    - campos de texto opcionales: "" cuando el tag no existe
    - amenities / images: en orden de documento
    """

    external_id: str
    title: str = ""
    description: str = ""
    price: str = ""
    bedrooms: str = ""
    bathrooms: str = ""
    floor_area: str = ""
    plot_area: str = ""
    floor: str = ""
    fee: str = ""
    property_type: str = ""
    operation: ListingOperation = ListingOperation.SALE
    address: str = ""
    postal_code: str = ""
    latitude: str = ""
    longitude: str = ""
    agent_name: str = ""
    agent_email: str = ""
    agent_phone: str = ""
    amenities: tuple[str, ...] = field(default_factory=tuple)
    images: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.external_id or not self.external_id.strip():
            raise ValueError("PropertyRecord requiere un external_id no vacio")

    @property
    def location(self) -> str:
        """Coordenadas "lat, lon" o "" si falta alguna."""
        if self.latitude and self.longitude:
            return f"{self.latitude}, {self.longitude}"
        return ""

    @property
    def has_images(self) -> bool:
        return len(self.images) > 0
