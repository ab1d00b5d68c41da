"""
Mapeos propiedad -> taxonomias de WordPress.

Este es el punto para adaptar el vocabulario de cada sitio:
- slug REST de cada taxonomia
- traduccion del propertyType del feed a la etiqueta del sitio
- etiqueta de venta/arriendo y etiqueta fija de condicion

Este modulo no realiza I/O: solo define configuracion.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from propsync.domain.entities.property_record import ListingOperation, PropertyRecord


@dataclass(frozen=True)
class TaxonomyMapping:
    """
    Vocabulario de taxonomias para un sitio WordPress.

    - *_taxonomy: slug del endpoint REST (/wp-json/wp/v2/<slug>)
    - type_labels: propertyType del feed (en minusculas) -> etiqueta
      Un tipo sin mapeo se usa tal cual.
    """

    type_taxonomy: str = "property-type"
    status_taxonomy: str = "property-status"
    label_taxonomy: str = "property-label"
    amenity_taxonomy: str = "amenity"
    type_labels: dict[str, str] = field(
        default_factory=lambda: {
            "apartment": "Apartamento",
            "house": "Casa",
            "commercial": "Local Comercial",
            "land": "Lote",
        }
    )
    sale_label: str = "Venta"
    rent_label: str = "Arriendo"
    condition_label: str = "Usado"

    def type_label(self, record: PropertyRecord) -> str:
        raw = record.property_type.strip()
        return self.type_labels.get(raw.lower(), raw)

    def operation_label(self, record: PropertyRecord) -> str:
        if record.operation is ListingOperation.SALE:
            return self.sale_label
        return self.rent_label

    def assignments(self, record: PropertyRecord) -> list[tuple[str, list[str]]]:
        """
        Asignaciones (taxonomia, etiquetas) a aplicar sobre el post.

        Las etiquetas vacias se descartan; una taxonomia sin etiquetas no se asigna.
        """
        pairs = [
            (self.type_taxonomy, [self.type_label(record)]),
            (self.status_taxonomy, [self.operation_label(record)]),
            (self.label_taxonomy, [self.condition_label]),
        ]
        if record.amenities:
            pairs.append((self.amenity_taxonomy, list(record.amenities)))

        result = []
        for taxonomy, labels in pairs:
            labels = [label for label in labels if label]
            if labels:
                result.append((taxonomy, labels))
        return result
