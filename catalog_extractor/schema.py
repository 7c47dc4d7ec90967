"""Brickfox catalog-export target schema and default field mapping

BRICKFOX_FIELDS order is the output column order consumed downstream.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

SOURCES = ("scraped", "constant", "calculated", "ai")
SCOPES = ("product", "variant")
FIELD_TYPES = ("string", "number", "boolean", "price")


@dataclass(frozen=True)
class TargetFieldMeta:
    key: str
    label: str
    scope: str
    type: str
    required: bool = False
    default_value: Any = None
    description: str = ""


@dataclass(frozen=True)
class FieldMapping:
    """How one target column is populated"""

    target_field: str
    source: str
    source_field_name: Optional[str] = None
    constant_value: Any = None

    @classmethod
    def from_dict(cls, target_field: str, data: Dict[str, Any]) -> "FieldMapping":
        """
        Build from a persisted mapping entry

        Accepts ``{"source", "field", "value"}`` as well as the long
        ``sourceFieldName`` / ``constantValue`` keys.

        Raises:
            ValueError: if the entry is not an object or names an unknown source
        """
        if not isinstance(data, dict):
            raise ValueError(f"Mapping for {target_field!r} must be an object")

        source = data.get("source")
        if source == "ai_generated":
            source = "ai"
        if source not in SOURCES:
            raise ValueError(f"Unknown source {source!r} for {target_field!r}")

        return cls(
            target_field=target_field,
            source=source,
            source_field_name=data.get("field", data.get("sourceFieldName")),
            constant_value=data.get("value", data.get("constantValue")),
        )

    def to_dict(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {"source": self.source}
        if self.source_field_name is not None:
            entry["field"] = self.source_field_name
        if self.constant_value is not None:
            entry["value"] = self.constant_value
        return entry


def _images() -> List[TargetFieldMeta]:
    return [
        TargetFieldMeta(f"p_image[{i}]", f"Produktbild {i}", "product", "string",
                        description="URL oder Pfad zum Produktbild")
        for i in range(1, 11)
    ]


BRICKFOX_FIELDS: List[TargetFieldMeta] = [
    # Product level
    TargetFieldMeta("p_item_number", "Artikelnummer", "product", "string", required=True,
                    description="Eindeutige Artikelnummer des Produkts"),
    TargetFieldMeta("p_group_path[de]", "Kategoriepfad", "product", "string",
                    description='Kategoriepfad (z.B. "Akkus > Werkzeugakkus > Makita")'),
    TargetFieldMeta("p_brand", "Marke / Hersteller", "product", "string"),
    TargetFieldMeta("p_status", "Produktstatus", "product", "string", default_value="Aktiv"),
    TargetFieldMeta("p_name[de]", "Produktname (deutsch)", "product", "string", required=True),
    TargetFieldMeta("p_tax_class", "Steuerklasse", "product", "string",
                    default_value="Regelsteuersatz (19%)"),
    TargetFieldMeta("p_never_out_of_stock", "Immer lieferbar", "product", "boolean", default_value=False),
    TargetFieldMeta("p_condition", "Zustand", "product", "string", default_value="Neu"),
    TargetFieldMeta("p_country", "Herkunftsland", "product", "string", default_value="China"),
    TargetFieldMeta("p_description[de]", "Produktbeschreibung (deutsch)", "product", "string"),
    # Variant level
    TargetFieldMeta("v_item_number", "Varianten-Artikelnummer", "variant", "string"),
    TargetFieldMeta("v_ean", "EAN / GTIN", "variant", "string"),
    TargetFieldMeta("v_manufacturers_item_number", "Herstellerartikelnummer", "variant", "string"),
    TargetFieldMeta("v_status", "Variantenstatus", "variant", "string", default_value="aktiv"),
    TargetFieldMeta("v_classification", "Variantenklassifizierung", "variant", "string", default_value="X"),
    TargetFieldMeta("v_price[Eur]", "Verkaufspreis (EUR)", "variant", "price",
                    description="(Einkaufspreis * 2) + 19% MwSt"),
    TargetFieldMeta("v_delivery_time[de]", "Lieferzeit (deutsch)", "variant", "string",
                    default_value="3-5 Tage"),
    TargetFieldMeta("v_supplier[Eur]", "Lieferant", "variant", "string",
                    description="Name des Lieferanten"),
    TargetFieldMeta("v_supplier_item_number", "Artikelnummer beim Lieferanten", "variant", "string"),
    TargetFieldMeta("v_purchase_price", "Einkaufspreis", "variant", "price"),
    TargetFieldMeta("v_never_out_of_stock[standard]", "Immer verfügbar (Variante)", "variant", "boolean",
                    default_value=False),
    TargetFieldMeta("v_weight", "Gewicht (g)", "variant", "number"),
    TargetFieldMeta("v_length", "Länge (mm)", "variant", "number"),
    TargetFieldMeta("v_width", "Breite (mm)", "variant", "number"),
    TargetFieldMeta("v_height", "Höhe (mm)", "variant", "number"),
    TargetFieldMeta("v_capacity_mah", "Kapazität (mAh)", "variant", "number"),
    TargetFieldMeta("v_customs_tariff_number", "Zolltarifnummer", "variant", "string"),
    TargetFieldMeta("v_customs_tariff_text", "Beschreibung des Zolltarifs", "variant", "string"),
    *_images(),
    TargetFieldMeta("p_media[1][pdf]", "PDF-Datei 1 (MSDS/Manual)", "product", "string"),
    TargetFieldMeta("p_media[2][pdf]", "PDF-Datei 2 (Manual/PIB)", "product", "string"),
]

_FIELDS_BY_KEY = {f.key: f for f in BRICKFOX_FIELDS}

SUPPLIER_FIELD = "v_supplier[Eur]"
SALES_PRICE_FIELD = "v_price[Eur]"
PURCHASE_PRICE_FIELD = "v_purchase_price"


def get_field(key: str) -> Optional[TargetFieldMeta]:
    return _FIELDS_BY_KEY.get(key)


def fields_by_scope(scope: str) -> List[TargetFieldMeta]:
    return [f for f in BRICKFOX_FIELDS if f.scope == scope]


def column_keys(schema: Optional[List[TargetFieldMeta]] = None) -> List[str]:
    return [f.key for f in (schema if schema is not None else BRICKFOX_FIELDS)]


def _scraped(target: str, field: str) -> FieldMapping:
    return FieldMapping(target, "scraped", source_field_name=field)


def _constant(target: str, value: Any) -> FieldMapping:
    return FieldMapping(target, "constant", constant_value=value)


_DEFAULT_ENTRIES = [
    _scraped("p_item_number", "articleNumber"),
    _scraped("p_group_path[de]", "kategorie"),
    _scraped("p_brand", "marke"),
    _scraped("p_name[de]", "productName"),
    _constant("p_status", "Aktiv"),
    _constant("p_tax_class", "Regelsteuersatz (19%)"),
    _constant("p_never_out_of_stock", False),
    _constant("p_condition", "Neu"),
    _constant("p_country", "China"),
    _scraped("p_description[de]", "description"),
    *[_scraped(f"p_image[{i}]", f"images[{i - 1}]") for i in range(1, 11)],
    _scraped("p_media[1][pdf]", "pdfFiles[0]"),
    _scraped("p_media[2][pdf]", "pdfFiles[1]"),
    _scraped("v_item_number", "articleNumber"),
    _scraped("v_ean", "eanCode"),
    _scraped("v_manufacturers_item_number", "manufacturerArticleNumber"),
    _scraped("v_supplier_item_number", "manufacturerArticleNumber"),
    _scraped("v_purchase_price", "ekPrice"),
    _scraped("v_weight", "technicalSpecs.weight"),
    _scraped("v_length", "laenge"),
    _scraped("v_width", "breite"),
    _scraped("v_height", "hoehe"),
    _scraped("v_capacity_mah", "technicalSpecs.capacity"),
    _constant("v_status", "aktiv"),
    _constant("v_classification", "X"),
    _constant("v_delivery_time[de]", "3-5 Tage"),
    _constant(SUPPLIER_FIELD, "Unbekannt"),
    _constant("v_never_out_of_stock[standard]", True),
    FieldMapping(SALES_PRICE_FIELD, "calculated"),
    FieldMapping("v_customs_tariff_number", "ai"),
    FieldMapping("v_customs_tariff_text", "ai"),
]

DEFAULT_MAPPING: Dict[str, FieldMapping] = {m.target_field: m for m in _DEFAULT_ENTRIES}

# Target field -> key written by the AI enrichment step into customAttributes
DEFAULT_AI_FIELD_MAP: Dict[str, str] = {
    "p_description[de]": "ai_description",
    "v_customs_tariff_number": "ai_customs_tariff_number",
    "v_customs_tariff_text": "ai_customs_tariff_text",
}
