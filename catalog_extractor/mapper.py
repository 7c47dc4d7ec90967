"""Mapping engine: extracted records -> typed Brickfox output rows

Pure function of (record, mapping, supplier name, options). A field that
cannot be resolved becomes None; row emission never aborts.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from . import config
from .field_paths import get_path
from .mapping_config import AutoGenerateRule, Mapping
from .schema import (
    BRICKFOX_FIELDS,
    DEFAULT_AI_FIELD_MAP,
    PURCHASE_PRICE_FIELD,
    SALES_PRICE_FIELD,
    SUPPLIER_FIELD,
    FieldMapping,
    TargetFieldMeta,
    get_field,
)
from .units import parse_price, parse_weight, round_price

logger = logging.getLogger(__name__)

OutputRow = Dict[str, Any]

UNKNOWN_SUPPLIER = "Unbekannt"
TRUE_STRINGS = ("true", "1", "yes", "ja", "y", "x", "wahr")

# Label keywords per target field for records carrying {key, label, value} items
LABEL_KEYWORDS: Dict[str, List[str]] = {
    "p_item_number": ["artikelnummer", "art.-nr", "art.nr", "artnr", "item number", "sku"],
    "p_name[de]": ["produktname", "bezeichnung", "product name", "title"],
    "p_description[de]": ["produktbeschreibung", "beschreibung", "description", "langtext", "long text"],
    "p_brand": ["hersteller", "marke", "brand", "manufacturer"],
    "v_ean": ["ean", "ean-code", "ean code", "barcode", "gtin"],
    SALES_PRICE_FIELD: ["vkprice", "vk (verkaufspreis)", "verkaufspreis", "uvp", "rrp"],
    PURCHASE_PRICE_FIELD: ["ekprice", "ek-preis", "einkaufspreis", "purchase price"],
    "v_weight": ["gewicht", "weight", "netto-gewicht", "bruttogewicht"],
    "v_width": ["breite", "width"],
    "v_height": ["höhe", "hoehe", "height"],
    "v_length": ["länge", "laenge", "tiefe", "length", "depth"],
}

# Indexed source names such as images[0] or pdfFiles[1]
INDEXED_NAME_RE = re.compile(r"^([A-Za-z_]\w*)\[(\d+)\]$")

# extractedData keys searched for a list source, in priority order
LIST_KEY_ALIASES: Dict[str, List[str]] = {
    "images": ["images", "localImagePaths", "productImages", "downloadedImages"],
}


@dataclass
class MapperOptions:
    """Per-export settings layered on top of the field mapping"""

    fixed_values: Dict[str, Any] = field(default_factory=dict)
    auto_generate: Dict[str, AutoGenerateRule] = field(default_factory=dict)
    ai_field_map: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_AI_FIELD_MAP))
    schema: List[TargetFieldMeta] = field(default_factory=lambda: list(BRICKFOX_FIELDS))


def calculate_sales_price(purchase_price: float) -> float:
    """Purchase price with 100% markup plus VAT, rounded half-up to cents"""
    amount = (
        Decimal(str(purchase_price))
        * Decimal(str(config.SALES_PRICE_MARKUP))
        * (Decimal("1") + Decimal(str(config.VAT_RATE)))
    )
    return float(amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_dict(record: Any) -> Dict[str, Any]:
    if hasattr(record, "to_dict"):
        return record.to_dict()
    return record if isinstance(record, dict) else {}


def coerce_value(meta: TargetFieldMeta, value: Any) -> Any:
    """Convert a raw source value to the target field's type"""
    if _is_blank(value):
        return None

    if meta.type == "number":
        return parse_weight(value)

    if meta.type == "price":
        price = parse_price(value)
        return round_price(price) if price is not None else None

    if meta.type == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        return str(value).strip().lower() in TRUE_STRINGS

    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value if not _is_blank(v)) or None
    return str(value)


def _extracted_items(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    extracted = data.get("extractedData")
    if isinstance(extracted, list):
        return [item for item in extracted if isinstance(item, dict)]
    if isinstance(extracted, dict):
        return [extracted]
    return []


def auto_map_by_label(data: Dict[str, Any], target_field: str) -> Any:
    """Find a value in extractedData items whose label or key names the target field"""
    keywords = LABEL_KEYWORDS.get(target_field)
    if not keywords:
        return None

    for item in _extracted_items(data):
        label = str(item.get("label") or "").strip().lower()
        key = str(item.get("key") or "").strip().lower()
        for keyword in keywords:
            if (label and keyword in label) or (key and keyword in key):
                value = item.get("value")
                if not _is_blank(value):
                    return value
    return None


def split_list_value(value: Any) -> List[Any]:
    """
    Normalize a list-like source value

    Accepts a list, a JSON array string (``'["a.pdf", "b.pdf"]'``) or a
    comma-separated string (``"1.jpg, 2.jpg"``). Blank entries are dropped.
    """
    if isinstance(value, (list, tuple)):
        return [v for v in value if not _is_blank(v)]
    if not isinstance(value, str):
        return []

    text = value.strip()
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return [v for v in parsed if not _is_blank(v)]
    return [part.strip() for part in text.split(",") if part.strip()]


def lookup_indexed(data: Dict[str, Any], name: str) -> Any:
    """Resolve ``images[0]`` / ``pdfFiles[1]`` against list, JSON or comma-string sources"""
    match = INDEXED_NAME_RE.match(name)
    if not match:
        return None
    base, index = match.group(1), int(match.group(2))

    candidates = [data.get(base)]
    items = _extracted_items(data)
    for key in LIST_KEY_ALIASES.get(base, [base]):
        candidates.extend(item.get("value") for item in items if item.get("key") == key)

    for candidate in candidates:
        values = split_list_value(candidate)
        if index < len(values):
            return values[index]
    return None


def lookup_scraped(data: Dict[str, Any], name: str) -> Any:
    """Record path first, then extractedData[0][name], then {key: name} items, then list sources"""
    value = get_path(data, name)
    if not _is_blank(value):
        return value

    items = _extracted_items(data)
    if items:
        value = get_path(items[0], name)
        if not _is_blank(value):
            return value
        for item in items:
            if item.get("key") == name and not _is_blank(item.get("value")):
                return item.get("value")
    return lookup_indexed(data, name)


class _RecordMapper:
    """Resolves the fields of one record; holds no state beyond a single call"""

    def __init__(self, data: Dict[str, Any], mapping: Mapping, supplier_name: Optional[str], options: MapperOptions):
        self.data = data
        self.mapping = mapping
        self.supplier_name = supplier_name
        self.options = options

    def resolve(self, meta: TargetFieldMeta) -> Any:
        entry = self.mapping.get(meta.key)

        if meta.key == SUPPLIER_FIELD:
            constant = entry.constant_value if entry is not None else None
            return self.supplier_name or constant or meta.default_value or UNKNOWN_SUPPLIER

        if entry is None:
            return self._unmapped(meta)
        if entry.source == "constant":
            if entry.constant_value is None:
                return meta.default_value
            return coerce_value(meta, entry.constant_value)
        if entry.source == "scraped":
            return self._scraped(meta, entry)
        if entry.source == "calculated":
            return self._calculated(meta)
        if entry.source == "ai":
            return self._ai(meta)

        logger.debug("Unknown source %r for %s", entry.source, meta.key)
        return None

    def _unmapped(self, meta: TargetFieldMeta) -> Any:
        value = auto_map_by_label(self.data, meta.key)
        if not _is_blank(value):
            logger.debug("Auto-mapped %s by label", meta.key)
            return coerce_value(meta, value)
        return meta.default_value

    def _scraped(self, meta: TargetFieldMeta, entry: FieldMapping) -> Any:
        value = lookup_scraped(self.data, entry.source_field_name) if entry.source_field_name else None
        if _is_blank(value):
            value = auto_map_by_label(self.data, meta.key)
        return coerce_value(meta, value)

    def _calculated(self, meta: TargetFieldMeta) -> Any:
        if meta.key != SALES_PRICE_FIELD:
            logger.debug("No calculation defined for %s", meta.key)
            return None

        purchase_meta = get_field(PURCHASE_PRICE_FIELD)
        purchase = self.resolve(purchase_meta) if purchase_meta is not None else None
        if isinstance(purchase, (int, float)) and not isinstance(purchase, bool) and purchase > 0:
            return calculate_sales_price(purchase)

        existing = auto_map_by_label(self.data, SALES_PRICE_FIELD)
        return coerce_value(meta, existing)

    def _ai(self, meta: TargetFieldMeta) -> Any:
        ai_key = self.options.ai_field_map.get(meta.key)
        if not ai_key:
            return None
        for attribute in self.data.get("customAttributes") or []:
            if isinstance(attribute, dict) and attribute.get("key") == ai_key:
                return coerce_value(meta, attribute.get("value"))
        return None

    def auto_generated(self, rule: AutoGenerateRule) -> Optional[str]:
        source = None
        for item in _extracted_items(self.data):
            if rule.depends_on in (item.get("key"), item.get("label")):
                source = item.get("value")
                break
        if _is_blank(source):
            source = get_path(self.data, rule.depends_on)
        if _is_blank(source):
            return rule.fallback
        return rule.rule.replace("{{" + rule.depends_on + "}}", str(source))


def map_record(record: Any,
               mapping: Mapping,
               supplier_name: Optional[str] = None,
               options: Optional[MapperOptions] = None) -> OutputRow:
    """
    Transform one extracted record into an output row

    Args:
        record: ExtractedRecord or equivalent dict (camelCase keys)
        mapping: Resolved target field -> FieldMapping
        supplier_name: Written to the supplier column regardless of mapping
        options: Fixed values, auto-generate rules, AI lookup table, schema

    Returns:
        Dict keyed by target field, in schema order
    """
    options = options or MapperOptions()
    resolver = _RecordMapper(_as_dict(record), mapping, supplier_name, options)

    row: OutputRow = {}
    for meta in options.schema:
        try:
            row[meta.key] = resolver.resolve(meta)
        except Exception as e:
            logger.warning("Field %s could not be resolved: %s", meta.key, e)
            row[meta.key] = None

    # A given supplier name owns the supplier column
    locked = {SUPPLIER_FIELD} if supplier_name else set()

    for key, value in options.fixed_values.items():
        if key in locked:
            logger.debug("Fixed value for %s ignored, supplier name given", key)
            continue
        row[key] = value

    for key, rule in options.auto_generate.items():
        if key in locked:
            logger.debug("Auto-generate rule for %s ignored, supplier name given", key)
            continue
        try:
            generated = resolver.auto_generated(rule)
        except Exception as e:
            logger.warning("Auto-generate rule for %s failed: %s", key, e)
            continue
        if generated:
            row[key] = generated

    return row


def map_records(records: Iterable[Any],
                mapping: Mapping,
                supplier_name: Optional[str] = None,
                options: Optional[MapperOptions] = None) -> List[OutputRow]:
    return [map_record(record, mapping, supplier_name, options) for record in records]
