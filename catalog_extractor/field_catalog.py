"""Auto-detection of addressable source fields across sample records

Used offline to build mapping configurations: every field path listed here
can be used as ``sourceFieldName`` in a scraped mapping entry.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from .field_paths import iter_leaf_paths

logger = logging.getLogger(__name__)

MAX_SAMPLES = 3

# Array items of {key, type, label, value} shape: the metadata paths are noise
ARRAY_METADATA_RE = re.compile(r"\[\d+\]\.(key|type|label)$", re.IGNORECASE)
URL_RE = re.compile(r"^https?://")

KNOWN_LABELS = {
    "ean": "EAN",
    "eanCode": "EAN",
    "articleNumber": "Artikelnummer",
    "productName": "Produktname",
    "name": "Produktname",
    "price": "Preis",
    "ekPrice": "EK-Preis",
    "vkPrice": "VK-Preis",
    "uvp": "UVP",
    "manufacturer": "Hersteller",
    "manufacturerArticleNumber": "Hersteller-Artikelnummer",
    "brand": "Marke",
    "marke": "Marke",
    "description": "Beschreibung",
    "bullets": "Produktvorteile",
    "supplierTableHtml": "Lieferanten-Tabelle (HTML)",
    "images": "Bilder (URLs)",
    "liefermenge": "Liefermenge",
    "ve": "Verpackungseinheit",
    "url": "Produkt-URL",
    "weight": "Gewicht",
    "gewicht": "Gewicht",
    "height": "Höhe",
    "hoehe": "Höhe",
    "width": "Breite",
    "breite": "Breite",
    "length": "Länge",
    "laenge": "Länge",
    "size": "Abmessungen",
    "voltage": "Nominalspannung (V)",
    "capacity": "Nominalkapazität (mAh)",
    "discharge_current": "Max. Entladestrom (A)",
    "cell_chemistry": "Zellenchemie",
    "energy": "Energie (Wh)",
    "color": "Farbe",
    "approvals": "Zulassungen",
    "category": "Kategorie",
    "sku": "SKU",
}


@dataclass
class DetectedField:
    key: str
    label: str
    type: str
    samples: List[Any] = field(default_factory=list)
    count: int = 0

    @property
    def sample_value(self) -> Any:
        return self.samples[0] if self.samples else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "type": self.type,
            "sampleValue": self.sample_value,
            "samples": list(self.samples),
            "count": self.count,
        }


def detect_type(value: Any) -> str:
    if value is None:
        return "string"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, str) and URL_RE.match(value):
        return "url"
    return "string"


def format_field_label(key: str) -> str:
    """Human label for a field path, e.g. ``technicalSpecs.voltage`` -> ``Nominalspannung (V)``"""
    lower_key = key.lower()
    for field_key, label in KNOWN_LABELS.items():
        lower_field = field_key.lower()
        if lower_key == lower_field or lower_key.endswith("." + lower_field):
            return label

    text = re.sub(r"\[\d+\]\.?", " ", key)
    text = re.sub(r"([A-Z])", r" \1", text)
    text = re.sub(r"[._]", " ", text)
    return " ".join(word.capitalize() for word in text.split())


def _as_dict(record: Any) -> Dict[str, Any]:
    if hasattr(record, "to_dict"):
        return record.to_dict()
    return record if isinstance(record, dict) else {}


def detect_fields(records: Iterable[Any], limit: int = 10) -> List[DetectedField]:
    """
    Enumerate every field path present in up to ``limit`` records

    Args:
        records: ExtractedRecord objects or plain dicts
        limit: Number of records to sample

    Returns:
        DetectedField list ranked by occurrence count, then key
    """
    fields: Dict[str, DetectedField] = {}

    sampled = 0
    for record in records:
        if sampled >= limit:
            break
        sampled += 1

        for path, value in iter_leaf_paths(_as_dict(record)):
            if ARRAY_METADATA_RE.search(path):
                continue

            detected = fields.get(path)
            if detected is None:
                fields[path] = DetectedField(
                    key=path,
                    label=format_field_label(path),
                    type=detect_type(value),
                    samples=[value],
                    count=1,
                )
                continue

            detected.count += 1
            if len(detected.samples) < MAX_SAMPLES and value not in detected.samples:
                detected.samples.append(value)

    logger.info("Detected %d field(s) across %d record(s)", len(fields), sampled)
    return sorted(fields.values(), key=lambda f: (-f.count, f.key))
