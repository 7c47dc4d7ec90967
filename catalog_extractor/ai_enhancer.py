"""AI enrichment of extracted records

Runs upstream of the mapping engine and writes its results into each record's
custom-attribute side channel as ``{key, value, type}`` items. The text
generator is a black box ``generate(system, prompt) -> str``; a failing call
only leaves its attributes out.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence

from . import config
from .models import ExtractedRecord

logger = logging.getLogger(__name__)

Generator = Callable[[str, str], str]

AI_CUSTOMS_TARIFF_NUMBER = "ai_customs_tariff_number"
AI_CUSTOMS_TARIFF_TEXT = "ai_customs_tariff_text"
AI_HAZARD_CLASSIFICATION = "ai_hazard_classification"
AI_DESCRIPTION = "ai_description"
AI_KEYWORDS = "ai_keywords"

TARIFF_SYSTEM = (
    "Du bist ein Experte für Zolltarifnummern (HS-Codes). Generiere die korrekte "
    "8-stellige Zolltarifnummer für das beschriebene Produkt. Antworte NUR mit der "
    'Nummer und einer kurzen Beschreibung im Format: "12345678|Beschreibung".'
)
HAZARD_SYSTEM = (
    "Du bist ein Experte für Gefahrgutklassifizierung. Bestimme, ob das Produkt "
    'Gefahrgut ist. Antworte NUR mit: "GEFAHRGUT" (wenn es gefährlich ist), '
    '"KEIN_GEFAHRGUT" (wenn sicher), oder "UNKLAR" (wenn unsicher). Typische '
    "Gefahrgüter: Lithium-Akkus, Spraydosen, entflammbare Flüssigkeiten, "
    "Chemikalien, Druckgasbehälter."
)
DESCRIPTION_SYSTEM = (
    "Du bist ein Experte für E-Commerce Produktbeschreibungen. Optimiere die "
    "Produktbeschreibung für bessere Verkaufschancen: kurz, prägnant, "
    "verkaufsfördernd, SEO-optimiert. Verwende Bullet-Points für Features. "
    "Max. 500 Zeichen."
)
KEYWORDS_SYSTEM = (
    "Du bist ein SEO-Experte. Generiere GENAU 6 relevante SEO-Keywords für das "
    "Produkt. Antworte NUR mit den 6 Keywords, durch Komma getrennt, ohne Nummerierung."
)


def _record_data(record: Any) -> Dict[str, Any]:
    if isinstance(record, ExtractedRecord):
        return record.to_dict()
    return record if isinstance(record, dict) else {}


def _product_info(data: Dict[str, Any], include_description: bool = False) -> str:
    specs = data.get("technicalSpecs") or {}
    lines = [
        f"Produktname: {data.get('productName') or 'Unbekannt'}",
        f"Artikelnummer: {data.get('articleNumber') or 'Unbekannt'}",
        f"Hersteller: {data.get('marke') or 'Unbekannt'}",
    ]
    if specs:
        lines.append("Technische Daten: " + ", ".join(f"{k}={v}" for k, v in specs.items()))
    if include_description:
        lines.append(f"Beschreibung: {original_description(data)[:500]}")
    return "\n".join(lines)


def original_description(data: Dict[str, Any]) -> str:
    description = data.get("description") or ""
    bullets = data.get("bullets") or []
    if bullets:
        description = (description + "\n" if description else "") + "\n".join(f"- {b}" for b in bullets)
    return description


def parse_tariff(answer: str) -> Optional[Dict[str, str]]:
    """``"85076000|Lithium-Ionen-Akkumulatoren"`` -> number and text"""
    if not answer:
        return None
    number, _, text = answer.partition("|")
    number = number.strip()
    if not number:
        return None
    return {"number": number, "text": text.strip() or number}


def parse_hazard(answer: str) -> Optional[str]:
    if not answer:
        return None
    answer = answer.strip().upper()
    if "KEIN" in answer:
        return "Nein"
    if "GEFAHRGUT" in answer:
        return "Ja"
    return "Unbekannt"


def set_custom_attribute(record: Any, key: str, value: str, value_type: str = "string") -> None:
    """Insert or replace one side-channel attribute on a record or record dict"""
    if isinstance(record, ExtractedRecord):
        attributes = record.custom_attributes
    else:
        attributes = record.setdefault("customAttributes", [])

    for attribute in attributes:
        if attribute.get("key") == key:
            attribute["value"] = value
            attribute["type"] = value_type
            return
    attributes.append({"key": key, "value": value, "type": value_type})


class AIEnhancer:
    """Generates customs, hazard, description and keyword attributes per record"""

    def __init__(self,
                 generate: Generator,
                 batch_size: int = config.AI_BATCH_SIZE,
                 batch_delay: float = config.AI_BATCH_DELAY):
        self.generate = generate
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay

    def _ask(self, system: str, prompt: str) -> Optional[str]:
        try:
            answer = self.generate(system, prompt)
        except Exception as e:
            logger.warning("AI call failed: %s", e)
            return None
        return answer.strip() if answer else None

    def enhance_record(self, record: Any) -> Dict[str, str]:
        """
        Generate AI attributes for one record

        Returns:
            Attribute key -> value for every call that succeeded
        """
        data = _record_data(record)
        info = _product_info(data)
        results: Dict[str, str] = {}

        tariff = parse_tariff(self._ask(
            TARIFF_SYSTEM, f"Bestimme die Zolltarifnummer für folgendes Produkt:\n\n{info}"
        ) or "")
        if tariff:
            results[AI_CUSTOMS_TARIFF_NUMBER] = tariff["number"]
            results[AI_CUSTOMS_TARIFF_TEXT] = tariff["text"]

        hazard = parse_hazard(self._ask(
            HAZARD_SYSTEM, f"Ist folgendes Produkt Gefahrgut?\n\n{_product_info(data, include_description=True)}"
        ) or "")
        if hazard:
            results[AI_HAZARD_CLASSIFICATION] = hazard

        if original_description(data):
            description = self._ask(
                DESCRIPTION_SYSTEM,
                f"Optimiere folgende Produktbeschreibung:\n\n{_product_info(data, include_description=True)}",
            )
            if description:
                results[AI_DESCRIPTION] = description

        keywords = self._ask(KEYWORDS_SYSTEM, f"Generiere 6 SEO-Keywords für folgendes Produkt:\n\n{info}")
        if keywords:
            results[AI_KEYWORDS] = keywords

        for key, value in results.items():
            set_custom_attribute(record, key, value)
        return results

    def enhance_records(self, records: Sequence[Any]) -> List[Dict[str, str]]:
        """
        Enrich records in rate-limited batches

        Records of one batch are processed concurrently and joined before the
        next batch starts; batches are separated by ``batch_delay`` seconds.
        """
        results: List[Dict[str, str]] = []
        total = len(records)

        for start in range(0, total, self.batch_size):
            batch = list(records[start:start + self.batch_size])
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                results.extend(executor.map(self.enhance_record, batch))

            logger.info("AI enrichment: %d/%d record(s) done", min(start + self.batch_size, total), total)
            if start + self.batch_size < total and self.batch_delay > 0:
                time.sleep(self.batch_delay)

        return results
