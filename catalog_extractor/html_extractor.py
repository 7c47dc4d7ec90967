"""Product data extraction from scraped supplier HTML pages"""
import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, Comment, NavigableString

from . import config
from .models import ExtractedRecord
from .row_parser import UNKNOWN_PRODUCT, extract_liefermenge, find_article_number, find_ean
from .units import normalize_dimension_text, normalize_weight_text

logger = logging.getLogger(__name__)

TECH_ATTRIBUTES = (
    "voltage",
    "capacity",
    "discharge_current",
    "cell_chemistry",
    "energy",
    "weight",
    "size",
    "approvals",
    "material",
    "color",
    "temperature",
    "article_number",
    "scope_of_delivery",
    "quantity",
)

# Label synonyms per attribute, checked in order (first attribute wins)
LABEL_SYNONYMS = [
    ("voltage", ("nominalspannung", "nennspannung", "spannung", "voltage")),
    ("capacity", ("nominalkapazität", "kapazität", "kapazitaet", "capacity")),
    ("discharge_current", ("max. entladestrom", "entladestrom", "discharge")),
    ("weight", ("gewicht", "weight")),
    ("size", ("abmessung", "dimension", "größe", "groesse", "maße", "size")),
    ("material", ("material",)),
    ("approvals", ("zulassung", "approval", "zertifikat", "norm")),
    ("energy", ("energie", "energy")),
    ("cell_chemistry", ("zellenchemie", "zellchemie", "chemie", "chemistry")),
    ("color", ("farbe", "color", "colour")),
    ("temperature", ("temperatur", "temperature")),
    ("article_number", ("artikelnummer", "art.-nr", "article number")),
    ("scope_of_delivery", ("lieferumfang", "scope of delivery")),
    ("quantity", ("menge", "quantity")),
]

ACCESSIBILITY_SELECTOR = (
    '[class*="accessibility" i], [class*="barrierefreiheit" i], '
    '[id*="accessibility" i], [id*="barrierefreiheit" i]'
)
ACCESSIBILITY_PHRASES = ("Drücken Sie die Eingabetaste", "Barrierefreiheit", "Screenreader")

BULLET_SELECTORS = [
    ".product-features li",
    ".benefits li",
    ".features li",
    ".product-benefits li",
    ".specifications li",
    ".product-specs li",
    '[class*="feature"] li',
    '[class*="benefit"] li',
    ".description li",
    ".product-description li",
]
BULLET_MIN_LENGTH = 10
BULLET_MAX_LENGTH = 200
FALLBACK_LIST_ITEMS = 20

# Navigation, category menu and accessibility phrases found in shop list markup
BULLET_DENYLIST = [
    "schnellauswahl", "akkusakkus", "kamera-akkus", "lithium akkupacks",
    "externe akkus", "powerbanks", "powerstations", "jump starter",
    "navigation", "menu", "batterien", "knopfzellen", "spezialzellen",
    "hörgeräte-batterien", "batterietester", "ladegeräte", "akku-ladegeräte",
    "usb-ladegeräte", "kfz-ladegeräte", "akkupack-ladegeräte", "kabellose ladegeräte",
    "netzteile", "energiespar-steckdosen", "reisestecker", "licht", "taschenlampen",
    "handscheinwerfer", "arbeitsleuchten", "baustrahler", "flutlichter", "stirnlampen",
    "nachtlichter", "spezial-lichter", "campinglampen", "fahrrad-lampen",
    "kindernachtlichter", "ansmann originals", "maus & elefant", "zubehör",
    "usb-kabel", "autoladekabel", "halterungen", "kategorien", "produktkategorien",
    "shop", "warenkorb", "anmelden", "registrieren", "suche", "filter",
    "sortierung", "preis", "verfügbarkeit", "marke", "hersteller",
    "drücken sie die eingabetaste", "barrierefreiheit", "screenreader", "menü",
    "eingabetaste", "blinde", "sehbehinderte", "bildschirmleser", "tastaturnavigation",
]

BLOCK_TAGS = [
    "p", "div", "li", "ul", "ol", "tr", "table", "section", "article",
    "h1", "h2", "h3", "h4", "h5", "h6", "br", "dt", "dd", "dl", "header", "footer",
]

LABEL_VALUE_RE = re.compile(r"^([^:\t\n]{2,40}):\s*(.+)$")
WEITERE_INFO_RE = re.compile(r"Weitere Informationen(.*?)(?:Lieferumfang|Downloads|$)", re.DOTALL)

_NUMBER = r"(\d+(?:[.,]\d+)?)"
DISCHARGE_RE = re.compile(r"max\.?\s*entladestrom[:\s]*" + r"(\d+(?:,\d+)?)\s*a\b", re.IGNORECASE)
APPROVAL_RE = re.compile(r"\b(UN\s?\d{4}|IEC\s+\d+(?:-\d+)*(?::\d+)*)", re.IGNORECASE)
DIMENSIONS_RE = re.compile(
    _NUMBER + r"\s*[x×]\s*" + _NUMBER + r"\s*[x×]\s*" + _NUMBER + r"\s*(mm|cm)\b", re.IGNORECASE
)
WEIGHT_RE = re.compile(r"(?<![\w.,])" + _NUMBER + r"\s*(kg|g)\b", re.IGNORECASE)
TITLE_VOLTAGE_RE = re.compile(r"(\d+(?:,\d+)?)\s*V\b", re.IGNORECASE)
TITLE_CAPACITY_RE = re.compile(r"(\d+(?:,\d+)?)\s*mAh\b", re.IGNORECASE)


@dataclass
class HtmlExtraction:
    """Everything recovered from one product page"""

    title: Optional[str] = None
    bullets: List[str] = field(default_factory=list)
    supplier_table_html: str = ""
    tech: Dict[str, Optional[str]] = field(default_factory=lambda: dict.fromkeys(TECH_ATTRIBUTES))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "bullets": list(self.bullets),
            "supplierTableHtml": self.supplier_table_html,
            "tech": dict(self.tech),
        }


def attribute_for_label(label: str) -> Optional[str]:
    """Map a (German or English) data sheet label to a tech attribute name"""
    lowered = label.strip().lower()
    if not lowered:
        return None
    for attribute, synonyms in LABEL_SYNONYMS:
        if any(synonym in lowered for synonym in synonyms):
            return attribute
    return None


def _clean(text: str) -> str:
    return " ".join(text.split())


def is_acceptable_bullet(text: str) -> bool:
    if not BULLET_MIN_LENGTH <= len(text) <= BULLET_MAX_LENGTH:
        return False
    if " " not in text or "→" in text or ">" in text:
        return False
    lowered = text.lower()
    return not any(term in lowered for term in BULLET_DENYLIST)


class HtmlExtractor:
    """Extracts title, selling points, data table and technical attributes from HTML"""

    def extract(self, html: str) -> HtmlExtraction:
        """
        Extract product data from a supplier page

        Args:
            html: Decoded page markup

        Returns:
            HtmlExtraction; missing parts are None / empty
        """
        soup = BeautifulSoup(html or "", "lxml")
        extraction = HtmlExtraction()

        # 1. First table, passed through verbatim
        table = soup.find("table")
        extraction.supplier_table_html = str(table) if table is not None else ""

        # 2. Title
        extraction.title = self._extract_title(soup)

        # 3. Accessibility and navigation noise goes before anything reads list items
        self._remove_accessibility(soup)
        extraction.bullets = self._extract_bullets(soup)

        # 4. Technical attributes, earlier stages win
        flat_text = self._flatten_text(soup)
        tech = extraction.tech
        if table is not None:
            self._tech_from_table(table, tech)
        self._tech_from_label_lines(flat_text, tech)
        self._tech_from_info_block(flat_text, tech)
        self._tech_from_patterns(flat_text, tech)
        self._tech_from_title(extraction.title, tech)

        logger.info(
            "HTML extracted: title=%r, bullets=%d, table=%s, tech=%d",
            extraction.title, len(extraction.bullets),
            "yes" if extraction.supplier_table_html else "no",
            sum(1 for v in tech.values() if v),
        )
        return extraction

    @staticmethod
    def _extract_title(soup: BeautifulSoup) -> Optional[str]:
        for name in ("h1", "h2", "title"):
            for tag in soup.find_all(name):
                text = _clean(tag.get_text())
                if text:
                    return text
        return None

    @staticmethod
    def _remove_accessibility(soup: BeautifulSoup) -> None:
        for element in soup.select(ACCESSIBILITY_SELECTOR):
            if not element.decomposed:
                element.decompose()

        for li in soup.find_all("li"):
            if li.decomposed:
                continue
            text = li.get_text()
            if any(phrase in text for phrase in ACCESSIBILITY_PHRASES):
                li.decompose()

    @staticmethod
    def _extract_bullets(soup: BeautifulSoup) -> List[str]:
        bullets: List[str] = []

        def _collect(items) -> None:
            for item in items:
                text = _clean(item.get_text())
                if is_acceptable_bullet(text) and text not in bullets:
                    bullets.append(text)

        for selector in BULLET_SELECTORS:
            _collect(soup.select(selector))

        if not bullets:
            logger.debug("No bullets under known selectors, scanning first %d list items", FALLBACK_LIST_ITEMS)
            _collect(soup.find_all("li", limit=FALLBACK_LIST_ITEMS))

        return bullets

    @staticmethod
    def _flatten_text(soup: BeautifulSoup) -> str:
        """Page text with one line per block element and tabs between table cells"""
        text_soup = copy.copy(soup)

        for tag in text_soup(["script", "style", "noscript"]):
            tag.decompose()
        for comment in text_soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()
        for string in text_soup.find_all(string=True):
            if type(string) is NavigableString:
                string.replace_with(re.sub(r"\s+", " ", str(string)))

        for cell in text_soup.find_all(["td", "th"]):
            cell.insert_after("\t")
        for block in text_soup.find_all(BLOCK_TAGS):
            block.insert_after("\n")

        lines = []
        for line in text_soup.get_text().split("\n"):
            parts = [part.strip() for part in line.split("\t")]
            cleaned = "\t".join(part for part in parts if part)
            if cleaned:
                lines.append(cleaned)
        return "\n".join(lines)

    @staticmethod
    def _set(tech: Dict[str, Optional[str]], attribute: Optional[str], value: Optional[str]) -> bool:
        """Store a value unless the attribute is already filled"""
        if not attribute or tech.get(attribute) or not value:
            return False
        value = _clean(value)
        if not value:
            return False
        if attribute == "weight":
            value = normalize_weight_text(value)
        elif attribute == "size":
            value = normalize_dimension_text(value)
        tech[attribute] = value
        return True

    def _tech_from_table(self, table, tech: Dict[str, Optional[str]]) -> None:
        for tr in table.find_all("tr"):
            header = tr.find("th")
            cells = tr.find_all("td")
            if header is not None and cells:
                label, value = header.get_text(), cells[0].get_text()
            elif len(cells) >= 2:
                label, value = cells[0].get_text(), cells[1].get_text()
            else:
                continue

            attribute = attribute_for_label(label)
            if self._set(tech, attribute, value):
                logger.debug("Table: %r -> %s", _clean(label), attribute)

    def _tech_from_label_lines(self, flat_text: str, tech: Dict[str, Optional[str]]) -> None:
        for line in flat_text.split("\n"):
            match = LABEL_VALUE_RE.match(line.replace("\t", " ").strip())
            if not match:
                continue
            self._set(tech, attribute_for_label(match.group(1)), match.group(2))

    def _tech_from_info_block(self, flat_text: str, tech: Dict[str, Optional[str]]) -> None:
        match = WEITERE_INFO_RE.search(flat_text)
        if not match:
            return

        for line in match.group(1).split("\n"):
            parts = line.split("\t")
            if len(parts) < 2:
                continue
            self._set(tech, attribute_for_label(parts[0]), parts[1])

    def _tech_from_patterns(self, flat_text: str, tech: Dict[str, Optional[str]]) -> None:
        discharge = DISCHARGE_RE.search(flat_text)
        if discharge:
            self._set(tech, "discharge_current", f"{discharge.group(1)} A")

        approvals = []
        for approval in APPROVAL_RE.findall(flat_text):
            approval = _clean(approval)
            if approval not in approvals:
                approvals.append(approval)
        if approvals:
            self._set(tech, "approvals", ", ".join(approvals))

        dimensions = DIMENSIONS_RE.search(flat_text)
        if dimensions:
            length, width, height, unit = dimensions.groups()
            self._set(tech, "size", f"{length} × {width} × {height} {unit.lower()}")

        weight = WEIGHT_RE.search(flat_text)
        if weight:
            self._set(tech, "weight", f"{weight.group(1)} {weight.group(2).lower()}")

    def _tech_from_title(self, title: Optional[str], tech: Dict[str, Optional[str]]) -> None:
        if not title:
            return
        voltage = TITLE_VOLTAGE_RE.search(title)
        if voltage:
            self._set(tech, "voltage", f"{voltage.group(1)} V")
        capacity = TITLE_CAPACITY_RE.search(title)
        if capacity:
            self._set(tech, "capacity", f"{capacity.group(1)} mAh")


def to_record(extraction: HtmlExtraction, url: Optional[str] = None) -> ExtractedRecord:
    """Bridge an HTML extraction into the record shape the mapping stage consumes"""
    tech = extraction.tech
    raw_article = tech.get("article_number") or ""
    article_number = find_article_number(raw_article)

    return ExtractedRecord(
        product_name=extraction.title or UNKNOWN_PRODUCT,
        url=url,
        article_number=article_number,
        manufacturer_article_number=article_number,
        ean_code=find_ean(extraction.supplier_table_html),
        liefermenge=extract_liefermenge(tech.get("quantity") or "", config.DEFAULT_LIEFERMENGE),
        technical_specs={key: value for key, value in tech.items() if value},
        bullets=list(extraction.bullets),
        supplier_table_html=extraction.supplier_table_html or None,
        confidence=config.URL_ROW_CONFIDENCE if url else config.TABLE_ROW_CONFIDENCE,
    )
