"""Pattern-based parsing of reconstructed catalog rows into product records

Supplier price lists never expose column boundaries, so every field is
recognized by its shape and the product name is whatever text survives once
all recognized tokens are removed.
"""
import logging
import re
from typing import List, Optional

from . import config
from .models import ExtractedRecord

logger = logging.getLogger(__name__)

# Article numbers: 1522-0045, 2447-3049-60 or a bare 8-10 digit run
HYPHENATED_ARTICLE_RE = re.compile(r"\b\d{4}-\d{4}(?:-\d{2})?\b")
BARE_ARTICLE_RE = re.compile(r"\b\d{8,10}\b")

# EAN-13, not part of a longer digit run or a phone number
EAN_RE = re.compile(r"(?<![\d+])\d{13}(?!\d)")

# Two-decimal amounts (12,50 / 12.50 / 1.234,56), optional euro sign
PRICE_RE = re.compile(r"(?<![\d.,])(\d{1,3}(?:\.\d{3})+,\d{2}|\d+[.,]\d{2})(?![.,]?\d)\s*€?")

# Column headers that leak into row text
STOPWORD_RES = [
    re.compile(r"\bNetto-EK\b", re.IGNORECASE),
    re.compile(r"\bUEVP\b"),
    re.compile(r"\bUVP\b"),
    re.compile(r"\bVE\b"),
    re.compile(r"\bEK\b"),
    re.compile(r"\bVK\b"),
    re.compile(r"\b(?:Stück|STK)\b", re.IGNORECASE),
    re.compile(r"€"),
]

NAME_RUN_RE = re.compile(r"[A-Za-zÄÖÜäöüß][A-Za-zÄÖÜäöüß\s\-/&+.,()']*")
NAME_MIN_LENGTH = 5
NAME_MAX_LENGTH = 100
UNKNOWN_PRODUCT = "Unknown Product"

LIEFERMENGE_PATTERNS = [
    re.compile(r"(\d+)\s*er\b", re.IGNORECASE),                    # 4er, 10er
    re.compile(r"(\d+)\s*-\s*er\b", re.IGNORECASE),                # 4-er
    re.compile(r"(\d+)\s*(?:Stück|St\.|STK)", re.IGNORECASE),      # 4 Stück, 4 St., 4 STK
    re.compile(r"(\d+)\s*(?:Karton|Box)\b", re.IGNORECASE),        # 100 Karton, 50 Box
    re.compile(r"(\d+)\s*Pack\b", re.IGNORECASE),                  # 10 Pack
]

VE_RE = re.compile(r"\bVE\s*:?\s*(\d+)\b")

# Rows past the end of the product table
TABLE_STOP_RE = re.compile(
    r"\b(agb|allgemeine geschäftsbedingungen|zahlungsziel|ansprechpartner|impressum|"
    r"datenschutz|widerruf|versand|zahlung|lieferbedingungen)\b",
    re.IGNORECASE,
)
CONTACT_RES = [
    re.compile(r"\b(tel|telefon|mobil|handy|fax)\b", re.IGNORECASE),
    re.compile(r"\+\d"),
    re.compile(r"[^\s]+@[^\s]+"),
]

INVALID_NAME_KEYWORDS = [
    "agb",
    "geschaeftskunden",
    "geschäftskunden",
    "datenschutz",
    "impressum",
    "kontakt",
    "cookie",
    "nutzungsbedingungen",
    "widerruf",
    "versand",
    "zahlung",
    "gmbh",
    "co. kg",
]

INVALID_URL_KEYWORDS = [
    "agb",
    "geschaeftskund",
    "datenschutz",
    "impressum",
    "kontakt",
    "cookie",
    "nutzungsbedingungen",
    "widerruf",
]


def validate_ean_checksum(ean: str) -> bool:
    """GS1 modulo-10 check for EAN-13 / EAN-8"""
    digits = re.sub(r"\D", "", ean or "")
    if len(digits) not in (8, 13):
        return False

    # EAN-13 weights 1,3,1,... from the left; EAN-8 weights 3,1,3,...
    odd_weight, even_weight = (1, 3) if len(digits) == 13 else (3, 1)
    total = sum(
        int(d) * (odd_weight if i % 2 == 0 else even_weight)
        for i, d in enumerate(digits[:-1])
    )
    return (10 - total % 10) % 10 == int(digits[-1])


def find_article_number(text: str) -> Optional[str]:
    match = HYPHENATED_ARTICLE_RE.search(text) or BARE_ARTICLE_RE.search(text)
    return match.group(0) if match else None


def find_ean(text: str, validate_checksum: bool = False) -> Optional[str]:
    for match in EAN_RE.finditer(text):
        ean = match.group(0)
        if not validate_checksum or validate_ean_checksum(ean):
            return ean
        logger.debug("EAN failed checksum: %s", ean)
    return None


def find_price_tokens(text: str) -> List[str]:
    """All price tokens as printed, including a trailing euro sign"""
    return [m.group(0).strip() for m in PRICE_RE.finditer(text)]


def clean_price(token: str) -> str:
    return token.replace("€", "").strip()


def select_net_price(prices: List[str]) -> Optional[str]:
    """Net purchase price: the list price (UVP) is conventionally the last column"""
    if not prices:
        return None
    if len(prices) >= 2:
        return prices[-2]
    return prices[-1]


def looks_like_product_row(row_text: str) -> bool:
    """
    Check whether an un-linked row carries product data

    Requires an article number, an EAN and a two-decimal price. Table
    boundaries (terms, payment conditions) and contact lines are rejected.
    """
    if TABLE_STOP_RE.search(row_text):
        return False

    for pattern in CONTACT_RES:
        if pattern.search(row_text):
            return False

    has_article = find_article_number(row_text) is not None
    has_ean = EAN_RE.search(row_text) is not None
    has_price = PRICE_RE.search(row_text) is not None
    return has_article and has_ean and has_price


def extract_liefermenge(row_text: str, default: Optional[str] = None) -> Optional[str]:
    for pattern in LIEFERMENGE_PATTERNS:
        match = pattern.search(row_text)
        if match:
            return f"{match.group(1)} Stück"
    return default


def extract_product_name(row_text: str,
                         brand: Optional[str],
                         article_number: Optional[str],
                         ean: Optional[str],
                         price_tokens: List[str]) -> str:
    """Recover the product name by removing every recognized token"""
    cleaned = row_text
    for token in [brand, article_number, ean]:
        if token:
            cleaned = cleaned.replace(token, " ", 1)
    for token in price_tokens:
        cleaned = cleaned.replace(token, " ", 1)
    for pattern in STOPWORD_RES:
        cleaned = pattern.sub(" ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()

    best = ""
    for match in NAME_RUN_RE.finditer(cleaned):
        candidate = match.group(0).strip(" -/&+.,('")
        if len(candidate) < NAME_MIN_LENGTH:
            continue
        candidate = candidate[:NAME_MAX_LENGTH].strip()
        if len(candidate) > len(best):
            best = candidate

    return best or UNKNOWN_PRODUCT


def parse_row(row_text: str,
              url: Optional[str] = None,
              validate_checksum: Optional[bool] = None,
              default_liefermenge: Optional[str] = config.DEFAULT_LIEFERMENGE) -> Optional[ExtractedRecord]:
    """
    Parse a single table row into a product record

    Args:
        row_text: Space-joined text of one reconstructed row
        url: Link target anchoring the row, if any
        validate_checksum: Reject EANs failing the GS1 check digit
            (defaults to config.VALIDATE_EAN_CHECKSUM)
        default_liefermenge: Delivery quantity when no unit pattern matches

    Returns:
        ExtractedRecord, or None if the row carries no identifying data
    """
    if not row_text or not row_text.strip():
        return None
    if validate_checksum is None:
        validate_checksum = config.VALIDATE_EAN_CHECKSUM

    article_number = find_article_number(row_text)
    ean = find_ean(row_text, validate_checksum)
    price_tokens = find_price_tokens(row_text)

    if not article_number and not ean and not price_tokens:
        logger.debug("No article, EAN or price in row: %s", row_text[:100])
        return None

    prices = [p for p in (clean_price(t) for t in price_tokens) if p]

    first_word = row_text.split()[0]
    brand = first_word if len(first_word) > 2 else None

    name = extract_product_name(row_text, brand, article_number, ean, price_tokens)

    ve_match = VE_RE.search(row_text)

    record = ExtractedRecord(
        product_name=name,
        url=url,
        article_number=article_number,
        manufacturer_article_number=article_number,
        ean_code=ean,
        ek_price=select_net_price(prices),
        marke=brand,
        ve=ve_match.group(1) if ve_match else None,
        liefermenge=extract_liefermenge(row_text, default_liefermenge),
        confidence=config.URL_ROW_CONFIDENCE if url else config.TABLE_ROW_CONFIDENCE,
    )

    logger.debug(
        "Row parsed: article=%s ean=%s price=%s name=%s",
        record.article_number, record.ean_code, record.ek_price, record.product_name,
    )
    return record


def is_valid_product(record: ExtractedRecord) -> bool:
    """Filter out non-product links (terms, privacy, imprint, ...) and unidentifiable records"""
    if not record.article_number and not record.ean_code:
        return False

    name = (record.product_name or "").lower()
    url = (record.url or "").lower()

    if any(keyword in name for keyword in INVALID_NAME_KEYWORDS):
        logger.debug("Filtered out non-product (name): %s", record.product_name)
        return False

    if url and any(keyword in url for keyword in INVALID_URL_KEYWORDS):
        logger.debug("Filtered out non-product (URL): %s", record.url)
        return False

    return True
