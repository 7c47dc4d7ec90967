"""Locale-aware number parsing and unit normalization

Supplier data is never guaranteed to match these shapes: every helper returns
None (parsers) or the input unchanged (normalizers) instead of raising.
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

NUMBER_RE = re.compile(r"-?\d+(?:[.,]\d+)*")
WEIGHT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(kilogramm|kilogram|kg|gramm|gram|g)?\b", re.IGNORECASE)

_KG_TEXT_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*(?:kg|kilogramm?)\b", re.IGNORECASE)
_DIMENSION = r"(\d+(?:[.,]\d+)?)"
_SEPARATOR = r"\s*[x×X*]\s*"
_CM_TRIPLE_RE = re.compile(_DIMENSION + _SEPARATOR + _DIMENSION + _SEPARATOR + _DIMENSION + r"\s*cm\b", re.IGNORECASE)
_CM_PAIR_RE = re.compile(_DIMENSION + _SEPARATOR + _DIMENSION + r"\s*cm\b", re.IGNORECASE)
_CM_SINGLE_RE = re.compile(_DIMENSION + r"\s*cm\b", re.IGNORECASE)


def _normalize_separators(text: str) -> str:
    """
    Convert a German or English formatted number to a plain decimal string

    "1.234,5" -> "1234.5", "39,75" -> "39.75", "2.500" -> "2500", "2.5" -> "2.5"
    """
    if "," in text:
        return text.replace(".", "").replace(",", ".", 1).replace(",", "")
    if "." in text:
        last_group = text.rsplit(".", 1)[1]
        # Exactly three digits after the last dot reads as a thousands separator
        if len(last_group) == 3 and text.count(".") >= 1 and not text.startswith("0."):
            return text.replace(".", "")
    return text


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None
    match = NUMBER_RE.search(str(value))
    if not match:
        return None
    try:
        return Decimal(_normalize_separators(match.group(0)))
    except InvalidOperation:
        return None


def format_decimal(value: Decimal) -> str:
    """Plain notation without trailing zeros: 57.0 -> "57", 1E+2 -> "100" """
    text = format(value.normalize(), "f")
    return "0" if text in ("-0", "") else text


def parse_number(value: Any) -> Optional[float]:
    """Parse the first number in a value, e.g. "2.850 mAh" -> 2850.0"""
    number = to_decimal(value)
    return float(number) if number is not None else None


def parse_weight(value: Any) -> Optional[float]:
    """Parse a weight to grams: "150g" -> 150, "1.5 kg" -> 1500, "1,234 kg" -> 1234"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip().lower()
    number_match = NUMBER_RE.search(text)
    if not number_match:
        return None

    normalized = text.replace(number_match.group(0), _normalize_separators(number_match.group(0)), 1)
    match = WEIGHT_RE.search(normalized)
    if not match:
        return None

    try:
        amount = Decimal(match.group(1))
    except InvalidOperation:
        return None

    unit = (match.group(2) or "g").lower()
    if unit.startswith("k"):
        amount *= 1000
    return float(amount)


def parse_price(value: Any) -> Optional[float]:
    """Parse a price, dropping currency symbols: "12,50 €" -> 12.5, "$15.99" -> 15.99"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = re.sub(r"[^\d,.\-]", "", str(value))
    if not re.search(r"\d", cleaned):
        return None
    try:
        return float(Decimal(_normalize_separators(cleaned)))
    except InvalidOperation:
        return None


def round_price(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _scaled(raw: str, factor: int) -> str:
    return format_decimal(Decimal(raw.replace(",", ".")) * factor)


def normalize_weight_text(text: Optional[str]) -> Optional[str]:
    """Rewrite kilogram amounts as grams: "0.102 kg" -> "102 g" """
    if not text:
        return text
    return _KG_TEXT_RE.sub(lambda m: f"{_scaled(m.group(1), 1000)} g", text)


def normalize_dimension_text(text: Optional[str]) -> Optional[str]:
    """Rewrite centimeter dimensions as millimeters: "5.7 × 2 × 6.9 cm" -> "57 × 20 × 69 mm" """
    if not text:
        return text

    def _join(match) -> str:
        return " × ".join(_scaled(g, 10) for g in match.groups()) + " mm"

    text = _CM_TRIPLE_RE.sub(_join, text)
    text = _CM_PAIR_RE.sub(_join, text)
    return _CM_SINGLE_RE.sub(lambda m: f"{_scaled(m.group(1), 10)} mm", text)
