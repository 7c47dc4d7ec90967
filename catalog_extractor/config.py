"""Configuration settings for the catalog extractor"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DEBUG_MODE = _env_bool("DEBUG_MODE", False)

# Layout reconstruction (PDF user-space units)
ROW_Y_TOLERANCE = float(os.getenv("ROW_Y_TOLERANCE", "15"))  # +/- band around a link baseline
ROW_BUCKET_SIZE = float(os.getenv("ROW_BUCKET_SIZE", "5"))   # y rounding step for URL-less rows

# Row parsing
DEFAULT_LIEFERMENGE = os.getenv("DEFAULT_LIEFERMENGE", "1 Stück") or None
VALIDATE_EAN_CHECKSUM = _env_bool("VALIDATE_EAN_CHECKSUM", False)
URL_ROW_CONFIDENCE = 0.9    # row anchored by a live product link
TABLE_ROW_CONFIDENCE = 0.7  # row recovered from table layout only

# Export
CSV_DELIMITER = os.getenv("CSV_DELIMITER", ",")
SALES_PRICE_MARKUP = 2.0
VAT_RATE = 0.19

# LLM Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")

# AI enrichment pacing (external rate limit)
AI_BATCH_SIZE = int(os.getenv("AI_BATCH_SIZE", "5"))
AI_BATCH_DELAY = float(os.getenv("AI_BATCH_DELAY", "1.0"))  # seconds between batches
