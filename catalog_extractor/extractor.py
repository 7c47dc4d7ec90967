"""Main PDF catalog extraction orchestrator"""
import logging
from typing import Iterable, List

from . import config
from .layout import reconstruct_rows
from .models import ExtractedRecord, PageLayout, PDFParseResult
from .row_parser import is_valid_product, parse_row
from .text_extractor import TextExtractor

logger = logging.getLogger(__name__)


class CatalogExtractor:
    """Extracts product records from hyperlinked supplier price-list PDFs"""

    def __init__(self,
                 tolerance: float = config.ROW_Y_TOLERANCE,
                 bucket_size: float = config.ROW_BUCKET_SIZE):
        self.text_extractor = TextExtractor()
        self.tolerance = tolerance
        self.bucket_size = bucket_size

    def extract(self, pdf_bytes: bytes) -> PDFParseResult:
        """
        Main extraction method

        Args:
            pdf_bytes: PDF file as bytes

        Returns:
            PDFParseResult with products split by source URL availability

        Raises:
            PDFParseError: if the document cannot be read at all
        """
        # 1. Read text runs and links
        pages = self.text_extractor.extract(pdf_bytes)
        logger.info("Processing %d page(s)", len(pages))

        # 2. Rows -> records -> deduplicated streams
        return self.extract_from_pages(pages)

    def extract_from_pages(self, pages: Iterable[PageLayout]) -> PDFParseResult:
        """Run row reconstruction and parsing over already-read pages"""
        with_url: List[ExtractedRecord] = []
        without_url: List[ExtractedRecord] = []

        for page in pages:
            try:
                page_with, page_without = self._process_page(page)
            except Exception as e:
                logger.warning("Page %d failed, skipping: %s", page.page_number, e)
                continue

            logger.debug(
                "Page %d: %d linked, %d table-only product(s)",
                page.page_number, len(page_with), len(page_without),
            )
            with_url.extend(page_with)
            without_url.extend(page_without)

        unique_with_url = self._dedupe_by_url(with_url)
        unique_without_url = self._dedupe_by_identifier(without_url)

        # Table-only duplicates of linked products
        unique_without_url = [
            record for record in unique_without_url
            if not any(_same_identifier(record, linked) for linked in unique_with_url)
        ]

        result = PDFParseResult(with_url=unique_with_url, without_url=unique_without_url)
        logger.info(
            "Products with URL: %d, without URL: %d, total: %d",
            len(result.with_url), len(result.without_url), result.total_products,
        )
        return result

    def _process_page(self, page: PageLayout):
        page_with: List[ExtractedRecord] = []
        page_without: List[ExtractedRecord] = []

        rows = reconstruct_rows(page.text_runs, page.links, self.tolerance, self.bucket_size)
        for row in rows:
            record = parse_row(row.text, row.url)
            if record is None or not is_valid_product(record):
                logger.debug("Skipped row: %s", row.text[:100])
                continue

            if row.url:
                page_with.append(record)
            else:
                page_without.append(record)

        return page_with, page_without

    @staticmethod
    def _dedupe_by_url(records: List[ExtractedRecord]) -> List[ExtractedRecord]:
        seen = set()
        unique = []
        for record in records:
            if record.url in seen:
                continue
            seen.add(record.url)
            unique.append(record)
        return unique

    @staticmethod
    def _dedupe_by_identifier(records: List[ExtractedRecord]) -> List[ExtractedRecord]:
        unique: List[ExtractedRecord] = []
        for record in records:
            if any(_same_identifier(record, kept) for kept in unique):
                logger.debug("Skipping duplicate product: %s", record.article_number or record.ean_code)
                continue
            unique.append(record)
        return unique


def _same_identifier(a: ExtractedRecord, b: ExtractedRecord) -> bool:
    """Equal article number or equal EAN, ignoring missing values"""
    if a.article_number and a.article_number == b.article_number:
        return True
    return bool(a.ean_code and a.ean_code == b.ean_code)
