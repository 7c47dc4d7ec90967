"""
Tests for PDF reading and the catalog extraction orchestrator
"""
import pytest

from catalog_extractor.extractor import CatalogExtractor
from catalog_extractor.models import LinkAnnotation, PageLayout, TextRun
from catalog_extractor.text_extractor import PDFParseError, TextExtractor
from conftest import LINKED_ROW, PRODUCT_URL

TABLE_ONLY = "ANSMANN 1522-0046 4013674000122 Akku Micro AAA 1100mAh 4er 9,80 14,99"


def page_with_rows(page_number, rows):
    """PageLayout from (y, text, url-or-None) tuples"""
    page = PageLayout(page_number=page_number)
    for y, text, url in rows:
        page.text_runs.append(TextRun(text, 50, y))
        if url:
            page.links.append(LinkAnnotation(url, 45, y - 10, 450, y + 2))
    return page


class TestTextExtractor:
    """Reading text runs and URI links from PDF bytes"""

    def test_pymupdf_reads_runs_and_links(self, catalog_pdf):
        pages = TextExtractor().extract(catalog_pdf)

        assert len(pages) == 1
        assert pages[0].page_number == 1
        text = " ".join(run.text for run in pages[0].text_runs)
        assert "1522-0045" in text
        assert [link.url for link in pages[0].links] == [PRODUCT_URL]

    def test_pdfplumber_reads_runs_and_links(self, catalog_pdf):
        pages = TextExtractor(use_pymupdf=False).extract(catalog_pdf)

        assert len(pages) == 1
        assert any(run.text == "1522-0045" for run in pages[0].text_runs)
        assert [link.url for link in pages[0].links] == [PRODUCT_URL]

    def test_empty_buffer(self):
        with pytest.raises(PDFParseError):
            TextExtractor().extract(b"")

    def test_corrupt_pdf(self):
        with pytest.raises(PDFParseError):
            TextExtractor().extract(b"this is not a pdf document at all")

    def test_parse_error_is_value_error(self):
        assert issubclass(PDFParseError, ValueError)


class TestCatalogExtraction:
    """End-to-end extraction from a synthesized price list"""

    def test_linked_and_table_rows(self, catalog_pdf):
        result = CatalogExtractor().extract(catalog_pdf)

        assert result.total_products == 2
        linked = result.with_url[0]
        assert linked.url == PRODUCT_URL
        assert linked.article_number == "1522-0045"
        assert linked.ean_code == "4013674000115"
        assert linked.ek_price == "12,50"
        assert linked.liefermenge == "4 Stück"
        assert linked.confidence == 0.9

        table_only = result.without_url[0]
        assert table_only.url is None
        assert table_only.article_number == "1522-0046"
        assert table_only.ek_price == "9,80"
        assert table_only.confidence == 0.7

    def test_result_dict_shape(self, catalog_pdf):
        data = CatalogExtractor().extract(catalog_pdf).to_dict()

        assert set(data) == {"withURL", "withoutURL", "totalProducts"}
        assert data["totalProducts"] == 2
        assert data["withURL"][0]["articleNumber"] == "1522-0045"
        assert data["withURL"][0]["productName"] == "Akku Mignon AA"

    def test_corrupt_pdf_is_fatal(self):
        with pytest.raises(PDFParseError):
            CatalogExtractor().extract(b"not a pdf")


class TestDeduplication:
    """Duplicate handling across rows and pages"""

    def test_same_url_row_twice_yields_one_record(self):
        pages = [
            page_with_rows(1, [(100, LINKED_ROW, PRODUCT_URL), (200, LINKED_ROW, PRODUCT_URL)]),
        ]
        result = CatalogExtractor().extract_from_pages(pages)

        assert len(result.with_url) == 1
        assert result.without_url == []

    def test_same_url_across_pages(self):
        pages = [
            page_with_rows(1, [(100, LINKED_ROW, PRODUCT_URL)]),
            page_with_rows(2, [(100, LINKED_ROW, PRODUCT_URL)]),
        ]
        assert len(CatalogExtractor().extract_from_pages(pages).with_url) == 1

    def test_table_rows_deduplicated_by_identifier(self):
        pages = [
            page_with_rows(1, [(100, TABLE_ONLY, None), (200, TABLE_ONLY, None)]),
        ]
        result = CatalogExtractor().extract_from_pages(pages)
        assert len(result.without_url) == 1

    def test_table_row_duplicating_linked_product_dropped(self):
        pages = [
            page_with_rows(1, [(100, LINKED_ROW, PRODUCT_URL)]),
            page_with_rows(2, [(100, LINKED_ROW, None)]),
        ]
        result = CatalogExtractor().extract_from_pages(pages)

        assert len(result.with_url) == 1
        assert result.without_url == []

    def test_failing_page_is_skipped(self):
        """Test one broken page does not abort the others"""
        broken = PageLayout(page_number=1, text_runs=[None])
        good = page_with_rows(2, [(100, LINKED_ROW, PRODUCT_URL)])

        result = CatalogExtractor().extract_from_pages([broken, good])
        assert len(result.with_url) == 1
