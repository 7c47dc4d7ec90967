"""Text layer and link annotation extraction from PDF using PyMuPDF and pdfplumber"""
import io
import logging
from typing import List

import fitz  # PyMuPDF
import pdfplumber

from .models import LinkAnnotation, PageLayout, TextRun

logger = logging.getLogger(__name__)
logging.getLogger("pdfminer").setLevel(logging.ERROR)


class PDFParseError(ValueError):
    """Raised when a document cannot be opened as a PDF at all"""


class TextExtractor:
    """Extracts positioned text runs and URI links page by page"""

    def __init__(self, use_pymupdf: bool = True):
        self.use_pymupdf = use_pymupdf  # Prefer PyMuPDF for better performance

    def extract(self, pdf_bytes: bytes) -> List[PageLayout]:
        """
        Extract page layouts from PDF bytes

        Args:
            pdf_bytes: PDF file as bytes

        Returns:
            List of PageLayout objects, one per readable page

        Raises:
            PDFParseError: if the buffer is empty or not a parseable PDF
        """
        if not pdf_bytes:
            raise PDFParseError("Empty PDF buffer")

        try:
            if self.use_pymupdf:
                return self._extract_pymupdf(pdf_bytes)
            return self._extract_pdfplumber(pdf_bytes)
        except PDFParseError:
            raise
        except Exception as e:
            # Fallback to pdfplumber if PyMuPDF fails
            if self.use_pymupdf:
                logger.warning("PyMuPDF failed (%s), falling back to pdfplumber", e)
                try:
                    return self._extract_pdfplumber(pdf_bytes)
                except Exception as fallback_error:
                    raise PDFParseError(f"Failed to read PDF: {e}") from fallback_error
            raise PDFParseError(f"Failed to read PDF: {e}") from e

    def _extract_pymupdf(self, pdf_bytes: bytes) -> List[PageLayout]:
        """Extract using PyMuPDF (fitz)"""
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        pages = []

        try:
            for page_index in range(len(doc)):
                page_number = page_index + 1
                try:
                    page = doc[page_index]
                    layout = PageLayout(page_number=page_number)

                    text_dict = page.get_text("dict")
                    for block in text_dict["blocks"]:
                        if "lines" not in block:  # Image block
                            continue
                        for line in block["lines"]:
                            for span in line["spans"]:
                                text = span["text"].strip()
                                if text:
                                    x0 = span["bbox"][0]
                                    baseline = span.get("origin", (x0, span["bbox"][3]))[1]
                                    layout.text_runs.append(TextRun(text=text, x=x0, y=baseline))

                    for link in page.get_links():
                        uri = link.get("uri")
                        if link.get("kind") != fitz.LINK_URI or not uri:
                            continue
                        rect = link["from"]
                        layout.links.append(LinkAnnotation(
                            url=uri, x0=rect.x0, y0=rect.y0, x1=rect.x1, y1=rect.y1
                        ))

                    pages.append(layout)
                except Exception as e:
                    logger.warning("Skipping unreadable page %d: %s", page_number, e)
        finally:
            doc.close()

        logger.debug("PyMuPDF read %d page(s)", len(pages))
        return pages

    def _extract_pdfplumber(self, pdf_bytes: bytes) -> List[PageLayout]:
        """Extract using pdfplumber (fallback)"""
        pdf_file = io.BytesIO(pdf_bytes)
        pages = []

        with pdfplumber.open(pdf_file) as pdf:
            for page_number, page in enumerate(pdf.pages, start=1):
                try:
                    layout = PageLayout(page_number=page_number)

                    for word in page.extract_words():
                        text = word.get("text", "").strip()
                        if text:
                            layout.text_runs.append(TextRun(
                                text=text,
                                x=word.get("x0", 0),
                                y=word.get("bottom", 0),
                            ))

                    for link in page.hyperlinks:
                        uri = link.get("uri")
                        if not uri:
                            continue
                        layout.links.append(LinkAnnotation(
                            url=uri,
                            x0=link.get("x0", 0),
                            y0=link.get("top", 0),
                            x1=link.get("x1", 0),
                            y1=link.get("bottom", 0),
                        ))

                    pages.append(layout)
                except Exception as e:
                    logger.warning("Skipping unreadable page %d: %s", page_number, e)

        return pages
