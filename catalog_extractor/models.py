"""Data structures shared across the extraction and export stages"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class TextRun:
    """One positioned glyph run from a page's text layer.

    ``y`` is the baseline in the page's top-down coordinate space.
    """

    text: str
    x: float
    y: float


@dataclass(frozen=True)
class LinkAnnotation:
    """A clickable URI region on a page"""

    url: str
    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def baseline(self) -> float:
        # Linked text sits on the bottom edge of its annotation box
        return self.y1


@dataclass
class PageLayout:
    """Text runs and link annotations of a single (1-indexed) page"""

    page_number: int
    text_runs: List[TextRun] = field(default_factory=list)
    links: List[LinkAnnotation] = field(default_factory=list)


@dataclass(frozen=True)
class Row:
    """A reconstructed table row, optionally anchored by a link"""

    text: str
    url: Optional[str] = None


@dataclass
class ExtractedRecord:
    """A candidate product record produced by the row parser or HTML extractor"""

    product_name: str = "Unknown Product"
    url: Optional[str] = None
    article_number: Optional[str] = None
    manufacturer_article_number: Optional[str] = None
    ean_code: Optional[str] = None
    ek_price: Optional[str] = None
    description: Optional[str] = None
    marke: Optional[str] = None
    ve: Optional[str] = None
    liefermenge: Optional[str] = None
    technical_specs: Dict[str, str] = field(default_factory=dict)
    bullets: List[str] = field(default_factory=list)
    supplier_table_html: Optional[str] = None
    confidence: float = 0.0
    # {key, value, type} items written by the AI enrichment step
    custom_attributes: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Render with the camelCase keys used by mapping configurations"""
        return {
            "productName": self.product_name,
            "url": self.url,
            "articleNumber": self.article_number,
            "manufacturerArticleNumber": self.manufacturer_article_number,
            "eanCode": self.ean_code,
            "ekPrice": self.ek_price,
            "description": self.description,
            "marke": self.marke,
            "ve": self.ve,
            "liefermenge": self.liefermenge,
            "technicalSpecs": dict(self.technical_specs),
            "bullets": list(self.bullets),
            "supplierTableHtml": self.supplier_table_html,
            "confidence": self.confidence,
            "customAttributes": [dict(a) for a in self.custom_attributes],
        }


@dataclass
class PDFParseResult:
    """Products of one catalog, split by whether a source URL was found"""

    with_url: List[ExtractedRecord] = field(default_factory=list)
    without_url: List[ExtractedRecord] = field(default_factory=list)

    @property
    def total_products(self) -> int:
        return len(self.with_url) + len(self.without_url)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "withURL": [r.to_dict() for r in self.with_url],
            "withoutURL": [r.to_dict() for r in self.without_url],
            "totalProducts": self.total_products,
        }
