"""Shared fixtures for the catalog extractor test suite"""
import fitz
import pytest

from catalog_extractor.models import ExtractedRecord

LINKED_ROW = "ANSMANN 1522-0045 4013674000115 Akku Mignon AA 2850mAh 4er 12,50 19,99"
TABLE_ROW = "ANSMANN 1522-0046 4013674000122 Akku Micro AAA 1100mAh 4er 9,80 14,99"
FOOTER_ROW = "AGB und Zahlungsziel 30 Tage netto"
PRODUCT_URL = "https://www.example.com/produkte/1522-0045"

PRODUCT_HTML = """<!DOCTYPE html>
<html>
<head><title>Shop Startseite</title><script>var weight = "5 kg";</script></head>
<body>
  <nav class="accessibility-nav">
    <ul><li>Zum Inhalt springen und weiter lesen</li></ul>
  </nav>
  <h1>ANSMANN Akku Mignon AA 7,2 V 5200 mAh</h1>
  <div class="product-features">
    <ul>
      <li>Drücken Sie die Eingabetaste, um die Navigation zu öffnen</li>
      <li>Integrierter LED-Indikator zur Ladestandsanzeige</li>
    </ul>
  </div>
  <table class="tech-data">
    <tr><th>Gewicht</th><td>0.102 kg</td></tr>
    <tr><th>Abmessungen</th><td>5.7 × 2 × 6.9 cm</td></tr>
    <tr><th>Zellenchemie</th><td>NiMH</td></tr>
    <tr><th>Artikelnummer</th><td>1522-0045</td></tr>
  </table>
  <p>Max. Entladestrom: 10 A</p>
  <p>Geprüft nach UN3480 und IEC 62133-2</p>
</body>
</html>
"""


def build_pdf(rows, links=()):
    """Single-page PDF with one text line per (y, text) and URI links per (rect, uri)"""
    doc = fitz.open()
    page = doc.new_page(width=595, height=842)
    for y, text in rows:
        page.insert_text((50, y), text, fontsize=8)
    for rect, uri in links:
        page.insert_link({"kind": fitz.LINK_URI, "from": fitz.Rect(*rect), "uri": uri})
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def catalog_pdf():
    """Price list with one linked row, one table-only row and a terms footer"""
    return build_pdf(
        rows=[(100, LINKED_ROW), (160, TABLE_ROW), (300, FOOTER_ROW)],
        links=[((45, 90, 450, 102), PRODUCT_URL)],
    )


@pytest.fixture
def product_html():
    return PRODUCT_HTML


@pytest.fixture
def sample_record():
    return ExtractedRecord(
        product_name="Akku Mignon AA",
        url=PRODUCT_URL,
        article_number="1522-0045",
        manufacturer_article_number="1522-0045",
        ean_code="4013674000115",
        ek_price="10,00",
        marke="ANSMANN",
        liefermenge="4 Stück",
        technical_specs={"weight": "102 g", "capacity": "2850 mAh", "voltage": "1,2 V"},
        bullets=["Integrierter LED-Indikator zur Ladestandsanzeige"],
        confidence=0.9,
    )
