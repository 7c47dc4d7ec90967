"""CLI interface for catalog extraction and Brickfox export"""
import json
import logging
import time
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from . import config
from .ai_enhancer import AIEnhancer
from .extractor import CatalogExtractor
from .field_catalog import detect_fields
from .html_extractor import HtmlExtractor, to_record
from .llm_client import LLMClient
from .mapper import MapperOptions, map_records
from .mapping_config import MappingConfigError, load_mapping_file, merge_files
from .serializer import normalize_delimiter, to_delimited_text
from .text_extractor import PDFParseError

logger = logging.getLogger(__name__)


def _write_output(text: str, output: Optional[Path]) -> None:
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
        click.echo(f"Results saved to: {output}", err=True)
    else:
        click.echo(text)


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def load_records(path: Path, url: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Read records from a PDF catalog, an HTML page or a JSON file

    JSON may hold a list of records or a ``{withURL, withoutURL}`` result.
    """
    suffix = path.suffix.lower()

    if suffix == ".pdf":
        result = CatalogExtractor().extract(path.read_bytes())
        return [r.to_dict() for r in result.with_url + result.without_url]

    if suffix in (".html", ".htm"):
        extraction = HtmlExtractor().extract(path.read_text(encoding="utf-8"))
        return [to_record(extraction, url).to_dict()]

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict) and ("withURL" in data or "withoutURL" in data):
        return list(data.get("withURL") or []) + list(data.get("withoutURL") or [])
    if isinstance(data, dict):
        return [data]
    return list(data)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool):
    """
    Extract product records from supplier catalogs and export them for Brickfox.

    Examples:

    \b
    catalog-extract pdf preisliste.pdf -o products.json
    catalog-extract html produkt.html --url https://example.com/p/1
    catalog-extract fields products.json
    catalog-extract export products.json --supplier Ansmann --mapping ansmann.json -o export.csv
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose or config.DEBUG_MODE else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _fail(ctx: click.Context, message: str, error: Exception) -> None:
    click.echo(f"{message}: {error}", err=True)
    if ctx.obj.get("verbose"):
        traceback.print_exc()
    ctx.exit(1)


@main.command()
@click.argument("pdf_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="JSON file to save the extraction result")
@click.pass_context
def pdf(ctx: click.Context, pdf_file: Path, output: Optional[Path]):
    """Extract products from a hyperlinked PDF price list."""
    click.echo(f"Processing: {pdf_file.name}", err=True)
    start_ts = time.perf_counter()
    try:
        result = CatalogExtractor().extract(pdf_file.read_bytes())
    except PDFParseError as e:
        _fail(ctx, f"Error processing {pdf_file.name}", e)
        return
    elapsed_s = time.perf_counter() - start_ts

    click.echo(
        f"  Time: {elapsed_s:.2f}s | with URL: {len(result.with_url)} | "
        f"without URL: {len(result.without_url)}",
        err=True,
    )
    _write_output(_dump(result.to_dict()), output)


@main.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--url", help="Source URL of the page")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="JSON file to save the extraction result")
def html(html_file: Path, url: Optional[str], output: Optional[Path]):
    """Extract title, bullets, data table and technical attributes from a product page."""
    extraction = HtmlExtractor().extract(html_file.read_text(encoding="utf-8"))
    data = extraction.to_dict()
    data["record"] = to_record(extraction, url).to_dict()
    _write_output(_dump(data), output)


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--limit", "-n", default=10, show_default=True, help="Number of records to sample")
@click.pass_context
def fields(ctx: click.Context, source: Path, limit: int):
    """List the field paths available for mapping in SOURCE (PDF, HTML or JSON records)."""
    try:
        records = load_records(source)
    except (PDFParseError, ValueError) as e:
        _fail(ctx, f"Error reading {source.name}", e)
        return
    _write_output(_dump([f.to_dict() for f in detect_fields(records, limit)]), None)


def _delimiter_option(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> str:
    try:
        return normalize_delimiter(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--supplier", "-s", help="Supplier name written to the supplier column")
@click.option("--mapping", "-m", "mapping_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Supplier-specific mapping JSON")
@click.option("--tenant-mapping", "-t", "tenant_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Tenant-wide default mapping JSON")
@click.option("--url", help="Source URL when SOURCE is an HTML page")
@click.option("--ai", "use_ai", is_flag=True, help="Run AI enrichment before mapping (needs OPENAI_API_KEY)")
@click.option("--delimiter", "-d", default=None, callback=_delimiter_option,
              help="Single-character column delimiter, '\\t' for tab (default from CSV_DELIMITER)")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="File to save the export to")
@click.pass_context
def export(ctx: click.Context, source: Path, supplier: Optional[str], mapping_file: Optional[Path],
           tenant_file: Optional[Path], url: Optional[str], use_ai: bool, delimiter: Optional[str],
           output: Optional[Path]):
    """Map records from SOURCE to Brickfox rows and write delimited text."""
    try:
        records = load_records(source, url)
        supplier_layer = load_mapping_file(mapping_file) if mapping_file else None
        tenant_layer = load_mapping_file(tenant_file) if tenant_file else None
    except (PDFParseError, MappingConfigError, ValueError) as e:
        _fail(ctx, "Error preparing export", e)
        return

    merged = merge_files([supplier_layer, tenant_layer])

    if use_ai:
        try:
            client = LLMClient()
        except ValueError as e:
            _fail(ctx, "Error initializing AI enrichment", e)
            return
        AIEnhancer(client.generate).enhance_records(records)

    options = MapperOptions(fixed_values=merged.fixed_values, auto_generate=merged.auto_generate)
    rows = map_records(records, merged.mapping, supplier, options)
    click.echo(f"Exported {len(rows)} row(s)", err=True)
    _write_output(to_delimited_text(rows, options.schema, delimiter), output)


if __name__ == "__main__":
    main()
