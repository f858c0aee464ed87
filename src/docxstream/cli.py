"""docxstream - CLI Entry Point."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from lxml import etree

from docxstream.docx_parser import ArchiveError, parse_docx_document
from docxstream.ir import to_dict
from docxstream.statistics import get_document_statistics
from docxstream.stream import count_content_units, slice_docx


def _read_input(path: Path) -> bytes:
    data = path.read_bytes()
    if not data:
        click.echo(f"Warning: {path.name} is empty", err=True)
    return data


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Parse, slice and inspect Word (.docx) documents."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("input_docx", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", "output_path", type=click.Path(dir_okay=False, path_type=Path), help="Write JSON here instead of stdout")
@click.option("--headers-footers", is_flag=True, help="Include header and footer parts")
@click.option("--notes", is_flag=True, help="Include footnotes and endnotes")
@click.option("--comments", is_flag=True, help="Include comments")
def parse(
    input_docx: Path,
    output_path: Optional[Path] = None,
    headers_footers: bool = False,
    notes: bool = False,
    comments: bool = False,
):
    """Parse INPUT_DOCX and print its paragraphs and tables as JSON."""
    try:
        document = parse_docx_document(
            _read_input(input_docx),
            include_headers_footers=headers_footers,
            include_notes=notes,
            include_comments=comments,
        )
    except (ArchiveError, etree.XMLSyntaxError) as e:
        _fail(f"could not parse {input_docx.name}: {e}")
        return

    payload = json.dumps(to_dict(document), indent=2, ensure_ascii=False)
    if output_path is None:
        click.echo(payload)
    else:
        output_path.write_text(payload, encoding="utf-8")
        click.echo(f"✓ Parsed {input_docx.name} → {output_path.name} ({len(document.paragraphs)} blocks)")


@cli.command("slice")
@click.argument("input_docx", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("units", type=click.IntRange(min=0))
@click.argument("output_docx", type=click.Path(dir_okay=False, path_type=Path))
def slice_command(input_docx: Path, units: int, output_docx: Path):
    """Write the first UNITS paragraphs/table rows of INPUT_DOCX to OUTPUT_DOCX."""
    try:
        data = slice_docx(_read_input(input_docx), units)
    except (ArchiveError, etree.XMLSyntaxError) as e:
        _fail(f"could not slice {input_docx.name}: {e}")
        return
    if not data:
        _fail(f"{input_docx.name} has no document body")
        return
    output_docx.write_bytes(data)
    click.echo(f"✓ Sliced {input_docx.name} to {units} units → {output_docx.name}")


@cli.command()
@click.argument("input_docx", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def stats(input_docx: Path):
    """Print document statistics as JSON."""
    try:
        document = parse_docx_document(
            _read_input(input_docx),
            include_headers_footers=True,
            include_notes=True,
            include_comments=True,
        )
    except (ArchiveError, etree.XMLSyntaxError) as e:
        _fail(f"could not parse {input_docx.name}: {e}")
        return
    statistics = get_document_statistics(document)
    click.echo(json.dumps(to_dict(statistics), indent=2))


@cli.command()
@click.argument("input_docx", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def units(input_docx: Path):
    """Print the number of content units (paragraphs + table rows)."""
    try:
        total = count_content_units(_read_input(input_docx))
    except (ArchiveError, etree.XMLSyntaxError) as e:
        _fail(f"could not read {input_docx.name}: {e}")
        return
    click.echo(str(total))


if __name__ == "__main__":
    cli()
