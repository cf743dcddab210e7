"""
Command-line interface for the invoice extractor.

Run with no arguments to process every PDF in ./invoices and write the
results to ./outputs.
"""

from pathlib import Path
from typing import Optional

import typer

from .client import create_extraction_client
from .config import (
    INPUT_DIR_NAME,
    MAX_INPUT_CHARS,
    OPENAI_MODEL,
    OUTPUT_DIR_NAME,
    ConfigurationError,
    logger,
)
from .pipeline import DirectoryMissingError, process_invoices_directory


# Create Typer app
app = typer.Typer(
    name="invoice-extract",
    help="Extract structured JSON data from invoice PDFs using an LLM",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        from . import __version__
        typer.echo(f"Invoice Extract v{__version__}")
        raise typer.Exit()


@app.command()
def run(
    input_dir: Path = typer.Option(
        Path(INPUT_DIR_NAME),
        "--input-dir",
        "-i",
        help="Directory containing invoice PDF files",
    ),
    output_dir: Path = typer.Option(
        Path(OUTPUT_DIR_NAME),
        "--output-dir",
        "-o",
        help="Directory for extracted JSON files and the usage summary",
    ),
    model: str = typer.Option(
        OPENAI_MODEL,
        "--model",
        "-m",
        help="OpenAI chat model used for extraction",
    ),
    max_chars: int = typer.Option(
        MAX_INPUT_CHARS,
        "--max-chars",
        min=1,
        help="Maximum document text length sent to the model",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version information and exit",
    ),
) -> None:
    """
    Extract invoice data from every PDF in the input directory.

    Writes one `<name>_data.json` per PDF plus `token_usage_summary.json`.
    """
    try:
        client = create_extraction_client(model=model, max_input_chars=max_chars)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Processing all PDFs in: {input_dir.resolve()}")

    try:
        report = process_invoices_directory(input_dir, output_dir, client)
    except DirectoryMissingError:
        typer.echo(
            f'Error: "{input_dir}" directory not found. '
            "Please create it and add PDF files there.",
            err=True,
        )
        return
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        logger.exception("Batch processing failed")
        raise typer.Exit(code=1)

    if report.total == 0:
        typer.echo("No PDF files found in the input directory.")
        return

    typer.echo(f"\n[OK] Processed {report.total} PDF file(s)")
    for name in report.succeeded:
        typer.echo(f"  - {name}: extracted")
    for name in report.failed:
        typer.echo(f"  - {name}: failed (see error details in output)")
    for name in report.skipped:
        typer.echo(f"  - {name}: skipped (no text or processing error)")

    totals = report.usage.totals
    typer.echo(
        f"\nTokens used: {totals.total_tokens} "
        f"(prompt {totals.prompt_tokens}, completion {totals.completion_tokens})"
    )
    if report.summary_path is not None:
        typer.echo(f"Usage summary saved to: {report.summary_path}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
