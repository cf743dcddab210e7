"""
Batch processing of a directory of invoice PDFs.

Documents are processed one at a time in filename order. A failure in one
document is logged and recorded (or skipped) without stopping the batch; only
a missing input directory ends the run early.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .client import InvoiceExtractionClient
from .config import ARTIFACT_SUFFIX, PDF_EXTENSION, USAGE_SUMMARY_FILENAME, logger
from .extractor import extract_text_from_pdf
from .schemas import BatchUsageSummary, ExtractionFailure, ExtractionOutcome
from .usage import UsageAccumulator


class DirectoryMissingError(FileNotFoundError):
    """Raised when the input directory does not exist."""


@dataclass
class BatchReport:
    """
    Result of one batch run.

    Attributes:
        succeeded: Filenames whose artifact holds an InvoiceRecord
        failed: Filenames whose artifact holds an ErrorRecord
        skipped: Filenames for which no artifact was written
        usage: Token usage summary for the run
        summary_path: Where the usage summary was written, if anywhere
    """
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    usage: BatchUsageSummary = field(default_factory=BatchUsageSummary)
    summary_path: Optional[Path] = None

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed) + len(self.skipped)


def find_pdf_files(input_dir: Path) -> list[Path]:
    """Return the PDF files directly inside input_dir, sorted by name."""
    return sorted(
        (p for p in input_dir.iterdir() if p.is_file() and p.suffix.lower() == PDF_EXTENSION),
        key=lambda p: p.name,
    )


def artifact_path_for(pdf_path: Path, output_dir: Path) -> Path:
    """Output path for a document: `<stem>_data.json` in output_dir."""
    return output_dir / f"{pdf_path.stem}{ARTIFACT_SUFFIX}"


def write_outcome(outcome: ExtractionOutcome, output_path: Path) -> None:
    """Write an extraction outcome to a JSON file."""
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(outcome.to_payload(), f, indent=2, ensure_ascii=False)


def process_invoice(
    pdf_path: Path,
    client: InvoiceExtractionClient,
    output_dir: Path,
    accumulator: UsageAccumulator,
) -> Optional[ExtractionOutcome]:
    """
    Run the extraction pipeline for one PDF and persist the result.

    Args:
        pdf_path: Path to the PDF file
        client: Extraction client
        output_dir: Directory receiving the `<stem>_data.json` artifact
        accumulator: Usage accumulator for the current batch

    Returns:
        The outcome that was written, or None if the document was skipped
    """
    try:
        logger.info(f"Processing invoice: {pdf_path.name}")

        text = extract_text_from_pdf(pdf_path)
        if not text or not text.strip():
            logger.error(f"No text content could be extracted from {pdf_path.name}")
            return None

        outcome = client.extract(text)
        if outcome is None:
            logger.error(f"Failed to extract invoice data from {pdf_path.name}: no result")
            return None

        output_path = artifact_path_for(pdf_path, output_dir)
        write_outcome(outcome, output_path)

        if isinstance(outcome, ExtractionFailure):
            logger.error(
                f"Extraction failed for {pdf_path.name}: {outcome.error.error} "
                f"(details saved to: {output_path})"
            )
        else:
            logger.info(f"Invoice data extracted successfully and saved to: {output_path}")

        if outcome.usage is not None:
            accumulator.record(pdf_path.name, outcome.usage)

        return outcome
    except Exception:
        logger.exception(f"Error processing invoice {pdf_path.name}")
        return None


def process_invoices_directory(
    input_dir: Path,
    output_dir: Path,
    client: InvoiceExtractionClient,
) -> BatchReport:
    """
    Process every PDF in input_dir and write results to output_dir.

    Args:
        input_dir: Directory containing invoice PDF files
        output_dir: Directory for per-document artifacts and the usage
            summary; created if absent
        client: Extraction client

    Returns:
        BatchReport describing the run

    Raises:
        DirectoryMissingError: If input_dir does not exist
    """
    input_dir = Path(input_dir)
    output_dir = Path(output_dir)

    if not input_dir.is_dir():
        raise DirectoryMissingError(f"Directory not found: {input_dir}")

    if not output_dir.exists():
        output_dir.mkdir(parents=True)
        logger.info(f"Created output directory: {output_dir}")

    report = BatchReport()

    pdf_files = find_pdf_files(input_dir)
    if not pdf_files:
        logger.warning(f"No PDF files found in: {input_dir}")
        return report

    logger.info(f"Found {len(pdf_files)} PDF files to process")

    accumulator = UsageAccumulator()
    for pdf_path in pdf_files:
        outcome = process_invoice(pdf_path, client, output_dir, accumulator)
        if outcome is None:
            report.skipped.append(pdf_path.name)
        elif isinstance(outcome, ExtractionFailure):
            report.failed.append(pdf_path.name)
        else:
            report.succeeded.append(pdf_path.name)

    logger.info(
        f"Processed {report.total} invoices: {len(report.succeeded)} succeeded, "
        f"{len(report.failed)} failed, {len(report.skipped)} skipped"
    )

    logger.info("\n" + accumulator.format_report())
    summary_path = output_dir / USAGE_SUMMARY_FILENAME
    accumulator.write(summary_path)

    report.usage = accumulator.summary
    report.summary_path = summary_path
    return report
