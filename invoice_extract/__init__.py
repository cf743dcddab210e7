"""
Invoice Extract

Converts invoice PDFs into schema-conformant JSON records by sending their
text to an LLM completion service, with per-document error isolation and
batch token-usage accounting.
"""

__version__ = "0.1.0"

from .schemas import (
    InvoiceRecord,
    Party,
    LineItem,
    UsageMetrics,
    ErrorRecord,
    BatchUsageSummary,
    ExtractionSuccess,
    ExtractionFailure,
)
from .extractor import extract_text_from_pdf
from .client import InvoiceExtractionClient, create_extraction_client
from .pipeline import process_invoice, process_invoices_directory

__all__ = [
    "InvoiceRecord",
    "Party",
    "LineItem",
    "UsageMetrics",
    "ErrorRecord",
    "BatchUsageSummary",
    "ExtractionSuccess",
    "ExtractionFailure",
    "extract_text_from_pdf",
    "InvoiceExtractionClient",
    "create_extraction_client",
    "process_invoice",
    "process_invoices_directory",
]
