"""
Cleanup and parsing of raw completion replies.

Models are told to answer with bare JSON but frequently wrap it in a
markdown code fence anyway. The fence is stripped before parsing, and a reply
that still cannot be read as an InvoiceRecord becomes an ErrorRecord carrying
the original reply text.
"""

import json
import re

from pydantic import ValidationError

from .config import RAW_TEXT_SAMPLE_CHARS, ErrorKind, logger
from .schemas import (
    ErrorRecord,
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionSuccess,
    InvoiceRecord,
    excerpt,
)

PARSE_ERROR_MESSAGE = "Failed to parse API response as JSON"

# Opening fence with an optional language tag, e.g. "```json"
_FENCE_OPEN = re.compile(r"^```[ \t]*[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_FENCE_CLOSE = re.compile(r"\s*```$")


def strip_code_fences(text: str) -> str:
    """
    Remove a markdown code fence wrapped around the reply.

    Text that does not start with a fence is returned trimmed but otherwise
    unchanged, so applying this twice gives the same result as applying it once.
    """
    cleaned = text.strip()
    if not cleaned.startswith("```"):
        return cleaned

    cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
    cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_invoice_response(content: str, document_text: str) -> ExtractionOutcome:
    """
    Parse a completion reply into an InvoiceRecord.

    Args:
        content: Reply text exactly as returned by the service
        document_text: Source document text, sampled into the error record

    Returns:
        ExtractionSuccess with the parsed record, or ExtractionFailure holding
        the unmodified reply when it is not a JSON invoice object
    """
    cleaned = strip_code_fences(content)

    try:
        data = json.loads(cleaned)
        if isinstance(data, dict):
            # usage is attached by the client, never taken from the model
            data.pop("usage", None)
        record = InvoiceRecord.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Error parsing JSON response: {e}")
        return ExtractionFailure(ErrorRecord(
            error=PARSE_ERROR_MESSAGE,
            kind=ErrorKind.PARSE_ERROR,
            raw_response=content,
            raw_text_sample=excerpt(document_text, RAW_TEXT_SAMPLE_CHARS),
        ))

    return ExtractionSuccess(record)
