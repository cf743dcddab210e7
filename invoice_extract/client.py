"""
Schema-constrained invoice extraction.

The client sends document text to a completion service together with a
fixed JSON template of the InvoiceRecord schema, then hands the reply to the
normalizer. Each call to `extract` makes at most one service request and
always returns an outcome; failures become ErrorRecords.
"""

import json
from typing import Optional

from .config import (
    MAX_INPUT_CHARS,
    OPENAI_MODEL,
    RAW_TEXT_SAMPLE_CHARS,
    ErrorKind,
    get_api_key,
    logger,
)
from .normalizer import parse_invoice_response
from .schemas import (
    ErrorRecord,
    ExtractionFailure,
    ExtractionOutcome,
    InvoiceRecord,
    LineItem,
    excerpt,
)
from .service import CompletionService, OpenAICompletionService, ServiceFailure


# ============================================================================
# Prompts
# ============================================================================

def build_schema_template() -> str:
    """
    Render the InvoiceRecord schema as the JSON object the model must return.

    The template is generated from the model itself so the prompt always
    lists exactly the fields the parser expects.
    """
    template = InvoiceRecord(line_items=[LineItem()])
    data = template.model_dump(mode="json", by_alias=True, exclude={"usage"})
    return json.dumps(data, indent=2)


def build_system_prompt() -> str:
    return (
        "You are an assistant that extracts structured data from invoice documents.\n"
        "Return a single JSON object with exactly the following structure:\n\n"
        f"{build_schema_template()}\n\n"
        "Rules:\n"
        "- Every field shown above must be present in your answer, even when the "
        "invoice does not contain it. Use \"\" for missing text and 0 for missing numbers.\n"
        "- Numeric fields must be plain JSON numbers without currency symbols or "
        "thousands separators.\n"
        "- Write dates as YYYY-MM-DD when the date can be determined unambiguously, "
        "otherwise copy them as printed.\n"
        "- List lineItems in the order they appear on the invoice, one object per line.\n"
        "- Put country-specific registry identifiers that have no dedicated field into "
        "additionalIds, keyed by the label printed on the invoice.\n"
        "- Return ONLY valid JSON with no additional text or explanation. "
        "Do not use markdown formatting or code fences."
    )


def build_user_prompt(document_text: str) -> str:
    return (
        "Extract the invoice data from the following text content of a PDF invoice "
        "and return it as a valid JSON object:\n\n"
        f"{document_text}"
    )


# ============================================================================
# Client
# ============================================================================

class InvoiceExtractionClient:
    """Extracts InvoiceRecords from document text via a completion service."""

    def __init__(
        self,
        service: CompletionService,
        max_input_chars: int = MAX_INPUT_CHARS,
    ) -> None:
        self.service = service
        self.max_input_chars = max_input_chars
        self.system_prompt = build_system_prompt()

    def extract(self, document_text: str) -> ExtractionOutcome:
        """
        Extract structured invoice data from document text.

        Args:
            document_text: Plain text of the invoice

        Returns:
            ExtractionSuccess with usage attached, or ExtractionFailure. Empty
            or oversized input fails without contacting the service.
        """
        if not document_text or not document_text.strip():
            logger.error("No document text provided to analyze")
            return ExtractionFailure(ErrorRecord(
                error="No content to analyze",
                kind=ErrorKind.EMPTY_INPUT,
                raw_text=document_text or "",
            ))

        if len(document_text) > self.max_input_chars:
            logger.error(
                f"Document text too long: {len(document_text)} characters "
                f"(limit {self.max_input_chars})"
            )
            return ExtractionFailure(ErrorRecord(
                error=(
                    f"Document text too long: {len(document_text)} characters "
                    f"(limit {self.max_input_chars})"
                ),
                kind=ErrorKind.INPUT_TOO_LONG,
                raw_text_sample=excerpt(document_text, RAW_TEXT_SAMPLE_CHARS),
            ))

        logger.info(
            f"Sending {len(document_text)} characters to "
            f"{self.service.provider_name} API for analysis..."
        )
        reply = self.service.complete(self.system_prompt, build_user_prompt(document_text))

        if isinstance(reply, ServiceFailure):
            return ExtractionFailure(self._error_from_failure(reply, document_text))

        outcome = parse_invoice_response(reply.content, document_text)
        return outcome.with_usage(reply.usage)

    def _error_from_failure(self, failure: ServiceFailure, document_text: str) -> ErrorRecord:
        sample = excerpt(document_text, RAW_TEXT_SAMPLE_CHARS)
        if failure.kind == ErrorKind.INVALID_RESPONSE:
            return ErrorRecord(
                error="Invalid API response",
                kind=ErrorKind.INVALID_RESPONSE,
                raw_text=sample,
                usage=failure.usage,
            )
        return ErrorRecord(
            error=f"{self.service.provider_name} API error: {failure.error_detail}",
            kind=ErrorKind.TRANSPORT_ERROR,
            raw_text_sample=sample,
            usage=failure.usage,
        )


def create_extraction_client(
    model: str = OPENAI_MODEL,
    max_input_chars: Optional[int] = None,
) -> InvoiceExtractionClient:
    """
    Build a client backed by OpenAI using the configured credential.

    Raises:
        ConfigurationError: If OPENAI_API_KEY is missing or a placeholder
    """
    service = OpenAICompletionService(api_key=get_api_key(), model=model)
    return InvoiceExtractionClient(
        service,
        max_input_chars=max_input_chars if max_input_chars is not None else MAX_INPUT_CHARS,
    )
