"""
Pydantic models for extracted invoice data, usage accounting and errors.

This module defines the core data structures used throughout the extractor:
- InvoiceRecord, Party and LineItem for the structured invoice schema
- UsageMetrics and BatchUsageSummary for token accounting
- ErrorRecord for documents whose extraction failed
- ExtractionSuccess / ExtractionFailure, the outcome of one extraction

All models serialize with camelCase keys and accept snake_case on input.
"""

import re
from dataclasses import dataclass
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, BeforeValidator, Field, field_validator
from pydantic.alias_generators import to_camel

from .config import ErrorKind


# ============================================================================
# Value Coercion
# ============================================================================

def parse_number(value) -> Optional[float]:
    """
    Parse a numeric value from various formats.

    Handles both:
    - US/UK format: 1,234.56 or 1,500 (comma = thousand separator, period = decimal)
    - European format: 1.234,56 or 1.234.567 (period = thousand separator, comma = decimal)

    A single comma followed by exactly three digits ("1,500") is read as a
    thousands separator; any other single comma ("257,04") is a decimal comma.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    value_str = str(value).strip()
    if not value_str:
        return None

    # Remove currency symbols, percent signs and whitespace
    value_str = re.sub(r'[\$€£₹¥%\s]', '', value_str)

    comma_count = value_str.count(',')
    period_count = value_str.count('.')

    if comma_count and period_count:
        if value_str.rfind('.') < value_str.rfind(','):
            # European format: "1.234,56" -> "1234.56"
            value_str = value_str.replace('.', '').replace(',', '.')
        else:
            # US format: "1,234.56" -> "1234.56"
            value_str = value_str.replace(',', '')
    elif comma_count > 1:
        # US thousands only: "1,234,567" -> "1234567"
        value_str = value_str.replace(',', '')
    elif comma_count == 1:
        integer_part, fraction = value_str.split(',')
        if len(fraction) == 3 and integer_part.lstrip('-+') not in ('', '0'):
            # US thousands: "1,500" -> "1500"
            value_str = integer_part + fraction
        else:
            # Decimal comma: "257,04" -> "257.04"
            value_str = integer_part + '.' + fraction
    elif period_count > 1:
        # European thousands only: "1.234.567" -> "1234567"
        value_str = value_str.replace('.', '')

    try:
        return float(value_str)
    except ValueError:
        return None


def _coerce_amount(value: Any) -> float:
    """Missing or unparseable amounts become 0."""
    parsed = parse_number(value)
    return parsed if parsed is not None else 0.0


def _coerce_text(value: Any) -> str:
    """Missing text becomes an empty string; numbers keep their printed form."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value)


Text = Annotated[str, BeforeValidator(_coerce_text)]
Amount = Annotated[float, BeforeValidator(_coerce_amount)]


class CamelModel(BaseModel):
    """Base model serializing to camelCase JSON keys."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


# ============================================================================
# Invoice Schema
# ============================================================================

class Party(CamelModel):
    """
    A vendor or customer named on the invoice.

    Jurisdiction-specific registry numbers (e.g. a national company register
    entry) go in `additional_ids`, keyed by the label printed on the invoice.
    """
    name: Text = Field("", description="Legal or trading name")
    address: Text = Field("", description="Street address")
    city: Text = Field("", description="City")
    postal_code: Text = Field("", description="Postal or ZIP code")
    country: Text = Field("", description="Country")
    phone: Text = Field("", description="Phone number")
    email: Text = Field("", description="Email address")
    website: Text = Field("", description="Website URL")
    tax_id: Text = Field("", description="Tax identification number")
    vat_number: Text = Field("", description="VAT registration number")
    registration_number: Text = Field("", description="Company registration number")
    additional_ids: dict[str, Text] = Field(
        default_factory=dict,
        description="Other registry identifiers keyed by their label",
    )

    @field_validator("additional_ids", mode="before")
    @classmethod
    def default_additional_ids(cls, v: Any) -> Any:
        """A null mapping is treated as empty."""
        return v if v is not None else {}


class LineItem(CamelModel):
    """
    A single line item in an invoice, in the order it appears in the document.
    """
    description: Text = Field("", description="Item or service description")
    quantity: Amount = Field(0.0, description="Number of units")
    unit: Text = Field("", description="Unit of measure (e.g., pcs, hours)")
    unit_price: Amount = Field(0.0, description="Price per unit")
    vat_rate: Text = Field("", description="VAT rate as printed (e.g., 20%)")
    vat_amount: Amount = Field(0.0, description="VAT charged on this line")
    amount: Amount = Field(0.0, description="Total for this line")


class UsageMetrics(CamelModel):
    """Token consumption reported by the completion service for one call."""
    prompt_tokens: int = Field(0, ge=0, description="Tokens in the request")
    completion_tokens: int = Field(0, ge=0, description="Tokens in the reply")
    total_tokens: int = Field(0, ge=0, description="Prompt plus completion tokens")

    def __add__(self, other: "UsageMetrics") -> "UsageMetrics":
        return UsageMetrics(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class InvoiceRecord(CamelModel):
    """
    Structured invoice data extracted from a document.

    Every field is always present. Values missing from the source document
    are represented by "" for text and 0 for amounts.
    """

    # ========================================================================
    # Identifiers & Dates
    # ========================================================================
    invoice_number: Text = Field("", description="Invoice identifier")
    issue_date: Text = Field("", description="Date the invoice was issued")
    due_date: Text = Field("", description="Payment due date")
    currency: Text = Field("", description="Currency code (e.g., USD, EUR)")

    # ========================================================================
    # Parties
    # ========================================================================
    vendor: Party = Field(default_factory=Party, description="Seller issuing the invoice")
    customer: Party = Field(default_factory=Party, description="Buyer receiving the invoice")

    # ========================================================================
    # Payment & Shipping
    # ========================================================================
    payment_method: Text = Field("", description="Payment method (e.g., bank transfer)")
    payment_date: Text = Field("", description="Date payment was made")
    shipping_date: Text = Field("", description="Date goods were shipped")
    shipping_carrier_id: Text = Field("", description="Carrier identifier")
    shipping_carrier_name: Text = Field("", description="Carrier name")
    notes: Text = Field("", description="Free-form notes printed on the invoice")

    # ========================================================================
    # Line Items
    # ========================================================================
    line_items: list[LineItem] = Field(
        default_factory=list,
        description="Itemized products or services in document order",
    )

    # ========================================================================
    # Totals
    # ========================================================================
    subtotal: Amount = Field(0.0, description="Sum of line amounts before VAT")
    total_discount: Amount = Field(0.0, description="Total discount applied")
    vat_base: Amount = Field(0.0, description="Amount VAT is calculated on")
    calculated_vat: Amount = Field(0.0, description="VAT computed from the base and rate")
    total_vat: Amount = Field(0.0, description="VAT amount printed on the invoice")
    total_amount: Amount = Field(0.0, description="Total including VAT")
    amount_to_be_paid: Amount = Field(0.0, description="Outstanding amount due")

    usage: Optional[UsageMetrics] = Field(
        None,
        description="Token usage of the call that produced this record",
    )

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Normalize currency code to uppercase."""
        return v.upper().strip()

    @field_validator("vendor", "customer", mode="before")
    @classmethod
    def default_party(cls, v: Any) -> Any:
        """A null party is treated as an empty one, a bare string as its name."""
        if v is None:
            return {}
        if isinstance(v, str):
            return {"name": v}
        return v

    @field_validator("line_items", mode="before")
    @classmethod
    def default_line_items(cls, v: Any) -> Any:
        """Keep only object entries and treat a null list as empty."""
        if v is None:
            return []
        if isinstance(v, list):
            return [item for item in v if isinstance(item, (dict, LineItem))]
        return v


# ============================================================================
# Errors & Outcomes
# ============================================================================

class ErrorRecord(CamelModel):
    """
    Output written in place of an InvoiceRecord when extraction fails.

    Only the context relevant to the failure is populated; unset fields are
    omitted from the serialized artifact.
    """
    error: str = Field(..., description="Human-readable failure description")
    kind: ErrorKind = Field(..., description="Failure category")
    raw_text: Optional[str] = Field(None, description="Document text or excerpt")
    raw_response: Optional[str] = Field(None, description="Unmodified service reply")
    raw_text_sample: Optional[str] = Field(None, description="First characters of the document text")
    usage: Optional[UsageMetrics] = Field(None, description="Token usage, when the call completed")


@dataclass(frozen=True)
class ExtractionSuccess:
    """The document was turned into an InvoiceRecord."""
    record: InvoiceRecord

    @property
    def usage(self) -> Optional[UsageMetrics]:
        return self.record.usage

    def with_usage(self, usage: UsageMetrics) -> "ExtractionSuccess":
        return ExtractionSuccess(self.record.model_copy(update={"usage": usage}))

    def to_payload(self) -> dict:
        return self.record.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class ExtractionFailure:
    """Extraction failed; the ErrorRecord explains why."""
    error: ErrorRecord

    @property
    def usage(self) -> Optional[UsageMetrics]:
        return self.error.usage

    def with_usage(self, usage: UsageMetrics) -> "ExtractionFailure":
        return ExtractionFailure(self.error.model_copy(update={"usage": usage}))

    def to_payload(self) -> dict:
        return self.error.model_dump(mode="json", by_alias=True, exclude_none=True)


ExtractionOutcome = Union[ExtractionSuccess, ExtractionFailure]


# ============================================================================
# Batch Usage
# ============================================================================

class BatchUsageSummary(CamelModel):
    """
    Token usage aggregated over one batch run.

    `per_file` holds one entry per document whose call returned usage.
    """
    per_file: dict[str, UsageMetrics] = Field(
        default_factory=dict,
        description="Usage keyed by source filename",
    )
    totals: UsageMetrics = Field(
        default_factory=UsageMetrics,
        description="Element-wise sum over all files",
    )
    document_count: int = Field(0, ge=0, description="Number of files with recorded usage")


def excerpt(text: Optional[str], limit: int) -> str:
    """Return the first `limit` characters of text, with "..." when truncated."""
    if not text:
        return ""
    return text[:limit] + ("..." if len(text) > limit else "")
