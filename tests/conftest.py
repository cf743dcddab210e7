"""
Shared fixtures: an in-memory completion service and sample replies.
"""

import json

import pytest

from invoice_extract.client import InvoiceExtractionClient
from invoice_extract.schemas import UsageMetrics
from invoice_extract.service import CompletionService, ServiceSuccess


class FakeCompletionService(CompletionService):
    """
    Completion service returning queued replies and recording every call.

    `replies` items may be ServiceSuccess/ServiceFailure objects or plain
    strings, which are wrapped in a ServiceSuccess with default usage.
    """

    def __init__(self, replies=None, usage=None):
        self.replies = list(replies or [])
        self.usage = usage or UsageMetrics(prompt_tokens=100, completion_tokens=50, total_tokens=150)
        self.calls: list[tuple[str, str]] = []

    @property
    def provider_name(self) -> str:
        return "Fake"

    def complete(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        reply = self.replies.pop(0)
        if isinstance(reply, str):
            return ServiceSuccess(content=reply, usage=self.usage)
        return reply


@pytest.fixture
def sample_invoice_json() -> str:
    """A well-formed model reply."""
    return json.dumps({
        "invoiceNumber": "100",
        "issueDate": "2024-01-15",
        "currency": "usd",
        "vendor": {"name": "Acme Corp", "vatNumber": "GB123456789"},
        "customer": {"name": "Globex Ltd"},
        "lineItems": [
            {"description": "Widget", "quantity": 2, "unitPrice": 20, "amount": 40},
            {"description": "Shipping", "quantity": 1, "unitPrice": 10, "amount": 10},
        ],
        "subtotal": 50,
        "totalAmount": 50,
    })


@pytest.fixture
def make_client():
    """Build an extraction client around a FakeCompletionService."""
    def _make(replies=None, max_input_chars=100_000):
        service = FakeCompletionService(replies)
        return InvoiceExtractionClient(service, max_input_chars=max_input_chars), service
    return _make


