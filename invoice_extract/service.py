"""
Completion service boundary.

`CompletionService` is the interface the extraction client talks to; each
call returns a ServiceReply instead of raising, so the client only has to
discriminate between a reply with content and a failure.

`OpenAICompletionService` implements it on top of the OpenAI chat completions
API. Requests are made exactly once: the SDK's own retry loop is disabled.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Union

from openai import OpenAI

from .config import OPENAI_MODEL, OPENAI_TEMPERATURE, ErrorKind, logger
from .schemas import UsageMetrics


@dataclass(frozen=True)
class ServiceSuccess:
    """The service replied with content."""
    content: str
    usage: UsageMetrics


@dataclass(frozen=True)
class ServiceFailure:
    """
    The call failed or the reply carried no usable content.

    Attributes:
        error_detail: Message describing what went wrong
        kind: TRANSPORT_ERROR when the call itself failed, INVALID_RESPONSE
            when a reply arrived without content
        usage: Token usage, if the service reported any
    """
    error_detail: str
    kind: ErrorKind = ErrorKind.TRANSPORT_ERROR
    usage: Optional[UsageMetrics] = None


ServiceReply = Union[ServiceSuccess, ServiceFailure]


class CompletionService(ABC):
    """Interface for a chat completion backend."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider name used in logs and error messages (e.g., 'OpenAI')."""

    @abstractmethod
    def complete(self, system_prompt: str, user_prompt: str) -> ServiceReply:
        """
        Send one system + user message pair and return the reply.

        Implementations must not raise for service or network failures;
        those are returned as ServiceFailure.
        """


def usage_from_response(response: Any) -> UsageMetrics:
    """Read token counts from an OpenAI response, defaulting to zeros."""
    usage = getattr(response, "usage", None)
    if usage is None:
        return UsageMetrics()
    return UsageMetrics(
        prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
        total_tokens=getattr(usage, "total_tokens", 0) or 0,
    )


class OpenAICompletionService(CompletionService):
    """Completion service backed by the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = OPENAI_MODEL,
        temperature: float = OPENAI_TEMPERATURE,
    ) -> None:
        """
        Args:
            api_key: OpenAI API key
            model: Chat model name
            temperature: Sampling temperature
        """
        self.model = model
        self.temperature = temperature
        self._client = OpenAI(api_key=api_key, max_retries=0)

    @property
    def provider_name(self) -> str:
        return "OpenAI"

    def complete(self, system_prompt: str, user_prompt: str) -> ServiceReply:
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
            )
        except Exception as e:
            logger.error(f"Error calling {self.provider_name} API: {e}")
            return ServiceFailure(error_detail=str(e) or type(e).__name__)

        usage = usage_from_response(response)
        choices = getattr(response, "choices", None)
        content = None
        if choices:
            message = getattr(choices[0], "message", None)
            content = getattr(message, "content", None)

        if not content:
            logger.error(f"Received invalid response from {self.provider_name} API")
            return ServiceFailure(
                error_detail="Reply contained no message content",
                kind=ErrorKind.INVALID_RESPONSE,
                usage=usage,
            )

        logger.info(
            f"Received response from {self.provider_name} API "
            f"({usage.total_tokens} tokens)"
        )
        return ServiceSuccess(content=content, usage=usage)
