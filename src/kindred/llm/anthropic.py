"""Anthropic provider on the Messages API."""

import asyncio
import logging
import time
from typing import Any

import anthropic

from kindred.llm.base import LLMProvider
from kindred.llm.retry import with_retry
from kindred.llm.types import CompletionResponse, Message, Role, Usage

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-haiku-4-5"


class AnthropicProvider(LLMProvider):
    """Calls share one process-wide concurrency limit across instances."""

    name = "anthropic"
    default_model = DEFAULT_MODEL

    _semaphore: asyncio.Semaphore | None = None
    _max_concurrent: int = 2

    def __init__(self, api_key: str | None = None, max_concurrent: int | None = None):
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        if max_concurrent is not None:
            AnthropicProvider._max_concurrent = max_concurrent
        if AnthropicProvider._semaphore is None:
            AnthropicProvider._semaphore = asyncio.Semaphore(
                AnthropicProvider._max_concurrent
            )

    def _build_request_kwargs(
        self,
        messages: list[Message],
        model: str | None,
        system: str | None,
        max_tokens: int,
        temperature: float | None,
    ) -> dict[str, Any]:
        system = system or next(
            (m.content for m in messages if m.role == Role.SYSTEM), None
        )
        kwargs: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": [m.as_dict() for m in messages if m.role != Role.SYSTEM],
            "max_tokens": max_tokens,
        }
        if system:
            kwargs["system"] = system
        if temperature is not None:
            kwargs["temperature"] = temperature
        return kwargs

    def _parse_response(self, response: anthropic.types.Message) -> CompletionResponse:
        return CompletionResponse(
            text="\n".join(b.text for b in response.content if b.type == "text"),
            model=response.model,
            usage=Usage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            ),
            stop_reason=response.stop_reason,
        )

    async def complete(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float | None = None,
    ) -> CompletionResponse:
        kwargs = self._build_request_kwargs(
            messages, model, system, max_tokens, temperature
        )
        assert self._semaphore is not None
        semaphore = self._semaphore

        async def request() -> anthropic.types.Message:
            async with semaphore:
                return await self._client.messages.create(**kwargs)

        started = time.monotonic()
        response = await with_retry(
            request, operation_name=f"Anthropic {kwargs['model']}"
        )
        result = self._parse_response(response)

        logger.debug(
            "llm_complete",
            extra={
                "provider": self.name,
                "model": kwargs["model"],
                "duration_ms": int((time.monotonic() - started) * 1000),
                "tokens_in": response.usage.input_tokens,
                "tokens_out": response.usage.output_tokens,
            },
        )
        return result
