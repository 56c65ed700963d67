"""OpenAI provider on the Responses API."""

import logging
import time
from typing import Any

import openai

from kindred.llm.base import LLMProvider
from kindred.llm.retry import with_retry
from kindred.llm.types import CompletionResponse, Message, Role, Usage

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIProvider(LLMProvider):
    name = "openai"
    default_model = DEFAULT_MODEL

    def __init__(self, api_key: str | None = None):
        self._client = openai.AsyncOpenAI(api_key=api_key)

    def _build_request_kwargs(
        self,
        messages: list[Message],
        model: str | None,
        system: str | None,
        max_tokens: int,
        temperature: float | None,
    ) -> dict[str, Any]:
        # The Responses API takes the system prompt as ``instructions``
        instructions = system
        input_items: list[dict[str, str]] = []
        for msg in messages:
            if msg.role == Role.SYSTEM:
                instructions = instructions or msg.content
            else:
                input_items.append(msg.as_dict())

        kwargs: dict[str, Any] = {
            "model": model or self.default_model,
            "input": input_items,
            "max_output_tokens": max_tokens,
        }
        if instructions:
            kwargs["instructions"] = instructions
        if temperature is not None:
            kwargs["temperature"] = temperature
        return kwargs

    def _parse_response(self, response: Any) -> CompletionResponse:
        texts = [
            part.text
            for item in response.output
            if item.type == "message"
            for part in item.content
            if part.type == "output_text"
        ]
        usage = None
        if response.usage:
            usage = Usage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            )
        return CompletionResponse(
            text="\n".join(texts),
            model=response.model,
            usage=usage,
            stop_reason=getattr(response, "status", None),
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

        started = time.monotonic()
        response = await with_retry(
            lambda: self._client.responses.create(**kwargs),
            operation_name=f"OpenAI {kwargs['model']}",
        )
        result = self._parse_response(response)

        logger.debug(
            "llm_complete",
            extra={
                "provider": self.name,
                "model": kwargs["model"],
                "duration_ms": int((time.monotonic() - started) * 1000),
                "tokens_in": result.usage.input_tokens if result.usage else None,
                "tokens_out": result.usage.output_tokens if result.usage else None,
            },
        )
        return result
