"""LLM providers used for mention extraction and profile compaction."""

from kindred.llm.anthropic import AnthropicProvider
from kindred.llm.base import LLMProvider
from kindred.llm.openai import OpenAIProvider
from kindred.llm.registry import PROVIDERS, ProviderName, create_llm_provider
from kindred.llm.retry import RetryConfig, is_retryable_error, with_retry
from kindred.llm.types import CompletionResponse, Message, Role, Usage

__all__ = [
    "AnthropicProvider",
    "CompletionResponse",
    "LLMProvider",
    "Message",
    "OpenAIProvider",
    "PROVIDERS",
    "ProviderName",
    "RetryConfig",
    "Role",
    "Usage",
    "create_llm_provider",
    "is_retryable_error",
    "with_retry",
]
