"""Provider lookup by the names used in ``[models.*]`` config."""

from typing import Literal

from pydantic import SecretStr

from kindred.llm.anthropic import AnthropicProvider
from kindred.llm.base import LLMProvider
from kindred.llm.openai import OpenAIProvider

ProviderName = Literal["anthropic", "openai"]

PROVIDERS: dict[str, type[LLMProvider]] = {
    AnthropicProvider.name: AnthropicProvider,
    OpenAIProvider.name: OpenAIProvider,
}


def create_llm_provider(
    provider: ProviderName, api_key: str | SecretStr | None = None
) -> LLMProvider:
    """Instantiate the provider configured for a model alias.

    Raises:
        ValueError: If ``provider`` is not a known provider name.
    """
    try:
        provider_cls = PROVIDERS[provider]
    except KeyError:
        raise ValueError(f"Unknown LLM provider: {provider}") from None

    if isinstance(api_key, SecretStr):
        api_key = api_key.get_secret_value()
    return provider_cls(api_key=api_key)
