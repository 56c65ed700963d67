"""Interface the people pipeline uses to reach a chat model."""

from abc import ABC, abstractmethod

from kindred.llm.types import CompletionResponse, Message


class LLMProvider(ABC):
    """A chat model behind one vendor SDK.

    Implementations retry transient API errors themselves. Deadlines belong
    to the caller, which wraps ``complete`` in ``asyncio.wait_for``.
    """

    name: str
    default_model: str

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float | None = None,
    ) -> CompletionResponse:
        """Reply to ``messages``.

        ``system`` takes precedence over a system message in the list, and a
        ``temperature`` of None leaves the API default in place.
        """
