"""Request and response shapes shared by the LLM providers."""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class Message:
    role: Role
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class Usage:
    input_tokens: int
    output_tokens: int


@dataclass
class CompletionResponse:
    """One completion, flattened to text.

    Providers that return several text blocks join them with newlines.
    """

    text: str
    model: str | None = None
    usage: Usage | None = None
    stop_reason: str | None = None
