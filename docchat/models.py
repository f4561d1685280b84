"""Data models for the docchat application."""

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Document:
    """Raw text read from a source file."""

    text: str
    source: str


@dataclass(frozen=True)
class Passage:
    """A contiguous slice of a document's text."""

    text: str
    source: str
    position: int
    start_char: int = 0
    end_char: int = 0

    @property
    def reference(self) -> str:
        """Short citation used when listing where context came from."""
        return f"{self.source} #{self.position}"

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "position": self.position,
            "start_char": self.start_char,
            "end_char": self.end_char,
            "length": len(self.text),
        }


@dataclass(frozen=True)
class ScoredPassage:
    """A passage returned from a similarity search, with its cosine score."""

    passage: Passage
    score: float


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    """Represents a single message in the conversation."""

    role: Role
    text: str
    order: int = 0
    timestamp: str = field(
        default_factory=lambda: datetime.datetime.now(tz=datetime.UTC).isoformat()
    )

    def to_message(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.text}


@dataclass(frozen=True)
class ContextBlock:
    """Retrieved context formatted for a prompt."""

    text: str
    sources: tuple[str, ...] = ()
    passages: tuple[Passage, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.passages


@dataclass(frozen=True)
class PromptRequest:
    """Everything sent to the chat model for one question.

    Built per question by the orchestrator and transformed by prompt
    augmenters with ``dataclasses.replace``.
    """

    system_prompt: str
    question: str
    user_text: str
    history: tuple[ConversationTurn, ...] = ()
    context: ContextBlock | None = None

    @classmethod
    def for_question(cls, question: str, system_prompt: str) -> "PromptRequest":
        return cls(system_prompt=system_prompt, question=question, user_text=question)

    def to_messages(self) -> list[dict[str, str]]:
        """Render the request as an OpenAI chat ``messages`` list.

        Returns:
            System message, prior turns in order, then the user message.
        """
        messages: list[dict[str, str]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.extend(turn.to_message() for turn in self.history)
        messages.append({"role": Role.USER.value, "content": self.user_text})
        return messages
