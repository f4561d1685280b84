"""Sliding-window conversation memory and the session that owns it."""

import uuid
from collections import deque
from dataclasses import dataclass, field

from .config import config
from .models import ConversationTurn, Role

logger = config.get_logger(__name__)


class ConversationMemory:
    """Keeps the most recent ``max_turns`` turns; the oldest is dropped first."""

    def __init__(self, max_turns: int | None = None) -> None:
        """Create an empty window.

        Raises:
            ValueError: If max_turns is not positive.
        """
        max_turns = max_turns if max_turns is not None else config.MEMORY_MAX_TURNS
        if max_turns <= 0:
            msg = f"max_turns must be positive, got {max_turns}"
            raise ValueError(msg)
        self.max_turns = max_turns
        self._turns: deque[ConversationTurn] = deque(maxlen=max_turns)
        self._appended = 0

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def next_order(self) -> int:
        return self._appended

    def append(self, turn: ConversationTurn) -> None:
        if len(self._turns) == self.max_turns:
            logger.debug("Memory full, evicting turn %d", self._turns[0].order)
        self._turns.append(turn)
        self._appended += 1

    def snapshot(self) -> tuple[ConversationTurn, ...]:
        """Return the current window, oldest first.

        The tuple is a copy; later appends do not show through it.
        """
        return tuple(self._turns)

    def clear(self) -> None:
        self._turns.clear()
        logger.info("Conversation memory cleared.")


@dataclass
class Session:
    """One interactive conversation and the memory it owns."""

    memory: ConversationMemory
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def new(cls, max_turns: int | None = None) -> "Session":
        return cls(memory=ConversationMemory(max_turns))

    def record_exchange(self, question: str, answer: str) -> None:
        """Append the user's question and the assistant's answer."""
        order = self.memory.next_order
        self.memory.append(ConversationTurn(role=Role.USER, text=question, order=order))
        self.memory.append(
            ConversationTurn(role=Role.ASSISTANT, text=answer, order=order + 1)
        )
