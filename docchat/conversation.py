"""Chat orchestration: prompt assembly, streaming and memory updates."""

from collections.abc import Iterator, Sequence
from enum import Enum

from .advisors import (
    QUESTION_ANSWER_TEMPLATE,
    MemoryAugmenter,
    PromptAugmenter,
    RetrievalAugmenter,
    apply_augmenters,
)
from .config import config
from .llm import ChatModelService
from .memory import Session
from .models import PromptRequest
from .retriever import Retriever

logger = config.get_logger(__name__)


class CallState(Enum):
    IDLE = "idle"
    AWAITING_FIRST_CHUNK = "awaiting_first_chunk"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


class AnswerStream:
    """One ``ask`` call: iterate to receive the answer chunk by chunk.

    Nothing happens until iteration starts. The exchange is written to the
    session memory only once the model stream completes; a failure or an
    abort (``close()``, Ctrl-C) at any point leaves memory as it was.
    Chunks already handed to the caller are not taken back.
    """

    def __init__(
        self,
        orchestrator: "ChatOrchestrator",
        question: str,
        session: Session,
    ) -> None:
        self.orchestrator = orchestrator
        self.question = question
        self.session = session
        self.state = CallState.IDLE
        self.request: PromptRequest | None = None
        self.error: BaseException | None = None
        self._chunks: list[str] = []
        self._iterator: Iterator[str] | None = None

    @property
    def answer(self) -> str:
        """Text received so far."""
        return "".join(self._chunks)

    def __iter__(self) -> Iterator[str]:
        if self._iterator is None:
            self._iterator = self._run()
        return self._iterator

    def close(self) -> None:
        """Abort the call; a no-op once it has finished."""
        if self._iterator is not None:
            self._iterator.close()
        # A generator closed before its first step never runs its handler.
        if self.state in {CallState.IDLE, CallState.AWAITING_FIRST_CHUNK}:
            self.state = CallState.FAILED

    def _run(self) -> Iterator[str]:
        self.state = CallState.AWAITING_FIRST_CHUNK
        try:
            self.request = self.orchestrator.build_request(self.question, self.session)
            for chunk in self.orchestrator.chat_model.stream(self.request.to_messages()):
                self.state = CallState.STREAMING
                self._chunks.append(chunk)
                yield chunk
        except BaseException as exc:
            self.state = CallState.FAILED
            self.error = exc
            if self._chunks:
                logger.warning(
                    "Answer interrupted after %d chunks; not recorded in memory",
                    len(self._chunks),
                )
            raise

        self.session.record_exchange(self.question, self.answer)
        self.state = CallState.COMPLETED
        logger.info("Answer completed in %d chunks", len(self._chunks))


class ChatOrchestrator:
    """Builds prompts from memory and retrieved context and streams answers."""

    def __init__(
        self,
        chat_model: ChatModelService,
        retriever: Retriever,
        system_prompt: str | None = None,
        template: str = QUESTION_ANSWER_TEMPLATE,
    ) -> None:
        self.chat_model = chat_model
        self.retriever = retriever
        self.system_prompt = (
            system_prompt if system_prompt is not None else config.SYSTEM_PROMPT
        )
        self.retrieval_augmenter = RetrievalAugmenter(retriever, template)

    def augmenters_for(self, session: Session) -> Sequence[PromptAugmenter]:
        return [MemoryAugmenter(session.memory), self.retrieval_augmenter]

    def build_request(self, question: str, session: Session) -> PromptRequest:
        """Assemble the model request for ``question`` within ``session``.

        Raises:
            EmbeddingServiceError: If retrieving context fails.
        """
        request = PromptRequest.for_question(question, self.system_prompt)
        return apply_augmenters(request, self.augmenters_for(session))

    def ask(self, question: str, session: Session) -> AnswerStream:
        """Start answering ``question``; iterate the result for text chunks."""
        logger.info("Processing question: %s", question)
        return AnswerStream(self, question, session)
