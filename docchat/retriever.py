"""Turns a question into a block of context text."""

from .config import config
from .models import ContextBlock
from .pipeline import VectorIndex

logger = config.get_logger(__name__)

NO_CONTEXT_MARKER = "No context information is available for this question."


class Retriever:
    """Fetches the top-k passages for a query and formats them as context."""

    def __init__(
        self,
        index: VectorIndex,
        top_k: int | None = None,
        separator: str | None = None,
    ) -> None:
        self.index = index
        self.top_k = top_k if top_k is not None else config.RETRIEVAL_TOP_K
        self.separator = separator if separator is not None else config.CONTEXT_SEPARATOR

    def retrieve(self, query: str) -> ContextBlock:
        """Retrieve context for ``query``.

        Returns:
            Passage texts joined by the separator, with their source
            references. When nothing is found the text is
            ``NO_CONTEXT_MARKER`` rather than an empty string.
        """
        passages = self.index.query(query, self.top_k)
        if not passages:
            logger.info("No passages found for query")
            return ContextBlock(text=NO_CONTEXT_MARKER)

        sources = tuple(dict.fromkeys(passage.reference for passage in passages))
        logger.info("Retrieved %d passages: %s", len(passages), ", ".join(sources))
        return ContextBlock(
            text=self.separator.join(passage.text for passage in passages),
            sources=sources,
            passages=tuple(passages),
        )
