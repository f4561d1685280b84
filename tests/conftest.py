"""Test configuration and fixtures for docchat tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Mock services and API responses
- Text processing fixtures
- Vector store and index fixtures
- Chat orchestration fixtures
"""

import hashlib
from collections.abc import Iterator
from unittest.mock import Mock, patch

import numpy as np
import pytest

from docchat import (
    ChatOrchestrator,
    Document,
    EmbeddingService,
    FaissVectorStore,
    Passage,
    Retriever,
    Session,
    SQLiteVectorStore,
    TextChunker,
    VectorIndex,
)


class TestConstants:
    """Centralized test constants shared across test files."""

    __test__ = False

    TEST_API_KEY = "test-key"
    TEST_OPENAI_MODEL = "text-embedding-3-small"
    MOCK_EMBEDDING_MODEL = "mock-embedding"
    DEFAULT_EMBEDDING_DIMENSION = 384

    SMALL_CHUNK_SIZE = 100
    DEFAULT_CHUNK_SIZE = 500

    SYSTEM_PROMPT = "You answer questions about the test document."


class MockEmbeddingService:
    """Mock embedding service for testing without API calls.

    Generates deterministic embeddings from a hash of the stripped, lowercased
    text, so identical passages and queries map to identical vectors.
    """

    def __init__(
        self,
        dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION,
        model: str = TestConstants.MOCK_EMBEDDING_MODEL,
    ) -> None:
        self.dimension = dimension
        self.model = model
        self.calls = 0

    def get_embedding(self, text: str) -> np.ndarray:
        """Generate deterministic mock embedding based on text hash."""
        self.calls += 1
        seed = int.from_bytes(
            hashlib.sha256(text.strip().lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return (embedding / np.linalg.norm(embedding)).astype(np.float32)

    def get_embeddings_batch(
        self,
        texts: list[str],
        batch_size: int | None = None,  # noqa: ARG002
    ) -> list[np.ndarray]:
        """Generate batch of mock embeddings."""
        return [self.get_embedding(text) for text in texts]


class FakeChatModel:
    """Stands in for ChatModelService, streaming canned chunks.

    Records every ``messages`` list it receives. ``fail_after`` raises
    ``error`` after that many chunks have been yielded.
    """

    def __init__(
        self,
        chunks: list[str] | None = None,
        error: BaseException | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.chunks = chunks if chunks is not None else ["Test ", "response"]
        self.error = error
        self.fail_after = fail_after
        self.requests: list[list[dict[str, str]]] = []

    def stream(self, messages: list[dict[str, str]]) -> Iterator[str]:
        self.requests.append(messages)
        for i, chunk in enumerate(self.chunks):
            if self.error is not None and self.fail_after == i:
                raise self.error
            yield chunk
        if self.error is not None and (
            self.fail_after is None or self.fail_after >= len(self.chunks)
        ):
            raise self.error


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response.

    Args:
        embeddings: List of embedding vectors to return.

    Returns:
        Mock object representing OpenAI embeddings API response.
    """
    mock_response = Mock()
    mock_response.data = [Mock(embedding=emb) for emb in embeddings]
    return mock_response


def create_mock_stream_events(contents: list[str | None]) -> list[Mock]:
    """Create mock streamed chat-completion events.

    Args:
        contents: Delta contents; None models a role-only or final event.

    Returns:
        Events shaped like ``ChatCompletionChunk`` objects.
    """
    return [Mock(choices=[Mock(delta=Mock(content=content))]) for content in contents]


@pytest.fixture
def openai_embeddings_api_mock():
    """Patch OpenAI embeddings.create and return the mock."""
    with patch("openai.resources.embeddings.Embeddings.create") as mock_create:
        yield mock_create


@pytest.fixture
def embedding_service_factory():
    """Factory for creating EmbeddingService instances with a test API key."""

    def _create_service(api_key=None, model=None, timeout=None):  # noqa: ANN202
        return EmbeddingService(
            api_key=api_key or TestConstants.TEST_API_KEY,
            model=model,
            timeout=timeout,
        )

    return _create_service


@pytest.fixture
def embedding_service(embedding_service_factory):
    """Default EmbeddingService with test API key for most tests."""
    return embedding_service_factory()


@pytest.fixture
def mock_embedding_service():
    """Fresh MockEmbeddingService, so call counts start at zero."""
    return MockEmbeddingService()


@pytest.fixture
def mock_embeddings():
    """Factory function to create mock embeddings for text."""
    service = MockEmbeddingService()

    def _create_mock_embedding(text: str) -> np.ndarray:
        return service.get_embedding(text)

    return _create_mock_embedding


@pytest.fixture
def text_chunker_small():
    return TextChunker(chunk_size=TestConstants.SMALL_CHUNK_SIZE)


@pytest.fixture
def three_paragraph_document():
    """A document of three equal-length paragraphs and the matching chunk size.

    Each paragraph plus its blank-line separator is exactly ``chunk_size``
    characters, so chunking yields one passage per paragraph.
    """
    paragraphs = [
        "Spring beans are managed objects created by the IoC container.",
        "Dependency injection wires collaborators into beans at runtime.",
        "Aspect oriented programming adds behaviour across many classes.",
    ]
    width = max(len(paragraph) for paragraph in paragraphs)
    paragraphs = [paragraph.ljust(width, ".") for paragraph in paragraphs]
    text = "\n\n".join(paragraphs) + "\n\n"
    return Document(text=text, source="framework.pdf"), paragraphs, width + 2


@pytest.fixture
def sample_passages():
    """Five passages from two sources, with positions per source."""
    texts = [
        "Machine learning is a subset of artificial intelligence.",
        "Neural networks are computational models inspired by the brain.",
        "Deep learning uses multiple layers to learn complex patterns.",
        "Supervised learning uses labeled training data.",
        "Unsupervised learning finds patterns in unlabeled data.",
    ]
    return [
        Passage(
            text=text,
            source=f"test_doc_{i // 3}.txt",
            position=i % 3,
            start_char=(i % 3) * 100,
            end_char=(i % 3) * 100 + len(text),
        )
        for i, text in enumerate(texts)
    ]


@pytest.fixture
def temp_vector_store(tmp_path) -> SQLiteVectorStore:
    """Create temporary SQLite vector store for testing."""
    return SQLiteVectorStore(tmp_path / "test_store.db", tmp_path / "vectors")


@pytest.fixture
def temp_faiss_store(tmp_path) -> FaissVectorStore:
    """Create temporary FAISS vector store for testing."""
    return FaissVectorStore(
        db_path=tmp_path / "faiss_store.db",
        index_path=tmp_path / "faiss" / "index.faiss",
    )


@pytest.fixture(params=["sqlite", "faiss"])
def any_vector_store(request, temp_vector_store, temp_faiss_store):
    """Each vector store backend in turn."""
    if request.param == "sqlite":
        return temp_vector_store
    return temp_faiss_store


@pytest.fixture
def vector_index(mock_embedding_service, temp_vector_store) -> VectorIndex:
    """Empty VectorIndex over a temporary SQLite store with mock embeddings."""
    return VectorIndex(mock_embedding_service, temp_vector_store)


@pytest.fixture
def populated_index(vector_index, sample_passages) -> VectorIndex:
    vector_index.insert(sample_passages)
    return vector_index


@pytest.fixture
def fake_chat_model():
    return FakeChatModel()


@pytest.fixture
def session():
    return Session.new(max_turns=10)


@pytest.fixture
def orchestrator_factory():
    """Factory for ChatOrchestrator instances over a given index and model."""

    def _create_orchestrator(
        index: VectorIndex,
        chat_model=None,
        top_k: int = 2,
    ) -> ChatOrchestrator:
        return ChatOrchestrator(
            chat_model=chat_model or FakeChatModel(),
            retriever=Retriever(index, top_k=top_k, separator="\n---\n"),
            system_prompt=TestConstants.SYSTEM_PROMPT,
        )

    return _create_orchestrator
