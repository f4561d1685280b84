"""Vector index and the ingestion pipeline that fills it."""

from pathlib import Path

import numpy as np

from .config import config
from .document_processing import DocumentLoader, TextChunker
from .embeddings import EmbeddingService
from .models import Passage, ScoredPassage
from .vector_store import FaissVectorStore, SQLiteVectorStore, get_vector_store

logger = config.get_logger(__name__)

VectorStore = FaissVectorStore | SQLiteVectorStore


class VectorIndex:
    """Embeds passages and queries with one embedding service over one store.

    Using the same service for both sides keeps stored and query vectors in
    the same embedding space; the store also records the model name and
    refuses a different one.
    """

    def __init__(self, embedding_service: EmbeddingService, store: VectorStore) -> None:
        self.embedding_service = embedding_service
        self.store = store

    @property
    def embedding_model(self) -> str:
        return self.embedding_service.model

    def __len__(self) -> int:
        return self.store.count()

    def _embed_passages(self, passages: list[Passage]) -> list[np.ndarray]:
        self.store.check_embedding_model(self.embedding_model)
        return self.embedding_service.get_embeddings_batch(
            [passage.text for passage in passages]
        )

    def insert(self, passages: list[Passage]) -> int:
        """Embed and store passages.

        Returns:
            Number of passages inserted.

        Raises:
            EmbeddingServiceError: If the embedding call fails.
        """
        passages = list(passages)
        if not passages:
            return 0
        embeddings = self._embed_passages(passages)
        return len(self.store.add_passages(passages, embeddings))

    def replace_source(self, source: str, passages: list[Passage]) -> int:
        """Replace every stored passage of ``source`` with ``passages``.

        Embeddings are computed before anything is removed, so a failing
        embedding call leaves the previous entries in place.

        Returns:
            Number of passages inserted.
        """
        passages = list(passages)
        embeddings = self._embed_passages(passages) if passages else []
        removed = self.store.delete_source(source)
        if removed:
            logger.info("Replacing %d existing passages of %s", removed, source)
        return len(self.store.add_passages(passages, embeddings))

    def search(self, text: str, k: int) -> list[ScoredPassage]:
        """Return the ``k`` passages closest to ``text`` with their scores.

        An empty index returns ``[]`` without calling the embedding service.

        Raises:
            EmbeddingServiceError: If embedding the query fails.
        """
        if k <= 0 or self.store.count() == 0:
            return []
        self.store.check_embedding_model(self.embedding_model)
        query_embedding = self.embedding_service.get_embedding(text)
        return self.store.search(query_embedding, top_k=k)

    def query(self, text: str, k: int) -> list[Passage]:
        """Return the ``k`` passages closest to ``text``, best first."""
        return [result.passage for result in self.search(text, k)]

    def save(self) -> None:
        self.store.save()


class IngestionPipeline:
    """Load -> Split -> Embed -> Store for one document."""

    def __init__(
        self,
        index: VectorIndex,
        chunker: TextChunker | None = None,
        loader: type[DocumentLoader] = DocumentLoader,
    ) -> None:
        self.index = index
        self.chunker = chunker or TextChunker(
            chunk_size=config.CHUNK_SIZE, overlap=config.CHUNK_OVERLAP
        )
        self.loader = loader

    def ingest(self, file_path: Path) -> int:
        """Process a document through the complete ingestion pipeline.

        Passages already stored for the same source are replaced.

        Returns:
            Number of passages stored.

        Raises:
            UnreadableDocumentError: If the document cannot be read.
            EmbeddingServiceError: If embedding the passages fails.
        """
        logger.info("Starting ingestion for document: %s", file_path)

        document = self.loader.load_document(Path(file_path))
        passages = self.chunker.chunk_document(document)
        inserted = self.index.replace_source(document.source, passages)
        self.index.save()

        logger.info("Stored %d passages from %s", inserted, document.source)
        return inserted


def build_vector_index(
    openai_api_key: str | None = None,
    vector_backend: str | None = None,
    sqlite_db_path: Path | None = None,
    vectors_dir: Path | None = None,
    faiss_index_path: Path | None = None,
) -> VectorIndex:
    """Create a VectorIndex from configuration defaults.

    Args:
        openai_api_key: OpenAI API key.
        vector_backend: Which vector store backend to use ("sqlite" | "faiss").
            Defaults to config.VECTOR_BACKEND.
        sqlite_db_path: Path for SQLite metadata. If None, uses
            config.VECTOR_STORE_DB_PATH.
        vectors_dir: Directory for numpy vector files (SQLite backend).
        faiss_index_path: Path to FAISS index file (FAISS backend).

    Returns:
        A VectorIndex whose store has been loaded from disk.
    """
    backend = (vector_backend or config.VECTOR_BACKEND).lower()
    store = get_vector_store(
        backend,
        db_path=sqlite_db_path,
        vectors_dir=vectors_dir,
        index_path=faiss_index_path,
    )
    logger.info("Using %s vector storage", store.backend)
    store.load()
    return VectorIndex(EmbeddingService(api_key=openai_api_key), store)
