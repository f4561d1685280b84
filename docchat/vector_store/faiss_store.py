"""FAISS-backed vector storage with SQLite metadata."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import faiss
import numpy as np

from docchat.config import config
from docchat.models import ScoredPassage
from docchat.vector_store.base import BaseSQLiteStore

if TYPE_CHECKING:
    from docchat.models import Passage

logger = config.get_logger(__name__)


class FaissVectorStore(BaseSQLiteStore):
    """Vector storage using FAISS for embeddings and SQLite for metadata."""

    backend = "faiss"

    def __init__(
        self,
        db_path: Path = Path("data/vector_store.db"),
        index_path: Path = Path("data/faiss/index.faiss"),
        raw_top_k_multiplier: int = 2,
    ) -> None:
        """Configure FAISS-backed vector store."""
        self.index_path = Path(index_path)
        self.index_path.parent.mkdir(exist_ok=True, parents=True)

        self.index: faiss.IndexIDMap | None = None
        self.raw_top_k_multiplier = max(1, raw_top_k_multiplier)

        super().__init__(db_path)

    @staticmethod
    def _normalize_embedding(embedding: np.ndarray) -> np.ndarray:
        """Normalize embedding for cosine similarity using inner product search.

        Returns:
            Normalized embedding vector.
        """
        vector = np.array(embedding, dtype="float32").reshape(1, -1)
        if np.linalg.norm(vector) == 0:
            return vector[0]
        faiss.normalize_L2(vector)
        return vector[0]

    def _init_index(self, dimension: int) -> None:
        """Initialize FAISS index if missing."""
        base_index = faiss.IndexFlatIP(dimension)
        self.index = faiss.IndexIDMap(base_index)
        logger.info("Initialized FAISS IndexIDMap with dimension %d", dimension)

    def add_passages(
        self,
        passages: list[Passage],
        embeddings: list[np.ndarray],
    ) -> list[int]:
        """Add passages and embeddings to FAISS index and metadata store.

        Returns:
            Row ids assigned to the passages; they double as FAISS ids.

        Raises:
            ValueError: If inputs differ in length or an embedding
                dimension mismatches the index.
        """
        if len(passages) != len(embeddings):
            msg = (
                f"Got {len(passages)} passages but {len(embeddings)} embeddings"
            )
            raise ValueError(msg)
        if not passages:
            return []

        vectors = [self._normalize_embedding(embedding) for embedding in embeddings]
        dimension = vectors[0].shape[0]
        if self.index is None:
            self._init_index(dimension)
        index = self.index
        for vector in vectors:
            if vector.shape[0] != index.d:
                msg = (
                    f"Embedding dimension {vector.shape[0]} does not match "
                    f"FAISS index dimension {index.d}"
                )
                raise ValueError(msg)

        row_ids: list[int] = []
        with self._connect() as conn:
            cursor = conn.cursor()
            self._bind_backend(cursor)
            for passage in passages:
                document_id = self._upsert_document(cursor, passage.source)
                row_ids.append(self._insert_chunk_row(cursor, document_id, passage))
            conn.commit()

        index.add_with_ids(
            np.vstack(vectors).astype("float32"),
            np.asarray(row_ids, dtype="int64"),
        )  # pyright: ignore[reportCallIssue]
        logger.info("Added %d vectors to FAISS index", len(row_ids))
        return row_ids

    def delete_source(self, source: str) -> int:
        """Remove every passage of ``source`` from metadata and the index.

        Returns:
            Number of passages removed.
        """
        deleted = self._delete_source_rows(source)
        if deleted and self.index is not None:
            ids = np.asarray([row_id for row_id, _ in deleted], dtype="int64")
            self.index.remove_ids(ids)
        return len(deleted)

    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 5,
    ) -> list[ScoredPassage]:
        """Search similar passages using FAISS index.

        FAISS gives no ordering guarantee for equal scores, so candidates are
        over-fetched and re-sorted by ``(-score, row id)``.

        Returns:
            Up to ``top_k`` scored passages, best first.
        """
        index = self.index
        if index is None:
            if not self.index_path.exists():
                logger.info("FAISS index not initialized; returning no results")
                return []
            self.load()
            index = self.index

        if index is None or index.ntotal == 0 or top_k <= 0:
            return []

        normalized_query = self._normalize_embedding(query_embedding).reshape(1, -1)
        raw_top_k = min(max(top_k, self.raw_top_k_multiplier * top_k), index.ntotal)

        # Ids whose metadata row is gone are stale; widen the search until
        # top_k live passages are found or the whole index has been scanned.
        while True:
            results = self._search_candidates(index, normalized_query, raw_top_k)
            if len(results) >= top_k or raw_top_k >= index.ntotal:
                break
            raw_top_k = min(raw_top_k * 2, index.ntotal)
        return results[:top_k]

    def _search_candidates(
        self,
        index: faiss.IndexIDMap,
        query: np.ndarray,
        raw_top_k: int,
    ) -> list[ScoredPassage]:
        """Return the live passages among the ``raw_top_k`` nearest vectors.

        Returns:
            Scored passages sorted by ``(-score, row id)``.
        """
        scores, vector_ids = index.search(query, raw_top_k)  # pyright: ignore[reportCallIssue]

        candidates = [
            (float(score), int(vector_id))
            for score, vector_id in zip(scores[0], vector_ids[0], strict=True)
            if int(vector_id) != -1  # faiss returns -1 for empty results
        ]
        candidates.sort(key=lambda item: (-item[0], item[1]))

        with self._connect() as conn:
            passages = self._fetch_passages(
                conn.cursor(), [vector_id for _, vector_id in candidates]
            )

        if len(passages) < len(candidates):
            logger.info(
                "Skipped %d stale FAISS ids without metadata",
                len(candidates) - len(passages),
            )
        return [
            ScoredPassage(passage=passages[vector_id], score=score)
            for score, vector_id in candidates
            if vector_id in passages
        ]

    def save(self) -> None:
        """Persist FAISS index to disk."""
        index = self.index
        if index is None:
            logger.warning("No FAISS index to save")
            return

        self.index_path.parent.mkdir(exist_ok=True, parents=True)
        faiss.write_index(index, str(self.index_path))
        logger.info("Saved FAISS index to %s", self.index_path)

    def load(self) -> None:
        """Load the FAISS index from disk and check it against the metadata."""
        if self.index_path.exists():
            loaded_index = faiss.read_index(str(self.index_path))
            if not isinstance(loaded_index, (faiss.IndexIDMap, faiss.IndexIDMap2)):
                logger.warning(
                    "Loaded FAISS index is %s; wrapping with IndexIDMap to enable IDs",
                    type(loaded_index).__name__,
                )
                loaded_index = faiss.IndexIDMap(loaded_index)
            self.index = loaded_index
            logger.info(
                "Loaded FAISS index from %s with %d vectors",
                self.index_path,
                loaded_index.ntotal,
            )
        else:
            logger.info(
                "FAISS index not found at %s. Start with an empty index.",
                self.index_path,
            )
            self.index = None

        rows = self._load_rows()
        ntotal = self.index.ntotal if self.index is not None else 0
        if len(rows) != ntotal:
            logger.warning(
                "Metadata holds %d passages but FAISS index holds %d vectors; "
                "re-run ingestion to rebuild",
                len(rows),
                ntotal,
            )
