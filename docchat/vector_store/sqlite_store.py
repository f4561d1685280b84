"""SQLite-based vector storage with numpy file backend."""

from __future__ import annotations

from pathlib import Path

import numpy as np

from docchat.config import config
from docchat.models import Passage, ScoredPassage
from docchat.vector_store.base import BaseSQLiteStore

logger = config.get_logger(__name__)


class SQLiteVectorStore(BaseSQLiteStore):
    """Vector storage using SQLite for metadata and numpy files for embeddings."""

    backend = "sqlite"

    def __init__(
        self,
        db_path: Path = Path("data/vector_store.db"),
        vectors_dir: Path = Path("data/vectors"),
    ) -> None:
        """Initialize the SQLiteVectorStore with database and vector directory paths.

        Args:
            db_path: Path to the SQLite database file.
            vectors_dir: Directory to store numpy vector files.
        """
        self.vectors_dir = Path(vectors_dir)
        self.vectors_dir.mkdir(exist_ok=True, parents=True)

        self.row_ids: list[int] = []
        self.embeddings: np.ndarray | None = None

        super().__init__(db_path)

    def add_passages(
        self,
        passages: list[Passage],
        embeddings: list[np.ndarray],
    ) -> list[int]:
        """Add passages with their embeddings to the store.

        Returns:
            Row ids assigned to the passages, in input order.

        Raises:
            ValueError: If passages and embeddings differ in length.
        """
        if len(passages) != len(embeddings):
            msg = (
                f"Got {len(passages)} passages but {len(embeddings)} embeddings"
            )
            raise ValueError(msg)
        if not passages:
            return []

        row_ids: list[int] = []
        with self._connect() as conn:
            cursor = conn.cursor()
            self._bind_backend(cursor)

            for passage, embedding in zip(passages, embeddings, strict=True):
                document_id = self._upsert_document(cursor, passage.source)
                row_id = self._insert_chunk_row(cursor, document_id, passage)

                vector_filename = f"chunk{row_id:08d}.npy"
                np.save(self.vectors_dir / vector_filename, np.asarray(embedding))
                cursor.execute(
                    "UPDATE chunks SET vector_file = ? WHERE id = ?",
                    (vector_filename, row_id),
                )
                row_ids.append(row_id)

            conn.commit()

        self._rebuild_embeddings_matrix()

        logger.info("Added %d passages to SQLite vector store", len(row_ids))
        return row_ids

    def delete_source(self, source: str) -> int:
        """Remove every passage of ``source`` and its vector files.

        Returns:
            Number of passages removed.
        """
        deleted = self._delete_source_rows(source)
        for _row_id, vector_file in deleted:
            if vector_file:
                (self.vectors_dir / vector_file).unlink(missing_ok=True)
        if deleted:
            self._rebuild_embeddings_matrix()
        return len(deleted)

    def _rebuild_embeddings_matrix(self) -> None:
        """Rebuild the embeddings matrix from individual vector files."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, vector_file FROM chunks
                WHERE vector_file IS NOT NULL
                ORDER BY id
                """
            )
            rows = cursor.fetchall()

        row_ids: list[int] = []
        embeddings_list = []
        for row_id, vector_file in rows:
            vector_path = self.vectors_dir / vector_file
            if vector_path.exists():
                embeddings_list.append(np.load(vector_path))
                row_ids.append(int(row_id))
            else:
                logger.warning("Vector file not found: %s", vector_path)

        self.row_ids = row_ids
        self.embeddings = np.vstack(embeddings_list) if embeddings_list else None

        logger.info("Rebuilt embeddings matrix with %d vectors", len(embeddings_list))

    @staticmethod
    def cosine_similarity(
        query_embedding: np.ndarray,
        embeddings: np.ndarray,
    ) -> np.ndarray:
        """Calculate cosine similarity between query and document embeddings.

        Zero vectors score 0 against everything.

        Returns:
            np.ndarray: Array of cosine similarity scores
                    between the query and each document embedding.
        """
        query = np.asarray(query_embedding, dtype="float64")
        docs = np.asarray(embeddings, dtype="float64")

        query_norm = np.linalg.norm(query)
        doc_norms = np.linalg.norm(docs, axis=1)
        denominators = doc_norms * query_norm
        dots = docs @ query
        return np.divide(
            dots,
            denominators,
            out=np.zeros_like(dots),
            where=denominators != 0,
        )

    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 5,
    ) -> list[ScoredPassage]:
        """Search for similar passages based on query embedding.

        Ranked by descending cosine similarity; equal scores keep insertion
        order.

        Returns:
            Up to ``top_k`` scored passages, best first.
        """
        if self.embeddings is None:
            self._rebuild_embeddings_matrix()

        if self.embeddings is None or top_k <= 0:
            return []

        similarities = self.cosine_similarity(query_embedding, self.embeddings)
        ids = np.asarray(self.row_ids)
        order = np.lexsort((ids, -similarities))[:top_k]
        top_ids = [int(ids[idx]) for idx in order]

        with self._connect() as conn:
            passages = self._fetch_passages(conn.cursor(), top_ids)

        results = []
        for idx, row_id in zip(order, top_ids, strict=True):
            passage = passages.get(row_id)
            if passage is None:
                continue
            score = float(similarities[idx])
            logger.debug(
                "Retrieved passage %s with similarity %.4f", passage.reference, score
            )
            results.append(ScoredPassage(passage=passage, score=score))

        return results

    def save(self) -> None:  # noqa: PLR6301
        """Save operation - data is already persisted in SQLite and files."""
        logger.info("Data already persisted in SQLite database and vector files")

    def load(self) -> None:
        """Load the embeddings matrix for every stored passage."""
        rows = self._load_rows()
        self._rebuild_embeddings_matrix()
        logger.info("Loaded %d passages from SQLite vector store", len(rows))
