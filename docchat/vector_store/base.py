"""Shared helpers for SQLite-backed vector stores."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from docchat.config import config
from docchat.models import Passage

logger = config.get_logger(__name__)

PASSAGE_COLUMNS = """
    c.id,
    c.content,
    c.position,
    c.start_char,
    c.end_char,
    c.vector_file,
    d.source
"""


class BaseSQLiteStore:
    """Schema management and passage metadata shared by the vector stores.

    Row ids of the ``chunks`` table are assigned in insertion order and
    double as the tie-breaker when two passages score the same.
    """

    backend = "base"

    def __init__(self, db_path: Path) -> None:
        """Initialize metadata store and ensure schema exists."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(exist_ok=True, parents=True)
        self._create_tables()
        self.check_backend()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _create_tables(self) -> None:
        """Create metadata tables if they don't exist."""
        with self._connect() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS store_info (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source TEXT NOT NULL UNIQUE,
                    processed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS chunks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    document_id INTEGER NOT NULL,
                    position INTEGER NOT NULL,
                    content TEXT NOT NULL,
                    start_char INTEGER,
                    end_char INTEGER,
                    length INTEGER,
                    vector_file TEXT,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (document_id) REFERENCES documents (id)
                )
            """)

            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_chunks_document ON chunks(document_id)",
            )
            conn.commit()

    def get_embedding_model(self) -> str | None:
        """Return the embedding model the stored vectors were produced with."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM store_info WHERE key = 'embedding_model'"
            ).fetchone()
        return row[0] if row else None

    def check_embedding_model(self, model: str) -> None:
        """Bind the store to one embedding model.

        The first caller records its model. Later callers must use the same
        one, since vectors from different models are not comparable.

        Raises:
            ValueError: If the store already holds vectors from another model.
        """
        stored = self.get_embedding_model()
        if stored is None:
            with self._connect() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO store_info (key, value) "
                    "VALUES ('embedding_model', ?)",
                    (model,),
                )
                conn.commit()
            return
        if stored != model:
            msg = (
                f"Vector store at {self.db_path} was built with embedding model "
                f"'{stored}', cannot use it with '{model}'"
            )
            raise ValueError(msg)

    def get_backend(self) -> str | None:
        """Return the backend that filled this store, if any passages were added."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM store_info WHERE key = 'backend'"
            ).fetchone()
        return row[0] if row else None

    def check_backend(self) -> None:
        """Refuse a metadata database filled through another backend.

        Both backends share the passage tables but keep their vectors apart,
        so the other backend would see the passages without any vectors.

        Raises:
            ValueError: If another backend already stored passages here.
        """
        stored = self.get_backend()
        if stored is not None and stored != self.backend:
            msg = (
                f"Vector store at {self.db_path} was filled with the '{stored}' "
                f"backend, cannot open it with '{self.backend}'"
            )
            raise ValueError(msg)

    def _bind_backend(self, cursor: sqlite3.Cursor) -> None:
        cursor.execute(
            "INSERT OR IGNORE INTO store_info (key, value) VALUES ('backend', ?)",
            (self.backend,),
        )

    def count(self) -> int:
        """Return the number of stored passages."""
        with self._connect() as conn:
            (total,) = conn.execute("SELECT COUNT(*) FROM chunks").fetchone()
        return int(total)

    @staticmethod
    def _upsert_document(cursor: sqlite3.Cursor, source: str) -> int:
        """Insert document metadata if missing and return its id.

        Raises:
            RuntimeError: If the document id cannot be retrieved.

        Returns:
            Document id from the metadata store.
        """
        cursor.execute("INSERT OR IGNORE INTO documents (source) VALUES (?)", (source,))
        cursor.execute("SELECT id FROM documents WHERE source = ?", (source,))
        row = cursor.fetchone()
        if row is None:
            msg = f"Failed to upsert document for source '{source}'"
            raise RuntimeError(msg)
        return int(row[0])

    @staticmethod
    def _insert_chunk_row(
        cursor: sqlite3.Cursor,
        document_id: int,
        passage: Passage,
    ) -> int:
        """Persist a passage row.

        Raises:
            RuntimeError: If the row cannot be inserted.

        Returns:
            Row id of the new passage.
        """
        cursor.execute(
            """
            INSERT INTO chunks (
                document_id, position, content, start_char, end_char, length
            )
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                document_id,
                passage.position,
                passage.text,
                passage.start_char,
                passage.end_char,
                len(passage.text),
            ),
        )
        row_id = cursor.lastrowid
        if row_id is None:
            msg = "Failed to insert chunk row"
            raise RuntimeError(msg)
        return int(row_id)

    @staticmethod
    def _build_passage_from_row(row: tuple) -> Passage:
        """Create a Passage from a metadata row.

        Returns:
            Passage rebuilt from the stored columns.
        """
        _row_id, content, position, start_char, end_char, _vector_file, source = row
        return Passage(
            text=content,
            source=source,
            position=int(position),
            start_char=int(start_char or 0),
            end_char=int(end_char or 0),
        )

    def _fetch_passages(
        self,
        cursor: sqlite3.Cursor,
        row_ids: list[int],
    ) -> dict[int, Passage]:
        """Fetch passages for the given row ids.

        Returns:
            Mapping from row id to Passage; missing ids are absent.
        """
        if not row_ids:
            return {}
        placeholders = ", ".join("?" for _ in row_ids)
        cursor.execute(
            f"""
            SELECT {PASSAGE_COLUMNS}
            FROM chunks c
            JOIN documents d ON c.document_id = d.id
            WHERE c.id IN ({placeholders})
            """,  # noqa: S608
            [int(row_id) for row_id in row_ids],
        )
        return {int(row[0]): self._build_passage_from_row(row) for row in cursor}

    def _delete_source_rows(self, source: str) -> list[tuple[int, str | None]]:
        """Delete every passage of ``source`` from the metadata store.

        Returns:
            ``(row_id, vector_file)`` pairs of the deleted rows.
        """
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT c.id, c.vector_file
                FROM chunks c
                JOIN documents d ON c.document_id = d.id
                WHERE d.source = ?
                ORDER BY c.id
                """,
                (source,),
            )
            deleted = [(int(row[0]), row[1]) for row in cursor.fetchall()]
            cursor.execute(
                "DELETE FROM chunks WHERE document_id IN "
                "(SELECT id FROM documents WHERE source = ?)",
                (source,),
            )
            cursor.execute("DELETE FROM documents WHERE source = ?", (source,))
            conn.commit()

        if deleted:
            logger.info("Removed %d passages of %s", len(deleted), source)
        return deleted

    def _load_rows(self) -> list[tuple]:
        """Read every passage row in insertion order.

        Raises:
            sqlite3.Error: If metadata read fails.

        Returns:
            Raw rows selected with ``PASSAGE_COLUMNS``.
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(f"""
                    SELECT {PASSAGE_COLUMNS}
                    FROM chunks c
                    JOIN documents d ON c.document_id = d.id
                    ORDER BY c.id
                """)  # noqa: S608
                return cursor.fetchall()
        except sqlite3.Error:
            logger.exception("Error loading metadata from %s", self.db_path)
            raise
