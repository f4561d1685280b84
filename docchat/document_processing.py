"""Document loading and text chunking functionality."""

from collections.abc import Iterator
from pathlib import Path

import pypdf
from pypdf.errors import PyPdfError

from .config import config
from .errors import UnreadableDocumentError
from .models import Document, Passage

logger = config.get_logger(__name__)

PAGE_SEPARATOR = "\n\n"


class DocumentLoader:
    """Handles loading of PDF and TXT documents."""

    @staticmethod
    def load_pdf(file_path: Path) -> Document:
        """Load text content from a PDF file.

        Pages are joined with a blank line so paragraphs on either side of
        a page break stay apart.

        Returns:
            The extracted document.

        Raises:
            UnreadableDocumentError: If the file is missing or not a valid PDF.
        """
        try:
            with file_path.open("rb") as file:
                pdf_reader = pypdf.PdfReader(file)
                pages = [page.extract_text() or "" for page in pdf_reader.pages]
        except (OSError, PyPdfError, ValueError) as exc:
            logger.exception("Error loading PDF %s", file_path)
            raise UnreadableDocumentError(file_path, str(exc)) from exc

        text = PAGE_SEPARATOR.join(page.strip() for page in pages if page.strip())
        logger.info("Loaded %d pages from %s", len(pages), file_path)
        return Document(text=text, source=file_path.name)

    @staticmethod
    def load_txt(file_path: Path) -> Document:
        """Load text content from a TXT file.

        Returns:
            The document text, read as UTF-8.

        Raises:
            UnreadableDocumentError: If the file is missing or not valid UTF-8.
        """
        try:
            with file_path.open(encoding="utf-8") as file:
                text = file.read()
        except (OSError, UnicodeDecodeError) as exc:
            logger.exception("Error loading TXT %s", file_path)
            raise UnreadableDocumentError(file_path, str(exc)) from exc

        logger.info("Successfully loaded TXT file %s", file_path)
        return Document(text=text, source=file_path.name)

    @classmethod
    def load_document(cls, file_path: Path) -> Document:
        """Load document based on file extension.

        Args:
            file_path: Path to the document file.

        Returns:
            The loaded document.

        Raises:
            UnreadableDocumentError: If the file type is not supported or the
                file cannot be read.
        """
        file_path = Path(file_path)
        file_ext = file_path.suffix.lower()
        if file_ext == ".pdf":
            return cls.load_pdf(file_path)
        if file_ext == ".txt":
            return cls.load_txt(file_path)
        raise UnreadableDocumentError(file_path, f"Unsupported file type: {file_ext}")


class TextChunker:
    """Splits text into fixed-size windows with optional overlap."""

    def __init__(self, chunk_size: int = 500, overlap: int = 0) -> None:
        """Initialize the TextChunker with chunk size and overlap.

        Args:
            chunk_size: Maximum number of characters per passage.
            overlap: Number of characters shared by consecutive passages.

        Raises:
            ValueError: If chunk_size is not positive or overlap is not in
                ``[0, chunk_size)``.
        """
        if chunk_size <= 0:
            msg = f"chunk_size must be positive, got {chunk_size}"
            raise ValueError(msg)
        if not 0 <= overlap < chunk_size:
            msg = f"overlap must be in [0, {chunk_size}), got {overlap}"
            raise ValueError(msg)
        self.chunk_size = chunk_size
        self.overlap = overlap

    def _window_end(self, text: str, start: int) -> int:
        end = min(start + self.chunk_size, len(text))
        if end == len(text) or text[end - 1].isspace():
            return end

        # Avoid splitting a word, unless that would leave a tiny passage.
        boundary = end - 1
        while boundary > start and not text[boundary].isspace():
            boundary -= 1
        if boundary > start + self.chunk_size // 2:
            adjusted = boundary + 1
            if adjusted - start > self.overlap:
                return adjusted
        return end

    def iter_passages(self, document: Document) -> Iterator[Passage]:
        """Lazily split a document into passages in document order.

        Without overlap the passages tile the text exactly: joining them
        reproduces ``document.text``.

        Yields:
            Passage objects with consecutive positions starting at 0.
        """
        text = document.text
        start = 0
        position = 0

        while start < len(text):
            end = self._window_end(text, start)
            yield Passage(
                text=text[start:end],
                source=document.source,
                position=position,
                start_char=start,
                end_char=end,
            )
            position += 1

            if end >= len(text):
                break
            start = end - self.overlap

    def chunk_document(self, document: Document) -> list[Passage]:
        """Split a document into a list of passages.

        Returns:
            All passages of the document.
        """
        passages = list(self.iter_passages(document))
        logger.info("Text split into %d passages", len(passages))
        return passages
