"""Unit tests for document loading and chunking."""

from pathlib import Path

import pypdf
import pytest

from docchat import Document, DocumentLoader, TextChunker, UnreadableDocumentError


def _write_blank_pdf(path: Path, pages: int = 1) -> Path:
    writer = pypdf.PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    with path.open("wb") as file:
        writer.write(file)
    return path


def test_load_txt_document(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("Machine Learning basics.\n\nSecond paragraph.", encoding="utf-8")

    document = DocumentLoader.load_document(path)

    assert isinstance(document, Document)
    assert document.source == "notes.txt"
    assert document.text == "Machine Learning basics.\n\nSecond paragraph."


def test_load_nonexistent_file():
    with pytest.raises(UnreadableDocumentError) as exc_info:
        DocumentLoader.load_document(Path("nonexistent_file.txt"))

    assert exc_info.value.path == Path("nonexistent_file.txt")


def test_load_nonexistent_pdf():
    with pytest.raises(UnreadableDocumentError):
        DocumentLoader.load_document(Path("missing.pdf"))


def test_unsupported_file_type():
    with pytest.raises(UnreadableDocumentError, match="Unsupported file type"):
        DocumentLoader.load_document(Path("test.invalid"))


def test_corrupt_pdf_is_unreadable(tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf at all")

    with pytest.raises(UnreadableDocumentError, match="broken.pdf"):
        DocumentLoader.load_document(path)


def test_pdf_without_text_is_empty_document(tmp_path):
    path = _write_blank_pdf(tmp_path / "blank.pdf", pages=2)

    document = DocumentLoader.load_document(path)

    assert document.text == ""
    assert document.source == "blank.pdf"


@pytest.mark.parametrize(
    ("chunk_size", "overlap"),
    [(0, 0), (-5, 0), (10, 10), (10, -1)],
)
def test_invalid_chunker_settings(chunk_size, overlap):
    with pytest.raises(ValueError):
        TextChunker(chunk_size=chunk_size, overlap=overlap)


def test_empty_document_yields_nothing():
    chunker = TextChunker()

    assert list(chunker.iter_passages(Document(text="", source="empty"))) == []


def test_iter_passages_is_lazy():
    chunker = TextChunker(chunk_size=10)
    passages = chunker.iter_passages(Document(text="x" * 1000, source="big"))

    first = next(passages)

    assert first.text == "x" * 10
    assert first.position == 0


@pytest.mark.parametrize("chunk_size", [1, 7, 50, 100, 5000])
def test_passages_reproduce_text(chunk_size):
    text = (
        "Spring Boot makes it easy to create stand-alone applications.  "
        "It favours convention over configuration.\n\nTrailing words "
    ) * 5
    chunker = TextChunker(chunk_size=chunk_size)

    passages = chunker.chunk_document(Document(text=text, source="doc"))

    assert "".join(p.text for p in passages) == text
    assert [p.position for p in passages] == list(range(len(passages)))
    assert all(len(p.text) <= chunk_size for p in passages)


def test_passage_offsets_are_contiguous():
    text = "word " * 60
    passages = TextChunker(chunk_size=40).chunk_document(Document(text, "doc"))

    assert passages[0].start_char == 0
    for previous, current in zip(passages, passages[1:], strict=False):
        assert previous.end_char == current.start_char
    assert passages[-1].end_char == len(text)
    for passage in passages:
        assert text[passage.start_char : passage.end_char] == passage.text


def test_trailing_remainder_is_own_passage():
    text = "a" * 25
    passages = TextChunker(chunk_size=10).chunk_document(Document(text, "doc"))

    assert [p.text for p in passages] == ["a" * 10, "a" * 10, "a" * 5]


def test_chunker_avoids_splitting_words():
    text = "alpha beta gamma delta epsilon"
    passages = TextChunker(chunk_size=14).chunk_document(Document(text, "doc"))

    assert passages[0].text == "alpha beta "
    assert "".join(p.text for p in passages) == text


def test_chunker_breaks_at_newlines():
    text = "first line\nsecond line\nthird line\n"
    passages = TextChunker(chunk_size=16).chunk_document(Document(text, "doc"))

    assert passages[0].text == "first line\n"
    assert passages[1].text == "second line\n"
    assert "".join(p.text for p in passages) == text


def test_chunk_overlap():
    chunker = TextChunker(chunk_size=50, overlap=10)
    text = "A" * 100

    passages = chunker.chunk_document(Document(text, "test"))

    first_end = passages[0].end_char
    second_start = passages[1].start_char
    assert first_end - second_start == 10


def test_large_overlap_still_terminates():
    text = "ab " * 40
    passages = TextChunker(chunk_size=10, overlap=9).chunk_document(
        Document(text, "doc")
    )

    assert passages[-1].end_char == len(text)
    starts = [p.start_char for p in passages]
    assert starts == sorted(set(starts))


def test_passage_metadata_completeness():
    passages = TextChunker(chunk_size=100).chunk_document(
        Document("Test text for metadata checking. " * 10, "metadata_test")
    )

    required_fields = ["source", "position", "start_char", "end_char", "length"]
    for passage in passages:
        for field in required_fields:
            assert passage.metadata[field] is not None
        assert passage.metadata["source"] == "metadata_test"


def test_three_paragraph_document_gives_three_passages(three_paragraph_document):
    document, paragraphs, chunk_size = three_paragraph_document

    passages = TextChunker(chunk_size=chunk_size).chunk_document(document)

    assert len(passages) == 3
    assert [p.text.strip() for p in passages] == paragraphs
