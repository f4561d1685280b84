"""docchat - retrieval-augmented chat over a document from the terminal."""

from .advisors import MemoryAugmenter, PromptAugmenter, RetrievalAugmenter
from .console import ChatConsole
from .conversation import AnswerStream, CallState, ChatOrchestrator
from .document_processing import DocumentLoader, TextChunker
from .embeddings import EmbeddingService
from .errors import (
    DocChatError,
    EmbeddingServiceError,
    ModelServiceError,
    UnreadableDocumentError,
)
from .llm import ChatModelService
from .memory import ConversationMemory, Session
from .models import (
    ContextBlock,
    ConversationTurn,
    Document,
    Passage,
    PromptRequest,
    Role,
    ScoredPassage,
)
from .pipeline import IngestionPipeline, VectorIndex, build_vector_index
from .retriever import NO_CONTEXT_MARKER, Retriever
from .vector_store import FaissVectorStore, SQLiteVectorStore, get_vector_store

__all__ = [
    "NO_CONTEXT_MARKER",
    "AnswerStream",
    "CallState",
    "ChatConsole",
    "ChatModelService",
    "ChatOrchestrator",
    "ContextBlock",
    "ConversationMemory",
    "ConversationTurn",
    "DocChatError",
    "Document",
    "DocumentLoader",
    "EmbeddingService",
    "EmbeddingServiceError",
    "FaissVectorStore",
    "IngestionPipeline",
    "MemoryAugmenter",
    "ModelServiceError",
    "Passage",
    "PromptAugmenter",
    "PromptRequest",
    "Retriever",
    "RetrievalAugmenter",
    "Role",
    "SQLiteVectorStore",
    "ScoredPassage",
    "Session",
    "TextChunker",
    "UnreadableDocumentError",
    "VectorIndex",
    "build_vector_index",
    "get_vector_store",
]
