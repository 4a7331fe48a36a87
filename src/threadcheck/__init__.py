"""threadcheck - verify that a thread summary is grounded in the thread's posts."""

from threadcheck.models import (
    Evidence,
    Post,
    PostChunk,
    SentenceValidation,
    ValidationFlags,
    ValidationResult,
    ValidationStatus,
    ValidationThresholds,
    ValidatorOptions,
)
from threadcheck.rag.embedder import Embedder, HashEmbedder, LiteLLMEmbedder
from threadcheck.rag.index import EvidenceIndex, build_evidence_index
from threadcheck.validator import (
    EmbeddingError,
    EvidenceIntegrityError,
    ThreadcheckError,
    ValidationCancelled,
    validate_thread_summary,
)

__all__ = [
    "Embedder",
    "EmbeddingError",
    "Evidence",
    "EvidenceIndex",
    "EvidenceIntegrityError",
    "HashEmbedder",
    "LiteLLMEmbedder",
    "Post",
    "PostChunk",
    "SentenceValidation",
    "ThreadcheckError",
    "ValidationCancelled",
    "ValidationFlags",
    "ValidationResult",
    "ValidationStatus",
    "ValidationThresholds",
    "ValidatorOptions",
    "build_evidence_index",
    "validate_thread_summary",
]
