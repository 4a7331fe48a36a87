"""Retrieval layer - embedders, BM25, evidence index, hybrid retriever."""

from threadcheck.rag.bm25 import BM25Index, ScoredChunk, build_bm25_index, lexical_overlap
from threadcheck.rag.embedder import Embedder, HashEmbedder, LiteLLMEmbedder
from threadcheck.rag.index import EvidenceIndex, build_evidence_index
from threadcheck.rag.retriever import cosine_similarity, retrieve_evidence

__all__ = [
    "BM25Index",
    "Embedder",
    "EvidenceIndex",
    "HashEmbedder",
    "LiteLLMEmbedder",
    "ScoredChunk",
    "build_bm25_index",
    "build_evidence_index",
    "cosine_similarity",
    "lexical_overlap",
    "retrieve_evidence",
]
