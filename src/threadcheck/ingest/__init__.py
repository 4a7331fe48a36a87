"""Thread ingest - turning posts into retrievable sentence-window chunks."""

from threadcheck.ingest.chunker import (
    SentenceWindowChunker,
    chunk_posts,
    extract_participant_names,
)

__all__ = [
    "SentenceWindowChunker",
    "chunk_posts",
    "extract_participant_names",
]
