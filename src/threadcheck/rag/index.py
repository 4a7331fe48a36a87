"""Per-thread evidence index: chunks, cached embeddings, BM25, participants.

Build once per thread and reuse it (read-only) across any number of summary
validations for that thread:

    index = build_evidence_index(posts, options=opts, embedder=embedder)
    for summary in candidates:
        validate_thread_summary(summary, posts, embedder, index=index)
"""

from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from threadcheck.ingest.chunker import chunk_posts
from threadcheck.models import Post, PostChunk, ValidatorOptions
from threadcheck.rag.bm25 import BM25Index
from threadcheck.text.vocabulary import DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvidenceIndex:
    """Searchable representation of one thread.

    Attributes:
        thread_id: Root post id (for caller-side caching).
        chunks: All post chunks, in post then sentence order.
        bm25: Lexical index over ``chunks`` (None when lexical retrieval is off).
        participants: Post authors.
        model_version: Embedder that produced the cached chunk vectors ("" if none).
    """

    thread_id: str
    chunks: tuple[PostChunk, ...]
    bm25: BM25Index | None = field(default=None, repr=False)
    participants: frozenset[str] = frozenset()
    model_version: str = ""

    @property
    def has_embeddings(self) -> bool:
        return bool(self.chunks) and all(c.embedding is not None for c in self.chunks)

    def has_embeddings_for(self, model_version: str) -> bool:
        """True when every chunk carries a vector from *model_version*."""
        return self.has_embeddings and self.model_version == model_version

    def with_embeddings(
        self, vectors: Sequence[Sequence[float]], model_version: str
    ) -> EvidenceIndex:
        """Return a copy whose chunks carry *vectors* (one per chunk, same order)."""
        if len(vectors) != len(self.chunks):
            raise ValueError(
                f"expected {len(self.chunks)} chunk vectors, got {len(vectors)}"
            )
        chunks = tuple(
            dataclasses.replace(chunk, embedding=tuple(vector))
            for chunk, vector in zip(self.chunks, vectors)
        )
        # BM25 is keyed by chunk position and text, both unchanged.
        return dataclasses.replace(self, chunks=chunks, model_version=model_version)

    def post_ids(self) -> set[str]:
        return {c.post_id for c in self.chunks}


def thread_id_for(posts: Sequence[Post]) -> str:
    """Root post id: the first post's parent if it is a reply, else its own id."""
    if not posts:
        return ""
    first = posts[0]
    return first.reply_to or first.id


def build_evidence_index(
    posts: Sequence[Post],
    options: ValidatorOptions | None = None,
    embedder=None,
    *,
    thread_id: str | None = None,
    vocabulary: Vocabulary = DEFAULT_VOCABULARY,
) -> EvidenceIndex:
    """Chunk *posts* and build the lexical index.

    If *embedder* is given, all chunk texts are embedded with a single
    ``embed_batch`` call and cached on the chunks. Embedder exceptions
    propagate to the caller unchanged.
    """
    options = options or ValidatorOptions()
    chunks = tuple(chunk_posts(posts, options.chunk_size, vocabulary=vocabulary))
    bm25 = BM25Index.build(list(chunks), vocabulary=vocabulary) if options.use_lexical else None

    index = EvidenceIndex(
        thread_id=thread_id if thread_id is not None else thread_id_for(posts),
        chunks=chunks,
        bm25=bm25,
        participants=frozenset(p.author for p in posts if p.author),
    )
    logger.debug(
        "built evidence index for thread %r: %d posts, %d chunks",
        index.thread_id, len(posts), len(chunks),
    )

    if embedder is not None and chunks:
        vectors = embedder.embed_batch([c.text for c in chunks])
        index = index.with_embeddings(vectors, embedder.model_version())
    return index


def find_fabricated_participants(
    names: Iterable[str], participants: Iterable[str], posts: Iterable[Post]
) -> list[str]:
    """Return *names* that match no participant and are never mentioned in a post.

    Matching is case-insensitive; a mention must be a whole word.
    """
    known = {p.lower() for p in participants}
    texts = [p.text.lower() for p in posts]
    fabricated: list[str] = []
    for name in sorted(set(names)):
        lowered = name.lower()
        if lowered in known:
            continue
        pattern = re.compile(rf"\b{re.escape(lowered)}\b")
        if any(pattern.search(t) for t in texts):
            continue
        fabricated.append(name)
    return fabricated
