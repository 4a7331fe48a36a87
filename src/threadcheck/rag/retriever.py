"""Evidence retrieval: dense cosine ranking plus BM25 candidate expansion.

Dense channel:   every chunk ranked by cosine similarity to the sentence vector.
Lexical channel: BM25 hits for the sentence text (when enabled).

Both candidate lists (each up to 2 * top_k) are merged, deduplicated and
re-sorted by cosine similarity; the first top_k become evidence. Lexical hits
only widen the candidate pool, so the dense top_k is never displaced.
"""

from __future__ import annotations

import math
from typing import Sequence

from threadcheck.models import Evidence, ValidatorOptions
from threadcheck.rag.index import EvidenceIndex


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between *a* and *b*; 0.0 if either is a zero vector.

    Raises:
        ValueError: If the vectors have different dimensions.
    """
    if len(a) != len(b):
        raise ValueError(f"dimension mismatch: {len(a)} != {len(b)}")
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def rank_by_similarity(
    query_vector: Sequence[float], index: EvidenceIndex
) -> list[tuple[int, float]]:
    """Return ``(chunk_index, similarity)`` for every chunk, best first (stable)."""
    scored = []
    for i, chunk in enumerate(index.chunks):
        if chunk.embedding is None:
            raise ValueError(f"chunk {i} of post '{chunk.post_id}' has no embedding")
        scored.append((i, cosine_similarity(query_vector, chunk.embedding)))
    scored.sort(key=lambda item: -item[1])
    return scored


def retrieve_evidence(
    sentence: str,
    query_vector: Sequence[float],
    index: EvidenceIndex,
    options: ValidatorOptions,
) -> list[Evidence]:
    """Return up to ``options.top_k`` evidence items for *sentence*, ranked 1..k."""
    if not index.chunks:
        return []

    dense = rank_by_similarity(query_vector, index)
    similarity = dict(dense)
    pool = options.top_k * 2

    candidates = [i for i, _ in dense[:pool]]
    if options.use_lexical and index.bm25 is not None:
        candidates += [hit.chunk_index for hit in index.bm25.search(sentence, pool)]
    order = _merge_candidates(candidates, dense)

    evidence: list[Evidence] = []
    for rank, chunk_index in enumerate(order[: options.top_k], start=1):
        chunk = index.chunks[chunk_index]
        evidence.append(
            Evidence(
                post_id=chunk.post_id,
                chunk_text=chunk.text,
                author=chunk.author,
                similarity=similarity[chunk_index],
                rank=rank,
            )
        )
    return evidence


def _merge_candidates(
    candidates: list[int], dense: list[tuple[int, float]]
) -> list[int]:
    """Deduplicate chunk indices and sort by cosine; ties keep dense order, then chunk order."""
    dense_rank = {idx: r for r, (idx, _) in enumerate(dense, start=1)}
    similarity = dict(dense)
    unique = dict.fromkeys(candidates)
    return sorted(unique, key=lambda idx: (-similarity[idx], dense_rank[idx], idx))
