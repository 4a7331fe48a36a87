"""In-memory BM25 lexical index over post chunks.

score(d, q) = Σ_t IDF(t) · tf·(k1 + 1) / (tf + k1·(1 − b + b·|d| / avgdl))
IDF(t)      = ln(1 + (N − df + 0.5) / (df + 0.5))      (never negative)

Everything except the query is precomputed at build time. The index is
read-only after ``build()`` and safe to share between validations.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import dataclass, field

from threadcheck.models import PostChunk
from threadcheck.text.vocabulary import DEFAULT_VOCABULARY, Vocabulary

DEFAULT_K1 = 1.5
DEFAULT_B = 0.75

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def tokenize(text: str, *, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> list[str]:
    """Lowercase, split on non-alphanumerics, drop stopwords and tokens of <= 2 chars."""
    tokens = _NON_ALNUM_RE.sub(" ", text.lower()).split()
    return [t for t in tokens if len(t) > 2 and t not in vocabulary.stopwords]


def lexical_overlap(
    query: str, document: str, *, vocabulary: Vocabulary = DEFAULT_VOCABULARY
) -> float:
    """Fraction of query tokens that also occur in *document* (0.0-1.0)."""
    query_tokens = tokenize(query, vocabulary=vocabulary)
    doc_tokens = set(tokenize(document, vocabulary=vocabulary))
    if not query_tokens or not doc_tokens:
        return 0.0
    matches = sum(1 for t in query_tokens if t in doc_tokens)
    return matches / len(query_tokens)


@dataclass(frozen=True)
class ScoredChunk:
    """A BM25 hit: the chunk, its position in the index, and its score."""

    chunk_index: int
    chunk: PostChunk
    score: float


@dataclass
class BM25Index:
    """BM25 index built once per thread.

    Attributes:
        chunks: Indexed chunks; positions are the document ids.
        term_frequency: term -> {chunk index: count}.
        doc_frequency: term -> number of chunks containing the term.
        doc_lengths: Token count per chunk.
        avg_doc_length: Mean token count over all chunks.
        k1: Term-frequency saturation.
        b: Length normalization strength.
    """

    chunks: list[PostChunk]
    term_frequency: dict[str, dict[int, int]] = field(default_factory=dict)
    doc_frequency: dict[str, int] = field(default_factory=dict)
    doc_lengths: list[int] = field(default_factory=list)
    avg_doc_length: float = 0.0
    k1: float = DEFAULT_K1
    b: float = DEFAULT_B
    vocabulary: Vocabulary = field(default=DEFAULT_VOCABULARY, repr=False)

    @classmethod
    def build(
        cls,
        chunks: list[PostChunk],
        *,
        k1: float = DEFAULT_K1,
        b: float = DEFAULT_B,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
    ) -> BM25Index:
        index = cls(chunks=list(chunks), k1=k1, b=b, vocabulary=vocabulary)
        for i, chunk in enumerate(index.chunks):
            counts = Counter(tokenize(chunk.text, vocabulary=vocabulary))
            index.doc_lengths.append(sum(counts.values()))
            for term, tf in counts.items():
                index.term_frequency.setdefault(term, {})[i] = tf
                index.doc_frequency[term] = index.doc_frequency.get(term, 0) + 1
        if index.chunks:
            index.avg_doc_length = sum(index.doc_lengths) / len(index.chunks)
        return index

    def search(self, query: str, top_k: int) -> list[ScoredChunk]:
        """Return up to *top_k* chunks with a positive score, best first.

        Ties keep original chunk order.
        """
        if top_k < 1:
            return []
        scores: dict[int, float] = {}
        for term in set(tokenize(query, vocabulary=self.vocabulary)):
            postings = self.term_frequency.get(term)
            if not postings:
                continue
            idf = self.idf(term)
            for doc, tf in postings.items():
                scores[doc] = scores.get(doc, 0.0) + self._term_score(tf, doc, idf)

        ranked = sorted(
            (doc for doc, score in scores.items() if score > 0.0),
            key=lambda doc: (-scores[doc], doc),
        )
        return [
            ScoredChunk(chunk_index=doc, chunk=self.chunks[doc], score=scores[doc])
            for doc in ranked[:top_k]
        ]

    def idf(self, term: str) -> float:
        df = self.doc_frequency.get(term, 0)
        if df == 0:
            return 0.0
        n = len(self.chunks)
        return math.log(1.0 + (n - df + 0.5) / (df + 0.5))

    def _term_score(self, tf: int, doc: int, idf: float) -> float:
        avg = self.avg_doc_length or 1.0
        norm = 1.0 - self.b + self.b * (self.doc_lengths[doc] / avg)
        return idf * (tf * (self.k1 + 1.0)) / (tf + self.k1 * norm)


def build_bm25_index(chunks: list[PostChunk], **kwargs) -> BM25Index:
    """Functional alias for ``BM25Index.build``."""
    return BM25Index.build(chunks, **kwargs)
