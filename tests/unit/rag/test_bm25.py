"""Tests for the BM25 lexical index."""

from __future__ import annotations

import pytest

from threadcheck.models import PostChunk
from threadcheck.rag.bm25 import BM25Index, build_bm25_index, lexical_overlap, tokenize


def _chunk(text: str, post_id: str = "p1") -> PostChunk:
    return PostChunk(post_id=post_id, author="a", text=text, start_index=0, end_index=len(text))


@pytest.fixture
def index() -> BM25Index:
    return BM25Index.build(
        [
            _chunk("Redis caching keeps responses fast."),
            _chunk("Memory usage of Redis worries the team."),
            _chunk("Deploy the frontend on Friday."),
        ]
    )


# ------------------------------------------------------------------
# Tokenizer / overlap
# ------------------------------------------------------------------


def test_tokenize_drops_stopwords_and_short_tokens():
    assert tokenize("The cache is at 99% in Redis!") == ["cache", "redis"]


def test_tokenize_splits_on_punctuation():
    assert tokenize("memory-intensive, right?") == ["memory", "intensive", "right"]


def test_lexical_overlap_full_and_partial():
    assert lexical_overlap("Redis memory usage", "memory usage of Redis is high") == 1.0
    assert lexical_overlap("Redis memory usage", "Redis only") == pytest.approx(1 / 3)


def test_lexical_overlap_empty_sides():
    assert lexical_overlap("", "anything here") == 0.0
    assert lexical_overlap("Redis memory", "") == 0.0


# ------------------------------------------------------------------
# Build
# ------------------------------------------------------------------


def test_build_statistics(index):
    assert index.doc_frequency["redis"] == 2
    assert index.term_frequency["redis"] == {0: 1, 1: 1}
    assert index.doc_lengths == [5, 5, 3]
    assert index.avg_doc_length == pytest.approx(13 / 3)


def test_idf_is_never_negative():
    idx = BM25Index.build([_chunk("redis everywhere"), _chunk("redis again")])
    assert idx.idf("redis") > 0.0
    assert idx.idf("unknown") == 0.0


def test_build_bm25_index_alias():
    idx = build_bm25_index([_chunk("alpha beta gamma")], k1=1.2, b=0.5)
    assert (idx.k1, idx.b) == (1.2, 0.5)


# ------------------------------------------------------------------
# Search
# ------------------------------------------------------------------


def test_search_ranks_best_match_first(index):
    hits = index.search("Redis memory usage", top_k=3)
    assert hits[0].chunk_index == 1
    assert {h.chunk_index for h in hits} == {0, 1}
    assert hits[0].score > hits[1].score


def test_search_respects_top_k(index):
    assert len(index.search("Redis memory usage", top_k=1)) == 1
    assert index.search("Redis", top_k=0) == []


def test_search_without_matches(index):
    assert index.search("kubernetes helm chart", top_k=5) == []


def test_search_ties_keep_chunk_order():
    idx = BM25Index.build([_chunk("cache warmup"), _chunk("other words"), _chunk("cache warmup")])
    hits = idx.search("cache warmup", top_k=5)
    assert [h.chunk_index for h in hits] == [0, 2]
    assert hits[0].score == pytest.approx(hits[1].score)


def test_search_on_empty_index():
    assert BM25Index.build([]).search("anything", top_k=3) == []
