"""Tests for the per-thread evidence index."""

from __future__ import annotations

import pytest

from threadcheck.models import Post, ValidatorOptions
from threadcheck.rag.index import (
    build_evidence_index,
    find_fabricated_participants,
    thread_id_for,
)


def test_build_without_embedder(redis_thread):
    index = build_evidence_index(redis_thread)
    assert index.thread_id == "p1"
    assert len(index.chunks) == 3
    assert index.participants == frozenset({"john", "sarah", "mike"})
    assert index.bm25 is not None
    assert not index.has_embeddings
    assert index.model_version == ""


def test_build_without_lexical(redis_thread):
    index = build_evidence_index(redis_thread, ValidatorOptions(use_lexical=False))
    assert index.bm25 is None


def test_build_with_embedder_uses_one_batch(redis_thread, embedder):
    index = build_evidence_index(redis_thread, embedder=embedder)
    assert len(embedder.calls) == 1
    assert embedder.calls[0] == [c.text for c in index.chunks]
    assert index.has_embeddings
    assert index.has_embeddings_for("scripted-v1")
    assert not index.has_embeddings_for("other-model")


def test_chunk_size_option_is_applied():
    posts = [Post(id="p1", author="a", text="One is here. Two is here. Three is here.")]
    assert len(build_evidence_index(posts, ValidatorOptions(chunk_size=2)).chunks) == 2
    assert len(build_evidence_index(posts, ValidatorOptions(chunk_size=1)).chunks) == 3


def test_explicit_thread_id(redis_thread):
    assert build_evidence_index(redis_thread, thread_id="custom").thread_id == "custom"


def test_empty_thread():
    index = build_evidence_index([])
    assert index.chunks == ()
    assert index.thread_id == ""
    assert not index.has_embeddings


def test_with_embeddings_returns_new_index(redis_thread):
    index = build_evidence_index(redis_thread)
    vectors = [[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]]
    embedded = index.with_embeddings(vectors, "m1")
    assert embedded.chunks[2].embedding == (1.0, 1.0)
    assert embedded.model_version == "m1"
    assert embedded.bm25 is index.bm25
    assert index.chunks[0].embedding is None


def test_with_embeddings_count_mismatch(redis_thread):
    index = build_evidence_index(redis_thread)
    with pytest.raises(ValueError, match="expected 3 chunk vectors"):
        index.with_embeddings([[1.0]], "m1")


def test_post_ids(redis_thread):
    assert build_evidence_index(redis_thread).post_ids() == {"p1", "p2", "p3"}


# ------------------------------------------------------------------
# thread_id_for
# ------------------------------------------------------------------


def test_thread_id_prefers_parent_of_first_post():
    posts = [Post(id="r2", author="a", text="Reply text here.", reply_to="root")]
    assert thread_id_for(posts) == "root"


def test_thread_id_falls_back_to_first_post_id():
    assert thread_id_for([Post(id="p7", author="a", text="Root text.")]) == "p7"


# ------------------------------------------------------------------
# find_fabricated_participants
# ------------------------------------------------------------------


def test_fabricated_participants(redis_thread):
    names = {"John", "Sarah", "Alice", "Bob"}
    assert find_fabricated_participants(names, {"john", "sarah", "mike"}, redis_thread) == [
        "Alice",
        "Bob",
    ]


def test_mentioned_name_is_not_fabricated():
    posts = [Post(id="p1", author="john", text="Let's loop in Priya on this.")]
    assert find_fabricated_participants({"Priya"}, {"john"}, posts) == []


def test_mention_must_be_whole_word():
    posts = [Post(id="p1", author="john", text="The Annapolis office agreed.")]
    assert find_fabricated_participants({"Anna"}, {"john"}, posts) == ["Anna"]
