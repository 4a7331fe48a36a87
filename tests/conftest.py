"""Shared pytest fixtures."""

from __future__ import annotations

import hashlib
import math
import os
from typing import Sequence

import pytest

# Use litellm's bundled model cost map so importing it never hits the network.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

from threadcheck.models import Post
from threadcheck.rag.embedder import Embedder


class ScriptedEmbedder(Embedder):
    """Deterministic embedder whose pairwise similarities can be pinned.

    Unscripted texts get pseudo-random unit vectors (near-orthogonal in 256
    dimensions). ``set_similar(text, like, similarity)`` makes *text* embed
    at exactly *similarity* cosine to *like*.
    """

    def __init__(self, dimensions: int = 256, version: str = "scripted-v1") -> None:
        self.dimensions = dimensions
        self.version = version
        self.calls: list[list[str]] = []
        self.fail_with: Exception | None = None
        self.drop_last = False
        self._scripted: dict[str, tuple[str, float]] = {}

    def set_similar(self, text: str, like: str, similarity: float = 1.0) -> None:
        self._scripted[text] = (like, similarity)

    def embed(self, text: str) -> list[float]:
        if text not in self._scripted:
            return _unit(_raw_vector(text, self.dimensions))
        like, similarity = self._scripted[text]
        anchor = self.embed(like)
        noise = _raw_vector(text, self.dimensions)
        dot = sum(a * n for a, n in zip(anchor, noise))
        orthogonal = _unit([n - dot * a for a, n in zip(anchor, noise)])
        rest = math.sqrt(max(0.0, 1.0 - similarity * similarity))
        return [similarity * a + rest * o for a, o in zip(anchor, orthogonal)]

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail_with is not None:
            raise self.fail_with
        vectors = [self.embed(t) for t in texts]
        return vectors[:-1] if self.drop_last else vectors

    def model_version(self) -> str:
        return self.version


def _raw_vector(text: str, dimensions: int) -> list[float]:
    encoded = text.encode("utf-8")
    vector = []
    for i in range(dimensions):
        digest = hashlib.blake2b(encoded + i.to_bytes(4, "little"), digest_size=4).digest()
        vector.append(int.from_bytes(digest, "little") / 0xFFFFFFFF * 2.0 - 1.0)
    return vector


def _unit(vector: list[float]) -> list[float]:
    norm = math.sqrt(sum(x * x for x in vector))
    return [x / norm for x in vector]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def embedder() -> ScriptedEmbedder:
    """Fresh scripted embedder per test."""
    return ScriptedEmbedder()


@pytest.fixture
def make_embedder():
    """Factory for additional scripted embedders (e.g. a second model version)."""
    return ScriptedEmbedder


@pytest.fixture
def redis_thread() -> list[Post]:
    """Three-post caching discussion; each post becomes exactly one chunk."""
    return [
        Post(id="p1", author="john", text="I think we should use Redis for caching. It's fast and reliable."),
        Post(id="p2", author="sarah", text="I'm concerned about memory usage. Redis can be memory-intensive.", reply_to="p1"),
        Post(id="p3", author="mike", text="Good point Sarah. We should monitor it closely.", reply_to="p1"),
    ]
