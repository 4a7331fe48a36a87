"""Embedding providers consumed by the validator.

The validator depends only on the three-method ``Embedder`` capability.
Two implementations ship with the package:

  - ``LiteLLMEmbedder``: any LiteLLM-supported embedding model, with
    LiteLLM's built-in retry/backoff (num_retries=3 by default).
  - ``HashEmbedder``: deterministic offline vectors from hashed word
    features. Texts sharing words score high cosine similarity; unrelated
    texts are close to orthogonal. Used by ``--offline`` runs.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Sequence

import litellm

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "openai/text-embedding-3-small"

_TOKEN_RE = re.compile(r"[a-z0-9]+")

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "ollama": None,  # Local, no key required
    "huggingface": None,
}


class Embedder(ABC):
    """Turns text into fixed-length vectors.

    Dimensionality is opaque to the validator but must be constant for every
    vector returned within one validation call.
    """

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Embed a single text."""

    @abstractmethod
    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed *texts*, returning one vector per input in the same order."""

    @abstractmethod
    def model_version(self) -> str:
        """Identifier of the embedding model (used for cache invalidation)."""


def provider_of(model: str) -> str:
    """'openai/text-embedding-3-small' -> 'openai' (bare names default to openai)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider, f"{provider.upper()}_API_KEY")
    if env_var is None:
        return
    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


class LiteLLMEmbedder(Embedder):
    """Embedder backed by ``litellm.embedding()``.

    Args:
        model: LiteLLM embedding model string (provider/model format).
        num_retries: Retries on transient errors (exponential backoff, LiteLLM-managed).
        batch_size: Max inputs per provider request; larger batches are split.
        check_api_key: Validate the provider API key before the first request.
    """

    def __init__(
        self,
        model: str = DEFAULT_EMBEDDING_MODEL,
        *,
        num_retries: int = 3,
        batch_size: int = 256,
        check_api_key: bool = True,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.model = model
        self.num_retries = num_retries
        self.batch_size = batch_size
        self._key_checked = not check_api_key

    def embed(self, text: str) -> list[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        if not self._key_checked:
            validate_api_key(self.model)
            self._key_checked = True

        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = list(texts[start : start + self.batch_size])
            response = litellm.embedding(
                model=self.model,
                input=batch,
                num_retries=self.num_retries,
            )
            vectors.extend(item["embedding"] for item in response.data)
        logger.debug("embedded %d texts with %s", len(texts), self.model)
        return vectors

    def model_version(self) -> str:
        return self.model


class HashEmbedder(Embedder):
    """Deterministic, dependency-free embedder for tests and offline runs.

    Feature hashing over lower-cased word tokens: each token adds +-1 to the
    dimension picked by a BLAKE2b digest of the token. Texts sharing words
    point in similar directions, so cosine similarity approximates word overlap.
    """

    def __init__(self, dimensions: int = 256) -> None:
        if dimensions < 1:
            raise ValueError("dimensions must be >= 1")
        self.dimensions = dimensions

    def embed(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for token in _TOKEN_RE.findall(text.lower()):
            digest = int.from_bytes(
                hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest(), "little"
            )
            sign = 1.0 if digest & 1 else -1.0
            vector[(digest >> 1) % self.dimensions] += sign
        return vector

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        return [self.embed(t) for t in texts]

    def model_version(self) -> str:
        return f"hash-embedder-{self.dimensions}d"
