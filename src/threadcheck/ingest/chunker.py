"""Sentence-window chunker for thread posts.

Each post is split into sentences and grouped into overlapping windows that
advance one sentence at a time. For ``window_size=2``:

    [s0, s1], [s1, s2], [s2, s3], ...

A single-sentence post yields exactly one chunk; an empty post yields none.
"""

from __future__ import annotations

import re
from typing import Iterable

from threadcheck.models import Post, PostChunk
from threadcheck.text.splitter import split_into_sentences
from threadcheck.text.vocabulary import DEFAULT_VOCABULARY, Vocabulary

DEFAULT_WINDOW_SIZE = 2

_NAME_RE = re.compile(r"\b[A-Z][a-z]+\b")


class SentenceWindowChunker:
    """Split posts into overlapping sentence windows.

    Args:
        window_size: Sentences per chunk; values <= 0 fall back to 2.
        vocabulary: Word lists forwarded to the sentence splitter.
    """

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        *,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
    ) -> None:
        self.window_size = window_size if window_size > 0 else DEFAULT_WINDOW_SIZE
        self.vocabulary = vocabulary

    def chunk(self, post: Post) -> list[PostChunk]:
        """Return the chunks for a single *post*, in sentence order."""
        sentences = split_into_sentences(post.text, vocabulary=self.vocabulary)
        if not sentences:
            return []

        if len(sentences) == 1:
            start = post.text.find(sentences[0])
            if start < 0:
                start, end = 0, len(post.text)
            else:
                end = start + len(sentences[0])
            return [self._make_chunk(post, sentences[0], start, end)]

        chunks: list[PostChunk] = []
        for i in range(len(sentences)):
            end = min(i + self.window_size, len(sentences))
            window = sentences[i:end]
            chunks.append(
                self._make_chunk(
                    post,
                    " ".join(window),
                    find_sentence_start(post.text, window[0]),
                    find_sentence_end(post.text, window[-1]),
                )
            )
            if end == len(sentences):
                break
        return chunks

    def chunk_all(self, posts: Iterable[Post]) -> list[PostChunk]:
        chunks: list[PostChunk] = []
        for post in posts:
            chunks.extend(self.chunk(post))
        return chunks

    @staticmethod
    def _make_chunk(post: Post, text: str, start: int, end: int) -> PostChunk:
        return PostChunk(
            post_id=post.id,
            author=post.author,
            text=text,
            start_index=start,
            end_index=end,
        )


def chunk_posts(
    posts: Iterable[Post],
    window_size: int = DEFAULT_WINDOW_SIZE,
    *,
    vocabulary: Vocabulary = DEFAULT_VOCABULARY,
) -> list[PostChunk]:
    """Chunk every post in *posts* into overlapping sentence windows."""
    return SentenceWindowChunker(window_size, vocabulary=vocabulary).chunk_all(posts)


# ------------------------------------------------------------------
# Offset heuristics
# ------------------------------------------------------------------


def find_sentence_start(text: str, sentence: str) -> int:
    """Index of the first occurrence of the sentence's first 1-2 words, else 0."""
    words = sentence.split()
    if not words:
        return 0
    index = text.find(" ".join(words[:2]))
    return index if index >= 0 else 0


def find_sentence_end(text: str, sentence: str) -> int:
    """End index of the last occurrence of the sentence's last 1-2 words, else len(text)."""
    words = sentence.split()
    if not words:
        return len(text)
    needle = " ".join(words[-2:])
    index = text.rfind(needle)
    return index + len(needle) if index >= 0 else len(text)


# ------------------------------------------------------------------
# Participant names
# ------------------------------------------------------------------


def extract_participant_names(
    text: str, *, vocabulary: Vocabulary = DEFAULT_VOCABULARY
) -> set[str]:
    """Return capitalized words in *text* that are plausibly people's names.

    Heuristic only: any ``[A-Z][a-z]+`` token that is neither a common word nor
    a sentence starter is kept, so sentence-initial verbs ("Proposed") are false
    positives and lowercase handles ("@sarah") are missed.
    """
    return {
        match
        for match in _NAME_RE.findall(text)
        if not vocabulary.is_common_word(match) and match not in vocabulary.sentence_starters
    }
