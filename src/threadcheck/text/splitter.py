"""Sentence splitter with abbreviation and URL protection.

Algorithm (protect → split → restore):
  1. Normalize newlines and collapse whitespace runs to a single space.
  2. Append a per-call sentinel after every protected period (abbreviations)
     and after every URL, so no protected "." is directly followed by space.
  3. Split at ``[.!?]`` + whitespace + uppercase letter.
  4. Remove the sentinel from every piece; trim; drop pieces under 4 chars.

An abbreviation that really does end a sentence ("... shares in Acme Inc. Then
we ...") stays protected, so the two sentences come back joined. Known limitation.
"""

from __future__ import annotations

import re
import uuid

from threadcheck.text.vocabulary import DEFAULT_VOCABULARY, Vocabulary

_MIN_SENTENCE_CHARS = 4

_BOUNDARY_RE = re.compile(r"[.!?]\s+(?=[A-Z])")
_URL_RE = re.compile(r"https?://\S+")
_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_PUNCT = ".!?,;:)\"'"


def split_into_sentences(text: str, *, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> list[str]:
    """Split *text* into sentences.

    Args:
        text: Raw text (summary or post body).
        vocabulary: Word lists supplying the protected abbreviations.

    Returns:
        Trimmed sentences in input order; empty list for empty input.
    """
    if not text or not text.strip():
        return []

    text = normalize_whitespace(text)
    marker = f"\x00{uuid.uuid4().hex}\x00"

    protected = _protect_abbreviations(text, vocabulary.abbreviations, marker)
    protected = _protect_urls(protected, marker)

    pieces: list[str] = []
    last = 0
    for match in _BOUNDARY_RE.finditer(protected):
        pieces.append(protected[last : match.end()])
        last = match.end()
    pieces.append(protected[last:])

    sentences: list[str] = []
    for piece in pieces:
        sentence = piece.replace(marker, "").strip()
        if len(sentence) >= _MIN_SENTENCE_CHARS:
            sentences.append(sentence)
    return sentences


def normalize_whitespace(text: str) -> str:
    """Normalize newline variants to ``\\n``, collapse whitespace runs, trim ends."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _WHITESPACE_RE.sub(" ", text).strip()


# ------------------------------------------------------------------
# Protection passes
# ------------------------------------------------------------------


def _protect_abbreviations(text: str, abbreviations: tuple[str, ...], marker: str) -> str:
    if not abbreviations:
        return text
    # Longest first so "Mrs" wins over "Mr"; not preceded by a word char or "."
    alternatives = "|".join(
        re.escape(a) for a in sorted(abbreviations, key=len, reverse=True)
    )
    pattern = re.compile(rf"(?<![\w.])(?:{alternatives})\.")
    return pattern.sub(lambda m: m.group(0) + marker, text)


def _protect_urls(text: str, marker: str) -> str:
    def _mark(match: re.Match[str]) -> str:
        url = match.group(0)
        core = url.rstrip(_TRAILING_PUNCT)
        # Trailing punctuation stays outside the protected span
        return core + marker + url[len(core):]

    return _URL_RE.sub(_mark, text)
