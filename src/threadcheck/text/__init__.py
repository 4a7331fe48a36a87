"""Text heuristics: sentence splitting and the word lists behind them."""

from threadcheck.text.splitter import normalize_whitespace, split_into_sentences
from threadcheck.text.vocabulary import DEFAULT_VOCABULARY, Vocabulary

__all__ = [
    "DEFAULT_VOCABULARY",
    "Vocabulary",
    "normalize_whitespace",
    "split_into_sentences",
]
