"""Tests for the sentence splitter and vocabulary."""

from __future__ import annotations

import dataclasses

import pytest

from threadcheck.text.splitter import normalize_whitespace, split_into_sentences
from threadcheck.text.vocabulary import DEFAULT_VOCABULARY, Vocabulary


def _non_ws(text: str) -> str:
    return "".join(text.split())


# ------------------------------------------------------------------
# Basic splitting
# ------------------------------------------------------------------


def test_splits_on_terminal_punctuation():
    text = "Is it done? Yes it is! Great work."
    assert split_into_sentences(text) == ["Is it done?", "Yes it is!", "Great work."]


@pytest.mark.parametrize("text", ["", "   ", "\n\t  \n"])
def test_empty_or_blank_input_yields_nothing(text):
    assert split_into_sentences(text) == []


def test_newlines_are_whitespace():
    text = "First line here.\nSecond line here.\r\nThird line here."
    assert split_into_sentences(text) == [
        "First line here.",
        "Second line here.",
        "Third line here.",
    ]


def test_no_split_before_lowercase():
    text = "Version 2.0 is out. it works fine."
    assert split_into_sentences(text) == ["Version 2.0 is out. it works fine."]


def test_short_fragments_dropped():
    assert split_into_sentences("Ok. This is fine.") == ["This is fine."]


def test_text_without_terminal_punctuation_is_one_sentence():
    assert split_into_sentences("we should ship it") == ["we should ship it"]


# ------------------------------------------------------------------
# Protection
# ------------------------------------------------------------------


def test_title_abbreviation_not_a_boundary():
    text = "Dr. Smith arrived late. He sat down."
    assert split_into_sentences(text) == ["Dr. Smith arrived late.", "He sat down."]


def test_longest_abbreviation_wins():
    text = "Mrs. Jones approved it. Mr. Lee agreed."
    assert split_into_sentences(text) == ["Mrs. Jones approved it.", "Mr. Lee agreed."]


def test_latin_abbreviation_not_a_boundary():
    text = "We use tools, e.g. Redis for this. It works."
    assert split_into_sentences(text) == ["We use tools, e.g. Redis for this.", "It works."]


def test_url_periods_are_protected():
    text = "Docs live at https://example.com/a.B/Page.Html today. Read them."
    assert split_into_sentences(text) == [
        "Docs live at https://example.com/a.B/Page.Html today.",
        "Read them.",
    ]


def test_url_trailing_period_still_ends_sentence():
    text = "See https://example.com/docs. Then continue reading."
    assert split_into_sentences(text) == [
        "See https://example.com/docs.",
        "Then continue reading.",
    ]


def test_sentinel_never_leaks():
    text = "Dr. Who visited https://x.org/A. Then Prof. Oak left."
    for sentence in split_into_sentences(text):
        assert "\x00" not in sentence


def test_custom_vocabulary_without_abbreviations():
    vocab = dataclasses.replace(DEFAULT_VOCABULARY, abbreviations=())
    assert split_into_sentences("Prof. Xavier teaches.", vocabulary=vocab) == [
        "Prof.",
        "Xavier teaches.",
    ]
    assert split_into_sentences("Prof. Xavier teaches.") == ["Prof. Xavier teaches."]


# ------------------------------------------------------------------
# Round-trip
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    "text",
    [
        "We met on Monday. The team agreed to ship.  Sarah will review it!",
        "Dr. Smith said hello. Visit https://example.com/x.y for details. Done now.",
        "No punctuation at all here",
        "Multi\nline\n\ntext here. And another sentence here?",
    ],
)
def test_round_trip_preserves_non_whitespace(text):
    assert _non_ws("".join(split_into_sentences(text))) == _non_ws(text)


# ------------------------------------------------------------------
# Helpers and vocabulary
# ------------------------------------------------------------------


def test_normalize_whitespace():
    assert normalize_whitespace("  a\r\nb\t\tc \r d  ") == "a b c d"


def test_vocabulary_is_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_VOCABULARY.stopwords = frozenset()  # type: ignore[misc]


def test_decision_families_whole_words():
    vocab = Vocabulary()
    assert vocab.decision_families("The team approved and later DECIDED.") == {"approve", "decide"}
    assert vocab.decision_families("We discussed the feature.") == set()
    # "agreeable" is not an inflection of "agree"
    assert vocab.decision_families("An agreeable outcome.") == set()


def test_is_common_word():
    assert DEFAULT_VOCABULARY.is_common_word("Redis")
    assert not DEFAULT_VOCABULARY.is_common_word("Sarah")


def test_vocabulary_construction_and_replace():
    vocab = Vocabulary()
    assert vocab.decision_verbs["approve"][0] == "approve"
    assert hash(vocab) == hash(DEFAULT_VOCABULARY)

    custom = dataclasses.replace(
        DEFAULT_VOCABULARY, decision_verbs={"ship": ("ship", "shipped")}
    )
    assert custom.decision_families("We shipped it.") == {"ship"}
    assert DEFAULT_VOCABULARY.decision_families("We shipped it.") == set()
    assert custom.stopwords == DEFAULT_VOCABULARY.stopwords
