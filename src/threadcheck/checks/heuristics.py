"""Consistency checks between a summary sentence and its retrieved evidence.

Every check is a pure function returning True when the sentence is consistent
with the evidence. A check whose signal is absent from the sentence (no
entities, no numbers, no decision verb, no attribution) passes.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Sequence

from threadcheck.models import Evidence
from threadcheck.text.vocabulary import DEFAULT_VOCABULARY, Vocabulary

NUMBER_TOLERANCE = 0.01  # 1 % relative

_NUMBER_RE = re.compile(r"\b\d+(?:,\d{3})*(?:\.\d+)?")
_CONTRACTED_NEGATION_RE = re.compile(r"\b\w+n't\b")
_STRIP_CHARS = ".,!?;:\"'()[]{}"


# ------------------------------------------------------------------
# Entities
# ------------------------------------------------------------------


def extract_entities(sentence: str, *, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> list[str]:
    """Capitalized words that look like named entities.

    The first word is skipped when it is an ordinary sentence starter ("The",
    "We"), but a name in first position ("John proposed ...") is kept.
    """
    entities: list[str] = []
    for i, raw in enumerate(sentence.split()):
        word = raw.strip(_STRIP_CHARS)
        if len(word) < 2 or not word[0].isupper():
            continue
        if vocabulary.is_common_word(word):
            continue
        if i == 0 and word in vocabulary.sentence_starters:
            continue
        entities.append(word)
    return entities


def check_entity_match(
    sentence: str,
    evidence: Sequence[Evidence],
    *,
    vocabulary: Vocabulary = DEFAULT_VOCABULARY,
) -> bool:
    """Every entity in *sentence* appears in some evidence text or equals some author."""
    entities = extract_entities(sentence, vocabulary=vocabulary)
    if not entities:
        return True
    return all(_mentioned(entity, evidence) for entity in entities)


def _mentioned(entity: str, evidence: Sequence[Evidence]) -> bool:
    lowered = entity.lower()
    return any(
        lowered in ev.chunk_text.lower() or lowered == ev.author.lower()
        for ev in evidence
    )


# ------------------------------------------------------------------
# Numbers
# ------------------------------------------------------------------


def extract_numbers(text: str) -> list[float]:
    """Parse integers, decimals, thousands-separated values and percentages."""
    numbers: list[float] = []
    for match in _NUMBER_RE.findall(text):
        try:
            numbers.append(float(match.replace(",", "")))
        except ValueError:
            continue
    return numbers


def contains_number(text: str, target: float, tolerance: float = NUMBER_TOLERANCE) -> bool:
    return any(abs(n - target) <= abs(target) * tolerance for n in extract_numbers(text))


def check_number_match(
    sentence: str, evidence: Sequence[Evidence], tolerance: float = NUMBER_TOLERANCE
) -> bool:
    """Every number in *sentence* matches a number in some evidence within *tolerance*."""
    numbers = extract_numbers(sentence)
    if not numbers:
        return True
    return all(
        any(contains_number(ev.chunk_text, n, tolerance) for ev in evidence)
        for n in numbers
    )


# ------------------------------------------------------------------
# Negation
# ------------------------------------------------------------------


@lru_cache(maxsize=8)
def _negation_pattern(words: frozenset[str]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(w) for w in sorted(words))
    return re.compile(rf"\b(?:{alternatives})\b")


def has_negation(text: str, *, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> bool:
    lowered = text.lower().replace("’", "'")
    if _CONTRACTED_NEGATION_RE.search(lowered):
        return True
    if not vocabulary.negation_words:
        return False
    return _negation_pattern(vocabulary.negation_words).search(lowered) is not None


def check_negation_consistency(
    sentence: str,
    evidence_text: str,
    *,
    vocabulary: Vocabulary = DEFAULT_VOCABULARY,
) -> bool:
    """False only when both sides use the same decision verb and exactly one is negated.

    "We decided to approve" vs "Team did not approve" -> False.
    "We discussed the feature" vs "Team did not approve" -> True (no shared verb).
    """
    shared = vocabulary.decision_families(sentence) & vocabulary.decision_families(evidence_text)
    if not shared:
        return True
    return has_negation(sentence, vocabulary=vocabulary) == has_negation(
        evidence_text, vocabulary=vocabulary
    )


# ------------------------------------------------------------------
# Attribution
# ------------------------------------------------------------------


@lru_cache(maxsize=8)
def _attribution_patterns(verbs: tuple[str, ...]) -> tuple[re.Pattern[str], ...]:
    verb_alt = "|".join(re.escape(v) for v in verbs)
    return (
        re.compile(rf"\b(\w+)\s+(?:{verb_alt})\b"),
        re.compile(r"\b(?:[Aa]ccording to|[Aa]s per)\s+(\w+)"),
        re.compile(r"\b(\w+)'s\s+(?:suggestion|proposal|idea|view|opinion)\b"),
    )


def extract_attribution(
    sentence: str, *, vocabulary: Vocabulary = DEFAULT_VOCABULARY
) -> str | None:
    """Return the speaker named in *sentence* ("John said ..." -> "John"), if any."""
    for pattern in _attribution_patterns(vocabulary.attribution_verbs):
        for match in pattern.finditer(sentence):
            person = match.group(1)
            if (
                person[0].isupper()
                and not vocabulary.is_common_word(person)
                and person not in vocabulary.sentence_starters
            ):
                return person
    return None


def contains_quote_from(text: str, person: str) -> bool:
    """True for chat-style quotes: "john: ...", "@john said", "john says"."""
    name = re.escape(person.lower())
    return re.search(rf"(?:^|\s|@){name}\s*:|@?\b{name}\s+(?:said|says)\b", text.lower()) is not None


def check_attribution(
    sentence: str,
    evidence: Sequence[Evidence],
    *,
    vocabulary: Vocabulary = DEFAULT_VOCABULARY,
) -> bool:
    """An attributed speaker must be the author of (or be quoted in) some evidence."""
    person = extract_attribution(sentence, vocabulary=vocabulary)
    if person is None:
        return True
    lowered = person.lower()
    return any(
        ev.author.lower() == lowered or contains_quote_from(ev.chunk_text, person)
        for ev in evidence
    )
