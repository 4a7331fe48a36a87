"""Static word lists used by the splitter, extractors and consistency checks.

All heuristics read their vocabulary from a ``Vocabulary`` instance instead of
module globals, so callers (and tests) can pass an alternate word list:

    vocab = dataclasses.replace(DEFAULT_VOCABULARY, common_words=frozenset({"Acme"}))
    split_into_sentences(text, vocabulary=vocab)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

_ABBREVIATIONS: tuple[str, ...] = (
    "Dr", "Mr", "Mrs", "Ms", "Prof", "Sr", "Jr",
    "Inc", "Ltd", "Co", "Corp",
    "e.g", "i.e", "etc", "vs", "approx",
    "Jan", "Feb", "Mar", "Apr", "Jun", "Jul", "Aug", "Sep", "Sept", "Oct", "Nov", "Dec",
)

# Capitalized words that are almost never participant names.
_COMMON_WORDS: frozenset[str] = frozenset(
    [
        "The", "This", "That", "These", "Those",
        "We", "They", "He", "She", "It",
        "My", "Your", "Our", "Their",
        "I", "You", "Me", "I'm", "I've", "I'll", "I'd",
        "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
        "January", "February", "March", "April", "May", "June", "July",
        "August", "September", "October", "November", "December",
        # Technology and product names
        "Redis", "PostgreSQL", "MySQL", "MongoDB",
        "Docker", "Kubernetes", "AWS", "Azure", "GCP",
        "Linux", "Windows", "MacOS", "Ubuntu",
        "Python", "JavaScript", "TypeScript", "Java",
        "React", "Vue", "Angular", "Node",
        "GitHub", "GitLab", "Bitbucket",
        "Slack", "Teams", "Zoom",
        "Mattermost", "Jira", "Confluence",
    ]
)

_SENTENCE_STARTERS: frozenset[str] = frozenset(
    [
        "The", "This", "That", "These", "Those", "We", "They", "It",
        "There", "Here", "When", "Where", "Why", "How", "What", "Which", "Who",
        "According", "As", "In", "On", "After", "Before", "If", "Also",
        "Both", "All", "Some", "Everyone", "Overall", "Finally",
    ]
)

_STOPWORDS: frozenset[str] = frozenset(
    [
        "the", "is", "at", "which", "on", "a", "an", "as", "are", "was",
        "were", "been", "be", "have", "has", "had", "do", "does", "did", "but",
        "if", "or", "and", "for", "to", "of", "in", "it", "by", "with",
        "from", "this", "that", "will", "would", "can", "could", "should",
        "may", "might",
    ]
)

_NEGATION_WORDS: frozenset[str] = frozenset(
    [
        "not", "no", "never", "neither", "nor", "none",
        "nothing", "nobody", "nowhere", "without", "cannot",
    ]
)

# family -> inflected forms
_DECISION_VERBS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "decide": ("decide", "decides", "decided", "deciding", "decision"),
        "approve": ("approve", "approves", "approved", "approving", "approval"),
        "reject": ("reject", "rejects", "rejected", "rejecting", "rejection"),
        "agree": ("agree", "agrees", "agreed", "agreeing", "agreement"),
        "accept": ("accept", "accepts", "accepted", "accepting"),
        "deny": ("deny", "denies", "denied", "denying"),
        "confirm": ("confirm", "confirms", "confirmed", "confirming"),
        "choose": ("choose", "chooses", "chose", "chosen", "choosing"),
    }
)

_ATTRIBUTION_VERBS: tuple[str, ...] = (
    "said", "says", "mentioned", "suggested", "proposed", "stated",
    "explained", "noted", "argued", "claimed", "believes", "thinks",
)

_WORD_RE = re.compile(r"[a-z']+")


@dataclass(frozen=True)
class Vocabulary:
    """Immutable word lists consumed by the text heuristics.

    Attributes:
        abbreviations: Tokens (without trailing period) whose period never ends a sentence.
        common_words: Capitalized words excluded from name/entity extraction.
        sentence_starters: Capitalized words ignored when they open a sentence.
        stopwords: Lowercase tokens dropped by the BM25 tokenizer.
        negation_words: Lowercase negation markers ("n't" contractions are always detected).
        decision_verbs: Decision-verb family -> inflected forms.
        attribution_verbs: Verbs that introduce a speaker ("X said").
    """

    abbreviations: tuple[str, ...] = _ABBREVIATIONS
    common_words: frozenset[str] = _COMMON_WORDS
    sentence_starters: frozenset[str] = _SENTENCE_STARTERS
    stopwords: frozenset[str] = _STOPWORDS
    negation_words: frozenset[str] = _NEGATION_WORDS
    decision_verbs: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: _DECISION_VERBS, hash=False
    )
    attribution_verbs: tuple[str, ...] = _ATTRIBUTION_VERBS

    def is_common_word(self, word: str) -> bool:
        return word in self.common_words

    def decision_families(self, text: str) -> set[str]:
        """Return the decision-verb families mentioned in *text* (whole words, case-insensitive)."""
        words = set(_WORD_RE.findall(text.lower()))
        return {
            family
            for family, forms in self.decision_verbs.items()
            if words.intersection(forms)
        }


DEFAULT_VOCABULARY = Vocabulary()
