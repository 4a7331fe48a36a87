"""Domain models for thread-grounding validation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class Post:
    id: str
    author: str
    text: str
    timestamp: datetime | None = None
    reply_to: str | None = None  # parent post id; not used by grounding itself


@dataclass(frozen=True)
class PostChunk:
    """A retrievable window of one post (one sentence or 1-N joined sentences).

    ``start_index`` / ``end_index`` are best-effort character offsets into the
    post text, found by textual search. Repeated phrases inside a post can make
    them point at the wrong occurrence; use them for display only.
    """

    post_id: str
    author: str
    text: str
    start_index: int
    end_index: int
    embedding: tuple[float, ...] | None = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class Evidence:
    post_id: str
    chunk_text: str
    author: str
    similarity: float  # cosine similarity to the sentence, higher = more relevant
    rank: int          # 1-based position in the retrieved list

    def to_dict(self) -> dict:
        return asdict(self)


class ValidationStatus(str, Enum):
    GROUNDED = "grounded"
    MARGINAL = "marginal"
    UNGROUNDED = "ungrounded"


@dataclass(frozen=True)
class ValidationFlags:
    has_semantic_support: bool = False
    has_lexical_support: bool = False
    entity_match: bool = False
    number_match: bool = False
    negation_consistent: bool = False
    attribution_correct: bool = False

    def failed_checks(self) -> list[str]:
        """Names of the structural checks that did not pass."""
        names = {
            "entity_match": self.entity_match,
            "number_match": self.number_match,
            "negation_consistent": self.negation_consistent,
            "attribution_correct": self.attribution_correct,
        }
        return [name for name, ok in names.items() if not ok]


@dataclass(frozen=True)
class SentenceValidation:
    sentence: str
    index: int
    top_evidence: tuple[Evidence, ...]
    best_similarity: float
    status: ValidationStatus
    flags: ValidationFlags

    def to_dict(self) -> dict:
        return {
            "sentence": self.sentence,
            "index": self.index,
            "top_evidence": [e.to_dict() for e in self.top_evidence],
            "best_similarity": self.best_similarity,
            "status": self.status.value,
            "flags": asdict(self.flags),
        }


@dataclass(frozen=True)
class ValidationResult:
    """Whole-summary verdict.

    Attributes:
        grounding_score: (grounded + marginal) / total - the lenient ratio.
        weighted_score: Length-weighted ratio; marginal sentences get half credit.
        passed: Whether the summary meets the configured pass thresholds.
        reasoning: Human-readable explanation naming the dominant failure mode.
        model_version: Embedding model used ("" when no embedder was available).
        fabricated_participants: Names in the summary that never occur in the thread.
    """

    sentence_validations: tuple[SentenceValidation, ...]
    total_sentences: int
    grounded_count: int
    marginal_count: int
    ungrounded_count: int
    grounding_score: float
    weighted_score: float
    passed: bool
    reasoning: str
    model_version: str
    fabricated_participants: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "sentence_validations": [sv.to_dict() for sv in self.sentence_validations],
            "total_sentences": self.total_sentences,
            "grounded_count": self.grounded_count,
            "marginal_count": self.marginal_count,
            "ungrounded_count": self.ungrounded_count,
            "grounding_score": self.grounding_score,
            "weighted_score": self.weighted_score,
            "pass": self.passed,
            "reasoning": self.reasoning,
            "model_version": self.model_version,
            "fabricated_participants": list(self.fabricated_participants),
        }


@dataclass(frozen=True)
class ValidationThresholds:
    """Numeric cutoffs for sentence classification and the overall verdict.

    Attributes:
        semantic_threshold: Min cosine similarity for semantic support.
        lexical_threshold: Min query-token overlap for lexical support.
        grounded_threshold: Min best similarity for "grounded".
        marginal_threshold: Min best similarity for "marginal".
        pass_threshold: Min share of grounded + marginal sentences.
        strict_pass_required: Min share of strictly grounded sentences.
    """

    semantic_threshold: float = 0.75
    lexical_threshold: float = 0.60
    grounded_threshold: float = 0.80
    marginal_threshold: float = 0.65
    pass_threshold: float = 0.75
    strict_pass_required: float = 0.50

    def __post_init__(self) -> None:
        for name in ("semantic_threshold", "grounded_threshold", "marginal_threshold"):
            value = getattr(self, name)
            if not -1.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [-1.0, 1.0], got {value}")
        for name in ("lexical_threshold", "pass_threshold", "strict_pass_required"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0.0, 1.0], got {value}")
        if self.marginal_threshold > self.grounded_threshold:
            raise ValueError(
                f"marginal_threshold ({self.marginal_threshold}) must not exceed "
                f"grounded_threshold ({self.grounded_threshold})"
            )


@dataclass(frozen=True)
class ValidatorOptions:
    """Which checks run and how evidence is retrieved.

    Attributes:
        top_k: Evidence chunks kept per sentence.
        chunk_size: Sentences per chunk window (<= 0 means the default of 2).
        use_lexical: Build a BM25 index; its hits widen the evidence candidate pool.
        require_entity_match: Run the entity presence check.
        require_number_match: Run the numeric agreement check.
        check_negation: Run the negation-flip check.
        check_attribution: Run the speaker-attribution check.
        check_participants: Fail summaries that name people absent from the thread.
    """

    top_k: int = 5
    chunk_size: int = 2
    use_lexical: bool = True
    require_entity_match: bool = True
    require_number_match: bool = True
    check_negation: bool = True
    check_attribution: bool = True
    check_participants: bool = True

    def __post_init__(self) -> None:
        if self.top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {self.top_k}")
