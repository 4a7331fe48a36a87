"""Thread-summary grounding validator.

Pipeline per validation call:
  1. Split the summary into sentences (empty summary -> trivially passes).
  2. Build (or reuse) the thread's EvidenceIndex.
  3. Embed uncached chunk texts + all summary sentences in ONE embed_batch call.
  4. Per sentence: retrieve top-k evidence -> run checks -> classify.
  5. Aggregate counts and scores, detect fabricated participants, build reasoning.

Classification (per sentence, best = max evidence similarity; entity, number
and attribution checks consult evidence with similarity >= marginal_threshold):
  - negation or attribution check failed       -> ungrounded (contradiction)
  - neither semantic nor lexical support       -> ungrounded
  - best >= grounded_threshold                 -> grounded, or marginal if an
                                                  entity/number check failed
  - best >= marginal_threshold, checks pass    -> marginal
  - otherwise                                  -> ungrounded

Errors: embedder failures raise EmbeddingError; cancellation/timeout raises
ValidationCancelled; a supplied index that references unknown posts raises
EvidenceIntegrityError. "Nothing to verify against" is not an error: it is a
failing ValidationResult.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Sequence

from threadcheck.checks.heuristics import (
    check_attribution,
    check_entity_match,
    check_negation_consistency,
    check_number_match,
)
from threadcheck.ingest.chunker import extract_participant_names
from threadcheck.models import (
    Evidence,
    Post,
    SentenceValidation,
    ValidationFlags,
    ValidationResult,
    ValidationStatus,
    ValidationThresholds,
    ValidatorOptions,
)
from threadcheck.rag.bm25 import lexical_overlap
from threadcheck.rag.embedder import Embedder
from threadcheck.rag.index import (
    EvidenceIndex,
    build_evidence_index,
    find_fabricated_participants,
)
from threadcheck.rag.retriever import retrieve_evidence
from threadcheck.text.splitter import split_into_sentences
from threadcheck.text.vocabulary import DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.05
_MAX_EXCERPTS = 3
_EXCERPT_CHARS = 80


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ThreadcheckError(Exception):
    """Base class for validator system faults."""


class EmbeddingError(ThreadcheckError):
    """The embedder failed or returned an unusable response."""


class ValidationCancelled(ThreadcheckError):
    """The validation call was cancelled or timed out before completing."""


class EvidenceIntegrityError(ThreadcheckError):
    """Evidence references a post that is not part of the input thread."""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_thread_summary(
    summary: str,
    posts: Sequence[Post],
    embedder: Embedder | None,
    thresholds: ValidationThresholds | None = None,
    options: ValidatorOptions | None = None,
    *,
    index: EvidenceIndex | None = None,
    cancel: threading.Event | None = None,
    timeout: float | None = None,
    vocabulary: Vocabulary = DEFAULT_VOCABULARY,
) -> ValidationResult:
    """Validate that every sentence of *summary* is grounded in *posts*.

    Args:
        summary: Generated summary text.
        posts: Source thread posts.
        embedder: Embedding provider; ``None`` means the summary cannot be verified.
        thresholds: Classification / pass cutoffs (defaults if omitted).
        options: Retrieval and check toggles (defaults if omitted).
        index: Prebuilt EvidenceIndex for *posts*, reused read-only. Cached chunk
            vectors are reused when they come from the same embedder model.
        cancel: Event that aborts the call when set.
        timeout: Seconds allowed for the embedding call.
        vocabulary: Word lists for the text heuristics.

    Returns:
        ValidationResult with one SentenceValidation per summary sentence.

    Raises:
        EmbeddingError: The embedder raised or returned the wrong number of vectors.
        ValidationCancelled: *cancel* was set or *timeout* elapsed.
        EvidenceIntegrityError: *index* contains chunks of posts not in *posts*.
    """
    thresholds = thresholds or ValidationThresholds()
    options = options or ValidatorOptions()
    _raise_if_cancelled(cancel)

    model_version = embedder.model_version() if embedder is not None else ""
    sentences = split_into_sentences(summary, vocabulary=vocabulary)
    if not sentences:
        return _empty_summary_result(model_version)

    if index is None:
        index = build_evidence_index(posts, options, vocabulary=vocabulary)
    else:
        _check_index_integrity(index, posts)

    if embedder is None:
        return _unverifiable_result(
            sentences, "no embedding provider available", thresholds, model_version
        )
    if not index.chunks:
        return _unverifiable_result(
            sentences, "thread has no content to ground against", thresholds, model_version
        )

    reuse = index.has_embeddings_for(model_version)
    if index.has_embeddings and not reuse:
        logger.warning(
            "cached chunk embeddings are from %r, re-embedding with %r",
            index.model_version, model_version,
        )
    chunk_texts = [] if reuse else [c.text for c in index.chunks]
    vectors = _embed_all(embedder, chunk_texts + sentences, cancel, timeout)
    if not reuse:
        index = index.with_embeddings(vectors[: len(chunk_texts)], model_version)
    sentence_vectors = vectors[len(chunk_texts):]

    validations: list[SentenceValidation] = []
    for i, (sentence, vector) in enumerate(zip(sentences, sentence_vectors)):
        _raise_if_cancelled(cancel)
        evidence = retrieve_evidence(sentence, vector, index, options)
        validation = validate_sentence(
            sentence, i, evidence, thresholds, options, vocabulary=vocabulary
        )
        logger.debug(
            "sentence %d: %s (best=%.3f, failed=%s)",
            i, validation.status.value, validation.best_similarity,
            validation.flags.failed_checks(),
        )
        validations.append(validation)

    fabricated: list[str] = []
    if options.check_participants:
        fabricated = find_fabricated_participants(
            extract_participant_names(summary, vocabulary=vocabulary),
            index.participants,
            posts,
        )

    result = calculate_validation_result(validations, fabricated, thresholds, model_version)
    logger.info(
        "thread %r: %s (score=%.2f, %d/%d grounded)",
        index.thread_id, "PASS" if result.passed else "FAIL",
        result.grounding_score, result.grounded_count, result.total_sentences,
    )
    return result


def validate_sentence(
    sentence: str,
    index: int,
    evidence: Sequence[Evidence],
    thresholds: ValidationThresholds,
    options: ValidatorOptions,
    *,
    vocabulary: Vocabulary = DEFAULT_VOCABULARY,
) -> SentenceValidation:
    """Run the enabled checks for one sentence and classify it."""
    if not evidence:
        return SentenceValidation(
            sentence=sentence,
            index=index,
            top_evidence=(),
            best_similarity=0.0,
            status=ValidationStatus.UNGROUNDED,
            flags=ValidationFlags(),
        )

    # max() keeps the first of equal maxima, i.e. the better-ranked one
    best = max(evidence, key=lambda ev: ev.similarity)
    supporting = supporting_evidence(evidence, best, thresholds)

    flags = ValidationFlags(
        has_semantic_support=best.similarity >= thresholds.semantic_threshold,
        has_lexical_support=(
            options.use_lexical
            and lexical_overlap(sentence, best.chunk_text, vocabulary=vocabulary)
            >= thresholds.lexical_threshold
        ),
        entity_match=(
            check_entity_match(sentence, supporting, vocabulary=vocabulary)
            if options.require_entity_match else True
        ),
        number_match=(
            check_number_match(sentence, supporting)
            if options.require_number_match else True
        ),
        negation_consistent=(
            check_negation_consistency(sentence, best.chunk_text, vocabulary=vocabulary)
            if options.check_negation else True
        ),
        attribution_correct=(
            check_attribution(sentence, supporting, vocabulary=vocabulary)
            if options.check_attribution else True
        ),
    )

    return SentenceValidation(
        sentence=sentence,
        index=index,
        top_evidence=tuple(evidence),
        best_similarity=best.similarity,
        status=determine_status(flags, best.similarity, thresholds),
        flags=flags,
    )


def supporting_evidence(
    evidence: Sequence[Evidence], best: Evidence, thresholds: ValidationThresholds
) -> list[Evidence]:
    """Evidence similar enough to back a claim; the best item alone if none is.

    Entity, number and attribution checks consult only these items.
    """
    supporting = [ev for ev in evidence if ev.similarity >= thresholds.marginal_threshold]
    return supporting or [best]


def determine_status(
    flags: ValidationFlags,
    similarity: float,
    thresholds: ValidationThresholds,
) -> ValidationStatus:
    """Map check flags and best similarity to a grounding status."""
    if not (flags.negation_consistent and flags.attribution_correct):
        return ValidationStatus.UNGROUNDED
    if not (flags.has_semantic_support or flags.has_lexical_support):
        return ValidationStatus.UNGROUNDED

    facts_ok = flags.entity_match and flags.number_match
    if similarity >= thresholds.grounded_threshold:
        return ValidationStatus.GROUNDED if facts_ok else ValidationStatus.MARGINAL
    if similarity >= thresholds.marginal_threshold and facts_ok:
        return ValidationStatus.MARGINAL
    return ValidationStatus.UNGROUNDED


def calculate_validation_result(
    validations: Sequence[SentenceValidation],
    fabricated_participants: Sequence[str],
    thresholds: ValidationThresholds,
    model_version: str,
    *,
    verified: bool = True,
    preamble: str = "",
) -> ValidationResult:
    """Aggregate per-sentence verdicts into a ValidationResult.

    An unverified result (no evidence could be consulted) never passes.
    """
    total = len(validations)
    counts = Counter(v.status for v in validations)
    grounded = counts[ValidationStatus.GROUNDED]
    marginal = counts[ValidationStatus.MARGINAL]
    ungrounded = counts[ValidationStatus.UNGROUNDED]

    total_length = sum(len(v.sentence) for v in validations)
    weighted = sum(
        len(v.sentence) * (1.0 if v.status is ValidationStatus.GROUNDED else 0.5)
        for v in validations
        if v.status is not ValidationStatus.UNGROUNDED
    )

    grounding_score = (grounded + marginal) / total if total else 1.0
    strict_ratio = grounded / total if total else 1.0
    weighted_score = weighted / total_length if total_length else 1.0

    passed = verified and (
        grounding_score >= thresholds.pass_threshold
        and strict_ratio >= thresholds.strict_pass_required
        and not fabricated_participants
    )

    return ValidationResult(
        sentence_validations=tuple(validations),
        total_sentences=total,
        grounded_count=grounded,
        marginal_count=marginal,
        ungrounded_count=ungrounded,
        grounding_score=grounding_score,
        weighted_score=weighted_score,
        passed=passed,
        reasoning=build_reasoning(
            validations, grounding_score, fabricated_participants, passed, preamble=preamble
        ),
        model_version=model_version,
        fabricated_participants=tuple(fabricated_participants),
    )


def build_reasoning(
    validations: Sequence[SentenceValidation],
    grounding_score: float,
    fabricated_participants: Sequence[str],
    passed: bool,
    *,
    preamble: str = "",
) -> str:
    """Human-readable verdict naming the dominant failure mode."""
    counts = Counter(v.status for v in validations)
    parts: list[str] = []
    if preamble:
        parts.append(preamble)
    parts.append(
        f"Thread summary grounding: {counts[ValidationStatus.GROUNDED]}/{len(validations)} "
        f"sentences grounded, {counts[ValidationStatus.MARGINAL]} marginal, "
        f"{counts[ValidationStatus.UNGROUNDED]} ungrounded "
        f"({grounding_score * 100:.1f}% supported)"
    )

    if passed:
        parts.append("PASS - Summary is well-grounded in thread content")
        return ". ".join(parts)

    if fabricated_participants:
        parts.append(f"Fabricated participants: {', '.join(fabricated_participants)}")

    mode = dominant_failure_mode(validations)
    if mode:
        parts.append(f"Dominant failure mode: {mode}")

    excerpts = [
        _excerpt(v.sentence)
        for v in validations
        if v.status is ValidationStatus.UNGROUNDED
    ][:_MAX_EXCERPTS]
    if excerpts:
        parts.append("Ungrounded: " + "; ".join(f'"{e}"' for e in excerpts))

    parts.append("FAIL - Summary contains ungrounded or fabricated content")
    return ". ".join(parts)


def dominant_failure_mode(validations: Sequence[SentenceValidation]) -> str | None:
    """Most common reason among non-grounded sentences, or None if all are grounded."""
    modes: Counter[str] = Counter()
    for v in validations:
        if v.status is ValidationStatus.GROUNDED:
            continue
        reasons = _failure_reasons(v.flags) if v.top_evidence else []
        modes.update(reasons or ["weak evidence"])
    if not modes:
        return None
    # Ties resolve to the first reason encountered
    return modes.most_common(1)[0][0]


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _failure_reasons(flags: ValidationFlags) -> list[str]:
    reasons = []
    if not flags.attribution_correct:
        reasons.append("attribution errors")
    if not flags.negation_consistent:
        reasons.append("negation flips")
    if not flags.number_match:
        reasons.append("number mismatches")
    if not flags.entity_match:
        reasons.append("unsupported entities")
    return reasons


def _excerpt(sentence: str) -> str:
    if len(sentence) <= _EXCERPT_CHARS:
        return sentence
    return sentence[: _EXCERPT_CHARS - 3].rstrip() + "..."


def _empty_summary_result(model_version: str) -> ValidationResult:
    return ValidationResult(
        sentence_validations=(),
        total_sentences=0,
        grounded_count=0,
        marginal_count=0,
        ungrounded_count=0,
        grounding_score=1.0,
        weighted_score=1.0,
        passed=True,
        reasoning="Empty summary - no claims to validate",
        model_version=model_version,
    )


def _unverifiable_result(
    sentences: Sequence[str],
    why: str,
    thresholds: ValidationThresholds,
    model_version: str,
) -> ValidationResult:
    validations = [
        SentenceValidation(
            sentence=s,
            index=i,
            top_evidence=(),
            best_similarity=0.0,
            status=ValidationStatus.UNGROUNDED,
            flags=ValidationFlags(),
        )
        for i, s in enumerate(sentences)
    ]
    result = calculate_validation_result(
        validations,
        [],
        thresholds,
        model_version,
        verified=False,
        preamble=f"Unable to verify summary: {why}",
    )
    logger.info("summary not verifiable: %s", why)
    return result


def _check_index_integrity(index: EvidenceIndex, posts: Sequence[Post]) -> None:
    known = {p.id for p in posts}
    unknown = sorted(index.post_ids() - known)
    if unknown:
        raise EvidenceIntegrityError(
            f"evidence index references posts not in the thread: {', '.join(unknown)}"
        )


def _raise_if_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise ValidationCancelled("validation cancelled")


def _embed_all(
    embedder: Embedder,
    texts: list[str],
    cancel: threading.Event | None,
    timeout: float | None,
) -> list[list[float]]:
    """Embed *texts* in one batch call, honoring *cancel* and *timeout*."""
    try:
        if cancel is None and timeout is None:
            vectors = embedder.embed_batch(texts)
        else:
            vectors = _embed_cancellable(embedder, texts, cancel, timeout)
    except ThreadcheckError:
        raise
    except Exception as exc:
        raise EmbeddingError(
            f"embedding {len(texts)} texts with {embedder.model_version()!r} failed: {exc}"
        ) from exc

    if len(vectors) != len(texts):
        raise EmbeddingError(
            f"embedder returned {len(vectors)} vectors for {len(texts)} texts"
        )
    return vectors


def _embed_cancellable(
    embedder: Embedder,
    texts: list[str],
    cancel: threading.Event | None,
    timeout: float | None,
) -> list[list[float]]:
    deadline = time.monotonic() + timeout if timeout is not None else None
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="threadcheck-embed")
    future: Future = executor.submit(embedder.embed_batch, texts)
    try:
        while True:
            try:
                return future.result(timeout=_POLL_INTERVAL)
            except FutureTimeout:
                pass
            if cancel is not None and cancel.is_set():
                future.cancel()
                raise ValidationCancelled("validation cancelled during embedding")
            if deadline is not None and time.monotonic() >= deadline:
                future.cancel()
                raise ValidationCancelled(f"embedding timed out after {timeout:.1f}s")
    finally:
        # Do not block on an abandoned provider call
        executor.shutdown(wait=False, cancel_futures=True)
