"""Sentence-vs-evidence consistency checks."""

from threadcheck.checks.heuristics import (
    check_attribution,
    check_entity_match,
    check_negation_consistency,
    check_number_match,
)

__all__ = [
    "check_attribution",
    "check_entity_match",
    "check_negation_consistency",
    "check_number_match",
]
