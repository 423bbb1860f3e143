"""
complexity.py -- Consultation complexity scoring and model routing.

Score in [0, 1] built from three additive signals:
  question length       0.1 / 0.2 / 0.3
  changing lines        0.1 / 0.2 / 0.3 / 0.4 (none, 1, 2-3, 4+)
  philosophical terms   +0.3
Transactional phrasing ("quick", "yes or no") subtracts 0.1.
The changing-line signal never decreases as the count grows, so the
score is non-decreasing in changing_line_count for a fixed question.
"""

from __future__ import annotations

import logging

from engine import config

logger = logging.getLogger(__name__)

PHILOSOPHICAL_TERMS: tuple[str, ...] = (
    "purpose",
    "meaning",
    "destiny",
    "spiritual",
    "profound",
    "deep",
    "soul",
    "calling",
)

TRANSACTIONAL_TERMS: tuple[str, ...] = (
    "quick",
    "simple",
    "yes or no",
    "briefly",
    "tl;dr",
)


def _length_signal(question: str) -> float:
    words = len(question.split())
    if words > 20:
        return 0.3
    if words > 10:
        return 0.2
    return 0.1


def _changing_line_signal(changing_line_count: int) -> float:
    if changing_line_count >= 4:
        return 0.4
    if changing_line_count >= 2:
        return 0.3
    if changing_line_count >= 1:
        return 0.2
    return 0.1


def score_complexity(question: str, changing_line_count: int) -> float:
    """Score a consultation in [0, 1]; higher routes to the stronger model."""
    lowered = question.lower()
    score = _length_signal(question) + _changing_line_signal(changing_line_count)
    if any(term in lowered for term in PHILOSOPHICAL_TERMS):
        score += 0.3
    if any(term in lowered for term in TRANSACTIONAL_TERMS):
        score -= 0.1
    return round(min(max(score, 0.0), 1.0), 4)


def select_model(
    complexity: float,
    threshold: float = config.MODEL_COMPLEXITY_THRESHOLD,
) -> str:
    """Cheap tier below threshold, expensive tier at or above it."""
    model = config.EXPENSIVE_MODEL if complexity >= threshold else config.CHEAP_MODEL
    logger.info("Complexity %.2f -> model %s", complexity, model)
    return model
