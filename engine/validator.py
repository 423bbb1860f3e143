"""
validator.py -- Acceptance policy for generated interpretations.

An interpretation is accepted only if all hold:
1. interpretation (and guidance, when present) is substantive
2. no fortune-telling or absolutist vocabulary anywhere in the text
3. at least one wisdom-oriented signal term anywhere in the text
"""

import logging
from typing import Any, Mapping, Union

from iching.models import AIInterpretation

logger = logging.getLogger(__name__)

MIN_FIELD_CHARS: int = 20

DISALLOWED_TERMS: tuple[str, ...] = ("predict", "fortune", "guarantee")

WISDOM_SIGNALS: tuple[str, ...] = (
    "wisdom",
    "guidance",
    "suggests",
    "consider",
    "may",
    "ancient",
    "traditional",
)

_TEXT_FIELDS: tuple[str, ...] = ("interpretation", "guidance", "practical_advice", "cultural_context")


def _as_fields(candidate: Union[AIInterpretation, Mapping[str, Any]]) -> dict[str, Any]:
    if isinstance(candidate, AIInterpretation):
        return candidate.model_dump()
    return {
        "interpretation": candidate.get("interpretation"),
        "guidance": candidate.get("guidance"),
        "practical_advice": candidate.get("practical_advice", candidate.get("practicalAdvice")),
        "cultural_context": candidate.get("cultural_context", candidate.get("culturalContext")),
    }


def is_valid_response(candidate: Union[AIInterpretation, Mapping[str, Any], None]) -> bool:
    """Return True if the candidate interpretation may be shown to a user."""
    if candidate is None:
        return False
    fields = _as_fields(candidate)

    interpretation = fields.get("interpretation")
    if not isinstance(interpretation, str) or len(interpretation.strip()) < MIN_FIELD_CHARS:
        logger.info("Rejected interpretation: too short")
        return False
    guidance = fields.get("guidance")
    if guidance is not None and (not isinstance(guidance, str) or len(guidance.strip()) < MIN_FIELD_CHARS):
        logger.info("Rejected interpretation: guidance too short")
        return False

    text = " ".join(
        value for key in _TEXT_FIELDS if isinstance(value := fields.get(key), str)
    ).lower()

    for term in DISALLOWED_TERMS:
        if term in text:
            logger.info("Rejected interpretation: contains '%s'", term)
            return False

    if not any(signal in text for signal in WISDOM_SIGNALS):
        logger.info("Rejected interpretation: no wisdom signal")
        return False
    return True
