"""
fallback.py -- Deterministic interpretation used when the LLM is unavailable.

The text depends only on the hexagram (number, trigrams, keywords and
changing lines), so the same reading always yields the same fallback.
Output always passes engine.validator.is_valid_response.
"""

import logging

from iching.caster import relating_hexagram
from iching.catalog import entry_of, trigrams_of
from iching.models import AIInterpretation, Hexagram

logger = logging.getLogger(__name__)


def fallback_interpretation(hexagram: Hexagram) -> AIInterpretation:
    """Build a respectful, hexagram-specific interpretation without an LLM."""
    entry = entry_of(hexagram.number)
    lower, upper = trigrams_of(hexagram.number)
    first, second, third = entry.keywords

    interpretation = (
        f"Hexagram {hexagram.number}: {hexagram.name} ({entry.chinese}) places "
        f"{lower} below {upper}. Traditional readings of this figure speak of "
        f"{first}, {second} and {third}. In relation to your question, it suggests "
        f"pausing to consider where these qualities are already at work in your situation."
    )

    relating = relating_hexagram(hexagram)
    if relating is None:
        guidance = (
            "With no changing lines, the situation is settled for now. The ancient wisdom "
            f"of {hexagram.name} may be best honored through steady, attentive practice."
        )
    else:
        positions = ", ".join(str(p) for p in hexagram.changing_lines)
        guidance = (
            f"With changing lines: {positions}, the reading is in motion toward "
            f"Hexagram {relating.number}: {relating.name}. Traditional guidance counsels "
            "patience and openness while this transformation unfolds."
        )

    practical_advice = (
        f"Consider writing your question down and returning to it over the coming days, "
        f"noting where {first} could shape your next small step."
    )
    cultural_context = (
        "The I Ching, or Book of Changes, is a classic of Chinese philosophy consulted for "
        f"reflection for roughly three thousand years. {hexagram.name} holds place "
        f"{hexagram.number} in the King Wen sequence of sixty-four hexagrams."
    )

    logger.info("Using fallback interpretation for hexagram %d", hexagram.number)
    return AIInterpretation(
        interpretation=interpretation,
        guidance=guidance,
        practical_advice=practical_advice,
        cultural_context=cultural_context,
    )
