"""
prompt_builder.py -- Compressed and standard interpretation prompts.

Compressed: one dense block for simple consultations (cheap model).
Standard: full line structure, trigrams and the relating hexagram
for complex consultations (expensive model).

Both prompts carry "Hexagram {number}: {name}", the (truncated) question,
and "changing lines: ..." when any line is changing. Both ask for a
respectful, culturally authentic, non-predictive reading returned as JSON.
"""

import logging
import math

from iching.caster import relating_hexagram
from iching.catalog import entry_of, trigrams_of
from iching.models import LINE_TYPES, Hexagram

from engine import config

logger = logging.getLogger(__name__)

MAX_QUESTION_CHARS: int = 300
ELLIPSIS: str = "..."

SYSTEM_PROMPT: str = (
    "You are Sage, an I Ching consultant who honors three thousand years of "
    "Chinese wisdom while speaking to modern lives. Be concise, respectful and "
    "practical. Offer reflection and guidance, never predictions or promises. "
    "Always answer with a single valid JSON object."
)

JSON_FIELDS: str = "interpretation, guidance, practicalAdvice, culturalContext"


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


def truncate_question(question: str, limit: int = MAX_QUESTION_CHARS) -> str:
    """Trim and cap a question at limit characters, marking the cut with '...'."""
    question = question.strip()
    if len(question) <= limit:
        return question
    return question[: limit - len(ELLIPSIS)].rstrip() + ELLIPSIS


def format_changing_lines(hexagram: Hexagram) -> str:
    return "changing lines: " + ", ".join(str(p) for p in hexagram.changing_lines)


def build_compressed(hexagram: Hexagram, question: str) -> str:
    """Short prompt for simple consultations."""
    changes = format_changing_lines(hexagram) if hexagram.changing_lines else "no changing lines"
    parts = [
        f"I Ching reading. Hexagram {hexagram.number}: {hexagram.name}, {changes}.",
        f'Question: "{truncate_question(question)}"',
        "Give a rich, meaningful interpretation in a respectful, culturally authentic voice.",
        "Speak to the person's situation with warmth and honor the Chinese tradition this wisdom comes from.",
        "Offer wisdom and gentle guidance for reflection, not predictions or promises.",
        f"Reply only as JSON with: {JSON_FIELDS}.",
    ]
    return chr(10).join(parts)


def _line_structure(hexagram: Hexagram) -> list[str]:
    lines: list[str] = []
    for position, value in enumerate(hexagram.lines, start=1):
        changing = ", changing" if position in hexagram.changing_lines else ""
        lines.append(f"Line {position}: {value} ({LINE_TYPES[value]}{changing})")
    return lines


def _movement(hexagram: Hexagram) -> str:
    relating = relating_hexagram(hexagram)
    if relating is None:
        return "There are no changing lines, suggesting a stable situation."
    return (
        f"With {format_changing_lines(hexagram)}, the situation is in motion "
        f"toward Hexagram {relating.number}: {relating.name}."
    )


def build_standard(hexagram: Hexagram, question: str) -> str:
    """Full prompt for complex consultations."""
    entry = entry_of(hexagram.number)
    lower, upper = trigrams_of(hexagram.number)
    parts = [
        "You are a respectful I Ching interpreter, versed in traditional Chinese philosophy.",
        "",
        f'The person asks: "{truncate_question(question)}"',
        "",
        f"They cast Hexagram {hexagram.number}: {hexagram.name} ({entry.chinese}), "
        f"{lower} below and {upper} above.",
        "Lines, bottom to top:",
        *_line_structure(hexagram),
        _movement(hexagram),
        "",
        "Give a rich, meaningful interpretation that is culturally authentic and:",
        "1. Explains the core meaning of this hexagram for the question",
        "2. Offers practical guidance rooted in traditional wisdom",
        "",
        "Respond only with a JSON object with interpretation (max 150 words), guidance (max 120), "
        "practicalAdvice (max 100) and culturalContext (max 80).",
        "",
        "Keep the tone balanced and respectful. Offer reflection, not predictions.",
    ]
    return chr(10).join(parts)


def build_adaptive(
    hexagram: Hexagram,
    question: str,
    complexity: float,
    threshold: float = config.PROMPT_COMPLEXITY_THRESHOLD,
) -> str:
    """Compressed prompt below threshold, standard prompt at or above it."""
    if complexity < threshold:
        prompt = build_compressed(hexagram, question)
        variant = "compressed"
    else:
        prompt = build_standard(hexagram, question)
        variant = "standard"
    logger.info(
        "Built %s prompt for hexagram %d (~%d tokens)",
        variant, hexagram.number, estimate_tokens(prompt),
    )
    return prompt
