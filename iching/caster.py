"""
caster.py -- Traditional three-coin hexagram casting.

Each line is three fair coin tosses, heads = 3 and tails = 2:
  3 tails = 6 (old yin, changing)     P = 1/8
  1 head  = 7 (young yang)            P = 3/8
  2 heads = 8 (young yin)             P = 3/8
  3 heads = 9 (old yang, changing)    P = 1/8
Lines are cast bottom to top. The hexagram number is read from the
primary (uncast) pattern, not the relating hexagram.
"""

from __future__ import annotations

import logging
import random
from typing import Optional, Sequence

from iching.catalog import BINARY_TO_NUMBER, name_of
from iching.models import CHANGING_LINE_VALUES, YANG_LINE_VALUES, Hexagram, LineValue

logger = logging.getLogger(__name__)

HEADS: int = 3
TAILS: int = 2

# Changing lines turn into their opposite in the relating hexagram.
_RELATING_VALUE: dict[int, int] = {6: 7, 9: 8, 7: 7, 8: 8}

_rng = random.SystemRandom()


def cast_line(rng: Optional[random.Random] = None) -> LineValue:
    """Toss three coins and return the line value 6, 7, 8 or 9."""
    source = rng or _rng
    total = sum(HEADS if source.random() < 0.5 else TAILS for _ in range(3))
    return total  # type: ignore[return-value]


def calculate_changing_lines(lines: Sequence[int]) -> list[int]:
    """1-indexed positions of old yin (6) and old yang (9) lines."""
    return [i for i, value in enumerate(lines, start=1) if value in CHANGING_LINE_VALUES]


def lines_to_binary(lines: Sequence[int]) -> str:
    """Bottom-first yin/yang pattern: 7 and 9 -> '1', 6 and 8 -> '0'."""
    return "".join("1" if value in YANG_LINE_VALUES else "0" for value in lines)


def binary_to_number(pattern: str) -> int:
    """King Wen sequence number for a bottom-first 6-bit pattern."""
    try:
        return BINARY_TO_NUMBER[pattern]
    except KeyError:
        raise ValueError(f"Not a 6-line pattern: {pattern!r}") from None


def build_hexagram(lines: Sequence[int]) -> Hexagram:
    """Build a fully named Hexagram from six line values."""
    if len(lines) != 6:
        raise ValueError(f"Hexagram must have exactly 6 lines, got {len(lines)}")
    number = binary_to_number(lines_to_binary(lines))
    return Hexagram(
        number=number,
        name=name_of(number),
        lines=list(lines),
        changing_lines=calculate_changing_lines(lines),
    )


def cast_hexagram(rng: Optional[random.Random] = None) -> Hexagram:
    """Cast six lines bottom to top and name the resulting hexagram."""
    lines = [cast_line(rng) for _ in range(6)]
    hexagram = build_hexagram(lines)
    logger.info(
        "Cast hexagram %d (%s), lines=%s, changing=%s",
        hexagram.number, hexagram.name, hexagram.lines, hexagram.changing_lines,
    )
    return hexagram


def relating_hexagram(hexagram: Hexagram) -> Optional[Hexagram]:
    """
    The hexagram the reading moves toward once changing lines resolve.

    Returns None when nothing is changing.
    """
    if not hexagram.changing_lines:
        return None
    return build_hexagram([_RELATING_VALUE[value] for value in hexagram.lines])
