"""
catalog.py -- The 64 hexagrams of the King Wen sequence.

Names follow the Wilhelm-Baynes translation. The binary table maps each
6-bit line pattern to its sequence number. Patterns read bottom line first,
1 = yang, 0 = yin. The table is static and loaded once at import.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from iching.errors import HexagramRangeError

logger = logging.getLogger(__name__)


class CatalogEntry(NamedTuple):
    number: int
    name: str
    chinese: str
    keywords: tuple[str, ...]


# -- Names, characters and keywords -------------------------------------------

_ENTRIES: tuple[CatalogEntry, ...] = (
    CatalogEntry(1, "The Creative", "乾", ("creativity", "leadership", "strength")),
    CatalogEntry(2, "The Receptive", "坤", ("receptivity", "nurturing", "devotion")),
    CatalogEntry(3, "Difficulty at the Beginning", "屯", ("beginnings", "struggle", "potential")),
    CatalogEntry(4, "Youthful Folly", "蒙", ("inexperience", "learning", "education")),
    CatalogEntry(5, "Waiting (Nourishment)", "需", ("patience", "nourishment", "preparation")),
    CatalogEntry(6, "Conflict", "訟", ("conflict", "opposition", "tension")),
    CatalogEntry(7, "The Army", "師", ("discipline", "organization", "strategy")),
    CatalogEntry(8, "Holding Together (Union)", "比", ("unity", "alliance", "cooperation")),
    CatalogEntry(9, "The Taming Power of the Small", "小畜", ("restraint", "accumulation", "gentleness")),
    CatalogEntry(10, "Treading (Conduct)", "履", ("conduct", "care", "propriety")),
    CatalogEntry(11, "Peace", "泰", ("peace", "harmony", "balance")),
    CatalogEntry(12, "Standstill (Stagnation)", "否", ("stagnation", "withdrawal", "isolation")),
    CatalogEntry(13, "Fellowship with Men", "同人", ("fellowship", "community", "partnership")),
    CatalogEntry(14, "Possession in Great Measure", "大有", ("abundance", "possession", "success")),
    CatalogEntry(15, "Modesty", "謙", ("modesty", "humility", "discretion")),
    CatalogEntry(16, "Enthusiasm", "豫", ("enthusiasm", "foresight", "planning")),
    CatalogEntry(17, "Following", "隨", ("following", "adaptation", "acceptance")),
    CatalogEntry(18, "Work on What Has Been Spoiled (Decay)", "蠱", ("decay", "repair", "restoration")),
    CatalogEntry(19, "Approach", "臨", ("approach", "advance", "influence")),
    CatalogEntry(20, "Contemplation (View)", "觀", ("contemplation", "observation", "reflection")),
    CatalogEntry(21, "Biting Through", "噬嗑", ("justice", "decision", "clarity")),
    CatalogEntry(22, "Grace", "賁", ("grace", "beauty", "refinement")),
    CatalogEntry(23, "Splitting Apart", "剝", ("deterioration", "decline", "erosion")),
    CatalogEntry(24, "Return (The Turning Point)", "復", ("return", "revival", "renewal")),
    CatalogEntry(25, "Innocence (The Unexpected)", "無妄", ("innocence", "spontaneity", "sincerity")),
    CatalogEntry(26, "The Taming Power of the Great", "大畜", ("restraint", "accumulation", "potential")),
    CatalogEntry(27, "The Corners of the Mouth (Providing Nourishment)", "頤", ("nourishment", "sustenance", "care")),
    CatalogEntry(28, "Preponderance of the Great", "大過", ("excess", "pressure", "exception")),
    CatalogEntry(29, "The Abysmal (Water)", "坎", ("danger", "challenge", "flow")),
    CatalogEntry(30, "The Clinging (Fire)", "離", ("brightness", "clarity", "illumination")),
    CatalogEntry(31, "Influence (Wooing)", "咸", ("influence", "attraction", "mutuality")),
    CatalogEntry(32, "Duration", "恆", ("duration", "perseverance", "constancy")),
    CatalogEntry(33, "Retreat", "遯", ("retreat", "withdrawal", "strategy")),
    CatalogEntry(34, "The Power of the Great", "大壯", ("power", "vigor", "energy")),
    CatalogEntry(35, "Progress", "晉", ("progress", "advancement", "clarity")),
    CatalogEntry(36, "Darkening of the Light", "明夷", ("adversity", "concealment", "endurance")),
    CatalogEntry(37, "The Family (The Clan)", "家人", ("family", "household", "relationships")),
    CatalogEntry(38, "Opposition", "睽", ("opposition", "estrangement", "diversity")),
    CatalogEntry(39, "Obstruction", "蹇", ("obstruction", "difficulty", "impediment")),
    CatalogEntry(40, "Deliverance", "解", ("deliverance", "release", "relief")),
    CatalogEntry(41, "Decrease", "損", ("decrease", "sacrifice", "giving")),
    CatalogEntry(42, "Increase", "益", ("increase", "benefit", "gain")),
    CatalogEntry(43, "Break-through (Resoluteness)", "夬", ("breakthrough", "resolution", "determination")),
    CatalogEntry(44, "Coming to Meet", "姤", ("meeting", "encounter", "temptation")),
    CatalogEntry(45, "Gathering Together (Massing)", "萃", ("gathering", "assembly", "unity")),
    CatalogEntry(46, "Pushing Upward", "升", ("ascent", "growth", "rising")),
    CatalogEntry(47, "Oppression (Exhaustion)", "困", ("oppression", "exhaustion", "adversity")),
    CatalogEntry(48, "The Well", "井", ("source", "resources", "community")),
    CatalogEntry(49, "Revolution (Molting)", "革", ("revolution", "transformation", "reform")),
    CatalogEntry(50, "The Cauldron", "鼎", ("transformation", "nourishment", "culture")),
    CatalogEntry(51, "The Arousing (Shock, Thunder)", "震", ("shock", "arousal", "movement")),
    CatalogEntry(52, "Keeping Still (Mountain)", "艮", ("stillness", "meditation", "rest")),
    CatalogEntry(53, "Development (Gradual Progress)", "漸", ("development", "gradual progress", "steadiness")),
    CatalogEntry(54, "The Marrying Maiden", "歸妹", ("relationships", "position", "propriety")),
    CatalogEntry(55, "Abundance (Fullness)", "豐", ("abundance", "fullness", "zenith")),
    CatalogEntry(56, "The Wanderer", "旅", ("travel", "transience", "sojourning")),
    CatalogEntry(57, "The Gentle (The Penetrating, Wind)", "巽", ("gentleness", "penetration", "flexibility")),
    CatalogEntry(58, "The Joyous (Lake)", "兌", ("joy", "pleasure", "communication")),
    CatalogEntry(59, "Dispersion (Dissolution)", "渙", ("dispersion", "dissolution", "release")),
    CatalogEntry(60, "Limitation", "節", ("limitation", "moderation", "regulation")),
    CatalogEntry(61, "Inner Truth", "中孚", ("truth", "sincerity", "authenticity")),
    CatalogEntry(62, "Preponderance of the Small", "小過", ("caution", "modesty", "small steps")),
    CatalogEntry(63, "After Completion", "既濟", ("completion", "order", "balance")),
    CatalogEntry(64, "Before Completion", "未濟", ("transition", "potential", "preparation")),
)

HEXAGRAMS: dict[int, CatalogEntry] = {entry.number: entry for entry in _ENTRIES}
HEXAGRAM_NAMES: dict[int, str] = {entry.number: entry.name for entry in _ENTRIES}

# -- King Wen binary table (bottom line first) ---------------------------------

BINARY_TO_NUMBER: dict[str, int] = {
    "111111": 1, "000000": 2, "100010": 3, "010001": 4,
    "111010": 5, "010111": 6, "010000": 7, "000010": 8,
    "111011": 9, "110111": 10, "111000": 11, "000111": 12,
    "101111": 13, "111101": 14, "001000": 15, "000100": 16,
    "100110": 17, "011001": 18, "110000": 19, "000011": 20,
    "100101": 21, "101001": 22, "000001": 23, "100000": 24,
    "100111": 25, "111001": 26, "100001": 27, "011110": 28,
    "010010": 29, "101101": 30, "001110": 31, "011100": 32,
    "001111": 33, "111100": 34, "000101": 35, "101000": 36,
    "101011": 37, "110101": 38, "001010": 39, "010100": 40,
    "110001": 41, "100011": 42, "111110": 43, "011111": 44,
    "000110": 45, "011000": 46, "010110": 47, "011010": 48,
    "101110": 49, "011101": 50, "100100": 51, "001001": 52,
    "001011": 53, "110100": 54, "101100": 55, "001101": 56,
    "011011": 57, "110110": 58, "010011": 59, "110010": 60,
    "110011": 61, "001100": 62, "101010": 63, "010101": 64,
}

NUMBER_TO_BINARY: dict[int, str] = {n: b for b, n in BINARY_TO_NUMBER.items()}

# Trigram patterns, bottom line first.
TRIGRAMS: dict[str, str] = {
    "111": "Heaven",
    "000": "Earth",
    "100": "Thunder",
    "010": "Water",
    "001": "Mountain",
    "011": "Wind",
    "101": "Fire",
    "110": "Lake",
}

if len(NUMBER_TO_BINARY) != 64 or set(NUMBER_TO_BINARY) != set(HEXAGRAMS):
    raise RuntimeError("King Wen table is not a bijection over 1..64")


def _check_number(number: int) -> None:
    if isinstance(number, bool) or not isinstance(number, int) or not 1 <= number <= 64:
        raise HexagramRangeError(
            f"Invalid hexagram number: {number}. Must be integer between 1 and 64."
        )


def name_of(number: int) -> str:
    """Return the canonical name for a King Wen number (1-64)."""
    _check_number(number)
    return HEXAGRAMS[number].name


def entry_of(number: int) -> CatalogEntry:
    """Return name, character and keywords for a King Wen number."""
    _check_number(number)
    return HEXAGRAMS[number]


def trigrams_of(number: int) -> tuple[str, str]:
    """Return the (lower, upper) trigram names of a hexagram."""
    _check_number(number)
    pattern = NUMBER_TO_BINARY[number]
    return TRIGRAMS[pattern[:3]], TRIGRAMS[pattern[3:]]
