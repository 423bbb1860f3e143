"""
test_caster.py -- Coin casting, line semantics and the King Wen mapping.
"""

import random
from collections import Counter
from datetime import date, datetime, timezone

import pytest

from iching.caster import (
    binary_to_number,
    build_hexagram,
    calculate_changing_lines,
    cast_hexagram,
    cast_line,
    lines_to_binary,
    relating_hexagram,
)
from iching.catalog import BINARY_TO_NUMBER, name_of
from iching.daily import daily_hexagram, local_date
from iching.errors import InputValidationError
from iching.models import Hexagram


# ---------------------------------------------------------------------------
# Single lines
# ---------------------------------------------------------------------------

def test_cast_line_values_are_traditional():
    rng = random.Random(7)
    assert {cast_line(rng) for _ in range(500)} == {6, 7, 8, 9}


def test_cast_line_distribution_is_binomial():
    rng = random.Random(2024)
    n = 20_000
    counts = Counter(cast_line(rng) for _ in range(n))
    assert counts[6] / n == pytest.approx(1 / 8, abs=0.02)
    assert counts[9] / n == pytest.approx(1 / 8, abs=0.02)
    assert counts[7] / n == pytest.approx(3 / 8, abs=0.02)
    assert counts[8] / n == pytest.approx(3 / 8, abs=0.02)


def test_cast_line_uses_system_random_by_default():
    assert cast_line() in (6, 7, 8, 9)


# ---------------------------------------------------------------------------
# Hexagram structure
# ---------------------------------------------------------------------------

def test_cast_hexagram_structure():
    rng = random.Random(11)
    for _ in range(200):
        hexagram = cast_hexagram(rng)
        assert len(hexagram.lines) == 6
        assert all(v in (6, 7, 8, 9) for v in hexagram.lines)
        assert 1 <= hexagram.number <= 64
        assert hexagram.name == name_of(hexagram.number)
        expected = [i + 1 for i, v in enumerate(hexagram.lines) if v in (6, 9)]
        assert hexagram.changing_lines == expected


@pytest.mark.parametrize(
    "lines, expected",
    [
        ([6, 7, 8, 9, 7, 8], [1, 4]),
        ([7, 7, 7, 7, 7, 7], []),
        ([6, 6, 6, 6, 6, 6], [1, 2, 3, 4, 5, 6]),
        ([8, 9, 8, 8, 8, 9], [2, 6]),
    ],
)
def test_calculate_changing_lines(lines, expected):
    assert calculate_changing_lines(lines) == expected


def test_lines_to_binary_reads_bottom_first():
    assert lines_to_binary([7, 8, 8, 8, 8, 8]) == "100000"
    assert lines_to_binary([9, 6, 9, 6, 9, 6]) == "101010"


def test_king_wen_table_is_bijective():
    patterns = {format(i, "06b") for i in range(64)}
    assert set(BINARY_TO_NUMBER) == patterns
    assert sorted(BINARY_TO_NUMBER.values()) == list(range(1, 65))


@pytest.mark.parametrize(
    "lines, number",
    [
        ([7, 7, 7, 7, 7, 7], 1),
        ([8, 8, 8, 8, 8, 8], 2),
        ([7, 8, 8, 8, 7, 8], 3),    # Thunder below, Water above
        ([7, 7, 7, 8, 8, 8], 11),   # Heaven below, Earth above
        ([8, 8, 8, 7, 7, 7], 12),
        ([7, 8, 8, 8, 8, 8], 24),   # Return: one yang line at the bottom
        ([8, 8, 8, 8, 8, 7], 23),   # Splitting Apart: one yang line at the top
        ([7, 8, 7, 8, 7, 8], 63),
        ([8, 7, 8, 7, 8, 7], 64),
    ],
)
def test_build_hexagram_numbers(lines, number):
    assert build_hexagram(lines).number == number


def test_changing_lines_read_as_primary_pattern():
    # 6 reads as yin and 9 as yang in the primary hexagram.
    assert build_hexagram([9, 9, 9, 6, 6, 6]).number == 11
    assert build_hexagram([6, 7, 8, 9, 7, 8]).number == 47


def test_build_hexagram_rejects_wrong_length():
    with pytest.raises(ValueError):
        build_hexagram([7, 7, 7])


def test_binary_to_number_rejects_unknown_pattern():
    with pytest.raises(ValueError):
        binary_to_number("1111")


def test_hexagram_model_rejects_mismatched_changing_lines():
    with pytest.raises(ValueError):
        Hexagram(number=1, name="The Creative", lines=[9, 7, 7, 7, 7, 7], changing_lines=[2])


def test_hexagram_model_rejects_unsorted_changing_lines():
    with pytest.raises(ValueError, match="must be"):
        Hexagram(
            number=47, name="Oppression (Exhaustion)",
            lines=[6, 7, 8, 9, 7, 8], changing_lines=[4, 1],
        )


def test_hexagram_model_rejects_number_that_lines_do_not_form():
    with pytest.raises(ValueError, match="form hexagram 2"):
        Hexagram.model_validate({"number": 1, "name": "The Creative", "lines": [8] * 6})


def test_hexagram_model_rejects_non_canonical_name():
    with pytest.raises(ValueError, match="The Receptive"):
        Hexagram.model_validate({"number": 2, "name": "Totally Made Up", "lines": [8] * 6})


def test_hexagram_model_accepts_consistent_reading():
    hexagram = Hexagram.model_validate(
        {"number": 47, "name": "Oppression (Exhaustion)", "lines": [6, 7, 8, 9, 7, 8], "changingLines": [1, 4]}
    )
    assert hexagram == build_hexagram([6, 7, 8, 9, 7, 8])


def test_hexagram_model_derives_missing_changing_lines():
    hexagram = Hexagram.model_validate({"number": 1, "name": "The Creative", "lines": [9, 7, 7, 7, 7, 9]})
    assert hexagram.changing_lines == [1, 6]


def test_hexagram_model_rejects_invalid_line_value():
    with pytest.raises(ValueError):
        Hexagram(number=1, name="The Creative", lines=[5, 7, 7, 7, 7, 7], changing_lines=[])


# ---------------------------------------------------------------------------
# Relating hexagram
# ---------------------------------------------------------------------------

def test_relating_hexagram_flips_changing_lines():
    relating = relating_hexagram(build_hexagram([9, 9, 9, 6, 6, 6]))
    assert relating is not None
    assert relating.lines == [8, 8, 8, 7, 7, 7]
    assert relating.number == 12
    assert relating.changing_lines == []


def test_relating_hexagram_none_without_changes():
    assert relating_hexagram(build_hexagram([7, 7, 7, 8, 8, 8])) is None


# ---------------------------------------------------------------------------
# Daily hexagram
# ---------------------------------------------------------------------------

def test_daily_hexagram_is_stable_for_a_day():
    day = date(2024, 3, 15)
    assert daily_hexagram(day) == daily_hexagram(day)


def test_daily_hexagram_varies_across_days():
    readings = {tuple(daily_hexagram(date(2024, 1, d)).lines) for d in range(1, 29)}
    assert len(readings) > 1


def test_local_date_respects_timezone():
    moment = datetime(2024, 3, 15, 23, 30, tzinfo=timezone.utc)
    assert local_date("UTC", now=moment) == date(2024, 3, 15)
    assert local_date("Asia/Tokyo", now=moment) == date(2024, 3, 16)


def test_local_date_rejects_unknown_timezone():
    with pytest.raises(InputValidationError, match="Unknown timezone"):
        local_date("Mars/Olympus_Mons")
