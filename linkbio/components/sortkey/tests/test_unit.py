"""
SortKey component unit tests.

Covers neighbour-relative generation, the adjacency collision, and bulk
sequence assignment.
"""

from __future__ import annotations

import random

import pytest

from linkbio.components.sortkey import (
    ALPHABET,
    MID_CHAR,
    SortKeyError,
    between,
    decrement,
    generate,
    increment,
    keys_for_sequence,
    validate_key,
)

# --- Alphabet ---


def test_alphabet_is_sorted_and_complete():
    assert len(ALPHABET) == 62
    assert "".join(sorted(ALPHABET)) == ALPHABET
    assert MID_CHAR == "U"


# --- generate() ---


class TestGenerate:
    def test_both_empty_returns_midpoint(self):
        assert generate("", "") == "U"
        assert generate(None, None) == "U"
        assert generate() == generate()

    def test_before_next(self):
        key = generate("", "U")
        assert key == "T"
        assert key < "U"

    def test_after_prev(self):
        key = generate("U", "")
        assert key == "V"
        assert key > "U"

    def test_between_distant_keys(self):
        assert generate("A", "C") == "B"

    def test_between_adjacent_keys_extends_prev(self):
        key = generate("A", "B")
        assert key == "AU"
        assert "A" < key < "B"

    def test_between_keys_of_different_length(self):
        key = generate("A", "A1")
        assert "A" < key < "A1"

    def test_between_requires_carry(self):
        # A naive per-position midpoint would give "AH", which sorts before "AZ".
        key = generate("AZ", "B0")
        assert "AZ" < key < "B0"

    @pytest.mark.parametrize(
        ("prev", "next_key"),
        [
            ("0", "1"),
            ("1", "z"),
            ("U", "V"),
            ("Ty", "U"),
            ("a", "aU"),
            ("zz", "zzz"),
            ("Az", "B"),
            ("12", "1A3"),
        ],
    )
    def test_result_strictly_between(self, prev: str, next_key: str):
        key = generate(prev, next_key)
        assert prev < key < next_key

    def test_random_pairs_strictly_between(self):
        rng = random.Random(1234)
        for _ in range(500):
            a = "".join(rng.choice(ALPHABET) for _ in range(rng.randint(1, 5)))
            b = "".join(rng.choice(ALPHABET) for _ in range(rng.randint(1, 5)))
            # Trailing minimum characters make keys equal in value but not in text.
            a, b = a.rstrip("0") or "1", b.rstrip("0") or "1"
            if a == b:
                continue
            prev, next_key = min(a, b), max(a, b)
            key = generate(prev, next_key)
            assert prev < key < next_key, (prev, next_key, key)

    def test_repeated_insertion_at_front_stays_ordered(self):
        keys = ["U"]
        for _ in range(25):
            keys.insert(0, generate("", keys[0]))
        assert keys == sorted(keys)
        assert len(set(keys)) == len(keys)

    def test_repeated_insertion_between_stays_ordered(self):
        lo, hi = "A", "B"
        for _ in range(50):
            mid = generate(lo, hi)
            assert lo < mid < hi
            hi = mid

    def test_invalid_character_rejected(self):
        with pytest.raises(SortKeyError):
            generate("A-", "")


# --- increment / decrement ---


class TestIncrementDecrement:
    def test_increment_bumps_last_char(self):
        assert increment("Ub") == "Uc"

    def test_increment_all_max_appends_min(self):
        assert increment("zz") == "zz0"
        assert increment("zz") > "zz"

    def test_increment_skips_trailing_max(self):
        assert increment("Az") == "Bz"

    def test_decrement_lowers_last_char(self):
        assert decrement("Ub") == "Ua"

    def test_decrement_all_min_prepends(self):
        assert decrement("00") == "000"

    def test_decrement_skips_trailing_min(self):
        assert decrement("B0") == "A0"

    @pytest.mark.parametrize("key", ["U", "Ub", "a5", "1x", "Qw"])
    def test_round_trip(self, key: str):
        assert increment(decrement(key)) == key
        assert decrement(increment(key)) == key

    def test_empty_key_gives_midpoint(self):
        assert increment("") == "U"
        assert decrement("") == "U"


# --- between() ---


def test_between_pads_shorter_key():
    assert between("A", "C") == "B"
    assert between("A0", "A2") == "A1"


# --- keys_for_sequence() ---


class TestKeysForSequence:
    def test_empty(self):
        assert keys_for_sequence(0) == []

    def test_single_key_is_midpoint(self):
        assert keys_for_sequence(1) == ["U"]

    def test_small_sequence_uses_single_chars(self):
        keys = keys_for_sequence(10)
        assert all(len(k) == 1 for k in keys)
        assert keys == sorted(keys)
        assert len(set(keys)) == 10

    def test_full_alphabet_fits_single_chars(self):
        keys = keys_for_sequence(60)
        assert all(len(k) == 1 for k in keys)
        assert keys == sorted(keys)

    def test_large_sequence_widens_uniformly(self):
        keys = keys_for_sequence(200)
        assert {len(k) for k in keys} == {2}
        assert keys == sorted(keys)
        assert len(set(keys)) == 200

    def test_leaves_room_at_both_ends(self):
        keys = keys_for_sequence(5)
        before = generate("", keys[0])
        after = generate(keys[-1], "")
        assert before < keys[0]
        assert after > keys[-1]

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            keys_for_sequence(-1)


def test_validate_key():
    assert validate_key("Ab9") == "Ab9"
    with pytest.raises(SortKeyError):
        validate_key("")
    with pytest.raises(SortKeyError):
        validate_key("a b")
