"""
SortKey generation - fractional indexing over a 62-symbol alphabet.

Keys order siblings (blocks on a page, links in a group) by plain string
comparison, so a single row can be moved or inserted without renumbering
its neighbours.

Key behaviors:
- generate(prev, next) returns a key strictly between prev and next
- Empty prev/next mean "no neighbour on that side"
- keys_for_sequence(n) assigns fresh keys for a bulk reorder

Functional Core - pure, no I/O.
"""

from __future__ import annotations

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
BASE = len(ALPHABET)

MIN_CHAR = ALPHABET[0]
MAX_CHAR = ALPHABET[-1]
MID_CHAR = ALPHABET[(BASE - 1) // 2]  # "U", 31st symbol

_RANKS = {ch: idx for idx, ch in enumerate(ALPHABET)}


class SortKeyError(ValueError):
    """Raised when a key contains characters outside the alphabet."""


def _rank(ch: str) -> int:
    try:
        return _RANKS[ch]
    except KeyError:
        raise SortKeyError(f"Invalid sort key character {ch!r}") from None


def validate_key(key: str) -> str:
    """Return key unchanged, raising SortKeyError if it is not a valid key."""
    if not key:
        raise SortKeyError("Sort key must not be empty")
    for ch in key:
        _rank(ch)
    return key


def increment(key: str) -> str:
    """Smallest-step key after `key`."""
    if not key:
        return MID_CHAR

    chars = list(key)
    for i in range(len(chars) - 1, -1, -1):
        idx = _rank(chars[i])
        if idx < BASE - 1:
            chars[i] = ALPHABET[idx + 1]
            return "".join(chars)
    return key + MIN_CHAR


def decrement(key: str) -> str:
    """Smallest-step key before `key`."""
    if not key:
        return MID_CHAR

    chars = list(key)
    for i in range(len(chars) - 1, -1, -1):
        idx = _rank(chars[i])
        if idx > 0:
            chars[i] = ALPHABET[idx - 1]
            return "".join(chars)
    # All minimum: nothing sorts strictly before this key.
    return MIN_CHAR + key


def _midpoint(lo: str, hi: str) -> str:
    """Floor of the base-62 mean of two equal-width keys, same width."""
    summed: list[int] = []
    carry = 0
    for a, b in zip(reversed(lo), reversed(hi), strict=True):
        value = _rank(a) + _rank(b) + carry
        summed.append(value % BASE)
        carry = value // BASE
    summed.append(carry)
    summed.reverse()

    halved: list[int] = []
    remainder = 0
    for digit in summed:
        value = remainder * BASE + digit
        halved.append(value // 2)
        remainder = value % 2

    # The leading digit of the halved sum is always zero.
    return "".join(ALPHABET[d] for d in halved[1:])


def between(prev: str, next_key: str) -> str:
    """Key strictly between two non-empty keys, prev < next_key."""
    width = max(len(prev), len(next_key))
    lo = prev.ljust(width, MIN_CHAR)
    hi = next_key.ljust(width, MIN_CHAR)

    result = _midpoint(lo, hi)
    if result == lo:
        # Adjacent at this width: extend the lower key instead of colliding.
        return lo + MID_CHAR
    return result


def generate(prev: str | None = None, next_key: str | None = None) -> str:
    """
    Generate a sort key after `prev` and before `next_key`.

    Either neighbour may be empty/None. Callers must not pass equal keys or
    an out-of-order pair; the result is then best-effort only.
    """
    prev = prev or ""
    next_key = next_key or ""

    if not prev and not next_key:
        return MID_CHAR
    if not prev:
        return decrement(next_key)
    if not next_key:
        return increment(prev)
    return between(prev, next_key)


def keys_for_sequence(count: int) -> list[str]:
    """
    Fresh, strictly increasing keys for `count` siblings in display order.

    Keys are spread evenly across the key space so later sparse moves have
    room on both sides. Single characters are used while they suffice; all
    keys share one width so none is a prefix of another.
    """
    if count < 0:
        raise ValueError("count must be non-negative")
    if count == 0:
        return []

    width = 1
    while BASE**width - 1 <= count:
        width += 1
    space = BASE**width

    keys: list[str] = []
    for position in range(count):
        value = (position + 1) * (space - 1) // (count + 1)
        digits = []
        for _ in range(width):
            value, digit = divmod(value, BASE)
            digits.append(ALPHABET[digit])
        keys.append("".join(reversed(digits)))
    return keys
