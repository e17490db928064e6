"""
Candidate label generation for short domain scans.

Produces every admissible label of a given length (1-4 characters) over
lowercase letters, optional digits and the hyphen, plus a curated set of
4-character repeat patterns used instead of the exhaustive length-4 scan.

Sequences are lazy and restartable: iterating a CandidateSequence twice
walks the space twice, and its size is known without materializing it.
"""

import string
from typing import Callable, Iterator

HYPHEN = "-"
LETTERS = string.ascii_lowercase
DIGITS = string.digits

MIN_LABEL_LENGTH = 1
MAX_LABEL_LENGTH = 4

_LABEL_CHARS = frozenset(LETTERS + DIGITS + HYPHEN)


def alphabet(letters_only: bool) -> str:
    """Symbols a label may use, hyphen excluded."""
    return LETTERS if letters_only else LETTERS + DIGITS


def is_valid_label(label: str) -> bool:
    """Check length, character set and hyphen placement of a label."""
    if not MIN_LABEL_LENGTH <= len(label) <= MAX_LABEL_LENGTH:
        return False
    if label.startswith(HYPHEN) or label.endswith(HYPHEN) or HYPHEN * 2 in label:
        return False
    return all(char in _LABEL_CHARS for char in label)


def iter_labels(length: int, symbols: str) -> Iterator[str]:
    """
    Yield every label of `length` over `symbols` plus the hyphen.

    Length 1 enumerates `symbols` directly. Longer labels are explored
    depth-first with an explicit stack: a hyphen is never pushed in first
    position or after another hyphen, and completed labels ending in a
    hyphen are dropped. Labels come out in `symbols` order, hyphen last.
    """
    if length == 1:
        yield from symbols
        return

    chars = symbols + HYPHEN
    stack = [""]
    while stack:
        current = stack.pop()
        if len(current) == length:
            if not current.endswith(HYPHEN):
                yield current
            continue
        for char in reversed(chars):
            if char == HYPHEN and (not current or current.endswith(HYPHEN)):
                continue
            stack.append(current + char)


def count_labels(length: int, symbols_count: int) -> int:
    """Number of labels iter_labels yields for an alphabet of the given size."""
    if length == 1:
        return symbols_count
    # plain: prefixes ending in a symbol, hyphenated: prefixes ending in '-'
    plain, hyphenated = symbols_count, 0
    for _ in range(length - 1):
        plain, hyphenated = symbols_count * (plain + hyphenated), plain
    return plain


def iter_repeat_patterns(symbols: str) -> Iterator[str]:
    """
    Yield 4-character labels built from two distinct symbols c1 and c2.

    Three classes, in this order: c1c1c1c1; three c1 and one c2 in each of
    the four positions; and c1c1c2c2, c1c2c2c1, c1c2c1c2.
    """
    for c in symbols:
        yield c * 4

    for c1 in symbols:
        for c2 in symbols:
            if c1 == c2:
                continue
            yield c1 + c1 + c1 + c2
            yield c1 + c1 + c2 + c1
            yield c1 + c2 + c1 + c1
            yield c2 + c1 + c1 + c1

    for c1 in symbols:
        for c2 in symbols:
            if c1 == c2:
                continue
            yield c1 + c1 + c2 + c2
            yield c1 + c2 + c2 + c1
            yield c1 + c2 + c1 + c2


def count_repeat_patterns(symbols_count: int) -> int:
    pairs = symbols_count * (symbols_count - 1)
    return symbols_count + 4 * pairs + 3 * pairs


class CandidateSequence:
    """A named, sized and restartable lazy sequence of candidate labels."""

    def __init__(self, name: str, factory: Callable[[], Iterator[str]], size: int) -> None:
        self._name = name
        self._factory = factory
        self._size = size

    @property
    def name(self) -> str:
        return self._name

    def __iter__(self) -> Iterator[str]:
        return self._factory()

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"CandidateSequence(name={self._name!r}, size={self._size})"


class CandidateGenerator:
    """Builds candidate sequences for the configured scan mode."""

    def generate(self, length: int, letters_only: bool) -> CandidateSequence:
        """
        Every valid label of the given length.

        Args:
            length: Label length, 1 to 4
            letters_only: Restrict symbols to a-z

        Raises:
            ValueError: If length is outside 1-4
        """
        if not MIN_LABEL_LENGTH <= length <= MAX_LABEL_LENGTH:
            raise ValueError(
                f"length must be between {MIN_LABEL_LENGTH} and {MAX_LABEL_LENGTH}, got {length}"
            )
        symbols = alphabet(letters_only)
        return CandidateSequence(
            name=f"length-{length}",
            factory=lambda: iter_labels(length, symbols),
            size=count_labels(length, len(symbols)),
        )

    def generate_repeat_patterns(self, letters_only: bool) -> CandidateSequence:
        """The curated 4-character repeat-pattern set."""
        symbols = alphabet(letters_only)
        return CandidateSequence(
            name="repeat-patterns",
            factory=lambda: iter_repeat_patterns(symbols),
            size=count_repeat_patterns(len(symbols)),
        )

    def build_scan_plan(self, full_scan: bool, letters_only: bool) -> list[CandidateSequence]:
        """
        Sequences to probe for a run, in dispatch order.

        Full scan covers lengths 1-4 exhaustively. The default covers
        lengths 1-3 and substitutes the repeat-pattern set for length 4.
        """
        max_length = MAX_LABEL_LENGTH if full_scan else MAX_LABEL_LENGTH - 1
        plan = [
            self.generate(length, letters_only)
            for length in range(MIN_LABEL_LENGTH, max_length + 1)
        ]
        if not full_scan:
            plan.append(self.generate_repeat_patterns(letters_only))
        return plan
