"""
SBVC Diff Codec - Token-level deltas between two text buffers.

A Difference is an ordered pair of (deletions, insertions) expressed against
the tokens of a base buffer. Tokens are lines (default) or characters.

Usage:
    from sbvc.diff import diff, apply

    delta = diff("a\\nb\\n", "a\\nc\\n")
    assert apply("a\\nb\\n", delta) == "a\\nc\\n"
"""

import difflib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from sbvc.errors import CorruptDifferenceError


def tokenize(content: str, granularity: str = "line") -> List[str]:
    """Split content into diff tokens.

    Joining the tokens always gives back the original content.

    Args:
        content: Text to split
        granularity: "line" (line endings kept) or "char"

    Returns:
        List of tokens
    """
    if granularity == "line":
        return content.splitlines(keepends=True)
    if granularity == "char":
        return list(content)
    raise ValueError(f"Unknown granularity: {granularity}")


@dataclass(frozen=True)
class Deletion:
    """Remove ``count`` base tokens starting at token ``index``."""

    index: int
    count: int


@dataclass(frozen=True)
class Insertion:
    """Insert ``text`` before base token ``index``."""

    index: int
    text: str


@dataclass(frozen=True)
class Difference:
    """Delta from a base buffer to a new buffer.

    Attributes:
        deletions: Non-overlapping deletions, sorted by index
        insertions: Insertions, sorted by index
    """

    deletions: Tuple[Deletion, ...] = field(default_factory=tuple)
    insertions: Tuple[Insertion, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "Difference":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.deletions and not self.insertions

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {
            "deletions": [[d.index, d.count] for d in self.deletions],
            "insertions": [[i.index, i.text] for i in self.insertions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Difference":
        """Create from dictionary.

        Raises:
            CorruptDifferenceError: If the payload does not have the expected shape
        """
        try:
            deletions = tuple(
                Deletion(index=int(index), count=int(count))
                for index, count in data["deletions"]
            )
            insertions = []
            for index, text in data["insertions"]:
                if not isinstance(text, str):
                    raise TypeError("insertion text must be a string")
                insertions.append(Insertion(index=int(index), text=text))
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptDifferenceError(f"Invalid difference payload: {e}") from e
        return cls(deletions=deletions, insertions=tuple(insertions))


def diff(old: str, new: str, granularity: str = "line") -> Difference:
    """Compute the difference that turns ``old`` into ``new``.

    Uses difflib's SequenceMatcher with autojunk disabled, so the same pair of
    inputs always produces the same Difference.

    Args:
        old: Base content
        new: Target content
        granularity: Token unit, "line" or "char"

    Returns:
        Difference with deletions and insertions indexed on ``old``'s tokens
    """
    a = tokenize(old, granularity)
    b = tokenize(new, granularity)
    matcher = difflib.SequenceMatcher(None, a, b, autojunk=False)

    deletions: List[Deletion] = []
    insertions: List[Insertion] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        if i2 > i1:
            deletions.append(Deletion(index=i1, count=i2 - i1))
        if j2 > j1:
            insertions.append(Insertion(index=i1, text="".join(b[j1:j2])))

    return Difference(deletions=tuple(deletions), insertions=tuple(insertions))


def _check_bounds(difference: Difference, size: int) -> List[bool]:
    """Validate a difference against a base of ``size`` tokens.

    Returns:
        Per-token deletion mask
    """
    deleted = [False] * size
    end = 0
    for deletion in difference.deletions:
        if deletion.count < 1 or deletion.index < end or deletion.index + deletion.count > size:
            raise CorruptDifferenceError(
                f"Deletion {deletion.index}+{deletion.count} does not fit a base of {size} tokens"
            )
        for pos in range(deletion.index, deletion.index + deletion.count):
            deleted[pos] = True
        end = deletion.index + deletion.count

    previous = 0
    for insertion in difference.insertions:
        if insertion.index < previous or insertion.index > size:
            raise CorruptDifferenceError(
                f"Insertion at {insertion.index} does not fit a base of {size} tokens"
            )
        previous = insertion.index

    return deleted


def apply(base: str, difference: Difference, granularity: str = "line") -> str:
    """Apply a difference to base content.

    Args:
        base: Content the difference was computed against
        difference: Difference to apply
        granularity: Token unit the difference was computed with

    Returns:
        Reconstructed content

    Raises:
        CorruptDifferenceError: If the difference references tokens outside
            the base, or its entries overlap or are out of order
    """
    if difference.is_empty:
        return base

    tokens = tokenize(base, granularity)
    deleted = _check_bounds(difference, len(tokens))

    out: List[str] = []
    insertions = difference.insertions
    k = 0
    for pos in range(len(tokens) + 1):
        while k < len(insertions) and insertions[k].index == pos:
            out.append(insertions[k].text)
            k += 1
        if pos < len(tokens) and not deleted[pos]:
            out.append(tokens[pos])

    return "".join(out)
