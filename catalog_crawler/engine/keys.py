"""Enumeration key space: prefixes over a fixed alphabet."""

from __future__ import annotations

from typing import Iterator

from ..config import DEFAULT_ALPHABET


class KeySpace:
    """Ordering and tree navigation for enumeration keys.

    Keys are compared character by character using the position of each
    character in the alphabet, so ``"az" < "a0"`` whenever letters precede
    digits in the alphabet. A key sorts before every key it prefixes.
    """

    def __init__(self, alphabet: str = DEFAULT_ALPHABET) -> None:
        self.alphabet = alphabet
        self._rank = {ch: index for index, ch in enumerate(alphabet)}

    def is_valid(self, key: str) -> bool:
        return bool(key) and all(ch in self._rank for ch in key)

    def sort_key(self, key: str) -> tuple[int, ...]:
        return tuple(self._rank[ch] for ch in key)

    def roots(self) -> list[str]:
        return list(self.alphabet)

    def children(self, key: str) -> list[str]:
        return [key + ch for ch in self.alphabet]

    def iter_sorted(self, keys: list[str]) -> Iterator[str]:
        yield from sorted(keys, key=self.sort_key)

    def is_completed(self, key: str, checkpoint: str | None) -> bool:
        """Return True when ``key`` was fully processed before ``checkpoint``.

        Ancestors of the checkpoint, and the checkpoint itself, are not
        completed: they are re-entered so their remaining children run.
        """

        if not checkpoint:
            return False
        if checkpoint.startswith(key):
            return False
        return self.sort_key(key) <= self.sort_key(checkpoint)


__all__ = ["KeySpace"]
