"""
Core types for tokenization.
"""

from dataclasses import dataclass
from typing import Iterator

type Token = str
type TokenId = int
type TokenPair = tuple[Token, Token]
type WordForm = list[Token]
type FrequencyTable = dict[str, int]


@dataclass(frozen=True, slots=True)
class MergeRule:
    """One learned merge: adjacent ``left`` and ``right`` become ``left + right``."""

    left: Token
    right: Token

    @property
    def merged(self) -> Token:
        return self.left + self.right

    @property
    def pair(self) -> TokenPair:
        return (self.left, self.right)

    def __iter__(self) -> Iterator[Token]:
        # unpacks like the (left, right) tuple it replaces
        yield self.left
        yield self.right
