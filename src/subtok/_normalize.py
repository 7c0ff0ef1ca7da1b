"""
Text normalization shared by training and encoding.

Both sides must cut words at the same boundaries, otherwise merges learned
during training would never match at encode time.
"""

from typing import Final

import regex as re

from .types import Token, WordForm

# sentinel appended to every word; "<", "/" and ">" never survive
# normalization so it cannot collide with word content
END_OF_WORD: Final[Token] = "</w>"

# anything that is neither a letter, a number, nor whitespace
_STRIP_PAT: Final = re.compile(r"[^\p{L}\p{N}\s]")
_WS_PAT: Final = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """
    Lowercase ``text``, replace punctuation and symbols with spaces and
    collapse whitespace runs to single spaces.

    :param text: Raw input text.
    :returns: Normalized text with words separated by single spaces.
    """
    return " ".join(normalize(text))


def normalize(text: str) -> list[str]:
    """
    Split text into normalized word units.

    :param text: Raw input text.
    :returns: Lowercase alphanumeric words in their original order.
    """
    stripped = _STRIP_PAT.sub(" ", text.lower())
    return [word for word in _WS_PAT.split(stripped) if word]


def word_symbols(word: str) -> WordForm:
    """Return the characters of ``word`` followed by the end-of-word marker."""
    return [*word, END_OF_WORD]


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs to one space and trim both ends."""
    return _WS_PAT.sub(" ", text).strip()
