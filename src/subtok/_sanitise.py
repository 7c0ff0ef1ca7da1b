"""
Utilities for rendering tokens as displayable single-line strings.
"""

import unicodedata


def _escape_ctrl_chars(s: str) -> str:
    """Replace all Unicode control characters with their escape sequences."""
    cleaned = []
    for c in s:
        # control category codes vary: Cc, Cf, Cn etc.
        # so check via first character
        if unicodedata.category(c)[0] != "C":
            cleaned.append(c)
        else:
            cleaned.append(f"\\u{ord(c):04x}")
    return "".join(cleaned)


def _render_token(tok: str) -> str:
    """Escape control characters so a token fits on one line of a .vocab file."""
    return _escape_ctrl_chars(tok)
