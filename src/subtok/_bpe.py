"""
Core Byte Pair Encoding (BPE) operations on symbol lists.
"""

from collections.abc import Iterable, Sequence

from .types import MergeRule, Token, TokenPair, WordForm


def count_pairs(entries: Iterable[tuple[Sequence[Token], int]]) -> dict[TokenPair, int]:
    """
    Count adjacent symbol pairs across weighted word forms.

    Every adjacent position contributes the word's count, so a pair that
    occurs twice inside one word (``a a a``) is counted twice. Pairs are
    keyed in the order they are first met: words in iteration order, then
    left to right inside each word.

    :param entries: ``(symbols, count)`` for each distinct word.
    :returns: Mapping of ``(left, right)`` to aggregate weighted count.
    """
    counts: dict[TokenPair, int] = {}
    for symbols, freq in entries:
        if freq <= 0:
            continue
        for i in range(len(symbols) - 1):
            pair = (symbols[i], symbols[i + 1])
            counts[pair] = counts.get(pair, 0) + freq
    return counts


def best_pair(counts: dict[TokenPair, int]) -> tuple[TokenPair, int] | None:
    """
    Pick the pair to merge next.

    Order is count descending, then first-seen ascending. ``counts`` must
    come from :func:`count_pairs` so its key order is the first-seen order.
    """
    best: TokenPair | None = None
    best_count = 0
    for pair, count in counts.items():
        # strict comparison keeps the earliest pair on ties
        if count > best_count:
            best, best_count = pair, count
    if best is None:
        return None
    return best, best_count


def merge_pair(symbols: Sequence[Token], left: Token, right: Token) -> WordForm:
    """
    Replace every non-overlapping ``left right`` occurrence with ``left + right``.

    Scans left to right and resumes right after each merged pair, so the
    freshly merged token is never matched again in the same pass.
    """
    merged = left + right
    newsyms: WordForm = []

    i = 0
    n = len(symbols)
    while i < n:
        if i < n - 1 and symbols[i] == left and symbols[i + 1] == right:
            newsyms.append(merged)
            i += 2
        else:
            newsyms.append(symbols[i])
            i += 1

    return newsyms


def apply_merges(symbols: Sequence[Token], merges: Iterable[MergeRule]) -> WordForm:
    """
    Segment one word by replaying merge rules in learned order.

    A sequence of zero or one symbol is returned unchanged. The length check
    is on the marker-tagged sequence, so a one-letter word can still merge
    with its end-of-word marker exactly as it did during training.

    :param symbols: Word characters followed by the end-of-word marker.
    :param merges: Merge rules in the order they were learned.
    :returns: Final subword tokens.
    """
    toks = list(symbols)
    if len(toks) <= 1:
        return toks

    for rule in merges:
        toks = merge_pair(toks, rule.left, rule.right)
        if len(toks) == 1:
            # nothing left to pair up
            break

    return toks
