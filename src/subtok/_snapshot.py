"""
Flat snapshot record of a trained tokenizer.

The record is JSON compatible and keeps insertion order::

    {
        "vocab": {token: id, ...},
        "merges": [[left, right], ...],
        "special_tokens": {token: id, ...},
        "vocab_size": int,
    }
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, TypedDict
import logging

from .errors import ModelLoadError
from .types import MergeRule, Token, TokenId
from .vocab import DEFAULT_SPECIAL_TOKENS, Vocabulary

SNAPSHOT_KEYS: Final[tuple[str, ...]] = ("vocab", "merges", "special_tokens", "vocab_size")

log = logging.getLogger(__name__)


class Snapshot(TypedDict):
    vocab: dict[Token, TokenId]
    merges: list[list[Token]]
    special_tokens: dict[Token, TokenId]
    vocab_size: int


@dataclass
class SnapshotState:
    """Validated tokenizer state ready to be swapped in."""

    vocab: Vocabulary
    merges: list[MergeRule]


def build_snapshot(vocab: Vocabulary, merges: Sequence[MergeRule]) -> Snapshot:
    """Return the flat record for ``vocab`` and ``merges``."""
    return {
        "vocab": dict(vocab.items()),
        "merges": [[rule.left, rule.right] for rule in merges],
        "special_tokens": dict(vocab.special_toks),
        "vocab_size": vocab.size,
    }


def _parse_id(value: Any, where: str) -> TokenId:
    """Accept ints and decimal strings; bools are rejected."""
    if isinstance(value, bool):
        raise ModelLoadError(f"{where}: token id must be an integer, got {value!r}")
    if isinstance(value, int):
        tid = value
    elif isinstance(value, str):
        try:
            tid = int(value)
        except ValueError as e:
            raise ModelLoadError(f"{where}: token id is not a number: {value!r}") from e
    else:
        raise ModelLoadError(f"{where}: token id must be an integer, got {value!r}")
    if tid < 0:
        raise ModelLoadError(f"{where}: token id must be non-negative, got {tid}")
    return tid


def _parse_table(data: Any, name: str) -> dict[Token, TokenId]:
    if not isinstance(data, Mapping):
        raise ModelLoadError(f"{name} must be a mapping of token to id")
    table: dict[Token, TokenId] = {}
    for tok, value in data.items():
        if not isinstance(tok, str) or not tok:
            raise ModelLoadError(f"{name}: tokens must be non-empty strings, got {tok!r}")
        table[tok] = _parse_id(value, name)
    return table


def validate_snapshot(data: Any) -> SnapshotState:
    """
    Check a snapshot record and convert it into tokenizer state.

    Nothing is shared with ``data``: the caller can swap the returned state
    in without further copying.

    :param data: Record as produced by :func:`build_snapshot` or parsed JSON.
    :returns: Vocabulary and merge list rebuilt from the record.
    :raises ModelLoadError: If the record is structurally invalid or inconsistent.
    """
    if not isinstance(data, Mapping):
        raise ModelLoadError("snapshot must be a mapping")

    missing = [key for key in SNAPSHOT_KEYS if key not in data]
    if missing:
        raise ModelLoadError(f"snapshot is missing keys: {', '.join(missing)}")

    tok2id = _parse_table(data["vocab"], "vocab")
    special_toks = _parse_table(data["special_tokens"], "special_tokens")

    # ids must be unique across the whole table
    seen: dict[TokenId, Token] = {}
    for tok, tid in tok2id.items():
        if tid in seen:
            raise ModelLoadError(
                f"vocab: id {tid} assigned to both {seen[tid]!r} and {tok!r}"
            )
        seen[tid] = tok

    for tok, tid in special_toks.items():
        if tok2id.get(tok) != tid:
            raise ModelLoadError(
                f"special_tokens: {tok!r} -> {tid} does not match vocab entry"
            )

    absent = [tok for tok in DEFAULT_SPECIAL_TOKENS if tok not in special_toks]
    if absent:
        raise ModelLoadError(f"special_tokens: missing reserved tokens {absent}")

    raw_merges = data["merges"]
    if isinstance(raw_merges, (str, bytes)) or not isinstance(raw_merges, Sequence):
        raise ModelLoadError("merges must be a sequence of (left, right) pairs")
    merges: list[MergeRule] = []
    for i, pair in enumerate(raw_merges):
        if (
            isinstance(pair, (str, bytes))
            or not isinstance(pair, Sequence)
            or len(pair) != 2
            or not all(isinstance(half, str) and half for half in pair)
        ):
            raise ModelLoadError(f"merges[{i}]: expected two non-empty strings, got {pair!r}")
        merges.append(MergeRule(pair[0], pair[1]))

    size = _parse_id(data["vocab_size"], "vocab_size")
    min_size = max(seen) + 1 if seen else 0
    if size < min_size:
        raise ModelLoadError(f"vocab_size {size} is smaller than largest id + 1 ({min_size})")

    log.debug(
        f"validated snapshot: {len(tok2id)} tokens, {len(special_toks)} special, "
        f"{len(merges)} merges"
    )
    return SnapshotState(
        vocab=Vocabulary._from_tables(tok2id, special_toks, size),
        merges=merges,
    )


__all__ = ["Snapshot", "SnapshotState", "build_snapshot", "validate_snapshot"]
