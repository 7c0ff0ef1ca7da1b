"""Bidirectional token <-> id table with a reserved special-token subset."""

import logging
from collections.abc import ItemsView, Iterator, KeysView
from typing import Final, Self

from .errors import SpecialTokenError, VocabularyError
from .types import Token, TokenId

PAD: Final[Token] = "<PAD>"
UNK: Final[Token] = "<UNK>"
BOS: Final[Token] = "<BOS>"
EOS: Final[Token] = "<EOS>"

DEFAULT_SPECIAL_TOKENS: Final[dict[Token, TokenId]] = {
    PAD: 0,
    UNK: 1,
    BOS: 2,
    EOS: 3,
}

log = logging.getLogger(__name__)


class Vocabulary:
    """
    Token table owned by a single tokenizer.

    Ids are handed out from ``size`` (one past the largest assigned id) and
    are never reused, removed or renumbered. Special tokens live in the same
    table and are additionally tracked in ``special_toks``.
    """

    def __init__(self) -> None:
        # token -> id, in insertion order
        self._tok2id: dict[Token, TokenId] = {}
        self.special_toks: dict[Token, TokenId] = {}
        self.size: int = 0
        # lazily built inverse of _tok2id
        self._id2tok: dict[TokenId, Token] | None = None

    @classmethod
    def with_defaults(cls) -> Self:
        """Return a vocabulary seeded with ``<PAD> <UNK> <BOS> <EOS>`` at ids 0-3."""
        vocab = cls()
        for tok, tid in DEFAULT_SPECIAL_TOKENS.items():
            vocab.add_special_token(tok, tid)
        return vocab

    def add_special_token(self, token: Token, tid: TokenId | None = None) -> TokenId:
        """
        Register ``token`` as special, at ``tid`` or at the next free id.

        :raises SpecialTokenError: If ``token`` is already assigned another id.
        :raises VocabularyError: If ``tid`` is negative or belongs to another token.
        """
        if tid is None:
            tid = self._tok2id.get(token, self.size)
        if tid < 0:
            raise VocabularyError("token id must be non-negative", invalid_tok=tid)

        existing = self._tok2id.get(token)
        if existing is not None and existing != tid:
            raise SpecialTokenError(
                f"token already assigned id {existing}", found_tokens={token}
            )
        owner = self.token_of(tid)
        if owner is not None and owner != token:
            raise VocabularyError(f"id {tid} already assigned", invalid_tok=owner)

        self.special_toks[token] = tid
        self._insert(token, tid)
        return tid

    def add_token(self, token: Token) -> TokenId:
        """Insert ``token`` at the next free id; existing tokens keep theirs."""
        tid = self._tok2id.get(token)
        if tid is None:
            tid = self.size
            self._insert(token, tid)
        return tid

    def id_of(self, token: Token) -> TokenId | None:
        return self._tok2id.get(token)

    def token_of(self, tid: TokenId) -> Token | None:
        if self._id2tok is None:
            # later insertions win, although ids are never shared
            self._id2tok = {i: tok for tok, i in self._tok2id.items()}
        return self._id2tok.get(tid)

    def is_special(self, token: Token) -> bool:
        return token in self.special_toks

    def tokens(self) -> KeysView[Token]:
        return self._tok2id.keys()

    def items(self) -> ItemsView[Token, TokenId]:
        return self._tok2id.items()

    def _insert(self, token: Token, tid: TokenId) -> None:
        self._tok2id[token] = tid
        self.size = max(self.size, tid + 1)
        self._id2tok = None

    def __len__(self) -> int:
        return len(self._tok2id)

    def __contains__(self, token: object) -> bool:
        return token in self._tok2id

    def __iter__(self) -> Iterator[Token]:
        return iter(self._tok2id)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(size={self.size}, "
            f"tokens={len(self._tok2id)}, special={len(self.special_toks)})"
        )

    @classmethod
    def _from_tables(
        cls,
        tok2id: dict[Token, TokenId],
        special_toks: dict[Token, TokenId],
        size: int,
    ) -> Self:
        """Build a vocabulary from already validated snapshot tables."""
        vocab = cls()
        vocab._tok2id = dict(tok2id)
        vocab.special_toks = dict(special_toks)
        vocab.size = size
        log.debug(f"restored vocabulary with {len(vocab)} tokens (size {size})")
        return vocab
