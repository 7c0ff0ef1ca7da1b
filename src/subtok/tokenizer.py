"""
Word-level BPE tokenizer: training, encoding, decoding and persistence.
"""

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final
import functools
import json
import logging
import os

from ._bpe import apply_merges
from ._decorators import measure_time
from ._normalize import END_OF_WORD, collapse_whitespace, normalize, word_symbols
from ._sanitise import _render_token
from ._version import __version__
from ._snapshot import Snapshot, build_snapshot, validate_snapshot
from .errors import ModelLoadError, TrainingError, VocabularyError
from .parallel import ParallelMode, ParallelStrategy
from .trainer import train_bpe
from .types import FrequencyTable, MergeRule, Token, TokenId
from .vocab import BOS, EOS, UNK, Vocabulary

FORMAT: Final[str] = "subtok"
FORMAT_VERSION: Final[int] = 1
MODEL_SUFFIX: Final[str] = ".model"
VOCAB_SUFFIX: Final[str] = ".vocab"
# distinct words whose segmentation is kept between encode calls
CACHE_SIZE: Final[int] = 10_000

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class VocabStats:
    """Summary counts of a tokenizer's vocabulary."""

    total_vocab_size: int
    special_token_count: int
    regular_token_count: int
    merge_rule_count: int


def _word_frequencies(text: str) -> FrequencyTable:
    """Count normalized words in order of first appearance."""
    freqs: FrequencyTable = {}
    for word in normalize(text):
        freqs[word] = freqs.get(word, 0) + 1
    return freqs


class BPETokenizer:
    """
    Subword tokenizer that learns merges between characters of whole words.

    Text is lowercased and stripped of punctuation, split into words, and
    each word gets an end-of-word marker so merges never cross word
    boundaries. ``<PAD>``, ``<UNK>``, ``<BOS>`` and ``<EOS>`` hold ids 0-3.

    An instance must not be trained while another thread encodes or
    decodes with it.
    """

    TOKENIZER_TYPE: str = "bpe"

    def __init__(self, cache_size: int = CACHE_SIZE) -> None:
        """
        Initialize an untrained tokenizer holding only the special tokens.

        :param cache_size: Most recently encoded words whose subwords are cached.
        """
        self.cache_size = cache_size
        self.vocab: Vocabulary = Vocabulary.with_defaults()
        # learned merge rules, in learning order
        self._merges: list[MergeRule] = []
        # word -> subword tokens, valid for the current merges only
        self._cache = self._new_cache()

    @property
    def merges(self) -> tuple[MergeRule, ...]:
        return tuple(self._merges)

    @property
    def special_toks(self) -> dict[Token, TokenId]:
        return dict(self.vocab.special_toks)

    @property
    def vocab_size(self) -> int:
        """One past the largest assigned token id."""
        return self.vocab.size

    def add_special_token(self, token: Token, tid: TokenId | None = None) -> TokenId:
        """
        Register a special token at ``tid`` or at the next free id.

        Special tokens survive retraining with the same ids.
        """
        return self.vocab.add_special_token(token, tid)

    @measure_time
    def train(
        self, corpus: str | list[str], vocab_size: int, verbose: bool = False
    ) -> None:
        """
        Learn merges from ``corpus`` until the vocabulary holds ``vocab_size`` ids.

        Any previously learned tokens and merges are discarded; special tokens
        are kept. Every distinct character of the raw corpus is added first
        (in order of first appearance), then any lowercase word character
        not yet seen, then the end-of-word marker, then one token per merge.
        Training stops early once no adjacent pairs remain.

        :param corpus: Training text as a single string or list of strings.
        :param vocab_size: Target vocabulary size including special tokens.
        :param verbose: Log progress every 100 vocabulary entries.
        :raises VocabularyError: If ``vocab_size`` is below the special token count.
        :raises TrainingError: If the corpus contains no words after normalization.
        """
        if isinstance(corpus, list):
            corpus = "\n".join(corpus)

        vocab = Vocabulary()
        for tok, tid in self.vocab.special_toks.items():
            vocab.add_special_token(tok, tid)

        if vocab_size < vocab.size:
            raise VocabularyError(
                f"vocab size must be at least {vocab.size}", vocab_size=vocab_size
            )

        words = _word_frequencies(corpus)
        if not words:
            raise TrainingError(
                "no words left after normalization, no training performed",
                vocab_size=vocab_size,
            )

        # base alphabet: raw corpus characters, then the lowercased word
        # characters encode will look up, then the word marker
        for char in dict.fromkeys(corpus):
            vocab.add_token(char)
        for word in words:
            for char in word:
                vocab.add_token(char)
        vocab.add_token(END_OF_WORD)
        log.debug(f"seeded vocabulary with {vocab.size} ids before merging")

        if vocab.size > vocab_size:
            log.warning(
                f"base alphabet alone needs {vocab.size} ids (requested {vocab_size}), "
                "no merges learned"
            )

        result = train_bpe(words, vocab, vocab_size, verbose=verbose)

        if result.converged:
            log.warning(
                f"no more pairs to merge after {result.n_merges_completed} merges "
                f"(vocab size {vocab.size}, requested {vocab_size}) stopping early"
            )

        self.vocab = vocab
        self._merges = result.merges
        # invalidate word cache since merges changed
        self._cache = self._new_cache()

    def tokenize(self, text: str) -> list[Token]:
        """Return the subword strings ``encode`` would look up, without specials."""
        toks: list[Token] = []
        for word in normalize(text):
            toks.extend(self._segment(word))
        return toks

    def encode(self, text: str, add_special_tokens: bool = True) -> list[TokenId]:
        """
        Encode text into token ids.

        Subwords missing from the vocabulary (characters never seen during
        training) become the ``<UNK>`` id.

        :param text: Text to encode.
        :param add_special_tokens: Wrap the ids in ``<BOS>`` and ``<EOS>``.
        :returns: Encoded id sequence.
        """
        special = self.vocab.special_toks
        unk = special[UNK]

        ids: list[TokenId] = []
        if add_special_tokens:
            ids.append(special[BOS])

        for tok in self.tokenize(text):
            tid = self.vocab.id_of(tok)
            ids.append(unk if tid is None else tid)

        if add_special_tokens:
            ids.append(special[EOS])

        return ids

    def decode(self, ids: list[TokenId], skip_special_tokens: bool = True) -> str:
        """
        Decode token ids back into normalized text.

        Ids without a token are dropped. End-of-word markers become single
        spaces and the result is whitespace-collapsed and trimmed.

        :param ids: Token id sequence.
        :param skip_special_tokens: Leave special tokens out of the output.
        :returns: Decoded text.
        """
        parts: list[Token] = []
        for tid in ids:
            tok = self.vocab.token_of(tid)
            if tok is None:
                continue
            if skip_special_tokens and self.vocab.is_special(tok):
                continue
            parts.append(tok)

        return collapse_whitespace("".join(parts).replace(END_OF_WORD, " "))

    def encode_batch(
        self,
        texts: list[str],
        add_special_tokens: bool = True,
        num_workers: int | None = None,
        parallel_mode: ParallelStrategy | ParallelMode = "auto",
    ) -> list[list[TokenId]]:
        """
        Encode many texts, optionally on a thread pool.

        ``off`` encodes serially, ``batch`` always uses the pool and ``auto``
        uses it only for more than one text and more than one worker.

        :raises ConfigError: If ``parallel_mode`` is not a known mode.
        """
        mode = ParallelMode.get(parallel_mode)
        if not texts:
            return []

        if num_workers is None:
            workers = os.cpu_count() or 1
        else:
            workers = max(1, num_workers)  # "0" interpreted as 1 worker

        def encode_one(text: str) -> list[TokenId]:
            return self.encode(text, add_special_tokens=add_special_tokens)

        match mode:
            case ParallelMode.OFF:
                return [encode_one(text) for text in texts]
            case ParallelMode.AUTO if len(texts) <= 1 or workers == 1:
                return [encode_one(text) for text in texts]
            case _:
                # encoding only reads model state, pool.map keeps input order
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    return list(pool.map(encode_one, texts))

    def decode_batch(
        self, batch: list[list[TokenId]], skip_special_tokens: bool = True
    ) -> list[str]:
        """Decode multiple id sequences."""
        return [self.decode(ids, skip_special_tokens=skip_special_tokens) for ids in batch]

    def get_vocab_stats(self) -> VocabStats:
        total = self.vocab.size
        n_special = len(self.vocab.special_toks)
        return VocabStats(
            total_vocab_size=total,
            special_token_count=n_special,
            regular_token_count=total - n_special,
            merge_rule_count=len(self._merges),
        )

    def export_snapshot(self) -> Snapshot:
        """Return vocabulary, merges, special tokens and size as a plain record."""
        return build_snapshot(self.vocab, self._merges)

    def import_snapshot(self, data: Any) -> None:
        """
        Replace all learned state with the contents of a snapshot record.

        The record is validated first; on error the tokenizer is unchanged.

        :raises ModelLoadError: If the record is malformed or inconsistent.
        """
        state = validate_snapshot(data)
        self.vocab = state.vocab
        self._merges = state.merges
        self._cache = self._new_cache()
        log.info(
            f"snapshot imported: {len(self.vocab.special_toks)} special tokens, "
            f"{len(self._merges)} merge rules, {self.vocab.size} total tokens"
        )

    def save(self, file_prefix: str) -> None:
        """
        Save tokenizer state to disk.

        Creates two files: a .model file holding the snapshot as JSON and a
        .vocab file with human-readable token listings.

        :param file_prefix: Path prefix for output files.
        :raises TrainingError: If the tokenizer has not been trained yet.
        """
        # only special tokens means nothing was learned yet
        if len(self.vocab) == len(self.vocab.special_toks):
            raise TrainingError(
                f"{self.__class__.__name__} must be trained before saving"
            )
        log.info(f"saving tokenizer to {file_prefix}")
        self._save_model(file_prefix)
        self._save_vocab(file_prefix)
        log.info("tokenizer saved successfully")

    def load(self, model_filename: str) -> None:
        """
        Load tokenizer state from a .model file.

        :param model_filename: Path to the .model file.
        :raises ModelLoadError: If the file is missing, is not a .model file,
            has a mismatched format or version, or holds an invalid snapshot.
        """
        path = Path(model_filename)

        if not path.exists():
            raise ModelLoadError("model filepath does not exist", model_path=str(path))

        if not path.suffix == MODEL_SUFFIX:
            raise ModelLoadError("expected .model file", model_path=str(path))

        log.info(f"loading model from {path}")

        with path.open("r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ModelLoadError("model file is not valid JSON", model_path=str(path)) from e

        if not isinstance(data, dict) or data.get("format") != FORMAT:
            raise ModelLoadError("not a subtok model file", model_path=str(path))
        if data.get("version") != FORMAT_VERSION:
            raise ModelLoadError(
                "model version mismatch",
                model_path=str(path),
                version_mismatch=(data.get("version"), FORMAT_VERSION),
            )
        if data.get("type") != self.TOKENIZER_TYPE:
            raise ModelLoadError(
                "tokenizer type mismatch",
                model_path=str(path),
                version_mismatch=(data.get("type"), self.TOKENIZER_TYPE),
            )

        self.import_snapshot(data)

    def _save_model(self, file_prefix: str) -> None:
        """Persist the snapshot with a format header to a .model file."""
        model_path = Path(file_prefix).with_suffix(MODEL_SUFFIX)
        # create directory if does not exist
        model_path.parent.mkdir(parents=True, exist_ok=True)

        log.debug(
            f"saving {len(self.vocab)} tokens and {len(self._merges)} merge rules "
            f"to {model_path}"
        )

        record = {
            "format": FORMAT,
            "version": FORMAT_VERSION,
            "type": self.TOKENIZER_TYPE,
            "library": __version__,
            **self.export_snapshot(),
        }
        with model_path.open("w", encoding="utf-8", newline="\n") as f:
            json.dump(record, f, ensure_ascii=False, indent=2)
            f.write("\n")

    def _save_vocab(self, file_prefix: str) -> None:
        """Persist human-readable token representations to a .vocab file."""
        vocab_path = Path(file_prefix).with_suffix(VOCAB_SUFFIX)
        vocab_path.parent.mkdir(parents=True, exist_ok=True)

        log.debug(f"saving vocab to {vocab_path}")

        # merged token -> first rule that produced it
        derivations: dict[Token, MergeRule] = {}
        for rule in self._merges:
            derivations.setdefault(rule.merged, rule)

        with vocab_path.open("w", encoding="utf-8", newline="\n") as f:
            for tok, tid in self.vocab.items():
                subword = _render_token(tok)
                if self.vocab.is_special(tok):
                    f.write(f"ST [{tid}] {subword}\n")
                elif tok in derivations:
                    # token arises from merging: show derivation from child tokens
                    rule = derivations[tok]
                    left, right = _render_token(rule.left), _render_token(rule.right)
                    f.write(f"[{tid}] [{left}][{right}] -> {subword}\n")
                else:
                    # base alphabet: no merging
                    f.write(f"[{tid}] {subword}\n")

    def _new_cache(self) -> Callable[[str], tuple[Token, ...]]:
        # bounded per-word memo; rebuilt whenever the merges change
        return functools.lru_cache(maxsize=self.cache_size)(self._apply_word)

    def _apply_word(self, word: str) -> tuple[Token, ...]:
        return tuple(apply_merges(word_symbols(word), self._merges))

    def _segment(self, word: str) -> list[Token]:
        return list(self._cache(word))

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(vocab_size={self.vocab.size}, "
            f"merges={len(self._merges)})"
        )
