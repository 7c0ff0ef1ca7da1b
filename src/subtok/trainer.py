"""Standalone BPE training module."""

from dataclasses import dataclass, field
from typing import Final
import logging

from ._bpe import best_pair, count_pairs, merge_pair
from ._normalize import word_symbols
from ._progress import _is_enabled
from .types import FrequencyTable, MergeRule, WordForm
from .vocab import Vocabulary

LOG_EVERY: Final[int] = 100

log = logging.getLogger(__name__)


@dataclass
class BPETrainingResult:
    """Results from one BPE training run."""

    merges: list[MergeRule]
    n_merges_completed: int
    # True when training stopped because no adjacent pairs were left
    converged: bool
    # word -> final symbol list
    final_words: dict[str, WordForm] = field(default_factory=dict)


def train_bpe(
    words: FrequencyTable,
    vocab: Vocabulary,
    target_vocab_size: int,
    verbose: bool = False,
    log_every: int = LOG_EVERY,
) -> BPETrainingResult:
    """
    Learn merge rules until ``vocab`` reaches ``target_vocab_size``.

    Each step counts weighted adjacent pairs over the current word forms,
    merges the most frequent pair (ties go to the pair seen first), records
    it as a :class:`MergeRule`, adds the merged token to ``vocab`` and
    rewrites every word form. Stops early once every word has collapsed to
    a single symbol.

    :param words: Word -> occurrence count, in first-appearance order.
    :param vocab: Vocabulary already seeded with the base alphabet; mutated.
    :param target_vocab_size: Size at which training stops.
    :param verbose: Log a progress line every ``log_every`` vocabulary entries.
    :param log_every: Progress interval in vocabulary entries.
    :returns: Learned merges in order plus convergence details.
    """
    # each distinct word keeps its own evolving symbol list
    splits: dict[str, WordForm] = {word: word_symbols(word) for word in words}
    merges: list[MergeRule] = []
    converged = False
    report = verbose and _is_enabled()

    while vocab.size < target_vocab_size:
        counts = count_pairs((splits[word], freq) for word, freq in words.items())
        picked = best_pair(counts)
        if picked is None:
            converged = True
            break

        (left, right), count = picked
        rule = MergeRule(left, right)
        merges.append(rule)

        size_before = vocab.size
        vocab.add_token(rule.merged)
        if vocab.size == size_before:
            # another pair already produced this string, no new id
            log.debug(f"merge {left!r} + {right!r} reuses existing token {rule.merged!r}")

        for word, syms in splits.items():
            if len(syms) > 1:
                splits[word] = merge_pair(syms, left, right)

        if report and vocab.size != size_before and vocab.size % log_every == 0:
            log.info(
                f"vocab size: {vocab.size}, latest: {left!r} + {right!r} = "
                f"{rule.merged!r} (count {count})"
            )

    if report:
        log.info(
            f"training complete: vocabulary {vocab.size} tokens, {len(merges)} merges"
        )

    return BPETrainingResult(
        merges=merges,
        n_merges_completed=len(merges),
        converged=converged,
        final_words=splits,
    )


__all__ = ["BPETrainingResult", "LOG_EVERY", "train_bpe"]
