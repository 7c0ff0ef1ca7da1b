"""Unit tests for the Vocabulary table."""

import pytest

from subtok import Vocabulary
from subtok.errors import SpecialTokenError, VocabularyError


@pytest.fixture
def vocab():
    """Return a vocabulary holding only the reserved tokens."""
    return Vocabulary.with_defaults()


def test_defaults(vocab):
    """Reserved tokens occupy the lowest ids."""
    assert [vocab.id_of(t) for t in ["<PAD>", "<UNK>", "<BOS>", "<EOS>"]] == [0, 1, 2, 3]
    assert vocab.size == 4
    assert len(vocab.special_toks) == 4


def test_add_token_assigns_next_id(vocab):
    """New tokens get consecutive ids after the specials."""
    assert vocab.add_token("a") == 4
    assert vocab.add_token("b") == 5
    assert vocab.size == 6


def test_add_token_is_idempotent(vocab):
    """Re-adding a token keeps its id and the size."""
    vocab.add_token("a")
    assert vocab.add_token("a") == 4
    assert vocab.size == 5
    assert len(vocab) == 5


def test_token_of_inverse(vocab):
    """Lookups work both ways, including after further inserts."""
    vocab.add_token("a")
    assert vocab.token_of(4) == "a"
    vocab.add_token("b")
    assert vocab.token_of(5) == "b"
    assert vocab.token_of(99) is None
    assert vocab.id_of("zz") is None


def test_special_token_at_explicit_id_grows_size(vocab):
    """Size follows the largest id, leaving a gap unassigned."""
    vocab.add_special_token("<SEP>", 10)
    assert vocab.size == 11
    assert vocab.token_of(7) is None
    assert vocab.add_token("a") == 11


def test_special_token_next_free_id(vocab):
    """Without an id the special token takes the next free one."""
    vocab.add_token("a")
    assert vocab.add_special_token("<SEP>") == 5
    assert vocab.is_special("<SEP>")
    assert not vocab.is_special("a")


def test_special_token_readd_same_id(vocab):
    """Registering the same token at the same id is a no-op."""
    assert vocab.add_special_token("<PAD>", 0) == 0
    assert vocab.size == 4


def test_special_token_id_collision_raises(vocab):
    """An id already owned by another token is rejected."""
    with pytest.raises(VocabularyError):
        vocab.add_special_token("<SEP>", 1)


def test_special_token_moved_raises(vocab):
    """A token cannot be re-registered under a different id."""
    with pytest.raises(SpecialTokenError):
        vocab.add_special_token("<UNK>", 8)


def test_special_token_negative_id_raises(vocab):
    """Ids are non-negative."""
    with pytest.raises(VocabularyError):
        vocab.add_special_token("<SEP>", -1)


def test_iteration_follows_insertion(vocab):
    """Tokens iterate in the order they were added."""
    vocab.add_token("z")
    vocab.add_token("a")
    assert list(vocab)[-2:] == ["z", "a"]
    assert "z" in vocab


def test_items_pairs_tokens_with_ids(vocab):
    """items() exposes every token with its id, specials included."""
    vocab.add_token("q")
    assert dict(vocab.items()) == {"<PAD>": 0, "<UNK>": 1, "<BOS>": 2, "<EOS>": 3, "q": 4}
