"""Shared fixtures for subtok tests."""

import pytest

import subtok


@pytest.fixture
def tokenizer():
    """Return a tokenizer trained on a small two-word corpus.

    Seeds: <PAD>=0 <UNK>=1 <BOS>=2 <EOS>=3, h=4 e=5 l=6 o=7 " "=8 w=9 r=10
    d=11, </w>=12. Merges 13-19: he hel hell hello hello</w> wo wor.
    """
    tok = subtok.BPETokenizer()
    tok.train("hello hello world world", vocab_size=20, verbose=False)
    return tok
