"""Unit tests for snapshot export/import and save/load."""

import copy
import json

import pytest

import subtok
from subtok import MergeRule
from subtok.errors import ModelLoadError, TrainingError


# Snapshot export/import
# ---------------------------------------------------------------------------


def test_export_snapshot_shape(tokenizer):
    """Snapshot holds the four flat fields in learning order."""
    snap = tokenizer.export_snapshot()
    assert set(snap) == {"vocab", "merges", "special_tokens", "vocab_size"}
    assert snap["vocab"]["<PAD>"] == 0
    assert snap["vocab"]["hello</w>"] == 17
    assert snap["merges"][0] == ["h", "e"]
    assert snap["merges"][-1] == ["wo", "r"]
    assert snap["special_tokens"] == {"<PAD>": 0, "<UNK>": 1, "<BOS>": 2, "<EOS>": 3}
    assert snap["vocab_size"] == 20


def test_export_snapshot_is_a_copy(tokenizer):
    """Mutating the record leaves the tokenizer alone."""
    snap = tokenizer.export_snapshot()
    snap["vocab"]["bogus"] = 99
    snap["merges"].clear()
    assert tokenizer.vocab.id_of("bogus") is None
    assert len(tokenizer.merges) == 7


def test_import_snapshot_through_json(tokenizer):
    """A JSON round trip restores identical behaviour."""
    data = json.loads(json.dumps(tokenizer.export_snapshot()))
    restored = subtok.BPETokenizer()
    restored.import_snapshot(data)
    text = "hello world, hex"
    assert restored.encode(text) == tokenizer.encode(text)
    assert restored.merges == tokenizer.merges
    assert restored.get_vocab_stats() == tokenizer.get_vocab_stats()


def test_import_snapshot_accepts_numeric_strings(tokenizer):
    """Ids written as decimal strings are converted."""
    data = tokenizer.export_snapshot()
    data["vocab"] = {tok: str(tid) for tok, tid in data["vocab"].items()}
    restored = subtok.BPETokenizer()
    restored.import_snapshot(data)
    assert restored.vocab.id_of("wor") == 19


def test_import_snapshot_clears_encode_cache(tokenizer):
    """Segmentations cached before import are not reused."""
    assert tokenizer.tokenize("hello") == ["hello</w>"]
    data = tokenizer.export_snapshot()
    data["merges"] = [["h", "e"]]
    tokenizer.import_snapshot(data)
    assert tokenizer.tokenize("hello") == ["he", "l", "l", "o", "</w>"]


def _corrupt(snap, path, value):
    data = copy.deepcopy(snap)
    target = data
    for key in path[:-1]:
        target = target[key]
    target[path[-1]] = value
    return data


@pytest.mark.parametrize(
    "path, value",
    [
        (("vocab", "<PAD>"), True),
        (("vocab", "<PAD>"), -3),
        (("vocab", "<PAD>"), "zero"),
        (("vocab", "h"), 5),
        (("special_tokens", "<BOS>"), 7),
        (("merges",), "he"),
        (("merges",), [["h", "e", "l"]]),
        (("merges",), [["h", ""]]),
        (("vocab_size",), 3),
        (("vocab",), ["h", "e"]),
    ],
)
def test_import_snapshot_rejects_malformed(tokenizer, path, value):
    """Structural and consistency errors raise and leave state untouched."""
    before = tokenizer.export_snapshot()
    bad = _corrupt(before, path, value)
    with pytest.raises(ModelLoadError):
        tokenizer.import_snapshot(bad)
    assert tokenizer.export_snapshot() == before


def test_import_snapshot_missing_keys(tokenizer):
    """Every field is required."""
    data = tokenizer.export_snapshot()
    del data["merges"]
    with pytest.raises(ModelLoadError, match="merges"):
        tokenizer.import_snapshot(data)


def test_import_snapshot_missing_reserved_token(tokenizer):
    """The four reserved tokens must be present."""
    data = tokenizer.export_snapshot()
    del data["special_tokens"]["<UNK>"]
    with pytest.raises(ModelLoadError):
        tokenizer.import_snapshot(data)


def test_import_snapshot_not_a_mapping():
    """Arbitrary values are rejected outright."""
    with pytest.raises(ModelLoadError):
        subtok.BPETokenizer().import_snapshot([1, 2, 3])


# Save and load
# ---------------------------------------------------------------------------


def test_save_load_roundtrip(tokenizer, tmp_path):
    """Save and load preserves tokenizer state."""
    prefix = str(tmp_path / "tok")
    tokenizer.save(prefix)

    loaded = subtok.from_pretrained(f"{prefix}.model")
    assert loaded.export_snapshot() == tokenizer.export_snapshot()
    assert loaded.merges[0] == MergeRule("h", "e")
    assert loaded.decode(loaded.encode("hello world")) == "hello world"


def test_save_creates_directories(tokenizer, tmp_path):
    """Missing parent directories are created."""
    prefix = tmp_path / "nested" / "dir" / "tok"
    tokenizer.save(str(prefix))
    assert prefix.with_suffix(".model").exists()
    assert prefix.with_suffix(".vocab").exists()


def test_vocab_file_listing(tokenizer, tmp_path):
    """The .vocab file shows specials, seeds and merge derivations."""
    prefix = tmp_path / "tok"
    tokenizer.save(str(prefix))
    lines = prefix.with_suffix(".vocab").read_text(encoding="utf-8").splitlines()
    assert lines[0] == "ST [0] <PAD>"
    assert "[4] h" in lines
    assert "[13] [h][e] -> he" in lines
    assert "[17] [hello][</w>] -> hello</w>" in lines


def test_vocab_file_escapes_control_characters(tmp_path):
    """Seeded newlines are written escaped on a single line."""
    tok = subtok.BPETokenizer()
    tok.train("ab\nab", vocab_size=12)
    prefix = tmp_path / "ctrl"
    tok.save(str(prefix))
    text = prefix.with_suffix(".vocab").read_text(encoding="utf-8")
    assert "\\u000a" in text


def test_save_untrained_raises(tmp_path):
    """Nothing learned means nothing to save."""
    with pytest.raises(TrainingError):
        subtok.BPETokenizer().save(str(tmp_path / "tok"))


def test_load_missing_file(tmp_path):
    """Nonexistent paths are reported."""
    with pytest.raises(ModelLoadError):
        subtok.from_pretrained(str(tmp_path / "nope.model"))


def test_load_wrong_suffix(tmp_path):
    """Only .model files are accepted."""
    path = tmp_path / "tok.json"
    path.write_text("{}", encoding="utf-8")
    with pytest.raises(ModelLoadError):
        subtok.from_pretrained(str(path))


def test_load_invalid_json(tmp_path):
    """Unparseable files raise ModelLoadError."""
    path = tmp_path / "tok.model"
    path.write_text("not json", encoding="utf-8")
    with pytest.raises(ModelLoadError):
        subtok.from_pretrained(str(path))


def test_load_version_mismatch(tokenizer, tmp_path):
    """Files from another format version are refused."""
    prefix = tmp_path / "tok"
    tokenizer.save(str(prefix))
    model = prefix.with_suffix(".model")
    data = json.loads(model.read_text(encoding="utf-8"))
    data["version"] = 99
    model.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(ModelLoadError) as excinfo:
        subtok.from_pretrained(str(model))
    assert excinfo.value.version_mismatch == (99, 1)
