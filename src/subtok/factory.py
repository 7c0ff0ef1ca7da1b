"""Factory functions for creating tokenizers."""

from .tokenizer import BPETokenizer


def from_pretrained(model_path: str) -> BPETokenizer:
    """
    Load a pre-trained tokenizer from disk.

    :param model_path: Path to the .model file written by ``BPETokenizer.save``.
    :return: Loaded tokenizer instance with vocabulary and merge rules.
    :raises ModelLoadError: If the file doesn't exist, has the wrong extension,
                            or does not hold a valid snapshot.

    .. code-block:: python

        tokenizer = from_pretrained("path/to/model.model")
        ids = tokenizer.encode("Hello world")
    """
    tokenizer = BPETokenizer()
    tokenizer.load(model_path)
    return tokenizer
