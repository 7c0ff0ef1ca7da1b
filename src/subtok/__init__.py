"""subtok: word-level byte pair encoding tokenizer."""

from ._normalize import END_OF_WORD, normalize, normalize_text
from ._progress import disable_progress, enable_progress
from .errors import (
    ConfigError,
    ModelLoadError,
    SpecialTokenError,
    SubTokError,
    TrainingError,
    VocabularyError,
)
from .factory import from_pretrained
from .parallel import list_parallel_modes
from .tokenizer import BPETokenizer, VocabStats
from .types import MergeRule
from .vocab import DEFAULT_SPECIAL_TOKENS, Vocabulary
from ._version import __version__

__all__ = [
    "BPETokenizer",
    "Vocabulary",
    "VocabStats",
    "MergeRule",
    "DEFAULT_SPECIAL_TOKENS",
    "END_OF_WORD",
    "normalize",
    "normalize_text",
    "from_pretrained",
    "list_parallel_modes",
    "enable_progress",
    "disable_progress",
    "SubTokError",
    "VocabularyError",
    "SpecialTokenError",
    "TrainingError",
    "ModelLoadError",
    "ConfigError",
]
