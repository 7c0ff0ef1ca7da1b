"""Switch for the periodic notices emitted by verbose training."""

import os
from typing import Final

ENV_DISABLE: Final[str] = "SUBTOK_DISABLE_PROGRESS"

_enabled: bool = True


def enable_progress() -> None:
    """Enable verbose training notices for all subtok tokenizers."""
    global _enabled
    _enabled = True


def disable_progress() -> None:
    """Disable verbose training notices for all subtok tokenizers."""
    global _enabled
    _enabled = False


def _is_enabled() -> bool:
    """Check if progress is enabled (respects env var override)."""
    if os.environ.get(ENV_DISABLE, "").strip() == "1":
        return False
    return _enabled
