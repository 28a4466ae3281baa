"""
System-instruction builder.

Rationale:
- Keep prompt text in files under prompts/ so wording changes don't touch code.
- One base persona shared by every provider, plus a directive per detail level.
"""

import os
from enum import Enum
from functools import lru_cache

# Prompt file paths
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PROMPTS_DIR = os.path.join(BASE_DIR, "prompts")
BASE_PROMPT_PATH = os.path.join(PROMPTS_DIR, "base_system.txt")


class DetailLevel(str, Enum):
    CONCISE = "concise"
    DETAILED = "detailed"

    @classmethod
    def parse(cls, value) -> "DetailLevel":
        """Anything other than 'concise' falls back to the detailed answer style."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().lower() == cls.CONCISE.value:
            return cls.CONCISE
        return cls.DETAILED


@lru_cache(maxsize=None)
def _read_prompt(path: str) -> str:
    """Read a prompt text file."""
    with open(path, "r", encoding="utf-8") as f:
        return f.read().strip()


def directive_for(detail_level: DetailLevel) -> str:
    return _read_prompt(os.path.join(PROMPTS_DIR, f"{detail_level.value}.txt"))


def build_system_prompt(detail_level) -> str:
    """
    Combine the base persona with the directive for the requested detail level.

    Args:
        detail_level: DetailLevel or its string value

    Returns:
        The system instruction sent alongside the user's question.
    """
    level = DetailLevel.parse(detail_level)
    return f"{_read_prompt(BASE_PROMPT_PATH)} {directive_for(level)}"
