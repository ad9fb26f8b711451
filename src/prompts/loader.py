from __future__ import annotations

from functools import lru_cache
from pathlib import Path

ONBOARDING_PROMPT = "onboarding.txt"
PHONE_SESSION_PROMPT = "phone_session.txt"


@lru_cache(maxsize=None)
def load_prompt(filename: str) -> str:
    """Load a prompt text file shipped with the codebase."""

    path = Path(__file__).resolve().parent / filename
    if not path.exists():
        raise RuntimeError(f"Prompt file not found: {filename}")
    return " ".join(path.read_text(encoding="utf-8").split())
