"""Prompt text and end-marker recognition."""

from __future__ import annotations

END_MARKER = "THE END."

_END_PHRASES = {"the end.", "the end"}


def build_prompt(story: str, *, allow_end: bool = False) -> str:
    """Build the single user message asking for the next word of ``story``."""
    instructions = (
        "Continue the following text with ONLY ONE SINGLE WORD. "
        "You may include punctuation only where grammar requires it "
        "(like commas, periods, etc.) but no more than one word. "
        "The word should make sense in the context of the story."
    )
    if allow_end:
        instructions += (
            f' If the story has reached a natural conclusion, reply with exactly "{END_MARKER}"'
            " instead of a word."
        )
    return f'{instructions}\n\nCurrent text: "{story}"\n\nNext word:'


def is_end_phrase(text: str) -> bool:
    """True if a human typed one of the accepted end phrases (any case)."""
    return text.strip().lower() in _END_PHRASES
