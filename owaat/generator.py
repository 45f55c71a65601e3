"""Turn sequencer — owns the story and decides whose turn it is.

One call to ``generate_next_word`` resolves one turn:

  1. Current participant = roster[turn % len(roster)].
  2. Human without a word → return None; the caller collects input and
     calls again with it.
  3. Human with a word → append it verbatim.
  4. Model → one completion call, reduced to its first whitespace token
     (or the end marker when that feature is on).
  5. Advance the turn counter.

A model whose call raises LLMError is skipped and the next participant is
tried, for at most one full pass over the roster. Failed attempts still
advance the counter but never touch the story.
"""

from __future__ import annotations

import logging

from owaat.config import Settings
from owaat.llm import LLM, LLMError
from owaat.models import HumanInput, RemoteModel
from owaat.prompts import END_MARKER, build_prompt

logger = logging.getLogger(__name__)


class ExhaustedError(RuntimeError):
    """Every participant failed within one pass over the roster."""


class StoryEndedError(RuntimeError):
    """A turn was requested after the end marker was appended."""


def extract_word(text: str) -> str:
    """Return the first whitespace-delimited token of ``text``, or ""."""
    words = text.split()
    return words[0] if words else ""


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


class WordGenerator:
    def __init__(
        self,
        roster: list[RemoteModel | HumanInput],
        llm: LLM,
        settings: Settings,
        initial_text: str = "",
    ) -> None:
        if not roster:
            raise ValueError("Roster must contain at least one participant")
        self._roster = tuple(roster)
        self._llm = llm
        self._settings = settings
        self._text = initial_text
        self._turn = 0
        self._ended = False

    @property
    def roster(self) -> tuple[RemoteModel | HumanInput, ...]:
        return self._roster

    @property
    def turn(self) -> int:
        return self._turn

    @property
    def ended(self) -> bool:
        return self._ended

    def current_participant(self) -> RemoteModel | HumanInput:
        return self._roster[self._turn % len(self._roster)]

    def current_text(self) -> str:
        return self._text

    def append_raw(self, text: str) -> None:
        """Append ``text`` exactly as given, bypassing the word rules."""
        self._text += text

    def finish(self) -> None:
        """Mark the story ended; later turns raise StoryEndedError."""
        self._ended = True

    # ------------------------------------------------------------------
    # Turn resolution
    # ------------------------------------------------------------------

    async def generate_next_word(self, human_word: str | None = None) -> str | None:
        """Resolve the current turn and return the contributed word.

        Returns None when it is the human's turn and no word was supplied,
        including when failed model calls hand the rotation to the human.
        Returns "" when a model replied with nothing usable. Raises
        ExhaustedError after len(roster) consecutive failed calls.
        """
        if self._ended:
            raise StoryEndedError("The story has ended; no further turns are accepted")

        participant = self.current_participant()
        if isinstance(participant, HumanInput):
            if human_word is None:
                return None
            word = self._append_word(human_word)
            self._turn += 1
            return word

        for attempt in range(len(self._roster)):
            participant = self.current_participant()
            if isinstance(participant, HumanInput):
                # Rotation reached the human after failures; their turn now.
                return None
            try:
                completion = await self._llm(
                    participant.model_id,
                    build_prompt(self._text, allow_end=self._settings.end_marker),
                )
            except LLMError as e:
                logger.warning(
                    "%s failed (attempt %d/%d): %s",
                    participant.name, attempt + 1, len(self._roster), e,
                )
                self._turn += 1
                continue
            return self._resolve_completion(participant, completion)

        raise ExhaustedError("All models failed to generate a word. The story cannot continue.")

    def _resolve_completion(self, participant: RemoteModel, completion: str) -> str:
        if self._settings.end_marker and completion.strip() == END_MARKER:
            logger.info("%s ended the story", participant.name)
            self._text += " " + END_MARKER
            self._ended = True
            self._turn += 1
            return END_MARKER

        word = extract_word(completion)
        if not word:
            logger.warning("%s returned no usable word: %r", participant.name, completion)
        word = self._append_word(word)
        self._turn += 1
        return word

    def _append_word(self, word: str) -> str:
        if self._text == "":
            word = _capitalize(word)
            self._text = word
        else:
            self._text += " " + word
        return word
