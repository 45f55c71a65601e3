"""Driver loop — asks the generator for words until the story is done.

State machine:
  MODEL_TURN            -> A model is producing the next word.
  HUMAN_TURN_WAITING    -> Waiting for the human to type a word.
  HUMAN_TURN_SUBMITTED  -> Human word accepted, being added to the story.
  ENDED                 -> End marker appended. Terminal.
  LENGTH_CAP_REACHED    -> max_words words produced. Terminal.

ExhaustedError from the generator is not handled here; it ends the run.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Protocol, TextIO

from owaat.config import Settings
from owaat.generator import WordGenerator
from owaat.models import HumanInput, RemoteModel
from owaat.prompts import END_MARKER, is_end_phrase

logger = logging.getLogger(__name__)


class RunnerPhase(str, Enum):
    MODEL_TURN = "model_turn"
    HUMAN_TURN_WAITING = "human_turn_waiting"
    HUMAN_TURN_SUBMITTED = "human_turn_submitted"
    ENDED = "ended"
    LENGTH_CAP_REACHED = "length_cap_reached"


class HumanInputSource(Protocol):
    async def __call__(self, participant: HumanInput) -> str: ...


class ConsoleHumanInput:
    """Reads the human's word from stdin without blocking the event loop.

    input() runs on a daemon thread, not the default executor, so an
    interrupt at the prompt exits without waiting for a line. EOFError
    (Ctrl-D, closed pipe) is re-raised in the caller.
    """

    def __init__(self, prompt: str = "> ") -> None:
        self._prompt = prompt

    async def __call__(self, participant: HumanInput) -> str:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()

        def _deliver(result: str | None, error: Exception | None) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        def _read() -> None:
            try:
                line = input(self._prompt)
            except Exception as e:
                result, error = None, e
            else:
                result, error = line, None
            try:
                loop.call_soon_threadsafe(_deliver, result, error)
            except RuntimeError:
                pass  # loop already closed, the run is over

        threading.Thread(target=_read, name="owaat-stdin", daemon=True).start()
        return await future


class StoryRunner:
    def __init__(
        self,
        generator: WordGenerator,
        settings: Settings,
        *,
        human_input: HumanInputSource | None = None,
        notify: Callable[[str], None] | None = None,
        out: TextIO | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._generator = generator
        self._settings = settings
        self._human_input = human_input or ConsoleHumanInput()
        self._notify = notify
        self._out = out or sys.stdout
        self._sleep = sleep
        self.phase: RunnerPhase | None = None
        self.word_count = 0

    def _write(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()

    def write_banner(self) -> None:
        self._write("One Word At A Time\n")
        self._write("Each participant contributes one word to build a collaborative story.\n\n")
        self._write("Participants:\n")
        for participant in self._generator.roster:
            if isinstance(participant, RemoteModel):
                self._write(f"  - {participant.name} ({participant.model_id})\n")
            else:
                self._write(f"  - {participant.name} (you)\n")
        self._write("\n")
        if self._settings.human and self._settings.end_marker:
            self._write(f'Type "{END_MARKER}" on your turn to finish the story.\n\n')

    async def run(self) -> str:
        """Run turns until the cap or the end marker; return the final story."""
        self._write("Generated Story:\n")
        initial = self._generator.current_text()
        if initial:
            self._write(initial + " ")

        while self.word_count < self._settings.max_words:
            participant = self._generator.current_participant()
            if isinstance(participant, HumanInput):
                finished = await self._human_turn(participant)
            else:
                finished = await self._model_turn()
            if finished:
                self.phase = RunnerPhase.ENDED
                break
        else:
            self.phase = RunnerPhase.LENGTH_CAP_REACHED

        story = self._generator.current_text()
        self._write("\n\nFinal Story:\n" + story + "\n")
        logger.info("run finished phase=%s words=%d", self.phase.value, self.word_count)
        return story

    async def _model_turn(self) -> bool:
        self.phase = RunnerPhase.MODEL_TURN
        word = await self._generator.generate_next_word()
        if word is None:
            # Failed calls rotated the turn over to the human.
            return False
        if word == END_MARKER and self._generator.ended:
            self._write(word)
            return True
        self._write(word + " ")
        self.word_count += 1
        await self._sleep(self._settings.delay_seconds)
        return False

    async def _human_turn(self, participant: HumanInput) -> bool:
        self.phase = RunnerPhase.HUMAN_TURN_WAITING
        self._write(f"\n[{participant.name}, your turn]\n")
        if self._notify is not None:
            self._notify(f"{participant.name}, it's your turn to add a word")
        raw = await self._human_input(participant)

        if self._settings.end_marker and is_end_phrase(raw):
            if self._generator.current_text():
                self._generator.append_raw(" " + END_MARKER)
                self._write(END_MARKER)
            self._generator.finish()
            return True

        words = raw.split()
        if not words:
            self._write("Please enter a word.\n")
            return False
        if len(words) > 1:
            logger.warning("Human entered %d words; keeping %r", len(words), words[0])
            self._write(f'Only one word per turn, using "{words[0]}".\n')

        self.phase = RunnerPhase.HUMAN_TURN_SUBMITTED
        word = await self._generator.generate_next_word(words[0])
        self._write(f"{word} ")
        self.word_count += 1
        return False
