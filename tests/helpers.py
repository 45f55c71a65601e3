"""Shared test doubles."""

from __future__ import annotations

from owaat.llm import LLMError
from owaat.models import HumanInput


class ScriptedLLM:
    """Replays a fixed list of outcomes, one per call.

    Each entry is either the completion text to return or an exception
    instance to raise. Calls are recorded as (model, prompt) pairs.
    """

    def __init__(self, outcomes: list[str | Exception]) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, model: str, prompt: str) -> str:
        self.calls.append((model, prompt))
        if not self._outcomes:
            raise AssertionError(f"Unexpected LLM call for {model}")
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def models_called(self) -> list[str]:
        return [model for model, _ in self.calls]


class ByModelLLM:
    """Answers per model id; ids listed in ``failing`` always raise LLMError."""

    def __init__(self, words: dict[str, str], failing: set[str] = frozenset()) -> None:
        self._words = words
        self._failing = failing
        self.calls: list[str] = []

    async def __call__(self, model: str, prompt: str) -> str:
        self.calls.append(model)
        if model in self._failing:
            raise LLMError(f"{model} unavailable")
        return self._words[model]


class ScriptedHuman:
    """Feeds queued lines to the runner's human turns."""

    def __init__(self, lines: list[str]) -> None:
        self._lines = list(lines)
        self.prompts = 0

    async def __call__(self, participant: HumanInput) -> str:
        self.prompts += 1
        return self._lines.pop(0)
