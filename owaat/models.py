"""Participant models and roster construction.

A participant is either a remote language model or the human at the
keyboard. The two cases are separate frozen pydantic models joined into a
tagged union on the ``kind`` field, so turn resolution branches on the tag
rather than on a nullable model id.
"""

from __future__ import annotations

import random
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class RemoteModel(BaseModel):
    """A language model reached through the completion API."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["model"] = "model"
    name: str
    model_id: str

    @property
    def is_human(self) -> bool:
        return False


class HumanInput(BaseModel):
    """The human operator typing words at the terminal."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["human"] = "human"
    name: str = "Human"

    @property
    def is_human(self) -> bool:
        return True


Participant = Annotated[Union[RemoteModel, HumanInput], Field(discriminator="kind")]


DEFAULT_MODELS: list[RemoteModel] = [
    RemoteModel(name="Claude", model_id="anthropic/claude-3-haiku"),
    RemoteModel(name="GPT-4", model_id="openai/gpt-4"),
    RemoteModel(name="Mistral", model_id="mistralai/mistral-large"),
    RemoteModel(name="Llama", model_id="meta-llama/llama-3-70b-instruct"),
    RemoteModel(name="Gemini", model_id="google/gemini-pro"),
]


def parse_model_list(spec: str) -> list[RemoteModel]:
    """Parse ``"Name=vendor/model,vendor/other"`` into remote models.

    Entries without a ``Name=`` prefix use the model id as display name.
    Blank entries are skipped.
    """
    models: list[RemoteModel] = []
    for entry in spec.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, model_id = entry.partition("=")
        if not sep:
            name, model_id = entry, entry
        name, model_id = name.strip(), model_id.strip()
        if not name or not model_id:
            raise ValueError(f"Invalid model entry {entry!r}; expected Name=model/id")
        models.append(RemoteModel(name=name, model_id=model_id))
    return models


def build_roster(
    models: list[RemoteModel],
    *,
    include_human: bool = False,
    shuffle: bool = False,
    rng: random.Random | None = None,
) -> list[RemoteModel | HumanInput]:
    """Build the fixed turn order for one run.

    The model list is copied, optionally shuffled, and the human (if any)
    is inserted at a uniformly random slot among len(models) + 1.
    """
    rng = rng or random.Random()
    roster: list[RemoteModel | HumanInput] = list(models)
    if shuffle:
        rng.shuffle(roster)
    if include_human:
        roster.insert(rng.randint(0, len(roster)), HumanInput())
    if not roster:
        raise ValueError("Roster must contain at least one participant")
    return roster
