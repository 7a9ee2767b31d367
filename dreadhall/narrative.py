"""Narrative queue — LLM-generated room text with an explicit state machine.

States:
  IDLE             nothing running; submit() and process() allowed
  PROCESSING       process() is draining the queue (one consumer at a time)
  AWAITING_CHOICE  a narrative offered choices; process() returns nothing
                   until choose() resolves it

Flow:
  1. submit(stage, prompt) appends to a FIFO.
  2. process() pops requests in order, awaits the LLM for each, parses the
     text into prose + choices. It stops early on the first narrative that
     offers choices and switches to AWAITING_CHOICE.
  3. choose(index) records the choice and returns to IDLE; the next
     process() carries on with whatever is still queued.

The engine state (level, rooms, profile) is never touched here. Callers build
the prompt from it before submitting and apply results after process()
returns, so no engine mutation overlaps an in-flight LLM call.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections import deque
from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, Field

from dreadhall.level import Level
from dreadhall.llm import LLM, LLMError
from dreadhall.models import PlayerProfile
from dreadhall.room import Room

logger = logging.getLogger(__name__)

MAX_CHOICES = 3

_CHOICE_RE = re.compile(r"^\s*(?:\d+[.)]|[-*])\s+(.+?)\s*$")


class QueueState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    AWAITING_CHOICE = "awaiting_choice"


class Narrative(BaseModel):
    stage: str
    text: str
    choices: list[str] = Field(default_factory=list)


class NarrativeError(RuntimeError):
    """Raised on an invalid queue transition."""


# ---------------------------------------------------------------------------
# Output parsing
# ---------------------------------------------------------------------------

def parse_narrative(output: str, stage: str = "room_event") -> Narrative:
    """Split model output into prose and trailing choice lines.

    Choice lines look like "1. Open the door" or "- Open the door". Only
    lines after the first prose line count as choices; at most MAX_CHOICES
    are kept.
    """
    prose: list[str] = []
    choices: list[str] = []
    for line in output.strip().splitlines():
        match = _CHOICE_RE.match(line)
        if match and prose:
            choices.append(match.group(1))
        elif line.strip() and not choices:
            prose.append(line.strip())

    if not prose:
        logger.warning("Narrative output for stage %s had no prose: %r", stage, output)
    return Narrative(stage=stage, text="\n".join(prose), choices=choices[:MAX_CHOICES])


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def _trait_label(value: float) -> str:
    if value < 0.3:
        return "low"
    if value < 0.7:
        return "moderate"
    return "high"


def build_event_prompt(level: Level, room: Room, profile: PlayerProfile) -> str:
    weights = ", ".join(
        f"{theme} {weight:.2f}"
        for theme, weight in sorted(level.thematic_weights.items(), key=lambda kv: -kv[1])
    )
    obsessions = ", ".join(o.keyword for o in profile.active_obsessions()) or "none"
    return (
        f"Setting: {level.theme or 'an abandoned building'}\n"
        f"Tone: {level.tone or 'dread'}\n"
        f"Dominant theme: {level.dominant_theme()} (weights: {weights})\n"
        f"Pressure: {level.intensity:.2f}\n\n"
        f"Room ({room.archetype or room.room_id}):\n{room.display_description}\n\n"
        f"Player state: fear {_trait_label(profile.fear_level)}, "
        f"obsession {_trait_label(profile.obsession_level)}, "
        f"aggression {_trait_label(profile.aggression_level)}, "
        f"curiosity {_trait_label(profile.curiosity_level)}\n"
        f"Obsessions: {obsessions}\n\n"
        "Write one to three sentences of unsettling second-person narration for "
        "what happens next in this room. Never resolve the mystery.\n"
        f"Optionally follow with up to {MAX_CHOICES} choices, one per line, "
        'formatted "1. <choice>".'
    )


def build_choice_prompt(narrative: Narrative, choice: str, profile: PlayerProfile) -> str:
    return (
        f"Previously:\n{narrative.text}\n\n"
        f"The player chose: {choice}\n"
        f"Player fear: {_trait_label(profile.fear_level)}\n\n"
        "Narrate the consequence in one or two sentences. Do not offer choices."
    )


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------

class NarrativeQueue:
    """Single-consumer FIFO of LLM requests.

    Args:
        llm:           the narrative collaborator.
        history_size:  how many produced narratives to keep.
        history:       earlier narratives to seed the history with, oldest first.
        delay:         pause in seconds between consecutive requests.
    """

    def __init__(
        self,
        llm: LLM,
        history_size: int = 10,
        delay: float = 0.0,
        history: Iterable[Narrative] = (),
    ) -> None:
        self._llm = llm
        self._delay = delay
        self._requests: deque[tuple[str, str]] = deque()
        self._state = QueueState.IDLE
        self._pending: Narrative | None = None
        self.history: deque[Narrative] = deque(history, maxlen=history_size)
        self.choices_made: list[str] = []

    @property
    def state(self) -> QueueState:
        return self._state

    @property
    def pending(self) -> Narrative | None:
        """The narrative waiting on a choice, if any."""
        return self._pending

    def __len__(self) -> int:
        return len(self._requests)

    def submit(self, stage: str, prompt: str) -> None:
        self._requests.append((stage, prompt))

    async def process(self) -> list[Narrative]:
        """Drain queued requests until empty or a choice is needed."""
        if self._state is QueueState.AWAITING_CHOICE:
            return []
        if self._state is QueueState.PROCESSING:
            raise NarrativeError("Narrative queue is already processing")

        self._state = QueueState.PROCESSING
        produced: list[Narrative] = []
        try:
            while self._requests:
                if produced and self._delay > 0:
                    await asyncio.sleep(self._delay)
                stage, prompt = self._requests.popleft()
                narrative = parse_narrative(await self._llm(stage, prompt), stage)
                self.history.append(narrative)
                produced.append(narrative)
                if narrative.choices:
                    self._pending = narrative
                    self._state = QueueState.AWAITING_CHOICE
                    return produced
        except LLMError:
            self._state = QueueState.IDLE
            raise

        self._state = QueueState.IDLE
        return produced

    def resume(self, pending: Narrative) -> None:
        """Restore a choice left pending by an earlier queue (e.g. loaded from disk)."""
        if self._state is not QueueState.IDLE:
            raise NarrativeError(f"Cannot resume a choice while {self._state.value}")
        if not pending.choices:
            raise NarrativeError("Narrative has no choices to resume")
        self._pending = pending
        self._state = QueueState.AWAITING_CHOICE

    def choose(self, index: int) -> str:
        """Resolve the pending choice by position and return its text."""
        if self._state is not QueueState.AWAITING_CHOICE or self._pending is None:
            raise NarrativeError("No choice is pending")
        if not 0 <= index < len(self._pending.choices):
            raise NarrativeError(f"Choice {index} is out of range")

        choice = self._pending.choices[index]
        self.choices_made.append(choice)
        self._pending = None
        self._state = QueueState.IDLE
        return choice
