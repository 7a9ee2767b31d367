"""Game session — one player walking one level.

Closes the adaptation loop:

  enter(room)  → Level.on_room_visited   (history, intensity, weights)
               → Room.trigger_events     (scripted events, random effect roll)
               → generate_event          (profile-driven atmosphere)
  act(text)    → parse + analyse input, nudge the profile, maybe move
  tick(delta)  → decay effects, drop expired ones

Everything a caller needs to see goes through the Sink passed in. The
session owns its own random.Random so separate sessions never share RNG
state.
"""

from __future__ import annotations

import logging
import random
import uuid

from pydantic import BaseModel, Field

from dreadhall.effects import PsychologicalEffect
from dreadhall.events import generate_event
from dreadhall.level import Level, LevelState
from dreadhall.models import GameEvent, PlayerProfile
from dreadhall.narrative import Narrative
from dreadhall.parser import analyze_input, extract_keywords, parse_input
from dreadhall.room import Room
from dreadhall.sinks import NullSink, Sink

logger = logging.getLogger(__name__)

INPUT_FEEDBACK = 0.1
CURIOSITY_STEP = 0.05
REPETITION_STEP = 0.05


class SessionState(BaseModel):
    """Everything needed to resume a session exactly."""

    session_id: str
    level: LevelState
    profile: PlayerProfile = Field(default_factory=PlayerProfile)
    current_room_id: str | None = None
    turn: int = 0
    last_event: GameEvent | None = None
    pending_narrative: Narrative | None = None
    narrative_history: list[Narrative] = Field(default_factory=list)


class GameSession:
    def __init__(
        self,
        level: Level,
        profile: PlayerProfile | None = None,
        session_id: str | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.level = level
        self.profile = profile or PlayerProfile()
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.rng = rng or random.Random()
        self.current_room_id: str | None = None
        self.turn = 0
        self.last_event: GameEvent | None = None
        self.pending_narrative: Narrative | None = None
        self.narrative_history: list[Narrative] = []

    @property
    def current_room(self) -> Room | None:
        if self.current_room_id is None:
            return None
        return self.level.rooms.get(self.current_room_id)

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def start(self, sink: Sink | None = None) -> GameEvent | None:
        if self.level.start_room_id is None:
            return None
        return self.enter(self.level.start_room_id, sink)

    def enter(self, room_id: str, sink: Sink | None = None) -> GameEvent | None:
        """Enter a room and run its entry pipeline. Unknown ids do nothing."""
        room = self.level.rooms.get(room_id)
        if room is None:
            return None
        sink = sink or NullSink()

        self.current_room_id = room_id
        self.turn += 1
        self.level.on_room_visited(room_id)

        sink.show(room.display_description)
        new_effect = room.trigger_events(self.profile, sink, self.rng)
        if new_effect is not None:
            logger.debug("room %s picked up %s", room_id, new_effect.type.value)
            sink.show(room.display_description)

        for character in room.characters:
            line = character.interact()
            if line:
                sink.show(f"{character.name}: {line}")

        event = generate_event(room, self.profile, self.rng)
        sink.show(event.description)
        if event.sound_id:
            sink.play(event.sound_id)
        self.last_event = event
        return event

    def move(self, direction: str, sink: Sink | None = None) -> GameEvent | None:
        room = self.current_room
        if room is None:
            return None
        target = room.exits.get(direction) or room.exits.get(direction.lower())
        if target is None:
            return None
        return self.enter(target, sink)

    # ------------------------------------------------------------------
    # Player input
    # ------------------------------------------------------------------

    def act(self, text: str, sink: Sink | None = None) -> GameEvent | None:
        """Interpret free-text input. Returns the entry event if the player moved."""
        sink = sink or NullSink()
        parsed = parse_input(text)
        analysis = analyze_input(text)

        self.profile.adjust("aggression", analysis.aggression * INPUT_FEEDBACK)
        self.profile.adjust("fear", analysis.anxiety * INPUT_FEEDBACK)
        self.profile.adjust("obsession", analysis.obsession * INPUT_FEEDBACK)
        if analysis.is_repetitive:
            self.profile.adjust("obsession", REPETITION_STEP)
        self.profile.track_choice(parsed.command)

        if parsed.command == "move":
            return self.move(parsed.target, sink)

        for keyword in extract_keywords(parsed.target):
            self.profile.track_keyword(keyword)

        room = self.current_room
        if parsed.command == "examine":
            self.profile.adjust("curiosity", CURIOSITY_STEP)
            if room is not None:
                sink.show(room.display_description)
        return None

    def tick(self, delta: float) -> list[PsychologicalEffect]:
        """Advance time on every room's effects; returns the ones that expired."""
        expired: list[PsychologicalEffect] = []
        for room in self.level.rooms.values():
            expired.extend(room.update_effects(delta, self.rng))
        return expired

    def look(self) -> str:
        room = self.current_room
        if room is None:
            return ""
        exits = ", ".join(room.available_exits()) or "none"
        return f"{room.display_description}\n\nExits: {exits}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> SessionState:
        return SessionState(
            session_id=self.session_id,
            level=self.level.to_state(),
            profile=self.profile,
            current_room_id=self.current_room_id,
            turn=self.turn,
            last_event=self.last_event,
            pending_narrative=self.pending_narrative,
            narrative_history=list(self.narrative_history),
        )

    @classmethod
    def from_snapshot(cls, state: SessionState, rng: random.Random | None = None) -> GameSession:
        session = cls(
            Level.from_state(state.level),
            profile=state.profile,
            session_id=state.session_id,
            rng=rng,
        )
        session.current_room_id = state.current_room_id
        session.turn = state.turn
        session.last_event = state.last_event
        session.pending_narrative = state.pending_narrative
        session.narrative_history = list(state.narrative_history)
        return session
