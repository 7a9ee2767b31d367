"""Room — a graph node and its text composition.

display_description is always base_description run through every active
effect in insertion order. It is rebuilt from the base on each change and
never edited in place, so removing the last effect restores the authored
text exactly.
"""

from __future__ import annotations

import logging
import random

from pydantic import BaseModel, Field

from dreadhall.effects import EffectType, PsychologicalEffect
from dreadhall.models import Character, GameEvent, PlayerProfile
from dreadhall.sinks import NullSink, Sink

logger = logging.getLogger(__name__)

RANDOM_EFFECT_DESCRIPTION = "The room begins to shift..."
RANDOM_EFFECT_SOUND = "distortionSound"
RANDOM_EFFECT_BASE_CHANCE = 0.2
RANDOM_EFFECT_FEAR_FACTOR = 0.3


class RoomState(BaseModel):
    """Serialisable snapshot of a room."""

    room_id: str
    archetype: str = ""
    keywords: list[str] = Field(default_factory=list)
    base_description: str = ""
    display_description: str = ""
    exits: dict[str, str] = Field(default_factory=dict)
    events: list[GameEvent] = Field(default_factory=list)
    characters: list[Character] = Field(default_factory=list)
    active_effects: list[PsychologicalEffect] = Field(default_factory=list)
    is_distorted: bool = False
    is_visited: bool = False


class Room:
    def __init__(
        self,
        room_id: str,
        archetype: str = "",
        description: str = "",
        keywords: list[str] | None = None,
    ) -> None:
        self.room_id = room_id
        self.archetype = archetype
        self.keywords: list[str] = list(keywords or [])
        self.exits: dict[str, str] = {}
        self.events: list[GameEvent] = []
        self.characters: list[Character] = []
        self.active_effects: list[PsychologicalEffect] = []
        self.base_description = ""
        self.display_description = ""
        self.is_distorted = False
        self.is_visited = False
        if description:
            self.set_description(description)

    def __repr__(self) -> str:
        return f"Room({self.room_id!r}, effects={len(self.active_effects)})"

    # ------------------------------------------------------------------
    # Authoring
    # ------------------------------------------------------------------

    def set_description(self, text: str) -> None:
        """Set the authored text. Call before any effect is attached."""
        self.base_description = text
        self.display_description = text

    def add_exit(self, direction: str, target_room_id: str) -> bool:
        """Record an exit. An existing direction is never overwritten."""
        if direction in self.exits:
            return False
        self.exits[direction] = target_room_id
        return True

    def add_event(self, event: GameEvent) -> None:
        self.events.append(event)

    def add_character(self, character: Character) -> None:
        self.characters.append(character)

    def available_exits(self) -> list[str]:
        return list(self.exits)

    @property
    def psychological_intensity(self) -> float:
        """Strongest active effect on this room, 0 when undisturbed."""
        return max((e.intensity for e in self.active_effects if e.is_active), default=0.0)

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    def add_effect(
        self,
        effect: PsychologicalEffect,
        profile: PlayerProfile,
        sink: Sink | None = None,
        rng=None,
    ) -> None:
        self.active_effects.append(effect)
        self._recompose(applying=effect, profile=profile, sink=sink, rng=rng)

    def remove_effect(self, effect: PsychologicalEffect, rng=None) -> bool:
        for i, existing in enumerate(self.active_effects):
            if existing is effect:
                del self.active_effects[i]
                break
        else:
            return False
        self._recompose(rng=rng)
        return True

    def update_effects(self, delta: float, rng=None) -> list[PsychologicalEffect]:
        """Advance every effect by delta seconds; drop and return the expired ones."""
        for effect in self.active_effects:
            effect.update(delta)
        expired = [e for e in self.active_effects if not e.is_active]
        if expired:
            self.active_effects = [e for e in self.active_effects if e.is_active]
            self._recompose(rng=rng)
        return expired

    def _recompose(
        self,
        applying: PsychologicalEffect | None = None,
        profile: PlayerProfile | None = None,
        sink: Sink | None = None,
        rng=None,
    ) -> None:
        # The effect being added gets a full apply (sound + feedback); the
        # rest only contribute their text rule.
        self.display_description = self.base_description
        for effect in self.active_effects:
            if effect is applying and profile is not None:
                effect.apply(self, profile, sink, rng)
            else:
                try:
                    self.display_description = effect.modify_description(
                        self.display_description, rng
                    )
                except Exception:
                    logger.exception(
                        "Error recomposing %s effect in room %s", effect.type.value, self.room_id
                    )
        self.is_distorted = bool(self.active_effects)

    # ------------------------------------------------------------------
    # Entry
    # ------------------------------------------------------------------

    def trigger_events(
        self,
        profile: PlayerProfile,
        sink: Sink | None = None,
        rng=None,
    ) -> PsychologicalEffect | None:
        """Fire scripted events, then roll once for a random effect.

        Call once per room entry; events are not consumed. Returns the
        effect added by the roll, if any.
        """
        sink = sink or NullSink()
        rng = rng or random

        for event in list(self.events):
            event.trigger(profile, sink)

        chance = RANDOM_EFFECT_BASE_CHANCE + profile.fear_level * RANDOM_EFFECT_FEAR_FACTOR
        if self.is_distorted or rng.random() >= chance:
            return None

        effect = PsychologicalEffect(
            type=rng.choice(list(EffectType)),
            intensity=rng.uniform(0.3, 0.8),
            description=RANDOM_EFFECT_DESCRIPTION,
            associated_sound_id=RANDOM_EFFECT_SOUND,
        )
        self.add_effect(effect, profile, sink, rng)
        return effect

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_state(self) -> RoomState:
        return RoomState(
            room_id=self.room_id,
            archetype=self.archetype,
            keywords=list(self.keywords),
            base_description=self.base_description,
            display_description=self.display_description,
            exits=dict(self.exits),
            events=list(self.events),
            characters=list(self.characters),
            active_effects=list(self.active_effects),
            is_distorted=self.is_distorted,
            is_visited=self.is_visited,
        )

    @classmethod
    def from_state(cls, state: RoomState) -> Room:
        room = cls(state.room_id, archetype=state.archetype, keywords=state.keywords)
        room.base_description = state.base_description
        room.display_description = state.display_description
        room.exits = dict(state.exits)
        room.events = list(state.events)
        room.characters = list(state.characters)
        room.active_effects = list(state.active_effects)
        room.is_distorted = state.is_distorted
        room.is_visited = state.is_visited
        return room
