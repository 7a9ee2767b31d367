"""Level — the room graph and its adaptation model.

Graph:
  rooms       id → Room, first room added is the start room
  adjacency   id → neighbour ids, kept symmetric by connect_rooms()

Visit tracking:
  visited     every room id entered since the last reset
  history     last HISTORY_SIZE visited ids, oldest evicted first

Derived on every visit (never written from outside):
  intensity          clamp01(visited/total * modifier)
                     modifier = 1.0, +0.2 if history has a repeat (backtracking),
                     +0.3 if the exit room is in history
  thematic_weights   bumped by the visited room's intensity and its active
                     effects, then normalised to sum to 1 (a zero vector is
                     left alone)

Unknown room ids are ignored everywhere; nothing here raises on bad ids.
"""

from __future__ import annotations

import logging
from collections import deque

from pydantic import BaseModel, Field

from dreadhall.effects import EffectType
from dreadhall.models import clamp01
from dreadhall.room import Room, RoomState

logger = logging.getLogger(__name__)

HISTORY_SIZE = 5

DEFAULT_THEMATIC_WEIGHTS: dict[str, float] = {
    "isolation": 0.3,
    "paranoia": 0.3,
    "psychological": 0.4,
    "surreal": 0.2,
    "cosmic": 0.1,
}

BACKTRACK_BONUS = 0.2
EXIT_PROXIMITY_BONUS = 0.3
HIGH_ROOM_INTENSITY = 0.7

# effect type → (theme, bump)
_EFFECT_THEMES: dict[EffectType, tuple[str, float]] = {
    EffectType.PARANOIA_INDUCTION: ("paranoia", 0.15),
    EffectType.ROOM_DISTORTION: ("surreal", 0.1),
    EffectType.TIME_DISTORTION: ("cosmic", 0.1),
}

_OPPOSITES = {
    "north": "south",
    "south": "north",
    "east": "west",
    "west": "east",
    "up": "down",
    "down": "up",
}


def opposite_direction(direction: str) -> str:
    """Return the reverse of a compass/vertical direction.

    Any other label maps to itself, so a "sideways" link reads "sideways"
    from both ends.
    """
    # FIXME: self-mapping for unknown labels is inherited behaviour; confirm
    # whether custom directions should carry an explicit reverse label.
    return _OPPOSITES.get(direction.lower(), direction)


class LevelState(BaseModel):
    """Serialisable snapshot of a level and its progress."""

    level_number: int = 0
    theme: str = ""
    tone: str = ""
    keywords: list[str] = Field(default_factory=list)
    rooms: list[RoomState] = Field(default_factory=list)
    adjacency: dict[str, list[str]] = Field(default_factory=dict)
    visited: list[str] = Field(default_factory=list)
    history: list[str] = Field(default_factory=list)
    intensity: float = 0.0
    thematic_weights: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_THEMATIC_WEIGHTS)
    )
    start_room_id: str | None = None
    exit_room_id: str | None = None


class Level:
    def __init__(
        self,
        level_number: int = 0,
        theme: str = "",
        tone: str = "",
        keywords: list[str] | None = None,
    ) -> None:
        self.level_number = level_number
        self.theme = theme
        self.tone = tone
        self.keywords: list[str] = list(keywords or [])
        self.rooms: dict[str, Room] = {}
        self.adjacency: dict[str, list[str]] = {}
        self.visited: set[str] = set()
        self.history: deque[str] = deque(maxlen=HISTORY_SIZE)
        self.intensity = 0.0
        self.thematic_weights: dict[str, float] = dict(DEFAULT_THEMATIC_WEIGHTS)
        self.start_room_id: str | None = None
        self.exit_room_id: str | None = None

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    def add_room(self, room: Room) -> None:
        if room.room_id in self.rooms:
            return
        self.rooms[room.room_id] = room
        self.adjacency[room.room_id] = []
        if self.start_room_id is None:
            self.start_room_id = room.room_id

    def connect_rooms(self, room_id_a: str, room_id_b: str, direction: str) -> None:
        if room_id_a not in self.rooms or room_id_b not in self.rooms:
            return

        if room_id_b not in self.adjacency[room_id_a]:
            self.adjacency[room_id_a].append(room_id_b)
            self.rooms[room_id_a].add_exit(direction, room_id_b)

        if room_id_a not in self.adjacency[room_id_b]:
            self.adjacency[room_id_b].append(room_id_a)
            self.rooms[room_id_b].add_exit(opposite_direction(direction), room_id_a)

    def get_connected_rooms(self, room_id: str) -> list[str]:
        return list(self.adjacency.get(room_id, []))

    def get_unvisited_connections(self, room_id: str) -> list[str]:
        return [r for r in self.adjacency.get(room_id, []) if r not in self.visited]

    def get_start_room(self) -> Room | None:
        return self.rooms.get(self.start_room_id) if self.start_room_id else None

    def get_exit_room(self) -> Room | None:
        return self.rooms.get(self.exit_room_id) if self.exit_room_id else None

    # ------------------------------------------------------------------
    # Visits and the adaptation model
    # ------------------------------------------------------------------

    def on_room_visited(self, room_id: str) -> None:
        room = self.rooms.get(room_id)
        if room is None:
            return

        self.visited.add(room_id)
        self.history.append(room_id)
        room.is_visited = True

        self._update_intensity()
        self._update_thematic_weights(room)
        logger.debug(
            "visit room=%s intensity=%.3f history=%s",
            room_id, self.intensity, list(self.history),
        )

    def _progression_modifier(self) -> float:
        modifier = 1.0
        if len(set(self.history)) < len(self.history):
            modifier += BACKTRACK_BONUS
        if self.exit_room_id and self.exit_room_id in self.history:
            modifier += EXIT_PROXIMITY_BONUS
        return modifier

    def _update_intensity(self) -> None:
        base = len(self.visited) / len(self.rooms)
        self.intensity = clamp01(base * self._progression_modifier())

    def _bump(self, theme: str, amount: float) -> None:
        self.thematic_weights[theme] = min(1.0, self.thematic_weights.get(theme, 0.0) + amount)

    def _update_thematic_weights(self, room: Room) -> None:
        if room.psychological_intensity > HIGH_ROOM_INTENSITY:
            self._bump("psychological", 0.1)
            self._bump("surreal", 0.05)

        for effect in room.active_effects:
            if not effect.is_active:
                continue
            entry = _EFFECT_THEMES.get(effect.type)
            if entry:
                self._bump(*entry)

        self._normalize_thematic_weights()

    def _normalize_thematic_weights(self) -> None:
        total = sum(self.thematic_weights.values())
        if total == 0:
            return
        for theme in self.thematic_weights:
            self.thematic_weights[theme] /= total

    def dominant_theme(self) -> str:
        return max(self.thematic_weights, key=self.thematic_weights.__getitem__)

    def completion_percentage(self) -> float:
        if not self.rooms:
            return 0.0
        return len(self.visited) / len(self.rooms)

    def is_complete(self) -> bool:
        return self.exit_room_id is not None and self.exit_room_id in self.visited

    def reset_progress(self) -> None:
        self.visited.clear()
        self.history.clear()
        self.intensity = 0.0
        self.thematic_weights = dict(DEFAULT_THEMATIC_WEIGHTS)
        for room in self.rooms.values():
            room.is_visited = False

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_state(self) -> LevelState:
        return LevelState(
            level_number=self.level_number,
            theme=self.theme,
            tone=self.tone,
            keywords=list(self.keywords),
            rooms=[room.to_state() for room in self.rooms.values()],
            adjacency={k: list(v) for k, v in self.adjacency.items()},
            visited=sorted(self.visited),
            history=list(self.history),
            intensity=self.intensity,
            thematic_weights=dict(self.thematic_weights),
            start_room_id=self.start_room_id,
            exit_room_id=self.exit_room_id,
        )

    @classmethod
    def from_state(cls, state: LevelState) -> Level:
        level = cls(state.level_number, state.theme, state.tone, state.keywords)
        for room_state in state.rooms:
            level.rooms[room_state.room_id] = Room.from_state(room_state)
        level.adjacency = {k: list(v) for k, v in state.adjacency.items()}
        for room_id in level.rooms:
            level.adjacency.setdefault(room_id, [])
        level.visited = set(state.visited)
        level.history.extend(state.history)
        level.intensity = state.intensity
        level.thematic_weights = dict(state.thematic_weights)
        level.start_room_id = state.start_room_id
        level.exit_room_id = state.exit_room_id
        return level
