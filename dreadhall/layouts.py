"""Authored level layouts.

A layout is a JSON file under presets/levels/:

    {
      "name": "ward",
      "level_number": 1,
      "theme": "...", "tone": "...", "keywords": [...],
      "rooms": [
        {"id": "lobby", "archetype": "...", "description": "...",
         "keywords": [...], "events": [GameEvent...], "characters": [Character...]}
      ],
      "connections": [{"from": "lobby", "to": "hall", "direction": "north"}],
      "exit_room": "stairwell"
    }

Rooms are added in file order, so the first room is the start room.
Connections referencing unknown rooms are skipped by Level.connect_rooms.
"""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from dreadhall.level import Level
from dreadhall.models import Character, GameEvent
from dreadhall.room import Room

PRESETS_DIR = Path(__file__).parent.parent / "presets" / "levels"
_NAME_RE = re.compile(r"[a-z0-9][a-z0-9_-]*")


class RoomLayout(BaseModel):
    id: str
    archetype: str = ""
    description: str = ""
    keywords: list[str] = Field(default_factory=list)
    events: list[GameEvent] = Field(default_factory=list)
    characters: list[Character] = Field(default_factory=list)


class Connection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_room: str = Field(alias="from")
    to_room: str = Field(alias="to")
    direction: str


class LevelLayout(BaseModel):
    name: str
    level_number: int = 0
    theme: str = ""
    tone: str = ""
    keywords: list[str] = Field(default_factory=list)
    rooms: list[RoomLayout]
    connections: list[Connection] = Field(default_factory=list)
    exit_room: str | None = None


def build_level(layout: LevelLayout) -> Level:
    level = Level(layout.level_number, layout.theme, layout.tone, layout.keywords)
    for entry in layout.rooms:
        room = Room(entry.id, archetype=entry.archetype, description=entry.description,
                    keywords=entry.keywords)
        for event in entry.events:
            room.add_event(event.model_copy(deep=True))
        for character in entry.characters:
            room.add_character(character.model_copy(deep=True))
        level.add_room(room)
    for conn in layout.connections:
        level.connect_rooms(conn.from_room, conn.to_room, conn.direction)
    if layout.exit_room in level.rooms:
        level.exit_room_id = layout.exit_room
    return level


def load_layout(path: Path) -> LevelLayout:
    return LevelLayout.model_validate_json(path.read_text())


def list_layouts(presets_dir: Path = PRESETS_DIR) -> list[str]:
    if not presets_dir.is_dir():
        return []
    return sorted(p.stem for p in presets_dir.glob("*.json"))


def get_layout(name: str, presets_dir: Path = PRESETS_DIR) -> LevelLayout | None:
    if not _NAME_RE.fullmatch(name):
        return None
    path = presets_dir / f"{name}.json"
    if not path.is_file():
        return None
    return load_layout(path)
