"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel, Field

from dreadhall.models import GameEvent, PlayerProfile
from dreadhall.narrative import Narrative


class CreateSession(BaseModel):
    layout: str | None = None
    seed: int | None = None


class ActBody(BaseModel):
    text: str = Field(min_length=1)


class MoveBody(BaseModel):
    direction: str = Field(min_length=1)


class TickBody(BaseModel):
    delta: float = Field(gt=0)


class NarrateBody(BaseModel):
    choice: int | None = None


class CheckConnectionBody(BaseModel):
    provider_url: str
    api_key: str = ""


class SessionView(BaseModel):
    session_id: str
    room_id: str | None
    description: str
    exits: list[str]
    intensity: float
    thematic_weights: dict[str, float]
    profile: PlayerProfile
    complete: bool
    turn: int


class TurnResponse(SessionView):
    shown: list[str] = Field(default_factory=list)
    sounds: list[str] = Field(default_factory=list)
    event: GameEvent | None = None
    moved: bool = False


class TickResponse(SessionView):
    expired: int


class NarrateResponse(BaseModel):
    session_id: str
    state: str
    narratives: list[Narrative]
    pending: Narrative | None = None
    history: list[Narrative] = Field(default_factory=list)
