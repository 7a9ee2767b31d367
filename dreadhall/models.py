"""Core domain models.

The player profile, room characters and scripted events. Pydantic is used
for validation and serialisation at every data boundary; the profile
validates on assignment so a raw out-of-range write fails loudly instead of
leaking past the [0, 1] clamp.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from dreadhall.sinks import Sink

Trait = Literal["fear", "obsession", "aggression", "curiosity"]

OBSESSION_THRESHOLD = 3  # keyword occurrences before it counts as an obsession


def clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


class ObsessivePattern(BaseModel):
    """A keyword the player keeps returning to."""

    keyword: str
    occurrences: int = 0


class PlayerProfile(BaseModel):
    """The player's inferred mental state.

    All four scalars stay within [0, 1]. Use adjust() for increments; it
    clamps. Direct assignment of an out-of-range value raises ValidationError.
    """

    model_config = ConfigDict(validate_assignment=True)

    fear_level: float = Field(0.0, ge=0.0, le=1.0)
    obsession_level: float = Field(0.0, ge=0.0, le=1.0)
    aggression_level: float = Field(0.0, ge=0.0, le=1.0)
    curiosity_level: float = Field(0.0, ge=0.0, le=1.0)
    choice_frequencies: dict[str, int] = Field(default_factory=dict)
    obsessive_patterns: dict[str, ObsessivePattern] = Field(default_factory=dict)

    def adjust(self, trait: Trait, delta: float) -> float:
        """Add delta to a trait, clamped to [0, 1]. Returns the new value."""
        attr = f"{trait}_level"
        value = clamp01(getattr(self, attr) + delta)
        setattr(self, attr, value)
        return value

    def track_keyword(self, keyword: str, count: int = 1) -> ObsessivePattern:
        key = keyword.lower()
        pattern = self.obsessive_patterns.get(key)
        if pattern is None:
            pattern = ObsessivePattern(keyword=key)
            self.obsessive_patterns[key] = pattern
        pattern.occurrences += count
        return pattern

    def track_choice(self, choice_type: str, target: str = "") -> None:
        """Count a player choice and track its target as a keyword."""
        key = choice_type.lower()
        self.choice_frequencies[key] = self.choice_frequencies.get(key, 0) + 1
        if target:
            self.track_keyword(target)

    def active_obsessions(self) -> list[ObsessivePattern]:
        return [
            p for p in self.obsessive_patterns.values()
            if p.occurrences >= OBSESSION_THRESHOLD
        ]


class Character(BaseModel):
    """A figure encountered in a room."""

    character_id: str
    name: str
    description: str = ""
    initial_dialogue: str = ""
    has_interacted: bool = False

    def interact(self) -> str | None:
        """Return the opening line on first contact, None afterwards."""
        if self.has_interacted:
            return None
        self.has_interacted = True
        return self.initial_dialogue


# event type → (trait, multiplier applied to event intensity)
_EVENT_FEEDBACK: dict[str, tuple[Trait, float]] = {
    "paranoia": ("fear", 0.2),
    "obsession": ("obsession", 0.15),
    "aggression": ("aggression", 0.1),
}


class GameEvent(BaseModel):
    """A scripted or generated piece of room text.

    `duration` is a presentation hint in seconds (how long the front end
    holds the text / delays the sound), not an effect lifetime.
    """

    event_id: str
    type: str = "atmospheric"
    description: str
    intensity: float = Field(0.5, ge=0.0, le=1.0)
    triggers: list[str] = Field(default_factory=lambda: ["observe"])
    sound_id: str | None = None
    duration: float = 0.0
    trigger_count: int = 0

    def trigger(self, profile: PlayerProfile, sink: Sink) -> None:
        """Show the event, play its sound and feed its type back into the profile.

        Fires every time it is called; callers gate on room entry.
        """
        sink.show(self.description)
        if self.sound_id:
            sink.play(self.sound_id)

        kind = self.type.lower()
        feedback = _EVENT_FEEDBACK.get(kind)
        if feedback or kind == "psychological":
            profile.track_choice(f"{kind}_event")
        else:
            profile.track_choice("general_event")
        if feedback:
            trait, factor = feedback
            profile.adjust(trait, self.intensity * factor)

        self.trigger_count += 1
