"""Psychological effects — tagged variants with per-variant dispatch tables.

An effect is plain data (type, intensity, timing). Behaviour lives in module
level tables keyed by EffectType:

  _MUTATORS             text mutation      (RoomDistortion, ParanoiaInduction,
                                            TimeDistortion; others pass through)
  _FEEDBACK             profile feedback   (trait increments per unit intensity)
  _INTENSITY_MODIFIERS  profile-scaled intensity, used for sound volume

Lifecycle: Active → Inactive (terminal). A non-permanent effect with a
positive duration decays linearly to 0 and goes inactive when elapsed reaches
duration. Reapplying means creating a new effect.
"""

from __future__ import annotations

import logging
import math
import random
from enum import Enum
from typing import TYPE_CHECKING, Callable

from pydantic import BaseModel, Field

from dreadhall.models import PlayerProfile, Trait, clamp01

if TYPE_CHECKING:
    from dreadhall.room import Room
    from dreadhall.sinks import Sink

logger = logging.getLogger(__name__)


class EffectType(str, Enum):
    ROOM_DISTORTION = "room_distortion"
    MEMORY_ALTER = "memory_alter"
    HALLUCINATION = "hallucination"
    PARANOIA_INDUCTION = "paranoia_induction"
    TIME_DISTORTION = "time_distortion"


# ---------------------------------------------------------------------------
# Text pools
# ---------------------------------------------------------------------------

MILD_UNEASE_LINE = "Something feels slightly off about this room."
REALITY_WARP_LINE = "Reality itself seems to warp and twist here."
WRONG_GEOMETRY_LINE = "The geometry of this space feels increasingly wrong."

# Slack for float drift when small deltas add up to the duration.
EXPIRY_TOLERANCE = 1e-9

DISTORTION_REPLACEMENTS = (
    ("wall", "membrane"),
    ("door", "portal"),
    ("window", "void"),
    ("ceiling", "sky"),
    ("floor", "ground"),
)

PARANOIA_LINES = (
    "Did something just move in the corner?",
    "You can't shake the feeling of being watched.",
    "The shadows seem to follow your movements.",
    "You hear whispers, but can't make out the words.",
    "Every reflection shows something slightly... different.",
)

TIME_LINES = (
    "Time seems to flow differently here.",
    "Your watch shows impossible times.",
    "Seconds stretch into eternities.",
    "The air feels thick with temporal displacement.",
    "Past and future blur together in this space.",
)


# ---------------------------------------------------------------------------
# Dispatch: text mutation
# ---------------------------------------------------------------------------

def _distort_room(text: str, intensity: float, rng) -> str:
    if intensity <= 0.3:
        return f"{text}\n{MILD_UNEASE_LINE}"
    if intensity > 0.7:
        for old, new in DISTORTION_REPLACEMENTS:
            text = text.replace(old, new)
        return f"{text}\n{REALITY_WARP_LINE}"
    return f"{text}\n{WRONG_GEOMETRY_LINE}"


def _pool_appender(pool: tuple[str, ...]) -> Callable[[str, float, object], str]:
    def append_lines(text: str, intensity: float, rng) -> str:
        # Independent draws; the same line may appear twice.
        count = min(math.ceil(intensity * 2), len(pool))
        for _ in range(count):
            text += "\n" + rng.choice(pool)
        return text

    return append_lines


_MUTATORS: dict[EffectType, Callable[[str, float, object], str]] = {
    EffectType.ROOM_DISTORTION: _distort_room,
    EffectType.PARANOIA_INDUCTION: _pool_appender(PARANOIA_LINES),
    EffectType.TIME_DISTORTION: _pool_appender(TIME_LINES),
}


def mutate_text(effect_type: EffectType, intensity: float, text: str, rng=None) -> str:
    """Apply one variant's text rule. Variants without a rule return text unchanged."""
    mutator = _MUTATORS.get(effect_type)
    if mutator is None:
        return text
    return mutator(text, intensity, rng or random)


# ---------------------------------------------------------------------------
# Dispatch: profile feedback and intensity modifiers
# ---------------------------------------------------------------------------

_FEEDBACK: dict[EffectType, tuple[tuple[Trait, float], ...]] = {
    EffectType.PARANOIA_INDUCTION: (("fear", 0.1),),
    EffectType.ROOM_DISTORTION: (("obsession", 0.1),),
    EffectType.TIME_DISTORTION: (("fear", 0.05), ("obsession", 0.05)),
}


def apply_feedback(effect_type: EffectType, intensity: float, profile: PlayerProfile) -> None:
    for trait, factor in _FEEDBACK.get(effect_type, ()):
        profile.adjust(trait, intensity * factor)


_INTENSITY_MODIFIERS: dict[EffectType, Callable[[float, PlayerProfile], float]] = {
    EffectType.ROOM_DISTORTION: lambda i, p: i * (1 + p.fear_level),
    EffectType.PARANOIA_INDUCTION: lambda i, p: i * (1 + p.aggression_level),
}


def modified_intensity(effect_type: EffectType, intensity: float, profile: PlayerProfile) -> float:
    modifier = _INTENSITY_MODIFIERS.get(effect_type)
    return modifier(intensity, profile) if modifier else intensity


# ---------------------------------------------------------------------------
# PsychologicalEffect
# ---------------------------------------------------------------------------

class PsychologicalEffect(BaseModel):
    """One effect instance, owned by a single room.

    Rooms remove effects by identity, so two effects with equal fields are
    still distinct instances.
    """

    type: EffectType
    intensity: float = Field(ge=0.0, le=1.0)
    description: str = ""
    associated_sound_id: str | None = None
    is_permanent: bool = False
    duration: float = 0.0
    elapsed: float = 0.0
    is_active: bool = True
    start_intensity: float | None = None  # decay anchor, set on creation

    def model_post_init(self, __context) -> None:
        if self.start_intensity is None:
            self.start_intensity = self.intensity

    def modify_description(self, text: str, rng=None) -> str:
        if not self.is_active:
            return text
        return mutate_text(self.type, self.intensity, text, rng)

    def apply(
        self,
        room: Room,
        profile: PlayerProfile,
        sink: Sink | None = None,
        rng=None,
    ) -> None:
        """Sound cue, text mutation and profile feedback for one application.

        Never raises. On failure the room keeps the text it had before this
        call.
        """
        if not self.is_active:
            return

        before = room.display_description
        try:
            if self.associated_sound_id and sink is not None:
                volume = clamp01(modified_intensity(self.type, self.intensity, profile))
                sink.play(self.associated_sound_id, volume)
            room.display_description = self.modify_description(before, rng)
            apply_feedback(self.type, self.intensity, profile)
        except Exception:
            logger.exception(
                "Error applying %s effect in room %s", self.type.value, room.room_id
            )
            room.display_description = before

    def update(self, delta: float) -> None:
        """Advance elapsed time by delta seconds and decay intensity."""
        if not self.is_active or self.is_permanent:
            return

        self.elapsed += delta
        if self.duration <= 0:
            return

        if self.elapsed >= self.duration - EXPIRY_TOLERANCE:
            self.intensity = 0.0
            self.is_active = False
            return

        self.intensity = self.start_intensity * (1 - self.elapsed / self.duration)
