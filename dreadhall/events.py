"""Event selection — picks the text that fires when the player enters a room.

Priority cascade, each step gated by its own roll:
  1. obsession   — any active obsession, 40%: an obsession template with the
                   keyword filled in (sound "obsessionWhisper")
  2. high fear   — fear > 0.7, 50%: a high-fear line (sound "heartbeat")
  3. atmosphere  — a line from the pool of the effect type that best matches
                   the profile (see determine_effect_type)

Reads the room and profile, never mutates them.
"""

from __future__ import annotations

import random
import uuid

from dreadhall.effects import EffectType
from dreadhall.models import GameEvent, PlayerProfile
from dreadhall.room import Room

OBSESSION_CHANCE = 0.4
HIGH_FEAR_THRESHOLD = 0.7
HIGH_FEAR_CHANCE = 0.5

OBSESSION_TEMPLATES = (
    "You can't stop thinking about {0}, it's everywhere you look.",
    "The word '{0}' seems to repeat endlessly in your mind.",
    "Every surface seems to reflect your obsession with {0}.",
    "You see patterns of {0} forming in the mundane details of the room.",
)

HIGH_FEAR_LINES = (
    "Your heart races as shadows dart between the corners of your vision.",
    "The air grows thick with the weight of your mounting dread.",
    "Every sound seems to carry a hint of threat.",
    "Your muscles tense involuntarily, preparing for flight.",
)

ATMOSPHERE_LINES: dict[EffectType, tuple[str, ...]] = {
    EffectType.PARANOIA_INDUCTION: (
        "You hear footsteps matching your own, but slightly out of sync.",
        "Your reflection in a surface seems to move a fraction of a second too late.",
        "The shadows in the room appear to be cast from impossible angles.",
        "You distinctly feel eyes watching you, but cannot locate their source.",
    ),
    EffectType.TIME_DISTORTION: (
        "The clock on the wall ticks backwards for three beats, then forwards for two.",
        "You watch dust particles freeze in mid-air, suspended in an impossible moment.",
        "Your own movements seem to leave lingering afterimages in the air.",
        "Time feels thick here, like moving through cooling glass.",
    ),
    EffectType.ROOM_DISTORTION: (
        "The walls pulse slowly, like the breathing of some vast creature.",
        "The room's geometry shifts subtly when viewed from different angles.",
        "Furniture casts shadows that don't match their physical forms.",
        "The ceiling seems to rise and fall with your breathing.",
    ),
    EffectType.HALLUCINATION: (
        "Writing appears on the wall, spelling out words you'd rather not read.",
        "Objects in your peripheral vision change shape when directly observed.",
        "You hear whispers that seem to respond to your thoughts.",
        "The air shimmers with half-formed figures that disperse when noticed.",
    ),
    EffectType.MEMORY_ALTER: (
        "You recognize this room, but the memory feels impossible.",
        "Personal items you've never owned before lie scattered about.",
        "Photos on the wall show memories you both do and don't remember.",
        "You find notes written in your handwriting that you never wrote.",
    ),
}

EFFECT_SOUNDS: dict[EffectType, str] = {
    EffectType.PARANOIA_INDUCTION: "footsteps",
    EffectType.TIME_DISTORTION: "clockDistortion",
    EffectType.ROOM_DISTORTION: "spatialDistortion",
    EffectType.HALLUCINATION: "whispers",
    EffectType.MEMORY_ALTER: "memoryEcho",
}


def determine_effect_type(profile: PlayerProfile) -> EffectType:
    """First matching threshold wins; time distortion is the fallback."""
    if profile.fear_level > 0.6:
        return EffectType.PARANOIA_INDUCTION
    if profile.obsession_level > 0.7:
        return EffectType.HALLUCINATION
    if profile.curiosity_level > 0.8:
        return EffectType.ROOM_DISTORTION
    if profile.aggression_level > 0.7:
        return EffectType.MEMORY_ALTER
    return EffectType.TIME_DISTORTION


def sound_for_effect(effect_type: EffectType) -> str:
    return EFFECT_SOUNDS.get(effect_type, "ambient")


def generate_event(room: Room, profile: PlayerProfile, rng=None) -> GameEvent:
    """Pick one event for this room and player state."""
    rng = rng or random

    obsessions = profile.active_obsessions()
    if obsessions and rng.random() < OBSESSION_CHANCE:
        obsession = rng.choice(obsessions)
        description = rng.choice(OBSESSION_TEMPLATES).format(obsession.keyword)
        event_type, sound = "psychological", "obsessionWhisper"
    elif profile.fear_level > HIGH_FEAR_THRESHOLD and rng.random() < HIGH_FEAR_CHANCE:
        description = rng.choice(HIGH_FEAR_LINES)
        event_type, sound = "psychological", "heartbeat"
    else:
        effect_type = determine_effect_type(profile)
        description = rng.choice(ATMOSPHERE_LINES[effect_type])
        event_type, sound = "atmospheric", sound_for_effect(effect_type)

    return GameEvent(
        event_id=f"evt_{room.room_id}_{uuid.uuid4().hex[:8]}",
        type=event_type,
        description=description,
        sound_id=sound,
        duration=rng.uniform(0.5, 2.0),
    )
