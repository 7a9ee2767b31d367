"""Tests for dreadhall.events — the event selection cascade."""

import random

import pytest

from dreadhall.effects import EffectType
from dreadhall.events import (
    ATMOSPHERE_LINES,
    HIGH_FEAR_LINES,
    determine_effect_type,
    generate_event,
    sound_for_effect,
)
from dreadhall.models import OBSESSION_THRESHOLD, PlayerProfile
from dreadhall.room import Room


@pytest.fixture
def room() -> Room:
    return Room("cellar", description="Damp stone.")


class TestDetermineEffectType:
    def test_fear_wins_first(self) -> None:
        p = PlayerProfile(fear_level=0.65, obsession_level=0.9, curiosity_level=0.9)
        assert determine_effect_type(p) is EffectType.PARANOIA_INDUCTION

    def test_obsession(self) -> None:
        p = PlayerProfile(obsession_level=0.75, curiosity_level=0.9)
        assert determine_effect_type(p) is EffectType.HALLUCINATION

    def test_curiosity(self) -> None:
        p = PlayerProfile(curiosity_level=0.85, aggression_level=0.9)
        assert determine_effect_type(p) is EffectType.ROOM_DISTORTION

    def test_aggression(self) -> None:
        assert determine_effect_type(PlayerProfile(aggression_level=0.8)) is EffectType.MEMORY_ALTER

    def test_fallback_is_time_distortion(self) -> None:
        assert determine_effect_type(PlayerProfile()) is EffectType.TIME_DISTORTION

    def test_thresholds_are_strict(self) -> None:
        p = PlayerProfile(fear_level=0.6, obsession_level=0.7, curiosity_level=0.8,
                          aggression_level=0.7)
        assert determine_effect_type(p) is EffectType.TIME_DISTORTION


def test_sound_for_effect() -> None:
    assert sound_for_effect(EffectType.PARANOIA_INDUCTION) == "footsteps"
    assert sound_for_effect(EffectType.MEMORY_ALTER) == "memoryEcho"


class TestGenerateEvent:
    def test_calm_player_gets_time_atmosphere(self, room: Room, rng: random.Random) -> None:
        event = generate_event(room, PlayerProfile(), rng)
        assert event.type == "atmospheric"
        assert event.description in ATMOSPHERE_LINES[EffectType.TIME_DISTORTION]
        assert event.sound_id == "clockDistortion"

    def test_event_id_and_duration(self, room: Room, rng: random.Random) -> None:
        event = generate_event(room, PlayerProfile(), rng)
        assert event.event_id.startswith("evt_cellar_")
        assert 0.5 <= event.duration <= 2.0

    def test_ids_are_unique(self, room: Room, rng: random.Random) -> None:
        ids = {generate_event(room, PlayerProfile(), rng).event_id for _ in range(20)}
        assert len(ids) == 20

    def test_does_not_mutate_inputs(self, room: Room, rng: random.Random) -> None:
        p = PlayerProfile(fear_level=0.9)
        p.track_keyword("rope", count=OBSESSION_THRESHOLD)
        before = p.model_copy(deep=True)
        generate_event(room, p, rng)
        assert p == before
        assert room.display_description == "Damp stone."

    def test_obsession_fires_about_forty_percent(self, room: Room) -> None:
        rng = random.Random(99)
        p = PlayerProfile()
        p.track_keyword("rope", count=OBSESSION_THRESHOLD)
        trials = 4000
        events = [generate_event(room, p, rng) for _ in range(trials)]
        obsessive = [e for e in events if e.sound_id == "obsessionWhisper"]
        assert len(obsessive) / trials == pytest.approx(0.4, abs=0.04)
        assert all("rope" in e.description for e in obsessive)
        assert all(e.type == "psychological" for e in obsessive)

    def test_high_fear_fires_about_half(self, room: Room) -> None:
        rng = random.Random(7)
        p = PlayerProfile(fear_level=0.8)
        trials = 4000
        events = [generate_event(room, p, rng) for _ in range(trials)]
        fearful = [e for e in events if e.sound_id == "heartbeat"]
        assert len(fearful) / trials == pytest.approx(0.5, abs=0.04)
        assert all(e.description in HIGH_FEAR_LINES for e in fearful)

    def test_high_fear_fallback_is_paranoia(self, room: Room) -> None:
        rng = random.Random(7)
        p = PlayerProfile(fear_level=0.8)
        events = [generate_event(room, p, rng) for _ in range(200)]
        others = [e for e in events if e.sound_id != "heartbeat"]
        assert others
        assert all(e.sound_id == "footsteps" for e in others)

    def test_fear_at_threshold_never_uses_high_fear_pool(self, room: Room) -> None:
        rng = random.Random(3)
        p = PlayerProfile(fear_level=0.7)
        events = [generate_event(room, p, rng) for _ in range(200)]
        assert not any(e.sound_id == "heartbeat" for e in events)


def test_very_high_fear_splits_between_fear_and_paranoia_pools(room: Room) -> None:
    rng = random.Random(2024)
    p = PlayerProfile(fear_level=0.9)
    trials = 4000
    events = [generate_event(room, p, rng) for _ in range(trials)]

    fearful = sum(1 for e in events if e.description in HIGH_FEAR_LINES)
    paranoid = sum(
        1 for e in events
        if e.description in ATMOSPHERE_LINES[EffectType.PARANOIA_INDUCTION]
    )
    assert fearful + paranoid == trials
    assert fearful / trials == pytest.approx(0.5, abs=0.04)
