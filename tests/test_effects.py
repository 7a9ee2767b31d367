"""Tests for dreadhall.effects — text rules, feedback, decay and failure handling."""

import logging
import random

import pytest

from dreadhall import effects
from dreadhall.effects import (
    MILD_UNEASE_LINE,
    PARANOIA_LINES,
    REALITY_WARP_LINE,
    TIME_LINES,
    WRONG_GEOMETRY_LINE,
    EffectType,
    PsychologicalEffect,
    modified_intensity,
    mutate_text,
)
from dreadhall.models import PlayerProfile
from dreadhall.room import Room
from dreadhall.sinks import RecordingSink

BASE = "A wall, a door, a window. The ceiling sags toward the floor."


# ---------------------------------------------------------------------------
# Text mutation
# ---------------------------------------------------------------------------

class TestRoomDistortionText:
    def test_low_intensity_adds_unease_line(self) -> None:
        out = mutate_text(EffectType.ROOM_DISTORTION, 0.3, BASE)
        assert out == f"{BASE}\n{MILD_UNEASE_LINE}"

    def test_mid_intensity_adds_geometry_line(self) -> None:
        out = mutate_text(EffectType.ROOM_DISTORTION, 0.5, BASE)
        assert out == f"{BASE}\n{WRONG_GEOMETRY_LINE}"

    def test_high_intensity_replaces_words(self) -> None:
        out = mutate_text(EffectType.ROOM_DISTORTION, 0.9, BASE)
        assert out.startswith("A membrane, a portal, a void. The sky sags toward the ground.")
        assert out.endswith(REALITY_WARP_LINE)

    def test_boundary_at_seven_tenths_is_mid(self) -> None:
        out = mutate_text(EffectType.ROOM_DISTORTION, 0.7, BASE)
        assert out.endswith(WRONG_GEOMETRY_LINE)
        assert "wall" in out


class TestPoolText:
    @pytest.mark.parametrize("intensity,lines", [(0.3, 1), (0.5, 1), (0.8, 2), (1.0, 2)])
    def test_paranoia_line_count(self, intensity: float, lines: int) -> None:
        out = mutate_text(EffectType.PARANOIA_INDUCTION, intensity, "Base.", random.Random(3))
        added = out.split("\n")[1:]
        assert len(added) == lines
        assert all(line in PARANOIA_LINES for line in added)

    def test_time_lines_come_from_time_pool(self) -> None:
        out = mutate_text(EffectType.TIME_DISTORTION, 0.9, "Base.", random.Random(5))
        added = out.split("\n")[1:]
        assert added
        assert all(line in TIME_LINES for line in added)

    def test_zero_intensity_adds_nothing(self) -> None:
        assert mutate_text(EffectType.PARANOIA_INDUCTION, 0.0, "Base.") == "Base."


@pytest.mark.parametrize("effect_type", [EffectType.HALLUCINATION, EffectType.MEMORY_ALTER])
def test_variants_without_text_rule_pass_through(effect_type: EffectType) -> None:
    assert mutate_text(effect_type, 0.9, BASE) == BASE


def test_inactive_effect_leaves_text_alone() -> None:
    effect = PsychologicalEffect(type=EffectType.ROOM_DISTORTION, intensity=0.5, is_active=False)
    assert effect.modify_description(BASE) == BASE


# ---------------------------------------------------------------------------
# Apply: sound + feedback
# ---------------------------------------------------------------------------

class TestApply:
    def _room(self) -> Room:
        return Room("hall", description=BASE)

    def test_paranoia_raises_fear(self) -> None:
        p = PlayerProfile()
        PsychologicalEffect(type=EffectType.PARANOIA_INDUCTION, intensity=0.5).apply(
            self._room(), p, rng=random.Random(1)
        )
        assert p.fear_level == pytest.approx(0.05)
        assert p.obsession_level == 0.0

    def test_room_distortion_raises_obsession(self) -> None:
        p = PlayerProfile()
        PsychologicalEffect(type=EffectType.ROOM_DISTORTION, intensity=0.6).apply(self._room(), p)
        assert p.obsession_level == pytest.approx(0.06)

    def test_time_distortion_raises_both(self) -> None:
        p = PlayerProfile()
        PsychologicalEffect(type=EffectType.TIME_DISTORTION, intensity=0.8).apply(
            self._room(), p, rng=random.Random(1)
        )
        assert p.fear_level == pytest.approx(0.04)
        assert p.obsession_level == pytest.approx(0.04)

    def test_hallucination_has_no_feedback(self) -> None:
        p = PlayerProfile()
        PsychologicalEffect(type=EffectType.HALLUCINATION, intensity=0.9).apply(self._room(), p)
        assert p == PlayerProfile()

    def test_feedback_clamped(self) -> None:
        p = PlayerProfile(fear_level=0.99)
        PsychologicalEffect(type=EffectType.PARANOIA_INDUCTION, intensity=1.0).apply(
            self._room(), p, rng=random.Random(1)
        )
        assert p.fear_level == 1.0

    def test_sound_volume_scaled_by_fear(self) -> None:
        sink = RecordingSink()
        PsychologicalEffect(
            type=EffectType.ROOM_DISTORTION, intensity=0.6, associated_sound_id="groan"
        ).apply(self._room(), PlayerProfile(fear_level=0.5), sink)
        assert sink.sounds == [("groan", pytest.approx(0.9))]

    def test_sound_volume_clamped(self) -> None:
        sink = RecordingSink()
        PsychologicalEffect(
            type=EffectType.PARANOIA_INDUCTION, intensity=0.8, associated_sound_id="steps"
        ).apply(self._room(), PlayerProfile(aggression_level=0.5), sink, random.Random(1))
        assert sink.sounds == [("steps", 1.0)]

    def test_no_sink_no_error(self) -> None:
        room = self._room()
        PsychologicalEffect(
            type=EffectType.ROOM_DISTORTION, intensity=0.5, associated_sound_id="groan"
        ).apply(room, PlayerProfile())
        assert room.display_description.endswith(WRONG_GEOMETRY_LINE)

    def test_failure_is_logged_and_text_restored(self, monkeypatch, caplog) -> None:
        def boom(text, intensity, rng):
            raise KeyError("missing mutation")

        monkeypatch.setitem(effects._MUTATORS, EffectType.HALLUCINATION, boom)
        room = self._room()
        p = PlayerProfile()

        with caplog.at_level(logging.ERROR, logger="dreadhall.effects"):
            PsychologicalEffect(type=EffectType.HALLUCINATION, intensity=0.5).apply(room, p)

        assert room.display_description == BASE
        assert "Error applying hallucination effect in room hall" in caplog.text


def test_modified_intensity_other_variants_unscaled() -> None:
    p = PlayerProfile(fear_level=1.0, aggression_level=1.0)
    assert modified_intensity(EffectType.TIME_DISTORTION, 0.4, p) == 0.4
    assert modified_intensity(EffectType.PARANOIA_INDUCTION, 0.4, p) == pytest.approx(0.8)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestUpdate:
    def test_linear_decay(self) -> None:
        e = PsychologicalEffect(type=EffectType.TIME_DISTORTION, intensity=0.8, duration=10.0)
        e.update(5.0)
        assert e.intensity == pytest.approx(0.4)
        assert e.is_active

    def test_expires_at_duration(self) -> None:
        e = PsychologicalEffect(type=EffectType.TIME_DISTORTION, intensity=0.8, duration=10.0)
        e.update(4.0)
        e.update(6.0)
        assert e.intensity == 0.0
        assert not e.is_active

    def test_many_small_ticks_reach_expiry(self) -> None:
        e = PsychologicalEffect(type=EffectType.TIME_DISTORTION, intensity=0.8, duration=10.0)
        for _ in range(100):
            e.update(0.1)
        assert e.intensity == 0.0
        assert not e.is_active

    def test_inactive_is_terminal(self) -> None:
        e = PsychologicalEffect(type=EffectType.TIME_DISTORTION, intensity=0.8, duration=1.0)
        e.update(2.0)
        e.update(1.0)
        assert not e.is_active
        assert e.elapsed == 2.0

    def test_permanent_never_decays(self) -> None:
        e = PsychologicalEffect(
            type=EffectType.ROOM_DISTORTION, intensity=0.6, duration=1.0, is_permanent=True
        )
        e.update(100.0)
        assert e.intensity == 0.6
        assert e.is_active

    def test_zero_duration_holds_intensity(self) -> None:
        e = PsychologicalEffect(type=EffectType.HALLUCINATION, intensity=0.6)
        e.update(3.0)
        assert e.elapsed == 3.0
        assert e.intensity == 0.6
        assert e.is_active

    def test_start_intensity_survives_serialisation(self) -> None:
        e = PsychologicalEffect(type=EffectType.TIME_DISTORTION, intensity=0.8, duration=10.0)
        e.update(5.0)
        restored = PsychologicalEffect.model_validate_json(e.model_dump_json())
        restored.update(2.5)
        assert restored.intensity == pytest.approx(0.2)
