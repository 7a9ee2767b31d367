"""Output sinks — where the engine sends text and sound cues.

The engine never renders or plays audio itself. Anything that needs to reach
the player is handed to a sink object passed in by the caller:

    def show(self, text: str) -> None: ...
    def play(self, sound_id: str, volume: float = 1.0) -> None: ...

Two implementations are provided:

    NullSink       — drops everything. Default when the caller has no front end.
    RecordingSink  — keeps what it receives, in order. The HTTP layer returns
                     its contents to the client; tests assert on them.
"""

from __future__ import annotations

from typing import Protocol


class Sink(Protocol):
    def show(self, text: str) -> None: ...

    def play(self, sound_id: str, volume: float = 1.0) -> None: ...


class NullSink:
    def show(self, text: str) -> None:
        pass

    def play(self, sound_id: str, volume: float = 1.0) -> None:
        pass


class RecordingSink:
    """Collects shown text and (sound_id, volume) pairs."""

    def __init__(self) -> None:
        self.shown: list[str] = []
        self.sounds: list[tuple[str, float]] = []

    def show(self, text: str) -> None:
        self.shown.append(text)

    def play(self, sound_id: str, volume: float = 1.0) -> None:
        self.sounds.append((sound_id, volume))

    @property
    def sound_ids(self) -> list[str]:
        return [s for s, _ in self.sounds]
