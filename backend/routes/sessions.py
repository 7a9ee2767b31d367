"""Session CRUD + turn endpoints (act, move, tick, narrate).

Every turn endpoint loads the session from disk, runs one engine call with a
RecordingSink, saves, and returns the new view plus whatever the sink caught.
The load-to-save span holds a per-session asyncio.Lock so concurrent turns on
one session run one after another.
"""

import asyncio
import logging
import random

from fastapi import APIRouter, HTTPException

from backend.store import get_storage
from dreadhall.layouts import build_level, get_layout
from dreadhall.llm import EchoLLM, HttpLLM, LLMError
from dreadhall.narrative import (
    NarrativeError,
    NarrativeQueue,
    build_choice_prompt,
    build_event_prompt,
)
from dreadhall.session import GameSession
from dreadhall.sinks import RecordingSink

from .models import (
    ActBody,
    CreateSession,
    MoveBody,
    NarrateBody,
    NarrateResponse,
    SessionView,
    TickBody,
    TickResponse,
    TurnResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# One lock per session id, held across each load-mutate-save cycle.
_session_locks: dict[str, asyncio.Lock] = {}


def _lock(session_id: str) -> asyncio.Lock:
    return _session_locks.setdefault(session_id, asyncio.Lock())


def _load(session_id: str) -> GameSession:
    state = get_storage().get_session(session_id)
    if state is None:
        raise HTTPException(404, "Session not found")
    return GameSession.from_snapshot(state)


def _view(session: GameSession) -> dict:
    room = session.current_room
    return {
        "session_id": session.session_id,
        "room_id": session.current_room_id,
        "description": room.display_description if room else "",
        "exits": room.available_exits() if room else [],
        "intensity": session.level.intensity,
        "thematic_weights": session.level.thematic_weights,
        "profile": session.profile,
        "complete": session.level.is_complete(),
        "turn": session.turn,
    }


def _turn(session: GameSession, sink: RecordingSink, event, moved: bool) -> TurnResponse:
    get_storage().save_session(session.snapshot())
    return TurnResponse(
        **_view(session),
        shown=sink.shown,
        sounds=sink.sound_ids,
        event=event,
        moved=moved,
    )


# ── CRUD ─────────────────────────────────────────────────

@router.get("/sessions")
async def list_sessions():
    """List saved session ids."""
    return get_storage().list_sessions()


@router.post("/sessions", status_code=201)
async def create_session(body: CreateSession) -> TurnResponse:
    """Start a new session on a layout and enter its start room."""
    name = body.layout or get_storage().get_config()["default_layout"]
    layout = get_layout(name)
    if layout is None:
        raise HTTPException(404, f"Layout '{name}' not found")

    rng = random.Random(body.seed) if body.seed is not None else None
    session = GameSession(build_level(layout), rng=rng)
    sink = RecordingSink()
    event = session.start(sink)
    logger.info("Session %s started on layout %s", session.session_id, name)
    return _turn(session, sink, event, moved=event is not None)


@router.get("/sessions/{session_id}")
async def get_session(session_id: str) -> SessionView:
    """Get the current view of a session."""
    return SessionView(**_view(_load(session_id)))


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    """Delete a saved session."""
    async with _lock(session_id):
        if not get_storage().delete_session(session_id):
            raise HTTPException(404, "Session not found")
    _session_locks.pop(session_id, None)
    return {"ok": True}


# ── Turns ────────────────────────────────────────────────

@router.post("/sessions/{session_id}/act")
async def act(session_id: str, body: ActBody) -> TurnResponse:
    """Interpret free-text input; movement commands enter the next room."""
    async with _lock(session_id):
        session = _load(session_id)
        sink = RecordingSink()
        event = session.act(body.text, sink)
        return _turn(session, sink, event, moved=event is not None)


@router.post("/sessions/{session_id}/move")
async def move(session_id: str, body: MoveBody) -> TurnResponse:
    """Follow an exit of the current room."""
    async with _lock(session_id):
        session = _load(session_id)
        sink = RecordingSink()
        event = session.move(body.direction, sink)
        if event is None:
            raise HTTPException(400, f"No exit '{body.direction}' from here")
        return _turn(session, sink, event, moved=True)


@router.post("/sessions/{session_id}/tick")
async def tick(session_id: str, body: TickBody) -> TickResponse:
    """Advance effect time by delta seconds."""
    async with _lock(session_id):
        session = _load(session_id)
        expired = session.tick(body.delta)
        get_storage().save_session(session.snapshot())
        return TickResponse(**_view(session), expired=len(expired))


@router.post("/sessions/{session_id}/narrate")
async def narrate(session_id: str, body: NarrateBody) -> NarrateResponse:
    """Generate narration for the current room, or resolve a pending choice.

    With a choice pending, `choice` picks one and the consequence is narrated.
    Otherwise a room event is narrated; it may offer new choices. The session
    stays locked while the LLM call is in flight, so turns sent meanwhile
    wait for it rather than being overwritten.
    """
    config = get_storage().get_config()
    if not config["narrative"]["enabled"]:
        raise HTTPException(400, "Narrative generation is disabled in settings")

    async with _lock(session_id):
        session = _load(session_id)
        room = session.current_room
        if room is None:
            raise HTTPException(409, "Session has not entered a room")

        llm = HttpLLM.from_config(config["llm"]) if config["llm"]["provider_url"] else EchoLLM()
        queue = NarrativeQueue(
            llm,
            history_size=config["narrative"]["history_size"],
            delay=config["narrative"]["delay"],
            history=session.narrative_history,
        )

        try:
            pending = session.pending_narrative
            if pending is not None:
                if body.choice is None:
                    raise HTTPException(409, "A choice is pending")
                queue.resume(pending)
                choice = queue.choose(body.choice)
                session.profile.track_choice("narrative_choice")
                queue.submit("choice", build_choice_prompt(pending, choice, session.profile))
            elif body.choice is not None:
                queue.choose(body.choice)
            else:
                queue.submit("room_event", build_event_prompt(session.level, room, session.profile))

            narratives = await queue.process()
        except NarrativeError as e:
            raise HTTPException(409, str(e))
        except LLMError as e:
            logger.error("Narration failed for session %s: %s", session_id, e)
            raise HTTPException(502, str(e))

        session.pending_narrative = queue.pending
        session.narrative_history = list(queue.history)
        get_storage().save_session(session.snapshot())
        return NarrateResponse(
            session_id=session.session_id,
            state=queue.state.value,
            narratives=narratives,
            pending=queue.pending,
            history=session.narrative_history,
        )
