"""FastAPI API endpoints under /api.

Endpoint groups: settings (health, settings, layouts, check-connection) and
sessions (CRUD plus the act, move, tick and narrate turn endpoints nested
under /api/sessions/{session_id}/).
"""

from fastapi import APIRouter

from .sessions import router as sessions_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(sessions_router)
