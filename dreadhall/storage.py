"""JSON file storage.

All state is stored in flat JSON files under a configurable base directory.
There is no database — reads and writes go through plain helper methods that
load and dump JSON via pydantic.

Directory layout:

    {base}/
      config.json             ← app settings (LLM connection, narrative)
      sessions/
        {session_id}.json     ← SessionState (level, rooms, effects, profile)

Config: get_config() returns defaults merged with stored values.
update_config() merges partial updates section by section and persists.
"""

from __future__ import annotations

import copy
import json
import re
from pathlib import Path
from typing import Any

from dreadhall.session import SessionState

_SESSION_ID_RE = re.compile(r"[A-Za-z0-9_-]+")

CONFIG_DEFAULTS: dict[str, Any] = {
    "llm": {
        "provider_url": "",
        "api_key": "",
        "provider_format": "koboldcpp",
        "model": "",
        "timeout": 60.0,
        "max_length": 200,
    },
    "narrative": {
        "enabled": False,
        "history_size": 10,
        "delay": 0.0,
    },
    "default_layout": "ward",
}


class Storage:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._sessions = base_path / "sessions"
        self._sessions.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _session_file(self, session_id: str) -> Path | None:
        if not _SESSION_ID_RE.fullmatch(session_id):
            return None
        return self._sessions / f"{session_id}.json"

    def _config_file(self) -> Path:
        return self._base / "config.json"

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def save_session(self, state: SessionState) -> None:
        """Create or overwrite a session by id."""
        path = self._session_file(state.session_id)
        if path is None:
            raise ValueError(f"Invalid session id: {state.session_id!r}")
        path.write_text(state.model_dump_json(indent=2))

    def get_session(self, session_id: str) -> SessionState | None:
        path = self._session_file(session_id)
        if path is None or not path.exists():
            return None
        return SessionState.model_validate_json(path.read_text())

    def list_sessions(self) -> list[str]:
        return sorted(p.stem for p in self._sessions.glob("*.json"))

    def delete_session(self, session_id: str) -> bool:
        path = self._session_file(session_id)
        if path is None or not path.exists():
            return False
        path.unlink()
        return True

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------

    def get_config(self) -> dict[str, Any]:
        """Read config, returning defaults merged with stored values."""
        config = copy.deepcopy(CONFIG_DEFAULTS)
        path = self._config_file()
        if path.is_file():
            _merge(config, json.loads(path.read_text()))
        return config

    def update_config(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Merge fields into config and persist. Returns full config."""
        config = self.get_config()
        _merge(config, fields)
        self._config_file().write_text(json.dumps(config, indent=2))
        return config


def _merge(config: dict[str, Any], fields: dict[str, Any]) -> None:
    # Sections merge key by key; unknown top-level keys are dropped.
    for key, value in fields.items():
        if key not in config:
            continue
        if isinstance(config[key], dict) and isinstance(value, dict):
            config[key].update(value)
        else:
            config[key] = value
