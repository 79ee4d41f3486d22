"""
Local key-value persistence for discovery and voice sessions.

Each entry is one JSON file named after its key. There is no schema
versioning; the last write wins.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from ..errors import SessionNotFoundError
from .catalog import DEFAULT_CATALOG, WizardCatalog
from .engine import new_session
from .models import DiscoverySession

logger = logging.getLogger(__name__)

DISCOVERY_PREFIX = "discovery-session-"
VOICE_PREFIX = "voice-session-"

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class SessionStore:
    """
    JSON file store keyed by session id.

    Two independent entries can exist per id: the wizard session
    ("discovery-session-<id>") and the voice session bundle
    ("voice-session-<id>").
    """

    def __init__(self, data_dir: str = "./sessions"):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.data_dir / f"{key}.json"

    # ── Raw key/value access ────────────────────────────────────

    def get_item(self, key: str) -> Optional[dict[str, Any]]:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path) as f:
            return json.load(f)

    def set_item(self, key: str, value: dict[str, Any]):
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        with open(tmp, "w") as f:
            json.dump(value, f, indent=2)
        tmp.replace(path)
        logger.debug("Saved %s", key)

    def remove_item(self, key: str) -> bool:
        path = self._path(key)
        if path.exists():
            path.unlink()
            logger.debug("Removed %s", key)
            return True
        return False

    # ── Discovery sessions ──────────────────────────────────────

    def load_session(self, session_id: str) -> DiscoverySession:
        data = self.get_item(DISCOVERY_PREFIX + session_id)
        if data is None:
            raise SessionNotFoundError(f"No discovery session {session_id}")
        return DiscoverySession.from_dict(data)

    def load_or_create(
        self,
        session_id: str,
        catalog: WizardCatalog = DEFAULT_CATALOG,
    ) -> DiscoverySession:
        """Return the stored session, or a fresh default one (not yet saved)."""
        try:
            return self.load_session(session_id)
        except SessionNotFoundError:
            return new_session(session_id, catalog)

    def save_session(self, session: DiscoverySession):
        self.set_item(DISCOVERY_PREFIX + session.id, session.to_dict())

    def remove_session(self, session_id: str) -> bool:
        return self.remove_item(DISCOVERY_PREFIX + session_id)

    # ── Voice sessions ──────────────────────────────────────────

    def load_voice_session(self, session_id: str) -> Optional[dict[str, Any]]:
        return self.get_item(VOICE_PREFIX + session_id)

    def save_voice_session(self, session_id: str, bundle: dict[str, Any]):
        self.set_item(VOICE_PREFIX + session_id, bundle)

    def remove_voice_session(self, session_id: str) -> bool:
        return self.remove_item(VOICE_PREFIX + session_id)
