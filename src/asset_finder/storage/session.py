"""Session-scoped storage in the login session's runtime directory."""

import json
import logging
import os
import tempfile
from typing import Dict, Optional

from .base import KeyValueStorage

logger = logging.getLogger(__name__)

SESSION_FILE_NAME = "asset-finder-session.json"


class SessionFileStorage(KeyValueStorage):
    """Store kept in one JSON file under the session runtime directory.

    The runtime directory (usually ``XDG_RUNTIME_DIR``) is wiped when the user's
    login session ends, so values survive process restarts but not logouts.
    """

    def __init__(self, session_dir: Optional[str]) -> None:
        self.session_dir = session_dir
        self.file_path = (
            os.path.join(session_dir, SESSION_FILE_NAME) if session_dir else None
        )

    def _require_path(self) -> str:
        if not self.file_path or not os.path.isdir(self.session_dir):
            raise OSError(f"Session directory not available: {self.session_dir!r}")
        return self.file_path

    def _load(self) -> Dict[str, str]:
        path = self._require_path()
        if not os.path.exists(path):
            return {}
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Discarding unreadable session store %s: %s", path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Invalid session store format in %s, ignoring", path)
            return {}
        return data

    def _save(self, data: Dict[str, str]) -> None:
        """Write the whole store atomically."""
        path = self._require_path()
        fd, temp_path = tempfile.mkstemp(dir=self.session_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f)
            os.chmod(temp_path, 0o600)
            os.replace(temp_path, path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    async def get_item(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    async def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    async def remove_item(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)
