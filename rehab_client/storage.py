"""
Rehab Platform SDK Token Storage Implementations

Provides storage backends for the session tokens obtained at login.
Both keep the same record: access token, refresh token and the absolute
expiry time in epoch seconds.
"""

import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional


logger = logging.getLogger("rehab_client")


def _session(access_token: str, refresh_token: str, expires_in: int) -> Dict[str, Any]:
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "expires_at": time.time() + expires_in,
    }


def _expired(session: Dict[str, Any]) -> bool:
    expires_at = session.get("expires_at", 0)
    return expires_at > 0 and time.time() >= expires_at


class MemoryStorage:
    """In-memory token storage (default, non-persistent)."""

    def __init__(self) -> None:
        self._session: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get_access_token(self) -> Optional[str]:
        """Get the stored access token, None once expired."""
        with self._lock:
            if _expired(self._session):
                return None
            return self._session.get("access_token")

    def get_refresh_token(self) -> Optional[str]:
        with self._lock:
            return self._session.get("refresh_token")

    def set_tokens(self, access_token: str, refresh_token: str, expires_in: int) -> None:
        with self._lock:
            self._session = _session(access_token, refresh_token, expires_in)

    def clear_tokens(self) -> None:
        with self._lock:
            self._session = {}

    def get_expires_at(self) -> float:
        with self._lock:
            return self._session.get("expires_at", 0)


class FileStorage:
    """
    File-based token storage (persistent across restarts).

    The file is readable by its owner only. Writes go to a temp file in the
    same directory that is then renamed over the target, so readers see
    either the old session or the new one.
    """

    def __init__(self, file_path: Optional[str] = None) -> None:
        """
        Initialize file storage.

        Args:
            file_path: Path to token file. Defaults to ~/.rehab/tokens.json
        """
        if file_path:
            self._file_path = Path(file_path)
        else:
            self._file_path = Path.home() / ".rehab" / "tokens.json"

        self._lock = threading.Lock()
        self._file_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._file_path

    def _read_data(self) -> Dict[str, Any]:
        if not self._file_path.exists():
            return {}
        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable token file {self._file_path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_data(self, data: Dict[str, Any]) -> None:
        # mkstemp creates the file with mode 0600
        fd, tmp_path = tempfile.mkstemp(prefix=".tokens-", dir=str(self._file_path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self._file_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get_access_token(self) -> Optional[str]:
        with self._lock:
            data = self._read_data()
            return None if _expired(data) else data.get("access_token")

    def get_refresh_token(self) -> Optional[str]:
        with self._lock:
            return self._read_data().get("refresh_token")

    def set_tokens(self, access_token: str, refresh_token: str, expires_in: int) -> None:
        with self._lock:
            self._write_data(_session(access_token, refresh_token, expires_in))

    def clear_tokens(self) -> None:
        with self._lock:
            if self._file_path.exists():
                self._file_path.unlink()

    def get_expires_at(self) -> float:
        with self._lock:
            return self._read_data().get("expires_at", 0)
