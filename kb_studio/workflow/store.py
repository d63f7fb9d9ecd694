"""Session persistence: saved-session list and autosave slot.

``SessionStore`` keeps two fixed keys in an injected key-value store:

- ``kb-generator-sessions``: list of manually saved sessions, newest first,
  capped at MAX_SAVED_SESSIONS (oldest evicted)
- ``kb-generator-autosave``: a single autosave slot, overwritten each time

Values are serialized JSON strings. Unreadable or malformed stored data is
logged and treated as empty; failed writes raise ``SessionStoreError``.
Writes are last-writer-wins; there is no coordination between concurrent
writers to the same keys.
"""

import json
import time
from typing import Any, Callable, Final, Optional, Protocol

from pydantic import ValidationError

from kb_studio.database.db import read_value, remove_value, write_value
from kb_studio.utils.config import get_settings
from kb_studio.utils.logging_config import get_logger
from kb_studio.workflow.error_handling import SessionStoreError
from kb_studio.workflow.state import SavedSession

SAVED_SESSIONS_KEY: Final = "kb-generator-sessions"
AUTOSAVE_KEY: Final = "kb-generator-autosave"


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


class KeyValueStore(Protocol):
    """Minimal get/set/delete store over serialized JSON strings."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Dict-backed store for tests and single-process use."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class SqlKeyValueStore:
    """Store backed by the ``stored_values`` table.

    Requires ``kb_studio.database.db.init_db()`` to have been called.
    """

    def get(self, key: str) -> Optional[str]:
        return read_value(key)

    def set(self, key: str, value: str) -> None:
        write_value(key, value)

    def delete(self, key: str) -> None:
        remove_value(key)


class SessionStore:
    """Saved sessions and the autosave slot over a KeyValueStore.

    Args:
        backend: Key-value store holding the serialized values
        max_saved: Cap on the saved-session list (defaults to settings)
        clock: Returns the current time in seconds; timestamps are derived
            from it in epoch milliseconds
    """

    def __init__(
        self,
        backend: KeyValueStore,
        *,
        max_saved: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend
        self.max_saved = max_saved if max_saved is not None else get_settings().MAX_SAVED_SESSIONS
        self._clock = clock
        self._last_timestamp = 0

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def _read_json(self, key: str) -> Any:
        """Parsed value under key, or None when missing or unreadable."""
        try:
            raw = self.backend.get(key)
        except Exception as e:  # pylint: disable=broad-except
            _get_logger().warning(
                "Session storage unavailable, treating as empty",
                extra={"extra_fields": {"key": key, "error_type": type(e).__name__}},
            )
            return None

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            _get_logger().warning(
                "Corrupted session data, treating as empty", extra={"extra_fields": {"key": key}}
            )
            return None

    def list_saved(self) -> list[SavedSession]:
        """Saved sessions, newest first. Malformed entries are skipped."""
        data = self._read_json(SAVED_SESSIONS_KEY)
        if data is None:
            return []
        if not isinstance(data, list):
            _get_logger().warning(
                "Saved session list has unexpected shape, treating as empty",
                extra={"extra_fields": {"key": SAVED_SESSIONS_KEY}},
            )
            return []

        sessions = []
        for entry in data:
            try:
                sessions.append(SavedSession.model_validate(entry))
            except ValidationError:
                _get_logger().warning(
                    "Skipping malformed saved session",
                    extra={"extra_fields": {"key": SAVED_SESSIONS_KEY}},
                )
        return sessions

    def load_autosave(self) -> Optional[SavedSession]:
        """The autosaved session, or None if absent or malformed."""
        data = self._read_json(AUTOSAVE_KEY)
        if data is None:
            return None
        try:
            return SavedSession.model_validate(data)
        except ValidationError:
            _get_logger().warning(
                "Malformed autosave, ignoring", extra={"extra_fields": {"key": AUTOSAVE_KEY}}
            )
            return None

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def _write_json(self, key: str, value: Any) -> None:
        try:
            self.backend.set(key, json.dumps(value))
        except Exception as e:
            _get_logger().error(
                "Failed to write session data",
                extra={"extra_fields": {"key": key, "error_type": type(e).__name__}},
            )
            raise SessionStoreError(f"Could not save session data: {e}", key=key) from e

    def _next_timestamp(self, existing: list[SavedSession]) -> int:
        """Current time in ms, bumped past every timestamp already issued."""
        latest = max([self._last_timestamp, *(s.timestamp for s in existing)])
        timestamp = max(int(self._clock() * 1000), latest + 1)
        self._last_timestamp = timestamp
        return timestamp

    def save(self, snapshot: SavedSession) -> SavedSession:
        """Prepend a snapshot to the saved list, evicting the oldest past the cap.

        Returns:
            The stored snapshot with its assigned timestamp

        Raises:
            SessionStoreError: If the backend write fails
        """
        existing = self.list_saved()
        stored = snapshot.model_copy(update={"timestamp": self._next_timestamp(existing)})
        sessions = [stored, *existing][: self.max_saved]

        self._write_json(SAVED_SESSIONS_KEY, [s.to_json_dict() for s in sessions])
        _get_logger().info(
            "Session saved",
            extra={"extra_fields": {"timestamp": stored.timestamp, "saved_count": len(sessions)}},
        )
        return stored

    def autosave(self, snapshot: SavedSession) -> SavedSession:
        """Overwrite the autosave slot.

        Raises:
            SessionStoreError: If the backend write fails
        """
        stored = snapshot.model_copy(update={"timestamp": self._next_timestamp([])})
        self._write_json(AUTOSAVE_KEY, stored.to_json_dict())
        _get_logger().debug(
            "Session autosaved", extra={"extra_fields": {"timestamp": stored.timestamp}}
        )
        return stored

    def delete(self, timestamp: int) -> bool:
        """Remove one saved session by timestamp.

        Returns:
            True if a session was removed
        """
        existing = self.list_saved()
        remaining = [s for s in existing if s.timestamp != timestamp]
        if len(remaining) == len(existing):
            return False
        self._write_json(SAVED_SESSIONS_KEY, [s.to_json_dict() for s in remaining])
        return True

    def clear_all(self) -> None:
        """Delete the saved-session list and the autosave slot.

        Raises:
            SessionStoreError: If the backend delete fails
        """
        try:
            self.backend.delete(SAVED_SESSIONS_KEY)
            self.backend.delete(AUTOSAVE_KEY)
        except Exception as e:
            raise SessionStoreError(f"Could not clear saved sessions: {e}") from e
        _get_logger().info("All saved sessions cleared")
