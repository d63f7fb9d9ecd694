"""Periodic autosave of a generation session.

Every interval the session is written to the store's single autosave slot,
but only while it has generated content. ``tick()`` performs one iteration
so the behavior can be tested without waiting.
"""

import asyncio
from typing import Optional

from kb_studio.utils.config import get_settings
from kb_studio.utils.logging_config import get_logger
from kb_studio.workflow.error_handling import SessionStoreError
from kb_studio.workflow.session import GenerationSession
from kb_studio.workflow.state import SavedSession
from kb_studio.workflow.store import SessionStore


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


class Autosaver:
    """Background task that autosaves a session on an interval.

    Args:
        session: Session to snapshot
        store: Store holding the autosave slot
        interval: Seconds between autosaves (defaults to AUTOSAVE_INTERVAL)
    """

    def __init__(
        self,
        session: GenerationSession,
        store: SessionStore,
        *,
        interval: Optional[float] = None,
    ):
        self.session = session
        self.store = store
        self.interval = interval if interval is not None else get_settings().AUTOSAVE_INTERVAL
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> Optional[SavedSession]:
        """Autosave once if the session has content.

        Write failures are logged and skipped; the next tick tries again.

        Returns:
            The stored snapshot, or None if nothing was saved
        """
        if not self.session.has_content():
            return None
        try:
            return self.store.autosave(self.session.snapshot())
        except SessionStoreError as e:
            _get_logger().warning(
                "Autosave skipped",
                extra={"extra_fields": {"session_id": self.session.session_id, "error": str(e)}},
            )
            return None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()

    def start(self) -> None:
        """Start the autosave loop on the running event loop. No-op if running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        _get_logger().debug(
            "Autosave started",
            extra={
                "extra_fields": {"session_id": self.session.session_id, "interval": self.interval}
            },
        )

    async def stop(self) -> None:
        """Cancel the autosave loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
