"""Interactive knowledge-base article generator.

Runs one generation session in the console: pick or restore a session,
generate outline, draft, polished article and audience versions, then show
the content analysis and metadata and save the session.

Usage:
    python -m kb_studio.main
"""

import asyncio
from typing import Optional

from kb_studio.agents.templates import list_templates
from kb_studio.database.db import close_db, init_db
from kb_studio.utils.config import get_settings
from kb_studio.utils.logging_config import get_logger, setup_logging
from kb_studio.workflow.autosave import Autosaver
from kb_studio.workflow.cli_helpers import (
    collect_request,
    display_analysis,
    display_error,
    display_info,
    display_metadata,
    display_step,
    display_success,
    display_versions,
    prompt_session_selection,
    prompt_yes_no,
)
from kb_studio.workflow.error_handling import SessionStoreError, WorkflowError
from kb_studio.workflow.session import GenerationSession
from kb_studio.workflow.state import Stage
from kb_studio.workflow.store import InMemoryKeyValueStore, SessionStore, SqlKeyValueStore


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


def build_store() -> SessionStore:
    """SQL-backed store when DATABASE_URL is configured, in-memory otherwise."""
    if get_settings().get_database_url():
        init_db()
        return SessionStore(SqlKeyValueStore())
    return SessionStore(InMemoryKeyValueStore())


def open_session(store: SessionStore) -> GenerationSession:
    """Restore a saved or autosaved session, or start a new one."""
    saved = store.list_saved()
    autosaved = store.load_autosave()
    if autosaved is not None:
        saved = [autosaved, *saved]

    chosen = prompt_session_selection(saved)
    if chosen is not None:
        session = GenerationSession.restore(chosen, store=store)
        display_info(f"Restored '{session.request.title}' at the {session.stage.value} stage")
        return session

    return GenerationSession(collect_request(list_templates()), store=store)


async def run_stages(session: GenerationSession) -> None:
    """Run every stage the session has not reached yet."""
    if session.stage.order < Stage.OUTLINE.order:
        display_step(await session.run_outline())
    if session.stage.order < Stage.DRAFT.order:
        display_step(await session.run_draft())
    if session.stage.order < Stage.POLISH.order:
        display_step(await session.run_polish())
    if session.stage.order < Stage.VERSIONS.order:
        display_versions(await session.run_versions())


async def run_session(store: SessionStore) -> Optional[GenerationSession]:
    """Open a session, generate every stage, then offer to save it.

    Returns:
        The session, or None if it could not be started
    """
    try:
        session = open_session(store)
    except KeyboardInterrupt:
        return None

    autosaver = Autosaver(session, store)
    autosaver.start()
    try:
        await run_stages(session)
        display_analysis(await session.analyze())
        display_metadata(await session.generate_metadata())
    except WorkflowError as e:
        _get_logger().error(
            "Generation session stopped",
            extra={
                "extra_fields": {"session_id": session.session_id, "stage": session.stage.value}
            },
        )
        display_error(str(e))
    finally:
        await autosaver.stop()

    if session.has_content() and prompt_yes_no("Save this session?", default=True):
        try:
            stored = store.save(session.snapshot())
            display_success(f"Session saved ({stored.timestamp})")
        except SessionStoreError as e:
            display_error(str(e))

    return session


async def main() -> Optional[GenerationSession]:
    """Run one interactive session; the database is closed however it ends."""
    setup_logging()
    store = build_store()
    try:
        return await run_session(store)
    finally:
        close_db()


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n\n👋 Goodbye")


if __name__ == "__main__":
    run()
