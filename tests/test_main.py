"""Tests for the interactive entry point."""

from unittest.mock import AsyncMock, patch

import pytest

from kb_studio.agents.models import GenerationRequest
from kb_studio.database.db import close_db
from kb_studio.main import build_store, main, open_session, run_stages
from kb_studio.workflow.session import GenerationSession
from kb_studio.workflow.state import GeneratedContent, SavedSession, Stage
from kb_studio.workflow.store import InMemoryKeyValueStore, SessionStore, SqlKeyValueStore

STAGE_LLM = "kb_studio.agents.stage_support.generate_text"


class TestBuildStore:
    def test_in_memory_without_database(self):
        assert isinstance(build_store().backend, InMemoryKeyValueStore)

    def test_sql_with_database(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path}/kb.db")

        try:
            store = build_store()
            assert isinstance(store.backend, SqlKeyValueStore)
            assert store.list_saved() == []
        finally:
            close_db()


class TestOpenSession:
    def test_restores_autosave_first(self, monkeypatch):
        store = SessionStore(InMemoryKeyValueStore())
        request = GenerationRequest(template_id="faq", title="Autosaved draft")
        store.save(SavedSession(form_data=request.model_copy(update={"title": "Older"})))
        store.autosave(
            SavedSession(form_data=request, generated_content=GeneratedContent(draft="<p>d</p>"))
        )
        monkeypatch.setattr("builtins.input", lambda prompt="": "1")

        session = open_session(store)

        assert session.request.title == "Autosaved draft"
        assert session.stage is Stage.DRAFT


class TestRunStages:
    @pytest.mark.asyncio
    async def test_resumes_after_current_stage(self):
        session = GenerationSession(GenerationRequest(template_id="faq", title="Resume"))
        session.content = GeneratedContent(outline="<h2>o</h2>", draft="<p>d</p>")
        session.stage = Stage.DRAFT

        with patch(STAGE_LLM, new=AsyncMock(return_value="## Done\n\nFinal.")) as mock_llm:
            await run_stages(session)

        assert session.stage is Stage.VERSIONS
        assert session.content.outline == "<h2>o</h2>"
        # polish plus two adapted audiences
        assert mock_llm.await_count == 3


class TestMain:
    @pytest.mark.asyncio
    async def test_database_closed_when_session_raises(self):
        with (
            patch("kb_studio.main.run_session", new=AsyncMock(side_effect=ValueError("bad form"))),
            patch("kb_studio.main.close_db") as mock_close,
        ):
            with pytest.raises(ValueError, match="bad form"):
                await main()

        mock_close.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_database_closed_after_normal_run(self):
        with (
            patch("kb_studio.main.run_session", new=AsyncMock(return_value=None)),
            patch("kb_studio.main.close_db") as mock_close,
        ):
            assert await main() is None

        mock_close.assert_called_once_with()
