"""Interactive generation session: the outline → draft → polish → versions flow.

A ``GenerationSession`` owns the in-progress state of one article: the
request, generated content per stage, audience versions, and the advisory
analysis and metadata. Stage methods commit their result only after the
stage function succeeds, so a failed stage leaves the session unchanged.

Example:
    >>> session = GenerationSession(GenerationRequest(template_id="faq", title="Year-End"))
    >>> await session.run_outline()
    >>> await session.run_draft()
    >>> session.stage
    <Stage.DRAFT: 'draft'>
"""

from typing import Any, Awaitable, Callable, Optional
from uuid import uuid4

from kb_studio.agents import analyzer
from kb_studio.agents import metadata as metadata_agent
from kb_studio.agents.drafter import generate_draft
from kb_studio.agents.models import GenerationRequest, GenerationStep
from kb_studio.agents.outliner import generate_outline
from kb_studio.agents.polisher import polish_article
from kb_studio.agents.templates import Template, get_template
from kb_studio.agents.versioner import VersionBatch, generate_versions
from kb_studio.utils.logging_config import get_logger
from kb_studio.workflow.error_handling import ErrorContext, GenerationError, StageNotReadyError
from kb_studio.workflow.state import (
    AudienceVersions,
    GeneratedContent,
    SavedSession,
    Stage,
    derive_stage,
    stage_has_content,
)
from kb_studio.workflow.store import SessionStore

PublishFn = Callable[[dict[str, Any]], Awaitable[Any]]


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


class GenerationSession:
    """State machine for one article generation session.

    Attributes:
        session_id: Identifier used in logs and errors
        request: Current form data
        content: Outline, draft and polished content
        versions: Per-audience content
        version_batch: Tagged outcome of the last versions run
        steps: Latest GenerationStep per linear stage
        analysis: Last ContentAnalysis, if requested
        metadata: Last ArticleMetadata, if requested
        stage: Stage currently shown
    """

    def __init__(
        self,
        request: GenerationRequest,
        *,
        store: Optional[SessionStore] = None,
        session_id: Optional[str] = None,
        model: Optional[str] = None,
    ):
        self.session_id = session_id or uuid4().hex[:12]
        self.request = request
        self.store = store
        self.model = model

        self.content = GeneratedContent()
        self.versions = AudienceVersions()
        self.version_batch: Optional[VersionBatch] = None
        self.steps: dict[str, GenerationStep] = {}
        self.analysis: Optional[analyzer.ContentAnalysis] = None
        self.metadata: Optional[metadata_agent.ArticleMetadata] = None
        self.stage = Stage.SETUP

    @property
    def selected_template(self) -> str:
        return self.request.template_id

    def template(self) -> Template:
        """The selected template.

        Raises:
            TemplateNotFoundError: If the request names an unknown template
        """
        return get_template(self.request.template_id)

    def update_request(self, request: GenerationRequest) -> None:
        """Replace the form data; generated content is kept."""
        self.request = request

    # ------------------------------------------------------------------
    # Linear stages
    # ------------------------------------------------------------------

    async def _run(self, stage: Stage, call: Awaitable[Any]) -> Any:
        """Await a stage call under an ErrorContext, tagging failures with the session id."""
        with ErrorContext(stage.value, session_id=self.session_id) as ctx:
            ctx.add_info("template_id", self.request.template_id)
            ctx.add_info("audience", self.request.audience)
            try:
                return await call
            except GenerationError as e:
                e.session_id = e.session_id or self.session_id
                raise

    def _commit_step(self, stage: Stage, step: GenerationStep) -> None:
        self.steps[step.stage] = step
        self.stage = stage
        _get_logger().info(
            "Stage completed",
            extra={"extra_fields": {"session_id": self.session_id, "stage": stage.value}},
        )

    async def run_outline(self) -> GenerationStep:
        """Generate the outline and move to the outline stage.

        Raises:
            TemplateNotFoundError: If no valid template is selected
            GenerationError: If generation fails
        """
        self.template()
        step = await self._run(Stage.OUTLINE, generate_outline(self.request, model=self.model))
        self.content = self.content.model_copy(update={"outline": step.content})
        self._commit_step(Stage.OUTLINE, step)
        return step

    async def run_draft(self) -> GenerationStep:
        """Generate the draft, using the outline when one exists.

        Raises:
            TemplateNotFoundError: If no valid template is selected
            GenerationError: If generation fails
        """
        self.template()
        outline = self.content.outline or None
        step = await self._run(
            Stage.DRAFT, generate_draft(self.request, outline, model=self.model)
        )
        self.content = self.content.model_copy(update={"draft": step.content})
        self._commit_step(Stage.DRAFT, step)
        return step

    async def run_polish(self) -> GenerationStep:
        """Polish the draft.

        Raises:
            StageNotReadyError: If there is no draft
            GenerationError: If generation fails
        """
        self.template()
        if not self.content.draft.strip():
            raise StageNotReadyError(Stage.POLISH.value, "draft", self.session_id)

        step = await self._run(
            Stage.POLISH, polish_article(self.content.draft, self.request, model=self.model)
        )
        self.content = self.content.model_copy(update={"polished": step.content})
        self._commit_step(Stage.POLISH, step)
        return step

    async def run_versions(self) -> VersionBatch:
        """Adapt the polished (or draft) content for every audience.

        Raises:
            StageNotReadyError: If there is neither polished nor draft content
        """
        self.template()
        base_content = self.finished_content()
        if not base_content:
            raise StageNotReadyError(Stage.VERSIONS.value, "polished or draft", self.session_id)

        batch = await self._run(
            Stage.VERSIONS, generate_versions(self.request, base_content, model=self.model)
        )
        self.version_batch = batch
        self.versions = AudienceVersions(**batch.contents())
        self.stage = Stage.VERSIONS
        _get_logger().info(
            "Stage completed",
            extra={
                "extra_fields": {
                    "session_id": self.session_id,
                    "stage": Stage.VERSIONS.value,
                    "fallbacks": batch.fallbacks(),
                }
            },
        )
        return batch

    # ------------------------------------------------------------------
    # On-demand helpers
    # ------------------------------------------------------------------

    def finished_content(self) -> str:
        """Polished content, falling back to the draft; empty if neither exists."""
        return self.content.polished.strip() or self.content.draft.strip()

    def _latest_content(self) -> str:
        return self.finished_content() or self.content.outline.strip()

    async def analyze(self) -> analyzer.ContentAnalysis:
        """Analyze the most advanced content. Never fails for model problems.

        Raises:
            StageNotReadyError: If nothing has been generated
        """
        content = self._latest_content()
        if not content:
            raise StageNotReadyError("analysis", "generated", self.session_id)
        self.analysis = await analyzer.analyze_content(content, model=self.model)
        return self.analysis

    async def generate_metadata(self) -> metadata_agent.ArticleMetadata:
        """Generate excerpt and tags for the finished content.

        Raises:
            StageNotReadyError: If there is neither polished nor draft content
        """
        content = self.finished_content()
        if not content:
            raise StageNotReadyError("metadata", "polished or draft", self.session_id)
        self.metadata = await metadata_agent.generate_metadata(
            content, self.request.title, model=self.model
        )
        return self.metadata

    # ------------------------------------------------------------------
    # Navigation and lifecycle
    # ------------------------------------------------------------------

    def can_enter(self, stage: Stage) -> bool:
        """A stage is reachable when its content exists or it precedes the current stage."""
        if stage.order <= self.stage.order:
            return True
        return stage_has_content(stage, self.content, self.versions)

    def enter(self, stage: Stage) -> None:
        """Switch the visible stage.

        Raises:
            StageNotReadyError: If the stage has no content yet
        """
        if not self.can_enter(stage):
            raise StageNotReadyError(stage.value, stage.value, self.session_id)
        self.stage = stage

    def has_content(self) -> bool:
        return self.content.has_any() or self.versions.has_any()

    def reset(self) -> None:
        """Back to setup; generated content, versions, analysis and metadata are cleared."""
        self.content = GeneratedContent()
        self.versions = AudienceVersions()
        self.version_batch = None
        self.steps = {}
        self.analysis = None
        self.metadata = None
        self.stage = Stage.SETUP
        _get_logger().info("Session reset", extra={"extra_fields": {"session_id": self.session_id}})

    def snapshot(self) -> SavedSession:
        """Serializable copy of the session. The store assigns the timestamp."""
        return SavedSession(
            form_data=self.request,
            generated_content=self.content.model_copy(),
            audience_versions=self.versions.model_copy(),
            selected_template=self.selected_template,
        )

    @classmethod
    def restore(
        cls,
        saved: SavedSession,
        *,
        store: Optional[SessionStore] = None,
        model: Optional[str] = None,
    ) -> "GenerationSession":
        """Rebuild a session from a snapshot, deriving the most advanced stage."""
        request = saved.form_data
        if saved.selected_template and saved.selected_template != request.template_id:
            request = request.model_copy(update={"template_id": saved.selected_template})

        session = cls(request, store=store, model=model)
        session.content = saved.generated_content.model_copy()
        session.versions = saved.audience_versions.model_copy()
        session.stage = derive_stage(session.content, session.versions)
        _get_logger().info(
            "Session restored",
            extra={
                "extra_fields": {
                    "session_id": session.session_id,
                    "stage": session.stage.value,
                    "saved_at": saved.timestamp,
                }
            },
        )
        return session

    async def finalize(self, publish: PublishFn) -> Any:
        """Publish the finished article, then clear stored sessions.

        Metadata is generated first if it has not been requested yet. Stored
        sessions are only cleared after ``publish`` succeeds.

        Args:
            publish: Async callable receiving the article payload
                (title, content, excerpt, tags, categoryId)

        Returns:
            Whatever ``publish`` returns

        Raises:
            StageNotReadyError: If there is neither polished nor draft content
        """
        content = self.finished_content()
        if not content:
            raise StageNotReadyError("finalize", "polished or draft", self.session_id)

        metadata = self.metadata or await self.generate_metadata()
        article = {
            "title": self.request.title,
            "content": content,
            "excerpt": metadata.excerpt,
            "tags": list(metadata.tags),
            "categoryId": self.request.category_id,
        }

        with ErrorContext("finalize", session_id=self.session_id):
            result = await publish(article)

        if self.store is not None:
            self.store.clear_all()

        _get_logger().info(
            "Article published", extra={"extra_fields": {"session_id": self.session_id}}
        )
        return result
