"""Workflow state management and orchestration.

This package provides:
- Session state definitions and stage derivation
- The interactive generation session and its persistence
- The batch pipeline graph and the async job poller

Only error types and state models are re-exported here; the agents import
``kb_studio.workflow.error_handling``, so heavier modules are imported from
their own paths.
"""

from kb_studio.workflow.error_handling import (
    GenerationError,
    JobFailedError,
    JobTimeoutError,
    StageNotReadyError,
    TemplateNotFoundError,
    WorkflowError,
)
from kb_studio.workflow.state import (
    AudienceVersions,
    GeneratedContent,
    SavedSession,
    Stage,
    derive_stage,
    stage_has_content,
)

__all__ = [
    "Stage",
    "GeneratedContent",
    "AudienceVersions",
    "SavedSession",
    "derive_stage",
    "stage_has_content",
    "WorkflowError",
    "TemplateNotFoundError",
    "GenerationError",
    "StageNotReadyError",
    "JobFailedError",
    "JobTimeoutError",
]
