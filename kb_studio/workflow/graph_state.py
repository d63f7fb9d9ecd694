"""LangGraph state schema for the batch generation pipeline.

The batch pipeline runs the same stages as the interactive session, without
pauses: outline → draft → polish → versions. Each node returns only the
fields it changes; ``errors`` accumulates across nodes.

Example:
    >>> state: PipelineState = {
    ...     "workflow_id": "abc-123",
    ...     "request": {"templateId": "faq", "title": "Year-End Checklist"},
    ...     "current_step": "outline",
    ...     "errors": [],
    ... }
"""

from operator import add
from typing import Annotated, Any, Literal, TypedDict

from kb_studio.agents.models import GenerationRequest

PipelineStep = Literal[
    "outline",
    "draft",
    "polish",
    "versions",
    "completed",
    "failed",
]

VALID_STEPS: frozenset[str] = frozenset(
    ("outline", "draft", "polish", "versions", "completed", "failed")
)


class PipelineState(TypedDict, total=False):
    """Complete state of one batch pipeline run.

    Required Fields:
        workflow_id: Unique identifier for this run
        request: GenerationRequest in its camelCase JSON form
        current_step: Next step to execute, or a terminal step
        errors: Error messages (accumulates)

    Optional Fields - Stage Outputs:
        outline: Outline HTML
        draft: Draft HTML
        polished: Polished HTML
        versions: audience -> content
        version_fallbacks: Audiences that fell back to the original content
        suggestions: Editorial hints from the latest stage
    """

    workflow_id: str
    request: dict[str, Any]
    current_step: PipelineStep
    errors: Annotated[list[str], add]

    outline: str
    draft: str
    polished: str
    versions: dict[str, str]
    version_fallbacks: list[str]
    suggestions: list[str]


def validate_required_fields(state: dict) -> tuple[bool, list[str]]:
    """Validate that required state fields are present.

    Examples:
        >>> valid, missing = validate_required_fields({"workflow_id": "123"})
        >>> valid
        False
        >>> "request" in missing
        True
    """
    required = ("workflow_id", "request", "current_step", "errors")
    missing = [field for field in required if field not in state]
    return len(missing) == 0, missing


def validate_pipeline_step(step: str) -> bool:
    """Validate that step is a known pipeline step."""
    return step in VALID_STEPS


def request_from_state(state: dict) -> GenerationRequest:
    """Rebuild the GenerationRequest carried in the state.

    Raises:
        ValueError: If the state has no request
        pydantic.ValidationError: If the stored request is invalid
    """
    data = state.get("request")
    if not data:
        raise ValueError("request is required in pipeline state")
    return GenerationRequest.model_validate(data)


def create_initial_state(workflow_id: str, request: GenerationRequest) -> PipelineState:
    """Create the initial state for a pipeline run.

    Raises:
        ValueError: If workflow_id is empty

    Examples:
        >>> state = create_initial_state("abc-123", GenerationRequest(template_id="faq", title="T"))
        >>> state["current_step"]
        'outline'
    """
    if not workflow_id or not workflow_id.strip():
        raise ValueError("workflow_id cannot be empty")

    return PipelineState(
        workflow_id=workflow_id.strip(),
        request=request.model_dump(mode="json", by_alias=True),
        current_step="outline",
        errors=[],
    )
