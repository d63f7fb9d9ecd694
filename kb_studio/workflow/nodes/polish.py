"""PolishNode - turns the draft into publication-ready HTML."""

from kb_studio.agents.polisher import polish_article
from kb_studio.workflow.error_handling import validate_state_field
from kb_studio.workflow.graph_state import request_from_state
from kb_studio.workflow.nodes import BaseNode, NodeRegistry, handle_node_errors, log_node_execution


@NodeRegistry.register("polish")
class PolishNode(BaseNode):
    """Pipeline node that polishes the draft."""

    @property
    def name(self) -> str:
        """Return node identifier."""
        return "polish"

    @handle_node_errors
    @log_node_execution
    async def execute(self, state: dict) -> dict:
        """Polish the draft.

        Args:
            state: Pipeline state containing:
                - draft: Draft HTML (required)

        Returns:
            State updates with:
                - polished: Sanitized publication HTML
                - current_step: Transition to "versions"
        """
        validate_state_field(state, "draft", str, state.get("workflow_id"))
        draft = state["draft"].strip()
        if not draft:
            raise ValueError("draft is required before polishing")

        step = await polish_article(draft, request_from_state(state))

        return {
            "polished": step.content,
            "suggestions": list(step.suggestions),
            "current_step": "versions",
        }
