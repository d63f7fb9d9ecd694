"""DraftNode - writes the full draft from the outline."""

from kb_studio.agents.drafter import generate_draft
from kb_studio.workflow.graph_state import request_from_state
from kb_studio.workflow.nodes import BaseNode, NodeRegistry, handle_node_errors, log_node_execution


@NodeRegistry.register("draft")
class DraftNode(BaseNode):
    """Pipeline node that writes the draft."""

    @property
    def name(self) -> str:
        """Return node identifier."""
        return "draft"

    @handle_node_errors
    @log_node_execution
    async def execute(self, state: dict) -> dict:
        """Write the draft, using the outline when present.

        Returns:
            State updates with:
                - draft: Draft HTML
                - suggestions: Editorial hints
                - current_step: Transition to "polish"
        """
        request = request_from_state(state)
        step = await generate_draft(request, state.get("outline") or None)

        return {
            "draft": step.content,
            "suggestions": list(step.suggestions),
            "current_step": "polish",
        }
