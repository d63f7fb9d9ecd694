"""OutlineNode - first pipeline node, generates the article outline."""

from kb_studio.agents.outliner import generate_outline
from kb_studio.workflow.graph_state import request_from_state
from kb_studio.workflow.nodes import BaseNode, NodeRegistry, handle_node_errors, log_node_execution


@NodeRegistry.register("outline")
class OutlineNode(BaseNode):
    """Pipeline node that generates the outline from the request."""

    @property
    def name(self) -> str:
        """Return node identifier."""
        return "outline"

    @handle_node_errors
    @log_node_execution
    async def execute(self, state: dict) -> dict:
        """Generate the outline.

        Args:
            state: Pipeline state containing:
                - request: GenerationRequest JSON

        Returns:
            State updates with:
                - outline: Outline HTML
                - suggestions: Next-step hints
                - current_step: Transition to "draft"
        """
        request = request_from_state(state)
        step = await generate_outline(request)

        return {
            "outline": step.content,
            "suggestions": list(step.next_steps),
            "current_step": "draft",
        }
