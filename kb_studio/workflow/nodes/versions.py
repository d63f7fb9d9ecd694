"""VersionsNode - adapts the finished article for every audience."""

from kb_studio.agents.versioner import generate_versions
from kb_studio.workflow.graph_state import request_from_state
from kb_studio.workflow.nodes import BaseNode, NodeRegistry, handle_node_errors, log_node_execution


@NodeRegistry.register("versions")
class VersionsNode(BaseNode):
    """Pipeline node that produces the audience versions."""

    @property
    def name(self) -> str:
        """Return node identifier."""
        return "versions"

    @handle_node_errors
    @log_node_execution
    async def execute(self, state: dict) -> dict:
        """Adapt the polished (or draft) article for all audiences.

        Per-audience failures fall back to the base content and are listed
        in ``version_fallbacks``; they do not fail the node.

        Returns:
            State updates with:
                - versions: audience -> content
                - version_fallbacks: Audiences that used the base content
                - current_step: "completed"
        """
        base_content = (state.get("polished") or state.get("draft") or "").strip()
        if not base_content:
            raise ValueError("polished or draft content is required for versions")

        batch = await generate_versions(request_from_state(state), base_content)

        return {
            "versions": batch.contents(),
            "version_fallbacks": batch.fallbacks(),
            "current_step": "completed",
        }
