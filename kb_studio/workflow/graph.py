"""LangGraph pipeline definition for batch article generation.

This module wires the stage nodes into a StateGraph that runs the whole
pipeline without user interaction:

    outline → draft → polish → versions → END

After every node, a failed step (``current_step == "failed"``) routes
straight to END, so no later stage runs on missing input.
"""

import logging
from typing import Callable, Optional
from uuid import uuid4

from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, StateGraph

from kb_studio.agents.models import GenerationRequest
from kb_studio.workflow.graph_state import PipelineState, create_initial_state
from kb_studio.workflow.nodes.draft import DraftNode
from kb_studio.workflow.nodes.outline import OutlineNode
from kb_studio.workflow.nodes.polish import PolishNode
from kb_studio.workflow.nodes.versions import VersionsNode

logger = logging.getLogger(__name__)

PIPELINE_ORDER: tuple[str, ...] = ("outline", "draft", "polish", "versions")


def route_after(next_node: str) -> Callable[[PipelineState], str]:
    """Build the routing function used after a node.

    Returns:
        Function returning ``next_node``, or END when the node failed
    """

    def route(state: PipelineState) -> str:
        if state.get("current_step") == "failed":
            logger.info(f"[{state.get('workflow_id')}] Pipeline failed → routing to END")
            return END
        return next_node

    route.__name__ = f"route_to_{next_node}"
    return route


def create_pipeline_graph(checkpointer=None):
    """Create and compile the batch generation graph.

    Args:
        checkpointer: Optional checkpoint saver. If None, uses MemorySaver()
            for in-memory checkpointing.

    Returns:
        Compiled StateGraph ready for execution

    Example:
        >>> graph = create_pipeline_graph()
        >>> state = create_initial_state("wf-1", request)
        >>> result = await graph.ainvoke(state, {"configurable": {"thread_id": "wf-1"}})
    """
    workflow = StateGraph(PipelineState)

    workflow.add_node("outline", OutlineNode().execute)
    workflow.add_node("draft", DraftNode().execute)
    workflow.add_node("polish", PolishNode().execute)
    workflow.add_node("versions", VersionsNode().execute)

    for current, following in zip(PIPELINE_ORDER, PIPELINE_ORDER[1:]):
        workflow.add_conditional_edges(
            current,
            route_after(following),
            {following: following, END: END},
        )
    workflow.add_edge("versions", END)

    workflow.set_entry_point("outline")

    if checkpointer is None:
        checkpointer = MemorySaver()

    compiled_graph = workflow.compile(checkpointer=checkpointer)
    logger.info("Pipeline graph compiled successfully")
    return compiled_graph


async def run_pipeline(
    request: GenerationRequest,
    *,
    workflow_id: Optional[str] = None,
    checkpointer=None,
) -> PipelineState:
    """Run the full pipeline for one request.

    Failures do not raise; the returned state has ``current_step ==
    "failed"`` and the messages in ``errors``.

    Args:
        request: Generation parameters
        workflow_id: Optional run id (also used as the checkpoint thread id)
        checkpointer: Optional checkpoint saver

    Returns:
        Final pipeline state
    """
    workflow_id = workflow_id or f"kb-{uuid4().hex[:12]}"
    graph = create_pipeline_graph(checkpointer=checkpointer)
    config = {"configurable": {"thread_id": workflow_id}}

    logger.info(f"[{workflow_id}] Starting pipeline for template '{request.template_id}'")
    final_state = await graph.ainvoke(create_initial_state(workflow_id, request), config)
    logger.info(f"[{workflow_id}] Pipeline finished at step '{final_state.get('current_step')}'")
    return final_state


__all__ = [
    "PIPELINE_ORDER",
    "create_pipeline_graph",
    "route_after",
    "run_pipeline",
]
