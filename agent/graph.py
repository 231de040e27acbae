"""LangGraph graph construction.

Builds the per-message chat graph with a bounded moderation retry loop:

    [load_user] ──▶ [extract] ──▶ [recall] ──▶ [compose] ──▶ [generate]
                                                   ▲             │
                                                   └─ blocked ───┤
                                                                 ├─ blocked, attempts used up ──▶ [fallback] ──┐
                                                                 │                                             ▼
                                                                 └─ ok ──▶ [polish] ──────────────────────▶ [commit] ──▶ END

Any error other than a moderation block propagates out of ``invoke`` and
nothing is persisted for the turn.
"""

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph

from agent import config as settings
from agent.guardrails import attempts_exhausted
from agent.nodes import (
    commit_node,
    compose_node,
    extract_node,
    fallback_node,
    generate_node,
    load_user_node,
    polish_node,
    recall_node,
)
from agent.state import ChatState


def _after_generate(state: dict, config: RunnableConfig) -> str:
    """Route on the outcome of the last generation attempt."""
    if not state.get("blocked"):
        return "polish"

    max_attempts = (config or {}).get("configurable", {}).get(
        "max_attempts", settings.MAX_GENERATION_ATTEMPTS
    )
    if attempts_exhausted(state.get("attempts", 0), max_attempts):
        return "fallback"
    return "compose"


def build_graph() -> StateGraph:
    """Construct and compile the chat graph."""
    workflow = StateGraph(ChatState)

    # ── Nodes ──────────────────────────────────────────────────────────────
    workflow.add_node("load_user", load_user_node)
    workflow.add_node("extract", extract_node)
    workflow.add_node("recall", recall_node)
    workflow.add_node("compose", compose_node)
    workflow.add_node("generate", generate_node)
    workflow.add_node("fallback", fallback_node)
    workflow.add_node("polish", polish_node)
    workflow.add_node("commit", commit_node)

    # ── Edges ──────────────────────────────────────────────────────────────
    workflow.set_entry_point("load_user")
    workflow.add_edge("load_user", "extract")
    workflow.add_edge("extract", "recall")
    workflow.add_edge("recall", "compose")
    workflow.add_edge("compose", "generate")

    workflow.add_conditional_edges(
        "generate",
        _after_generate,
        {
            "compose": "compose",
            "fallback": "fallback",
            "polish": "polish",
        },
    )

    workflow.add_edge("fallback", "commit")
    workflow.add_edge("polish", "commit")
    workflow.add_edge("commit", END)

    # No checkpointer: everything that outlives a turn lives in the user store.
    return workflow.compile()


# Pre-built graph instance ready to use
graph = build_graph()
