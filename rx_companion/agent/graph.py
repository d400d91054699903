# rx_companion/agent/graph.py
from functools import lru_cache

from langgraph.checkpoint.sqlite import SqliteSaver
from langgraph.graph import START, END, StateGraph

from rx_companion.agent.state import IntakeState
from rx_companion.agent.nodes import (
    extract_node,
    recognize_node,
    review_node,
    route_after_review,
    route_after_save,
    save_node,
)
from rx_companion.db.db_config import CHECKPOINT_DB_PATH, get_sqlite_connection

def build_intake_graph(checkpointer):
    builder = StateGraph(IntakeState)

    builder.add_node("recognize", recognize_node)
    builder.add_node("extract", extract_node)
    builder.add_node("review", review_node)
    builder.add_node("save", save_node)

    builder.add_edge(START, "recognize")
    builder.add_edge("recognize", "extract")
    builder.add_edge("extract", "review")

    builder.add_conditional_edges("review", route_after_review, {
        "review": "review",
        "recognize": "recognize",
        "save": "save",
        "end": END,
    })
    builder.add_conditional_edges("save", route_after_save, {
        "review": "review",
        "end": END,
    })

    return builder.compile(checkpointer=checkpointer)

@lru_cache(maxsize=1)
def get_intake_graph():
    conn = get_sqlite_connection(CHECKPOINT_DB_PATH)
    return build_intake_graph(SqliteSaver(conn))
