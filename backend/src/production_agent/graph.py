"""LangGraph definition for question -> database -> answer synthesis."""
from __future__ import annotations

import logging
from collections.abc import Callable
from functools import lru_cache
from typing import TypedDict

from langgraph.graph import END, START, StateGraph

from .config import settings, validate_settings
from .exceptions import CredentialError
from .llm import LLMService, get_llm_service
from .models import QueryResult
from .observability import traced_span
from .query_engine import QueryEngine
from .store import discoverable_components

logger = logging.getLogger(__name__)

CREDENTIAL_MESSAGE = "Error: Invalid language model API key. Please check your API key configuration."
FALLBACK_MESSAGE = "Sorry, I encountered an error processing your request. Please try again."


class GraphState(TypedDict, total=False):
    question: str
    result: QueryResult
    answer: str


def build_graph(engine: QueryEngine, llm: LLMService | None = None) -> StateGraph:
    def query_node(state: GraphState) -> GraphState:
        with traced_span("query"):
            result = engine.run(state["question"])
        return {**state, "result": result}

    def synthesize_node(state: GraphState) -> GraphState:
        with traced_span("synthesize"):
            text = (llm or get_llm_service()).synthesize(state["question"], state["result"].payload)
        return {**state, "answer": text}

    def after_query(state: GraphState) -> str:
        # Database failures are reported verbatim; there is nothing to synthesize from.
        if state["result"].status == "error":
            return "report_error"
        return "synthesize"

    def report_error_node(state: GraphState) -> GraphState:
        return {**state, "answer": state["result"].payload}

    graph = StateGraph(GraphState)
    graph.add_node("query", query_node)
    graph.add_node("synthesize", synthesize_node)
    graph.add_node("report_error", report_error_node)
    graph.add_edge(START, "query")
    graph.add_conditional_edges("query", after_query)
    graph.add_edge("synthesize", END)
    graph.add_edge("report_error", END)
    return graph


def prepare_engine(engine: QueryEngine | None = None) -> QueryEngine:
    """Run the start-up checks and register discovered component partitions.

    Raises ``ConfigurationError`` for missing settings and
    ``StoreConnectionError`` when MongoDB cannot be reached.
    """

    validate_settings()
    engine = engine or QueryEngine()
    with engine.store_factory() as store:
        logger.info("Connected to MongoDB successfully")
        catalog = engine.catalog_provider.load(store)
        logger.info("Loaded %d defect definitions", len(catalog))
        if settings.mongo.discover_components:
            engine.registry.refresh(discoverable_components(store.collection_names()))
    logger.info("Registered %d component partitions", len(engine.registry))
    return engine


@lru_cache
def _default_graph():
    return build_graph(prepare_engine()).compile()


def initialize_agent(engine: QueryEngine | None = None) -> Callable[[str], str]:
    """Run start-up checks and return a question -> answer callable."""

    compiled = _default_graph() if engine is None else build_graph(prepare_engine(engine)).compile()
    get_llm_service()
    return lambda question: answer(question, compiled)


def answer(question: str, compiled=None) -> str:
    """Answer a production question. Always returns text, never raises."""

    try:
        final_state = (compiled or _default_graph()).invoke({"question": question})
        return final_state["answer"]
    except CredentialError as exc:
        logger.error("Language model rejected the API key: %s", exc)
        return CREDENTIAL_MESSAGE
    except Exception:
        logger.exception("Error in agent processing")
        return FALLBACK_MESSAGE
