"""FastAPI server exposing the production question answering endpoints."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app
from pydantic import BaseModel, Field

from .config import settings
from .graph import initialize_agent

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = (
    "The AI agent is experiencing technical difficulties. Please try again later or contact support."
)
TEST_QUESTION = "Test connection - what can you help me with?"


class AgentState:
    def __init__(self) -> None:
        self.agent: Callable[[str], str] | None = None
        self.error: str | None = None
        self.initialized = False


state = AgentState()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    try:
        state.agent = await asyncio.to_thread(initialize_agent)
        state.initialized = True
        logger.info("Production agent initialized successfully")
    except Exception as exc:
        logger.error("Failed to initialize agent: %s", exc)
        state.error = str(exc)
        state.agent = lambda question: UNAVAILABLE_MESSAGE
    yield


app = FastAPI(title="Production Data Agent", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
if settings.observability.enable_prometheus:
    app.mount("/metrics", make_asgi_app())


class QueryRequest(BaseModel):
    question: str = Field(default="", description="User question")


class QueryResponse(BaseModel):
    response: str


@app.get("/api/health")
def health() -> dict:
    return {
        "status": "OK" if state.initialized else "ERROR",
        "agent_initialized": state.initialized,
        "error": state.error,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/api/query", response_model=QueryResponse)
async def query(payload: QueryRequest) -> QueryResponse:
    if state.agent is None:
        raise HTTPException(status_code=503, detail="Agent is still initializing. Please try again shortly.")
    if not payload.question.strip():
        raise HTTPException(status_code=400, detail="Question is required")
    logger.info("Processing query: %s", payload.question)
    response = await asyncio.to_thread(state.agent, payload.question)
    return QueryResponse(response=response)


@app.get("/api/test")
async def test_agent() -> dict:
    if state.agent is None:
        raise HTTPException(status_code=503, detail="Agent not initialized")
    response = await asyncio.to_thread(state.agent, TEST_QUESTION)
    return {"success": True, "response": response}


@app.get("/api/models")
def models() -> dict:
    return {
        "provider": settings.model.llm_provider,
        "model": settings.model.llm_model,
        "suggested_models": ["gpt-4o-mini", "gpt-4o", "llama3.1"],
    }


__all__ = ["app"]
