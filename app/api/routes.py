"""
API route aggregator: register endpoints; no logic, only delegate to the agent graph.
"""

import json
import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from app.agent.graph import run_agent, run_agent_stream
from app.core.errors import AgentStateError
from app.schemas.agent import AgentRequest, AgentResponse

logger = logging.getLogger(__name__)
router = APIRouter()


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Deep agent backend running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Agent (HTTP) ---

@router.post(
    "/api/agent/execute",
    response_model=AgentResponse,
    tags=["agent"],
    summary="Run the plan/execute/evaluate agent (sync)",
    description="Send a query; receive the synthesized answer, execution trace, iterations, quality score and plan. "
    "LLM failures are absorbed by fallbacks. 400 on blank query, 500 on an internal agent state error.",
)
def post_execute(body: AgentRequest) -> AgentResponse:
    logger.info("[api:post_execute] IN  query=%r", body.query)
    try:
        result = run_agent(body.query)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except AgentStateError as e:
        logger.exception("Agent state error")
        raise HTTPException(status_code=500, detail=e.message) from e
    logger.info(
        "[api:post_execute] OUT session_id=%s iterations=%d quality_score=%.2f",
        result["session_id"],
        result["iterations"],
        result["quality_score"],
    )
    return AgentResponse(**result)


def _sse_generator(query: str):
    """Yield Server-Sent Events for each agent phase."""
    for evt in run_agent_stream(query):
        event_type = evt.get("event", "")
        data = evt.get("data") or {}
        if event_type == "done":
            data = AgentResponse(**data).model_dump(mode="json")
        yield f"event: {event_type}\ndata: {json.dumps(data)}\n\n"


@router.post(
    "/api/agent/execute/stream",
    tags=["agent"],
    summary="Run the agent (SSE stream)",
    description="Stream phase transitions via Server-Sent Events. Events: plan, execute, evaluate, done, error.",
)
def post_execute_stream(body: AgentRequest) -> StreamingResponse:
    logger.info("[api:post_execute_stream] IN  query=%r", body.query)
    return StreamingResponse(
        _sse_generator(body.query),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
