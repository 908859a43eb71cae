"""Schemas for the agent endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class AgentRequest(BaseModel):
    """Request body for POST /api/agent/execute and /api/agent/execute/stream."""

    query: str = Field(..., min_length=1, description="User question for the agent.")


class ExecutionStepOut(BaseModel):
    """One completed plan step in the execution trace."""

    step_number: int = Field(..., description="1-based position in the final plan.")
    description: str = Field(..., description="Plan step that was executed.")
    result: str = Field(..., description="LLM output for the step, or a fallback message.")
    timestamp: datetime = Field(..., description="Completion time (UTC).")


class AgentResponse(BaseModel):
    """Response for POST /api/agent/execute."""

    session_id: str = Field(..., description="Identifier of this run.")
    final_answer: str = Field(..., description="Synthesized answer from the last evaluation.")
    execution_trace: list[ExecutionStepOut] = Field(default_factory=list, description="Steps of the final plan.")
    iterations: int = Field(0, description="Planning passes performed.")
    quality_score: float = Field(0.0, ge=0.0, le=1.0, description="Evaluator score of the final answer.")
    plan_steps: list[str] = Field(default_factory=list, description="Step descriptions of the final plan.")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "session_id": "6f1c2d4e-8a3b-4c5d-9e0f-1a2b3c4d5e6f",
                    "final_answer": "Quantum computing uses qubits ...",
                    "execution_trace": [
                        {
                            "step_number": 1,
                            "description": "Define qubits and superposition",
                            "result": "A qubit is ...",
                            "timestamp": "2026-01-01T12:00:00Z",
                        }
                    ],
                    "iterations": 1,
                    "quality_score": 0.85,
                    "plan_steps": ["Define qubits and superposition"],
                }
            ]
        }
    }
