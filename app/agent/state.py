"""
Agent loop state: the record threaded through planner → executor → evaluator.

Phases never mutate the state they receive. Each returns only the fields it
changes and the graph merges them into a new state value. plan and history are
tuples and ExecutionStep is frozen, so trace snapshots cannot change afterwards.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TypedDict


class NextAction(str, Enum):
    """Which phase runs next. FINISH is terminal."""

    PLAN = "plan"
    EXECUTE = "execute"
    EVALUATE = "evaluate"
    FINISH = "finish"


@dataclass(frozen=True)
class ExecutionStep:
    """One completed plan step."""

    step_number: int
    description: str
    result: str
    timestamp: datetime


class AgentState(TypedDict):
    session_id: str
    query: str
    plan: tuple[str, ...]
    current_step_index: int
    history: tuple[ExecutionStep, ...]
    synthesis: str
    quality_score: float
    iteration_count: int
    next_action: NextAction


def create_initial_state(query: str) -> AgentState:
    """Fresh state for one query: new session id, nothing planned yet."""
    return {
        "session_id": str(uuid.uuid4()),
        "query": query,
        "plan": (),
        "current_step_index": 0,
        "history": (),
        "synthesis": "",
        "quality_score": 0.0,
        "iteration_count": 0,
        "next_action": NextAction.PLAN,
    }


def format_history(history: tuple[ExecutionStep, ...]) -> str:
    """Numbered listing of completed steps and their results, for prompts and fallbacks."""
    lines = []
    for step in history:
        lines.append(f"{step.step_number}. {step.description}")
        lines.append(f"   Result: {step.result}")
    return "\n".join(lines)
