"""
Executor phase: run one plan step per call.

The prompt carries the query, the step to run and every step completed so far in
this cycle. A failed LLM call yields a fixed error result for the step so the
loop keeps moving.
"""

import logging
from datetime import datetime, timezone

from app.agent.llm import Generate
from app.agent.state import AgentState, ExecutionStep, NextAction, format_history
from app.core.errors import InvalidStateError

logger = logging.getLogger(__name__)


def fallback_result(description: str) -> str:
    return f"Error executing step: {description}. Using fallback."


def _execution_prompt(query: str, description: str, history: tuple[ExecutionStep, ...]) -> str:
    parts = [
        "You are an execution assistant working on the following query:\n\n",
        f"Original Query: {query}\n\n",
        f"Current Step to Execute: {description}\n\n",
    ]
    if history:
        parts.append(f"Previous steps completed:\n{format_history(history)}\n\n")
    parts.append("Execute the current step and provide a detailed result. ")
    parts.append("Be thorough and specific in your execution.")
    return "".join(parts)


def _check_cursor(plan: tuple[str, ...], index: int, history: tuple[ExecutionStep, ...]) -> None:
    if not plan:
        raise InvalidStateError("executor reached with an empty plan")
    if index != len(history) or index >= len(plan):
        raise InvalidStateError(
            f"executor cursor out of step: index={index} history={len(history)} plan={len(plan)}"
        )


def executor_node(state: AgentState, generate: Generate) -> dict:
    """Append one ExecutionStep; loop on execute until the plan is done, then evaluate."""
    plan = state["plan"]
    history = state["history"]
    index = state["current_step_index"]
    _check_cursor(plan, index, history)

    description = plan[index]
    step_number = len(history) + 1
    logger.info("[graph:executor] IN  step=%d/%d description=%r", step_number, len(plan), description)
    prompt = _execution_prompt(state["query"], description, history)
    logger.info("[graph:executor] prompt_len=%d", len(prompt))
    try:
        result = generate(prompt) or ""
    except Exception as e:
        logger.warning("[graph:executor] LLM call failed for step %d (%s); using fallback result", step_number, e)
        result = fallback_result(description)

    step = ExecutionStep(
        step_number=step_number,
        description=description,
        result=result,
        timestamp=datetime.now(timezone.utc),
    )
    update: dict = {"history": history + (step,)}
    if step_number < len(plan):
        update["current_step_index"] = step_number
        update["next_action"] = NextAction.EXECUTE
        logger.info("[graph:executor] OUT result_len=%d -> next step %d/%d", len(result), step_number + 1, len(plan))
    else:
        update["next_action"] = NextAction.EVALUATE
        logger.info("[graph:executor] OUT result_len=%d -> all %d steps done, evaluate", len(result), len(plan))
    return update
