"""
Evaluator phase: synthesize the step results, score the answer, decide finish vs. re-plan.

Two LLM calls, each with its own fallback:
1. synthesis: on failure, a plain listing of the query and every step result;
2. scoring: on failure or an unreadable reply, settings.fallback_quality_score.
"""

import logging

from app.agent.llm import Generate
from app.agent.parsing import ParseError, parse_quality_score
from app.agent.state import AgentState, NextAction, format_history
from app.core.config import AgentSettings
from app.core.errors import InvalidStateError

logger = logging.getLogger(__name__)


def fallback_synthesis(state: AgentState) -> str:
    """Answer built without the LLM: the query followed by each step and its result."""
    return (
        f"Based on the query: '{state['query']}'\n\n"
        f"Execution Summary:\n{format_history(state['history'])}\n\n"
        "The agent completed the planned steps."
    )


def _synthesis_prompt(state: AgentState) -> str:
    return (
        "You are a synthesis assistant. Create a comprehensive answer to the following query "
        "based on the execution results.\n\n"
        f"Original Query: {state['query']}\n\n"
        f"Execution Steps and Results:\n{format_history(state['history'])}\n\n"
        "Synthesize the above results into a clear, comprehensive answer to the original query. "
        "Be thorough and well-structured."
    )


def _scoring_prompt(query: str, synthesis: str) -> str:
    return (
        "You are a quality evaluator. Evaluate the quality and completeness of the following answer.\n\n"
        f"Original Query: {query}\n\n"
        f"Answer: {synthesis}\n\n"
        "Evaluate on a scale from 0.0 to 1.0 where:\n"
        "- 0.9-1.0 = Excellent, complete, accurate answer\n"
        "- 0.7-0.9 = Good answer with minor gaps\n"
        "- 0.5-0.7 = Acceptable but incomplete\n"
        "- Below 0.5 = Poor or significantly incomplete\n\n"
        "Return ONLY a number between 0.0 and 1.0, nothing else."
    )


def _synthesize(state: AgentState, generate: Generate) -> str:
    try:
        synthesis = (generate(_synthesis_prompt(state)) or "").strip()
    except Exception as e:
        logger.warning("[graph:evaluator] synthesis LLM call failed (%s); using fallback synthesis", e)
        return fallback_synthesis(state)
    if not synthesis:
        logger.warning("[graph:evaluator] synthesis LLM returned nothing; using fallback synthesis")
        return fallback_synthesis(state)
    return synthesis


def _score(query: str, synthesis: str, generate: Generate, fallback: float) -> float:
    try:
        raw = generate(_scoring_prompt(query, synthesis))
        logger.info("[graph:evaluator] score_raw=%r", raw)
        return parse_quality_score(raw)
    except ParseError as e:
        logger.warning("[graph:evaluator] could not parse quality score (%s); using %.2f", e, fallback)
    except Exception as e:
        logger.warning("[graph:evaluator] scoring LLM call failed (%s); using %.2f", e, fallback)
    return fallback


def determine_next_action(iteration_count: int, quality_score: float, settings: AgentSettings) -> NextAction:
    """FINISH once max_iterations is reached or the score meets the threshold, else PLAN again."""
    if iteration_count >= settings.max_iterations:
        logger.info("[graph:evaluator] max iterations reached (%d); finishing", settings.max_iterations)
        return NextAction.FINISH
    if quality_score >= settings.quality_threshold:
        logger.info("[graph:evaluator] quality threshold met (%.2f >= %.2f); finishing", quality_score, settings.quality_threshold)
        return NextAction.FINISH
    logger.info("[graph:evaluator] quality below threshold (%.2f < %.2f); replanning", quality_score, settings.quality_threshold)
    return NextAction.PLAN


def evaluator_node(state: AgentState, generate: Generate, settings: AgentSettings) -> dict:
    plan = state["plan"]
    history = state["history"]
    if not plan or len(history) != len(plan):
        raise InvalidStateError(f"evaluator reached with history={len(history)} plan={len(plan)}")

    logger.info("[graph:evaluator] IN  iteration=%d steps=%d", state["iteration_count"], len(history))
    synthesis = _synthesize(state, generate)
    quality_score = _score(state["query"], synthesis, generate, settings.fallback_quality_score)
    next_action = determine_next_action(state["iteration_count"], quality_score, settings)
    logger.info(
        "[graph:evaluator] OUT synthesis_len=%d quality_score=%.2f next_action=%s",
        len(synthesis),
        quality_score,
        next_action.value,
    )
    return {"synthesis": synthesis, "quality_score": quality_score, "next_action": next_action}
