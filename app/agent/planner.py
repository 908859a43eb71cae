"""
Planner phase: break the query into 3–5 numbered steps via the LLM.

On a re-plan the previous synthesis goes into the prompt as feedback. When the
LLM fails or returns no numbered lines, a fixed three-step plan built from the
query alone is used instead.
"""

import logging

from app.agent.llm import Generate
from app.agent.parsing import ParseError, parse_plan_steps
from app.agent.state import AgentState, NextAction

logger = logging.getLogger(__name__)


def fallback_plan(query: str) -> list[str]:
    """Deterministic plan used when the LLM gives nothing usable. Depends only on the query."""
    return [
        f"Research and gather information about: {query}",
        "Analyze the gathered information and identify key points",
        "Synthesize findings into a comprehensive answer",
    ]


def _planning_prompt(state: AgentState) -> str:
    parts = [
        "You are a planning assistant. Break down the following task into 3-5 specific, actionable steps.\n\n",
        f"Task: {state['query']}\n\n",
    ]
    synthesis = state.get("synthesis") or ""
    if state.get("iteration_count", 0) > 0 and synthesis:
        parts.append(f"Previous attempt summary:\n{synthesis}\n\n")
        parts.append("Please create an improved plan based on the previous attempt.\n\n")
    parts.append("Return ONLY the numbered steps, one per line, starting with '1.', '2.', etc.\n")
    parts.append("Do not include any explanation or preamble. Just the steps.")
    return "".join(parts)


def planner_node(state: AgentState, generate: Generate) -> dict:
    """Replace the plan, start a new cycle (empty history, cursor at 0), bump iteration_count."""
    query = state["query"]
    iteration = state["iteration_count"] + 1
    logger.info("[graph:planner] IN  iteration=%d query=%r", iteration, query)
    prompt = _planning_prompt(state)
    logger.info("[graph:planner] prompt_len=%d", len(prompt))
    try:
        raw = generate(prompt)
        logger.info("[graph:planner] llm_raw=%r", raw)
        plan = parse_plan_steps(raw)
    except ParseError:
        logger.warning("[graph:planner] LLM returned no numbered steps; using fallback plan")
        plan = fallback_plan(query)
    except Exception as e:
        logger.warning("[graph:planner] LLM call failed (%s); using fallback plan", e)
        plan = fallback_plan(query)
    logger.info("[graph:planner] OUT iteration=%d steps=%d plan=%s", iteration, len(plan), plan)
    return {
        "plan": tuple(plan),
        "current_step_index": 0,
        "history": (),
        "next_action": NextAction.EXECUTE,
        "iteration_count": iteration,
    }
