"""
LangGraph agent: plan → execute (once per step) → evaluate → (re-plan or finish).

Orchestration only; the phases live in planner.py, executor.py and evaluator.py.
A single router reads next_action after every node and picks the next one; it
also enforces the iteration ceiling. Unknown next_action values abort the run.
"""

import logging
from dataclasses import asdict
from typing import Any, Iterator

from langgraph.errors import GraphRecursionError
from langgraph.graph import END, StateGraph

from app.agent.evaluator import evaluator_node, fallback_synthesis
from app.agent.executor import executor_node
from app.agent.llm import Generate, generate as llm_generate
from app.agent.planner import planner_node
from app.agent.state import AgentState, NextAction, create_initial_state
from app.core.config import AgentSettings
from app.core.errors import UnknownActionError

logger = logging.getLogger(__name__)

PLANNER = "planner"
EXECUTOR = "executor"
EVALUATOR = "evaluator"
_ROUTES = [PLANNER, EXECUTOR, EVALUATOR, END]

# node name -> phase name used in stream events
_PHASE_BY_NODE = {
    PLANNER: NextAction.PLAN.value,
    EXECUTOR: NextAction.EXECUTE.value,
    EVALUATOR: NextAction.EVALUATE.value,
}


def _coerce_action(value: Any) -> NextAction:
    try:
        return NextAction(value)
    except (ValueError, TypeError) as e:
        raise UnknownActionError(value) from e


def route_next(state: AgentState, settings: AgentSettings) -> str:
    """
    Map next_action to the node that runs next, or END.
    A new planning pass is not started once iteration_count hits the ceiling.
    """
    action = _coerce_action(state.get("next_action"))
    iteration = state.get("iteration_count") or 0
    if action is NextAction.FINISH:
        next_node = END
    elif action is NextAction.PLAN:
        if iteration >= settings.iteration_ceiling:
            logger.info(
                "[graph:route] iteration ceiling %d reached; stopping with current synthesis",
                settings.iteration_ceiling,
            )
            return END
        next_node = PLANNER
    elif action is NextAction.EXECUTE:
        next_node = EXECUTOR
    elif action is NextAction.EVALUATE:
        next_node = EVALUATOR
    else:
        raise UnknownActionError(action)
    logger.info("[graph:route] iteration=%d next_action=%s -> %s", iteration, action.value, next_node)
    return next_node


def build_graph(settings: AgentSettings | None = None, generate: Generate | None = None):
    """
    Build and compile the agent graph.
    Every node routes through route_next, so the graph is a single dispatch loop.
    """
    settings = settings or AgentSettings()
    generate = generate or llm_generate

    def _planner(state: AgentState) -> dict:
        return planner_node(state, generate)

    def _executor(state: AgentState) -> dict:
        return executor_node(state, generate)

    def _evaluator(state: AgentState) -> dict:
        return evaluator_node(state, generate, settings)

    def _route(state: AgentState) -> str:
        return route_next(state, settings)

    graph = StateGraph(AgentState)

    graph.add_node(PLANNER, _planner)
    graph.add_node(EXECUTOR, _executor)
    graph.add_node(EVALUATOR, _evaluator)

    graph.set_conditional_entry_point(_route, _ROUTES)
    for node in (PLANNER, EXECUTOR, EVALUATOR):
        graph.add_conditional_edges(node, _route, _ROUTES)

    return graph.compile()


def _run_config(settings: AgentSettings) -> dict:
    return {"recursion_limit": settings.recursion_limit}


def execute(
    initial_state: AgentState,
    settings: AgentSettings | None = None,
    generate: Generate | None = None,
) -> AgentState:
    """Run the loop to completion and return the final state."""
    settings = settings or AgentSettings()
    logger.info("[graph:execute] START session_id=%s", initial_state.get("session_id"))
    final: AgentState = dict(initial_state)
    for _, state in _iter_transitions(initial_state, settings, generate):
        final = state
    logger.info(
        "[graph:execute] END session_id=%s iterations=%d next_action=%s",
        final.get("session_id"),
        final.get("iteration_count") or 0,
        final.get("next_action"),
    )
    return final


def _iter_transitions(
    initial_state: AgentState,
    settings: AgentSettings,
    generate: Generate | None,
) -> Iterator[tuple[str, AgentState]]:
    """
    Yield (node name, full state after that node) for every transition.
    Running out of LangGraph supersteps ends the run like the iteration ceiling does.
    """
    graph = build_graph(settings, generate)
    current: AgentState = dict(initial_state)
    try:
        for event in graph.stream(initial_state, config=_run_config(settings), stream_mode="updates"):
            # event: {"planner": {"plan": (...), ...}}
            for node_name, state_update in event.items():
                if node_name not in _PHASE_BY_NODE:
                    continue
                current = {**current, **(state_update or {})}
                yield node_name, current
    except GraphRecursionError:
        logger.warning(
            "[graph:route] recursion limit %d reached at iteration=%d; stopping with current synthesis",
            settings.recursion_limit,
            current.get("iteration_count") or 0,
        )


def execute_with_trace(
    initial_state: AgentState,
    settings: AgentSettings | None = None,
    generate: Generate | None = None,
) -> list[AgentState]:
    """Run the loop and return every state, the initial one first and the final one last."""
    settings = settings or AgentSettings()
    logger.info("[graph:execute_with_trace] START session_id=%s", initial_state.get("session_id"))
    trace: list[AgentState] = [dict(initial_state)]
    for _, state in _iter_transitions(initial_state, settings, generate):
        trace.append(state)
    logger.info("[graph:execute_with_trace] END states=%d", len(trace))
    return trace


def build_result(state: AgentState) -> dict:
    """Outbound result for one finished run. final_answer is never empty."""
    answer = (state.get("synthesis") or "").strip() or fallback_synthesis(state)
    return {
        "session_id": state["session_id"],
        "final_answer": answer,
        "execution_trace": [asdict(step) for step in state.get("history") or ()],
        "iterations": state.get("iteration_count") or 0,
        "quality_score": state.get("quality_score") or 0.0,
        "plan_steps": list(state.get("plan") or ()),
    }


def _validated_query(query: str) -> str:
    if not query or not str(query).strip():
        raise ValueError("query is required")
    return str(query).strip()


def run_agent(
    query: str,
    settings: AgentSettings | None = None,
    generate: Generate | None = None,
) -> dict:
    """
    Run the agent synchronously for one query. Returns session_id, final_answer,
    execution_trace, iterations, quality_score, plan_steps.
    """
    q = _validated_query(query)
    logger.info("[run_agent] START query=%r", q)
    final = execute(create_initial_state(q), settings, generate)
    result = build_result(final)
    logger.info(
        "[run_agent] END session_id=%s iterations=%d quality_score=%.2f answer_len=%d",
        result["session_id"],
        result["iterations"],
        result["quality_score"],
        len(result["final_answer"]),
    )
    return result


def _event_data(node_name: str, state: AgentState) -> dict:
    if node_name == PLANNER:
        return {"iteration": state["iteration_count"], "plan_steps": list(state["plan"])}
    if node_name == EXECUTOR:
        step = state["history"][-1]
        return {"step_number": step.step_number, "description": step.description, "result": step.result}
    return {
        "quality_score": state["quality_score"],
        "next_action": NextAction(state["next_action"]).value,
    }


def run_agent_stream(
    query: str,
    settings: AgentSettings | None = None,
    generate: Generate | None = None,
) -> Iterator[dict]:
    """
    Run the agent and yield one event per phase: plan → execute ... → evaluate → done.
    Each yield is {"event": str, "data": dict}; "done" carries the full result.
    Failures are reported as a final {"event": "error", "data": {"message": str}}.
    """
    try:
        q = _validated_query(query)
    except ValueError as e:
        yield {"event": "error", "data": {"message": str(e)}}
        return
    settings = settings or AgentSettings()
    initial = create_initial_state(q)
    logger.info("[run_agent_stream] START session_id=%s query=%r", initial["session_id"], q)
    final: AgentState = initial
    try:
        for node_name, state in _iter_transitions(initial, settings, generate):
            final = state
            yield {"event": _PHASE_BY_NODE[node_name], "data": _event_data(node_name, state)}
    except Exception as e:
        logger.exception("[run_agent_stream] Agent stream failed")
        yield {"event": "error", "data": {"message": str(e)}}
        return
    yield {"event": "done", "data": build_result(final)}
    logger.info("[run_agent_stream] END session_id=%s", initial["session_id"])
