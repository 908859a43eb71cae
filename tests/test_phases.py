"""
Unit tests for the planner, executor and evaluator phases in isolation.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from app.agent.evaluator import determine_next_action, evaluator_node, fallback_synthesis
from app.agent.executor import executor_node, fallback_result
from app.agent.planner import fallback_plan, planner_node
from app.agent.state import ExecutionStep, NextAction, create_initial_state
from app.core.config import AgentSettings
from app.core.errors import InvalidStateError


def _step(n: int, description: str = "step", result: str = "done") -> ExecutionStep:
    return ExecutionStep(n, f"{description} {n}", f"{result} {n}", datetime.now(timezone.utc))


def _executed_state(query: str = "What is quantum computing?", steps: int = 3, iteration: int = 1) -> dict:
    state = create_initial_state(query)
    plan = tuple(f"step {i}" for i in range(1, steps + 1))
    history = tuple(_step(i) for i in range(1, steps + 1))
    return {
        **state,
        "plan": plan,
        "history": history,
        "current_step_index": steps - 1,
        "iteration_count": iteration,
        "next_action": NextAction.EVALUATE,
    }


class TestPlanner:
    """Tests for planner_node()."""

    def test_parses_llm_plan(self, scripted_llm) -> None:
        state = create_initial_state("Explain machine learning")
        update = planner_node(state, scripted_llm())
        assert update["plan"] == ("Define the topic", "Collect key facts", "Summarize")
        assert update["current_step_index"] == 0
        assert update["history"] == ()
        assert update["next_action"] is NextAction.EXECUTE
        assert update["iteration_count"] == 1

    def test_llm_failure_uses_fallback_plan(self, failing_llm) -> None:
        state = create_initial_state("What is quantum computing?")
        update = planner_node(state, failing_llm)
        assert list(update["plan"]) == fallback_plan("What is quantum computing?")
        assert update["plan"][0] == "Research and gather information about: What is quantum computing?"
        assert update["iteration_count"] == 1

    def test_reply_without_numbered_steps_uses_fallback_plan(self, scripted_llm) -> None:
        llm = scripted_llm(plan="Sure! I would start by reading about it.")
        update = planner_node(create_initial_state("q"), llm)
        assert list(update["plan"]) == fallback_plan("q")

    def test_fallback_plan_is_deterministic(self, failing_llm) -> None:
        first = planner_node(create_initial_state("Explain REST APIs"), failing_llm)["plan"]
        second = planner_node(create_initial_state("Explain REST APIs"), failing_llm)["plan"]
        assert first == second
        assert len(first) == 3

    def test_replan_includes_previous_synthesis(self, scripted_llm) -> None:
        llm = scripted_llm()
        state = {**_executed_state(), "synthesis": "Earlier draft answer", "iteration_count": 1}
        update = planner_node(state, llm)
        assert "Previous attempt summary:\nEarlier draft answer" in llm.prompts[0]
        assert update["iteration_count"] == 2
        assert update["history"] == ()

    def test_first_plan_has_no_feedback_block(self, scripted_llm) -> None:
        llm = scripted_llm()
        planner_node(create_initial_state("q"), llm)
        assert "Previous attempt summary" not in llm.prompts[0]

    def test_input_state_is_not_mutated(self, scripted_llm) -> None:
        state = create_initial_state("q")
        before = dict(state)
        planner_node(state, scripted_llm())
        assert state == before


class TestExecutor:
    """Tests for executor_node()."""

    def _planned(self, steps: int = 3) -> dict:
        state = create_initial_state("What is quantum computing?")
        return {**state, "plan": tuple(f"step {i}" for i in range(1, steps + 1)), "iteration_count": 1}

    def test_first_step_advances_cursor(self) -> None:
        llm = MagicMock(return_value="qubits explained")
        update = executor_node({**self._planned(), "next_action": NextAction.EXECUTE}, llm)
        (step,) = update["history"]
        assert step.step_number == 1
        assert step.description == "step 1"
        assert step.result == "qubits explained"
        assert step.timestamp.tzinfo is not None
        assert update["current_step_index"] == 1
        assert update["next_action"] is NextAction.EXECUTE

    def test_last_step_moves_to_evaluate(self) -> None:
        state = self._planned(2)
        state = {**state, "history": (_step(1),), "current_step_index": 1}
        update = executor_node(state, MagicMock(return_value="ok"))
        assert len(update["history"]) == 2
        assert update["history"][-1].step_number == 2
        assert update["next_action"] is NextAction.EVALUATE
        assert "current_step_index" not in update

    def test_prompt_carries_previous_steps(self) -> None:
        llm = MagicMock(return_value="ok")
        state = {**self._planned(), "history": (_step(1),), "current_step_index": 1}
        executor_node(state, llm)
        prompt = llm.call_args.args[0]
        assert "Original Query: What is quantum computing?" in prompt
        assert "Current Step to Execute: step 2" in prompt
        assert "1. step 1\n   Result: done 1" in prompt

    def test_llm_failure_records_fallback_result(self, failing_llm) -> None:
        update = executor_node(self._planned(), failing_llm)
        assert update["history"][0].result == fallback_result("step 1")
        assert update["history"][0].result == "Error executing step: step 1. Using fallback."
        assert update["next_action"] is NextAction.EXECUTE

    def test_none_reply_is_stored_as_empty_result(self) -> None:
        update = executor_node(self._planned(), MagicMock(return_value=None))
        assert update["history"][0].result == ""
        assert update["next_action"] is NextAction.EXECUTE

    def test_history_is_appended_not_mutated(self) -> None:
        original = (_step(1),)
        state = {**self._planned(), "history": original, "current_step_index": 1}
        update = executor_node(state, MagicMock(return_value="ok"))
        assert len(original) == 1
        assert update["history"][0] is original[0]

    def test_empty_plan_is_a_state_error(self) -> None:
        with pytest.raises(InvalidStateError):
            executor_node(create_initial_state("q"), MagicMock(return_value="ok"))

    def test_cursor_out_of_lock_step_is_a_state_error(self) -> None:
        state = {**self._planned(), "current_step_index": 2}
        with pytest.raises(InvalidStateError):
            executor_node(state, MagicMock(return_value="ok"))

    def test_iteration_count_untouched(self) -> None:
        update = executor_node(self._planned(), MagicMock(return_value="ok"))
        assert "iteration_count" not in update


class TestEvaluator:
    """Tests for evaluator_node() and determine_next_action()."""

    def test_high_score_finishes(self, scripted_llm, settings) -> None:
        update = evaluator_node(_executed_state(), scripted_llm(scores=("0.9",)), settings)
        assert update["synthesis"] == "Synthesized answer."
        assert update["quality_score"] == pytest.approx(0.9)
        assert update["next_action"] is NextAction.FINISH

    def test_low_score_replans(self, scripted_llm, settings) -> None:
        update = evaluator_node(_executed_state(), scripted_llm(scores=("0.6",)), settings)
        assert update["quality_score"] == pytest.approx(0.6)
        assert update["next_action"] is NextAction.PLAN

    def test_all_failures_fall_back(self, failing_llm, settings) -> None:
        state = _executed_state()
        update = evaluator_node(state, failing_llm, settings)
        assert update["synthesis"] == fallback_synthesis(state)
        assert update["synthesis"].startswith("Based on the query: 'What is quantum computing?'")
        assert "Execution Summary:\n1. step 1\n   Result: done 1" in update["synthesis"]
        assert update["synthesis"].endswith("The agent completed the planned steps.")
        assert update["quality_score"] == 0.75
        assert update["next_action"] is NextAction.FINISH

    def test_unparseable_score_uses_fallback_score(self, scripted_llm, settings) -> None:
        update = evaluator_node(_executed_state(), scripted_llm(scores=("pretty good",)), settings)
        assert update["quality_score"] == 0.75

    def test_fallback_score_is_configurable(self, failing_llm) -> None:
        settings = AgentSettings(quality_threshold=0.75, fallback_quality_score=0.5)
        update = evaluator_node(_executed_state(), failing_llm, settings)
        assert update["quality_score"] == 0.5
        assert update["next_action"] is NextAction.PLAN

    @pytest.mark.parametrize("raw, expected", [("-2", 1.0), ("42", 1.0), ("0", 0.0), ("0.3", 0.3)])
    def test_score_is_clamped(self, scripted_llm, settings, raw, expected) -> None:
        update = evaluator_node(_executed_state(), scripted_llm(scores=(raw,)), settings)
        assert 0.0 <= update["quality_score"] <= 1.0
        assert update["quality_score"] == pytest.approx(expected)

    def test_blank_synthesis_uses_fallback(self, scripted_llm, settings) -> None:
        state = _executed_state()
        update = evaluator_node(state, scripted_llm(synthesis="   "), settings)
        assert update["synthesis"] == fallback_synthesis(state)

    def test_history_shorter_than_plan_is_a_state_error(self, scripted_llm, settings) -> None:
        state = {**_executed_state(), "history": (_step(1),)}
        with pytest.raises(InvalidStateError):
            evaluator_node(state, scripted_llm(), settings)

    def test_max_iterations_forces_finish(self, settings) -> None:
        assert determine_next_action(10, 0.1, settings) is NextAction.FINISH
        assert determine_next_action(11, 0.0, settings) is NextAction.FINISH

    def test_threshold_is_inclusive(self, settings) -> None:
        assert determine_next_action(1, 0.75, settings) is NextAction.FINISH
        assert determine_next_action(1, 0.74, settings) is NextAction.PLAN

    def test_max_iterations_in_node(self, scripted_llm, settings) -> None:
        state = _executed_state(iteration=10)
        update = evaluator_node(state, scripted_llm(scores=("0.1",)), settings)
        assert update["next_action"] is NextAction.FINISH

    def test_iteration_count_untouched(self, scripted_llm, settings) -> None:
        update = evaluator_node(_executed_state(), scripted_llm(), settings)
        assert "iteration_count" not in update
