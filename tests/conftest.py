"""
Shared fixtures: fake LLMs so agent tests never touch OpenAI or Hugging Face.
"""

from collections.abc import Callable

import pytest

from app.core.config import AgentSettings
from app.core.errors import GenerationError


class ScriptedLLM:
    """
    Stand-in for app.agent.llm.generate that answers by prompt type.
    Scores are consumed in order; the last one repeats.
    """

    def __init__(
        self,
        plan: str = "1. Define the topic\n2. Collect key facts\n3. Summarize",
        scores: tuple[str, ...] = ("0.9",),
        synthesis: str = "Synthesized answer.",
    ) -> None:
        self.plan = plan
        self.scores = list(scores)
        self.synthesis = synthesis
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if prompt.startswith("You are a planning assistant"):
            return self.plan
        if prompt.startswith("You are an execution assistant"):
            return f"Result #{self.count('You are an execution assistant')}"
        if prompt.startswith("You are a synthesis assistant"):
            return self.synthesis
        if prompt.startswith("You are a quality evaluator"):
            return self.scores.pop(0) if len(self.scores) > 1 else self.scores[0]
        raise AssertionError(f"unexpected prompt: {prompt[:60]!r}")

    def count(self, prefix: str) -> int:
        return sum(1 for p in self.prompts if p.startswith(prefix))


def _always_fail(prompt: str) -> str:
    raise GenerationError("LLM unavailable")


@pytest.fixture
def failing_llm() -> Callable[[str], str]:
    return _always_fail


@pytest.fixture
def scripted_llm() -> type[ScriptedLLM]:
    return ScriptedLLM


@pytest.fixture
def settings() -> AgentSettings:
    return AgentSettings(
        max_iterations=10,
        quality_threshold=0.75,
        fallback_quality_score=0.75,
        iteration_ceiling=10,
        recursion_limit=1000,
    )
