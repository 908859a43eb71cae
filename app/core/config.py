"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


# Hugging Face (fallback LLM)
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_CHAT_URL: str = "https://router.huggingface.co/v1/chat/completions"

# API timeouts (seconds)
LLM_API_TIMEOUT: float = _env_float("LLM_API_TIMEOUT", 60.0)

# Agent loop
MAX_ITERATIONS: int = _env_int("AGENT_MAX_ITERATIONS", 10)
QUALITY_THRESHOLD: float = _env_float("AGENT_QUALITY_THRESHOLD", 0.75)
# Score used when the evaluator cannot obtain one; kept separate from the threshold
FALLBACK_QUALITY_SCORE: float = _env_float("AGENT_FALLBACK_QUALITY_SCORE", 0.75)
# Hard cap on planning passes, independent of MAX_ITERATIONS
ITERATION_CEILING: int = _env_int("AGENT_ITERATION_CEILING", 10)
GRAPH_RECURSION_LIMIT: int = _env_int("AGENT_GRAPH_RECURSION_LIMIT", 1000)
AGENT_MAX_TOKENS: int = _env_int("AGENT_MAX_TOKENS", 1024)

# OpenAI (agent LLM). When set, the agent uses OpenAI instead of Hugging Face.
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)

# HF LLM for agent (fallback when OPENAI_API_KEY is not set). Router chat completions require a chat model.
HF_LLM_MODEL: str = (
    os.getenv("HF_LLM_MODEL", "meta-llama/Llama-3.2-3B-Instruct").strip()
    or "meta-llama/Llama-3.2-3B-Instruct"
)


class AgentSettings(BaseModel):
    """Loop settings for one run. Defaults come from the environment constants above."""

    max_iterations: int = Field(MAX_ITERATIONS, ge=1, description="Planning passes after which the evaluator finishes.")
    quality_threshold: float = Field(QUALITY_THRESHOLD, ge=0.0, le=1.0, description="Minimum score that ends the loop.")
    fallback_quality_score: float = Field(
        FALLBACK_QUALITY_SCORE, ge=0.0, le=1.0, description="Score assumed when scoring fails."
    )
    iteration_ceiling: int = Field(ITERATION_CEILING, ge=1, description="Hard stop on planning passes.")
    recursion_limit: int = Field(GRAPH_RECURSION_LIMIT, ge=1, description="LangGraph superstep limit per run.")

    model_config = {"frozen": True}
