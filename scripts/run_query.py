#!/usr/bin/env python3
"""
Run one query through the agent loop and print the result as JSON.

Uses the LLM configured in .env (OPENAI_API_KEY or HF_API_KEY). Without either,
every phase falls back and the run still completes.

Run from project root:

    python scripts/run_query.py "What is quantum computing?"
    python scripts/run_query.py "Explain REST APIs" --max-iterations 3 --quality-threshold 0.8
    python scripts/run_query.py "Explain REST APIs" --trace
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Project root on path so "app" resolves
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from app.agent.graph import build_result, execute_with_trace, run_agent
from app.agent.state import create_initial_state
from app.core.config import AgentSettings
from app.schemas.agent import AgentResponse


def _trace_summary(trace: list[dict]) -> list[dict]:
    return [
        {
            "next_action": str(getattr(s["next_action"], "value", s["next_action"])),
            "iteration_count": s["iteration_count"],
            "plan_steps": len(s["plan"]),
            "history": len(s["history"]),
            "quality_score": s["quality_score"],
        }
        for s in trace
    ]


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the plan/execute/evaluate agent for one query.")
    parser.add_argument("query", help="Question for the agent.")
    parser.add_argument("--max-iterations", type=int, default=None, help="Override AGENT_MAX_ITERATIONS.")
    parser.add_argument("--quality-threshold", type=float, default=None, help="Override AGENT_QUALITY_THRESHOLD.")
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Also print a summary of every intermediate state.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at INFO level.")
    args = parser.parse_args()
    if not args.query.strip():
        parser.error("query must not be blank")

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    overrides = {}
    if args.max_iterations is not None:
        overrides["max_iterations"] = args.max_iterations
    if args.quality_threshold is not None:
        overrides["quality_threshold"] = args.quality_threshold
    settings = AgentSettings(**overrides)

    if args.trace:
        trace = execute_with_trace(create_initial_state(args.query.strip()), settings)
        result = AgentResponse(**build_result(trace[-1])).model_dump(mode="json")
        print(json.dumps({"result": result, "trace": _trace_summary(trace)}, indent=2))
        return

    result = AgentResponse(**run_agent(args.query, settings)).model_dump(mode="json")
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
