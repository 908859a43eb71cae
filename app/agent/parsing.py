"""
Parsers for free-text LLM output.

Each parser either returns a usable value or raises ParseError, so callers can
route both a failed LLM call and an unusable reply to the same fallback.
"""

import re

_STEP_MARKER = re.compile(r"^\d+\.")
_STEP_PREFIX = re.compile(r"^\d+\.\s*")
_NON_NUMERIC = re.compile(r"[^0-9.]")


class ParseError(ValueError):
    """Raised when LLM output cannot be turned into the expected value."""


def parse_plan_steps(text: str) -> list[str]:
    """
    Extract numbered steps ("1. Do X") from an LLM reply, in order.
    Lines without a leading "<digits>." marker are ignored, as are markers with no text.
    """
    steps = []
    for line in (text or "").splitlines():
        line = line.strip()
        if not line or not _STEP_MARKER.match(line):
            continue
        step = _STEP_PREFIX.sub("", line, count=1).strip()
        if step:
            steps.append(step)
    if not steps:
        raise ParseError("no numbered steps in response")
    return steps


def clamp_score(score: float) -> float:
    return max(0.0, min(1.0, score))


def parse_quality_score(text: str) -> float:
    """
    Read a score from an LLM reply: drop everything except digits and periods,
    parse what is left as a float, clamp to [0.0, 1.0].
    A minus sign is dropped with the rest, so "-0.4" reads as 0.4.
    """
    digits = _NON_NUMERIC.sub("", text or "")
    try:
        score = float(digits)
    except ValueError as e:
        raise ParseError(f"not a number: {text!r}") from e
    return clamp_score(score)
