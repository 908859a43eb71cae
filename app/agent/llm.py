"""
Agent LLM: OpenAI (primary) or Hugging Face (fallback).
When OPENAI_API_KEY is set, uses OpenAI chat completions; otherwise uses HF router.

generate() is the only entry point the agent phases use. Every transport or
provider problem, including timeouts and empty replies, surfaces as GenerationError.
"""

import logging
from typing import Callable

import httpx
from openai import OpenAI, OpenAIError

from app.core.config import (
    AGENT_MAX_TOKENS,
    HF_API_KEY,
    HF_CHAT_URL,
    HF_LLM_MODEL,
    LLM_API_TIMEOUT,
    OPENAI_API_KEY,
    OPENAI_LLM_MODEL,
)
from app.core.errors import GenerationError

logger = logging.getLogger(__name__)

# prompt -> generated text; raises on failure
Generate = Callable[[str], str]


def _call_openai(prompt: str, max_new_tokens: int) -> str:
    """Call OpenAI chat completions. Returns generated text."""
    client = OpenAI(api_key=OPENAI_API_KEY, timeout=LLM_API_TIMEOUT)
    try:
        response = client.chat.completions.create(
            model=OPENAI_LLM_MODEL,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_new_tokens,
        )
    except OpenAIError as e:
        raise GenerationError(f"OpenAI request failed: {e}") from e
    msg = response.choices[0].message if response.choices else None
    out = ((msg.content if msg else None) or "").strip()
    if not out:
        raise GenerationError("OpenAI returned an empty response")
    logger.info("[llm:openai] OUT response_len=%d", len(out))
    logger.debug("[llm:openai] OUT response_full=%r", out)
    return out


def _call_hf(prompt: str, max_new_tokens: int) -> str:
    """Call Hugging Face router chat completions. Returns generated text."""
    if not HF_API_KEY:
        raise GenerationError("No LLM configured: set OPENAI_API_KEY or HF_API_KEY")
    headers = {"Authorization": f"Bearer {HF_API_KEY}", "Content-Type": "application/json"}
    payload = {
        "model": HF_LLM_MODEL,
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": max_new_tokens,
    }
    try:
        with httpx.Client(timeout=LLM_API_TIMEOUT) as client:
            response = client.post(HF_CHAT_URL, json=payload, headers=headers)
    except httpx.HTTPError as e:
        raise GenerationError(f"HF request failed: {e}") from e
    if response.status_code != 200:
        raise GenerationError(f"HF LLM error {response.status_code}: {response.text[:200]}")
    try:
        data = response.json()
    except ValueError as e:
        raise GenerationError("HF LLM returned invalid JSON") from e
    choices = data.get("choices") or []
    out = ""
    if choices and isinstance(choices[0], dict):
        msg = choices[0].get("message") or {}
        out = (msg.get("content") or "").strip()
    if not out:
        raise GenerationError("HF LLM returned an empty response")
    logger.info("[llm:hf] OUT response_len=%d", len(out))
    logger.debug("[llm:hf] OUT response_full=%r", out)
    return out


def generate(prompt: str, max_new_tokens: int = AGENT_MAX_TOKENS) -> str:
    """
    Call LLM for text generation. Uses OpenAI when OPENAI_API_KEY is set, else Hugging Face.
    If OpenAI is chosen but fails, falls back to HF once. No retries beyond that.
    Raises GenerationError when no provider produced text.
    """
    logger.info("[llm] IN  prompt_len=%d max_new_tokens=%d", len(prompt), max_new_tokens)
    logger.debug("[llm] prompt_sample=%r", prompt[:500] if len(prompt) > 500 else prompt)
    if OPENAI_API_KEY:
        try:
            return _call_openai(prompt, max_new_tokens)
        except GenerationError as e:
            if not HF_API_KEY:
                raise
            logger.info("[llm] OpenAI failed (%s); falling back to Hugging Face", e.message)
    return _call_hf(prompt, max_new_tokens)
