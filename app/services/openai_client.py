"""
OpenAI API helpers — two-phase analysis used by every LLM analyzer.

  Phase 1  run_analysis()    free-form prose analysis of the project
  Phase 2  extract_fields()  function-calling pass that turns the prose into
                             a structured dict

Both calls go through the 'openai' circuit breaker.
"""
import json
import logging
from typing import Any, Dict

from app.config import OPENAI_MODEL, OPENAI_MAX_TOKENS
from app.errors import ConfigurationError
from app.extensions import openai_client as client

logger = logging.getLogger('services.openai')


def _chat_completion(**kwargs):
    """Route chat completion through the OpenAI circuit breaker."""
    from app.services.circuit_breaker import get_breaker
    if client is None:
        raise ConfigurationError("OPENAI_API_KEY not set")
    cb = get_breaker('openai')
    return cb.call(client.chat.completions.create, **kwargs)


def run_analysis(system_prompt: str, user_prompt: str,
                 model: str = OPENAI_MODEL, temperature: float = 0.7,
                 max_tokens: int = OPENAI_MAX_TOKENS) -> str:
    """Phase 1: return the model's prose analysis."""
    response = _chat_completion(
        model=model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    analysis = response.choices[0].message.content if response.choices else None
    if not analysis or not analysis.strip():
        raise ValueError("No analysis returned from OpenAI")
    logger.debug("Phase 1 analysis: %d chars", len(analysis))
    return analysis


def extract_fields(raw_analysis: str, tool_schema: Dict[str, Any],
                   instructions: str = "Extract structured data from this analysis. Use the function provided.",
                   model: str = OPENAI_MODEL) -> Dict[str, Any]:
    """
    Phase 2: force a single function call and return its parsed arguments.

    tool_schema is an OpenAI tool definition ({"type": "function", "function": {...}}).
    """
    response = _chat_completion(
        model=model,
        messages=[
            {"role": "system", "content": instructions},
            {"role": "user", "content": raw_analysis},
        ],
        tools=[tool_schema],
        tool_choice="required",
    )
    message = response.choices[0].message if response.choices else None
    tool_calls = getattr(message, 'tool_calls', None) or []
    if not tool_calls:
        raise ValueError("No function call returned from OpenAI")

    try:
        parsed = json.loads(tool_calls[0].function.arguments or '{}')
    except json.JSONDecodeError as e:
        raise ValueError(f"Function call arguments are not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError("Function call arguments must be a JSON object")

    logger.debug("Phase 2 fields: %s", sorted(parsed))
    return parsed
