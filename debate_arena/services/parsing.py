"""
Permissive decoding of structured LLM responses.

Every agent asks for JSON, and every agent sometimes gets prose, a fenced code
block, or JSON wrapped in commentary. Rather than nesting try/except in each
agent, they all go through decode_json():

    1. strict:  the whole response is a JSON object
    2. lenient: the outermost {...} span inside the response is a JSON object
    3. fallback: a fixed value built from the raw text

The normalizer turns the parsed dict into the agent's dataclass. If it raises
(wrong shapes, unexpected types), that stage counts as failed too.
"""

import json
import logging
import re
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")

_NORMALIZE_ERRORS = (TypeError, ValueError, KeyError, AttributeError)


def _strict(raw: str) -> Optional[dict]:
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


def _lenient(raw: str) -> Optional[dict]:
    match = _OBJECT_SPAN.search(raw or "")
    if not match:
        return None
    return _strict(match.group(0))


def decode_json(
    raw: str,
    normalize: Callable[[dict], T],
    fallback: Callable[[str], T],
    label: str = "response",
) -> T:
    """
    Decode an LLM response into a typed value, never raising.

    Args:
        raw: The raw model output
        normalize: Builds the result from a parsed JSON object
        fallback: Builds the result from the raw text when both stages fail
        label: Name used in log messages

    Example:
        response = decode_json(
            raw,
            normalize=_normalize_agent_response,
            fallback=lambda text: AgentResponse(argument=text),
            label="debater",
        )
    """
    for stage in (_strict, _lenient):
        parsed = stage(raw)
        if parsed is None:
            continue
        try:
            return normalize(parsed)
        except _NORMALIZE_ERRORS as e:
            logger.warning(f"{label}: {stage.__name__.lstrip('_')} decode produced bad shape: {e}")

    logger.warning(f"{label}: could not decode JSON, using fallback")
    return fallback(raw)


# =============================================================================
# FIELD COERCION HELPERS
# =============================================================================

def as_str(value: Any, default: str = "") -> str:
    """String value, with None mapped to the default."""
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def as_list(value: Any) -> list:
    """List value; anything that is not a list becomes empty."""
    return value if isinstance(value, list) else []


def clamp_unit(value: Any, default: float = 0.0) -> float:
    """Number clamped to [0, 1]; non-numbers become the default."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return min(1.0, max(0.0, float(value)))
