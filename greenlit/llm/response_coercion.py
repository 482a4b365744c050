"""
Response coercion.

Turns raw model text into a JSON object. The contract is provider-agnostic:
``coerce_json`` returns the parsed value or a ``ParseFailure`` describing why
the text could not be parsed. Nothing is fabricated when parsing fails.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Union

from greenlit.core.logging_config import get_logger

logger = get_logger("llm.coercion")

FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)```")
TRAILING_COMMA_PATTERN = re.compile(r",(\s*[}\]])")

JSONValue = Union[Dict[str, Any], List[Any]]


@dataclass(frozen=True)
class ParseFailure:
    """Why a response could not be coerced."""
    reason: str
    excerpt: str = ""

    def __bool__(self) -> bool:
        return False


def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced block, or the text unchanged."""
    match = FENCE_PATTERN.search(text)
    if match:
        return match.group(1).strip()
    return text


def _span_from(text: str, start: int) -> str:
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return text[start:]
    return text[start:end + 1]


def json_spans(text: str) -> List[str]:
    """
    Candidate object or array spans, earliest opener first.

    Prose such as ``[Note] {...}`` puts a bracket ahead of the real object,
    so the span from the other opener is kept as a fallback.
    """
    starts = sorted(i for i in (text.find("{"), text.find("[")) if i != -1)
    if not starts:
        return [text]
    return [_span_from(text, start) for start in starts]


def extract_json_span(text: str) -> str:
    """Cut the text down to the outermost object or array it contains."""
    return json_spans(text)[0]


def _remove_trailing_commas(text: str) -> str:
    return TRAILING_COMMA_PATTERN.sub(r"\1", text)


def _escape_control_characters(text: str) -> str:
    """Escape raw newlines and tabs inside string literals; blank other control characters."""
    out = []
    in_string = False
    escaped = False
    for char in text:
        if escaped:
            out.append(char)
            escaped = False
            continue
        if char == "\\":
            out.append(char)
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            out.append(char)
            continue
        if in_string and char == "\n":
            out.append("\\n")
        elif in_string and char == "\r":
            continue
        elif in_string and char == "\t":
            out.append("\\t")
        elif ord(char) < 32 and char not in "\n\r\t":
            out.append(" ")
        else:
            out.append(char)
    return "".join(out)


_STRATEGIES: List[Callable[[str], str]] = [
    lambda text: text,
    _remove_trailing_commas,
    lambda text: _remove_trailing_commas(_escape_control_characters(text)),
]


def coerce_json(text: str) -> Union[JSONValue, ParseFailure]:
    """
    Coerce model output into a JSON object or array.

    Args:
        text: Raw response text, optionally wrapped in a fenced code block
              or surrounded by prose

    Returns:
        The parsed value, or a ParseFailure
    """
    if not isinstance(text, str) or not text.strip():
        return ParseFailure("Empty response")

    candidates = json_spans(strip_code_fence(text.strip()))

    last_error = ""
    for candidate in candidates:
        for index, strategy in enumerate(_STRATEGIES):
            try:
                value = json.loads(strategy(candidate))
            except json.JSONDecodeError as e:
                last_error = str(e)
                continue
            if not isinstance(value, (dict, list)):
                return ParseFailure("Response is not a JSON object", candidate[:200])
            if index > 0:
                logger.debug(f"Parsed response after repair strategy {index}")
            return value

    logger.warning(f"Could not parse model response: {last_error}")
    return ParseFailure(f"Invalid JSON: {last_error}", candidates[0][:200])


def check_shape(value: JSONValue, required_keys: Iterable[str]) -> Union[Dict[str, Any], ParseFailure]:
    """Check that a coerced value is an object carrying every required key."""
    if not isinstance(value, dict):
        return ParseFailure("Expected a JSON object")
    missing = [key for key in required_keys if key not in value]
    if missing:
        return ParseFailure(f"Response is missing required keys: {', '.join(missing)}")
    return value
