"""Best-effort repair of truncated or malformed JSON responses."""

import json
import re

from src.logger import get_logger

logger = get_logger("lessongen.repair")

MAX_REPAIR_ATTEMPTS = 3

_CLOSERS = {"{": "}", "[": "]"}


class StructuredParseFailure(Exception):
    """Raised when structured text cannot be parsed even after repair."""

    pass


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json ... ```) around a response."""
    return re.sub(r"```(?:json)?", "", text).strip()


def _scan(fragment: str) -> tuple[list[str], bool, list[int]]:
    """
    Walk a JSON fragment tracking open containers and string state.

    Returns:
        Tuple of (stack of open brackets, whether a string is open,
        positions of commas outside strings)
    """
    stack: list[str] = []
    commas: list[int] = []
    in_string = False
    escaped = False

    for index, char in enumerate(fragment):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(char)
        elif char in "}]":
            if stack and _CLOSERS[stack[-1]] == char:
                stack.pop()
        elif char == ",":
            commas.append(index)

    return stack, in_string, commas


def extract_object_span(text: str) -> str | None:
    """
    Extract the first JSON object from free text.

    Returns the balanced `{...}` span, or everything from the first `{` to the
    end when the object is never closed. Returns None if there is no `{`.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]

    return text[start:]


def _terminate_string(fragment: str) -> str:
    _, in_string, _ = _scan(fragment)
    if in_string:
        if fragment.endswith("\\"):
            fragment = fragment[:-1]
        fragment += '"'
    return fragment


def close_structure(fragment: str) -> str:
    """
    Close an unterminated string, drop a trailing comma and close every open
    bracket and brace in reverse order of opening.
    """
    fragment = _terminate_string(fragment).rstrip()
    fragment = re.sub(r",\s*$", "", fragment)
    fragment = re.sub(r",(\s*[}\]])", r"\1", fragment)
    stack, _, _ = _scan(fragment)
    return fragment + "".join(_CLOSERS[opener] for opener in reversed(stack))


def _drop_dangling_key(fragment: str) -> str:
    fragment = _terminate_string(fragment).rstrip()
    return re.sub(
        r'([,{])\s*"(?:[^"\\]|\\.)*"\s*:?\s*$',
        lambda match: "" if match.group(1) == "," else "{",
        fragment,
    )


def _truncate_to_last_separator(fragment: str) -> str:
    _, _, commas = _scan(fragment)
    if not commas:
        return fragment
    return fragment[: commas[-1]]


_REPAIR_STEPS = (
    ("close open structures", close_structure),
    ("drop dangling key", lambda f: close_structure(_drop_dangling_key(f))),
    ("truncate to last complete value", lambda f: close_structure(_truncate_to_last_separator(f))),
)


def parse_structured(text: str, max_attempts: int = MAX_REPAIR_ATTEMPTS) -> dict:
    """
    Parse a JSON object out of a model response, repairing it if needed.

    Args:
        text: Raw response text, possibly fenced, truncated or wrapped in prose
        max_attempts: Maximum number of repair strategies to try

    Returns:
        The parsed JSON object

    Raises:
        StructuredParseFailure: If no repair strategy yields valid JSON
    """
    span = extract_object_span(strip_code_fences(text))
    if span is None:
        raise StructuredParseFailure(f"No JSON object found in response: {text[:200]}")

    try:
        return json.loads(span)
    except json.JSONDecodeError as e:
        logger.warning(f"  Structured response did not parse ({e}), attempting repair")

    last_error: Exception | None = None
    for attempt, (label, step) in enumerate(_REPAIR_STEPS[:max_attempts], start=1):
        candidate = step(span)
        logger.info(f"  Repair attempt {attempt}/{max_attempts}: {label}")
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e
            continue
        if isinstance(parsed, dict):
            logger.info(f"  Repair attempt {attempt} succeeded")
            return parsed

    raise StructuredParseFailure(
        f"Could not parse structured response after {max_attempts} repair attempts: {last_error}"
    )
