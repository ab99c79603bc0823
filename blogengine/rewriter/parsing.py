"""
Extraction of JSON payloads from free-form LLM output.

Model responses often wrap JSON in markdown fences or surround it with prose.
``parse_llm_json`` strips fences, locates the first balanced object (or
array) and decodes it. Failures come back as a ``ParseError`` carrying the
raw text rather than an exception, so callers decide what a failure means.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)

_CLOSERS = {"{": "}", "[": "]"}


@dataclass(frozen=True)
class ParsedJSON:
    data: Any
    raw_text: str

    ok = True


@dataclass(frozen=True)
class ParseError:
    raw_text: str
    reason: str

    ok = False


ParseResult = Union[ParsedJSON, ParseError]


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text unchanged."""
    match = _FENCE_RE.search(text or "")
    if match:
        return match.group(1).strip()
    return (text or "").strip()


def extract_balanced(text: str, opener: str = "{") -> Optional[str]:
    """
    Find the first balanced ``{...}`` or ``[...]`` span in text.

    Brackets inside JSON string literals are ignored.

    Returns:
        The span including its delimiters, or None if no balanced span exists
    """
    closer = _CLOSERS[opener]
    start = text.find(opener)
    while start != -1:
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
            elif char == opener:
                depth += 1
            elif char == closer:
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        start = text.find(opener, start + 1)
    return None


def parse_llm_json(text: str, expect: str = "object") -> ParseResult:
    """
    Decode the JSON object (or array, with ``expect="array"``) in an LLM reply.

    Args:
        text: Raw model output
        expect: ``"object"`` or ``"array"``

    Returns:
        ParsedJSON on success, ParseError with the raw text otherwise
    """
    raw = text or ""
    opener = "[" if expect == "array" else "{"
    expected_type = list if expect == "array" else dict

    body = strip_code_fences(raw)
    candidates = [body]
    span = extract_balanced(body, opener)
    if span is not None and span != body:
        candidates.append(span)

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, expected_type):
            return ParsedJSON(data=data, raw_text=raw)

    if span is None:
        return ParseError(raw_text=raw, reason=f"no JSON {expect} found")
    return ParseError(raw_text=raw, reason=f"invalid JSON {expect}")
