"""Extract JSON payloads from LLM output and validate them against a schema."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from manual_rag.exceptions import ResponseValidationError, StructuredOutputError

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_FENCE = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)


@dataclass(frozen=True)
class ParsedPayload:
    data: Any


@dataclass(frozen=True)
class PayloadParseFailure:
    reason: str
    raw: str


def _try_load(candidate: str) -> ParsedPayload | None:
    try:
        return ParsedPayload(json.loads(candidate))
    except (json.JSONDecodeError, ValueError):
        return None


def extract_json_payload(text: str | None) -> ParsedPayload | PayloadParseFailure:
    """Parse the JSON value in ``text``.

    Tries the whole text, then the first fenced block, then the outermost
    ``{...}`` / ``[...]`` span.
    """
    if text is None or not text.strip():
        return PayloadParseFailure("empty response", text or "")
    stripped = text.strip()

    parsed = _try_load(stripped)
    if parsed is not None:
        return parsed

    fence = _FENCE.search(stripped)
    if fence:
        parsed = _try_load(fence.group(1))
        if parsed is not None:
            return parsed

    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        start = stripped.find(open_ch)
        end = stripped.rfind(close_ch)
        if start != -1 and end > start:
            parsed = _try_load(stripped[start : end + 1])
            if parsed is not None:
                return parsed

    return PayloadParseFailure("no valid JSON found", stripped)


def parse_structured(text: str | None, schema: type[SchemaT]) -> SchemaT:
    result = extract_json_payload(text)
    if isinstance(result, PayloadParseFailure):
        raise StructuredOutputError(f"Invalid JSON in LLM output: {result.reason}", raw=result.raw)
    try:
        return schema.model_validate(result.data)
    except ValidationError as e:
        raise ResponseValidationError(
            f"LLM output does not match {schema.__name__}: {e.error_count()} error(s)"
        ) from e
