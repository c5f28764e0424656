"""
Schema-validated parsing of model output.

parse_model_output() returns a tagged result instead of raising:
- Parsed(value, dropped): the text decoded as a JSON object and validated
  against the schema
- Unparsed(raw_text, reason): the text is not a JSON object at all

Models often wrap JSON in a ```json fence; the fence is stripped first.

Validation is per field: a value that fails its field's validator is
dropped and the field takes its default, so one odd field never discards the
rest of a decoded response. Lists are validated per item in the same way.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..errors import ParseError

T = TypeVar('T', bound=BaseModel)

_FENCE = re.compile(r'^\s*```(?:json|JSON)?\s*(.*?)\s*```\s*$', re.DOTALL)


@dataclass(frozen=True)
class Parsed(Generic[T]):
    value: T
    dropped: tuple[str, ...] = ()


@dataclass(frozen=True)
class ParsedList(Generic[T]):
    items: list[T]
    skipped: int = 0


@dataclass(frozen=True)
class Unparsed:
    raw_text: str
    reason: str


def _load_json(raw_text: str) -> Any:
    text = raw_text.strip()
    fenced = _FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    if not text:
        raise ParseError('Model returned an empty response')
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f'Model output is not valid JSON: {e.msg}', context={'pos': e.pos}) from e


def _validate_fields(data: dict[str, Any], schema: type[T]) -> tuple[T, tuple[str, ...]]:
    """
    Validate, dropping top-level fields that fail their validators.

    Raises:
        ParseError: If the object is still invalid without those fields
    """
    try:
        return schema.model_validate(data), ()
    except PydanticValidationError as e:
        bad = {
            err['loc'][0]
            for err in e.errors()
            if err['loc'] and err['loc'][0] in data
        }
        if not bad:
            raise ParseError(f'Schema validation failed: {e.error_count()} error(s)') from e

    kept = {k: v for k, v in data.items() if k not in bad}
    try:
        return schema.model_validate(kept), tuple(sorted(bad))
    except PydanticValidationError as e:
        raise ParseError(f'Schema validation failed: {e.error_count()} error(s)') from e


def parse_model_output(raw_text: str, schema: type[T]) -> Parsed[T] | Unparsed:
    """
    Decode and validate a single JSON object.

    Args:
        raw_text: The model's response text
        schema: Pydantic model to validate against

    Returns:
        Parsed (naming any dropped fields) on success, Unparsed otherwise
    """
    try:
        data = _load_json(raw_text)
        if not isinstance(data, dict):
            raise ParseError(f'Expected a JSON object, got {type(data).__name__}')
        value, dropped = _validate_fields(data, schema)
    except ParseError as e:
        return Unparsed(raw_text=raw_text, reason=e.message)
    return Parsed(value, dropped)


def parse_model_list(
    raw_text: str,
    item_schema: type[T],
    key: str,
) -> ParsedList[T] | Unparsed:
    """
    Decode and validate a list of objects.

    Accepts either a bare JSON array or an object holding the array under
    `key`. Items that are not objects or cannot be validated are skipped;
    a list with no usable item counts as Unparsed.
    """
    try:
        data = _load_json(raw_text)
        if isinstance(data, dict):
            data = data.get(key)
        if not isinstance(data, list):
            raise ParseError(f'Expected a JSON array under "{key}"')
        if not data:
            raise ParseError('Model returned an empty list')
    except ParseError as e:
        return Unparsed(raw_text=raw_text, reason=e.message)

    items: list[T] = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        try:
            items.append(_validate_fields(entry, item_schema)[0])
        except ParseError:
            continue

    if not items:
        return Unparsed(raw_text=raw_text, reason=f'No valid items among {len(data)}')
    return ParsedList(items, skipped=len(data) - len(items))
