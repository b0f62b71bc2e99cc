"""JSON utilities: standardized serialization and defensive parsing of model output."""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, date
from typing import Any, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_FENCE_MARKER = re.compile(r"```(?:json)?", re.IGNORECASE)
# Keeps \t, \n and \r which may legitimately appear inside string values.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")

SEGMENT_LIST_KEYS = ("segments", "highlights", "items")


class DatetimeJSONEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles datetime objects."""

    def default(self, obj):
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return super().default(obj)


def serialize_json(
    data: Any,
    indent: Optional[int] = None,
    ensure_ascii: bool = False,
    sort_keys: bool = False
) -> str:
    """
    Serialize data to JSON string with standardized settings.

    Pydantic models and lists of models are dumped to plain data first.
    """
    if hasattr(data, "model_dump"):
        data = data.model_dump()
    elif isinstance(data, list):
        data = [item.model_dump() if hasattr(item, "model_dump") else item for item in data]
    return json.dumps(
        data,
        indent=indent,
        ensure_ascii=ensure_ascii,
        sort_keys=sort_keys,
        cls=DatetimeJSONEncoder
    )


def deserialize_json(
    json_str: Optional[str],
    default: Optional[Any] = None,
    log_errors: bool = True
) -> Any:
    """
    Deserialize JSON string with error handling.

    Returns the default for empty input or invalid JSON.
    """
    if not json_str:
        return default
    try:
        return json.loads(json_str)
    except (TypeError, ValueError) as e:
        if log_errors:
            logger.error(f"JSON deserialization failed: {e}")
        return default


def clean_json_string_from_markdown(text: str, allow_array: bool = True) -> str:
    """
    Extract the JSON payload from a model reply.

    Strips code fences and control characters, then keeps the text between the
    outermost braces (or brackets, when an array opens first and arrays are allowed).
    """
    if not text:
        return ""

    cleaned = text.strip()
    match = _FENCED_BLOCK.search(cleaned)
    if match:
        cleaned = match.group(1)
    cleaned = _FENCE_MARKER.sub("", cleaned)
    cleaned = _CONTROL_CHARS.sub("", cleaned)

    first_brace = cleaned.find("{")
    first_bracket = cleaned.find("[") if allow_array else -1
    if first_bracket != -1 and (first_brace == -1 or first_bracket < first_brace):
        start, end = first_bracket, cleaned.rfind("]")
    else:
        start, end = first_brace, cleaned.rfind("}")

    if start != -1 and end > start:
        cleaned = cleaned[start:end + 1]
    return cleaned.strip()


def parse_model_json(text: Union[str, dict, list], allow_array: bool = True) -> Any:
    """
    Parse JSON from a model reply that may be fenced or wrapped in prose.

    Raises:
        ValueError: If no parseable JSON payload is found
    """
    if isinstance(text, (dict, list)):
        return text
    cleaned = clean_json_string_from_markdown(text, allow_array=allow_array)
    if not cleaned:
        raise ValueError("Model reply is empty")
    # strict=False tolerates raw newlines inside string values
    return json.loads(cleaned, strict=False)


def extract_string_field(text: str, field_name: str) -> Optional[str]:
    """Regex fallback: pull a JSON string field out of text that does not parse as a whole."""
    pattern = re.compile(r'"' + re.escape(field_name) + r'"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)
    match = pattern.search(text or "")
    if not match:
        return None
    raw_value = match.group(1)
    try:
        return json.loads(f'"{raw_value}"', strict=False)
    except ValueError:
        return raw_value.replace("\\n", "\n").replace('\\"', '"').replace("\\\\", "\\")


def parse_fields_with_fallback(text: str, field_names: Iterable[str]) -> Dict[str, Any]:
    """
    Parse a JSON object, falling back to per-field regex extraction.

    Returns whatever fields could be recovered; callers decide which are required.
    """
    try:
        parsed = parse_model_json(text, allow_array=False)
        if isinstance(parsed, dict):
            return parsed
        logger.warning(f"Model reply parsed to {type(parsed).__name__}, expected an object")
    except ValueError as e:
        logger.warning(f"JSON parsing failed ({e}), trying field extraction")

    recovered = {}
    for name in field_names:
        value = extract_string_field(text, name)
        if value is not None:
            recovered[name] = value
    return recovered


# --- Segment list normalization ---

@dataclass(frozen=True)
class Segments:
    """Successfully normalized list of segment objects."""
    items: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class ParseError:
    """Model output that could not be normalized into segments."""
    reason: str


ParsedModelOutput = Union[Segments, ParseError]


def _looks_like_segment(obj: Dict[str, Any]) -> bool:
    return "title" in obj and isinstance(obj.get("startIndex"), int)


def parse_segments_output(raw: Union[str, dict, list]) -> ParsedModelOutput:
    """
    Normalize a model reply into a list of segment objects.

    Accepts a bare array, an object holding the list under ``segments``,
    ``highlights`` or ``items``, or a single bare segment object.
    """
    try:
        parsed = parse_model_json(raw)
    except ValueError as e:
        return ParseError(f"Could not parse model reply as JSON: {e}")

    if isinstance(parsed, list):
        return Segments([item for item in parsed if isinstance(item, dict)])

    if not isinstance(parsed, dict):
        return ParseError(f"Unexpected JSON type: {type(parsed).__name__}")

    for key in SEGMENT_LIST_KEYS:
        value = parsed.get(key)
        if isinstance(value, list):
            return Segments([item for item in value if isinstance(item, dict)])

    if _looks_like_segment(parsed):
        logger.info("Model returned a single segment object, wrapping it in a list")
        return Segments([parsed])

    return ParseError("No segments array or segment object found in model reply")
