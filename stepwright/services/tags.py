import json
import logging
from dataclasses import dataclass
from typing import Any, List

from stepwright.services.script_builder import quote

logger = logging.getLogger(__name__)

# Kinds of raw tag input we know how to read
EMPTY = "empty"
JSON_ARRAY = "json_array"
CSV = "csv"
NAMES = "names"
OBJECTS = "objects"
UNKNOWN = "unknown"


@dataclass(frozen=True)
class TagInput:
    kind: str
    value: Any = None


def parse_tag_input(raw) -> TagInput:
    """Classify a raw tag value once; callers branch on the returned kind."""
    if raw is None:
        return TagInput(EMPTY)

    if isinstance(raw, str):
        if not raw.strip():
            return TagInput(EMPTY)
        if raw.strip().startswith("["):
            return TagInput(JSON_ARRAY, raw)
        return TagInput(CSV, raw)

    if isinstance(raw, (list, tuple)):
        if all(isinstance(item, dict) for item in raw) and raw:
            return TagInput(OBJECTS, list(raw))
        if all(isinstance(item, str) for item in raw):
            return TagInput(NAMES, list(raw))
        return TagInput(UNKNOWN, raw)

    return TagInput(UNKNOWN, raw)


def _split_csv(text: str) -> List[str]:
    return [tag.strip() for tag in text.split(",")]


def _from_json_array(text: str) -> List[str]:
    try:
        parsed = json.loads(text)
    except ValueError as exc:
        logger.warning("Failed to parse tags JSON %r, falling back to comma split: %s", text, exc)
        return _split_csv(text)

    if not isinstance(parsed, list):
        logger.warning("Tags JSON %r is not an array, falling back to comma split", text)
        return _split_csv(text)

    return [item.strip() if isinstance(item, str) else str(item).strip() for item in parsed]


def normalize_tags(raw) -> List[str]:
    """
    Turn any stored tag representation into an ordered list of plain tags.

    Duplicates are kept as-is. Tags keep whatever '@' prefix they were stored
    with; format_tag_block() is what enforces it.
    """
    tag_input = parse_tag_input(raw)

    if tag_input.kind == EMPTY:
        return []
    if tag_input.kind == JSON_ARRAY:
        return _from_json_array(tag_input.value)
    if tag_input.kind == CSV:
        return _split_csv(tag_input.value)
    if tag_input.kind == NAMES:
        return [tag.strip() for tag in tag_input.value]
    if tag_input.kind == OBJECTS:
        names = []
        for item in tag_input.value:
            name = item.get("name")
            if isinstance(name, str):
                names.append(name.strip())
            else:
                logger.warning("Skipping tag object without a string name: %r", item)
        return names

    logger.warning("Unsupported tag value %r (%s), using no tags", raw, type(raw).__name__)
    return []


def format_tag(tag: str) -> str:
    # strip one leading '@' and add it back
    return "@" + (tag[1:] if tag.startswith("@") else tag)


def format_tag_block(tags: List[str]) -> str:
    """Render the `, { tag: [...] }` argument of test(); empty when there are no tags."""
    if not tags:
        return ""
    quoted = ", ".join(quote(format_tag(tag)) for tag in tags)
    return ", {\n  tag: [" + quoted + "]\n}"


def serialize_tags(raw):
    """Storage form of incoming tags: strings are kept verbatim, lists become a JSON array."""
    tag_input = parse_tag_input(raw)
    if tag_input.kind == EMPTY:
        return None
    if tag_input.kind in (JSON_ARRAY, CSV):
        return tag_input.value
    return json.dumps(normalize_tags(raw))
