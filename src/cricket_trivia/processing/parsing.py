"""
Tolerant JSON extraction for generative replies.

Models wrap arrays in markdown fences, leave trailing commas, forget to quote
keys, emit control characters and get cut off mid-array. Parsing goes through
three stages: strict parse of the extracted array, parse after normalization,
and finally recovery of every complete object found in the text.
"""
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cricket_trivia.core.errors import MalformedReplyError

logger = logging.getLogger(__name__)

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)
_LINE_COMMENT_RE = re.compile(r"(?m)^\s*//.*$")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_UNQUOTED_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_SINGLE_QUOTED_KEY_RE = re.compile(r"([{,]\s*)'([A-Za-z_][A-Za-z0-9_]*)'\s*:")

# keys that mark a dict as one question or anecdote rather than a wrapper
ITEM_KEYS = ("question", "title")


def strip_control_chars(text: str) -> str:
    return _CONTROL_CHARS_RE.sub("", text)


def normalize_json_text(text: str) -> str:
    """
    Rewrite the common non-JSON habits of language models into plain JSON.
    """
    text = strip_control_chars(text)
    text = _BLOCK_COMMENT_RE.sub("", text)
    text = _LINE_COMMENT_RE.sub("", text)
    text = text.replace("\r", "").replace("\n", " ").replace("\t", " ")
    text = _TRAILING_COMMA_RE.sub(r"\1", text)
    text = _SINGLE_QUOTED_KEY_RE.sub(r'\1"\2":', text)
    text = _UNQUOTED_KEY_RE.sub(r'\1"\2":', text)
    return text.strip()


def strip_fences(content: str) -> str:
    content = strip_control_chars(content).strip()
    fence = _FENCE_RE.search(content)
    if fence:
        content = fence.group(1).strip()
    return content


def extract_json_block(content: str) -> str:
    """
    Extract the JSON payload from a reply, stripping markdown fences if present.
    """
    content = strip_fences(content)

    spans = [(content.find(open_), content.rfind(close)) for open_, close in (("[", "]"), ("{", "}"))]
    # whichever bracket opens first is the outer value
    spans = sorted((start, end) for start, end in spans if start != -1 and end > start)
    if spans:
        start, end = spans[0]
        return content[start:end + 1]

    return content


def _as_list(value: Any) -> Optional[List[Any]]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        # a single bare item, not a wrapper around its own "options" list
        if any(key in value for key in ITEM_KEYS):
            return [value]
        # {"questions": [...]} and similar wrappers
        for inner in value.values():
            if isinstance(inner, list):
                return inner
        return [value]
    return None


def parse_json_array(content: str) -> List[Any]:
    """
    Parse a JSON array out of a model reply.

    Raises:
        MalformedReplyError: If no array can be parsed, even after normalization.
    """
    if not content or not content.strip():
        raise MalformedReplyError("Empty reply")

    whole = strip_fences(content)
    block = extract_json_block(content)

    for candidate in (whole, block, normalize_json_text(block)):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        items = _as_list(parsed)
        if items is not None:
            return items

    raise MalformedReplyError("Reply does not contain a parseable JSON array")


def _scan_objects(text: str) -> Tuple[List[str], Optional[str]]:
    """
    Return every complete {...} span in text, plus the innermost unterminated
    object left open at the end of a truncated reply (if any).
    """
    complete: List[str] = []
    stack: List[int] = []
    in_string = False
    escaped = False

    for idx, char in enumerate(text):
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
        elif char == "{":
            stack.append(idx)
        elif char == "}" and stack:
            start = stack.pop()
            complete.append(text[start:idx + 1])

    dangling = text[stack[-1]:] if stack else None
    return complete, dangling


def _load_object(span: str) -> Optional[Dict[str, Any]]:
    for candidate in (span, normalize_json_text(span)):
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    return None


_CORRECT_ANSWER_RE = re.compile(r'"correctAnswer"\s*:\s*\d+')


def complete_truncated_question(span: str, source: str) -> Optional[str]:
    """
    Close a question object that was cut off after its correctAnswer field.

    The missing explanation and source are filled with placeholders; objects
    truncated before correctAnswer cannot be saved.
    """
    if not re.search(r'"question"\s*:\s*"', span) or not re.search(r'"options"\s*:\s*\[', span):
        return None

    match = _CORRECT_ANSWER_RE.search(span)
    if not match:
        return None

    head = span[:match.end()]
    return head + f', "explanation": "Explanation based on article content", "source": {json.dumps(source)}}}'


def recover_objects(
    content: str,
    required_keys: Iterable[str],
    fallback_source: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Pull individual well-formed objects out of an otherwise malformed reply.
    """
    required = tuple(required_keys)
    text = strip_control_chars(content)
    spans, dangling = _scan_objects(text)

    recovered: List[Dict[str, Any]] = []
    for span in spans:
        obj = _load_object(span)
        if obj is not None and all(k in obj for k in required):
            recovered.append(obj)

    if dangling and fallback_source is not None:
        completed = complete_truncated_question(dangling, fallback_source)
        if completed:
            obj = _load_object(completed)
            if obj is not None and all(k in obj for k in required):
                recovered.append(obj)

    logger.debug(f"Recovered {len(recovered)} objects from malformed reply")
    return recovered


def parse_reply_objects(
    content: str,
    required_keys: Iterable[str],
    fallback_source: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Parse a reply into a list of dict objects, falling back to recovery.

    Raises:
        MalformedReplyError: If nothing at all can be salvaged.
    """
    required = tuple(required_keys)
    try:
        items = parse_json_array(content)
        objects = [item for item in items if isinstance(item, dict)]
        if objects or not items:
            return objects
        logger.warning("Reply parsed to a list without objects, attempting object recovery")
    except MalformedReplyError as e:
        logger.warning(f"Standard JSON parse failed ({e}), attempting object recovery")

    recovered = recover_objects(content or "", required, fallback_source=fallback_source)
    if not recovered:
        raise MalformedReplyError("No recoverable objects in reply")
    return recovered
