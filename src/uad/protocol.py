# uad: Action protocol: turn assistant response text into an ordered batch of typed actions, and back.
#
# A malformed entry is dropped without invalidating the batch. A response that is not a JSON object
# with an `actions` array is reported as malformed, which is distinct from "zero actions proposed".

import json
import re
from typing import Iterable, List

from pydantic import ValidationError

from .fs import count_lines
from .models import Action, AiResponse, ParseResult, WireAction

RESPONSE_TYPE = "ai_response"

_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n(?P<body>.*)\n```$", re.DOTALL)


def _strip_fence(text: str) -> str:
    """Unwrap a response wrapped in a single Markdown code fence."""
    m = _FENCE_RE.match(text)
    return m.group("body") if m else text


def parse_response(text: str) -> ParseResult:
    """
    Parse assistant response text into a ParseResult.

    Entries that are not objects, miss file_path/action/code, or carry
    non-string values are skipped. Unknown action keywords are preserved;
    the executor reports them.
    """
    body = _strip_fence((text or "").strip())
    try:
        obj = json.loads(body)
    except ValueError as e:
        return ParseResult(malformed=True, error=f"response is not valid JSON: {e}")
    if not isinstance(obj, dict):
        return ParseResult(malformed=True, error="response is not a JSON object")
    raw_actions = obj.get("actions")
    if not isinstance(raw_actions, list):
        return ParseResult(malformed=True, error="response has no 'actions' array")

    actions: List[Action] = []
    skipped = 0
    for item in raw_actions:
        try:
            wire = WireAction.model_validate(item)
        except ValidationError:
            skipped += 1
            continue
        actions.append(Action(file_path=wire.file_path, kind=wire.action, code=wire.code))
    return ParseResult(actions=tuple(actions), skipped=skipped)


def dump_actions(actions: Iterable[Action], indent: int = 2) -> str:
    """Serialize actions back into the wire format."""
    payload = AiResponse(
        type=RESPONSE_TYPE,
        actions=[WireAction(file_path=a.file_path, action=a.kind, code=a.code) for a in actions],
    )
    return json.dumps(payload.model_dump(), indent=indent, ensure_ascii=False)


def describe_actions(actions: Iterable[Action]) -> List[str]:
    """One human-readable line per action, for the approval prompt."""
    lines: List[str] = []
    for a in actions:
        if a.known_kind is None:
            lines.append(f"{a.kind:<7} {a.file_path} (unrecognized action)")
        elif a.kind == "DELETE":
            lines.append(f"{a.kind:<7} {a.file_path}")
        else:
            lines.append(f"{a.kind:<7} {a.file_path} ({count_lines(a.code)} lines)")
    return lines
